"""Data loading utilities for time series tables."""

import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd

from ..exceptions import DataError

SUPPORTED_SUFFIXES = ('.csv', '.tsv', '.txt', '.json')


@dataclass
class DatasetInfo:
    """Information about a directory of time series tables."""
    name: str
    n_series: int
    n_rows: int
    columns: List[str]
    metadata: Dict[str, Any]


def load_time_series(
    file_path: Union[str, Path],
    time: Optional[str] = None,
    sort: bool = False,
    **kwargs
) -> pd.DataFrame:
    """
    Load one time series table.

    Parameters
    ----------
    file_path : str or Path
        CSV, TSV (``.tsv``/``.txt``) or JSON (records or columns) file
    time : str, optional
        Name of the time column; checked for presence when given
    sort : bool
        Sort rows by ``time`` in ascending order
    **kwargs
        Passed to the pandas reader

    Returns
    -------
    data : pd.DataFrame
        One column per variable
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix == '.csv':
        data = pd.read_csv(file_path, **kwargs)
    elif suffix in ('.tsv', '.txt'):
        data = pd.read_csv(file_path, sep='\t', **kwargs)
    elif suffix == '.json':
        data = pd.read_json(file_path, **kwargs)
    else:
        raise DataError(f"Unsupported file type '{suffix}' (expected one of {SUPPORTED_SUFFIXES})")

    if time is not None:
        if time not in data.columns:
            raise DataError(f"Time column '{time}' not found in {file_path.name}")
        if sort:
            data = data.sort_values(time, kind='mergesort').reset_index(drop=True)

    return data


def save_time_series(data: pd.DataFrame, file_path: Union[str, Path]) -> Path:
    """Write a time series table as CSV, TSV or JSON according to its extension."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = file_path.suffix.lower()
    if suffix == '.csv':
        data.to_csv(file_path, index=False)
    elif suffix in ('.tsv', '.txt'):
        data.to_csv(file_path, sep='\t', index=False)
    elif suffix == '.json':
        data.to_json(file_path, orient='records', indent=2)
    else:
        raise DataError(f"Unsupported file type '{suffix}' (expected one of {SUPPORTED_SUFFIXES})")

    return file_path


class TimeSeriesLoader:
    """Iterate over a directory of time series tables.

    Useful when the same analysis is applied to many sites or taxa stored
    as one file each. Iteration yields ``(name, DataFrame)`` pairs in file
    name order, ``name`` being the file stem.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        file_pattern: str = "*.csv",
        time: Optional[str] = None,
        sort: bool = False
    ):
        """
        Parameters
        ----------
        data_dir : str or Path
            Directory holding one table per analyzed unit
        file_pattern : str
            Glob pattern selecting the tables
        time : str, optional
            Time column every table must contain
        sort : bool
            Sort every table by ``time``
        """
        self.data_dir = Path(data_dir)
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

        self.file_pattern = file_pattern
        self.time = time
        self.sort = sort
        self.metadata: Dict[str, Any] = {'file_pattern': file_pattern, 'time': time}

        self.file_list: List[Path] = sorted(
            p for p in self.data_dir.glob(file_pattern)
            if p.suffix.lower() in SUPPORTED_SUFFIXES
        )
        if not self.file_list:
            warnings.warn(f"No tables matching '{file_pattern}' in {self.data_dir}")

    def __len__(self) -> int:
        return len(self.file_list)

    def __iter__(self) -> Iterator[Tuple[str, pd.DataFrame]]:
        for path in self.file_list:
            yield path.stem, self.load_file(path)

    def load_file(self, file_path: Union[str, Path]) -> pd.DataFrame:
        return load_time_series(file_path, time=self.time, sort=self.sort)

    def get_info(self) -> DatasetInfo:
        """Summarize the directory; row count and columns come from the first table."""
        if not self.file_list:
            return DatasetInfo(self.data_dir.name, 0, 0, [], self.metadata)

        first = self.load_file(self.file_list[0])
        return DatasetInfo(
            name=self.data_dir.name,
            n_series=len(self.file_list),
            n_rows=int(len(first)),
            columns=[str(c) for c in first.columns],
            metadata=self.metadata,
        )
