"""Result management and tabular views of memory results."""

import numpy as np
import pandas as pd
from typing import Dict, List, Any, Optional, Sequence, Union
from pathlib import Path

from ..types import MemoryFeatures, MemorySummary
from ..utils.io import save_results, load_results


def memory_table_wide(
    summary: Union[MemorySummary, pd.DataFrame],
    value: str = 'median'
) -> pd.DataFrame:
    """
    Pivot a memory table to one row per lag and one column per variable.

    Parameters
    ----------
    summary : MemorySummary or pd.DataFrame
        Memory summary or its ``memory`` table
    value : str
        Statistic to spread ('median', 'sd', 'p05' or 'p95')

    Returns
    -------
    wide : pd.DataFrame
        Indexed by lag, columns ordered like the variable levels
    """
    memory = summary.memory if isinstance(summary, MemorySummary) else summary
    if value not in memory.columns:
        raise ValueError(f"Unknown statistic '{value}'")

    wide = memory.pivot_table(index='lag', columns='variable', values=value, observed=True, aggfunc='first')
    wide.columns = [str(c) for c in wide.columns]
    wide.columns.name = None
    return wide


def features_to_frame(features: Sequence[MemoryFeatures]) -> pd.DataFrame:
    """
    Stack memory features of many analyzed units into one table.

    Returns
    -------
    table : pd.DataFrame
        One row per unit with the columns label, strength.*, length.* and
        dominance.*
    """
    columns = list(MemoryFeatures.__dataclass_fields__)
    if not features:
        return pd.DataFrame(columns=[_dotted(c) for c in columns])
    return pd.DataFrame([f.to_dict() for f in features])


def _dotted(field_name: str) -> str:
    return field_name.replace('_', '.', 1) if field_name != 'label' else field_name


def summarize_r2(summary: MemorySummary) -> Dict[str, float]:
    """Mean, standard deviation, minimum and maximum of the pseudo R-squared."""
    r2 = np.asarray(summary.r2, dtype=float)
    finite = r2[np.isfinite(r2)]
    if finite.size == 0:
        return {'mean': float('nan'), 'sd': float('nan'), 'min': float('nan'), 'max': float('nan')}
    return {
        'mean': float(np.mean(finite)),
        'sd': float(np.std(finite, ddof=1)) if finite.size > 1 else 0.0,
        'min': float(np.min(finite)),
        'max': float(np.max(finite)),
    }


class ResultManager:
    """Manage and organize analysis results."""

    def __init__(self, base_dir: Union[str, Path]):
        """
        Initialize result manager.

        Parameters
        ----------
        base_dir : str or Path
            Base directory for storing results
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def save_result(
        self,
        summary: MemorySummary,
        name: str,
        features: Optional[MemoryFeatures] = None,
        format: str = 'hdf5'
    ) -> Path:
        """
        Save a memory summary (and its features) under ``base_dir/name``.

        Parameters
        ----------
        summary : MemorySummary
            Summary to save
        name : str
            Experiment name
        features : MemoryFeatures, optional
            Features extracted from ``summary``
        format : str
            Storage format of the summary

        Returns
        -------
        file_path : Path
            Path to saved summary
        """
        exp_dir = self.base_dir / name
        exp_dir.mkdir(parents=True, exist_ok=True)

        extension = {'hdf5': 'h5', 'pickle': 'pkl'}.get(format, format)
        file_path = exp_dir / f'summary.{extension}'
        save_results(summary, file_path, format=format)
        save_results(summary.memory, exp_dir / 'memory.csv', format='csv')

        if features is not None:
            save_results(features, exp_dir / 'features.json', format='json')

        return file_path

    def load_result(self, name: str) -> MemorySummary:
        """
        Load the summary saved under ``name``.

        Raises
        ------
        FileNotFoundError
            If no summary exists for ``name``
        """
        exp_dir = self.base_dir / name
        for extension in ('h5', 'pkl', 'json'):
            file_path = exp_dir / f'summary.{extension}'
            if file_path.exists():
                return load_results(file_path)
        raise FileNotFoundError(f"Result file not found in: {exp_dir}")

    def load_features(self, name: str) -> MemoryFeatures:
        file_path = self.base_dir / name / 'features.json'
        if not file_path.exists():
            raise FileNotFoundError(f"Features file not found: {file_path}")
        return load_results(file_path)

    def list_experiments(self) -> List[str]:
        """
        List available experiments.

        Returns
        -------
        experiments : List[str]
            List of experiment names
        """
        return sorted(item.name for item in self.base_dir.iterdir() if item.is_dir())

    def collect_features(self) -> pd.DataFrame:
        """Stack the features of every experiment that has them."""
        features = []
        for name in self.list_experiments():
            try:
                features.append(self.load_features(name))
            except FileNotFoundError:
                continue
        return features_to_frame(features)

    def create_comparative_summary(self, names: List[str]) -> Dict[str, Any]:
        """
        Compare goodness of fit across experiments.

        Parameters
        ----------
        names : List[str]
            Experiment names to compare

        Returns
        -------
        summary : Dict[str, Any]
            Per-experiment response, drivers and R-squared statistics
        """
        comparison: Dict[str, Any] = {'experiments': [], 'r2': {}}
        for name in names:
            try:
                summary = self.load_result(name)
            except FileNotFoundError:
                continue
            comparison['experiments'].append(name)
            comparison['r2'][name] = {
                'response': summary.response,
                'drivers': list(summary.drivers),
                **summarize_r2(summary),
            }
        return comparison
