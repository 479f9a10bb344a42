"""Reading and writing memory analysis results.

Supported formats:

- ``hdf5``: memory summaries, memory features and nested dictionaries of
  arrays (h5py). A summary file holds the attributes ``kind``, ``response``,
  ``drivers``, ``random_mode`` and ``subset_response``, the datasets ``r2``
  and ``lags``, and the groups ``memory`` (one dataset per column, the
  ordered variable levels in the ``levels`` attribute) and ``prediction``.
- ``json``: the same content as plain lists.
- ``pickle``: any object, as is.
- ``csv``: the memory table of a summary, one row of features, or a table.
  CSV files load back as DataFrames.
"""

import json
import pickle
import warnings
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import h5py
import numpy as np
import pandas as pd

from ..types import (
    MemoryFeatures,
    MemorySummary,
    RandomMode,
    SubsetResponse,
)

Saveable = Union[MemorySummary, MemoryFeatures, pd.DataFrame, Dict[str, Any]]
Loaded = Union[MemorySummary, MemoryFeatures, pd.DataFrame, Dict[str, Any]]

_SUMMARY_KIND = 'memory_summary'
_FEATURES_KIND = 'memory_features'
_STAT_COLUMNS = ['median', 'sd', 'p05', 'p95']

_SUFFIX_FORMATS = {
    '.h5': 'hdf5',
    '.hdf5': 'hdf5',
    '.pkl': 'pickle',
    '.pickle': 'pickle',
    '.json': 'json',
    '.csv': 'csv',
}


def save_results(
    results: Saveable,
    output_path: Union[str, Path],
    format: str = 'hdf5',
    compression: Optional[str] = None
) -> None:
    """
    Save a memory summary, memory features, a table or a dictionary.

    Parameters
    ----------
    results : MemorySummary, MemoryFeatures, pd.DataFrame or Dict[str, Any]
        Object to save. Tables need ``format='csv'`` (or pickle).
    output_path : str or Path
        Output file; missing parent directories are created
    format : str
        'hdf5', 'pickle', 'json' or 'csv'
    compression : str, optional
        Compression filter of HDF5 datasets, e.g. 'gzip'
    """
    if format not in _WRITERS:
        raise ValueError(f"Unsupported format: {format}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if format == 'hdf5':
        _write_hdf5(results, output_path, compression)
    else:
        _WRITERS[format](results, output_path)


def load_results(input_path: Union[str, Path], format: Optional[str] = None) -> Loaded:
    """
    Load results written by ``save_results``.

    Parameters
    ----------
    input_path : str or Path
        File to read
    format : str, optional
        'hdf5', 'pickle', 'json' or 'csv'; taken from the file extension
        when omitted

    Returns
    -------
    results : MemorySummary, MemoryFeatures, pd.DataFrame or Dict[str, Any]
        Summaries and features come back typed; other content comes back
        as dictionaries (CSV as a DataFrame)
    """
    input_path = Path(input_path)

    if format is None:
        format = _SUFFIX_FORMATS.get(input_path.suffix.lower())
        if format is None:
            raise ValueError(f"Cannot auto-detect format for {input_path}")
    if format not in _READERS:
        raise ValueError(f"Unsupported format: {format}")

    return _READERS[format](input_path)


def save_experiment_config(
    config: Dict[str, Any],
    experiment_dir: Union[str, Path],
    filename: str = 'config.yaml'
) -> Path:
    """
    Save the configuration an analysis ran with next to its results.

    Returns
    -------
    config_path : Path
        Path of the written YAML file
    """
    import yaml

    config_path = Path(experiment_dir) / filename
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.safe_dump(_to_builtin(config), f, default_flow_style=False, indent=2, sort_keys=False)

    return config_path


# ---------------------------------------------------------------------------
# Conversions shared by the formats
# ---------------------------------------------------------------------------

def _to_builtin(obj: Any) -> Any:
    """Recursively turn numpy values and containers into JSON/YAML-safe builtins."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, dict):
        return {str(key): _to_builtin(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_builtin(item) for item in obj]
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if hasattr(obj, '__dict__'):
        return _to_builtin(vars(obj))
    return str(obj)


def _as_str(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def _variable_levels(memory: pd.DataFrame) -> Optional[List[str]]:
    variable = memory['variable']
    if isinstance(variable.dtype, pd.CategoricalDtype):
        return [str(c) for c in variable.cat.categories]
    return None


def _memory_frame(columns: Dict[str, Any], levels: Optional[List[str]]) -> pd.DataFrame:
    memory = pd.DataFrame({
        'variable': [str(v) for v in columns['variable']],
        'lag': np.asarray(columns['lag'], dtype=float),
        **{column: np.asarray(columns[column], dtype=float) for column in _STAT_COLUMNS},
    })
    if levels is not None:
        memory['variable'] = pd.Categorical(memory['variable'], categories=levels, ordered=True)
    return memory


def _summary_to_dict(summary: MemorySummary) -> Dict[str, Any]:
    memory = summary.memory.assign(variable=summary.memory['variable'].astype(str))
    return {
        'kind': _SUMMARY_KIND,
        'response': summary.response,
        'drivers': list(summary.drivers),
        'random_mode': RandomMode.parse(summary.random_mode).value,
        'subset_response': SubsetResponse.parse(summary.subset_response).value,
        'lags': None if summary.lags is None else np.asarray(summary.lags, dtype=float).tolist(),
        'r2': np.asarray(summary.r2, dtype=float).tolist(),
        'levels': _variable_levels(summary.memory),
        'memory': memory.to_dict(orient='list'),
        'prediction': {
            'index': summary.prediction.index.tolist(),
            **{column: summary.prediction[column].tolist() for column in _STAT_COLUMNS},
        },
    }


def _summary_from_dict(data: Dict[str, Any]) -> MemorySummary:
    prediction = data['prediction']
    return MemorySummary(
        response=data['response'],
        drivers=list(data['drivers']),
        memory=_memory_frame(data['memory'], data.get('levels')),
        r2=np.asarray(data['r2'], dtype=float),
        prediction=pd.DataFrame(
            {column: np.asarray(prediction[column], dtype=float) for column in _STAT_COLUMNS},
            index=pd.Index(prediction['index']),
        ),
        random_mode=RandomMode.parse(data['random_mode']),
        subset_response=SubsetResponse.parse(data['subset_response']),
        lags=None if data.get('lags') is None else np.asarray(data['lags'], dtype=float),
    )


def _features_from_dict(data: Dict[str, Any]) -> MemoryFeatures:
    return MemoryFeatures(
        label=_as_str(data['label']),
        strength_endogenous=float(data['strength.endogenous']),
        strength_exogenous=float(data['strength.exogenous']),
        strength_concurrent=float(data['strength.concurrent']),
        length_endogenous=float(data['length.endogenous']),
        length_exogenous=float(data['length.exogenous']),
        dominance_endogenous=float(data['dominance.endogenous']),
        dominance_exogenous=float(data['dominance.exogenous']),
    )


# ---------------------------------------------------------------------------
# HDF5
# ---------------------------------------------------------------------------

def _write_hdf5(results: Saveable, output_path: Path, compression: Optional[str] = None) -> None:
    if isinstance(results, pd.DataFrame):
        raise ValueError("DataFrames are saved with format='csv'")

    with h5py.File(output_path, 'w') as f:
        if isinstance(results, MemorySummary):
            _write_summary_hdf5(results, f, compression)
        elif isinstance(results, MemoryFeatures):
            f.attrs['kind'] = _FEATURES_KIND
            for key, value in results.to_dict().items():
                f.attrs[key] = value
        else:
            _write_mapping_hdf5(results, f, compression)


def _write_summary_hdf5(summary: MemorySummary, f: h5py.File, compression: Optional[str]) -> None:
    f.attrs['kind'] = _SUMMARY_KIND
    f.attrs['response'] = summary.response
    f.attrs['drivers'] = json.dumps(list(summary.drivers))
    f.attrs['random_mode'] = RandomMode.parse(summary.random_mode).value
    f.attrs['subset_response'] = SubsetResponse.parse(summary.subset_response).value

    f.create_dataset('r2', data=np.asarray(summary.r2, dtype=float), compression=compression)
    if summary.lags is not None:
        f.create_dataset('lags', data=np.asarray(summary.lags, dtype=float), compression=compression)

    memory = summary.memory
    memory_group = f.create_group('memory')
    levels = _variable_levels(memory)
    if levels is not None:
        memory_group.attrs['levels'] = json.dumps(levels)
    memory_group.create_dataset(
        'variable',
        data=np.array(memory['variable'].astype(str).tolist(), dtype=object),
        dtype=h5py.string_dtype(),
    )
    for column in ['lag', *_STAT_COLUMNS]:
        memory_group.create_dataset(column, data=memory[column].to_numpy(dtype=float), compression=compression)

    prediction_group = f.create_group('prediction')
    index = summary.prediction.index.to_numpy()
    if index.dtype.kind in 'iuf':
        prediction_group.create_dataset('index', data=index)
    else:
        prediction_group.create_dataset(
            'index', data=np.array([str(v) for v in index], dtype=object), dtype=h5py.string_dtype()
        )
    for column in _STAT_COLUMNS:
        prediction_group.create_dataset(
            column, data=summary.prediction[column].to_numpy(dtype=float), compression=compression
        )


def _write_mapping_hdf5(data: Dict[str, Any], group: h5py.Group, compression: Optional[str]) -> None:
    # Arrays become datasets, nested mappings groups, scalars attributes
    for key, value in data.items():
        try:
            if isinstance(value, dict):
                _write_mapping_hdf5(value, group.create_group(key), compression)
            elif isinstance(value, (np.ndarray, list, tuple)):
                group.create_dataset(key, data=np.asarray(value), compression=compression)
            elif isinstance(value, (str, int, float, bool, np.generic)):
                group.attrs[key] = value
            else:
                group.attrs[key] = str(value)
        except (TypeError, ValueError) as e:
            warnings.warn(f"Could not save key '{key}': {e}")


def _read_hdf5(input_path: Path) -> Union[MemorySummary, MemoryFeatures, Dict[str, Any]]:
    with h5py.File(input_path, 'r') as f:
        kind = _as_str(f.attrs.get('kind', ''))
        if kind == _SUMMARY_KIND:
            return _read_summary_hdf5(f)
        if kind == _FEATURES_KIND:
            return _features_from_dict(dict(f.attrs))
        return _read_mapping_hdf5(f)


def _read_summary_hdf5(f: h5py.File) -> MemorySummary:
    memory_group = f['memory']
    levels = json.loads(_as_str(memory_group.attrs['levels'])) if 'levels' in memory_group.attrs else None
    columns = {key: memory_group[key][()] for key in ['lag', *_STAT_COLUMNS]}
    columns['variable'] = memory_group['variable'].asstr()[()]

    prediction_group = f['prediction']
    index_data = prediction_group['index']
    if h5py.check_string_dtype(index_data.dtype):
        index = index_data.asstr()[()]
    else:
        index = index_data[()]

    return MemorySummary(
        response=_as_str(f.attrs['response']),
        drivers=json.loads(_as_str(f.attrs['drivers'])),
        memory=_memory_frame(columns, levels),
        r2=f['r2'][()],
        prediction=pd.DataFrame(
            {column: prediction_group[column][()] for column in _STAT_COLUMNS},
            index=pd.Index(index),
        ),
        random_mode=RandomMode.parse(_as_str(f.attrs['random_mode'])),
        subset_response=SubsetResponse.parse(_as_str(f.attrs['subset_response'])),
        lags=f['lags'][()] if 'lags' in f else None,
    )


def _read_mapping_hdf5(group: h5py.Group) -> Dict[str, Any]:
    result: Dict[str, Any] = dict(group.attrs)
    for key, item in group.items():
        result[key] = _read_mapping_hdf5(item) if isinstance(item, h5py.Group) else item[()]
    return result


# ---------------------------------------------------------------------------
# JSON, pickle and CSV
# ---------------------------------------------------------------------------

def _write_json(results: Saveable, output_path: Path) -> None:
    if isinstance(results, MemorySummary):
        payload = _summary_to_dict(results)
    elif isinstance(results, MemoryFeatures):
        payload = {'kind': _FEATURES_KIND, **results.to_dict()}
    elif isinstance(results, pd.DataFrame):
        payload = results.to_dict(orient='list')
    else:
        payload = results

    with open(output_path, 'w') as f:
        json.dump(_to_builtin(payload), f, indent=2)


def _read_json(input_path: Path) -> Union[MemorySummary, MemoryFeatures, Dict[str, Any]]:
    with open(input_path, 'r') as f:
        data = json.load(f)

    kind = data.get('kind') if isinstance(data, dict) else None
    if kind == _SUMMARY_KIND:
        return _summary_from_dict(data)
    if kind == _FEATURES_KIND:
        return _features_from_dict(data)
    return data


def _write_pickle(results: Saveable, output_path: Path) -> None:
    with open(output_path, 'wb') as f:
        pickle.dump(results, f)


def _read_pickle(input_path: Path) -> Any:
    with open(input_path, 'rb') as f:
        return pickle.load(f)


def _write_csv(results: Saveable, output_path: Path) -> None:
    if isinstance(results, MemorySummary):
        table = results.memory
    elif isinstance(results, MemoryFeatures):
        table = pd.DataFrame([results.to_dict()])
    elif isinstance(results, pd.DataFrame):
        table = results
    else:
        table = pd.DataFrame([_to_builtin(results)])
    table.to_csv(output_path, index=False)


_WRITERS: Dict[str, Callable[..., None]] = {
    'hdf5': _write_hdf5,
    'pickle': _write_pickle,
    'json': _write_json,
    'csv': _write_csv,
}

_READERS: Dict[str, Callable[[Path], Any]] = {
    'hdf5': _read_hdf5,
    'pickle': _read_pickle,
    'json': _read_json,
    'csv': pd.read_csv,
}
