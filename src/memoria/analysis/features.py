"""Ecological memory features.

Condenses a memory table into three families of scalars per memory component:

- strength: maximum median importance above the random benchmark
- length: fraction of lags where importance exceeds the benchmark
- dominance: fraction of lags where one component beats the other
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import DataError, ValidationError
from ..types import RANDOM_NAME, MemoryFeatures, MemorySummary


def _unpack(
    summary: Union[MemorySummary, pd.DataFrame],
    endogenous: Optional[str],
    exogenous: Union[None, str, Sequence[str]],
    label: Optional[str],
) -> Tuple[pd.DataFrame, str, List[str], str]:
    if isinstance(summary, MemorySummary):
        memory = summary.memory
        endogenous = summary.response if endogenous is None else endogenous
        exogenous = summary.drivers if exogenous is None else exogenous
    elif isinstance(summary, pd.DataFrame):
        memory = summary
        if endogenous is None or exogenous is None:
            raise ValidationError(
                "Arguments endogenous and exogenous cannot be None when summary is a DataFrame."
            )
    else:
        raise ValidationError("Argument summary must be a MemorySummary or a pandas DataFrame.")

    missing = {'variable', 'lag', 'median'} - set(memory.columns)
    if missing:
        raise ValidationError(f"Memory table is missing columns: {sorted(missing)}")

    if isinstance(exogenous, str):
        exogenous = [exogenous]
    exogenous = list(exogenous)
    if not exogenous:
        raise ValidationError("Argument exogenous must name at least one variable.")

    memory = memory.assign(variable=memory['variable'].astype(str))
    present = set(memory['variable'])
    for name in [endogenous, *exogenous]:
        if name not in present:
            raise DataError(f"Variable '{name}' not found in the memory table.")

    return memory, endogenous, exogenous, endogenous if label is None else label


def extract_memory_features(
    summary: Union[MemorySummary, pd.DataFrame],
    endogenous: Optional[str] = None,
    exogenous: Union[None, str, Sequence[str]] = None,
    label: Optional[str] = None,
) -> MemoryFeatures:
    """
    Extract strength, length and dominance of ecological memory.

    Importance values are compared with the median importance of the random
    benchmark at lag 0 (0 when no benchmark was fitted). Values equal to
    that baseline do not exceed it, and lags where the thresholded
    endogenous and exogenous values tie count toward neither dominance.

    Parameters
    ----------
    summary : MemorySummary or pd.DataFrame
        Output of ``compute_memory``, or its ``memory`` table
    endogenous : str, optional
        Response variable (defaults to ``summary.response``)
    exogenous : str or sequence of str, optional
        Driver variables (defaults to ``summary.drivers``). With several
        drivers, the exogenous importance at a lag is their maximum.
    label : str, optional
        Name of the analyzed unit (defaults to ``endogenous``)

    Returns
    -------
    features : MemoryFeatures
        One record with strength, length and dominance values
    """
    memory, endogenous, exogenous, label = _unpack(summary, endogenous, exogenous, label)

    random_rows = memory[(memory['variable'] == RANDOM_NAME) & (memory['lag'] == 0)]
    baseline = float(random_rows['median'].iloc[0]) if len(random_rows) else 0.0

    concurrent_rows = memory[(memory['variable'] == exogenous[0]) & (memory['lag'] == 0)]
    if concurrent_rows.empty:
        raise DataError(f"Variable '{exogenous[0]}' has no lag 0 importance.")
    strength_concurrent = float(concurrent_rows['median'].iloc[0]) - baseline

    lagged = memory[(memory['lag'] != 0) & (memory['variable'] != RANDOM_NAME)]
    lags = np.sort(lagged['lag'].unique())
    if lags.size == 0:
        raise ValidationError(
            "Memory features need at least one lag other than 0 in the memory table."
        )

    endo = (
        lagged[lagged['variable'] == endogenous]
        .groupby('lag')['median'].max()
        .reindex(lags)
    )
    exo = (
        lagged[lagged['variable'].isin(exogenous)]
        .groupby('lag')['median'].max()
        .reindex(lags)
    )

    n_lags = float(lags.size)
    endo_above = endo > baseline
    exo_above = exo > baseline

    endo_thresholded = endo.where(endo_above, 0.0)
    exo_thresholded = exo.where(exo_above, 0.0)

    return MemoryFeatures(
        label=str(label),
        strength_endogenous=float(endo.max()) - baseline,
        strength_exogenous=float(exo.max()) - baseline,
        strength_concurrent=strength_concurrent,
        length_endogenous=float(endo_above.sum()) / n_lags,
        length_exogenous=float(exo_above.sum()) / n_lags,
        dominance_endogenous=float((endo_thresholded > exo_thresholded).sum()) / n_lags,
        dominance_exogenous=float((exo_thresholded > endo_thresholded).sum()) / n_lags,
    )
