"""Goodness-of-fit and diagnostic metrics for memory models."""

import numpy as np
import pandas as pd
from typing import List, Optional, Union
from sklearn.linear_model import LinearRegression

from ..core.memory import pseudo_r2
from ..exceptions import ValidationError
from ..types import LaggedTable

__all__ = ["pseudo_r2", "autocorrelation", "compute_vif"]


def autocorrelation(
    x: Union[np.ndarray, pd.Series],
    max_lag: Optional[int] = None,
    alpha_z: float = 1.96
) -> pd.DataFrame:
    """
    Sample autocorrelation function with a white-noise confidence band.

    Parameters
    ----------
    x : array-like
        Time series
    max_lag : int, optional
        Largest lag in rows (defaults to min(n // 4, 40))
    alpha_z : float
        Normal quantile of the band (1.96 for 95%)

    Returns
    -------
    acf : pd.DataFrame
        Columns lag, acf, ci_min, ci_max
    """
    values = np.asarray(x, dtype=float)
    values = values[np.isfinite(values)]
    n = len(values)

    if n < 2:
        raise ValidationError("Autocorrelation needs at least two finite values")

    if max_lag is None:
        max_lag = min(n // 4, 40)
    max_lag = int(min(max_lag, n - 1))

    centered = values - values.mean()
    variance = np.mean(centered ** 2)

    acf_values = np.zeros(max_lag + 1)
    acf_values[0] = 1.0
    if variance > 0:
        for k in range(1, max_lag + 1):
            acf_values[k] = np.mean(centered[k:] * centered[:-k]) * (n - k) / n / variance

    band = alpha_z / np.sqrt(n)
    return pd.DataFrame({
        'lag': np.arange(max_lag + 1),
        'acf': acf_values,
        'ci_min': -band,
        'ci_max': band,
    })


def compute_vif(lagged: Union[LaggedTable, pd.DataFrame]) -> pd.DataFrame:
    """
    Variance inflation factor of every predictor of a lagged table.

    Each predictor is regressed on all the others by ordinary least squares;
    VIF = 1 / (1 - R^2). Values above 5 flag strong multicollinearity.

    Parameters
    ----------
    lagged : LaggedTable or pd.DataFrame
        Lagged data. For a LaggedTable, the lag-0 response and the time
        column are excluded; a DataFrame is used as given.

    Returns
    -------
    vif : pd.DataFrame
        Columns variable, vif
    """
    if isinstance(lagged, LaggedTable):
        predictors: List[str] = [c.name for c in lagged.columns if c.name != lagged.target]
        frame = lagged.data[predictors]
    elif isinstance(lagged, pd.DataFrame):
        frame = lagged.select_dtypes(include=[np.number])
    else:
        raise ValidationError("Argument lagged must be a LaggedTable or a pandas DataFrame.")

    frame = frame.dropna()
    if frame.shape[1] < 2:
        raise ValidationError("VIF needs at least two predictors")

    values = frame.to_numpy(dtype=float)
    vif = []
    for i in range(values.shape[1]):
        y = values[:, i]
        X = np.delete(values, i, axis=1)
        if np.var(y) == 0:
            vif.append(np.inf)
            continue
        r2 = LinearRegression().fit(X, y).score(X, y)
        vif.append(np.inf if r2 >= 1.0 else 1.0 / (1.0 - r2))

    return pd.DataFrame({'variable': list(frame.columns), 'vif': vif})
