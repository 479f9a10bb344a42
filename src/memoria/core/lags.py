"""Lagged design matrices for ecological memory models.

Organizes a multivariate time series so that the current value of a response
can be modeled from its own past values (endogenous memory), past values of
one or more drivers (exogenous memory) and the present value of the drivers
(concurrent effect):

    p_t ~ p_{t-1} + ... + p_{t-n} + d_t + d_{t-1} + ... + d_{t-n}
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import DataError, LagResolutionError, ValidationError
from ..types import SEPARATOR, LaggedColumn, LaggedTable, OldestSample
from ..data.validation import check_time_index, validate_time_series

logger = logging.getLogger(__name__)


def format_lag(lag: float) -> str:
    """Render a lag value for a column name (``20.0 -> '20'``, ``0.2 -> '0.2'``)."""
    return format(float(lag), "g")


def lagged_name(variable: str, lag: float) -> str:
    return f"{variable}{SEPARATOR}{format_lag(lag)}"


def check_lag_regularity(lags: np.ndarray) -> None:
    """
    Raise if lags do not form a regular sequence.

    Sequences of one or two lags are always regular. The check runs on the
    lags as given, before 0 is injected, so ``[2, 7]`` passes and is used
    as ``[0, 2, 7]``.

    Parameters
    ----------
    lags : np.ndarray
        Sorted lag values
    """
    if lags.size <= 2:
        return
    differences = np.diff(lags)
    if round(float(np.std(differences, ddof=1)), 2) != 0:
        raise ValidationError(
            f"Numeric sequence provided in argument lags is not regular: {lags.tolist()}"
        )


def lags_to_rows(
    lags: Union[Sequence[float], np.ndarray],
    step: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert lags in time units into row offsets.

    Parameters
    ----------
    lags : sequence of float
        Non-negative lags in the units of the time column
    step : float
        Time resolution of the data

    Returns
    -------
    lags : np.ndarray
        Sorted lags, with 0 injected when absent
    offsets : np.ndarray
        Non-negative integer row offsets, one per lag
    """
    values = np.sort(np.asarray(lags, dtype=float).ravel())

    if values.size == 0:
        raise ValidationError("Argument lags must contain at least one value.")
    if np.any(np.isnan(values)):
        raise ValidationError("Argument lags contains missing values.")
    if np.any(values < 0):
        raise ValidationError(f"Argument lags must be non-negative, got {values.tolist()}")

    check_lag_regularity(values)

    if not np.any(values == 0):
        values = np.concatenate([[0.0], values])

    step = abs(float(step))
    if step == 0 or not np.isfinite(step):
        raise ValidationError(f"Time resolution must be a non-zero finite number, got {step}")

    offsets = np.rint(values / step).astype(int)

    if np.unique(offsets).size != offsets.size:
        raise LagResolutionError(
            "Lags cannot be translated into row offsets without repeating offsets "
            f"(lags {values.tolist()} -> rows {offsets.tolist()} at time resolution {step:g}). "
            "Lags must be in the same units as the time column and multiples of its resolution."
        )

    return values, offsets


def lag_time_series(
    data: pd.DataFrame,
    response: str,
    drivers: Union[str, Sequence[str]],
    time: str,
    lags: Sequence[float],
    oldest_sample: Union[str, OldestSample] = OldestSample.FIRST,
    time_window: Optional[Tuple[float, float]] = None,
    scale: bool = False,
) -> LaggedTable:
    """
    Organize a time series into lagged columns.

    Parameters
    ----------
    data : pd.DataFrame
        Table with one time series per column, on a regular time grid
    response : str
        Name of the response column
    drivers : str or sequence of str
        Names of the driver columns
    time : str
        Name of the time/age column
    lags : sequence of float
        Regular sequence of non-negative lags, in the units of ``time``.
        0 is added when absent so the concurrent effect can be measured;
        regularity is checked before that, on the lags as given.
    oldest_sample : str or OldestSample
        'first' when row 0 is the oldest sample (memory flows down the
        table), 'last' when the last row is the oldest one, as in
        palaeoecological records ordered by increasing age
    time_window : tuple of float, optional
        (min, max) of the time column used to subset rows before lagging
    scale : bool
        Standardize every column except time to mean 0 and sample standard
        deviation 1. Only needed when the lagged data feeds a linear model.

    Returns
    -------
    lagged : LaggedTable
        Columns ``<variable>__<lag>`` for the response and every driver, plus
        the unshifted time column. Rows with values shifted out of the
        sequence are dropped.
    """
    drivers = validate_time_series(data, response, drivers, time)
    oldest_sample = OldestSample.parse(oldest_sample)

    if lags is None:
        raise ValidationError("Argument lags cannot be None.")

    time_values = data[time].to_numpy(dtype=float)

    if time_window is not None:
        if len(time_window) != 2:
            raise ValidationError("Argument time_window must have two values (min, max).")
        window_min, window_max = min(time_window), max(time_window)
        if window_max > np.nanmax(time_values):
            raise DataError(
                f"Maximum of time_window ({window_max:g}) exceeds the maximum of column '{time}'."
            )
        if window_min < np.nanmin(time_values):
            raise DataError(
                f"Minimum of time_window ({window_min:g}) is below the minimum of column '{time}'."
            )

    time_check = check_time_index(time_values)
    if not time_check.is_valid:
        raise ValidationError("; ".join(time_check.errors))
    for message in time_check.warnings:
        logger.warning(message)

    lag_values, offsets = lags_to_rows(lags, time_check.metadata['step'])

    # Past values sit above the current row when the oldest sample comes first
    if oldest_sample == OldestSample.FIRST:
        shifts = offsets
    else:
        shifts = -offsets

    if time_window is not None:
        mask = (data[time] >= window_min) & (data[time] <= window_max)
        data = data.loc[mask]

    columns: List[LaggedColumn] = []
    shifted = {}
    for variable in [response, *drivers]:
        series = data[variable].astype(float)
        for lag, shift in zip(lag_values, shifts):
            name = lagged_name(variable, lag)
            shifted[name] = series.shift(int(shift))
            columns.append(LaggedColumn(name=name, variable=variable, lag=float(lag)))

    frame = pd.DataFrame(shifted, index=data.index)
    frame[time] = data[time]
    n_before = len(frame)
    frame = frame.dropna()

    logger.debug(
        f"Lagged {len(columns)} columns over {n_before} rows, "
        f"dropped {n_before - len(frame)} boundary rows"
    )

    if frame.empty:
        raise DataError(
            f"No rows left after lagging: the largest lag ({lag_values.max():g}) "
            f"spans the whole series ({n_before} rows)."
        )

    if scale:
        value_columns = [c.name for c in columns]
        values = frame[value_columns]
        sd = values.std(ddof=1).replace(0.0, 1.0)
        frame[value_columns] = (values - values.mean()) / sd

    return LaggedTable(
        data=frame,
        response=response,
        drivers=drivers,
        columns=columns,
        lags=lag_values,
        time=time,
    )
