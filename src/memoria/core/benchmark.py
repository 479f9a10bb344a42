"""Random benchmark predictors.

A benchmark is a synthetic predictor with no causal link to the response. Its
importance sets the null threshold against which the importance of lagged
variables is judged.
"""

from typing import Optional, Union

import numpy as np
from scipy.ndimage import uniform_filter1d

from ..exceptions import ValidationError
from ..types import RandomMode


def _as_random_state(random_state: Union[None, int, np.random.RandomState]) -> np.random.RandomState:
    if isinstance(random_state, np.random.RandomState):
        return random_state
    return np.random.RandomState(random_state)


def white_noise(n: int, rng: np.random.RandomState) -> np.ndarray:
    """Standard normal i.i.d. values."""
    return rng.normal(0.0, 1.0, n)


def autocorrelated_noise(n: int, rng: np.random.RandomState) -> np.ndarray:
    """
    Smoothed white noise rescaled to [0, 1].

    The width of the centered moving average is drawn from ``1..n // 4`` on
    every call, so consecutive benchmarks carry different amounts of
    temporal autocorrelation. The filter wraps around the series ends.

    Parameters
    ----------
    n : int
        Length of the series
    rng : np.random.RandomState
        Random generator

    Returns
    -------
    noise : np.ndarray
        Values in [0, 1]
    """
    values = rng.normal(0.0, 1.0, n)
    max_window = max(1, n // 4)
    window = int(rng.randint(1, max_window + 1))
    smoothed = uniform_filter1d(values, size=window, mode="wrap")

    value_range = smoothed.max() - smoothed.min()
    if value_range == 0:
        return np.zeros(n)
    return (smoothed - smoothed.min()) / value_range


def generate_random_benchmark(
    n: int,
    mode: Union[str, RandomMode] = RandomMode.AUTOCORRELATED,
    random_state: Union[None, int, np.random.RandomState] = None,
) -> Optional[np.ndarray]:
    """
    Generate a random benchmark column.

    Parameters
    ----------
    n : int
        Number of values (rows of the modeling table)
    mode : str or RandomMode
        'white_noise', 'autocorrelated', or 'none' to disable the benchmark
    random_state : int or np.random.RandomState, optional
        Seed or generator for reproducibility

    Returns
    -------
    benchmark : np.ndarray or None
        Vector of length ``n``, or None when ``mode`` is 'none'
    """
    mode = RandomMode.parse(mode)

    if mode == RandomMode.NONE:
        return None

    if not isinstance(n, (int, np.integer)) or n < 1:
        raise ValidationError(f"Benchmark length must be a positive integer, got {n!r}")

    rng = _as_random_state(random_state)

    if mode == RandomMode.WHITE_NOISE:
        return white_noise(int(n), rng)
    return autocorrelated_noise(int(n), rng)
