"""Synthetic data generation for testing and validation."""

import numpy as np
import pandas as pd
from typing import Optional, Union
from scipy.ndimage import gaussian_filter1d

from ..exceptions import ValidationError
from ..types import OldestSample


class SyntheticMemoryGenerator:
    """Generate driver/response series with known memory.

    The response follows

        response_t = endogenous_weight * response_{t-1}
                     + exogenous_weight * driver_{t - driver_lag}
                     + noise * e_t

    where the driver is Gaussian noise optionally smoothed in time and
    ``e_t`` is standard normal. A correct memory analysis recovers the
    exogenous peak at ``driver_lag``.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize synthetic series generator.

        Parameters
        ----------
        seed : int, optional
            Random seed for reproducibility
        """
        self.seed = seed
        self.rng = np.random.RandomState(seed)

    def generate_driver(self, n: int, smoothing: float = 2.0) -> np.ndarray:
        """
        Generate a driver series.

        Parameters
        ----------
        n : int
            Number of values
        smoothing : float
            Standard deviation (in rows) of the Gaussian smoothing kernel;
            0 leaves the driver as white noise

        Returns
        -------
        driver : np.ndarray
            Standardized driver values
        """
        values = self.rng.normal(0.0, 1.0, n)
        if smoothing > 0:
            values = gaussian_filter1d(values, sigma=smoothing, mode='wrap')
        std = values.std()
        return (values - values.mean()) / std if std > 0 else values

    def generate(
        self,
        n: int = 500,
        driver_lag: float = 2.0,
        endogenous_weight: float = 0.0,
        exogenous_weight: float = 1.0,
        noise: float = 0.0,
        step: float = 1.0,
        oldest_sample: Union[str, OldestSample] = OldestSample.FIRST,
        driver_smoothing: float = 0.0,
        burn_in: int = 50
    ) -> pd.DataFrame:
        """
        Generate a regular time series with columns time, driver, response.

        Parameters
        ----------
        n : int
            Number of rows
        driver_lag : float
            Lag of the driver effect, in time units
        endogenous_weight : float
            Weight of the previous response value (|w| < 1 keeps the
            series stationary)
        exogenous_weight : float
            Weight of the lagged driver
        noise : float
            Standard deviation of the response innovations
        step : float
            Time resolution
        oldest_sample : str or OldestSample
            'first' writes the oldest row first with time increasing;
            'last' writes the oldest row last with time read as age
        driver_smoothing : float
            Temporal smoothing of the driver (see ``generate_driver``)
        burn_in : int
            Initial rows simulated and discarded

        Returns
        -------
        data : pd.DataFrame
            Columns time, driver, response
        """
        if n < 2:
            raise ValidationError(f"Argument n must be at least 2, got {n}")
        if step <= 0:
            raise ValidationError(f"Argument step must be positive, got {step}")
        if driver_lag < 0:
            raise ValidationError(f"Argument driver_lag must be non-negative, got {driver_lag}")
        oldest_sample = OldestSample.parse(oldest_sample)

        lag_rows = int(np.rint(driver_lag / step))
        total = n + burn_in + lag_rows

        driver = self.generate_driver(total, smoothing=driver_smoothing)
        innovations = self.rng.normal(0.0, 1.0, total)

        response = np.zeros(total)
        for t in range(lag_rows, total):
            previous = response[t - 1] if t > 0 else 0.0
            response[t] = (
                endogenous_weight * previous
                + exogenous_weight * driver[t - lag_rows]
                + noise * innovations[t]
            )

        # Oldest first, burn-in removed
        driver = driver[-n:]
        response = response[-n:]
        time = np.arange(n) * float(step)

        if oldest_sample == OldestSample.LAST:
            driver = driver[::-1]
            response = response[::-1]

        return pd.DataFrame({
            'time': time,
            'driver': driver,
            'response': response,
        })
