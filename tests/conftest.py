"""Shared test fixtures for the Memoria test suite."""

import numpy as np
import pandas as pd
import pytest

from memoria.core.lags import lag_time_series
from memoria.data.generators import SyntheticMemoryGenerator


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: multi-stage runs (lag, fit, features)")


# ---------------------------------------------------------------------------
# Time series tables
# ---------------------------------------------------------------------------

@pytest.fixture
def simple_series():
    """20 rows with integer-valued columns, easy to check shifts by eye."""
    n = 20
    return pd.DataFrame({
        "time": np.arange(n, dtype=float),
        "driver": np.arange(n, dtype=float) * 10,
        "response": np.arange(n, dtype=float) + 100,
    })


@pytest.fixture
def random_series():
    """200 rows of independent Gaussian driver and response."""
    rng = np.random.RandomState(42)
    n = 200
    return pd.DataFrame({
        "time": np.arange(n, dtype=float),
        "driver": rng.randn(n),
        "response": rng.randn(n),
    })


@pytest.fixture
def lag2_series():
    """Noise-free series where response_t equals driver_{t-2}.

    The driver is white noise so the lagged response carries no signal and
    the exogenous effect peaks exactly at lag 2.
    """
    return SyntheticMemoryGenerator(seed=42).generate(
        n=300,
        driver_lag=2,
        endogenous_weight=0.0,
        exogenous_weight=1.0,
        noise=0.0,
        step=1.0,
        driver_smoothing=0.0,
    )


@pytest.fixture
def palaeo_series():
    """Series ordered by increasing age (oldest sample last), step 20 years."""
    return SyntheticMemoryGenerator(seed=7).generate(
        n=120,
        driver_lag=40,
        endogenous_weight=0.5,
        exogenous_weight=1.0,
        noise=0.1,
        step=20.0,
        oldest_sample="last",
        driver_smoothing=1.0,
    )


# ---------------------------------------------------------------------------
# Lagged tables
# ---------------------------------------------------------------------------

@pytest.fixture
def lagged_random(random_series):
    return lag_time_series(
        random_series, response="response", drivers="driver", time="time", lags=[0, 1, 2, 3]
    )


@pytest.fixture
def lagged_lag2(lag2_series):
    return lag_time_series(
        lag2_series, response="response", drivers="driver", time="time", lags=[0, 1, 2, 3]
    )


# ---------------------------------------------------------------------------
# Memory tables
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_table():
    """Hand-built memory table with a benchmark of 1.0 at every lag."""
    rows = []
    endogenous = {0: 10.0, 1: 5.0, 2: 2.0, 3: 0.5}
    exogenous = {0: 3.0, 1: 4.0, 2: 6.0, 3: 1.0}
    for lag, value in endogenous.items():
        rows.append(("response", float(lag), value))
    for lag, value in exogenous.items():
        rows.append(("driver", float(lag), value))
    for lag in range(4):
        rows.append(("random", float(lag), 1.0))
    frame = pd.DataFrame(rows, columns=["variable", "lag", "median"])
    frame["sd"] = 0.1
    frame["p05"] = frame["median"] - 0.2
    frame["p95"] = frame["median"] + 0.2
    return frame


# ---------------------------------------------------------------------------
# Pipeline configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def fast_pipeline_config():
    """Small forests and few repetitions so integration tests stay quick."""
    return {
        "lags": {
            "response": "response",
            "drivers": ["driver"],
            "time": "time",
            "lags": [0, 1, 2, 3],
        },
        "memory": {
            "random_mode": "autocorrelated",
            "repetitions": 3,
            "n_estimators": 30,
            "n_repeats": 3,
        },
        "features": {"enabled": True},
        "diagnostics": {"vif": True},
    }
