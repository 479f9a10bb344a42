"""Core computational modules for memory quantification."""

from . import lags
from . import benchmark
from . import oracle
from . import memory

# Convenience exports for common functions
from .lags import lag_time_series, lags_to_rows, format_lag
from .benchmark import generate_random_benchmark
from .oracle import RandomForestImportanceOracle
from .memory import MemoryEstimator, compute_memory, label_trend, pseudo_r2

__all__ = [
    # Modules
    "lags",
    "benchmark",
    "oracle",
    "memory",
    # Lag transformer
    "lag_time_series",
    "lags_to_rows",
    "format_lag",
    # Benchmark
    "generate_random_benchmark",
    # Estimation
    "RandomForestImportanceOracle",
    "MemoryEstimator",
    "compute_memory",
    "label_trend",
    "pseudo_r2",
]
