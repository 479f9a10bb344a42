"""
Memoria: quantifying ecological memory in environmental time series.

Measures how much the current state of a biotic response depends on its own
past (endogenous memory), on past values of its drivers (exogenous memory)
and on their present values (concurrent effect), using lagged design
matrices, repeated Random Forest fits and a random benchmark.
"""

__version__ = "0.1.0"
__author__ = "Memoria Development Team"

from . import core
from . import data
from . import analysis
from . import utils

from .core import lag_time_series, generate_random_benchmark, compute_memory
from .analysis import extract_memory_features, MemoryPipeline
from .data.generators import SyntheticMemoryGenerator
from .exceptions import (
    MemoriaError,
    ValidationError,
    LagResolutionError,
    DataError,
    ComputationError,
)

__all__ = [
    "core",
    "data",
    "analysis",
    "utils",
    "lag_time_series",
    "generate_random_benchmark",
    "compute_memory",
    "extract_memory_features",
    "MemoryPipeline",
    "SyntheticMemoryGenerator",
    "MemoriaError",
    "ValidationError",
    "LagResolutionError",
    "DataError",
    "ComputationError",
]
