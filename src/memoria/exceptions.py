"""Exception hierarchy for Memoria.

Every error raised by the core aborts the current call. Validation and data
errors subclass ``ValueError`` and computation errors subclass ``RuntimeError``
so generic callers can still catch them by builtin type.
"""


class MemoriaError(Exception):
    """Base class for all Memoria errors."""


class ValidationError(MemoriaError, ValueError):
    """Invalid argument shape, type or value detected before any computation."""


class LagResolutionError(ValidationError):
    """Lags cannot be mapped to distinct row offsets at the data's time resolution."""


class DataError(MemoriaError, ValueError):
    """Requested column or time range is absent from the supplied data."""


class ComputationError(MemoriaError, RuntimeError):
    """Model fitting cannot proceed on the prepared data."""
