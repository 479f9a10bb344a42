"""Data handling modules."""

from . import loaders
from . import generators
from . import validation

__all__ = ["loaders", "generators", "validation"]
