"""Utility modules for configuration, logging, and I/O."""

from . import config
from . import logging
from . import io
from . import monitoring

__all__ = ["config", "logging", "io", "monitoring"]