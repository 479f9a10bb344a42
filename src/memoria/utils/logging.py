"""Logging setup for Memoria.

Every module logs through ``logging.getLogger(__name__)``, so all records sit
under the ``memoria`` logger. ``setup_logging`` attaches the handlers to that
logger only; applications embedding the package keep control of the root
logger.
"""

import functools
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

ROOT_LOGGER = 'memoria'

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _as_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper())
    return level


def setup_logging(
    level: Union[str, int] = logging.INFO,
    format_string: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    rotation: bool = False,
    max_bytes: int = 10*1024*1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the ``memoria`` logger.

    Handlers installed by a previous call are replaced, so calling this
    again (as the CLI does on every command) never duplicates output.

    Parameters
    ----------
    level : str or int
        Level name ('DEBUG', 'INFO', ...) or number
    format_string : str, optional
        Record format, ``DEFAULT_FORMAT`` when omitted
    log_file : str or Path, optional
        Also write records to this file; parent directories are created
    console : bool
        Write records to stderr, leaving stdout to command output
    rotation : bool
        Rotate ``log_file`` once it reaches ``max_bytes``
    max_bytes : int
        Size at which the log file rotates
    backup_count : int
        Rotated files kept

    Returns
    -------
    logger : logging.Logger
        The configured ``memoria`` logger
    """
    level = _as_level(level)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handlers = []
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        if rotation:
            from logging.handlers import RotatingFileHandler
            handlers.append(RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count))
        else:
            handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger ``memoria.<name>`` for code that is not a package module."""
    return logging.getLogger(f'{ROOT_LOGGER}.{name}')


def log_execution_time(func):
    """Log the wall time of every call to ``func`` at INFO (ERROR if it raises)."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        timing_logger = get_logger('timing')
        start = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            timing_logger.error(f"{func.__qualname__} failed after {time.time() - start:.3f}s: {e}")
            raise
        timing_logger.info(f"{func.__qualname__} executed in {time.time() - start:.3f}s")
        return result

    return wrapper


def configure_logging_from_config(config: Dict[str, Any]) -> logging.Logger:
    """
    Apply the ``logging`` section of a configuration.

    Recognized keys: ``level``, ``format``, ``console``, ``file`` and
    ``rotation`` (a mapping with ``enabled``, ``max_bytes`` and
    ``backup_count``). Missing keys keep the ``setup_logging`` defaults.
    """
    section = config.get('logging') or {}
    rotation = section.get('rotation') or {}

    return setup_logging(
        level=section.get('level', 'INFO'),
        format_string=section.get('format'),
        log_file=section.get('file'),
        console=section.get('console', True),
        rotation=rotation.get('enabled', False),
        max_bytes=rotation.get('max_bytes', 10*1024*1024),
        backup_count=rotation.get('backup_count', 5),
    )


def set_log_level(level: Union[str, int]) -> None:
    """Change the level of the ``memoria`` logger and of its handlers."""
    level = _as_level(level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
