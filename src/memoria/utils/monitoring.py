"""Pipeline monitoring utilities.

Times analysis stages, counts their failures and keeps the small facts each
stage reports about itself (rows, repetitions, ...).
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Dict, Any, Optional


class PipelineMonitor:
    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._durations: Dict[str, float] = {}
        self._errors: Dict[str, int] = {}
        self._info: Dict[str, Dict[str, Any]] = {}

    def start(self) -> None:
        self._start = time.time()

    @contextmanager
    def track_stage(self, name: str):
        t0 = time.time()
        try:
            yield
        except Exception:
            self._errors[name] = self._errors.get(name, 0) + 1
            raise
        finally:
            self._durations[name] = self._durations.get(name, 0.0) + (time.time() - t0)

    def record(self, name: str, **info: Any) -> None:
        """Attach facts to a stage."""
        self._info.setdefault(name, {}).update(info)

    def get_metrics(self) -> Dict[str, Any]:
        total = None
        if self._start is not None:
            total = time.time() - self._start
        return {
            'total_time_s': total,
            'stage_durations_s': dict(self._durations),
            'errors': dict(self._errors),
            'stages': {name: dict(info) for name, info in self._info.items()},
        }

    def log_summary(self, logger: logging.Logger) -> None:
        for name, duration in self._durations.items():
            status = 'failed' if name in self._errors else 'ok'
            logger.debug(f"Stage '{name}' {status} in {duration:.3f}s {self._info.get(name, {})}")
