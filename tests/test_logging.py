"""Tests for memoria.utils.logging and memoria.utils.monitoring."""

import logging
import logging.handlers

import pytest

from memoria.utils.logging import (
    ROOT_LOGGER,
    configure_logging_from_config,
    get_logger,
    log_execution_time,
    set_log_level,
    setup_logging,
)
from memoria.utils.monitoring import PipelineMonitor


@pytest.fixture(autouse=True)
def reset_package_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestSetupLogging:

    def test_console_handler(self):
        logger = setup_logging(level="DEBUG")
        assert logger.name == "memoria"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "memoria.log"
        logger = setup_logging(log_file=log_file, console=False, format_string="%(message)s")
        get_logger("test").info("written to file")
        for handler in logger.handlers:
            handler.flush()
        assert log_file.read_text().strip() == "written to file"

    def test_from_config(self, tmp_path):
        log_file = tmp_path / "run.log"
        logger = configure_logging_from_config(
            {"logging": {"level": "WARNING", "console": False, "file": str(log_file),
                         "rotation": {"enabled": True, "max_bytes": 1024}}}
        )
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)

    def test_set_log_level(self):
        setup_logging(level="INFO")
        set_log_level("ERROR")
        logger = logging.getLogger(ROOT_LOGGER)
        assert logger.level == logging.ERROR
        assert all(h.level == logging.ERROR for h in logger.handlers)


class TestHelpers:

    def test_get_logger_namespace(self):
        assert get_logger("core").name == "memoria.core"

    def test_log_execution_time(self, caplog):
        @log_execution_time
        def double(x):
            return 2 * x

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER):
            assert double(4) == 8
        assert "double executed in" in caplog.text

    def test_log_execution_time_reraises(self, caplog):
        @log_execution_time
        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER):
            with pytest.raises(RuntimeError):
                explode()
        assert "failed after" in caplog.text


class TestPipelineMonitor:

    def test_tracks_durations_and_info(self):
        monitor = PipelineMonitor()
        monitor.start()
        with monitor.track_stage("lag"):
            pass
        monitor.record("lag", rows=10)
        metrics = monitor.get_metrics()
        assert metrics["total_time_s"] >= 0
        assert "lag" in metrics["stage_durations_s"]
        assert metrics["stages"] == {"lag": {"rows": 10}}
        assert metrics["errors"] == {}

    def test_counts_errors(self):
        monitor = PipelineMonitor()
        with pytest.raises(ValueError):
            with monitor.track_stage("memory"):
                raise ValueError("bad")
        assert monitor.get_metrics()["errors"] == {"memory": 1}
        assert monitor.get_metrics()["total_time_s"] is None
