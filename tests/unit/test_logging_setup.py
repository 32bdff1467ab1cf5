"""Unit tests for centralized logging functionality."""

import logging
import tempfile
from pathlib import Path

from usagetrail.logging_setup import (
    ContextFormatter,
    get_logger,
    get_run_id,
    log_once,
    reset_logging,
    set_run_id,
    setup_logging,
)


class TestLoggingSetup:
    """Tests for logging setup functionality."""

    def setup_method(self):
        reset_logging()
        set_run_id(None)

    def teardown_method(self):
        reset_logging()

    def test_setup_logging_writes_run_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            logger = setup_logging(
                run_id="run-123", log_dir=Path(temp_dir), console=False
            )
            assert logger.name == "usagetrail"
            assert get_run_id() == "run-123"

            get_logger("sync").info("hello from sync")
            reset_logging()

            log_files = list(Path(temp_dir).glob("*.log"))
            assert len(log_files) == 1
            content = log_files[0].read_text(encoding="utf-8")
            assert "[run-123] [sync]" in content
            assert "hello from sync" in content

    def test_setup_is_idempotent(self):
        first = setup_logging(console=False, log_file=False)
        second = setup_logging(console=True, log_file=False)
        assert first is second
        assert first.handlers == []

    def test_get_logger_name(self):
        assert get_logger("cursor").name == "usagetrail.cursor"


class TestContextFormatter:
    """Formatter context fields."""

    def _record(self, name):
        return logging.LogRecord(name, logging.INFO, __file__, 1, "msg", None, None)

    def test_component_from_logger_name(self):
        set_run_id("abc")
        output = ContextFormatter().format(self._record("usagetrail.database"))
        assert "[abc] [database]" in output
        assert "INFO - msg" in output

    def test_foreign_logger_is_system(self):
        output = ContextFormatter().format(self._record("other.module"))
        assert "[system]" in output


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_log_once():
    logger = logging.getLogger("usagetrail.test_once")
    logger.setLevel(logging.DEBUG)
    handler = ListHandler()
    logger.addHandler(handler)
    try:
        log_once(logger, logging.INFO, "only once %s", "please")
        log_once(logger, logging.INFO, "only once %s", "please")
        log_once(logger, logging.INFO, "keyed", key="k1")
        log_once(logger, logging.INFO, "keyed again", key="k1")
    finally:
        logger.removeHandler(handler)

    messages = [r.getMessage() for r in handler.records]
    assert messages == ["only once please", "keyed"]
