"""Tests for the queue-backed logging setup."""

import logging

import pytest

from matilda_scribe.core.logging import setup_logging, shutdown_logging


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("MATILDA_LOG_DIR", str(tmp_path))
    monkeypatch.delenv("MATILDA_SCRIBE_LOG_FILE", raising=False)
    monkeypatch.delenv("MATILDA_SCRIBE_LOG_LEVEL", raising=False)
    yield tmp_path
    shutdown_logging()


class TestSetupLogging:
    def test_child_records_reach_log_file(self, log_dir):
        setup_logging("scribe_test", log_level="DEBUG", include_console=False)

        logging.getLogger("scribe_test.child").debug("session confirmed")
        shutdown_logging()

        assert "session confirmed" in (log_dir / "matilda-scribe.log").read_text()

    def test_reconfiguring_replaces_handlers(self, log_dir):
        setup_logging("scribe_test", include_console=False)
        logger = setup_logging("scribe_test", log_level="WARNING", include_console=False)

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert not logger.propagate

    def test_no_sinks_installs_null_handler(self, log_dir):
        logger = setup_logging("scribe_test", include_console=False, include_file=False)

        assert [type(handler) for handler in logger.handlers] == [logging.NullHandler]
        assert not (log_dir / "matilda-scribe.log").exists()
