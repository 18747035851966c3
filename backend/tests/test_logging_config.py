"""
Tests for process-wide logging setup
"""
import logging
import pytest

from core.logging_config import setup_logging, QUIET_LOGGERS


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    names = QUIET_LOGGERS + ('offers', 'jobs')
    saved_levels = {name: logging.getLogger(name).level for name in names}
    saved_offers_handlers = list(logging.getLogger('offers').handlers)
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    for name, level in saved_levels.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger('offers').handlers[:] = saved_offers_handlers


class TestSetupLogging:

    def test_levels(self, restore_logging):
        setup_logging("debug", job_level="warning")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger('jobs').level == logging.WARNING
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_structured_logger_uses_root_handler(self, restore_logging):
        logging.getLogger('offers').addHandler(logging.NullHandler())

        setup_logging("info")

        assert logging.getLogger('offers').handlers == []
        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_falls_back_to_info(self, restore_logging):
        setup_logging("chatty")
        assert logging.getLogger().level == logging.INFO
