"""
Tests for the shared logger setup.
"""
import logging

from src.live_sessions_backend.common.config import settings
from src.live_sessions_backend.common.logger import setup_logger


class TestSetupLogger:
    """Test class for setup_logger."""

    def teardown_method(self):
        setup_logger(settings.LOG_LEVEL)

    def test_level_comes_from_name(self):
        logger = setup_logger('debug')

        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logger('chatty')

        assert logger.level == logging.INFO

    def test_repeated_setup_keeps_one_handler(self):
        setup_logger('warning')
        logger = setup_logger('warning')

        assert len(logger.handlers) == 1
