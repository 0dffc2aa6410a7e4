"""
test_logging_config.py - Unit tests for logging_config.py
"""

import logging
import pytest

from option_protocol import setup_logging, get_logger
from option_protocol.logging_config import LOGGER_NAME


@pytest.fixture(autouse=True)
def restore_package_logger():
    """setup_logging mutates the package logger; put it back afterwards."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestSetupLogging:

    def test_level_and_console_handler(self):
        logger = setup_logging(log_level="debug")
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            setup_logging(log_level="loud")

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "option.log"
        logger = setup_logging(log_file=str(log_file), log_format="%(message)s")
        get_logger("option_protocol.contract").info("Created option")
        for handler in logger.handlers:
            handler.flush()
        assert log_file.read_text().strip() == "Created option"


class TestGetLogger:

    def test_package_logger(self):
        assert get_logger().name == LOGGER_NAME

    def test_module_names_kept(self):
        assert get_logger("option_protocol.contract").name == "option_protocol.contract"

    def test_foreign_names_nested(self):
        assert get_logger("scripts.demo").name == "option_protocol.scripts.demo"
