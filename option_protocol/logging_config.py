"""Logging for the option protocol.

OptionContract logs each transition (create, funding, sale, expiry) at INFO
and each batch the ledger refuses at WARNING, under the "option_protocol"
logger. Importing the package configures nothing; a host application or
script calls setup_logging() once.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOGGER_NAME = "option_protocol"

DEFAULT_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """Send option protocol logs to stdout, and to log_file if given.

    Calling it again replaces the handlers of the previous call. The package
    logger stops propagating so transition logs are not printed twice by a
    host that configured the root logger.

    Example:
        >>> setup_logging(log_level="DEBUG", log_file="logs/options.log")

    Raises:
        ValueError: If log_level is not a logging level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {log_level!r}")

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode='a'))

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger below "option_protocol"; module __name__ values are used as-is."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
