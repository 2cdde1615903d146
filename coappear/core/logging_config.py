"""
Logging configuration.

All modules obtain their logger through ``get_logger(__name__)`` so that a
single call to ``setup_logging`` controls level and destinations for the
whole package.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "coappear"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[str, int] = "WARNING",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Console output goes to stderr so it never mixes with data written to
    stdout. Calling this again replaces previously installed handlers.

    Args:
        level: Logging level name or number
        log_file: Optional path of a log file (parent directories are created)

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package namespace."""
    if name != PACKAGE_LOGGER_NAME and not name.startswith(PACKAGE_LOGGER_NAME + "."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
