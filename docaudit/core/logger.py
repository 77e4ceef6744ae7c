"""Logging setup for the audit CLI.

This module provides a configured logger with console and rotating file
handlers. Library modules only call ``logging.getLogger(__name__)``; the CLI
calls ``get_logger`` once for the ``docaudit`` namespace so every module's
records flow through the same handlers.

Examples:
    >>> from docaudit.core.logger import get_logger
    >>> logger = get_logger("docaudit", log_level="DEBUG")
    >>> logger.info("Starting audit")
    2026-10-18 09:12:00,123 | INFO | docaudit | Starting audit
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Relative to the working directory
DEFAULT_LOG_FILE = Path(".cache/docaudit.log")

MAX_LOG_SIZE_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 3


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Path | None = None,
) -> logging.Logger:
    """Create and configure a logger with console and rotating file handlers.

    The console handler writes at ``log_level`` to stderr so JSON written to
    stdout stays clean. The file handler always captures DEBUG.

    Args:
        name: Logger name (usually the package name "docaudit")
        log_level: Logging level name. Defaults to INFO.
        log_file: Optional log file path. Defaults to .cache/docaudit.log.
            Parent directories are created automatically.

    Returns:
        Configured logging.Logger. Calling again reconfigures it.

    Raises:
        ValueError: If log_level is not a valid logging level name.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Allow reconfiguration between runs and in tests
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is None:
        log_file = DEFAULT_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_LOG_SIZE_BYTES,
        backupCount=BACKUP_COUNT,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
