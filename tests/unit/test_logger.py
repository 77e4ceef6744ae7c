"""Unit tests for logger module."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from docaudit.core.logger import BACKUP_COUNT, MAX_LOG_SIZE_BYTES, get_logger


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [
        h
        for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
    ]


def _file_handlers(logger: logging.Logger) -> list[RotatingFileHandler]:
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


class TestLoggerCreation:
    """Test logger creation and handler setup."""

    def test_logger_creates_console_handler(self, tmp_path: Path) -> None:
        """Test that the console handler uses the requested level on stderr."""
        logger = get_logger("test_console", log_level="WARNING", log_file=tmp_path / "a.log")

        console = _console_handlers(logger)
        assert len(console) == 1
        assert console[0].level == logging.WARNING
        assert console[0].stream is sys.stderr

    def test_logger_creates_rotating_file_handler(self, tmp_path: Path) -> None:
        """Test that the file handler rotates and captures everything."""
        log_file = tmp_path / "audit.log"
        logger = get_logger("test_file", log_file=log_file)

        files = _file_handlers(logger)
        assert len(files) == 1
        assert files[0].maxBytes == MAX_LOG_SIZE_BYTES
        assert files[0].backupCount == BACKUP_COUNT
        assert files[0].level == logging.DEBUG
        assert files[0].baseFilename == str(log_file.resolve())

    def test_logger_creates_log_directory(self, tmp_path: Path) -> None:
        log_file = tmp_path / "nested" / "directory" / "audit.log"

        get_logger("test_dirs", log_file=log_file)

        assert log_file.parent.exists()

    def test_reconfiguring_replaces_handlers(self, tmp_path: Path) -> None:
        get_logger("test_reconfig", log_file=tmp_path / "a.log")
        logger = get_logger("test_reconfig", log_level="DEBUG", log_file=tmp_path / "a.log")

        assert len(logger.handlers) == 2
        assert _console_handlers(logger)[0].level == logging.DEBUG


class TestLoggerFormatting:
    """Test logger formatting configuration."""

    def test_logger_formats_human_readable(self, tmp_path: Path) -> None:
        logger = get_logger("test_format", log_file=tmp_path / "a.log")

        for handler in logger.handlers:
            format_str = handler.formatter._fmt
            assert "%(asctime)s" in format_str
            assert "%(levelname)s" in format_str
            assert "%(name)s" in format_str
            assert "%(message)s" in format_str

    def test_child_loggers_write_to_file(self, tmp_path: Path) -> None:
        """Test that module loggers under the namespace reach the file handler."""
        log_file = tmp_path / "audit.log"
        logger = get_logger("test_ns", log_level="ERROR", log_file=log_file)

        logging.getLogger("test_ns.services.crawler").debug("Seeded frontier")
        for handler in logger.handlers:
            handler.flush()

        assert "DEBUG | test_ns.services.crawler | Seeded frontier" in log_file.read_text()


def test_invalid_log_level_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid log level"):
        get_logger("test_invalid", log_level="VERBOSE", log_file=tmp_path / "a.log")
