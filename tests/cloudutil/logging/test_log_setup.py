"""Tests for logging setup and configuration."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import pytest

from cloudutil.logging.context import clear_log_context, get_log_context
from cloudutil.logging.formatters import ConsoleFormatter, JSONFormatter
from cloudutil.logging.setup import (
    DEFAULT_BACKUP_COUNT,
    NOISY_LOGGERS,
    get_log_file_path,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


class TestGetLogFilePath:

    def test_builds_dated_path(self):
        path = get_log_file_path(Path("logs"), "cloudutil")

        assert path.parts[0] == "logs"
        assert len(path.parent.name) == len("2026-01-05")
        assert path.name.startswith("cloudutil_")
        assert path.suffix == ".log"

    def test_includes_operation(self):
        path = get_log_file_path(Path("logs"), "cloudutil", operation="upload")
        assert path.name.startswith("cloudutil_upload_")


class TestSetupLogging:

    def test_console_and_file_handlers(self, tmp_path):
        setup_logging(name="test", log_dir=tmp_path)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert isinstance(handlers[0].formatter, ConsoleFormatter)
        assert isinstance(handlers[1], TimedRotatingFileHandler)
        assert isinstance(handlers[1].formatter, JSONFormatter)
        assert handlers[1].backupCount == DEFAULT_BACKUP_COUNT
        assert list(tmp_path.glob("*/test_*.log"))

    def test_plain_file_format(self, tmp_path):
        setup_logging(name="test", log_dir=tmp_path, json_format=False)

        file_handler = logging.getLogger().handlers[1]
        assert not isinstance(file_handler.formatter, JSONFormatter)

    def test_log_to_stdout_skips_file(self, tmp_path):
        setup_logging(name="test", log_dir=tmp_path, log_to_stdout=True, file_level=logging.DEBUG)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].level == logging.DEBUG
        assert not list(tmp_path.iterdir())

    def test_sets_operation_context(self, tmp_path):
        setup_logging(name="test", operation="download", log_dir=tmp_path)
        assert get_log_context()["operation"] == "download"

    def test_suppresses_noisy_loggers(self, tmp_path):
        setup_logging(name="test", log_dir=tmp_path, log_to_stdout=True)
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_returns_named_logger(self, tmp_path):
        logger = setup_logging(name="test", log_dir=tmp_path, log_to_stdout=True)
        assert logger.name == "test"


class TestGetLogger:

    def test_returns_logger(self):
        assert get_logger("cloudutil.errors") is logging.getLogger("cloudutil.errors")
