"""Logging setup and configuration."""

import io
import logging
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from cloudutil.logging.context import set_log_context
from cloudutil.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_LOG_DIR = Path("logs")
DEFAULT_ROTATION_WHEN = "midnight"
DEFAULT_ROTATION_INTERVAL = 1
DEFAULT_BACKUP_COUNT = 7
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

PLAIN_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# HTTP client internals that drown out API error logs at DEBUG
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "urllib3",
    "asyncio",
]


def get_log_file_path(log_dir: Path, name: str, operation: str | None = None) -> Path:
    """
    Dated log file path, one folder per day.

    logs/2026-01-05/cloudutil_0105_1430.log
    logs/2026-01-05/cloudutil_upload_0105_1430.log
    """
    now = datetime.now()
    stem = "_".join(filter(None, [name, operation, now.strftime("%m%d_%H%M")]))
    return log_dir / now.strftime("%Y-%m-%d") / f"{stem}.log"


def _console_handler(level: int) -> logging.StreamHandler:
    stream = sys.stdout
    if sys.platform == "win32":
        # cp1252 consoles cannot encode every API error message
        stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter())
    return handler


def _file_handler(
    log_file: Path,
    level: int,
    json_format: bool,
    rotation_when: str,
    rotation_interval: int,
    backup_count: int,
) -> TimedRotatingFileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        log_file,
        when=rotation_when,
        interval=rotation_interval,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FILE_FORMAT))
    return handler


def setup_logging(
    name: str = "cloudutil",
    operation: str | None = None,
    log_dir: Path | None = None,
    json_format: bool = True,
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    file_level: int = DEFAULT_FILE_LEVEL,
    rotation_when: str = DEFAULT_ROTATION_WHEN,
    rotation_interval: int = DEFAULT_ROTATION_INTERVAL,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
    log_to_stdout: bool = False,
) -> logging.Logger:
    """
    Configure the root logger for an application embedding cloudutil.

    Replaces any existing root handlers with a console handler and, unless
    ``log_to_stdout`` is set, a time-rotated file handler writing JSON lines.

    Args:
        name: Logger name and log file prefix
        operation: Operation name for log context and the log file name
        log_dir: Directory for log files (default: ./logs)
        json_format: Use JSONFormatter for the file handler (default: True)
        console_level: Console handler level (default: INFO)
        file_level: File handler level (default: DEBUG)
        rotation_when: TimedRotatingFileHandler ``when`` (default: midnight)
        rotation_interval: TimedRotatingFileHandler ``interval`` (default: 1)
        backup_count: Rotated files to keep (default: 7)
        suppress_noisy: Raise NOISY_LOGGERS to WARNING
        log_to_stdout: Console only, at ``file_level``; for containers whose
            logs are collected from stdout

    Returns:
        Logger named ``name``
    """
    if operation:
        set_log_context(operation=operation)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter
    root_logger.handlers.clear()

    if log_to_stdout:
        root_logger.addHandler(_console_handler(file_level))
    else:
        root_logger.addHandler(_console_handler(console_level))
        root_logger.addHandler(
            _file_handler(
                get_log_file_path(log_dir or DEFAULT_LOG_DIR, name, operation),
                file_level,
                json_format,
                rotation_when,
                rotation_interval,
                backup_count,
            )
        )

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug("Logging initialized", extra={"operation": operation} if operation else None)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)
