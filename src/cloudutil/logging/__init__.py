"""
Structured logging module.

Provides JSON logging with context propagation.
"""

from cloudutil.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from cloudutil.logging.formatters import ConsoleFormatter, JSONFormatter
from cloudutil.logging.setup import (
    get_log_file_path,
    get_logger,
    setup_logging,
)
from cloudutil.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "get_log_file_path",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Utilities
    "log_with_context",
    "log_exception",
]
