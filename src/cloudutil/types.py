"""
Shared types for error classification.

ErrorCategory is the coarse answer storage clients act on; ErrorClassifier
is the seam they depend on instead of ApiErrorExtractor itself.
"""

from enum import Enum
from typing import Protocol


class ErrorCategory(Enum):
    """
    How a caller should react to a failed API call.

    TRANSIENT: retry with backoff (rate limited, 5xx, socket failures)
    AUTH: refresh credentials before retrying (401)
    PERMANENT: give up (403, 404, 409, 416 and other 4xx)
    UNKNOWN: nothing recognizable in the exception chain
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class ErrorClassifier(Protocol):
    """Anything that can sort exceptions into ErrorCategory values."""

    def classify_error(self, error: BaseException) -> ErrorCategory:
        """Return the category for ``error`` and its cause chain."""
        ...

    def is_transient(self, error: BaseException) -> bool:
        """True if retrying the failed call may succeed."""
        ...


__all__ = [
    "ErrorCategory",
    "ErrorClassifier",
]
