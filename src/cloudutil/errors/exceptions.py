"""
Exceptions raised by cloud API clients.

Every exception carries an ErrorCategory so callers can decide between
retrying, refreshing credentials and giving up without inspecting HTTP
details themselves:

    ApiClientError            UNKNOWN
    ├── AuthError             AUTH        refresh credentials, then retry
    ├── TransientError        TRANSIENT   retry with backoff
    │   └── ThrottlingError               honour retry_after
    ├── PermanentError        PERMANENT   do not retry
    └── ApiResponseError      from the HTTP status (classify_http_status)
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from cloudutil.types import ErrorCategory

if TYPE_CHECKING:
    from cloudutil.errors.json_error import JsonError


def classify_http_status(status_code: int) -> ErrorCategory:
    """Map an HTTP status onto the category used for retry decisions."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # not a failure
    if status_code == 401:
        return ErrorCategory.AUTH
    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT  # request timeout, too many requests
    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT
    if status_code >= 500:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.UNKNOWN


class ApiClientError(Exception):
    """
    Root of the client exception hierarchy.

    Attributes:
        message: Human-readable description
        cause: Wrapped exception, also followed by chain traversal
        context: Structured fields for logging (http_status, resource, ...)
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = dict(context) if context else {}

    @property
    def is_retryable(self) -> bool:
        # UNKNOWN is retried; callers cap attempts
        return self.category is not ErrorCategory.PERMANENT

    @property
    def should_refresh_auth(self) -> bool:
        return self.category is ErrorCategory.AUTH

    def __copy__(self) -> ApiClientError:
        # Subclass __init__ signatures differ, so copy state instead of re-calling it
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.args = self.args
        clone.__cause__ = self.__cause__
        clone.__context__ = self.__context__
        clone.__suppress_context__ = self.__suppress_context__
        clone.__traceback__ = self.__traceback__
        return clone

    def with_context(self, context: dict) -> ApiClientError:
        """Return a copy of this error with ``context`` merged over its own."""
        clone = copy.copy(self)
        clone.context = {**self.context, **context}
        return clone

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message} | Caused by: {self.cause}"


class AuthError(ApiClientError):
    """Credentials rejected (401)."""

    category = ErrorCategory.AUTH


class TransientError(ApiClientError):
    """Failure expected to clear up on retry (5xx, dropped connection)."""

    category = ErrorCategory.TRANSIENT


class ThrottlingError(TransientError):
    """Rate limited; ``retry_after`` is the server's hint in seconds, if any."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.retry_after = retry_after


class PermanentError(ApiClientError):
    """Failure that retrying will not fix (403, 404, 409, 416, ...)."""

    category = ErrorCategory.PERMANENT


class ApiResponseError(ApiClientError):
    """
    Non-2xx response from a JSON API.

    This is the exception ApiErrorExtractor reads a directly attached
    structured error from.

    Attributes:
        status_code: HTTP status of the response
        details: Parsed JSON error envelope, None when the body had none
        content: Raw response body, None if it could not be read
    """

    def __init__(
        self,
        status_code: int,
        details: JsonError | None = None,
        content: str | None = None,
        message: str | None = None,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        if message is None:
            detail_message = details.message if details is not None else None
            message = f"{status_code} {detail_message}" if detail_message else f"HTTP {status_code}"
        super().__init__(message, cause, context)
        self.status_code = status_code
        self.details = details
        self.content = content
        self.category = classify_http_status(status_code)


__all__ = [
    "ApiClientError",
    "ApiResponseError",
    "AuthError",
    "PermanentError",
    "ThrottlingError",
    "TransientError",
    "classify_http_status",
]
