"""
Error extraction for JSON API client failures.

ApiErrorExtractor answers questions about an exception raised by an API call
("was it a 404?", "were we rate limited?", "did the socket drop?") by walking
the exception chain for either a structured JSON error payload or a
lower-level transport exception.

Structured errors are found, nearest first, as:
- the parsed payload attached to an ApiResponseError
- the status and message of an aiohttp.ClientResponseError
- JSON error text embedded in the message of any other exception

Classification never raises; an unrelated exception simply answers False.
"""

import logging
import socket
import ssl
from collections.abc import Iterable

import aiohttp

from cloudutil.errors.chain import (
    DEFAULT_MAX_CHAIN_DEPTH,
    find_in_chain,
    get_suppressed,
    iter_chain,
    primary_cause,
)
from cloudutil.errors.exceptions import (
    ApiClientError,
    ApiResponseError,
    AuthError,
    PermanentError,
    ThrottlingError,
    TransientError,
    classify_http_status,
)
from cloudutil.errors.json_error import ErrorInfo, JsonError, parse_json_error
from cloudutil.logging.setup import get_logger
from cloudutil.logging.utilities import log_with_context
from cloudutil.types import ErrorCategory

logger = get_logger(__name__)

# HTTP status codes
STATUS_CODE_OK = 200
STATUS_CODE_BAD_REQUEST = 400
STATUS_CODE_UNAUTHORIZED = 401
STATUS_CODE_FORBIDDEN = 403
STATUS_CODE_NOT_FOUND = 404
STATUS_CODE_CONFLICT = 409
STATUS_CODE_PRECONDITION_FAILED = 412
STATUS_CODE_RANGE_NOT_SATISFIABLE = 416
STATUS_CODE_TOO_MANY_REQUESTS = 429
STATUS_CODE_SERVER_ERROR = 500

# Reason codes carried in the "errors" entries of a JSON error
RATE_LIMITED_REASON_CODE = "rateLimitExceeded"
USER_RATE_LIMITED_REASON_CODE = "userRateLimitExceeded"
RESOURCE_NOT_READY_REASON_CODE = "resourceNotReady"
QUOTA_EXCEEDED_REASON_CODE = "quotaExceeded"
DAILY_LIMIT_EXCEEDED_REASON_CODE = "dailyLimitExceeded"
FIELD_SIZE_TOO_LARGE_REASON_CODE = "fieldSizeTooLarge"
USER_PROJECT_MISSING_REASON_CODE = "required"

USER_PROJECT_MISSING_MESSAGE = "user project"

# Domains qualifying a rate limit reason
USAGE_LIMITS_DOMAIN = "usageLimits"
GLOBAL_DOMAIN = "global"  # BigQuery reports quota errors here

# Reason code -> category consulted by the reason-based predicates
REASON_CODES = {
    RATE_LIMITED_REASON_CODE: "rate_limited",
    USER_RATE_LIMITED_REASON_CODE: "rate_limited",
    RESOURCE_NOT_READY_REASON_CODE: "resource_not_ready",
    QUOTA_EXCEEDED_REASON_CODE: "quota_exceeded",
    DAILY_LIMIT_EXCEEDED_REASON_CODE: "quota_exceeded",
    FIELD_SIZE_TOO_LARGE_REASON_CODE: "field_size_too_large",
    USER_PROJECT_MISSING_REASON_CODE: "user_project_missing",
}

# Only these domains make a rate limit reason count as rate limiting.
# Other services reuse "rateLimitExceeded" for unrelated conditions.
RATE_LIMIT_DOMAINS = frozenset({USAGE_LIMITS_DOMAIN, GLOBAL_DOMAIN})

READ_TIMED_OUT_MESSAGE = "Read timed out"

# Generic I/O failures: OS/socket errors (timeouts, resets, SSL), premature
# end of stream, and aiohttp transport errors
IO_ERROR_TYPES = (OSError, EOFError, aiohttp.ClientError)

# Socket-level failures, a subset of IO_ERROR_TYPES
SOCKET_ERROR_TYPES = (
    ConnectionError,
    TimeoutError,
    socket.gaierror,
    socket.herror,
    ssl.SSLEOFError,
    aiohttp.ClientConnectionError,
)


def reasons_for(category: str) -> frozenset[str]:
    """Return every reason code mapped to ``category`` in REASON_CODES."""
    return frozenset(reason for reason, cat in REASON_CODES.items() if cat == category)


def _message_of(exc: BaseException) -> str:
    """Text of ``exc``; falls back to the type name when ``__str__`` itself fails."""
    try:
        message = getattr(exc, "message", None)
        if isinstance(message, str):
            return message
        return str(exc)
    except Exception:
        return type(exc).__name__


class ApiErrorExtractor:
    """
    Classifies exceptions raised by JSON API calls.

    Stateless apart from its lookup tables, so one instance can be shared by
    every client and thread. Implements the ErrorClassifier protocol.

    Args:
        rate_limit_reasons: Reason codes that signal rate limiting
        rate_limit_domains: Domains a rate limit reason must come from
        resource_not_ready_reasons: Reason codes for "resource not ready"
        quota_reasons: Reason codes for exhausted quotas
        max_chain_depth: Maximum number of exceptions visited per chain
    """

    def __init__(
        self,
        rate_limit_reasons: Iterable[str] | None = None,
        rate_limit_domains: Iterable[str] | None = None,
        resource_not_ready_reasons: Iterable[str] | None = None,
        quota_reasons: Iterable[str] | None = None,
        max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    ):
        self.rate_limit_reasons = frozenset(
            rate_limit_reasons if rate_limit_reasons is not None else reasons_for("rate_limited")
        )
        self.rate_limit_domains = frozenset(
            rate_limit_domains if rate_limit_domains is not None else RATE_LIMIT_DOMAINS
        )
        self.resource_not_ready_reasons = frozenset(
            resource_not_ready_reasons
            if resource_not_ready_reasons is not None
            else reasons_for("resource_not_ready")
        )
        self.quota_reasons = frozenset(
            quota_reasons if quota_reasons is not None else reasons_for("quota_exceeded")
        )
        self.max_chain_depth = max_chain_depth

    @classmethod
    def from_config(cls, config) -> "ApiErrorExtractor":
        """Build an extractor from an ExtractorConfig."""
        return cls(
            rate_limit_reasons=config.rate_limit_reasons,
            rate_limit_domains=config.rate_limit_domains,
            resource_not_ready_reasons=config.resource_not_ready_reasons,
            quota_reasons=config.quota_reasons,
            max_chain_depth=config.max_chain_depth,
        )

    # =========================================================================
    # Structured error lookup
    # =========================================================================

    @staticmethod
    def _json_error_of(exc: BaseException) -> JsonError | None:
        """Structured error carried by a single exception, without walking causes."""
        if isinstance(exc, ApiResponseError):
            if exc.details is not None:
                return exc.details
            return JsonError(code=exc.status_code, message=exc.message)

        if isinstance(exc, aiohttp.ClientResponseError):
            return JsonError(code=exc.status, message=exc.message or None)

        return parse_json_error(_message_of(exc))

    def _json_error_in_chain(self, exc: BaseException) -> JsonError | None:
        for node in iter_chain(exc, self.max_chain_depth):
            json_error = self._json_error_of(node)
            if json_error is not None:
                return json_error
        return None

    def _nearest_json_error(self, error: BaseException | JsonError | None) -> JsonError | None:
        if isinstance(error, JsonError):
            return error
        if not isinstance(error, BaseException):
            return None
        return self._json_error_in_chain(error)

    def unwrap_json_error(self, error: BaseException | JsonError | None) -> JsonError | None:
        """
        Locate the nearest structured JSON error for ``error``.

        Searches the primary cause chain first. When that yields nothing, the
        suppressed companions of ``error`` are searched in order, each with
        its own primary cause chain.

        Returns:
            JsonError, or None if no structured error exists anywhere
        """
        json_error = self._nearest_json_error(error)
        if json_error is not None or not isinstance(error, BaseException):
            return json_error

        companions = get_suppressed(error)
        for companion in companions:
            json_error = self._json_error_in_chain(companion)
            if json_error is not None:
                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Recovered JSON error from suppressed exception",
                    http_status=json_error.code,
                    error_type=type(companion).__name__,
                    suppressed_count=len(companions),
                )
                return json_error
        return None

    def _error_details(self, error: BaseException | JsonError | None) -> tuple[ErrorInfo, ...]:
        json_error = self._nearest_json_error(error)
        if json_error is None or self._is_success(json_error.code):
            return ()
        return json_error.errors

    @staticmethod
    def _is_success(code: int) -> bool:
        return STATUS_CODE_OK <= code < 300

    def _has_code(self, error: BaseException | JsonError | None, code: int) -> bool:
        json_error = self._nearest_json_error(error)
        return json_error is not None and json_error.code == code

    def _has_reason(self, error: BaseException | JsonError | None, reasons: frozenset[str]) -> bool:
        return any(info.reason in reasons for info in self._error_details(error))

    # =========================================================================
    # Status code predicates
    # =========================================================================

    def access_denied(self, error: BaseException | JsonError | None) -> bool:
        """True if the API rejected the call with 403 Forbidden."""
        return self._has_code(error, STATUS_CODE_FORBIDDEN)

    def item_already_exists(self, error: BaseException | JsonError | None) -> bool:
        """True if the API reported a 409 Conflict (object already exists)."""
        return self._has_code(error, STATUS_CODE_CONFLICT)

    def item_not_found(self, error: BaseException | JsonError | None) -> bool:
        """True if the API reported 404 Not Found. Also accepts a JsonError."""
        return self._has_code(error, STATUS_CODE_NOT_FOUND)

    def range_not_satisfiable(self, error: BaseException | JsonError | None) -> bool:
        """True if a ranged read started past the end of the object (416)."""
        return self._has_code(error, STATUS_CODE_RANGE_NOT_SATISFIABLE)

    def bad_request(self, error: BaseException | JsonError | None) -> bool:
        return self._has_code(error, STATUS_CODE_BAD_REQUEST)

    def unauthorized(self, error: BaseException | JsonError | None) -> bool:
        return self._has_code(error, STATUS_CODE_UNAUTHORIZED)

    def precondition_not_met(self, error: BaseException | JsonError | None) -> bool:
        """True for 412, e.g. a generation match condition that failed."""
        return self._has_code(error, STATUS_CODE_PRECONDITION_FAILED)

    def client_error(self, error: BaseException | JsonError | None) -> bool:
        json_error = self._nearest_json_error(error)
        return json_error is not None and 400 <= json_error.code < 500

    def internal_server_error(self, error: BaseException | JsonError | None) -> bool:
        json_error = self._nearest_json_error(error)
        return json_error is not None and json_error.code >= STATUS_CODE_SERVER_ERROR

    # =========================================================================
    # Reason code predicates
    # =========================================================================

    def rate_limited(self, error: BaseException | JsonError | None) -> bool:
        """
        True if the call was rejected for exceeding a rate limit.

        Requires status 429 and at least one error entry whose reason is a
        rate limit reason AND whose domain is in the rate limit domain
        allow-list. Status 429 alone is not enough.
        """
        json_error = self._nearest_json_error(error)
        if json_error is None or json_error.code != STATUS_CODE_TOO_MANY_REQUESTS:
            return False
        return any(
            info.reason in self.rate_limit_reasons and info.domain in self.rate_limit_domains
            for info in json_error.errors
        )

    def resource_not_ready(self, error: BaseException | JsonError | None) -> bool:
        """True if any error entry reports the resource is not ready yet."""
        return self._has_reason(error, self.resource_not_ready_reasons)

    def quota_exceeded(self, error: BaseException | JsonError | None) -> bool:
        return self._has_reason(error, self.quota_reasons)

    def field_size_too_large(self, error: BaseException | JsonError | None) -> bool:
        return self._has_reason(error, reasons_for("field_size_too_large"))

    def user_project_missing(self, error: BaseException | JsonError | None) -> bool:
        """True for a 400 on a requester-pays bucket called without a user project."""
        if not self.bad_request(error):
            return False
        return any(
            info.reason in reasons_for("user_project_missing")
            and info.message is not None
            and USER_PROJECT_MISSING_MESSAGE in info.message.lower()
            for info in self._error_details(error)
        )

    # =========================================================================
    # Transport predicates
    # =========================================================================

    def io_error(self, error: BaseException | None) -> bool:
        """
        True if the chain contains a generic I/O failure.

        HTTP error responses are not I/O failures even where the client
        library models them as one (aiohttp.ClientResponseError).
        """
        return (
            find_in_chain(
                error,
                lambda node: isinstance(node, IO_ERROR_TYPES)
                and not isinstance(node, aiohttp.ClientResponseError),
                self.max_chain_depth,
            )
            is not None
        )

    def _is_socket_error(self, node: BaseException) -> bool:
        if isinstance(node, SOCKET_ERROR_TYPES):
            return True
        # An SSL failure is a socket failure only when the connection itself broke
        if isinstance(node, ssl.SSLError):
            cause = primary_cause(node)
            return cause is not None and self.io_error(cause)
        return False

    def socket_error(self, error: BaseException | None) -> bool:
        """True if the chain contains a socket-level or TLS transport failure."""
        return find_in_chain(error, self._is_socket_error, self.max_chain_depth) is not None

    def read_timed_out(self, error: BaseException | None) -> bool:
        """
        True only for a socket timeout whose message is exactly "Read timed out".

        Narrower than socket_error: connect timeouts and other timeout
        messages do not match. Causes are not inspected.
        """
        if not isinstance(error, TimeoutError):
            return False
        message = error.strerror if error.strerror else str(error)
        return message == READ_TIMED_OUT_MESSAGE

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_error_message(self, error: BaseException | JsonError) -> str:
        """
        Return the top-level message of the nearest JSON error.

        Falls back to the exception's own message when no JSON error (or no
        top-level message) is present.
        """
        json_error = self.unwrap_json_error(error)
        if json_error is not None and json_error.message:
            return json_error.message
        if isinstance(error, JsonError):
            return ""
        return _message_of(error)

    def get_error_reason(self, error: BaseException | JsonError | None) -> str | None:
        """Return the reason of the first error entry, or None."""
        json_error = self.unwrap_json_error(error)
        if json_error is None:
            return None
        reasons = json_error.reasons
        return reasons[0] if reasons else None

    def to_user_presentable_message(
        self,
        error: BaseException | JsonError,
        action: str | None = None,
    ) -> str:
        """
        Build a message suitable for end users.

        Client errors (4xx) carry the API's own message; anything else is
        reported as an internal server error so server internals do not leak.
        """
        message = "Internal server error"
        if self.client_error(error):
            message = self.get_error_message(error)

        if action is None:
            return f"Encountered an error: {message}"
        return f"Encountered an error while {action}: {message}"

    # =========================================================================
    # ErrorClassifier protocol
    # =========================================================================

    def classify_error(self, error: BaseException) -> ErrorCategory:
        """Map the exception chain onto an ErrorCategory for retry decisions."""
        if self.rate_limited(error) or self.resource_not_ready(error):
            return ErrorCategory.TRANSIENT

        json_error = self._nearest_json_error(error)
        if json_error is not None:
            category = classify_http_status(json_error.code)
            if category != ErrorCategory.UNKNOWN:
                return category

        if self.io_error(error):
            return ErrorCategory.TRANSIENT

        return ErrorCategory.UNKNOWN

    def is_transient(self, error: BaseException) -> bool:
        return self.classify_error(error) == ErrorCategory.TRANSIENT

    def to_client_error(
        self,
        error: BaseException,
        context: dict | None = None,
    ) -> ApiClientError:
        """
        Wrap an exception in the matching ApiClientError subclass.

        ApiClientError instances are returned as-is, or as a copy with
        ``context`` merged in; ``error`` itself is never modified.
        """
        if isinstance(error, ApiClientError):
            return error.with_context(context) if context else error

        ctx = dict(context or {})
        json_error = self._nearest_json_error(error)
        if json_error is not None:
            ctx["http_status"] = json_error.code
            if json_error.reasons:
                ctx["error_reason"] = json_error.reasons[0]

        category = self.classify_error(error)
        ctx["error_category"] = category.value
        message = self.get_error_message(error)

        log_with_context(
            logger,
            logging.DEBUG,
            "Classified API error",
            **{"error_type": type(error).__name__, **ctx},
        )

        if self.rate_limited(error):
            return ThrottlingError(message, cause=error, context=ctx)
        if category == ErrorCategory.AUTH:
            return AuthError(message, cause=error, context=ctx)
        if category == ErrorCategory.TRANSIENT:
            return TransientError(message, cause=error, context=ctx)
        if category == ErrorCategory.PERMANENT:
            return PermanentError(message, cause=error, context=ctx)
        return ApiClientError(message, cause=error, context=ctx)


__all__ = [
    "ApiErrorExtractor",
    "GLOBAL_DOMAIN",
    "RATE_LIMITED_REASON_CODE",
    "RATE_LIMIT_DOMAINS",
    "REASON_CODES",
    "RESOURCE_NOT_READY_REASON_CODE",
    "STATUS_CODE_RANGE_NOT_SATISFIABLE",
    "USAGE_LIMITS_DOMAIN",
    "reasons_for",
]
