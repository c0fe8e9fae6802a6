"""
API error extraction and exception hierarchy.

Provides:
- ApiErrorExtractor for classifying exceptions raised by JSON API calls
- JsonError / ErrorInfo models for the JSON error envelope
- Exception chain traversal helpers
- ApiClientError hierarchy for typed exceptions
"""

from cloudutil.errors.api_error_extractor import (
    # Constants
    GLOBAL_DOMAIN,
    RATE_LIMIT_DOMAINS,
    RATE_LIMITED_REASON_CODE,
    REASON_CODES,
    RESOURCE_NOT_READY_REASON_CODE,
    STATUS_CODE_RANGE_NOT_SATISFIABLE,
    USAGE_LIMITS_DOMAIN,
    # Classes
    ApiErrorExtractor,
)
from cloudutil.errors.chain import (
    add_suppressed,
    get_suppressed,
    iter_chain,
    primary_cause,
)
from cloudutil.errors.exceptions import (
    # Base classes
    ApiClientError,
    ApiResponseError,
    AuthError,
    PermanentError,
    ThrottlingError,
    TransientError,
    classify_http_status,
)
from cloudutil.errors.json_error import ErrorInfo, JsonError, parse_json_error
from cloudutil.errors.responses import api_error_from_response, raise_for_api_error

__all__ = [
    # Extractor
    "ApiErrorExtractor",
    "GLOBAL_DOMAIN",
    "RATE_LIMIT_DOMAINS",
    "RATE_LIMITED_REASON_CODE",
    "REASON_CODES",
    "RESOURCE_NOT_READY_REASON_CODE",
    "STATUS_CODE_RANGE_NOT_SATISFIABLE",
    "USAGE_LIMITS_DOMAIN",
    # JSON error envelope
    "ErrorInfo",
    "JsonError",
    "parse_json_error",
    # Chain traversal
    "add_suppressed",
    "get_suppressed",
    "iter_chain",
    "primary_cause",
    # Exceptions
    "ApiClientError",
    "ApiResponseError",
    "AuthError",
    "PermanentError",
    "ThrottlingError",
    "TransientError",
    "classify_http_status",
    # aiohttp responses
    "api_error_from_response",
    "raise_for_api_error",
]
