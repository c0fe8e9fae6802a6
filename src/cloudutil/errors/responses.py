"""
Build ApiResponseError from failed aiohttp responses.

Storage clients call raise_for_api_error() right after a request so that
every non-2xx response surfaces as an ApiResponseError with its JSON error
payload already parsed for ApiErrorExtractor.
"""

import logging

import aiohttp

from cloudutil.errors.exceptions import ApiResponseError
from cloudutil.errors.json_error import JsonError, parse_json_error
from cloudutil.logging.setup import get_logger
from cloudutil.logging.utilities import log_with_context

logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"


async def api_error_from_response(response: aiohttp.ClientResponse) -> ApiResponseError:
    """
    Read a failed response and build the matching ApiResponseError.

    The body is decoded as a JSON error envelope when the response declares
    a JSON content type. Otherwise, or when decoding fails, the details fall
    back to the status code and reason phrase.

    Args:
        response: aiohttp response with a non-2xx status (caller manages lifecycle)

    Returns:
        ApiResponseError carrying status_code, details and the raw body
    """
    content: str | None = None
    try:
        content = await response.text()
    except (aiohttp.ClientError, UnicodeDecodeError) as e:
        log_with_context(
            logger,
            logging.DEBUG,
            "Failed to read error response body",
            http_status=response.status,
            error_type=type(e).__name__,
            error_message=str(e),
        )

    details = None
    content_type = response.content_type or ""
    if content and JSON_MEDIA_TYPE in content_type:
        details = parse_json_error(content)

    if details is None:
        details = JsonError(
            code=response.status,
            message=response.reason or f"HTTP {response.status}",
        )

    context = {
        "http_status": response.status,
        "http_method": response.method,
        "http_url": str(response.url),
    }
    log_with_context(
        logger,
        logging.DEBUG,
        "API call failed",
        error_reason=details.reasons[0] if details.reasons else None,
        **context,
    )
    return ApiResponseError(
        status_code=response.status,
        details=details,
        content=content,
        context=context,
    )


async def raise_for_api_error(response: aiohttp.ClientResponse) -> None:
    """Raise ApiResponseError for a non-2xx response; no-op on success."""
    if 200 <= response.status < 300:
        return
    raise await api_error_from_response(response)
