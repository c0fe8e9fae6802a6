"""Logging utility functions."""

import logging
from typing import Any

from cloudutil.logging.formatters import api_error_fields

# Attributes every LogRecord already has; passing them in ``extra`` makes
# Logger.makeRecord raise KeyError.
_RESERVED_LOG_KEYS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

MAX_ERROR_MESSAGE_LENGTH = 500


def _truncate(text: str, limit: int = MAX_ERROR_MESSAGE_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log ``msg`` with structured fields attached as ``extra``.

    ``exc_info`` is passed through to the logger; reserved LogRecord
    attribute names are dropped.

    Example:
        log_with_context(
            logger, logging.DEBUG, "Classified API error",
            http_status=429, error_reason="rateLimitExceeded",
        )
    """
    exc_info = kwargs.pop("exc_info", None)
    extra = {key: value for key, value in kwargs.items() if key not in _RESERVED_LOG_KEYS}
    logger.log(level, msg, exc_info=exc_info, extra=extra)


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log a failed API call.

    Fills ``error_category``, ``http_status``, ``error_reason`` and
    ``error_domain`` from the exception when it carries them (ApiClientError
    hierarchy, aiohttp.ClientResponseError), without overriding fields given
    by the caller. ``error_message`` is the exception text, truncated.
    Reserved LogRecord attribute names are dropped, as in log_with_context.

    Example:
        try:
            await raise_for_api_error(response)
        except ApiResponseError as e:
            log_exception(logger, e, "Object read failed", resource=name)
    """
    for field, value in api_error_fields(exc).items():
        kwargs.setdefault(field, value)
    kwargs["error_message"] = _truncate(str(exc))
    extra = {key: value for key, value in kwargs.items() if key not in _RESERVED_LOG_KEYS}

    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=extra)
    else:
        logger.log(level, msg, extra=extra)
