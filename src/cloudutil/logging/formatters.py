"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from cloudutil.logging.context import get_log_context
from cloudutil.utils.json_serializers import json_serializer

CONTEXT_FIELDS = ("operation", "resource", "trace_id")

# Query parameters of signed and authenticated storage URLs
SENSITIVE_PARAMS_PATTERN = re.compile(
    r"([?&])(x-goog-signature|x-goog-credential|signature|sig|access_token|token|key|upload_id)=[^&\s]*",
    re.IGNORECASE,
)


def redact_url_params(text: str) -> str:
    """Replace credential-bearing query parameter values with [REDACTED]."""
    return SENSITIVE_PARAMS_PATTERN.sub(r"\1\2=[REDACTED]", text)


def api_error_fields(exc: BaseException | None) -> dict[str, Any]:
    """
    Pull HTTP status, reason and domain off an exception raised by an API call.

    Works on anything shaped like ApiResponseError (``status_code`` plus
    parsed ``details``) or aiohttp.ClientResponseError (``status``).
    """
    if exc is None:
        return {}

    fields: dict[str, Any] = {}
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if isinstance(status, int):
        fields["http_status"] = status

    details = getattr(exc, "details", None)
    for info in getattr(details, "errors", ()):
        if info.reason:
            fields["error_reason"] = info.reason
            if info.domain:
                fields["error_domain"] = info.domain
            break

    category = getattr(exc, "category", None)
    if category is not None:
        fields["error_category"] = getattr(category, "value", str(category))
    return fields


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for jq and log shippers.

    Besides the standard fields, a record carries whichever of EXTRA_FIELDS
    were passed as ``extra``. When the record has an exception attached, its
    HTTP status, reason code and category are filled in unless the caller
    already supplied them. URLs and error messages are scrubbed of signed
    URL credentials.
    """

    EXTRA_FIELDS = [
        # Request
        "http_status",
        "http_method",
        "http_url",
        # API error
        "error_category",
        "error_message",
        "error_reason",
        "error_domain",
        "error_type",
        # Suppressed exception recovery
        "suppressed_count",
        # Context overrides
        "operation",
        "resource",
        "trace_id",
    ]

    NUMERIC_FIELDS = {
        "http_status": int,
        "suppressed_count": int,
    }

    REDACTED_FIELDS = ("http_url", "error_message")

    def _coerce(self, field: str, value: Any) -> Any:
        converter = self.NUMERIC_FIELDS.get(field)
        if converter is not None:
            try:
                value = converter(value)
            except (TypeError, ValueError):
                return None
        if field in self.REDACTED_FIELDS and isinstance(value, str):
            return redact_url_params(value)
        return value

    def _exception_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        exc_type, exc_value, _ = record.exc_info
        entry = {
            "type": exc_type.__name__ if exc_type else None,
            "message": redact_url_params(str(exc_value)) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }
        cause = exc_value.__cause__ if exc_value else None
        if cause is not None:
            entry["cause"] = type(cause).__name__
        return entry

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        timestamp = datetime.fromtimestamp(record.created, UTC)
        log_entry: dict[str, Any] = {
            "ts": timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_log_context()
        log_entry.update({key: context[key] for key in CONTEXT_FIELDS if context[key]})

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = self._coerce(field, value)

        if record.exc_info:
            for field, value in api_error_fields(record.exc_info[1]).items():
                log_entry.setdefault(field, value)
            log_entry["exception"] = self._exception_entry(record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line human-readable output for terminals.

    Layout: ``<time> - <LEVEL> - [operation] - [trace] [http:404 notFound] message``.
    Level names are colored only when stdout is a TTY.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self._use_colors else None
        if color:
            return f"{color}{record.levelname}{self.RESET}"
        return record.levelname

    @staticmethod
    def _tags(record: logging.LogRecord, context: dict[str, str]) -> str:
        tags = []

        trace_id = getattr(record, "trace_id", None) or context["trace_id"]
        if trace_id:
            tags.append(f"[{trace_id[:8]}]")

        http_status = getattr(record, "http_status", None)
        error_reason = getattr(record, "error_reason", None)
        if http_status and error_reason:
            tags.append(f"[http:{http_status} {error_reason}]")
        elif http_status:
            tags.append(f"[http:{http_status}]")
        elif error_reason:
            tags.append(f"[reason:{error_reason}]")

        return " ".join(tags)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output with optional color coding."""
        context = get_log_context()

        parts = [datetime.now().strftime("%Y-%m-%d %H:%M:%S"), self._level(record)]
        if context["operation"]:
            parts.append(f"[{context['operation']}]")

        tags = self._tags(record, context)
        message = record.getMessage()
        parts.append(f"{tags} {message}" if tags else message)

        line = " - ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
