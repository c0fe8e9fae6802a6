"""
JSON error envelope models.

Contains Pydantic models for the error payload returned by Google-style JSON
APIs on a failed request:

    {
      "error": {
        "code": 429,
        "message": "Rate limit exceeded",
        "errors": [
          {"reason": "rateLimitExceeded", "domain": "usageLimits", "message": "..."}
        ]
      }
    }

Decoding is best-effort: anything that is not a well-formed envelope decodes
to None instead of raising.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


class ErrorInfo(BaseModel):
    """Single entry of the ``errors`` list of a JSON error envelope.

    Attributes:
        reason: Machine-readable reason code (e.g. "rateLimitExceeded")
        message: Human-readable description of this entry
        domain: Namespace of the reason code (e.g. "usageLimits", "global")
        location: Request field the error refers to, if any
        location_type: Kind of location ("header", "parameter")
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    reason: str | None = None
    message: str | None = None
    domain: str | None = None
    location: str | None = None
    location_type: str | None = Field(default=None, alias="locationType")

    @field_validator("reason", "message", "domain", "location", "location_type", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class JsonError(BaseModel):
    """Parsed JSON error envelope: status code, top-level message, detail entries."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    code: int
    message: str | None = None
    errors: tuple[ErrorInfo, ...] = ()

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("errors", mode="before")
    @classmethod
    def _drop_malformed_entries(cls, value: Any) -> Any:
        # "errors": null, or entries that are not objects, must not discard the code
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(item for item in value if isinstance(item, (dict, ErrorInfo)))
        return value

    @property
    def reasons(self) -> list[str]:
        return [info.reason for info in self.errors if info.reason]

    def to_json(self) -> str:
        """Serialize the inner error object the way APIs send it."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


def _select_error_object(data: Any) -> dict | None:
    if not isinstance(data, dict):
        return None
    inner = data.get("error")
    if isinstance(inner, dict):
        return inner
    return data


def json_error_from_dict(data: Any) -> JsonError | None:
    """
    Build a JsonError from decoded JSON data.

    Accepts either the full envelope ``{"error": {...}}`` or the bare inner
    object. Returns None when the data does not describe an error.
    """
    error_object = _select_error_object(data)
    if error_object is None or "code" not in error_object:
        return None

    try:
        return JsonError.model_validate(error_object)
    except ValidationError as e:
        logger.debug(
            "JSON error payload failed validation",
            extra={"error_type": "ValidationError", "error_message": str(e)[:200]},
        )
        return None


def parse_json_error(payload: str | bytes | dict | None) -> JsonError | None:
    """
    Decode a JSON error envelope from text, bytes or an already decoded dict.

    Text may carry a prefix before the JSON document (e.g. a status line such
    as "404 Not Found") and trailing text after it; every ``{`` is tried as a
    document start until one decodes into an error envelope.

    Args:
        payload: Response body, exception message or decoded JSON

    Returns:
        JsonError if an envelope was found, None otherwise
    """
    if payload is None:
        return None

    if isinstance(payload, dict):
        return json_error_from_dict(payload)

    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")

    start = payload.find("{")
    while start != -1:
        try:
            data, _ = _decoder.raw_decode(payload, start)
        except (json.JSONDecodeError, RecursionError):
            # Malformed or too deeply nested to decode
            data = None

        json_error = json_error_from_dict(data)
        if json_error is not None:
            return json_error

        start = payload.find("{", start + 1)

    return None


__all__ = [
    "ErrorInfo",
    "JsonError",
    "json_error_from_dict",
    "parse_json_error",
]
