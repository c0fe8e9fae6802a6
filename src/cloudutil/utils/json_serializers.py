"""JSON ``default=`` hook for structured log records."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel


def json_serializer(obj: Any) -> Any:
    """
    Convert values json.dumps cannot handle, keeping structure where possible.

    - Pydantic models (JsonError, ErrorInfo) → dict with wire field names
    - Enums (ErrorCategory) → value
    - datetime/date → ISO 8601 string
    - Decimal → float
    - exceptions → {"type": ..., "message": ...}
    - other objects with attributes → their ``__dict__``
    - anything else → str()
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}
    if hasattr(obj, "__dict__"):
        return vars(obj)
    return str(obj)


__all__ = ["json_serializer"]
