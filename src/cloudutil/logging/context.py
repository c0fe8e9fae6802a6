"""
Context variables for structured logging.

Set once per storage operation (e.g. operation="read",
resource="gs://bucket/object") and picked up by both formatters for every
record logged while the operation runs, including those from the extractor.
"""

from contextvars import ContextVar
from typing import Dict, Optional

_operation: ContextVar[str] = ContextVar("operation", default="")
_resource: ContextVar[str] = ContextVar("resource", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")

_VARS = {
    "operation": _operation,
    "resource": _resource,
    "trace_id": _trace_id,
}


def set_log_context(
    operation: Optional[str] = None,
    resource: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> None:
    """Set the given fields; fields passed as None keep their current value."""
    values = {"operation": operation, "resource": resource, "trace_id": trace_id}
    for key, value in values.items():
        if value is not None:
            _VARS[key].set(value)


def get_log_context() -> Dict[str, str]:
    return {key: var.get() for key, var in _VARS.items()}


def clear_log_context() -> None:
    for var in _VARS.values():
        var.set("")
