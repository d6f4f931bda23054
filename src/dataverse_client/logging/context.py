"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_trace_id: ContextVar[str] = ContextVar("trace_id", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")
_batch_id: ContextVar[str] = ContextVar("batch_id", default="")


def set_log_context(
    trace_id: Optional[str] = None,
    operation: Optional[str] = None,
    batch_id: Optional[str] = None,
) -> None:
    if trace_id is not None:
        _trace_id.set(trace_id)
    if operation is not None:
        _operation.set(operation)
    if batch_id is not None:
        _batch_id.set(batch_id)


def get_log_context() -> Dict[str, str]:
    return {
        "trace_id": _trace_id.get(),
        "operation": _operation.get(),
        "batch_id": _batch_id.get(),
    }


def clear_log_context() -> None:
    _trace_id.set("")
    _operation.set("")
    _batch_id.set("")
