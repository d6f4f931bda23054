"""Context managers for structured logging."""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from dataverse_client.logging.context import get_log_context, set_log_context
from dataverse_client.logging.utilities import log_exception, log_with_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(trace_id=request_id, operation="nightly_sync"):
            # All logs in this block carry trace_id and operation
            await sync_contacts()
    """

    def __init__(
        self,
        trace_id: Optional[str] = None,
        operation: Optional[str] = None,
        batch_id: Optional[str] = None,
    ):
        self.new_context = {
            "trace_id": trace_id,
            "operation": operation,
            "batch_id": batch_id,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(
            trace_id=self.old_context.get("trace_id", ""),
            operation=self.old_context.get("operation", ""),
            batch_id=self.old_context.get("batch_id", ""),
        )
        return False


class OperationContext:
    """
    Context manager for a timed client operation with automatic logging.

    Logs completion (promoted to INFO when slow) or failure with the
    elapsed time.
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.DEBUG,
        slow_threshold_ms: Optional[float] = 1000.0,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.slow_threshold_ms = slow_threshold_ms
        self.context = context
        self._start_time: Optional[float] = None
        self._log_context = LogContext(operation=operation)

    def __enter__(self) -> "OperationContext":
        self._log_context.__enter__()
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.perf_counter() - self._start_time) * 1000

        effective_level = self.level
        if self.slow_threshold_ms and duration_ms > self.slow_threshold_ms:
            effective_level = max(self.level, logging.INFO)

        try:
            if exc_val is not None:
                log_exception(
                    self.logger,
                    exc_val,
                    f"Failed: {self.operation}",
                    level=logging.WARNING,
                    include_traceback=False,
                    duration_ms=round(duration_ms, 2),
                    **self.context,
                )
            else:
                log_with_context(
                    self.logger,
                    effective_level,
                    f"Completed: {self.operation}",
                    duration_ms=round(duration_ms, 2),
                    **self.context,
                )
        finally:
            self._log_context.__exit__(exc_type, exc_val, exc_tb)
        return False

    def add_context(self, **kwargs: Any) -> None:
        """Add context mid-operation (record ids, counts)."""
        self.context.update(kwargs)


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    slow_threshold_ms: Optional[float] = 1000.0,
    **context: Any,
):
    """Convenience context manager for ad-hoc operation logging."""
    with OperationContext(
        logger, operation, level=level, slow_threshold_ms=slow_threshold_ms, **context
    ) as ctx:
        yield ctx


__all__ = ["LogContext", "OperationContext", "log_operation"]
