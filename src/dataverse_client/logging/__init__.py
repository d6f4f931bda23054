"""
Structured logging module.

Provides JSON logging with correlation IDs and context propagation.
"""

from dataverse_client.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from dataverse_client.logging.context_managers import (
    LogContext,
    OperationContext,
    log_operation,
)
from dataverse_client.logging.formatters import ConsoleFormatter, JSONFormatter
from dataverse_client.logging.setup import (
    generate_trace_id,
    setup_logging,
)
from dataverse_client.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "generate_trace_id",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Context Managers
    "LogContext",
    "OperationContext",
    "log_operation",
    # Utilities
    "log_with_context",
    "log_exception",
]
