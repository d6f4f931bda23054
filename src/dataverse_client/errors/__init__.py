"""
Error classification and exception hierarchy.

Provides:
- DataverseError hierarchy for typed exceptions
- HTTP status classification for retry decisions
"""

from dataverse_client.errors.exceptions import (
    # Authentication
    AuthenticationError,
    # Batch
    BatchIntegrityError,
    BatchTimeoutError,
    # Base class
    DataverseError,
    DecodeError,
    InvalidConfigurationError,
    # Network
    NetworkError,
    # Service
    ODataError,
    RequestTimeoutError,
    ValidationError,
    # Classification utilities
    classify_http_status,
    is_retryable_error,
)
from dataverse_client.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base class
    "DataverseError",
    "AuthenticationError",
    "NetworkError",
    "RequestTimeoutError",
    "BatchTimeoutError",
    "ValidationError",
    "DecodeError",
    "BatchIntegrityError",
    "InvalidConfigurationError",
    "ODataError",
    # Classification utilities
    "classify_http_status",
    "is_retryable_error",
]
