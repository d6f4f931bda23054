"""
Unified exception hierarchy for dataverse_client.

Provides typed exceptions with retry classification so callers can tell
every failure apart without inspecting messages. Nothing in this package
retries on its own; the category only tells the caller what is safe.
"""

from dataverse_client.types import ErrorCategory


class DataverseError(Exception):
    """
    Base exception for all client errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(DataverseError):
    """Identity provider rejected the credentials or returned an unusable token."""

    category = ErrorCategory.AUTH


# =============================================================================
# Network Errors (Transient)
# =============================================================================


class NetworkError(DataverseError):
    """Transport failure: connection refused, DNS, TLS, broken connection."""

    category = ErrorCategory.TRANSIENT


class RequestTimeoutError(NetworkError, TimeoutError):
    """A single HTTP exchange exceeded its timeout. Also a builtin TimeoutError."""

    pass


class BatchTimeoutError(RequestTimeoutError):
    """
    The $batch submission timed out.

    The service may have applied any subset of the sub-operations, so the
    outcome of every operation in the batch is unknown.
    """

    outcome_unknown = True


# =============================================================================
# Permanent Errors (Don't Retry)
# =============================================================================


class ValidationError(DataverseError):
    """Caller supplied an invalid selection, reference, record or mapping."""

    category = ErrorCategory.PERMANENT


class DecodeError(DataverseError):
    """Response body does not match the shape expected for the selected columns."""

    category = ErrorCategory.PERMANENT


class BatchIntegrityError(DataverseError):
    """Batch response sections do not line up with the submitted operations."""

    category = ErrorCategory.PERMANENT


class InvalidConfigurationError(DataverseError):
    """Client configuration is missing or invalid."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Service Errors
# =============================================================================


class ODataError(DataverseError):
    """
    The service answered with a 4xx/5xx status.

    Attributes:
        status_code: HTTP status of the (sub-)response
        error_code: OData error code from the error envelope, if any
        server_message: Message reported by the service
    """

    def __init__(
        self,
        status_code: int,
        server_message: str,
        error_code: str | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.status_code = status_code
        self.server_message = server_message
        self.error_code = error_code
        self.category = classify_http_status(status_code)
        message = f"HTTP {status_code}: {server_message}"
        if error_code:
            message = f"HTTP {status_code} [{error_code}]: {server_message}"
        super().__init__(message, cause, context)


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: Exception) -> bool:
    """
    Check if a caller could reasonably retry after this exception.

    Only transient client errors qualify; anything outside the hierarchy is
    treated as not retryable.
    """
    if isinstance(exc, DataverseError):
        return exc.is_retryable
    return False


__all__ = [
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
    "classify_http_status",
    "is_retryable_error",
]
