"""
Core types and protocols used across modules.

This module provides the shared enums, the HTTP exchange value objects and
the protocol definitions that the engine calls through. Keeping them here
lets the codec, request builder and batch orchestrator stay free of any
transport or credential implementation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures a caller may retry
                   (e.g., network timeouts, 429/503 errors)
        AUTH: Authentication failures requiring new credentials
              (e.g., 401 errors, rejected client secret)
        PERMANENT: Non-retriable failures that won't succeed on retry
                   (e.g., 404, validation errors, schema mismatches)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class HttpRequest:
    """One fully-built HTTP exchange, ready to hand to a transport."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None


@dataclass(frozen=True)
class HttpResponse:
    """
    Status, headers and raw body returned by a transport.

    Header lookup through header() is case-insensitive.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str, default: str | None = None) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Transport(Protocol):
    """
    Protocol for the HTTP transport the engine sends requests through.

    Implementations perform exactly one exchange per call, with no retries,
    and surface failures as NetworkError / RequestTimeoutError.
    """

    async def send(self, request: HttpRequest, timeout: float | None = None) -> HttpResponse:
        """
        Execute one HTTP exchange.

        Args:
            request: Request to send
            timeout: Total timeout in seconds for this exchange

        Returns:
            HttpResponse with status, headers and body

        Raises:
            NetworkError: Connection, DNS or TLS failure
            RequestTimeoutError: Exchange exceeded its timeout
        """
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "ErrorCategory",
    "HttpRequest",
    "HttpResponse",
    "Transport",
]
