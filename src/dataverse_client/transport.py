"""
aiohttp transport.

One pooled ClientSession per transport, created lazily on first use.
Each send() is exactly one HTTP exchange bounded by its own total timeout;
there are no retries at this layer.
"""

import asyncio
import logging

import aiohttp

from dataverse_client.errors import NetworkError, RequestTimeoutError
from dataverse_client.types import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120
DEFAULT_MAX_CONNECTIONS = 20

# Exchanges slower than this are logged at INFO
SLOW_REQUEST_SECONDS = 2.0


class AiohttpTransport:
    """
    Transport backed by a shared aiohttp.ClientSession.

    Usage:
        async with AiohttpTransport(timeout_seconds=60) as transport:
            response = await transport.send(request)
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Args:
            timeout_seconds: Default total timeout per exchange
            max_connections: Connection pool size (also the per-host limit)
            session: Externally owned session; not closed by close()
        """
        self.timeout_seconds = timeout_seconds
        self.max_connections = max_connections
        self._session = session
        self._owns_session = session is None
        self._closed = False

    async def __aenter__(self) -> "AiohttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise NetworkError("Transport is closed, cannot create new session")
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_connections,
            )
            self._session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            # Let the connector finish closing its transports
            await asyncio.sleep(0)
        self._session = None

    async def send(self, request: HttpRequest, timeout: float | None = None) -> HttpResponse:
        """
        Execute one HTTP exchange.

        Raises:
            RequestTimeoutError: Exchange exceeded its total timeout
            NetworkError: Connection, DNS, TLS or protocol failure
        """
        session = await self._ensure_session()
        total = timeout if timeout is not None else self.timeout_seconds

        logger.debug(
            "HTTP request starting",
            extra={
                "http_method": request.method,
                "http_url": request.url,
                "has_body": request.body is not None,
            },
        )

        start_time = asyncio.get_event_loop().time()
        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
                timeout=aiohttp.ClientTimeout(total=total),
            ) as response:
                body = await response.read()
                duration = asyncio.get_event_loop().time() - start_time

                slow = duration > SLOW_REQUEST_SECONDS
                logger.log(
                    logging.INFO if slow else logging.DEBUG,
                    "Slow HTTP request" if slow else "HTTP request completed",
                    extra={
                        "http_method": request.method,
                        "http_url": request.url,
                        "http_status": response.status,
                        "duration_ms": round(duration * 1000, 2),
                    },
                )

                return HttpResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    body=body,
                )

        except TimeoutError as e:
            duration = asyncio.get_event_loop().time() - start_time
            logger.warning(
                "HTTP request timeout",
                extra={
                    "http_method": request.method,
                    "http_url": request.url,
                    "timeout_seconds": total,
                    "duration_ms": round(duration * 1000, 2),
                    "error_category": "transient",
                },
            )
            raise RequestTimeoutError(
                f"Timeout after {total}s: {request.method} {request.url}",
                cause=e,
                context={"timeout_seconds": total},
            ) from e

        except aiohttp.ClientError as e:
            duration = asyncio.get_event_loop().time() - start_time
            logger.error(
                "HTTP connection error",
                extra={
                    "http_method": request.method,
                    "http_url": request.url,
                    "duration_ms": round(duration * 1000, 2),
                    "error_category": "transient",
                    "error": str(e),
                },
            )
            raise NetworkError(
                f"Connection error: {request.method} {request.url}", cause=e
            ) from e


__all__ = [
    "AiohttpTransport",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_MAX_CONNECTIONS",
]
