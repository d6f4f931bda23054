"""OAuth2 token manager with caching and single-flight refresh."""

import asyncio
import logging
import threading
from enum import Enum
from typing import Any

from dataverse_client.errors import AuthenticationError, DataverseError
from dataverse_client.oauth2.models import OAuth2Token
from dataverse_client.oauth2.providers.base import BaseOAuth2Provider

logger = logging.getLogger(__name__)

# Default token refresh buffer (5 minutes before expiry)
DEFAULT_REFRESH_BUFFER_SECONDS = 300


class TokenState(Enum):
    """Lifecycle of the cached token."""

    UNAUTHENTICATED = "unauthenticated"
    ACQUIRING = "acquiring"
    VALID = "valid"
    EXPIRED = "expired"
    REFRESHING = "refreshing"


def _consume_exception(task: "asyncio.Task[OAuth2Token]") -> None:
    # Every waiter may have been cancelled; mark the failure as retrieved
    if not task.cancelled():
        task.exception()


class OAuth2TokenManager:
    """
    Caches one provider's token and coordinates its refresh.

    A usable cached token is returned without awaiting anything. When the
    token is missing or inside the safety margin, the first caller starts a
    single exchange task; every caller arriving while it runs awaits that
    same task and observes its result, success or failure. A failed exchange
    leaves the cache untouched so the next call starts a new one.

    Usage:
        manager = OAuth2TokenManager(ClientCredentialsProvider(config, transport))
        token = await manager.get_token()
        headers = {"Authorization": f"Bearer {token}"}
    """

    def __init__(
        self,
        provider: BaseOAuth2Provider,
        refresh_buffer_seconds: int = DEFAULT_REFRESH_BUFFER_SECONDS,
    ):
        """
        Initialize token manager.

        Args:
            provider: Provider performing the identity exchange
            refresh_buffer_seconds: Safety margin before expiry (default: 300s)
        """
        self._provider = provider
        self._token: OAuth2Token | None = None
        self._lock = threading.Lock()
        self._inflight: asyncio.Task[OAuth2Token] | None = None
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self.exchange_count = 0

        logger.debug(
            f"Initialized OAuth2TokenManager with {refresh_buffer_seconds}s refresh buffer"
        )

    @property
    def provider(self) -> BaseOAuth2Provider:
        return self._provider

    @property
    def state(self) -> TokenState:
        with self._lock:
            if self._inflight is not None:
                return TokenState.REFRESHING if self._token else TokenState.ACQUIRING
            if self._token is None:
                return TokenState.UNAUTHENTICATED
            if self._token.is_expired(self.refresh_buffer_seconds):
                return TokenState.EXPIRED
            return TokenState.VALID

    async def get_valid_token(self, force_refresh: bool = False) -> OAuth2Token:
        """
        Get a token that is outside the safety margin.

        Args:
            force_refresh: Start (or join) an exchange even if the cached token is valid

        Returns:
            OAuth2Token usable for at least refresh_buffer_seconds

        Raises:
            AuthenticationError: If the exchange is rejected
            NetworkError: If the identity provider cannot be reached
        """
        with self._lock:
            cached = self._token
            if not force_refresh and cached and not cached.is_expired(self.refresh_buffer_seconds):
                return cached

            task = self._inflight
            if task is None:
                task = asyncio.ensure_future(self._exchange(cached))
                task.add_done_callback(_consume_exception)
                self._inflight = task
                self.exchange_count += 1
            else:
                logger.debug(
                    f"Joining in-flight token exchange for '{self._provider.provider_name}'"
                )

        # shield: one waiter's cancellation must not cancel the shared exchange
        return await asyncio.shield(task)

    async def get_token(self, force_refresh: bool = False) -> str:
        """Get a valid access token string."""
        token = await self.get_valid_token(force_refresh=force_refresh)
        return token.access_token

    async def _exchange(self, current: OAuth2Token | None) -> OAuth2Token:
        name = self._provider.provider_name
        try:
            if current:
                logger.debug(f"Refreshing token for '{name}'")
                new_token = await self._provider.refresh_token(current)
            else:
                logger.debug(f"Acquiring new token for '{name}'")
                new_token = await self._provider.acquire_token()

        except DataverseError as e:
            logger.error(
                f"Failed to get token for '{name}'",
                extra={"error_category": e.category.value, "error": e.message},
            )
            raise

        except Exception as e:
            logger.error(f"Unexpected error getting token for '{name}': {e}")
            raise AuthenticationError(f"Failed to get token for '{name}': {e}", cause=e) from e

        else:
            with self._lock:
                self._token = new_token

            logger.info(
                f"Token for '{name}' valid until {new_token.expires_at.isoformat()}"
            )
            return new_token

        finally:
            with self._lock:
                if self._inflight is asyncio.current_task():
                    self._inflight = None

    def clear_token(self) -> None:
        """Drop the cached token; the next call performs a fresh exchange."""
        with self._lock:
            self._token = None
            logger.debug(f"Cleared token for '{self._provider.provider_name}'")

    def get_cached_token_info(self) -> dict[str, Any] | None:
        """
        Get information about the cached token for diagnostics.

        Returns:
            Dict with token info, or None if no token cached
        """
        with self._lock:
            token = self._token
            if not token:
                return None

            return {
                "provider_name": self._provider.provider_name,
                "expires_at": token.expires_at.isoformat(),
                "remaining_seconds": token.remaining_lifetime.total_seconds(),
                "is_expired": token.is_expired(self.refresh_buffer_seconds),
                "token_type": token.token_type,
                "scope": token.scope,
            }

    async def close(self) -> None:
        """Cancel any in-flight exchange and forget the cached token."""
        with self._lock:
            task = self._inflight
            self._inflight = None
            self._token = None

        if task is not None and not task.done():
            task.cancel()
        logger.debug("OAuth2TokenManager closed")


__all__ = [
    "OAuth2TokenManager",
    "TokenState",
    "DEFAULT_REFRESH_BUFFER_SECONDS",
]
