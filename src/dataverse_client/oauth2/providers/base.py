"""Base OAuth2 provider interface."""

import logging
from abc import ABC, abstractmethod

from dataverse_client.oauth2.models import OAuth2Token

logger = logging.getLogger(__name__)


class BaseOAuth2Provider(ABC):
    """
    Abstract base class for OAuth2 token providers.

    Implementations perform one identity exchange per call. Caching,
    expiry and refresh coordination belong to OAuth2TokenManager.
    """

    def __init__(self, provider_name: str):
        """
        Initialize provider.

        Args:
            provider_name: Identifier used in log messages
        """
        self.provider_name = provider_name

    @abstractmethod
    async def acquire_token(self) -> OAuth2Token:
        """
        Acquire a new OAuth2 token.

        Returns:
            OAuth2Token with access token and expiration

        Raises:
            AuthenticationError: If the identity provider rejects the request
            NetworkError: If the identity provider cannot be reached
        """
        pass

    async def refresh_token(self, token: OAuth2Token) -> OAuth2Token:
        """
        Replace an expired token.

        The client-credentials flow has no refresh tokens, so the default
        simply performs a fresh exchange.
        """
        logger.debug(f"Replacing expired token for '{self.provider_name}'")
        return await self.acquire_token()


__all__ = ["BaseOAuth2Provider"]
