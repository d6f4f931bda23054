"""OAuth2 client-credentials provider for the Microsoft identity platform."""

import json
import logging
from urllib.parse import urlencode

from pydantic import ValidationError as PydanticValidationError

from dataverse_client.errors import AuthenticationError, InvalidConfigurationError
from dataverse_client.oauth2.models import OAuth2Config, OAuth2Token, TokenResponse
from dataverse_client.oauth2.providers.base import BaseOAuth2Provider
from dataverse_client.types import HttpRequest, Transport

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TIMEOUT_SECONDS = 30


def _error_summary(body: str) -> str:
    """Pull error / error_description out of an identity error body, else truncate raw text."""
    try:
        data = json.loads(body)
    except (ValueError, TypeError):
        return body[:200]
    if not isinstance(data, dict):
        return body[:200]
    code = data.get("error")
    description = data.get("error_description")
    if code and description:
        # Azure AD descriptions carry trace ids on following lines
        return f"{code}: {description.splitlines()[0]}"
    return str(code or description or body[:200])


class ClientCredentialsProvider(BaseOAuth2Provider):
    """
    OAuth2 provider using the client_credentials grant.

    Posts client id, secret and resource scope to the token endpoint through
    the shared transport. A rejected exchange is fatal for that call and is
    never retried here.
    """

    def __init__(
        self,
        config: OAuth2Config,
        transport: Transport,
        provider_name: str = "dataverse",
        timeout_seconds: float = DEFAULT_TOKEN_TIMEOUT_SECONDS,
    ):
        """
        Initialize client-credentials provider.

        Args:
            config: Client id, secret, token URL and scope
            transport: Transport used for the token request
            provider_name: Identifier used in log messages
            timeout_seconds: Timeout for each token request

        Raises:
            InvalidConfigurationError: If required parameters are missing
        """
        super().__init__(provider_name)

        if not all([config.client_id, config.client_secret, config.token_url, config.scope]):
            raise InvalidConfigurationError(
                "client_id, client_secret, token_url and scope are required"
            )

        self.config = config
        self.transport = transport
        self.timeout_seconds = timeout_seconds

        # Don't log the secret
        logger.debug(
            f"Initialized client credentials provider '{provider_name}'",
            extra={"http_url": config.token_url, "client_id": config.client_id},
        )

    def build_request(self) -> HttpRequest:
        """Build the form-encoded token request."""
        form = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "scope": self.config.scope,
        }
        return HttpRequest(
            method="POST",
            url=self.config.token_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            body=urlencode(form).encode("utf-8"),
        )

    async def acquire_token(self) -> OAuth2Token:
        """
        Acquire token using client credentials flow.

        Returns:
            OAuth2Token with access token

        Raises:
            AuthenticationError: Non-2xx response or unusable token body
            NetworkError: Identity endpoint unreachable (propagated from transport)
        """
        response = await self.transport.send(self.build_request(), timeout=self.timeout_seconds)

        if not response.ok:
            summary = _error_summary(response.text())
            logger.error(
                f"Token acquisition failed for '{self.provider_name}': HTTP {response.status}",
                extra={"http_status": response.status, "error": summary},
            )
            raise AuthenticationError(
                f"Identity provider rejected token request: HTTP {response.status}: {summary}",
                context={"status_code": response.status},
            )

        try:
            token_response = TokenResponse.model_validate_json(response.body)
        except PydanticValidationError as e:
            logger.error(
                f"Malformed token response for '{self.provider_name}'",
                extra={"http_status": response.status},
            )
            raise AuthenticationError(
                "Identity provider returned a malformed token response", cause=e
            ) from e

        logger.debug(
            f"Acquired token for '{self.provider_name}'",
            extra={"expires_in": token_response.expires_in},
        )

        return OAuth2Token.from_response(token_response, scope=self.config.scope)


__all__ = ["ClientCredentialsProvider"]
