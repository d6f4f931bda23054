"""Provider that refuses to authenticate."""

from dataverse_client.errors import AuthenticationError
from dataverse_client.oauth2.models import OAuth2Token
from dataverse_client.oauth2.providers.base import BaseOAuth2Provider


class NoAuthProvider(BaseOAuth2Provider):
    """
    Fails every token request with AuthenticationError.

    Backs DataverseClient.new_dummy() so examples and unit tests never reach
    a real identity provider.
    """

    def __init__(self, provider_name: str = "no_auth"):
        super().__init__(provider_name)

    async def acquire_token(self) -> OAuth2Token:
        raise AuthenticationError(
            "No authentication method configured; this client is a dummy "
            "and cannot call the service"
        )


__all__ = ["NoAuthProvider"]
