"""
OAuth2 token management with caching and single-flight refresh.

Basic Usage:
    from dataverse_client.oauth2 import (
        ClientCredentialsProvider,
        OAuth2Config,
        OAuth2TokenManager,
    )

    provider = ClientCredentialsProvider(
        OAuth2Config(
            client_id=os.getenv("DATAVERSE_CLIENT_ID"),
            client_secret=os.getenv("DATAVERSE_CLIENT_SECRET"),
            token_url="https://login.microsoftonline.com/<tenant>/oauth2/v2.0/token",
            scope="https://org.crm.dynamics.com/.default",
        ),
        transport,
    )
    manager = OAuth2TokenManager(provider)

    # Cached until 5 minutes before expiry; concurrent callers share one refresh
    token = await manager.get_token()
"""

from dataverse_client.oauth2.manager import (
    DEFAULT_REFRESH_BUFFER_SECONDS,
    OAuth2TokenManager,
    TokenState,
)
from dataverse_client.oauth2.models import OAuth2Config, OAuth2Token, TokenResponse
from dataverse_client.oauth2.providers import (
    BaseOAuth2Provider,
    ClientCredentialsProvider,
    NoAuthProvider,
)

__all__ = [
    # Manager
    "OAuth2TokenManager",
    "TokenState",
    "DEFAULT_REFRESH_BUFFER_SECONDS",
    # Providers
    "BaseOAuth2Provider",
    "ClientCredentialsProvider",
    "NoAuthProvider",
    # Models
    "OAuth2Token",
    "OAuth2Config",
    "TokenResponse",
]
