"""OAuth2 provider implementations."""

from dataverse_client.oauth2.providers.base import BaseOAuth2Provider
from dataverse_client.oauth2.providers.client_credentials import ClientCredentialsProvider
from dataverse_client.oauth2.providers.no_auth import NoAuthProvider

__all__ = ["BaseOAuth2Provider", "ClientCredentialsProvider", "NoAuthProvider"]
