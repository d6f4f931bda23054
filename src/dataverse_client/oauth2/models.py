"""OAuth2 data models and configuration."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict


class TokenResponse(BaseModel):
    """Body of a successful client-credentials token response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"


@dataclass
class OAuth2Token:
    """
    OAuth2 access token with expiration tracking.

    Attributes:
        access_token: The access token string
        token_type: Token type (typically "Bearer")
        expires_at: UTC timestamp when token expires
        scope: Scope the token was requested for
    """

    access_token: str
    token_type: str
    expires_at: datetime
    scope: str | None = None

    @classmethod
    def from_response(cls, response: TokenResponse, scope: str | None = None) -> "OAuth2Token":
        """
        Create token from a validated token response.

        Args:
            response: Parsed token endpoint response
            scope: Scope the token was requested for

        Returns:
            OAuth2Token instance
        """
        expires_at = datetime.now(UTC) + timedelta(seconds=response.expires_in)

        return cls(
            access_token=response.access_token,
            token_type=response.token_type or "Bearer",
            expires_at=expires_at,
            scope=scope,
        )

    def is_expired(self, buffer_seconds: int = 300) -> bool:
        """
        Check if token is expired or inside the safety margin.

        Args:
            buffer_seconds: Safety buffer before actual expiry (default: 5 minutes)

        Returns:
            True if token must not be used for a new request
        """
        return datetime.now(UTC) >= self.expires_at - timedelta(seconds=buffer_seconds)

    @property
    def remaining_lifetime(self) -> timedelta:
        """Get remaining time before token expires."""
        return self.expires_at - datetime.now(UTC)

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"

    def __repr__(self) -> str:
        # Never render the secret itself
        return (
            f"OAuth2Token(token_type={self.token_type!r}, "
            f"expires_at={self.expires_at.isoformat()!r}, scope={self.scope!r})"
        )


@dataclass
class OAuth2Config:
    """
    Client-credentials provider configuration.

    Attributes:
        client_id: Application (client) ID
        client_secret: Client secret
        token_url: Token endpoint URL
        scope: Scope to request, e.g. "https://org.crm.dynamics.com/.default"
    """

    client_id: str
    client_secret: str
    token_url: str
    scope: str

    def __repr__(self) -> str:
        return (
            f"OAuth2Config(client_id={self.client_id!r}, client_secret='***', "
            f"token_url={self.token_url!r}, scope={self.scope!r})"
        )


__all__ = ["OAuth2Token", "OAuth2Config", "TokenResponse"]
