"""Token service interface."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class TokenGrant:
    """Credentials issued by the token endpoint."""

    access_token: str
    expires_in_seconds: int
    refresh_token: str | None = None


class TokenService(Protocol):
    """Interface for obtaining access tokens."""

    def exchange_authorization_code(self, code: str, redirect_uri: str) -> TokenGrant:
        """Exchange an authorization code for access and refresh tokens."""
        ...

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Obtain a new access token from a refresh token."""
        ...
