"""Token endpoint adapter - HTTP client for the credential-issuance service."""

import logging

import requests

from dayview.errors import ConfigurationError, TokenExchangeError, TokenRefreshError
from dayview.ports.token_service import TokenGrant

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


def _error_message(resp: requests.Response, default: str) -> str:
    """Pull the error description out of a failed endpoint response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text or default
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return default


def _grant_body(resp: requests.Response) -> dict | None:
    """Decoded success body, or None if it is not a JSON object."""
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class TokenEndpointClient:
    """
    Credential-issuance endpoint adapter.

    Implements TokenService protocol. Client secrets live on the endpoint;
    this side only posts codes and refresh tokens. Never touches storage.
    """

    def __init__(self, base_url: str, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()

    def _post(self, path: str, payload: dict) -> requests.Response:
        if not self.base_url:
            raise ConfigurationError(
                "No credential endpoint configured. Set AUTH_SERVER_URL in dayview.conf"
            )
        return self._session.post(f"{self.base_url}{path}", json=payload)

    def exchange_authorization_code(self, code: str, redirect_uri: str) -> TokenGrant:
        """Exchange an authorization code for access and refresh tokens."""
        try:
            resp = self._post("/auth", {"code": code, "redirect_uri": redirect_uri})
        except requests.RequestException as e:
            logger.error(f"Token exchange request failed: {e}")
            raise TokenExchangeError(f"Token exchange failed: {e}") from e

        if not resp.ok:
            message = _error_message(resp, "Token exchange failed")
            logger.error(f"Token exchange rejected ({resp.status_code}): {message}")
            raise TokenExchangeError(message, status=resp.status_code)

        data = _grant_body(resp)
        if data is None:
            raise TokenExchangeError("Token endpoint returned a malformed response", status=resp.status_code)
        if not data.get("access_token"):
            raise TokenExchangeError("Token endpoint returned no access token", status=resp.status_code)

        return TokenGrant(
            access_token=data["access_token"],
            expires_in_seconds=int(data.get("expires_in") or DEFAULT_EXPIRES_IN),
            refresh_token=data.get("refresh_token") or None,
        )

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Obtain a new access token from a refresh token."""
        try:
            resp = self._post("/refresh", {"refresh_token": refresh_token})
        except requests.RequestException as e:
            logger.error(f"Token refresh request failed: {e}")
            raise TokenRefreshError(f"Token refresh failed: {e}") from e

        if not resp.ok:
            message = _error_message(resp, "Refresh failed")
            logger.error(f"Token refresh rejected ({resp.status_code}): {message}")
            raise TokenRefreshError(message, status=resp.status_code)

        data = _grant_body(resp)
        if data is None:
            raise TokenRefreshError("Token endpoint returned a malformed response", status=resp.status_code)
        if not data.get("access_token"):
            raise TokenRefreshError("Token endpoint returned no access token", status=resp.status_code)

        return TokenGrant(
            access_token=data["access_token"],
            expires_in_seconds=int(data.get("expires_in") or DEFAULT_EXPIRES_IN),
        )
