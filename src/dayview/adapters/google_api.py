"""Shared HTTP plumbing for the Google REST adapters."""

import logging

import requests

from dayview.errors import AuthError, NetworkError, RemoteAPIError, ServerError

logger = logging.getLogger(__name__)


def check_response(resp: requests.Response) -> None:
    """Raise the dayview error matching a non-success response."""
    if resp.ok:
        return
    status = resp.status_code
    message = f"{status} {resp.reason or ''} for {resp.url}".strip()
    if status in (401, 403):
        raise AuthError(message, status=status)
    # Throttling is transient, same as a server fault
    if status == 429 or status >= 500:
        raise ServerError(message, status=status)
    raise RemoteAPIError(message, status=status)


def most_severe(errors: list[Exception]) -> Exception:
    """Pick the error to surface when every collection failed.

    Auth failures win so the session layer can re-authenticate.
    """
    for error in errors:
        if isinstance(error, AuthError):
            return error
    return errors[0]


class GoogleAPIClient:
    """Bearer-token authenticated JSON client over a requests session."""

    def __init__(self, session: requests.Session | None = None):
        self._session = session or requests.Session()

    def _api_request(
        self,
        method: str,
        url: str,
        access_token: str,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> dict:
        """Make authenticated API request."""
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except requests.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        check_response(resp)
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteAPIError(f"{method} {url} returned a non-JSON body", status=resp.status_code) from e
        if not isinstance(data, dict):
            raise RemoteAPIError(f"{method} {url} returned an unexpected body", status=resp.status_code)
        return data

    def _paginate(self, url: str, access_token: str, params: dict | None = None) -> list[dict]:
        """Collect ``items`` across every page of a list endpoint."""
        items: list[dict] = []
        params = dict(params or {})
        while True:
            data = self._api_request("GET", url, access_token, params=params)
            items.extend(data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return items
            params["pageToken"] = page_token
