"""Shared fixtures."""

from unittest.mock import MagicMock

import pytest


@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""
    def _make(status: int = 200, payload=None, text: str = "", url: str = "https://example.test"):
        resp = MagicMock()
        resp.status_code = status
        resp.ok = status < 400
        resp.reason = "OK" if status < 400 else "Error"
        resp.url = url
        if payload is None:
            resp.json.side_effect = ValueError("No JSON")
            resp.content = text.encode()
            resp.text = text
        else:
            resp.json.return_value = payload
            resp.content = b"{...}"
            resp.text = str(payload)
        return resp
    return _make
