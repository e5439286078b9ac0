"""Tests for the credential endpoint client."""

from unittest.mock import MagicMock

import pytest
import requests

from dayview.adapters.token_endpoint import TokenEndpointClient
from dayview.errors import ConfigurationError, TokenExchangeError, TokenRefreshError


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return TokenEndpointClient("https://auth.example.com/api/", session=session)


class TestExchange:
    def test_posts_code_and_redirect(self, client, session, make_response):
        session.post.return_value = make_response(
            200, {"access_token": "at", "refresh_token": "rt", "expires_in": 3599}
        )

        grant = client.exchange_authorization_code("code-1", "http://localhost:8080/callback")

        session.post.assert_called_once_with(
            "https://auth.example.com/api/auth",
            json={"code": "code-1", "redirect_uri": "http://localhost:8080/callback"},
        )
        assert grant.access_token == "at"
        assert grant.refresh_token == "rt"
        assert grant.expires_in_seconds == 3599

    def test_default_expiry(self, client, session, make_response):
        session.post.return_value = make_response(200, {"access_token": "at"})
        grant = client.exchange_authorization_code("c", "r")
        assert grant.expires_in_seconds == 3600
        assert grant.refresh_token is None

    def test_rejected_code(self, client, session, make_response):
        session.post.return_value = make_response(400, {"error": "Bad Request"})
        with pytest.raises(TokenExchangeError) as exc_info:
            client.exchange_authorization_code("bad", "r")
        assert exc_info.value.status == 400
        assert "Bad Request" in str(exc_info.value)

    def test_transport_failure(self, client, session):
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TokenExchangeError):
            client.exchange_authorization_code("c", "r")

    def test_missing_access_token(self, client, session, make_response):
        session.post.return_value = make_response(200, {"refresh_token": "rt"})
        with pytest.raises(TokenExchangeError):
            client.exchange_authorization_code("c", "r")

    def test_non_object_body(self, client, session, make_response):
        session.post.return_value = make_response(200, ["at"])
        with pytest.raises(TokenExchangeError, match="malformed"):
            client.exchange_authorization_code("c", "r")


class TestRefresh:
    def test_posts_refresh_token(self, client, session, make_response):
        session.post.return_value = make_response(200, {"access_token": "new", "expires_in": 3600})

        grant = client.refresh_access_token("rt")

        session.post.assert_called_once_with(
            "https://auth.example.com/api/refresh", json={"refresh_token": "rt"}
        )
        assert grant.access_token == "new"
        assert grant.refresh_token is None

    def test_invalid_grant(self, client, session, make_response):
        session.post.return_value = make_response(400, {"error": "Token has been expired or revoked."})
        with pytest.raises(TokenRefreshError) as exc_info:
            client.refresh_access_token("revoked")
        assert exc_info.value.status == 400

    def test_non_json_error_body(self, client, session, make_response):
        session.post.return_value = make_response(502, text="Bad gateway")
        with pytest.raises(TokenRefreshError, match="Bad gateway"):
            client.refresh_access_token("rt")

    def test_non_json_success_body(self, client, session, make_response):
        session.post.return_value = make_response(200, text="<html>Gateway login</html>")
        with pytest.raises(TokenRefreshError, match="malformed") as exc_info:
            client.refresh_access_token("rt")
        assert exc_info.value.status == 200

    def test_transport_failure(self, client, session):
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(TokenRefreshError):
            client.refresh_access_token("rt")


def test_missing_base_url_is_configuration_error(session):
    client = TokenEndpointClient("", session=session)
    with pytest.raises(ConfigurationError):
        client.refresh_access_token("rt")
    session.post.assert_not_called()
