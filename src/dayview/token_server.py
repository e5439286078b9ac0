"""Credential-issuance endpoint.

Stateless FastAPI app that holds the Google client secret server-side and
exchanges authorization codes / refresh tokens on behalf of dayview clients.

    POST /auth     {code, redirect_uri}  -> {access_token, expires_in, refresh_token}
    POST /refresh  {refresh_token}       -> {access_token, expires_in}

Errors are returned as {"error": "..."}.
"""

import asyncio
import json
import logging
import os

import requests
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_EXPIRES_IN = 3600
OTHER_METHODS = ["GET", "PUT", "PATCH", "DELETE"]

app = FastAPI(
    title="dayview token endpoint",
    description="Exchanges Google OAuth codes and refresh tokens for dayview clients",
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=".*",
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def _client_credentials() -> tuple[str, str]:
    """Read the Google client id/secret from the environment."""
    client_id = os.environ.get("GOOGLE_CLIENT_ID", "")
    client_secret = os.environ.get("GOOGLE_CLIENT_SECRET", "")
    if not client_id or not client_secret:
        raise ConfigurationError("Server missing Google OAuth config")
    return client_id, client_secret


async def _read_body(request: Request) -> dict | None:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _post_token(params: dict) -> requests.Response:
    return requests.post(TOKEN_URL, data=params)


async def _exchange(params: dict, default_error: str) -> tuple[int, dict]:
    """Forward a grant to Google. Returns (status, json body)."""
    try:
        resp = await asyncio.to_thread(_post_token, params)
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"{default_error}: {e}")
        return 500, {"error": default_error}

    if not resp.ok:
        message = data.get("error_description") or data.get("error") or default_error
        return resp.status_code, {"error": message}
    return 200, data


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Token endpoint misconfigured: {exc}")
    return _error(500, str(exc))


@app.post("/auth")
async def auth(request: Request):
    """Exchange an authorization code for access + refresh tokens."""
    client_id, client_secret = _client_credentials()

    body = await _read_body(request)
    if body is None:
        return _error(400, "Invalid JSON body")

    code = body.get("code")
    redirect_uri = body.get("redirect_uri")
    if not code or not redirect_uri:
        return _error(400, "Missing code or redirect_uri")

    status, data = await _exchange(
        {
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        },
        "Token exchange failed",
    )
    if status != 200:
        return JSONResponse(status_code=status, content=data)

    return {
        "access_token": data.get("access_token"),
        "expires_in": data.get("expires_in") or DEFAULT_EXPIRES_IN,
        "refresh_token": data.get("refresh_token") or None,
    }


@app.post("/refresh")
async def refresh(request: Request):
    """Get a new access token using a refresh token."""
    client_id, client_secret = _client_credentials()

    body = await _read_body(request)
    if body is None:
        return _error(400, "Invalid JSON body")

    refresh_token = body.get("refresh_token")
    if not refresh_token:
        return _error(400, "Missing refresh_token")

    status, data = await _exchange(
        {
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "refresh_token",
        },
        "Refresh failed",
    )
    if status != 200:
        return JSONResponse(status_code=status, content=data)

    return {
        "access_token": data.get("access_token"),
        "expires_in": data.get("expires_in") or DEFAULT_EXPIRES_IN,
    }


@app.api_route("/auth", methods=OTHER_METHODS, include_in_schema=False)
@app.api_route("/refresh", methods=OTHER_METHODS, include_in_schema=False)
async def method_not_allowed():
    return _error(405, "Method not allowed")
