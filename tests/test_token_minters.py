from __future__ import annotations

import json
from urllib.parse import parse_qsl

import httpx
import pytest

from homeboard.clients.electrolux import ElectroluxTokenMinter
from homeboard.clients.errors import InvalidGrantError, TokenRefreshError, TransientNetworkError
from homeboard.clients.google_auth import GoogleOAuthClient
from homeboard.core.config import ElectroluxSettings, GoogleSettings
from homeboard.models.tokens import RefreshSecret


def _google(handler, **settings) -> GoogleOAuthClient:
    settings.setdefault("GOOGLE_OAUTH_CLIENT_ID", "client")
    settings.setdefault("GOOGLE_OAUTH_CLIENT_SECRET", "secret")
    return GoogleOAuthClient(GoogleSettings(**settings), transport=httpx.MockTransport(handler))


def _electrolux(handler) -> ElectroluxTokenMinter:
    settings = ElectroluxSettings(ELECTROLUX_API_KEY="api-key")
    return ElectroluxTokenMinter(settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_google_refresh_posts_form_and_parses_token() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = dict(parse_qsl(request.content.decode()))
        return httpx.Response(200, json={"access_token": "g-1", "expires_in": 3599})

    token = await _google(handler).refresh(RefreshSecret(refresh_token="google-refresh"))

    assert seen["url"] == GoogleOAuthClient.TOKEN_URL
    assert seen["form"] == {
        "client_id": "client",
        "client_secret": "secret",
        "refresh_token": "google-refresh",
        "grant_type": "refresh_token",
    }
    assert token.access_token == "g-1"
    assert token.expires_in == 3599
    assert token.refresh_token is None


@pytest.mark.asyncio
async def test_google_prefers_client_credentials_stored_with_secret() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(parse_qsl(request.content.decode()))
        return httpx.Response(200, json={"access_token": "g-1"})

    secret = RefreshSecret(refresh_token="r", client_id="stored-id", client_secret="stored-secret")
    await _google(handler).refresh(secret)

    assert seen["client_id"] == "stored-id"
    assert seen["client_secret"] == "stored-secret"


@pytest.mark.asyncio
async def test_google_invalid_grant_is_distinct() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."},
        )

    with pytest.raises(InvalidGrantError) as excinfo:
        await _google(handler).refresh(RefreshSecret(refresh_token="r"))
    assert "expired or revoked" in str(excinfo.value)
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_google_server_error_is_plain_refresh_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="backend error")

    with pytest.raises(TokenRefreshError) as excinfo:
        await _google(handler).refresh(RefreshSecret(refresh_token="r"))
    assert type(excinfo.value) is TokenRefreshError


@pytest.mark.asyncio
async def test_google_requires_client_credentials() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        raise AssertionError("token endpoint should not be called")

    client = _google(handler, GOOGLE_OAUTH_CLIENT_ID="", GOOGLE_OAUTH_CLIENT_SECRET="")
    with pytest.raises(TokenRefreshError):
        await client.refresh(RefreshSecret(refresh_token="r"))


@pytest.mark.asyncio
async def test_electrolux_refresh_sends_json_and_reads_rotation() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["api_key"] = request.headers["x-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"accessToken": "e-1", "expiresIn": 43200, "refreshToken": "rotated"},
        )

    token = await _electrolux(handler).refresh(RefreshSecret(refresh_token="e-refresh"))

    assert seen == {
        "path": "/api/v1/token/refresh",
        "api_key": "api-key",
        "body": {"refreshToken": "e-refresh"},
    }
    assert token.access_token == "e-1"
    assert token.expires_in == 43200
    assert token.refresh_token == "rotated"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_electrolux_rejected_refresh_token_is_invalid_grant(status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"message": "refresh token expired"})

    with pytest.raises(InvalidGrantError):
        await _electrolux(handler).refresh(RefreshSecret(refresh_token="r"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc_type", [httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError]
)
async def test_transport_failures_are_transient(exc_type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)

    with pytest.raises(TransientNetworkError):
        await _electrolux(handler).refresh(RefreshSecret(refresh_token="r"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"accessToken": ""}),
    ],
)
async def test_malformed_success_bodies_are_refresh_failures(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(TokenRefreshError) as excinfo:
        await _electrolux(handler).refresh(RefreshSecret(refresh_token="r"))
    assert not isinstance(excinfo.value, (InvalidGrantError, TransientNetworkError))
