try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from urllib.parse import parse_qs

import httpx
import pytest

from andreani_proxy.clients.andreani_auth import (
    DirectLoginBackend,
    OAuthCodeBackend,
    StaticTokenBackend,
)
from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode

pytestmark = pytest.mark.anyio


def _settings(**overrides) -> AndreaniSettings:
    values = {
        "ANDREANI_LOGIN_URL": "https://id.test/login",
        "ANDREANI_AUTHORIZE_URL": "https://id.test/oauth2/authorize",
        "ANDREANI_TOKEN_URL": "https://id.test/oauth2/token",
        "ANDREANI_CLIENT_ID": "client-123",
        "ANDREANI_REDIRECT_URI": "https://pymes.test/callback",
        "ANDREANI_SCOPE": "openid offline_access",
        "ANDREANI_API_KEY": None,
    }
    values.update(overrides)
    return AndreaniSettings(**values)


async def test_direct_login_returns_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"access_token": "abc", "expires_in": 3600})

    backend = DirectLoginBackend(_settings(), transport=httpx.MockTransport(handler))
    result = await backend.login("user@example.com", "secret")

    assert result.access_token == "abc"
    assert result.expires_in == 3600
    assert not result.session_only
    assert str(seen[0].url) == "https://id.test/login"
    assert json.loads(seen[0].content) == {"username": "user@example.com", "password": "secret"}


async def test_direct_login_rejected_credentials() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "nope"}))
    backend = DirectLoginBackend(_settings(), transport=transport)

    with pytest.raises(AuthError) as excinfo:
        await backend.login("user", "wrong")

    assert excinfo.value.code is AuthErrorCode.INVALID_CREDENTIALS
    assert "wrong" not in excinfo.value.message


async def test_oauth_login_exchanges_authorization_code() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/authorize"):
            return httpx.Response(
                302,
                headers={"location": "https://pymes.test/callback?state=x&code=c%2Fode-1&foo=bar"},
            )
        return httpx.Response(200, json={"access_token": "oauth-token", "expires_in": "1800"})

    backend = OAuthCodeBackend(_settings(), transport=httpx.MockTransport(handler))
    result = await backend.login("user", "secret")

    assert result.access_token == "oauth-token"
    assert result.expires_in == 1800
    assert len(seen) == 2

    login_form = parse_qs(seen[0].content.decode())
    assert login_form["username"] == ["user"]
    assert login_form["response_type"] == ["code"]

    exchange_form = parse_qs(seen[1].content.decode())
    assert exchange_form["grant_type"] == ["authorization_code"]
    assert exchange_form["code"] == ["c/ode-1"]
    assert exchange_form["client_id"] == ["client-123"]
    assert exchange_form["redirect_uri"] == ["https://pymes.test/callback"]
    assert exchange_form["scope"] == ["openid offline_access"]


async def test_oauth_login_without_redirect_fails() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>login</html>"))
    backend = OAuthCodeBackend(_settings(), transport=transport)

    with pytest.raises(AuthError) as excinfo:
        await backend.login("user", "secret")

    assert excinfo.value.code is AuthErrorCode.NO_AUTHORIZATION_CODE


async def test_oauth_login_redirect_without_code_fails() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            302, headers={"location": "https://pymes.test/callback?error=access_denied"}
        )
    )
    backend = OAuthCodeBackend(_settings(), transport=transport)

    with pytest.raises(AuthError) as excinfo:
        await backend.login("user", "secret")

    assert excinfo.value.code is AuthErrorCode.NO_AUTHORIZATION_CODE


async def test_oauth_token_exchange_failure_surfaces_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/authorize"):
            return httpx.Response(302, headers={"location": "https://pymes.test/cb?code=abc"})
        return httpx.Response(400, text='{"error":"invalid_grant"}')

    backend = OAuthCodeBackend(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(AuthError) as excinfo:
        await backend.login("user", "secret")

    assert excinfo.value.code is AuthErrorCode.TOKEN_EXCHANGE_FAILED
    assert "invalid_grant" in excinfo.value.message


def test_oauth_backend_requires_client_id() -> None:
    with pytest.raises(ValueError):
        OAuthCodeBackend(_settings(ANDREANI_CLIENT_ID=None))


async def test_static_backend_returns_configured_token() -> None:
    backend = StaticTokenBackend(
        _settings(ANDREANI_STATIC_TOKEN="manual", ANDREANI_DEFAULT_TOKEN_LIFETIME=600)
    )

    result = await backend.login("", "")

    assert result.access_token == "manual"
    assert result.expires_in == 600
    assert backend.requires_credentials is False


async def test_static_backend_without_token_fails() -> None:
    backend = StaticTokenBackend(_settings(ANDREANI_STATIC_TOKEN=None))

    with pytest.raises(AuthError):
        await backend.login("", "")
