"""
Andreani login backends.

Each backend turns a username/password pair into a :class:`TokenResult`,
raising :class:`AuthError` when the identity system refuses the attempt.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol
from urllib.parse import unquote

import httpx

from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode
from andreani_proxy.core.logging import mask_secret
from andreani_proxy.models.token import TokenResult

logger = logging.getLogger(__name__)

_CODE_PATTERN = re.compile(r"[?&#]code=([^&#]+)")


class AuthBackend(Protocol):
    """Strategy capable of obtaining a fresh carrier token."""

    name: str
    requires_credentials: bool

    async def login(self, username: str, password: str) -> TokenResult:
        ...


def _expires_in(payload: dict) -> Optional[int]:
    raw = payload.get("expires_in") or payload.get("expiresIn")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class DirectLoginBackend:
    """Single JSON POST of the credentials to the carrier login endpoint."""

    name = "direct"
    requires_credentials = True

    def __init__(
        self,
        settings: AndreaniSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def login(self, username: str, password: str) -> TokenResult:
        logger.info("Logging in to Andreani as %s via REST", mask_secret(username))
        headers = {}
        if self._settings.api_key:
            headers["x-api-key"] = self._settings.api_key

        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout, transport=self._transport
        ) as client:
            response = await client.post(
                str(self._settings.login_url),
                json={"username": username, "password": password},
                headers=headers,
            )

        if not response.is_success:
            logger.warning("Andreani login rejected with HTTP %s", response.status_code)
            raise AuthError(
                AuthErrorCode.INVALID_CREDENTIALS,
                f"Andreani rejected the credentials (HTTP {response.status_code}).",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError(
                AuthErrorCode.INVALID_CREDENTIALS,
                "Andreani login returned a non-JSON body.",
            ) from exc

        access_token = payload.get("access_token") or payload.get("token")
        if not access_token:
            raise AuthError(
                AuthErrorCode.INVALID_CREDENTIALS,
                "Andreani login response did not include an access token.",
            )
        return TokenResult(access_token=access_token, expires_in=_expires_in(payload))


class OAuthCodeBackend:
    """
    OAuth2 authorization-code flow against the Andreani B2C tenant.

    The credentials are posted to the authorize endpoint, which answers with a
    redirect carrying ``code=...``; that code is then exchanged for a token.
    """

    name = "oauth2"
    requires_credentials = True

    def __init__(
        self,
        settings: AndreaniSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.client_id:
            raise ValueError("ANDREANI_CLIENT_ID is required for the oauth2 strategy.")
        self._settings = settings
        self._transport = transport

    async def login(self, username: str, password: str) -> TokenResult:
        logger.info("Starting OAuth2 login for %s", mask_secret(username))
        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout,
            transport=self._transport,
            follow_redirects=False,
        ) as client:
            code = await self._request_authorization_code(client, username, password)
            return await self._exchange_code(client, code)

    async def _request_authorization_code(
        self, client: httpx.AsyncClient, username: str, password: str
    ) -> str:
        response = await client.post(
            str(self._settings.authorize_url),
            data={
                "username": username,
                "password": password,
                "client_id": self._settings.client_id,
                "redirect_uri": self._settings.redirect_uri,
                "response_type": "code",
                "scope": self._settings.scope,
            },
        )
        location = response.headers.get("location")
        if not response.is_redirect or not location:
            logger.warning(
                "Authorize endpoint answered HTTP %s without a redirect",
                response.status_code,
            )
            raise AuthError(
                AuthErrorCode.NO_AUTHORIZATION_CODE,
                "Login did not redirect with an authorization code.",
            )

        match = _CODE_PATTERN.search(location)
        if not match:
            raise AuthError(
                AuthErrorCode.NO_AUTHORIZATION_CODE,
                "Redirect location did not contain an authorization code.",
            )
        return unquote(match.group(1))

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> TokenResult:
        response = await client.post(
            str(self._settings.token_url),
            data={
                "client_id": self._settings.client_id,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._settings.redirect_uri,
                "scope": self._settings.scope,
            },
        )
        if not response.is_success:
            raise AuthError(
                AuthErrorCode.TOKEN_EXCHANGE_FAILED,
                f"Token exchange failed (HTTP {response.status_code}): {response.text}",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError(
                AuthErrorCode.TOKEN_EXCHANGE_FAILED,
                f"Token endpoint returned a non-JSON body: {response.text}",
            ) from exc

        access_token = payload.get("access_token")
        if not access_token:
            raise AuthError(
                AuthErrorCode.TOKEN_EXCHANGE_FAILED,
                "Incomplete token payload returned from Andreani.",
            )
        return TokenResult(access_token=access_token, expires_in=_expires_in(payload))


class StaticTokenBackend:
    """Hands out a token supplied by an operator through configuration."""

    name = "static"
    requires_credentials = False

    def __init__(self, settings: AndreaniSettings) -> None:
        self._token = settings.static_token
        self._lifetime = settings.default_token_lifetime

    async def login(self, username: str, password: str) -> TokenResult:
        if not self._token:
            raise AuthError(
                AuthErrorCode.INVALID_CREDENTIALS,
                "No static token configured (ANDREANI_STATIC_TOKEN).",
            )
        return TokenResult(access_token=self._token, expires_in=self._lifetime)


__all__ = [
    "AuthBackend",
    "DirectLoginBackend",
    "OAuthCodeBackend",
    "StaticTokenBackend",
]
