"""
Cache-or-login orchestration for the Andreani bearer token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from andreani_proxy.core.errors import AuthError, AuthErrorCode, ValidationError
from andreani_proxy.models.token import Credential, is_session_marker
from andreani_proxy.services.credential_store import CredentialStore

if TYPE_CHECKING:
    from andreani_proxy.clients.andreani_auth import AuthBackend

logger = logging.getLogger(__name__)


class TokenManager:
    """
    Hands out carrier credentials, logging in only when the cache is empty or
    past its safety margin.

    Logins are single-flight: callers arriving while a login is running await
    that same login and receive its token (or its error). The backend is never
    driven twice in parallel, which matters for the browser strategy and for an
    identity provider that locks accounts after bursts of attempts.
    """

    def __init__(
        self,
        backend: AuthBackend,
        store: CredentialStore,
        *,
        default_lifetime: int = 7200,
        login_timeout: float = 90.0,
    ) -> None:
        self._backend = backend
        self._store = store
        self._default_lifetime = default_lifetime
        self._login_timeout = login_timeout
        self._inflight: Optional[asyncio.Future[Credential]] = None

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def requires_credentials(self) -> bool:
        return self._backend.requires_credentials

    async def get_token(
        self,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        explicit_token: Optional[str] = None,
    ) -> Credential:
        """Return a usable credential, preferring a caller supplied token."""
        if explicit_token:
            return self._explicit(explicit_token)

        cached = self._store.valid_credential()
        if cached is not None:
            logger.debug("Using cached Andreani token")
            return cached

        logger.info("No valid Andreani token cached, logging in")
        return await self._login_once(username, password)

    async def refresh(self, *, username: Optional[str], password: Optional[str]) -> Credential:
        """Drop the cached token and log in again."""
        self.invalidate()
        return await self._login_once(username, password)

    def invalidate(self) -> None:
        if self._store.record is not None:
            logger.info("Invalidating cached Andreani token")
        self._store.clear()

    def status(self) -> Dict[str, Any]:
        return {
            "token_cached": self._store.record is not None,
            "token_valid": self._store.valid_credential() is not None,
            "token_expires_in": self._store.seconds_remaining(),
        }

    def expires_in(self) -> int:
        return self._store.seconds_remaining()

    def _explicit(self, token: str) -> Credential:
        record = self._store.record
        if record is not None and record.credential.session_only and record.credential.token == token:
            return record.credential
        if is_session_marker(token):
            logger.info("Session marker no longer matches a cached browser session")
            raise AuthError(
                AuthErrorCode.TOKEN_EXPIRED,
                "The browser session behind this token has ended; log in again.",
            )
        return Credential(token=token)

    async def _login_once(self, username: Optional[str], password: Optional[str]) -> Credential:
        if self._backend.requires_credentials and not (username and password):
            raise ValidationError("username and password are required when no token is supplied.")

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._login(username or "", password or ""))
        else:
            logger.info("Joining Andreani login already in progress")
        return await asyncio.shield(self._inflight)

    async def _login(self, username: str, password: str) -> Credential:
        try:
            result = await asyncio.wait_for(
                self._backend.login(username, password), timeout=self._login_timeout
            )
        except asyncio.TimeoutError as exc:
            logger.error("Andreani login timed out after %ss", self._login_timeout)
            raise AuthError(
                AuthErrorCode.LOGIN_TIMEOUT,
                f"Login did not complete within {self._login_timeout:g} seconds.",
            ) from exc
        except AuthError as exc:
            logger.warning("Andreani login failed: %s", exc.error_code)
            raise
        finally:
            self._inflight = None

        lifetime = result.expires_in or self._default_lifetime
        record = self._store.store(result, lifetime=lifetime)
        logger.info(
            "Andreani token cached (%s, valid until %s)",
            "session only" if result.session_only else "bearer",
            record.expires_at.isoformat(),
        )
        return record.credential


__all__ = ["TokenManager"]
