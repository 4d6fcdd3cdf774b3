try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio

import pytest

from andreani_proxy.core.errors import AuthError, AuthErrorCode, ValidationError
from andreani_proxy.models.token import TokenResult
from andreani_proxy.services.credential_store import CredentialStore
from andreani_proxy.services.token_manager import TokenManager

pytestmark = pytest.mark.anyio


class CountingBackend:
    name = "fake"
    requires_credentials = True

    def __init__(self, *, expires_in: int | None = 1000) -> None:
        self.expires_in = expires_in
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def login(self, username: str, password: str) -> TokenResult:
        self.calls.append((username, password))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return TokenResult(access_token=f"token-{len(self.calls)}", expires_in=self.expires_in)


class SlowBackend:
    name = "slow"
    requires_credentials = True

    def __init__(self) -> None:
        self.released = False

    async def login(self, username: str, password: str) -> TokenResult:
        try:
            await asyncio.sleep(5)
        finally:
            self.released = True
        return TokenResult(access_token="never")


def _manager(backend, clock, **kwargs) -> TokenManager:
    return TokenManager(backend, CredentialStore(safety_factor=0.9, clock=clock), **kwargs)


async def test_second_call_within_margin_hits_cache(clock) -> None:
    backend = CountingBackend()
    manager = _manager(backend, clock)

    first = await manager.get_token(username="user", password="pass")
    clock.advance(100)
    second = await manager.get_token(username="user", password="pass")

    assert first.token == second.token == "token-1"
    assert len(backend.calls) == 1


async def test_token_is_renewed_after_safety_margin(clock) -> None:
    backend = CountingBackend(expires_in=1000)
    manager = _manager(backend, clock)

    await manager.get_token(username="user", password="pass")
    clock.advance(950)
    renewed = await manager.get_token(username="user", password="pass")

    assert renewed.token == "token-2"
    assert len(backend.calls) == 2


async def test_missing_expires_in_uses_default_lifetime(clock) -> None:
    backend = CountingBackend(expires_in=None)
    manager = _manager(backend, clock, default_lifetime=100)

    await manager.get_token(username="user", password="pass")

    assert manager.expires_in() == 90


async def test_concurrent_callers_share_one_login(clock) -> None:
    backend = CountingBackend()
    backend.gate = asyncio.Event()
    manager = _manager(backend, clock)

    tasks = [
        asyncio.ensure_future(manager.get_token(username="user", password="pass"))
        for _ in range(5)
    ]
    await asyncio.sleep(0)
    backend.gate.set()
    credentials = await asyncio.gather(*tasks)

    assert len(backend.calls) == 1
    assert {credential.token for credential in credentials} == {"token-1"}


async def test_concurrent_callers_share_login_failure(clock) -> None:
    backend = CountingBackend()
    backend.gate = asyncio.Event()
    backend.error = AuthError(AuthErrorCode.INVALID_CREDENTIALS)
    manager = _manager(backend, clock)

    tasks = [
        asyncio.ensure_future(manager.get_token(username="user", password="bad"))
        for _ in range(3)
    ]
    await asyncio.sleep(0)
    backend.gate.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert len(backend.calls) == 1
    assert all(isinstance(result, AuthError) for result in results)
    assert manager.status()["token_cached"] is False


async def test_failed_login_leaves_cache_empty_and_next_call_retries(clock) -> None:
    backend = CountingBackend()
    backend.error = AuthError(AuthErrorCode.INVALID_CREDENTIALS)
    manager = _manager(backend, clock)

    with pytest.raises(AuthError) as excinfo:
        await manager.get_token(username="user", password="bad")
    assert excinfo.value.code is AuthErrorCode.INVALID_CREDENTIALS

    backend.error = None
    credential = await manager.get_token(username="user", password="good")
    assert credential.token == "token-2"


async def test_explicit_token_never_triggers_login(clock) -> None:
    backend = CountingBackend()
    manager = _manager(backend, clock)

    credential = await manager.get_token(explicit_token="caller-token")

    assert credential.token == "caller-token"
    assert not credential.session_only
    assert backend.calls == []


async def test_explicit_session_marker_resolves_to_cached_session(clock) -> None:
    class SessionBackend:
        name = "browser"
        requires_credentials = True

        async def login(self, username: str, password: str) -> TokenResult:
            return TokenResult(
                access_token="session-xyz", session_only=True, cookies={"sid": "1"}
            )

    manager = _manager(SessionBackend(), clock)
    await manager.get_token(username="user", password="pass")

    credential = await manager.get_token(explicit_token="session-xyz")

    assert credential.session_only
    assert credential.cookies == {"sid": "1"}


async def test_stale_session_marker_is_rejected(clock) -> None:
    backend = CountingBackend()
    manager = _manager(backend, clock)

    with pytest.raises(AuthError) as excinfo:
        await manager.get_token(explicit_token="session-0f3a9c")

    assert excinfo.value.code is AuthErrorCode.TOKEN_EXPIRED
    assert backend.calls == []


async def test_invalidate_forces_fresh_login(clock) -> None:
    backend = CountingBackend()
    manager = _manager(backend, clock)

    await manager.get_token(username="user", password="pass")
    manager.invalidate()
    credential = await manager.get_token(username="user", password="pass")

    assert credential.token == "token-2"
    assert len(backend.calls) == 2


async def test_refresh_discards_valid_token(clock) -> None:
    backend = CountingBackend()
    manager = _manager(backend, clock)

    await manager.get_token(username="user", password="pass")
    credential = await manager.refresh(username="user", password="pass")

    assert credential.token == "token-2"


async def test_login_without_credentials_is_rejected(clock) -> None:
    backend = CountingBackend()
    manager = _manager(backend, clock)

    with pytest.raises(ValidationError):
        await manager.get_token()
    assert backend.calls == []


async def test_login_timeout_releases_backend(clock) -> None:
    backend = SlowBackend()
    manager = _manager(backend, clock, login_timeout=0.05)

    with pytest.raises(AuthError) as excinfo:
        await manager.get_token(username="user", password="pass")

    assert excinfo.value.code is AuthErrorCode.LOGIN_TIMEOUT
    assert backend.released
    assert manager.status() == {
        "token_cached": False,
        "token_valid": False,
        "token_expires_in": 0,
    }


async def test_status_reports_cached_token(clock) -> None:
    manager = _manager(CountingBackend(expires_in=1000), clock)
    await manager.get_token(username="user", password="pass")

    clock.advance(10)

    assert manager.status() == {
        "token_cached": True,
        "token_valid": True,
        "token_expires_in": 890,
    }
