try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest
from playwright.async_api import Error as PlaywrightError

from andreani_proxy.clients.browser import PlaywrightBrowser
from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode

pytestmark = pytest.mark.anyio


class Stage:
    """Stands in for a Playwright context, browser or driver."""

    def __init__(self, *, crash: bool = False) -> None:
        self.crash = crash
        self.closed = False

    async def close(self) -> None:
        self.closed = True
        if self.crash:
            raise PlaywrightError("Target page, context or browser has been closed")

    async def stop(self) -> None:
        self.closed = True


def _open_browser(*, context_crashes: bool = False):
    adapter = PlaywrightBrowser(AndreaniSettings())
    context, browser, driver = Stage(crash=context_crashes), Stage(), Stage()
    adapter._context, adapter._browser, adapter._playwright = context, browser, driver
    return adapter, context, browser, driver


async def test_close_releases_every_stage() -> None:
    adapter, context, browser, driver = _open_browser()

    await adapter.__aexit__(None, None, None)

    assert context.closed and browser.closed and driver.closed


async def test_close_continues_after_context_crash() -> None:
    adapter, _, browser, driver = _open_browser(context_crashes=True)

    with pytest.raises(PlaywrightError):
        await adapter.__aexit__(None, None, None)

    assert browser.closed
    assert driver.closed


async def test_teardown_failure_does_not_mask_login_error() -> None:
    adapter, _, browser, driver = _open_browser(context_crashes=True)
    error = AuthError(AuthErrorCode.STILL_ON_LOGIN_PAGE)

    await adapter.__aexit__(AuthError, error, None)

    assert browser.closed
    assert driver.closed


async def test_close_is_idempotent() -> None:
    adapter, context, _, _ = _open_browser()

    await adapter.close()
    context.closed = False
    await adapter.close()

    assert context.closed is False
