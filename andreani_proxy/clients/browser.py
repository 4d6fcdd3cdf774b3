"""
Headless browser access for form based logins.

The login backend only talks to :class:`BrowserSession`; the Playwright
implementation below is the production adapter. A session is an async
context manager and the browser process is closed on every exit path.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Request,
    Response,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode, InternalError

logger = logging.getLogger(__name__)

_QUERY_TOKEN = re.compile(r"[?&#]access_token=([^&#]+)")
_MIN_PROBE_TIMEOUT_MS = 500


class BrowserSession(Protocol):
    """Narrow view of a browser page used by the login backend."""

    url: str
    request_tokens: List[str]
    response_tokens: List[str]

    async def __aenter__(self) -> "BrowserSession":
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        ...

    async def goto(self, url: str) -> None:
        ...

    async def find_first(self, selectors: Sequence[str]) -> Optional[str]:
        ...

    async def fill(self, selector: str, value: str) -> None:
        ...

    async def click(self, selector: str) -> None:
        ...

    async def click_button_with_text(self, texts: Sequence[str]) -> bool:
        ...

    async def press(self, selector: str, key: str) -> None:
        ...

    async def wait_for_url(self, predicate: Callable[[str], bool]) -> bool:
        ...

    async def settle(self, milliseconds: int) -> None:
        ...

    async def text_of(self, selector: str) -> Optional[str]:
        ...

    async def local_storage(self) -> Dict[str, str]:
        ...

    async def cookies(self) -> Dict[str, str]:
        ...


class PlaywrightBrowser:
    """Chromium driven through Playwright, sniffing tokens off the wire."""

    def __init__(self, settings: AndreaniSettings) -> None:
        self._settings = settings
        self._timeout_ms = settings.browser_timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self.request_tokens: List[str] = []
        self.response_tokens: List[str] = []

    async def __aenter__(self) -> "PlaywrightBrowser":
        try:
            await self._launch()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            await self.close()
        except PlaywrightError:
            if exc_type is None:
                raise
            logger.warning("Browser teardown failed after an earlier error", exc_info=True)

    async def _launch(self) -> None:
        logger.info("Launching headless Chromium for Andreani login")
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._settings.headless,
                executable_path=self._settings.browser_executable_path,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
        except PlaywrightError as exc:
            raise InternalError(f"Could not launch the browser: {exc}") from exc
        self._context = await self._browser.new_context(locale="es-AR")
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self._timeout_ms)
        self._page.set_default_navigation_timeout(self._timeout_ms * 2)
        self._page.on("request", self._on_request)
        self._page.on("response", self._on_response)

    async def close(self) -> None:
        """Close the context, browser and driver; later stages run even if one fails."""
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._page = None
        self._browser = None
        self._playwright = None
        try:
            if context:
                await context.close()
        finally:
            try:
                if browser:
                    await browser.close()
            finally:
                if playwright:
                    await playwright.stop()
                    logger.info("Browser closed")

    def _on_request(self, request: Request) -> None:
        match = _QUERY_TOKEN.search(request.url)
        if match:
            logger.info("Token captured from outgoing request")
            self.request_tokens.append(match.group(1))

    def _on_response(self, response: Response) -> None:
        header = response.headers.get("authorization", "")
        if header.startswith("Bearer "):
            logger.info("Token captured from response header")
            self.response_tokens.append(header[len("Bearer "):])

    @property
    def page(self) -> Page:
        if self._page is None:
            raise InternalError("Browser session is not open.")
        return self._page

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str) -> None:
        try:
            await self.page.goto(url, wait_until="networkidle")
        except PlaywrightTimeoutError as exc:
            raise AuthError(
                AuthErrorCode.LOGIN_TIMEOUT, "Andreani login page did not load in time."
            ) from exc

    async def find_first(self, selectors: Sequence[str]) -> Optional[str]:
        per_selector = max(self._timeout_ms // max(len(selectors), 1), _MIN_PROBE_TIMEOUT_MS)
        for selector in selectors:
            try:
                await self.page.locator(selector).first.wait_for(
                    state="visible", timeout=per_selector
                )
            except PlaywrightTimeoutError:
                continue
            return selector
        return None

    async def fill(self, selector: str, value: str) -> None:
        await self.page.locator(selector).first.fill(value)

    async def click(self, selector: str) -> None:
        await self.page.locator(selector).first.click()

    async def click_button_with_text(self, texts: Sequence[str]) -> bool:
        pattern = re.compile("|".join(re.escape(text) for text in texts), re.IGNORECASE)
        buttons = self.page.locator("button").filter(has_text=pattern)
        if await buttons.count() == 0:
            return False
        await buttons.first.click()
        return True

    async def press(self, selector: str, key: str) -> None:
        await self.page.locator(selector).first.press(key)

    async def wait_for_url(self, predicate: Callable[[str], bool]) -> bool:
        try:
            await self.page.wait_for_url(predicate, timeout=self._timeout_ms)
        except PlaywrightTimeoutError:
            return False
        return True

    async def settle(self, milliseconds: int) -> None:
        await self.page.wait_for_timeout(milliseconds)

    async def text_of(self, selector: str) -> Optional[str]:
        locator = self.page.locator(selector).first
        if await self.page.locator(selector).count() == 0:
            return None
        if not await locator.is_visible():
            return None
        return (await locator.inner_text()).strip() or None

    async def local_storage(self) -> Dict[str, str]:
        return await self.page.evaluate(
            "() => Object.fromEntries(Object.entries(window.localStorage))"
        )

    async def cookies(self) -> Dict[str, str]:
        if self._context is None:
            return {}
        return {cookie["name"]: cookie["value"] for cookie in await self._context.cookies()}


__all__ = ["BrowserSession", "PlaywrightBrowser"]
