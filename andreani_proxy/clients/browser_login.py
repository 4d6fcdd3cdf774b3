"""Form login on the Andreani web portal driven through a headless browser."""

from __future__ import annotations

import json
import logging
from typing import Callable, Dict, Optional
from urllib.parse import urlsplit

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from andreani_proxy.clients.browser import BrowserSession, PlaywrightBrowser
from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode
from andreani_proxy.core.logging import mask_secret
from andreani_proxy.models.token import TokenResult, new_session_marker

logger = logging.getLogger(__name__)

USERNAME_SELECTORS = (
    'input[type="email"]',
    'input[name="signInName"]',
    'input[name="email"]',
    'input[name="username"]',
    "#email",
    "#signInName",
    'input[type="text"]',
)
PASSWORD_SELECTORS = (
    'input[type="password"]',
    'input[name="password"]',
    "#password",
)
SUBMIT_SELECTORS = (
    'button[type="submit"]',
    "button#next",
    "#next",
    'input[type="submit"]',
)
SUBMIT_TEXTS = ("Iniciar sesión", "Ingresar", "Continuar", "Login", "Sign in")
ERROR_SELECTORS = (
    ".error.pageLevel",
    ".alert-danger",
    '[role="alert"]',
    "#error",
    ".error",
)
STORAGE_KEY_HINTS = ("token", "auth", "access")
COOKIE_NAME_HINTS = ("token", "auth", "session")
STORAGE_VALUE_KEYS = ("access_token", "accessToken", "secret")

# Time left for in-flight token requests after the post-login redirect.
SETTLE_MS = 3000

BrowserFactory = Callable[[], BrowserSession]


def _same_page(url: str, other: str) -> bool:
    left, right = urlsplit(url), urlsplit(other)
    return (left.netloc, left.path.rstrip("/")) == (right.netloc, right.path.rstrip("/"))


def _token_from_storage(entries: Dict[str, str]) -> Optional[str]:
    for key, value in entries.items():
        if not value or not any(hint in key.lower() for hint in STORAGE_KEY_HINTS):
            continue
        try:
            parsed = json.loads(value)
        except ValueError:
            return value
        if isinstance(parsed, dict):
            for field in STORAGE_VALUE_KEYS:
                if parsed.get(field):
                    return str(parsed[field])
        elif isinstance(parsed, str) and parsed:
            return parsed
    return None


def _token_from_cookies(cookies: Dict[str, str]) -> Optional[str]:
    for name, value in cookies.items():
        if value and any(hint in name.lower() for hint in COOKIE_NAME_HINTS):
            return value
    return None


class BrowserLoginBackend:
    """Logs in through the portal form and recovers whatever token the page exposes."""

    name = "browser"
    requires_credentials = True

    def __init__(
        self,
        settings: AndreaniSettings,
        *,
        browser_factory: BrowserFactory | None = None,
        settle_ms: int = SETTLE_MS,
    ) -> None:
        self._login_page_url = str(settings.login_page_url)
        self._browser_factory = browser_factory or (lambda: PlaywrightBrowser(settings))
        self._settle_ms = settle_ms

    async def login(self, username: str, password: str) -> TokenResult:
        logger.info("Starting browser login for %s", mask_secret(username))
        try:
            async with self._browser_factory() as browser:
                return await self._login_with(browser, username, password)
        except PlaywrightTimeoutError as exc:
            logger.warning("Browser step timed out during Andreani login")
            raise AuthError(
                AuthErrorCode.LOGIN_TIMEOUT,
                "The Andreani portal did not respond in time during login.",
            ) from exc

    async def _login_with(
        self, browser: BrowserSession, username: str, password: str
    ) -> TokenResult:
        await browser.goto(self._login_page_url)

        username_selector = await browser.find_first(USERNAME_SELECTORS)
        password_selector = await browser.find_first(PASSWORD_SELECTORS)
        if not username_selector or not password_selector:
            raise AuthError(
                AuthErrorCode.LOGIN_FORM_NOT_FOUND,
                "Could not find the login form on the Andreani portal.",
            )

        await browser.fill(username_selector, username)
        await browser.fill(password_selector, password)

        form_url = browser.url
        await self._submit(browser, password_selector)
        await browser.wait_for_url(lambda url: not _same_page(url, form_url))
        await browser.settle(self._settle_ms)

        if _same_page(browser.url, form_url):
            await self._raise_login_failure(browser)

        logger.info("Left the login page, looking for a token")
        token = await self._extract_token(browser)
        if token:
            return TokenResult(access_token=token)

        logger.warning("No token exposed after login; continuing with session cookies")
        return TokenResult(
            access_token=new_session_marker(),
            session_only=True,
            cookies=await browser.cookies(),
        )

    async def _submit(self, browser: BrowserSession, password_selector: str) -> None:
        submit_selector = await browser.find_first(SUBMIT_SELECTORS)
        if submit_selector:
            await browser.click(submit_selector)
            return
        if await browser.click_button_with_text(SUBMIT_TEXTS):
            return
        logger.info("No submit control found, pressing Enter")
        await browser.press(password_selector, "Enter")

    async def _raise_login_failure(self, browser: BrowserSession) -> None:
        for selector in ERROR_SELECTORS:
            message = await browser.text_of(selector)
            if message:
                raise AuthError(AuthErrorCode.INVALID_CREDENTIALS, message)
        raise AuthError(
            AuthErrorCode.STILL_ON_LOGIN_PAGE,
            "Still on the login page after submitting the form.",
        )

    async def _extract_token(self, browser: BrowserSession) -> Optional[str]:
        if browser.request_tokens:
            return browser.request_tokens[-1]
        if browser.response_tokens:
            return browser.response_tokens[-1]
        token = _token_from_storage(await browser.local_storage())
        if token:
            return token
        return _token_from_cookies(await browser.cookies())


__all__ = ["BrowserFactory", "BrowserLoginBackend"]
