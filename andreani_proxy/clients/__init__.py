"""Expose constructed client wrappers."""

from .andreani_api import AndreaniGateway
from .andreani_auth import (
    AuthBackend,
    DirectLoginBackend,
    OAuthCodeBackend,
    StaticTokenBackend,
)
from .browser import BrowserSession, PlaywrightBrowser
from .browser_login import BrowserLoginBackend
from .quote_hub import QuoteHub, SignalRQuoteHub

__all__ = [
    "AndreaniGateway",
    "AuthBackend",
    "BrowserLoginBackend",
    "BrowserSession",
    "DirectLoginBackend",
    "OAuthCodeBackend",
    "PlaywrightBrowser",
    "QuoteHub",
    "SignalRQuoteHub",
    "StaticTokenBackend",
]
