"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The credential store, token manager and gateway are process-wide singletons:
one cached Andreani token per running service.
"""

from functools import lru_cache

from andreani_proxy.clients import (
    AndreaniGateway,
    AuthBackend,
    BrowserLoginBackend,
    DirectLoginBackend,
    OAuthCodeBackend,
    StaticTokenBackend,
)
from andreani_proxy.core.config import AndreaniSettings, get_settings
from andreani_proxy.services import CredentialStore, TokenManager


@lru_cache()
def _settings() -> AndreaniSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings().andreani


def build_auth_backend(settings: AndreaniSettings) -> AuthBackend:
    """Instantiate the login strategy selected by ``ANDREANI_AUTH_STRATEGY``."""
    if settings.auth_strategy == "direct":
        return DirectLoginBackend(settings)
    if settings.auth_strategy == "oauth2":
        return OAuthCodeBackend(settings)
    if settings.auth_strategy == "browser":
        return BrowserLoginBackend(settings)
    return StaticTokenBackend(settings)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the in-memory token cache."""
    return CredentialStore(safety_factor=_settings().token_safety_factor)


@lru_cache()
def get_auth_backend() -> AuthBackend:
    """Provide the configured login backend."""
    return build_auth_backend(_settings())


@lru_cache()
def get_token_manager() -> TokenManager:
    """Provide the token manager shared by every request."""
    settings = _settings()
    return TokenManager(
        get_auth_backend(),
        get_credential_store(),
        default_lifetime=settings.default_token_lifetime,
        login_timeout=settings.login_timeout,
    )


@lru_cache()
def get_andreani_gateway() -> AndreaniGateway:
    """Provide the Andreani quote/shipment gateway."""
    return AndreaniGateway(_settings(), get_token_manager())


__all__ = [
    "build_auth_backend",
    "get_andreani_gateway",
    "get_auth_backend",
    "get_credential_store",
    "get_token_manager",
]
