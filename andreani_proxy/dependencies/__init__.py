"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_auth_backend,
    get_andreani_gateway,
    get_auth_backend,
    get_credential_store,
    get_token_manager,
)
from .config import get_andreani_settings, get_app_settings

__all__ = [
    "build_auth_backend",
    "get_andreani_gateway",
    "get_andreani_settings",
    "get_app_settings",
    "get_auth_backend",
    "get_credential_store",
    "get_token_manager",
]
