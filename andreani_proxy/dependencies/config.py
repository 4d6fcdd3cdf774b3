"""
FastAPI dependency utilities for injecting configuration.
"""

from functools import lru_cache

from fastapi import Depends

from andreani_proxy.core.config import AndreaniSettings, AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_andreani_settings(
    settings: AppSettings = Depends(get_app_settings),
) -> AndreaniSettings:
    """FastAPI dependency returning only the carrier section."""
    return settings.andreani


__all__ = ["get_andreani_settings", "get_app_settings"]
