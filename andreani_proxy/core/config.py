"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token manager and the
carrier gateway share a consistent configuration surface. Everything is read
once from the environment (or a ``.env`` file) at process start.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

AuthStrategy = Literal["direct", "oauth2", "browser", "static"]
QuoteShape = Literal["public", "private"]
QuoteTransport = Literal["signalr", "rest"]


class AndreaniSettings(BaseSettings):
    """Configuration required for talking to the Andreani identity and APIs."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    auth_strategy: AuthStrategy = Field(
        "direct",
        validation_alias="ANDREANI_AUTH_STRATEGY",
        description="Login backend used to obtain carrier tokens.",
    )
    quote_shape: QuoteShape = Field(
        "public",
        validation_alias="ANDREANI_QUOTE_SHAPE",
        description="Request builder used for quotes: public tariffs or private quote.",
    )
    api_key: Optional[str] = Field(None, validation_alias="ANDREANI_API_KEY")

    login_url: AnyHttpUrl = Field(
        "https://api.andreani.com/login", validation_alias="ANDREANI_LOGIN_URL"
    )
    authorize_url: AnyHttpUrl = Field(
        "https://onboarding.andreani.com/andreanib2c.onmicrosoft.com/b2c_1_signin/oauth2/v2.0/authorize",
        validation_alias="ANDREANI_AUTHORIZE_URL",
    )
    token_url: AnyHttpUrl = Field(
        "https://onboarding.andreani.com/andreanib2c.onmicrosoft.com/b2c_1_signin/oauth2/v2.0/token",
        validation_alias="ANDREANI_TOKEN_URL",
    )
    client_id: Optional[str] = Field(None, validation_alias="ANDREANI_CLIENT_ID")
    redirect_uri: str = Field(
        "https://pymes.andreani.com/", validation_alias="ANDREANI_REDIRECT_URI"
    )
    scope: str = Field("openid offline_access", validation_alias="ANDREANI_SCOPE")

    login_page_url: AnyHttpUrl = Field(
        "https://onboarding.andreani.com/", validation_alias="ANDREANI_LOGIN_PAGE_URL"
    )
    browser_executable_path: Optional[str] = Field(
        None,
        validation_alias="CHROME_PATH",
        description="Optional Chromium binary; Playwright's bundled build is used otherwise.",
    )
    headless: bool = Field(True, validation_alias="ANDREANI_HEADLESS")
    browser_timeout_ms: int = Field(30000, validation_alias="ANDREANI_BROWSER_TIMEOUT_MS")

    static_token: Optional[str] = Field(None, validation_alias="ANDREANI_STATIC_TOKEN")

    tariff_url: AnyHttpUrl = Field(
        "https://apis.andreani.com/v1/tarifas", validation_alias="ANDREANI_TARIFF_URL"
    )
    quote_url: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="ANDREANI_QUOTE_URL",
        description="REST quote endpoint, only used with ANDREANI_QUOTE_TRANSPORT=rest.",
    )
    quote_transport: QuoteTransport = Field(
        "signalr",
        validation_alias="ANDREANI_QUOTE_TRANSPORT",
        description="How private quotes are sent: the Cotizar hub method or a REST POST.",
    )
    quote_hub_url: AnyHttpUrl = Field(
        "https://pymes-api.andreani.com/hubCotizacion",
        validation_alias="ANDREANI_QUOTE_HUB_URL",
    )
    shipment_url: AnyHttpUrl = Field(
        "https://pymes-api.andreani.com/api/v1/Envios",
        validation_alias="ANDREANI_SHIPMENT_URL",
    )

    token_safety_factor: float = Field(
        0.9,
        validation_alias="ANDREANI_TOKEN_SAFETY_FACTOR",
        description="Fraction of the provider lifetime a token is trusted for.",
    )
    default_token_lifetime: int = Field(
        7200,
        validation_alias="ANDREANI_DEFAULT_TOKEN_LIFETIME",
        description="Lifetime in seconds assumed when the provider does not report one.",
    )
    http_timeout: float = Field(30.0, validation_alias="ANDREANI_HTTP_TIMEOUT")
    login_timeout: float = Field(90.0, validation_alias="ANDREANI_LOGIN_TIMEOUT")

    @field_validator("token_safety_factor")
    @classmethod
    def _check_safety_factor(cls, value: float) -> float:
        """The margin must shorten the lifetime, never extend it."""
        if not 0 < value <= 1:
            raise ValueError("token_safety_factor must be within (0, 1].")
        return value

    @field_validator("browser_executable_path", "static_token", "api_key", "client_id")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(3000, validation_alias="PORT")
    andreani: AndreaniSettings = Field(default_factory=AndreaniSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AndreaniSettings",
    "AppSettings",
    "AuthStrategy",
    "QuoteShape",
    "QuoteTransport",
    "get_settings",
]
