"""
Error taxonomy shared by the authentication backends, the token manager,
the carrier gateway and the HTTP layer.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any, Optional


class AuthErrorCode(str, Enum):
    """Machine readable reasons for an authentication failure."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    NO_AUTHORIZATION_CODE = "NO_AUTHORIZATION_CODE"
    TOKEN_EXCHANGE_FAILED = "TOKEN_EXCHANGE_FAILED"
    LOGIN_FORM_NOT_FOUND = "LOGIN_FORM_NOT_FOUND"
    STILL_ON_LOGIN_PAGE = "STILL_ON_LOGIN_PAGE"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    LOGIN_TIMEOUT = "LOGIN_TIMEOUT"


class ProxyError(Exception):
    """Base class for errors rendered as ``{success: false, error, message}``."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.error_code, "message": self.message}


class AuthError(ProxyError):
    """The carrier identity system refused us; recoverable by logging in again."""

    status_code = HTTPStatus.UNAUTHORIZED

    def __init__(self, code: AuthErrorCode, message: Optional[str] = None) -> None:
        super().__init__(message or code.value.replace("_", " ").capitalize())
        self.code = code

    @property
    def error_code(self) -> str:  # type: ignore[override]
        return self.code.value


class CarrierError(ProxyError):
    """The carrier rejected an authenticated, well-formed request."""

    error_code = "CARRIER_ERROR"

    def __init__(self, status: int, body: Any, message: Optional[str] = None) -> None:
        super().__init__(message or f"Andreani responded with HTTP {status}.")
        self.status = status
        self.body = body

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if 400 <= self.status <= 599:
            return self.status
        return HTTPStatus.INTERNAL_SERVER_ERROR

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["details"] = self.body
        return payload


class ValidationError(ProxyError):
    """The inbound request is missing required fields."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "VALIDATION_ERROR"


class InternalError(ProxyError):
    """Unexpected failure such as a browser crash."""


__all__ = [
    "AuthError",
    "AuthErrorCode",
    "CarrierError",
    "InternalError",
    "ProxyError",
    "ValidationError",
]
