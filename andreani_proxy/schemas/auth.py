"""Schemas for the login endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials used to log in to the Andreani portal."""

    username: Optional[str] = Field(None, description="Andreani account user or e-mail.")
    password: Optional[str] = Field(None, description="Andreani account password.")


class LoginResponse(BaseModel):
    """Token handed back to the calling application."""

    success: bool = True
    access_token: str
    expires_in: int = Field(..., description="Seconds until the proxy stops trusting the token.")
    session_only: bool = Field(
        False,
        description="True when the carrier exposed no bearer token and a session marker is returned.",
    )


__all__ = ["LoginRequest", "LoginResponse"]
