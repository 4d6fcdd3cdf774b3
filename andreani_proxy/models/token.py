"""
Domain models for carrier credentials held in memory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional
from uuid import uuid4

SESSION_MARKER_PREFIX = "session-"


def new_session_marker() -> str:
    """Opaque token handed to callers when only a cookie session exists."""
    return f"{SESSION_MARKER_PREFIX}{uuid4().hex}"


def is_session_marker(token: str) -> bool:
    return token.startswith(SESSION_MARKER_PREFIX)


@dataclass(slots=True)
class TokenResult:
    """Outcome of a successful backend login.

    ``session_only`` marks a login that left the login page without exposing
    a bearer token; ``access_token`` then holds a locally generated marker and
    ``cookies`` carries the session cookies captured by the browser.
    """

    access_token: str
    expires_in: Optional[int] = None
    session_only: bool = False
    cookies: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Credential:
    """A token as handed to the carrier gateway."""

    token: str
    session_only: bool = False
    cookies: Dict[str, str] = field(default_factory=dict)

    def auth_headers(self) -> Dict[str, str]:
        if self.session_only:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


@dataclass(slots=True)
class TokenRecord:
    """The cached credential and its validity window."""

    credential: Credential
    issued_at: datetime
    expires_at: datetime
    provider_lifetime: int

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


__all__ = [
    "Credential",
    "SESSION_MARKER_PREFIX",
    "TokenRecord",
    "TokenResult",
    "is_session_marker",
    "new_session_marker",
]
