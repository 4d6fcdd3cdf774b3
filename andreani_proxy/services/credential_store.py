"""In-memory store for the single carrier credential of this process."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from andreani_proxy.models.token import Credential, TokenRecord, TokenResult

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore:
    """Holds at most one token record; nothing is written to disk."""

    def __init__(self, *, safety_factor: float = 0.9, clock: Clock = utcnow) -> None:
        if not 0 < safety_factor <= 1:
            raise ValueError("safety_factor must be within (0, 1].")
        self._safety_factor = safety_factor
        self._clock = clock
        self._record: Optional[TokenRecord] = None

    @property
    def record(self) -> Optional[TokenRecord]:
        return self._record

    def now(self) -> datetime:
        return self._clock()

    def store(self, result: TokenResult, *, lifetime: int) -> TokenRecord:
        """Cache a login result, trusting it for ``lifetime * safety_factor`` seconds."""
        issued_at = self._clock()
        effective = timedelta(seconds=lifetime * self._safety_factor)
        self._record = TokenRecord(
            credential=Credential(
                token=result.access_token,
                session_only=result.session_only,
                cookies=dict(result.cookies),
            ),
            issued_at=issued_at,
            expires_at=issued_at + effective,
            provider_lifetime=lifetime,
        )
        return self._record

    def valid_credential(self) -> Optional[Credential]:
        """Return the cached credential unless it is missing or past its margin."""
        if self._record is None or not self._record.is_valid(self._clock()):
            return None
        return self._record.credential

    def seconds_remaining(self) -> int:
        if self._record is None:
            return 0
        remaining = (self._record.expires_at - self._clock()).total_seconds()
        return max(int(remaining), 0)

    def clear(self) -> None:
        self._record = None


__all__ = ["Clock", "CredentialStore", "utcnow"]
