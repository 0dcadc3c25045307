"""Issuing opaque check-in tokens."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from kids_checkin.services.clock import Clock, utc_now

TOKEN_BYTES = 32
DEFAULT_TTL = timedelta(minutes=15)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass
class TokenIssuer:
    """Generates unguessable tokens with a fixed time-to-live."""

    ttl: timedelta = DEFAULT_TTL
    clock: Clock = field(default=utc_now)

    def issue(self, ttl: timedelta | None = None) -> IssuedToken:
        """Return a fresh URL-safe token expiring ``ttl`` from now."""
        return IssuedToken(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            expires_at=self.clock() + (self.ttl if ttl is None else ttl),
        )
