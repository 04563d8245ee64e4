"""
Domain models for OAuth credential tracking.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialRecord(BaseModel):
    """OAuth credentials held for a single user key."""

    model_config = ConfigDict(frozen=True)

    user_key: str = Field(..., min_length=1, description="Opaque caller-supplied user key.")
    access_token: str
    refresh_token: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_fresh(self, *, margin: timedelta, now: datetime | None = None) -> bool:
        """Return True while the access token outlives ``now + margin``."""
        current = now or _utcnow()
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at > current + margin


class TokenGrant(BaseModel):
    """Token endpoint response normalized for the relay."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int = Field(..., ge=0)


__all__ = ["CredentialRecord", "TokenGrant"]
