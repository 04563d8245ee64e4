"""
Error taxonomy shared by the token lifecycle and event submission layers.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for errors surfaced by the relay."""


class InvalidInputError(RelayError):
    """Raised when an inbound request is missing or has malformed fields."""


class NotAuthorizedError(RelayError):
    """Raised when no credential is on file for a user key."""


class RefreshFailedError(RelayError):
    """Raised when the stored refresh token cannot produce a new access token."""


class TokenExchangeFailedError(RelayError):
    """Raised when the authorization-code exchange fails."""


class TransportError(RelayError):
    """Raised on network-level failures reaching an external service."""


class CalendarUnauthorizedError(RelayError):
    """Raised when the calendar provider rejects an access token with 401."""


class ProviderError(RelayError):
    """Raised for non-auth failures returned by the calendar provider."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Calendar provider returned HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


# Errors that all mean "send the user through the consent screen again".
NEEDS_AUTH_ERRORS = (NotAuthorizedError, RefreshFailedError, CalendarUnauthorizedError)


__all__ = [
    "CalendarUnauthorizedError",
    "InvalidInputError",
    "NEEDS_AUTH_ERRORS",
    "NotAuthorizedError",
    "ProviderError",
    "RefreshFailedError",
    "RelayError",
    "TokenExchangeFailedError",
    "TransportError",
]
