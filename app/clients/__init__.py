"""Expose constructed client wrappers."""

from .credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
    SQLiteCredentialStore,
)
from .google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from .google_calendar import GoogleCalendarClient

__all__ = [
    "CredentialStore",
    "GoogleCalendarClient",
    "GoogleOAuthClient",
    "InMemoryCredentialStore",
    "OAuthTokenExchangeError",
    "SQLiteCredentialStore",
]
