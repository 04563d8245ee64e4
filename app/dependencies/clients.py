"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

import logging
from functools import lru_cache

from app.clients import (
    CredentialStore,
    GoogleCalendarClient,
    GoogleOAuthClient,
    InMemoryCredentialStore,
    SQLiteCredentialStore,
)
from app.core.config import get_settings
from app.services import CalendarEventService, GoogleTokenService, TokenCipherService

logger = logging.getLogger(__name__)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_google_oauth_client() -> GoogleOAuthClient:
    """Create a singleton Google OAuth client."""
    settings = _settings()
    return GoogleOAuthClient(
        settings.google,
        settings.oauth,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache()
def get_calendar_client() -> GoogleCalendarClient:
    """Provide Google Calendar client instance."""
    settings = _settings()
    return GoogleCalendarClient(
        calendar_id=settings.google.calendar_id,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.google.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the credential store; SQLite when a path is configured."""
    settings = _settings()
    if settings.credential_db_path:
        logger.info("Persisting credentials to %s", settings.credential_db_path)
        return SQLiteCredentialStore(
            settings.credential_db_path, get_token_cipher_service()
        )
    return InMemoryCredentialStore()


@lru_cache()
def get_google_token_service() -> GoogleTokenService:
    """Provide the process-wide token lifecycle service."""
    settings = _settings()
    return GoogleTokenService(
        store=get_credential_store(),
        oauth_client=get_google_oauth_client(),
        oauth_settings=settings.oauth,
        auth_base_url=settings.auth_base_url,
    )


def get_calendar_event_service() -> CalendarEventService:
    """Build an event service around the shared token service."""
    settings = _settings()
    return CalendarEventService(
        token_service=get_google_token_service(),
        calendar_client=get_calendar_client(),
        event_settings=settings.events,
    )


__all__ = [
    "get_calendar_client",
    "get_calendar_event_service",
    "get_credential_store",
    "get_google_oauth_client",
    "get_google_token_service",
    "get_token_cipher_service",
]
