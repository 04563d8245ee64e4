"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_calendar_client,
    get_calendar_event_service,
    get_credential_store,
    get_google_oauth_client,
    get_google_token_service,
    get_token_cipher_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_calendar_client",
    "get_calendar_event_service",
    "get_credential_store",
    "get_google_oauth_client",
    "get_google_token_service",
    "get_token_cipher_service",
]
