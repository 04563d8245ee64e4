"""Service layer exports."""

from .calendar_events import CalendarEventService, build_event_resource
from .google_tokens import GoogleTokenService
from .token_cipher import TokenCipherService

__all__ = [
    "CalendarEventService",
    "GoogleTokenService",
    "TokenCipherService",
    "build_event_resource",
]
