"""
Calendar event submission on behalf of authorized users.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from app.clients.google_calendar import GoogleCalendarClient
from app.core.config import EventSettings
from app.core.errors import (
    NEEDS_AUTH_ERRORS,
    InvalidInputError,
    ProviderError,
    TransportError,
)
from app.schemas.events import EventCreateRequest, EventOutcome
from app.services.google_tokens import GoogleTokenService

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Event"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")
_OFFSET_RE = re.compile(r"^(Z|[+-]\d{2}:\d{2})$")

_REQUIRED_FIELDS = {
    "date": "date",
    "start_time": "startTime",
    "end_time": "endTime",
}


def build_event_resource(
    event: EventCreateRequest,
    *,
    default_utc_offset: Optional[str] = None,
    default_time_zone: Optional[str] = None,
) -> Dict[str, Any]:
    """Translate an inbound request into a Calendar v3 event resource.

    Start and end are ``{date}T{time}:00`` followed by the request's offset
    (or the configured default). No conversion between zones happens here;
    when a time zone name is available it is passed through for Google to
    interpret the wall-clock times.
    """
    missing = [
        label for field, label in _REQUIRED_FIELDS.items() if not getattr(event, field)
    ]
    if missing:
        raise InvalidInputError(f"missing required fields: {', '.join(missing)}")

    if not _DATE_RE.match(event.date):
        raise InvalidInputError("date must use the YYYY-MM-DD format")
    for label, value in (("startTime", event.start_time), ("endTime", event.end_time)):
        if not _TIME_RE.match(value):
            raise InvalidInputError(f"{label} must use the HH:MM format")

    offset = event.utc_offset or default_utc_offset or ""
    if offset and not _OFFSET_RE.match(offset):
        raise InvalidInputError("utcOffset must look like 'Z', '+02:00' or '-04:00'")
    time_zone = event.time_zone or default_time_zone

    start: Dict[str, str] = {"dateTime": f"{event.date}T{event.start_time}:00{offset}"}
    end: Dict[str, str] = {"dateTime": f"{event.date}T{event.end_time}:00{offset}"}
    if time_zone:
        start["timeZone"] = time_zone
        end["timeZone"] = time_zone

    resource: Dict[str, Any] = {
        "summary": event.title or DEFAULT_SUMMARY,
        "description": event.description or "",
        "start": start,
        "end": end,
    }
    if event.color_id:
        resource["colorId"] = event.color_id
    return resource


class CalendarEventService:
    """Creates events for a user key and normalizes every outcome."""

    def __init__(
        self,
        token_service: GoogleTokenService,
        calendar_client: GoogleCalendarClient,
        event_settings: EventSettings,
    ) -> None:
        self._tokens = token_service
        self._calendar = calendar_client
        self._settings = event_settings

    async def create_event(self, access_token: str, event: EventCreateRequest) -> str:
        """Submit ``event`` with an already usable token and return its id."""
        resource = build_event_resource(
            event,
            default_utc_offset=self._settings.default_utc_offset,
            default_time_zone=self._settings.default_time_zone,
        )
        return await self._calendar.create_event(access_token, resource)

    async def create_event_for_user(self, event: EventCreateRequest) -> EventOutcome:
        """Resolve a token for the request's user and create the event.

        Invalid input raises ``InvalidInputError`` before any outbound call.
        Missing credentials, failed refreshes and provider 401s all map to a
        single needs-auth outcome.
        """
        if not event.user_key:
            raise InvalidInputError("missing required fields: userKey")
        # Validate up front so bad requests never trigger a token refresh.
        build_event_resource(
            event,
            default_utc_offset=self._settings.default_utc_offset,
            default_time_zone=self._settings.default_time_zone,
        )

        try:
            access_token = await self._tokens.get_usable_access_token(event.user_key)
            event_id = await self.create_event(access_token, event)
        except NEEDS_AUTH_ERRORS as exc:
            logger.info("User %s needs to re-authorize: %s", event.user_key, exc)
            return EventOutcome(
                ok=False,
                needs_auth=True,
                auth_url=self._tokens.build_auth_url(event.user_key),
                error="not_authenticated",
            )
        except (ProviderError, TransportError) as exc:
            logger.error("Event creation failed for user %s: %s", event.user_key, exc)
            return EventOutcome(ok=False, needs_auth=False, error=str(exc))

        logger.info("Created event %s for user %s", event_id, event.user_key)
        return EventOutcome(ok=True, needs_auth=False, id=event_id)


__all__ = ["CalendarEventService", "DEFAULT_SUMMARY", "build_event_resource"]
