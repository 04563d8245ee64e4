"""
Thin Google Calendar client for inserting events with a bearer token.
"""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import quote

import httpx

from app.core.errors import CalendarUnauthorizedError, ProviderError, TransportError

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Submit event resources to the Calendar v3 events endpoint."""

    API_BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(
        self,
        *,
        calendar_id: str = "primary",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._calendar_id = calendar_id
        self._timeout = timeout
        self._transport = transport

    @property
    def events_url(self) -> str:
        return f"{self.API_BASE_URL}/calendars/{quote(self._calendar_id, safe='')}/events"

    async def create_event(self, access_token: str, resource: Dict[str, Any]) -> str:
        """Insert ``resource`` and return the provider-assigned event id."""
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self.events_url, json=resource, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Calendar API unreachable: {exc}") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise CalendarUnauthorizedError("Calendar API rejected the access token.")
        if not response.is_success:
            logger.warning(
                "Calendar API returned HTTP %s for event insert", response.status_code
            )
            raise ProviderError(response.status_code, response.text)

        try:
            event_id = response.json().get("id")
        except (ValueError, AttributeError) as exc:
            raise ProviderError(response.status_code, response.text) from exc
        if not isinstance(event_id, str) or not event_id:
            raise ProviderError(response.status_code, "Event response is missing an id.")
        return event_id


__all__ = ["GoogleCalendarClient"]
