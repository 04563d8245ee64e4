"""Schemas for the event creation endpoint."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field

from .auth import CamelModel


class EventCreateRequest(CamelModel):
    """Inbound event request sent by the automation client.

    Required fields are validated by the event service so that missing values
    are reported in the relay's own failure shape.
    """

    user_key: Optional[str] = Field(
        None, validation_alias=AliasChoices("userKey", "user_key", "user")
    )
    title: Optional[str] = None
    date: Optional[str] = Field(None, description="Event day as YYYY-MM-DD.")
    start_time: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("startTime", "start_time", "start"),
        description="Start time as HH:MM.",
    )
    end_time: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("endTime", "end_time", "end"),
        description="End time as HH:MM.",
    )
    description: Optional[str] = None
    color_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("colorId", "color_id")
    )
    utc_offset: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("utcOffset", "utc_offset"),
        description="Offset appended to start/end, e.g. '-04:00' or 'Z'.",
    )
    time_zone: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("timeZone", "time_zone"),
        description="IANA time zone name forwarded to Google Calendar.",
    )


class EventOutcome(CamelModel):
    """Caller-facing result of an event creation attempt."""

    ok: bool
    needs_auth: bool = False
    id: Optional[str] = None
    auth_url: Optional[str] = None
    error: Optional[str] = None


__all__ = ["EventCreateRequest", "EventOutcome"]
