"""Schemas related to OAuth flows."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthExchangeRequest(CamelModel):
    """Payload sent to complete the authorization-code exchange."""

    code: str = Field(..., min_length=1, description="Authorization code returned by Google OAuth.")
    user_key: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("userKey", "user_key", "user"),
        description="Opaque identifier of the end user being authorized.",
    )


class AuthExchangeResponse(CamelModel):
    status: str = "connected"
    user_key: str


class AuthStatusResponse(CamelModel):
    """Whether a user can currently obtain an access token."""

    authenticated: bool
    needs_auth: bool
    auth_url: Optional[str] = None


__all__ = [
    "AuthExchangeRequest",
    "AuthExchangeResponse",
    "AuthStatusResponse",
    "CamelModel",
]
