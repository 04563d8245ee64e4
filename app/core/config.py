"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token lifecycle
services and the operational scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_BASE_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class GoogleSettings(BaseSettings):
    """Configuration required for interacting with Google APIs."""

    model_config = _BASE_CONFIG

    client_id: str = Field(
        ..., validation_alias=AliasChoices("GOOGLE_CLIENT_ID", "CLIENT_ID")
    )
    client_secret: str = Field(
        ..., validation_alias=AliasChoices("GOOGLE_CLIENT_SECRET", "CLIENT_SECRET")
    )
    redirect_uri: AnyHttpUrl = Field(
        ..., validation_alias=AliasChoices("GOOGLE_REDIRECT_URI", "REDIRECT_URI")
    )
    calendar_id: str = Field(
        "primary",
        validation_alias="GOOGLE_CALENDAR_ID",
        description="Calendar that receives created events.",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _BASE_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _BASE_CONFIG

    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("https://www.googleapis.com/auth/calendar.events",),
        validation_alias="OAUTH_SCOPES",
    )
    refresh_margin_seconds: int = Field(
        60,
        validation_alias="OAUTH_REFRESH_MARGIN_SECONDS",
        description="Tokens expiring within this window are refreshed before use.",
    )
    default_expires_in: int = Field(
        3600,
        validation_alias="OAUTH_DEFAULT_EXPIRES_IN",
        description="Lifetime assumed when the token endpoint omits expires_in.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class EventSettings(BaseSettings):
    """Defaults applied when building calendar event resources."""

    model_config = _BASE_CONFIG

    default_utc_offset: Optional[str] = Field(
        None,
        validation_alias="EVENT_DEFAULT_UTC_OFFSET",
        description="Offset such as '-04:00' appended when a request carries none.",
    )
    default_time_zone: Optional[str] = Field(
        None,
        validation_alias="EVENT_DEFAULT_TIME_ZONE",
        description="IANA time zone sent with events when a request carries none.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _BASE_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    listen_port: int = Field(3000, validation_alias=AliasChoices("PORT", "LISTEN_PORT"))
    redirect_base: AnyHttpUrl = Field(
        ...,
        validation_alias="REDIRECT_BASE",
        description="Public base URL used to build the authUrl handed to callers.",
    )
    cors_origins: str = Field("*", validation_alias="CORS_ORIGINS")
    http_timeout_seconds: float = Field(10.0, validation_alias="HTTP_TIMEOUT_SECONDS")
    credential_db_path: Optional[str] = Field(
        None,
        validation_alias="CREDENTIAL_DB_PATH",
        description="When set, credentials are persisted to this SQLite file.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    events: EventSettings = Field(default_factory=EventSettings)

    @property
    def auth_base_url(self) -> str:
        """Base URL without a trailing slash."""
        return str(self.redirect_base).rstrip("/")

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "EventSettings",
    "GoogleSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
