"""
Helpers for recording, validating and refreshing Google OAuth tokens.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from urllib.parse import quote

from app.clients.credential_store import CredentialStore
from app.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from app.core.config import OAuthSettings
from app.core.errors import (
    InvalidInputError,
    NotAuthorizedError,
    RefreshFailedError,
    TokenExchangeFailedError,
    TransportError,
)
from app.models.oauth import CredentialRecord
from app.schemas.auth import AuthStatusResponse

logger = logging.getLogger(__name__)


class GoogleTokenService:
    """Owns per-user OAuth credentials and hands out usable access tokens.

    Refreshes are single-flight per user key: callers that find the same stale
    record while a refresh is running await that refresh instead of starting
    their own.
    """

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: GoogleOAuthClient,
        oauth_settings: OAuthSettings,
        *,
        auth_base_url: str,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._refresh_margin = timedelta(seconds=oauth_settings.refresh_margin_seconds)
        self._default_expires_in = oauth_settings.default_expires_in
        self._auth_base_url = auth_base_url.rstrip("/")
        self._inflight: Dict[str, asyncio.Task[CredentialRecord]] = {}

    def build_auth_url(self, user_key: str) -> str:
        """Relay URL that starts the consent flow for ``user_key``."""
        return f"{self._auth_base_url}/auth?user={quote(user_key, safe='')}"

    def record_authorization(
        self,
        user_key: str,
        access_token: str,
        refresh_token: Optional[str],
        expires_in: Optional[int] = None,
    ) -> CredentialRecord:
        """Insert or replace the credential record for ``user_key``."""
        if not user_key:
            raise InvalidInputError("user key must not be empty")
        if not access_token:
            raise InvalidInputError("access token must not be empty")

        existing = self._store.get(user_key)
        if not refresh_token:
            if existing is None:
                raise InvalidInputError(
                    f"no refresh token available for user {user_key}"
                )
            refresh_token = existing.refresh_token

        now = datetime.now(timezone.utc)
        lifetime = expires_in if expires_in is not None else self._default_expires_in
        record = CredentialRecord(
            user_key=user_key,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=now + timedelta(seconds=lifetime),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self._store.put(record)
        return record

    async def exchange_authorization_code(self, code: str, user_key: str) -> CredentialRecord:
        """Complete the authorization-code grant and record the resulting tokens."""
        if not code or not user_key:
            raise InvalidInputError("code and user key are required")

        try:
            grant = await self._oauth.exchange_authorization_code(code)
        except (OAuthTokenExchangeError, TransportError) as exc:
            logger.warning("Authorization-code exchange failed for user %s: %s", user_key, exc)
            raise TokenExchangeFailedError(
                f"Failed to exchange authorization code for user {user_key}."
            ) from exc

        if not grant.refresh_token and self._store.get(user_key) is None:
            raise TokenExchangeFailedError(
                "Google did not return a refresh token; revoke access and authorize again."
            )

        record = self.record_authorization(
            user_key,
            grant.access_token,
            grant.refresh_token,
            grant.expires_in,
        )
        logger.info("Stored OAuth credentials for user %s", user_key)
        return record

    async def get_usable_access_token(self, user_key: str) -> str:
        """Return a token valid beyond the refresh margin, refreshing if needed."""
        record = self._store.get(user_key)
        if record is None:
            raise NotAuthorizedError(f"No OAuth credentials stored for user {user_key}.")

        if record.is_fresh(margin=self._refresh_margin):
            return record.access_token

        task = self._inflight.get(user_key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(record))
            self._inflight[user_key] = task
            task.add_done_callback(
                lambda done, key=user_key: self._forget_inflight(key, done)
            )

        # One caller being cancelled must not cancel the refresh others share.
        refreshed = await asyncio.shield(task)
        return refreshed.access_token

    async def check_status(self, user_key: str) -> AuthStatusResponse:
        """Report whether ``user_key`` can currently obtain an access token."""
        try:
            await self.get_usable_access_token(user_key)
        except (NotAuthorizedError, RefreshFailedError):
            return AuthStatusResponse(
                authenticated=False,
                needs_auth=True,
                auth_url=self.build_auth_url(user_key),
            )
        return AuthStatusResponse(authenticated=True, needs_auth=False)

    async def _refresh(self, record: CredentialRecord) -> CredentialRecord:
        refreshed_at = datetime.now(timezone.utc)
        try:
            grant = await self._oauth.refresh_token(record.refresh_token)
        except (OAuthTokenExchangeError, TransportError) as exc:
            logger.warning("Token refresh failed for user %s: %s", record.user_key, exc)
            raise RefreshFailedError(
                f"Unable to refresh access token for user {record.user_key}."
            ) from exc

        updated = record.model_copy(
            update={
                "access_token": grant.access_token,
                "expires_at": refreshed_at + timedelta(seconds=grant.expires_in),
                "updated_at": refreshed_at,
            }
        )
        self._store.put(updated)
        logger.info("Refreshed access token for user %s", record.user_key)
        return updated

    def _forget_inflight(self, user_key: str, task: asyncio.Task) -> None:
        if self._inflight.get(user_key) is task:
            del self._inflight[user_key]


__all__ = ["GoogleTokenService"]
