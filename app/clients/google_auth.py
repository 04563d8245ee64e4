"""
Google OAuth utilities.

These helpers build the consent URL and talk to the token endpoint for the
authorization-code exchange and the refresh-token grant.
"""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from app.core.config import GoogleSettings, OAuthSettings
from app.core.errors import TransportError
from app.models.oauth import TokenGrant

logger = logging.getLogger(__name__)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error or an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GoogleOAuthClient:
    """Build Google authorization URLs and exchange codes or refresh tokens."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        google_settings: GoogleSettings,
        oauth_settings: OAuthSettings,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._google = google_settings
        self._oauth = oauth_settings
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(self, state: str, access_type: str = "offline") -> str:
        """Construct the Google OAuth consent URL."""
        params = {
            "client_id": self._google.client_id,
            "redirect_uri": str(self._google.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "access_type": access_type,
            "prompt": "consent",
            "state": state,
        }
        query = urlencode(params)
        return f"{self.AUTH_BASE_URL}?{query}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        payload = {
            "code": code,
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "redirect_uri": str(self._google.redirect_uri),
            "grant_type": "authorization_code",
        }
        return await self._request_token(payload)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        return await self._request_token(payload)

    async def _request_token(self, payload: Dict[str, str]) -> TokenGrant:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Token endpoint unreachable during {payload['grant_type']} grant: {exc}"
            ) from exc

        if not response.is_success:
            logger.warning(
                "Token endpoint rejected %s grant with HTTP %s",
                payload["grant_type"],
                response.status_code,
            )
            raise OAuthTokenExchangeError(response.text, status_code=response.status_code)

        try:
            token_payload: Any = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError("Token endpoint returned invalid JSON.") from exc
        if not isinstance(token_payload, dict) or not token_payload.get("access_token"):
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")

        expires_in = token_payload.get("expires_in")
        if expires_in is None:
            expires_in = self._oauth.default_expires_in

        try:
            return TokenGrant(
                access_token=token_payload["access_token"],
                refresh_token=token_payload.get("refresh_token") or None,
                expires_in=expires_in,
            )
        except ValidationError as exc:
            raise OAuthTokenExchangeError("Token payload has invalid fields.") from exc


__all__ = [
    "GoogleOAuthClient",
    "OAuthTokenExchangeError",
]
