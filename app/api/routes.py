"""
FastAPI routes for the calendar relay.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from app.core.config import AppSettings
from app.core.errors import InvalidInputError, TokenExchangeFailedError
from app.dependencies import (
    SettingsDependency,
    get_calendar_event_service,
    get_google_oauth_client,
    get_google_token_service,
)
from app.schemas import (
    AuthExchangeRequest,
    AuthExchangeResponse,
    AuthStatusResponse,
    EventCreateRequest,
    EventOutcome,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str) -> JSONResponse:
    outcome = EventOutcome(ok=False, needs_auth=False, error=error)
    return JSONResponse(
        status_code=status_code,
        content=outcome.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: AppSettings = SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.get("/auth")
async def start_google_oauth_flow(
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    user: str | None = Query(
        default=None, description="User key initiating authorization."
    ),
) -> Any:
    """Redirect the browser to the Google consent screen for ``user``."""
    if not user:
        return PlainTextResponse("Missing user param", status_code=HTTPStatus.BAD_REQUEST)

    authorization_url = oauth_client.build_authorization_url(state=user)
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)


@router.get("/oauth/callback")
async def handle_google_oauth_callback(
    token_service: Annotated[Any, Depends(get_google_token_service)],
    code: str | None = Query(default=None, description="Authorization code from Google."),
    state: str | None = Query(default=None, description="User key sent as OAuth state."),
) -> PlainTextResponse:
    """Browser landing point after consent; stores the user's tokens."""
    if not code or not state:
        return PlainTextResponse("Missing code or state", status_code=HTTPStatus.BAD_REQUEST)

    try:
        await token_service.exchange_authorization_code(code, state)
    except TokenExchangeFailedError:
        return PlainTextResponse(
            "Token exchange failed. Please start the authorization again.",
            status_code=HTTPStatus.BAD_GATEWAY,
        )

    return PlainTextResponse(
        "Authorization complete. You can return to your conversation."
    )


@router.post(
    "/auth/exchange",
    response_model=AuthExchangeResponse,
    response_model_by_alias=True,
)
async def exchange_authorization_code(
    payload: AuthExchangeRequest,
    token_service: Annotated[Any, Depends(get_google_token_service)],
) -> Any:
    """Exchange a code obtained out-of-band for the given user key."""
    try:
        await token_service.exchange_authorization_code(payload.code, payload.user_key)
    except TokenExchangeFailedError as exc:
        return JSONResponse(
            status_code=HTTPStatus.BAD_GATEWAY,
            content={"status": "failed", "error": str(exc)},
        )
    return AuthExchangeResponse(user_key=payload.user_key)


@router.get(
    "/auth/status",
    response_model=AuthStatusResponse,
    response_model_exclude_none=True,
)
async def auth_status(
    token_service: Annotated[Any, Depends(get_google_token_service)],
    user: str | None = Query(default=None, description="User key to check."),
) -> Any:
    """Report whether ``user`` holds credentials that still refresh."""
    if not user:
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST, content={"error": "missing_user"}
        )
    return await token_service.check_status(user)


@router.post(
    "/event",
    response_model=EventOutcome,
    response_model_exclude_none=True,
)
async def create_event(
    payload: EventCreateRequest,
    event_service: Annotated[Any, Depends(get_calendar_event_service)],
) -> Any:
    """Create a calendar event for the request's user key."""
    try:
        return await event_service.create_event_for_user(payload)
    except InvalidInputError as exc:
        return _error_response(HTTPStatus.BAD_REQUEST, str(exc))
