from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.clients.credential_store import InMemoryCredentialStore
from app.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from app.clients.google_calendar import GoogleCalendarClient
from app.core.config import EventSettings, GoogleSettings, OAuthSettings
from app.core.errors import (
    InvalidInputError,
    NotAuthorizedError,
    RefreshFailedError,
    TokenExchangeFailedError,
    TransportError,
)
from app.models.oauth import CredentialRecord, TokenGrant
from app.schemas import EventCreateRequest
from app.services.calendar_events import CalendarEventService
from app.services.google_tokens import GoogleTokenService


class DummyOAuthClient:
    def __init__(
        self,
        *,
        refreshed_token: str = "refreshed-access",
        refresh_grant_token: str | None = None,
        error: Exception | None = None,
    ) -> None:
        self.refreshed_token = refreshed_token
        self.refresh_grant_token = refresh_grant_token
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []
        self.codes: list[str] = []

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        self.calls.append(refresh_token)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return TokenGrant(
            access_token=self.refreshed_token,
            refresh_token=self.refresh_grant_token,
            expires_in=3600,
        )

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        return TokenGrant(access_token="AT1", refresh_token="RT1", expires_in=3600)


def _service(
    oauth_client: DummyOAuthClient, store: InMemoryCredentialStore | None = None
) -> tuple[GoogleTokenService, InMemoryCredentialStore]:
    store = store if store is not None else InMemoryCredentialStore()
    service = GoogleTokenService(
        store=store,
        oauth_client=oauth_client,
        oauth_settings=OAuthSettings(),
        auth_base_url="https://relay.example.com/",
    )
    return service, store


def _put_expiring(store: InMemoryCredentialStore, user_key: str, seconds: int) -> None:
    store.put(
        CredentialRecord(
            user_key=user_key,
            access_token="stale-access",
            refresh_token="refresh-token",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=seconds),
        )
    )


@pytest.mark.asyncio
async def test_unknown_user_is_not_authorized_without_network() -> None:
    oauth_client = DummyOAuthClient()
    service, _ = _service(oauth_client)

    with pytest.raises(NotAuthorizedError):
        await service.get_usable_access_token("nobody")

    assert oauth_client.calls == []


@pytest.mark.asyncio
async def test_recorded_token_is_returned_without_refresh() -> None:
    oauth_client = DummyOAuthClient()
    service, _ = _service(oauth_client)

    service.record_authorization("carol", "AT-carol", "RT-carol", 3600)

    assert await service.get_usable_access_token("carol") == "AT-carol"
    assert oauth_client.calls == []


@pytest.mark.asyncio
async def test_token_inside_safety_margin_is_refreshed() -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(oauth_client)
    _put_expiring(store, "dave", seconds=59)

    assert await service.get_usable_access_token("dave") == "refreshed-access"
    assert oauth_client.calls == ["refresh-token"]


@pytest.mark.asyncio
async def test_token_outside_safety_margin_is_cached() -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(oauth_client)
    _put_expiring(store, "erin", seconds=120)

    assert await service.get_usable_access_token("erin") == "stale-access"
    assert oauth_client.calls == []


@pytest.mark.asyncio
async def test_refresh_updates_token_and_expiry() -> None:
    oauth_client = DummyOAuthClient(refreshed_token="AT2")
    service, store = _service(oauth_client)
    _put_expiring(store, "bob", seconds=10)

    assert await service.get_usable_access_token("bob") == "AT2"

    stored = store.get("bob")
    assert stored is not None
    assert stored.access_token == "AT2"
    remaining = stored.expires_at - datetime.now(timezone.utc)
    assert timedelta(seconds=3590) < remaining <= timedelta(seconds=3600)

    # The refreshed token is now fresh, so no second network call happens.
    assert await service.get_usable_access_token("bob") == "AT2"
    assert oauth_client.calls == ["refresh-token"]


@pytest.mark.asyncio
async def test_refresh_without_refresh_token_keeps_existing_one() -> None:
    oauth_client = DummyOAuthClient(refresh_grant_token=None)
    service, store = _service(oauth_client)
    _put_expiring(store, "frank", seconds=0)

    await service.get_usable_access_token("frank")

    stored = store.get("frank")
    assert stored is not None
    assert stored.refresh_token == "refresh-token"


@pytest.mark.asyncio
async def test_concurrent_callers_share_a_single_refresh() -> None:
    oauth_client = DummyOAuthClient(refreshed_token="shared-token")
    oauth_client.gate = asyncio.Event()
    service, store = _service(oauth_client)
    _put_expiring(store, "gina", seconds=5)

    callers = [
        asyncio.create_task(service.get_usable_access_token("gina")) for _ in range(5)
    ]
    await asyncio.sleep(0)
    oauth_client.gate.set()
    tokens = await asyncio.gather(*callers)

    assert tokens == ["shared-token"] * 5
    assert oauth_client.calls == ["refresh-token"]


@pytest.mark.asyncio
async def test_concurrent_callers_share_a_refresh_failure() -> None:
    oauth_client = DummyOAuthClient(error=OAuthTokenExchangeError("invalid_grant", 400))
    oauth_client.gate = asyncio.Event()
    service, store = _service(oauth_client)
    _put_expiring(store, "hank", seconds=5)

    callers = [
        asyncio.create_task(service.get_usable_access_token("hank")) for _ in range(3)
    ]
    await asyncio.sleep(0)
    oauth_client.gate.set()
    results = await asyncio.gather(*callers, return_exceptions=True)

    assert all(isinstance(result, RefreshFailedError) for result in results)
    assert oauth_client.calls == ["refresh-token"]


@pytest.mark.asyncio
async def test_failed_refresh_leaves_record_untouched() -> None:
    oauth_client = DummyOAuthClient(error=TransportError("connection reset"))
    service, store = _service(oauth_client)
    _put_expiring(store, "ivan", seconds=5)
    before = store.get("ivan")

    with pytest.raises(RefreshFailedError) as excinfo:
        await service.get_usable_access_token("ivan")

    assert isinstance(excinfo.value.__cause__, TransportError)
    assert store.get("ivan") == before


@pytest.mark.asyncio
async def test_refresh_failure_is_retried_on_next_call() -> None:
    oauth_client = DummyOAuthClient(error=OAuthTokenExchangeError("invalid_grant", 400))
    service, store = _service(oauth_client)
    _put_expiring(store, "judy", seconds=5)

    for _ in range(2):
        with pytest.raises(RefreshFailedError):
            await service.get_usable_access_token("judy")

    assert oauth_client.calls == ["refresh-token", "refresh-token"]


@pytest.mark.asyncio
async def test_exchange_records_credentials() -> None:
    oauth_client = DummyOAuthClient()
    service, store = _service(oauth_client)

    record = await service.exchange_authorization_code("auth-code", "kim")

    assert oauth_client.codes == ["auth-code"]
    assert record.access_token == "AT1"
    assert store.get("kim") == record
    assert await service.get_usable_access_token("kim") == "AT1"


@pytest.mark.asyncio
async def test_exchange_failure_is_surfaced() -> None:
    oauth_client = DummyOAuthClient(error=OAuthTokenExchangeError("bad code", 400))
    service, store = _service(oauth_client)

    with pytest.raises(TokenExchangeFailedError):
        await service.exchange_authorization_code("bad-code", "lena")

    assert store.get("lena") is None


@pytest.mark.asyncio
async def test_exchange_rejects_empty_user_key_before_network() -> None:
    oauth_client = DummyOAuthClient()
    service, _ = _service(oauth_client)

    with pytest.raises(InvalidInputError):
        await service.exchange_authorization_code("code", "")

    assert oauth_client.codes == []


def test_record_authorization_defaults_and_validation() -> None:
    service, store = _service(DummyOAuthClient())

    with pytest.raises(InvalidInputError):
        service.record_authorization("", "AT", "RT")

    record = service.record_authorization("mia", "AT", "RT", None)
    remaining = record.expires_at - datetime.now(timezone.utc)
    assert timedelta(seconds=3590) < remaining <= timedelta(seconds=3600)

    replaced = service.record_authorization("mia", "AT-new", None, 1800)
    assert replaced.refresh_token == "RT"
    assert replaced.created_at == record.created_at
    assert store.get("mia") == replaced


@pytest.mark.asyncio
async def test_check_status_reports_both_states() -> None:
    service, store = _service(DummyOAuthClient())
    service.record_authorization("nora", "AT", "RT", 3600)

    connected = await service.check_status("nora")
    missing = await service.check_status("omar x")

    assert connected.authenticated is True
    assert connected.needs_auth is False
    assert connected.auth_url is None
    assert missing.authenticated is False
    assert missing.needs_auth is True
    assert missing.auth_url == "https://relay.example.com/auth?user=omar%20x"


@pytest.mark.asyncio
async def test_check_status_treats_failed_refresh_as_needing_auth() -> None:
    oauth_client = DummyOAuthClient(error=OAuthTokenExchangeError("revoked", 400))
    service, store = _service(oauth_client)
    _put_expiring(store, "pete", seconds=0)

    status = await service.check_status("pete")

    assert status.needs_auth is True
    assert oauth_client.calls == ["refresh-token"]


@pytest.mark.asyncio
async def test_refresh_never_replaces_stored_refresh_token() -> None:
    oauth_client = DummyOAuthClient(refreshed_token="AT2", refresh_grant_token="RT-new")
    service, store = _service(oauth_client)
    _put_expiring(store, "quinn", seconds=0)

    assert await service.get_usable_access_token("quinn") == "AT2"

    stored = store.get("quinn")
    assert stored is not None
    assert stored.refresh_token == "refresh-token"


def _google_client(payload: dict) -> GoogleOAuthClient:
    google = GoogleSettings(
        GOOGLE_CLIENT_ID="client",
        GOOGLE_CLIENT_SECRET="secret",
        GOOGLE_REDIRECT_URI="https://relay.example.com/oauth/callback",
    )
    return GoogleOAuthClient(
        google,
        OAuthSettings(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)),
    )


MALFORMED_TOKEN_PAYLOADS = [
    {"access_token": 123, "expires_in": 3600},
    {"access_token": "AT2", "refresh_token": ["x"], "expires_in": 3600},
    {"access_token": "AT2", "expires_in": "soon"},
    {"access_token": "AT2", "expires_in": -5},
]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", MALFORMED_TOKEN_PAYLOADS)
async def test_malformed_refresh_payload_is_refresh_failure(payload: dict) -> None:
    store = InMemoryCredentialStore()
    service = GoogleTokenService(
        store=store,
        oauth_client=_google_client(payload),
        oauth_settings=OAuthSettings(),
        auth_base_url="https://relay.example.com",
    )
    _put_expiring(store, "rita", seconds=0)
    before = store.get("rita")

    with pytest.raises(RefreshFailedError):
        await service.get_usable_access_token("rita")

    assert store.get("rita") == before


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", MALFORMED_TOKEN_PAYLOADS)
async def test_malformed_exchange_payload_is_exchange_failure(payload: dict) -> None:
    store = InMemoryCredentialStore()
    service = GoogleTokenService(
        store=store,
        oauth_client=_google_client(payload),
        oauth_settings=OAuthSettings(),
        auth_base_url="https://relay.example.com",
    )

    with pytest.raises(TokenExchangeFailedError):
        await service.exchange_authorization_code("code", "sam")

    assert store.get("sam") is None


@pytest.mark.asyncio
async def test_malformed_refresh_payload_asks_event_caller_to_reauthorize() -> None:
    store = InMemoryCredentialStore()
    service = GoogleTokenService(
        store=store,
        oauth_client=_google_client({"access_token": 123, "expires_in": 3600}),
        oauth_settings=OAuthSettings(),
        auth_base_url="https://relay.example.com",
    )
    _put_expiring(store, "tess", seconds=0)
    calendar = GoogleCalendarClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"id": "e"}))
    )
    events = CalendarEventService(service, calendar, EventSettings())

    outcome = await events.create_event_for_user(
        EventCreateRequest.model_validate(
            {"userKey": "tess", "date": "2026-10-20", "startTime": "09:00", "endTime": "10:00"}
        )
    )

    assert outcome.ok is False
    assert outcome.needs_auth is True
    assert outcome.auth_url == "https://relay.example.com/auth?user=tess"


def test_record_authorization_honors_zero_lifetime() -> None:
    service, _ = _service(DummyOAuthClient())

    record = service.record_authorization("uma", "AT", "RT", 0)

    assert record.expires_at <= datetime.now(timezone.utc)
