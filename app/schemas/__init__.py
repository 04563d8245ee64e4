"""Public schema exports."""

from .auth import AuthExchangeRequest, AuthExchangeResponse, AuthStatusResponse
from .events import EventCreateRequest, EventOutcome

__all__ = [
    "AuthExchangeRequest",
    "AuthExchangeResponse",
    "AuthStatusResponse",
    "EventCreateRequest",
    "EventOutcome",
]
