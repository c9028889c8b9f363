"""Helix response / request models."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class User(BaseModel):
    """A Twitch user account.

    ``type`` is one of ``admin``, ``global_mod``, ``staff`` or empty;
    ``broadcaster_type`` is ``affiliate``, ``partner`` or empty. ``email``
    is only present with the ``user:read:email`` scope.
    """

    id: str
    login: str = ""
    display_name: str = ""
    type: str = ""
    broadcaster_type: str = ""
    description: str = ""
    profile_image_url: str = ""
    offline_image_url: str = ""
    email: str = ""
    created_at: datetime | None = None


class Stream(BaseModel):
    """A live broadcast."""

    id: str
    user_id: str = ""
    user_login: str = ""
    user_name: str = ""
    game_id: str = ""
    game_name: str = ""
    type: str = ""
    title: str = ""
    tags: list[str] = Field(default_factory=list)
    viewer_count: int = 0
    started_at: datetime | None = None
    language: str = ""
    thumbnail_url: str = ""
    is_mature: bool = False


class SubscriptionType(StrEnum):
    CHANNEL_UPDATE = "channel.update"
    STREAM_ONLINE = "stream.online"
    STREAM_OFFLINE = "stream.offline"

    @property
    def version(self) -> str:
        return _SUBSCRIPTION_VERSIONS[self]


_SUBSCRIPTION_VERSIONS = {
    SubscriptionType.CHANNEL_UPDATE: "2",
    SubscriptionType.STREAM_ONLINE: "1",
    SubscriptionType.STREAM_OFFLINE: "1",
}


def subscription_version(event_type: str) -> str:
    """Version to request for ``event_type``; ``"0"`` for unknown types."""
    try:
        return SubscriptionType(event_type).version
    except ValueError:
        logging.warning(
            f"Tried to get version for unknown subscription event type '{event_type}'. Returning \"0\""
        )
        return "0"


class SubscriptionStatus(StrEnum):
    ENABLED = "enabled"
    WEBHOOK_CALLBACK_VERIFICATION_PENDING = "webhook_callback_verification_pending"
    WEBHOOK_CALLBACK_VERIFICATION_FAILED = "webhook_callback_verification_failed"
    NOTIFICATION_FAILURES_EXCEEDED = "notification_failures_exceeded"
    AUTHORIZATION_REVOKED = "authorization_revoked"
    MODERATOR_REMOVED = "moderator_removed"
    USER_REMOVED = "user_removed"
    VERSION_REMOVED = "version_removed"
    BETA_MAINTENANCE = "beta_maintenance"
    WEBSOCKET_DISCONNECTED = "websocket_disconnected"
    WEBSOCKET_FAILED_PING_PONG = "websocket_failed_ping_pong"
    WEBSOCKET_RECEIVED_INBOUND_TRAFFIC = "websocket_received_inbound_traffic"
    WEBSOCKET_CONNECTION_UNUSED = "websocket_connection_unused"
    WEBSOCKET_INTERNAL_ERROR = "websocket_internal_error"
    WEBSOCKET_NETWORK_TIMEOUT = "websocket_network_timeout"
    WEBSOCKET_NETWORK_ERROR = "websocket_network_error"


class TransportMethod(StrEnum):
    WEBHOOK = "webhook"
    WEBSOCKET = "websocket"


class SubscriptionTransport(BaseModel):
    """How notifications of a subscription are delivered.

    ``callback`` and ``secret`` apply to webhooks, ``session_id`` to websockets.
    """

    method: TransportMethod | str
    callback: str | None = None
    secret: str | None = None
    session_id: str | None = None


class Subscription(BaseModel):
    """An EventSub subscription, as sent on creation or listed by the API."""

    id: str | None = None
    status: SubscriptionStatus | str | None = None
    type: SubscriptionType | str
    version: str
    condition: dict[str, str] = Field(default_factory=dict)
    transport: SubscriptionTransport
    created_at: datetime | None = None
    cost: int | None = None

    def to_request_body(self) -> dict[str, object]:
        return self.model_dump(mode="json", exclude_none=True)
