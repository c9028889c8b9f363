"""Thin asynchronous Twitch Helix API client.

Every call obtains a bearer token from the OAuth helper first. Calls are
neither retried nor cached: failures surface to the caller as internal
errors.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from ..auth.oauth import OAuthClient
from ..constants import HELIX_BASE_URL, HELIX_PAGE_SIZE, HTTP_REQUEST_TIMEOUT_SECONDS
from ..errors.handling import handle_api_error, raise_for_status
from ..errors.internal import OAuthError, ParsingError
from .models import (
    Stream,
    Subscription,
    SubscriptionTransport,
    SubscriptionType,
    TransportMethod,
    User,
    subscription_version,
)

ModelT = TypeVar("ModelT", bound=BaseModel)
QueryParams = Sequence[tuple[str, str]]


class HelixAPI:
    """Asynchronous client for the Helix endpoints the chat client needs.

    Attributes:
        client_id: Application client ID sent as ``Client-Id``.
        webhook_secret: Secret attached to webhook EventSub subscriptions.
    """

    def __init__(
        self,
        client_id: str,
        http_session: aiohttp.ClientSession,
        oauth: OAuthClient,
        *,
        base_url: str = HELIX_BASE_URL,
        webhook_secret: str = "",
    ) -> None:
        if not http_session:
            raise ValueError("aiohttp session required")
        self.client_id = client_id
        self._session = http_session
        self.oauth = oauth
        self.base_url = base_url.rstrip("/")
        self.webhook_secret = webhook_secret

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: QueryParams | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform an authenticated request and return the decoded JSON object.

        Args:
            method: HTTP method (e.g. 'GET', 'POST', 'DELETE').
            endpoint: API path relative to the base URL, e.g. ``/users``.
            params: Query parameters; keys may repeat.
            json_body: JSON body for the request.

        Returns:
            The decoded JSON object, or ``{}`` for empty / 204 responses.

        Raises:
            APIError: Non-2xx status.
            NetworkError: Transport failure.
            ParsingError: Body is not a JSON object.
            OAuthError: No token could be produced.
        """
        token = await self.oauth.generate_token()
        headers = self._auth_headers(token)
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        context = f"Helix {method} {endpoint}"

        async def operation() -> tuple[int, str]:
            timeout = aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT_SECONDS)
            async with self._session.request(
                method,
                url,
                headers=headers,
                params=list(params) if params else None,
                json=json_body,
                timeout=timeout,
            ) as resp:
                return resp.status, await resp.text()

        status, body = await handle_api_error(operation, context)
        logging.debug(f"Helix response: status={status} url={url}")
        raise_for_status(status, body, context)
        if status == 204 or not body.strip():
            return {}
        try:
            data = json.loads(body)
        except ValueError as e:
            raise ParsingError(f"{context} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ParsingError(f"{context} returned {type(data).__name__}, expected object")
        return data

    # ---- users ----
    async def get_users_by_id(self, *user_ids: str) -> list[User]:
        if not user_ids:
            return []
        data = await self.request("GET", "/users", params=[("id", u) for u in user_ids])
        return self._rows(User, data)

    async def get_users_by_name(self, *logins: str) -> list[User]:
        if not logins:
            return []
        data = await self.request(
            "GET", "/users", params=[("login", name.lower()) for name in logins]
        )
        return self._rows(User, data)

    async def get_user(self) -> User | None:
        """The user owning the current access token (user tokens only)."""
        users = self._rows(User, await self.request("GET", "/users"))
        return users[0] if users else None

    # ---- streams ----
    async def get_streams_by_id(self, *user_ids: str) -> list[Stream]:
        """Live streams of the given broadcaster IDs; offline users are omitted."""
        if not user_ids:
            return []
        params = [("user_id", u) for u in user_ids]
        params.append(("first", str(HELIX_PAGE_SIZE)))
        return self._rows(Stream, await self.request("GET", "/streams", params=params))

    async def get_streams_by_name(self, *logins: str) -> list[Stream]:
        """Live streams of the given broadcaster logins; offline users are omitted."""
        if not logins:
            return []
        params = [("user_login", name.lower()) for name in logins]
        params.append(("first", str(HELIX_PAGE_SIZE)))
        return self._rows(Stream, await self.request("GET", "/streams", params=params))

    # ---- moderation ----
    async def delete_message(self, broadcaster_id: str, message_id: str) -> None:
        """Delete one chat message; needs ``moderator:manage:chat_messages``.

        An empty ``broadcaster_id`` means the token owner's own channel.
        """
        user = await self.get_user()
        if user is None:
            raise OAuthError("access token is not associated with a user")
        params = [
            ("broadcaster_id", broadcaster_id or user.id),
            ("moderator_id", user.id),
            ("message_id", message_id),
        ]
        await self.request("DELETE", "/moderation/chat", params=params)

    # ---- eventsub ----
    async def get_subscriptions(self, only_enabled: bool = False) -> list[Subscription]:
        """All EventSub subscriptions of the application, following pagination."""
        base: list[tuple[str, str]] = [("status", "enabled")] if only_enabled else []
        subscriptions: list[Subscription] = []
        cursor = ""
        while True:
            params = list(base)
            if cursor:
                params.append(("after", cursor))
            data = await self.request("GET", "/eventsub/subscriptions", params=params)
            subscriptions.extend(self._rows(Subscription, data))
            pagination = data.get("pagination")
            cursor = pagination.get("cursor", "") if isinstance(pagination, dict) else ""
            if not cursor:
                return subscriptions

    async def delete_subscription(self, subscription_id: str) -> None:
        await self.request(
            "DELETE", "/eventsub/subscriptions", params=[("id", subscription_id)]
        )

    async def subscribe_to_event(
        self,
        broadcaster_id: str,
        callback_url: str,
        event_type: SubscriptionType | str,
    ) -> list[Subscription]:
        """Create a webhook subscription for ``event_type`` on ``broadcaster_id``."""
        subscription = Subscription(
            type=event_type,
            version=subscription_version(event_type),
            condition={"broadcaster_user_id": broadcaster_id},
            transport=SubscriptionTransport(
                method=TransportMethod.WEBHOOK,
                callback=callback_url,
                secret=self.webhook_secret or None,
            ),
        )
        data = await self.request(
            "POST", "/eventsub/subscriptions", json_body=subscription.to_request_body()
        )
        return self._rows(Subscription, data)

    async def subscribe_channel_update(
        self, broadcaster_id: str, callback_url: str
    ) -> list[Subscription]:
        """Category, title, labels or language of the channel changed."""
        return await self.subscribe_to_event(
            broadcaster_id, callback_url, SubscriptionType.CHANNEL_UPDATE
        )

    async def subscribe_stream_online(
        self, broadcaster_id: str, callback_url: str
    ) -> list[Subscription]:
        return await self.subscribe_to_event(
            broadcaster_id, callback_url, SubscriptionType.STREAM_ONLINE
        )

    async def subscribe_stream_offline(
        self, broadcaster_id: str, callback_url: str
    ) -> list[Subscription]:
        return await self.subscribe_to_event(
            broadcaster_id, callback_url, SubscriptionType.STREAM_OFFLINE
        )

    # ---- internal helpers ----
    def _auth_headers(self, access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Client-Id": self.client_id,
            "Content-Type": "application/json",
        }

    @staticmethod
    def _rows(model: type[ModelT], data: dict[str, Any]) -> list[ModelT]:
        rows = data.get("data")
        if not isinstance(rows, list):
            return []
        try:
            return [model.model_validate(r) for r in rows if isinstance(r, dict)]
        except ValidationError as e:
            raise ParsingError(
                f"unexpected {model.__name__} payload: {e.error_count()} errors"
            ) from e
