"""OAuth token acquisition and refresh for the Helix API."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp

from ..constants import HTTP_REQUEST_TIMEOUT_SECONDS, OAUTH_TOKEN_URL
from ..errors.handling import handle_api_error
from ..errors.internal import OAuthError, ParsingError


@dataclass
class Token:
    """A token response from the authorization server.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Token used to obtain the next access token, if any.
        scopes: Scopes granted to the access token.
        expires_in: Lifetime in seconds as reported by the server.
        expires_at: Absolute expiry, computed when the token was received.
    """

    access_token: str = ""
    refresh_token: str = ""
    scopes: list[str] = field(default_factory=list)
    expires_in: int = 0
    expires_at: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        if not self.access_token or self.expires_at is None:
            return False
        return self.expires_at > (now or datetime.now(UTC))


class OAuthClient:
    """Produces a currently valid bearer token, refreshing it when expired.

    Without a refresh token the client-credentials grant is used.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http_session: aiohttp.ClientSession,
        *,
        scope: str = "",
        token_url: str = OAUTH_TOKEN_URL,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = http_session
        self.scope = scope
        self.token_url = token_url
        self._last_token = Token()
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Token:
        return self._last_token

    def set_refresh_token(self, refresh_token: str) -> None:
        """Use ``refresh_token`` for the next call, discarding the cached token."""
        self._last_token = Token(refresh_token=refresh_token)

    async def generate_token(self) -> str:
        """Return the cached token while valid, otherwise obtain a new one.

        Raises:
            OAuthError: The token endpoint rejected the request.
            NetworkError: The token endpoint could not be reached.
            ParsingError: The token response was malformed.
        """
        async with self._lock:
            if self._last_token.is_valid():
                return self._last_token.access_token
            if self._last_token.refresh_token:
                return await self._generate_from_refresh_token()
            return await self._generate_from_credentials()

    async def generate_from_authorization_code(self, code: str, redirect_uri: str) -> str:
        """Exchange an authorization code (authorization code grant flow)."""
        async with self._lock:
            return await self._token_request(
                {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": redirect_uri,
                }
            )

    async def _generate_from_credentials(self) -> str:
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "client_credentials",
        }
        if self.scope:
            form["scope"] = self.scope
        return await self._token_request(form)

    async def _generate_from_refresh_token(self) -> str:
        return await self._token_request(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": self._last_token.refresh_token,
            }
        )

    async def _token_request(self, form: dict[str, str]) -> str:
        grant = form.get("grant_type", "")

        async def operation() -> tuple[int, str]:
            timeout = aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT_SECONDS)
            async with self.session.post(
                self.token_url, data=form, timeout=timeout
            ) as resp:
                return resp.status, await resp.text()

        status, body = await handle_api_error(operation, f"OAuth {grant} grant")
        if status != 200:
            raise OAuthError(
                f"invalid status code expected 200 but got {status}! body: {body}",
                data={"status": status, "grant_type": grant},
            )
        token = self._parse_token(body)
        self._last_token = token
        logging.info(
            f"OAuth token obtained grant={grant} expires_in={token.expires_in}"
        )
        return token.access_token

    def _parse_token(self, body: str) -> Token:
        try:
            payload: Any = json.loads(body)
        except ValueError as e:
            raise ParsingError(f"token response is not JSON: {e}") from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise ParsingError("Missing access_token in token response")
        try:
            expires_in = int(payload.get("expires_in") or 0)
        except (TypeError, ValueError) as e:
            raise ParsingError(f"invalid expires_in in token response: {e}") from e
        scopes = payload.get("scope") or []
        if isinstance(scopes, str):
            scopes = scopes.split()
        return Token(
            access_token=str(payload["access_token"]),
            refresh_token=str(
                payload.get("refresh_token") or self._last_token.refresh_token
            ),
            scopes=list(scopes),
            expires_in=expires_in,
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        )
