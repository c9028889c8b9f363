from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..constants import DEFAULT_COMMAND_PREFIX


def normalize_channels(channels: list[str] | Any) -> list[str]:
    """Lowercase, strip '#', drop empties, deduplicate and sort channel names."""
    if isinstance(channels, str):
        channels = channels.split(",")
    if not isinstance(channels, list | tuple):
        raise ValueError("channels must be a list")
    return sorted(
        dict.fromkeys(
            c.strip().lstrip("#").lower()
            for c in channels
            if isinstance(c, str) and c.strip().lstrip("#")
        )
    )


class BotConfig(BaseModel):
    """Settings of the example chat bot.

    Attributes:
        username: Login name used for NICK; may be empty, the server's
            GLOBALUSERSTATE display name is adopted in that case.
        irc_token: Chat token, with or without the ``oauth:`` prefix.
        client_id: Application client ID for Helix calls (optional).
        client_secret: Application client secret for Helix calls (optional).
        channels: Channels to join after connecting.
        command_prefix: Prefix recognized by command-message handlers.
    """

    username: str = Field(default="", max_length=25)
    irc_token: str = Field(min_length=1)
    client_id: str | None = None
    client_secret: str | None = None
    channels: list[str] = Field(default_factory=list)
    command_prefix: str = Field(default=DEFAULT_COMMAND_PREFIX, min_length=1)

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v: Any) -> str:
        return str(v or "").strip().lower()

    @field_validator("channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> list[str]:
        return normalize_channels(v)

    @property
    def has_api_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BotConfig:
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
