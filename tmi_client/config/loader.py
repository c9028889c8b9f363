"""Configuration loading: a JSON file overlaid with environment variables."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors.internal import ConfigError
from .model import BotConfig

DEFAULT_CONFIG_FILE = "tmi_client.conf"

# Environment variable -> config field
ENV_OVERRIDES = {
    "TMI_USERNAME": "username",
    "TMI_IRC_TOKEN": "irc_token",
    "TMI_CLIENT_ID": "client_id",
    "TMI_CLIENT_SECRET": "client_secret",
    "TMI_CHANNELS": "channels",
}


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read the raw JSON object from ``path``; a missing file yields ``{}``."""
    file_path = Path(path)
    if not file_path.exists():
        logging.debug(f"Config file not found path={file_path}")
        return {}
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"could not read config file {file_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {file_path} must contain a JSON object")
    return data


def apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    merged = dict(data)
    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            merged[field_name] = value.split(",") if field_name == "channels" else value
    return merged


def load_config(path: str | Path | None = None) -> BotConfig:
    """Load and validate the bot configuration.

    Args:
        path: JSON config file; defaults to ``$TMI_CONF_FILE`` or
            ``tmi_client.conf``.

    Raises:
        ConfigError: The file is unreadable or the merged settings are invalid.
    """
    config_file = path or os.environ.get("TMI_CONF_FILE", DEFAULT_CONFIG_FILE)
    data = apply_env_overrides(read_config_file(config_file))
    try:
        config = BotConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigError(
            f"invalid configuration: {e.error_count()} errors",
            data={"fields": [".".join(map(str, err["loc"])) for err in e.errors()]},
        ) from e
    logging.info(
        f"✅ Configuration loaded file={config_file} channels={len(config.channels)}"
    )
    return config
