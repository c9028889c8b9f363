"""
Configuration constants for the Twitch chat client

This module contains all configurable constants used throughout the package.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, logs a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Attempts to parse the environment variable as a float. If the variable
    is not set or cannot be parsed, logs a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Retrieve a non-empty string from an environment variable, else the default."""
    value = os.getenv(name)
    return value if value else default


# IRC endpoint
IRC_HOST = _get_env_str("IRC_HOST", "irc.chat.twitch.tv")
IRC_PORT = _get_env_int("IRC_PORT", 6667)

# Handshake / framing
HANDSHAKE_TIMEOUT = _get_env_float(
    "HANDSHAKE_TIMEOUT", 5.0
)  # Seconds to wait for the full login acknowledgment sequence
READ_CHUNK_SIZE = _get_env_int(
    "READ_CHUNK_SIZE", 1024
)  # Bytes requested per socket read
CAPABILITIES = (
    "twitch.tv/commands",
    "twitch.tv/membership",
    "twitch.tv/tags",
)
INVALID_AUTH_NOTICES = frozenset(
    {
        "Improperly formatted auth",
        "Login authentication failed",
    }
)

# Command handling
DEFAULT_COMMAND_PREFIX = _get_env_str("DEFAULT_COMMAND_PREFIX", "!")

# Helix / OAuth endpoints
HELIX_BASE_URL = _get_env_str("HELIX_BASE_URL", "https://api.twitch.tv/helix")
OAUTH_TOKEN_URL = _get_env_str("OAUTH_TOKEN_URL", "https://id.twitch.tv/oauth2/token")

# Network/HTTP constants
HTTP_REQUEST_TIMEOUT_SECONDS = _get_env_int(
    "HTTP_REQUEST_TIMEOUT_SECONDS", 30
)  # Default HTTP request timeout
HELIX_PAGE_SIZE = _get_env_int(
    "HELIX_PAGE_SIZE", 100
)  # Max items requested per Helix page
