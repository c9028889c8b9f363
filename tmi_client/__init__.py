"""Asynchronous Twitch chat (IRC dialect) client."""

from .irc.session import IRCSession  # noqa: F401

__version__ = "1.0.0"

__all__ = ["IRCSession", "__version__"]
