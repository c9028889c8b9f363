"""Outgoing command serialization and writing."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..logs.logger import logger
from .models import Command

if TYPE_CHECKING:  # pragma: no cover
    from .session import IRCSession


def normalize_command(command: str) -> str:
    """Strip any trailing line ending; the CRLF terminator is appended on write."""
    return command.rstrip("\r\n")


def redact_command(command: str) -> str:
    """Hide the token carried by a PASS line."""
    name, sep, _ = command.partition(" ")
    if name.upper() == Command.PASS and sep:
        return f"{Command.PASS} ***"
    return command


class CommandSender:
    """Writes protocol lines to the session stream under a single write lock.

    Sends are fire-and-forget: write failures are logged, never raised.
    """

    def __init__(self, session: IRCSession) -> None:
        self.session = session
        self._write_lock = asyncio.Lock()

    async def send(self, command: str) -> None:
        line = normalize_command(command)
        if not line:
            return
        writer = self.session.writer
        if writer is None:
            logger.log_event(
                "irc",
                "send_not_connected",
                level=logging.WARNING,
                user=self.session.username,
                command=redact_command(line),
            )
            return
        try:
            async with self._write_lock:
                writer.write(f"{line}\r\n".encode())
                await writer.drain()
        except (OSError, RuntimeError) as e:
            logger.log_event(
                "irc",
                "send_failed",
                level=logging.ERROR,
                user=self.session.username,
                command=redact_command(line),
                error=str(e),
            )
            return
        logger.log_event(
            "irc",
            "send",
            level=logging.DEBUG,
            user=self.session.username,
            command=redact_command(line),
        )
