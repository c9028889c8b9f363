"""Event dispatch: command name -> ordered handlers, then wildcard handlers.

Each command with a typed callback signature has an adapter that turns an
:class:`IRCMessage` into the positional arguments its handlers receive
(after the session, which is always first). Adapters are resolved when a
handler is registered, so dispatch never inspects callback types.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..logs.logger import logger
from .models import ANY_COMMAND, Command
from .parser import IRCMessage

if TYPE_CHECKING:  # pragma: no cover
    from .session import IRCSession

EventAdapter = Callable[[IRCMessage], tuple[Any, ...] | None]
Handler = Callable[..., Any]


def _channel_and_source(m: IRCMessage) -> tuple[Any, ...] | None:
    if not m.command.arguments:
        return None
    return (m.channel, m.source)


def _chat_message(m: IRCMessage) -> tuple[Any, ...] | None:
    if not m.command.arguments:
        return None
    return (m.channel, m.source, m.command.data, m.tags.id, m.tags)


def _tags_only(m: IRCMessage) -> tuple[Any, ...]:
    return (m.tags,)


def _notice(m: IRCMessage) -> tuple[Any, ...]:
    return (m.channel, m.command.data, m.tags)


def _user_notice(m: IRCMessage) -> tuple[Any, ...]:
    return (m.channel, m.source, m.command.data, m.tags)


def _clear_chat(m: IRCMessage) -> tuple[Any, ...]:
    # No trailing data means the whole room was cleared.
    return (m.channel, m.command.data or None, m.tags)


def _clear_message(m: IRCMessage) -> tuple[Any, ...]:
    return (m.channel, m.command.data, m.tags)


def _whisper(m: IRCMessage) -> tuple[Any, ...]:
    return (m.source, m.command.data, m.tags)


def _no_payload(m: IRCMessage) -> tuple[Any, ...]:  # noqa: ARG001
    return ()


def _whole_message(m: IRCMessage) -> tuple[Any, ...]:
    return (m,)


def build_event_adapters() -> dict[str, EventAdapter]:
    """Build the per-session table of typed callback adapters."""
    return {
        Command.JOIN: _channel_and_source,
        Command.PART: _channel_and_source,
        Command.PRIVMSG: _chat_message,
        Command.GLOBALUSERSTATE: _tags_only,
        Command.ROOMSTATE: _tags_only,
        Command.USERSTATE: _tags_only,
        Command.NOTICE: _notice,
        Command.USERNOTICE: _user_notice,
        Command.CLEARCHAT: _clear_chat,
        Command.CLEARMSG: _clear_message,
        Command.WHISPER: _whisper,
        Command.RECONNECT: _no_payload,
        ANY_COMMAND: _whole_message,
    }


@dataclass(frozen=True, slots=True)
class _Registration:
    adapter: EventAdapter
    callback: Handler


class IRCDispatcher:
    def __init__(self, session: IRCSession) -> None:
        self.session = session
        self._adapters = build_event_adapters()
        self._handlers: dict[str, list[_Registration]] = {}

    def register(self, command: str, callback: Handler) -> None:
        """Register a typed handler for ``command`` (or ``"*"`` for every message).

        Raises:
            ValueError: If ``command`` has no typed callback signature; use
                :meth:`register_raw` for those.
        """
        adapter = self._adapters.get(command)
        if adapter is None:
            raise ValueError(f"no typed callback signature for command {command!r}")
        self._append(command, _Registration(adapter, callback))

    def register_raw(self, command: str, callback: Handler) -> None:
        """Register a handler receiving ``(session, message)`` for any command name."""
        self._append(command, _Registration(_whole_message, callback))

    def handler_count(self, command: str) -> int:
        return len(self._handlers.get(command, ()))

    def _append(self, command: str, registration: _Registration) -> None:
        self._handlers.setdefault(str(command), []).append(registration)

    async def dispatch(self, message: IRCMessage) -> None:
        name = message.command.name
        if name == Command.PING:
            await self._handle_ping(message)
            return
        for registration in tuple(self._handlers.get(name, ())):
            await self._invoke(name, registration, message)
        for registration in tuple(self._handlers.get(ANY_COMMAND, ())):
            await self._invoke(ANY_COMMAND, registration, message)

    async def _handle_ping(self, message: IRCMessage) -> None:
        payload = message.command.data
        pong = f"{Command.PONG} :{payload}" if payload else str(Command.PONG)
        await self.session.send_command(pong)
        logger.log_event(
            "irc", "ping", level=logging.DEBUG, user=self.session.username
        )

    async def _invoke(
        self, command: str, registration: _Registration, message: IRCMessage
    ) -> None:
        args = registration.adapter(message)
        if args is None:
            logger.log_event(
                "irc",
                "dispatch_skipped",
                level=logging.DEBUG,
                user=self.session.username,
                command=command,
                raw=message.raw,
            )
            return
        try:
            result = registration.callback(self.session, *args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "handler_error",
                level=logging.ERROR,
                user=self.session.username,
                command=command,
                error=str(e),
                error_type=type(e).__name__,
            )
