"""Chat session: connection lifecycle, login handshake and the read loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..constants import (
    CAPABILITIES,
    DEFAULT_COMMAND_PREFIX,
    HANDSHAKE_TIMEOUT,
    INVALID_AUTH_NOTICES,
    IRC_HOST,
    IRC_PORT,
)
from ..errors.internal import (
    AlreadyConnectedError,
    ConnectionClosedError,
    ConnectionFailedError,
    HandshakeError,
    HandshakeTimeoutError,
    InvalidTokenError,
    TmiConnectionError,
)
from ..logs.logger import logger
from .dispatcher import Handler, IRCDispatcher
from .models import (
    ANY_COMMAND,
    HANDSHAKE_REPLIES,
    Command,
    ConnectionState,
    HandshakeStep,
)
from .parser import IRCMessage, IRCUser, parse_irc_message
from .reader import read_chunk, split_lines
from .sender import CommandSender
from .tags import Tags


def normalize_token(token: str) -> str:
    return token if token.startswith("oauth:") else f"oauth:{token}"


def normalize_channel(channel: str) -> str:
    return channel.strip().lstrip("#").lower()


def _single_line(text: str) -> str:
    return text.replace("\r", " ").replace("\n", " ")


class IRCSession:  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """A single connection to the Twitch chat server.

    Handlers may be registered before or after :meth:`connect`. They run
    sequentially on the session's read loop task, in registration order, and
    may be plain functions or coroutines.
    """

    def __init__(
        self,
        token: str,
        username: str = "",
        *,
        host: str = IRC_HOST,
        port: int = IRC_PORT,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
    ) -> None:
        self.token = normalize_token(token)
        self.username = username.lower()
        self.host = host
        self.port = port
        self.prefix = command_prefix
        self.handshake_timeout = handshake_timeout
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.state = ConnectionState.IDLE
        self.checklist = HandshakeStep.NONE
        self.dispatcher = IRCDispatcher(self)
        self.sender = CommandSender(self)
        self._listen_task: asyncio.Task[None] | None = None
        self._connect_lock = asyncio.Lock()

    # ---- lifecycle ----
    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.LISTENING and self.writer is not None

    def _set_state(self, new_state: ConnectionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                user=self.username,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    async def connect(self) -> None:
        """Dial, log in and start the read loop.

        Returns once the server acknowledged the login.

        Raises:
            AlreadyConnectedError: The session already owns an open stream.
            ConnectionFailedError: The TCP dial failed.
            InvalidTokenError: The server rejected the credentials.
            HandshakeTimeoutError: The acknowledgments did not arrive in time.
            ConnectionClosedError: The stream ended during the handshake.
        """
        async with self._connect_lock:
            if self.writer is not None:
                raise AlreadyConnectedError()
            self._set_state(ConnectionState.DIALING)
            logger.log_event(
                "irc", "connect_start", user=self.username, server=self.host, port=self.port
            )
            try:
                self.reader, self.writer = await asyncio.open_connection(
                    self.host, self.port
                )
            except OSError as e:
                self._set_state(ConnectionState.FAILED)
                logger.log_event(
                    "irc",
                    "connect_network_error",
                    level=logging.ERROR,
                    user=self.username,
                    error=str(e),
                )
                raise ConnectionFailedError(
                    f"dial {self.host}:{self.port} failed: {e}",
                    data={"host": self.host, "port": self.port},
                ) from e

            self._set_state(ConnectionState.HANDSHAKING)
            try:
                await self.send_command(f"{Command.CAP} REQ :{' '.join(CAPABILITIES)}")
                await self.send_command(f"{Command.PASS} {self.token}")
                await self.send_command(f"{Command.NICK} {self.username}")
                await self._wait_for_init()
            except (HandshakeError, TmiConnectionError) as e:
                logger.log_event(
                    "irc",
                    "handshake_failed",
                    level=logging.ERROR,
                    user=self.username,
                    error=str(e),
                    error_type=type(e).__name__,
                    checklist=int(self.checklist),
                )
                await self._release_stream()
                self._set_state(ConnectionState.FAILED)
                raise
            except BaseException:
                # Cancelled mid-login.
                logger.log_event(
                    "irc", "handshake_aborted", level=logging.WARNING, user=self.username
                )
                await self._release_stream()
                self._set_state(ConnectionState.FAILED)
                raise

            self._set_state(ConnectionState.READY)
            logger.log_event("irc", "connect_success", user=self.username)
            self._listen_task = asyncio.create_task(
                self._listen(self.reader),
                name=f"tmi-listen-{self.username or 'anonymous'}",
            )
            self._set_state(ConnectionState.LISTENING)

    async def close(self) -> None:
        """Close the stream; the read loop observes EOF and exits."""
        if self.writer is None:
            return
        self._set_state(ConnectionState.CLOSED)
        await self._release_stream()
        logger.log_event("irc", "closed", user=self.username)

    async def wait_closed(self) -> None:
        """Wait until the read loop has exited.

        Cancelling the waiter leaves the read loop running.
        """
        task = self._listen_task
        if task is None or task is asyncio.current_task():
            return
        await asyncio.shield(task)

    async def _release_stream(self) -> None:
        writer = self.writer
        self.writer = None
        self.reader = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, RuntimeError) as e:
            logger.log_event(
                "irc",
                "close_error",
                level=logging.DEBUG,
                user=self.username,
                error=str(e),
            )

    # ---- handshake ----
    async def _wait_for_init(self) -> None:
        self.checklist = HandshakeStep.NONE
        try:
            await asyncio.wait_for(
                self._collect_acknowledgments(), timeout=self.handshake_timeout
            )
        except TimeoutError as e:
            raise HandshakeTimeoutError(
                f"login not acknowledged within {self.handshake_timeout}s",
                checklist=int(self.checklist),
            ) from e

    async def _collect_acknowledgments(self) -> None:
        while self.checklist != HandshakeStep.ALL:
            reader = self.reader
            if reader is None:
                raise ConnectionClosedError("stream closed during login")
            try:
                chunk = await read_chunk(reader)
            except OSError as e:
                raise ConnectionClosedError(f"read failed during login: {e}") from e
            if not chunk:
                raise ConnectionClosedError("server closed the connection during login")
            for raw in split_lines(chunk):
                if self.checklist == HandshakeStep.ALL:
                    # Lines that arrived together with the final acknowledgment.
                    await self._process_line(raw)
                else:
                    await self._process_init_line(raw)

    async def _process_init_line(self, raw: str) -> None:
        message = parse_irc_message(raw)
        if message is None:
            return
        self._log_raw(message)
        step = HANDSHAKE_REPLIES.get(message.command.name)
        if step is not None:
            self.checklist |= step
            logger.log_event(
                "irc",
                "handshake_step",
                level=logging.DEBUG,
                user=self.username,
                step=step.name,
                checklist=int(self.checklist),
            )
            if step is HandshakeStep.GLOBALUSERSTATE:
                self._adopt_global_user_state(message.tags)
                await self.dispatcher.dispatch(message)
            return
        if (
            message.command.name == Command.NOTICE
            and message.command.data in INVALID_AUTH_NOTICES
        ):
            raise InvalidTokenError(f"invalid token: {message.command.data}")
        await self.dispatcher.dispatch(message)

    def _adopt_global_user_state(self, tags: Tags) -> None:
        if not self.username and tags.display_name:
            self.username = tags.display_name.lower()

    # ---- read loop ----
    async def _listen(self, reader: asyncio.StreamReader | None) -> None:
        logger.log_event("irc", "listener_start", level=logging.DEBUG, user=self.username)
        # A handler may reconnect; the new stream gets its own read loop.
        while reader is not None and self.reader is reader:
            try:
                chunk = await read_chunk(reader)
            except OSError as e:
                logger.log_event(
                    "irc",
                    "read_error",
                    level=logging.WARNING,
                    user=self.username,
                    error=str(e),
                )
                break
            if not chunk:
                break
            for raw in split_lines(chunk):
                if self.reader is not reader:
                    break
                await self._process_line(raw)

        if self.reader is reader and self.state is ConnectionState.LISTENING:
            # Peer closed or the read failed; the caller did not ask for it.
            self._set_state(ConnectionState.CLOSED)
            await self._release_stream()
            logger.log_event(
                "irc", "connection_lost", level=logging.WARNING, user=self.username
            )
        logger.log_event("irc", "listener_stop", level=logging.DEBUG, user=self.username)

    async def _process_line(self, raw: str) -> None:
        message = parse_irc_message(raw)
        if message is None:
            return
        self._log_raw(message)
        await self.dispatcher.dispatch(message)

    def _log_raw(self, message: IRCMessage) -> None:
        if message.command.name == Command.PING:
            return
        logger.log_event(
            "irc", "raw", level=logging.DEBUG, user=self.username, raw=message.raw
        )

    # ---- sending ----
    async def send_command(self, command: str) -> None:
        """Send one protocol line. Empty commands are ignored, failures logged."""
        await self.sender.send(command)

    async def send_message(self, channel: str, text: str) -> None:
        await self.send_command(
            f"{Command.PRIVMSG} #{normalize_channel(channel)} :{_single_line(text)}"
        )

    async def reply(self, channel: str, parent_msg_id: str, text: str) -> None:
        """Send a chat message threaded as a reply to ``parent_msg_id``."""
        await self.send_command(
            f"@reply-parent-msg-id={parent_msg_id} "
            f"{Command.PRIVMSG} #{normalize_channel(channel)} :{_single_line(text)}"
        )

    async def join_channel(self, channel: str) -> None:
        await self.send_command(f"{Command.JOIN} #{normalize_channel(channel)}")

    async def leave_channel(self, channel: str) -> None:
        await self.send_command(f"{Command.PART} #{normalize_channel(channel)}")

    # ---- handler registration ----
    def on(self, command: str, callback: Handler) -> Handler:
        """Call ``callback(session, message)`` for every message named ``command``."""
        self.dispatcher.register_raw(command, callback)
        return callback

    def on_any(self, callback: Callable[[IRCSession, IRCMessage], Any]) -> Handler:
        """Call ``callback(session, message)`` for every message, after typed handlers."""
        self.dispatcher.register(ANY_COMMAND, callback)
        return callback

    def on_channel_join(
        self, callback: Callable[[IRCSession, str, IRCUser | None], Any]
    ) -> Handler:
        """A user joined a channel the session has joined."""
        self.dispatcher.register(Command.JOIN, callback)
        return callback

    def on_channel_leave(
        self, callback: Callable[[IRCSession, str, IRCUser | None], Any]
    ) -> Handler:
        """A user left a channel the session has joined."""
        self.dispatcher.register(Command.PART, callback)
        return callback

    def on_channel_message(
        self,
        callback: Callable[[IRCSession, str, IRCUser | None, str, str, Tags], Any],
    ) -> Handler:
        """``callback(session, channel, source, text, message_id, tags)`` per chat line."""
        self.dispatcher.register(Command.PRIVMSG, callback)
        return callback

    def on_channel_command_message(
        self,
        command: str,
        callback: Callable[[IRCSession, str, IRCUser | None, list[str]], Any],
    ) -> Handler:
        """Call ``callback(session, channel, source, args)`` for ``<prefix><command> args...``.

        ``!hello a b`` with the default prefix and command ``hello`` yields
        ``args == ["a", "b"]``.
        """

        def _command_filter(
            session: IRCSession,
            channel: str,
            source: IRCUser | None,
            text: str,
            _message_id: str,
            _tags: Tags,
        ) -> Any:
            if not text.startswith(session.prefix):
                return None
            word, *args = text[len(session.prefix) :].split() or [""]
            if word != command:
                return None
            return callback(session, channel, source, args)

        self.dispatcher.register(Command.PRIVMSG, _command_filter)
        return callback

    def on_global_user_state(
        self, callback: Callable[[IRCSession, Tags], Any]
    ) -> Handler:
        """Fires once during login with the session user's global tags.

        Register it before :meth:`connect` to observe it.
        """
        self.dispatcher.register(Command.GLOBALUSERSTATE, callback)
        return callback

    def on_room_state(self, callback: Callable[[IRCSession, Tags], Any]) -> Handler:
        self.dispatcher.register(Command.ROOMSTATE, callback)
        return callback

    def on_user_state(self, callback: Callable[[IRCSession, Tags], Any]) -> Handler:
        self.dispatcher.register(Command.USERSTATE, callback)
        return callback

    def on_notice(
        self, callback: Callable[[IRCSession, str, str, Tags], Any]
    ) -> Handler:
        """``callback(session, channel, text, tags)``; channel is empty for global notices."""
        self.dispatcher.register(Command.NOTICE, callback)
        return callback

    def on_user_notice(
        self, callback: Callable[[IRCSession, str, IRCUser | None, str, Tags], Any]
    ) -> Handler:
        self.dispatcher.register(Command.USERNOTICE, callback)
        return callback

    def on_clear_chat(
        self, callback: Callable[[IRCSession, str, str | None, Tags], Any]
    ) -> Handler:
        """``callback(session, channel, target_login, tags)``; target is None for a full clear."""
        self.dispatcher.register(Command.CLEARCHAT, callback)
        return callback

    def on_clear_message(
        self, callback: Callable[[IRCSession, str, str, Tags], Any]
    ) -> Handler:
        self.dispatcher.register(Command.CLEARMSG, callback)
        return callback

    def on_whisper(
        self, callback: Callable[[IRCSession, IRCUser | None, str, Tags], Any]
    ) -> Handler:
        self.dispatcher.register(Command.WHISPER, callback)
        return callback

    def on_reconnect(self, callback: Callable[[IRCSession], Any]) -> Handler:
        """The server is about to restart; reconnecting is up to the application."""
        self.dispatcher.register(Command.RECONNECT, callback)
        return callback
