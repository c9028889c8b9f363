#!/usr/bin/env python3
"""
Example chat bot built on the Twitch chat client
"""

import asyncio
import logging
import signal
import sys

import aiohttp

from .api.helix import HelixAPI
from .auth.oauth import OAuthClient
from .config import BotConfig, load_config
from .errors.handling import log_error
from .errors.internal import ConfigError, InternalError
from .irc.parser import IRCUser
from .irc.session import IRCSession
from .irc.tags import Tags
from .logging_config import LoggerConfigurator
from .logs.logger import logger

configurator = LoggerConfigurator()


def build_session(config: BotConfig) -> IRCSession:
    """Create a session with the example handlers registered."""
    session = IRCSession(
        config.irc_token,
        config.username,
        command_prefix=config.command_prefix,
    )

    @session.on_channel_message
    def log_chat(
        _session: IRCSession,
        channel: str,
        source: IRCUser | None,
        text: str,
        _message_id: str,
        tags: Tags,
    ) -> None:
        author = tags.display_name or (str(source) if source else "?")
        logger.log_event("bot", "chat", channel=channel, author=author, text=text)

    async def hello(
        s: IRCSession, channel: str, source: IRCUser | None, args: list[str]
    ) -> None:
        name = args[0] if args else (source.nickname if source else "there")
        await s.send_message(channel, f"Hello {name}!")

    session.on_channel_command_message("hello", hello)

    @session.on_global_user_state
    def log_user_state(s: IRCSession, tags: Tags) -> None:
        logger.log_event(
            "bot",
            "global_user_state",
            user=s.username,
            user_id=tags.user_id,
            color=tags.color or "none",
        )

    @session.on_reconnect
    def log_reconnect(s: IRCSession) -> None:
        logger.log_event("bot", "reconnect_requested", level=logging.WARNING, user=s.username)

    return session


async def report_live_channels(config: BotConfig) -> None:
    """Log which configured channels are live; needs client credentials."""
    if not (config.has_api_credentials and config.channels):
        return
    async with aiohttp.ClientSession() as http:
        oauth = OAuthClient(config.client_id or "", config.client_secret or "", http)
        api = HelixAPI(config.client_id or "", http, oauth)
        try:
            streams = await api.get_streams_by_name(*config.channels)
        except InternalError as e:
            log_error("Live channel lookup failed", e)
            return
    for stream in streams:
        logger.log_event(
            "bot",
            "channel_live",
            channel=stream.user_login,
            title=stream.title,
            viewers=stream.viewer_count,
        )


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on some platforms
            continue


async def run_bot(config: BotConfig, stop: asyncio.Event | None = None) -> None:
    """Connect, join the configured channels and run until stopped or disconnected."""
    stop = stop or asyncio.Event()
    session = build_session(config)
    await session.connect()
    try:
        for channel in config.channels:
            await session.join_channel(channel)
        await report_live_channels(config)
        closed = asyncio.create_task(session.wait_closed())
        stopped = asyncio.create_task(stop.wait())
        done, pending = await asyncio.wait(
            {closed, stopped}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        if closed in done:
            logger.log_event("bot", "disconnected", level=logging.WARNING, user=session.username)
    finally:
        await session.close()
        await session.wait_closed()


async def main() -> None:
    """Load the configuration and run the bot until SIGINT/SIGTERM."""
    configurator.configure()
    stop = asyncio.Event()
    _install_signal_handlers(stop)
    try:
        logger.log_event("app", "start")
        config = load_config()
        await run_bot(config, stop)
    except asyncio.CancelledError:
        raise
    except ConfigError as e:
        log_error("Configuration error", e, e.data)
        sys.exit(2)
    except InternalError as e:
        log_error("Chat session error", e, e.data)
        sys.exit(1)
    finally:
        logging.info("✅ Application shutdown complete")


def run() -> None:
    """Synchronous entry point for the application."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except asyncio.CancelledError:
        sys.exit(0)


if __name__ == "__main__":
    run()
