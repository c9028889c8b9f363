import asyncio
import random
import socket
from typing import Any

import pytest

from fake_tmi import CAP_ACK, HANDSHAKE_REPLIES, wait_until
from tmi_client.errors import (
    AlreadyConnectedError,
    ConnectionClosedError,
    ConnectionFailedError,
    HandshakeTimeoutError,
    InvalidTokenError,
)
from tmi_client.irc.models import ConnectionState, HandshakeStep
from tmi_client.irc.session import IRCSession, normalize_channel, normalize_token


def _session(server, **kwargs: Any) -> IRCSession:
    kwargs.setdefault("handshake_timeout", 2.0)
    return IRCSession("abc123", "tester", host="127.0.0.1", port=server.port, **kwargs)


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_connect_completes_handshake(tmi_server):
    server = await tmi_server()
    session = _session(server)

    await session.connect()

    assert session.state is ConnectionState.LISTENING
    assert session.checklist == HandshakeStep.ALL
    assert int(session.checklist) == 255
    assert session.connected
    assert server.received[:3] == [
        "CAP REQ :twitch.tv/commands twitch.tv/membership twitch.tv/tags",
        "PASS oauth:abc123",
        "NICK tester",
    ]
    await session.close()
    await session.wait_closed()
    assert session.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_handshake_replies_in_any_order(tmi_server):
    replies = list(HANDSHAKE_REPLIES)
    random.Random(7).shuffle(replies)
    server = await tmi_server(replies)
    session = _session(server)
    await session.connect()
    assert session.checklist == HandshakeStep.ALL
    await session.close()


@pytest.mark.asyncio
async def test_token_keeps_existing_prefix(tmi_server):
    server = await tmi_server()
    session = IRCSession(
        "oauth:abc123", "tester", host="127.0.0.1", port=server.port
    )
    await session.connect()
    assert "PASS oauth:abc123" in server.received
    await session.close()


@pytest.mark.asyncio
async def test_global_user_state_is_dispatched_and_names_anonymous_session(tmi_server):
    server = await tmi_server()
    session = IRCSession("abc123", host="127.0.0.1", port=server.port)
    states: list[str] = []
    session.on_global_user_state(lambda s, tags: states.append(tags.user_id))

    await session.connect()

    assert states == ["1234"]
    assert session.username == "tester"
    await session.close()


@pytest.mark.asyncio
async def test_invalid_auth_notice_fails_and_closes(tmi_server):
    server = await tmi_server(
        [CAP_ACK, ":tmi.twitch.tv NOTICE * :Improperly formatted auth"]
    )
    session = _session(server)

    with pytest.raises(InvalidTokenError):
        await session.connect()

    assert session.state is ConnectionState.FAILED
    assert session.writer is None
    await asyncio.wait_for(server.disconnected.wait(), timeout=2)


@pytest.mark.asyncio
async def test_login_authentication_failed_notice(tmi_server):
    server = await tmi_server([":tmi.twitch.tv NOTICE * :Login authentication failed"])
    with pytest.raises(InvalidTokenError):
        await _session(server).connect()


@pytest.mark.asyncio
async def test_handshake_timeout_reports_checklist(tmi_server):
    server = await tmi_server([CAP_ACK, ":tmi.twitch.tv 001 tester :Welcome, GLHF!"])
    session = _session(server, handshake_timeout=0.2)

    with pytest.raises(HandshakeTimeoutError) as exc_info:
        await session.connect()

    assert exc_info.value.checklist == int(HandshakeStep.CAP | HandshakeStep.WELCOME)
    assert exc_info.value.data["checklist"] == 3
    assert session.state is ConnectionState.FAILED
    assert session.writer is None


@pytest.mark.asyncio
async def test_server_closing_during_handshake(tmi_server):
    server = await tmi_server([])
    session = _session(server)

    async def hang_up() -> None:
        await wait_until(lambda: "NICK tester" in server.received)
        server.drop_clients()

    closer = asyncio.create_task(hang_up())
    with pytest.raises(ConnectionClosedError):
        await session.connect()
    await closer
    assert session.state is ConnectionState.FAILED


@pytest.mark.asyncio
async def test_failed_session_can_connect_again(tmi_server):
    failing = await tmi_server([":tmi.twitch.tv NOTICE * :Improperly formatted auth"])
    session = _session(failing)
    with pytest.raises(InvalidTokenError):
        await session.connect()

    working = await tmi_server()
    session.port = working.port
    await session.connect()
    assert session.state is ConnectionState.LISTENING
    await session.close()


@pytest.mark.asyncio
async def test_dial_failure():
    session = IRCSession("abc123", "tester", host="127.0.0.1", port=_free_port())
    with pytest.raises(ConnectionFailedError) as exc_info:
        await session.connect()
    assert session.state is ConnectionState.FAILED
    assert exc_info.value.data["host"] == "127.0.0.1"


@pytest.mark.asyncio
async def test_connect_twice_raises_already_connected(tmi_server):
    server = await tmi_server()
    session = _session(server)
    await session.connect()
    with pytest.raises(AlreadyConnectedError):
        await session.connect()
    await session.close()


@pytest.mark.asyncio
async def test_read_loop_dispatches_and_answers_ping(tmi_server):
    server = await tmi_server()
    session = _session(server)
    messages: list[tuple[str, str, str]] = []
    every: list[str] = []
    session.on_channel_message(
        lambda s, channel, source, text, message_id, tags: messages.append(
            (channel, source.nickname, text)
        )
    )
    session.on_any(lambda s, m: every.append(m.command.name))
    await session.connect()
    every.clear()

    await server.push(
        "PING :tmi.twitch.tv",
        "@id=1;display-name=Foo :foo!foo@foo.tmi.twitch.tv PRIVMSG #bar :Hello world",
    )
    await wait_until(lambda: len(messages) == 1 and "PONG :tmi.twitch.tv" in server.received)

    assert messages == [("bar", "foo", "Hello world")]
    assert every == ["PRIVMSG"]
    await session.close()


@pytest.mark.asyncio
async def test_lines_arriving_with_final_ack_are_dispatched(tmi_server):
    server = await tmi_server(
        HANDSHAKE_REPLIES + [":foo!foo@foo.tmi.twitch.tv JOIN #bar"]
    )
    session = _session(server)
    joins: list[tuple[str, str]] = []
    session.on_channel_join(lambda s, channel, source: joins.append((channel, str(source))))
    await session.connect()
    await wait_until(lambda: joins == [("bar", "foo")])
    await session.close()


@pytest.mark.asyncio
async def test_command_message_handler(tmi_server):
    server = await tmi_server()
    session = _session(server)
    calls: list[tuple[str, list[str]]] = []

    async def hello(s, channel, source, args):
        calls.append((channel, args))
        await s.send_message(channel, f"Hello {source.nickname}!")

    session.on_channel_command_message("hello", hello)
    await session.connect()
    await server.push(
        ":foo!foo@foo PRIVMSG #bar :!hello there friend",
        ":foo!foo@foo PRIVMSG #bar :!helloworld",
        ":foo!foo@foo PRIVMSG #bar :hello",
    )
    await wait_until(lambda: "PRIVMSG #bar :Hello foo!" in server.received)
    assert calls == [("bar", ["there", "friend"])]
    await session.close()


@pytest.mark.asyncio
async def test_custom_command_prefix(tmi_server):
    server = await tmi_server()
    session = _session(server, command_prefix="?")
    calls: list[list[str]] = []
    session.on_channel_command_message("ping", lambda s, c, src, args: calls.append(args))
    await session.connect()
    await server.push(":foo!foo@foo PRIVMSG #bar :!ping", ":foo!foo@foo PRIVMSG #bar :?ping 1")
    await wait_until(lambda: calls == [["1"]])
    await session.close()


@pytest.mark.asyncio
async def test_send_helpers_normalize_channels(tmi_server):
    server = await tmi_server()
    session = _session(server)
    await session.connect()
    await session.join_channel("#Bar")
    await session.send_message("bar", "line one\nline two")
    await session.reply("#bar", "abc-123", "thanks")
    await session.leave_channel("BAR")
    await wait_until(lambda: "PART #bar" in server.received)
    assert server.received[3:] == [
        "JOIN #bar",
        "PRIVMSG #bar :line one line two",
        "@reply-parent-msg-id=abc-123 PRIVMSG #bar :thanks",
        "PART #bar",
    ]
    await session.close()


@pytest.mark.asyncio
async def test_peer_close_ends_read_loop(tmi_server):
    server = await tmi_server()
    session = _session(server)
    await session.connect()

    server.drop_clients()
    await asyncio.wait_for(session.wait_closed(), timeout=2)

    assert session.state is ConnectionState.CLOSED
    assert not session.connected
    assert session.writer is None


@pytest.mark.asyncio
async def test_reconnect_is_dispatched_not_acted_on(tmi_server):
    server = await tmi_server()
    session = _session(server)
    fired = asyncio.Event()
    session.on_reconnect(lambda s: fired.set())
    await session.connect()
    await server.push(":tmi.twitch.tv RECONNECT")
    await asyncio.wait_for(fired.wait(), timeout=2)
    assert session.state is ConnectionState.LISTENING
    await session.close()


@pytest.mark.asyncio
async def test_reconnect_from_handler_keeps_a_single_read_loop(tmi_server):
    server = await tmi_server()
    session = _session(server)
    texts: list[str] = []
    reconnected = asyncio.Event()

    async def reconnect(s):
        await s.close()
        await s.connect()
        reconnected.set()

    session.on_reconnect(reconnect)
    session.on_channel_message(
        lambda s, channel, source, text, message_id, tags: texts.append(text)
    )
    await session.connect()
    first_loop = session._listen_task

    await server.push(":tmi.twitch.tv RECONNECT")
    await asyncio.wait_for(reconnected.wait(), timeout=2)
    await asyncio.wait_for(server.disconnected.wait(), timeout=2)
    await server.push(":foo!foo@foo PRIVMSG #bar :after reconnect")
    await wait_until(lambda: texts == ["after reconnect"])

    new_loop = session._listen_task
    assert new_loop is not first_loop
    await asyncio.wait_for(first_loop, timeout=2)
    assert not new_loop.done()
    assert session.state is ConnectionState.LISTENING
    assert server.received.count("NICK tester") == 2

    await session.close()
    await asyncio.wait_for(session.wait_closed(), timeout=2)
    assert session.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_out_of_range_timestamp_keeps_read_loop_alive(tmi_server):
    server = await tmi_server()
    session = _session(server)
    texts: list[str] = []
    session.on_channel_message(
        lambda s, channel, source, text, message_id, tags: texts.append(text)
    )
    await session.connect()

    await server.push(
        "@tmi-sent-ts=999999999999999 :foo!foo@foo PRIVMSG #bar :bad",
        "@tmi-sent-ts=99999999999999999999 :foo!foo@foo PRIVMSG #bar :worse",
        "@tmi-sent-ts=1642696567751 :foo!foo@foo PRIVMSG #bar :good",
        "PING :tmi.twitch.tv",
    )
    await wait_until(lambda: "PONG :tmi.twitch.tv" in server.received)

    assert texts == ["bad", "worse", "good"]
    assert session.connected
    await session.close()


@pytest.mark.asyncio
async def test_cancelled_connect_releases_stream(tmi_server):
    server = await tmi_server([])
    session = _session(server)
    attempt = asyncio.create_task(session.connect())
    await wait_until(lambda: "NICK tester" in server.received)

    attempt.cancel()
    with pytest.raises(asyncio.CancelledError):
        await attempt

    assert session.state is ConnectionState.FAILED
    assert session.writer is None
    await asyncio.wait_for(server.disconnected.wait(), timeout=2)

    server.replies = list(HANDSHAKE_REPLIES)
    await session.connect()
    assert session.connected
    await session.close()


@pytest.mark.asyncio
async def test_close_is_idempotent(tmi_server):
    server = await tmi_server()
    session = _session(server)
    await session.close()
    await session.connect()
    await session.close()
    await session.close()
    await session.wait_closed()
    assert session.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_send_after_close_is_a_logged_no_op(tmi_server, captured_events):
    server = await tmi_server()
    session = _session(server)
    await session.connect()
    await session.close()
    await session.send_message("bar", "late")
    assert ("irc", "send_not_connected") in [(d, a) for d, a, _ in captured_events]


def test_normalizers():
    assert normalize_token("abc") == "oauth:abc"
    assert normalize_token("oauth:abc") == "oauth:abc"
    assert normalize_channel(" #Bar ") == "bar"
