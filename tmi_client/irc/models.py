"""Shared IRC data models."""

from __future__ import annotations

from enum import Enum, IntFlag, StrEnum, auto


class ConnectionState(Enum):
    IDLE = auto()
    DIALING = auto()
    HANDSHAKING = auto()
    READY = auto()
    LISTENING = auto()
    CLOSED = auto()
    FAILED = auto()


class HandshakeStep(IntFlag):
    """One bit per server acknowledgment required before the session is usable."""

    CAP = 1
    WELCOME = 2  # 001
    YOURHOST = 4  # 002
    CREATED = 8  # 003
    MYINFO = 16  # 004
    MOTD_START = 32  # 375
    MOTD = 64  # 372
    GLOBALUSERSTATE = 128

    NONE = 0
    ALL = 255


class Command(StrEnum):
    """Command names of the Twitch IRC dialect."""

    # Sent by the client
    JOIN = "JOIN"
    NICK = "NICK"
    PART = "PART"
    PASS = "PASS"
    PONG = "PONG"
    PRIVMSG = "PRIVMSG"
    CAP = "CAP"

    # Received from the server
    NOTICE = "NOTICE"
    PING = "PING"
    CLEARCHAT = "CLEARCHAT"
    CLEARMSG = "CLEARMSG"
    GLOBALUSERSTATE = "GLOBALUSERSTATE"
    HOSTTARGET = "HOSTTARGET"
    RECONNECT = "RECONNECT"
    ROOMSTATE = "ROOMSTATE"
    USERNOTICE = "USERNOTICE"
    USERSTATE = "USERSTATE"
    WHISPER = "WHISPER"

    # Numeric replies
    RPL_WELCOME = "001"
    RPL_YOURHOST = "002"
    RPL_CREATED = "003"
    RPL_MYINFO = "004"
    RPL_NAMREPLY = "353"
    RPL_ENDOFNAMES = "366"
    RPL_MOTD = "372"
    RPL_MOTDSTART = "375"
    RPL_ENDOFMOTD = "376"


ANY_COMMAND = "*"

HANDSHAKE_REPLIES: dict[str, HandshakeStep] = {
    Command.CAP: HandshakeStep.CAP,
    Command.RPL_WELCOME: HandshakeStep.WELCOME,
    Command.RPL_YOURHOST: HandshakeStep.YOURHOST,
    Command.RPL_CREATED: HandshakeStep.CREATED,
    Command.RPL_MYINFO: HandshakeStep.MYINFO,
    Command.RPL_MOTDSTART: HandshakeStep.MOTD_START,
    Command.RPL_MOTD: HandshakeStep.MOTD,
    Command.GLOBALUSERSTATE: HandshakeStep.GLOBALUSERSTATE,
}
