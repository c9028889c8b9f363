"""IRC subsystem package.

Contains the tag decoder, message parser, frame reader, command sender,
event dispatcher and the session that ties them to one connection.
"""

from .dispatcher import IRCDispatcher, build_event_adapters  # noqa: F401
from .models import ANY_COMMAND, Command, ConnectionState, HandshakeStep  # noqa: F401
from .parser import (  # noqa: F401
    IRCMessage,
    IRCUser,
    MessageCommand,
    format_irc_message,
    parse_irc_message,
)
from .reader import read_chunk, split_lines  # noqa: F401
from .sender import CommandSender  # noqa: F401
from .session import IRCSession  # noqa: F401
from .tags import TAG_FIELDS, TagKind, Tags, decode_tags, encode_tags  # noqa: F401

__all__ = [
    "ANY_COMMAND",
    "Command",
    "CommandSender",
    "ConnectionState",
    "HandshakeStep",
    "IRCDispatcher",
    "IRCMessage",
    "IRCSession",
    "IRCUser",
    "MessageCommand",
    "TAG_FIELDS",
    "TagKind",
    "Tags",
    "build_event_adapters",
    "decode_tags",
    "encode_tags",
    "format_irc_message",
    "parse_irc_message",
    "read_chunk",
    "split_lines",
]
