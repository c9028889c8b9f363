"""IRC message parsing utilities.

Grammar: ``["@" tags " "] [":" source " "] command [" " arg]* [" :" trailing]``.
Parsing is total: malformed input yields a best-effort partial message.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .tags import Tags, decode_tags, encode_tags


@dataclass(frozen=True, slots=True)
class IRCUser:
    """Sender of a message: ``nick!host`` or a bare server host."""

    nickname: str = ""
    host: str = ""

    def __str__(self) -> str:
        return self.nickname or self.host

    def to_raw(self) -> str:
        if self.nickname:
            return f"{self.nickname}!{self.host}"
        return self.host


@dataclass(frozen=True, slots=True)
class MessageCommand:
    name: str
    arguments: tuple[str, ...] = ()
    data: str = ""


@dataclass(frozen=True, slots=True)
class IRCMessage:
    raw: str
    command: MessageCommand
    tags: Tags = field(default_factory=Tags)
    source: IRCUser | None = None

    @property
    def channel(self) -> str:
        """First argument when it names a channel, without the leading ``#``."""
        if self.command.arguments and self.command.arguments[0].startswith("#"):
            return self.command.arguments[0][1:]
        return ""

    def to_raw(self) -> str:
        return format_irc_message(self.tags, self.source, self.command)


def _split_segment(line: str) -> tuple[str, str]:
    """Split ``line`` at its first space; a missing space consumes everything."""
    segment, _, rest = line.partition(" ")
    return segment, rest


def parse_source(segment: str) -> IRCUser:
    parts = segment.split("!")
    if len(parts) == 2:
        return IRCUser(nickname=parts[0], host=parts[1])
    return IRCUser(host=segment)


def parse_irc_message(raw_line: str) -> IRCMessage | None:
    if not raw_line:
        return None

    line = raw_line
    tags = Tags()
    source: IRCUser | None = None

    if line.startswith("@"):
        tag_segment, line = _split_segment(line)
        tags = decode_tags(tag_segment[1:])

    if line.startswith(":"):
        source_segment, line = _split_segment(line)
        source = parse_source(source_segment[1:])

    head, _, data = line.partition(" :")
    tokens = head.split(" ") if head else [""]
    name = tokens[0]
    arguments = tuple(t for t in tokens[1:] if t)

    return IRCMessage(
        raw=raw_line,
        command=MessageCommand(name=name, arguments=arguments, data=data),
        tags=tags,
        source=source,
    )


def format_irc_message(
    tags: Tags | None,
    source: IRCUser | None,
    command: MessageCommand,
) -> str:
    """Serialize the parts of a message back into one wire line (no CRLF)."""
    parts: list[str] = []
    encoded = encode_tags(tags) if tags is not None else ""
    if encoded:
        parts.append(f"@{encoded}")
    if source is not None:
        parts.append(f":{source.to_raw()}")
    parts.append(" ".join((command.name, *command.arguments)))
    line = " ".join(parts)
    if command.data:
        line = f"{line} :{command.data}"
    return line
