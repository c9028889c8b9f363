"""IRCv3 tag decoding for the Twitch dialect.

Every wire key Twitch documents (plus a few undocumented ones it sends) maps
to exactly one typed attribute of :class:`Tags` through the static
``TAG_FIELDS`` table. Decoding never raises: malformed values are logged and
degrade to a safe default so one bad tag cannot drop a whole message.

See https://dev.twitch.tv/docs/irc/tags/ for the meaning of each tag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime, timedelta
from enum import Enum, auto
from typing import Any

from ..logs.logger import logger

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_UNESCAPES = {"s": " ", "\\": "\\", ":": ";", "r": "\r", "n": "\n"}
_ESCAPES = {" ": "\\s", "\\": "\\\\", ";": "\\:", "\r": "\\r", "\n": "\\n"}


class TagKind(Enum):
    STRING = auto()
    INTEGER = auto()
    BOOLEAN = auto()
    LIST = auto()
    TIMESTAMP = auto()


@dataclass(frozen=True, slots=True)
class TagField:
    attr: str
    kind: TagKind = TagKind.STRING


@dataclass(frozen=True, slots=True)
class Tags:
    """Typed metadata carried in the ``@key=value;...`` segment of a line.

    Absent keys keep the zero value of their kind. Integer and timestamp
    attributes hold the raw string when the wire value could not be parsed.
    """

    # CLEARCHAT / CLEARMSG
    ban_duration: int | str = 0
    room_id: str = ""
    target_user_id: str = ""
    timestamp: datetime | str | None = None
    login: str = ""
    target_msg_id: str = ""

    # User identity and badges
    badge_info: list[str] = field(default_factory=list)
    badges: list[str] = field(default_factory=list)
    emote_sets: list[str] = field(default_factory=list)
    display_name: str = ""
    color: str = ""
    user_id: str = ""
    user_type: str = ""
    turbo: bool = False
    subscriber: bool = False
    mod: bool = False
    vip: bool = False

    # PRIVMSG
    bits: int | str = 0
    emotes: list[str] = field(default_factory=list)
    id: str = ""
    first_msg: bool = False
    returning_chatter: bool = False
    client_nonce: str = ""
    flags: str = ""
    custom_reward_id: str = ""

    # Hype chat
    pinned_chat_paid_amount: str = ""
    pinned_chat_paid_currency: str = ""
    pinned_chat_paid_exponent: str = ""
    pinned_chat_paid_level: str = ""
    pinned_chat_paid_is_system_message: bool = False

    # Replies
    reply_parent_msg_id: str = ""
    reply_parent_user_id: str = ""
    reply_parent_user_login: str = ""
    reply_parent_display_name: str = ""
    reply_parent_msg_body: str = ""
    reply_thread_parent_msg_id: str = ""
    reply_thread_parent_user_login: str = ""
    reply_thread_parent_display_name: str = ""

    # ROOMSTATE
    emote_only: bool = False
    followers_only: int | str = 0
    r9k: bool = False
    slow: int | str = 0
    subs_only: bool = False

    # USERNOTICE
    msg_type: str = ""
    system_msg: str = ""
    msg_param_cumulative_months: str = ""
    msg_param_display_name: str = ""
    msg_param_login: str = ""
    msg_param_months: str = ""
    msg_param_promo_gift_total: str = ""
    msg_param_promo_name: str = ""
    msg_param_recipient_display_name: str = ""
    msg_param_recipient_id: str = ""
    msg_param_recipient_user_name: str = ""
    msg_param_sender_login: str = ""
    msg_param_sender_name: str = ""
    msg_param_should_share_streak: str = ""
    msg_param_streak_months: str = ""
    msg_param_sub_plan: str = ""
    msg_param_sub_plan_name: str = ""
    msg_param_viewer_count: str = ""
    msg_param_ritual_name: str = ""
    msg_param_threshold: str = ""
    msg_param_gift_months: str = ""
    msg_param_color: str = ""
    msg_param_goal_contribution_type: str = ""

    # WHISPER
    message_id: str = ""
    thread_id: str = ""

    def badge_versions(self) -> dict[str, str]:
        """Return badges as ``{name: version}``, e.g. ``{"broadcaster": "1"}``."""
        out: dict[str, str] = {}
        for badge in self.badges:
            name, _, version = badge.partition("/")
            if name:
                out[name] = version
        return out

    def has_badge(self, name: str) -> bool:
        return name in self.badge_versions()


TAG_FIELDS: dict[str, TagField] = {
    "ban-duration": TagField("ban_duration", TagKind.INTEGER),
    "room-id": TagField("room_id"),
    "target-user-id": TagField("target_user_id"),
    "tmi-sent-ts": TagField("timestamp", TagKind.TIMESTAMP),
    "login": TagField("login"),
    "target-msg-id": TagField("target_msg_id"),
    "badge-info": TagField("badge_info", TagKind.LIST),
    "badges": TagField("badges", TagKind.LIST),
    "emote-sets": TagField("emote_sets", TagKind.LIST),
    "display-name": TagField("display_name"),
    "color": TagField("color"),
    "user-id": TagField("user_id"),
    "user-type": TagField("user_type"),
    "turbo": TagField("turbo", TagKind.BOOLEAN),
    "subscriber": TagField("subscriber", TagKind.BOOLEAN),
    "mod": TagField("mod", TagKind.BOOLEAN),
    "vip": TagField("vip", TagKind.BOOLEAN),
    "bits": TagField("bits", TagKind.INTEGER),
    "emotes": TagField("emotes", TagKind.LIST),
    "id": TagField("id"),
    "first-msg": TagField("first_msg", TagKind.BOOLEAN),
    "returning-chatter": TagField("returning_chatter", TagKind.BOOLEAN),
    "client-nonce": TagField("client_nonce"),
    "flags": TagField("flags"),
    "custom-reward-id": TagField("custom_reward_id"),
    "pinned-chat-paid-amount": TagField("pinned_chat_paid_amount"),
    "pinned-chat-paid-currency": TagField("pinned_chat_paid_currency"),
    "pinned-chat-paid-exponent": TagField("pinned_chat_paid_exponent"),
    "pinned-chat-paid-level": TagField("pinned_chat_paid_level"),
    "pinned-chat-paid-is-system-message": TagField(
        "pinned_chat_paid_is_system_message", TagKind.BOOLEAN
    ),
    "reply-parent-msg-id": TagField("reply_parent_msg_id"),
    "reply-parent-user-id": TagField("reply_parent_user_id"),
    "reply-parent-user-login": TagField("reply_parent_user_login"),
    "reply-parent-display-name": TagField("reply_parent_display_name"),
    "reply-parent-msg-body": TagField("reply_parent_msg_body"),
    "reply-thread-parent-msg-id": TagField("reply_thread_parent_msg_id"),
    "reply-thread-parent-user-login": TagField("reply_thread_parent_user_login"),
    "reply-thread-parent-display-name": TagField("reply_thread_parent_display_name"),
    "emote-only": TagField("emote_only", TagKind.BOOLEAN),
    "followers-only": TagField("followers_only", TagKind.INTEGER),
    "r9k": TagField("r9k", TagKind.BOOLEAN),
    "slow": TagField("slow", TagKind.INTEGER),
    "subs-only": TagField("subs_only", TagKind.BOOLEAN),
    "msg-id": TagField("msg_type"),
    "system-msg": TagField("system_msg"),
    "msg-param-cumulative-months": TagField("msg_param_cumulative_months"),
    "msg-param-displayName": TagField("msg_param_display_name"),
    "msg-param-login": TagField("msg_param_login"),
    "msg-param-months": TagField("msg_param_months"),
    "msg-param-promo-gift-total": TagField("msg_param_promo_gift_total"),
    "msg-param-promo-name": TagField("msg_param_promo_name"),
    "msg-param-recipient-display-name": TagField("msg_param_recipient_display_name"),
    "msg-param-recipient-id": TagField("msg_param_recipient_id"),
    "msg-param-recipient-user-name": TagField("msg_param_recipient_user_name"),
    "msg-param-sender-login": TagField("msg_param_sender_login"),
    "msg-param-sender-name": TagField("msg_param_sender_name"),
    "msg-param-should-share-streak": TagField("msg_param_should_share_streak"),
    "msg-param-streak-months": TagField("msg_param_streak_months"),
    "msg-param-sub-plan": TagField("msg_param_sub_plan"),
    "msg-param-sub-plan-name": TagField("msg_param_sub_plan_name"),
    "msg-param-viewerCount": TagField("msg_param_viewer_count"),
    "msg-param-ritual-name": TagField("msg_param_ritual_name"),
    "msg-param-threshold": TagField("msg_param_threshold"),
    "msg-param-gift-months": TagField("msg_param_gift_months"),
    "msg-param-color": TagField("msg_param_color"),
    "msg-param-goal-contribution-type": TagField("msg_param_goal_contribution_type"),
    "message-id": TagField("message_id"),
    "thread-id": TagField("thread_id"),
}

_TAGS_DEFAULTS = Tags()


def unescape_tag_value(value: str) -> str:
    if "\\" not in value:
        return value
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt is None:
            # A lone trailing backslash is dropped.
            break
        out.append(_UNESCAPES.get(nxt, nxt))
    return "".join(out)


def escape_tag_value(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _parse_decimal(value: str) -> int | None:
    digits = value[1:] if value.startswith("-") else value
    if not (digits.isascii() and digits.isdigit()):
        return None
    try:
        return int(value, 10)
    except ValueError:
        # Beyond the interpreter's integer string length limit.
        return None


def _decode_integer(key: str, value: str) -> int | str:
    if value == "":
        return 0
    number = _parse_decimal(value)
    if number is None:
        logger.log_event(
            "irc", "tag_int_invalid", level=logging.WARNING, key=key, value=value
        )
        return value
    return number


def _decode_timestamp(key: str, value: str) -> datetime | str | None:
    if value == "":
        return None
    millis = _parse_decimal(value)
    if millis is not None:
        try:
            return EPOCH + timedelta(milliseconds=millis)
        except OverflowError:
            pass
    logger.log_event(
        "irc", "tag_timestamp_invalid", level=logging.WARNING, key=key, value=value
    )
    return value


def decode_tag_value(key: str, kind: TagKind, value: str) -> Any:
    """Decode one wire value according to the declared kind of its key."""
    if kind is TagKind.INTEGER:
        return _decode_integer(key, value)
    if kind is TagKind.BOOLEAN:
        return value in ("1", "true")
    if kind is TagKind.LIST:
        return value.split(",") if value else []
    if kind is TagKind.TIMESTAMP:
        return _decode_timestamp(key, value)
    return unescape_tag_value(value)


def decode_tags(raw: str) -> Tags:
    """Decode a tag segment (without the leading ``@``) into a :class:`Tags`."""
    values: dict[str, Any] = {}
    for pair in raw.split(";"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        tag_field = TAG_FIELDS.get(key)
        if tag_field is None:
            logger.log_event(
                "irc", "unknown_tag", level=logging.WARNING, key=key, value=value
            )
            continue
        values[tag_field.attr] = decode_tag_value(key, tag_field.kind, value)
    return Tags(**values)


def encode_tag_value(kind: TagKind, value: Any) -> str:
    """Inverse of :func:`decode_tag_value` for well-formed values."""
    if kind is TagKind.BOOLEAN:
        return "1" if value else "0"
    if kind is TagKind.LIST:
        return ",".join(value)
    if kind is TagKind.TIMESTAMP and isinstance(value, datetime):
        return str((value - EPOCH) // timedelta(milliseconds=1))
    if kind is TagKind.STRING:
        return escape_tag_value(value)
    return str(value)


def encode_tags(tags: Tags) -> str:
    """Serialize every attribute that differs from its zero value.

    The result carries no leading ``@``; it is empty for a default record.
    """
    parts: list[str] = []
    for key, tag_field in TAG_FIELDS.items():
        value = getattr(tags, tag_field.attr)
        if value == getattr(_TAGS_DEFAULTS, tag_field.attr):
            continue
        parts.append(f"{key}={encode_tag_value(tag_field.kind, value)}")
    return ";".join(parts)


def _check_table() -> None:
    attrs = [f.attr for f in TAG_FIELDS.values()]
    declared = {f.name for f in fields(Tags)}
    if len(attrs) != len(set(attrs)) or set(attrs) != declared:
        raise RuntimeError("TAG_FIELDS must map each Tags attribute exactly once")


_check_table()
