from datetime import UTC, datetime

import pytest

from tmi_client.irc.tags import (
    TAG_FIELDS,
    TagKind,
    Tags,
    decode_tag_value,
    decode_tags,
    encode_tags,
    escape_tag_value,
    unescape_tag_value,
)


def test_table_covers_every_attribute_once():
    attrs = [f.attr for f in TAG_FIELDS.values()]
    assert len(attrs) == len(set(attrs))
    assert TAG_FIELDS["msg-id"].attr == "msg_type"
    assert TAG_FIELDS["msg-param-displayName"].attr == "msg_param_display_name"
    assert TAG_FIELDS["msg-param-viewerCount"].attr == "msg_param_viewer_count"
    assert TAG_FIELDS["tmi-sent-ts"].kind is TagKind.TIMESTAMP


def test_decode_privmsg_tags():
    tags = decode_tags(
        "badge-info=subscriber/8;badges=broadcaster/1,subscriber/6;color=#0000FF;"
        "display-name=Foo;emotes=25:0-4,12-16;first-msg=0;id=b34ccfc7;mod=1;"
        "room-id=1337;subscriber=true;tmi-sent-ts=1642696567751;turbo=0;"
        "user-id=1337;user-type="
    )
    assert tags.display_name == "Foo"
    assert tags.color == "#0000FF"
    assert tags.badges == ["broadcaster/1", "subscriber/6"]
    assert tags.badge_info == ["subscriber/8"]
    assert tags.emotes == ["25:0-4", "12-16"]
    assert tags.mod is True
    assert tags.subscriber is True
    assert tags.turbo is False
    assert tags.first_msg is False
    assert tags.id == "b34ccfc7"
    assert tags.timestamp == datetime(2022, 1, 20, 16, 36, 7, 751000, tzinfo=UTC)
    assert tags.user_type == ""
    assert tags.has_badge("broadcaster")
    assert tags.badge_versions() == {"broadcaster": "1", "subscriber": "6"}


def test_string_values_are_unescaped():
    tags = decode_tags(r"system-msg=5\sviewers\sare\shere\:\sraid\\ok")
    assert tags.system_msg == r"5 viewers are here; raid\ok"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (r"a\sb", "a b"),
        (r"a\\b", "a\\b"),
        (r"a\:b", "a;b"),
        (r"a\rb\nc", "a\rb\nc"),
        ("trailing\\", "trailing"),
        (r"\x", "x"),
        ("plain", "plain"),
    ],
)
def test_unescape_tag_value(raw, expected):
    assert unescape_tag_value(raw) == expected


def test_escape_is_inverse_of_unescape():
    text = "a b;c\\d\re\nf"
    assert unescape_tag_value(escape_tag_value(text)) == text


def test_integer_tags():
    tags = decode_tags("ban-duration=350;slow=0;followers-only=-1;bits=100")
    assert tags.ban_duration == 350
    assert tags.slow == 0
    assert tags.followers_only == -1
    assert tags.bits == 100


def test_invalid_integer_is_kept_raw_and_logged(captured_events):
    tags = decode_tags("bits=lots")
    assert tags.bits == "lots"
    assert ("irc", "tag_int_invalid") in [(d, a) for d, a, _ in captured_events]


def test_invalid_timestamp_is_kept_raw_and_logged(captured_events):
    tags = decode_tags("tmi-sent-ts=yesterday")
    assert tags.timestamp == "yesterday"
    assert ("irc", "tag_timestamp_invalid") in [(d, a) for d, a, _ in captured_events]


@pytest.mark.parametrize("value", ["999999999999999", "99999999999999999999", "-99999999999999999"])
def test_out_of_range_timestamp_is_kept_raw(captured_events, value):
    tags = decode_tags(f"tmi-sent-ts={value};display-name=Foo")
    assert tags.timestamp == value
    assert tags.display_name == "Foo"
    assert ("irc", "tag_timestamp_invalid") in [(d, a) for d, a, _ in captured_events]


@pytest.mark.parametrize("value", ["1_000", " 5", "+5", "5 ", "١٢", "--1", "-"])
def test_integer_must_be_ascii_decimal(captured_events, value):
    tags = decode_tags(f"bits={value}")
    assert tags.bits == value
    assert ("irc", "tag_int_invalid") in [(d, a) for d, a, _ in captured_events]


def test_negative_integer_and_timestamp_decode():
    tags = decode_tags("followers-only=-1;tmi-sent-ts=-1000")
    assert tags.followers_only == -1
    assert tags.timestamp == datetime(1969, 12, 31, 23, 59, 59, tzinfo=UTC)


def test_empty_values_keep_zero_defaults():
    tags = decode_tags("badges=;emotes=;tmi-sent-ts=;bits=;color=")
    assert tags.badges == []
    assert tags.emotes == []
    assert tags.timestamp is None
    assert tags.bits == 0
    assert tags.color == ""


def test_pair_without_equals_is_ignored_with_warning(captured_events):
    tags = decode_tags("foo;bar=1")
    assert tags == Tags()
    unknown = [kw["key"] for d, a, kw in captured_events if a == "unknown_tag"]
    assert unknown == ["foo", "bar"]


def test_pair_without_equals_does_not_block_known_tags(captured_events):
    tags = decode_tags("foo;bits=1")
    assert tags.bits == 1
    assert [kw["key"] for _, a, kw in captured_events if a == "unknown_tag"] == ["foo"]


def test_known_key_without_equals_decodes_as_empty():
    assert decode_tags("mod").mod is False
    assert decode_tags("display-name").display_name == ""


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("true", True), ("0", False), ("", False), ("yes", False)],
)
def test_boolean_kind(value, expected):
    assert decode_tag_value("mod", TagKind.BOOLEAN, value) is expected


def test_encode_tags_skips_defaults():
    assert encode_tags(Tags()) == ""
    tags = decode_tags("display-name=Foo;mod=1;badges=vip/1,bits/100;bits=5")
    encoded = encode_tags(tags)
    assert set(encoded.split(";")) == {
        "display-name=Foo",
        "mod=1",
        "badges=vip/1,bits/100",
        "bits=5",
    }


def test_encode_decode_preserves_each_kind():
    tags = Tags(
        display_name="A B;C",
        vip=True,
        emote_sets=["0", "33"],
        slow=30,
        timestamp=datetime(2023, 5, 1, 12, 0, 0, 123000, tzinfo=UTC),
    )
    assert decode_tags(encode_tags(tags)) == tags
