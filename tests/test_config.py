import json

import pytest

from tmi_client.config import BotConfig, load_config, normalize_channels
from tmi_client.errors import ConfigError

ENV_VARS = ("TMI_CONF_FILE", "TMI_USERNAME", "TMI_IRC_TOKEN", "TMI_CLIENT_ID", "TMI_CLIENT_SECRET", "TMI_CHANNELS")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, data) -> str:
    path = tmp_path / "bot.conf"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_channels_are_normalized():
    assert normalize_channels(["#Foo", "bar", " foo ", "", "#"]) == ["bar", "foo"]
    assert normalize_channels("a,#B") == ["a", "b"]
    with pytest.raises(ValueError):
        normalize_channels(42)


def test_load_from_file(tmp_path):
    path = _write(
        tmp_path,
        {"username": "MyBot", "irc_token": "oauth:abc", "channels": ["#Chan", "chan", "other"]},
    )
    config = load_config(path)
    assert config.username == "mybot"
    assert config.irc_token == "oauth:abc"
    assert config.channels == ["chan", "other"]
    assert config.command_prefix == "!"
    assert not config.has_api_credentials


def test_env_overrides_file(tmp_path, monkeypatch):
    path = _write(tmp_path, {"username": "filebot", "irc_token": "file-token"})
    monkeypatch.setenv("TMI_IRC_TOKEN", "env-token")
    monkeypatch.setenv("TMI_CHANNELS", "#one,two")
    monkeypatch.setenv("TMI_CLIENT_ID", "cid")
    monkeypatch.setenv("TMI_CLIENT_SECRET", "secret")
    config = load_config(path)
    assert config.username == "filebot"
    assert config.irc_token == "env-token"
    assert config.channels == ["one", "two"]
    assert config.has_api_credentials


def test_missing_file_uses_env_only(tmp_path, monkeypatch):
    monkeypatch.setenv("TMI_CONF_FILE", str(tmp_path / "missing.conf"))
    monkeypatch.setenv("TMI_IRC_TOKEN", "abc")
    config = load_config()
    assert config.irc_token == "abc"
    assert config.username == ""


def test_missing_token_raises_config_error(tmp_path):
    path = _write(tmp_path, {"username": "bot"})
    with pytest.raises(ConfigError) as exc_info:
        load_config(path)
    assert "irc_token" in exc_info.value.data["fields"]


def test_malformed_file_raises_config_error(tmp_path):
    path = tmp_path / "bot.conf"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_object_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, ["a", "b"]))


def test_round_trip_dict():
    config = BotConfig.from_dict({"irc_token": "t", "channels": ["#A"], "command_prefix": "?"})
    assert config.to_dict() == {
        "username": "",
        "irc_token": "t",
        "channels": ["a"],
        "command_prefix": "?",
    }
