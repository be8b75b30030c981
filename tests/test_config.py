"""Tests for nestling.config — AppConfig and the dotted-key Config store."""

from pathlib import Path

import pytest

from nestling.config import AppConfig, Config
from nestling.errors import ConfigurationError


class TestAppConfig:
    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert cfg.debug is False
        assert cfg.secret_key == ""
        assert cfg.offload_sync_handlers is True
        assert cfg.web_path == ""
        assert cfg.messages_cookie == "nestling_messages"
        assert cfg.max_content_length == 16 * 1024 * 1024

    def test_override(self) -> None:
        cfg = AppConfig(debug=True, secret_key="s3cret", web_path="/app")
        assert cfg.debug is True
        assert cfg.secret_key == "s3cret"
        assert cfg.web_path == "/app"

    def test_frozen(self) -> None:
        cfg = AppConfig()
        with pytest.raises(AttributeError):
            cfg.debug = True  # type: ignore[misc]


class TestConfigGet:
    def test_dotted_lookup(self) -> None:
        config = Config({"logs": {"debug": {"level": "DEBUG"}}})
        assert config.get("logs.debug.level") == "DEBUG"
        assert config.get("logs.debug") == {"level": "DEBUG"}

    def test_missing_returns_default(self) -> None:
        config = Config({"a": {"b": 1}})
        assert config.get("a.c") is None
        assert config.get("a.c", 5) == 5
        assert config.get("a.b.c", "deep") == "deep"

    def test_none_value_returns_default(self) -> None:
        assert Config({"a": None}).get("a", "fallback") == "fallback"

    def test_falsy_values_returned(self) -> None:
        config = Config({"zero": 0, "off": False, "empty": ""})
        assert config.get("zero", 1) == 0
        assert config.get("off", True) is False
        assert config.get("empty", "x") == ""

    def test_has_and_contains(self) -> None:
        config = Config({"db": {"dsn": "sqlite://"}})
        assert config.has("db.dsn")
        assert "db.dsn" in config
        assert "db.user" not in config

    def test_getitem_raises_key_error(self) -> None:
        config = Config({"a": 1})
        assert config["a"] == 1
        with pytest.raises(KeyError):
            config["b"]


class TestConfigSet:
    def test_set_creates_branches(self) -> None:
        config = Config().set("paths.web", "/app")
        assert config.to_dict() == {"paths": {"web": "/app"}}

    def test_set_replaces_scalar_branch(self) -> None:
        config = Config({"paths": "oops"}).set("paths.web", "/app")
        assert config.get("paths.web") == "/app"

    def test_merge_later_wins(self) -> None:
        config = Config({"a": 1, "b": 2}).merge({"b": 3})
        assert config.to_dict() == {"a": 1, "b": 3}


class TestConfigLoad:
    def test_load_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "app.toml"
        path.write_text('[paths]\nweb = "/app"\n\n[logs.debug]\nlevel = "debug"\n')
        config = Config().load(path)
        assert config.get("paths.web") == "/app"
        assert config.get("logs.debug.level") == "debug"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            Config().load(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("this is = = not toml")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            Config().load(path)
