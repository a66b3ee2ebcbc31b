"""Tests for settings and logging configuration loading."""

import sys
from pathlib import Path

import pytest

from servermon.config import (
    DEFAULT_IDENTIFIER_PREFIX,
    GlobalSettings,
    LogFormat,
    LogLevel,
    default_settings,
    load_logging_config,
    load_settings,
)
from servermon.exceptions import ServiceValidationError


class TestDefaultSettings:
    def test_relative_to_manifest_dir(self) -> None:
        defaults = default_settings(Path("/srv/project"))
        assert defaults == {
            "logDir": "/srv/project/logs",
            "identifierPrefix": "com.servermonitor",
            "plistDir": "/srv/project/launchd",
            "launchAgentsDir": "~/Library/LaunchAgents",
            "nodePath": sys.executable,
        }


class TestLoadSettings:
    def test_defaults_when_missing(self) -> None:
        settings = load_settings(None, manifest_dir=Path("/srv"))
        assert settings.log_dir == "/srv/logs"
        assert settings.identifier_prefix == DEFAULT_IDENTIFIER_PREFIX
        assert settings.descriptor_source_dir == "/srv/launchd"
        assert settings.descriptor_active_dir == "~/Library/LaunchAgents"

    def test_manifest_values_override(self) -> None:
        settings = load_settings(
            {"identifierPrefix": "dev.local", "logDir": "~/logs"},
            manifest_dir=Path("/srv"),
        )
        assert settings.identifier_prefix == "dev.local"
        # Stored unexpanded, expanded on use
        assert settings.log_dir == "~/logs"
        assert settings.log_path == Path("~/logs").expanduser()

    def test_unknown_keys_kept(self) -> None:
        settings = load_settings({"theme": "dark"}, manifest_dir=Path("/srv"))
        assert settings.to_manifest_dict()["theme"] == "dark"

    def test_invalid_type_raises(self) -> None:
        with pytest.raises(ServiceValidationError) as exc_info:
            _ = load_settings({"identifierPrefix": ["not", "a", "string"]}, manifest_dir=Path("/srv"))
        assert exc_info.value.field == "settings"

    def test_expanded_path_properties(self) -> None:
        settings = GlobalSettings.model_validate(
            {
                "logDir": "/var/log/sm",
                "plistDir": "/srv/launchd",
                "launchAgentsDir": "~/Library/LaunchAgents",
            }
        )
        assert settings.source_path == Path("/srv/launchd")
        assert settings.active_path == Path.home() / "Library" / "LaunchAgents"
        assert settings.runtime_binary_path == ""

    def test_frozen(self) -> None:
        settings = load_settings(None, manifest_dir=Path("/srv"))
        with pytest.raises(ValueError, match="frozen"):
            settings.log_dir = "/elsewhere"  # pyright: ignore[reportAttributeAccessIssue]


class TestLoadLoggingConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("SERVERMON_LOGGING__LEVEL", "SERVERMON_LOGGING__FORMAT", "SERVERMON_LOGGING__FILE"):
            monkeypatch.delenv(var, raising=False)
        config = load_logging_config()
        assert config.level is LogLevel.INFO
        assert config.format is LogFormat.JSON
        assert config.file == ""

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVERMON_LOGGING__LEVEL", "DEBUG")
        monkeypatch.setenv("SERVERMON_LOGGING__FORMAT", "text")
        monkeypatch.setenv("SERVERMON_LOGGING__FILE", "/tmp/servermon.log")
        config = load_logging_config()
        assert config.level is LogLevel.DEBUG
        assert config.format is LogFormat.TEXT
        assert config.file == "/tmp/servermon.log"

    def test_unknown_values_fall_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVERMON_LOGGING__LEVEL", "verbose")
        monkeypatch.setenv("SERVERMON_LOGGING__FORMAT", "xml")
        config = load_logging_config()
        assert config.level is LogLevel.INFO
        assert config.format is LogFormat.JSON
