"""Tests for servermon.utils._paths module."""

from pathlib import Path

import pytest

from servermon.utils import expand_path, get_log_file, get_user_data_manifest


class TestExpandPath:
    def test_expands_tilde(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", "/home/dev")
        assert expand_path("~/logs") == "/home/dev/logs"

    def test_leaves_absolute_paths(self) -> None:
        assert expand_path("/var/log") == "/var/log"

    def test_leaves_relative_paths(self) -> None:
        assert expand_path("logs/~x") == "logs/~x"


class TestPlatformPaths:
    def test_user_data_manifest_name(self) -> None:
        path = get_user_data_manifest()
        assert path.name == "services.json"
        assert path.parent.name == "ServerMonitor"

    def test_log_file_name(self) -> None:
        assert get_log_file().name == "servermon.log"
        assert isinstance(get_log_file(), Path)
