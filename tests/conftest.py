"""Shared test fixtures for servermon tests."""

from collections.abc import Callable
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Any

import orjson
import pytest
from rich.console import Console

from servermon.supervisor import FakeControlPlane

NODE_PATH = "/opt/node/bin/node"


@dataclass(frozen=True, slots=True)
class Workspace:
    """Paths for a manifest whose settings point inside ``tmp_path``."""

    root: Path
    manifest: Path
    log_dir: Path
    source_dir: Path
    active_dir: Path

    def settings(self, **overrides: Any) -> dict[str, Any]:
        settings: dict[str, Any] = {
            "logDir": str(self.log_dir),
            "identifierPrefix": "com.test",
            "plistDir": str(self.source_dir),
            "launchAgentsDir": str(self.active_dir),
            "nodePath": NODE_PATH,
        }
        settings.update(overrides)
        return settings


WriteManifestFunc = Callable[..., Path]


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Create an empty workspace.

    Structure:
        tmp_path/
            services.json       # written by write_manifest
            logs/
            launchd/            # descriptor source copies
            LaunchAgents/       # descriptor active copies
    """
    return Workspace(
        root=tmp_path,
        manifest=tmp_path / "services.json",
        log_dir=tmp_path / "logs",
        source_dir=tmp_path / "launchd",
        active_dir=tmp_path / "LaunchAgents",
    )


@pytest.fixture
def write_manifest(workspace: Workspace) -> WriteManifestFunc:
    """Return a function that writes ``services.json`` into the workspace."""

    def _write(
        services: list[dict[str, Any]] | None = None,
        **settings_overrides: Any,
    ) -> Path:
        data = {
            "version": "2.0.0",
            "settings": workspace.settings(**settings_overrides),
            "services": services or [],
        }
        workspace.manifest.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        return workspace.manifest

    return _write


@pytest.fixture
def fake_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def console() -> Console:
    """Console writing to an in-memory buffer, without colors."""
    return Console(file=StringIO(), force_terminal=False, no_color=True, width=200)


@pytest.fixture
def error_console() -> Console:
    return Console(file=StringIO(), force_terminal=False, no_color=True, width=200)


def console_text(console: Console) -> str:
    """Return everything written to a buffer-backed console."""
    file = console.file
    assert isinstance(file, StringIO)
    return file.getvalue()


def api_service(**overrides: Any) -> dict[str, Any]:
    """Return a typical manifest service entry."""
    service: dict[str, Any] = {
        "name": "API",
        "identifier": "com.test.api",
        "path": "/srv/api",
        "command": "npm run dev",
        "port": 3000,
        "enabled": True,
        "keepAlive": True,
    }
    service.update(overrides)
    return service
