from pathlib import Path

import pytest

from servermon.config import GlobalSettings


@pytest.fixture
def settings(tmp_path: Path) -> GlobalSettings:
    return GlobalSettings.model_validate(
        {
            "logDir": "/var/log/servermon",
            "identifierPrefix": "com.test",
            "plistDir": str(tmp_path / "launchd"),
            "launchAgentsDir": str(tmp_path / "LaunchAgents"),
            "nodePath": "/opt/node/bin/node",
        }
    )
