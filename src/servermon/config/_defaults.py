"""Default configuration values.

Settings defaults depend on where the manifest lives, so they are produced
by a function rather than stored as a constant.
"""

import sys
from pathlib import Path
from typing import Any

MANIFEST_VERSION = "2.0.0"

DEFAULT_IDENTIFIER_PREFIX = "com.servermonitor"

DEFAULT_LOGGING: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "level": "info",
    "format": "json",
    "file": "",
}


def default_settings(manifest_dir: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Build the built-in settings for a manifest stored in ``manifest_dir``.

    Args:
        manifest_dir: Directory containing the manifest file.

    Returns:
        A fresh settings dictionary keyed by manifest (camelCase) names.
    """
    return {
        "logDir": str(manifest_dir / "logs"),
        "identifierPrefix": DEFAULT_IDENTIFIER_PREFIX,
        "plistDir": str(manifest_dir / "launchd"),
        "launchAgentsDir": str(Path("~") / "Library" / "LaunchAgents"),
        "nodePath": sys.executable,
    }
