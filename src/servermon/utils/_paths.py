from pathlib import Path

import platformdirs

APP_NAME = "servermon"
LEGACY_APP_NAME = "ServerMonitor"
MANIFEST_FILENAME = "services.json"


def expand_path(path: str) -> str:
    """Expand a leading ``~`` to the user's home directory.

    Paths without a leading ``~`` are returned unchanged.
    """
    if path.startswith("~"):
        return str(Path(path).expanduser())
    return path


def get_user_data_manifest() -> Path:
    """Get the platform user-data location of the manifest.

    On macOS this is ``~/Library/Application Support/ServerMonitor/services.json``.
    """
    return platformdirs.user_data_path(LEGACY_APP_NAME) / MANIFEST_FILENAME


def get_log_dir() -> Path:
    """Get the platform log directory for servermon's own logs."""
    return platformdirs.user_log_path(APP_NAME)


def get_log_file() -> Path:
    """Get the path to servermon's default log file."""
    return get_log_dir() / "servermon.log"
