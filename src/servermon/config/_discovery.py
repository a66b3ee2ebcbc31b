"""Manifest path discovery.

Resolves which ``services.json`` an invocation operates on.
"""

import os
from pathlib import Path

from servermon.utils import MANIFEST_FILENAME, expand_path, get_user_data_manifest

MANIFEST_ENV_VAR = "SERVERMON_MANIFEST"


def discover_manifest(explicit: Path | None = None, *, cwd: Path | None = None) -> Path:
    """Find the manifest file for this invocation.

    Precedence:
        1. ``explicit`` (the ``--manifest`` flag)
        2. ``SERVERMON_MANIFEST`` environment variable
        3. ``services.json`` in the working directory, if it exists
        4. the platform user-data manifest, if it exists
        5. ``services.json`` in the working directory (created on first write)

    Args:
        explicit: Path given on the command line.
        cwd: Directory to treat as the working directory. Defaults to
            ``Path.cwd()``.

    Returns:
        Absolute path to the manifest. The file may not exist yet.
    """
    if explicit is not None:
        return Path(expand_path(str(explicit))).absolute()

    from_env = os.environ.get(MANIFEST_ENV_VAR)
    if from_env:
        return Path(expand_path(from_env)).absolute()

    local = (cwd or Path.cwd()) / MANIFEST_FILENAME
    if local.exists():
        return local.absolute()

    user_data = get_user_data_manifest()
    if user_data.exists():
        return user_data

    return local.absolute()
