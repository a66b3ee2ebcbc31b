# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""File I/O for the manifest.

Reads tolerate a missing file; writes are atomic and keep key order.
"""

from pathlib import Path
from typing import Any

import orjson

from servermon.exceptions import ManifestIOError, ManifestLoadError
from servermon.utils import atomic_write

__all__ = [
    "read_manifest_data",
    "write_manifest_data",
]


def read_manifest_data(
    path: Path,
) -> dict[str, Any] | None:  # pyright: ignore[reportExplicitAny]
    """Read and parse the manifest JSON.

    Args:
        path: Path to the manifest file.

    Returns:
        The parsed top-level object, or None if the file does not exist.

    Raises:
        ManifestLoadError: If the file cannot be read, is not valid JSON, or
            is not a JSON object.
    """
    try:
        content = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        msg = f"Failed to read manifest {path}: {e}"
        raise ManifestLoadError(msg, path=path, cause=e) from e

    try:
        data = orjson.loads(content)
    except orjson.JSONDecodeError as e:
        msg = f"Invalid JSON in manifest {path}: {e}"
        raise ManifestLoadError(msg, path=path, cause=e) from e

    if not isinstance(data, dict):
        msg = f"Manifest {path} must contain a JSON object, got {type(data).__name__}"
        raise ManifestLoadError(msg, path=path)

    return data


def write_manifest_data(
    path: Path,
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> None:
    """Write the manifest atomically with 2-space indentation.

    Args:
        path: Destination file path.
        data: Top-level manifest object.

    Raises:
        ManifestIOError: If serialization or the write fails.
    """
    try:
        content = orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE)
    except orjson.JSONEncodeError as e:
        msg = f"Failed to serialize manifest: {e}"
        raise ManifestIOError(msg, path=path, cause=e) from e

    try:
        atomic_write(path, content)
    except OSError as e:
        msg = f"Failed to write manifest {path}: {e}"
        raise ManifestIOError(msg, path=path, cause=e) from e
