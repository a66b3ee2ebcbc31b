"""Atomic file writes.

Content is written to a uniquely named temporary file in the destination's
directory and then renamed over the destination, so readers observe either
the old file or the new one and never a partial write.
"""

import tempfile
from pathlib import Path

DEFAULT_FILE_MODE: int = 0o644


def atomic_write(path: Path, content: bytes, *, mode: int = DEFAULT_FILE_MODE) -> None:
    """Write content to a file atomically.

    Args:
        path: Destination file path. Parent directories are created.
        content: Bytes to write.
        mode: Permission bits for the resulting file.

    Raises:
        OSError: If the write or the rename fails. The temporary file is
            removed and the destination is left untouched.
    """
    _ = path.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            _ = f.write(content)
        temp_path.chmod(mode)

        # Path.replace() is atomic on both POSIX and Windows
        _ = temp_path.replace(path)
    except OSError:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise
