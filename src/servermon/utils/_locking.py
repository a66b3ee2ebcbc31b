"""Advisory file locking for single-writer sections."""

import fcntl
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


def lock_path_for(path: Path) -> Path:
    """Return the sidecar lock file used to guard writes to ``path``."""
    return path.with_name(f"{path.name}.lock")


@contextmanager
def exclusive_lock(path: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock guarding ``path``.

    The lock lives on a sidecar ``<name>.lock`` file so the guarded file itself
    can still be replaced by rename while the lock is held. Blocks until the
    lock is available.

    Args:
        path: The file whose writers should be serialized.
    """
    lock_file = lock_path_for(path)
    _ = lock_file.parent.mkdir(parents=True, exist_ok=True)
    with lock_file.open("a") as handle:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
