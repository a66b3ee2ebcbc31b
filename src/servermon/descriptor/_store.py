"""Descriptor file storage.

Descriptors are kept in two directories: a source-of-truth copy and the copy
the supervisor scans. Both are written atomically, source first, and hold
identical bytes.
"""

from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError

from structlog.typing import FilteringBoundLogger

from servermon.exceptions import DescriptorIOError
from servermon.utils import atomic_write, get_null_logger

from ._formats import XML_PLIST, DescriptorFormat
from ._render import MANAGED_KEYS, DescriptorDocument


class DescriptorStore:
    """Reads, writes and deletes descriptor files.

    Attributes:
        source_dir: Directory holding the source-of-truth copies.
        active_dir: Directory the supervisor loads descriptors from.
        format: Format used to name and parse files.
    """

    def __init__(
        self,
        source_dir: Path,
        active_dir: Path,
        *,
        format: DescriptorFormat = XML_PLIST,  # noqa: A002
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self.source_dir: Path = source_dir
        self.active_dir: Path = active_dir
        self.format: DescriptorFormat = format
        self._logger: FilteringBoundLogger = logger or get_null_logger()

    def source_path(self, identifier: str) -> Path:
        """Return the source-of-truth path for ``identifier``."""
        return self.source_dir / f"{identifier}{self.format.suffix}"

    def active_path(self, identifier: str) -> Path:
        """Return the supervisor-active path for ``identifier``."""
        return self.active_dir / f"{identifier}{self.format.suffix}"

    def write(self, document: DescriptorDocument, path: Path) -> None:
        """Atomically write ``document`` to ``path``.

        Raises:
            DescriptorIOError: If the write fails. The destination keeps its
                previous content.
        """
        try:
            atomic_write(path, document.content)
        except OSError as e:
            msg = f"Failed to write descriptor {path}: {e}"
            raise DescriptorIOError(msg, path=path, operation="write", cause=e) from e
        self._logger.debug(
            "descriptor_written",
            identifier=document.identifier,
            path=str(path),
            size=len(document.content),
        )

    def read(self, path: Path) -> bytes | None:
        """Return the raw descriptor at ``path``, or None if it does not exist.

        Raises:
            DescriptorIOError: If the file exists but cannot be read.
        """
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            msg = f"Failed to read descriptor {path}: {e}"
            raise DescriptorIOError(msg, path=path, operation="read", cause=e) from e

    def publish(self, document: DescriptorDocument) -> Path:
        """Write ``document`` to the source directory, then the active directory.

        Returns:
            The active path, which is what the supervisor registers.

        Raises:
            DescriptorIOError: If either write fails.
        """
        self.write(document, self.source_path(document.identifier))
        active = self.active_path(document.identifier)
        self.write(document, active)
        self._logger.info(
            "descriptor_published",
            identifier=document.identifier,
            path=str(active),
        )
        return active

    def delete(self, path: Path) -> bool:
        """Delete ``path``. Deleting a missing file is not an error.

        Returns:
            True if a file was removed.

        Raises:
            DescriptorIOError: If the file exists but cannot be removed.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            msg = f"Failed to delete descriptor {path}: {e}"
            raise DescriptorIOError(msg, path=path, operation="delete", cause=e) from e
        self._logger.info("descriptor_deleted", path=str(path))
        return True

    def remove(self, identifier: str) -> None:
        """Delete both copies of the descriptor for ``identifier``."""
        _ = self.delete(self.active_path(identifier))
        _ = self.delete(self.source_path(identifier))

    def extract_unknown_keys(
        self,
        path: Path,
    ) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return top-level keys of an existing descriptor that are not managed.

        Used to carry hand-added entries (for example ``Nice`` or
        ``SoftResourceLimits``) into ``extraKeys`` instead of losing them.

        Returns:
            Unknown keys with their parsed values, in file order. Empty if the
            file does not exist.

        Raises:
            DescriptorIOError: If the file exists but cannot be parsed.
        """
        content = self.read(path)
        if content is None:
            return {}
        try:
            data = self.format.parse(content)
        except (ValueError, ExpatError) as e:
            msg = f"Failed to parse descriptor {path}: {e}"
            raise DescriptorIOError(msg, path=path, operation="parse", cause=e) from e
        return {key: value for key, value in data.items() if key not in MANAGED_KEYS}
