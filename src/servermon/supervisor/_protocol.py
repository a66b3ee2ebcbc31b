"""Control-plane protocol.

The supervisor client talks to the host service manager only through this
interface, so a different backend (or an in-memory fake) can be substituted
without touching rendering, storage, reconciliation or health evaluation.
"""

from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Protocol, runtime_checkable

from ._models import ControlResult, ManagedEntry, SupervisorStatus


@runtime_checkable
class ControlPlane(Protocol):
    """Narrow interface over a host service manager.

    Every call returns a ControlResult instead of raising, so the caller can
    classify failures and choose a fallback.
    """

    def query(self, identifier: str) -> tuple[SupervisorStatus, ControlResult]:
        """Query the state of ``identifier``.

        An unknown identifier yields ``SupervisorStatus.absent()``.
        """
        ...

    def list_all(self) -> tuple[list[ManagedEntry], ControlResult]:
        """List every entry the supervisor knows about."""
        ...

    def register(self, descriptor_path: Path) -> ControlResult:
        """Register a descriptor with the modern verb."""
        ...

    def deregister(self, identifier: str) -> ControlResult:
        """Stop and deregister ``identifier``, preventing auto-restart."""
        ...

    def legacy_register(self, descriptor_path: Path) -> ControlResult:
        """Register a descriptor with the legacy verb."""
        ...

    def legacy_deregister(self, descriptor_path: Path) -> ControlResult:
        """Deregister a descriptor with the legacy verb."""
        ...

    def start(self, identifier: str) -> ControlResult:
        """Start a registered ``identifier``."""
        ...

    def stop(self, identifier: str) -> ControlResult:
        """Stop a registered ``identifier`` gracefully."""
        ...

    def restart_in_place(self, identifier: str, *, force: bool = True) -> ControlResult:
        """Start ``identifier`` in place, killing a running instance if ``force``."""
        ...

    def signal(self, pid: int, sig: int) -> ControlResult:
        """Send ``sig`` directly to ``pid``."""
        ...
