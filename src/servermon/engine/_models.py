"""Result types returned by the reconciliation engine."""

from dataclasses import dataclass, field

from servermon.exceptions import ControlPlaneError, ServerMonError
from servermon.health import HealthRecord
from servermon.manifest import ServiceRecord
from servermon.supervisor import Attempt, OperationResult, Outcome, SupervisorStatus


@dataclass(frozen=True, slots=True)
class ServiceResult:
    """Per-service outcome of a lifecycle verb.

    Exactly one of ``outcome`` and ``error`` is set.

    Attributes:
        name: Service name.
        identifier: Supervisor label, if the record has one.
        operation: Lifecycle verb applied.
        outcome: What happened, on success.
        pid: Process ID afterwards, if known.
        error: The failure, if the operation failed.
        attempts: Control-plane steps taken.
        unknown_keys: Descriptor keys dropped on rewrite.
    """

    name: str
    identifier: str | None
    operation: str
    outcome: Outcome | None = None
    pid: int | None = None
    error: ServerMonError | None = None
    attempts: tuple[Attempt, ...] = ()
    unknown_keys: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        """Return True if the operation succeeded."""
        return self.error is None

    @classmethod
    def from_operation(cls, service: ServiceRecord, result: OperationResult) -> "ServiceResult":
        """Wrap a supervisor client result."""
        return cls(
            name=service.name,
            identifier=result.identifier,
            operation=result.operation,
            outcome=result.outcome,
            pid=result.pid,
            attempts=result.attempts,
            unknown_keys=result.unknown_keys,
        )

    @classmethod
    def from_error(
        cls, service: ServiceRecord, operation: str, error: ServerMonError
    ) -> "ServiceResult":
        """Wrap a failure."""
        attempts = error.attempts if isinstance(error, ControlPlaneError) else ()
        return cls(
            name=service.name,
            identifier=service.identifier,
            operation=operation,
            error=error,
            attempts=attempts,
        )


@dataclass(frozen=True, slots=True)
class RemovalReport:
    """What ``remove`` did.

    Attributes:
        name: Service name.
        identifier: Supervisor label, if any.
        uninstall: Result of deregistering and deleting descriptors.
        manifest_entry_removed: Whether the manifest entry was deleted.
        removed_logs: Log files deleted.
        failed_logs: Log files that could not be deleted, with the reason.
    """

    name: str
    identifier: str | None
    uninstall: ServiceResult
    manifest_entry_removed: bool = False
    removed_logs: tuple[str, ...] = field(default_factory=tuple)
    failed_logs: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """Return True if every attempted step succeeded."""
        return self.uninstall.ok and not self.failed_logs


@dataclass(frozen=True, slots=True)
class ServiceHealth:
    """Status snapshot of one service.

    Attributes:
        service: The manifest record.
        supervisor: Fresh supervisor status.
        health: Derived health.
    """

    service: ServiceRecord
    supervisor: SupervisorStatus
    health: HealthRecord
