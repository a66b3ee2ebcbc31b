"""Supervisor control for servermon.

This package wraps the host service manager behind the ControlPlane protocol
and implements per-service lifecycle operations with explicit fallbacks.

Example:
    >>> from servermon.supervisor import FakeControlPlane, SupervisorClient
    >>> client = SupervisorClient(FakeControlPlane(), store, settings)
    >>> client.start(service.identifier, service).outcome
    <Outcome.STARTED: 'started'>
"""

from ._client import DEFAULT_RESTART_DELAY, SupervisorClient
from ._fake import FakeControlPlane, FakeEntry
from ._ladder import FallbackLadder, classify
from ._launchctl import (
    LAUNCHCTL_PATH,
    LaunchctlControlPlane,
    classify_output,
    parse_listing,
    parse_status,
)
from ._models import (
    Attempt,
    ControlCondition,
    ControlResult,
    ControlVerb,
    FailureKind,
    ManagedEntry,
    OperationResult,
    Outcome,
    SupervisorStatus,
)
from ._protocol import ControlPlane

__all__ = [
    "DEFAULT_RESTART_DELAY",
    "LAUNCHCTL_PATH",
    "Attempt",
    "ControlCondition",
    "ControlPlane",
    "ControlResult",
    "ControlVerb",
    "FailureKind",
    "FakeControlPlane",
    "FakeEntry",
    "FallbackLadder",
    "LaunchctlControlPlane",
    "ManagedEntry",
    "OperationResult",
    "Outcome",
    "SupervisorClient",
    "SupervisorStatus",
    "classify",
    "classify_output",
    "parse_listing",
    "parse_status",
]
