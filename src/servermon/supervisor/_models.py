"""Data models for the supervisor client.

This module defines the types exchanged with the control plane:
- SupervisorStatus: Queried state of one supervisor entry
- ManagedEntry: One row of the supervisor's full listing
- ControlVerb / ControlCondition / ControlResult: One control-plane call
- FailureKind / Attempt: Classified ladder steps
- Outcome / OperationResult: Result of a lifecycle operation
"""

import shlex
from dataclasses import dataclass, field
from enum import StrEnum


def _now() -> str:
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


@dataclass(frozen=True, slots=True)
class SupervisorStatus:
    """State of one identifier as reported by the supervisor.

    Never cached: the supervisor is the ground truth, so every caller
    queries afresh.

    Attributes:
        loaded: Whether the supervisor knows the identifier.
        running: Whether a process is currently running.
        pid: Process ID of the running process.
        last_exit_code: Exit status of the previous run, if any.
    """

    loaded: bool
    running: bool
    pid: int | None = None
    last_exit_code: int | None = None

    @classmethod
    def absent(cls) -> "SupervisorStatus":
        """Return the status of an identifier the supervisor does not know."""
        return cls(loaded=False, running=False)


@dataclass(frozen=True, slots=True)
class ManagedEntry:
    """One row of the supervisor's listing."""

    identifier: str
    pid: int | None
    running: bool
    last_exit_code: int | None


class ControlVerb(StrEnum):
    """Control-plane operations, named after their effect."""

    QUERY = "query"
    LIST = "list"
    REGISTER = "register"
    DEREGISTER = "deregister"
    LEGACY_REGISTER = "legacy_register"
    LEGACY_DEREGISTER = "legacy_deregister"
    START = "start"
    STOP = "stop"
    RESTART_IN_PLACE = "restart_in_place"
    SIGNAL = "signal"


class ControlCondition(StrEnum):
    """Recognised reasons a control-plane call did not succeed.

    - NOT_LOADED: The identifier is not registered
    - ALREADY_LOADED: The descriptor is already registered
    - NO_SUCH_PROCESS: A signal target does not exist
    - TIMED_OUT: The call exceeded its timeout
    - UNAVAILABLE: The control tool itself could not be run
    """

    NOT_LOADED = "not_loaded"
    ALREADY_LOADED = "already_loaded"
    NO_SUCH_PROCESS = "no_such_process"
    TIMED_OUT = "timed_out"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class ControlResult:
    """Outcome of one control-plane invocation.

    Attributes:
        verb: Operation performed.
        argv: Replayable command line (empty for in-process calls).
        exit_code: Exit status, or None when the call never completed.
        stdout: Captured standard output.
        stderr: Captured standard error.
        error: Description of a failure to run the call at all.
        condition: Recognised failure reason, if any.
    """

    verb: ControlVerb
    argv: tuple[str, ...] = ()
    exit_code: int | None = 0
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    condition: ControlCondition | None = None

    @property
    def ok(self) -> bool:
        """Return True if the call succeeded."""
        return self.exit_code == 0 and self.error is None and self.condition is None

    @property
    def detail(self) -> str:
        """Return the most useful failure text."""
        if self.error:
            return self.error
        text = (self.stderr or self.stdout).strip()
        if text:
            return text
        if self.condition is not None:
            return str(self.condition)
        return ""


class FailureKind(StrEnum):
    """Classification of an attempt.

    - SUCCESS: The call did what was asked
    - ALREADY_IN_DESIRED_STATE: The call failed only because the goal holds
    - TRANSIENT: Try the next fallback
    - FATAL: Stop and surface the error
    """

    SUCCESS = "success"
    ALREADY_IN_DESIRED_STATE = "already_in_desired_state"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class Attempt:
    """One classified step of a fallback ladder.

    Attributes:
        verb: Operation attempted.
        argv: Replayable command line.
        exit_code: Exit status of the call.
        detail: Failure text, empty on success.
        kind: Classification of the result.
        at: ISO 8601 timestamp of the attempt.
    """

    verb: ControlVerb
    argv: tuple[str, ...]
    exit_code: int | None
    detail: str
    kind: FailureKind
    at: str = field(default_factory=_now)

    @classmethod
    def from_result(cls, result: ControlResult, kind: FailureKind) -> "Attempt":
        """Build an attempt record from a control result."""
        return cls(
            verb=result.verb,
            argv=result.argv,
            exit_code=result.exit_code,
            detail="" if result.ok else result.detail,
            kind=kind,
        )

    @property
    def succeeded(self) -> bool:
        """Return True if the step reached the desired state."""
        return self.kind in (FailureKind.SUCCESS, FailureKind.ALREADY_IN_DESIRED_STATE)

    @property
    def command_line(self) -> str:
        """Return the argv as a shell-quoted string."""
        return shlex.join(self.argv)


class Outcome(StrEnum):
    """Result labels of lifecycle operations.

    ``already_running`` and ``already_stopped`` are successes reported
    distinctly from the state-changing outcomes.
    """

    INSTALLED = "installed"
    STARTED = "started"
    STARTING = "starting"
    ALREADY_RUNNING = "already_running"
    STOPPED = "stopped"
    ALREADY_STOPPED = "already_stopped"
    RESTARTED = "restarted"
    UNINSTALLED = "uninstalled"


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Result of a supervisor client operation.

    Attributes:
        identifier: The supervisor label.
        operation: Name of the lifecycle operation.
        outcome: What happened.
        pid: Process ID after the operation, if known.
        attempts: Every control-plane step taken.
        unknown_keys: Hand-added keys of the previous descriptor that the
            rewrite dropped because they are not in ``extraKeys``.
    """

    identifier: str
    operation: str
    outcome: Outcome
    pid: int | None = None
    attempts: tuple[Attempt, ...] = ()
    unknown_keys: tuple[str, ...] = ()
