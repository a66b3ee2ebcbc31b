# ruff: noqa: TC003  # Path needed at runtime for dataclass fields
"""Fake control plane for testing.

This module provides a FakeControlPlane class that implements ControlPlane
in memory, so lifecycle logic can be exercised without a real supervisor.
"""

import plistlib
from dataclasses import dataclass, field
from pathlib import Path
from xml.parsers.expat import ExpatError

import orjson

from ._models import (
    ControlCondition,
    ControlResult,
    ControlVerb,
    ManagedEntry,
    SupervisorStatus,
)


@dataclass(slots=True)
class FakeEntry:
    """A registered identifier in the fake supervisor."""

    identifier: str
    descriptor_path: Path | None = None
    pid: int | None = None
    last_exit_code: int | None = None


@dataclass(slots=True)
class _Failure:
    remaining: int | None
    condition: ControlCondition | None
    exit_code: int


@dataclass(slots=True)
class FakeControlPlane:
    """In-memory ControlPlane.

    Registering a descriptor reads its ``Label`` and ``RunAtLoad``; starting
    assigns a fresh pid. Every call is recorded in ``calls``.

    Example:
        >>> plane = FakeControlPlane()
        >>> plane.preload("com.example.api", running=True)
        >>> plane.fail(ControlVerb.RESTART_IN_PLACE)
        >>> plane.restart_in_place("com.example.api").ok
        False
    """

    entries: dict[str, FakeEntry] = field(default_factory=dict)
    calls: list[ControlResult] = field(default_factory=list)
    signals: list[tuple[int, int]] = field(default_factory=list)
    start_assigns_pid: bool = True
    next_pid: int = 1000
    _failures: dict[ControlVerb, _Failure] = field(default_factory=dict)

    # =========================================================================
    # Test Helpers
    # =========================================================================

    def preload(
        self,
        identifier: str,
        *,
        running: bool = False,
        pid: int | None = None,
        last_exit_code: int | None = None,
    ) -> FakeEntry:
        """Register ``identifier`` directly, optionally with a running process."""
        entry = FakeEntry(identifier=identifier, last_exit_code=last_exit_code)
        if running:
            entry.pid = pid if pid is not None else self._allocate_pid()
        self.entries[identifier] = entry
        return entry

    def fail(
        self,
        verb: ControlVerb,
        *,
        times: int | None = None,
        condition: ControlCondition | None = None,
        exit_code: int = 1,
    ) -> None:
        """Make ``verb`` fail ``times`` times, or always when ``times`` is None."""
        self._failures[verb] = _Failure(times, condition, exit_code)

    def verbs(self) -> list[ControlVerb]:
        """Return the verbs called so far, in order."""
        return [call.verb for call in self.calls]

    def crash(self, identifier: str, exit_code: int = 1) -> None:
        """Simulate the process of ``identifier`` exiting."""
        entry = self.entries[identifier]
        entry.pid = None
        entry.last_exit_code = exit_code

    # =========================================================================
    # ControlPlane Methods
    # =========================================================================

    def query(self, identifier: str) -> tuple[SupervisorStatus, ControlResult]:
        injected = self._injected(ControlVerb.QUERY, ("list", identifier))
        if injected is not None:
            return SupervisorStatus.absent(), injected
        entry = self.entries.get(identifier)
        if entry is None:
            return SupervisorStatus.absent(), self._record(
                ControlVerb.QUERY,
                ("list", identifier),
                exit_code=113,
                stderr=f'Could not find service "{identifier}" in domain for port',
                condition=ControlCondition.NOT_LOADED,
            )
        status = SupervisorStatus(
            loaded=True,
            running=entry.pid is not None,
            pid=entry.pid,
            last_exit_code=entry.last_exit_code,
        )
        return status, self._record(ControlVerb.QUERY, ("list", identifier))

    def list_all(self) -> tuple[list[ManagedEntry], ControlResult]:
        injected = self._injected(ControlVerb.LIST, ("list",))
        if injected is not None:
            return [], injected
        rows = [
            ManagedEntry(
                identifier=entry.identifier,
                pid=entry.pid,
                running=entry.pid is not None,
                last_exit_code=entry.last_exit_code,
            )
            for entry in self.entries.values()
        ]
        return rows, self._record(ControlVerb.LIST, ("list",))

    def register(self, descriptor_path: Path) -> ControlResult:
        argv = ("bootstrap", str(descriptor_path))
        return self._register(ControlVerb.REGISTER, argv, descriptor_path)

    def legacy_register(self, descriptor_path: Path) -> ControlResult:
        argv = ("load", str(descriptor_path))
        return self._register(ControlVerb.LEGACY_REGISTER, argv, descriptor_path)

    def deregister(self, identifier: str) -> ControlResult:
        return self._deregister(ControlVerb.DEREGISTER, ("bootout", identifier), identifier)

    def legacy_deregister(self, descriptor_path: Path) -> ControlResult:
        identifier = self._identifier_for(descriptor_path)
        return self._deregister(
            ControlVerb.LEGACY_DEREGISTER, ("unload", str(descriptor_path)), identifier
        )

    def start(self, identifier: str) -> ControlResult:
        argv = ("start", identifier)
        injected = self._injected(ControlVerb.START, argv)
        if injected is not None:
            return injected
        entry = self.entries.get(identifier)
        if entry is None:
            return self._not_loaded(ControlVerb.START, argv, exit_code=3)
        if entry.pid is None and self.start_assigns_pid:
            entry.pid = self._allocate_pid()
        return self._record(ControlVerb.START, argv)

    def stop(self, identifier: str) -> ControlResult:
        argv = ("stop", identifier)
        injected = self._injected(ControlVerb.STOP, argv)
        if injected is not None:
            return injected
        entry = self.entries.get(identifier)
        if entry is None:
            return self._not_loaded(ControlVerb.STOP, argv, exit_code=3)
        if entry.pid is not None:
            entry.pid = None
            entry.last_exit_code = 0
        return self._record(ControlVerb.STOP, argv)

    def restart_in_place(self, identifier: str, *, force: bool = True) -> ControlResult:
        argv = ("kickstart", "-k", identifier) if force else ("kickstart", identifier)
        injected = self._injected(ControlVerb.RESTART_IN_PLACE, argv)
        if injected is not None:
            return injected
        entry = self.entries.get(identifier)
        if entry is None:
            return self._not_loaded(ControlVerb.RESTART_IN_PLACE, argv, exit_code=113)
        if entry.pid is None or force:
            if entry.pid is not None:
                entry.last_exit_code = 0
            entry.pid = self._allocate_pid() if self.start_assigns_pid else None
        return self._record(ControlVerb.RESTART_IN_PLACE, argv)

    def signal(self, pid: int, sig: int) -> ControlResult:
        argv = ("kill", f"-{sig}", str(pid))
        injected = self._injected(ControlVerb.SIGNAL, argv)
        if injected is not None:
            return injected
        self.signals.append((pid, sig))
        for entry in self.entries.values():
            if entry.pid == pid:
                entry.pid = None
                entry.last_exit_code = -sig
                return self._record(ControlVerb.SIGNAL, argv)
        return self._record(
            ControlVerb.SIGNAL,
            argv,
            exit_code=None,
            error=f"[Errno 3] No such process: {pid}",
            condition=ControlCondition.NO_SUCH_PROCESS,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _allocate_pid(self) -> int:
        pid = self.next_pid
        self.next_pid += 1
        return pid

    def _record(
        self,
        verb: ControlVerb,
        argv: tuple[str, ...],
        *,
        exit_code: int | None = 0,
        stderr: str = "",
        error: str | None = None,
        condition: ControlCondition | None = None,
    ) -> ControlResult:
        result = ControlResult(
            verb=verb,
            argv=("launchctl", *argv) if verb != ControlVerb.SIGNAL else argv,
            exit_code=exit_code,
            stderr=stderr,
            error=error,
            condition=condition,
        )
        self.calls.append(result)
        return result

    def _not_loaded(
        self, verb: ControlVerb, argv: tuple[str, ...], *, exit_code: int
    ) -> ControlResult:
        return self._record(
            verb,
            argv,
            exit_code=exit_code,
            stderr="No such process",
            condition=ControlCondition.NOT_LOADED,
        )

    def _injected(self, verb: ControlVerb, argv: tuple[str, ...]) -> ControlResult | None:
        failure = self._failures.get(verb)
        if failure is None:
            return None
        if failure.remaining is not None:
            if failure.remaining <= 0:
                return None
            failure.remaining -= 1
        return self._record(
            verb,
            argv,
            exit_code=failure.exit_code,
            stderr=f"injected {verb} failure",
            condition=failure.condition,
        )

    def _register(
        self, verb: ControlVerb, argv: tuple[str, ...], descriptor_path: Path
    ) -> ControlResult:
        injected = self._injected(verb, argv)
        if injected is not None:
            return injected
        try:
            descriptor = _read_descriptor(descriptor_path)
        except (OSError, ValueError, ExpatError) as e:
            return self._record(verb, argv, exit_code=5, stderr=f"Load failed: {e}")

        identifier = str(descriptor.get("Label") or descriptor_path.stem)
        if identifier in self.entries:
            return self._record(
                verb,
                argv,
                exit_code=37,
                stderr="service already loaded",
                condition=ControlCondition.ALREADY_LOADED,
            )

        entry = FakeEntry(identifier=identifier, descriptor_path=descriptor_path)
        if descriptor.get("RunAtLoad") and self.start_assigns_pid:
            entry.pid = self._allocate_pid()
        self.entries[identifier] = entry
        return self._record(verb, argv)

    def _deregister(
        self, verb: ControlVerb, argv: tuple[str, ...], identifier: str
    ) -> ControlResult:
        injected = self._injected(verb, argv)
        if injected is not None:
            return injected
        if identifier not in self.entries:
            return self._record(
                verb,
                argv,
                exit_code=113,
                stderr="Could not find specified service",
                condition=ControlCondition.NOT_LOADED,
            )
        del self.entries[identifier]
        return self._record(verb, argv)

    def _identifier_for(self, descriptor_path: Path) -> str:
        for entry in self.entries.values():
            if entry.descriptor_path == descriptor_path:
                return entry.identifier
        return descriptor_path.stem


def _read_descriptor(path: Path) -> dict[str, object]:
    content = path.read_bytes()
    if path.suffix == ".json":
        data = orjson.loads(content)
    else:
        data = plistlib.loads(content)
    if not isinstance(data, dict):
        msg = "descriptor root is not a dictionary"
        raise ValueError(msg)  # noqa: TRY004
    return data  # pyright: ignore[reportUnknownVariableType]
