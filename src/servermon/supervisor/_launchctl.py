"""launchd control plane.

Drives ``launchctl`` in the per-user GUI domain. Modern verbs (bootstrap,
bootout, kickstart) and their legacy counterparts (load, unload, start, stop)
are exposed separately so the client can fall back between them.
"""

import os
import re
from collections.abc import Callable
from pathlib import Path

from servermon.utils import DEFAULT_TIMEOUT_MS, CommandConfig, CommandResult, run_command

from ._models import (
    ControlCondition,
    ControlResult,
    ControlVerb,
    ManagedEntry,
    SupervisorStatus,
)

LAUNCHCTL_PATH = "/bin/launchctl"

# Exit statuses launchctl uses for an unknown label
_NOT_LOADED_EXIT_CODES = frozenset({3, 113})
# Exit status of bootstrap when the label is already loaded
_ALREADY_LOADED_EXIT_CODES = frozenset({37})

_NOT_LOADED_MARKERS = ("no such process", "could not find", "not loaded")
_ALREADY_LOADED_MARKERS = ("already loaded", "service already bootstrapped")

_PID_PATTERN = re.compile(r'"PID"\s*=\s*(\d+)\s*;')
_EXIT_PATTERN = re.compile(r'"LastExitStatus"\s*=\s*(-?\d+)\s*;')

type CommandRunner = Callable[[CommandConfig], CommandResult]


def classify_output(result: CommandResult) -> ControlCondition | None:
    """Recognise a launchctl failure by exit status and message text."""
    if result.timed_out:
        return ControlCondition.TIMED_OUT
    if result.command_not_found:
        return ControlCondition.UNAVAILABLE
    if result.ok:
        return None

    text = result.output.lower()
    if result.exit_code in _ALREADY_LOADED_EXIT_CODES or any(
        marker in text for marker in _ALREADY_LOADED_MARKERS
    ):
        return ControlCondition.ALREADY_LOADED
    if result.exit_code in _NOT_LOADED_EXIT_CODES or any(
        marker in text for marker in _NOT_LOADED_MARKERS
    ):
        return ControlCondition.NOT_LOADED
    return None


def parse_status(output: str) -> SupervisorStatus:
    """Parse the property list printed by ``launchctl list <label>``."""
    pid_match = _PID_PATTERN.search(output)
    exit_match = _EXIT_PATTERN.search(output)
    pid = int(pid_match.group(1)) if pid_match else None
    return SupervisorStatus(
        loaded=True,
        running=pid is not None and pid != 0,
        pid=pid,
        last_exit_code=int(exit_match.group(1)) if exit_match else None,
    )


def parse_listing(output: str) -> list[ManagedEntry]:
    """Parse the ``PID Status Label`` table printed by ``launchctl list``.

    ``-`` in the PID or status column means none. The header row is skipped.
    """
    entries: list[ManagedEntry] = []
    for line in output.splitlines():
        parts = line.strip().split(None, 2)
        if len(parts) < 3 or parts[0] == "PID":
            continue
        pid_text, status_text, identifier = parts
        pid = None if pid_text == "-" else _to_int(pid_text)
        entries.append(
            ManagedEntry(
                identifier=identifier,
                pid=pid,
                running=pid is not None and pid != 0,
                last_exit_code=None if status_text == "-" else _to_int(status_text),
            )
        )
    return entries


def _to_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


class LaunchctlControlPlane:
    """ControlPlane backed by the ``launchctl`` command.

    Attributes:
        executable: Path to launchctl.
        domain: Target domain, ``gui/<uid>`` by default.
        timeout_ms: Per-call timeout.
    """

    def __init__(
        self,
        *,
        executable: str = LAUNCHCTL_PATH,
        domain: str | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        runner: CommandRunner = run_command,
    ) -> None:
        self.executable: str = executable
        self.domain: str = domain or f"gui/{os.getuid()}"
        self.timeout_ms: int = timeout_ms
        self._runner: CommandRunner = runner

    def _target(self, identifier: str) -> str:
        return f"{self.domain}/{identifier}"

    def _run(self, verb: ControlVerb, *args: str) -> tuple[ControlResult, CommandResult]:
        argv = (self.executable, *args)
        raw = self._runner(CommandConfig(argv=argv, timeout_ms=self.timeout_ms))
        result = ControlResult(
            verb=verb,
            argv=argv,
            exit_code=raw.exit_code,
            stdout=raw.stdout,
            stderr=raw.stderr,
            error=raw.error,
            condition=classify_output(raw),
        )
        return result, raw

    def query(self, identifier: str) -> tuple[SupervisorStatus, ControlResult]:
        result, raw = self._run(ControlVerb.QUERY, "list", identifier)
        if not raw.ok:
            return SupervisorStatus.absent(), result
        return parse_status(raw.stdout), result

    def list_all(self) -> tuple[list[ManagedEntry], ControlResult]:
        result, raw = self._run(ControlVerb.LIST, "list")
        if not raw.ok:
            return [], result
        return parse_listing(raw.stdout), result

    def register(self, descriptor_path: Path) -> ControlResult:
        return self._run(ControlVerb.REGISTER, "bootstrap", self.domain, str(descriptor_path))[0]

    def deregister(self, identifier: str) -> ControlResult:
        return self._run(ControlVerb.DEREGISTER, "bootout", self._target(identifier))[0]

    def legacy_register(self, descriptor_path: Path) -> ControlResult:
        return self._run(ControlVerb.LEGACY_REGISTER, "load", str(descriptor_path))[0]

    def legacy_deregister(self, descriptor_path: Path) -> ControlResult:
        return self._run(ControlVerb.LEGACY_DEREGISTER, "unload", str(descriptor_path))[0]

    def start(self, identifier: str) -> ControlResult:
        return self._run(ControlVerb.START, "start", identifier)[0]

    def stop(self, identifier: str) -> ControlResult:
        return self._run(ControlVerb.STOP, "stop", identifier)[0]

    def restart_in_place(self, identifier: str, *, force: bool = True) -> ControlResult:
        flags = ("-k",) if force else ()
        target = self._target(identifier)
        return self._run(ControlVerb.RESTART_IN_PLACE, "kickstart", *flags, target)[0]

    def signal(self, pid: int, sig: int) -> ControlResult:
        argv = ("kill", f"-{sig}", str(pid))
        try:
            os.kill(pid, sig)
        except ProcessLookupError as e:
            return ControlResult(
                verb=ControlVerb.SIGNAL,
                argv=argv,
                exit_code=None,
                error=str(e),
                condition=ControlCondition.NO_SUCH_PROCESS,
            )
        except OSError as e:
            return ControlResult(verb=ControlVerb.SIGNAL, argv=argv, exit_code=None, error=str(e))
        return ControlResult(verb=ControlVerb.SIGNAL, argv=argv)
