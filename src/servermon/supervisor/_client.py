"""Supervisor client.

Implements the per-service lifecycle (install, start, stop, restart,
uninstall) over a ControlPlane, with layered fallbacks:

- register: modern verb, then legacy deregister + register
- start: in-place start, then legacy start
- stop: strong deregister, then legacy stop + deregister, then a direct
  signal to the last known pid
- restart: forceful in-place restart, then stop, a fixed delay, and start

All calls block. Status is queried fresh for every decision.
"""

import signal
import time
from collections.abc import Callable
from pathlib import Path

from structlog.typing import FilteringBoundLogger

from servermon.config import GlobalSettings
from servermon.descriptor import DescriptorStore, render
from servermon.exceptions import DescriptorIOError, InstallFailedError
from servermon.manifest import ServiceRecord
from servermon.utils import get_null_logger

from ._ladder import FallbackLadder
from ._models import (
    ControlCondition,
    ManagedEntry,
    OperationResult,
    Outcome,
    SupervisorStatus,
)
from ._protocol import ControlPlane

DEFAULT_RESTART_DELAY = 1.0

_NOT_LOADED = (ControlCondition.NOT_LOADED,)
_ALREADY_LOADED = (ControlCondition.ALREADY_LOADED,)


class SupervisorClient:
    """Lifecycle operations for single services.

    Attributes:
        backend: The control plane in use.
        store: Where descriptors are written.
        settings: Global settings used for rendering.
    """

    def __init__(
        self,
        backend: ControlPlane,
        store: DescriptorStore,
        settings: GlobalSettings,
        *,
        logger: FilteringBoundLogger | None = None,
        settle_seconds: float = 0.0,
        restart_delay: float = DEFAULT_RESTART_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            backend: Control plane adapter.
            store: Descriptor store for the two descriptor directories.
            settings: Global settings used when rendering.
            logger: Logger for attempts. Defaults to a silent logger.
            settle_seconds: Wait before re-querying after a start.
            restart_delay: Wait between stop and start in the restart fallback.
            sleep: Sleep function, replaceable in tests.
        """
        self.backend: ControlPlane = backend
        self.store: DescriptorStore = store
        self.settings: GlobalSettings = settings
        self._logger: FilteringBoundLogger = logger or get_null_logger()
        self._settle_seconds: float = settle_seconds
        self._restart_delay: float = restart_delay
        self._sleep: Callable[[float], None] = sleep

    # =========================================================================
    # Queries
    # =========================================================================

    def status(self, identifier: str) -> SupervisorStatus:
        """Query the supervisor. An unknown identifier is not an error.

        Raises:
            ControlPlaneError: If the query fails for any reason other than the
                identifier not being registered. A timed-out query says
                nothing about whether the service is loaded.
        """
        status, result = self.backend.query(identifier)
        if not result.ok and result.condition is not ControlCondition.NOT_LOADED:
            ladder = FallbackLadder(identifier, "query", logger=self._logger)
            _ = ladder.step(result)
            ladder.fail(result.detail or "status query failed")
        return status

    def list_managed(self, prefix: str | None = None) -> list[ManagedEntry]:
        """List supervisor entries whose identifier starts with ``prefix``.

        ``prefix`` defaults to the configured identifier prefix.

        Raises:
            ControlPlaneError: If the listing cannot be obtained.
        """
        effective = self.settings.identifier_prefix if prefix is None else prefix
        entries, result = self.backend.list_all()
        if not result.ok:
            msg = f"Failed to list supervisor entries: {result.detail}"
            ladder = FallbackLadder(effective, "list", logger=self._logger)
            _ = ladder.step(result)
            ladder.fail(msg)
        return [entry for entry in entries if entry.identifier.startswith(effective)]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def install(self, service: ServiceRecord) -> OperationResult:
        """Write the descriptor to both directories and register it.

        Raises:
            ServiceValidationError: If the record cannot be rendered.
            DescriptorIOError: If a descriptor write fails.
            InstallFailedError: If registration fails on every path.
        """
        identifier, unknown_keys = self._publish(service)
        ladder = FallbackLadder(
            identifier, "install", logger=self._logger, error_class=InstallFailedError
        )
        active = self.store.active_path(identifier)

        # An already-loaded label must be reloaded to pick up the new file
        if not ladder.step(self.backend.register(active)).succeeded:
            _ = ladder.step(self.backend.legacy_deregister(active), desired=_NOT_LOADED)
            attempt = ladder.step(self.backend.legacy_register(active), desired=_ALREADY_LOADED)
            if not attempt.succeeded:
                ladder.fail(attempt.detail or "registration failed")

        status = self._settle(identifier)
        return self._result(
            identifier, "install", Outcome.INSTALLED, status.pid, ladder, unknown_keys
        )

    def start(self, identifier: str, service: ServiceRecord | None = None) -> OperationResult:
        """Start ``identifier``, registering it first if needed.

        With ``service``, the descriptor is re-rendered and rewritten first.
        Starting a running service is a no-op reported as ``already_running``.

        Raises:
            ControlPlaneError: If the service cannot be started.
        """
        unknown_keys: tuple[str, ...] = ()
        if service is not None:
            identifier, unknown_keys = self._publish(service)

        status = self.status(identifier)
        ladder = FallbackLadder(identifier, "start", logger=self._logger)
        if status.running:
            return self._result(
                identifier, "start", Outcome.ALREADY_RUNNING, status.pid, ladder, unknown_keys
            )

        if status.loaded:
            self._kickstart_or_cycle(ladder, identifier)
        else:
            self._register_and_start(ladder, identifier)

        status = self._settle(identifier)
        outcome = Outcome.STARTED if status.running else Outcome.STARTING
        return self._result(identifier, "start", outcome, status.pid, ladder, unknown_keys)

    def stop(self, identifier: str, *, remove_descriptor: bool = False) -> OperationResult:
        """Stop ``identifier`` and deregister it so it is not restarted.

        Stopping a service that is not loaded is a no-op reported as
        ``already_stopped``. With ``remove_descriptor`` the active-directory
        copy is deleted afterwards so the next start regenerates it.

        Raises:
            ControlPlaneError: If every stop path fails.
        """
        status = self.status(identifier)
        ladder = FallbackLadder(identifier, "stop", logger=self._logger)

        if status.loaded:
            self._stop_ladder(ladder, identifier, status.pid)

        if remove_descriptor:
            _ = self.store.delete(self.store.active_path(identifier))

        outcome = Outcome.STOPPED if status.running else Outcome.ALREADY_STOPPED
        return self._result(identifier, "stop", outcome, None, ladder)

    def restart(self, identifier: str, service: ServiceRecord | None = None) -> OperationResult:
        """Restart ``identifier`` in place.

        With ``service``, the descriptor is re-rendered and rewritten first.
        A service that is not loaded is registered and started.

        Raises:
            ControlPlaneError: If the service cannot be restarted.
        """
        unknown_keys: tuple[str, ...] = ()
        if service is not None:
            identifier, unknown_keys = self._publish(service)

        status = self.status(identifier)
        ladder = FallbackLadder(identifier, "restart", logger=self._logger)

        if not status.loaded:
            self._register_and_start(ladder, identifier)
            status = self._settle(identifier)
            outcome = Outcome.STARTED if status.running else Outcome.STARTING
            return self._result(identifier, "restart", outcome, status.pid, ladder, unknown_keys)

        if not ladder.step(self.backend.restart_in_place(identifier, force=True)).succeeded:
            stopped = ladder.step(self.backend.stop(identifier), desired=_NOT_LOADED)
            if not stopped.succeeded and status.pid:
                _ = ladder.step(
                    self.backend.signal(status.pid, signal.SIGTERM),
                    desired=(ControlCondition.NO_SUCH_PROCESS,),
                )
            self._sleep(self._restart_delay)
            started = ladder.step(self.backend.start(identifier))
            if not started.succeeded:
                ladder.fail(started.detail or "start after stop failed")

        status = self._settle(identifier)
        outcome = Outcome.RESTARTED if status.running else Outcome.STARTING
        return self._result(identifier, "restart", outcome, status.pid, ladder, unknown_keys)

    def uninstall(self, identifier: str) -> OperationResult:
        """Deregister ``identifier`` and delete both descriptor copies.

        Never errors when the service is already absent.

        Raises:
            ControlPlaneError: If the service is loaded and cannot be
                deregistered. Descriptors are kept in that case.
        """
        ladder = FallbackLadder(identifier, "uninstall", logger=self._logger)
        if not ladder.step(self.backend.deregister(identifier), desired=_NOT_LOADED).succeeded:
            active = self.store.active_path(identifier)
            attempt = ladder.step(self.backend.legacy_deregister(active), desired=_NOT_LOADED)
            if not attempt.succeeded:
                ladder.fail(attempt.detail or "deregistration failed")

        self.store.remove(identifier)
        return self._result(identifier, "uninstall", Outcome.UNINSTALLED, None, ladder)

    # =========================================================================
    # Internals
    # =========================================================================

    def _publish(self, service: ServiceRecord) -> tuple[str, tuple[str, ...]]:
        """Render and write the descriptor for ``service``.

        Returns:
            The identifier, and the hand-added keys of the previous active
            copy that the rewrite dropped.
        """
        document = render(service, self.settings, format=self.store.format)
        active = self.store.active_path(document.identifier)
        unknown_keys = self._unknown_keys(service, active)
        _ = self.store.publish(document)
        return document.identifier, unknown_keys

    def _unknown_keys(self, service: ServiceRecord, path: Path) -> tuple[str, ...]:
        try:
            found = self.store.extract_unknown_keys(path)
        except DescriptorIOError as e:
            # Unparseable copies are replaced; nothing can be carried over
            self._logger.warning("descriptor_unreadable", path=str(path), error=str(e))
            return ()

        extra = service.extra_keys or {}
        unknown = tuple(key for key in found if key not in extra)
        if unknown:
            self._logger.warning(
                "descriptor_unknown_keys",
                identifier=service.identifier,
                path=str(path),
                keys=list(unknown),
                hint="add them to extraKeys to keep them",
            )
        return unknown

    def _register_and_start(self, ladder: FallbackLadder, identifier: str) -> None:
        active = self.store.active_path(identifier)
        if not ladder.step(self.backend.register(active), desired=_ALREADY_LOADED).succeeded:
            attempt = ladder.step(self.backend.legacy_register(active), desired=_ALREADY_LOADED)
            if not attempt.succeeded:
                ladder.fail(attempt.detail or "registration failed")

        # Non-forceful: a RunAtLoad service that is already up is left alone
        if not ladder.step(self.backend.restart_in_place(identifier, force=False)).succeeded:
            attempt = ladder.step(self.backend.start(identifier))
            if not attempt.succeeded:
                ladder.fail(attempt.detail or "start failed")

    def _kickstart_or_cycle(self, ladder: FallbackLadder, identifier: str) -> None:
        if ladder.step(self.backend.restart_in_place(identifier, force=True)).succeeded:
            return
        _ = ladder.step(self.backend.stop(identifier), desired=_NOT_LOADED)
        attempt = ladder.step(self.backend.start(identifier))
        if not attempt.succeeded:
            ladder.fail(attempt.detail or "start failed")

    def _stop_ladder(self, ladder: FallbackLadder, identifier: str, pid: int | None) -> None:
        if ladder.step(self.backend.deregister(identifier), desired=_NOT_LOADED).succeeded:
            return

        _ = ladder.step(self.backend.stop(identifier), desired=_NOT_LOADED)
        active = self.store.active_path(identifier)
        attempt = ladder.step(self.backend.legacy_deregister(active), desired=_NOT_LOADED)
        if attempt.succeeded:
            return

        if pid:
            attempt = ladder.step(
                self.backend.signal(pid, signal.SIGTERM),
                desired=(ControlCondition.NO_SUCH_PROCESS,),
            )
            if attempt.succeeded:
                return
        ladder.fail(attempt.detail or "deregistration failed")

    def _settle(self, identifier: str) -> SupervisorStatus:
        if self._settle_seconds > 0:
            self._sleep(self._settle_seconds)
        return self.status(identifier)

    def _result(
        self,
        identifier: str,
        operation: str,
        outcome: Outcome,
        pid: int | None,
        ladder: FallbackLadder,
        unknown_keys: tuple[str, ...] = (),
    ) -> OperationResult:
        self._logger.info(
            "operation_complete",
            identifier=identifier,
            operation=operation,
            outcome=str(outcome),
            pid=pid,
            attempts=len(ladder.attempts),
        )
        return OperationResult(
            identifier=identifier,
            operation=operation,
            outcome=outcome,
            pid=pid,
            attempts=ladder.attempts,
            unknown_keys=unknown_keys,
        )
