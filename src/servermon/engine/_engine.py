"""Reconciliation engine.

Composes the manifest, the descriptor renderer and store, the supervisor
client and the health evaluator into the user-facing verbs. Settings are
re-read from the manifest on every call.
"""

import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import anyio
import anyio.to_thread
from structlog.typing import FilteringBoundLogger

from servermon.config import GlobalSettings
from servermon.descriptor import XML_PLIST, DescriptorDocument, DescriptorFormat, DescriptorStore
from servermon.descriptor import log_paths as descriptor_log_paths
from servermon.descriptor import render as render_descriptor
from servermon.exceptions import MissingIdentifierError, ServerMonError, ServiceValidationError
from servermon.health import HealthEvaluator
from servermon.manifest import ManifestStore, ServiceRecord, find_service
from servermon.supervisor import (
    DEFAULT_RESTART_DELAY,
    ControlPlane,
    ManagedEntry,
    OperationResult,
    SupervisorClient,
    SupervisorStatus,
)
from servermon.utils import get_null_logger

from ._models import RemovalReport, ServiceHealth, ServiceResult

type ServiceAction = Callable[[SupervisorClient, ServiceRecord], OperationResult]


def _require_identifier(service: ServiceRecord) -> str:
    if not service.identifier:
        msg = f"Service {service.name!r} has no identifier"
        raise MissingIdentifierError(msg, field="identifier", service_name=service.name)
    return service.identifier


class ReconciliationEngine:
    """Applies lifecycle verbs to manifest services.

    Attributes:
        manifest_store: Source of desired state.
        backend: Control plane used for every supervisor call.
        evaluator: Health evaluator used by ``status``.
    """

    def __init__(
        self,
        manifest_store: ManifestStore,
        backend: ControlPlane,
        *,
        logger: FilteringBoundLogger | None = None,
        evaluator: HealthEvaluator | None = None,
        descriptor_format: DescriptorFormat = XML_PLIST,
        settle_seconds: float = 0.0,
        restart_delay: float = DEFAULT_RESTART_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the engine.

        Args:
            manifest_store: Store for ``services.json``.
            backend: Control plane adapter.
            logger: Logger for operations. Defaults to a silent logger.
            evaluator: Health evaluator. Defaults to real network probes.
            descriptor_format: Format descriptors are written in.
            settle_seconds: Wait before re-querying after start or restart.
            restart_delay: Wait between stop and start in the restart fallback.
            sleep: Sleep function, replaceable in tests.
        """
        self.manifest_store: ManifestStore = manifest_store
        self.backend: ControlPlane = backend
        self.evaluator: HealthEvaluator = evaluator or HealthEvaluator()
        self._logger: FilteringBoundLogger = logger or get_null_logger()
        self._format: DescriptorFormat = descriptor_format
        self._settle_seconds: float = settle_seconds
        self._restart_delay: float = restart_delay
        self._sleep: Callable[[float], None] = sleep

    # =========================================================================
    # Manifest Operations
    # =========================================================================

    def add(
        self,
        record: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> ServiceRecord:
        """Validate and append a service. The supervisor is not touched.

        Raises:
            ServiceValidationError: If the record is invalid or collides with
                an existing name or identifier. The manifest is unchanged.
        """
        return self.manifest_store.add(record)

    def update(
        self,
        name: str,
        changes: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> ServiceRecord:
        """Edit a service in place. The identifier cannot change."""
        return self.manifest_store.update(name, changes)

    def resolve(self, name: str) -> ServiceRecord:
        """Find a service by exact name, else by identifier substring.

        Raises:
            ServiceNotFoundError: If nothing matches.
        """
        return find_service(self.manifest_store.load().services, name)

    def list_services(self) -> list[ServiceRecord]:
        """Return manifest services in file order."""
        return list(self.manifest_store.load().services)

    def settings(self) -> GlobalSettings:
        """Return the effective global settings."""
        return self.manifest_store.settings()

    def render(self, name: str) -> DescriptorDocument:
        """Render the descriptor ``name`` would get, without writing it."""
        manifest = self.manifest_store.load()
        service = find_service(manifest.services, name)
        return render_descriptor(
            service, self.manifest_store.settings(manifest), format=self._format
        )

    # =========================================================================
    # Lifecycle Operations
    # =========================================================================

    def install(
        self,
        name: str | None = None,
        *,
        all_services: bool = False,
        concurrency: int = 1,
    ) -> list[ServiceResult]:
        """Write descriptors and register services without waiting for them."""
        return self._apply(
            "install",
            name,
            all_services,
            concurrency,
            lambda client, service: client.install(service),
        )

    def start(
        self,
        name: str | None = None,
        *,
        all_services: bool = False,
        concurrency: int = 1,
    ) -> list[ServiceResult]:
        """Start one service or all of them, regenerating descriptors first.

        With a name, errors propagate. With ``all_services``, every service is
        attempted and failures are returned as results.

        Raises:
            ServiceNotFoundError: If ``name`` does not resolve.
            ServerMonError: For a single named service that fails.
        """
        return self._apply(
            "start",
            name,
            all_services,
            concurrency,
            lambda client, service: client.start(_require_identifier(service), service),
        )

    def stop(
        self,
        name: str | None = None,
        *,
        all_services: bool = False,
        remove_descriptor: bool = False,
        concurrency: int = 1,
    ) -> list[ServiceResult]:
        """Stop one service or all of them.

        Raises:
            ServiceNotFoundError: If ``name`` does not resolve.
            ServerMonError: For a single named service that fails.
        """
        return self._apply(
            "stop",
            name,
            all_services,
            concurrency,
            lambda client, service: client.stop(
                _require_identifier(service), remove_descriptor=remove_descriptor
            ),
        )

    def restart(
        self,
        name: str | None = None,
        *,
        all_services: bool = False,
        concurrency: int = 1,
    ) -> list[ServiceResult]:
        """Restart one service or all of them, regenerating descriptors first.

        Raises:
            ServiceNotFoundError: If ``name`` does not resolve.
            ServerMonError: For a single named service that fails.
        """
        return self._apply(
            "restart",
            name,
            all_services,
            concurrency,
            lambda client, service: client.restart(_require_identifier(service), service),
        )

    def remove(
        self,
        name: str,
        *,
        keep_manifest_entry: bool = False,
        purge_logs: bool = False,
    ) -> RemovalReport:
        """Uninstall a service, then drop its manifest entry and logs.

        An uninstall failure is reported in the result but does not stop the
        manifest entry from being removed. Log files that cannot be deleted are
        reported the same way.

        Raises:
            ServiceNotFoundError: If ``name`` does not resolve.
        """
        manifest = self.manifest_store.load()
        service = find_service(manifest.services, name)
        settings = self.manifest_store.settings(manifest)

        uninstall = self._capture(self._client(settings), service, "uninstall", self._uninstall)

        entry_removed = False
        if not keep_manifest_entry:
            _ = self.manifest_store.remove(service.name)
            entry_removed = True

        removed_logs: list[str] = []
        failed_logs: list[tuple[str, str]] = []
        if purge_logs and service.identifier:
            for log_file in descriptor_log_paths(service, settings):
                path = Path(log_file)
                if not path.exists():
                    continue
                try:
                    path.unlink()
                except OSError as e:
                    self._logger.error(
                        "log_purge_failed", name=service.name, path=log_file, error=str(e)
                    )
                    failed_logs.append((log_file, e.strerror or str(e)))
                    continue
                removed_logs.append(log_file)

        self._logger.info(
            "service_remove_complete",
            name=service.name,
            identifier=service.identifier,
            uninstalled=uninstall.ok,
            manifest_entry_removed=entry_removed,
            removed_logs=removed_logs,
            failed_logs=[log_file for log_file, _ in failed_logs],
        )
        return RemovalReport(
            name=service.name,
            identifier=service.identifier,
            uninstall=uninstall,
            manifest_entry_removed=entry_removed,
            removed_logs=tuple(removed_logs),
            failed_logs=tuple(failed_logs),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def status(self, name: str | None = None) -> list[ServiceHealth]:
        """Return fresh supervisor status and health for one or all services."""
        manifest = self.manifest_store.load()
        services = (
            [find_service(manifest.services, name)] if name is not None else manifest.services
        )
        client = self._client(self.manifest_store.settings(manifest))

        snapshots: list[ServiceHealth] = []
        for service in services:
            supervisor = (
                client.status(service.identifier)
                if service.identifier
                else SupervisorStatus.absent()
            )
            snapshots.append(
                ServiceHealth(
                    service=service,
                    supervisor=supervisor,
                    health=self.evaluator.evaluate(service, supervisor),
                )
            )
        return snapshots

    def list_managed(self, prefix: str | None = None) -> list[ManagedEntry]:
        """List supervisor entries under ``prefix`` (default: the configured prefix)."""
        return self._client(self.manifest_store.settings()).list_managed(prefix)

    # =========================================================================
    # Internals
    # =========================================================================

    def _client(self, settings: GlobalSettings) -> SupervisorClient:
        store = DescriptorStore(
            settings.source_path,
            settings.active_path,
            format=self._format,
            logger=self._logger,
        )
        return SupervisorClient(
            self.backend,
            store,
            settings,
            logger=self._logger,
            settle_seconds=self._settle_seconds,
            restart_delay=self._restart_delay,
            sleep=self._sleep,
        )

    @staticmethod
    def _uninstall(client: SupervisorClient, service: ServiceRecord) -> OperationResult:
        return client.uninstall(_require_identifier(service))

    def _apply(
        self,
        operation: str,
        name: str | None,
        all_services: bool,  # noqa: FBT001
        concurrency: int,
        action: ServiceAction,
    ) -> list[ServiceResult]:
        if name is None and not all_services:
            msg = f"{operation} needs a service name or all_services=True"
            raise ServiceValidationError(msg, field="name")

        manifest = self.manifest_store.load()
        client = self._client(self.manifest_store.settings(manifest))

        if not all_services and name is not None:
            service = find_service(manifest.services, name)
            result = action(client, service)
            return [ServiceResult.from_operation(service, result)]

        results = self._run_batch(client, list(manifest.services), operation, action, concurrency)
        failed = sum(1 for result in results if not result.ok)
        self._logger.info(
            "batch_complete",
            operation=operation,
            total=len(results),
            failed=failed,
        )
        return results

    def _run_batch(
        self,
        client: SupervisorClient,
        services: list[ServiceRecord],
        operation: str,
        action: ServiceAction,
        concurrency: int,
    ) -> list[ServiceResult]:
        if concurrency <= 1 or len(services) <= 1:
            return [self._capture(client, service, operation, action) for service in services]

        results: list[ServiceResult | None] = [None] * len(services)

        async def worker(index: int, service: ServiceRecord, limiter: anyio.CapacityLimiter) -> None:
            results[index] = await anyio.to_thread.run_sync(
                self._capture, client, service, operation, action, limiter=limiter
            )

        async def main() -> None:
            limiter = anyio.CapacityLimiter(concurrency)
            async with anyio.create_task_group() as tg:
                for index, service in enumerate(services):
                    tg.start_soon(worker, index, service, limiter)

        anyio.run(main)
        return [result for result in results if result is not None]

    def _capture(
        self,
        client: SupervisorClient,
        service: ServiceRecord,
        operation: str,
        action: ServiceAction,
    ) -> ServiceResult:
        try:
            result = ServiceResult.from_operation(service, action(client, service))
        except ServerMonError as e:
            self._logger.warning(
                "service_operation_failed",
                name=service.name,
                identifier=service.identifier,
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ServiceResult.from_error(service, operation, e)
        self._logger.info(
            "service_operation_complete",
            name=service.name,
            identifier=result.identifier,
            operation=operation,
            outcome=str(result.outcome),
        )
        return result
