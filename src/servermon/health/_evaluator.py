"""Health evaluation.

Combines supervisor status with port and HTTP probes into one label.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from servermon.manifest import ServiceRecord
from servermon.supervisor import SupervisorStatus

from ._probes import DEFAULT_PROBE_TIMEOUT, HttpProbeResult, check_http, check_port

type PortProbe = Callable[[int], bool]
type HttpProbe = Callable[[str], HttpProbeResult]


class HealthStatus(StrEnum):
    """Derived health labels, in evaluation order."""

    NOT_INSTALLED = "not_installed"
    STOPPED = "stopped"
    STARTING = "starting"
    UNHEALTHY = "unhealthy"
    HEALTHY = "healthy"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class HealthRecord:
    """Ephemeral health of one service.

    Attributes:
        status: The derived label.
        port_listening: Port probe result, None when not probed.
        http_healthy: HTTP probe result, None when not probed.
        http_status: HTTP status code, if a response arrived.
        http_error: HTTP failure description, if any.
    """

    status: HealthStatus
    port_listening: bool | None = None
    http_healthy: bool | None = None
    http_status: int | None = None
    http_error: str | None = None


class HealthEvaluator:
    """Evaluates service health from status and probes.

    Probes only run when the supervisor reports the service running.
    """

    def __init__(
        self,
        *,
        port_probe: PortProbe | None = None,
        http_probe: HttpProbe | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self._timeout: float = timeout
        self._port_probe: PortProbe = port_probe or self._default_port_probe
        self._http_probe: HttpProbe = http_probe or self._default_http_probe

    def _default_port_probe(self, port: int) -> bool:
        return check_port(port, timeout=self._timeout)

    def _default_http_probe(self, url: str) -> HttpProbeResult:
        return check_http(url, timeout=self._timeout)

    def evaluate(self, service: ServiceRecord, status: SupervisorStatus) -> HealthRecord:
        """Derive the health label for ``service``.

        Order: not loaded is ``not_installed``; not running is ``stopped``; a
        declared port that is not listening is ``starting``; a failing health
        URL is ``unhealthy``; otherwise ``healthy`` when any check passed, or
        ``running`` when none is configured.
        """
        if not status.loaded:
            return HealthRecord(status=HealthStatus.NOT_INSTALLED)
        if not status.running:
            return HealthRecord(status=HealthStatus.STOPPED)

        port_listening: bool | None = None
        if service.port is not None:
            port_listening = self._safe_port(service.port)

        http: HttpProbeResult | None = None
        if service.health_check:
            http = self._safe_http(service.health_check)

        if port_listening is False:
            label = HealthStatus.STARTING
        elif http is not None and not http.healthy:
            label = HealthStatus.UNHEALTHY
        elif port_listening or (http is not None and http.healthy):
            label = HealthStatus.HEALTHY
        else:
            label = HealthStatus.RUNNING

        return HealthRecord(
            status=label,
            port_listening=port_listening,
            http_healthy=http.healthy if http else None,
            http_status=http.status_code if http else None,
            http_error=http.error if http else None,
        )

    def _safe_port(self, port: int) -> bool:
        try:
            return self._port_probe(port)
        except Exception:  # noqa: BLE001
            return False

    def _safe_http(self, url: str) -> HttpProbeResult:
        try:
            return self._http_probe(url)
        except Exception as e:  # noqa: BLE001
            return HttpProbeResult(healthy=False, error=str(e) or type(e).__name__)
