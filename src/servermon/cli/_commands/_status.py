# pyright: reportUnusedCallResult=false
# ruff: noqa: D415
"""Status command."""

from typing import Annotated

from cyclopts import Parameter

from servermon.engine import ServiceHealth
from servermon.exceptions import ServerMonError
from servermon.health import HealthStatus

from ._context import CLIContext
from ._shared import fail_with, format_table


def _health_detail(snapshot: ServiceHealth) -> str:
    health = snapshot.health
    parts: list[str] = []
    if health.port_listening is not None:
        parts.append("port open" if health.port_listening else "port closed")
    if health.http_status is not None:
        parts.append(f"HTTP {health.http_status}")
    elif health.http_error:
        parts.append(health.http_error)
    if not parts and snapshot.supervisor.last_exit_code and health.status == HealthStatus.STOPPED:
        parts.append(f"exit {snapshot.supervisor.last_exit_code}")
    return ", ".join(parts) or "-"


def status_rows(snapshots: list[ServiceHealth]) -> list[list[str]]:
    """Build the status table rows."""
    return [
        [
            snapshot.service.name,
            str(snapshot.health.status),
            str(snapshot.supervisor.pid) if snapshot.supervisor.pid else "-",
            str(snapshot.service.port) if snapshot.service.port is not None else "-",
            _health_detail(snapshot),
        ]
        for snapshot in snapshots
    ]


def _status(
    name: Annotated[str | None, Parameter(help="Service name or identifier fragment")] = None,
    /,
) -> None:
    """Show supervisor state and health for one or all services

    Exit codes:
        0: Success
        1: The manifest could not be read
        3: No service matches NAME
    """
    ctx = CLIContext.get_current()
    try:
        snapshots = ctx.engine.status(name)
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)

    if not snapshots:
        ctx.console.print("No services configured.")
        return

    ctx.console.out(
        format_table(["Name", "Status", "PID", "Port", "Health"], status_rows(snapshots)).rstrip(),
        highlight=False,
    )
