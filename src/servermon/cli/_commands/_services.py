# pyright: reportUnusedCallResult=false
# ruff: noqa: D415, FBT002
"""Manifest commands: list, add, remove, render."""

from typing import Annotated, Any

from cyclopts import Parameter
from rich.markup import escape

from servermon.exceptions import ServerMonError
from servermon.manifest import ServiceRecord

from ._context import CLIContext
from ._shared import ExitCode, fail_with, format_table


def _command_text(service: ServiceRecord) -> str:
    return " ".join(service.argv)


def _list(
    *,
    managed: Annotated[
        bool,
        Parameter(
            name="--managed",
            help="List supervisor entries under the identifier prefix instead",
        ),
    ] = False,
) -> None:
    """List services in the manifest

    Exit codes:
        0: Success
        1: The manifest could not be read
        5: The supervisor listing failed (with --managed)
    """
    ctx = CLIContext.get_current()

    if managed:
        try:
            entries = ctx.engine.list_managed()
        except ServerMonError as e:
            fail_with(e, console=ctx.error_console)
        if not entries:
            ctx.console.print("No managed services loaded.")
            return
        rows = [
            [
                entry.identifier,
                str(entry.pid) if entry.pid else "-",
                str(entry.last_exit_code) if entry.last_exit_code is not None else "-",
            ]
            for entry in entries
        ]
        ctx.console.out(
            format_table(["Identifier", "PID", "Last Exit"], rows).rstrip(), highlight=False
        )
        return

    try:
        services = ctx.engine.list_services()
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)

    if not services:
        ctx.console.print(f"No services configured in {escape(str(ctx.manifest_path))}.")
        return

    rows = [
        [
            service.name,
            service.identifier or "-",
            str(service.port) if service.port is not None else "-",
            "yes" if service.enabled else "no",
            _command_text(service),
        ]
        for service in services
    ]
    ctx.console.out(
        format_table(["Name", "Identifier", "Port", "Enabled", "Command"], rows).rstrip(),
        highlight=False,
    )


def _add(
    name: Annotated[str, Parameter(help="Service name")],
    /,
    *,
    command: Annotated[
        str,
        Parameter(name=["--command", "-c"], help="Command line to run"),
    ],
    path: Annotated[
        str | None,
        Parameter(name=["--path", "-p"], help="Working directory"),
    ] = None,
    port: Annotated[
        int | None,
        Parameter(name="--port", help="Port shown and probed by status"),
    ] = None,
    health_check: Annotated[
        str | None,
        Parameter(name="--health-check", help="HTTP URL probed by status"),
    ] = None,
    identifier: Annotated[
        str | None,
        Parameter(
            name="--identifier",
            help="Supervisor label (default: <prefix>.<slug of name>)",
        ),
    ] = None,
    disabled: Annotated[
        bool,
        Parameter(name="--disabled", help="Do not start automatically when registered"),
    ] = False,
) -> None:
    """Add a service to the manifest

    The supervisor is not touched; run `start` afterwards.

    Exit codes:
        0: Service added
        2: Invalid service or duplicate name/identifier
        4: The manifest could not be written
    """
    ctx = CLIContext.get_current()

    record: dict[str, Any] = {"name": name, "command": command}  # pyright: ignore[reportExplicitAny]
    if identifier:
        record["identifier"] = identifier
    if path:
        record["path"] = path
    if port is not None:
        record["port"] = port
    if health_check:
        record["healthCheck"] = health_check
    if disabled:
        record["enabled"] = False

    try:
        service = ctx.engine.add(record)
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)

    ctx.console.print(
        f"[green]✓[/green] Added {escape(service.name)} ({escape(service.identifier or '')})",
        highlight=False,
    )


def _remove(
    name: Annotated[str, Parameter(help="Service name or identifier fragment")],
    /,
    *,
    keep_config: Annotated[
        bool,
        Parameter(name="--keep-config", help="Keep the manifest entry"),
    ] = False,
    purge_logs: Annotated[
        bool,
        Parameter(name="--purge-logs", help="Delete the service's log files"),
    ] = False,
) -> None:
    """Uninstall a service and remove it from the manifest

    Exit codes:
        0: Service removed
        3: No service matches NAME
        4: A log file could not be deleted
        5: Deregistration failed (the manifest entry is still removed)
    """
    ctx = CLIContext.get_current()
    try:
        report = ctx.engine.remove(
            name, keep_manifest_entry=keep_config, purge_logs=purge_logs
        )
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)

    label = escape(report.name)
    if report.uninstall.error is not None:
        ctx.error_console.print(
            f"[red]✗[/red] {label}: {escape(str(report.uninstall.error))}", highlight=False
        )
    else:
        ctx.console.print(f"[green]✓[/green] {label}: uninstalled", highlight=False)
    if report.manifest_entry_removed:
        ctx.console.print(f"  removed from {escape(str(ctx.manifest_path))}", highlight=False)
    for log_file in report.removed_logs:
        ctx.console.print(f"  deleted {escape(log_file)}", highlight=False)
    for log_file, reason in report.failed_logs:
        ctx.error_console.print(
            f"  [red]✗[/red] could not delete {escape(log_file)}: {escape(reason)}",
            highlight=False,
        )

    if not report.uninstall.ok:
        raise SystemExit(ExitCode.CONTROL_PLANE_ERROR)
    if not report.ok:
        raise SystemExit(ExitCode.IO_ERROR)


def _render(
    name: Annotated[str, Parameter(help="Service name or identifier fragment")],
    /,
) -> None:
    """Print the descriptor a service would get, without writing it"""
    ctx = CLIContext.get_current()
    try:
        document = ctx.engine.render(name)
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)
    ctx.console.out(document.content.decode("utf-8"), highlight=False, end="")
