# pyright: reportUnusedCallResult=false
# ruff: noqa: FBT002
"""Lifecycle commands: start, stop, restart."""

from typing import Annotated

from cyclopts import Parameter
from rich.markup import escape

from servermon.engine import ServiceResult
from servermon.exceptions import ServerMonError
from servermon.supervisor import Outcome

from ._context import CLIContext
from ._shared import ExitCode, fail_with

_OUTCOME_STYLE: dict[Outcome, str] = {
    Outcome.INSTALLED: "green",
    Outcome.STARTED: "green",
    Outcome.RESTARTED: "green",
    Outcome.STOPPED: "green",
    Outcome.UNINSTALLED: "green",
    Outcome.STARTING: "yellow",
    Outcome.ALREADY_RUNNING: "dim",
    Outcome.ALREADY_STOPPED: "dim",
}


def report_results(ctx: CLIContext, results: list[ServiceResult]) -> None:
    """Print one line per result and exit non-zero if any failed.

    Raises:
        SystemExit: With CONTROL_PLANE_ERROR when a result failed.
    """
    console = ctx.console
    for result in results:
        label = escape(result.name)
        if result.error is not None:
            ctx.error_console.print(
                f"[red]✗[/red] {label}: {escape(str(result.error))}", highlight=False
            )
            continue

        outcome = result.outcome or Outcome.STARTED
        style = _OUTCOME_STYLE.get(outcome, "green")
        pid = f" (pid {result.pid})" if result.pid else ""
        console.print(
            f"[{style}]✓[/{style}] {label}: {outcome.value.replace('_', ' ')}{pid}",
            highlight=False,
        )
        if result.unknown_keys:
            keys = ", ".join(result.unknown_keys)
            ctx.error_console.print(
                f"  [yellow]![/yellow] dropped hand-added descriptor keys: {escape(keys)}"
                " (add them to extraKeys to keep them)",
                highlight=False,
            )
        if ctx.verbose:
            for attempt in result.attempts:
                console.print(
                    f"    [dim]{attempt.verb}: {escape(attempt.command_line)} -> {attempt.kind}[/dim]",
                    highlight=False,
                )

    if any(not result.ok for result in results):
        raise SystemExit(ExitCode.CONTROL_PLANE_ERROR)


def _start(
    name: Annotated[str | None, Parameter(help="Service name or identifier fragment")] = None,
    /,
    *,
    all_services: Annotated[
        bool, Parameter(name=["--all", "-a"], help="Start every service")
    ] = False,
) -> None:
    """Start a service, or all services when no name is given"""
    ctx = CLIContext.get_current()
    try:
        results = ctx.engine.start(name, all_services=all_services or name is None)
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)
    report_results(ctx, results)


def _stop(
    name: Annotated[str | None, Parameter(help="Service name or identifier fragment")] = None,
    /,
    *,
    all_services: Annotated[
        bool, Parameter(name=["--all", "-a"], help="Stop every service")
    ] = False,
    remove_descriptor: Annotated[
        bool,
        Parameter(
            name="--remove-descriptor",
            help="Delete the active descriptor so the next start regenerates it",
        ),
    ] = False,
) -> None:
    """Stop a service, or all services when no name is given"""
    ctx = CLIContext.get_current()
    try:
        results = ctx.engine.stop(
            name,
            all_services=all_services or name is None,
            remove_descriptor=remove_descriptor,
        )
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)
    report_results(ctx, results)


def _restart(
    name: Annotated[str | None, Parameter(help="Service name or identifier fragment")] = None,
    /,
    *,
    all_services: Annotated[
        bool, Parameter(name=["--all", "-a"], help="Restart every service")
    ] = False,
) -> None:
    """Restart a service, or all services when no name is given"""
    ctx = CLIContext.get_current()
    try:
        results = ctx.engine.restart(name, all_services=all_services or name is None)
    except ServerMonError as e:
        fail_with(e, console=ctx.error_console)
    report_results(ctx, results)
