"""servermon CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._context import CLIContext
from ._lifecycle import _restart, _start, _stop, report_results
from ._services import _add, _list, _remove, _render
from ._shared import ExitCode, exit_code_for, exit_with_error, fail_with, format_table
from ._status import _status, status_rows

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "CLIContext",
    "ExitCode",
    "exit_code_for",
    "exit_with_error",
    "fail_with",
    "format_table",
    "register_commands",
    "report_results",
    "status_rows",
]


def register_commands(app: "App") -> None:
    app.command(_list, name="list")
    app.command(_status, name="status")
    app.command(_add, name="add")
    app.command(_start, name="start")
    app.command(_stop, name="stop")
    app.command(_restart, name="restart")
    app.command(_remove, name="remove")
    app.command(_render, name="render")
