"""Shared CLI utilities for commands.

- Standardized exit codes and the error-to-exit-code mapping
- Markdown table formatting
"""

from enum import IntEnum
from typing import Never

from pytablewriter import MarkdownTableWriter
from rich.console import Console
from rich.markup import escape

from servermon.exceptions import (
    ControlPlaneError,
    DescriptorIOError,
    ManifestIOError,
    ManifestLoadError,
    ServerMonError,
    ServiceNotFoundError,
    ServiceValidationError,
)

__all__ = [
    "ExitCode",
    "exit_code_for",
    "exit_with_error",
    "fail_with",
    "format_table",
]


class ExitCode(IntEnum):
    """Standard exit codes for servermon commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    CONTROL_PLANE_ERROR = 5


def exit_code_for(error: ServerMonError) -> ExitCode:
    """Map an exception to its exit code."""
    if isinstance(error, ServiceNotFoundError):
        return ExitCode.NOT_FOUND
    if isinstance(error, ServiceValidationError):
        return ExitCode.VALIDATION_ERROR
    if isinstance(error, ManifestLoadError):
        return ExitCode.LOAD_ERROR
    if isinstance(error, ManifestIOError | DescriptorIOError):
        return ExitCode.IO_ERROR
    if isinstance(error, ControlPlaneError):
        return ExitCode.CONTROL_PLANE_ERROR
    return ExitCode.CONTROL_PLANE_ERROR


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Format data as a Markdown table."""
    writer = MarkdownTableWriter(
        headers=headers,
        value_matrix=rows,
        margin=1,
    )
    return writer.dumps()


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.CONTROL_PLANE_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with ``code``.

    Raises:
        SystemExit: Always.
    """
    if console is None:
        console = Console(stderr=True)

    console.print(f"[red]Error:[/red] {message}", markup=True, highlight=False)
    raise SystemExit(code)


def fail_with(error: ServerMonError, *, console: Console | None = None) -> Never:
    """Report ``error`` and exit with its mapped code."""
    exit_with_error(escape(str(error)), exit_code_for(error), console=console)
