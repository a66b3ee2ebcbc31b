# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""CLI context for global state management.

The CLIContext is set once by the meta command and read by every command via
a context variable.
"""

import contextvars
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from structlog.typing import FilteringBoundLogger

from servermon.engine import ReconciliationEngine

_current_cli_context: contextvars.ContextVar["CLIContext | None"] = contextvars.ContextVar(
    "cli_context", default=None
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context.

    Attributes:
        engine: Engine bound to the discovered manifest.
        manifest_path: The manifest this invocation operates on.
        console: Console for normal output.
        error_console: Console for errors.
        verbose: Show per-attempt details.
        logger: Structured logger (writes to file only).
    """

    engine: ReconciliationEngine = field(repr=False)
    manifest_path: Path
    console: Console = field(repr=False)
    error_console: Console = field(repr=False)
    verbose: bool = False
    logger: FilteringBoundLogger | None = field(default=None, repr=False)

    @classmethod
    def get_current(cls) -> "CLIContext":
        """Return the active context.

        Raises:
            RuntimeError: If no command is running under the meta app.
        """
        ctx = _current_cli_context.get()
        if ctx is None:
            msg = "CLIContext is not set; run commands through the servermon app"
            raise RuntimeError(msg)
        return ctx

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:
        """Set the active context."""
        _current_cli_context.set(ctx)  # pyright: ignore[reportUnusedCallResult]

    @classmethod
    def reset(cls) -> None:
        """Clear the active context."""
        _current_cli_context.set(None)  # pyright: ignore[reportUnusedCallResult]
