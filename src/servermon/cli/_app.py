"""The command-line interface for servermon."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

import time
from collections.abc import Callable
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from servermon.config import discover_manifest, load_logging_config
from servermon.engine import ReconciliationEngine
from servermon.health import HealthEvaluator
from servermon.manifest import ManifestStore
from servermon.supervisor import ControlPlane, LaunchctlControlPlane
from servermon.utils import create_logger

from ._commands import register_commands
from ._commands._context import CLIContext

APP_HELP = "Manage long-running development servers as launchd user agents."
DEFAULT_SETTLE_SECONDS = 1.5


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    backend: ControlPlane | None = None,
    evaluator: HealthEvaluator | None = None,
    exit_on_error: bool = True,
    settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> App:
    """Build the servermon app.

    Args:
        console: Console for normal output.
        error_console: Console for errors.
        backend: Control plane to use. Defaults to launchctl.
        evaluator: Health evaluator. Defaults to real network probes.
        exit_on_error: Exit on argument parsing errors.
        settle_seconds: Wait before re-querying after start or restart.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The configured cyclopts App.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="servermon",
        help=APP_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        manifest: Annotated[
            Path | None, Parameter(name=["--manifest", "-m"], help="Path to services.json")
        ] = None,
        verbose: Annotated[
            bool, Parameter(name=["--verbose", "-v"], help="Show control-plane attempts")
        ] = False,
    ) -> None:
        """Launch servermon with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            manifest: Explicit manifest path.
            verbose: Print every control-plane attempt and log at debug level.
        """
        logging_config = load_logging_config()
        command = tokens[0] if tokens else ""
        logger = create_logger(
            level="debug" if verbose else logging_config.level.value,
            log_format=logging_config.format.value,
            log_file=logging_config.file,
            command=command,
        )

        manifest_path = discover_manifest(manifest)
        engine = ReconciliationEngine(
            ManifestStore(manifest_path, logger=logger),
            backend if backend is not None else LaunchctlControlPlane(),
            logger=logger,
            evaluator=evaluator,
            settle_seconds=settle_seconds,
            sleep=sleep,
        )

        ctx = CLIContext(
            engine=engine,
            manifest_path=manifest_path,
            console=console,
            error_console=error_console,
            verbose=verbose,
            logger=logger,
        )
        CLIContext.set_current(ctx)
        logger.debug("cli_invoked", manifest=str(manifest_path), tokens=list(tokens))

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `servermon` CLI."""
    app = create_app()
    app.meta()


if __name__ == "__main__":
    main()
