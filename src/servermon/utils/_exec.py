"""Execution utilities for control-plane commands.

This module runs external commands with timeout handling and output capture,
returning a result object instead of raising so callers can decide how a
failure should be classified.
"""

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

# Default timeout in milliseconds
DEFAULT_TIMEOUT_MS: int = 10000  # 10 seconds


@dataclass(frozen=True, slots=True)
class CommandConfig:
    """Configuration for command execution.

    Attributes:
        argv: Command and arguments to execute. Never passed through a shell.
        cwd: Working directory for execution.
        env: Additional environment variables to set.
        timeout_ms: Execution timeout in milliseconds.
    """

    argv: tuple[str, ...]
    cwd: str | Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result from command execution.

    Attributes:
        argv: The command that was run.
        exit_code: Process exit code, or None if execution failed.
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        error: Error message if execution failed (timeout, not found, etc.).
        timed_out: Whether the command timed out.
        command_not_found: Whether the command was not found.
    """

    argv: tuple[str, ...]
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    timed_out: bool = False
    command_not_found: bool = False

    @property
    def ok(self) -> bool:
        """Return True if the command ran and exited with status 0."""
        return self.error is None and self.exit_code == 0

    @property
    def output(self) -> str:
        """Return stdout and stderr combined, for message matching."""
        return f"{self.stdout}\n{self.stderr}".strip()


def run_command(config: CommandConfig) -> CommandResult:
    """Execute a command and capture its output.

    Handles timeouts and missing executables by returning a result with the
    corresponding flag set rather than raising.

    Args:
        config: Command configuration specifying argv, env, cwd and timeout.

    Returns:
        CommandResult with execution outcome.
    """
    if not config.argv:
        return CommandResult(argv=config.argv, error="No command specified")

    env = {**os.environ, **config.env} if config.env else None
    cwd = str(config.cwd) if config.cwd else None
    timeout_seconds = config.timeout_ms / 1000.0

    try:
        result = subprocess.run(  # noqa: S603
            list(config.argv),
            env=env,
            cwd=cwd,
            capture_output=True,
            timeout=timeout_seconds,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            argv=config.argv,
            error=f"Command timed out after {timeout_seconds}s",
            timed_out=True,
        )
    except FileNotFoundError as e:
        return CommandResult(
            argv=config.argv,
            error=str(e),
            command_not_found=True,
        )
    except OSError as e:
        return CommandResult(argv=config.argv, error=str(e))

    return CommandResult(
        argv=config.argv,
        exit_code=result.returncode,
        stdout=result.stdout.decode("utf-8", errors="replace"),
        stderr=result.stderr.decode("utf-8", errors="replace"),
    )
