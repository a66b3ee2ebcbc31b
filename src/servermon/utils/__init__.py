"""Shared utilities: command execution, atomic writes, locking, paths, logging."""

from ._atomic import DEFAULT_FILE_MODE, atomic_write
from ._exec import DEFAULT_TIMEOUT_MS, CommandConfig, CommandResult, run_command
from ._locking import exclusive_lock, lock_path_for
from ._logging import LogFormatType, create_logger, get_null_logger
from ._paths import (
    MANIFEST_FILENAME,
    expand_path,
    get_log_dir,
    get_log_file,
    get_user_data_manifest,
)

__all__ = [
    "DEFAULT_FILE_MODE",
    "DEFAULT_TIMEOUT_MS",
    "MANIFEST_FILENAME",
    "CommandConfig",
    "CommandResult",
    "LogFormatType",
    "atomic_write",
    "create_logger",
    "exclusive_lock",
    "expand_path",
    "get_log_dir",
    "get_log_file",
    "get_null_logger",
    "get_user_data_manifest",
    "lock_path_for",
    "run_command",
]
