"""Structured logging for servermon.

Loggers are standalone structlog wrappers around an append-mode file. Nothing
here touches structlog's global configuration, so embedding servermon in
another program leaves that program's logging alone.
"""

import logging
import os
from pathlib import Path
from typing import Literal, cast

import structlog
from structlog.typing import FilteringBoundLogger, Processor

from ._paths import get_log_file

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR = "SERVERMON_DEBUG"


def _threshold(level: str) -> int:
    if os.environ.get(DEBUG_ENV_VAR):
        return logging.DEBUG
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _processors(log_format: LogFormatType) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "text":
        # "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.extend(
            (structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer())
        )
    return processors


def create_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "json",
    log_file: str = "",
    command: str = "",
) -> FilteringBoundLogger:
    """Create the logger for one servermon invocation.

    Args:
        level: Minimum level written (debug, info, warning, error).
            ``SERVERMON_DEBUG`` forces debug.
        log_format: ``json`` lines or plain ``text``.
        log_file: Destination file. Defaults to the platform log directory.
        command: CLI command name, bound to every entry when given.

    Returns:
        A FilteringBoundLogger appending to the log file.
    """
    path = Path(log_file) if log_file else get_log_file()
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.WriteLogger(path.open("a")),
            processors=_processors(log_format),
            wrapper_class=structlog.make_filtering_bound_logger(_threshold(level)),
            context_class=dict,
        ),
    )
    return logger.bind(command=command) if command else logger


def get_null_logger() -> FilteringBoundLogger:
    """Return a logger that drops every event below CRITICAL.

    Library entry points default to it, so calling servermon as a library
    writes nothing unless the caller passes a logger in.
    """
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[],
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
        ),
    )
