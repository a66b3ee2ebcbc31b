"""servermon configuration.

Global settings live in the manifest's ``settings`` object and are merged over
built-in defaults; logging is configured from the environment.

Example:
    >>> from pathlib import Path
    >>> from servermon.config import load_settings
    >>> settings = load_settings({"identifierPrefix": "dev.local"}, manifest_dir=Path("/srv"))
    >>> settings.log_dir
    '/srv/logs'
"""

from ._defaults import (
    DEFAULT_IDENTIFIER_PREFIX,
    DEFAULT_LOGGING,
    MANIFEST_VERSION,
    default_settings,
)
from ._discovery import MANIFEST_ENV_VAR, discover_manifest
from ._load import load_logging_config, load_settings
from ._loader import copy_value, deep_merge, parse_env_vars, parse_string_value
from ._models import GlobalSettings, LogFormat, LoggingConfig, LogLevel

__all__ = [
    "DEFAULT_IDENTIFIER_PREFIX",
    "DEFAULT_LOGGING",
    "MANIFEST_ENV_VAR",
    "MANIFEST_VERSION",
    "GlobalSettings",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "copy_value",
    "deep_merge",
    "default_settings",
    "discover_manifest",
    "load_logging_config",
    "load_settings",
    "parse_env_vars",
    "parse_string_value",
]
