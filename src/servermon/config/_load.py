from pathlib import Path
from typing import Any

from pydantic import ValidationError

from servermon.exceptions import ServiceValidationError

from ._defaults import DEFAULT_LOGGING, default_settings
from ._loader import deep_merge, parse_env_vars
from ._models import GlobalSettings, LogFormat, LoggingConfig, LogLevel


def load_settings(
    raw: dict[str, Any] | None,  # pyright: ignore[reportExplicitAny]
    *,
    manifest_dir: Path,
) -> GlobalSettings:
    """Merge manifest settings over the built-in defaults.

    Args:
        raw: The manifest's ``settings`` object, or None when absent.
        manifest_dir: Directory containing the manifest, used for defaults.

    Returns:
        Validated GlobalSettings.

    Raises:
        ServiceValidationError: If a setting has the wrong type.
    """
    merged = deep_merge(default_settings(manifest_dir), raw or {})
    try:
        return GlobalSettings.model_validate(merged)
    except ValidationError as e:
        msg = f"Invalid manifest settings: {e}"
        raise ServiceValidationError(msg, field="settings") from e


def load_logging_config() -> LoggingConfig:
    """Read logging configuration from ``SERVERMON_LOGGING__*`` variables.

    Unknown level or format values fall back to ``info`` and ``json``.

    Returns:
        The effective LoggingConfig.
    """
    data = deep_merge(DEFAULT_LOGGING, parse_env_vars().get("logging", {}))

    try:
        level = LogLevel(str(data.get("level", "info")).lower())
    except ValueError:
        level = LogLevel.INFO

    try:
        log_format = LogFormat(str(data.get("format", "json")).lower())
    except ValueError:
        log_format = LogFormat.JSON

    return LoggingConfig(level=level, format=log_format, file=str(data.get("file", "")))
