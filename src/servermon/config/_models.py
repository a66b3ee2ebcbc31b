"""Configuration models.

This module defines the process-wide settings carried by the manifest and the
logging configuration read from the environment.
"""

from enum import StrEnum
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from servermon.config._defaults import DEFAULT_IDENTIFIER_PREFIX
from servermon.utils import expand_path


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty uses the platform log directory).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class GlobalSettings(BaseModel):
    """Process-wide settings shared by every service in a manifest.

    Field names are Python-style; the manifest stores them under the camelCase
    aliases. Unknown keys are kept so rewriting a manifest never drops them.

    Attributes:
        log_dir: Directory receiving each service's stdout/stderr logs.
        identifier_prefix: Prefix used when generating identifiers.
        descriptor_source_dir: Directory holding the source-of-truth descriptors.
        descriptor_active_dir: Directory the supervisor scans for descriptors.
        runtime_binary_path: Binary whose directory seeds the rendered PATH.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    log_dir: str = Field(alias="logDir")
    identifier_prefix: str = Field(
        default=DEFAULT_IDENTIFIER_PREFIX, alias="identifierPrefix"
    )
    descriptor_source_dir: str = Field(alias="plistDir")
    descriptor_active_dir: str = Field(alias="launchAgentsDir")
    runtime_binary_path: str = Field(default="", alias="nodePath")

    @property
    def log_path(self) -> Path:
        """Return the expanded log directory."""
        return Path(expand_path(self.log_dir))

    @property
    def source_path(self) -> Path:
        """Return the expanded descriptor source directory."""
        return Path(expand_path(self.descriptor_source_dir))

    @property
    def active_path(self) -> Path:
        """Return the expanded supervisor-scanned descriptor directory."""
        return Path(expand_path(self.descriptor_active_dir))

    def to_manifest_dict(self) -> dict[str, object]:
        """Serialize using manifest key names."""
        return self.model_dump(mode="json", by_alias=True)
