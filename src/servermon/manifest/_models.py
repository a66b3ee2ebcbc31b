"""Manifest data models.

This module defines the desired-state types stored in ``services.json``:
- KeepAliveOptions: Conditional auto-restart settings
- ServiceRecord: One named service
- Manifest: The whole document
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from servermon.config import MANIFEST_VERSION


class KeepAliveOptions(BaseModel):
    """Structured keep-alive settings.

    Attributes:
        successful_exit_only: Restart only when the process exits non-zero.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    successful_exit_only: bool = Field(default=True, alias="successfulExitOnly")


class ServiceRecord(BaseModel):
    """A named service in the manifest.

    Unknown fields (for example ``id`` or ``critical`` written by other
    front-ends) are kept and written back unchanged.

    Attributes:
        name: Human label, unique (case-insensitive) within the manifest.
        identifier: Supervisor label, ``<prefix>.<slug>``. Immutable once set.
        path: Working directory. ``~`` is expanded at render time.
        command: Argv, or a single string split on whitespace.
        port: Port used for health display only.
        health_check: HTTP endpoint probed for health.
        enabled: Start automatically when registered.
        keep_alive: Auto-restart behaviour passed to the supervisor.
        environment_variables: Extra environment for the process.
        throttle_interval: Minimum seconds between supervisor restarts.
        extra_keys: Descriptor entries passed through verbatim.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    name: str
    identifier: str | None = None
    path: str | None = None
    command: str | list[str] | None = None
    port: int | None = None
    health_check: str | None = Field(default=None, alias="healthCheck")
    enabled: bool = True
    keep_alive: bool | KeepAliveOptions = Field(default=True, alias="keepAlive")
    environment_variables: dict[str, str] | None = Field(
        default=None, alias="environmentVariables"
    )
    throttle_interval: int | None = Field(default=None, alias="throttleInterval")
    extra_keys: dict[str, Any] | None = Field(  # pyright: ignore[reportExplicitAny]
        default=None, alias="extraKeys"
    )

    @property
    def argv(self) -> list[str]:
        """Return the command as an argv list.

        String commands are split on runs of whitespace. Quotes are not
        interpreted: ``"echo 'a b'"`` yields three tokens.
        """
        if self.command is None:
            return []
        if isinstance(self.command, str):
            return self.command.split()
        return list(self.command)

    @property
    def short_name(self) -> str:
        """Return the last dot-delimited segment of the identifier."""
        if not self.identifier:
            return ""
        return self.identifier.rsplit(".", 1)[-1]

    def to_manifest_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Serialize using manifest key names, omitting fields never set."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class Manifest(BaseModel):
    """The desired-state document.

    Attributes:
        version: Manifest format version.
        settings: Raw settings as stored (merged with defaults on load).
        services: Service records in file order.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="allow")

    version: str = MANIFEST_VERSION
    settings: dict[str, Any] = Field(default_factory=dict)  # pyright: ignore[reportExplicitAny]
    services: list[ServiceRecord] = Field(default_factory=list)

    def to_manifest_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Serialize for writing, keeping unknown top-level keys."""
        data: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
            "version": self.version,
            "settings": self.settings,
            "services": [service.to_manifest_dict() for service in self.services],
        }
        for key, value in (self.model_extra or {}).items():
            data.setdefault(key, value)
        return data


def normalize_service_data(
    raw: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Map legacy record spellings onto the current field names.

    - ``healthCheckURL`` becomes ``healthCheck`` (an existing ``healthCheck`` wins).
    - ``keepAlive: {"SuccessfulExit": b}`` becomes
      ``keepAlive: {"successfulExitOnly": not b}``.

    Args:
        raw: A service object as read from JSON.

    Returns:
        A new dictionary; ``raw`` is not modified.
    """
    data = dict(raw)

    legacy_url = data.pop("healthCheckURL", None)
    if legacy_url is not None and data.get("healthCheck") is None:
        data["healthCheck"] = legacy_url

    keep_alive = data.get("keepAlive")
    if isinstance(keep_alive, dict) and "SuccessfulExit" in keep_alive:
        converted = {k: v for k, v in keep_alive.items() if k != "SuccessfulExit"}
        converted["successfulExitOnly"] = not bool(keep_alive["SuccessfulExit"])
        data["keepAlive"] = converted

    return data
