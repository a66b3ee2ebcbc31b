"""Locked read-modify-write access to the manifest.

Every mutation takes an exclusive lock on ``<manifest>.lock``, re-reads the
file, applies the change and writes it back atomically. A failed mutation
leaves the file byte-unchanged.
"""

import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from structlog.typing import FilteringBoundLogger

from servermon.config import GlobalSettings, load_settings
from servermon.exceptions import (
    DuplicateServiceError,
    ServiceNotFoundError,
    ServiceValidationError,
)
from servermon.utils import exclusive_lock, get_null_logger

from ._io import read_manifest_data, write_manifest_data
from ._models import Manifest, ServiceRecord, normalize_service_data

_SLUG_SEPARATOR = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase ``name`` and collapse runs of other characters to ``-``."""
    return _SLUG_SEPARATOR.sub("-", name.lower()).strip("-")


def generate_identifier(name: str, prefix: str) -> str:
    """Build ``<prefix>.<slug>`` for a service name.

    Raises:
        ServiceValidationError: If the name has no usable characters.
    """
    slug = slugify(name)
    if not slug:
        msg = f"Cannot derive an identifier from service name {name!r}"
        raise ServiceValidationError(msg, field="name", service_name=name)
    return f"{prefix}.{slug}"


def parse_service(
    raw: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> ServiceRecord:
    """Validate a raw service object into a ServiceRecord.

    Raises:
        ServiceValidationError: If a field is missing or has the wrong type.
    """
    name = raw.get("name")
    try:
        return ServiceRecord.model_validate(normalize_service_data(dict(raw)))
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        msg = f"Invalid service record {name!r}: {first['msg']} ({field})"
        raise ServiceValidationError(
            msg, field=field, service_name=name if isinstance(name, str) else None
        ) from e


def find_service(services: list[ServiceRecord], query: str) -> ServiceRecord:
    """Resolve a service by name or identifier fragment.

    An exact case-insensitive name match wins; otherwise the first service
    whose identifier contains ``query`` (case-insensitive) is returned.

    Raises:
        ServiceNotFoundError: If nothing matches.
    """
    lowered = query.lower()
    for service in services:
        if service.name.lower() == lowered:
            return service
    for service in services:
        if service.identifier and lowered in service.identifier.lower():
            return service
    msg = f"Service not found: {query}"
    raise ServiceNotFoundError(msg, query=query)


def _check_unique(
    services: list[ServiceRecord],
    candidate: ServiceRecord,
    *,
    ignore: ServiceRecord | None = None,
) -> None:
    lowered = candidate.name.lower()
    for service in services:
        if service is ignore:
            continue
        if service.name.lower() == lowered:
            msg = f"Service with name {candidate.name!r} already exists"
            raise DuplicateServiceError(msg, field="name", service_name=candidate.name)
        if candidate.identifier and service.identifier == candidate.identifier:
            msg = f"Service with identifier {candidate.identifier!r} already exists"
            raise DuplicateServiceError(
                msg, field="identifier", service_name=candidate.name
            )


class ManifestStore:
    """Reads and mutates a ``services.json`` manifest.

    Attributes:
        path: Location of the manifest file.
    """

    def __init__(
        self,
        path: Path,
        *,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            path: Manifest path. The file need not exist.
            logger: Logger for mutation events. Defaults to a silent logger.
        """
        self.path: Path = path
        self._logger: FilteringBoundLogger = logger or get_null_logger()

    def load(self) -> Manifest:
        """Read the manifest, or return an empty default if it is missing.

        Nothing is written when the file does not exist.

        Raises:
            ManifestLoadError: If the file exists but cannot be parsed.
            ServiceValidationError: If a record is malformed.
        """
        data = read_manifest_data(self.path)
        if data is None:
            return Manifest()

        raw_services = data.get("services") or []
        if not isinstance(raw_services, list):
            msg = "Manifest 'services' must be a list"
            raise ServiceValidationError(msg, field="services")

        services: list[ServiceRecord] = []
        for raw in raw_services:
            if not isinstance(raw, dict):
                msg = "Manifest services must be JSON objects"
                raise ServiceValidationError(msg, field="services")
            services.append(parse_service(raw))

        settings = data.get("settings") or {}
        extra = {
            key: value
            for key, value in data.items()
            if key not in ("version", "settings", "services")
        }
        return Manifest.model_validate(
            {
                "version": data.get("version", Manifest().version),
                "settings": settings if isinstance(settings, dict) else {},
                "services": services,
                **extra,
            }
        )

    def settings(self, manifest: Manifest | None = None) -> GlobalSettings:
        """Return the manifest's settings merged over the built-in defaults."""
        current = manifest if manifest is not None else self.load()
        return load_settings(current.settings, manifest_dir=self.path.parent)

    def save(self, manifest: Manifest) -> None:
        """Write ``manifest`` atomically."""
        write_manifest_data(self.path, manifest.to_manifest_dict())

    def mutate[T](self, change: Callable[[Manifest], T]) -> T:
        """Apply ``change`` to a freshly read manifest under the lock.

        ``change`` edits ``manifest.services`` in place and returns a value
        that is passed through. If it raises, nothing is written.
        """
        with exclusive_lock(self.path):
            manifest = self.load()
            result = change(manifest)
            self.save(manifest)
        return result

    def add(
        self,
        raw: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> ServiceRecord:
        """Append a new service.

        A missing identifier is generated from the name and the configured
        prefix. The supervisor is not touched.

        Raises:
            ServiceValidationError: If the record is invalid.
            DuplicateServiceError: If the name or identifier is taken.
        """

        def change(manifest: Manifest) -> ServiceRecord:
            data = dict(raw)
            if not data.get("identifier"):
                prefix = self.settings(manifest).identifier_prefix
                data["identifier"] = generate_identifier(str(data.get("name", "")), prefix)
            record = parse_service(data)
            if not record.name.strip():
                msg = "Service name must not be empty"
                raise ServiceValidationError(msg, field="name")
            _check_unique(manifest.services, record)
            manifest.services.append(record)
            return record

        record = self.mutate(change)
        self._logger.info(
            "service_added",
            name=record.name,
            identifier=record.identifier,
            manifest=str(self.path),
        )
        return record

    def update(
        self,
        query: str,
        changes: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> ServiceRecord:
        """Change fields of an existing service.

        ``changes`` uses manifest key names. A value of None removes the key.

        Raises:
            ServiceNotFoundError: If ``query`` does not resolve.
            ServiceValidationError: If the identifier would change or the
                result is invalid.
            DuplicateServiceError: If the new name is taken.
        """

        def change(manifest: Manifest) -> ServiceRecord:
            current = find_service(manifest.services, query)
            new_identifier = changes.get("identifier")
            if new_identifier is not None and new_identifier != current.identifier:
                msg = (
                    f"Identifier of {current.name!r} is immutable "
                    f"({current.identifier} -> {new_identifier})"
                )
                raise ServiceValidationError(
                    msg, field="identifier", service_name=current.name
                )

            data = current.to_manifest_dict()
            for key, value in changes.items():
                if key == "identifier":
                    continue
                if value is None:
                    _ = data.pop(key, None)
                else:
                    data[key] = value

            record = parse_service(data)
            _check_unique(manifest.services, record, ignore=current)
            index = manifest.services.index(current)
            manifest.services[index] = record
            return record

        record = self.mutate(change)
        self._logger.info(
            "service_updated",
            name=record.name,
            identifier=record.identifier,
            fields=sorted(changes),
        )
        return record

    def remove(self, query: str) -> ServiceRecord:
        """Delete a service entry.

        Raises:
            ServiceNotFoundError: If ``query`` does not resolve.
        """

        def change(manifest: Manifest) -> ServiceRecord:
            current = find_service(manifest.services, query)
            manifest.services.remove(current)
            return current

        record = self.mutate(change)
        self._logger.info(
            "service_removed",
            name=record.name,
            identifier=record.identifier,
        )
        return record

    def find(self, query: str) -> ServiceRecord:
        """Resolve ``query`` against the current manifest."""
        return find_service(self.load().services, query)
