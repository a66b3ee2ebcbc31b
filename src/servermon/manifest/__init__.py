"""Desired-state manifest (``services.json``).

Example:
    >>> from pathlib import Path
    >>> from servermon.manifest import ManifestStore
    >>> store = ManifestStore(Path("services.json"))
    >>> record = store.add({"name": "API", "command": "python3 -m api"})
    >>> record.identifier
    'com.servermonitor.api'
"""

from ._io import read_manifest_data, write_manifest_data
from ._models import KeepAliveOptions, Manifest, ServiceRecord, normalize_service_data
from ._store import (
    ManifestStore,
    find_service,
    generate_identifier,
    parse_service,
    slugify,
)

__all__ = [
    "KeepAliveOptions",
    "Manifest",
    "ManifestStore",
    "ServiceRecord",
    "find_service",
    "generate_identifier",
    "normalize_service_data",
    "parse_service",
    "read_manifest_data",
    "slugify",
    "write_manifest_data",
]
