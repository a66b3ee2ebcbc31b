"""Descriptor rendering.

``render`` is a pure function of a service record and the global settings.
Identical inputs give byte-identical output.
"""

import os
import re
from dataclasses import dataclass
from typing import Final

from servermon.config import GlobalSettings
from servermon.exceptions import (
    MissingCommandError,
    MissingIdentifierError,
    ServiceValidationError,
)
from servermon.manifest import KeepAliveOptions, ServiceRecord
from servermon.utils import expand_path

from ._formats import XML_PLIST, DescriptorFormat
from ._nodes import (
    ArrayNode,
    BoolNode,
    DictNode,
    IntegerNode,
    Node,
    StringNode,
    to_node,
)

SYSTEM_BIN_PATHS: Final[tuple[str, ...]] = ("/usr/local/bin", "/usr/bin", "/bin")

# Code points XML 1.0 cannot carry, escaped or not
_XML_ILLEGAL: Final[re.Pattern[str]] = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]"
)

# Manifest field each managed key is rendered from
_SOURCE_FIELDS: Final[dict[str, str]] = {
    "Label": "identifier",
    "ProgramArguments": "command",
    "WorkingDirectory": "path",
    "StandardOutPath": "logDir",
    "StandardErrorPath": "logDir",
    "EnvironmentVariables": "environmentVariables",
}

MANAGED_KEYS: Final[frozenset[str]] = frozenset(
    {
        "Label",
        "ProgramArguments",
        "WorkingDirectory",
        "RunAtLoad",
        "KeepAlive",
        "ThrottleInterval",
        "StandardOutPath",
        "StandardErrorPath",
        "EnvironmentVariables",
    }
)


@dataclass(frozen=True, slots=True)
class DescriptorDocument:
    """A rendered descriptor.

    Attributes:
        identifier: The supervisor label.
        root: The typed tree that was serialized.
        content: Serialized bytes, as written to disk.
        format: The format used to serialize ``root``.
    """

    identifier: str
    root: DictNode
    content: bytes
    format: DescriptorFormat

    @property
    def filename(self) -> str:
        """Return ``<identifier><suffix>``."""
        return f"{self.identifier}{self.format.suffix}"


def log_paths(service: ServiceRecord, settings: GlobalSettings) -> tuple[str, str]:
    """Return the stdout and stderr log paths for ``service``."""
    log_dir = expand_path(settings.log_dir).rstrip("/") or "/"
    short = service.short_name
    return f"{log_dir}/{short}.log", f"{log_dir}/{short}.error.log"


def build_path_variable(runtime_binary_path: str) -> str:
    """Join the runtime binary's directory with the standard system bin paths."""
    runtime_dir = os.path.dirname(expand_path(runtime_binary_path))  # noqa: PTH120
    return ":".join((runtime_dir, *SYSTEM_BIN_PATHS))


def _keep_alive_node(keep_alive: bool | KeepAliveOptions) -> Node:
    if isinstance(keep_alive, bool):
        return BoolNode(keep_alive)
    # Restart on exit unless the exit was successful
    return DictNode((("SuccessfulExit", BoolNode(not keep_alive.successful_exit_only)),))


def _environment_node(service: ServiceRecord, settings: GlobalSettings) -> DictNode | None:
    env = dict(service.environment_variables or {})
    if not env.get("PATH") and settings.runtime_binary_path:
        env["PATH"] = build_path_variable(settings.runtime_binary_path)
    if not env:
        return None
    return DictNode(tuple((key, StringNode(value)) for key, value in env.items()))


def _illegal_text(node: Node) -> str | None:
    """Return the first key or string in ``node`` that XML cannot represent."""
    if isinstance(node, StringNode):
        return node.value if _XML_ILLEGAL.search(node.value) else None
    if isinstance(node, ArrayNode):
        children = node.items
    elif isinstance(node, DictNode):
        for key, _ in node.entries:
            if _XML_ILLEGAL.search(key):
                return key
        children = tuple(child for _, child in node.entries)
    else:
        return None
    for child in children:
        found = _illegal_text(child)
        if found is not None:
            return found
    return None


def _check_text(service: ServiceRecord, entries: list[tuple[str, Node]]) -> None:
    for key, node in entries:
        found = key if _XML_ILLEGAL.search(key) else _illegal_text(node)
        if found is None:
            continue
        field = _SOURCE_FIELDS.get(key, "extraKeys")
        msg = (
            f"{field} of {service.name!r} contains a control character that a "
            f"descriptor cannot hold: {found!r}"
        )
        raise ServiceValidationError(msg, field=field, service_name=service.name)


def build_tree(service: ServiceRecord, settings: GlobalSettings) -> DictNode:
    """Build the descriptor tree for ``service``.

    Raises:
        MissingIdentifierError: If the record has no identifier.
        MissingCommandError: If the command is absent or tokenizes to nothing.
        ServiceValidationError: If an extra key collides with a managed key or
            holds an unsupported value, or if a string holds a character XML
            cannot represent.
    """
    if not service.identifier:
        msg = f"Service {service.name!r} has no identifier"
        raise MissingIdentifierError(msg, field="identifier", service_name=service.name)

    argv = service.argv
    if not argv:
        msg = f"Service {service.name!r} has no command"
        raise MissingCommandError(msg, field="command", service_name=service.name)

    stdout_path, stderr_path = log_paths(service, settings)

    entries: list[tuple[str, Node]] = [
        ("Label", StringNode(service.identifier)),
        ("ProgramArguments", ArrayNode(tuple(StringNode(arg) for arg in argv))),
    ]
    # An empty WorkingDirectory is rejected by the supervisor, so omit it
    if service.path:
        entries.append(("WorkingDirectory", StringNode(expand_path(service.path))))
    entries.append(("RunAtLoad", BoolNode(service.enabled)))
    entries.append(("KeepAlive", _keep_alive_node(service.keep_alive)))
    if service.throttle_interval is not None:
        entries.append(("ThrottleInterval", IntegerNode(service.throttle_interval)))
    entries.append(("StandardOutPath", StringNode(stdout_path)))
    entries.append(("StandardErrorPath", StringNode(stderr_path)))

    env_node = _environment_node(service, settings)
    if env_node is not None:
        entries.append(("EnvironmentVariables", env_node))

    for key, value in (service.extra_keys or {}).items():
        if key in MANAGED_KEYS:
            msg = f"extraKeys of {service.name!r} may not override managed key {key!r}"
            raise ServiceValidationError(msg, field="extraKeys", service_name=service.name)
        entries.append((key, to_node(value)))

    _check_text(service, entries)
    return DictNode(tuple(entries))


def render(
    service: ServiceRecord,
    settings: GlobalSettings,
    *,
    format: DescriptorFormat = XML_PLIST,  # noqa: A002
) -> DescriptorDocument:
    """Render the descriptor for ``service``.

    Args:
        service: The manifest record.
        settings: Global settings supplying log directory and runtime path.
        format: Output format. Defaults to XML plist.

    Returns:
        The rendered document. No file is written.

    Raises:
        MissingIdentifierError: If the record has no identifier.
        MissingCommandError: If the command is absent or empty.
        ServiceValidationError: If ``extraKeys`` is invalid or a string holds a
            control character.
    """
    root = build_tree(service, settings)
    identifier = service.identifier or ""
    return DescriptorDocument(
        identifier=identifier,
        root=root,
        content=format.serialize(root),
        format=format,
    )
