"""Typed descriptor tree.

A rendered descriptor is a tree of immutable nodes. Formats serialize the tree
generically, so escaping applies to every string in it, including nested
passthrough values.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from servermon.exceptions import ServiceValidationError


@dataclass(frozen=True, slots=True)
class BoolNode:
    value: bool


@dataclass(frozen=True, slots=True)
class IntegerNode:
    value: int


@dataclass(frozen=True, slots=True)
class RealNode:
    value: float


@dataclass(frozen=True, slots=True)
class StringNode:
    value: str


@dataclass(frozen=True, slots=True)
class ArrayNode:
    items: tuple["Node", ...]


@dataclass(frozen=True, slots=True)
class DictNode:
    """Ordered key/value pairs. Keys are emitted in insertion order."""

    entries: tuple[tuple[str, "Node"], ...]

    def get(self, key: str) -> "Node | None":
        """Return the node stored under ``key``, if any."""
        for entry_key, node in self.entries:
            if entry_key == key:
                return node
        return None

    def keys(self) -> list[str]:
        """Return keys in emission order."""
        return [key for key, _ in self.entries]


type Node = BoolNode | IntegerNode | RealNode | StringNode | ArrayNode | DictNode


def to_node(value: Any) -> Node:  # pyright: ignore[reportExplicitAny]
    """Convert a JSON-like value into a descriptor node.

    bool is checked before int since ``True`` is an ``int``. None becomes an
    empty string.

    Raises:
        ServiceValidationError: If the value has no descriptor representation.
    """
    if isinstance(value, bool):
        return BoolNode(value)
    if isinstance(value, int):
        return IntegerNode(value)
    if isinstance(value, float):
        return RealNode(value)
    if isinstance(value, str):
        return StringNode(value)
    if value is None:
        return StringNode("")
    if isinstance(value, Mapping):
        return DictNode(tuple((str(k), to_node(v)) for k, v in value.items()))  # pyright: ignore[reportUnknownVariableType, reportUnknownArgumentType]
    if isinstance(value, Sequence) and not isinstance(value, bytes | bytearray):
        return ArrayNode(tuple(to_node(item) for item in value))  # pyright: ignore[reportUnknownVariableType]
    msg = f"Unsupported descriptor value of type {type(value).__name__}"
    raise ServiceValidationError(msg, field="extraKeys")


def from_node(node: Node) -> Any:  # pyright: ignore[reportExplicitAny]
    """Convert a node back into plain Python values."""
    if isinstance(node, DictNode):
        return {key: from_node(child) for key, child in node.entries}
    if isinstance(node, ArrayNode):
        return [from_node(child) for child in node.items]
    return node.value
