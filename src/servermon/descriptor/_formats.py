"""Descriptor output formats.

A format turns a node tree into bytes and back. Each format supplies its own
``escape`` hook, which is applied to every key and string value it writes.
"""

import plistlib
from typing import Any, Protocol, runtime_checkable

import orjson

from ._nodes import (
    ArrayNode,
    BoolNode,
    DictNode,
    IntegerNode,
    Node,
    RealNode,
    StringNode,
    from_node,
)

_XML_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
    '"http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
    '<plist version="1.0">\n'
)
_XML_FOOTER = "</plist>\n"
_INDENT = "    "

_XML_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&apos;",
    }
)


@runtime_checkable
class DescriptorFormat(Protocol):
    """Serializer for a rendered descriptor tree."""

    @property
    def name(self) -> str:
        """Return the short format name."""
        ...

    @property
    def suffix(self) -> str:
        """Return the file suffix, including the dot."""
        ...

    def escape(self, text: str) -> str:
        """Escape free text for embedding in this format."""
        ...

    def serialize(self, root: DictNode) -> bytes:
        """Serialize the tree."""
        ...

    def parse(self, content: bytes) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Parse serialized content back into plain values."""
        ...


def escape_xml(text: str) -> str:
    """Escape the five XML metacharacters."""
    return text.translate(_XML_ESCAPES)


class XmlPlistFormat:
    """XML property list, as read by launchd."""

    name: str = "xml-plist"
    suffix: str = ".plist"

    def escape(self, text: str) -> str:
        return escape_xml(text)

    def serialize(self, root: DictNode) -> bytes:
        lines: list[str] = []
        self._emit(root, 0, lines)
        return (_XML_HEADER + "\n".join(lines) + "\n" + _XML_FOOTER).encode("utf-8")

    def parse(self, content: bytes) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        data = plistlib.loads(content, fmt=plistlib.FMT_XML)
        if not isinstance(data, dict):
            msg = "Descriptor root is not a dictionary"
            raise ValueError(msg)
        return data  # pyright: ignore[reportUnknownVariableType]

    def _emit(self, node: Node, depth: int, lines: list[str]) -> None:
        pad = _INDENT * depth
        if isinstance(node, BoolNode):
            lines.append(f"{pad}<{'true' if node.value else 'false'}/>")
        elif isinstance(node, IntegerNode):
            lines.append(f"{pad}<integer>{node.value}</integer>")
        elif isinstance(node, RealNode):
            lines.append(f"{pad}<real>{node.value!r}</real>")
        elif isinstance(node, StringNode):
            lines.append(f"{pad}<string>{self.escape(node.value)}</string>")
        elif isinstance(node, ArrayNode):
            if not node.items:
                lines.append(f"{pad}<array/>")
                return
            lines.append(f"{pad}<array>")
            for item in node.items:
                self._emit(item, depth + 1, lines)
            lines.append(f"{pad}</array>")
        else:
            if not node.entries:
                lines.append(f"{pad}<dict/>")
                return
            lines.append(f"{pad}<dict>")
            for key, child in node.entries:
                lines.append(f"{pad}{_INDENT}<key>{self.escape(key)}</key>")
                self._emit(child, depth + 1, lines)
            lines.append(f"{pad}</dict>")


class JsonFormat:
    """JSON rendition of the same tree, for non-XML backends and previews."""

    name: str = "json"
    suffix: str = ".json"

    def escape(self, text: str) -> str:
        # orjson escapes during serialization
        return text

    def serialize(self, root: DictNode) -> bytes:
        return orjson.dumps(
            from_node(root), option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE
        )

    def parse(self, content: bytes) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        data = orjson.loads(content)
        if not isinstance(data, dict):
            msg = "Descriptor root is not an object"
            raise ValueError(msg)
        return data  # pyright: ignore[reportUnknownVariableType]


XML_PLIST = XmlPlistFormat()
JSON = JsonFormat()
