"""Service descriptor rendering and storage.

Example:
    >>> from servermon.descriptor import render
    >>> document = render(service, settings)
    >>> document.content.startswith(b"<?xml")
    True
"""

from ._formats import JSON, XML_PLIST, DescriptorFormat, JsonFormat, XmlPlistFormat, escape_xml
from ._nodes import (
    ArrayNode,
    BoolNode,
    DictNode,
    IntegerNode,
    Node,
    RealNode,
    StringNode,
    from_node,
    to_node,
)
from ._render import (
    MANAGED_KEYS,
    SYSTEM_BIN_PATHS,
    DescriptorDocument,
    build_path_variable,
    build_tree,
    log_paths,
    render,
)
from ._store import DescriptorStore

__all__ = [
    "JSON",
    "MANAGED_KEYS",
    "SYSTEM_BIN_PATHS",
    "XML_PLIST",
    "ArrayNode",
    "BoolNode",
    "DescriptorDocument",
    "DescriptorFormat",
    "DescriptorStore",
    "DictNode",
    "IntegerNode",
    "JsonFormat",
    "Node",
    "RealNode",
    "StringNode",
    "XmlPlistFormat",
    "build_path_variable",
    "build_tree",
    "escape_xml",
    "from_node",
    "log_paths",
    "render",
    "to_node",
]
