# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Settings layering.

Manifest settings sit on top of the built-in defaults, and logging options
come from ``SERVERMON_<SECTION>__<KEY>`` environment variables.
"""

import json
import os
from typing import Any

ENV_PREFIX = "SERVERMON_"
_NESTING = "__"


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Layer ``override`` over ``base`` and return the result as a new dict.

    Nested objects merge key by key. Lists and scalars from ``override``
    replace what ``base`` had. Keys keep the order of ``base``, with keys
    only ``override`` has appended after them.
    """
    merged = {key: copy_value(value) for key, value in base.items()}
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy_value(value)
    return merged


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Copy nested dicts and lists so merged settings never alias their inputs."""
    if isinstance(value, dict):
        return {key: copy_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def parse_env_vars(
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect ``<prefix><SECTION>__<KEY>`` variables into nested settings.

    ``SERVERMON_LOGGING__LEVEL=debug`` becomes ``{"logging": {"level": "debug"}}``.
    Variables without a ``__`` separator, such as ``SERVERMON_DEBUG`` or
    ``SERVERMON_MANIFEST``, are flags read elsewhere and are skipped.

    Args:
        prefix: Variable prefix, including its trailing underscore.

    Returns:
        Nested dictionary of typed values.
    """
    collected: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for name, raw in os.environ.items():
        if not name.startswith(prefix):
            continue
        path = name.removeprefix(prefix).lower().split(_NESTING)
        if len(path) < 2:  # noqa: PLR2004
            continue
        set_nested_key(collected, path, parse_string_value(raw))
    return collected


def set_nested_key(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    parts: list[str],
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Store ``value`` at the key path ``parts``, replacing non-dict parents."""
    *parents, leaf = parts
    node = data
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Type an environment string.

    ``true``/``false`` (any case) become booleans and decimal strings become
    integers. Text that starts like a JSON array or object is decoded when it
    is valid JSON. Everything else stays a string.
    """
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    digits = value.removeprefix("-")
    if digits.isascii() and digits.isdigit():
        return int(value)
    if value[:1] in ("[", "{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass
    return value
