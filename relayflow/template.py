"""Placeholder substitution for step configuration.

``{{path.to.value}}`` tokens are resolved against the execution context using
dot-separated lookup. Tokens that cannot be resolved are left verbatim so a
later step (or the step executor itself) can decide what to do with them.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")

_MISSING = object()


def _lookup(context: Mapping[str, Any], path: str) -> Any:
    """Return the value at dotted ``path`` or ``_MISSING``."""
    current: Any = context
    for key in path.split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return _MISSING
            current = current[key]
        elif isinstance(current, list) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def stringify(value: Any) -> str:
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    # whole floats render without the trailing ".0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render(template: str, context: Mapping[str, Any]) -> str:
    """Replace every resolvable ``{{expr}}`` in ``template``."""

    def _substitute(match: re.Match[str]) -> str:
        value = _lookup(context, match.group(1).strip())
        if value is _MISSING or value is None:
            return match.group(0)
        return stringify(value)

    return PLACEHOLDER_RE.sub(_substitute, template)


def render_value(value: Any, context: Mapping[str, Any]) -> Any:
    """Template strings inside ``value``, recursing through dicts and lists."""
    if isinstance(value, str):
        return render(value, context)
    if isinstance(value, list):
        return [render_value(item, context) for item in value]
    if isinstance(value, dict):
        return {key: render_value(item, context) for key, item in value.items()}
    return value


__all__ = ["render", "render_value"]
