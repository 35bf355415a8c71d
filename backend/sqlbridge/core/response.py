"""
Wire rendering of tool results: camelCase keys for envelopes, JSON-safe values,
pretty-printed JSON text.
"""

import json
from typing import Any

from sqlbridge.core.values import TypedValue, row_to_wire, to_wire


def _to_camel_str(s: str) -> str:
    """snake_case → camelCase. E.g. rows_affected → rowsAffected, in_use → inUse."""
    s = str(s)
    parts = s.split("_")
    if not parts:
        return ""
    return parts[0].lower() + "".join(p.capitalize() for p in parts[1:])


def keys_to_camel(obj: Any) -> Any:
    """
    Recursively convert dict keys from snake_case to camelCase.
    Lists: recurse into items. Other values: unchanged.
    """
    if isinstance(obj, dict):
        return {_to_camel_str(k): keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [keys_to_camel(x) for x in obj]
    return obj


def rows_to_wire(rows: list[dict[str, TypedValue]]) -> list[dict[str, Any]]:
    """Result rows as JSON objects. Column names are kept as the backend reports them."""
    return [row_to_wire(row) for row in rows]


def make_json_safe(obj: Any) -> Any:
    """Recursively render TypedValues and containers into JSON-serializable values."""
    if isinstance(obj, TypedValue):
        return to_wire(obj)
    if isinstance(obj, dict):
        return {k: make_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [make_json_safe(item) for item in obj]
    return obj


def render_json(payload: Any) -> str:
    """Pretty-printed JSON document (indent 2, non-ASCII kept). Raises ValueError on NaN or infinity."""
    return json.dumps(make_json_safe(payload), indent=2, ensure_ascii=False, allow_nan=False, default=str)
