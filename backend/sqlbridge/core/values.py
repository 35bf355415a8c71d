"""
Typed values shared by query parameters and result cells.

- to_internal: JSON value from the wire -> TypedValue (total; arrays/objects become STRING)
- to_driver: TypedValue -> DB-API parameter
- from_driver: DB-API result cell -> TypedValue
- to_wire: TypedValue -> JSON-safe value
"""

from __future__ import annotations

import json
import math
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    NULL = "null"
    BYTES = "bytes"
    DECIMAL = "decimal"
    TEMPORAL = "temporal"


class TypedValue(NamedTuple):
    kind: ValueKind
    value: Any


NULL = TypedValue(ValueKind.NULL, None)


def _json_text(value: Any) -> str:
    """Compact JSON rendering, used for arrays and objects passed as parameters."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def to_internal(value: Any) -> TypedValue:
    """Map a decoded JSON value onto a TypedValue. Never raises.

    bool is checked before int (bool is an int subclass). Integers outside the
    signed 64-bit range, and every float, map to FLOAT.
    """
    if isinstance(value, TypedValue):
        return value
    if value is None:
        return NULL
    if isinstance(value, bool):
        return TypedValue(ValueKind.BOOL, value)
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return TypedValue(ValueKind.INT, value)
        return TypedValue(ValueKind.FLOAT, float(value))
    if isinstance(value, float):
        return TypedValue(ValueKind.FLOAT, value)
    if isinstance(value, str):
        return TypedValue(ValueKind.STRING, value)
    return TypedValue(ValueKind.STRING, _json_text(value))


def params_to_internal(params: list[Any] | None) -> list[TypedValue]:
    """Convert an argument array element-wise, preserving order."""
    return [to_internal(p) for p in params or []]


def to_driver(tv: TypedValue) -> Any:
    """Python value handed to the DB-API driver for a bound parameter."""
    if tv.kind == ValueKind.NULL:
        return None
    if tv.kind == ValueKind.INT:
        return int(tv.value)
    if tv.kind == ValueKind.FLOAT:
        return float(tv.value)
    if tv.kind == ValueKind.BOOL:
        return bool(tv.value)
    if tv.kind == ValueKind.STRING:
        return str(tv.value)
    # BYTES, DECIMAL, TEMPORAL already hold native driver types
    return tv.value


def from_driver(cell: Any) -> TypedValue:
    """Wrap a result cell from any of the drivers. Unknown types become STRING."""
    if cell is None:
        return NULL
    if isinstance(cell, bool):
        return TypedValue(ValueKind.BOOL, cell)
    if isinstance(cell, int):
        return TypedValue(ValueKind.INT, cell)
    if isinstance(cell, float):
        return TypedValue(ValueKind.FLOAT, cell)
    if isinstance(cell, str):
        return TypedValue(ValueKind.STRING, cell)
    if isinstance(cell, Decimal):
        return TypedValue(ValueKind.DECIMAL, cell)
    if isinstance(cell, (datetime, date, time, timedelta)):
        return TypedValue(ValueKind.TEMPORAL, cell)
    if isinstance(cell, (bytes, bytearray, memoryview)):
        return TypedValue(ValueKind.BYTES, bytes(cell))
    if isinstance(cell, uuid.UUID):
        return TypedValue(ValueKind.STRING, str(cell))
    if isinstance(cell, (dict, list)):
        # psycopg decodes json/jsonb columns into Python structures
        return TypedValue(ValueKind.STRING, _json_text(cell))
    return TypedValue(ValueKind.STRING, str(cell))


def _format_timedelta(value: timedelta) -> str:
    """[-]HH:MM:SS[.ffffff]; hours may exceed 24 (MySQL TIME spans +-838:59:59)."""
    sign = "-" if value < timedelta(0) else ""
    micros = abs(value) // timedelta(microseconds=1)
    seconds, micros = divmod(micros, 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if micros:
        text += f".{micros:06d}"
    return text


def _decimal_to_wire(value: Decimal) -> Any:
    if not value.is_finite():
        return None
    if value == value.to_integral_value():
        return int(value)
    # Keep the digits when a float would round them away
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


def to_wire(tv: TypedValue) -> Any:
    """JSON-safe rendering of a TypedValue. NaN and infinities become null."""
    kind, value = tv
    if kind == ValueKind.FLOAT:
        return value if math.isfinite(value) else None
    if kind in (ValueKind.NULL, ValueKind.BOOL, ValueKind.INT, ValueKind.STRING):
        return value
    if kind == ValueKind.DECIMAL:
        return _decimal_to_wire(value)
    if kind == ValueKind.TEMPORAL:
        if isinstance(value, timedelta):
            return _format_timedelta(value)
        return value.isoformat()
    if kind == ValueKind.BYTES:
        return value.decode("utf-8", errors="replace")
    return str(value)


def row_to_wire(row: dict[str, TypedValue]) -> dict[str, Any]:
    """Render one result row, keeping column order."""
    return {name: to_wire(tv) for name, tv in row.items()}
