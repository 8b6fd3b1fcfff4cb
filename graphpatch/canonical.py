from __future__ import annotations

import enum
import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from graphpatch.records import DEFAULT_MAPPINGS, PropertyMappings, record_type_of


def to_document(value: Any, *, mappings: PropertyMappings = DEFAULT_MAPPINGS) -> Any:
    """Convert an object graph into plain JSON data, using external property names."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value
    if isinstance(value, enum.Enum):
        return to_document(value.value, mappings=mappings)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): to_document(v, mappings=mappings) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document(v, mappings=mappings) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((to_document(v, mappings=mappings) for v in value), key=repr)

    record = record_type_of(value)
    if record is not None:
        return {
            name: to_document(record.get(value, prop), mappings=mappings)
            for name, prop in mappings.exposed_properties(record)
        }
    raise TypeError(f"cannot convert {type(value).__name__} to a JSON document")


def _number_text(value: int | float | Decimal) -> str:
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError("non-finite Decimal is not comparable")
        txt = format(value.normalize(), "f")
    else:
        if math.isnan(value) or math.isinf(value):
            raise ValueError("non-finite float is not comparable")
        txt = format(Decimal(repr(value)).normalize(), "f")
    if "." in txt:
        txt = txt.rstrip("0").rstrip(".")
    return "0" if txt in ("-0", "") else txt


def _canonical(value: Any) -> Any:
    # Tag every scalar with its JSON kind so that True and 1 never collide.
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float, Decimal)):
        return ("number", _number_text(value))
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, list):
        return ("array", tuple(_canonical(v) for v in value))
    if isinstance(value, dict):
        return ("object", tuple(sorted((k, _canonical(v)) for k, v in value.items())))
    raise TypeError(f"unsupported type in JSON document: {type(value).__name__}")


def structurally_equal(
    left: Any, right: Any, *, mappings: PropertyMappings = DEFAULT_MAPPINGS
) -> bool:
    """Deep equality under JSON semantics: numbers compare by value, objects ignore key order."""
    return _canonical(to_document(left, mappings=mappings)) == _canonical(
        to_document(right, mappings=mappings)
    )
