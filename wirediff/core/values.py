#!/usr/bin/env python3
"""
Structured value helpers

Scenario payloads and backend results are built from a closed set of
value shapes: null, booleans, numbers, strings, sequences, string-keyed
mappings and a handful of opaque BSON leaves. This module freezes such
values, converts them back to plain JSON-friendly data and provides the
numeric equivalence used by the diff engine.
"""

import math
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Optional

from bson import Decimal128, Int64, ObjectId
from bson.timestamp import Timestamp

from .errors import ScenarioValidationError

LEAF_TYPES = (
    type(None), bool, int, float, Decimal, str, bytes, datetime,
    ObjectId, Decimal128, Int64, Timestamp,
)


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_number(value: Any) -> bool:
    """Numbers in the structural sense. Booleans never count."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal, Decimal128))


def freeze_value(value: Any, path: str = "$") -> Any:
    """Return a deep read-only copy of a structured value.

    Mappings become MappingProxyType views over fresh dicts and sequences
    become tuples. Unsupported leaves raise ScenarioValidationError.
    """
    if is_mapping(value):
        frozen = {}
        for key, child in value.items():
            if not isinstance(key, str):
                raise ScenarioValidationError(
                    f"mapping keys must be strings at {path}: {key!r}",
                    {"path": path})
            frozen[key] = freeze_value(child, f"{path}.{key}")
        return MappingProxyType(frozen)
    if is_sequence(value):
        return tuple(freeze_value(child, f"{path}[{i}]") for i, child in enumerate(value))
    if isinstance(value, LEAF_TYPES):
        return value
    raise ScenarioValidationError(
        f"unsupported value type at {path}: {type(value).__name__}",
        {"path": path, "type": type(value).__name__})


def to_plain(value: Any) -> Any:
    """Convert a (possibly frozen) structured value to dicts and lists."""
    if is_mapping(value):
        return {key: to_plain(child) for key, child in value.items()}
    if is_sequence(value):
        return [to_plain(child) for child in value]
    return value


def to_json_safe(value: Any) -> Any:
    """Plain data that json.dumps accepts without a default hook.

    Python numbers pass through unchanged; Decimal and BSON leaves are
    emitted in their string form.
    """
    if is_mapping(value):
        return {key: to_json_safe(child) for key, child in value.items()}
    if is_sequence(value):
        return [to_json_safe(child) for child in value]
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def to_decimal(value: Any) -> Optional[Decimal]:
    """Arbitrary-precision form of a numeric value, None if not numeric."""
    if not is_number(value):
        return None
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def numeric_equals(left: Any, right: Any) -> bool:
    """Compare two numbers by value, ignoring representation and scale.

    2, 2.0 and Decimal("2.00") are equal. NaN equals only NaN.
    """
    left_dec = to_decimal(left)
    right_dec = to_decimal(right)
    if left_dec is None or right_dec is None:
        return False
    if left_dec.is_nan() or right_dec.is_nan():
        return left_dec.is_nan() and right_dec.is_nan()
    return left_dec == right_dec
