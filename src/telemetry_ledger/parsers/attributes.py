"""Typed lookups over OTLP attribute lists.

An attribute list is the deserialized ``KeyValue[]`` shape::

    [{"key": "session.id", "value": {"stringValue": "abc"}}, ...]

Each ``value`` is a tagged union carrying exactly one of the keys in
``ATTRIBUTE_KINDS``. Keys are not guaranteed unique; the first entry with a
matching key wins. Every getter returns ``None`` for an absent key so callers
choose their own defaults.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

AttributeValue: TypeAlias = Mapping[str, Any]
AttributeBag: TypeAlias = Sequence[Mapping[str, Any]]

ATTRIBUTE_KINDS = (
    "stringValue",
    "boolValue",
    "intValue",
    "doubleValue",
    "arrayValue",
    "kvlistValue",
    "bytesValue",
)

# Integers outside this range cannot be stored in an SQLite INTEGER column.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def attribute_kind(value: object) -> str | None:
    """Return the populated variant key of an attribute value, if any."""
    if not isinstance(value, Mapping):
        return None
    for kind in ATTRIBUTE_KINDS:
        if kind in value:
            return kind
    return None


def find_value(attrs: AttributeBag | None, key: str) -> AttributeValue | None:
    for entry in attrs or ():
        if not isinstance(entry, Mapping) or entry.get("key") != key:
            continue
        value = entry.get("value")
        if isinstance(value, Mapping):
            return value
        return None
    return None


def get_string(attrs: AttributeBag | None, key: str) -> str | None:
    value = find_value(attrs, key)
    if value is None:
        return None
    return _extract_string(value)


def get_int(attrs: AttributeBag | None, key: str) -> int | None:
    value = find_value(attrs, key)
    if value is None:
        return None
    number = _extract_number(value)
    if number is None:
        return None
    if isinstance(number, float):
        number = int(number)
    if not INT64_MIN <= number <= INT64_MAX:
        return None
    return number


def get_double(attrs: AttributeBag | None, key: str) -> float | None:
    value = find_value(attrs, key)
    if value is None:
        return None
    number = _extract_number(value)
    if number is None:
        return None
    return to_finite_float(number)


def to_finite_float(number: int | float) -> float | None:
    """``number`` as a float, or ``None`` when it is NaN, infinite or too large."""
    try:
        result = float(number)
    except OverflowError:
        return None
    return result if math.isfinite(result) else None


def _extract_string(value: AttributeValue) -> str | None:
    kind = attribute_kind(value)
    raw = value.get(kind) if kind else None
    if kind == "stringValue":
        return raw if isinstance(raw, str) else None
    if kind == "boolValue":
        return "true" if raw else "false"
    if kind == "intValue":
        return str(raw) if raw is not None else None
    if kind == "doubleValue":
        return _format_double(raw)
    return None


def _extract_number(value: AttributeValue) -> int | float | None:
    kind = attribute_kind(value)
    raw = value.get(kind) if kind else None
    if kind == "intValue":
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float):
            return int(raw) if math.isfinite(raw) else None
        if isinstance(raw, str):
            return _parse_int_text(raw)
        return None
    if kind == "doubleValue":
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        return raw
    if kind == "stringValue" and isinstance(raw, str):
        return _parse_number_text(raw)
    return None


def _parse_int_text(text: str) -> int | None:
    # 64-bit counters arrive as decimal strings; int() keeps every digit.
    try:
        return int(text.strip(), 10)
    except ValueError:
        pass
    number = _parse_number_text(text)
    if number is None:
        return None
    return int(number)


def _parse_number_text(text: str) -> int | float | None:
    stripped = text.strip()
    if not stripped:
        return None
    try:
        return int(stripped, 10)
    except ValueError:
        pass
    try:
        number = float(stripped)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _format_double(raw: object) -> str | None:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return repr(raw)


def attributes_of(container: object) -> AttributeBag:
    """The ``attributes`` list of a resource, record or data point (empty when missing)."""
    attrs = container.get("attributes") if isinstance(container, Mapping) else None
    return attrs if isinstance(attrs, list) else []


def children(container: object, key: str) -> list[Mapping[str, Any]]:
    """Mapping items of a nested OTLP list such as ``resourceLogs`` or ``scopeMetrics``."""
    if not isinstance(container, Mapping):
        return []
    items = container.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, Mapping)]
