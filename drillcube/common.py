"""Utility functions shared by the descriptor and query modules."""

from __future__ import annotations

import math
from collections import OrderedDict
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

__all__ = [
    "NULL_KEY",
    "UNKNOWN_LABEL",
    "IgnoringDictionary",
    "canonical_key",
    "default_label",
    "read_field",
    "to_label",
    "is_number",
]

# Bucket key reserved for missing (None) dimension values
NULL_KEY = "__null__"
UNKNOWN_LABEL = "Unknown"

_MISSING = object()


class IgnoringDictionary(OrderedDict):
    """Simple dictionary extension that will ignore any keys of which values
    are empty (None)"""

    def __setitem__(self, key, value):
        if value is not None:
            super().__setitem__(key, value)

    def set(self, key, value):
        """Sets `value` for `key` even if value is null."""
        super().__setitem__(key, value)


def to_label(name: str) -> str:
    """Converts `name` into a label by replacing underscores with spaces and
    capitalizing the first letter."""
    return name.replace("_", " ").capitalize()


def canonical_key(value: Any) -> str:
    """Returns the canonical bucket key for a dimension value.

    Keys are plain strings so that two values are the same group exactly when
    their keys are equal. ``None`` maps to `NULL_KEY`, booleans to
    ``"true"``/``"false"``, integral floats drop their fraction (``2.0`` and
    ``2`` share the key ``"2"``), dates and times use ISO format.
    """
    if value is None:
        return NULL_KEY
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return canonical_key(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(value.quantize(Decimal(1)))
        return str(value.normalize())
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def default_label(value: Any) -> str:
    """Display label used when a dimension has no formatter."""
    if value is None:
        return UNKNOWN_LABEL
    return canonical_key(value)


def read_field(item: Any, field_name: str) -> Any:
    """Reads `field_name` from a record. Mappings are read by key, other
    objects by attribute. A dotted name that is not a key itself is followed
    into nested records (``"project.name"``). Missing fields read as
    ``None``."""
    value = _lookup(item, field_name)
    if value is not _MISSING:
        return value

    if "." in field_name:
        current = item
        for part in field_name.split("."):
            current = _lookup(current, part)
            if current is _MISSING or current is None:
                return None
        return current

    return None


def _lookup(item: Any, name: str) -> Any:
    if item is None:
        return _MISSING
    if isinstance(item, Mapping):
        return item.get(name, _MISSING)
    return getattr(item, name, _MISSING)


def is_number(value: Any) -> bool:
    """True for real numbers usable by the numeric aggregates. Booleans and
    NaN are not numbers here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, Decimal)):
        return True
    if isinstance(value, float):
        return not math.isnan(value)
    return False
