"""
Helpers around cube documents: validation without raising, data schema
inference and covered date range.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict

from ..common import read_field
from ..errors import ModelError
from ..metadata import KeyField
from .codec import deserialize_cube_config, parse_document

__all__ = [
    "DataType",
    "DataField",
    "DateRange",
    "validate_document",
    "infer_data_schema",
    "cube_date_range",
]


class DataType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "dateTime"
    TIME = "time"


# Most specific type wins when a field holds values of several types
TYPE_PRECEDENCE = [
    DataType.NUMBER,
    DataType.BOOLEAN,
    DataType.DATETIME,
    DataType.DATE,
    DataType.TIME,
]


class DataField(BaseModel):
    """Inferred description of one item field."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    name: str
    type: DataType
    nullable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class DateRange(NamedTuple):
    start: datetime
    end: datetime


def validate_document(document: Any) -> list[tuple[str, str]]:
    """
    Validate a cube document without raising.

    Returns:
        List of (severity, message) tuples, severity being ``"error"`` or
        ``"warning"``. A document without errors deserializes.
    """
    results = []

    try:
        model = parse_document(document)
    except ModelError as e:
        return [("error", str(e))]

    try:
        deserialize_cube_config(model.config, model.data)
    except ModelError as e:
        results.append(("error", str(e)))

    if not model.data:
        results.append(("warning", "Document has no data items"))

    descriptors = [("Dimension", dim) for dim in model.config.dimensions] + [
        ("Measure", measure) for measure in model.config.measures
    ]
    for kind, descriptor in descriptors:
        if model.data and all(
            read_field(item, descriptor.field_name) is None for item in model.data
        ):
            results.append(
                (
                    "warning",
                    f"{kind} '{descriptor.id}': field '{descriptor.field_name}' "
                    "is not present in any data item",
                )
            )

    for dim in model.config.dimensions:
        if dim.key_field_name == KeyField.CUSTOM.value:
            results.append(
                (
                    "warning",
                    f"Dimension '{dim.id}' uses a custom key; custom key "
                    "functions are not part of the document, canonical keys "
                    "are used after deserialization",
                )
            )

    return results


def _value_type(value: Any) -> DataType | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, int | float | Decimal):
        return DataType.NUMBER
    if isinstance(value, datetime):
        return DataType.DATETIME
    if isinstance(value, date):
        return DataType.DATE
    if isinstance(value, time):
        return DataType.TIME
    if isinstance(value, str) and _parse_date(value) is not None:
        return DataType.DATETIME if "T" in value or " " in value else DataType.DATE
    return DataType.STRING


def infer_data_schema(data: Sequence[Any]) -> list[DataField]:
    """Field descriptions of mapping items, in first-seen field order.

    A field is nullable when it is missing a value in some item or mixes
    plain strings with another type.
    """
    seen: dict[str, set[DataType | None]] = {}
    for item in data:
        if not isinstance(item, Mapping):
            continue
        for name, value in item.items():
            seen.setdefault(str(name), set()).add(_value_type(value))

    fields = []
    for name, types in seen.items():
        field_type = DataType.STRING
        for candidate in TYPE_PRECEDENCE:
            if candidate in types:
                field_type = candidate
                break
        concrete = types - {None}
        nullable = None in types or (
            DataType.STRING in concrete and len(concrete) > 1
        )
        fields.append(DataField(name=name, type=field_type, nullable=nullable))
    return fields


def _parse_date(value: Any) -> datetime | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, int | float):
        # Epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _range_candidate(candidate: Any) -> DateRange | None:
    if not isinstance(candidate, Mapping):
        return None
    start = end = None
    for key in ("start", "begin", "from"):
        start = _parse_date(candidate.get(key))
        if start is not None:
            break
    for key in ("end", "finish", "to"):
        end = _parse_date(candidate.get(key))
        if end is not None:
            break
    if start is None or end is None:
        return None
    return DateRange(start, end)


# Places a document may declare its covered range
RANGE_LOCATIONS = [
    "dateRange",
    "range",
    "meta.dateRange",
    "meta.range",
    "metadata.dateRange",
    "metadata.range",
    "config.dateRange",
    "config.range",
    "config.meta.dateRange",
    "config.meta.range",
]

# Item fields holding the start of a record
ITEM_DATE_FIELDS = ["startAt", "start_at"]


def cube_date_range(source: Any) -> DateRange | None:
    """
    Date range covered by a cube document.

    A range declared in the document (``dateRange`` or ``range``, also under
    ``meta``, ``metadata`` or ``config``) wins. Otherwise the range spans the
    ``startAt`` values of the data items. Returns None when neither exists.
    """
    if not isinstance(source, Mapping):
        return None

    for location in RANGE_LOCATIONS:
        found = _range_candidate(read_field(source, location))
        if found is not None:
            return found

    data = source.get("data")
    if not isinstance(data, list):
        data = read_field(source, "config.data")
    if not isinstance(data, list) or not data:
        return None

    dates = []
    for item in data:
        for field_name in ITEM_DATE_FIELDS:
            parsed = _parse_date(read_field(item, field_name))
            if parsed is not None:
                dates.append(parsed)
                break

    if not dates:
        return None
    try:
        return DateRange(min(dates), max(dates))
    except TypeError:
        # naive and aware datetimes do not compare
        aware = [d if d.tzinfo else d.replace(tzinfo=timezone.utc) for d in dates]
        return DateRange(min(aware), max(aware))
