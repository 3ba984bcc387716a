"""
Measure descriptors.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

from pydantic import Field, field_validator

from ..common import read_field
from ..logging import get_logger
from .base import DescriptorObject
from .dimension import ACCESSOR_ERRORS
from .functions import (
    AggregationFunction,
    FormatFunction,
    FormatType,
    aggregation_function,
    format_function,
)

__all__ = [
    "Measure",
    "create_measure",
    "field_measure",
]


class Measure(DescriptorObject):
    """A named way of deriving a per-item number and aggregating a group.

    `aggregate` always receives the values of every member of a group; group
    results are never merged from subgroup results, so non-additive
    aggregates (average, minimum, maximum) are exact.
    """

    get_value: Callable[[Any], Any] = Field(
        ..., description="Extracts the raw per-item value"
    )
    aggregate: Callable[[Sequence[Any]], Any] = Field(
        ..., description="Aggregates the values of all members of a group"
    )
    format_value: Callable[[Any], Any] | None = Field(
        None, description="Display form of an aggregated value"
    )

    # Declarative form, required for serialization
    field_name: str | None = Field(
        None, description="Item field the value is read from"
    )
    aggregation_function: AggregationFunction | None = Field(
        None, description="Aggregation tag"
    )
    format_function: FormatFunction | None = Field(
        None, description="Format specification"
    )

    @field_validator("format_function", mode="before")
    @classmethod
    def validate_format_function(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"type": v}
        return v

    def value(self, item: Any) -> Any:
        """Raw value of the measure for `item`. A failing accessor yields
        ``None``, which the numeric aggregates skip."""
        try:
            return self.get_value(item)
        except ACCESSOR_ERRORS as e:
            get_logger().debug(
                f"measure '{self.id}' could not read item value: {e!r}"
            )
            return None

    def aggregate_items(self, items: Sequence[Any]) -> Any:
        """Aggregated value over all `items`."""
        return self.aggregate([self.value(item) for item in items])

    def format(self, value: Any) -> str:
        """Display form of an aggregated value."""
        if self.format_value is None:
            return str(value)
        return str(self.format_value(value))

    @property
    def is_serializable(self) -> bool:
        return (
            self.field_name is not None
            and self.aggregation_function is not None
            and self.format_function is not None
        )


def create_measure(spec: Any = None, **kwargs: Any) -> Measure:
    """Creates a measure from a mapping or keyword arguments.

    `name` defaults to a label derived from `id`. Missing `id`, `get_value`
    or `aggregate` raise `ModelError`.
    """
    return Measure.from_metadata(spec, **kwargs)


def field_measure(
    id: str,
    name: str | None = None,
    field_name: str | None = None,
    aggregation: AggregationFunction | str = AggregationFunction.SUM,
    format: FormatFunction | dict[str, Any] | str | None = None,
    *,
    icon: str | None = None,
    description: str | None = None,
) -> Measure:
    """Creates a measure reading the numeric item field `field_name`
    (defaults to `id`), aggregated and formatted by the functions registered
    for the `aggregation` tag and the `format` specification. The format
    defaults to plain numbers.

    Example::

        field_measure("amount", aggregation="sum",
                      format={"type": "currency", "currency": "EUR"})
    """
    field_name = field_name or id
    aggregate = aggregation_function(aggregation)

    if format is None:
        format = FormatFunction(type=FormatType.NUMBER)
    elif isinstance(format, str):
        format = {"type": format}
    formatter = format_function(format)
    if not isinstance(format, FormatFunction):
        format = FormatFunction.model_validate(format)

    if isinstance(aggregation, AggregationFunction):
        aggregation = aggregation.value

    return create_measure(
        id=id,
        name=name,
        icon=icon,
        description=description,
        get_value=partial(read_field, field_name=field_name),
        aggregate=aggregate,
        format_value=formatter,
        field_name=field_name,
        aggregation_function=aggregation,
        format_function=format,
    )
