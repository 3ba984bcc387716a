"""
Dimension filters applied to the data before the zoom path.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..common import is_number
from ..metadata import CubeConfig

__all__ = ["FilterOperator", "DimensionFilter", "apply_filters"]


class FilterOperator(str, Enum):
    """Comparison operators of a dimension filter"""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


def _sequence(value: Any) -> bool:
    return isinstance(value, list | tuple | set | frozenset)


def _numbers(left: Any, right: Any) -> bool:
    return is_number(left) and is_number(right)


def _strings(left: Any, right: Any) -> bool:
    return isinstance(left, str) and isinstance(right, str)


# Operator -> predicate(item value, filter value). Ordering operators only
# compare numbers and string operators only compare strings.
OPERATORS = {
    FilterOperator.EQUALS: lambda v, f: v == f,
    FilterOperator.NOT_EQUALS: lambda v, f: v != f,
    FilterOperator.IN: lambda v, f: _sequence(f) and v in f,
    FilterOperator.NOT_IN: lambda v, f: _sequence(f) and v not in f,
    FilterOperator.GREATER_THAN: lambda v, f: _numbers(v, f) and v > f,
    FilterOperator.LESS_THAN: lambda v, f: _numbers(v, f) and v < f,
    FilterOperator.GREATER_THAN_OR_EQUAL: lambda v, f: _numbers(v, f) and v >= f,
    FilterOperator.LESS_THAN_OR_EQUAL: lambda v, f: _numbers(v, f) and v <= f,
    FilterOperator.CONTAINS: lambda v, f: _strings(v, f) and f in v,
    FilterOperator.STARTS_WITH: lambda v, f: _strings(v, f) and v.startswith(f),
    FilterOperator.ENDS_WITH: lambda v, f: _strings(v, f) and v.endswith(f),
}


class DimensionFilter(BaseModel):
    """Keeps items whose raw dimension value satisfies `operator` against
    `value`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dimension_id: str = Field(..., description="Filtered dimension")
    operator: FilterOperator = Field(
        FilterOperator.EQUALS, description="Comparison operator"
    )
    value: Any = Field(None, description="Operand compared with item values")

    def evaluate(self, item_value: Any) -> bool:
        return bool(OPERATORS[self.operator](item_value, self.value))

    def __str__(self) -> str:
        return f"{self.dimension_id} {self.operator.value} {self.value!r}"


def apply_filters(
    config: CubeConfig,
    items: Sequence[Any],
    filters: Iterable[DimensionFilter] | None,
) -> list[Any]:
    """Items satisfying all `filters`, in their original order.

    Raises:
        NoSuchDimensionError: If a filter names an unknown dimension
    """
    checks = [
        (config.dimension(flt.dimension_id), flt) for flt in filters or ()
    ]
    if not checks:
        return list(items)

    return [
        item
        for item in items
        if all(flt.evaluate(dim.value(item)) for dim, flt in checks)
    ]
