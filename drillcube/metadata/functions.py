"""
Aggregation and format functions addressable by tag.

Serialized measures cannot carry code, so they name their behaviour with a
closed set of tags. Each tag is mapped through a fixed table to a concrete
implementation. A tag that is not in the table is an error, it is never
replaced by a default.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from functools import partial
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..common import is_number
from ..errors import SerializationError, UnknownTagError

__all__ = [
    "AggregationFunction",
    "FormatType",
    "FormatFunction",
    "AGGREGATION_FUNCTIONS",
    "FORMATTERS",
    "aggregation_function",
    "format_function",
    "aggregate_sum",
    "aggregate_count",
    "aggregate_avg",
    "aggregate_min",
    "aggregate_max",
    "format_number",
    "format_percent",
    "format_currency",
    "format_duration",
]


class AggregationFunction(str, Enum):
    """Aggregation tags of a serialized measure"""

    SUM = "sum"
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class FormatType(str, Enum):
    """Format tags of a serialized measure"""

    NUMBER = "number"
    CURRENCY = "currency"
    PERCENT = "percent"
    DURATION = "duration"


class FormatFunction(BaseModel):
    """Format specification: a type tag and, for currency, the ISO code."""

    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=True)

    type: FormatType = Field(..., description="Format type tag")
    currency: str | None = Field(
        None, description="ISO 4217 currency code, only for type 'currency'"
    )

    @model_validator(mode="after")
    def validate_currency(self) -> FormatFunction:
        if self.type == FormatType.CURRENCY.value:
            if not self.currency:
                raise ValueError("format type 'currency' requires a currency code")
        elif self.currency is not None:
            raise ValueError(
                f"currency code is only allowed for type 'currency', not '{self.type}'"
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Document form of the specification. `currency` is present only for
        currency formats."""
        return self.model_dump(exclude_none=True)


# ========================================
# Aggregates
# ========================================


def _numbers(values: Sequence[Any]) -> list[Any]:
    return [value for value in values if is_number(value)]


def _total(numbers: list[Any]) -> Any:
    if any(isinstance(value, float) for value in numbers):
        return math.fsum(float(value) for value in numbers)
    return sum(numbers)


def aggregate_sum(values: Sequence[Any]) -> Any:
    """Sum of numeric values, 0 for an empty set."""
    return _total(_numbers(values))


def aggregate_count(values: Sequence[Any]) -> int:
    """Number of members, whatever their values are."""
    return len(values)


def aggregate_avg(values: Sequence[Any]) -> Any:
    """Mean of numeric values, 0 when there is none."""
    numbers = _numbers(values)
    if not numbers:
        return 0
    return _total(numbers) / len(numbers)


def aggregate_min(values: Sequence[Any]) -> Any:
    numbers = _numbers(values)
    return min(numbers) if numbers else 0


def aggregate_max(values: Sequence[Any]) -> Any:
    numbers = _numbers(values)
    return max(numbers) if numbers else 0


AGGREGATION_FUNCTIONS: dict[str, Callable[[Sequence[Any]], Any]] = {
    AggregationFunction.SUM.value: aggregate_sum,
    AggregationFunction.COUNT.value: aggregate_count,
    AggregationFunction.AVG.value: aggregate_avg,
    AggregationFunction.MIN.value: aggregate_min,
    AggregationFunction.MAX.value: aggregate_max,
}


def aggregation_function(tag: str | AggregationFunction) -> Callable[[Sequence[Any]], Any]:
    """Returns the aggregate implementation for `tag`.

    Raises `UnknownTagError` for tags outside the table.
    """
    if isinstance(tag, AggregationFunction):
        tag = tag.value
    try:
        return AGGREGATION_FUNCTIONS[tag]
    except (KeyError, TypeError):
        raise UnknownTagError(
            f"Unknown aggregation function '{tag}'. "
            f"Known functions: {', '.join(AGGREGATION_FUNCTIONS)}",
            field="aggregationFunction",
            value=tag,
        ) from None


# ========================================
# Formatters
# ========================================

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "PLN": "zł",
    "CHF": "CHF ",
}

CENT = Decimal("0.01")


def _decimal(value: Any) -> Decimal | None:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def format_number(value: Any) -> str:
    """Two decimal places with thousands separators."""
    if not is_number(value):
        return str(value)
    return f"{value:,.2f}"


def format_percent(value: Any) -> str:
    """Ratio rendered as a percentage with one decimal place (0.125 is
    ``12.5%``)."""
    if not is_number(value):
        return str(value)
    return f"{float(value) * 100:.1f}%"


def format_currency(value: Any, currency: str) -> str:
    """Amount in `currency`, rounded half-up to cents. Amounts are expected to
    be in the given currency already; nothing is converted here."""
    amount = _decimal(value) if is_number(value) else None
    if amount is None or not amount.is_finite():
        return str(value)

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{sign}{text} {currency.upper()}"
    if currency.upper() == "PLN":
        return f"{sign}{text} {symbol}"
    return f"{sign}{symbol}{text}"


def format_duration(value: Any) -> str:
    """Hours rendered as ``"2h 30m"``. Whole hours omit the minutes."""
    if not is_number(value) or math.isinf(value):
        return str(value)
    minutes = int(round(float(value) * 60))
    sign = "-" if minutes < 0 else ""
    hours, minutes = divmod(abs(minutes), 60)
    if minutes:
        return f"{sign}{hours}h {minutes:02d}m"
    return f"{sign}{hours}h"


FORMATTERS: dict[str, Callable[[FormatFunction], Callable[[Any], str]]] = {
    FormatType.NUMBER.value: lambda spec: format_number,
    FormatType.CURRENCY.value: lambda spec: partial(
        format_currency, currency=spec.currency
    ),
    FormatType.PERCENT.value: lambda spec: format_percent,
    FormatType.DURATION.value: lambda spec: format_duration,
}


def format_function(
    spec: FormatFunction | dict[str, Any] | str,
) -> Callable[[Any], str]:
    """Returns the formatter for a format specification.

    `spec` is a `FormatFunction`, its document form or a bare type tag.
    Raises `UnknownTagError` for unknown types and `SerializationError`
    for an invalid currency combination.
    """
    if isinstance(spec, str):
        spec = {"type": spec}

    if not isinstance(spec, FormatFunction):
        type_tag = spec.get("type") if isinstance(spec, dict) else None
        if type_tag not in FORMATTERS:
            raise UnknownTagError(
                f"Unknown format function type '{type_tag}'. "
                f"Known types: {', '.join(FORMATTERS)}",
                field="formatFunction.type",
                value=type_tag,
            )
        try:
            spec = FormatFunction.model_validate(spec)
        except ValidationError as e:
            raise SerializationError(
                f"Invalid format function {spec!r}: {e}"
            ) from e

    return FORMATTERS[spec.type](spec)
