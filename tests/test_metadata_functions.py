"""
Tests for the aggregation and format function tables.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from drillcube.errors import SerializationError, UnknownTagError
from drillcube.metadata.functions import (
    AGGREGATION_FUNCTIONS,
    FORMATTERS,
    AggregationFunction,
    FormatFunction,
    FormatType,
    aggregate_avg,
    aggregate_count,
    aggregate_max,
    aggregate_min,
    aggregate_sum,
    aggregation_function,
    format_currency,
    format_duration,
    format_function,
    format_number,
    format_percent,
)


class TestAggregates:
    def test_tables_cover_every_tag(self):
        assert set(AGGREGATION_FUNCTIONS) == {tag.value for tag in AggregationFunction}
        assert set(FORMATTERS) == {tag.value for tag in FormatType}

    @pytest.mark.parametrize(
        "function,values,expected",
        [
            (aggregate_sum, [2, 3, 1], 6),
            (aggregate_sum, [2, None, "x", 3], 5),
            (aggregate_sum, [], 0),
            (aggregate_count, [None, 1, "x"], 3),
            (aggregate_count, [], 0),
            (aggregate_avg, [1, 2, 3, None], 2),
            (aggregate_avg, [], 0),
            (aggregate_min, [3, 1, 2], 1),
            (aggregate_min, [], 0),
            (aggregate_max, [3, 1, 2], 3),
            (aggregate_max, [None], 0),
        ],
    )
    def test_aggregate(self, function, values, expected):
        assert function(values) == expected

    def test_float_sum(self):
        assert aggregate_sum([0.1, 0.2, 0.3]) == pytest.approx(0.6)

    def test_decimal_sum_is_exact(self):
        assert aggregate_sum([Decimal("1.10"), Decimal("2.20")]) == Decimal("3.30")

    def test_booleans_are_not_summed(self):
        assert aggregate_sum([True, 2]) == 2

    def test_lookup_by_tag(self):
        assert aggregation_function("sum") is aggregate_sum
        assert aggregation_function(AggregationFunction.AVG) is aggregate_avg

    def test_unknown_tag_is_rejected(self):
        with pytest.raises(UnknownTagError, match="median"):
            aggregation_function("median")


class TestFormatters:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (1234.5, "1,234.50"),
            (0, "0.00"),
            (Decimal("2.5"), "2.50"),
            (None, "None"),
        ],
    )
    def test_number(self, value, expected):
        assert format_number(value) == expected

    def test_percent(self):
        assert format_percent(0.125) == "12.5%"
        assert format_percent(1) == "100.0%"

    @pytest.mark.parametrize(
        "value,currency,expected",
        [
            (1234.5, "USD", "$1,234.50"),
            (-5, "EUR", "-€5.00"),
            (2.675, "USD", "$2.68"),
            (10, "PLN", "10.00 zł"),
            (10, "sek", "10.00 SEK"),
        ],
    )
    def test_currency(self, value, currency, expected):
        assert format_currency(value, currency) == expected

    @pytest.mark.parametrize(
        "hours,expected",
        [
            (2.5, "2h 30m"),
            (2, "2h"),
            (0.75, "0h 45m"),
            (-1.5, "-1h 30m"),
        ],
    )
    def test_duration(self, hours, expected):
        assert format_duration(hours) == expected

    def test_format_function_from_document(self):
        formatter = format_function({"type": "currency", "currency": "EUR"})
        assert formatter(12) == "€12.00"
        assert format_function("percent")(0.5) == "50.0%"
        assert format_function(FormatFunction(type="duration"))(1) == "1h"

    def test_unknown_format_type_is_rejected(self):
        with pytest.raises(UnknownTagError, match="stars"):
            format_function({"type": "stars"})

    def test_currency_requires_code(self):
        with pytest.raises(SerializationError):
            format_function({"type": "currency"})

    def test_currency_only_allowed_for_currency_type(self):
        with pytest.raises(ValidationError):
            FormatFunction(type="number", currency="USD")

    def test_format_function_to_dict(self):
        assert FormatFunction(type="number").to_dict() == {"type": "number"}
        assert FormatFunction(type="currency", currency="USD").to_dict() == {
            "type": "currency",
            "currency": "USD",
        }
