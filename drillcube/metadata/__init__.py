"""
Cube descriptors: dimensions, measures and the cube configuration.

Example::

    from drillcube.metadata import CubeConfig, field_dimension, field_measure

    config = CubeConfig(
        data=entries,
        dimensions=[field_dimension("task", "Task", "taskId")],
        measures=[field_measure("hours", "Hours", "hours", "sum", "duration")],
        breakdown_map={"": "task"},
    )
"""

from .base import DescriptorObject
from .cube import CubeConfig
from .dimension import Dimension, KeyField, create_dimension, field_dimension
from .functions import (
    AGGREGATION_FUNCTIONS,
    FORMATTERS,
    AggregationFunction,
    FormatFunction,
    FormatType,
    aggregation_function,
    format_function,
)
from .measure import Measure, create_measure, field_measure

__all__ = [
    "DescriptorObject",
    "CubeConfig",
    "Dimension",
    "KeyField",
    "Measure",
    "create_dimension",
    "create_measure",
    "field_dimension",
    "field_measure",
    "AggregationFunction",
    "FormatType",
    "FormatFunction",
    "AGGREGATION_FUNCTIONS",
    "FORMATTERS",
    "aggregation_function",
    "format_function",
]
