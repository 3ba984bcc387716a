"""Portable cube documents.

Example::

    from drillcube.serialization import deserialize_cube, serialize_cube

    document = serialize_cube(config)
    restored = deserialize_cube(document)
"""

from ..metadata.functions import AGGREGATION_FUNCTIONS, FORMATTERS
from .codec import (
    deserialize_cube,
    deserialize_cube_config,
    deserialize_dimension,
    deserialize_measure,
    dumps,
    loads,
    parse_document,
    serialize_cube,
    serialize_cube_config,
    serialize_dimension,
    serialize_measure,
)
from .models import (
    SerializedCube,
    SerializedCubeConfig,
    SerializedDimension,
    SerializedMeasure,
)
from .utils import (
    DataField,
    DataType,
    DateRange,
    cube_date_range,
    infer_data_schema,
    validate_document,
)

__all__ = [
    "AGGREGATION_FUNCTIONS",
    "FORMATTERS",
    "deserialize_cube",
    "deserialize_cube_config",
    "deserialize_dimension",
    "deserialize_measure",
    "dumps",
    "loads",
    "parse_document",
    "serialize_cube",
    "serialize_cube_config",
    "serialize_dimension",
    "serialize_measure",
    "SerializedCube",
    "SerializedCubeConfig",
    "SerializedDimension",
    "SerializedMeasure",
    "DataField",
    "DataType",
    "DateRange",
    "cube_date_range",
    "infer_data_schema",
    "validate_document",
]
