"""
Conversion between live cube configurations and cube documents.

Descriptors carry functions and cannot be transmitted. A document names the
item field each descriptor reads and the tags of its aggregation and format
functions; deserialization maps the tags through fixed tables back to
implementations. Unknown tags are rejected.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from pydantic_core import from_json, to_json

from ..errors import SerializationError, UnknownTagError
from ..logging import get_logger
from ..metadata import (
    CubeConfig,
    Dimension,
    Measure,
    field_dimension,
    field_measure,
)
from .models import (
    SerializedCube,
    SerializedCubeConfig,
    SerializedDimension,
    SerializedMeasure,
)

__all__ = [
    "serialize_dimension",
    "serialize_measure",
    "serialize_cube_config",
    "serialize_cube",
    "deserialize_dimension",
    "deserialize_measure",
    "deserialize_cube_config",
    "deserialize_cube",
    "parse_document",
    "dumps",
    "loads",
]

# Pydantic error types that mean "value outside a closed set of tags"
TAG_ERROR_TYPES = {"enum", "literal_error"}

# Document keys that hold tags
TAG_FIELDS = {"keyFieldName", "aggregationFunction", "type"}


def _location(loc: Iterable[Any]) -> str:
    return ".".join(str(part) for part in loc)


def _raise_document_error(error: ValidationError, what: str) -> None:
    """Re-raise a pydantic validation error as a serialization error. Tag
    violations become `UnknownTagError`."""
    for detail in error.errors():
        loc = detail.get("loc", ())
        if detail.get("type") in TAG_ERROR_TYPES and loc and loc[-1] in TAG_FIELDS:
            raise UnknownTagError(
                f"Unknown tag {detail.get('input')!r} at '{_location(loc)}' "
                f"of {what}",
                field=_location(loc),
                value=detail.get("input"),
                cause=error,
            ) from error
    raise SerializationError(f"Invalid {what}: {error}", cause=error) from error


# ========================================
# Serialization
# ========================================


def serialize_dimension(dimension: Dimension) -> SerializedDimension:
    """
    Document model of `dimension`.

    Raises:
        SerializationError: If the dimension does not read a named field or
            carries key or format functions
    """
    if dimension.has_custom_functions:
        raise SerializationError(
            f"Dimension '{dimension.id}' has custom key or format functions "
            "which can not be serialized. Use label_mapping for labels and "
            "canonical keys for grouping"
        )
    if not dimension.is_serializable:
        raise SerializationError(
            f"Dimension '{dimension.id}' has no field name and can not be "
            "serialized. Use field_dimension() to build serializable dimensions"
        )
    return SerializedDimension(
        id=dimension.id,
        name=dimension.name,
        icon=dimension.icon,
        description=dimension.description,
        field_name=dimension.field_name,
        key_field_name=dimension.key_field_name,
        label_mapping=dimension.label_mapping,
    )


def serialize_measure(measure: Measure) -> SerializedMeasure:
    """
    Document model of `measure`.

    Raises:
        SerializationError: If the measure has no field name or no function
            tags
    """
    if not measure.is_serializable:
        raise SerializationError(
            f"Measure '{measure.id}' has no field name or function tags and "
            "can not be serialized. Use field_measure() to build serializable "
            "measures"
        )
    return SerializedMeasure(
        id=measure.id,
        name=measure.name,
        icon=measure.icon,
        description=measure.description,
        field_name=measure.field_name,
        aggregation_function=measure.aggregation_function,
        format_function=measure.format_function,
    )


def _serialized_config(config: CubeConfig) -> SerializedCubeConfig:
    return SerializedCubeConfig(
        dimensions=[serialize_dimension(dim) for dim in config.dimensions],
        measures=[serialize_measure(measure) for measure in config.measures],
        breakdown_map=dict(config.breakdown_map),
        initial_grouping=config.initial_grouping,
    )


def serialize_cube_config(config: CubeConfig) -> dict[str, Any]:
    """The ``config`` part of the document of `config`."""
    return _serialized_config(config).to_dict()


def serialize_cube(config: CubeConfig) -> dict[str, Any]:
    """Complete document of `config`: descriptors, breakdown policy and
    data."""
    document = SerializedCube(
        config=_serialized_config(config), data=list(config.data)
    ).to_dict()
    get_logger().info(
        f"serialized cube: {len(config.dimensions)} dimensions, "
        f"{len(config.measures)} measures, {len(config.data)} items"
    )
    return document


# ========================================
# Deserialization
# ========================================


def deserialize_dimension(model: SerializedDimension) -> Dimension:
    return field_dimension(
        model.id,
        model.name,
        model.field_name,
        label_mapping=model.label_mapping,
        key_field_name=model.key_field_name,
        icon=model.icon,
        description=model.description,
    )


def deserialize_measure(model: SerializedMeasure) -> Measure:
    return field_measure(
        model.id,
        model.name,
        model.field_name,
        model.aggregation_function,
        model.format_function,
        icon=model.icon,
        description=model.description,
    )


def _config_model(config_doc: Any) -> SerializedCubeConfig:
    if isinstance(config_doc, SerializedCubeConfig):
        return config_doc
    if not isinstance(config_doc, Mapping):
        raise SerializationError(
            f"Cube configuration document must be a mapping, not {type(config_doc)}"
        )
    try:
        return SerializedCubeConfig.model_validate(config_doc)
    except ValidationError as e:
        _raise_document_error(e, "cube configuration document")


def parse_document(document: Any) -> SerializedCube:
    """
    Validate `document` against the document models.

    Raises:
        UnknownTagError: If a tag is outside its closed set
        SerializationError: If the document is malformed otherwise
    """
    if isinstance(document, SerializedCube):
        return document
    if not isinstance(document, Mapping):
        raise SerializationError(
            f"Cube document must be a mapping, not {type(document)}"
        )
    try:
        return SerializedCube.model_validate(document)
    except ValidationError as e:
        _raise_document_error(e, "cube document")


def deserialize_cube_config(config_doc: Any, data: Iterable[Any] = ()) -> CubeConfig:
    """
    Executable configuration from the ``config`` part of a document and the
    items to analyze.

    Raises:
        UnknownTagError: If a tag is outside its closed set
        SerializationError: If the document is malformed
        ModelError: If the described configuration is invalid
    """
    model = _config_model(config_doc)
    return CubeConfig(
        data=list(data),
        dimensions=[deserialize_dimension(dim) for dim in model.dimensions],
        measures=[deserialize_measure(measure) for measure in model.measures],
        breakdown_map=dict(model.breakdown_map),
        initial_grouping=model.initial_grouping,
    )


def deserialize_cube(document: Any) -> CubeConfig:
    """Executable configuration of a complete cube document."""
    model = parse_document(document)
    config = deserialize_cube_config(model.config, model.data)
    get_logger().info(
        f"deserialized cube: {len(config.dimensions)} dimensions, "
        f"{len(config.measures)} measures, {len(config.data)} items"
    )
    return config


# ========================================
# JSON
# ========================================


def _json_numbers(value: Any) -> Any:
    """Copy of `value` with decimals replaced by plain numbers, which
    pydantic_core would otherwise write as strings."""
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, Mapping):
        return {key: _json_numbers(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_json_numbers(item) for item in value]
    return value


def dumps(source: CubeConfig | Mapping[str, Any], indent: int | None = None) -> str:
    """JSON text of a configuration or of a document. Dates are written in
    ISO format, decimals as JSON numbers."""
    if isinstance(source, CubeConfig):
        source = serialize_cube(source)
    return to_json(_json_numbers(source), indent=indent).decode("utf-8")


def loads(text: str | bytes) -> CubeConfig:
    """Executable configuration of a JSON cube document."""
    try:
        document = from_json(text)
    except ValueError as e:
        raise SerializationError(f"Cube document is not valid JSON: {e}") from e
    return deserialize_cube(document)
