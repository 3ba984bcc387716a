"""
Pydantic models of the portable cube document.

Document shape::

    {
      "config": {
        "dimensions": [{id, name, icon?, fieldName, keyFieldName, labelMapping?}],
        "measures": [{id, name, icon?, fieldName, aggregationFunction,
                      formatFunction}],
        "breakdownMap": {"<pathSignature>": "<dimensionId>" | null},
        "initialGrouping": ["<dimensionId>", ...]
      },
      "data": [<item>, ...]
    }

Optional keys are omitted from a well-formed document rather than set to
null. `breakdownMap` values are the exception: null marks a raw data node.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common import IgnoringDictionary
from ..metadata import AggregationFunction, FormatFunction, KeyField

__all__ = [
    "SerializedDimension",
    "SerializedMeasure",
    "SerializedCubeConfig",
    "SerializedCube",
]


class SerializedModel(BaseModel):
    """Base of document models: camel case keys, closed set of fields."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        use_enum_values=True,
    )


class SerializedDimension(SerializedModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    icon: str | None = None
    description: str | None = None
    field_name: str = Field(..., alias="fieldName", min_length=1)
    key_field_name: KeyField = Field(..., alias="keyFieldName")
    label_mapping: dict[str, str] | None = Field(None, alias="labelMapping")

    def to_dict(self) -> dict[str, Any]:
        out = IgnoringDictionary()
        out["id"] = self.id
        out["name"] = self.name
        out["icon"] = self.icon
        out["description"] = self.description
        out["fieldName"] = self.field_name
        out["keyFieldName"] = self.key_field_name
        if self.label_mapping is not None:
            out["labelMapping"] = dict(self.label_mapping)
        return dict(out)


class SerializedMeasure(SerializedModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    icon: str | None = None
    description: str | None = None
    field_name: str = Field(..., alias="fieldName", min_length=1)
    aggregation_function: AggregationFunction = Field(
        ..., alias="aggregationFunction"
    )
    format_function: FormatFunction = Field(..., alias="formatFunction")

    def to_dict(self) -> dict[str, Any]:
        out = IgnoringDictionary()
        out["id"] = self.id
        out["name"] = self.name
        out["icon"] = self.icon
        out["description"] = self.description
        out["fieldName"] = self.field_name
        out["aggregationFunction"] = self.aggregation_function
        out["formatFunction"] = self.format_function.to_dict()
        return dict(out)


class SerializedCubeConfig(SerializedModel):
    dimensions: list[SerializedDimension] = Field(default_factory=list)
    measures: list[SerializedMeasure] = Field(..., min_length=1)
    breakdown_map: dict[str, str | None] = Field(
        default_factory=dict, alias="breakdownMap"
    )
    initial_grouping: list[str] | None = Field(None, alias="initialGrouping")

    @field_validator("breakdown_map", mode="before")
    @classmethod
    def validate_breakdown_map(cls, v: Any) -> Any:
        if v is None:
            return {}
        return v

    def to_dict(self) -> dict[str, Any]:
        out = IgnoringDictionary()
        out["dimensions"] = [dim.to_dict() for dim in self.dimensions]
        out["measures"] = [measure.to_dict() for measure in self.measures]
        out["breakdownMap"] = dict(self.breakdown_map)
        if self.initial_grouping is not None:
            out["initialGrouping"] = list(self.initial_grouping)
        return dict(out)


class SerializedCube(SerializedModel):
    config: SerializedCubeConfig
    data: list[Any] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"config": self.config.to_dict(), "data": list(self.data)}
