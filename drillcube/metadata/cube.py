"""
Cube configuration: the data set together with its dimensions, measures and
breakdown policy.
"""

from __future__ import annotations

import difflib
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)

from ..errors import (
    DanglingBreakdownError,
    DuplicateDescriptorError,
    ModelError,
    NoSuchDimensionError,
    NoSuchMeasureError,
)
from .dimension import Dimension, create_dimension
from .measure import Measure, create_measure

__all__ = ["CubeConfig"]


def _suggestion(name: str, available: list[str]) -> str:
    matches = difflib.get_close_matches(name, available, n=1)
    if matches:
        return f" Did you mean '{matches[0]}'?"
    return ""


class CubeConfig(BaseModel):
    """
    Immutable definition of a cube over one loaded data set.

    Attributes:
        data: ordered items
        dimensions: dimensions with unique ids
        measures: measures with unique ids, at least one
        breakdown_map: path signature to the dimension that subdivides the
            node, ``None`` marks a node that shows raw items
        initial_grouping: ordered dimension ids used as first-view default
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    _dimensions: dict[str, Dimension] = PrivateAttr(default_factory=dict)
    _measures: dict[str, Measure] = PrivateAttr(default_factory=dict)

    data: list[Any] = Field(default_factory=list, description="Ordered items")
    dimensions: list[Dimension] = Field(
        default_factory=list, description="Dimensions available for grouping"
    )
    measures: list[Measure] = Field(
        default_factory=list, description="Measures computed for every group"
    )
    breakdown_map: dict[str, str | None] = Field(
        default_factory=dict,
        description="Path signature to breakdown dimension id",
    )
    initial_grouping: list[str] | None = Field(
        None, description="Dimension ids used for the first view"
    )

    @field_validator("data", mode="before")
    @classmethod
    def validate_data(cls, v: Any) -> list[Any]:
        if v is None:
            return []
        return list(v)

    @field_validator("dimensions", mode="before")
    @classmethod
    def validate_dimensions(cls, v: Any) -> list[Dimension]:
        """Convert dimension specifications to Dimension objects"""
        if not v:
            return []
        return [create_dimension(dim) for dim in v]

    @field_validator("measures", mode="before")
    @classmethod
    def validate_measures(cls, v: Any) -> list[Measure]:
        """Convert measure specifications to Measure objects"""
        if not v:
            return []
        return [create_measure(measure) for measure in v]

    @field_validator("breakdown_map", mode="before")
    @classmethod
    def validate_breakdown_map(cls, v: Any) -> Any:
        return {} if v is None else v

    @model_validator(mode="after")
    def setup_config_and_validate(self) -> CubeConfig:
        """Populate lookups and check references"""
        self._dimensions.clear()
        self._measures.clear()

        for dim in self.dimensions:
            if dim.id in self._dimensions:
                raise DuplicateDescriptorError(
                    f"duplicate descriptor id: dimension '{dim.id}'",
                    descriptor_id=dim.id,
                )
            self._dimensions[dim.id] = dim

        for measure in self.measures:
            if measure.id in self._measures:
                raise DuplicateDescriptorError(
                    f"duplicate descriptor id: measure '{measure.id}'",
                    descriptor_id=measure.id,
                )
            self._measures[measure.id] = measure

        if not self._measures:
            raise ModelError("Cube configuration requires at least one measure")

        available = list(self._dimensions)
        for signature, dim_id in self.breakdown_map.items():
            if dim_id is not None and dim_id not in self._dimensions:
                raise DanglingBreakdownError(
                    f"dangling breakdown reference to unknown dimension "
                    f"'{dim_id}'.{_suggestion(dim_id, available)}",
                    signature=signature,
                    dimension=dim_id,
                )

        for dim_id in self.initial_grouping or []:
            if dim_id not in self._dimensions:
                raise DanglingBreakdownError(
                    f"initial grouping references unknown dimension "
                    f"'{dim_id}'.{_suggestion(dim_id, available)}",
                    dimension=dim_id,
                )

        return self

    @property
    def dimension_ids(self) -> list[str]:
        """Ids of all dimensions in declaration order"""
        return list(self._dimensions)

    @property
    def measure_ids(self) -> list[str]:
        """Ids of all measures in declaration order"""
        return list(self._measures)

    def has_dimension(self, dim_id: str) -> bool:
        return dim_id in self._dimensions

    def has_measure(self, measure_id: str) -> bool:
        return measure_id in self._measures

    def dimension(self, dim_id: str) -> Dimension:
        """
        Get dimension by id.

        Raises:
            NoSuchDimensionError: If dimension not found
        """
        try:
            return self._dimensions[dim_id]
        except (KeyError, TypeError):
            available = list(self._dimensions)
            raise NoSuchDimensionError(
                f"Cube has no dimension '{dim_id}'."
                f"{_suggestion(str(dim_id), available)} "
                f"Available dimensions: {', '.join(available) or 'none'}"
            ) from None

    def measure(self, measure_id: str) -> Measure:
        """
        Get measure by id.

        Raises:
            NoSuchMeasureError: If measure not found
        """
        try:
            return self._measures[measure_id]
        except (KeyError, TypeError):
            available = list(self._measures)
            raise NoSuchMeasureError(
                f"Cube has no measure '{measure_id}'."
                f"{_suggestion(str(measure_id), available)} "
                f"Available measures: {', '.join(available) or 'none'}"
            ) from None

    def get_measures(self, ids: list[str] | None = None) -> list[Measure]:
        """Get measures by id, all measures when `ids` is None. Order follows
        the declaration order of the cube."""
        if ids is None:
            return list(self.measures)
        wanted = {self.measure(measure_id).id for measure_id in ids}
        return [measure for measure in self.measures if measure.id in wanted]

    def with_data(self, data: list[Any]) -> CubeConfig:
        """Returns a configuration with the same descriptors and breakdown
        policy over another data set."""
        return self.__class__(
            data=data,
            dimensions=self.dimensions,
            measures=self.measures,
            breakdown_map=self.breakdown_map,
            initial_grouping=self.initial_grouping,
        )

    def with_breakdown_map(self, breakdown_map: dict[str, str | None]) -> CubeConfig:
        """Returns a configuration with another breakdown map."""
        return self.__class__(
            data=self.data,
            dimensions=self.dimensions,
            measures=self.measures,
            breakdown_map=breakdown_map,
            initial_grouping=self.initial_grouping,
        )

    def __repr__(self) -> str:
        return (
            f"CubeConfig(dimensions={self.dimension_ids!r}, "
            f"measures={self.measure_ids!r}, items={len(self.data)})"
        )
