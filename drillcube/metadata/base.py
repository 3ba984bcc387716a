"""
Pydantic base class for the cube descriptors.

Descriptors are immutable value objects: a dimension or a measure is a bundle
of identity fields plus plain callables (value extraction, keying,
aggregation, formatting). Behaviour is selected by the callables a descriptor
carries, never by subclassing.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..common import to_label
from ..errors import ArgumentError, ModelError


class DescriptorObject(BaseModel):
    """
    Base class for dimension and measure descriptors.

    Uses Pydantic for validation and keeps instances frozen once built.
    """

    model_config = ConfigDict(
        # Descriptors never change after construction
        frozen=True,
        # Unknown keys are configuration mistakes
        extra="forbid",
        # Serialize enums by value
        use_enum_values=True,
        # Callables are stored as-is
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )

    id: str = Field(..., description="Unique identifier within a cube")
    name: str = Field(..., description="Human-readable name")
    icon: str | None = Field(None, description="Optional icon or emoji for UI")
    description: str | None = Field(None, description="Detailed description")
    info: dict[str, Any] = Field(
        default_factory=dict, description="Additional metadata"
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate that id is a non-empty string."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("id must be a non-empty string")
        return v

    @field_validator("info", mode="before")
    @classmethod
    def validate_info(cls, v: Any) -> dict[str, Any]:
        """Ensure info is always a dictionary."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("info must be a dictionary")
        return v

    @classmethod
    def from_metadata(cls, metadata: Any, **overrides: Any):
        """
        Create instance from metadata.

        Args:
            metadata: A dictionary with descriptor fields or an instance of
                the class
            **overrides: Fields that replace or complete `metadata`

        Returns:
            New instance of the class

        Raises:
            ArgumentError: If metadata type is invalid
            ModelError: If object creation fails
        """
        if isinstance(metadata, cls) and not overrides:
            return metadata

        if isinstance(metadata, cls):
            data = {
                name: getattr(metadata, name) for name in cls.model_fields
            }
        elif metadata is None:
            data = {}
        elif isinstance(metadata, dict):
            data = dict(metadata)
        else:
            raise ArgumentError(f"Invalid metadata type: {type(metadata)}")

        data.update(overrides)

        if data.get("id") and not data.get("name"):
            data["name"] = to_label(str(data["id"]))

        try:
            return cls(**data)
        except ValidationError as e:
            raise ModelError(
                f"Failed to create {cls.__name__} '{data.get('id')}': {e}"
            ) from e

    def __str__(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.id))
