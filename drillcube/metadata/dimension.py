"""
Dimension descriptors.

A dimension derives three things from an item: the raw value
(`get_value`), the canonical bucket key (`get_key`) and the display label
(`format_value`). Items with equal keys belong to the same group even when
their raw values differ.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from functools import partial
from typing import Any

from pydantic import Field, field_validator, model_validator

from ..common import NULL_KEY, canonical_key, default_label, read_field
from ..logging import get_logger
from .base import DescriptorObject

__all__ = [
    "Dimension",
    "KeyField",
    "create_dimension",
    "field_dimension",
]

# Accessor failures that are treated as a missing value
ACCESSOR_ERRORS = (KeyError, AttributeError, IndexError, TypeError)


class KeyField(str, Enum):
    """How a serialized dimension derives its bucket key"""

    SAME = "same"  # key is the canonical form of the field value
    CUSTOM = "custom"  # key is computed by a dedicated function


class Dimension(DescriptorObject):
    """A named way of deriving a grouping key, value and label from an item.

    Only `get_value` is required. Without `get_key` the key is the canonical
    string form of the value (``None`` becomes ``"__null__"``). Without
    `format_value` the label comes from `label_mapping` when it has an entry
    for the value, otherwise it is the key (``"Unknown"`` for ``None``).
    """

    get_value: Callable[[Any], Any] = Field(
        ..., description="Extracts the raw dimension value from an item"
    )
    get_key: Callable[[Any], Any] | None = Field(
        None, description="Canonical bucket key of a raw value"
    )
    format_value: Callable[[Any], Any] | None = Field(
        None, description="Display label of a raw value"
    )

    # Declarative form, required for serialization
    field_name: str | None = Field(
        None, description="Item field the value is read from"
    )
    key_field_name: KeyField | None = Field(
        None, description="Whether the key is the value itself or custom"
    )
    label_mapping: dict[str, str] | None = Field(
        None, description="Raw value (canonical form) to display label"
    )

    @model_validator(mode="before")
    @classmethod
    def default_key_field(cls, data: Any) -> Any:
        """Custom key functions imply a 'custom' key field."""
        if isinstance(data, dict) and data.get("key_field_name") is None:
            data = dict(data)
            data["key_field_name"] = (
                KeyField.CUSTOM if data.get("get_key") is not None else KeyField.SAME
            )
        return data

    @field_validator("label_mapping", mode="before")
    @classmethod
    def validate_label_mapping(cls, v: Any) -> dict[str, str] | None:
        if v is None:
            return None
        if not isinstance(v, dict):
            raise ValueError("label_mapping must be a dictionary")
        return {canonical_key(key): str(label) for key, label in v.items()}

    def value(self, item: Any) -> Any:
        """Raw value of the dimension for `item`. A failing accessor yields
        ``None``."""
        try:
            return self.get_value(item)
        except ACCESSOR_ERRORS as e:
            get_logger().debug(
                f"dimension '{self.id}' could not read item value: {e!r}"
            )
            return None

    def key(self, value: Any) -> str:
        """Canonical bucket key of a raw value. Missing values (``None``)
        and values the key function can not handle share the null key."""
        if self.get_key is None or value is None:
            return canonical_key(value)
        try:
            return canonical_key(self.get_key(value))
        except ACCESSOR_ERRORS as e:
            get_logger().debug(
                f"dimension '{self.id}' could not key value {value!r}: {e!r}"
            )
            return NULL_KEY

    def label(self, value: Any) -> str:
        """Display label of a raw value."""
        if self.format_value is not None and value is not None:
            try:
                return str(self.format_value(value))
            except ACCESSOR_ERRORS as e:
                get_logger().debug(
                    f"dimension '{self.id}' could not format value {value!r}: {e!r}"
                )
        if self.label_mapping:
            mapped = self.label_mapping.get(canonical_key(value))
            if mapped is not None:
                return mapped
        return default_label(value)

    def item_key(self, item: Any) -> str:
        """Bucket key of `item`."""
        return self.key(self.value(item))

    @property
    def has_custom_functions(self) -> bool:
        return self.get_key is not None or self.format_value is not None

    @property
    def is_serializable(self) -> bool:
        """Only field dimensions without key or format functions survive a
        document round trip."""
        return self.field_name is not None and not self.has_custom_functions


def create_dimension(spec: Any = None, **kwargs: Any) -> Dimension:
    """Creates a dimension from a mapping or keyword arguments.

    `name` defaults to a label derived from `id`. Missing `id` or
    `get_value` raise `ModelError`.

    Example::

        create_dimension(id="task", get_value=lambda item: item["taskId"])
    """
    return Dimension.from_metadata(spec, **kwargs)


def field_dimension(
    id: str,
    name: str | None = None,
    field_name: str | None = None,
    *,
    get_key: Callable[[Any], Any] | None = None,
    format_value: Callable[[Any], Any] | None = None,
    label_mapping: dict[Any, str] | None = None,
    key_field_name: KeyField | str | None = None,
    icon: str | None = None,
    description: str | None = None,
) -> Dimension:
    """Creates a dimension reading the item field `field_name` (defaults to
    `id`). Dotted names read nested records."""
    field_name = field_name or id
    return create_dimension(
        id=id,
        name=name,
        icon=icon,
        description=description,
        get_value=partial(read_field, field_name=field_name),
        get_key=get_key,
        format_value=format_value,
        field_name=field_name,
        key_field_name=key_field_name,
        label_mapping=label_mapping,
    )
