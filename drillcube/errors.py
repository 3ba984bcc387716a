"""Exceptions used in drillcube.

Configuration problems (``ModelError`` and its subclasses) are fatal and are
raised while a cube is being constructed or deserialized. Navigation problems
(``NavigationError``) are recoverable: the rejected command leaves the
navigator state untouched.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "CubeError",
    "ModelError",
    "DuplicateDescriptorError",
    "DanglingBreakdownError",
    "NoSuchDimensionError",
    "NoSuchMeasureError",
    "SerializationError",
    "UnknownTagError",
    "ArgumentError",
    "NavigationError",
]


class CubeError(Exception):
    """Base exception with context preservation."""

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.context = context or {}
        self.cause = cause

    def add_context(self, key: str, value: Any) -> CubeError:
        """Fluent interface for adding context."""
        self.context[key] = value
        return self

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


class ModelError(CubeError):
    """Invalid cube configuration."""


class DuplicateDescriptorError(ModelError):
    """Two dimensions or two measures of one cube share an id."""

    def __init__(self, message: str, *, descriptor_id: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        if descriptor_id is not None:
            self.add_context("id", descriptor_id)


class DanglingBreakdownError(ModelError):
    """A breakdown map entry references a dimension that does not exist."""

    def __init__(
        self,
        message: str,
        *,
        signature: str | None = None,
        dimension: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if signature is not None:
            self.add_context("signature", repr(signature))
        if dimension is not None:
            self.add_context("dimension", dimension)


class NoSuchDimensionError(ModelError, LookupError):
    """Requested dimension does not exist in the cube."""


class NoSuchMeasureError(ModelError, LookupError):
    """Requested measure does not exist in the cube."""


class SerializationError(ModelError):
    """A cube document can not be produced or read."""


class UnknownTagError(SerializationError):
    """A document carries an enum tag with no registered implementation."""

    def __init__(self, message: str, *, field: str | None = None, value: Any = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        if field:
            self.add_context("field", field)
        if value is not None:
            self.add_context("value", value)


class ArgumentError(CubeError, ValueError):
    """Invalid argument passed to an engine function."""


class NavigationError(CubeError):
    """A navigation command was rejected; the navigator state is unchanged."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        requested: str | None = None,
        expected: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if path is not None:
            self.add_context("path", repr(path))
        if requested is not None:
            self.add_context("requested", requested)
        if expected is not None:
            self.add_context("expected", expected)
