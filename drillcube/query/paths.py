"""
Zoom paths, path signatures and breakdown resolution.

A zoom path is the sequence of drill-down selections from the root. Its
signature is the only key used to look up the breakdown dimension of a node,
so branches of the tree can be subdivided by different dimensions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

from ..errors import ArgumentError, DanglingBreakdownError, NavigationError
from ..logging import get_logger
from ..metadata import CubeConfig

__all__ = [
    "ZoomPathEntry",
    "ZoomPath",
    "BreakdownFallback",
    "PATH_SEPARATOR",
    "WILDCARD_VALUE",
    "to_zoom_path",
    "path_signature",
    "wildcard_signature",
    "entry_signature",
    "resolve_breakdown",
    "validate_zoom_path",
    "validate_drill_sequence",
]

PATH_SEPARATOR = "|"
ENTRY_SEPARATOR = ":"
WILDCARD_VALUE = "*"


@dataclass(frozen=True, slots=True)
class ZoomPathEntry:
    """One drill-down selection: a dimension and the selected raw value."""

    dimension_id: str
    dimension_value: Any = None

    def __str__(self) -> str:
        return f"{self.dimension_id}{ENTRY_SEPARATOR}{self.dimension_value}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimension_id": self.dimension_id,
            "dimension_value": self.dimension_value,
        }

    @classmethod
    def from_string(cls, spec_string: str) -> ZoomPathEntry:
        """
        Parse entry from ``"dimension:value"``. The value is kept as a
        string; everything after the first colon belongs to the value.

        Raises:
            ArgumentError: If the string has no dimension part
        """
        if not spec_string:
            raise ArgumentError("Zoom path entry cannot be empty")

        dimension_id, sep, value = spec_string.partition(ENTRY_SEPARATOR)
        if not dimension_id or not sep:
            raise ArgumentError(f"Invalid zoom path entry: '{spec_string}'")

        return cls(dimension_id=dimension_id, dimension_value=value)

    @classmethod
    def from_format(cls, obj: Any) -> ZoomPathEntry:
        """
        Convert various input formats to ZoomPathEntry.

        Supports:
        - ZoomPathEntry: returned as is
        - Tuple or list: (dimension_id, value)
        - Mapping: ``dimension_id``/``dimension_value`` or the camel case
          ``dimensionId``/``dimensionValue`` keys
        - String: ``"dimension:value"``

        Raises:
            ArgumentError: If format is unsupported
        """
        if isinstance(obj, ZoomPathEntry):
            return obj
        elif isinstance(obj, str):
            return cls.from_string(obj)
        elif isinstance(obj, tuple | list) and len(obj) == 2:
            dimension_id, value = obj
            if not dimension_id:
                raise ArgumentError("Dimension cannot be empty")
            return cls(dimension_id=str(dimension_id), dimension_value=value)
        elif isinstance(obj, Mapping):
            dimension_id = obj.get("dimension_id", obj.get("dimensionId"))
            if not dimension_id:
                raise ArgumentError(f"Zoom path entry has no dimension: {obj!r}")
            value = obj.get("dimension_value", obj.get("dimensionValue"))
            return cls(dimension_id=str(dimension_id), dimension_value=value)
        else:
            raise ArgumentError(
                f"Unsupported zoom path entry format: {type(obj)} - {obj}"
            )


ZoomPath: TypeAlias = tuple[ZoomPathEntry, ...]

ZoomPathSpec: TypeAlias = Iterable[ZoomPathEntry | tuple | Mapping | str] | None


def to_zoom_path(path: ZoomPathSpec) -> ZoomPath:
    """Normalize `path` to a tuple of entries. ``None`` is the root path."""
    if path is None:
        return ()
    if isinstance(path, str | ZoomPathEntry | Mapping):
        raise ArgumentError(
            f"Zoom path must be a sequence of entries, not {type(path)}"
        )
    return tuple(ZoomPathEntry.from_format(entry) for entry in path)


class BreakdownFallback(str, Enum):
    """What to do when the breakdown map has no entry for a signature.

    NONE: the node is terminal and shows raw items.
    WILDCARD: consult the signature with every value replaced by ``*``.
    PRIORITY: as WILDCARD, then take the first dimension of the initial
        grouping (or declaration order) that is not already on the path.
    """

    NONE = "none"
    WILDCARD = "wildcard"
    PRIORITY = "priority"


def entry_signature(config: CubeConfig, entry: ZoomPathEntry) -> str:
    dimension = config.dimension(entry.dimension_id)
    return (
        f"{entry.dimension_id}{ENTRY_SEPARATOR}"
        f"{dimension.key(entry.dimension_value)}"
    )


def path_signature(config: CubeConfig, path: ZoomPathSpec) -> str:
    """Canonical signature of `path`: ``"dim:key"`` per entry joined by
    ``"|"``. The root path has the empty signature."""
    return PATH_SEPARATOR.join(
        entry_signature(config, entry) for entry in to_zoom_path(path)
    )


def wildcard_signature(path: ZoomPathSpec) -> str:
    """Signature of `path` with every value replaced by ``*``
    (``"project:*|task:*"``)."""
    return PATH_SEPARATOR.join(
        f"{entry.dimension_id}{ENTRY_SEPARATOR}{WILDCARD_VALUE}"
        for entry in to_zoom_path(path)
    )


def _checked(config: CubeConfig, signature: str, dim_id: str | None) -> str | None:
    if dim_id is not None and not config.has_dimension(dim_id):
        raise DanglingBreakdownError(
            f"dangling breakdown reference to unknown dimension '{dim_id}'",
            signature=signature,
            dimension=dim_id,
        )
    return dim_id


def resolve_breakdown(
    config: CubeConfig,
    path: ZoomPathSpec,
    breakdown_map: Mapping[str, str | None] | None = None,
    fallback: BreakdownFallback | str = BreakdownFallback.NONE,
) -> str | None:
    """
    Dimension that subdivides the node selected by `path`.

    Args:
        config: cube configuration
        path: zoom path of the node
        breakdown_map: map to consult, the configuration's map by default
        fallback: behaviour for signatures missing from the map

    Returns:
        Dimension id, or None when the node shows raw items. An explicit
        ``None`` entry always means raw items, no fallback is tried.

    Raises:
        DanglingBreakdownError: If the matching entry names an unknown
            dimension
    """
    path = to_zoom_path(path)
    fallback = BreakdownFallback(fallback)
    if breakdown_map is None:
        breakdown_map = config.breakdown_map

    signature = path_signature(config, path)
    if signature in breakdown_map:
        return _checked(config, signature, breakdown_map[signature])

    if fallback == BreakdownFallback.NONE:
        return None

    if path:
        wildcard = wildcard_signature(path)
        if wildcard in breakdown_map:
            return _checked(config, wildcard, breakdown_map[wildcard])

    if fallback == BreakdownFallback.PRIORITY:
        used = {entry.dimension_id for entry in path}
        priority = config.initial_grouping or config.dimension_ids
        for dim_id in priority:
            if dim_id not in used:
                get_logger().debug(
                    f"no breakdown for '{signature}', using priority "
                    f"dimension '{dim_id}'"
                )
                return dim_id

    return None


def validate_zoom_path(config: CubeConfig, path: ZoomPathSpec) -> ZoomPath:
    """
    Check the structure of `path`: every dimension exists and no two
    consecutive entries share a dimension.

    Returns:
        The normalized path

    Raises:
        NavigationError: If the path is malformed
    """
    path = to_zoom_path(path)
    previous = None
    for index, entry in enumerate(path):
        if not config.has_dimension(entry.dimension_id):
            raise NavigationError(
                f"Zoom path entry {index} references unknown dimension "
                f"'{entry.dimension_id}'",
                requested=entry.dimension_id,
            )
        if entry.dimension_id == previous:
            raise NavigationError(
                f"Zoom path entries {index - 1} and {index} share dimension "
                f"'{entry.dimension_id}'",
                requested=entry.dimension_id,
            )
        previous = entry.dimension_id
    return path


def validate_drill_sequence(
    config: CubeConfig,
    path: ZoomPathSpec,
    breakdown_map: Mapping[str, str | None] | None = None,
    fallback: BreakdownFallback | str = BreakdownFallback.NONE,
) -> ZoomPath:
    """
    Check that `path` can be reached by drilling from the root: every
    proper prefix resolves to the dimension of the entry that follows it.

    Returns:
        The normalized path

    Raises:
        NavigationError: At the first prefix that resolves elsewhere
    """
    path = validate_zoom_path(config, path)
    for index, entry in enumerate(path):
        prefix = path[:index]
        expected = resolve_breakdown(config, prefix, breakdown_map, fallback)
        if expected != entry.dimension_id:
            raise NavigationError(
                f"Cannot drill into '{entry.dimension_id}' below "
                f"'{path_signature(config, prefix)}'",
                path=path_signature(config, prefix),
                requested=entry.dimension_id,
                expected=str(expected),
            )
    return path
