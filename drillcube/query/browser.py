"""
Drill-down navigation over a cube.

`CubeNavigator` owns the only mutable navigation resources, the zoom path
and the breakdown map, and publishes an immutable `CubeState` snapshot after
every accepted command. Rejected commands raise `NavigationError` and leave
the state unchanged.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from ..errors import NavigationError, NoSuchDimensionError
from ..logging import get_logger
from ..metadata import CubeConfig
from ..serialization import serialize_cube
from .cells import Cell, GroupNode
from .engine import (
    DEFAULT_MAX_DEPTH,
    build_tree,
    compute_filtered_data,
    compute_grand_totals,
    compute_groups,
)
from .filters import DimensionFilter, FilterOperator, apply_filters
from .paths import (
    BreakdownFallback,
    ZoomPath,
    ZoomPathEntry,
    ZoomPathSpec,
    path_signature,
    resolve_breakdown,
    to_zoom_path,
    validate_drill_sequence,
    validate_zoom_path,
)

__all__ = [
    "PathValidation",
    "NavigatorOptions",
    "Breadcrumb",
    "CubeState",
    "CubeNavigator",
]

ROOT_SIGNATURE = ""


class PathValidation(str, Enum):
    """How `set_zoom_path` checks a requested path.

    STRICT: every proper prefix must resolve to the dimension of the next
        entry, as if the path had been reached by drilling.
    LENIENT: only the structure is checked (known dimensions, no two
        consecutive entries on one dimension); arbitrary jumps are allowed.
    """

    STRICT = "strict"
    LENIENT = "lenient"


class NavigatorOptions(BaseModel):
    """Navigator configuration"""

    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=True)

    include_items: bool = Field(
        True, description="Keep member items on the group nodes"
    )
    path_validation: PathValidation = Field(
        PathValidation.STRICT, description="Validation mode of set_zoom_path"
    )
    breakdown_fallback: BreakdownFallback = Field(
        BreakdownFallback.NONE,
        description="Resolution of signatures missing from the breakdown map",
    )
    active_measures: list[str] | None = Field(
        None, description="Measure ids to compute, all measures when None"
    )
    max_depth: PositiveInt = Field(
        DEFAULT_MAX_DEPTH, description="Maximum depth of tree views"
    )


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    """One step of the current zoom path, for display."""

    index: int
    dimension_id: str
    dimension_name: str
    value: Any
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "dimension_id": self.dimension_id,
            "dimension_name": self.dimension_name,
            "value": self.value,
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class CubeState:
    """Immutable snapshot of a navigator."""

    path: ZoomPath
    filtered_data: tuple[Any, ...]
    breakdown_dimension_id: str | None
    groups: tuple[GroupNode, ...]
    grand_totals: tuple[Cell, ...]
    breadcrumbs: tuple[Breadcrumb, ...] = ()

    @property
    def total_items(self) -> int:
        return len(self.filtered_data)

    @property
    def is_root(self) -> bool:
        return not self.path

    def grand_total(self, measure_id: str) -> Cell | None:
        for cell in self.grand_totals:
            if cell.measure_id == measure_id:
                return cell
        return None

    def to_dict(self, include_items: bool = False) -> dict[str, Any]:
        return {
            "path": [entry.to_dict() for entry in self.path],
            "breakdown_dimension_id": self.breakdown_dimension_id,
            "total_items": self.total_items,
            "groups": [group.to_dict(include_items) for group in self.groups],
            "grand_totals": [cell.to_dict() for cell in self.grand_totals],
            "breadcrumbs": [crumb.to_dict() for crumb in self.breadcrumbs],
        }


StateListener = Callable[[CubeState], Any]


class CubeNavigator:
    """
    Drill-down controller of one cube.

    States are the root (empty path) and any drilled path. A node can always
    be drilled further when a breakdown is resolved for its signature,
    otherwise it shows raw items.

    Every accepted command recomputes the state in full and notifies the
    listeners. All commands run under one re-entrant lock.
    """

    def __init__(
        self,
        config: CubeConfig,
        options: NavigatorOptions | None = None,
        **option_values: Any,
    ):
        if options is None:
            options = NavigatorOptions(**option_values)
        elif option_values:
            options = NavigatorOptions(**{**options.model_dump(), **option_values})

        for measure_id in options.active_measures or []:
            config.measure(measure_id)

        self.config = config
        self.options = options
        self.logger = get_logger()

        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []
        self._filters: list[DimensionFilter] = []
        self._path: ZoomPath = ()
        self._breakdown_map: dict[str, str | None] = dict(config.breakdown_map)

        if ROOT_SIGNATURE not in self._breakdown_map and config.initial_grouping:
            self._breakdown_map[ROOT_SIGNATURE] = config.initial_grouping[0]

        self._state = self._compute(self._path)

    # ========================================
    # State access
    # ========================================

    @property
    def state(self) -> CubeState:
        return self._state

    @property
    def path(self) -> ZoomPath:
        return self._path

    @property
    def breakdown_map(self) -> dict[str, str | None]:
        """Copy of the current breakdown map"""
        with self._lock:
            return dict(self._breakdown_map)

    @property
    def filters(self) -> tuple[DimensionFilter, ...]:
        return tuple(self._filters)

    def resolve_breakdown(self, path: ZoomPathSpec = None) -> str | None:
        """Breakdown of the node at `path` (the current path by default)."""
        with self._lock:
            if path is None:
                path = self._path
            return resolve_breakdown(
                self.config,
                path,
                self._breakdown_map,
                self.options.breakdown_fallback,
            )

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Registers `listener` to receive every new state. Returns a
        function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def remove():
            self.remove_listener(listener)

        return remove

    def remove_listener(self, listener: StateListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ========================================
    # Navigation commands
    # ========================================

    def drill_into(self, dimension_id: str, value: Any) -> CubeState:
        """
        Select the child of the current node with `value` of `dimension_id`.

        Raises:
            NavigationError: If the current node is not broken down by
                `dimension_id`
        """
        with self._lock:
            expected = self.resolve_breakdown()
            if dimension_id is None or expected != dimension_id:
                signature = path_signature(self.config, self._path)
                self.logger.warning(
                    f"rejected drill into '{dimension_id}' at '{signature}', "
                    f"node is broken down by '{expected}'"
                )
                raise NavigationError(
                    f"Cannot drill into '{dimension_id}': node '{signature}' "
                    f"is broken down by '{expected}'",
                    path=signature,
                    requested=dimension_id,
                    expected=str(expected),
                )
            path = self._path + (ZoomPathEntry(dimension_id, value),)
            return self._transition(path)

    def up(self) -> CubeState:
        """Go to the parent node. At the root this does nothing."""
        with self._lock:
            return self._transition(self._path[:-1])

    def navigate_to_level(self, index: int) -> CubeState:
        """Keep the path up to and including entry `index`; ``-1`` returns
        to the root."""
        with self._lock:
            if index < -1 or index >= len(self._path):
                raise NavigationError(
                    f"No level {index} in a path of length {len(self._path)}",
                    path=path_signature(self.config, self._path),
                )
            return self._transition(self._path[: index + 1])

    def reset(self) -> CubeState:
        """Return to the root."""
        with self._lock:
            return self._transition(())

    def set_zoom_path(self, path: ZoomPathSpec) -> CubeState:
        """
        Jump to `path`. A prefix of the current path is always accepted,
        other paths are checked according to the path validation mode.

        Raises:
            NavigationError: If the path is rejected
        """
        with self._lock:
            path = to_zoom_path(path)
            if path != self._path[: len(path)]:
                try:
                    if self.options.path_validation == PathValidation.STRICT.value:
                        path = validate_drill_sequence(
                            self.config,
                            path,
                            self._breakdown_map,
                            self.options.breakdown_fallback,
                        )
                    else:
                        path = validate_zoom_path(self.config, path)
                except NavigationError as e:
                    self.logger.warning(f"rejected zoom path: {e}")
                    raise
            return self._transition(path)

    def set_node_child_dimension(
        self, path: ZoomPathSpec, dimension_id: str | None
    ) -> CubeState:
        """
        Set the breakdown of the node at `path`. ``None`` makes the node show
        raw items.

        Raises:
            NavigationError: If the dimension or the path is invalid
        """
        with self._lock:
            if dimension_id is not None and not self.config.has_dimension(
                dimension_id
            ):
                raise NavigationError(
                    f"Cannot break down by unknown dimension '{dimension_id}'",
                    requested=dimension_id,
                )
            node_path = validate_zoom_path(self.config, path)
            signature = path_signature(self.config, node_path)
            self._breakdown_map[signature] = dimension_id
            self.logger.debug(
                f"breakdown of '{signature}' set to '{dimension_id}'"
            )
            return self._transition(self._path, force=True)

    def clear_node_child_dimension(self, path: ZoomPathSpec) -> CubeState:
        """Remove the breakdown override of the node at `path`."""
        with self._lock:
            node_path = validate_zoom_path(self.config, path)
            signature = path_signature(self.config, node_path)
            if signature not in self._breakdown_map:
                return self._state
            del self._breakdown_map[signature]
            return self._transition(self._path, force=True)

    # ========================================
    # Filters
    # ========================================

    def add_filter(
        self,
        filter: DimensionFilter | str,
        operator: FilterOperator | str = FilterOperator.EQUALS,
        value: Any = None,
    ) -> CubeState:
        """
        Add a filter, replacing any filter on the same dimension. Accepts a
        `DimensionFilter` or its dimension id, operator and value.

        Raises:
            NavigationError: If the filter names an unknown dimension
        """
        if not isinstance(filter, DimensionFilter):
            filter = DimensionFilter(
                dimension_id=filter, operator=operator, value=value
            )
        with self._lock:
            if not self.config.has_dimension(filter.dimension_id):
                raise NavigationError(
                    f"Cannot filter by unknown dimension '{filter.dimension_id}'",
                    requested=filter.dimension_id,
                )
            self._filters = [
                flt for flt in self._filters
                if flt.dimension_id != filter.dimension_id
            ]
            self._filters.append(filter)
            return self._transition(self._path, force=True)

    def remove_filter(self, dimension_id: str) -> CubeState:
        with self._lock:
            self._filters = [
                flt for flt in self._filters if flt.dimension_id != dimension_id
            ]
            return self._transition(self._path, force=True)

    def clear_filters(self) -> CubeState:
        with self._lock:
            self._filters = []
            return self._transition(self._path, force=True)

    # ========================================
    # Views
    # ========================================

    def build_tree(self, max_depth: int | None = None) -> list[GroupNode]:
        """Full hierarchy below the current node."""
        with self._lock:
            return build_tree(
                self.config,
                self._breakdown_map,
                self._path,
                self.options.max_depth if max_depth is None else max_depth,
                filters=self._filters,
                active_measures=self.options.active_measures,
                include_items=self.options.include_items,
                fallback=self.options.breakdown_fallback,
            )

    def to_document(self) -> dict[str, Any]:
        """Cube document of the configuration with the current breakdown
        map."""
        with self._lock:
            config = self.config.with_breakdown_map(self._breakdown_map)
        return serialize_cube(config)

    # ========================================
    # Internals
    # ========================================

    def _transition(self, path: ZoomPath, force: bool = False) -> CubeState:
        if path == self._path and not force:
            return self._state

        state = self._compute(path)
        self._path = path
        self._state = state

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                # the state is already committed, other listeners still run
                self.logger.exception(
                    f"state listener {listener!r} failed at "
                    f"'{path_signature(self.config, path)}'"
                )
        return state

    def _compute(self, path: ZoomPath) -> CubeState:
        data = apply_filters(self.config, self.config.data, self._filters)
        filtered = compute_filtered_data(self.config, path, data)
        dim_id = resolve_breakdown(
            self.config,
            path,
            self._breakdown_map,
            self.options.breakdown_fallback,
        )
        groups = compute_groups(
            self.config,
            filtered,
            dim_id,
            self.options.active_measures,
            self.options.include_items,
            path,
        )
        totals = compute_grand_totals(
            self.config, filtered, self.options.active_measures
        )

        self.logger.debug(
            f"state at '{path_signature(self.config, path)}': "
            f"{len(filtered)} items, breakdown '{dim_id}', {len(groups)} groups"
        )

        return CubeState(
            path=path,
            filtered_data=tuple(filtered),
            breakdown_dimension_id=dim_id,
            groups=tuple(groups),
            grand_totals=totals,
            breadcrumbs=self._breadcrumbs(path),
        )

    def _breadcrumbs(self, path: ZoomPath) -> tuple[Breadcrumb, ...]:
        crumbs = []
        for index, entry in enumerate(path):
            try:
                dimension = self.config.dimension(entry.dimension_id)
            except NoSuchDimensionError:
                raise NavigationError(
                    f"Zoom path references unknown dimension '{entry.dimension_id}'",
                    requested=entry.dimension_id,
                ) from None
            crumbs.append(
                Breadcrumb(
                    index=index,
                    dimension_id=dimension.id,
                    dimension_name=dimension.name,
                    value=entry.dimension_value,
                    label=dimension.label(entry.dimension_value),
                )
            )
        return tuple(crumbs)
