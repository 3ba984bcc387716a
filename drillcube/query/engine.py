"""
Aggregation engine: path filtering, grouping and measure cells.

Every function here is pure. Group cells and grand totals are always
computed from the full member list of a group, never reduced from the cells
of subgroups.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from enum import Enum
from typing import Any

from ..common import is_number
from ..errors import ArgumentError
from ..logging import get_logger
from ..metadata import CubeConfig, Measure
from .cells import RAW_DATA_KEY, RAW_DATA_LABEL, Cell, GroupNode
from .filters import DimensionFilter, apply_filters
from .paths import (
    BreakdownFallback,
    ZoomPathEntry,
    ZoomPathSpec,
    resolve_breakdown,
    to_zoom_path,
)

__all__ = [
    "OrderDirection",
    "compute_filtered_data",
    "compute_cells",
    "compute_groups",
    "compute_grand_totals",
    "build_tree",
    "sort_groups",
    "DEFAULT_MAX_DEPTH",
]

DEFAULT_MAX_DEPTH = 10

# Sort keys that are group attributes rather than measure ids
SORT_BY_LABEL = "label"
SORT_BY_KEY = "key"
SORT_BY_COUNT = "item_count"


class OrderDirection(str, Enum):
    """Sort direction of groups"""

    ASC = "asc"
    DESC = "desc"


def _measures(config: CubeConfig, active_measures: Iterable[str] | None) -> list[Measure]:
    if active_measures is None:
        return config.get_measures()
    return config.get_measures(list(active_measures))


def compute_filtered_data(
    config: CubeConfig,
    path: ZoomPathSpec,
    items: Sequence[Any] | None = None,
) -> list[Any]:
    """
    Items selected by `path`: each entry keeps the items whose dimension key
    equals the key of the entry value.

    Args:
        config: cube configuration
        path: zoom path
        items: items to filter, the configuration data by default
    """
    result = list(config.data if items is None else items)
    for entry in to_zoom_path(path):
        dimension = config.dimension(entry.dimension_id)
        wanted = dimension.key(entry.dimension_value)
        result = [item for item in result if dimension.item_key(item) == wanted]
    return result


def compute_cells(measures: Iterable[Measure], items: Sequence[Any]) -> tuple[Cell, ...]:
    """One cell per measure, aggregated over all `items`."""
    cells = []
    for measure in measures:
        value = measure.aggregate_items(items)
        cells.append(
            Cell(
                measure_id=measure.id,
                value=value,
                formatted_value=measure.format(value),
            )
        )
    return tuple(cells)


def _bucket(config: CubeConfig, items: Sequence[Any], dimension_id: str) -> dict[str, list[Any]]:
    dimension = config.dimension(dimension_id)
    buckets: dict[str, list[Any]] = {}
    for item in items:
        buckets.setdefault(dimension.item_key(item), []).append(item)
    return buckets


def compute_groups(
    config: CubeConfig,
    items: Sequence[Any],
    breakdown_dimension_id: str | None,
    active_measures: Iterable[str] | None = None,
    include_items: bool = True,
    path: ZoomPathSpec = None,
) -> list[GroupNode]:
    """
    Groups of `items` by `breakdown_dimension_id`, in first-seen key order.

    Without a breakdown dimension the result is a single raw data node
    wrapping all items.

    Args:
        config: cube configuration
        items: items to group, usually the filtered data of `path`
        breakdown_dimension_id: grouping dimension or None
        active_measures: measure ids to compute, all measures by default
        include_items: keep the member items on the nodes
        path: zoom path of the parent node, used to build node paths
    """
    measures = _measures(config, active_measures)
    path = to_zoom_path(path)
    items = list(items)

    if breakdown_dimension_id is None:
        return [
            GroupNode(
                key=RAW_DATA_KEY,
                label=RAW_DATA_LABEL,
                item_count=len(items),
                cells=compute_cells(measures, items),
                items=tuple(items) if include_items else None,
                path=path,
            )
        ]

    dimension = config.dimension(breakdown_dimension_id)
    groups = []
    for key, members in _bucket(config, items, breakdown_dimension_id).items():
        value = dimension.value(members[0])
        groups.append(
            GroupNode(
                key=key,
                label=dimension.label(value),
                item_count=len(members),
                cells=compute_cells(measures, members),
                items=tuple(members) if include_items else None,
                dimension_id=dimension.id,
                value=value,
                path=path + (ZoomPathEntry(dimension.id, value),),
            )
        )

    get_logger().debug(
        f"grouped {len(items)} items by '{dimension.id}' into {len(groups)} groups"
    )
    return groups


def compute_grand_totals(
    config: CubeConfig,
    items: Sequence[Any],
    active_measures: Iterable[str] | None = None,
) -> tuple[Cell, ...]:
    """Cells of all measures over the full `items` set."""
    return compute_cells(_measures(config, active_measures), list(items))


def build_tree(
    config: CubeConfig,
    breakdown_map: Mapping[str, str | None] | None = None,
    path: ZoomPathSpec = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    *,
    items: Sequence[Any] | None = None,
    filters: Iterable[DimensionFilter] | None = None,
    active_measures: Iterable[str] | None = None,
    include_items: bool = False,
    fallback: BreakdownFallback | str = BreakdownFallback.NONE,
) -> list[GroupNode]:
    """
    Full hierarchy below the node selected by `path`.

    Each node is subdivided by the breakdown resolved for its own path, so
    sibling branches may use different dimensions. Nodes without a breakdown
    are leaves. Levels deeper than `max_depth` below the root are not built.

    Returns:
        Top level groups of the node, empty when the node has no breakdown
    """
    if max_depth < 0:
        raise ArgumentError("max_depth must not be negative")

    path = to_zoom_path(path)
    data = apply_filters(config, config.data if items is None else items, filters)
    data = compute_filtered_data(config, path, data)
    measures = list(active_measures) if active_measures is not None else None

    def build(node_items: list[Any], node_path: tuple, depth: int) -> list[GroupNode]:
        if depth >= max_depth or not node_items:
            return []
        dim_id = resolve_breakdown(config, node_path, breakdown_map, fallback)
        if dim_id is None:
            return []

        nodes = []
        for group in compute_groups(
            config, node_items, dim_id, measures, True, node_path
        ):
            children = build(list(group.items), group.path, depth + 1)
            nodes.append(
                replace(
                    group,
                    items=group.items if include_items else None,
                    child_dimension_id=children[0].dimension_id if children else None,
                    children=tuple(children),
                )
            )
        return nodes

    return build(data, path, len(path))


def _sort_value(group: GroupNode, by: str) -> Any:
    if by == SORT_BY_LABEL:
        return group.label.casefold()
    if by == SORT_BY_KEY:
        return group.key
    if by == SORT_BY_COUNT:
        return group.item_count
    cell = group.cell(by)
    if cell is None:
        raise ArgumentError(f"Cannot sort by '{by}': no such measure cell")
    return cell.value


def sort_groups(
    groups: Iterable[GroupNode],
    by: str = SORT_BY_LABEL,
    direction: OrderDirection | str = OrderDirection.ASC,
    recursive: bool = True,
) -> list[GroupNode]:
    """
    Sorted copy of `groups`.

    Args:
        groups: groups to sort
        by: ``"label"``, ``"key"``, ``"item_count"`` or a measure id
        direction: ``"asc"`` or ``"desc"``
        recursive: sort children as well

    Measure values that are not numbers are placed last in both directions.
    """
    direction = OrderDirection(direction)
    groups = list(groups)
    if not groups:
        return groups

    values = [(group, _sort_value(group, by)) for group in groups]
    if by in (SORT_BY_LABEL, SORT_BY_KEY, SORT_BY_COUNT):
        ordered = sorted(
            values,
            key=lambda pair: pair[1],
            reverse=direction == OrderDirection.DESC,
        )
    else:
        numeric = [pair for pair in values if is_number(pair[1])]
        other = [pair for pair in values if not is_number(pair[1])]
        ordered = sorted(
            numeric,
            key=lambda pair: pair[1],
            reverse=direction == OrderDirection.DESC,
        ) + other

    result = []
    for group, _ in ordered:
        if recursive and group.children:
            group = replace(
                group,
                children=tuple(sort_groups(group.children, by, direction, recursive)),
            )
        result.append(group)
    return result
