"""Computation over a cube configuration: paths, aggregation and navigation."""

from .browser import (
    Breadcrumb,
    CubeNavigator,
    CubeState,
    NavigatorOptions,
    PathValidation,
)
from .cells import (
    RAW_DATA_KEY,
    RAW_DATA_LABEL,
    Cell,
    GroupNode,
    find_groups,
    flatten_groups,
    get_cell_value,
    get_formatted_cell_value,
)
from .engine import (
    OrderDirection,
    build_tree,
    compute_cells,
    compute_filtered_data,
    compute_grand_totals,
    compute_groups,
    sort_groups,
)
from .filters import DimensionFilter, FilterOperator, apply_filters
from .paths import (
    BreakdownFallback,
    ZoomPath,
    ZoomPathEntry,
    path_signature,
    resolve_breakdown,
    to_zoom_path,
    validate_drill_sequence,
    validate_zoom_path,
    wildcard_signature,
)

__all__ = [
    "Breadcrumb",
    "CubeNavigator",
    "CubeState",
    "NavigatorOptions",
    "PathValidation",
    "RAW_DATA_KEY",
    "RAW_DATA_LABEL",
    "Cell",
    "GroupNode",
    "find_groups",
    "flatten_groups",
    "get_cell_value",
    "get_formatted_cell_value",
    "OrderDirection",
    "build_tree",
    "compute_cells",
    "compute_filtered_data",
    "compute_grand_totals",
    "compute_groups",
    "sort_groups",
    "DimensionFilter",
    "FilterOperator",
    "apply_filters",
    "BreakdownFallback",
    "ZoomPath",
    "ZoomPathEntry",
    "path_signature",
    "resolve_breakdown",
    "to_zoom_path",
    "validate_drill_sequence",
    "validate_zoom_path",
    "wildcard_signature",
]
