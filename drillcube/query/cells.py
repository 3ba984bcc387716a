"""
Result values of the aggregation engine: measure cells and group nodes.

Both are immutable and recomputed in full whenever the navigation state
changes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from .paths import ZoomPath

__all__ = [
    "Cell",
    "GroupNode",
    "RAW_DATA_KEY",
    "RAW_DATA_LABEL",
    "get_cell_value",
    "get_formatted_cell_value",
    "find_groups",
    "flatten_groups",
]

# Key and label of the node wrapping items of a node without breakdown
RAW_DATA_KEY = "__raw__"
RAW_DATA_LABEL = "Raw data"


@dataclass(frozen=True, slots=True)
class Cell:
    """Aggregated value of one measure."""

    measure_id: str
    value: Any
    formatted_value: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "measure_id": self.measure_id,
            "value": self.value,
            "formatted_value": self.formatted_value,
        }


@dataclass(frozen=True, slots=True)
class GroupNode:
    """
    One group of items sharing a bucket key.

    Attributes:
        key: canonical bucket key
        label: display label of the first member's raw value
        item_count: number of members
        cells: one cell per active measure
        items: members, unless items were excluded from the result
        dimension_id: dimension the node groups by, None for raw data
        value: raw dimension value of the first member
        path: zoom path selecting this node
        child_dimension_id: breakdown resolved for the node (tree only)
        children: subgroups (tree only)
    """

    key: str
    label: str
    item_count: int
    cells: tuple[Cell, ...]
    items: tuple[Any, ...] | None = None
    dimension_id: str | None = None
    value: Any = None
    path: ZoomPath = ()
    child_dimension_id: str | None = None
    children: tuple[GroupNode, ...] = field(default_factory=tuple)

    @property
    def is_raw(self) -> bool:
        return self.dimension_id is None

    def cell(self, measure_id: str) -> Cell | None:
        for cell in self.cells:
            if cell.measure_id == measure_id:
                return cell
        return None

    def to_dict(self, include_items: bool = False) -> dict[str, Any]:
        result = {
            "key": self.key,
            "label": self.label,
            "item_count": self.item_count,
            "dimension_id": self.dimension_id,
            "path": [entry.to_dict() for entry in self.path],
            "cells": [cell.to_dict() for cell in self.cells],
        }
        if include_items and self.items is not None:
            result["items"] = list(self.items)
        if self.child_dimension_id is not None:
            result["child_dimension_id"] = self.child_dimension_id
        if self.children:
            result["children"] = [
                child.to_dict(include_items) for child in self.children
            ]
        return result


def get_cell_value(group: GroupNode, measure_id: str) -> Any:
    """Aggregated value of `measure_id` in `group`, None when absent."""
    cell = group.cell(measure_id)
    return cell.value if cell is not None else None


def get_formatted_cell_value(group: GroupNode, measure_id: str) -> str:
    cell = group.cell(measure_id)
    if cell is None:
        return ""
    return cell.formatted_value


def find_groups(
    groups: Iterable[GroupNode],
    predicate: Callable[[GroupNode], bool],
    recursive: bool = True,
) -> list[GroupNode]:
    """Groups matching `predicate`, depth first. Children are searched
    unless `recursive` is false."""
    results = []
    for group in groups:
        if predicate(group):
            results.append(group)
        if recursive and group.children:
            results.extend(find_groups(group.children, predicate, recursive))
    return results


def flatten_groups(groups: Iterable[GroupNode]) -> list[GroupNode]:
    """All groups of a tree in depth-first order."""
    return find_groups(groups, lambda group: True)
