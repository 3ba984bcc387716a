"""
Tests for path filtering, grouping, grand totals and tree building.
"""

import pytest

from drillcube.errors import ArgumentError, NoSuchDimensionError
from drillcube.metadata import (
    CubeConfig,
    create_dimension,
    create_measure,
    field_dimension,
    field_measure,
)
from drillcube.metadata.functions import aggregate_avg, aggregate_sum
from drillcube.query.cells import (
    RAW_DATA_KEY,
    RAW_DATA_LABEL,
    find_groups,
    flatten_groups,
    get_cell_value,
    get_formatted_cell_value,
)
from drillcube.query.engine import (
    OrderDirection,
    build_tree,
    compute_filtered_data,
    compute_grand_totals,
    compute_groups,
    sort_groups,
)
from drillcube.query.filters import DimensionFilter, FilterOperator, apply_filters
from drillcube.query.paths import ZoomPathEntry

ENTRIES = [
    {"id": 1, "project": "webapp", "contractor": "alice", "taskId": "dev", "hours": 4, "rate": 100},
    {"id": 2, "project": "webapp", "contractor": "bob", "taskId": "dev", "hours": 2, "rate": 80},
    {"id": 3, "project": "mobile", "contractor": "alice", "taskId": "qa", "hours": 1, "rate": 100},
    {"id": 4, "project": "webapp", "contractor": "alice", "taskId": "qa", "hours": 3, "rate": 100},
    {"id": 5, "project": "api", "contractor": None, "taskId": "dev", "hours": 6, "rate": 50},
]


def make_config(data=ENTRIES, breakdown_map=None):
    return CubeConfig(
        data=data,
        dimensions=[
            field_dimension("project", "Project"),
            field_dimension(
                "contractor", "Contractor", label_mapping={"alice": "Alice A."}
            ),
            field_dimension("task", "Task", "taskId"),
        ],
        measures=[
            field_measure("hours", "Hours", "hours", "sum", "duration"),
            field_measure("rate", "Average rate", "rate", "avg"),
            field_measure("entries", "Entries", "id", "count"),
        ],
        breakdown_map=breakdown_map or {},
    )


class TestScenarioA:
    """Task breakdown with a summed hours measure"""

    def setup_method(self):
        self.config = CubeConfig(
            data=[
                {"taskId": "dev", "hours": 2},
                {"taskId": "dev", "hours": 3},
                {"taskId": "qa", "hours": 1},
            ],
            dimensions=[
                create_dimension(id="task", get_value=lambda item: item["taskId"])
            ],
            measures=[
                create_measure(
                    id="hours",
                    get_value=lambda item: item["hours"],
                    aggregate=aggregate_sum,
                )
            ],
            breakdown_map={"": "task"},
        )

    def test_groups(self):
        groups = compute_groups(self.config, self.config.data, "task")

        assert [(g.key, g.item_count, get_cell_value(g, "hours")) for g in groups] == [
            ("dev", 2, 5),
            ("qa", 1, 1),
        ]

    def test_grand_total(self):
        totals = compute_grand_totals(self.config, self.config.data)
        assert [(cell.measure_id, cell.value) for cell in totals] == [("hours", 6)]


class TestFilteredData:
    def setup_method(self):
        self.config = make_config()

    def test_root_path_keeps_all_items(self):
        assert compute_filtered_data(self.config, []) == ENTRIES

    def test_path_entries_are_applied_in_sequence(self):
        path = [("project", "webapp"), ("contractor", "alice")]
        result = compute_filtered_data(self.config, path)
        assert [item["id"] for item in result] == [1, 4]

    def test_equality_through_canonical_key(self):
        data = [{"size": 2}, {"size": 2.0}, {"size": "2"}, {"size": 3}]
        config = CubeConfig(
            data=data,
            dimensions=[field_dimension("size")],
            measures=[field_measure("size")],
        )
        assert len(compute_filtered_data(config, [("size", 2.0)])) == 3

    def test_missing_values(self):
        result = compute_filtered_data(self.config, [("contractor", None)])
        assert [item["id"] for item in result] == [5]

    def test_explicit_items(self):
        result = compute_filtered_data(self.config, [("task", "qa")], ENTRIES[:3])
        assert [item["id"] for item in result] == [3]


class TestGroups:
    def setup_method(self):
        self.config = make_config()

    def test_first_seen_order(self):
        groups = compute_groups(self.config, ENTRIES, "project")
        assert [g.key for g in groups] == ["webapp", "mobile", "api"]

    @pytest.mark.parametrize("dimension_id", ["project", "contractor", "task"])
    def test_partition_law(self, dimension_id):
        groups = compute_groups(self.config, ENTRIES, dimension_id)

        members = [item for group in groups for item in group.items]
        assert sorted(item["id"] for item in members) == [1, 2, 3, 4, 5]
        assert sum(group.item_count for group in groups) == len(ENTRIES)

    def test_grand_totals_are_not_reduced_from_groups(self):
        groups = compute_groups(self.config, ENTRIES, "project")
        totals = compute_grand_totals(self.config, ENTRIES)

        rate = next(cell for cell in totals if cell.measure_id == "rate")
        assert rate.value == pytest.approx((100 + 80 + 100 + 100 + 50) / 5)

        mean_of_means = sum(get_cell_value(g, "rate") for g in groups) / len(groups)
        assert rate.value != pytest.approx(mean_of_means)

    def test_cells(self):
        groups = compute_groups(self.config, ENTRIES, "project")
        webapp = groups[0]

        assert [cell.measure_id for cell in webapp.cells] == ["hours", "rate", "entries"]
        assert get_cell_value(webapp, "hours") == 9
        assert get_formatted_cell_value(webapp, "hours") == "9h"
        assert get_cell_value(webapp, "entries") == 3
        assert get_formatted_cell_value(webapp, "missing") == ""
        assert get_cell_value(webapp, "missing") is None

    def test_labels_come_from_raw_values(self):
        groups = compute_groups(self.config, ENTRIES, "contractor")
        assert [(g.key, g.label) for g in groups] == [
            ("alice", "Alice A."),
            ("bob", "bob"),
            ("__null__", "Unknown"),
        ]

    def test_node_paths(self):
        parent = [("project", "webapp")]
        data = compute_filtered_data(self.config, parent)
        groups = compute_groups(self.config, data, "contractor", path=parent)

        assert groups[0].path == (
            ZoomPathEntry("project", "webapp"),
            ZoomPathEntry("contractor", "alice"),
        )
        assert groups[0].dimension_id == "contractor"
        assert groups[0].value == "alice"

    def test_raw_data_node(self):
        groups = compute_groups(self.config, ENTRIES[:2], None)

        assert len(groups) == 1
        raw = groups[0]
        assert raw.key == RAW_DATA_KEY
        assert raw.label == RAW_DATA_LABEL
        assert raw.is_raw
        assert raw.item_count == 2
        assert raw.items == tuple(ENTRIES[:2])
        assert get_cell_value(raw, "hours") == 6

    def test_items_can_be_excluded(self):
        groups = compute_groups(self.config, ENTRIES, "task", include_items=False)
        assert all(group.items is None for group in groups)
        assert [group.item_count for group in groups] == [3, 2]

    def test_active_measures(self):
        groups = compute_groups(self.config, ENTRIES, "task", active_measures=["entries"])
        assert [cell.measure_id for cell in groups[0].cells] == ["entries"]

    def test_empty_items(self):
        assert compute_groups(self.config, [], "task") == []
        totals = compute_grand_totals(self.config, [])
        assert [cell.value for cell in totals] == [0, 0, 0]

    def test_unknown_breakdown_dimension(self):
        with pytest.raises(NoSuchDimensionError):
            compute_groups(self.config, ENTRIES, "client")

    def test_failing_accessors_degrade_to_unknown_bucket(self):
        config = CubeConfig(
            data=[{"taskId": "dev", "hours": 1}, {"hours": 2}, None],
            dimensions=[
                create_dimension(id="task", get_value=lambda item: item["taskId"])
            ],
            measures=[
                create_measure(
                    id="hours",
                    get_value=lambda item: item["hours"],
                    aggregate=aggregate_avg,
                )
            ],
        )
        groups = compute_groups(config, config.data, "task")

        assert [(g.key, g.label, g.item_count) for g in groups] == [
            ("dev", "dev", 1),
            ("__null__", "Unknown", 2),
        ]
        assert get_cell_value(groups[1], "hours") == 2

    def test_custom_key_over_missing_field(self):
        config = CubeConfig(
            data=[
                {"project": {"id": 1, "title": "Web"}, "hours": 3},
                {"hours": 2},
                {"project": {"id": 1, "title": "Web app"}, "hours": 1},
            ],
            dimensions=[
                field_dimension(
                    "project",
                    get_key=lambda value: value["id"],
                    format_value=lambda value: value["title"],
                )
            ],
            measures=[field_measure("hours")],
        )
        groups = compute_groups(config, config.data, "project")

        assert [(g.key, g.label, g.item_count) for g in groups] == [
            ("1", "Web", 2),
            ("__null__", "Unknown", 1),
        ]
        assert get_cell_value(groups[1], "hours") == 2

        path = [ZoomPathEntry("project", None)]
        assert compute_filtered_data(config, path) == [{"hours": 2}]


class TestFilters:
    def setup_method(self):
        self.config = make_config()

    @pytest.mark.parametrize(
        "dimension_id,operator,value,expected_ids",
        [
            ("project", FilterOperator.EQUALS, "webapp", [1, 2, 4]),
            ("project", FilterOperator.NOT_EQUALS, "webapp", [3, 5]),
            ("task", "in", ["qa"], [3, 4]),
            ("task", "not_in", ["qa"], [1, 2, 5]),
            ("project", "starts_with", "web", [1, 2, 4]),
            ("project", "ends_with", "pi", [5]),
            ("project", "contains", "obi", [3]),
            ("contractor", "equals", None, [5]),
            ("contractor", "contains", "a", [1, 3, 4]),
        ],
    )
    def test_operators(self, dimension_id, operator, value, expected_ids):
        flt = DimensionFilter(dimension_id=dimension_id, operator=operator, value=value)
        result = apply_filters(self.config, ENTRIES, [flt])
        assert [item["id"] for item in result] == expected_ids

    def test_numeric_operators(self):
        config = CubeConfig(
            data=ENTRIES,
            dimensions=[field_dimension("hours")],
            measures=[field_measure("rate")],
        )

        def ids(operator, value):
            flt = DimensionFilter(dimension_id="hours", operator=operator, value=value)
            return [item["id"] for item in apply_filters(config, ENTRIES, [flt])]

        assert ids("greater_than", 3) == [1, 5]
        assert ids("greater_than_or_equal", 3) == [1, 4, 5]
        assert ids("less_than", 2) == [3]
        assert ids("less_than_or_equal", 2) == [2, 3]
        assert ids("greater_than", "3") == []

    def test_filters_are_combined(self):
        filters = [
            DimensionFilter(dimension_id="project", value="webapp"),
            DimensionFilter(dimension_id="task", value="qa"),
        ]
        assert [item["id"] for item in apply_filters(self.config, ENTRIES, filters)] == [4]

    def test_no_filters(self):
        assert apply_filters(self.config, ENTRIES, None) == ENTRIES

    def test_unknown_dimension(self):
        flt = DimensionFilter(dimension_id="client", value="ACME")
        with pytest.raises(NoSuchDimensionError):
            apply_filters(self.config, ENTRIES, [flt])


class TestTree:
    def setup_method(self):
        self.config = make_config(
            breakdown_map={
                "": "project",
                "project:webapp": "contractor",
                "project:mobile": "task",
                "project:webapp|contractor:alice": "task",
            }
        )

    def test_per_branch_hierarchy(self):
        tree = build_tree(self.config)

        assert [node.key for node in tree] == ["webapp", "mobile", "api"]
        webapp, mobile, api = tree

        assert webapp.child_dimension_id == "contractor"
        assert [child.key for child in webapp.children] == ["alice", "bob"]
        assert mobile.child_dimension_id == "task"
        assert [child.key for child in mobile.children] == ["qa"]
        assert api.children == ()

        alice = webapp.children[0]
        assert [child.key for child in alice.children] == ["dev", "qa"]
        assert alice.children[0].path == (
            ZoomPathEntry("project", "webapp"),
            ZoomPathEntry("contractor", "alice"),
            ZoomPathEntry("task", "dev"),
        )

    def test_subgroup_cells_use_full_member_sets(self):
        tree = build_tree(self.config)
        webapp = tree[0]
        assert get_cell_value(webapp, "hours") == sum(
            get_cell_value(child, "hours") for child in webapp.children
        )
        assert get_cell_value(webapp, "rate") == pytest.approx(280 / 3)

    def test_max_depth(self):
        tree = build_tree(self.config, max_depth=1)
        assert [node.children for node in tree] == [(), (), ()]
        assert build_tree(self.config, max_depth=0) == []

    def test_negative_depth(self):
        with pytest.raises(ArgumentError):
            build_tree(self.config, max_depth=-1)

    def test_below_path(self):
        tree = build_tree(self.config, path=[("project", "webapp")])
        assert [node.key for node in tree] == ["alice", "bob"]

    def test_override_map_and_filters(self):
        tree = build_tree(
            self.config,
            {"": "task"},
            filters=[DimensionFilter(dimension_id="project", value="webapp")],
        )
        assert [(node.key, node.item_count) for node in tree] == [("dev", 2), ("qa", 1)]

    def test_items_excluded_by_default(self):
        tree = build_tree(self.config)
        assert all(node.items is None for node in flatten_groups(tree))
        tree = build_tree(self.config, include_items=True)
        assert tree[0].items is not None

    def test_find_and_flatten(self):
        tree = build_tree(self.config)

        flat = flatten_groups(tree)
        assert [node.key for node in flat] == [
            "webapp", "alice", "dev", "qa", "bob", "mobile", "qa", "api",
        ]
        qa_nodes = find_groups(tree, lambda node: node.key == "qa")
        assert len(qa_nodes) == 2
        assert find_groups(tree, lambda node: node.key == "qa", recursive=False) == []


class TestSorting:
    def setup_method(self):
        self.config = make_config()
        self.groups = compute_groups(self.config, ENTRIES, "project")

    def test_by_label(self):
        result = sort_groups(self.groups)
        assert [g.key for g in result] == ["api", "mobile", "webapp"]

    def test_by_measure_descending(self):
        result = sort_groups(self.groups, "hours", OrderDirection.DESC)
        assert [g.key for g in result] == ["webapp", "api", "mobile"]

    def test_by_item_count(self):
        result = sort_groups(self.groups, "item_count", "desc")
        assert [g.key for g in result][0] == "webapp"

    def test_sort_is_a_copy(self):
        sort_groups(self.groups, "hours")
        assert [g.key for g in self.groups] == ["webapp", "mobile", "api"]

    def test_unknown_measure(self):
        with pytest.raises(ArgumentError):
            sort_groups(self.groups, "cost")

    def test_children_are_sorted(self):
        config = make_config(
            breakdown_map={"": "task", "task:dev": "project"}
        )
        tree = build_tree(config)
        result = sort_groups(tree, "entries")
        assert [g.key for g in result] == ["qa", "dev"]
        dev = result[1]
        assert [child.key for child in dev.children] == ["api", "webapp"]
        assert [child.key for child in tree[0].children] == ["webapp", "api"]
