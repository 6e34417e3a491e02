"""Unit tests for projection module."""

from typing import List

import pytest

from configdiff.differ import DiffState, Diffgram, diff
from configdiff.errors import ProjectionColumnOutOfRange, StaleState
from configdiff.projection import BookmarkLink, PrintProjection, ProjectionColumn, RenderRow, resolve
from configdiff.schema import ColumnType, Relation, SchemaSet, TableSchema
from configdiff.store import store_pair
from configdiff.utils import anchor_id


def _filter_schemas() -> SchemaSet:
    return SchemaSet(
        [
            TableSchema.build("Filter", ["ObjectType", "FilterType"], primary_key=["ObjectType"]),
            TableSchema.build(
                "Condition",
                ["ObjectType", ("Rule", ColumnType.INTEGER), "Attribute"],
                primary_key=["ObjectType", "Rule"],
            ),
        ],
        [Relation("Filter", ("ObjectType",), "Condition", ("ObjectType",))],
    )


def _gram(schemas: SchemaSet, pilot_rows, production_rows) -> Diffgram:
    pilot, production = store_pair(schemas)
    for table, row in pilot_rows:
        pilot.add_row(table, row)
    for table, row in production_rows:
        production.add_row(table, row)
    return diff(pilot, production, schemas)


def _values(rows: List[RenderRow]) -> List[list]:
    return [[c.value for c in row.cells] for row in rows]


class TestSingleTable:
    """Tests for one-table projections."""

    @pytest.fixture
    def schemas(self) -> SchemaSet:
        """Keyed setting table with a display order column."""
        return SchemaSet(
            [TableSchema.build("Settings", [("Order", ColumnType.ORDINAL), "Setting", "Value"], primary_key=["Setting"])]
        )

    def test_hidden_column_sorts_but_is_not_rendered(self, schemas: SchemaSet) -> None:
        """Test a hidden sort column orders rows without producing cells."""
        gram = _gram(schemas, [("Settings", [2, "b", "2"]), ("Settings", [1, "a", "1"])], [])
        projection = PrintProjection(
            [ProjectionColumn(0, 0, hidden=True, sort_order=0), ProjectionColumn(0, 1), ProjectionColumn(0, 2)]
        )
        assert _values(resolve(projection, gram)) == [["a", "1"], ["b", "2"]]

    def test_no_sort_keeps_diffgram_order(self, schemas: SchemaSet) -> None:
        """Test sort order -1 preserves the diffgram order."""
        gram = _gram(schemas, [("Settings", [2, "b", "2"]), ("Settings", [1, "a", "1"])], [("Settings", [3, "c", "3"])])
        rows = resolve(PrintProjection([ProjectionColumn(0, 1)]), gram)
        assert _values(rows) == [["b"], ["a"], ["c"]]
        assert [row.cells[0].state for row in rows] == [DiffState.ADDED, DiffState.ADDED, DiffState.DELETED]

    def test_sort_is_stable(self, schemas: SchemaSet) -> None:
        """Test rows with equal sort keys keep their relative order."""
        gram = _gram(
            schemas,
            [("Settings", [1, "z", "x"]), ("Settings", [0, "y", "x"]), ("Settings", [1, "a", "x"])],
            [],
        )
        projection = PrintProjection([ProjectionColumn(0, 0, hidden=True, sort_order=0), ProjectionColumn(0, 1)])
        assert _values(resolve(projection, gram)) == [["y"], ["z"], ["a"]]

    def test_modified_cells(self, schemas: SchemaSet) -> None:
        """Test only the changed cell of a Modified row is flagged, with its old value."""
        gram = _gram(schemas, [("Settings", [1, "a", "new"])], [("Settings", [1, "a", "old"])])
        [row] = resolve(PrintProjection([ProjectionColumn(0, 1), ProjectionColumn(0, 2)]), gram)
        setting, value = row.cells
        assert setting.state is DiffState.MODIFIED and not setting.changed
        assert value.changed and value.old_value == "old"
        assert row.has_changes

    def test_bookmark_target_and_reference(self, schemas: SchemaSet) -> None:
        """Test anchors are derived from table, key and column; links from the referenced row."""
        gram = _gram(schemas, [("Settings", [1, "a", "b"])], [])
        projection = PrintProjection(
            [
                ProjectionColumn(0, 1, bookmark_target=True),
                ProjectionColumn(0, 2, bookmark_reference=BookmarkLink("Settings", (2,), "Setting")),
            ]
        )
        [row] = resolve(projection, gram)
        assert row.cells[0].anchors == ["Settings-a-Setting"]
        assert row.cells[1].link == "Settings-b-Setting"

    def test_hidden_bookmark_target_lands_on_first_visible_cell(self, schemas: SchemaSet) -> None:
        """Test a hidden bookmark target anchors the row's first visible cell."""
        gram = _gram(schemas, [("Settings", [1, "a", "b"])], [])
        projection = PrintProjection([ProjectionColumn(0, 1, hidden=True, bookmark_target=True), ProjectionColumn(0, 2)])
        [row] = resolve(projection, gram)
        assert row.cells[0].value == "b"
        assert row.cells[0].anchors == ["Settings-a-Setting"]

    def test_reference_with_missing_key_has_no_link(self, schemas: SchemaSet) -> None:
        """Test a reference whose key value is missing renders without a link."""
        gram = _gram(schemas, [("Settings", [1, "a", None])], [])
        projection = PrintProjection(
            [ProjectionColumn(0, 2, bookmark_reference=BookmarkLink("Settings", (2,), "Setting"))]
        )
        [row] = resolve(projection, gram)
        assert row.cells[0].link is None

    def test_reference_without_column_targets_section_bookmark(self, schemas: SchemaSet) -> None:
        """Test a column-less link matches the bookmark a section would be opened with."""
        gram = _gram(schemas, [("Settings", [1, "a", "Contoso AD"])], [])
        projection = PrintProjection([ProjectionColumn(0, 2, bookmark_reference=BookmarkLink("Connector", (2,)))])
        [row] = resolve(projection, gram)
        assert row.cells[0].link == anchor_id("Connector", "Contoso AD")


class TestParentChild:
    """Tests for flattening related tables."""

    @pytest.fixture
    def projection(self) -> PrintProjection:
        """Filter table followed by its conditions, rule number as sort key."""
        return PrintProjection(
            [
                ProjectionColumn(0, 0, sort_order=0),
                ProjectionColumn(0, 1),
                ProjectionColumn(1, 0, hidden=True),
                ProjectionColumn(1, 1, sort_order=0),
                ProjectionColumn(1, 2),
            ]
        )

    def test_parent_cells_span_children(self, projection: PrintProjection) -> None:
        """Test parent cells carry a rowspan over their child rows."""
        schemas = _filter_schemas()
        gram = _gram(
            schemas,
            [
                ("Filter", ["user", "declared"]),
                ("Condition", ["user", 2, "cn"]),
                ("Condition", ["user", 1, "sn"]),
                ("Filter", ["contact", "declared"]),
                ("Condition", ["contact", 1, "mail"]),
            ],
            [],
        )
        rows = resolve(projection, gram)
        assert _values(rows) == [
            ["contact", "declared", 1, "mail"],
            ["user", "declared", 1, "sn"],
            [2, "cn"],
        ]
        assert [c.rowspan for c in rows[1].cells[:2]] == [2, 2]
        assert [c.rowspan for c in rows[0].cells[:2]] == [1, 1]

    def test_grouping_precedes_child_sort(self, projection: PrintProjection) -> None:
        """Test children never leave their parent's group, whatever their sort key."""
        schemas = _filter_schemas()
        gram = _gram(
            schemas,
            [
                ("Filter", ["a", "t"]),
                ("Filter", ["b", "t"]),
                ("Condition", ["b", 1, "x"]),
                ("Condition", ["a", 9, "y"]),
            ],
            [],
        )
        assert _values(resolve(projection, gram)) == [["a", "t", 9, "y"], ["b", "t", 1, "x"]]

    def test_parent_without_children_gets_blank_cells(self, projection: PrintProjection) -> None:
        """Test a childless parent still fills the row width."""
        schemas = _filter_schemas()
        gram = _gram(schemas, [], [("Filter", ["gone", "declared"])])
        [row] = resolve(projection, gram)
        assert [c.value for c in row.cells] == ["gone", "declared", None, None]
        assert all(c.state is DiffState.DELETED for c in row.cells)

    def test_projection_must_be_a_chain(self) -> None:
        """Test unrelated tables cannot be projected together."""
        schemas = SchemaSet([TableSchema.build("A", ["K"]), TableSchema.build("B", ["K"])])
        gram = _gram(schemas, [], [])
        with pytest.raises(ValueError, match="not a child"):
            resolve(PrintProjection([ProjectionColumn(0, 0), ProjectionColumn(1, 0)]), gram)


class TestContracts:
    """Tests for resolver contract violations."""

    def test_column_out_of_range(self) -> None:
        """Test a column index beyond the table raises."""
        schemas = _filter_schemas()
        gram = _gram(schemas, [], [])
        with pytest.raises(ProjectionColumnOutOfRange):
            resolve(PrintProjection([ProjectionColumn(0, 5)]), gram)

    def test_table_out_of_range(self) -> None:
        """Test a table index beyond the schema set raises."""
        schemas = _filter_schemas()
        gram = _gram(schemas, [], [])
        with pytest.raises(ProjectionColumnOutOfRange):
            resolve(PrintProjection([ProjectionColumn(3, 0)]), gram)

    def test_resolve_twice_raises(self) -> None:
        """Test a diffgram can be resolved only once."""
        schemas = _filter_schemas()
        gram = _gram(schemas, [("Filter", ["user", "declared"])], [])
        projection = PrintProjection([ProjectionColumn(0, 0)])
        resolve(projection, gram)
        with pytest.raises(StaleState):
            resolve(projection, gram)

    def test_ignored_columns_by_table(self) -> None:
        """Test change-ignored columns are reported per table name."""
        schemas = _filter_schemas()
        projection = PrintProjection([ProjectionColumn(0, 0), ProjectionColumn(1, 2, change_ignored=True)])
        assert projection.ignored(schemas) == {"Condition": {2}}
