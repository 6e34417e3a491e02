"""
projection
==========

Print projections and the resolver that turns a diffgram into render rows.

A :class:`PrintProjection` says, per output column, where the value comes from
(table index, column index within that table), whether it is shown, how it
sorts, and how it takes part in bookmarks and change detection.

:func:`resolve` walks the projection's tables as a parent/child chain (table 0
is the root, every next table must be a relation child of the previous one)
and flattens it into :class:`RenderRow` objects. Parent cells span all rows of
their children, which is how nested settings such as filter rules and their
conditions read in the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from .differ import DiffEntry, Diffgram, DiffState
from .errors import ProjectionColumnOutOfRange, StaleState
from .schema import Relation, SchemaSet, TableSchema
from .utils import anchor_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookmarkLink:
    """Where a bookmark reference points.

    The target anchor is computed exactly like a bookmark target would be:
    ``anchor_id(table, *key values, column)``, with the key values read from
    ``key_columns`` of the row being rendered. Without a column the link
    points at a section bookmark ``(table, *key values)``.
    """

    table: str
    key_columns: Tuple[int, ...]
    column: Optional[str] = None


@dataclass(frozen=True)
class ProjectionColumn:
    """One output column.

    Attributes:
        table: Index of the source table in the schema set.
        column: Index of the source column within that table.
        hidden: Used for sorting/keys only, never rendered.
        sort_order: -1 keeps diffgram order; >= 0 is ascending sort precedence.
        bookmark_target: The rendered value becomes an anchor.
        bookmark_reference: The rendered value links to another anchor.
        change_ignored: A difference here alone never makes the row Modified.
    """

    table: int
    column: int
    hidden: bool = False
    sort_order: int = -1
    bookmark_target: bool = False
    bookmark_reference: Optional[BookmarkLink] = None
    change_ignored: bool = False


@dataclass
class PrintProjection:
    columns: List[ProjectionColumn]

    def table_indices(self) -> List[int]:
        return sorted({c.table for c in self.columns})

    def validate(self, schemas: SchemaSet) -> None:
        """Raise :class:`ProjectionColumnOutOfRange` for dangling references."""
        for col in self.columns:
            if not 0 <= col.table < len(schemas.tables):
                raise ProjectionColumnOutOfRange(col.table, col.column, f"{len(schemas.tables)} table(s)")
            schema = schemas.tables[col.table]
            width = len(schema.columns)
            if not 0 <= col.column < width:
                raise ProjectionColumnOutOfRange(col.table, col.column, f"table {schema.name!r} has {width} column(s)")
            link = col.bookmark_reference
            if link is not None and any(not 0 <= i < width for i in link.key_columns):
                raise ProjectionColumnOutOfRange(
                    col.table, col.column, f"bookmark key columns {link.key_columns} outside table {schema.name!r}"
                )

    def ignored(self, schemas: SchemaSet) -> Dict[str, Set[int]]:
        """Change-ignored column indices per table name, for :func:`~configdiff.differ.diff`."""
        self.validate(schemas)
        out: Dict[str, Set[int]] = {}
        for col in self.columns:
            if col.change_ignored:
                out.setdefault(schemas.tables[col.table].name, set()).add(col.column)
        return out


@dataclass
class RenderCell:
    """A display cell with everything the renderer needs to style it."""

    value: Any
    state: DiffState
    changed: bool = False
    old_value: Any = None
    rowspan: int = 1
    anchors: List[str] = field(default_factory=list)
    link: Optional[str] = None


@dataclass
class RenderRow:
    cells: List[RenderCell]

    @property
    def has_changes(self) -> bool:
        return any(c.state is not DiffState.UNCHANGED or c.changed for c in self.cells)


@dataclass
class _Level:
    schema: TableSchema
    columns: List[ProjectionColumn]
    relation: Optional[Relation]

    @property
    def visible(self) -> List[ProjectionColumn]:
        return [c for c in self.columns if not c.hidden]


def _levels(projection: PrintProjection, schemas: SchemaSet) -> List[_Level]:
    projection.validate(schemas)
    levels: List[_Level] = []
    for index in projection.table_indices():
        schema = schemas.tables[index]
        relation = None
        if levels:
            relation = schemas.parent_relation(schema.name)
            if relation is None or relation.parent != levels[-1].schema.name:
                raise ValueError(
                    f"projection table {schema.name!r} is not a child of {levels[-1].schema.name!r}"
                )
        levels.append(_Level(schema, [c for c in projection.columns if c.table == index], relation))
    return levels


def _sort_value(schema: TableSchema, index: int, value: Any) -> Tuple[bool, Any]:
    # None sorts first; case-insensitive columns sort by their folded value
    if value is None:
        return (False, "")
    return (True, schema.comparable(index, value))


def _sorted(level: _Level, entries: List[DiffEntry]) -> List[DiffEntry]:
    keyed = sorted((c for c in level.columns if c.sort_order >= 0), key=lambda c: c.sort_order)
    if not keyed:
        return list(entries)
    schema = level.schema
    return sorted(entries, key=lambda e: tuple(_sort_value(schema, c.column, e.row[c.column]) for c in keyed))


def _row_key_values(schema: TableSchema, row: Tuple[Any, ...]) -> List[Any]:
    return [row[i] for i in schema.key_indices]


def _target(schema: TableSchema, entry: DiffEntry, col: ProjectionColumn) -> str:
    return anchor_id(schema.name, *_row_key_values(schema, entry.row), schema.columns[col.column].name)


def _cells(level: _Level, entry: DiffEntry) -> List[RenderCell]:
    schema = level.schema
    hidden_targets = [_target(schema, entry, c) for c in level.columns if c.bookmark_target and c.hidden]
    cells: List[RenderCell] = []
    for col in level.visible:
        changed = entry.state is DiffState.MODIFIED and col.column in entry.changed
        cell = RenderCell(
            value=entry.row[col.column],
            state=entry.state,
            changed=changed,
            old_value=entry.old_row[col.column] if changed and entry.old_row is not None else None,
        )
        if col.bookmark_target:
            cell.anchors.append(_target(schema, entry, col))
        link = col.bookmark_reference
        if link is not None:
            key = [entry.row[i] for i in link.key_columns]
            if all(v is not None for v in key):
                # a link without a column points at a section bookmark
                tail = [] if link.column is None else [link.column]
                cell.link = anchor_id(link.table, *key, *tail)
        cells.append(cell)
    if cells and hidden_targets:
        # hidden bookmark targets anchor on the first visible cell of the row
        cells[0].anchors.extend(hidden_targets)
    return cells


def resolve(projection: PrintProjection, diffgram: Diffgram) -> List[RenderRow]:
    """Flatten *diffgram* into display rows according to *projection*.

    Raises
    ------
    ProjectionColumnOutOfRange
        If a projection column references a missing table or column.
    StaleState
        If *diffgram* was already resolved.
    ValueError
        If the projection's tables do not form a parent/child chain.
    """
    if diffgram.resolved:
        raise StaleState("diffgram was already resolved; diff a freshly filled store pair")
    if not projection.columns:
        raise ValueError("empty print projection")
    levels = _levels(projection, diffgram.schemas)
    diffgram.resolved = True

    def _width(start: int) -> int:
        return sum(len(level.visible) for level in levels[start:])

    def _expand(depth: int, entries: List[DiffEntry]) -> List[List[RenderCell]]:
        level = levels[depth]
        out: List[List[RenderCell]] = []
        for entry in _sorted(level, entries):
            own = _cells(level, entry)
            if depth == len(levels) - 1:
                out.append(own)
                continue
            relation = levels[depth + 1].relation
            if relation is None:
                raise ValueError(f"projection table {levels[depth + 1].schema.name!r} has no parent relation")
            sub = _expand(depth + 1, diffgram.children(relation, entry))
            if not sub:
                sub = [[RenderCell(value=None, state=entry.state) for _ in range(_width(depth + 1))]]
            for cell in own:
                cell.rowspan = len(sub)
            out.append(own + sub[0])
            out.extend(sub[1:])
        return out

    rows = [RenderRow(cells) for cells in _expand(0, diffgram.entries(levels[0].schema.name))]
    logger.debug("resolved %d render row(s) from %s", len(rows), levels[0].schema.name)
    return rows
