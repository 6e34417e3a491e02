"""
differ
======

Relational diff engine.

:func:`diff` compares a pilot and a production :class:`~configdiff.store.TableStore`
built on the same :class:`~configdiff.schema.SchemaSet` and classifies every row
as Unchanged, Added, Deleted or Modified. The result is a :class:`Diffgram`.

Algorithm
---------
1. Per table, rows are matched by identity (primary key tuple, or the full row
   for keyless tables). Pilot-only rows are Added, production-only rows are
   Deleted. Matched rows compare every non-key column that is not listed in
   ``ignored``; any difference makes the row Modified and records exactly the
   differing column indices.
2. Relations are reconciled parent before child. A child whose parent entry is
   Added or Deleted takes the parent's state, so a new structural branch is
   never reported as partly unchanged.
3. Pilot order is kept for Added/Unchanged/Modified entries; Deleted entries
   follow in production order. Child tables are then regrouped under their
   parent entries, in the parent's own order. Children without a parent entry
   come last.

Terminology follows the report: *pilot* is the proposed configuration,
*production* the baseline it is applied to.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import SchemaMismatch, StaleState
from .schema import Relation, SchemaSet, TableSchema
from .store import Row, TableStore

logger = logging.getLogger(__name__)


class DiffState(enum.IntEnum):
    """Change state of a row; higher values win during reconciliation."""

    UNCHANGED = 0
    MODIFIED = 1
    ADDED = 2
    DELETED = 3

    @property
    def terminal(self) -> bool:
        """Added and Deleted propagate to child rows."""
        return self in (DiffState.ADDED, DiffState.DELETED)


@dataclass(frozen=True)
class DiffEntry:
    """One classified row.

    Attributes:
        row: Values to display (pilot values unless the row is Deleted).
        state: Change classification.
        changed: Column indices that differ; non-empty iff state is MODIFIED.
        old_row: Production values for matched rows (None otherwise).
    """

    row: Row
    state: DiffState
    changed: FrozenSet[int] = frozenset()
    old_row: Optional[Row] = None


@dataclass
class Diffgram:
    """Per-table ordered diff entries for one subsection."""

    schemas: SchemaSet
    tables: Dict[str, List[DiffEntry]]
    resolved: bool = False
    _groups: Dict[str, Dict[Tuple[Any, ...], List[DiffEntry]]] = field(default_factory=dict, repr=False)

    def entries(self, table: str) -> List[DiffEntry]:
        return self.tables[table]

    def count(self, state: DiffState, table: Optional[str] = None) -> int:
        """Number of entries in *state*, for one table or all tables."""
        names = [table] if table is not None else list(self.tables)
        return sum(1 for name in names for e in self.tables[name] if e.state is state)

    @property
    def has_changes(self) -> bool:
        return any(e.state is not DiffState.UNCHANGED for rows in self.tables.values() for e in rows)

    def children(self, relation: Relation, parent: DiffEntry) -> List[DiffEntry]:
        """Entries of ``relation.child`` that belong to *parent*, in diffgram order."""
        if relation.child not in self._groups:
            child_schema = self.schemas.table(relation.child)
            index: Dict[Tuple[Any, ...], List[DiffEntry]] = {}
            for entry in self.tables[relation.child]:
                index.setdefault(_link_values(child_schema, relation.child_columns, entry.row), []).append(entry)
            self._groups[relation.child] = index
        parent_schema = self.schemas.table(relation.parent)
        return list(self._groups[relation.child].get(_link_values(parent_schema, relation.parent_columns, parent.row), []))


def _link_values(schema: TableSchema, columns: Sequence[str], row: Row) -> Tuple[Any, ...]:
    return tuple(schema.comparable(i, row[i]) for i in (schema.index_of(c) for c in columns))


def _check_schemas(pilot: TableStore, production: TableStore, schemas: SchemaSet) -> None:
    expected = list(schemas.tables)
    for store in (pilot, production):
        if list(store.schemas.tables) != expected:
            got = [t.name for t in store.schemas.tables]
            raise SchemaMismatch(
                f"{store.label} store schemas {got} do not match {[t.name for t in expected]}"
            )


def diff_table(
    schema: TableSchema,
    pilot_rows: Sequence[Row],
    production_rows: Sequence[Row],
    ignored: Iterable[int] = (),
) -> List[DiffEntry]:
    """Classify the rows of one table, without relation context."""
    ignored = frozenset(ignored)
    key_indices = frozenset(schema.key_indices)
    compared = [i for i in range(len(schema.columns)) if i not in key_indices and i not in ignored]

    pilot_index = {schema.row_key(r): r for r in pilot_rows}
    production_index = {schema.row_key(r): r for r in production_rows}

    entries: List[DiffEntry] = []
    for row in pilot_rows:
        old = production_index.get(schema.row_key(row))
        if old is None:
            entries.append(DiffEntry(row, DiffState.ADDED))
            continue
        changed = frozenset(
            i for i in compared if schema.comparable(i, row[i]) != schema.comparable(i, old[i])
        )
        state = DiffState.MODIFIED if changed else DiffState.UNCHANGED
        entries.append(DiffEntry(row, state, changed, old))

    for row in production_rows:
        if schema.row_key(row) not in pilot_index:
            entries.append(DiffEntry(row, DiffState.DELETED))

    return entries


def _reconcile(
    schemas: SchemaSet,
    relation: Relation,
    parents: Sequence[DiffEntry],
    children: Sequence[DiffEntry],
) -> List[DiffEntry]:
    parent_schema = schemas.table(relation.parent)
    child_schema = schemas.table(relation.child)

    parent_index: Dict[Tuple[Any, ...], DiffEntry] = {}
    for p in parents:
        parent_index.setdefault(_link_values(parent_schema, relation.parent_columns, p.row), p)

    buckets: Dict[Tuple[Any, ...], List[DiffEntry]] = {}
    orphans: List[DiffEntry] = []
    for child in children:
        link = _link_values(child_schema, relation.child_columns, child.row)
        parent = parent_index.get(link)
        if parent is None:
            orphans.append(child)
            continue
        if parent.state.terminal and child.state is not parent.state:
            child = replace(child, state=parent.state, changed=frozenset(), old_row=None)
        buckets.setdefault(link, []).append(child)

    ordered: List[DiffEntry] = []
    for p in parents:
        ordered.extend(buckets.pop(_link_values(parent_schema, relation.parent_columns, p.row), []))
    if orphans:
        logger.debug("%d row(s) of %s have no parent row in %s", len(orphans), relation.child, relation.parent)
    ordered.extend(orphans)
    return ordered


def diff(
    pilot: TableStore,
    production: TableStore,
    schemas: SchemaSet,
    relations: Optional[Sequence[Relation]] = None,
    ignored: Optional[Mapping[str, Iterable[int]]] = None,
) -> Diffgram:
    """Compare *pilot* against *production* and return the diffgram.

    Parameters
    ----------
    pilot, production:
        Filled stores; both must use the tables of *schemas*.
    schemas:
        The shared schema set.
    relations:
        Relations to reconcile; defaults to ``schemas.relations``.
    ignored:
        Table name -> column indices whose differences alone never make a row
        Modified (the projection's change-ignored columns).

    Raises
    ------
    SchemaMismatch
        If the stores do not share *schemas*.
    StaleState
        If either store was already diffed and not reset.
    """
    if relations is not None:
        schemas = SchemaSet(list(schemas.tables), list(relations))
    _check_schemas(pilot, production, schemas)
    for store in (pilot, production):
        if store.diffed:
            raise StaleState(f"{store.label} store was already diffed; reset() and refill it first")
    ignored = ignored or {}

    tables: Dict[str, List[DiffEntry]] = {}
    for schema in schemas.tables:
        tables[schema.name] = diff_table(
            schema, pilot.rows(schema.name), production.rows(schema.name), ignored.get(schema.name, ())
        )
    pilot.diffed = True
    production.diffed = True

    for schema in schemas.ordered_tables():
        relation = schemas.parent_relation(schema.name)
        if relation is not None:
            tables[schema.name] = _reconcile(schemas, relation, tables[relation.parent], tables[schema.name])

    gram = Diffgram(schemas, tables)
    logger.debug(
        "diffgram: added=%d deleted=%d modified=%d unchanged=%d",
        gram.count(DiffState.ADDED),
        gram.count(DiffState.DELETED),
        gram.count(DiffState.MODIFIED),
        gram.count(DiffState.UNCHANGED),
    )
    return gram
