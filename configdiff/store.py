"""
store
=====

In-memory table stores.

A :class:`TableStore` holds the rows of every table of a
:class:`~configdiff.schema.SchemaSet` for one environment ("pilot" or
"production"). Insertion order is significant: it is the tie-break order of the
diffgram whenever no explicit sort is requested.

A store goes through a strict lifecycle: fill, diff once, then ``reset()``
before it may be filled again. Filling or diffing a store that was already
diffed raises :class:`~configdiff.errors.StaleState`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

from .errors import StaleState
from .schema import SchemaSet, TableSchema

logger = logging.getLogger(__name__)

Row = Tuple[Any, ...]


class TableStore:
    """Insertion-ordered rows per table for one environment."""

    def __init__(self, schemas: SchemaSet, label: str) -> None:
        self.schemas = schemas
        self.label = label
        self.diffed = False
        self._rows: Dict[str, List[Row]] = {}
        self._keys: Dict[str, set] = {}
        self.reset()

    def reset(self) -> None:
        """Drop all rows and make the store fillable again."""
        self._rows = {t.name: [] for t in self.schemas.tables}
        self._keys = {t.name: set() for t in self.schemas.tables}
        self.diffed = False

    def add_row(self, table: str, values: Sequence[Any]) -> bool:
        """Append a row to *table*.

        Values are coerced to the column types. A row whose identity (primary
        key, or full row for keyless tables) is already present is skipped.

        Returns
        -------
        bool
            True if the row was stored, False if it was a duplicate.

        Raises
        ------
        StaleState
            If the store was diffed and not reset since.
        """
        if self.diffed:
            raise StaleState(f"{self.label} store was already diffed; reset() before refilling")
        schema = self.schemas.table(table)
        row = schema.coerce_row(values)
        key = schema.row_key(row)
        if key in self._keys[table]:
            logger.debug("%s: duplicate row %r skipped in table %s", self.label, key, table)
            return False
        self._keys[table].add(key)
        self._rows[table].append(row)
        return True

    def rows(self, table: str) -> List[Row]:
        return list(self._rows[table])

    def schema(self, table: str) -> TableSchema:
        return self.schemas.table(table)

    def __len__(self) -> int:
        return sum(len(r) for r in self._rows.values())

    def __repr__(self) -> str:
        counts = ", ".join(f"{k}={len(v)}" for k, v in self._rows.items())
        return f"TableStore({self.label!r}, {counts})"


def store_pair(schemas: SchemaSet) -> Tuple[TableStore, TableStore]:
    """Return fresh ``(pilot, production)`` stores sharing *schemas*."""
    return TableStore(schemas, "pilot"), TableStore(schemas, "production")
