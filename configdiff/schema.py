"""
schema
======

Table and relation descriptions shared by both table stores.

A :class:`TableSchema` lists ordered, typed :class:`Column` objects and names
the primary key columns. An empty primary key means a row is identified by its
whole value tuple (used for multi-valued settings). A :class:`Relation` binds
a child table's leading columns to columns of a parent table; it expresses
"child rows belong to one parent row" and drives grouping in the diffgram and
the rendered report.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


class ColumnType(enum.Enum):
    """Semantic column types; values are coerced on insert."""

    TEXT = "text"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ORDINAL = "ordinal"


_TRUE_STRINGS = {"true", "yes", "1", "y", "on"}


def coerce(value: Any, column_type: ColumnType) -> Any:
    """Coerce *value* to *column_type*; ``None`` always stays ``None``."""
    if value is None:
        return None
    if column_type is ColumnType.TEXT:
        return str(value)
    if column_type is ColumnType.BOOLEAN:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_STRINGS
    # INTEGER and ORDINAL
    if isinstance(value, bool):
        return int(value)
    return int(str(value).strip()) if isinstance(value, str) else int(value)


@dataclass(frozen=True)
class Column:
    """A typed column.

    Attributes:
        name: Column name, unique within its table.
        type: Semantic type used for coercion and comparison.
        case_insensitive: Compare (and key) text values ignoring case.
    """

    name: str
    type: ColumnType = ColumnType.TEXT
    case_insensitive: bool = False


@dataclass(frozen=True)
class TableSchema:
    """Ordered columns plus the primary key of one table."""

    name: str
    columns: Tuple[Column, ...]
    primary_key: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate column names in table {self.name!r}: {names}")
        missing = [k for k in self.primary_key if k not in names]
        if missing:
            raise ValueError(f"primary key column(s) {missing} not in table {self.name!r}")

    @classmethod
    def build(
        cls,
        name: str,
        columns: Sequence[Column | str | Tuple[str, ColumnType]],
        primary_key: Sequence[str] = (),
    ) -> "TableSchema":
        """Build a schema from a loose column list.

        Columns may be :class:`Column` objects, bare names (text columns) or
        ``(name, type)`` pairs.
        """
        cols: List[Column] = []
        for c in columns:
            if isinstance(c, Column):
                cols.append(c)
            elif isinstance(c, str):
                cols.append(Column(c))
            else:
                cols.append(Column(c[0], c[1]))
        return cls(name=name, columns=tuple(cols), primary_key=tuple(primary_key))

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def index_of(self, column: str) -> int:
        """Return the ordinal position of *column*."""
        try:
            return self.column_names.index(column)
        except ValueError:
            raise KeyError(f"no column {column!r} in table {self.name!r}") from None

    @property
    def key_indices(self) -> Tuple[int, ...]:
        """Ordinal positions forming row identity (all columns if keyless)."""
        if not self.primary_key:
            return tuple(range(len(self.columns)))
        return tuple(self.index_of(k) for k in self.primary_key)

    def coerce_row(self, values: Sequence[Any]) -> Tuple[Any, ...]:
        if len(values) != len(self.columns):
            raise ValueError(
                f"table {self.name!r} expects {len(self.columns)} values, got {len(values)}"
            )
        return tuple(coerce(v, c.type) for v, c in zip(values, self.columns))

    def comparable(self, index: int, value: Any) -> Any:
        """Return *value* normalized for equality checks on column *index*."""
        if value is not None and self.columns[index].case_insensitive and isinstance(value, str):
            return value.casefold()
        return value

    def row_key(self, row: Sequence[Any]) -> Tuple[Any, ...]:
        """Identity tuple of *row*: primary key values, or the full row."""
        return tuple(self.comparable(i, row[i]) for i in self.key_indices)


@dataclass(frozen=True)
class Relation:
    """Parent/child binding between two tables of one schema set.

    ``child_columns[i]`` in the child table matches ``parent_columns[i]`` in the
    parent table.
    """

    parent: str
    parent_columns: Tuple[str, ...]
    child: str
    child_columns: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.parent_columns) != len(self.child_columns) or not self.parent_columns:
            raise ValueError(
                f"relation {self.parent}->{self.child} needs matching, non-empty column lists"
            )


@dataclass
class SchemaSet:
    """Ordered tables plus their relations; the shape of one subsection."""

    tables: List[TableSchema]
    relations: List[Relation] = field(default_factory=list)

    def __post_init__(self) -> None:
        names = [t.name for t in self.tables]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate table names: {names}")
        for rel in self.relations:
            for table, cols in ((rel.parent, rel.parent_columns), (rel.child, rel.child_columns)):
                schema = self.table(table)
                for col in cols:
                    schema.index_of(col)

    def table(self, name: str) -> TableSchema:
        for t in self.tables:
            if t.name == name:
                return t
        raise KeyError(f"no table {name!r} in schema set")

    def parent_relation(self, child: str) -> Optional[Relation]:
        """The relation in which *child* is the child table, if any.

        A table has at most one parent; when several relations name the same
        child the first one wins.
        """
        for rel in self.relations:
            if rel.child == child:
                return rel
        return None

    def ordered_tables(self) -> List[TableSchema]:
        """Tables in parent-before-child order, otherwise declaration order."""
        done: Dict[str, TableSchema] = {}

        def _visit(schema: TableSchema, trail: Tuple[str, ...]) -> None:
            if schema.name in done:
                return
            if schema.name in trail:
                raise ValueError(f"relation cycle through table {schema.name!r}")
            rel = self.parent_relation(schema.name)
            if rel is not None:
                _visit(self.table(rel.parent), trail + (schema.name,))
            done[schema.name] = schema

        for t in self.tables:
            _visit(t, ())
        return list(done.values())
