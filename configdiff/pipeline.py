"""
pipeline
========

The per-subsection pipeline: Subsection -> store pair -> Diffgram ->
RenderRows -> fragment.

A :class:`Subsection` is a value object built fresh by an adapter for each
logical part of a connector report. It carries its own schema set, its own
pilot/production stores, its projection and its style, so nothing is shared
between subsections and no reset bookkeeping is needed between them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .differ import diff
from .projection import PrintProjection, resolve
from .reporting import DocumentAssembler
from .rendering import RenderStyle
from .schema import SchemaSet
from .store import TableStore, store_pair

logger = logging.getLogger(__name__)


@dataclass
class Subsection:
    """Everything needed to document one report subsection."""

    title: str
    level: int
    schemas: SchemaSet
    projection: PrintProjection
    style: RenderStyle
    pilot: TableStore
    production: TableStore
    bookmark: Optional[Sequence[object]] = None

    @classmethod
    def create(
        cls,
        title: str,
        level: int,
        schemas: SchemaSet,
        projection: PrintProjection,
        style: RenderStyle,
        bookmark: Optional[Sequence[object]] = None,
    ) -> "Subsection":
        """Build a subsection with a fresh, empty store pair."""
        pilot, production = store_pair(schemas)
        return cls(title, level, schemas, projection, style, pilot, production, bookmark)


def process_subsection(assembler: DocumentAssembler, subsection: Subsection) -> Optional[str]:
    """Diff, resolve and render *subsection* into *assembler*.

    Returns the section anchor, or None if the section was skipped as empty.
    Engine errors propagate; callers decide how far they abort.
    """
    ignored = subsection.projection.ignored(subsection.schemas)
    gram = diff(subsection.pilot, subsection.production, subsection.schemas, ignored=ignored)
    rows = resolve(subsection.projection, gram)
    logger.debug("%s: %d row(s), changes=%s", subsection.title, len(rows), gram.has_changes)
    return assembler.write_table(subsection.title, subsection.level, rows, subsection.style, subsection.bookmark)
