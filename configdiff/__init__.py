"""
configdiff
==========

Document a pilot synchronization-service configuration as it would apply to a
production configuration: every setting of both environments is diffed and
rendered into one linked HTML report in which added, deleted and modified
settings are highlighted.

Modules, bottom-up:

- :mod:`configdiff.schema` / :mod:`configdiff.store`: table schemas and rows
- :mod:`configdiff.differ`: row classification into a diffgram
- :mod:`configdiff.projection`: diffgram -> display rows
- :mod:`configdiff.rendering`: display rows -> HTML fragment, anchors
- :mod:`configdiff.reporting`: sections, TOC and the report file
- :mod:`configdiff.config_tree` / :mod:`configdiff.connectors`: XML input and adapters
- :mod:`configdiff.documenter`: orchestration
- :mod:`configdiff.cli`: the command line entry point
"""

from .differ import DiffEntry, Diffgram, DiffState, diff
from .errors import (
    AlreadyFinalized,
    DocumenterError,
    DuplicateAnchor,
    ProjectionColumnOutOfRange,
    SchemaMismatch,
    SessionClosed,
    StaleState,
    UnresolvedBookmark,
)
from .projection import BookmarkLink, PrintProjection, ProjectionColumn, resolve
from .rendering import AnchorRegistry, RenderStyle, render
from .reporting import DocumentAssembler
from .schema import Column, ColumnType, Relation, SchemaSet, TableSchema
from .store import TableStore

__version__ = "0.1.0"
