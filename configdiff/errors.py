"""
errors
======

Exception taxonomy for the diff and report engine.

Every error raised here is a contract violation inside the engine (a defect in
an adapter or in the calling code), not a user-facing condition. The pipeline
catches :class:`DocumenterError` per subsection, logs it with context and
carries on with the next subsection.
"""

from __future__ import annotations

from typing import Iterable


class DocumenterError(Exception):
    """Base class for all engine errors."""


class SchemaMismatch(DocumenterError):
    """Pilot and production stores were built with different schemas."""


class ProjectionColumnOutOfRange(DocumenterError):
    """A projection column points at a table/column absent from the diffgram."""

    def __init__(self, table: int, column: int, detail: str) -> None:
        super().__init__(f"projection column (table={table}, column={column}) out of range: {detail}")
        self.table = table
        self.column = column


class DuplicateAnchor(DocumenterError):
    """An anchor id was registered twice in one assembly session."""

    def __init__(self, anchor: str) -> None:
        super().__init__(f"duplicate anchor: {anchor}")
        self.anchor = anchor


class UnresolvedBookmark(DocumenterError):
    """Bookmark references whose target anchor was never registered."""

    def __init__(self, anchors: Iterable[str]) -> None:
        self.anchors = sorted(anchors)
        super().__init__("unresolved bookmark reference(s): " + ", ".join(self.anchors))


class StaleState(DocumenterError):
    """A store or diffgram was reused without an intervening reset."""


class AlreadyFinalized(DocumenterError):
    """``finalize`` was called twice on the same assembler."""


class SessionClosed(DocumenterError):
    """The assembler was written to after it was finalized."""
