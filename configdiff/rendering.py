"""
rendering
=========

HTML rendering of resolved diff rows, plus the anchor registry.

The renderer emits a self-contained ``<table>`` fragment:

- Added / Deleted cells carry the ``Added`` / ``Deleted`` classes.
- Modified rows render every cell; only changed cells get ``Modified`` and
  show the production value struck through underneath the pilot value.
- Rows without any change get ``CanHide`` so the report's "only show changes"
  switch can hide them.

Bookmark targets are registered in an :class:`AnchorRegistry` owned by the
document assembly session. Bookmark references may point at anchors that are
registered later (even in a later section); they stay pending until the
session's final pass (:meth:`AnchorRegistry.resolve_pending`).
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .differ import DiffState
from .errors import DuplicateAnchor, UnresolvedBookmark
from .projection import RenderCell, RenderRow

logger = logging.getLogger(__name__)


class AnchorRegistry:
    """Anchors and pending references of one assembly session."""

    def __init__(self) -> None:
        self._anchors: Dict[str, None] = {}
        self._references: Dict[str, None] = {}

    def __contains__(self, anchor: str) -> bool:
        return anchor in self._anchors

    def __len__(self) -> int:
        return len(self._anchors)

    @property
    def anchors(self) -> List[str]:
        return list(self._anchors)

    @property
    def references(self) -> List[str]:
        return list(self._references)

    def register(self, anchor: str) -> str:
        """Register *anchor*; raise :class:`DuplicateAnchor` if it exists."""
        if anchor in self._anchors:
            raise DuplicateAnchor(anchor)
        self._anchors[anchor] = None
        return anchor

    def register_all(self, anchors: Sequence[str]) -> None:
        """Register *anchors* atomically: nothing is registered on a duplicate."""
        seen: Dict[str, None] = {}
        for anchor in anchors:
            if anchor in self._anchors or anchor in seen:
                raise DuplicateAnchor(anchor)
            seen[anchor] = None
        self._anchors.update(seen)

    def mint(self, base: str) -> str:
        """Register and return a fresh anchor derived from *base*.

        A numeric suffix is appended until the id is unused.
        """
        base = base or "section"
        candidate, n = base, 1
        while candidate in self._anchors:
            n += 1
            candidate = f"{base}-{n}"
        return self.register(candidate)

    def reference(self, anchor: str) -> None:
        """Record a link to *anchor*; it may be registered later."""
        self._references[anchor] = None

    @property
    def pending(self) -> List[str]:
        return sorted(a for a in self._references if a not in self._anchors)

    def resolve_pending(self) -> None:
        """Final pass: every referenced anchor must exist by now."""
        pending = self.pending
        if pending:
            raise UnresolvedBookmark(pending)

    def snapshot(self) -> Tuple[Dict[str, None], Dict[str, None]]:
        """Copy of the current anchors and references, for :meth:`restore`."""
        return dict(self._anchors), dict(self._references)

    def restore(self, state: Tuple[Dict[str, None], Dict[str, None]]) -> None:
        """Roll back to a :meth:`snapshot`."""
        anchors, references = state
        self._anchors = dict(anchors)
        self._references = dict(references)

    def merge(self, other: "AnchorRegistry") -> None:
        """Absorb *other*'s anchors (duplicate-checked) and references."""
        self.register_all(other.anchors)
        for ref in other.references:
            self.reference(ref)


@dataclass(frozen=True)
class HeaderCell:
    """A header cell; ``width`` is a percentage of the table width."""

    name: str
    rowspan: int = 1
    colspan: int = 1
    width: Optional[int] = None


@dataclass
class RenderStyle:
    """How a section's table is presented.

    Attributes:
        header: Header rows, top to bottom.
        only_if_nonempty: Render nothing at all (not even the section header)
            when there are no rows.
        empty_message: Paragraph shown instead of an empty table for mandatory
            sections.
        css_class: Class of the ``<table>`` element.
    """

    header: List[List[HeaderCell]] = field(default_factory=list)
    only_if_nonempty: bool = False
    empty_message: Optional[str] = None
    css_class: str = "SettingsTable"

    @classmethod
    def simple(cls, *columns: Union[str, Tuple[str, int]], **kwargs: Any) -> "RenderStyle":
        """One header row from names or ``(name, width)`` pairs.

        >>> RenderStyle.simple(("Setting", 50), ("Configuration", 50)).header[0][0].width
        50
        """
        row = [HeaderCell(c) if isinstance(c, str) else HeaderCell(c[0], width=c[1]) for c in columns]
        return cls(header=[row], **kwargs)


def format_value(value: Any) -> str:
    """Display text for a cell value; missing values render empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def _esc(value: Any) -> str:
    return html.escape(format_value(value))


_STATE_CLASS = {DiffState.ADDED: "Added", DiffState.DELETED: "Deleted"}


def _render_header(rows: List[List[HeaderCell]]) -> List[str]:
    out = ["<thead>"]
    for row in rows:
        out.append("<tr>")
        for cell in row:
            attrs = ""
            if cell.rowspan > 1:
                attrs += f' rowspan="{cell.rowspan}"'
            if cell.colspan > 1:
                attrs += f' colspan="{cell.colspan}"'
            if cell.width is not None:
                attrs += f' style="width:{cell.width}%"'
            out.append(f"<th{attrs}>{html.escape(cell.name)}</th>")
        out.append("</tr>")
    out.append("</thead>")
    return out


def _render_cell(cell: RenderCell, registry: AnchorRegistry) -> str:
    classes = []
    if cell.state in _STATE_CLASS:
        classes.append(_STATE_CLASS[cell.state])
    elif cell.changed:
        classes.append("Modified")

    attrs = ""
    if cell.anchors:
        attrs += f' id="{html.escape(cell.anchors[0])}"'
    if classes:
        attrs += f' class="{" ".join(classes)}"'
    if cell.rowspan > 1:
        attrs += f' rowspan="{cell.rowspan}"'

    content = _esc(cell.value)
    if cell.link is not None and content:
        registry.reference(cell.link)
        content = f'<a href="#{html.escape(cell.link)}">{content}</a>'
    if cell.changed:
        content += f'<br/><del class="OldValue">{_esc(cell.old_value)}</del>'
    extra = "".join(f'<span id="{html.escape(a)}"></span>' for a in cell.anchors[1:])
    return f"<td{attrs}>{extra}{content or '&nbsp;'}</td>"


def render(rows: Sequence[RenderRow], style: RenderStyle, registry: AnchorRegistry) -> str:
    """Render *rows* as an HTML table fragment.

    Parameters
    ----------
    rows:
        Output of :func:`~configdiff.projection.resolve`.
    style:
        Header and empty-section behaviour.
    registry:
        The session's anchor registry; bookmark targets are registered here.

    Returns
    -------
    str
        The fragment; empty for an "only if non-empty" section without rows.

    Raises
    ------
    DuplicateAnchor
        If a bookmark target is already registered. No anchor of this
        fragment is registered in that case.
    """
    if not rows:
        if style.only_if_nonempty:
            return ""
        if style.empty_message:
            return f'<p class="Content">{html.escape(style.empty_message)}</p>\n'

    registry.register_all([a for row in rows for cell in row.cells for a in cell.anchors])

    out = [f'<table class="{style.css_class}">']
    if style.header:
        out.extend(_render_header(style.header))
    out.append("<tbody>")
    for row in rows:
        # a row opening a rowspan group stays visible so the spanned cells keep their place
        hideable = not row.has_changes and all(c.rowspan == 1 for c in row.cells)
        out.append('<tr class="CanHide">' if hideable else "<tr>")
        out.extend(_render_cell(cell, registry) for cell in row.cells)
        out.append("</tr>")
    out.append("</tbody>")
    out.append("</table>")
    return "\n".join(out) + "\n"
