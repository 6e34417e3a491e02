"""
reporting
=========

Document assembly and HTML report generation.

:class:`DocumentAssembler` accumulates section headings and rendered table
fragments into two parallel streams: the report body and its table of
contents. Every section opening writes a heading to the body and an indented
link to the TOC, both carrying the same anchor, so the two streams always hold
the same sections in the same order.

Lifecycle
---------
open -> (open_section | append_fragment | write_table | append_assembler)* ->
finalize. ``finalize`` runs the pending-bookmark pass and returns
``(body, toc)``; the session is closed afterwards.

Primary API
-----------
- :class:`DocumentAssembler`
- :func:`write_report`
"""

from __future__ import annotations

import datetime as dt
import html
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .errors import AlreadyFinalized, DuplicateAnchor, SessionClosed, UnresolvedBookmark
from .projection import RenderRow
from .rendering import AnchorRegistry, RenderStyle, render
from .utils import anchor_id, md_anchor, report_file_base_name

logger = logging.getLogger(__name__)


@dataclass
class Section:
    """A heading plus the fragments appended under it."""

    title: str
    level: int
    anchor: str
    parent: Optional[str] = None
    fragments: List[str] = field(default_factory=list)

    @property
    def body(self) -> str:
        return "".join(self.fragments)


class DocumentAssembler:
    """Body and TOC streams of one document-assembly session.

    Parameters
    ----------
    context:
        Optional namespace prefixed to minted section anchors (typically the
        connector id), keeping anchors apart when reports are concatenated.
    """

    def __init__(self, context: Optional[str] = None) -> None:
        self.context = context
        self.registry = AnchorRegistry()
        self.sections: List[Section] = []
        self.finalized = False
        self._body: List[str] = []
        self._toc: List[str] = []
        self._stack: List[Section] = []

    def _ensure_open(self) -> None:
        if self.finalized:
            raise SessionClosed("document assembler was already finalized")

    def open_section(self, title: str, level: int, bookmark: Optional[Sequence[object]] = None) -> str:
        """Start a section and return its anchor.

        Parameters
        ----------
        title:
            Heading text.
        level:
            Nesting level, 1 for top level.
        bookmark:
            Parts of an explicit anchor id (see :func:`~configdiff.utils.anchor_id`)
            so tables elsewhere can link to this section. Without it a unique
            anchor is minted from the title.

        Raises
        ------
        SessionClosed
            After :meth:`finalize`.
        DuplicateAnchor
            If the explicit bookmark is already registered.
        """
        self._ensure_open()
        if level < 1:
            raise ValueError(f"section level must be >= 1, got {level}")

        if bookmark:
            anchor = self.registry.register(anchor_id(*bookmark))
        else:
            scope = [] if self.context is None else [self.context]
            anchor = self.registry.mint(anchor_id(*scope, md_anchor(title)))

        while self._stack and self._stack[-1].level >= level:
            self._stack.pop()
        parent = self._stack[-1].anchor if self._stack else None
        section = Section(title, level, anchor, parent)
        self._stack.append(section)
        self.sections.append(section)

        text = html.escape(title)
        heading = min(level, 6)
        self._body.append(f'<h{heading} id="{anchor}">{text}</h{heading}>\n')
        self._toc.append(f'<div class="TOC{level}" style="padding-left:{level - 1}em"><a href="#{anchor}">{text}</a></div>\n')
        return anchor

    def append_fragment(self, markup: str) -> None:
        """Append rendered markup to the body (never to the TOC)."""
        self._ensure_open()
        self._body.append(markup)
        if self._stack:
            self._stack[-1].fragments.append(markup)

    def write_table(
        self,
        title: str,
        level: int,
        rows: Sequence[RenderRow],
        style: RenderStyle,
        bookmark: Optional[Sequence[object]] = None,
    ) -> Optional[str]:
        """Render *rows* under a new section.

        Returns the section anchor, or None when the section was skipped
        because it is "only if non-empty" and has no rows.

        Rendering and opening the section either both happen or neither: when
        either raises, the anchors and references recorded for this table are
        rolled back.
        """
        self._ensure_open()
        if not rows and style.only_if_nonempty:
            logger.debug("skipping empty optional section %r", title)
            return None
        saved = self.registry.snapshot()
        try:
            fragment = render(rows, style, self.registry)
            anchor = self.open_section(title, level, bookmark)
        except (DuplicateAnchor, ValueError):
            self.registry.restore(saved)
            raise
        self.append_fragment(fragment)
        return anchor

    def append_assembler(self, other: "DocumentAssembler") -> None:
        """Append a finalized assembler's body, TOC and anchors.

        Anchors are merged into this session's registry first; a clash raises
        :class:`~configdiff.errors.DuplicateAnchor` and nothing is appended.
        """
        self._ensure_open()
        if not other.finalized:
            raise ValueError("only finalized assemblers can be appended")
        self.registry.merge(other.registry)
        self._body.append(other.body)
        self._toc.append(other.toc)
        self.sections.extend(other.sections)

    @property
    def body(self) -> str:
        return "".join(self._body)

    @property
    def toc(self) -> str:
        return "".join(self._toc)

    def finalize(self, resolve_bookmarks: bool = True, strict: bool = True) -> Tuple[str, str]:
        """Close the session and return ``(body, toc)``.

        Parameters
        ----------
        resolve_bookmarks:
            Run the pending-bookmark pass. Pass False for partial documents
            whose references are resolved after concatenation.
        strict:
            With False, links to anchors that were never registered are logged
            and rendered as plain text instead of failing the whole document.

        Raises
        ------
        AlreadyFinalized
            On a second call.
        UnresolvedBookmark
            If a referenced anchor was never registered and *strict* is set.
        """
        if self.finalized:
            raise AlreadyFinalized("document assembler was already finalized")
        if resolve_bookmarks:
            try:
                self.registry.resolve_pending()
            except UnresolvedBookmark as exc:
                if strict:
                    raise
                logger.error("rendering %d dangling link(s) as plain text: %s", len(exc.anchors), ", ".join(exc.anchors))
                self._unlink(exc.anchors)
        self.finalized = True
        return self.body, self.toc

    def _unlink(self, anchors: Sequence[str]) -> None:
        pattern = re.compile(
            '<a href="#(?:' + "|".join(re.escape(html.escape(a)) for a in anchors) + ')">(.*?)</a>',
            re.DOTALL,
        )
        self._body = [pattern.sub(r"\1", fragment) for fragment in self._body]
        for section in self.sections:
            section.fragments = [pattern.sub(r"\1", fragment) for fragment in section.fragments]


# -----------------------------
# Report file
# -----------------------------
_CSS = """
body { font-family: Segoe UI, Arial, sans-serif; font-size: 10pt; }
table.SettingsTable { border-collapse: collapse; width: 100%; margin-bottom: 1em; }
table.SettingsTable th, table.SettingsTable td { border: 1px solid #ccc; padding: 2px 4px; vertical-align: top; text-align: left; }
table.SettingsTable th { background: #eee; }
.Added { background: #dff0d8; }
.Deleted { background: #f2dede; text-decoration: line-through; }
.Modified { background: #fcf8e3; }
del.OldValue { color: #a94442; }
#TOC { float: left; width: 25%; }
#Report { margin-left: 27%; }
"""

_SCRIPT = """
function ToggleVisibility() {
    var x = document.getElementById("OnlyShowChanges");
    var elements = document.getElementsByClassName("CanHide");
    for (var i = 0; i < elements.length; ++i) {
        elements[i].style.display = x.checked ? "none" : "";
    }
}
"""


def write_text(path: Path, content: str) -> None:
    """Write UTF-8 text to *path* with normalized newlines."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    path.write_text(content, encoding="utf-8")


def report_path(out_dir: Path, pilot: str, production: str, suffix: str = "report") -> Path:
    """Deterministic report location for a pilot/production pair."""
    return out_dir / f"{report_file_base_name(pilot, production)}_{suffix}.html"


def write_report(
    out_dir: Path,
    title: str,
    body: str,
    toc: str,
    pilot: str,
    production: str,
    suffix: str = "report",
) -> Path:
    """Combine *body* and *toc* into one HTML file.

    Parameters
    ----------
    out_dir:
        Output directory.
    title:
        Report title.
    body, toc:
        Output of :meth:`DocumentAssembler.finalize`.
    pilot, production:
        Input directory names, shown in the header and used for the file name.

    Returns
    -------
    pathlib.Path
        The path of the written report.
    """
    path = report_path(out_dir, pilot, production, suffix)
    now = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    lines: List[str] = []
    lines.append("<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\"/>\n")
    lines.append(f"<title>{html.escape(title)}</title>\n")
    lines.append(f"<style>{_CSS}</style>\n<script>{_SCRIPT}</script>\n</head>\n<body>\n")
    lines.append(f"<h1>{html.escape(title)}</h1>\n")
    lines.append(f"<p><em>Generated: {now}</em></p>\n")
    lines.append("<ul>\n")
    lines.append(f"<li>Pilot: {html.escape(pilot)}</li>\n")
    lines.append(f"<li>Production: {html.escape(production)}</li>\n")
    lines.append("</ul>\n")
    lines.append('<p><label><input type="checkbox" id="OnlyShowChanges" onclick="ToggleVisibility();"/> Only show changes</label></p>\n')
    lines.append(f'<div id="TOC">\n<h2>Contents</h2>\n{toc}</div>\n')
    lines.append(f'<div id="Report">\n{body}</div>\n')
    lines.append("</body>\n</html>\n")

    write_text(path, "".join(lines))
    return path
