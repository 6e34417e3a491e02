"""
utils
=====

Small, shared utilities used across the codebase.

This module intentionally contains only low-level helpers that are safe to
import from anywhere (no lxml, no rendering).

Functions
---------
- :func:`safe_name`:
  Convert an arbitrary identifier (connector name, directory, key value) into a
  filesystem- and anchor-safe component.
- :func:`anchor_id`:
  Build a deterministic HTML anchor id from its parts.
- :func:`report_file_base_name`:
  Derive the report file name from the two input directory names.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any


def safe_name(value: str) -> str:
    """Return a filesystem-safe version of *value*.

    This helper is used for naming report files and anchor ids consistently
    across modules.

    Parameters
    ----------
    value:
        The input string to sanitize (e.g., a connector name or a key value).

    Returns
    -------
    str
        A sanitized string containing only ``[A-Za-z0-9._-]`` plus underscores,
        with surrounding underscores removed. Returns ``"unnamed"`` if the
        result would otherwise be empty.

    Examples
    --------
    >>> safe_name("Contoso AD$MA")
    'Contoso_AD_MA'
    >>> safe_name("")
    'unnamed'
    """
    out = re.sub(r"[^A-Za-z0-9._-]+", "_", value).strip("_")
    return out or "unnamed"


def anchor_id(*parts: Any) -> str:
    """Create a deterministic anchor id from *parts*.

    Every part is stringified and sanitized with :func:`safe_name`, and the
    parts are joined with ``-``. The same parts always give the same id, which
    is what lets a bookmark reference be computed before its target exists.

    Sanitizing alone is lossy (``"Full Import"`` and ``"Full_Import"`` both
    become ``Full_Import``), so whenever a part is ``None``, contains the ``-``
    separator or is altered by :func:`safe_name`, a short digest of the raw
    parts is appended after ``--``. An id without a digest never contains
    ``--``, so distinct parts always give distinct ids.

    >>> anchor_id("Settings", "a", "Setting")
    'Settings-a-Setting'
    >>> anchor_id("RunProfile", "Full Import") == anchor_id("RunProfile", "Full_Import")
    False
    """
    raw = tuple(None if p is None else str(p) for p in parts)
    out = "-".join(safe_name(p) for p in raw if p is not None)
    if any(p is None or "-" in p or safe_name(p) != p for p in raw):
        digest = hashlib.sha1(repr(raw).encode("utf-8")).hexdigest()[:8]
        out = f"{out}--{digest}"
    return out


def md_anchor(title: str) -> str:
    """Create an approximate GitHub-style anchor from a section title."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def report_file_base_name(pilot: str, production: str) -> str:
    """Return the report base name for a pilot/production directory pair.

    Path separators become underscores so nested directory names still map to a
    single file name.

    >>> report_file_base_name("Data/Pilot", "Prod")
    'Data_Pilot_AppliedTo_Prod'
    """
    def _flat(name: str) -> str:
        return safe_name(name.replace("\\", "/").strip("/").replace("/", "_"))

    return f"{_flat(pilot)}_AppliedTo_{_flat(production)}"
