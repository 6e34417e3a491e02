"""
config
======

YAML configuration with environment and CLI overrides.

Example ``config.yml``::

    out_dir: out
    workers: 4
    title: "Synchronization Service Configuration"

    pilot:
      dir: Data/Pilot

    production:
      dir: Data/Production

Precedence, highest first:

1. Environment variables ``CONFIGDIFF_<SIDE>_<FIELD>`` (e.g. ``CONFIGDIFF_PILOT_DIR``)
   and ``CONFIGDIFF_OUT_DIR``
2. CLI overrides (``--pilot`` / ``--production`` / ``--out`` / ``--workers``)
3. The config file
4. Defaults
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .documenter import DEFAULT_TITLE

ENV_PREFIX = "CONFIGDIFF"
SIDES = ("pilot", "production")


@dataclass(frozen=True)
class ReportOptions:
    """Resolved run options.

    Attributes:
        pilot_dir: Pilot configuration directory.
        production_dir: Production configuration directory.
        out_dir: Where the report is written.
        workers: Connector documenter threads; 1 runs sequentially.
        title: Report title.
    """

    pilot_dir: Path
    production_dir: Path
    out_dir: Path
    workers: int = 1
    title: str = DEFAULT_TITLE


def load_config(path: Path) -> Dict[str, Any]:
    """Load a YAML config file; an empty file gives an empty dict."""
    if not path.exists():
        raise SystemExit(f"ERROR: config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    """Safely get nested dict value with default."""
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def get_env_var(side: str, field: str) -> Optional[str]:
    """Return ``CONFIGDIFF_<SIDE>_<FIELD>`` from the environment, or None."""
    return os.environ.get(f"{ENV_PREFIX}_{side.upper()}_{field.upper()}")


def resolve_dir(cfg: Dict[str, Any], side: str, overrides: Mapping[str, Optional[str]]) -> Path:
    """Resolve the configuration directory of *side* (``pilot`` or ``production``).

    Parameters
    ----------
    cfg:
        Loaded config dict.
    side:
        ``"pilot"`` or ``"production"``.
    overrides:
        CLI values keyed by side name; None or empty means "not given".

    Raises
    ------
    SystemExit
        If no source provides the directory; the message names the config key,
        the environment variable and the CLI flag.
    """
    value = get_env_var(side, "dir") or overrides.get(side) or deep_get(cfg, [side, "dir"])
    if not value:
        raise SystemExit(
            f"ERROR: missing {side}.dir: set it in the config file, "
            f"export {ENV_PREFIX}_{side.upper()}_DIR or pass --{side}"
        )
    return Path(value)


def read_options(cfg: Dict[str, Any], args: argparse.Namespace) -> ReportOptions:
    """Combine config values and parsed CLI arguments into :class:`ReportOptions`."""
    overrides = {side: getattr(args, side, None) for side in SIDES}
    out_dir = os.environ.get(f"{ENV_PREFIX}_OUT_DIR") or getattr(args, "out", None) or cfg.get("out_dir", "out")
    workers = getattr(args, "workers", None)
    if workers is None:
        workers = cfg.get("workers", 1)
    return ReportOptions(
        pilot_dir=resolve_dir(cfg, "pilot", overrides),
        production_dir=resolve_dir(cfg, "production", overrides),
        out_dir=Path(out_dir),
        workers=max(1, int(workers)),
        title=str(cfg.get("title") or DEFAULT_TITLE),
    )
