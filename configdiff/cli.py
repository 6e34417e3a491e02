"""
cli
===

Command line entry point.

Basic run::

    configdiff --config config.yml

Without a config file::

    configdiff --pilot Data/Pilot --production Data/Production --out out

Document connectors in parallel, with debug logging::

    configdiff --config config.yml --workers 4 --verbose
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .config import load_config, read_options
from .documenter import generate_report


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="configdiff",
        description="Document a pilot synchronization configuration as applied to production, as one HTML report.",
    )
    ap.add_argument("--config", default=None, help="Path to config.yml (optional)")
    ap.add_argument("--pilot", default=None, help="Pilot configuration directory (overrides pilot.dir)")
    ap.add_argument("--production", default=None, help="Production configuration directory (overrides production.dir)")
    ap.add_argument("--out", default=None, help="Override out_dir from config")
    ap.add_argument("--workers", type=int, default=None, help="Connectors documented in parallel (default: 1)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI entry-point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(Path(args.config).resolve()) if args.config else {}
    options = read_options(cfg, args)

    print(f"Pilot      : {options.pilot_dir}")
    print(f"Production : {options.production_dir}")
    print("Documenting configuration...")
    try:
        path = generate_report(
            options.pilot_dir,
            options.production_dir,
            options.out_dir,
            workers=options.workers,
            title=options.title,
        )
    except FileNotFoundError as exc:
        raise SystemExit(f"ERROR: {exc}") from exc

    print("\nDone.")
    print(f"Report : {path}")
    return 0
