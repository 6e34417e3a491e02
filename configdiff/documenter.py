"""
documenter
==========

Document a pilot configuration as applied to a production configuration.

This is the orchestration layer: load both configuration trees, discover the
connectors, run one documenter per connector (optionally on a thread pool),
then concatenate the per-connector documents in a deterministic order and
write the HTML report.

Each connector gets its own :class:`~configdiff.reporting.DocumentAssembler`
(own stores, own anchor registry), so connectors share no mutable state while
they are documented. Registries are merged, duplicate-checked, only when the
connector documents are concatenated.

Failure policy
--------------
- A failing subsection is logged and skipped; the rest of its connector is
  still documented.
- A failing connector is logged and left out of the report.
- A link to an anchor missing from the final document is logged and rendered
  as plain text.
- Missing input directories fail before anything is generated.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Tuple

from lxml import etree

from .config_tree import ConfigEnvironment, Connector, discover_connectors, load_configuration, validate_input
from .connectors import adapter_for
from .errors import DocumenterError
from .pipeline import process_subsection
from .reporting import DocumentAssembler, write_report

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Synchronization Service Configuration"


def document_connector(pilot: etree._Element, production: etree._Element, connector: Connector) -> DocumentAssembler:
    """Document one connector into its own finalized assembler.

    Bookmark references are left pending; they are resolved once every
    connector document has been concatenated.
    """
    assembler = DocumentAssembler(context=connector.id or connector.name)
    assembler.open_section(
        f"{connector.name} Management Agent Configuration", 2, bookmark=("Connector", connector.name)
    )
    if connector.environment is not ConfigEnvironment.PILOT_AND_PRODUCTION:
        assembler.append_fragment(
            f'<p class="Content">This connector exists in the {connector.environment.value} configuration.</p>\n'
        )

    adapter = adapter_for(connector)
    for subsection in adapter(pilot, production, connector):
        try:
            process_subsection(assembler, subsection)
        except DocumenterError:
            logger.exception("connector %r: subsection %r failed and was skipped", connector.name, subsection.title)

    assembler.finalize(resolve_bookmarks=False)
    return assembler


def document_connectors(
    pilot: etree._Element,
    production: etree._Element,
    connectors: List[Connector],
    workers: int = 1,
) -> List[DocumentAssembler]:
    """Document *connectors* and return their assemblers in input order.

    Parameters
    ----------
    pilot, production:
        Merged configuration trees (see :func:`~configdiff.config_tree.load_configuration`).
    connectors:
        Output of :func:`~configdiff.config_tree.discover_connectors`.
    workers:
        Thread pool size; ``1`` documents the connectors sequentially.

    Returns
    -------
    list of DocumentAssembler
        One finalized assembler per connector that did not fail.
    """
    results: Dict[int, DocumentAssembler] = {}

    if workers <= 1:
        for i, connector in enumerate(connectors):
            try:
                results[i] = document_connector(pilot, production, connector)
            except Exception:
                logger.exception("connector %r failed and was left out of the report", connector.name)
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(document_connector, pilot, production, connector): i
                for i, connector in enumerate(connectors)
            }
            for future in as_completed(futures):
                i = futures[future]
                try:
                    results[i] = future.result()
                except Exception:
                    logger.exception("connector %r failed and was left out of the report", connectors[i].name)

    return [results[i] for i in sorted(results)]


def document_configuration(
    pilot_dir: Path,
    production_dir: Path,
    workers: int = 1,
    title: str = DEFAULT_TITLE,
) -> Tuple[str, str]:
    """Document *pilot_dir* applied to *production_dir*; return ``(body, toc)``.

    A link whose target is missing from the concatenated document (for
    instance because the target's connector failed) is logged and rendered as
    plain text; the rest of the report is unaffected.

    Raises
    ------
    FileNotFoundError
        If either directory (or its ``SyncConfig`` folder) is missing.
    """
    validate_input(pilot_dir)
    validate_input(production_dir)

    pilot = load_configuration(pilot_dir, "Pilot")
    production = load_configuration(production_dir, "Production")
    connectors = discover_connectors(pilot, production)
    logger.info("found %d connector(s)", len(connectors))

    document = DocumentAssembler()
    document.open_section(title, 1)
    for part in document_connectors(pilot, production, connectors, workers):
        try:
            document.append_assembler(part)
        except DocumenterError:
            logger.exception("connector document %r could not be merged and was skipped", part.context)
    return document.finalize(strict=False)


def generate_report(
    pilot_dir: Path,
    production_dir: Path,
    out_dir: Path,
    workers: int = 1,
    title: str = DEFAULT_TITLE,
    suffix: str = "report",
) -> Path:
    """Document the configuration pair and write the HTML report.

    Returns
    -------
    pathlib.Path
        The path of the written report.
    """
    body, toc = document_configuration(pilot_dir, production_dir, workers, title)
    return write_report(out_dir, title, body, toc, pilot_dir.name, production_dir.name, suffix)
