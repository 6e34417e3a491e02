"""
config_tree
===========

Loading and querying the exported configuration of one environment.

Each environment directory holds a ``SyncConfig`` folder of XML exports (one
per connector plus the metaverse). They are merged into a single tree::

    <Root><Pilot><SyncConfig>...exports...</SyncConfig></Pilot></Root>

so adapters can query everything with XPath. Connectors are discovered from
``//ma-data`` elements.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from lxml import etree

logger = logging.getLogger(__name__)

SYNC_CONFIG_DIR = "SyncConfig"


class ConfigEnvironment(enum.Enum):
    """Which environments a connector exists in."""

    PILOT_AND_PRODUCTION = "pilot and production"
    PILOT_ONLY = "pilot only"
    PRODUCTION_ONLY = "production only"


@dataclass(frozen=True)
class Connector:
    """A connector (management agent) found in the merged trees."""

    name: str
    id: str
    category: str
    subtype: str
    environment: ConfigEnvironment


def validate_input(directory: Path) -> None:
    """Fail fast if *directory* or its ``SyncConfig`` folder is missing.

    Raises
    ------
    FileNotFoundError
        If either directory does not exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"configuration directory not found: {directory}")
    if not (directory / SYNC_CONFIG_DIR).is_dir():
        raise FileNotFoundError(f"{SYNC_CONFIG_DIR} directory not found under: {directory}")


def load_configuration(directory: Path, environment: str) -> etree._Element:
    """Merge every ``SyncConfig/*.xml`` export under *directory* into one tree.

    Parameters
    ----------
    directory:
        Environment directory.
    environment:
        ``"Pilot"`` or ``"Production"``; names the wrapper element.

    Returns
    -------
    lxml.etree._Element
        The ``<Root>`` element of the merged tree.
    """
    validate_input(directory)
    root = etree.Element("Root")
    sync_config = etree.SubElement(etree.SubElement(root, environment), SYNC_CONFIG_DIR)
    parser = etree.XMLParser(remove_blank_text=True)
    for path in sorted((directory / SYNC_CONFIG_DIR).glob("*.xml")):
        logger.debug("loading %s", path)
        sync_config.append(etree.parse(str(path), parser).getroot())
    return root


def text(node: Optional[etree._Element], xpath: str) -> Optional[str]:
    """First string result of *xpath* under *node*, or None if absent.

    Works for element paths (their text) and attribute paths.
    """
    if node is None:
        return None
    found = node.xpath(xpath)
    if not found:
        return None
    first = found[0]
    if isinstance(first, etree._Element):
        return first.text or ""
    return str(first)


def find_connector(config: etree._Element, name: str) -> Optional[etree._Element]:
    """The ``ma-data`` element named *name*, or None."""
    found = config.xpath("//ma-data[name = $name]", name=name)
    return found[0] if found else None


def _connector_names(config: etree._Element) -> List[str]:
    return sorted({text(ma, "name") or "" for ma in config.xpath("//ma-data")} - {""})


def discover_connectors(pilot: etree._Element, production: etree._Element) -> List[Connector]:
    """List connectors of both environments.

    Pilot connectors come first (sorted by name), each flagged as present in
    both environments or pilot only; production-only connectors follow, also
    sorted by name.
    """
    pilot_names = _connector_names(pilot)
    production_names = set(_connector_names(production))

    def _build(config: etree._Element, name: str, env: ConfigEnvironment) -> Connector:
        ma = find_connector(config, name)
        return Connector(
            name=name,
            id=(text(ma, "id") or "").upper(),
            category=text(ma, "category") or "",
            subtype=text(ma, "subtype") or "",
            environment=env,
        )

    out: List[Connector] = []
    for name in pilot_names:
        env = ConfigEnvironment.PILOT_AND_PRODUCTION if name in production_names else ConfigEnvironment.PILOT_ONLY
        out.append(_build(pilot, name, env))
    for name in sorted(production_names - set(pilot_names)):
        out.append(_build(production, name, ConfigEnvironment.PRODUCTION_ONLY))
    return out
