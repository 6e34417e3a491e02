"""Unit tests for config_tree module."""

from pathlib import Path
from typing import Tuple

import pytest
from lxml import etree

from configdiff.config_tree import (
    ConfigEnvironment,
    discover_connectors,
    find_connector,
    load_configuration,
    text,
    validate_input,
)


class TestValidateInput:
    """Tests for validate_input function."""

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Test a missing directory raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="configuration directory not found"):
            validate_input(tmp_path / "missing")

    def test_missing_sync_config(self, tmp_path: Path) -> None:
        """Test a directory without SyncConfig raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="SyncConfig"):
            validate_input(tmp_path)


class TestLoadConfiguration:
    """Tests for load_configuration and queries on the merged tree."""

    def test_merges_exports_under_environment(self, config_dirs: Tuple[Path, Path]) -> None:
        """Test every export is merged under Root/<environment>/SyncConfig."""
        pilot_dir, _ = config_dirs
        root = load_configuration(pilot_dir, "Pilot")
        assert root.tag == "Root"
        assert len(root.xpath("Pilot/SyncConfig/export-ma")) == 2
        assert sorted(root.xpath("//ma-data/name/text()")) == ["Contoso AD", "HR Database"]

    def test_text_helper(self, config_dirs: Tuple[Path, Path]) -> None:
        """Test text returns element text, attribute values or None."""
        pilot_dir, _ = config_dirs
        ma = find_connector(load_configuration(pilot_dir, "Pilot"), "Contoso AD")
        assert ma is not None
        assert text(ma, "category") == "AD"
        assert text(ma, "stay-disconnector/filter-set/@cd-object-type") == "user"
        assert text(ma, "subtype") is None
        assert text(None, "name") is None

    def test_empty_element_text_is_empty_string(self) -> None:
        """Test an empty element gives an empty string rather than None."""
        node = etree.fromstring("<ma-data><description/></ma-data>")
        assert text(node, "description") == ""

    def test_find_connector_by_name(self, config_dirs: Tuple[Path, Path]) -> None:
        """Test connectors are looked up by exact name, quotes included."""
        pilot_dir, _ = config_dirs
        root = load_configuration(pilot_dir, "Pilot")
        assert find_connector(root, "HR Database") is not None
        assert find_connector(root, "Nope") is None
        assert find_connector(root, "it's") is None


def test_discover_connectors(config_dirs: Tuple[Path, Path]) -> None:
    pilot_dir, production_dir = config_dirs
    connectors = discover_connectors(
        load_configuration(pilot_dir, "Pilot"), load_configuration(production_dir, "Production")
    )
    assert [(c.name, c.environment) for c in connectors] == [
        ("Contoso AD", ConfigEnvironment.PILOT_AND_PRODUCTION),
        ("HR Database", ConfigEnvironment.PILOT_ONLY),
        ("Legacy LDAP", ConfigEnvironment.PRODUCTION_ONLY),
    ]
    contoso, hr, legacy = connectors
    assert contoso.id == "{6A5E0B51-0000-4000-8000-000000000001}"
    assert hr.category == "MSSQL"
    assert legacy.subtype == "Generic LDAP"
