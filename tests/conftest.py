"""Shared fixtures: small pilot/production configuration exports on disk."""

from pathlib import Path
from typing import Callable, Dict, Tuple

import pytest

CONTOSO_PILOT = """<export-ma>
  <ma-data>
    <id>{6A5E0B51-0000-4000-8000-000000000001}</id>
    <name>Contoso AD</name>
    <category>AD</category>
    <description>Main forest</description>
    <creation-time>2020-01-01 10:00:00.000</creation-time>
    <last-modification-time>2020-01-01 10:00:00.000</last-modification-time>
    <controller-configuration>
      <application-architecture>process</application-architecture>
      <application-protection>low</application-protection>
    </controller-configuration>
    <component_mappings>
      <mapping><dn_component>OU</dn_component><object_class>organizationalUnit</object_class></mapping>
    </component_mappings>
    <stay-disconnector>
      <filter-set cd-object-type="user" type="declared">
        <filter-alternative>
          <condition cd-attribute="sAMAccountName" operator="equality"><value>admin</value></condition>
        </filter-alternative>
        <filter-alternative>
          <condition cd-attribute="description" operator="starts-with"><value>svc</value></condition>
        </filter-alternative>
      </filter-set>
    </stay-disconnector>
    <ma-partition-data>
      <partition><id>{p-1}</id><name>DC=contoso,DC=com</name></partition>
    </ma-partition-data>
    <ma-run-data>
      <run-configuration>
        <name>Full Import</name>
        <configuration>
          <step>
            <step-type type="full-import"><import-subtype>to-cs</import-subtype></step-type>
            <partition>{P-1}</partition>
          </step>
        </configuration>
      </run-configuration>
    </ma-run-data>
  </ma-data>
</export-ma>
"""

CONTOSO_PRODUCTION = """<export-ma>
  <ma-data>
    <id>{6A5E0B51-0000-4000-8000-000000000001}</id>
    <name>Contoso AD</name>
    <category>AD</category>
    <description>Old forest</description>
    <creation-time>2020-01-01 10:00:00.000</creation-time>
    <last-modification-time>2020-01-01 10:00:00.000</last-modification-time>
    <controller-configuration>
      <application-architecture>process</application-architecture>
      <application-protection>high</application-protection>
    </controller-configuration>
    <stay-disconnector>
      <filter-set cd-object-type="user" type="declared">
        <filter-alternative>
          <condition cd-attribute="sAMAccountName" operator="equality"><value>admin</value></condition>
        </filter-alternative>
      </filter-set>
      <filter-set cd-object-type="group" type="declared">
        <filter-alternative>
          <condition cd-attribute="cn" operator="equality"><value>temp</value></condition>
        </filter-alternative>
      </filter-set>
    </stay-disconnector>
  </ma-data>
</export-ma>
"""

HR_PILOT = """<export-ma>
  <ma-data>
    <id>{6A5E0B51-0000-4000-8000-000000000002}</id>
    <name>HR Database</name>
    <category>MSSQL</category>
    <description>HR feed</description>
  </ma-data>
</export-ma>
"""

LEGACY_PRODUCTION = """<export-ma>
  <ma-data>
    <id>{6A5E0B51-0000-4000-8000-000000000003}</id>
    <name>Legacy LDAP</name>
    <category>Extensible2</category>
    <subtype>Generic LDAP</subtype>
  </ma-data>
</export-ma>
"""


@pytest.fixture
def write_export() -> Callable[[Path, Dict[str, str]], Path]:
    """Return a helper writing ``SyncConfig/<name>`` files under a directory."""

    def _write(directory: Path, files: Dict[str, str]) -> Path:
        sync = directory / "SyncConfig"
        sync.mkdir(parents=True, exist_ok=True)
        for name, content in files.items():
            (sync / name).write_text(content, encoding="utf-8")
        return directory

    return _write


@pytest.fixture
def config_dirs(tmp_path: Path, write_export: Callable[[Path, Dict[str, str]], Path]) -> Tuple[Path, Path]:
    """Pilot and production directories sharing one connector, plus one each of their own."""
    pilot = write_export(tmp_path / "Pilot", {"MA-Contoso.xml": CONTOSO_PILOT, "MA-HR.xml": HR_PILOT})
    production = write_export(
        tmp_path / "Production", {"MA-Contoso.xml": CONTOSO_PRODUCTION, "MA-Legacy.xml": LEGACY_PRODUCTION}
    )
    return pilot, production


@pytest.fixture
def twin_profile_dirs(tmp_path: Path, write_export: Callable[[Path, Dict[str, str]], Path]) -> Tuple[Path, Path]:
    """Contoso AD on both sides with run profiles "Full Import" and "Full_Import"."""
    twin = "<run-configuration><name>Full_Import</name><configuration/></run-configuration>\n    </ma-run-data>"
    pilot = write_export(tmp_path / "Pilot", {"MA-Contoso.xml": CONTOSO_PILOT.replace("</ma-run-data>", twin)})
    runs = (
        "<ma-run-data>"
        "<run-configuration><name>Full Import</name><configuration/></run-configuration>"
        "<run-configuration><name>Full_Import</name><configuration/></run-configuration>"
        "</ma-run-data>\n  </ma-data>"
    )
    production = write_export(
        tmp_path / "Production", {"MA-Contoso.xml": CONTOSO_PRODUCTION.replace("</ma-data>", runs)}
    )
    return pilot, production
