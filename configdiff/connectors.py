"""
connectors
==========

Connector adapters and their dispatch table.

An adapter is a plain function ``(pilot_tree, production_tree, connector) ->
list[Subsection]``. It declares the schema of every subsection it documents
and fills the pilot and production stores from the merged configuration
trees; the engine does the rest.

Adapters register per connector category (``AD``, ``MSSQL``...) with
:func:`register_adapter`. ``EXTENSIBLE2`` connectors may also register per
subtype as ``"EXTENSIBLE2/<SUBTYPE>"``. :func:`adapter_for` resolves a
connector once; unknown categories fall back to :func:`generic_adapter`.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from lxml import etree

from .config_tree import Connector, find_connector, text
from .pipeline import Subsection
from .projection import PrintProjection, ProjectionColumn
from .rendering import HeaderCell, RenderStyle
from .schema import Column, ColumnType, Relation, SchemaSet, TableSchema
from .store import TableStore

logger = logging.getLogger(__name__)

Adapter = Callable[[etree._Element, etree._Element, Connector], List[Subsection]]

_ADAPTERS: Dict[str, Adapter] = {}


def register_adapter(*categories: str) -> Callable[[Adapter], Adapter]:
    """Register the decorated adapter for *categories* (case-insensitive)."""

    def _decorator(fn: Adapter) -> Adapter:
        for category in categories:
            _ADAPTERS[category.upper()] = fn
        return fn

    return _decorator


def adapter_for(connector: Connector) -> Adapter:
    """Resolve the adapter for *connector*, falling back to the generic one."""
    category = connector.category.upper()
    if category == "EXTENSIBLE2" and connector.subtype:
        fn = _ADAPTERS.get(f"EXTENSIBLE2/{connector.subtype.upper()}")
        if fn is not None:
            return fn
    fn = _ADAPTERS.get(category)
    if fn is None:
        logger.warning(
            "Connector type '%s' is not supported; '%s' is documented as a generic connector.",
            connector.category,
            connector.name,
        )
        return generic_adapter
    return fn


def _fill(pilot: etree._Element, production: etree._Element, sub: Subsection, connector: Connector,
          fill: Callable[[etree._Element, TableStore], None]) -> Subsection:
    # pilot first, then production; a connector missing on one side leaves that store empty
    for config, store in ((pilot, sub.pilot), (production, sub.production)):
        ma = find_connector(config, connector.name)
        if ma is not None:
            fill(ma, store)
    return sub


# -----------------------------
# Properties
# -----------------------------
def connector_properties(pilot: etree._Element, production: etree._Element, connector: Connector) -> Subsection:
    """Ordered name/value settings describing the connector itself."""
    schemas = SchemaSet([
        TableSchema.build(
            "ConnectorProperties",
            [("DisplayOrder", ColumnType.ORDINAL), "Setting", "Configuration"],
            primary_key=["Setting"],
        )
    ])
    projection = PrintProjection([
        ProjectionColumn(0, 0, hidden=True, sort_order=0, change_ignored=True),
        ProjectionColumn(0, 1),
        ProjectionColumn(0, 2),
    ])
    style = RenderStyle.simple(("Setting", 50), ("Configuration", 50))
    sub = Subsection.create("Properties", 3, schemas, projection, style)

    def fill(ma: etree._Element, store: TableStore) -> None:
        table = "ConnectorProperties"
        store.add_row(table, [0, "Connector Name", text(ma, "name")])
        store.add_row(table, [1, "Connector Type", text(ma, "category")])
        store.add_row(table, [2, "Description", text(ma, "description")])
        for order, label, path in ((3, "Sub Type", "subtype"), (4, "List Name", "ma-listname"), (5, "Company", "ma-companyname")):
            value = text(ma, path)
            if value:
                store.add_row(table, [order, label, value])
        store.add_row(table, [6, "Creation Time", text(ma, "creation-time")])
        store.add_row(table, [7, "Last Modification Time", text(ma, "last-modification-time")])
        store.add_row(table, [8, "Architecture", text(ma, "controller-configuration/application-architecture")])
        protection = text(ma, "controller-configuration/application-protection")
        store.add_row(table, [9, "Run in Separate Process", "No" if protection == "low" else "Yes"])

    return _fill(pilot, production, sub, connector, fill)


# -----------------------------
# Provisioning hierarchy
# -----------------------------
def provisioning_hierarchy(pilot: etree._Element, production: etree._Element, connector: Connector) -> Subsection:
    """DN component to object class mappings (keyless: the pair is the identity)."""
    schemas = SchemaSet([TableSchema.build("ProvisioningHierarchy", ["DNComponent", "ObjectClass"])])
    projection = PrintProjection([ProjectionColumn(0, 0, sort_order=0), ProjectionColumn(0, 1)])
    style = RenderStyle.simple(
        ("DN Component", 50), ("Object Class Mapping", 50),
        empty_message="The provisioning hierarchy is not enabled.",
    )
    sub = Subsection.create("Provisioning Hierarchy", 3, schemas, projection, style)

    def fill(ma: etree._Element, store: TableStore) -> None:
        for mapping in ma.xpath("component_mappings/mapping"):
            store.add_row("ProvisioningHierarchy", [text(mapping, "dn_component"), text(mapping, "object_class")])

    return _fill(pilot, production, sub, connector, fill)


# -----------------------------
# Connector filter rules
# -----------------------------
def connector_filter_rules(pilot: etree._Element, production: etree._Element, connector: Connector) -> Subsection:
    """Filter sets per object type, their alternatives and conditions."""
    schemas = SchemaSet(
        [
            TableSchema.build("ConnectorFilter", ["SourceObjectType", "FilterType"], primary_key=["SourceObjectType"]),
            TableSchema.build(
                "ConnectorFilterRuleGroup",
                ["SourceObjectType", ("RuleNumber", ColumnType.INTEGER)],
                primary_key=["SourceObjectType", "RuleNumber"],
            ),
            TableSchema.build(
                "ConnectorFilterRuleCondition",
                ["SourceObjectType", ("RuleNumber", ColumnType.INTEGER), "SourceAttribute", Column("Operator", case_insensitive=True), "Value"],
            ),
        ],
        [
            Relation("ConnectorFilter", ("SourceObjectType",), "ConnectorFilterRuleGroup", ("SourceObjectType",)),
            Relation(
                "ConnectorFilterRuleGroup", ("SourceObjectType", "RuleNumber"),
                "ConnectorFilterRuleCondition", ("SourceObjectType", "RuleNumber"),
            ),
        ],
    )
    projection = PrintProjection([
        ProjectionColumn(0, 0, sort_order=0),
        ProjectionColumn(0, 1),
        ProjectionColumn(1, 0, hidden=True, sort_order=0),
        ProjectionColumn(1, 1, sort_order=1),
        ProjectionColumn(2, 0, hidden=True, sort_order=0),
        ProjectionColumn(2, 1, hidden=True, sort_order=1),
        ProjectionColumn(2, 2, sort_order=2),
        ProjectionColumn(2, 3, sort_order=3),
        ProjectionColumn(2, 4, sort_order=4),
    ])
    style = RenderStyle(
        header=[
            [HeaderCell("Data Source Object Type", rowspan=2), HeaderCell("Filter Type", rowspan=2), HeaderCell("Filter", colspan=4)],
            [HeaderCell("#"), HeaderCell("Attribute"), HeaderCell("Operator"), HeaderCell("Value")],
        ],
        empty_message="There are no connector filter rules configured.",
    )
    sub = Subsection.create("Connector Filter Rules", 3, schemas, projection, style)

    def fill(ma: etree._Element, store: TableStore) -> None:
        for filter_set in ma.xpath("stay-disconnector/filter-set"):
            object_type = text(filter_set, "@cd-object-type")
            if not object_type:
                continue
            store.add_row("ConnectorFilter", [object_type, text(filter_set, "@type")])
            for number, alternative in enumerate(filter_set.xpath("filter-alternative"), start=1):
                store.add_row("ConnectorFilterRuleGroup", [object_type, number])
                for condition in alternative.xpath("condition"):
                    store.add_row(
                        "ConnectorFilterRuleCondition",
                        [object_type, number, text(condition, "@cd-attribute"), text(condition, "@operator"), text(condition, "value")],
                    )

    return _fill(pilot, production, sub, connector, fill)


# -----------------------------
# Run profiles
# -----------------------------
def run_profile_step_type(step_type: Optional[etree._Element]) -> str:
    """Human-readable run profile step type."""
    if step_type is None:
        return ""
    kind = (step_type.get("type") or "").upper()
    if kind in ("DELTA-IMPORT", "FULL-IMPORT"):
        stage_only = (text(step_type, "import-subtype") or "").upper() == "TO-CS"
        label = "Delta Import" if kind == "DELTA-IMPORT" else "Full Import"
        return f"{label} (Stage Only)" if stage_only else f"{label} and Delta Synchronization"
    if kind == "EXPORT":
        return "Export"
    if kind == "FULL-IMPORT-REEVALUATE-RULES":
        return "Full Import and Full Synchronization"
    if kind == "APPLY-RULES":
        subtype = (text(step_type, "apply-rules-subtype") or "").upper()
        return {"APPLY-PENDING": "Delta Synchronization", "REEVALUATE-FLOW-CONNECTORS": "Full Synchronization"}.get(subtype, subtype)
    return kind


def run_profiles(pilot: etree._Element, production: etree._Element, connector: Connector) -> Subsection:
    """Run profiles, their steps and per-step settings; omitted when none exist.

    Run profile names are bookmark targets, scoped by connector name so
    profiles of different connectors never share an anchor.
    """
    schemas = SchemaSet(
        [
            TableSchema.build("RunProfile", ["Connector", "RunProfileName"], primary_key=["Connector", "RunProfileName"]),
            TableSchema.build(
                "RunProfileStep",
                ["RunProfileName", ("StepNumber", ColumnType.INTEGER), "StepType"],
                primary_key=["RunProfileName", "StepNumber"],
            ),
            TableSchema.build(
                "RunProfileStepSetting",
                ["RunProfileName", ("StepNumber", ColumnType.INTEGER), "Setting", "Configuration", ("DisplayOrder", ColumnType.ORDINAL)],
                primary_key=["RunProfileName", "StepNumber", "Setting"],
            ),
        ],
        [
            Relation("RunProfile", ("RunProfileName",), "RunProfileStep", ("RunProfileName",)),
            Relation(
                "RunProfileStep", ("RunProfileName", "StepNumber"),
                "RunProfileStepSetting", ("RunProfileName", "StepNumber"),
            ),
        ],
    )
    projection = PrintProjection([
        ProjectionColumn(0, 0, hidden=True),
        ProjectionColumn(0, 1, sort_order=0, bookmark_target=True),
        ProjectionColumn(1, 0, hidden=True),
        ProjectionColumn(1, 1, sort_order=0),
        ProjectionColumn(1, 2),
        ProjectionColumn(2, 0, hidden=True),
        ProjectionColumn(2, 1, hidden=True),
        ProjectionColumn(2, 2),
        ProjectionColumn(2, 3),
        ProjectionColumn(2, 4, hidden=True, sort_order=0, change_ignored=True),
    ])
    style = RenderStyle.simple("Run Profile", "Step #", "Step Type", "Setting", "Configuration", only_if_nonempty=True)
    sub = Subsection.create("Run Profiles", 3, schemas, projection, style)

    def fill(ma: etree._Element, store: TableStore) -> None:
        partitions = {
            (text(p, "id") or "").upper(): text(p, "name") for p in ma.xpath("ma-partition-data/partition")
        }
        for profile in ma.xpath("ma-run-data/run-configuration"):
            name = text(profile, "name")
            if not name:
                continue
            store.add_row("RunProfile", [connector.name, name])
            for number, step in enumerate(profile.xpath("configuration/step"), start=1):
                step_types = step.xpath("step-type")
                store.add_row("RunProfileStep", [name, number, run_profile_step_type(step_types[0] if step_types else None)])
                settings = (
                    (1, "Log file", text(step, "dropfile-name")),
                    (2, "Number of objects", text(step, "threshold/object")),
                    (3, "Number of deletions", text(step, "threshold/delete")),
                    (4, "Partition", partitions.get((text(step, "partition") or "").upper())),
                )
                for order, setting, value in settings:
                    if value:
                        store.add_row("RunProfileStepSetting", [name, number, setting, value, order])

    return _fill(pilot, production, sub, connector, fill)


@register_adapter("AD", "AD GAL", "ADAM", "FIM", "MSSQL", "ORACLE", "DB2", "EXTENSIBLE2")
def generic_adapter(pilot: etree._Element, production: etree._Element, connector: Connector) -> List[Subsection]:
    """Subsections shared by every connector type."""
    return [
        connector_properties(pilot, production, connector),
        provisioning_hierarchy(pilot, production, connector),
        connector_filter_rules(pilot, production, connector),
        run_profiles(pilot, production, connector),
    ]
