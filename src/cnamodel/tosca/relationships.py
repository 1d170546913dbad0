"""
Relationship template builders.

Links become connects-to relationships carrying the target endpoint
descriptor; deployment mappings become structural hosted-on relationships.
Data and backing data usages become attaches-to relationships inlined into
the using node's requirements.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cnamodel.entities.models import BackingDataUsage, DataUsage, DeploymentMapping, Link
from cnamodel.tosca.keys import ExportContext, target_endpoint_name
from cnamodel.tosca.models import RelationshipTemplate

if TYPE_CHECKING:
    from cnamodel.catalog import TypeCatalog
    from cnamodel.entities.models import System

LINK_TYPE = "cna.qualityModel.entities.ConnectsTo.Link"
HOSTED_ON_TYPE = "tosca.relationships.HostedOn"
ATTACHES_TO_DATA_AGGREGATE_TYPE = "cna.qualityModel.relationships.AttachesTo.DataAggregate"
ATTACHES_TO_BACKING_DATA_TYPE = "cna.qualityModel.relationships.AttachesTo.BackingData"


def link_to_template(link: Link, catalog: TypeCatalog) -> RelationshipTemplate:
    properties = {"target_endpoint": target_endpoint_name(link.target)}
    if link.relation_type is not None:
        properties["relation_type"] = link.relation_type
    return RelationshipTemplate(
        type=LINK_TYPE,
        properties=catalog.with_defaults(LINK_TYPE, properties),
    )


def deployment_mapping_to_template(mapping: DeploymentMapping) -> RelationshipTemplate:
    return RelationshipTemplate(type=HOSTED_ON_TYPE)


def usage_to_template(
    usage: DataUsage | BackingDataUsage, catalog: TypeCatalog
) -> RelationshipTemplate:
    """Attaches-to relationship for a data or backing data usage; sharding_level defaults to 0."""
    if isinstance(usage, DataUsage):
        relationship_type = ATTACHES_TO_DATA_AGGREGATE_TYPE
    else:
        relationship_type = ATTACHES_TO_BACKING_DATA_TYPE

    properties = dict(usage.properties)
    if usage.usage_relation is not None:
        properties["usage_relation"] = usage.usage_relation.value
    properties = catalog.with_defaults(relationship_type, properties)
    return RelationshipTemplate(type=relationship_type, properties=properties or None)


def build_relationship_templates(
    system: System,
    context: ExportContext,
    catalog: TypeCatalog,
) -> list[tuple[str, RelationshipTemplate]]:
    """Build every relationship template of a system, keyed, links first."""
    templates: list[tuple[str, RelationshipTemplate]] = []
    for link in system.links:
        templates.append((context.relationship_key(link), link_to_template(link, catalog)))
    for mapping in system.deployment_mappings:
        templates.append(
            (context.relationship_key(mapping), deployment_mapping_to_template(mapping))
        )
    return templates
