"""
Node template builders.

One builder per entity kind. Every builder reads keys from the
ExportContext, which must already hold the keys of every entity in the
system (see allocate_keys); builders never issue keys themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from cnamodel.core.errors import ReferentialIntegrityError
from cnamodel.entities.models import (
    BackingData,
    BackingDataUsage,
    Component,
    ComponentKind,
    DataAggregate,
    DataUsage,
    Infrastructure,
    InfrastructureKind,
    RequestTrace,
)
from cnamodel.tosca.keys import ExportContext, endpoint_descriptor, target_endpoint_name
from cnamodel.tosca.models import NodeTemplate
from cnamodel.tosca.relationships import usage_to_template

if TYPE_CHECKING:
    from cnamodel.catalog import TypeCatalog
    from cnamodel.entities.models import System

COMPONENT_TYPE = "cna.qualityModel.entities.Root.Component"
SERVICE_TYPE = "cna.qualityModel.entities.SoftwareComponent.Service"
BACKING_SERVICE_TYPE = "cna.qualityModel.entities.BackingService"
STORAGE_BACKING_SERVICE_TYPE = "cna.qualityModel.entities.DBMS.StorageService"
COMPUTE_INFRASTRUCTURE_TYPE = "cna.qualityModel.entities.Compute.Infrastructure"
DBMS_INFRASTRUCTURE_TYPE = "tosca.nodes.DBMS"
DATA_AGGREGATE_TYPE = "cna.qualityModel.entities.DataAggregate"
BACKING_DATA_TYPE = "cna.qualityModel.entities.BackingData"
REQUEST_TRACE_TYPE = "cna.qualityModel.entities.RequestTrace"

ComponentBuilder = Callable[[Component, "System", ExportContext, "TypeCatalog"], NodeTemplate]


def _entity_metadata(entity: Any) -> dict[str, Any]:
    metadata: dict[str, Any] = {"id": entity.id}
    metadata.update(entity.metadata)
    return metadata


def _host_requirement(
    entity: Component | Infrastructure,
    host: Infrastructure,
    system: System,
    context: ExportContext,
) -> dict[str, Any]:
    """Host key, plus the deployment mapping key when a mapping records the hosting."""
    requirement: dict[str, Any] = {"node": context.node_key(host, referrer=entity.id)}
    mapping = system.deployment_mapping_for(entity, host)
    if mapping is not None:
        requirement["relationship"] = context.relationship_key(mapping)
    return {"host": requirement}


def _attachment_requirement(
    usage: DataUsage | BackingDataUsage,
    referrer: str,
    context: ExportContext,
    catalog: TypeCatalog,
) -> dict[str, Any]:
    """uses_data or uses_backing_data: target key plus the inline attaches-to relationship."""
    if isinstance(usage, DataUsage):
        name, target = "uses_data", usage.data_aggregate
    else:
        name, target = "uses_backing_data", usage.backing_data
    return {
        name: {
            "node": context.node_key(target, referrer=referrer),
            "relationship": usage_to_template(usage, catalog).to_dict(),
        }
    }


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


def _component_requirements(
    component: Component, system: System, context: ExportContext, catalog: TypeCatalog
) -> list[dict[str, Any]]:
    requirements: list[dict[str, Any]] = []

    if component.hosted_by is not None:
        requirements.append(_host_requirement(component, component.hosted_by, system, context))

    for link in system.links_from(component):
        owner = system.endpoint_owner(link.target)
        if owner is None:
            raise ReferentialIntegrityError(
                "Link targets an endpoint no component provides",
                {"link": link.id, "endpoint": link.target.id},
            )
        requirements.append(
            {
                "endpoint_link": {
                    "node": context.node_key(owner, referrer=link.id),
                    "relationship": context.relationship_key(link),
                }
            }
        )

    for usage in (*component.uses_data, *component.uses_backing_data):
        requirements.append(_attachment_requirement(usage, component.id, context, catalog))

    return requirements


def _component_properties(component: Component) -> dict[str, Any]:
    return {
        "endpoints": [endpoint_descriptor(e) for e in component.endpoints],
        "external_endpoints": [endpoint_descriptor(e) for e in component.external_endpoints],
        # Reserved: the model does not record persisted data for components yet.
        "persisted_data": [],
    }


def _typed_component_builder(node_type: str) -> ComponentBuilder:
    def build(
        component: Component,
        system: System,
        context: ExportContext,
        catalog: TypeCatalog,
    ) -> NodeTemplate:
        return NodeTemplate(
            type=node_type,
            metadata=_entity_metadata(component),
            properties=_component_properties(component),
            requirements=_component_requirements(component, system, context, catalog),
        )

    return build


def _configured_component_builder(node_type: str) -> ComponentBuilder:
    """Backing and storage services also carry their configuration (replicas, shards, ...)."""

    def build(
        component: Component,
        system: System,
        context: ExportContext,
        catalog: TypeCatalog,
    ) -> NodeTemplate:
        properties = catalog.with_defaults(node_type, component.properties)
        properties.update(_component_properties(component))
        return NodeTemplate(
            type=node_type,
            metadata=_entity_metadata(component),
            properties=properties,
            requirements=_component_requirements(component, system, context, catalog),
        )

    return build


COMPONENT_BUILDERS: dict[ComponentKind, ComponentBuilder] = {
    ComponentKind.COMPONENT: _typed_component_builder(COMPONENT_TYPE),
    ComponentKind.SERVICE: _typed_component_builder(SERVICE_TYPE),
    ComponentKind.BACKING_SERVICE: _configured_component_builder(BACKING_SERVICE_TYPE),
    ComponentKind.STORAGE_BACKING_SERVICE: _configured_component_builder(
        STORAGE_BACKING_SERVICE_TYPE
    ),
}


def component_to_template(
    component: Component,
    system: System,
    context: ExportContext,
    catalog: TypeCatalog,
) -> NodeTemplate:
    return COMPONENT_BUILDERS[component.kind](component, system, context, catalog)


# ---------------------------------------------------------------------------
# Infrastructure, data aggregates, backing data, request traces
# ---------------------------------------------------------------------------


def infrastructure_to_template(
    infrastructure: Infrastructure,
    system: System,
    context: ExportContext,
    catalog: TypeCatalog,
) -> NodeTemplate:
    if infrastructure.kind is InfrastructureKind.DBMS:
        node_type = DBMS_INFRASTRUCTURE_TYPE
    else:
        node_type = COMPUTE_INFRASTRUCTURE_TYPE

    requirements: list[dict[str, Any]] = []
    if infrastructure.hosted_by is not None:
        requirements.append(
            _host_requirement(infrastructure, infrastructure.hosted_by, system, context)
        )
    for usage in infrastructure.uses_backing_data:
        requirements.append(_attachment_requirement(usage, infrastructure.id, context, catalog))

    properties = catalog.with_defaults(node_type, infrastructure.properties)
    return NodeTemplate(
        type=node_type,
        metadata=_entity_metadata(infrastructure),
        properties=properties or None,
        requirements=requirements,
    )


def data_aggregate_to_template(
    data_aggregate: DataAggregate,
    system: System,
    context: ExportContext,
) -> NodeTemplate:
    """
    Resolve the "persisted by" names to node keys.

    A name carried by several entities resolves to the first storage
    service or DBMS of that name, falling back to the first entity of any
    kind.
    """
    persisted_by: list[str] = []
    for name in data_aggregate.persisted_by:
        candidates = system.storage_entities_named(name)
        if not candidates:
            raise ReferentialIntegrityError(
                "Data aggregate is persisted by an unknown entity",
                {"data_aggregate": data_aggregate.id, "persisted_by": name},
            )
        candidates.sort(key=lambda entity: not _is_storage_capable(entity))
        persisted_by.append(context.node_key(candidates[0], referrer=data_aggregate.id))

    return NodeTemplate(
        type=DATA_AGGREGATE_TYPE,
        metadata=_entity_metadata(data_aggregate),
        properties={"persisted_by": persisted_by},
    )


def _is_storage_capable(entity: Component | Infrastructure) -> bool:
    if isinstance(entity, Component):
        return entity.kind is ComponentKind.STORAGE_BACKING_SERVICE
    return entity.kind is InfrastructureKind.DBMS


def backing_data_to_template(backing_data: BackingData) -> NodeTemplate:
    properties = None
    if backing_data.included_data:
        properties = {
            "includedData": {item.key: item.value for item in backing_data.included_data}
        }
    return NodeTemplate(
        type=BACKING_DATA_TYPE,
        metadata=_entity_metadata(backing_data),
        properties=properties,
    )


def request_trace_to_template(
    trace: RequestTrace,
    system: System,
    context: ExportContext,
) -> NodeTemplate:
    endpoint = trace.external_endpoint
    owner = system.endpoint_owner(endpoint)
    if owner is None:
        raise ReferentialIntegrityError(
            "Request trace starts at an endpoint no component provides",
            {"request_trace": trace.id, "endpoint": endpoint.id},
        )

    # Components touched by the trace, first-seen order
    nodes: list[str] = []
    for link in trace.links:
        for entity in (link.source, system.endpoint_owner(link.target)):
            if entity is None:
                raise ReferentialIntegrityError(
                    "Link targets an endpoint no component provides",
                    {"link": link.id, "endpoint": link.target.id},
                )
            key = context.node_key(entity, referrer=trace.id)
            if key not in nodes:
                nodes.append(key)

    metadata = _entity_metadata(trace)
    metadata["name"] = trace.name
    return NodeTemplate(
        type=REQUEST_TRACE_TYPE,
        metadata=metadata,
        properties={
            "referred_endpoint": target_endpoint_name(endpoint),
            "nodes": nodes,
            "involved_links": [context.relationship_key(link) for link in trace.links],
        },
        requirements=[{"external_endpoint": context.node_key(owner, referrer=trace.id)}],
    )


def build_node_templates(
    system: System,
    context: ExportContext,
    catalog: TypeCatalog,
) -> list[tuple[str, NodeTemplate]]:
    """Build every node template of a system, keyed, in key allocation order."""
    templates: list[tuple[str, NodeTemplate]] = []

    for component in system.components:
        templates.append(
            (context.node_key(component), component_to_template(component, system, context, catalog))
        )
    for infrastructure in system.infrastructure:
        templates.append(
            (
                context.node_key(infrastructure),
                infrastructure_to_template(infrastructure, system, context, catalog),
            )
        )
    for data_aggregate in system.data_aggregates:
        templates.append(
            (
                context.node_key(data_aggregate),
                data_aggregate_to_template(data_aggregate, system, context),
            )
        )
    for backing_data in system.backing_data:
        templates.append((context.node_key(backing_data), backing_data_to_template(backing_data)))
    for trace in system.request_traces:
        templates.append(
            (context.node_key(trace), request_trace_to_template(trace, system, context))
        )

    return templates
