"""
Service template assembly.

export_system() is the single entry point of the TOSCA export: it issues
keys, runs the node and relationship builders and folds their output into
one ServiceTemplate. Each call owns a fresh ExportContext, so concurrent
exports never share key state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from cnamodel.catalog import TypeCatalog, get_catalog
from cnamodel.config.settings import Settings, get_settings
from cnamodel.core.errors import TemplateAssemblyError
from cnamodel.logging import bind_context
from cnamodel.tosca.keys import ExportContext, allocate_keys
from cnamodel.tosca.models import (
    NodeTemplate,
    RelationshipTemplate,
    ServiceTemplate,
    TemplateMetadata,
    TopologyTemplate,
)
from cnamodel.tosca.nodes import build_node_templates
from cnamodel.tosca.relationships import build_relationship_templates

if TYPE_CHECKING:
    from cnamodel.entities.models import System


def assemble_service_template(
    system_name: str,
    node_templates: Iterable[tuple[str, NodeTemplate]],
    relationship_templates: Iterable[tuple[str, RelationshipTemplate]],
    settings: Settings | None = None,
) -> ServiceTemplate:
    """
    Fold builder output into a ServiceTemplate.

    Node and relationship keys are separate namespaces: a key must be
    unique within its own mapping, but may appear in both.

    Raises:
        TemplateAssemblyError: A template has no type tag, or a key repeats
            within one namespace.
    """
    settings = settings or get_settings()

    return ServiceTemplate(
        metadata=TemplateMetadata(
            template_author=settings.template_author,
            template_name=system_name,
            template_version=settings.template_version,
        ),
        description=settings.template_description,
        topology_template=TopologyTemplate(
            node_templates=_fold("node", node_templates),
            relationship_templates=_fold("relationship", relationship_templates),
        ),
    )


def _fold(namespace: str, entries: Iterable[tuple[str, NodeTemplate | RelationshipTemplate]]) -> dict:
    folded: dict = {}
    for key, template in entries:
        if not key:
            raise TemplateAssemblyError(f"Empty {namespace} template key")
        if not template.type:
            raise TemplateAssemblyError(
                f"{namespace.capitalize()} template has no type", {"key": key}
            )
        if key in folded:
            raise TemplateAssemblyError(
                f"Duplicate {namespace} template key", {"key": key}
            )
        folded[key] = template
    return folded


def _check_declared_types(
    node_templates: list[tuple[str, NodeTemplate]],
    relationship_templates: list[tuple[str, RelationshipTemplate]],
    catalog: TypeCatalog,
) -> None:
    for key, node in node_templates:
        if not catalog.has_node_type(node.type):
            raise TemplateAssemblyError(
                "Node template type is not declared in the type catalog",
                {"key": key, "type": node.type},
            )
    for key, relationship in relationship_templates:
        if not catalog.has_relationship_type(relationship.type):
            raise TemplateAssemblyError(
                "Relationship template type is not declared in the type catalog",
                {"key": key, "type": relationship.type},
            )


def export_system(
    system: System,
    settings: Settings | None = None,
    catalog: TypeCatalog | None = None,
) -> ServiceTemplate:
    """
    Convert a System entity graph into a TOSCA service template.

    The graph is only read. Any invariant violation aborts the export with
    a CnaModelError; no partial document is returned.

    Args:
        system: Fully built entity graph
        settings: Envelope metadata (author, version, description)
        catalog: Type catalog for property defaults and declared types

    Returns:
        ServiceTemplate ready for serialization
    """
    catalog = catalog or get_catalog()
    context = ExportContext()

    allocate_keys(system, context)
    node_templates = build_node_templates(system, context, catalog)
    relationship_templates = build_relationship_templates(system, context, catalog)
    _check_declared_types(node_templates, relationship_templates, catalog)

    service_template = assemble_service_template(
        system.name,
        node_templates,
        relationship_templates,
        settings=settings,
    )

    bind_context(system=system.name).info(
        "service_template_exported",
        node_templates=len(service_template.topology_template.node_templates),
        relationship_templates=len(service_template.topology_template.relationship_templates),
    )
    return service_template
