"""
TOSCA export for architecture entity graphs.

Converts a System into a TOSCA service template: sanitized unique keys,
typed node and relationship templates, and a document envelope.
"""

from cnamodel.tosca.assembler import assemble_service_template, export_system
from cnamodel.tosca.keys import ExportContext, UniqueKeyManager, sanitize
from cnamodel.tosca.models import (
    NodeTemplate,
    RelationshipTemplate,
    ServiceTemplate,
    TemplateMetadata,
    TopologyTemplate,
)
from cnamodel.tosca.serializers import serialize_json, serialize_yaml

__all__ = [
    # Keys
    "sanitize",
    "UniqueKeyManager",
    "ExportContext",
    # Models
    "NodeTemplate",
    "RelationshipTemplate",
    "TopologyTemplate",
    "TemplateMetadata",
    "ServiceTemplate",
    # Export
    "assemble_service_template",
    "export_system",
    # Serializers
    "serialize_yaml",
    "serialize_json",
]
