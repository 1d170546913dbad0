"""
TOSCA service template models.

Output records of the export: typed node and relationship templates,
collected into a topology template inside a service template envelope.
Field names of to_dict() output are the document's compatibility surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TOSCA_DEFINITIONS_VERSION = "tosca_simple_yaml_1_3"


@dataclass(frozen=True)
class NodeTemplate:
    """A typed record describing one topology entity."""

    type: str
    metadata: dict[str, Any] | None = None
    properties: dict[str, Any] | None = None
    requirements: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary; absent blocks are omitted, empty ones kept."""
        result: dict[str, Any] = {"type": self.type}
        if self.metadata is not None:
            result["metadata"] = self.metadata
        if self.properties is not None:
            result["properties"] = self.properties
        if self.requirements is not None:
            result["requirements"] = self.requirements
        return result


@dataclass(frozen=True)
class RelationshipTemplate:
    """A typed record describing one directed relation."""

    type: str
    properties: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.properties is not None:
            result["properties"] = self.properties
        return result


@dataclass(frozen=True)
class TopologyTemplate:
    """All node and relationship templates of one exported system."""

    node_templates: dict[str, NodeTemplate] = field(default_factory=dict)
    relationship_templates: dict[str, RelationshipTemplate] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_templates": {
                key: template.to_dict() for key, template in self.node_templates.items()
            },
            "relationship_templates": {
                key: template.to_dict()
                for key, template in self.relationship_templates.items()
            },
        }


@dataclass(frozen=True)
class TemplateMetadata:
    """Author, name and version of a service template."""

    template_author: str
    template_name: str
    template_version: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_author": self.template_author,
            "template_name": self.template_name,
            "template_version": self.template_version,
        }


@dataclass(frozen=True)
class ServiceTemplate:
    """Complete TOSCA document envelope."""

    metadata: TemplateMetadata
    description: str
    topology_template: TopologyTemplate
    tosca_definitions_version: str = TOSCA_DEFINITIONS_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "tosca_definitions_version": self.tosca_definitions_version,
            "metadata": self.metadata.to_dict(),
            "description": self.description,
            "topology_template": self.topology_template.to_dict(),
        }
