"""
Template keys for TOSCA export.

Keys are sanitized, human-readable tokens derived from entity names, made
unique per namespace by a UniqueKeyManager. Node templates and
relationship templates are separate namespaces, held together in one
ExportContext that lives for exactly one export call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from cnamodel.core.errors import (
    KeyCollisionExhaustion,
    MissingPropertyError,
    ReferentialIntegrityError,
)
from cnamodel.entities.models import Endpoint, Link, RequestTrace

if TYPE_CHECKING:
    from cnamodel.entities.models import System

logger = structlog.get_logger()

MATCH_WHITESPACE = re.compile(r"\s+")
MATCH_UNWANTED_CHARACTERS = re.compile(r"[#>\-.]")
MATCH_MULTIPLE_UNDERSCORES = re.compile(r"_+")

# Endpoint protocols
PROTOCOL_MESSAGE_QUEUE = "udp"
PROTOCOL_REQUEST_RESPONSE = "http"

LINK_KEY_SEPARATOR = "_connects-to_"
DEPLOYMENT_MAPPING_KEY_SEPARATOR = "_host_"
REQUEST_TRACE_KEY_PREFIX = "RT_"


def sanitize(name: str) -> str:
    """
    Normalize a human-readable name into a template key fragment.

    Examples:
        "Order  Data" → "order_data"
        " API-Gateway v1.2 " → "api_gateway_v1_2"
        "#>" → "_"

    Whitespace-only input yields "", which is never a valid key.
    """
    key = name.strip()
    key = MATCH_WHITESPACE.sub("_", key)
    key = MATCH_UNWANTED_CHARACTERS.sub("_", key)
    key = MATCH_MULTIPLE_UNDERSCORES.sub("_", key)
    return key.lower()


def sanitize_required(name: str, entity_id: str) -> str:
    """Sanitize a name that must produce a non-empty key."""
    key = sanitize(name or "")
    if not key:
        raise MissingPropertyError(
            "Entity name does not produce a template key",
            {"entity": entity_id, "name": name},
        )
    return key


class UniqueKeyManager:
    """
    Allocates collision-free keys within one namespace of one export.

    A colliding candidate gets the smallest free numeric suffix starting at
    2 (worker, worker_2, worker_3, ...). Every issued key remembers the id
    of the entity it was issued for.
    """

    def __init__(self) -> None:
        self._entity_by_key: dict[str, str | None] = {}
        self._key_by_entity: dict[str, str] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entity_by_key

    def __len__(self) -> int:
        return len(self._entity_by_key)

    def ensure_uniqueness(self, candidate_key: str, entity_id: str | None = None) -> str:
        """Record and return candidate_key, suffixed if it was already issued."""
        key = candidate_key
        if key in self._entity_by_key:
            # n issued keys can block at most n suffixes
            for suffix in range(2, len(self._entity_by_key) + 3):
                key = f"{candidate_key}_{suffix}"
                if key not in self._entity_by_key:
                    break
            else:
                raise KeyCollisionExhaustion(
                    "No free key found", {"candidate": candidate_key}
                )
            logger.debug(
                "template_key_disambiguated",
                candidate=candidate_key,
                key=key,
                entity=entity_id,
                held_by=self.entity_id_for(candidate_key),
            )

        self._entity_by_key[key] = entity_id
        if entity_id is not None:
            self._key_by_entity.setdefault(entity_id, key)
        return key

    def entity_id_for(self, key: str) -> str | None:
        """Reverse lookup: the entity a key was issued for."""
        return self._entity_by_key.get(key)

    def key_for(self, entity_id: str) -> str | None:
        """The key issued for an entity, or None if it has none."""
        return self._key_by_entity.get(entity_id)


def entity_ref(entity: Any) -> str:
    """Export-wide entity reference; ids are only unique within one collection."""
    return f"{type(entity).__name__}/{entity.id}"


@dataclass
class ExportContext:
    """Key tables for a single export call. Never shared between exports."""

    nodes: UniqueKeyManager = field(default_factory=UniqueKeyManager)
    relationships: UniqueKeyManager = field(default_factory=UniqueKeyManager)

    def issue_node_key(self, entity: Any, candidate_key: str) -> str:
        return self.nodes.ensure_uniqueness(candidate_key, entity_ref(entity))

    def issue_relationship_key(self, entity: Any, candidate_key: str) -> str:
        return self.relationships.ensure_uniqueness(candidate_key, entity_ref(entity))

    def node_key(self, entity: Any, *, referrer: str | None = None) -> str:
        """Resolve the node key issued for an entity referenced by another one."""
        key = self.nodes.key_for(entity_ref(entity))
        if key is None:
            raise ReferentialIntegrityError(
                "Referenced entity is not part of the system",
                {"entity": entity.id, "name": getattr(entity, "name", None), "referrer": referrer},
            )
        return key

    def relationship_key(self, entity: Any) -> str:
        key = self.relationships.key_for(entity_ref(entity))
        if key is None:
            raise ReferentialIntegrityError(
                "Referenced relation is not part of the system",
                {"entity": entity.id},
            )
        return key


# ---------------------------------------------------------------------------
# Key derivation for derived entities
# ---------------------------------------------------------------------------


def link_key(source_key: str, link: Link) -> str:
    """<source key>_connects-to_<target endpoint name or id>."""
    target = sanitize_required(link.target.name_id, link.target.id)
    return f"{source_key}{LINK_KEY_SEPARATOR}{target}"


def deployment_mapping_key(underlying_key: str, deployed_key: str) -> str:
    """<underlying infrastructure key>_host_<deployed entity key>."""
    return f"{underlying_key}{DEPLOYMENT_MAPPING_KEY_SEPARATOR}{deployed_key}"


def request_trace_key(trace: RequestTrace) -> str:
    """RT_<external endpoint type>_<external endpoint name or id>."""
    endpoint = trace.external_endpoint
    endpoint_type = _required_endpoint_value(endpoint, "endpoint_type")
    return (
        f"{REQUEST_TRACE_KEY_PREFIX}"
        f"{sanitize_required(str(endpoint_type), endpoint.id)}_"
        f"{sanitize_required(endpoint.name_id, endpoint.id)}"
    )


def allocate_keys(system: System, context: ExportContext) -> None:
    """
    Issue every template key of a system, primary entities first.

    A deployment mapping must record the deployed entity's own hosted_by.

    Node keys: components, infrastructure, data aggregates, backing data,
    request traces. Relationship keys: links, deployment mappings.
    """
    for entity in (
        *system.components,
        *system.infrastructure,
        *system.data_aggregates,
        *system.backing_data,
    ):
        context.issue_node_key(entity, sanitize_required(entity.name, entity.id))

    for trace in system.request_traces:
        context.issue_node_key(trace, request_trace_key(trace))

    for link in system.links:
        source_key = context.node_key(link.source, referrer=link.id)
        context.issue_relationship_key(link, link_key(source_key, link))

    for mapping in system.deployment_mappings:
        host = mapping.deployed.hosted_by
        if host is None or host.id != mapping.underlying.id:
            raise ReferentialIntegrityError(
                "DeploymentMapping does not match the hosted_by of the deployed entity",
                {
                    "deployment_mapping": mapping.id,
                    "deployed": mapping.deployed.id,
                    "underlying": mapping.underlying.id,
                    "hosted_by": host.id if host is not None else None,
                },
            )
        context.issue_relationship_key(
            mapping,
            deployment_mapping_key(
                context.node_key(mapping.underlying, referrer=mapping.id),
                context.node_key(mapping.deployed, referrer=mapping.id),
            ),
        )


# ---------------------------------------------------------------------------
# Endpoint descriptors
# ---------------------------------------------------------------------------


def is_topic(endpoint_type: str) -> bool:
    return "topic" in endpoint_type.lower()


def endpoint_path_name(endpoint_type: str, path: str) -> str:
    """
    Human-readable endpoint descriptor.

    Topic endpoints are named subject first ("orders topic"), all others
    verb-like type first ("REST /orders").
    """
    if is_topic(endpoint_type):
        return f"{path} {endpoint_type}"
    return f"{endpoint_type} {path}"


def endpoint_protocol(endpoint_type: str) -> str:
    return PROTOCOL_MESSAGE_QUEUE if is_topic(endpoint_type) else PROTOCOL_REQUEST_RESPONSE


def endpoint_descriptor(endpoint: Endpoint) -> dict[str, Any]:
    """Resolved endpoint: protocol, port, path and pass-through visual metadata."""
    endpoint_type = str(_required_endpoint_value(endpoint, "endpoint_type"))
    path = str(_required_endpoint_value(endpoint, "path"))
    port = _required_endpoint_value(endpoint, "port")

    descriptor: dict[str, Any] = {
        "protocol": endpoint_protocol(endpoint_type),
        "port": port,
        "path": endpoint_path_name(endpoint_type, path),
    }
    if endpoint.metadata:
        descriptor["metadata"] = dict(endpoint.metadata)
    return descriptor


def target_endpoint_name(endpoint: Endpoint) -> str:
    endpoint_type = str(_required_endpoint_value(endpoint, "endpoint_type"))
    path = str(_required_endpoint_value(endpoint, "path"))
    return endpoint_path_name(endpoint_type, path)


def _required_endpoint_value(endpoint: Endpoint, attribute: str) -> Any:
    value = getattr(endpoint, attribute)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingPropertyError(
            f"Endpoint is missing required property '{attribute}'",
            {"endpoint": endpoint.id, "property": attribute},
        )
    return value


__all__ = [
    "ExportContext",
    "UniqueKeyManager",
    "allocate_keys",
    "deployment_mapping_key",
    "endpoint_descriptor",
    "endpoint_path_name",
    "endpoint_protocol",
    "entity_ref",
    "link_key",
    "request_trace_key",
    "sanitize",
    "sanitize_required",
    "target_endpoint_name",
]
