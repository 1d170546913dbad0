"""
Architecture entity models.

The in-memory graph a System is exported from: components and the
infrastructure hosting them, data they use, the endpoints they expose and
the links, deployment mappings and request traces that relate them.

Relations check their own invariants on construction, so an invalid
graph never reaches the exporter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from cnamodel.core.errors import ReferentialIntegrityError, TypeMismatchError


class ComponentKind(Enum):
    """Closed set of component variants."""

    COMPONENT = "component"
    SERVICE = "service"
    BACKING_SERVICE = "backing_service"
    STORAGE_BACKING_SERVICE = "storage_backing_service"


class InfrastructureKind(Enum):
    """Closed set of infrastructure variants."""

    COMPUTE = "compute"
    DBMS = "dbms"


class UsageRelation(Enum):
    """How a component uses attached data: reads it, or also writes and persists it."""

    USAGE = "usage"
    PERSISTENCE = "persistence"


@dataclass
class Endpoint:
    """An endpoint provided by a component."""

    id: str
    name: str = ""
    endpoint_type: str | None = None  # free-form, e.g. "REST", "topic"
    path: str | None = None
    port: int | str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)  # position, size, label

    @property
    def name_id(self) -> str:
        """Human-readable identifier: the endpoint name, or its id when unnamed."""
        return self.name.strip() or self.id


@dataclass
class ExternalEndpoint(Endpoint):
    """An endpoint reachable from outside the system."""


@dataclass(frozen=True)
class DataItem:
    """One key/value entry of backing data."""

    key: str
    value: Any


@dataclass
class BackingData:
    """Configuration, secrets or other data a component is backed by."""

    id: str
    name: str
    included_data: list[DataItem] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DataAggregate:
    """A business data aggregate, persisted by storage-capable entities."""

    id: str
    name: str
    persisted_by: list[str] = field(default_factory=list)  # entity names
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DataUsage:
    """Attachment of a data aggregate to the component using it."""

    data_aggregate: DataAggregate
    usage_relation: UsageRelation | None = None
    properties: dict[str, Any] = field(default_factory=dict)  # e.g. sharding_level

    def __post_init__(self) -> None:
        if not isinstance(self.data_aggregate, DataAggregate):
            raise TypeMismatchError(
                "Only a DataAggregate can be attached as used data",
                {"attached": type(self.data_aggregate).__name__},
            )


@dataclass
class BackingDataUsage:
    """Attachment of backing data to the component or infrastructure using it."""

    backing_data: BackingData
    usage_relation: UsageRelation | None = None
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.backing_data, BackingData):
            raise TypeMismatchError(
                "Only BackingData can be attached as backing data",
                {"attached": type(self.backing_data).__name__},
            )


@dataclass
class Infrastructure:
    """Compute or DBMS infrastructure, optionally hosted on other infrastructure."""

    id: str
    name: str
    kind: InfrastructureKind = InfrastructureKind.COMPUTE
    hosted_by: Infrastructure | None = None
    uses_backing_data: list[BackingDataUsage] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.hosted_by is not None and self.hosted_by.id == self.id:
            raise ReferentialIntegrityError(
                "An Infrastructure cannot be hosted on itself",
                {"infrastructure": self.id},
            )


@dataclass
class Component:
    """A software component: generic, Service, BackingService or StorageBackingService."""

    id: str
    name: str
    kind: ComponentKind = ComponentKind.COMPONENT
    hosted_by: Infrastructure | None = None
    endpoints: list[Endpoint] = field(default_factory=list)
    external_endpoints: list[ExternalEndpoint] = field(default_factory=list)
    uses_data: list[DataUsage] = field(default_factory=list)
    uses_backing_data: list[BackingDataUsage] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def all_endpoints(self) -> Iterator[Endpoint]:
        yield from self.endpoints
        yield from self.external_endpoints

    def owns_endpoint(self, endpoint: Endpoint) -> bool:
        # Endpoint ids are local to their component
        return any(own is endpoint for own in self.all_endpoints())


@dataclass
class Link:
    """Directed edge from a source component to an endpoint of another entity."""

    id: str
    source: Component
    target: Endpoint
    relation_type: str | None = None  # e.g. "subscribes to", "calls"

    def __post_init__(self) -> None:
        if not isinstance(self.source, Component):
            raise TypeMismatchError(
                "Only Component entities can be the source of a Link",
                {"link": self.id, "source": type(self.source).__name__},
            )
        if not isinstance(self.target, Endpoint):
            raise TypeMismatchError(
                "A Link must target an Endpoint",
                {"link": self.id, "target": type(self.target).__name__},
            )
        if self.source.owns_endpoint(self.target):
            raise ReferentialIntegrityError(
                "A Link cannot be created from an entity to its own included Endpoint",
                {"link": self.id, "source": self.source.id, "endpoint": self.target.id},
            )


@dataclass
class DeploymentMapping:
    """deployed is hosted on underlying."""

    id: str
    deployed: Component | Infrastructure
    underlying: Infrastructure

    def __post_init__(self) -> None:
        if not isinstance(self.deployed, (Component, Infrastructure)):
            raise TypeMismatchError(
                "Only Component or Infrastructure entities can be deployed "
                "on an underlying Infrastructure",
                {"deployment_mapping": self.id, "deployed": type(self.deployed).__name__},
            )
        if not isinstance(self.underlying, Infrastructure):
            raise TypeMismatchError(
                "Only an Infrastructure entity is able to deploy other entities",
                {"deployment_mapping": self.id, "underlying": type(self.underlying).__name__},
            )
        if self.deployed.id == self.underlying.id:
            raise ReferentialIntegrityError(
                "The entities for which the DeploymentMapping is defined "
                "have to be distinguishable",
                {"deployment_mapping": self.id, "entity": self.deployed.id},
            )


@dataclass
class RequestTrace:
    """An externally reachable request flow realized by an ordered chain of links."""

    id: str
    name: str
    external_endpoint: ExternalEndpoint
    links: list[Link] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.external_endpoint, ExternalEndpoint):
            raise TypeMismatchError(
                "A RequestTrace must start at an ExternalEndpoint",
                {
                    "request_trace": self.id,
                    "endpoint": type(self.external_endpoint).__name__,
                },
            )


@dataclass
class System:
    """Root of the entity graph; owns every entity collection."""

    name: str
    components: list[Component] = field(default_factory=list)
    infrastructure: list[Infrastructure] = field(default_factory=list)
    data_aggregates: list[DataAggregate] = field(default_factory=list)
    backing_data: list[BackingData] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    deployment_mappings: list[DeploymentMapping] = field(default_factory=list)
    request_traces: list[RequestTrace] = field(default_factory=list)

    def __post_init__(self) -> None:
        for collection_name in (
            "components",
            "infrastructure",
            "data_aggregates",
            "backing_data",
            "links",
            "deployment_mappings",
            "request_traces",
        ):
            seen: set[str] = set()
            for entity in getattr(self, collection_name):
                if entity.id in seen:
                    raise ReferentialIntegrityError(
                        "Duplicate entity id within collection",
                        {"collection": collection_name, "id": entity.id},
                    )
                seen.add(entity.id)

    def endpoint_owner(self, endpoint: Endpoint) -> Component | None:
        """Return the component that provides the endpoint."""
        for component in self.components:
            if component.owns_endpoint(endpoint):
                return component
        return None

    def links_from(self, component: Component) -> list[Link]:
        """Outgoing links of a component, in collection order."""
        return [link for link in self.links if link.source.id == component.id]

    def deployment_mapping_for(
        self, deployed: Component | Infrastructure, underlying: Infrastructure
    ) -> DeploymentMapping | None:
        for mapping in self.deployment_mappings:
            if mapping.deployed.id == deployed.id and mapping.underlying.id == underlying.id:
                return mapping
        return None

    def storage_entities_named(self, name: str) -> list[Component | Infrastructure]:
        """Components and infrastructure carrying the given name, in collection order."""
        matches: list[Component | Infrastructure] = []
        matches.extend(c for c in self.components if c.name == name)
        matches.extend(i for i in self.infrastructure if i.name == name)
        return matches
