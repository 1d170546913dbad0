"""
Architecture entity graph: components, infrastructure, data and the
relations between them.
"""

from cnamodel.entities.loader import load_system, parse_system
from cnamodel.entities.models import (
    BackingData,
    BackingDataUsage,
    Component,
    ComponentKind,
    DataAggregate,
    DataItem,
    DataUsage,
    DeploymentMapping,
    Endpoint,
    ExternalEndpoint,
    Infrastructure,
    InfrastructureKind,
    Link,
    RequestTrace,
    System,
    UsageRelation,
)

__all__ = [
    # Models
    "BackingData",
    "BackingDataUsage",
    "Component",
    "ComponentKind",
    "DataAggregate",
    "DataItem",
    "DataUsage",
    "DeploymentMapping",
    "Endpoint",
    "ExternalEndpoint",
    "Infrastructure",
    "InfrastructureKind",
    "Link",
    "RequestTrace",
    "System",
    "UsageRelation",
    # Loading
    "load_system",
    "parse_system",
]
