"""
System model loader.

Builds a System entity graph from a YAML model description. Entities
refer to each other by id; every reference is resolved here, so the
exporter only ever sees a fully linked graph.

Usage:
    from cnamodel.entities.loader import load_system

    system = load_system("shop.model.yaml")

Format:
    name: Shop
    infrastructure:
      - {id: k8s, name: Kubernetes, kind: compute}
    components:
      - id: gw
        name: Gateway
        kind: service
        hosted_by: k8s
        endpoints:
          - {id: gw-api, name: api, type: REST, path: /api, port: 443}
        uses_data:
          - {data_aggregate: sessions, usage_relation: persistence, properties: {sharding_level: 2}}
        uses_backing_data: [gw-config]
    links:
      - {id: l1, source: gw, target: orders-api, relation_type: calls}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from cnamodel.core.errors import ModelLoadError
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

logger = structlog.get_logger()


def load_system(file_path: str | Path) -> System:
    """
    Load a System from a YAML model file.

    Raises:
        ModelLoadError: If the file is unreadable, malformed or references
            unknown ids
        FileNotFoundError: If file doesn't exist
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {file_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ModelLoadError(f"Invalid YAML in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ModelLoadError(f"Expected YAML object in {file_path}")

    system = parse_system(data)
    logger.debug(
        "system_model_loaded",
        path=str(path),
        system=system.name,
        components=len(system.components),
        infrastructure=len(system.infrastructure),
    )
    return system


def parse_system(data: dict[str, Any]) -> System:
    """Build a System from an already parsed model mapping."""
    return _SystemParser(data).parse()


class _SystemParser:
    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.backing_data: dict[str, BackingData] = {}
        self.data_aggregates: dict[str, DataAggregate] = {}
        self.infrastructure: dict[str, Infrastructure] = {}
        self.components: dict[str, Component] = {}
        self.endpoints: dict[str, Endpoint] = {}
        self.links: dict[str, Link] = {}

    def parse(self) -> System:
        name = self.data.get("name")
        if not name or not isinstance(name, str):
            raise ModelLoadError("Model is missing a system 'name'")

        for raw in self._section("backing_data"):
            item = self._parse_backing_data(raw)
            self._register(self.backing_data, item, "backing_data")

        for raw in self._section("data_aggregates"):
            item = DataAggregate(
                id=self._id(raw, "data_aggregates"),
                name=str(raw.get("name", "")),
                persisted_by=[str(n) for n in raw.get("persisted_by") or []],
                metadata=dict(raw.get("metadata") or {}),
            )
            self._register(self.data_aggregates, item, "data_aggregates")

        raw_infrastructure = {
            self._id(raw, "infrastructure"): raw for raw in self._section("infrastructure")
        }
        if len(raw_infrastructure) != len(self._section("infrastructure")):
            raise ModelLoadError("Duplicate id in 'infrastructure'")
        # Hosts are built before the infrastructure they host; keep file order
        infrastructure = [
            self._build_infrastructure(infra_id, raw_infrastructure, visiting=set())
            for infra_id in raw_infrastructure
        ]

        for raw in self._section("components"):
            self._register(self.components, self._parse_component(raw), "components")

        for raw in self._section("links"):
            link = Link(
                id=self._id(raw, "links"),
                source=self._lookup(self.components, raw.get("source"), "component"),
                target=self._lookup(self.endpoints, raw.get("target"), "endpoint"),
                relation_type=raw.get("relation_type"),
            )
            self._register(self.links, link, "links")

        deployment_mappings = [
            DeploymentMapping(
                id=self._id(raw, "deployment_mappings"),
                deployed=self._deployable(raw.get("deployed")),
                underlying=self._lookup(self.infrastructure, raw.get("underlying"), "infrastructure"),
            )
            for raw in self._section("deployment_mappings")
        ]

        request_traces = []
        for raw in self._section("request_traces"):
            endpoint = self._lookup(self.endpoints, raw.get("external_endpoint"), "endpoint")
            request_traces.append(
                RequestTrace(
                    id=self._id(raw, "request_traces"),
                    name=str(raw.get("name", "")),
                    external_endpoint=endpoint,  # type: ignore[arg-type]
                    links=[self._lookup(self.links, ref, "link") for ref in raw.get("links") or []],
                    metadata=dict(raw.get("metadata") or {}),
                )
            )

        return System(
            name=name,
            components=list(self.components.values()),
            infrastructure=infrastructure,
            data_aggregates=list(self.data_aggregates.values()),
            backing_data=list(self.backing_data.values()),
            links=list(self.links.values()),
            deployment_mappings=deployment_mappings,
            request_traces=request_traces,
        )

    # -- sections -----------------------------------------------------------

    def _section(self, name: str) -> list[dict[str, Any]]:
        section = self.data.get(name) or []
        if not isinstance(section, list) or not all(isinstance(i, dict) for i in section):
            raise ModelLoadError(f"Section '{name}' must be a list of mappings")
        return section

    def _id(self, raw: dict[str, Any], section: str) -> str:
        entity_id = raw.get("id")
        if entity_id is None or str(entity_id) == "":
            raise ModelLoadError(f"Entry in '{section}' is missing an 'id'")
        return str(entity_id)

    def _register(self, registry: dict[str, Any], entity: Any, section: str) -> None:
        if entity.id in registry:
            raise ModelLoadError(f"Duplicate id in '{section}': {entity.id}")
        registry[entity.id] = entity

    def _lookup(self, registry: dict[str, Any], ref: Any, kind: str) -> Any:
        if ref is None or str(ref) not in registry:
            raise ModelLoadError(f"Unknown {kind} reference: {ref}")
        return registry[str(ref)]

    def _deployable(self, ref: Any) -> Component | Infrastructure:
        in_components = ref is not None and str(ref) in self.components
        in_infrastructure = ref is not None and str(ref) in self.infrastructure
        if in_components and in_infrastructure:
            raise ModelLoadError(f"Ambiguous deployed entity reference: {ref}")
        if in_components:
            return self.components[str(ref)]
        return self._lookup(self.infrastructure, ref, "component or infrastructure")

    # -- entities -----------------------------------------------------------

    def _parse_backing_data(self, raw: dict[str, Any]) -> BackingData:
        included = raw.get("included_data") or {}
        if not isinstance(included, dict):
            raise ModelLoadError("'included_data' must be a mapping")
        return BackingData(
            id=self._id(raw, "backing_data"),
            name=str(raw.get("name", "")),
            included_data=[DataItem(key=str(k), value=v) for k, v in included.items()],
            metadata=dict(raw.get("metadata") or {}),
        )

    def _build_infrastructure(
        self,
        infra_id: str,
        raw_infrastructure: dict[str, dict[str, Any]],
        visiting: set[str],
    ) -> Infrastructure:
        if infra_id in self.infrastructure:
            return self.infrastructure[infra_id]
        if infra_id in visiting:
            raise ModelLoadError(f"Hosting cycle through infrastructure: {infra_id}")
        if infra_id not in raw_infrastructure:
            raise ModelLoadError(f"Unknown infrastructure reference: {infra_id}")

        visiting.add(infra_id)
        raw = raw_infrastructure[infra_id]
        host_ref = raw.get("hosted_by")
        if host_ref is not None and str(host_ref) == infra_id:
            raise ModelLoadError(f"Infrastructure cannot be hosted on itself: {infra_id}")
        host = None
        if host_ref is not None:
            host = self._build_infrastructure(str(host_ref), raw_infrastructure, visiting)

        infrastructure = Infrastructure(
            id=infra_id,
            name=str(raw.get("name", "")),
            kind=self._enum(InfrastructureKind, raw.get("kind", "compute")),
            hosted_by=host,
            uses_backing_data=self._backing_data_usages(raw),
            properties=dict(raw.get("properties") or {}),
            metadata=dict(raw.get("metadata") or {}),
        )
        self.infrastructure[infra_id] = infrastructure
        return infrastructure

    def _parse_component(self, raw: dict[str, Any]) -> Component:
        host_ref = raw.get("hosted_by")
        return Component(
            id=self._id(raw, "components"),
            name=str(raw.get("name", "")),
            kind=self._enum(ComponentKind, raw.get("kind", "component")),
            hosted_by=(
                self._lookup(self.infrastructure, host_ref, "infrastructure")
                if host_ref is not None
                else None
            ),
            endpoints=[self._parse_endpoint(e, Endpoint) for e in raw.get("endpoints") or []],
            external_endpoints=[
                self._parse_endpoint(e, ExternalEndpoint)
                for e in raw.get("external_endpoints") or []
            ],
            uses_data=[
                DataUsage(
                    self._lookup(self.data_aggregates, ref, "data aggregate"),
                    self._usage_relation(usage),
                    self._usage_properties(usage),
                )
                for ref, usage in self._usages(raw, "uses_data", "data_aggregate")
            ],
            uses_backing_data=self._backing_data_usages(raw),
            properties=dict(raw.get("properties") or {}),
            metadata=dict(raw.get("metadata") or {}),
        )

    def _parse_endpoint(self, raw: Any, endpoint_cls: type[Endpoint]) -> Any:
        if not isinstance(raw, dict):
            raise ModelLoadError("Endpoints must be mappings")
        endpoint = endpoint_cls(
            id=self._id(raw, "endpoints"),
            name=str(raw.get("name", "")),
            endpoint_type=raw.get("type"),
            path=raw.get("path"),
            port=raw.get("port"),
            metadata=dict(raw.get("metadata") or {}),
        )
        self._register(self.endpoints, endpoint, "endpoints")
        return endpoint

    def _backing_data_usages(self, raw: dict[str, Any]) -> list[BackingDataUsage]:
        return [
            BackingDataUsage(
                self._lookup(self.backing_data, ref, "backing data"),
                self._usage_relation(usage),
                self._usage_properties(usage),
            )
            for ref, usage in self._usages(raw, "uses_backing_data", "backing_data")
        ]

    @staticmethod
    def _usages(
        raw: dict[str, Any], field_name: str, target_field: str
    ) -> list[tuple[Any, dict[str, Any]]]:
        """Usage entries as (target ref, usage mapping); a bare ref means no usage details."""
        usages = []
        for entry in raw.get(field_name) or []:
            if isinstance(entry, dict):
                usages.append((entry.get(target_field), entry))
            else:
                usages.append((entry, {}))
        return usages

    def _usage_relation(self, usage: dict[str, Any]) -> UsageRelation | None:
        value = usage.get("usage_relation")
        return None if value is None else self._enum(UsageRelation, value)

    @staticmethod
    def _usage_properties(usage: dict[str, Any]) -> dict[str, Any]:
        properties = usage.get("properties") or {}
        if not isinstance(properties, dict):
            raise ModelLoadError("Usage 'properties' must be a mapping")
        return dict(properties)

    @staticmethod
    def _enum(enum_cls: Any, value: Any) -> Any:
        try:
            return enum_cls(str(value).lower())
        except ValueError as e:
            choices = ", ".join(member.value for member in enum_cls)
            raise ModelLoadError(f"Unknown value '{value}' (expected one of: {choices})") from e
