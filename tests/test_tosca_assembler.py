"""Tests for service template assembly and the end-to-end export."""

from __future__ import annotations

import copy

import pytest
import yaml

from cnamodel.catalog import TypeCatalog
from cnamodel.config.settings import Settings
from cnamodel.core.errors import (
    MissingPropertyError,
    ReferentialIntegrityError,
    TemplateAssemblyError,
)
from cnamodel.entities.demo import create_demo_system
from cnamodel.entities.models import (
    Component,
    DataAggregate,
    DeploymentMapping,
    Endpoint,
    Infrastructure,
    Link,
    System,
)
from cnamodel.tosca.assembler import assemble_service_template, export_system
from cnamodel.tosca.models import TOSCA_DEFINITIONS_VERSION, NodeTemplate, RelationshipTemplate
from cnamodel.tosca.nodes import DATA_AGGREGATE_TYPE
from cnamodel.tosca.relationships import LINK_TYPE
from cnamodel.tosca.serializers import serialize_yaml

SETTINGS = Settings(
    template_author="Test Author",
    template_version="9.9.9",
    template_description="Test export",
)


def _export(system: System) -> dict:
    return export_system(system, settings=SETTINGS).to_dict()


class TestAssembleServiceTemplate:
    def test_envelope(self):
        document = assemble_service_template("Shop", [], [], settings=SETTINGS).to_dict()
        assert list(document) == [
            "tosca_definitions_version",
            "metadata",
            "description",
            "topology_template",
        ]
        assert document["tosca_definitions_version"] == TOSCA_DEFINITIONS_VERSION
        assert document["metadata"] == {
            "template_author": "Test Author",
            "template_name": "Shop",
            "template_version": "9.9.9",
        }
        assert document["description"] == "Test export"
        assert document["topology_template"] == {
            "node_templates": {},
            "relationship_templates": {},
        }

    def test_duplicate_node_key_rejected(self):
        with pytest.raises(TemplateAssemblyError):
            assemble_service_template(
                "S",
                [("a", NodeTemplate(type="t")), ("a", NodeTemplate(type="t"))],
                [],
                settings=SETTINGS,
            )

    def test_missing_type_rejected(self):
        with pytest.raises(TemplateAssemblyError):
            assemble_service_template("S", [], [("r", RelationshipTemplate(type=""))], settings=SETTINGS)

    def test_empty_key_rejected(self):
        with pytest.raises(TemplateAssemblyError):
            assemble_service_template("S", [("", NodeTemplate(type="t"))], [], settings=SETTINGS)

    def test_same_key_in_both_namespaces(self):
        template = assemble_service_template(
            "S",
            [("x", NodeTemplate(type="node"))],
            [("x", RelationshipTemplate(type="rel"))],
            settings=SETTINGS,
        )
        assert template.topology_template.node_templates["x"].type == "node"
        assert template.topology_template.relationship_templates["x"].type == "rel"


class TestExportScenarios:
    def test_lone_data_aggregate(self):
        system = System(name="S", data_aggregates=[DataAggregate(id="da-1", name="Order Data")])
        topology = _export(system)["topology_template"]

        assert topology["node_templates"] == {
            "order_data": {
                "type": DATA_AGGREGATE_TYPE,
                "metadata": {"id": "da-1"},
                "properties": {"persisted_by": []},
            }
        }
        assert topology["relationship_templates"] == {}

    def test_colliding_names(self):
        target = Endpoint(id="e-1", name="jobs", endpoint_type="REST", path="/jobs", port=80)
        queue = Component(id="c-q", name="Queue", endpoints=[target])
        first = Component(id="c-1", name="Worker")
        second = Component(id="c-2", name="Worker")
        system = System(
            name="S",
            components=[first, second, queue],
            links=[Link(id="l-1", source=second, target=target)],
        )
        topology = _export(system)["topology_template"]

        assert list(topology["node_templates"]) == ["worker", "worker_2", "queue"]
        assert list(topology["relationship_templates"]) == ["worker_2_connects-to_jobs"]

    def test_link_key_and_target_endpoint(self):
        target = Endpoint(id="e-1", name="Orders API", endpoint_type="REST", path="/orders", port=8080)
        orders = Component(id="c-orders", name="Orders", endpoints=[target])
        gateway = Component(id="c-gw", name="Gateway")
        system = System(
            name="S",
            components=[gateway, orders],
            links=[Link(id="l-1", source=gateway, target=target)],
        )
        topology = _export(system)["topology_template"]

        assert topology["relationship_templates"] == {
            "gateway_connects-to_orders_api": {
                "type": LINK_TYPE,
                "properties": {"timeout": 0, "target_endpoint": "REST /orders"},
            }
        }
        assert topology["node_templates"]["gateway"]["requirements"] == [
            {
                "endpoint_link": {
                    "node": "orders",
                    "relationship": "gateway_connects-to_orders_api",
                }
            }
        ]

    def test_node_and_relationship_key_may_coincide(self):
        host = Infrastructure(id="i-1", name="Host")
        app = Component(id="c-1", name="App", hosted_by=host)
        other = Component(id="c-2", name="Host host app")
        system = System(
            name="S",
            components=[app, other],
            infrastructure=[host],
            deployment_mappings=[DeploymentMapping(id="dm-1", deployed=app, underlying=host)],
        )
        topology = _export(system)["topology_template"]

        assert "host_host_app" in topology["node_templates"]
        assert "host_host_app" in topology["relationship_templates"]
        assert topology["node_templates"]["app"]["requirements"] == [
            {"host": {"node": "host", "relationship": "host_host_app"}}
        ]

    def test_missing_endpoint_property_aborts(self):
        component = Component(
            id="c-1", name="Thing", endpoints=[Endpoint(id="e-1", path="/", port=80)]
        )
        with pytest.raises(MissingPropertyError):
            export_system(System(name="S", components=[component]), settings=SETTINGS)


    def test_endpoint_link_targets_owner_of_shared_local_id(self):
        first = Component(
            id="c-a",
            name="A",
            endpoints=[Endpoint(id="api", endpoint_type="REST", path="/a", port=80)],
        )
        target = Endpoint(id="api", endpoint_type="REST", path="/b", port=81)
        second = Component(id="c-b", name="B", endpoints=[target])
        caller = Component(id="c-caller", name="Caller")
        link = Link(id="l-1", source=caller, target=target)
        system = System(name="S", components=[first, second, caller], links=[link])

        nodes = _export(system)["topology_template"]["node_templates"]
        assert nodes["caller"]["requirements"] == [
            {"endpoint_link": {"node": "b", "relationship": "caller_connects-to_api"}}
        ]


class TestExportRejections:
    def test_mapping_contradicting_hosted_by(self):
        vm = Infrastructure(id="i-vm", name="VM")
        cluster = Infrastructure(id="i-k8s", name="K8s")
        app = Component(id="c-1", name="App", hosted_by=cluster)
        system = System(
            name="S",
            components=[app],
            infrastructure=[vm, cluster],
            deployment_mappings=[DeploymentMapping(id="dm-1", deployed=app, underlying=vm)],
        )
        with pytest.raises(ReferentialIntegrityError, match="hosted_by"):
            _export(system)

    def test_mapping_for_unhosted_entity(self):
        vm = Infrastructure(id="i-vm", name="VM")
        app = Component(id="c-1", name="App")
        system = System(
            name="S",
            components=[app],
            infrastructure=[vm],
            deployment_mappings=[DeploymentMapping(id="dm-1", deployed=app, underlying=vm)],
        )
        with pytest.raises(ReferentialIntegrityError):
            _export(system)

    def test_type_missing_from_catalog(self, tmp_path):
        profile = tmp_path / "profile.yaml"
        profile.write_text("node_types: {}\nrelationship_types: {}\n")
        system = System(name="S", components=[Component(id="c-1", name="App")])
        with pytest.raises(TemplateAssemblyError, match="not declared"):
            export_system(system, settings=SETTINGS, catalog=TypeCatalog(profile))


class TestDemoExport:
    def test_keys(self):
        topology = _export(create_demo_system())["topology_template"]

        assert list(topology["node_templates"]) == [
            "api_gateway",
            "order_service",
            "order_db",
            "event_bus",
            "cloud_vm",
            "kubernetes_cluster",
            "postgresql",
            "order_data",
            "shop_config",
            "RT_rest_shop_api",
        ]
        assert list(topology["relationship_templates"]) == [
            "api_gateway_connects-to_orders_api",
            "order_service_connects-to_order_db",
            "order_service_connects-to_order_events",
            "kubernetes_cluster_host_api_gateway",
            "kubernetes_cluster_host_order_service",
            "postgresql_host_order_db",
            "kubernetes_cluster_host_event_bus",
            "cloud_vm_host_kubernetes_cluster",
            "cloud_vm_host_postgresql",
        ]

    def test_topic_link(self):
        topology = _export(create_demo_system())["topology_template"]
        link = topology["relationship_templates"]["order_service_connects-to_order_events"]
        assert link["properties"]["target_endpoint"] == "order-created Topic"
        assert link["properties"]["relation_type"] == "publishes to"

    def test_export_does_not_mutate_system(self):
        system = create_demo_system()
        before = copy.deepcopy(system)
        export_system(system, settings=SETTINGS)
        assert system == before

    def test_repeated_exports_are_identical(self):
        system = create_demo_system()
        first = serialize_yaml(export_system(system, settings=SETTINGS))
        second = serialize_yaml(export_system(system, settings=SETTINGS))
        assert first == second
        assert yaml.safe_load(first)["metadata"]["template_name"] == "Web Shop"
