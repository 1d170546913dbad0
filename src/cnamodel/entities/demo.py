"""
Demo system for trying the export without a model file.

A small web shop: a gateway and an order service on Kubernetes, an order
database on a DBMS, and an event bus the order service publishes to.
"""

from __future__ import annotations

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


def create_demo_system() -> System:
    """Build the demo web shop System."""
    config = BackingData(
        id="bd-config",
        name="Shop Config",
        included_data=[
            DataItem(key="LOG_LEVEL", value="info"),
            DataItem(key="CURRENCY", value="EUR"),
        ],
    )
    orders_data = DataAggregate(id="da-orders", name="Order Data", persisted_by=["Order DB"])
    reads_config = BackingDataUsage(config, UsageRelation.USAGE)

    vm = Infrastructure(
        id="i-vm",
        name="Cloud VM",
        properties={"managed": True, "region": "eu-central-1"},
    )
    cluster = Infrastructure(id="i-k8s", name="Kubernetes Cluster", hosted_by=vm)
    dbms = Infrastructure(
        id="i-dbms",
        name="PostgreSQL",
        kind=InfrastructureKind.DBMS,
        hosted_by=vm,
        uses_backing_data=[reads_config],
    )

    shop_api = ExternalEndpoint(
        id="ep-shop",
        name="shop api",
        endpoint_type="REST",
        path="/shop",
        port=443,
        metadata={"position": {"x": 40, "y": 80}},
    )
    gateway_orders = Endpoint(id="ep-gw-orders", name="gateway orders", endpoint_type="REST", path="/orders", port=8080)
    gateway = Component(
        id="c-gateway",
        name="API Gateway",
        kind=ComponentKind.SERVICE,
        hosted_by=cluster,
        endpoints=[gateway_orders],
        external_endpoints=[shop_api],
        uses_backing_data=[reads_config],
    )

    orders_api = Endpoint(id="ep-orders", name="orders api", endpoint_type="REST", path="/orders", port=8080)
    orders = Component(
        id="c-orders",
        name="Order Service",
        kind=ComponentKind.SERVICE,
        hosted_by=cluster,
        endpoints=[orders_api],
        uses_data=[DataUsage(orders_data, UsageRelation.USAGE)],
        uses_backing_data=[reads_config],
    )

    db_endpoint = Endpoint(id="ep-db", name="order db", endpoint_type="SQL", path="orders", port=5432)
    order_db = Component(
        id="c-order-db",
        name="Order DB",
        kind=ComponentKind.STORAGE_BACKING_SERVICE,
        hosted_by=dbms,
        endpoints=[db_endpoint],
        uses_data=[
            DataUsage(orders_data, UsageRelation.PERSISTENCE, {"sharding_level": 1}),
        ],
        properties={"name": "orders", "replicas": 2},
    )

    events = Endpoint(id="ep-events", name="order events", endpoint_type="Topic", path="order-created", port=9092)
    event_bus = Component(
        id="c-bus",
        name="Event Bus",
        kind=ComponentKind.BACKING_SERVICE,
        hosted_by=cluster,
        endpoints=[events],
    )

    gateway_to_orders = Link(id="l-1", source=gateway, target=orders_api, relation_type="calls")
    orders_to_db = Link(id="l-2", source=orders, target=db_endpoint, relation_type="queries")
    orders_to_bus = Link(id="l-3", source=orders, target=events, relation_type="publishes to")

    return System(
        name="Web Shop",
        components=[gateway, orders, order_db, event_bus],
        infrastructure=[vm, cluster, dbms],
        data_aggregates=[orders_data],
        backing_data=[config],
        links=[gateway_to_orders, orders_to_db, orders_to_bus],
        deployment_mappings=[
            DeploymentMapping(id="dm-1", deployed=gateway, underlying=cluster),
            DeploymentMapping(id="dm-2", deployed=orders, underlying=cluster),
            DeploymentMapping(id="dm-3", deployed=order_db, underlying=dbms),
            DeploymentMapping(id="dm-4", deployed=event_bus, underlying=cluster),
            DeploymentMapping(id="dm-5", deployed=cluster, underlying=vm),
            DeploymentMapping(id="dm-6", deployed=dbms, underlying=vm),
        ],
        request_traces=[
            RequestTrace(
                id="rt-1",
                name="Place order",
                external_endpoint=shop_api,
                links=[gateway_to_orders, orders_to_db, orders_to_bus],
            )
        ],
    )
