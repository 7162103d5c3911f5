"""
Cost estimators for hourly-billed compute: EC2, RDS, EKS and ElastiCache.

Each estimator is a pure function of (request, price index, context): it
parses usage tags through the context's reader, looks prices up in the
index and returns a CostResult. Price misses are soft failures.
"""
import logging
from typing import Dict, Tuple

from cloudcost.domain.cost_models import CostResult, ResourceRequest
from cloudcost.pricing.billing_messages import (
    defaults_note,
    format_quantity,
    pricing_not_found,
    pricing_unavailable,
)
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.services.cost_results import priced_result, unpriced_result
from cloudcost.services.usage_tags import EstimationContext, UsageTagReader

logger = logging.getLogger(__name__)


# RDS engine tag -> engine name used by the price list
RDS_ENGINE_NORMALIZATION: Dict[str, str] = {
    "mysql": "MySQL",
    "postgres": "PostgreSQL",
    "postgresql": "PostgreSQL",
    "mariadb": "MariaDB",
    "oracle": "Oracle",
    "oracle-se2": "Oracle",
    "sqlserver": "SQL Server",
    "sqlserver-ex": "SQL Server",
    "sql-server": "SQL Server",
}
DEFAULT_RDS_ENGINE = "mysql"
DEFAULT_RDS_STORAGE_TYPE = "gp2"
DEFAULT_RDS_STORAGE_GB = 20
VALID_RDS_STORAGE_TYPES = ("gp2", "gp3", "io1", "io2", "standard")

EC2_TENANCY = {"dedicated": "Dedicated", "host": "Host"}

ELASTICACHE_ENGINES: Dict[str, str] = {
    "redis": "Redis",
    "memcached": "Memcached",
    "valkey": "Valkey",
}
DEFAULT_ELASTICACHE_ENGINE = "redis"
MAX_ELASTICACHE_NODES = 1000


def ec2_platform_attributes(tags: UsageTagReader) -> Tuple[str, str]:
    """
    Operating system and tenancy for an EC2 price lookup.

    Returns:
        (os, tenancy), e.g. ("Linux", "Shared")
    """
    platform = tags.get_str(("platform", "operatingSystem"), "linux")
    os_name = "Windows" if platform.startswith("windows") else "Linux"
    tenancy = EC2_TENANCY.get(tags.get_str("tenancy", "default"), "Shared")
    return os_name, tenancy


def estimate_ec2(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    On-demand EC2 instance: hourly rate x hours per month.

    Args:
        request: Resource with the instance type as sku
        price_index: Regional price index
        context: Estimation context

    Returns:
        CostResult
    """
    instance_type = request.sku
    os_name, tenancy = ec2_platform_attributes(context.tags)

    entry, found = price_index.lookup(PriceCategory.EC2_INSTANCE, (instance_type, os_name, tenancy))
    if not found:
        return unpriced_result(context, pricing_not_found("EC2 instance type", instance_type))

    hours = context.hours_per_month
    cost = entry.rate * hours
    context.record(hourly_rate=entry.rate, hours=hours, os=os_name, tenancy=tenancy, sku=entry.sku)
    logger.debug(f"EC2 {instance_type} {os_name}/{tenancy}: ${entry.rate}/hr")

    return priced_result(
        context,
        unit_price=entry.rate,
        cost_per_month=cost,
        billing_detail=f"On-demand {os_name}, {tenancy} tenancy, {format_quantity(hours)} hrs/month",
    )


def rds_engine(tags: UsageTagReader) -> str:
    """Price-list engine name; unknown or missing engines fall back to MySQL."""
    engine = tags.get_str("engine", DEFAULT_RDS_ENGINE, record_missing=True)
    normalized = RDS_ENGINE_NORMALIZATION.get(engine)
    if normalized is None:
        tags.mark_defaulted("engine", "is not a recognized value", engine)
        normalized = RDS_ENGINE_NORMALIZATION[DEFAULT_RDS_ENGINE]
    return normalized


def rds_storage(tags: UsageTagReader) -> Tuple[str, int]:
    """(storage_type, storage_size_gb) with their documented defaults."""
    storage_type = tags.get_str(
        "storage_type", DEFAULT_RDS_STORAGE_TYPE, allowed=VALID_RDS_STORAGE_TYPES, record_missing=True
    )
    size_gb = tags.get_int(
        ("storage_size", "allocated_storage"), DEFAULT_RDS_STORAGE_GB,
        exclusive_minimum=True, record_missing=True,
    )
    return storage_type, size_gb


def estimate_rds(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    RDS instance: hourly rate x hours + storage GB x storage rate.

    Tags: engine (default mysql), storage_type (default gp2),
    storage_size (default 20), multi_az ("true" selects Multi-AZ pricing).
    A missing storage price counts the storage at $0 and says so.
    """
    tags = context.tags
    instance_class = request.sku
    engine = rds_engine(tags)
    storage_type, storage_gb = rds_storage(tags)
    multi_az = tags.get_bool("multi_az")
    deployment = "Multi-AZ" if multi_az else "Single-AZ"

    entry, found = price_index.lookup(PriceCategory.RDS_INSTANCE, (instance_class, engine, deployment))
    if not found:
        return unpriced_result(context, pricing_not_found("RDS instance type", instance_class))

    notes = []
    if tags.was_defaulted("engine"):
        notes.append("engine defaulted to MySQL")
    if tags.was_defaulted("storage_type"):
        notes.append("storage type defaulted")
    if tags.was_defaulted("storage_size"):
        notes.append(f"size defaulted to {DEFAULT_RDS_STORAGE_GB}GB")

    storage_entry, storage_found = price_index.lookup(PriceCategory.RDS_STORAGE, (storage_type,))
    storage_rate = storage_entry.rate if storage_found else 0.0
    if not storage_found:
        logger.warning(f"[trace_id={context.trace_id}] RDS {storage_type} storage price missing, counting storage at $0")
        notes.append(pricing_unavailable(f"RDS {storage_type} storage", context.region))

    hours = context.hours_per_month
    instance_cost = entry.rate * hours
    storage_cost = storage_rate * storage_gb
    context.record(
        hourly_rate=entry.rate,
        instance_cost=instance_cost,
        storage_rate=storage_rate,
        storage_cost=storage_cost,
        deployment=deployment,
    )

    deployment_label = " Multi-AZ" if multi_az else ""
    detail = (
        f"RDS {instance_class} {engine}{deployment_label}, {format_quantity(hours)} hrs/month + "
        f"{storage_gb}GB {storage_type} storage{defaults_note(notes)}"
    )
    return priced_result(context, entry.rate, instance_cost + storage_cost, detail)


def estimate_eks(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """EKS control plane: hourly rate x hours (standard or extended support)."""
    support_type = context.tags.get_str("support_type", "standard")
    extended = request.sku.strip().lower() == "cluster-extended" or support_type == "extended"
    support = "extended" if extended else "standard"

    entry, found = price_index.lookup(PriceCategory.EKS_CLUSTER, (support,))
    if not found:
        return unpriced_result(context, pricing_unavailable("EKS", context.region))

    hours = context.hours_per_month
    context.record(hourly_rate=entry.rate, support=support)
    return priced_result(
        context,
        unit_price=entry.rate,
        cost_per_month=entry.rate * hours,
        billing_detail=(
            f"EKS cluster ({support} support), {format_quantity(hours)} hrs/month "
            f"(control plane only, excludes worker nodes)"
        ),
    )


def elasticache_engine(tags: UsageTagReader) -> str:
    return tags.get_str("engine", DEFAULT_ELASTICACHE_ENGINE, allowed=ELASTICACHE_ENGINES, record_missing=True)


def elasticache_nodes(tags: UsageTagReader) -> int:
    return tags.get_int(("num_nodes", "num_cache_nodes"), 1, minimum=1, maximum=MAX_ELASTICACHE_NODES)


def estimate_elasticache(
    request: ResourceRequest,
    price_index: RegionalPriceIndex,
    context: EstimationContext,
) -> CostResult:
    """
    ElastiCache cluster: node hourly rate x nodes x hours.

    Tags: engine (redis, memcached, valkey; default redis) and
    num_nodes / num_cache_nodes (1..1000, default 1).
    """
    node_type = request.sku
    engine = ELASTICACHE_ENGINES[elasticache_engine(context.tags)]
    nodes = elasticache_nodes(context.tags)

    if not price_index.has_offer("AmazonElastiCache"):
        return unpriced_result(context, pricing_unavailable("ElastiCache", context.region))

    entry, found = price_index.lookup(PriceCategory.ELASTICACHE_NODE, (node_type, engine))
    if not found:
        return unpriced_result(context, pricing_not_found(f"ElastiCache {engine} node", node_type))

    hours = context.hours_per_month
    cost = entry.rate * nodes * hours
    context.record(hourly_rate=entry.rate, nodes=nodes, engine=engine)

    node_label = "1 node" if nodes == 1 else f"{nodes} nodes"
    return priced_result(
        context,
        unit_price=entry.rate,
        cost_per_month=cost,
        billing_detail=f"ElastiCache {node_type} ({engine}), {node_label}, {format_quantity(hours)} hrs/month",
    )
