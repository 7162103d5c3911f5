"""
Pricing specifications: how a resource is billed, without usage.

Each builder reads the same price entries as the matching cost estimator
and describes the billing mode, the primary unit rate and the assumptions
behind it. A missing price yields a rate of 0 and a description saying so.
"""
import logging
from typing import Callable, Dict, List, Sequence

from cloudcost.domain.cost_models import PricingSpec, ResourceRequest, TierRate
from cloudcost.pricing.billing_messages import format_quantity, pricing_not_found, pricing_unavailable
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.pricing.tiered_rates import first_tier_rate
from cloudcost.services.compute_estimators import (
    ELASTICACHE_ENGINES,
    ec2_platform_attributes,
    elasticache_engine,
    rds_engine,
)
from cloudcost.services.network_estimators import ZERO_COST_DESCRIPTIONS, load_balancer_kind
from cloudcost.services.resource_types import ServiceFamily
from cloudcost.services.serverless_estimators import lambda_architecture
from cloudcost.services.storage_estimators import (
    DEFAULT_EBS_VOLUME_TYPE,
    DEFAULT_S3_STORAGE_CLASS,
    DYNAMODB_ON_DEMAND_ALIASES,
    DYNAMODB_PROVISIONED,
)
from cloudcost.services.usage_tags import UsageTagReader

logger = logging.getLogger(__name__)


def format_rate(rate: float) -> str:
    """Plain decimal without trailing zeros: 0.0000002, 0.023, 0.5."""
    return f"{rate:.10f}".rstrip("0").rstrip(".")


def tier_lines(schedule: Sequence[TierRate], unit: str) -> List[str]:
    """One assumption line per tier, e.g. "Tier 0-51200 GB: $0.023/GB"."""
    lines = []
    for tier in schedule:
        if tier.unbounded:
            bounds = f"Above {format_quantity(tier.from_quantity)}"
        else:
            bounds = f"{format_quantity(tier.from_quantity)}-{format_quantity(tier.up_to)}"
        lines.append(f"Tier {bounds} {unit}: ${format_rate(tier.rate)}/{unit}")
    return lines


def _not_found(request: ResourceRequest, region: str, billing_mode: str, unit: str, description: str) -> PricingSpec:
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=region,
        billing_mode=billing_mode,
        rate_per_unit=0.0,
        unit=unit,
        description=description,
        assumptions=["Pricing data not available for this configuration"],
    )


def ec2_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    os_name, tenancy = ec2_platform_attributes(tags)
    entry, found = price_index.lookup(PriceCategory.EC2_INSTANCE, (request.sku, os_name, tenancy))
    if not found:
        return _not_found(
            request, price_index.region, "per_hour", "hour",
            pricing_not_found("EC2 instance type", request.sku),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="per_hour",
        rate_per_unit=entry.rate,
        unit="hour",
        description=f"On-demand {os_name}, {tenancy} tenancy",
        assumptions=[
            f"Operating System: {os_name}",
            f"Tenancy: {tenancy}",
            "Pre-installed software: None",
            "Capacity Status: Used",
        ],
    )


def ebs_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    volume_type = request.sku.strip().lower() or DEFAULT_EBS_VOLUME_TYPE
    entry, found = price_index.lookup(PriceCategory.EBS_VOLUME, (volume_type,))
    if not found:
        return _not_found(
            request, price_index.region, "per_gb_month", "GB-month",
            pricing_not_found("EBS volume type", volume_type),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=volume_type,
        region=price_index.region,
        billing_mode="per_gb_month",
        rate_per_unit=entry.rate,
        unit="GB-month",
        description=f"EBS {volume_type} volume storage",
        assumptions=[
            f"Volume type: {volume_type}",
            "Billed on provisioned size (\"size\" tag, 8 GB when absent)",
        ],
    )


def s3_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    storage_class = request.sku.strip().upper() or DEFAULT_S3_STORAGE_CLASS
    schedule, found = price_index.tier_schedule(PriceCategory.S3_STORAGE, (storage_class,))
    if not found:
        return _not_found(
            request, price_index.region, "per_gb_month", "GB-month",
            pricing_not_found("S3 storage class", storage_class),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=storage_class,
        region=price_index.region,
        billing_mode="per_gb_month",
        rate_per_unit=first_tier_rate(schedule),
        unit="GB-month",
        description=f"S3 {storage_class} storage",
        assumptions=[f"Storage class: {storage_class}"] + tier_lines(schedule, "GB"),
    )


def lambda_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    architecture = lambda_architecture(tags)
    request_entry, request_found = price_index.lookup(PriceCategory.LAMBDA_REQUEST, ("requests",))
    schedule, duration_found = price_index.tier_schedule(PriceCategory.LAMBDA_DURATION, (architecture,))
    if not (request_found and duration_found):
        return _not_found(
            request, price_index.region, "per_request_and_gb_second", "GB-second",
            pricing_unavailable("Lambda", price_index.region),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="per_request_and_gb_second",
        rate_per_unit=first_tier_rate(schedule),
        unit="GB-second",
        description=f"Lambda ({architecture}): per request plus GB-seconds of compute",
        assumptions=[
            f"Architecture: {architecture}",
            f"Request rate: ${format_rate(request_entry.rate)}/request",
        ] + tier_lines(schedule, "GB-second"),
    )


def rds_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    engine = rds_engine(tags)
    deployment = "Multi-AZ" if tags.get_bool("multi_az") else "Single-AZ"
    entry, found = price_index.lookup(PriceCategory.RDS_INSTANCE, (request.sku, engine, deployment))
    if not found:
        return _not_found(
            request, price_index.region, "per_hour", "hour",
            pricing_not_found("RDS instance type", request.sku),
        )
    assumptions = [f"Database engine: {engine}", f"Deployment: {deployment}"]
    storage_type = tags.get_str("storage_type", "gp2")
    storage_entry, storage_found = price_index.lookup(PriceCategory.RDS_STORAGE, (storage_type,))
    if storage_found:
        assumptions.append(f"Storage ({storage_type}): ${storage_entry.rate:.4f}/GB-month, billed separately")
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="per_hour",
        rate_per_unit=entry.rate,
        unit="hour",
        description=f"RDS {request.sku} {engine} {deployment}",
        assumptions=assumptions,
    )


def dynamodb_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    mode = request.sku.strip().lower()
    if mode == DYNAMODB_PROVISIONED:
        rcu_entry, rcu_found = price_index.lookup(PriceCategory.DYNAMODB, ("provisioned-rcu",))
        wcu_entry, wcu_found = price_index.lookup(PriceCategory.DYNAMODB, ("provisioned-wcu",))
        if not (rcu_found and wcu_found):
            return _not_found(
                request, price_index.region, "provisioned_capacity", "RCU-hour",
                pricing_unavailable("DynamoDB provisioned capacity", price_index.region),
            )
        return PricingSpec(
            resource_type=request.resource_type,
            sku=request.sku,
            region=price_index.region,
            billing_mode="provisioned_capacity",
            rate_per_unit=rcu_entry.rate,
            unit="RCU-hour",
            description="DynamoDB provisioned capacity",
            assumptions=[
                f"Read capacity: ${format_rate(rcu_entry.rate)}/RCU-hour",
                f"Write capacity: ${format_rate(wcu_entry.rate)}/WCU-hour",
                "Storage billed separately per GB-month",
            ],
        )

    if mode and mode not in DYNAMODB_ON_DEMAND_ALIASES:
        logger.debug(f"DynamoDB capacity mode {request.sku!r} not recognized, describing on-demand")
    storage_entry, storage_found = price_index.lookup(PriceCategory.DYNAMODB, ("storage",))
    read_entry, read_found = price_index.lookup(PriceCategory.DYNAMODB, ("on-demand-read",))
    write_entry, write_found = price_index.lookup(PriceCategory.DYNAMODB, ("on-demand-write",))
    if not storage_found:
        return _not_found(
            request, price_index.region, "on_demand", "GB-month",
            pricing_unavailable("DynamoDB storage", price_index.region),
        )
    assumptions = []
    if read_found:
        assumptions.append(f"Read requests: ${format_rate(read_entry.rate)}/request")
    if write_found:
        assumptions.append(f"Write requests: ${format_rate(write_entry.rate)}/request")
    assumptions.append(f"Storage: ${storage_entry.rate:.4f}/GB-month")
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="on_demand",
        rate_per_unit=storage_entry.rate,
        unit="GB-month",
        description="DynamoDB on-demand capacity",
        assumptions=assumptions,
    )


def eks_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    extended = request.sku.strip().lower() == "cluster-extended" or tags.get_str("support_type", "") == "extended"
    support = "extended" if extended else "standard"
    entry, found = price_index.lookup(PriceCategory.EKS_CLUSTER, (support,))
    if not found:
        return _not_found(
            request, price_index.region, "per_hour", "hour", pricing_unavailable("EKS", price_index.region),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="per_hour",
        rate_per_unit=entry.rate,
        unit="hour",
        description=f"EKS cluster control plane ({support} support)",
        assumptions=[f"Support tier: {support}", "Worker nodes are billed as EC2 instances"],
    )


def elb_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    kind = load_balancer_kind(request)
    unit_name = "NLCU" if kind == "nlb" else "LCU"
    billing_mode = f"per_hour_plus_{unit_name.lower()}"
    hour_entry, hour_found = price_index.lookup(PriceCategory.ELB_HOUR, (kind,))
    unit_entry, unit_found = price_index.lookup(PriceCategory.ELB_CAPACITY_UNIT, (kind,))
    if not (hour_found and unit_found):
        return _not_found(
            request, price_index.region, billing_mode, "hour",
            pricing_unavailable(kind.upper(), price_index.region),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode=billing_mode,
        rate_per_unit=hour_entry.rate,
        unit="hour",
        description=f"{kind.upper()}: hourly charge plus {unit_name} usage",
        assumptions=[
            f"Fixed: ${hour_entry.rate:.4f}/hour",
            f"{unit_name}: ${unit_entry.rate:.4f}/{unit_name}-hour",
        ],
    )


def natgw_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    hour_entry, hour_found = price_index.lookup(PriceCategory.NAT_GATEWAY, ("hour",))
    data_entry, data_found = price_index.lookup(PriceCategory.NAT_GATEWAY, ("data",))
    if not hour_found:
        return _not_found(
            request, price_index.region, "per_hour_plus_data", "hour",
            pricing_unavailable("NAT Gateway", price_index.region),
        )
    assumptions = [f"Fixed: ${hour_entry.rate:.3f}/hour"]
    if data_found:
        assumptions.append(f"Data processed: ${data_entry.rate:.3f}/GB")
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="per_hour_plus_data",
        rate_per_unit=hour_entry.rate,
        unit="hour",
        description="NAT Gateway: hourly charge plus data processed",
        assumptions=assumptions,
    )


def cloudwatch_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    metrics = request.sku.strip().lower() == "metrics"
    billing_mode = "tiered_per_metric" if metrics else "tiered_ingestion_plus_storage"
    unit = "metric-month" if metrics else "GB"
    if not price_index.has_offer("AmazonCloudWatch"):
        return _not_found(
            request, price_index.region, billing_mode, unit, pricing_unavailable("CloudWatch", price_index.region),
        )

    if metrics:
        schedule, found = price_index.tier_schedule(PriceCategory.CLOUDWATCH, ("metrics",))
        if not found:
            return _not_found(
                request, price_index.region, billing_mode, unit,
                pricing_unavailable("CloudWatch Metrics", price_index.region),
            )
        return PricingSpec(
            resource_type=request.resource_type,
            sku=request.sku,
            region=price_index.region,
            billing_mode=billing_mode,
            rate_per_unit=first_tier_rate(schedule),
            unit=unit,
            description="CloudWatch custom metrics, volume-tiered",
            assumptions=tier_lines(schedule, "metric"),
        )

    schedule, found = price_index.tier_schedule(PriceCategory.CLOUDWATCH, ("logs-ingestion",))
    if not found:
        return _not_found(
            request, price_index.region, billing_mode, unit,
            pricing_unavailable("CloudWatch Logs ingestion", price_index.region),
        )
    assumptions = tier_lines(schedule, "GB")
    storage_entry, storage_found = price_index.lookup(PriceCategory.CLOUDWATCH, ("logs-storage",))
    if storage_found:
        assumptions.append(f"Storage: ${storage_entry.rate:.4f}/GB-month")
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode=billing_mode,
        rate_per_unit=first_tier_rate(schedule),
        unit=unit,
        description="CloudWatch Logs: tiered ingestion plus storage",
        assumptions=assumptions,
    )


def elasticache_spec(request: ResourceRequest, price_index: RegionalPriceIndex, tags: UsageTagReader) -> PricingSpec:
    engine = ELASTICACHE_ENGINES[elasticache_engine(tags)]
    if not price_index.has_offer("AmazonElastiCache"):
        return _not_found(
            request, price_index.region, "per_node_hour", "node-hour",
            pricing_unavailable("ElastiCache", price_index.region),
        )
    entry, found = price_index.lookup(PriceCategory.ELASTICACHE_NODE, (request.sku, engine))
    if not found:
        return _not_found(
            request, price_index.region, "per_node_hour", "node-hour",
            pricing_not_found(f"ElastiCache {engine} node", request.sku),
        )
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=price_index.region,
        billing_mode="per_node_hour",
        rate_per_unit=entry.rate,
        unit="node-hour",
        description=f"ElastiCache {request.sku} ({engine}) per node",
        assumptions=[f"Engine: {engine}", "Billed per node (\"num_nodes\" tag, 1 when absent)"],
    )


def zero_cost_spec(request: ResourceRequest, family: ServiceFamily, region: str) -> PricingSpec:
    return PricingSpec(
        resource_type=request.resource_type,
        sku=request.sku,
        region=region,
        billing_mode="no_charge",
        rate_per_unit=0.0,
        unit="",
        description=ZERO_COST_DESCRIPTIONS.get(family, f"{family.value} has no direct AWS charge"),
    )


SpecBuilder = Callable[[ResourceRequest, RegionalPriceIndex, UsageTagReader], PricingSpec]

SPEC_BUILDERS: Dict[ServiceFamily, SpecBuilder] = {
    ServiceFamily.EC2: ec2_spec,
    ServiceFamily.EBS: ebs_spec,
    ServiceFamily.S3: s3_spec,
    ServiceFamily.LAMBDA: lambda_spec,
    ServiceFamily.RDS: rds_spec,
    ServiceFamily.DYNAMODB: dynamodb_spec,
    ServiceFamily.EKS: eks_spec,
    ServiceFamily.ELB: elb_spec,
    ServiceFamily.NATGW: natgw_spec,
    ServiceFamily.CLOUDWATCH: cloudwatch_spec,
    ServiceFamily.ELASTICACHE: elasticache_spec,
}
