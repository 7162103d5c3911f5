"""
Cost estimators for capacity-billed storage: EBS, S3 and DynamoDB.
"""
import logging

from cloudcost.domain.cost_models import CostResult, ResourceRequest
from cloudcost.pricing.billing_messages import defaulted, format_quantity, pricing_not_found
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.pricing.tiered_rates import calculate_tiered_cost, first_tier_rate
from cloudcost.services.cost_results import priced_result, unpriced_result
from cloudcost.services.usage_tags import EstimationContext

logger = logging.getLogger(__name__)


DEFAULT_EBS_VOLUME_TYPE = "gp2"
DEFAULT_EBS_SIZE_GB = 8
DEFAULT_S3_STORAGE_CLASS = "STANDARD"
DEFAULT_S3_SIZE_GB = 1.0

DYNAMODB_PROVISIONED = "provisioned"
DYNAMODB_ON_DEMAND = "on-demand"
DYNAMODB_ON_DEMAND_ALIASES = ("on-demand", "on_demand", "ondemand", "pay_per_request", "pay-per-request")


def estimate_ebs(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    EBS volume: size GB x rate per GB-month.

    The size comes from the "size" or "volume_size" tag; when it is missing
    or invalid the volume is priced at 8 GB and "size" is recorded as defaulted.
    """
    tags = context.tags
    volume_type = request.sku.strip().lower()
    if not volume_type:
        volume_type = DEFAULT_EBS_VOLUME_TYPE
        tags.mark_defaulted("volume_type")

    size_gb = tags.get_int(("size", "volume_size"), DEFAULT_EBS_SIZE_GB, exclusive_minimum=True, record_missing=True)

    entry, found = price_index.lookup(PriceCategory.EBS_VOLUME, (volume_type,))
    if not found:
        return unpriced_result(context, pricing_not_found("EBS volume type", volume_type))

    context.record(rate_per_gb_month=entry.rate, size_gb=size_gb)
    size_text = defaulted(f"{size_gb} GB", tags.was_defaulted("size"))
    return priced_result(
        context,
        unit_price=entry.rate,
        cost_per_month=size_gb * entry.rate,
        billing_detail=f"{volume_type} volume, {size_text}, ${entry.rate:.4f}/GB-month",
    )


def estimate_s3(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    S3 bucket storage, billed against the storage class's volume tiers.

    Args:
        request: Resource with the storage class as sku (default STANDARD)
        price_index: Regional price index
        context: Estimation context ("size" tag in GB, default 1)

    Returns:
        CostResult
    """
    tags = context.tags
    storage_class = request.sku.strip().upper()
    if not storage_class:
        storage_class = DEFAULT_S3_STORAGE_CLASS
        tags.mark_defaulted("storage_class")

    size_gb = tags.get_float("size", DEFAULT_S3_SIZE_GB, exclusive_minimum=True, record_missing=True)

    schedule, found = price_index.tier_schedule(PriceCategory.S3_STORAGE, (storage_class,))
    if not found:
        return unpriced_result(context, pricing_not_found("S3 storage class", storage_class))

    rate = first_tier_rate(schedule)
    cost = calculate_tiered_cost(size_gb, schedule)
    context.record(tiers=[tier.to_dict() for tier in schedule], size_gb=size_gb, tiered_cost=cost)

    detail = (
        f"S3 {storage_class} storage, {defaulted(f'{format_quantity(size_gb)} GB', tags.was_defaulted('size'))}, "
        f"${rate:.4f}/GB-month"
    )
    if len(schedule) > 1 and size_gb > schedule[0].up_to:
        detail += f", volume tiers above {format_quantity(schedule[0].up_to)} GB"
    return priced_result(context, rate, cost, detail)


def estimate_dynamodb(
    request: ResourceRequest,
    price_index: RegionalPriceIndex,
    context: EstimationContext,
) -> CostResult:
    """
    DynamoDB table in on-demand (default) or provisioned capacity mode.

    On-demand: reads x read price + writes x write price + storage.
    Provisioned: RCUs x hours x RCU price + WCUs x hours x WCU price + storage.
    Components without a price are counted at $0 and listed in the detail.
    """
    tags = context.tags
    mode = request.sku.strip().lower() or DYNAMODB_ON_DEMAND
    if mode in DYNAMODB_ON_DEMAND_ALIASES:
        mode = DYNAMODB_ON_DEMAND
    elif mode != DYNAMODB_PROVISIONED:
        tags.mark_defaulted("capacity_mode", "is not a recognized value", request.sku)
        mode = DYNAMODB_ON_DEMAND

    storage_gb = tags.get_float("storage_gb", 0.0)
    unavailable = []

    storage_entry, storage_found = price_index.lookup(PriceCategory.DYNAMODB, ("storage",))
    storage_price = storage_entry.rate if storage_found else 0.0
    if not storage_found:
        unavailable.append("Storage")
    storage_cost = storage_gb * storage_price
    hours = context.hours_per_month

    if mode == DYNAMODB_PROVISIONED:
        read_units = tags.get_int("read_capacity_units", 0)
        write_units = tags.get_int("write_capacity_units", 0)
        rcu_entry, rcu_found = price_index.lookup(PriceCategory.DYNAMODB, ("provisioned-rcu",))
        wcu_entry, wcu_found = price_index.lookup(PriceCategory.DYNAMODB, ("provisioned-wcu",))
        rcu_price = rcu_entry.rate if rcu_found else 0.0
        wcu_price = wcu_entry.rate if wcu_found else 0.0
        if not rcu_found:
            unavailable.append("RCU")
        if not wcu_found:
            unavailable.append("WCU")

        total = read_units * hours * rcu_price + write_units * hours * wcu_price + storage_cost
        unit_price = rcu_price
        detail = (
            f"DynamoDB provisioned, {read_units} RCUs, {write_units} WCUs, "
            f"{format_quantity(hours)} hrs/month, {storage_gb:.0f}GB storage"
        )
    else:
        reads = tags.get_int("read_requests_per_month", 0)
        writes = tags.get_int("write_requests_per_month", 0)
        read_entry, read_found = price_index.lookup(PriceCategory.DYNAMODB, ("on-demand-read",))
        write_entry, write_found = price_index.lookup(PriceCategory.DYNAMODB, ("on-demand-write",))
        read_price = read_entry.rate if read_found else 0.0
        write_price = write_entry.rate if write_found else 0.0
        if not read_found:
            unavailable.append("Read")
        if not write_found:
            unavailable.append("Write")

        total = reads * read_price + writes * write_price + storage_cost
        unit_price = storage_price
        detail = f"DynamoDB on-demand, {reads} reads, {writes} writes, {storage_gb:.0f}GB storage"

    if unavailable:
        logger.warning(
            f"[trace_id={context.trace_id}] DynamoDB pricing unavailable for: {', '.join(unavailable)}"
        )
        detail += f" (pricing unavailable: {', '.join(unavailable)})"
    if total == 0:
        detail += " (missing or zero usage inputs)"

    context.record(capacity_mode=mode, storage_cost=storage_cost, unavailable=unavailable)
    return priced_result(context, unit_price, total, detail)
