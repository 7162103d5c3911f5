"""
Cost estimators for networking: load balancers, NAT gateways, and the
networking and identity resources that carry no direct charge.
"""
import logging
from typing import Dict

from cloudcost.domain.cost_models import CostResult, ResourceRequest
from cloudcost.pricing.billing_messages import format_quantity, pricing_unavailable
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.services.cost_results import priced_result, unpriced_result
from cloudcost.services.resource_types import ServiceFamily
from cloudcost.services.usage_tags import EstimationContext

logger = logging.getLogger(__name__)


CAPACITY_UNIT_WARN_THRESHOLD = 1000.0

ZERO_COST_DESCRIPTIONS: Dict[ServiceFamily, str] = {
    ServiceFamily.VPC: (
        "VPC has no direct hourly or monthly charge. Costs may apply for associated "
        "resources (NAT Gateway, VPN, etc.)"
    ),
    ServiceFamily.SECURITY_GROUP: "Security Groups have no direct charge. They are a free networking feature.",
    ServiceFamily.SUBNET: "Subnets have no direct charge. Costs may apply for data transfer between AZs.",
    ServiceFamily.IAM: (
        "IAM resources (users, roles, policies) have no direct charge. They are a free AWS feature."
    ),
}


def load_balancer_kind(request: ResourceRequest) -> str:
    """"nlb" when the sku or resource type names a network load balancer, else "alb"."""
    hints = f"{request.sku} {request.resource_type}".lower()
    return "nlb" if ("nlb" in hints or "network" in hints) else "alb"


def estimate_elb(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    Application or network load balancer:
    hours x hourly rate + hours x capacity units x capacity-unit rate.

    Capacity units come from lcu_per_hour (ALB) / nlcu_per_hour (NLB),
    falling back to capacity_units; default 0.
    """
    kind = load_balancer_kind(request)
    unit_name = "NLCU" if kind == "nlb" else "LCU"
    capacity_units = context.tags.get_float((f"{unit_name.lower()}_per_hour", "capacity_units"), 0.0)

    if capacity_units > CAPACITY_UNIT_WARN_THRESHOLD:
        logger.warning(
            f"[trace_id={context.trace_id}] {unit_name} of {capacity_units:g}/hr exceeds "
            f"{CAPACITY_UNIT_WARN_THRESHOLD:g}, verify this is intentional"
        )

    hour_entry, hour_found = price_index.lookup(PriceCategory.ELB_HOUR, (kind,))
    unit_entry, unit_found = price_index.lookup(PriceCategory.ELB_CAPACITY_UNIT, (kind,))
    if not (hour_found and unit_found):
        return unpriced_result(context, pricing_unavailable(kind.upper(), context.region))

    hours = context.hours_per_month
    fixed_cost = hours * hour_entry.rate
    capacity_cost = hours * capacity_units * unit_entry.rate
    context.record(fixed_cost=fixed_cost, capacity_cost=capacity_cost, capacity_unit_rate=unit_entry.rate)

    return priced_result(
        context,
        unit_price=hour_entry.rate,
        cost_per_month=fixed_cost + capacity_cost,
        billing_detail=(
            f"{kind.upper()}, {format_quantity(hours)} hrs/month, {capacity_units:.1f} {unit_name} avg/hr"
        ),
    )


def estimate_natgw(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    NAT gateway: hours x hourly rate + data_processed_gb x per-GB rate.

    Without a data_processed_gb tag only the hourly charge is counted and the
    detail says how to include data processing.
    """
    hour_entry, hour_found = price_index.lookup(PriceCategory.NAT_GATEWAY, ("hour",))
    if not hour_found:
        return unpriced_result(context, pricing_unavailable("NAT Gateway", context.region))

    hours = context.hours_per_month
    hourly_cost = hour_entry.rate * hours
    detail = f"NAT Gateway, {format_quantity(hours)} hrs/month (${hour_entry.rate:.3f}/hr)"

    data_cost = 0.0
    if context.tags.has("data_processed_gb"):
        data_gb = context.tags.get_float("data_processed_gb", 0.0)
        data_entry, data_found = price_index.lookup(PriceCategory.NAT_GATEWAY, ("data",))
        if data_gb <= 0:
            detail += " (0 GB data processed)"
        elif not data_found:
            detail += f" ({pricing_unavailable('NAT Gateway data processing', context.region)})"
        else:
            data_cost = data_gb * data_entry.rate
            detail += f" + {data_gb:.2f} GB data processed (${data_entry.rate:.3f}/GB)"
    else:
        detail += " (data processing cost not included; use 'data_processed_gb' tag to estimate)"

    context.record(hourly_cost=hourly_cost, data_cost=data_cost)
    return priced_result(context, hour_entry.rate, hourly_cost + data_cost, detail)


def estimate_zero_cost(
    request: ResourceRequest,
    price_index: RegionalPriceIndex,
    context: EstimationContext,
    family: ServiceFamily,
) -> CostResult:
    """Resources with no direct charge: $0 with an explanation of what may still cost money."""
    description = ZERO_COST_DESCRIPTIONS.get(family, f"{family.value} has no direct AWS charge")
    return priced_result(context, 0.0, 0.0, description)
