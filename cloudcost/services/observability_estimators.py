"""
Cost estimator for CloudWatch logs and custom metrics.
"""
import logging

from cloudcost.domain.cost_models import CostResult, ResourceRequest
from cloudcost.pricing.billing_messages import UNAVAILABLE_MARKER, pricing_unavailable
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.pricing.tiered_rates import calculate_tiered_cost
from cloudcost.services.cost_results import priced_result, unpriced_result
from cloudcost.services.usage_tags import EstimationContext

logger = logging.getLogger(__name__)


CLOUDWATCH_SKUS = ("logs", "metrics", "combined")
MAX_CUSTOM_METRICS = 1_000_000
NO_USAGE_DETAIL = "CloudWatch: No usage specified (use tags: log_ingestion_gb, log_storage_gb, custom_metrics)"


def estimate_cloudwatch(
    request: ResourceRequest,
    price_index: RegionalPriceIndex,
    context: EstimationContext,
) -> CostResult:
    """
    CloudWatch usage for the "logs" (default), "metrics" or "combined" sku.

    Logs: tiered ingestion (log_ingestion_gb) + flat storage (log_storage_gb).
    Metrics: tiered custom metrics (custom_metrics, clamped to 1,000,000).
    Combined sums both. A region without CloudWatch pricing yields $0 with
    a detail saying so; a single missing component contributes $0 and is
    named in the detail.

    Args:
        request: Resource with the sku selecting the components
        price_index: Regional price index
        context: Estimation context

    Returns:
        CostResult (unit price is 0, there is no single unit)
    """
    tags = context.tags
    sku = request.sku.strip().lower()
    if not sku:
        sku = "logs"
    elif sku not in CLOUDWATCH_SKUS:
        tags.mark_defaulted("sku", "is not a recognized value", request.sku)
        sku = "logs"

    ingestion_gb = tags.get_float("log_ingestion_gb", 0.0)
    storage_gb = tags.get_float("log_storage_gb", 0.0)
    custom_metrics = tags.get_float("custom_metrics", 0.0, maximum=MAX_CUSTOM_METRICS)

    if not price_index.has_offer("AmazonCloudWatch"):
        return unpriced_result(context, pricing_unavailable("CloudWatch", context.region))

    total = 0.0
    details = []

    if sku in ("logs", "combined"):
        if ingestion_gb > 0:
            schedule, found = price_index.tier_schedule(PriceCategory.CLOUDWATCH, ("logs-ingestion",))
            if found:
                ingestion_cost = calculate_tiered_cost(ingestion_gb, schedule)
                total += ingestion_cost
                details.append(f"{ingestion_gb:.2f} GB logs ingested (${ingestion_cost:.2f})")
            else:
                details.append(pricing_unavailable("CloudWatch Logs ingestion", context.region))

        if storage_gb > 0:
            entry, found = price_index.lookup(PriceCategory.CLOUDWATCH, ("logs-storage",))
            if found:
                storage_cost = storage_gb * entry.rate
                total += storage_cost
                details.append(f"{storage_gb:.2f} GB logs stored @ ${entry.rate:.4f}/GB-mo (${storage_cost:.2f})")
            else:
                details.append(pricing_unavailable("CloudWatch Logs storage", context.region))

    if sku in ("metrics", "combined") and custom_metrics > 0:
        schedule, found = price_index.tier_schedule(PriceCategory.CLOUDWATCH, ("metrics",))
        if found:
            metrics_cost = calculate_tiered_cost(custom_metrics, schedule)
            total += metrics_cost
            details.append(f"{custom_metrics:.0f} custom metrics (${metrics_cost:.2f})")
        else:
            details.append(pricing_unavailable("CloudWatch Metrics", context.region))

    if any(UNAVAILABLE_MARKER in detail for detail in details):
        logger.warning(f"[trace_id={context.trace_id}] CloudWatch pricing incomplete in {context.region}")

    context.record(sku=sku, log_ingestion_gb=ingestion_gb, log_storage_gb=storage_gb, custom_metrics=custom_metrics)
    billing_detail = "CloudWatch: " + ", ".join(details) if details else NO_USAGE_DETAIL
    return priced_result(context, 0.0, total, billing_detail)
