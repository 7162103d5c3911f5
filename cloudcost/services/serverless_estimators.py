"""
Cost estimator for Lambda functions.
"""
import logging
from typing import Tuple

from cloudcost.domain.cost_models import CostResult, ResourceRequest
from cloudcost.pricing.billing_messages import defaults_note, pricing_unavailable
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.pricing.tiered_rates import calculate_tiered_cost, first_tier_rate
from cloudcost.services.cost_results import priced_result, unpriced_result
from cloudcost.services.usage_tags import EstimationContext, UsageTagReader

logger = logging.getLogger(__name__)


DEFAULT_MEMORY_MB = 128
DEFAULT_DURATION_MS = 100
DEFAULT_ARCHITECTURE = "x86_64"
ARM_ALIASES = ("arm", "arm64", "aarch64")


def lambda_memory_mb(sku: str, tags: UsageTagReader) -> int:
    """Configured memory from the sku (or memory_size tag), default 128 MB."""
    text = (sku or "").strip() or tags.raw(("memory_size", "memory"))
    try:
        memory = int(text) if text else 0
    except ValueError:
        memory = 0
    if memory > 0:
        return memory
    tags.mark_defaulted("memory", "is not a positive integer" if text else "", text or None)
    return DEFAULT_MEMORY_MB


def lambda_architecture(tags: UsageTagReader) -> str:
    """"arm"/"arm64" map to arm64; anything else is x86_64."""
    arch = tags.get_str(("arch", "architecture"), DEFAULT_ARCHITECTURE, record_missing=True)
    return "arm64" if arch in ARM_ALIASES else "x86_64"


def lambda_usage(request: ResourceRequest, tags: UsageTagReader) -> Tuple[int, int, int, str]:
    """(memory_mb, requests_per_month, avg_duration_ms, architecture)."""
    memory_mb = lambda_memory_mb(request.sku, tags)
    requests = tags.get_int("requests_per_month", 0, record_missing=True)
    duration_ms = tags.get_int("avg_duration_ms", DEFAULT_DURATION_MS, exclusive_minimum=True, record_missing=True)
    return memory_mb, requests, duration_ms, lambda_architecture(tags)


def gb_seconds(memory_mb: int, duration_ms: int, requests: int) -> float:
    """Billed compute: memory (GB) x duration (s) x invocations."""
    return (memory_mb / 1024.0) * (duration_ms / 1000.0) * requests


def estimate_lambda(request: ResourceRequest, price_index: RegionalPriceIndex, context: EstimationContext) -> CostResult:
    """
    Lambda: requests x request price + GB-seconds billed against the
    architecture's duration tiers.

    Args:
        request: Resource with the memory size in MB as sku
        price_index: Regional price index
        context: Estimation context (requests_per_month, avg_duration_ms, arch tags)

    Returns:
        CostResult
    """
    tags = context.tags
    memory_mb, requests, duration_ms, architecture = lambda_usage(request, tags)

    request_entry, request_found = price_index.lookup(PriceCategory.LAMBDA_REQUEST, ("requests",))
    schedule, duration_found = price_index.tier_schedule(PriceCategory.LAMBDA_DURATION, (architecture,))
    if not (request_found and duration_found):
        return unpriced_result(context, pricing_unavailable("Lambda", context.region))

    total_gb_seconds = gb_seconds(memory_mb, duration_ms, requests)
    request_cost = requests * request_entry.rate
    compute_cost = calculate_tiered_cost(total_gb_seconds, schedule)
    context.record(
        request_cost=request_cost,
        compute_cost=compute_cost,
        gb_seconds=total_gb_seconds,
        duration_tiers=[tier.to_dict() for tier in schedule],
    )

    notes = []
    if tags.was_defaulted("memory"):
        notes.append("memory defaulted")
    if tags.was_defaulted("requests_per_month"):
        notes.append("requests defaulted")
    if tags.was_defaulted("avg_duration_ms"):
        notes.append("duration defaulted")
    if tags.was_defaulted("arch"):
        notes.append("arch defaulted to x86_64")

    detail = (
        f"Lambda {memory_mb}MB ({architecture}), {requests} requests/month, "
        f"{duration_ms}ms avg duration{defaults_note(notes)}, {total_gb_seconds:.0f} GB-seconds"
    )
    return priced_result(context, first_tier_rate(schedule), request_cost + compute_cost, detail)
