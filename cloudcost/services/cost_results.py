"""
Result builders shared by the per-service estimators.
"""
import logging

from cloudcost.domain.cost_models import CostResult
from cloudcost.services.usage_tags import EstimationContext

logger = logging.getLogger(__name__)


def priced_result(
    context: EstimationContext,
    unit_price: float,
    cost_per_month: float,
    billing_detail: str,
) -> CostResult:
    """Package a computed cost together with the context's defaulted fields and diagnostics."""
    return CostResult(
        unit_price=unit_price,
        currency=context.currency,
        cost_per_month=cost_per_month,
        billing_detail=billing_detail,
        defaulted_fields=set(context.defaulted_fields),
        diagnostics=dict(context.diagnostics) if context.enhanced_diagnostics else None,
    )


def unpriced_result(context: EstimationContext, billing_detail: str) -> CostResult:
    """
    Soft failure: a $0 result whose billing detail explains the missing price.

    Args:
        context: Estimation context
        billing_detail: Explanation built from the shared billing templates

    Returns:
        CostResult with zero cost
    """
    logger.warning(f"[trace_id={context.trace_id}] Pricing miss in {context.region}: {billing_detail}")
    return priced_result(context, 0.0, 0.0, billing_detail)
