"""
Structural validation of resource requests.
"""
import logging
from typing import Tuple

from cloudcost.domain.cost_models import ResourceRequest
from cloudcost.services.errors import EstimationValidationError, RegionMismatchError
from cloudcost.services.resource_types import GLOBAL_FAMILIES, ServiceFamily, normalize_resource_type
from cloudcost.services.usage_tags import sanitize_tags_for_logging

logger = logging.getLogger(__name__)


SUPPORTED_PROVIDER = "aws"


def validate_request(
    request: ResourceRequest,
    plugin_region: str,
    trace_id: str = "",
) -> Tuple[ServiceFamily, str]:
    """
    Validate a request and resolve its service family and region.

    Args:
        request: Resource to price
        plugin_region: Region served by this process
        trace_id: Correlation id copied into error details

    Returns:
        Tuple of (service family, effective region)

    Raises:
        EstimationValidationError: Missing provider/resource type/region, or non-AWS provider
        UnsupportedResourceTypeError: Resource type not recognized
        RegionMismatchError: Resource region differs from plugin_region
    """
    try:
        if request is None:
            raise EstimationValidationError("missing resource descriptor", details={"trace_id": trace_id})

        provider = (request.provider or "").strip().lower()
        if not provider:
            raise EstimationValidationError("resource provider is required", details={"trace_id": trace_id})
        if provider != SUPPORTED_PROVIDER:
            raise EstimationValidationError(
                f'Provider "{request.provider}" not supported (only "{SUPPORTED_PROVIDER}" is supported)',
                details={"trace_id": trace_id, "provider": request.provider},
            )

        if not (request.resource_type or "").strip():
            raise EstimationValidationError("resource_type is required", details={"trace_id": trace_id})

        family = normalize_resource_type(request.resource_type, trace_id)

        region = (request.region or "").strip()
        if not region:
            if family in GLOBAL_FAMILIES:
                region = plugin_region
            else:
                raise EstimationValidationError(
                    "resource region is required",
                    details={"trace_id": trace_id, "resource_type": request.resource_type},
                )

        if region != plugin_region:
            raise RegionMismatchError(plugin_region, region, trace_id)

    except EstimationValidationError as error:
        logger.error(
            f"[trace_id={trace_id}] Request validation failed ({error.code}): {error.message} "
            f"tags={sanitize_tags_for_logging(request.tags if request else None)}"
        )
        raise

    return family, region
