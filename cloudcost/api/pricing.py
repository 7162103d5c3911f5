"""
API routes for cost and carbon estimation.
"""
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from cloudcost.domain.cost_models import ResourceRequest
from cloudcost.services.cost_estimator import CostEstimator, get_cost_estimator, new_trace_id
from cloudcost.services.errors import EstimationValidationError, RegionMismatchError
from cloudcost.services.recommendations import RecommendationFilter


logger = logging.getLogger(__name__)
router = APIRouter()


class ResourceDescriptor(BaseModel):
    """A resource to price."""
    provider: str = Field(..., description="Cloud provider (only 'aws' is supported)")
    resource_type: str = Field(..., description="Resource type, e.g. 'ec2' or 'aws:ec2/instance:Instance'")
    sku: str = Field(default="", description="Instance type, volume type, storage class, memory size, ...")
    region: str = Field(default="", description="AWS region (may be empty for S3 and IAM)")
    tags: Dict[str, str] = Field(default_factory=dict, description="Usage tags (sizes, request counts, durations)")
    utilization: Optional[float] = Field(None, description="Per-resource CPU utilization override (0..1)")
    id: str = Field(default="", description="Caller's resource id, echoed on recommendations")

    def to_request(self) -> ResourceRequest:
        return ResourceRequest(
            provider=self.provider,
            resource_type=self.resource_type,
            sku=self.sku,
            region=self.region,
            tags=dict(self.tags),
            utilization=self.utilization,
            resource_id=self.id,
        )


class SupportsRequest(BaseModel):
    """Request model for the capability check."""
    provider: str = Field(..., description="Cloud provider")
    resource_type: str = Field(..., description="Resource type in any accepted spelling")
    region: str = Field(default="", description="Resource region")


class ProjectedCostRequest(BaseModel):
    """Request model for projected monthly cost."""
    resource: ResourceDescriptor = Field(..., description="Resource to price")
    utilization: Optional[float] = Field(None, description="Default CPU utilization for carbon estimation (0..1)")


class ActualCostRequest(BaseModel):
    """Request model for cost over a runtime window."""
    resource: ResourceDescriptor = Field(..., description="Resource to price")
    start: Optional[datetime] = Field(None, description="Window start (defaults to the 'pulumi:created' tag)")
    end: Optional[datetime] = Field(None, description="Window end (defaults to now)")


class PricingSpecRequest(BaseModel):
    """Request model for a pricing specification."""
    resource: ResourceDescriptor = Field(..., description="Resource to describe")


class RecommendationFilterModel(BaseModel):
    """Criteria every analyzed resource must match."""
    region: str = Field(default="", description="Only resources in this region")
    resource_type: str = Field(default="", description="Only resources of this type (any accepted spelling)")
    sku: str = Field(default="", description="Only resources with this sku")
    tags: Dict[str, str] = Field(default_factory=dict, description="Only resources carrying all of these tags")

    def to_filter(self) -> RecommendationFilter:
        return RecommendationFilter(
            region=self.region,
            resource_type=self.resource_type,
            sku=self.sku,
            tags=dict(self.tags),
        )


class RecommendationsRequest(BaseModel):
    """Request model for cost optimization recommendations."""
    target_resources: List[ResourceDescriptor] = Field(default_factory=list, description="Resources to analyze")
    filter: Optional[RecommendationFilterModel] = Field(None, description="Optional resource filter")


class EstimateCostRequest(BaseModel):
    """Request model for an estimate from Pulumi resource attributes."""
    resource_type: str = Field(..., description="Pulumi type token, e.g. 'aws:ec2/instance:Instance'")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Resource inputs")


def get_trace_id(request: Request) -> str:
    """Trace id set by TraceIdMiddleware, or a fresh one."""
    return getattr(request.state, "trace_id", None) or new_trace_id()


def validation_http_error(error: EstimationValidationError) -> HTTPException:
    """Map a validation error to 400 (invalid resource) or 422 (region mismatch)."""
    status_code = 422 if isinstance(error, RegionMismatchError) else 400
    return HTTPException(status_code=status_code, detail=error.to_dict())


@router.get("/api/info")
async def plugin_info(estimator: CostEstimator = Depends(get_cost_estimator)) -> Dict[str, Any]:
    """
    Plugin identity and the region it serves.

    Returns:
        JSON response with name, version, region and providers
    """
    return {"status": "ok", "plugin": estimator.plugin_info()}


@router.post("/api/supports")
async def supports(
    supports_request: SupportsRequest,
    estimator: CostEstimator = Depends(get_cost_estimator),
) -> Dict[str, Any]:
    """
    Check whether a resource type in a region can be priced.

    Args:
        supports_request: Provider, resource type and region

    Returns:
        JSON response with supported flag, reason and supported metrics
    """
    result = estimator.supports(
        supports_request.provider,
        supports_request.resource_type,
        supports_request.region,
    )
    return {"status": "ok", **result.to_dict()}


@router.post("/api/cost/projected")
async def projected_cost(
    request: Request,
    cost_request: ProjectedCostRequest,
    estimator: CostEstimator = Depends(get_cost_estimator),
) -> Dict[str, Any]:
    """
    Projected monthly cost of a resource, with its carbon footprint when defined.

    Args:
        request: FastAPI request object
        cost_request: Resource and optional default utilization

    Returns:
        JSON response with the cost result

    Raises:
        HTTPException: 400 for invalid resources, 422 for region mismatch,
                       500 for unexpected errors
    """
    trace_id = get_trace_id(request)
    try:
        result = estimator.get_projected_cost(
            cost_request.resource.to_request(),
            utilization=cost_request.utilization,
            trace_id=trace_id,
        )
        return {"status": "ok", "trace_id": trace_id, "result": result.to_dict()}

    except EstimationValidationError as error:
        raise validation_http_error(error) from error
    except Exception as error:
        logger.error(f"[trace_id={trace_id}] Projected cost failed: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error


@router.post("/api/cost/actual")
async def actual_cost(
    request: Request,
    cost_request: ActualCostRequest,
    estimator: CostEstimator = Depends(get_cost_estimator),
) -> Dict[str, Any]:
    """
    Cost of a resource over a runtime window, pro-rated from its monthly projection.

    Args:
        request: FastAPI request object
        cost_request: Resource plus window start and end

    Returns:
        JSON response with the actual cost result

    Raises:
        HTTPException: 400 for invalid resources or time ranges, 422 for
                       region mismatch, 500 for unexpected errors
    """
    trace_id = get_trace_id(request)
    try:
        result = estimator.get_actual_cost(
            cost_request.resource.to_request(),
            start=cost_request.start,
            end=cost_request.end,
            trace_id=trace_id,
        )
        return {"status": "ok", "trace_id": trace_id, "result": result.to_dict()}

    except EstimationValidationError as error:
        raise validation_http_error(error) from error
    except Exception as error:
        logger.error(f"[trace_id={trace_id}] Actual cost failed: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error


@router.post("/api/pricing-spec")
async def pricing_spec(
    request: Request,
    spec_request: PricingSpecRequest,
    estimator: CostEstimator = Depends(get_cost_estimator),
) -> Dict[str, Any]:
    """
    Billing mode, unit rate and assumptions for a resource, without usage.

    Args:
        request: FastAPI request object
        spec_request: Resource to describe

    Returns:
        JSON response with the pricing specification

    Raises:
        HTTPException: 400 for invalid resources, 422 for region mismatch,
                       500 for unexpected errors
    """
    trace_id = get_trace_id(request)
    try:
        spec = estimator.get_pricing_spec(spec_request.resource.to_request(), trace_id=trace_id)
        return {"status": "ok", "trace_id": trace_id, "spec": spec.to_dict()}

    except EstimationValidationError as error:
        raise validation_http_error(error) from error
    except Exception as error:
        logger.error(f"[trace_id={trace_id}] Pricing spec failed: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error


@router.post("/api/recommendations")
async def recommendations(
    request: Request,
    recommendations_request: RecommendationsRequest,
    estimator: CostEstimator = Depends(get_cost_estimator),
) -> Dict[str, Any]:
    """
    Cost optimization recommendations for a batch of resources.

    Args:
        request: FastAPI request object
        recommendations_request: Target resources and an optional filter

    Returns:
        JSON response with recommendations and a savings summary

    Raises:
        HTTPException: 400 for an oversized batch (or unsupported resources
                       in strict mode), 500 for unexpected errors
    """
    trace_id = get_trace_id(request)
    resource_filter = None
    if recommendations_request.filter is not None:
        resource_filter = recommendations_request.filter.to_filter()
    try:
        result = estimator.get_recommendations(
            [resource.to_request() for resource in recommendations_request.target_resources],
            resource_filter=resource_filter,
            trace_id=trace_id,
        )
        return {"status": "ok", "trace_id": trace_id, **result.to_dict()}

    except EstimationValidationError as error:
        raise validation_http_error(error) from error
    except Exception as error:
        logger.error(f"[trace_id={trace_id}] Recommendations failed: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error


@router.post("/api/cost/estimate")
async def estimate_cost(
    request: Request,
    estimate_request: EstimateCostRequest,
    estimator: CostEstimator = Depends(get_cost_estimator),
) -> Dict[str, Any]:
    """
    Monthly cost of a resource described by its Pulumi type and attributes.

    Args:
        request: FastAPI request object
        estimate_request: Pulumi type token and resource attributes

    Returns:
        JSON response with the cost result

    Raises:
        HTTPException: 400 for a malformed type token, 500 for unexpected errors
    """
    trace_id = get_trace_id(request)
    try:
        result = estimator.estimate_from_attributes(
            estimate_request.resource_type,
            estimate_request.attributes,
            trace_id=trace_id,
        )
        return {"status": "ok", "trace_id": trace_id, "result": result.to_dict()}

    except EstimationValidationError as error:
        raise validation_http_error(error) from error
    except Exception as error:
        logger.error(f"[trace_id={trace_id}] Attribute estimate failed: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error
