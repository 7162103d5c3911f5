"""
Cost estimator service.
Validates resource requests, routes them to the per-service estimators and
attaches the carbon footprint metric. Also serves pricing specifications,
cost optimization recommendations and estimates from Pulumi attributes.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime, timezone
import logging
import threading
import uuid

from cloudcost.carbon.estimator import CarbonEstimator, resolve_utilization
from cloudcost.core.config import config
from cloudcost.domain.cost_models import (
    ActualCostResult,
    CarbonResult,
    CostResult,
    PricingSpec,
    RecommendationsResult,
    ResourceRequest,
    SupportsResult,
)
from cloudcost.pricing.aws_region_map import get_aws_pricing_location, region_from_availability_zone
from cloudcost.pricing.price_index import RegionalPriceIndex, load_price_index
from cloudcost.services.compute_estimators import (
    elasticache_nodes,
    estimate_ec2,
    estimate_eks,
    estimate_elasticache,
    estimate_rds,
    rds_storage,
)
from cloudcost.services.errors import EstimationValidationError, UnsupportedResourceTypeError
from cloudcost.services.network_estimators import estimate_elb, estimate_natgw, estimate_zero_cost
from cloudcost.services.observability_estimators import estimate_cloudwatch
from cloudcost.services.pricing_spec import SPEC_BUILDERS, zero_cost_spec
from cloudcost.services.recommendations import RECOMMENDATION_FAMILIES, RecommendationFilter, recommend
from cloudcost.services.resource_types import (
    CARBON_FAMILIES,
    GLOBAL_FAMILIES,
    ZERO_COST_FAMILIES,
    ServiceFamily,
    is_supported_resource_type,
    normalize_resource_type,
    split_pulumi_type,
)
from cloudcost.services.serverless_estimators import lambda_usage, estimate_lambda
from cloudcost.services.storage_estimators import (
    DEFAULT_EBS_SIZE_GB,
    DEFAULT_EBS_VOLUME_TYPE,
    DEFAULT_S3_SIZE_GB,
    DEFAULT_S3_STORAGE_CLASS,
    estimate_dynamodb,
    estimate_ebs,
    estimate_s3,
)
from cloudcost.services.usage_tags import EstimationContext, UsageTagReader, sanitize_tags_for_logging
from cloudcost.services.validation import SUPPORTED_PROVIDER, validate_request


logger = logging.getLogger(__name__)


CARBON_METRIC = "carbon_footprint"
PULUMI_CREATED_TAG = "pulumi:created"

Estimator = Callable[[ResourceRequest, RegionalPriceIndex, EstimationContext], CostResult]

ESTIMATORS: Dict[ServiceFamily, Estimator] = {
    ServiceFamily.EC2: estimate_ec2,
    ServiceFamily.EBS: estimate_ebs,
    ServiceFamily.S3: estimate_s3,
    ServiceFamily.RDS: estimate_rds,
    ServiceFamily.EKS: estimate_eks,
    ServiceFamily.LAMBDA: estimate_lambda,
    ServiceFamily.ELB: estimate_elb,
    ServiceFamily.NATGW: estimate_natgw,
    ServiceFamily.DYNAMODB: estimate_dynamodb,
    ServiceFamily.CLOUDWATCH: estimate_cloudwatch,
    ServiceFamily.ELASTICACHE: estimate_elasticache,
}


# Pulumi attribute -> usage tag read by the estimators
ATTRIBUTE_TAG_ALIASES: Dict[str, str] = {
    "allocatedStorage": "storage_size",
    "storageType": "storage_type",
    "multiAz": "multi_az",
    "memorySize": "memory_size",
    "numCacheNodes": "num_nodes",
    "nodeType": "sku",
}


def new_trace_id() -> str:
    return str(uuid.uuid4())


def attribute_tags(attributes: Dict[str, Any]) -> Dict[str, str]:
    """Scalar resource attributes as string tags; lists and maps are dropped."""
    tags: Dict[str, str] = {}
    for key, value in attributes.items():
        if isinstance(value, bool):
            tags[key] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            tags[key] = str(value)
    for attribute, tag in ATTRIBUTE_TAG_ALIASES.items():
        if attribute in tags and tag not in tags:
            tags[tag] = tags[attribute]
    return tags


def _parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp ("2024-01-01T00:00:00Z"); None when invalid."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class CostEstimator:
    """Prices resources for the single region this process serves."""

    def __init__(
        self,
        price_index: RegionalPriceIndex = None,
        carbon_estimator: CarbonEstimator = None,
        enhanced_diagnostics: bool = None,
        max_batch_size: int = None,
        strict_validation: bool = None,
    ):
        """
        Initialize the estimator.

        Args:
            price_index: Price index (loads the configured region's index if None)
            carbon_estimator: Carbon estimator (embodied carbon follows config if None)
            enhanced_diagnostics: Attach calculation steps to results (config if None)
            max_batch_size: Most resources per recommendations call (config if None)
            strict_validation: Reject unsupported resources in a batch instead of skipping them
        """
        self.price_index = price_index or load_price_index()
        self.region = self.price_index.region
        self.carbon_estimator = carbon_estimator or CarbonEstimator(
            include_embodied=config.INCLUDE_EMBODIED_CARBON
        )
        self.enhanced_diagnostics = (
            config.ENHANCED_DIAGNOSTICS if enhanced_diagnostics is None else enhanced_diagnostics
        )
        self.hours_per_month = float(config.HOURS_PER_MONTH)
        self.max_batch_size = config.MAX_BATCH_SIZE if max_batch_size is None else max_batch_size
        self.strict_validation = config.STRICT_VALIDATION if strict_validation is None else strict_validation

    def plugin_info(self) -> Dict[str, Any]:
        """Name, version, region and providers of this plugin."""
        return {
            "name": config.PLUGIN_NAME,
            "version": config.PLUGIN_VERSION,
            "region": self.region,
            "location": get_aws_pricing_location(self.region),
            "providers": [SUPPORTED_PROVIDER],
            "currency": self.price_index.currency,
            "publication_date": self.price_index.publication_date,
        }

    def supports(self, provider: str, resource_type: str, region: str = "") -> SupportsResult:
        """
        Capability check.

        Args:
            provider: Cloud provider
            resource_type: Resource type in any accepted spelling
            region: Resource region (may be empty for global services)

        Returns:
            SupportsResult with a reason when unsupported
        """
        if (provider or "").strip().lower() != SUPPORTED_PROVIDER:
            return SupportsResult(
                supported=False,
                reason=f'Provider "{provider}" not supported (only "{SUPPORTED_PROVIDER}" is supported)',
            )

        try:
            family = normalize_resource_type(resource_type)
        except UnsupportedResourceTypeError as error:
            return SupportsResult(supported=False, reason=error.message)

        resource_region = (region or "").strip()
        if not resource_region and family in GLOBAL_FAMILIES:
            resource_region = self.region
        if resource_region != self.region:
            return SupportsResult(
                supported=False,
                reason=(
                    f"Region not supported by this binary (plugin region: {self.region}, "
                    f"resource region: {resource_region})"
                ),
            )

        metrics = [CARBON_METRIC] if family in CARBON_FAMILIES else []
        return SupportsResult(supported=True, supported_metrics=metrics)

    def _context(self, family: ServiceFamily, request: ResourceRequest, region: str, trace_id: str) -> EstimationContext:
        return EstimationContext(
            region=region,
            trace_id=trace_id,
            tags=UsageTagReader(request.tags, trace_id=trace_id, resource_type=family.value),
            hours_per_month=self.hours_per_month,
            currency=self.price_index.currency,
            enhanced_diagnostics=self.enhanced_diagnostics,
        )

    def get_projected_cost(
        self,
        request: ResourceRequest,
        utilization: Optional[float] = None,
        trace_id: Optional[str] = None,
    ) -> CostResult:
        """
        Projected monthly cost (and carbon) of one resource.

        Args:
            request: Resource to price
            utilization: Request-level default utilization for carbon (0..1)
            trace_id: Correlation id (generated when missing)

        Returns:
            CostResult; carbon is None when no carbon estimate applies

        Raises:
            EstimationValidationError: If the request is structurally invalid
        """
        trace_id = trace_id or new_trace_id()
        family, region = validate_request(request, self.region, trace_id)
        context = self._context(family, request, region, trace_id)

        if family in ZERO_COST_FAMILIES:
            result = estimate_zero_cost(request, self.price_index, context, family)
        else:
            result = ESTIMATORS[family](request, self.price_index, context)

        result.carbon = self.estimate_carbon(family, request, region, utilization)
        if self.enhanced_diagnostics:
            result.diagnostics = dict(result.diagnostics or {})
            result.diagnostics.update({
                "trace_id": trace_id,
                "service_family": family.value,
                "region": region,
                "pricing_source": "embedded",
            })

        logger.info(
            f"[trace_id={trace_id}] {family.value} {request.sku or '-'} in {region}: "
            f"${result.cost_per_month:.4f}/month"
            f"{'' if result.carbon is None else f', {result.carbon.grams:.2f} gCO2e'}"
        )
        if result.defaulted_fields:
            logger.debug(
                f"[trace_id={trace_id}] defaulted fields {sorted(result.defaulted_fields)} "
                f"tags={sanitize_tags_for_logging(request.tags)}"
            )
        return result

    def estimate_carbon(
        self,
        family: ServiceFamily,
        request: ResourceRequest,
        region: str,
        utilization: Optional[float] = None,
    ) -> Optional[CarbonResult]:
        """
        Carbon footprint of a resource, computed independently of its cost.

        Utilization resolves per-resource value, then the request-level value,
        then the default.

        Returns:
            CarbonResult, or None when the family has no carbon estimate or the
            instance type/region is unknown
        """
        if family not in CARBON_FAMILIES:
            return None

        # Tag problems were already reported by the cost estimator
        tags = UsageTagReader(request.tags, warn=False)
        resolved = resolve_utilization(utilization, request.utilization)
        hours = self.hours_per_month
        carbon = self.carbon_estimator

        if family == ServiceFamily.EC2:
            return carbon.estimate_instance(request.sku, region, resolved, hours)

        if family == ServiceFamily.EBS:
            volume_type = request.sku.strip().lower() or DEFAULT_EBS_VOLUME_TYPE
            size_gb = tags.get_int(("size", "volume_size"), DEFAULT_EBS_SIZE_GB, exclusive_minimum=True)
            return carbon.estimate_storage("ebs", volume_type, size_gb, region, hours)

        if family == ServiceFamily.S3:
            storage_class = request.sku.strip().upper() or DEFAULT_S3_STORAGE_CLASS
            size_gb = tags.get_float("size", DEFAULT_S3_SIZE_GB, exclusive_minimum=True)
            return carbon.estimate_storage("s3", storage_class, size_gb, region, hours)

        if family == ServiceFamily.RDS:
            storage_type, storage_gb = rds_storage(tags)
            return carbon.estimate_rds(
                request.sku, region, tags.get_bool("multi_az"), storage_type, storage_gb, resolved, hours
            )

        if family == ServiceFamily.LAMBDA:
            memory_mb, requests, duration_ms, architecture = lambda_usage(request, tags)
            return carbon.estimate_lambda(memory_mb, duration_ms, requests, architecture, region)

        if family == ServiceFamily.EKS:
            return carbon.estimate_eks()

        if family == ServiceFamily.DYNAMODB:
            return carbon.estimate_dynamodb(tags.get_float("storage_gb", 0.0), region, hours)

        if family == ServiceFamily.ELASTICACHE:
            return carbon.estimate_elasticache(request.sku, region, elasticache_nodes(tags), resolved, hours)

        return None

    def _resolve_window(
        self,
        request: ResourceRequest,
        start: Optional[datetime],
        end: Optional[datetime],
        trace_id: str,
    ) -> Tuple[datetime, datetime, str]:
        """Start/end of the runtime window; a missing start falls back to the pulumi:created tag."""
        source = "explicit"
        if start is None:
            created = _parse_timestamp(request.tags.get(PULUMI_CREATED_TAG, "") or "")
            if created is None:
                raise EstimationValidationError(
                    f"start time is required (or a valid '{PULUMI_CREATED_TAG}' tag)",
                    details={"trace_id": trace_id},
                )
            start = created
            source = "mixed" if end is not None else PULUMI_CREATED_TAG

        end = _as_utc(end) if end is not None else datetime.now(timezone.utc)
        start = _as_utc(start)
        if end < start:
            raise EstimationValidationError(
                f"invalid time range: start ({start.isoformat()}) is after end ({end.isoformat()})",
                details={"trace_id": trace_id},
            )
        return start, end, source

    def get_actual_cost(
        self,
        request: ResourceRequest,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        trace_id: Optional[str] = None,
    ) -> ActualCostResult:
        """
        Cost for a runtime window, pro-rated from the projected monthly cost.

        Args:
            request: Resource to price
            start: Window start (defaults to the pulumi:created tag)
            end: Window end (defaults to now)
            trace_id: Correlation id (generated when missing)

        Returns:
            ActualCostResult

        Raises:
            EstimationValidationError: Invalid request or time range
        """
        trace_id = trace_id or new_trace_id()
        start, end, source = self._resolve_window(request, start, end, trace_id)
        runtime_hours = (end - start).total_seconds() / 3600.0

        projected = self.get_projected_cost(request, trace_id=trace_id)
        cost = projected.cost_per_month * runtime_hours / self.hours_per_month
        detail = (
            f"Fallback estimate: {projected.billing_detail} × {runtime_hours:.2f} hours / "
            f"{self.hours_per_month:g} = ${cost:.4f}"
        )
        return ActualCostResult(
            cost=cost,
            runtime_hours=runtime_hours,
            projected_monthly_cost=projected.cost_per_month,
            billing_detail=detail,
            currency=projected.currency,
            source=source,
        )

    def get_pricing_spec(self, request: ResourceRequest, trace_id: Optional[str] = None) -> PricingSpec:
        """
        Billing mode, primary rate and assumptions for one resource.

        Args:
            request: Resource to describe (validated like a projected-cost request)
            trace_id: Correlation id (generated when missing)

        Returns:
            PricingSpec; rate is 0 when the price is not in the dataset

        Raises:
            EstimationValidationError: If the request is structurally invalid
        """
        trace_id = trace_id or new_trace_id()
        family, region = validate_request(request, self.region, trace_id)

        if family in ZERO_COST_FAMILIES:
            spec = zero_cost_spec(request, family, region)
        else:
            tags = UsageTagReader(request.tags, trace_id=trace_id, resource_type=family.value, warn=False)
            spec = SPEC_BUILDERS[family](request, self.price_index, tags)
        spec.currency = self.price_index.currency
        spec.source = config.PLUGIN_NAME

        logger.info(
            f"[trace_id={trace_id}] pricing spec {family.value} {request.sku or '-'} in {region}: "
            f"{spec.billing_mode} ${spec.rate_per_unit}/{spec.unit or '-'}"
        )
        return spec

    def _skip_or_raise(self, message: str, trace_id: str, **details: Any) -> None:
        """Skip a resource in a recommendations batch; strict mode turns the skip into an error."""
        if self.strict_validation:
            raise EstimationValidationError(message, details={"trace_id": trace_id, **details})
        logger.debug(f"[trace_id={trace_id}] skipping resource: {message}")

    def get_recommendations(
        self,
        resources: Optional[List[ResourceRequest]] = None,
        resource_filter: Optional[RecommendationFilter] = None,
        trace_id: Optional[str] = None,
    ) -> RecommendationsResult:
        """
        Cost optimization recommendations for a batch of resources.

        Resources that are not AWS, not in this region, of a family without
        recommendations, or that do not match the filter are skipped. With
        no resources, a single resource is built from the filter (its sku is
        required then).

        Args:
            resources: Resources to analyze (at most max_batch_size)
            resource_filter: Region/resource type/sku/tags every resource must match
            trace_id: Correlation id (generated when missing)

        Returns:
            RecommendationsResult with a savings summary

        Raises:
            EstimationValidationError: Batch too large, or a skipped resource in strict mode
        """
        trace_id = trace_id or new_trace_id()
        resources = list(resources or [])
        resource_filter = resource_filter or RecommendationFilter()

        if len(resources) > self.max_batch_size:
            raise EstimationValidationError(
                f"batch size {len(resources)} exceeds maximum of {self.max_batch_size}",
                details={"trace_id": trace_id, "batch_size": len(resources)},
            )
        if not resources and resource_filter.sku:
            resources = [ResourceRequest(
                provider=SUPPORTED_PROVIDER,
                resource_type=resource_filter.resource_type,
                sku=resource_filter.sku,
                region=resource_filter.region,
                tags=dict(resource_filter.tags),
            )]

        result = RecommendationsResult(total_resources=len(resources), currency=self.price_index.currency)
        for request in resources:
            provider = (request.provider or "").strip().lower()
            if provider and provider != SUPPORTED_PROVIDER:
                self._skip_or_raise(f'Provider "{request.provider}" not supported', trace_id, provider=request.provider)
                result.skipped_resources += 1
                continue

            region = (request.region or "").strip() or self.region
            if region != self.region:
                self._skip_or_raise(
                    f"resource region {region} is not served by this plugin ({self.region})",
                    trace_id, resource_region=region,
                )
                result.skipped_resources += 1
                continue

            if not resource_filter.matches(ResourceRequest(
                provider=request.provider, resource_type=request.resource_type, sku=request.sku,
                region=region, tags=request.tags,
            )):
                continue

            try:
                family = normalize_resource_type(request.resource_type, trace_id)
            except UnsupportedResourceTypeError as error:
                self._skip_or_raise(error.message, trace_id, resource_type=request.resource_type)
                result.skipped_resources += 1
                continue
            if family not in RECOMMENDATION_FAMILIES:
                self._skip_or_raise(
                    f"no recommendations for {family.value} resources", trace_id, resource_type=request.resource_type
                )
                result.skipped_resources += 1
                continue

            result.matched_resources += 1
            result.recommendations.extend(
                recommend(request, family, region, self.price_index, self.hours_per_month, config.PLUGIN_NAME)
            )

        logger.info(
            f"[trace_id={trace_id}] {len(result.recommendations)} recommendations for "
            f"{result.matched_resources}/{result.total_resources} resources "
            f"({result.skipped_resources} skipped), ${result.total_savings:.2f}/month potential savings"
        )
        return result

    def estimate_from_attributes(
        self,
        resource_type: str,
        attributes: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
    ) -> CostResult:
        """
        Monthly cost of a resource described by a Pulumi type token and its attributes.

        Scalar attributes become usage tags; "region" (or the zone in
        "availabilityZone") selects the region. Resources of another provider,
        region or an unsupported type come back as $0 with a detail saying why.

        Args:
            resource_type: Pulumi type token, e.g. "aws:ec2/instance:Instance"
            attributes: Resource inputs as sent by Pulumi
            trace_id: Correlation id (generated when missing)

        Returns:
            CostResult

        Raises:
            EstimationValidationError: If the type token is missing or malformed
        """
        trace_id = trace_id or new_trace_id()
        parsed = split_pulumi_type(resource_type)
        if parsed is None:
            raise EstimationValidationError(
                f'invalid resource_type "{resource_type}": expected "provider:module/resource:Type"',
                details={"trace_id": trace_id, "resource_type": resource_type},
            )
        provider = parsed[0]

        tags = attribute_tags(attributes or {})
        currency = self.price_index.currency
        if provider != SUPPORTED_PROVIDER:
            return CostResult(0.0, currency, 0.0, f'Provider "{provider}" not supported by this plugin')

        region = tags.get("region") or region_from_availability_zone(tags.get("availabilityZone", "")) or self.region
        if region != self.region:
            logger.info(f"[trace_id={trace_id}] {resource_type} in {region} is priced by another plugin instance")
            return CostResult(
                0.0, currency, 0.0,
                f"Region {region} not supported by this binary (plugin region: {self.region})",
            )

        if not is_supported_resource_type(resource_type):
            return CostResult(0.0, currency, 0.0, f'Resource type "{resource_type}" not supported')

        request = ResourceRequest.from_tags({
            **tags,
            "provider": SUPPORTED_PROVIDER,
            "resource_type": resource_type,
            "region": region,
        })
        return self.get_projected_cost(request, trace_id=trace_id)


_default_estimator: Optional[CostEstimator] = None
_default_estimator_lock = threading.Lock()


def get_cost_estimator() -> CostEstimator:
    """Process-wide estimator for the configured region (FastAPI dependency)."""
    global _default_estimator
    with _default_estimator_lock:
        if _default_estimator is None:
            _default_estimator = CostEstimator()
    return _default_estimator
