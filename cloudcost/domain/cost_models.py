"""
Domain models for cost and carbon estimation.
Defines resource requests, price entries, tier rates, estimation results,
recommendations and pricing specifications.
"""
import math
from typing import List, Dict, Any, Optional, Set, Tuple
from dataclasses import dataclass, field

from cloudcost.pricing.aws_region_map import region_from_availability_zone


# Tag keys that may carry the SKU when a request is built from a flat tag map.
# Order is significant: the first non-empty key wins.
SKU_TAG_KEYS: Tuple[str, ...] = (
    "instanceType",
    "instance_class",
    "instanceClass",
    "type",
    "volumeType",
    "volume_type",
)

# Tag keys that describe the resource itself rather than its usage
DESCRIPTOR_TAG_KEYS: Tuple[str, ...] = ("provider", "resource_type", "sku", "region")


@dataclass(frozen=True)
class PriceEntry:
    """A single unit rate from the embedded price dataset."""
    category: str
    key: Tuple[str, ...]
    rate: float
    unit: str  # e.g., "Hrs", "GB-Mo", "Requests", "GB-Second"
    currency: str = "USD"
    sku: str = ""
    description: str = ""


@dataclass(frozen=True)
class TierRate:
    """One slice of a volume-priced schedule. up_to is math.inf for the last tier."""
    from_quantity: float
    up_to: float
    rate: float

    @property
    def capacity(self) -> float:
        return self.up_to - self.from_quantity

    @property
    def unbounded(self) -> bool:
        return math.isinf(self.up_to)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "from": self.from_quantity,
            "up_to": None if self.unbounded else self.up_to,
            "rate": self.rate,
        }


@dataclass
class ResourceRequest:
    """Describes one resource to price: service family, SKU, region and usage tags."""
    provider: str
    resource_type: str
    sku: str = ""
    region: str = ""
    tags: Dict[str, str] = field(default_factory=dict)
    utilization: Optional[float] = None  # per-resource utilization override (0..1)
    resource_id: str = ""  # caller's id, echoed on recommendations

    @classmethod
    def from_tags(cls, tags: Dict[str, str]) -> "ResourceRequest":
        """
        Build a request from a flat tag map.

        Args:
            tags: Map containing provider/resource_type/region plus usage tags

        Returns:
            ResourceRequest with descriptor keys removed from its usage tags
        """
        sku = tags.get("sku", "")
        if not sku:
            for key in SKU_TAG_KEYS:
                if tags.get(key):
                    sku = tags[key]
                    break

        region = tags.get("region", "")
        if not region:
            region = region_from_availability_zone(tags.get("availabilityZone", "")) or ""

        usage = {k: v for k, v in tags.items() if k not in DESCRIPTOR_TAG_KEYS}
        return cls(
            provider=tags.get("provider", ""),
            resource_type=tags.get("resource_type", ""),
            sku=sku,
            region=region,
            tags=usage,
        )


@dataclass
class CarbonResult:
    """Operational (and optionally embodied) carbon for one resource."""
    grams: float
    unit: str = "gCO2e"
    detail: str = ""
    note: str = ""
    breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "grams": round(self.grams, 4),
            "unit": self.unit,
            "detail": self.detail,
        }
        if self.note:
            result["note"] = self.note
        if self.breakdown:
            result["breakdown"] = {k: round(v, 4) for k, v in self.breakdown.items()}
        return result


@dataclass
class CostResult:
    """Projected monthly cost for one resource."""
    unit_price: float
    currency: str
    cost_per_month: float
    billing_detail: str
    defaulted_fields: Set[str] = field(default_factory=set)
    carbon: Optional[CarbonResult] = None
    diagnostics: Optional[Dict[str, Any]] = None

    @property
    def priced(self) -> bool:
        return self.cost_per_month > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "unit_price": self.unit_price,
            "currency": self.currency,
            "cost_per_month": round(self.cost_per_month, 6),
            "billing_detail": self.billing_detail,
            "defaulted_fields": sorted(self.defaulted_fields),
            "carbon": self.carbon.to_dict() if self.carbon else None,
        }
        if self.diagnostics is not None:
            result["diagnostics"] = self.diagnostics
        return result


@dataclass
class ActualCostResult:
    """Cost for a concrete runtime window, pro-rated from the monthly projection."""
    cost: float
    runtime_hours: float
    projected_monthly_cost: float
    billing_detail: str
    currency: str = "USD"
    source: str = "explicit"  # "explicit", "pulumi:created" or "mixed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "cost": round(self.cost, 6),
            "runtime_hours": round(self.runtime_hours, 4),
            "projected_monthly_cost": round(self.projected_monthly_cost, 6),
            "billing_detail": self.billing_detail,
            "currency": self.currency,
            "source": self.source,
        }


@dataclass
class SupportsResult:
    """Answer to a capability check."""
    supported: bool
    reason: str = ""
    supported_metrics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "supported": self.supported,
            "reason": self.reason,
            "supported_metrics": self.supported_metrics,
        }


@dataclass
class Recommendation:
    """A cheaper configuration for a priced resource."""
    id: str
    resource_type: str
    region: str
    sku: str
    modification_type: str  # "generation_upgrade", "graviton_migration" or "volume_type_upgrade"
    current_config: Dict[str, str]
    recommended_config: Dict[str, str]
    current_cost: float
    projected_cost: float
    priority: str
    confidence: float
    description: str
    reasoning: List[str] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)
    resource_id: str = ""
    resource_name: str = ""
    currency: str = "USD"
    source: str = ""

    @property
    def estimated_savings(self) -> float:
        return self.current_cost - self.projected_cost

    @property
    def savings_percentage(self) -> float:
        if self.current_cost <= 0:
            return 0.0
        return self.estimated_savings / self.current_cost * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "category": "cost",
            "action_type": "modify",
            "resource": {
                "provider": "aws",
                "resource_type": self.resource_type,
                "region": self.region,
                "sku": self.sku,
                "id": self.resource_id,
                "name": self.resource_name,
            },
            "modification_type": self.modification_type,
            "current_config": self.current_config,
            "recommended_config": self.recommended_config,
            "impact": {
                "current_cost": round(self.current_cost, 6),
                "projected_cost": round(self.projected_cost, 6),
                "estimated_savings": round(self.estimated_savings, 6),
                "savings_percentage": round(self.savings_percentage, 2),
                "currency": self.currency,
                "projection_period": "monthly",
            },
            "priority": self.priority,
            "confidence": self.confidence,
            "description": self.description,
            "reasoning": self.reasoning,
            "metadata": self.metadata,
            "source": self.source,
        }


@dataclass
class RecommendationsResult:
    """Recommendations for a batch of resources, with a savings summary."""
    recommendations: List[Recommendation] = field(default_factory=list)
    total_resources: int = 0
    matched_resources: int = 0
    skipped_resources: int = 0
    currency: str = "USD"

    @property
    def total_savings(self) -> float:
        return sum(rec.estimated_savings for rec in self.recommendations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        by_type: Dict[str, int] = {}
        for rec in self.recommendations:
            by_type[rec.modification_type] = by_type.get(rec.modification_type, 0) + 1
        return {
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "summary": {
                "total_recommendations": len(self.recommendations),
                "total_estimated_savings": round(self.total_savings, 6),
                "currency": self.currency,
                "projection_period": "monthly",
                "count_by_modification_type": by_type,
                "total_resources": self.total_resources,
                "matched_resources": self.matched_resources,
                "skipped_resources": self.skipped_resources,
            },
        }


@dataclass
class PricingSpec:
    """How a resource is billed: mode, primary rate and the assumptions behind it."""
    resource_type: str
    sku: str
    region: str
    billing_mode: str
    rate_per_unit: float
    unit: str
    description: str
    assumptions: List[str] = field(default_factory=list)
    provider: str = "aws"
    currency: str = "USD"
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider": self.provider,
            "resource_type": self.resource_type,
            "sku": self.sku,
            "region": self.region,
            "billing_mode": self.billing_mode,
            "rate_per_unit": self.rate_per_unit,
            "currency": self.currency,
            "unit": self.unit,
            "description": self.description,
            "assumptions": self.assumptions,
            "source": self.source,
        }
