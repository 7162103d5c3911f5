"""
Cost optimization recommendations.

Suggests a newer instance generation, a Graviton (arm64) equivalent or a
gp2 -> gp3 volume change, and only when the embedded prices show the new
configuration costs the same or less than the current one.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from cloudcost.domain.cost_models import Recommendation, ResourceRequest
from cloudcost.pricing.price_index import PriceCategory, RegionalPriceIndex
from cloudcost.services.compute_estimators import rds_engine
from cloudcost.services.errors import UnsupportedResourceTypeError
from cloudcost.services.resource_types import ServiceFamily, normalize_resource_type
from cloudcost.services.usage_tags import UsageTagReader

logger = logging.getLogger(__name__)


CONFIDENCE_HIGH = 0.9  # generation upgrades and volume changes
CONFIDENCE_MEDIUM = 0.7  # Graviton needs an arm64 build of the workload

GENERATION_UPGRADE = "generation_upgrade"
GRAVITON_MIGRATION = "graviton_migration"
VOLUME_TYPE_UPGRADE = "volume_type_upgrade"

# Volume size assumed for a gp2 -> gp3 recommendation without a size tag
DEFAULT_RECOMMENDATION_EBS_GB = 100

# Older EC2 family -> newer family at the same or lower price
GENERATION_UPGRADES: Dict[str, str] = {
    "t2": "t3",
    "t3": "t3a",
    "m4": "m5",
    "m5": "m6i",
    "m5a": "m6a",
    "m6i": "m7i",
    "m6a": "m7a",
    "c4": "c5",
    "c5": "c6i",
    "c5a": "c6a",
    "c6i": "c7i",
    "c6a": "c7a",
    "r4": "r5",
    "r5": "r6i",
    "r5a": "r6a",
    "r6i": "r7i",
    "r6a": "r7a",
    "i3": "i3en",
    "d2": "d3",
}

# x86 EC2 family -> Graviton family
GRAVITON_FAMILIES: Dict[str, str] = {
    "m5": "m6g",
    "m5a": "m6g",
    "m5n": "m6g",
    "m6i": "m6g",
    "m6a": "m6g",
    "m7i": "m7g",
    "m7a": "m7g",
    "c5": "c6g",
    "c5a": "c6g",
    "c5n": "c6gn",
    "c6i": "c6g",
    "c6a": "c6g",
    "c7i": "c7g",
    "c7a": "c7g",
    "r5": "r6g",
    "r5a": "r6g",
    "r5n": "r6g",
    "r6i": "r6g",
    "r6a": "r6g",
    "r7i": "r7g",
    "r7a": "r7g",
    "t3": "t4g",
    "t3a": "t4g",
}

RDS_GENERATION_UPGRADES: Dict[str, str] = {
    "db.t2": "db.t3",
    "db.t3": "db.t4g",
    "db.m4": "db.m5",
    "db.m5": "db.m6i",
    "db.m6i": "db.m7i",
    "db.r4": "db.r5",
    "db.r5": "db.r6i",
    "db.r6i": "db.r7i",
}

RDS_GRAVITON_FAMILIES: Dict[str, str] = {
    "db.m5": "db.m6g",
    "db.m6i": "db.m7g",
    "db.r5": "db.r6g",
    "db.r6i": "db.r7g",
    "db.t3": "db.t4g",
}

# Price-list engine names that run on Graviton (Oracle and SQL Server do not)
RDS_GRAVITON_ENGINES = frozenset({"MySQL", "PostgreSQL", "MariaDB"})


@dataclass
class RecommendationFilter:
    """Criteria a resource must match (all given fields, AND-ed)."""
    region: str = ""
    resource_type: str = ""
    sku: str = ""
    tags: Dict[str, str] = field(default_factory=dict)

    def matches(self, request: ResourceRequest) -> bool:
        if self.region and self.region != request.region:
            return False
        if self.resource_type and not _same_resource_type(self.resource_type, request.resource_type):
            return False
        if self.sku and self.sku != request.sku:
            return False
        return all(request.tags.get(key) == value for key, value in self.tags.items())


def _same_resource_type(left: str, right: str) -> bool:
    """Compare resource types by service family, falling back to the raw text."""
    try:
        return normalize_resource_type(left) == normalize_resource_type(right)
    except UnsupportedResourceTypeError:
        return left.strip().lower() == right.strip().lower()


def split_instance_type(instance_type: str) -> Optional[Tuple[str, str]]:
    """
    Split an instance type into (family, size).

    "m5.large" -> ("m5", "large"); "db.t3.micro" -> ("db.t3", "micro").
    Returns None when either part is missing.
    """
    text = (instance_type or "").strip()
    prefix = ""
    if text.startswith("db."):
        prefix, text = "db.", text[3:]
    family, _, size = text.partition(".")
    if not family or not size:
        return None
    return prefix + family, size


def _rate(price_index: RegionalPriceIndex, category: PriceCategory, key: Tuple[str, ...]) -> Optional[float]:
    entry, found = price_index.lookup(category, key)
    return entry.rate if found else None


def _recommendation(
    request: ResourceRequest,
    family: ServiceFamily,
    region: str,
    modification_type: str,
    current_config: Dict[str, str],
    recommended_config: Dict[str, str],
    current_cost: float,
    projected_cost: float,
    priority: str,
    confidence: float,
    description: str,
    reasoning: List[str],
    metadata: Optional[Dict[str, str]] = None,
    source: str = "",
) -> Recommendation:
    return Recommendation(
        id=str(uuid.uuid4()),
        resource_type=family.value,
        region=region,
        sku=request.sku,
        modification_type=modification_type,
        current_config=current_config,
        recommended_config=recommended_config,
        current_cost=current_cost,
        projected_cost=projected_cost,
        priority=priority,
        confidence=confidence,
        description=description,
        reasoning=reasoning,
        metadata=metadata or {},
        resource_id=request.resource_id.strip() or request.tags.get("resource_id", ""),
        resource_name=request.tags.get("name", ""),
        source=source,
    )


def _savings_percent(current: float, projected: float) -> float:
    return (current - projected) / current * 100 if current > 0 else 0.0


def ec2_recommendations(
    request: ResourceRequest,
    region: str,
    price_index: RegionalPriceIndex,
    hours: float,
    source: str = "",
) -> List[Recommendation]:
    """Generation upgrade and Graviton migration for a Linux, shared-tenancy instance."""
    parts = split_instance_type(request.sku)
    if parts is None:
        return []
    family, size = parts
    current_rate = _rate(price_index, PriceCategory.EC2_INSTANCE, (request.sku, "Linux", "Shared"))
    if current_rate is None:
        return []
    current_cost = current_rate * hours
    recommendations = []

    newer_family = GENERATION_UPGRADES.get(family)
    if newer_family:
        newer_type = f"{newer_family}.{size}"
        newer_rate = _rate(price_index, PriceCategory.EC2_INSTANCE, (newer_type, "Linux", "Shared"))
        if newer_rate is not None and newer_rate <= current_rate:
            reasoning = [
                f"Newer {newer_family} instances offer better performance",
                "Drop-in replacement with no architecture changes required",
            ]
            if newer_family in GRAVITON_FAMILIES:
                reasoning.append(
                    f"Alternative: consider {GRAVITON_FAMILIES[newer_family]}.{size} for ARM compatibility "
                    f"(~20% additional savings)"
                )
            recommendations.append(_recommendation(
                request, ServiceFamily.EC2, region, GENERATION_UPGRADE,
                {"instance_type": request.sku},
                {"instance_type": newer_type},
                current_cost, newer_rate * hours, "medium", CONFIDENCE_HIGH,
                f"Upgrade from {request.sku} to {newer_type} for better performance at same or lower cost",
                reasoning,
                source=source,
            ))

    graviton_family = GRAVITON_FAMILIES.get(family)
    if graviton_family:
        graviton_type = f"{graviton_family}.{size}"
        graviton_rate = _rate(price_index, PriceCategory.EC2_INSTANCE, (graviton_type, "Linux", "Shared"))
        if graviton_rate is not None and graviton_rate <= current_rate:
            projected = graviton_rate * hours
            recommendations.append(_recommendation(
                request, ServiceFamily.EC2, region, GRAVITON_MIGRATION,
                {"instance_type": request.sku, "architecture": "x86_64"},
                {"instance_type": graviton_type, "architecture": "arm64"},
                current_cost, projected, "low", CONFIDENCE_MEDIUM,
                f"Migrate from {request.sku} to {graviton_type} (Graviton) for "
                f"~{_savings_percent(current_cost, projected):.0f}% cost savings",
                [
                    "Graviton instances are typically ~20% cheaper with comparable performance",
                    "Requires validation that application supports ARM architecture",
                ],
                metadata={
                    "architecture_change": "x86_64 -> arm64",
                    "requires_validation": "Application must support ARM architecture",
                },
                source=source,
            ))

    return recommendations


def rds_recommendations(
    request: ResourceRequest,
    region: str,
    price_index: RegionalPriceIndex,
    hours: float,
    source: str = "",
) -> List[Recommendation]:
    """Generation upgrade, and Graviton migration for engines that support it (Single-AZ prices)."""
    parts = split_instance_type(request.sku)
    if parts is None or not parts[0].startswith("db."):
        return []
    family, size = parts
    engine = rds_engine(UsageTagReader(request.tags, warn=False))
    current_rate = _rate(price_index, PriceCategory.RDS_INSTANCE, (request.sku, engine, "Single-AZ"))
    if current_rate is None:
        return []
    current_cost = current_rate * hours
    graviton_engine = engine in RDS_GRAVITON_ENGINES
    recommendations = []

    newer_family = RDS_GENERATION_UPGRADES.get(family)
    if newer_family:
        newer_type = f"{newer_family}.{size}"
        newer_rate = _rate(price_index, PriceCategory.RDS_INSTANCE, (newer_type, engine, "Single-AZ"))
        if newer_rate is not None and newer_rate <= current_rate:
            reasoning = [
                f"Newer {newer_family} instances offer better performance for {engine}",
                "Drop-in replacement with no architecture changes required",
            ]
            if graviton_engine and newer_family in RDS_GRAVITON_FAMILIES:
                reasoning.append(
                    f"Alternative: consider {RDS_GRAVITON_FAMILIES[newer_family]}.{size} for ARM compatibility "
                    f"(~20% additional savings)"
                )
            recommendations.append(_recommendation(
                request, ServiceFamily.RDS, region, GENERATION_UPGRADE,
                {"instance_type": request.sku, "engine": engine},
                {"instance_type": newer_type, "engine": engine},
                current_cost, newer_rate * hours, "medium", CONFIDENCE_HIGH,
                f"Upgrade RDS {engine} from {request.sku} to {newer_type} for better performance "
                f"at same or lower cost",
                reasoning,
                source=source,
            ))

    graviton_family = RDS_GRAVITON_FAMILIES.get(family) if graviton_engine else None
    if graviton_family:
        graviton_type = f"{graviton_family}.{size}"
        graviton_rate = _rate(price_index, PriceCategory.RDS_INSTANCE, (graviton_type, engine, "Single-AZ"))
        if graviton_rate is not None and graviton_rate <= current_rate:
            projected = graviton_rate * hours
            recommendations.append(_recommendation(
                request, ServiceFamily.RDS, region, GRAVITON_MIGRATION,
                {"instance_type": request.sku, "engine": engine, "architecture": "x86_64"},
                {"instance_type": graviton_type, "engine": engine, "architecture": "arm64"},
                current_cost, projected, "low", CONFIDENCE_MEDIUM,
                f"Migrate RDS {engine} from {request.sku} to {graviton_type} (Graviton) for "
                f"~{_savings_percent(current_cost, projected):.0f}% cost savings",
                [
                    "Graviton RDS instances are typically ~20% cheaper with comparable performance",
                    f"Validated: {engine} engine supports Graviton architecture",
                ],
                metadata={"architecture_change": "x86_64 -> arm64", "engine": engine},
                source=source,
            ))

    return recommendations


def ebs_recommendations(
    request: ResourceRequest,
    region: str,
    price_index: RegionalPriceIndex,
    source: str = "",
) -> List[Recommendation]:
    """gp2 -> gp3 for the tagged size (100 GB when untagged)."""
    if request.sku.strip().lower() != "gp2":
        return []
    tags = UsageTagReader(request.tags, warn=False)
    size_gb = tags.get_int(("size", "volume_size"), DEFAULT_RECOMMENDATION_EBS_GB, exclusive_minimum=True)

    gp2_rate = _rate(price_index, PriceCategory.EBS_VOLUME, ("gp2",))
    gp3_rate = _rate(price_index, PriceCategory.EBS_VOLUME, ("gp3",))
    if gp2_rate is None or gp3_rate is None or gp3_rate > gp2_rate:
        return []

    current_cost = gp2_rate * size_gb
    projected = gp3_rate * size_gb
    return [_recommendation(
        request, ServiceFamily.EBS, region, VOLUME_TYPE_UPGRADE,
        {"volume_type": "gp2", "size_gb": str(size_gb)},
        {"volume_type": "gp3", "size_gb": str(size_gb)},
        current_cost, projected, "medium", CONFIDENCE_HIGH,
        f"Upgrade {size_gb}GB gp2 volume to gp3 for ~{_savings_percent(current_cost, projected):.0f}% cost savings",
        [
            "gp3 volumes are ~20% cheaper than gp2",
            "gp3 provides better baseline performance (3000 IOPS, 125 MB/s)",
            "API-compatible change with no data migration required",
        ],
        metadata={
            "baseline_iops": "gp2: 100 IOPS/GB, gp3: 3000 IOPS (included)",
            "baseline_throughput": "gp2: 128-250 MB/s, gp3: 125 MB/s (included)",
        },
        source=source,
    )]


# Families that can receive recommendations
RECOMMENDATION_FAMILIES = frozenset({ServiceFamily.EC2, ServiceFamily.EBS, ServiceFamily.RDS})


def recommend(
    request: ResourceRequest,
    family: ServiceFamily,
    region: str,
    price_index: RegionalPriceIndex,
    hours: float,
    source: str = "",
) -> List[Recommendation]:
    """Recommendations for one resource of a supported family (empty list otherwise)."""
    if family == ServiceFamily.EC2:
        return ec2_recommendations(request, region, price_index, hours, source)
    if family == ServiceFamily.RDS:
        return rds_recommendations(request, region, price_index, hours, source)
    if family == ServiceFamily.EBS:
        return ebs_recommendations(request, region, price_index, source)
    return []
