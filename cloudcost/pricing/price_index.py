"""
Regional Price Index.
Indexes the embedded AWS Price List offer data for exactly one region.

The dataset is a per-region JSON file in the shape of the AWS Price List
Bulk API offer files:

    {
        "region": "us-east-1",
        "publicationDate": "...",
        "offers": {
            "AmazonEC2": {"products": {...}, "terms": {"OnDemand": {...}}},
            "AmazonS3": {...},
            ...
        }
    }

Indexing happens once per process (first access wins, concurrent callers
wait for it) and produces read-only maps:
- O(1) lookups keyed by normalized attribute tuples
- No locking on reads after initialization
- A malformed offer only empties its own categories

Usage:
    index = load_price_index("us-east-1")
    entry, found = index.lookup(PriceCategory.EC2_INSTANCE, ("t3.micro", "Linux", "Shared"))
"""
import json
import logging
import threading
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from cloudcost.core.config import config
from cloudcost.domain.cost_models import PriceEntry
from cloudcost.pricing.tiered_rates import TierSchedule, TierScheduleError, build_tier_schedule

logger = logging.getLogger(__name__)


class PriceIndexError(Exception):
    """Raised when a price dataset cannot be located or indexed."""
    pass


class PriceCategory(str, Enum):
    """Lookup categories exposed by the index."""
    EC2_INSTANCE = "ec2_instance"
    EBS_VOLUME = "ebs_volume"
    S3_STORAGE = "s3_storage"
    RDS_INSTANCE = "rds_instance"
    RDS_STORAGE = "rds_storage"
    EKS_CLUSTER = "eks_cluster"
    LAMBDA_REQUEST = "lambda_request"
    LAMBDA_DURATION = "lambda_duration"
    ELB_HOUR = "elb_hour"
    ELB_CAPACITY_UNIT = "elb_capacity_unit"
    NAT_GATEWAY = "nat_gateway"
    DYNAMODB = "dynamodb"
    CLOUDWATCH = "cloudwatch"
    ELASTICACHE_NODE = "elasticache_node"


# Offer file volumeType -> S3 storage class API name
S3_VOLUME_TYPE_TO_CLASS: Dict[str, str] = {
    "Standard": "STANDARD",
    "Intelligent-Tiering Frequent Access": "INTELLIGENT_TIERING",
    "Standard - Infrequent Access": "STANDARD_IA",
    "One Zone - Infrequent Access": "ONEZONE_IA",
    "Glacier Instant Retrieval": "GLACIER_IR",
    "Amazon Glacier": "GLACIER",
    "Glacier Deep Archive": "DEEP_ARCHIVE",
}

# Which offer families feed which categories (used to report unavailable services)
OFFER_CATEGORIES: Dict[str, Tuple[PriceCategory, ...]] = {
    "AmazonEC2": (PriceCategory.EC2_INSTANCE, PriceCategory.EBS_VOLUME, PriceCategory.NAT_GATEWAY),
    "AmazonS3": (PriceCategory.S3_STORAGE,),
    "AmazonRDS": (PriceCategory.RDS_INSTANCE, PriceCategory.RDS_STORAGE),
    "AmazonEKS": (PriceCategory.EKS_CLUSTER,),
    "AWSLambda": (PriceCategory.LAMBDA_REQUEST, PriceCategory.LAMBDA_DURATION),
    "AWSELB": (PriceCategory.ELB_HOUR, PriceCategory.ELB_CAPACITY_UNIT),
    "AmazonDynamoDB": (PriceCategory.DYNAMODB,),
    "AmazonCloudWatch": (PriceCategory.CLOUDWATCH,),
    "AmazonElastiCache": (PriceCategory.ELASTICACHE_NODE,),
}

IndexKey = Tuple[str, Tuple[str, ...]]
Classification = Optional[Tuple[PriceCategory, Tuple[str, ...]]]


def normalize_key(key: Union[str, Tuple[str, ...], List[str]]) -> Tuple[str, ...]:
    """Normalize a lookup key: tuple of stripped, lower-cased strings."""
    if isinstance(key, str):
        key = (key,)
    return tuple(str(part).strip().lower() for part in key)


def _classify_ec2(family: str, attributes: Dict[str, str]) -> Classification:
    """Classify an AmazonEC2 product (instances, EBS volumes, NAT gateways)."""
    if family == "Compute Instance":
        instance_type = attributes.get("instanceType", "")
        os_name = attributes.get("operatingSystem", "")
        tenancy = attributes.get("tenancy", "")
        if not (instance_type and os_name and tenancy):
            return None
        # Only plain images with standard "Used" capacity; skip reservations
        # and pre-installed software (e.g. "Linux with SQL Web")
        if attributes.get("capacitystatus", "Used").lower() != "used":
            return None
        if attributes.get("preInstalledSw", "NA") not in ("NA", ""):
            return None
        return PriceCategory.EC2_INSTANCE, (instance_type, os_name, tenancy)

    if family == "Storage":
        volume = attributes.get("volumeApiName", "")
        return (PriceCategory.EBS_VOLUME, (volume,)) if volume else None

    if family == "NAT Gateway":
        usage_type = attributes.get("usagetype", "")
        if "NatGateway-Hours" in usage_type:
            return PriceCategory.NAT_GATEWAY, ("hour",)
        if "NatGateway-Bytes" in usage_type:
            return PriceCategory.NAT_GATEWAY, ("data",)
    return None


def _classify_s3(family: str, attributes: Dict[str, str]) -> Classification:
    if family != "Storage":
        return None
    storage_class = S3_VOLUME_TYPE_TO_CLASS.get(attributes.get("volumeType", ""))
    return (PriceCategory.S3_STORAGE, (storage_class,)) if storage_class else None


def _rds_storage_volume_type(attributes: Dict[str, str]) -> Optional[str]:
    """Map RDS storage volumeType/usagetype attributes to an API volume type."""
    volume_type = attributes.get("volumeType", "")
    usage_type = attributes.get("usagetype", "").upper()

    if volume_type.startswith("General Purpose"):
        return "gp3" if ("GP3" in usage_type or volume_type.endswith("GP3")) else "gp2"
    if volume_type.startswith("Provisioned IOPS"):
        return "io2" if ("IO2" in usage_type or volume_type.endswith("IO2")) else "io1"
    if volume_type == "Magnetic":
        return "standard"
    return None


def _classify_rds(family: str, attributes: Dict[str, str]) -> Classification:
    if family == "Database Instance":
        instance_class = attributes.get("instanceType", "")
        engine = attributes.get("databaseEngine", "")
        deployment = attributes.get("deploymentOption", "")
        if instance_class and engine and deployment:
            return PriceCategory.RDS_INSTANCE, (instance_class, engine, deployment)
        return None

    if family == "Database Storage":
        # Single-AZ storage rates only; Multi-AZ storage is not modelled
        if attributes.get("deploymentOption", "Single-AZ") != "Single-AZ":
            return None
        volume_type = _rds_storage_volume_type(attributes)
        return (PriceCategory.RDS_STORAGE, (volume_type,)) if volume_type else None
    return None


def _classify_eks(family: str, attributes: Dict[str, str]) -> Classification:
    usage_type = attributes.get("usagetype", "")
    if "AmazonEKS-Hours" not in usage_type:
        return None
    support = "extended" if "extendedSupport" in usage_type else "standard"
    return PriceCategory.EKS_CLUSTER, (support,)


def _classify_lambda(family: str, attributes: Dict[str, str]) -> Classification:
    group = attributes.get("group", "")
    if group == "AWS-Lambda-Requests":
        return PriceCategory.LAMBDA_REQUEST, ("requests",)
    if group == "AWS-Lambda-Duration":
        return PriceCategory.LAMBDA_DURATION, ("x86_64",)
    if group == "AWS-Lambda-Duration-ARM":
        return PriceCategory.LAMBDA_DURATION, ("arm64",)
    return None


def _classify_elb(family: str, attributes: Dict[str, str]) -> Classification:
    if family == "Load Balancer-Application":
        kind = "alb"
    elif family == "Load Balancer-Network":
        kind = "nlb"
    else:
        return None

    usage_type = attributes.get("usagetype", "")
    if "LCUUsage" in usage_type:
        return PriceCategory.ELB_CAPACITY_UNIT, (kind,)
    if "LoadBalancerUsage" in usage_type:
        return PriceCategory.ELB_HOUR, (kind,)
    return None


def _classify_dynamodb(family: str, attributes: Dict[str, str]) -> Classification:
    group = attributes.get("group", "")
    if family == "Amazon DynamoDB PayPerRequest Throughput":
        if group == "DDB-ReadUnits":
            return PriceCategory.DYNAMODB, ("on-demand-read",)
        if group == "DDB-WriteUnits":
            return PriceCategory.DYNAMODB, ("on-demand-write",)
    elif family == "Provisioned IOPS":
        if group == "DDB-ReadUnits":
            return PriceCategory.DYNAMODB, ("provisioned-rcu",)
        if group == "DDB-WriteUnits":
            return PriceCategory.DYNAMODB, ("provisioned-wcu",)
    elif family == "Database Storage":
        return PriceCategory.DYNAMODB, ("storage",)
    return None


def _classify_cloudwatch(family: str, attributes: Dict[str, str]) -> Classification:
    if family == "Data Payload":
        return PriceCategory.CLOUDWATCH, ("logs-ingestion",)
    if family == "Storage Snapshot":
        return PriceCategory.CLOUDWATCH, ("logs-storage",)
    if family == "Metric":
        return PriceCategory.CLOUDWATCH, ("metrics",)
    return None


def _classify_elasticache(family: str, attributes: Dict[str, str]) -> Classification:
    if family != "Cache Instance":
        return None
    node_type = attributes.get("instanceType", "")
    engine = attributes.get("cacheEngine", "")
    return (PriceCategory.ELASTICACHE_NODE, (node_type, engine)) if node_type and engine else None


OFFER_CLASSIFIERS: Dict[str, Callable[[str, Dict[str, str]], Classification]] = {
    "AmazonEC2": _classify_ec2,
    "AmazonS3": _classify_s3,
    "AmazonRDS": _classify_rds,
    "AmazonEKS": _classify_eks,
    "AWSLambda": _classify_lambda,
    "AWSELB": _classify_elb,
    "AmazonDynamoDB": _classify_dynamodb,
    "AmazonCloudWatch": _classify_cloudwatch,
    "AmazonElastiCache": _classify_elasticache,
}


class RegionalPriceIndex:
    """
    Read-only price lookups for a single region.

    Initialization is lazy and exactly-once: the first accessor (or an
    explicit initialize()) parses the dataset under a lock; every later
    read goes straight to the frozen maps.
    """

    def __init__(
        self,
        region: str,
        dataset_path: Optional[Union[str, Path]] = None,
        dataset: Optional[Dict[str, Any]] = None,
        currency: str = "USD",
    ):
        """
        Initialize the index (no parsing happens until first use).

        Args:
            region: AWS region code this index serves
            dataset_path: Path to the region's JSON dataset
            dataset: Already-parsed dataset (takes precedence over dataset_path)
            currency: Currency of the pricePerUnit values to index
        """
        self._region = region
        self._dataset_path = Path(dataset_path) if dataset_path else None
        self._dataset = dataset
        self._currency = currency

        self._init_lock = threading.Lock()
        self._initialized = False
        self._init_count = 0

        self._entries: Mapping[IndexKey, PriceEntry] = MappingProxyType({})
        self._tiers: Mapping[IndexKey, TierSchedule] = MappingProxyType({})
        self._available_offers: Tuple[str, ...] = ()
        self._errors: Tuple[str, ...] = ()
        self._publication_date: Optional[str] = None

    @property
    def region(self) -> str:
        return self._region

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def publication_date(self) -> Optional[str]:
        self.initialize()
        return self._publication_date

    @property
    def errors(self) -> Tuple[str, ...]:
        """Internal errors recorded while indexing (empty when the dataset was clean)."""
        self.initialize()
        return self._errors

    @property
    def initialization_count(self) -> int:
        """How many times the dataset was actually parsed (always 0 or 1)."""
        return self._init_count

    def initialize(self) -> None:
        """
        Parse and index the dataset exactly once.

        Never raises for bad data: problems are recorded in errors and the
        affected lookups report "not found".
        """
        if self._initialized:
            return

        with self._init_lock:
            if self._initialized:
                return

            entries: Dict[IndexKey, PriceEntry] = {}
            tiers: Dict[IndexKey, TierSchedule] = {}
            errors: List[str] = []
            available: List[str] = []

            dataset = self._load_dataset(errors)
            if dataset is not None:
                self._publication_date = dataset.get("publicationDate")
                dataset_region = dataset.get("region")
                if dataset_region and dataset_region != self._region:
                    errors.append(
                        f"Dataset region {dataset_region} does not match index region {self._region}"
                    )
                offers = dataset.get("offers", {})
                if not isinstance(offers, dict):
                    errors.append("Dataset 'offers' is not an object")
                    offers = {}

                for offer_code, offer in offers.items():
                    indexed = self._index_offer(offer_code, offer, errors)
                    if indexed is None:
                        continue
                    offer_entries, offer_tiers = indexed
                    entries.update(offer_entries)
                    tiers.update(offer_tiers)
                    available.append(offer_code)

            self._entries = MappingProxyType(entries)
            self._tiers = MappingProxyType(tiers)
            self._available_offers = tuple(sorted(available))
            self._errors = tuple(errors)
            self._init_count += 1
            self._initialized = True

            for error in errors:
                logger.error(f"Price index {self._region}: {error}")
            logger.info(
                f"Indexed {len(entries)} prices for {self._region} "
                f"({len(self._available_offers)} offers, {len(errors)} errors)"
            )

    def _load_dataset(self, errors: List[str]) -> Optional[Dict[str, Any]]:
        """
        Load the raw dataset from memory or disk.

        Args:
            errors: Error list (mutated)

        Returns:
            Parsed dataset, or None when it is missing or malformed
        """
        if self._dataset is not None:
            if not isinstance(self._dataset, dict):
                errors.append("Dataset is not a JSON object")
                return None
            return self._dataset

        if self._dataset_path is None:
            errors.append("No dataset configured")
            return None

        try:
            with open(self._dataset_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            errors.append(f"Dataset not found: {self._dataset_path}")
            return None
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            errors.append(f"Error loading dataset {self._dataset_path}: {e}")
            return None

        if not isinstance(data, dict):
            errors.append("Dataset is not a JSON object")
            return None
        return data

    def _index_offer(
        self,
        offer_code: str,
        offer: Any,
        errors: List[str],
    ) -> Optional[Tuple[Dict[IndexKey, PriceEntry], Dict[IndexKey, TierSchedule]]]:
        """
        Build lookup entries for one offer file.

        The offer is indexed into local maps and merged only on success, so a
        malformed offer never leaves half-indexed categories behind.

        Args:
            offer_code: AWS offer code (e.g. 'AmazonEC2')
            offer: Offer JSON (products + terms)
            errors: Error list (mutated)

        Returns:
            (entries, tier schedules) or None if the offer was skipped
        """
        classifier = OFFER_CLASSIFIERS.get(offer_code)
        if classifier is None:
            logger.debug(f"Skipping unsupported offer {offer_code}")
            return None

        entries: Dict[IndexKey, PriceEntry] = {}
        tiers: Dict[IndexKey, TierSchedule] = {}
        skipped_other_region = 0

        try:
            products = offer["products"]
            terms = offer.get("terms", {}).get("OnDemand", {})

            for sku, product in products.items():
                attributes = product.get("attributes", {})
                product_region = attributes.get("regionCode")
                if product_region and product_region != self._region:
                    skipped_other_region += 1
                    continue

                classification = classifier(product.get("productFamily", ""), attributes)
                if classification is None:
                    continue
                category, raw_key = classification
                index_key = (category.value, normalize_key(raw_key))

                if index_key in entries:
                    logger.debug(f"Duplicate price key {index_key} in {offer_code} (sku {sku}), keeping first")
                    continue

                dimensions = self._extract_price_dimensions(terms.get(sku, {}))
                if not dimensions:
                    continue

                schedule = build_tier_schedule(
                    (dim.get("beginRange", "0"), dim.get("endRange", "Inf"), rate)
                    for dim, rate in dimensions
                )
                unit = dimensions[0][0].get("unit", "")
                entries[index_key] = PriceEntry(
                    category=category.value,
                    key=index_key[1],
                    rate=schedule[0].rate,
                    unit=unit,
                    currency=self._currency,
                    sku=sku,
                    description=product.get("productFamily", ""),
                )
                tiers[index_key] = schedule

        except (KeyError, TypeError, ValueError, AttributeError, TierScheduleError) as e:
            errors.append(f"Malformed offer {offer_code}: {e}")
            return None

        if skipped_other_region:
            logger.warning(
                f"Skipped {skipped_other_region} {offer_code} products not priced for {self._region}"
            )
        return entries, tiers

    def _extract_price_dimensions(self, term_entries: Dict[str, Any]) -> List[Tuple[Dict[str, Any], float]]:
        """
        Collect (dimension, rate) pairs from the first OnDemand term of a SKU.

        Args:
            term_entries: OnDemand terms for one SKU (offerTermCode -> term)

        Returns:
            List of (price dimension, rate); empty when no price in the index currency
        """
        if not term_entries:
            return []

        term = next(iter(term_entries.values()))
        dimensions = []
        for dim in term.get("priceDimensions", {}).values():
            price = dim.get("pricePerUnit", {}).get(self._currency)
            if price is None:
                continue
            dimensions.append((dim, float(price)))
        return dimensions

    def lookup(self, category: PriceCategory, key) -> Tuple[Optional[PriceEntry], bool]:
        """
        Look up a unit rate.

        Args:
            category: Price category
            key: Attribute tuple (or single string) for the category

        Returns:
            (PriceEntry, True) when found, (None, False) otherwise
        """
        self.initialize()
        entry = self._entries.get((PriceCategory(category).value, normalize_key(key)))
        return entry, entry is not None

    def tier_schedule(self, category: PriceCategory, key) -> Tuple[Optional[TierSchedule], bool]:
        """
        Look up the volume-pricing schedule for a category/key.

        Single-rate prices come back as a one-tier schedule.

        Returns:
            (TierSchedule, True) when found, (None, False) otherwise
        """
        self.initialize()
        schedule = self._tiers.get((PriceCategory(category).value, normalize_key(key)))
        return schedule, schedule is not None

    def has_offer(self, offer_code: str) -> bool:
        """True when the dataset contained a usable offer for this service."""
        self.initialize()
        return offer_code in self._available_offers

    def entry_count(self, category: Optional[PriceCategory] = None) -> int:
        """Number of indexed prices, optionally for a single category."""
        self.initialize()
        if category is None:
            return len(self._entries)
        value = PriceCategory(category).value
        return sum(1 for cat, _ in self._entries if cat == value)


_INDEX_CACHE: Dict[str, RegionalPriceIndex] = {}
_INDEX_CACHE_LOCK = threading.Lock()


def load_price_index(region: Optional[str] = None) -> RegionalPriceIndex:
    """
    Factory for the process-wide price index of a region.

    Args:
        region: AWS region code (defaults to the configured pricing region)

    Returns:
        Cached RegionalPriceIndex for the region

    Raises:
        PriceIndexError: If no embedded dataset exists for the region
    """
    region = region or config.PRICING_REGION
    with _INDEX_CACHE_LOCK:
        index = _INDEX_CACHE.get(region)
        if index is None:
            dataset_path = config.dataset_path(region)
            if not dataset_path.exists():
                raise PriceIndexError(
                    f"No embedded pricing dataset for region {region} ({dataset_path})"
                )
            index = RegionalPriceIndex(region, dataset_path=dataset_path, currency=config.CURRENCY)
            _INDEX_CACHE[region] = index
    return index
