"""
AWS region helpers.
Maps region codes to Price List location names and derives regions from
availability zones.
"""
import re
from typing import Dict, Optional


# AWS region code -> Price List "location" attribute
AWS_REGION_TO_LOCATION: Dict[str, str] = {
    # North America
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "ca-central-1": "Canada (Central)",
    "us-gov-east-1": "AWS GovCloud (US-East)",
    "us-gov-west-1": "AWS GovCloud (US-West)",

    # Europe
    "eu-west-1": "Europe (Ireland)",
    "eu-west-2": "Europe (London)",
    "eu-west-3": "Europe (Paris)",
    "eu-central-1": "Europe (Frankfurt)",
    "eu-north-1": "Europe (Stockholm)",
    "eu-south-1": "Europe (Milan)",

    # Asia Pacific
    "ap-south-1": "Asia Pacific (Mumbai)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
    "ap-southeast-2": "Asia Pacific (Sydney)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
    "ap-northeast-2": "Asia Pacific (Seoul)",
    "ap-northeast-3": "Asia Pacific (Osaka)",
    "ap-east-1": "Asia Pacific (Hong Kong)",

    # Other
    "sa-east-1": "South America (Sao Paulo)",
    "me-south-1": "Middle East (Bahrain)",
    "af-south-1": "Africa (Cape Town)",
}

# "us-east-1a", "us-gov-west-1b" (optionally local-zone style suffixes are not supported)
_AVAILABILITY_ZONE_PATTERN = re.compile(r"^([a-z]{2}(?:-gov)?-[a-z]+-\d+)[a-z]$")


def get_aws_pricing_location(region_code: str) -> Optional[str]:
    """
    Get the Price List location string for a region code.

    Args:
        region_code: AWS region code (e.g., 'eu-west-1')

    Returns:
        Location string (e.g., 'Europe (Ireland)'), or None if not found
    """
    return AWS_REGION_TO_LOCATION.get(region_code)


def region_from_availability_zone(zone: str) -> Optional[str]:
    """
    Derive the region code from an availability zone name.

    Args:
        zone: Availability zone (e.g., 'us-east-1a')

    Returns:
        Region code ('us-east-1'), or None if the zone is not recognizable
    """
    match = _AVAILABILITY_ZONE_PATTERN.match((zone or "").strip().lower())
    return match.group(1) if match else None
