"""
Regional grid carbon intensity, in metric tons CO2e per kWh.
Regions missing here have no published factor: callers must omit the
carbon metric rather than report zero.
"""
from typing import Dict, Optional


GRID_EMISSION_FACTORS: Dict[str, float] = {
    "us-east-1": 0.000379,
    "us-east-2": 0.000411,
    "us-west-1": 0.000322,
    "us-west-2": 0.000322,
    "ca-central-1": 0.00012,
    "eu-west-1": 0.0002786,
    "eu-north-1": 0.0000088,
    "ap-southeast-1": 0.000408,
    "ap-southeast-2": 0.00079,
    "ap-northeast-1": 0.000506,
    "ap-south-1": 0.000708,
    "sa-east-1": 0.0000617,
}


def get_grid_factor(region: str) -> Optional[float]:
    """
    Grid intensity for a region.

    Args:
        region: AWS region code

    Returns:
        Metric tons CO2e per kWh, or None when the region is unknown
    """
    return GRID_EMISSION_FACTORS.get(region)
