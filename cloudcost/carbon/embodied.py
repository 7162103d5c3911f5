"""
Embodied carbon: manufacturing emissions amortized over hardware lifetime.

An instance is charged the share of a physical server given by its vCPU
count over the largest instance size of its family (which approximates the
whole host).
"""
from typing import Dict, Optional

from cloudcost.carbon.constants import EMBODIED_CARBON_PER_SERVER_KG, SERVER_LIFESPAN_MONTHS
from cloudcost.carbon.power_specs import get_instance_spec


# Largest vCPU count per instance family (size of the host)
FAMILY_MAX_VCPUS: Dict[str, float] = {
    "t2": 8, "t3": 8, "t3a": 8,
    "m4": 40, "m5": 96, "m5a": 96, "m5n": 96, "m6i": 128, "m6a": 192, "m6g": 64,
    "c4": 36, "c5": 96, "c5a": 96, "c5n": 72, "c6i": 128,
    "r4": 64, "r5": 96, "r5a": 96, "r5n": 96, "r6i": 128,
    "i3": 64, "i3en": 96, "d2": 36, "d3": 96,
    "p3": 64, "p4d": 96, "p5": 96, "g4dn": 96, "g5": 96,
    "inf1": 96, "inf2": 192, "trn1": 128,
}


def instance_family(instance_type: str) -> str:
    """'m5.large' -> 'm5'."""
    return instance_type.split(".", 1)[0]


def max_family_vcpus(instance_type: str) -> Optional[float]:
    return FAMILY_MAX_VCPUS.get(instance_family(instance_type))


def monthly_embodied_kg(instance_type: str) -> Optional[float]:
    """Amortized embodied kgCO2e per month for an instance, None when unknown."""
    spec = get_instance_spec(instance_type)
    if spec is None or SERVER_LIFESPAN_MONTHS <= 0:
        return None
    family_max = max_family_vcpus(instance_type) or float(spec.vcpus)
    share = spec.vcpus / family_max
    return (EMBODIED_CARBON_PER_SERVER_KG / SERVER_LIFESPAN_MONTHS) * share


def estimate_embodied_kg(instance_type: str, months: float) -> Optional[float]:
    """
    Embodied carbon for running an instance for a number of months.

    Args:
        instance_type: EC2 instance type
        months: Duration in months (> 0)

    Returns:
        kgCO2e, or None for an unknown instance type or non-positive duration
    """
    if months <= 0:
        return None
    monthly = monthly_embodied_kg(instance_type)
    if monthly is None:
        return None
    return monthly * months


def estimate_embodied_grams(instance_type: str, months: float) -> Optional[float]:
    kg = estimate_embodied_kg(instance_type, months)
    return None if kg is None else kg * 1000.0


def embodied_detail(instance_type: str, months: float) -> str:
    spec = get_instance_spec(instance_type)
    monthly = monthly_embodied_kg(instance_type)
    if spec is None or monthly is None:
        return f"Embodied carbon: unknown instance type {instance_type}"
    family_max = max_family_vcpus(instance_type) or float(spec.vcpus)
    return (
        f"Embodied carbon: {instance_type} ({spec.vcpus}/{family_max:.0f} vCPUs of server), "
        f"{monthly:.2f} kgCO2e/month amortized over {SERVER_LIFESPAN_MONTHS:.0f} months "
        f"for {months:.1f} months"
    )
