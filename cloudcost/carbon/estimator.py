"""
Carbon footprint estimator.

Operational emissions follow the Cloud Carbon Footprint methodology:

    energy (kWh) = average power (W) x hours / 1000
    carbon (g)   = energy x PUE x grid intensity (t/kWh) x 1,000,000

Compute uses a linear min/max power curve per vCPU, GPUs use their TDP,
storage uses a per-terabyte power coefficient times replication, and Lambda
is converted to vCPU-equivalents from its memory size. Every method returns
None when the inputs cannot be priced in carbon (unknown instance type,
unknown region): a missing metric is never reported as zero.
"""
import logging
from typing import Optional, Tuple

from cloudcost.carbon import constants
from cloudcost.carbon.embodied import embodied_detail, estimate_embodied_grams
from cloudcost.carbon.grid_factors import get_grid_factor
from cloudcost.carbon.power_specs import get_gpu_spec, get_instance_spec
from cloudcost.carbon.storage_specs import get_storage_spec
from cloudcost.domain.cost_models import CarbonResult
from cloudcost.pricing.billing_messages import format_quantity

logger = logging.getLogger(__name__)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def resolve_utilization(
    request_utilization: Optional[float] = None,
    resource_utilization: Optional[float] = None,
) -> float:
    """
    Pick the utilization to use for a resource.

    Order: per-resource value, then request-level value, then the CCF
    default. Only positive values count as "set"; they are clamped to [0, 1].

    Args:
        request_utilization: Default supplied for the whole request
        resource_utilization: Override for this resource

    Returns:
        Utilization in [0, 1]
    """
    if resource_utilization is not None and resource_utilization > 0:
        return clamp(resource_utilization)
    if request_utilization is not None and request_utilization > 0:
        return clamp(request_utilization)
    return constants.DEFAULT_UTILIZATION


def energy_to_carbon_grams(energy_kwh: float, grid_intensity: float, pue: float = constants.AWS_PUE) -> float:
    """Convert IT energy to grams CO2e (applies PUE and grid intensity)."""
    return energy_kwh * pue * grid_intensity * constants.GRAMS_PER_METRIC_TON


def calculate_cpu_carbon_grams(
    min_watts: float,
    max_watts: float,
    vcpus: float,
    utilization: float,
    grid_intensity: float,
    hours: float,
) -> float:
    """
    Carbon of CPU usage.

    Args:
        min_watts: Per-vCPU power at idle
        max_watts: Per-vCPU power at full load
        vcpus: Number of vCPUs
        utilization: Average utilization (0..1)
        grid_intensity: Metric tons CO2e per kWh
        hours: Runtime in hours

    Returns:
        Grams CO2e
    """
    average_watts = min_watts + utilization * (max_watts - min_watts)
    energy_kwh = average_watts * vcpus * hours / 1000.0
    return energy_to_carbon_grams(energy_kwh, grid_intensity)


def calculate_gpu_carbon_grams(
    tdp_watts: float,
    gpu_count: int,
    utilization: float,
    grid_intensity: float,
    hours: float,
) -> float:
    """Carbon of attached GPUs, drawing TDP scaled by utilization."""
    gpu_watts = tdp_watts * gpu_count * utilization
    energy_kwh = gpu_watts * hours / 1000.0
    return energy_to_carbon_grams(energy_kwh, grid_intensity)


def calculate_storage_carbon_grams(
    size_gb: float,
    hours: float,
    power_coefficient: float,
    replication_factor: float,
    grid_intensity: float,
) -> float:
    """Carbon of stored data: TB x hours x Wh/TB-h x replicas."""
    size_tb = size_gb / constants.GB_PER_TB
    energy_kwh = size_tb * power_coefficient * replication_factor * hours / 1000.0
    return energy_to_carbon_grams(energy_kwh, grid_intensity)


def lambda_vcpu_equivalent(memory_mb: float) -> float:
    return memory_mb / constants.LAMBDA_MB_PER_VCPU


def lambda_compute_hours(duration_ms: float, invocations: float) -> float:
    return duration_ms * invocations / 3_600_000.0


def calculate_lambda_carbon_grams(
    memory_mb: float,
    duration_ms: float,
    invocations: float,
    architecture: str,
    grid_intensity: float,
    utilization: float = constants.DEFAULT_UTILIZATION,
) -> float:
    """Carbon of Lambda invocations treated as fractional vCPUs."""
    vcpus = lambda_vcpu_equivalent(memory_mb)
    run_hours = lambda_compute_hours(duration_ms, invocations)
    grams = calculate_cpu_carbon_grams(
        constants.LAMBDA_MIN_WATTS_PER_VCPU,
        constants.LAMBDA_MAX_WATTS_PER_VCPU,
        vcpus,
        utilization,
        grid_intensity,
        run_hours,
    )
    if architecture == "arm64":
        grams *= constants.ARM64_EFFICIENCY_FACTOR
    return grams


def rds_to_ec2_instance_type(instance_class: str) -> str:
    """'db.m5.large' -> 'm5.large'."""
    return instance_class[3:] if instance_class.startswith("db.") else instance_class


def elasticache_to_ec2_instance_type(node_type: str) -> str:
    """'cache.r5.large' -> 'r5.large'."""
    return node_type[6:] if node_type.startswith("cache.") else node_type


class CarbonEstimator:
    """Estimates operational carbon for the supported resource families."""

    def __init__(self, include_gpu: bool = True, include_embodied: bool = False):
        """
        Args:
            include_gpu: Add GPU power for accelerator instances
            include_embodied: Add amortized embodied carbon to compute results
        """
        self.include_gpu = include_gpu
        self.include_embodied = include_embodied

    def estimate_instance_breakdown(
        self,
        instance_type: str,
        region: str,
        utilization: float,
        hours: float = constants.HOURS_PER_MONTH,
        include_gpu: Optional[bool] = None,
    ) -> Optional[Tuple[float, float]]:
        """
        CPU and GPU carbon of an EC2 instance.

        Returns:
            (cpu_grams, gpu_grams), or None for unknown instance type or region
        """
        spec = get_instance_spec(instance_type)
        grid = get_grid_factor(region)
        if spec is None or grid is None:
            return None

        cpu_grams = calculate_cpu_carbon_grams(
            spec.min_watts, spec.max_watts, spec.vcpus, utilization, grid, hours
        )

        gpu_grams = 0.0
        use_gpu = self.include_gpu if include_gpu is None else include_gpu
        gpu = get_gpu_spec(instance_type) if use_gpu else None
        if gpu is not None:
            gpu_grams = calculate_gpu_carbon_grams(gpu.tdp_watts, gpu.gpu_count, utilization, grid, hours)

        return cpu_grams, gpu_grams

    def estimate_instance(
        self,
        instance_type: str,
        region: str,
        utilization: float,
        hours: float = constants.HOURS_PER_MONTH,
        include_gpu: Optional[bool] = None,
    ) -> Optional[CarbonResult]:
        """
        Carbon of an EC2 instance (CPU + GPU, plus embodied when enabled).

        Args:
            instance_type: EC2 instance type
            region: AWS region code
            utilization: Average utilization (0..1)
            hours: Runtime in hours

        Returns:
            CarbonResult, or None when the instance type or region is unknown
        """
        breakdown = self.estimate_instance_breakdown(instance_type, region, utilization, hours, include_gpu)
        if breakdown is None:
            logger.debug(f"No carbon data for {instance_type} in {region}")
            return None
        cpu_grams, gpu_grams = breakdown

        spec = get_instance_spec(instance_type)
        parts = {"cpu": cpu_grams}
        if gpu_grams > 0:
            parts["gpu"] = gpu_grams

        detail = (
            f"{instance_type}, {spec.vcpus} vCPUs at {utilization:.0%} utilization, "
            f"{format_quantity(hours)} hrs, PUE {constants.AWS_PUE}, "
            f"grid {get_grid_factor(region)} tCO2e/kWh"
        )

        if self.include_embodied:
            months = hours / constants.HOURS_PER_MONTH
            embodied = self.estimate_embodied(instance_type, months)
            if embodied is not None:
                parts["embodied"] = embodied
                detail = f"{detail}; {embodied_detail(instance_type, months)}"

        return CarbonResult(grams=sum(parts.values()), detail=detail, breakdown=parts)

    def estimate_embodied(self, instance_type: str, months: float = 1.0) -> Optional[float]:
        """
        Amortized manufacturing carbon of an instance.

        Args:
            instance_type: EC2 instance type
            months: Duration in months

        Returns:
            Grams CO2e, or None for an unknown instance type or non-positive duration
        """
        return estimate_embodied_grams(instance_type, months)

    def estimate_storage(
        self,
        service: str,
        storage_class: str,
        size_gb: float,
        region: str,
        hours: float = constants.HOURS_PER_MONTH,
    ) -> Optional[CarbonResult]:
        """
        Carbon of block, object or table storage.

        Returns:
            CarbonResult, or None for unknown class/region or negative inputs
        """
        if size_gb < 0 or hours < 0:
            return None
        spec = get_storage_spec(service, storage_class)
        grid = get_grid_factor(region)
        if spec is None or grid is None:
            return None

        grams = calculate_storage_carbon_grams(
            size_gb, hours, spec.power_coefficient, spec.replication_factor, grid
        )
        label = "DynamoDB table" if service == "dynamodb" else f"{service.upper()} {storage_class}"
        detail = (
            f"{label} ({spec.technology}), {format_quantity(size_gb)} GB, "
            f"{format_quantity(hours)} hrs, replication {spec.replication_factor}×"
        )
        return CarbonResult(grams=grams, detail=detail, breakdown={"storage": grams})

    def estimate_dynamodb(
        self,
        storage_gb: float,
        region: str,
        hours: float = constants.HOURS_PER_MONTH,
    ) -> Optional[CarbonResult]:
        """DynamoDB storage carbon; None when the table stores nothing."""
        if storage_gb <= 0:
            return None
        return self.estimate_storage("dynamodb", "DYNAMODB", storage_gb, region, hours)

    def estimate_lambda(
        self,
        memory_mb: int,
        duration_ms: float,
        invocations: int,
        architecture: str,
        region: str,
    ) -> Optional[CarbonResult]:
        """
        Carbon of a month of Lambda invocations.

        Returns:
            CarbonResult, or None for invalid inputs or unknown region
        """
        if memory_mb <= 0 or duration_ms < 0 or invocations < 0:
            return None
        grid = get_grid_factor(region)
        if grid is None:
            return None

        grams = calculate_lambda_carbon_grams(memory_mb, duration_ms, invocations, architecture, grid)
        detail = (
            f"Lambda {architecture}, {memory_mb} MB memory "
            f"({lambda_vcpu_equivalent(memory_mb):.2f} vCPU equiv), "
            f"{invocations} invocations × {int(duration_ms)}ms = "
            f"{lambda_compute_hours(duration_ms, invocations):.2f} compute hours"
        )
        return CarbonResult(grams=grams, detail=detail, breakdown={"compute": grams})

    def estimate_rds(
        self,
        instance_class: str,
        region: str,
        multi_az: bool,
        storage_type: str,
        storage_gb: float,
        utilization: float = constants.DEFAULT_UTILIZATION,
        hours: float = constants.HOURS_PER_MONTH,
    ) -> Optional[CarbonResult]:
        """
        Carbon of an RDS instance: compute as the equivalent EC2 type (no GPU)
        plus its EBS-backed storage, doubled for a Multi-AZ standby.

        Returns:
            CarbonResult, or None when the compute part cannot be estimated
        """
        ec2_type = rds_to_ec2_instance_type(instance_class)
        compute = self.estimate_instance_breakdown(ec2_type, region, utilization, hours, include_gpu=False)
        if compute is None:
            return None
        compute_grams = compute[0]

        storage_grams = 0.0
        if storage_gb > 0:
            storage = self.estimate_storage("ebs", storage_type, storage_gb, region, hours)
            if storage is not None:
                storage_grams = storage.grams

        multiplier = 2.0 if multi_az else 1.0
        breakdown = {
            "compute": compute_grams * multiplier,
            "storage": storage_grams * multiplier,
        }
        detail = (
            f"RDS {instance_class} (as {ec2_type}) at {utilization:.0%} utilization, "
            f"{format_quantity(storage_gb)} GB {storage_type} storage, {format_quantity(hours)} hrs"
        )
        if multi_az:
            detail += ", Multi-AZ (×2)"
        return CarbonResult(grams=sum(breakdown.values()), detail=detail, breakdown=breakdown)

    def estimate_elasticache(
        self,
        node_type: str,
        region: str,
        nodes: int = 1,
        utilization: float = constants.DEFAULT_UTILIZATION,
        hours: float = constants.HOURS_PER_MONTH,
    ) -> Optional[CarbonResult]:
        """Carbon of an ElastiCache cluster: per-node EC2 equivalent x nodes."""
        nodes = max(nodes, 1)
        ec2_type = elasticache_to_ec2_instance_type(node_type)
        compute = self.estimate_instance_breakdown(ec2_type, region, utilization, hours, include_gpu=False)
        if compute is None:
            return None
        grams = compute[0] * nodes
        detail = (
            f"ElastiCache {node_type} (as {ec2_type}) × {nodes} nodes at "
            f"{utilization:.0%} utilization, {format_quantity(hours)} hrs"
        )
        return CarbonResult(grams=grams, detail=detail, breakdown={"compute": grams})

    def estimate_eks(self) -> CarbonResult:
        """EKS control plane: explicit zero, the hardware is shared across customers."""
        return CarbonResult(
            grams=0.0,
            detail=(
                "EKS control plane carbon is shared and not allocated to customers. "
                "Estimate worker nodes as EC2 instances for cluster carbon footprint."
            ),
            note=constants.SHARED_INFRASTRUCTURE_NOTE,
        )
