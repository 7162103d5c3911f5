"""
Instance and GPU power specifications.

Specs ship as CSV package data (CCF coefficients, which use decimal commas)
and are parsed once per process on first access.
"""
import csv
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


DATA_DIR = Path(__file__).resolve().parent / "data"
INSTANCE_SPECS_FILE = DATA_DIR / "instance_specs.csv"
GPU_SPECS_FILE = DATA_DIR / "gpu_specs.csv"


@dataclass(frozen=True)
class InstanceSpec:
    """Per-vCPU power envelope of an instance type."""
    instance_type: str
    vcpus: int
    min_watts: float  # per vCPU at idle
    max_watts: float  # per vCPU at 100% utilization


@dataclass(frozen=True)
class GPUSpec:
    """Accelerators attached to an instance type."""
    instance_type: str
    gpu_model: str
    gpu_count: int
    tdp_watts: float  # thermal design power per GPU


def parse_decimal(value: str) -> float:
    """
    Parse a number that may use a decimal comma ("3,37").

    Raises:
        ValueError: If the value is not numeric
    """
    return float(value.strip().replace(",", "."))


_lock = threading.Lock()
_instance_specs: Optional[Dict[str, InstanceSpec]] = None
_gpu_specs: Optional[Dict[str, GPUSpec]] = None


def _load_instance_specs(path: Path) -> Dict[str, InstanceSpec]:
    specs: Dict[str, InstanceSpec] = {}
    with open(path, "r", encoding="utf-8", newline="") as f:
        for line_number, row in enumerate(csv.DictReader(f), start=2):
            try:
                spec = InstanceSpec(
                    instance_type=row["instance_type"].strip(),
                    vcpus=int(row["vcpu"]),
                    min_watts=parse_decimal(row["min_watts_per_vcpu"]),
                    max_watts=parse_decimal(row["max_watts_per_vcpu"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed instance spec at {path.name}:{line_number}: {e}")
                continue
            specs[spec.instance_type] = spec
    return specs


def _load_gpu_specs(path: Path) -> Dict[str, GPUSpec]:
    specs: Dict[str, GPUSpec] = {}
    with open(path, "r", encoding="utf-8", newline="") as f:
        for line_number, row in enumerate(csv.DictReader(f), start=2):
            try:
                spec = GPUSpec(
                    instance_type=row["instance_type"].strip(),
                    gpu_model=row["gpu_model"].strip(),
                    gpu_count=int(row["gpu_count"]),
                    tdp_watts=parse_decimal(row["tdp_watts_per_gpu"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed GPU spec at {path.name}:{line_number}: {e}")
                continue
            specs[spec.instance_type] = spec
    return specs


def _ensure_loaded() -> None:
    global _instance_specs, _gpu_specs
    if _instance_specs is not None and _gpu_specs is not None:
        return
    with _lock:
        if _instance_specs is None:
            _instance_specs = _load_instance_specs(INSTANCE_SPECS_FILE)
            logger.debug(f"Loaded {len(_instance_specs)} instance power specs")
        if _gpu_specs is None:
            _gpu_specs = _load_gpu_specs(GPU_SPECS_FILE)
            logger.debug(f"Loaded {len(_gpu_specs)} GPU specs")


def get_instance_spec(instance_type: str) -> Optional[InstanceSpec]:
    _ensure_loaded()
    return _instance_specs.get(instance_type)


def get_gpu_spec(instance_type: str) -> Optional[GPUSpec]:
    _ensure_loaded()
    return _gpu_specs.get(instance_type)


def has_gpu(instance_type: str) -> bool:
    return get_gpu_spec(instance_type) is not None


def instance_spec_count() -> int:
    _ensure_loaded()
    return len(_instance_specs)
