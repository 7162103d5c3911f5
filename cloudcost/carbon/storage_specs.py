"""
Storage technology specs per service and storage class.
"""
from dataclasses import dataclass
from typing import Dict, Optional

from cloudcost.carbon.constants import HDD_POWER_COEFFICIENT, SSD_POWER_COEFFICIENT


@dataclass(frozen=True)
class StorageSpec:
    """Technology and replication of a storage class."""
    service: str
    storage_class: str
    technology: str  # "SSD" | "HDD"
    replication_factor: int

    @property
    def power_coefficient(self) -> float:
        """Watt-hours per terabyte-hour for this technology."""
        return SSD_POWER_COEFFICIENT if self.technology == "SSD" else HDD_POWER_COEFFICIENT


def storage_key(service: str, storage_class: str) -> str:
    """Lookup key: lower-case service, upper-case class ("ebs:GP3")."""
    return f"{service.strip().lower()}:{storage_class.strip().upper()}"


def _spec(service: str, storage_class: str, technology: str, replication: int) -> StorageSpec:
    return StorageSpec(service, storage_class, technology, replication)


STORAGE_SPECS: Dict[str, StorageSpec] = {
    storage_key(spec.service, spec.storage_class): spec
    for spec in (
        # EBS volumes are replicated within one availability zone
        _spec("ebs", "gp2", "SSD", 2),
        _spec("ebs", "gp3", "SSD", 2),
        _spec("ebs", "io1", "SSD", 2),
        _spec("ebs", "io2", "SSD", 2),
        _spec("ebs", "st1", "HDD", 2),
        _spec("ebs", "sc1", "HDD", 2),
        _spec("ebs", "standard", "HDD", 2),
        # S3 regional classes span three AZs; One Zone stays in one
        _spec("s3", "STANDARD", "SSD", 3),
        _spec("s3", "INTELLIGENT_TIERING", "SSD", 3),
        _spec("s3", "STANDARD_IA", "SSD", 3),
        _spec("s3", "ONEZONE_IA", "SSD", 1),
        _spec("s3", "GLACIER_IR", "HDD", 3),
        _spec("s3", "GLACIER", "HDD", 3),
        _spec("s3", "DEEP_ARCHIVE", "HDD", 3),
        _spec("dynamodb", "DYNAMODB", "SSD", 3),
    )
}


def get_storage_spec(service: str, storage_class: str) -> Optional[StorageSpec]:
    return STORAGE_SPECS.get(storage_key(service, storage_class))
