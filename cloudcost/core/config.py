"""
Configuration module for loading environment variables.
The engine serves exactly one pricing region per process; everything else
has a safe default so the service starts with no environment at all.
"""
import os
import logging
from pathlib import Path


# Packaged per-region price datasets live next to the pricing package
DEFAULT_PRICING_DATA_DIR = Path(__file__).resolve().parent.parent / "pricing" / "data"


def _env_flag(name: str, default: str = "false") -> bool:
    """Read a boolean environment flag ("true"/"1"/"yes" are truthy)."""
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _env_int(name: str, default: int) -> int:
    """Read an integer environment setting; unparseable values keep the default."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    """Application configuration loaded from environment variables."""

    # Plugin identity
    PLUGIN_NAME: str = "cloudcost-aws-public"
    PLUGIN_VERSION: str = "0.4.0"

    # Pricing Configuration
    PRICING_REGION: str = os.getenv(
        "CLOUDCOST_PRICING_REGION",
        os.getenv("AWS_PRICING_REGION", "us-east-1")
    )
    PRICING_DATA_DIR: str = os.getenv("CLOUDCOST_PRICING_DATA_DIR", str(DEFAULT_PRICING_DATA_DIR))
    CURRENCY: str = "USD"
    HOURS_PER_MONTH: int = 730  # Standard assumption: 24/7 operation

    # Carbon Configuration
    INCLUDE_EMBODIED_CARBON: bool = _env_flag("CLOUDCOST_INCLUDE_EMBODIED_CARBON")

    # Recommendations
    MAX_BATCH_SIZE: int = _env_int("CLOUDCOST_MAX_BATCH_SIZE", 100)
    MAX_BATCH_SIZE_LIMIT: int = 500
    # Reject non-AWS or unsupported resources in a batch instead of skipping them
    STRICT_VALIDATION: bool = _env_flag("CLOUDCOST_STRICT_VALIDATION")

    # Diagnostics: extra calculation detail in logs and responses, never changes numbers
    ENHANCED_DIAGNOSTICS: bool = os.getenv("CLOUDCOST_TEST_MODE", "") == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("CLOUDCOST_LOG_LEVEL", "INFO").upper()

    @classmethod
    def dataset_path(cls, region: str = None) -> Path:
        """
        Path of the embedded price dataset for a region.

        Args:
            region: AWS region code (defaults to PRICING_REGION)

        Returns:
            Path to the region's JSON dataset (may not exist)
        """
        return Path(cls.PRICING_DATA_DIR) / f"{region or cls.PRICING_REGION}.json"

    @classmethod
    def validate(cls) -> None:
        """
        Validates that required configuration values are set.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        if not cls.PRICING_REGION:
            raise ValueError("CLOUDCOST_PRICING_REGION is required")

        if not cls.dataset_path().exists():
            raise ValueError(
                f"No embedded pricing dataset for region {cls.PRICING_REGION} "
                f"(looked in {cls.PRICING_DATA_DIR})"
            )

        if not 1 <= cls.MAX_BATCH_SIZE <= cls.MAX_BATCH_SIZE_LIMIT:
            raise ValueError(
                f"CLOUDCOST_MAX_BATCH_SIZE must be between 1 and {cls.MAX_BATCH_SIZE_LIMIT} "
                f"(got: {cls.MAX_BATCH_SIZE})"
            )

        if not isinstance(logging.getLevelName(cls.LOG_LEVEL), int):
            raise ValueError(f"CLOUDCOST_LOG_LEVEL is not a valid log level (got: {cls.LOG_LEVEL})")


config = Config()
