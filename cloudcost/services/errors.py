"""
Request-level errors raised by the dispatch and validation layer.
Pricing misses and bad usage tags are not errors: they come back as
zero-cost results and defaulted fields.
"""
from typing import Any, Dict, Optional


INVALID_RESOURCE = "INVALID_RESOURCE"
UNSUPPORTED_REGION = "UNSUPPORTED_REGION"


class EstimationValidationError(Exception):
    """Raised when a request is structurally invalid."""

    def __init__(self, message: str, code: str = INVALID_RESOURCE, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details: Dict[str, Any] = details or {}

    @property
    def trace_id(self) -> str:
        return self.details.get("trace_id", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"code": self.code, "message": self.message, "details": self.details}


class UnsupportedResourceTypeError(EstimationValidationError):
    """Raised when a resource type does not map to any service family."""

    def __init__(self, resource_type: str, trace_id: str = ""):
        super().__init__(
            f'Resource type "{resource_type}" not supported',
            details={"trace_id": trace_id, "resource_type": resource_type},
        )
        self.resource_type = resource_type


class RegionMismatchError(EstimationValidationError):
    """Raised when a resource lives in a region this process does not serve."""

    def __init__(self, plugin_region: str, resource_region: str, trace_id: str = ""):
        super().__init__(
            f"Region not supported by this binary (plugin region: {plugin_region}, "
            f"resource region: {resource_region})",
            code=UNSUPPORTED_REGION,
            details={
                "trace_id": trace_id,
                "plugin_region": plugin_region,
                "resource_region": resource_region,
                "required_region": resource_region,
            },
        )
        self.plugin_region = plugin_region
        self.resource_region = resource_region
