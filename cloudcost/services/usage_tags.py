"""
Usage-tag parsing shared by the per-service estimators.

Usage inputs arrive as strings. Bad values never fail a request: they fall
back to the documented default, the field is recorded as defaulted and a
warning is logged with the trace id. Values above a cap are clamped to the
cap and recorded the same way, so more usage never prices lower.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence, Set, Union

logger = logging.getLogger(__name__)


# Keys that must never reach the logs
SENSITIVE_TAG_MARKERS = ("secret", "password", "token")
MAX_LOGGED_TAGS = 5

TagKeys = Union[str, Sequence[str]]


def sanitize_tags_for_logging(tags: Optional[Dict[str, str]]) -> Dict[str, str]:
    """
    Copy of tags that is safe to log.

    Args:
        tags: Resource tags

    Returns:
        At most MAX_LOGGED_TAGS tags, without keys that look like credentials
    """
    if not tags:
        return {}
    safe: Dict[str, str] = {}
    for key in sorted(tags):
        if len(safe) >= MAX_LOGGED_TAGS:
            break
        if any(marker in key.lower() for marker in SENSITIVE_TAG_MARKERS):
            continue
        safe[key] = tags[key]
    return safe


def _as_keys(keys: TagKeys) -> Sequence[str]:
    return (keys,) if isinstance(keys, str) else keys


class UsageTagReader:
    """Typed, forgiving access to a resource's usage tags."""

    def __init__(
        self,
        tags: Optional[Dict[str, str]] = None,
        trace_id: str = "",
        resource_type: str = "",
        warn: bool = True,
    ):
        self._tags = tags or {}
        self._trace_id = trace_id
        self._resource_type = resource_type
        self._warn = warn
        self.defaulted_fields: Set[str] = set()

    def raw(self, keys: TagKeys) -> Optional[str]:
        """First non-empty value among the given tag keys (aliases in priority order)."""
        for key in _as_keys(keys):
            value = self._tags.get(key)
            if value is not None and str(value).strip() != "":
                return str(value).strip()
        return None

    def has(self, keys: TagKeys) -> bool:
        return self.raw(keys) is not None

    def mark_defaulted(self, name: str, reason: str = "", value: Any = None, using: str = "default") -> None:
        """Record that an input fell back to its default (warns when a reason is given)."""
        self.defaulted_fields.add(name)
        if reason and self._warn:
            logger.warning(
                f"[trace_id={self._trace_id}] {self._resource_type} tag '{name}' {reason}"
                f"{'' if value is None else f' (got: {value!r})'}, using {using}"
            )

    def was_defaulted(self, name: str) -> bool:
        return name in self.defaulted_fields

    def get_float(
        self,
        keys: TagKeys,
        default: float,
        minimum: float = 0.0,
        maximum: Optional[float] = None,
        exclusive_minimum: bool = False,
        record_missing: bool = False,
    ) -> float:
        """
        Parse a numeric tag.

        Args:
            keys: Tag key or aliases (the first key names the field)
            default: Value used when the tag is missing or invalid
            minimum: Lowest accepted value
            maximum: Larger values are clamped to it (None for no upper bound)
            exclusive_minimum: Reject values equal to minimum
            record_missing: Count a missing tag as defaulted (the default is an assumption)

        Returns:
            Parsed value (clamped to maximum), or default
        """
        name = _as_keys(keys)[0]
        text = self.raw(keys)
        if text is None:
            if record_missing:
                self.mark_defaulted(name)
            return default

        try:
            value = float(text)
        except ValueError:
            self.mark_defaulted(name, "is not a valid number", text)
            return default

        if value != value or value in (float("inf"), float("-inf")):
            self.mark_defaulted(name, "is not a finite number", text)
            return default
        if value < minimum or (exclusive_minimum and value == minimum):
            self.mark_defaulted(name, f"must be {'>' if exclusive_minimum else '>='} {minimum:g}", text)
            return default
        if maximum is not None and value > maximum:
            self.mark_defaulted(name, f"must be <= {maximum}", text, using=str(maximum))
            return float(maximum)
        return value

    def get_int(
        self,
        keys: TagKeys,
        default: int,
        minimum: int = 0,
        maximum: Optional[int] = None,
        exclusive_minimum: bool = False,
        record_missing: bool = False,
    ) -> int:
        """
        Parse a count or size tag; same defaulting and clamping rules as get_float.

        Fractional values round up ("100.5" GB bills as 101 GB).
        """
        value = self.get_float(keys, default, minimum, maximum, exclusive_minimum, record_missing)
        return int(math.ceil(value))

    def get_str(
        self,
        keys: TagKeys,
        default: str,
        allowed: Optional[Iterable[str]] = None,
        record_missing: bool = False,
    ) -> str:
        """
        Read a lower-cased string tag.

        Args:
            keys: Tag key or aliases
            default: Value used when missing or not allowed
            allowed: Accepted values (None accepts anything)
            record_missing: Count a missing tag as defaulted

        Returns:
            Lower-cased tag value, or default
        """
        name = _as_keys(keys)[0]
        text = self.raw(keys)
        if text is None:
            if record_missing:
                self.mark_defaulted(name)
            return default
        value = text.lower()
        if allowed is not None and value not in set(allowed):
            self.mark_defaulted(name, "is not a recognized value", text)
            return default
        return value

    def get_bool(self, keys: TagKeys, default: bool = False) -> bool:
        text = self.raw(keys)
        if text is None:
            return default
        return text.lower() in ("true", "1", "yes")


@dataclass
class EstimationContext:
    """Per-call state handed to an estimator: region, trace id, tag reader, diagnostics."""
    region: str
    trace_id: str
    tags: UsageTagReader
    hours_per_month: float = 730.0
    currency: str = "USD"
    enhanced_diagnostics: bool = False
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def defaulted_fields(self) -> Set[str]:
        return self.tags.defaulted_fields

    def record(self, **values: Any) -> None:
        """Store calculation steps; only kept when enhanced diagnostics are on."""
        if self.enhanced_diagnostics:
            self.diagnostics.update(values)
            logger.debug(f"[trace_id={self.trace_id}] calculation steps: {values}")
