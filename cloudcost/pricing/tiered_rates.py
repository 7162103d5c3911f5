"""
Tiered (volume) pricing.

AWS bills many usage dimensions in slices: the first N units at one rate,
the next M units at a lower rate, and everything above at a final rate.
The helpers here turn offer-file price ranges into a validated schedule and
compute the total for a usage quantity by walking that schedule.
"""
import math
from typing import Iterable, Sequence, Tuple, Union

from cloudcost.domain.cost_models import TierRate


TierSchedule = Tuple[TierRate, ...]


class TierScheduleError(Exception):
    """Raised when a tier schedule is not contiguous or has invalid rates."""
    pass


def _parse_bound(value: Union[str, float, int, None]) -> float:
    """Parse an offer-file range bound ("0", "10000", "Inf")."""
    if value is None or value == "":
        return math.inf
    if isinstance(value, str) and value.strip().lower() in ("inf", "infinity"):
        return math.inf
    return float(value)


def validate_tier_schedule(schedule: Sequence[TierRate]) -> None:
    """
    Check the schedule invariants.

    Args:
        schedule: Ordered tiers

    Raises:
        TierScheduleError: If the first tier does not start at 0, tiers are not
                           contiguous, a bound is inverted, the last tier is
                           bounded, or any rate is negative
    """
    if not schedule:
        raise TierScheduleError("Tier schedule is empty")

    if schedule[0].from_quantity != 0:
        raise TierScheduleError(
            f"First tier must start at 0 (got {schedule[0].from_quantity})"
        )

    previous_up_to = 0.0
    for index, tier in enumerate(schedule):
        if tier.rate < 0:
            raise TierScheduleError(f"Tier {index} has a negative rate ({tier.rate})")
        if tier.from_quantity != previous_up_to:
            raise TierScheduleError(
                f"Tier {index} starts at {tier.from_quantity}, expected {previous_up_to}"
            )
        if tier.up_to <= tier.from_quantity:
            raise TierScheduleError(
                f"Tier {index} upper bound {tier.up_to} is not above {tier.from_quantity}"
            )
        if tier.unbounded and index != len(schedule) - 1:
            raise TierScheduleError(f"Only the last tier may be unbounded (tier {index})")
        previous_up_to = tier.up_to

    if not schedule[-1].unbounded:
        raise TierScheduleError("Last tier must be unbounded")


def build_tier_schedule(
    ranges: Iterable[Tuple[Union[str, float], Union[str, float, None], Union[str, float]]]
) -> TierSchedule:
    """
    Build a validated schedule from (begin, end, rate) rows.

    Rows may arrive in any order (offer files key price dimensions by rate
    code, not by range); they are sorted by their lower bound.

    Args:
        ranges: Iterable of (beginRange, endRange, rate); endRange "Inf" means unbounded

    Returns:
        Immutable tuple of TierRate

    Raises:
        TierScheduleError: If the rows do not form a valid schedule
    """
    try:
        tiers = [
            TierRate(
                from_quantity=_parse_bound(begin) if begin not in (None, "") else 0.0,
                up_to=_parse_bound(end),
                rate=float(rate),
            )
            for begin, end, rate in ranges
        ]
    except (TypeError, ValueError) as error:
        raise TierScheduleError(f"Invalid tier range: {error}") from error

    tiers.sort(key=lambda tier: tier.from_quantity)
    schedule = tuple(tiers)
    validate_tier_schedule(schedule)
    return schedule


def calculate_tiered_cost(quantity: float, schedule: Sequence[TierRate]) -> float:
    """
    Total cost for a usage quantity billed against a tier schedule.

    Example, for [(0, 10000, 0.30), (10000, 250000, 0.10), (250000, inf, 0.05)]:
        15000 units -> 10000 x 0.30 + 5000 x 0.10 = 3500

    Args:
        quantity: Usage quantity (units of the schedule)
        schedule: Ordered, contiguous tiers

    Returns:
        Total cost; 0 for non-positive usage or an empty schedule
    """
    if not schedule or quantity <= 0:
        return 0.0

    remaining = quantity
    total = 0.0
    for tier in schedule:
        if remaining <= 0:
            break
        units = min(remaining, tier.capacity)
        total += units * tier.rate
        remaining -= units

    # Schedules are validated to end unbounded; bill any leftover at the last rate
    if remaining > 0:
        total += remaining * schedule[-1].rate

    return total


def first_tier_rate(schedule: Sequence[TierRate]) -> float:
    """Headline (first tier) rate of a schedule, 0 when empty."""
    return schedule[0].rate if schedule else 0.0
