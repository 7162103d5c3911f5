"""
Shared billing-detail templates.
Every estimator builds its "missing price" and "defaulted input" text from
these helpers so that responses keep one shape across service families.
"""
from typing import Iterable


PRICING_NOT_FOUND_TEMPLATE = '{kind} "{value}" not found in pricing data'
PRICING_UNAVAILABLE_TEMPLATE = "{kind} pricing data not available for region {region}"

# Marker substrings callers and tests can rely on
NOT_FOUND_MARKER = "not found"
UNAVAILABLE_MARKER = "not available"

DEFAULTED_SUFFIX = " (defaulted)"


def pricing_not_found(kind: str, value: str) -> str:
    """e.g. 'EC2 instance type "t9.huge" not found in pricing data'."""
    return PRICING_NOT_FOUND_TEMPLATE.format(kind=kind, value=value)


def pricing_unavailable(kind: str, region: str) -> str:
    """e.g. 'CloudWatch Logs ingestion pricing data not available for region us-west-2'."""
    return PRICING_UNAVAILABLE_TEMPLATE.format(kind=kind, region=region)


def defaulted(text: str, was_defaulted: bool) -> str:
    """Append the "(defaulted)" annotation when an input fell back to its default."""
    return f"{text}{DEFAULTED_SUFFIX}" if was_defaulted else text


def defaults_note(notes: Iterable[str]) -> str:
    """Render a parenthesized list of defaulting notes, or '' when there are none."""
    notes = [note for note in notes if note]
    if not notes:
        return ""
    return " (" + ", ".join(notes) + ")"


def format_quantity(value: float) -> str:
    """Integers render without decimals, everything else with two."""
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}"
