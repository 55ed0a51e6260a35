"""
Risk level utilities.
Risk level is derived from detected flag severities and the scam probability;
it is never taken from input.
"""

from typing import Iterable, Protocol

HIGH_PROBABILITY_THRESHOLD = 70
MEDIUM_PROBABILITY_THRESHOLD = 40

RISK_ORDER = {"low": 0, "medium": 1, "high": 2}


class _Flag(Protocol):
    severity: str
    detected: bool


def count_by_severity(flags: Iterable[_Flag], severity: str) -> int:
    """Count detected flags with the given severity."""
    return sum(1 for flag in flags if flag.detected and flag.severity == severity)


def calculate_risk_level(flags: Iterable[_Flag], probability: int) -> str:
    """
    Derive the risk level:

    - "high" if two or more high-severity flags, or probability >= 70
    - "medium" if one high-severity flag, two or more medium-severity
      flags, or probability >= 40
    - "low" otherwise
    """
    flags = list(flags)
    high_count = count_by_severity(flags, "high")
    medium_count = count_by_severity(flags, "medium")

    if high_count >= 2 or probability >= HIGH_PROBABILITY_THRESHOLD:
        return "high"
    if high_count >= 1 or medium_count >= 2 or probability >= MEDIUM_PROBABILITY_THRESHOLD:
        return "medium"
    return "low"
