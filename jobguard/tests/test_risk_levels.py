"""Tests for risk level calculation utilities."""

from dataclasses import dataclass

from jobguard.utils.risk_levels import calculate_risk_level, count_by_severity


@dataclass
class Flag:
    severity: str
    detected: bool = True


def flags(*severities):
    return [Flag(severity) for severity in severities]


class TestCountBySeverity:
    """Tests for severity counting."""

    def test_counts_matching_severity(self):
        assert count_by_severity(flags("high", "medium", "high"), "high") == 2
        assert count_by_severity(flags("high", "medium", "high"), "medium") == 1

    def test_undetected_flags_ignored(self):
        """Flags that did not fire never count."""
        assert count_by_severity([Flag("high", detected=False)], "high") == 0


class TestCalculateRiskLevel:
    """Tests for risk level derivation."""

    def test_no_flags_low_probability_is_low(self):
        assert calculate_risk_level([], 0) == "low"
        assert calculate_risk_level([], 39) == "low"

    def test_probability_thresholds(self):
        """Probability alone can raise the level."""
        assert calculate_risk_level([], 40) == "medium"
        assert calculate_risk_level([], 69) == "medium"
        assert calculate_risk_level([], 70) == "high"
        assert calculate_risk_level([], 100) == "high"

    def test_one_high_flag_is_medium(self):
        assert calculate_risk_level(flags("high"), 25) == "medium"

    def test_two_high_flags_are_high(self):
        assert calculate_risk_level(flags("high", "high"), 55) == "high"

    def test_two_medium_flags_are_medium(self):
        assert calculate_risk_level(flags("medium", "medium"), 20) == "medium"

    def test_one_medium_flag_is_low(self):
        assert calculate_risk_level(flags("medium"), 15) == "low"

    def test_undetected_high_flags_do_not_raise_level(self):
        undetected = [Flag("high", detected=False), Flag("high", detected=False)]
        assert calculate_risk_level(undetected, 0) == "low"

    def test_accepts_generator(self):
        assert calculate_risk_level((f for f in flags("high", "high")), 0) == "high"
