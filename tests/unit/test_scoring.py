"""Tests for score rounding and confidence tiers."""

import pytest


class TestRoundScore:
    """Tests for projected score rounding."""

    @pytest.mark.parametrize(
        "points,expected",
        [(23.4, 23), (23.5, 24), (24.5, 25), (0.4, 0), (-3.2, 0), (0.0, 0)],
    )
    def test_half_up_floored_at_zero(self, points, expected):
        from nfl_forecast.algorithm.scoring import round_score

        assert round_score(points) == expected


class TestConfidenceTier:
    """Tests for gap-to-tier mapping."""

    def test_thresholds_inclusive(self):
        from nfl_forecast.algorithm.scoring import confidence_tier

        assert confidence_tier(100, 100, 50) == "high"
        assert confidence_tier(99.9, 100, 50) == "medium"
        assert confidence_tier(50, 100, 50) == "medium"
        assert confidence_tier(49.9, 100, 50) == "low"

    def test_sign_ignored(self):
        from nfl_forecast.algorithm.scoring import confidence_tier

        assert confidence_tier(-12, 10, 6) == "high"


class TestStricterConfidence:
    """Tests for combining two tiers."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("high", "high", "high"),
            ("high", "medium", "medium"),
            ("low", "high", "low"),
            ("medium", "low", "low"),
        ],
    )
    def test_lower_tier_wins(self, a, b, expected):
        from nfl_forecast.algorithm.scoring import stricter_confidence

        assert stricter_confidence(a, b) == expected
        assert stricter_confidence(b, a) == expected
