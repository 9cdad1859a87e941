"""Score rounding and confidence tiers shared by both rating models."""

import math

from nfl_forecast.data.models import CONFIDENCE_LEVELS, Confidence


def round_score(points: float) -> int:
    """Floor a projected score at zero and round half up to whole points."""
    return int(math.floor(max(0.0, points) + 0.5))


def confidence_tier(gap: float, high_threshold: float, medium_threshold: float) -> Confidence:
    """
    Map an absolute gap onto a confidence tier.

    Args:
        gap: Absolute separation between the two sides (Elo or points)
        high_threshold: Minimum gap for "high"
        medium_threshold: Minimum gap for "medium"

    Returns:
        "high", "medium", or "low"
    """
    gap = abs(gap)
    if gap >= high_threshold:
        return "high"
    if gap >= medium_threshold:
        return "medium"
    return "low"


def stricter_confidence(a: Confidence, b: Confidence) -> Confidence:
    """The lower of two tiers under high > medium > low."""
    return a if CONFIDENCE_LEVELS[a] <= CONFIDENCE_LEVELS[b] else b
