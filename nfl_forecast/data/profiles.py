"""Predefined configuration profiles for the forecast models.

Each profile represents a different weighting of the two models:
- default: Standard 60/40 Elo/efficiency blend
- elo_heavy: Trusts long-run team strength over current-season stats
- efficiency_heavy: Trusts current-season stats over Elo
- conservative: Slower Elo movement and stricter confidence tiers
"""

from nfl_forecast.data.models import ModelConfig


# Default - standard blend
DEFAULT = ModelConfig()


# Elo heavy - ratings dominate the blend
ELO_HEAVY = ModelConfig(
    elo_weight=0.8,
    efficiency_weight=0.2,
)


# Efficiency heavy - season stats dominate the blend
EFFICIENCY_HEAVY = ModelConfig(
    elo_weight=0.4,
    efficiency_weight=0.6,
    # Stronger reaction to matchups
    matchup_weight=0.20,
)


# Conservative - damped updates, harder to earn "high"
CONSERVATIVE = ModelConfig(
    elo_k_factor=15.0,
    elo_regression=0.5,
    elo_high_confidence=125.0,
    elo_medium_confidence=75.0,
    efficiency_high_confidence=12.0,
    efficiency_medium_confidence=7.0,
)


# Dictionary of all profiles
PROFILES: dict[str, ModelConfig] = {
    "default": DEFAULT,
    "elo_heavy": ELO_HEAVY,
    "efficiency_heavy": EFFICIENCY_HEAVY,
    "conservative": CONSERVATIVE,
}


def get_profile(name: str) -> ModelConfig:
    """
    Get a configuration profile by name.

    Args:
        name: Profile name (default, elo_heavy, efficiency_heavy, conservative)

    Returns:
        ModelConfig instance

    Raises:
        ValueError: If profile name not found
    """
    if name not in PROFILES:
        available = ", ".join(PROFILES.keys())
        raise ValueError(f"Unknown profile '{name}'. Available: {available}")
    return PROFILES[name]


def list_profiles() -> list[str]:
    """List all available profile names."""
    return list(PROFILES.keys())


def get_profile_description(name: str) -> str:
    """Human-readable description of a profile."""
    descriptions = {
        "default": (
            "60/40 Elo/efficiency blend with standard thresholds. "
            "Good general-purpose profile."
        ),
        "elo_heavy": (
            "80/20 blend toward Elo. "
            "Favors long-run team strength, steadier early in the season."
        ),
        "efficiency_heavy": (
            "40/60 blend toward season efficiency with a stronger matchup term. "
            "Reacts faster to how teams are playing now."
        ),
        "conservative": (
            "Smaller K-factor, more regression to the mean, stricter confidence tiers. "
            "Fewer high-confidence calls."
        ),
    }
    if name not in descriptions:
        return "No description available."
    return descriptions[name]
