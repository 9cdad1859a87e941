"""Elo rating model with margin-of-victory updates.

The rating table is an explicit value: every operation takes an
EloRatingTable and returns a new one. Updates are a running fold and must
be applied in chronological order within a season.
"""

import logging
import math
from collections.abc import Iterable

from nfl_forecast.algorithm.scoring import confidence_tier, round_score
from nfl_forecast.data.models import (
    CompletedGame,
    Confidence,
    EloPrediction,
    EloRatingTable,
    ModelConfig,
)
from nfl_forecast.data.teams import TEAM_NAMES

log = logging.getLogger(__name__)

_DEFAULT_CONFIG = ModelConfig()

# Favorite-win damping constant from the MOV formula
MOV_DAMPING = 2.2


def initialize_ratings(
    previous: EloRatingTable | None = None,
    teams: Iterable[str] = TEAM_NAMES,
    config: ModelConfig | None = None,
) -> EloRatingTable:
    """
    Create a season-start rating table.

    Without a prior table every team starts at the base rating. With one,
    each rating regresses toward the base:
    new = base + (prior - base) * regression

    Args:
        previous: Prior season's final table (optional)
        teams: Teams to include (defaults to the registry)
        config: Optional config for base rating and regression

    Returns:
        New EloRatingTable with exactly one entry per team
    """
    if config is None:
        config = _DEFAULT_CONFIG

    base = config.elo_base_rating
    ratings = {}
    for team in teams:
        prior = previous.get(team) if previous is not None else None
        if prior is None:
            ratings[team] = base
        else:
            ratings[team] = base + (prior - base) * config.elo_regression
    return EloRatingTable(ratings=ratings)


def win_probability(rating_a: float, rating_b: float) -> float:
    """Expected score of A against B: 1 / (1 + 10^((B - A) / 400))."""
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def mov_multiplier(
    margin: float,
    rating_winner: float,
    rating_loser: float,
    config: ModelConfig | None = None,
) -> float:
    """
    Margin-of-victory multiplier for an Elo update.

    ln(|margin| + 1) * coefficient, damped by 2.2 / (0.001 * diff + 2.2)
    when the higher-rated team won. Upsets are never damped, so an
    upset blowout moves ratings more than an expected one.
    """
    if config is None:
        config = _DEFAULT_CONFIG

    multiplier = math.log(abs(margin) + 1) * config.elo_mov_multiplier

    elo_diff = rating_winner - rating_loser
    if elo_diff > 0:
        multiplier *= MOV_DAMPING / (elo_diff * 0.001 + MOV_DAMPING)

    return multiplier


def update_ratings(
    table: EloRatingTable,
    winner: str,
    loser: str,
    winner_score: int,
    loser_score: int,
    config: ModelConfig | None = None,
    logger: logging.Logger | None = None,
) -> EloRatingTable:
    """
    Apply one result to the rating table.

    change = K * mov_multiplier * (1 - P(winner)); the winner gains exactly
    what the loser gives up.

    Returns:
        New table, or `table` itself if either team is unknown
    """
    if config is None:
        config = _DEFAULT_CONFIG
    logger = logger or log

    rating_winner = table.get(winner)
    rating_loser = table.get(loser)
    if rating_winner is None or rating_loser is None:
        logger.error("Cannot update ratings: team not found (winner=%s, loser=%s)", winner, loser)
        return table

    expected = win_probability(rating_winner, rating_loser)
    margin = abs(winner_score - loser_score)
    multiplier = mov_multiplier(margin, rating_winner, rating_loser, config)
    change = config.elo_k_factor * multiplier * (1 - expected)

    updated = table.with_ratings({
        winner: rating_winner + change,
        loser: rating_loser - change,
    })

    logger.debug(
        "Elo update %s over %s %d-%d: %.0f-%.0f -> %.0f-%.0f (change %.1f)",
        winner,
        loser,
        winner_score,
        loser_score,
        rating_winner,
        rating_loser,
        updated.ratings[winner],
        updated.ratings[loser],
        change,
    )
    return updated


def apply_result(
    table: EloRatingTable,
    home_team: str,
    away_team: str,
    home_score: int,
    away_score: int,
    config: ModelConfig | None = None,
    logger: logging.Logger | None = None,
) -> EloRatingTable:
    """Apply a final score by home/away; ties leave the table unchanged."""
    if home_score == away_score:
        return table
    if home_score > away_score:
        return update_ratings(table, home_team, away_team, home_score, away_score, config, logger)
    return update_ratings(table, away_team, home_team, away_score, home_score, config, logger)


def process_results(
    table: EloRatingTable,
    games: Iterable[CompletedGame],
    config: ModelConfig | None = None,
    logger: logging.Logger | None = None,
) -> EloRatingTable:
    """
    Fold completed games into the table in chronological order.

    Games are stable-sorted by (week, kickoff) before folding, since the
    order of updates changes the final ratings.
    """
    def chronological(game: CompletedGame) -> tuple[int, float]:
        kickoff = game.game_date.timestamp() if game.game_date else 0.0
        return (game.week or 0, kickoff)

    for game in sorted(games, key=chronological):
        table = apply_result(
            table,
            game.home_team,
            game.away_team,
            game.home_score,
            game.away_score,
            config,
            logger,
        )
    return table


def confidence_from_elo_gap(gap: float, config: ModelConfig | None = None) -> Confidence:
    """High at a gap of 100+ Elo points, medium at 50+, otherwise low."""
    if config is None:
        config = _DEFAULT_CONFIG
    return confidence_tier(gap, config.elo_high_confidence, config.elo_medium_confidence)


def predict_game(
    table: EloRatingTable,
    home_team: str,
    away_team: str,
    config: ModelConfig | None = None,
    logger: logging.Logger | None = None,
) -> EloPrediction | None:
    """
    Predict a game from Elo ratings alone.

    The home rating gets the home-field Elo bonus before the win probability
    is computed. Projected scores start from the league-average score and
    shift each side by half the rating gap converted to points.

    Returns:
        EloPrediction, or None if either team has no rating
    """
    if config is None:
        config = _DEFAULT_CONFIG
    logger = logger or log

    home_rating = table.get(home_team)
    away_rating = table.get(away_team)
    if home_rating is None or away_rating is None:
        logger.error("Cannot predict: team ratings not found (home=%s, away=%s)", home_team, away_team)
        return None

    adjusted_home = home_rating + config.home_field_elo
    home_prob = win_probability(adjusted_home, away_rating)
    away_prob = 1 - home_prob

    rating_diff = adjusted_home - away_rating
    point_diff = rating_diff / config.elo_points_per_point

    return EloPrediction(
        home_team=home_team,
        away_team=away_team,
        predicted_winner=home_team if home_prob > 0.5 else away_team,
        home_win_probability=home_prob,
        away_win_probability=away_prob,
        confidence=confidence_from_elo_gap(rating_diff, config),
        elo_difference=abs(rating_diff),
        predicted_score=(
            round_score(config.league_average_score + point_diff / 2),
            round_score(config.league_average_score - point_diff / 2),
        ),
        home_rating=home_rating,
        away_rating=away_rating,
    )


def power_rankings(table: EloRatingTable) -> list[tuple[int, str, float]]:
    """Teams ordered by rating, highest first, as (rank, team, rating)."""
    ordered = sorted(table.ratings.items(), key=lambda item: item[1], reverse=True)
    return [(rank, team, rating) for rank, (team, rating) in enumerate(ordered, start=1)]
