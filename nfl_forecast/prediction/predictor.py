"""Blended predictor combining the Elo and efficiency models.

The predictor runs both models on the same matchup, averages their score
projections with fixed weights, and reports the stricter of the two
confidence tiers. Stored predictions are later reconciled against final
scores to measure accuracy.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from nfl_forecast.algorithm import efficiency, elo
from nfl_forecast.algorithm.scoring import round_score, stricter_confidence
from nfl_forecast.data.models import (
    AccuracyReport,
    CompletedGame,
    EloRatingTable,
    FinalScore,
    GamePrediction,
    LeagueAverage,
    ModelBreakdown,
    ModelConfig,
    ModelSummary,
    Rankings,
    TeamSeasonAggregate,
    TierAccuracy,
    UpcomingGame,
)

log = logging.getLogger(__name__)

CONFIDENCE_TIERS = ("high", "medium", "low")


@dataclass
class PredictionContext:
    """Everything both models need to predict a slate of games."""

    elo_ratings: EloRatingTable
    team_stats: dict[str, TeamSeasonAggregate]
    league_average: LeagueAverage
    rankings: Rankings = field(default_factory=Rankings)
    config: ModelConfig = field(default_factory=ModelConfig)
    logger: logging.Logger | None = None

    @property
    def log(self) -> logging.Logger:
        return self.logger or log


def predict(
    game: UpcomingGame | CompletedGame,
    context: PredictionContext,
) -> GamePrediction | None:
    """
    Generate a blended prediction for one game.

    Each side's score is round(elo * elo_weight + efficiency * efficiency_weight).
    The side with the higher blended score wins; if the blended scores tie,
    the Elo model's pick stands, since it carries the larger weight.
    Confidence is the lower of the two models' tiers.

    Args:
        game: Game to predict (home/away teams, id, date)
        context: Ratings, aggregates, league average, rankings, config

    Returns:
        GamePrediction, or None if either model cannot predict the game
    """
    config = context.config
    home_team = game.home_team
    away_team = game.away_team

    elo_prediction = elo.predict_game(
        context.elo_ratings, home_team, away_team, config, context.log
    )
    efficiency_prediction = efficiency.predict_game(
        context.team_stats.get(home_team),
        context.team_stats.get(away_team),
        context.league_average,
        context.rankings,
        config,
        context.log,
    )

    if elo_prediction is None or efficiency_prediction is None:
        context.log.error("Failed to generate predictions for %s vs %s", home_team, away_team)
        return None

    elo_home, elo_away = elo_prediction.predicted_score
    eff_home, eff_away = efficiency_prediction.predicted_score

    final_home = round_score(elo_home * config.elo_weight + eff_home * config.efficiency_weight)
    final_away = round_score(elo_away * config.elo_weight + eff_away * config.efficiency_weight)

    if final_home > final_away:
        winner = home_team
    elif final_away > final_home:
        winner = away_team
    else:
        winner = elo_prediction.predicted_winner

    return GamePrediction(
        game_id=game.game_id,
        game_date=game.game_date,
        week=game.week,
        home_team=home_team,
        away_team=away_team,
        predicted_winner=winner,
        predicted_score=(final_home, final_away),
        spread=final_home - final_away,
        confidence=stricter_confidence(
            elo_prediction.confidence, efficiency_prediction.confidence
        ),
        timestamp=datetime.now(timezone.utc),
        checked=False,
        models=ModelBreakdown(
            elo=ModelSummary(
                winner=elo_prediction.predicted_winner,
                score=elo_prediction.predicted_score,
                confidence=elo_prediction.confidence,
                home_win_probability=elo_prediction.home_win_probability,
                away_win_probability=elo_prediction.away_win_probability,
            ),
            efficiency=ModelSummary(
                winner=efficiency_prediction.predicted_winner,
                score=efficiency_prediction.predicted_score,
                confidence=efficiency_prediction.confidence,
                home_efficiency=efficiency_prediction.home_efficiency,
                away_efficiency=efficiency_prediction.away_efficiency,
            ),
        ),
    )


def predict_games(
    games: Iterable[UpcomingGame | CompletedGame],
    context: PredictionContext,
) -> list[GamePrediction]:
    """
    Predict a batch of games independently.

    A game that fails (returns None or raises) is logged and left out;
    it never aborts the batch.
    """
    games = list(games)
    predictions = []

    for game in games:
        try:
            prediction = predict(game, context)
        except Exception as e:
            context.log.error(
                "Failed to predict game %s vs %s: %s", game.home_team, game.away_team, e
            )
            continue
        if prediction is not None:
            predictions.append(prediction)

    context.log.info("Generated %d/%d predictions", len(predictions), len(games))
    return predictions


def check_prediction(
    prediction: GamePrediction,
    result: FinalScore,
    checked_at: datetime | None = None,
) -> GamePrediction:
    """
    Reconcile a prediction with the final score.

    Score error is the Manhattan distance |pred_home - home| + |pred_away - away|.
    A tied game has no actual winner and counts as incorrect. Predictions
    that are already checked are returned as-is.

    Returns:
        A new GamePrediction with the actual fields set and checked=True
    """
    if prediction.checked:
        return prediction

    actual_winner = result.winner
    pred_home, pred_away = prediction.predicted_score
    score_error = abs(pred_home - result.home_score) + abs(pred_away - result.away_score)

    return prediction.model_copy(
        update={
            "checked": True,
            "correct": actual_winner is not None and prediction.predicted_winner == actual_winner,
            "actual_winner": actual_winner,
            "actual_score": (result.home_score, result.away_score),
            "score_error": score_error,
            "checked_at": checked_at or datetime.now(timezone.utc),
        }
    )


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def calculate_accuracy(predictions: Iterable[GamePrediction]) -> AccuracyReport:
    """
    Overall and per-confidence-tier accuracy of checked predictions.

    Unchecked predictions are ignored. Empty sets and empty tiers report
    0%, and the mean score error is 0 when nothing has been checked.
    """
    checked = [p for p in predictions if p.checked]
    total = len(checked)
    correct = sum(1 for p in checked if p.correct)

    by_confidence = {}
    for tier in CONFIDENCE_TIERS:
        tier_preds = [p for p in checked if p.confidence == tier]
        tier_correct = sum(1 for p in tier_preds if p.correct)
        by_confidence[tier] = TierAccuracy(
            total=len(tier_preds),
            correct=tier_correct,
            accuracy=_percentage(tier_correct, len(tier_preds)),
        )

    total_error = sum(p.score_error or 0 for p in checked)

    return AccuracyReport(
        total=total,
        correct=correct,
        incorrect=total - correct,
        accuracy=_percentage(correct, total),
        by_confidence=by_confidence,
        avg_score_error=total_error / total if total > 0 else 0.0,
    )
