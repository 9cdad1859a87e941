"""Efficiency model: score projections from season aggregates.

A team's projection starts at the league-average score and is pushed up
or down by its own scoring, the opponent's defense, home field, a
rush-offense vs pass-defense rank matchup, and third-down / red-zone
efficiency.
"""

import logging

from nfl_forecast.algorithm.scoring import confidence_tier, round_score
from nfl_forecast.data.models import (
    EfficiencyPrediction,
    LeagueAverage,
    ModelConfig,
    Rankings,
    TeamSeasonAggregate,
)

log = logging.getLogger(__name__)

_DEFAULT_CONFIG = ModelConfig()

# Floor for any per-game average used as a divisor
MIN_DIVISOR = 1.0


def efficiency_rating(
    team: TeamSeasonAggregate,
    league: LeagueAverage,
    config: ModelConfig | None = None,
) -> float:
    """
    Composite efficiency rating on a ~1000 scale.

    (offense * 0.35 + defense * 0.35 + scoring * 0.30) * 1000 where
    offense = yards / league yards, defense = league points allowed /
    points allowed (inverted, fewer is better), scoring = points /
    league points. A team with no games gets the Elo base rating.
    """
    if config is None:
        config = _DEFAULT_CONFIG

    if not team.has_games:
        return config.elo_base_rating

    offensive = team.avg_total_yards / max(league.avg_total_yards, MIN_DIVISOR)
    defensive = league.avg_points_against / max(team.avg_points_against, MIN_DIVISOR)
    scoring = team.avg_points_for / max(league.avg_points_for, MIN_DIVISOR)

    return (
        offensive * config.offensive_weight
        + defensive * config.defensive_weight
        + scoring * config.scoring_weight
    ) * config.efficiency_scale


def matchup_advantage(
    team: str,
    opponent: str,
    rankings: Rankings,
    weight: float = 0.15,
    default_rank: int = 16,
) -> float:
    """
    Points gained from the team's rush offense against the opponent's pass defense.

    (opponent pass-defense rank - team rush-offense rank) * weight, so the
    #1 rushing team facing the #32 pass defense gets the largest boost.
    Unranked teams take `default_rank`.
    """
    rush_offense = rankings.rank("rush_offense", team, default=default_rank)
    opp_pass_defense = rankings.rank("pass_defense", opponent, default=default_rank)
    return (opp_pass_defense - rush_offense) * weight


def situational_adjustment(
    team: TeamSeasonAggregate,
    opponent: TeamSeasonAggregate,
    default_third_down_pct: float = 40.0,
    default_red_zone_pct: float = 50.0,
    third_down_weight: float = 0.05,
    red_zone_weight: float = 0.03,
) -> float:
    """
    Points from third-down and red-zone efficiency differences.

    A 10-point third-down edge is worth 0.5 points, a 10-point red-zone
    edge 0.3. Teams without a recorded percentage use the defaults.
    """
    def pct(value: float | None, default: float) -> float:
        return default if value is None else value

    third_down_diff = pct(team.third_down_pct, default_third_down_pct) - pct(
        opponent.third_down_pct, default_third_down_pct
    )
    red_zone_diff = pct(team.red_zone_pct, default_red_zone_pct) - pct(
        opponent.red_zone_pct, default_red_zone_pct
    )
    return third_down_diff * third_down_weight + red_zone_diff * red_zone_weight


def _points_for(team: TeamSeasonAggregate, league: LeagueAverage) -> float:
    return team.avg_points_for if team.has_games else league.avg_points_for


def _points_against(team: TeamSeasonAggregate, league: LeagueAverage) -> float:
    return team.avg_points_against if team.has_games else league.avg_points_against


def predict_game(
    home: TeamSeasonAggregate | None,
    away: TeamSeasonAggregate | None,
    league: LeagueAverage | None,
    rankings: Rankings | None = None,
    config: ModelConfig | None = None,
    logger: logging.Logger | None = None,
) -> EfficiencyPrediction | None:
    """
    Project a score for both sides from season efficiency.

    score = league PF
            + 0.5 * (team PF - league PF)
            - 0.3 * (opponent PA - league PA)
            + home field (home only) + matchup + situational

    Teams without games score as league-average. Scores are floored at
    zero and rounded; confidence is high at a 10+ point gap, medium at 6+.

    Returns:
        EfficiencyPrediction, or None if a team aggregate or the league
        average is missing
    """
    if config is None:
        config = _DEFAULT_CONFIG
    logger = logger or log

    if home is None or away is None or league is None:
        logger.error("Missing required stats for efficiency prediction")
        return None

    if rankings is None:
        rankings = Rankings()

    home_matchup = matchup_advantage(
        home.team, away.team, rankings, config.matchup_weight, config.default_rank
    )
    away_matchup = matchup_advantage(
        away.team, home.team, rankings, config.matchup_weight, config.default_rank
    )
    home_situational = situational_adjustment(
        home,
        away,
        config.default_third_down_pct,
        config.default_red_zone_pct,
        config.third_down_weight,
        config.red_zone_weight,
    )
    away_situational = situational_adjustment(
        away,
        home,
        config.default_third_down_pct,
        config.default_red_zone_pct,
        config.third_down_weight,
        config.red_zone_weight,
    )

    home_score = league.avg_points_for
    away_score = league.avg_points_for

    # Own offense
    home_score += (_points_for(home, league) - league.avg_points_for) * config.offense_adjustment
    away_score += (_points_for(away, league) - league.avg_points_for) * config.offense_adjustment

    # Opponent defense
    home_score -= (_points_against(away, league) - league.avg_points_against) * config.defense_adjustment
    away_score -= (_points_against(home, league) - league.avg_points_against) * config.defense_adjustment

    home_score += config.home_field_advantage
    home_score += home_matchup + home_situational
    away_score += away_matchup + away_situational

    final_home = round_score(home_score)
    final_away = round_score(away_score)
    score_diff = abs(final_home - final_away)

    return EfficiencyPrediction(
        home_team=home.team,
        away_team=away.team,
        predicted_winner=home.team if final_home > final_away else away.team,
        predicted_score=(final_home, final_away),
        confidence=confidence_tier(
            score_diff,
            config.efficiency_high_confidence,
            config.efficiency_medium_confidence,
        ),
        score_difference=score_diff,
        home_efficiency=efficiency_rating(home, league, config),
        away_efficiency=efficiency_rating(away, league, config),
        home_matchup=home_matchup,
        away_matchup=away_matchup,
        home_situational=home_situational,
        away_situational=away_situational,
    )
