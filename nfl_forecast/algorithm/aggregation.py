"""Season aggregation of per-game box scores.

Aggregates are a pure function of the completed-game list: they are
rebuilt from scratch on every pass and never updated incrementally.
"""

import logging
from collections.abc import Iterable

from nfl_forecast.data.models import (
    CompletedGame,
    EfficiencyStat,
    LeagueAverage,
    TeamSeasonAggregate,
)
from nfl_forecast.data.teams import TEAM_NAMES

log = logging.getLogger(__name__)

_SUMMED_FIELDS = (
    "passing_yards",
    "rushing_yards",
    "total_yards",
    "turnovers",
    "sacks",
    "possession_time",
)


def _as_number(value: object) -> float:
    """Numeric value of a normalized stat; unparsed strings contribute nothing."""
    if isinstance(value, EfficiencyStat):
        return float(value.made)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def _new_totals() -> dict:
    totals: dict = {field: 0.0 for field in _SUMMED_FIELDS}
    totals.update(
        games=0,
        third_down_attempts=0,
        third_down_conversions=0,
        red_zone_attempts=0,
        red_zone_scores=0,
        points_for=0,
        points_against=0,
        passing_yards_allowed=0.0,
        rushing_yards_allowed=0.0,
        wins=0,
        losses=0,
    )
    return totals


def aggregate_stats(
    games: Iterable[CompletedGame],
    teams: Iterable[str] = TEAM_NAMES,
    logger: logging.Logger | None = None,
) -> dict[str, TeamSeasonAggregate]:
    """
    Fold completed games into season aggregates for every team.

    Every team in `teams` appears in the output, with games=0 if it has not
    played. Third-down and red-zone counts only accumulate from made/attempts
    stats; scalar or missing values are skipped rather than counted as zero
    attempts. A tied game counts as neither a win nor a loss.

    Args:
        games: Completed games with box scores and a score map
        teams: Team names to initialize (defaults to the registry)
        logger: Optional logger for unknown team names

    Returns:
        Dict mapping team name to TeamSeasonAggregate
    """
    logger = logger or log
    totals: dict[str, dict] = {team: _new_totals() for team in teams}

    for game in games:
        names = list(game.stats)
        for team_name in names:
            agg = totals.get(team_name)
            if agg is None:
                logger.warning("Unknown team in game stats: %s (game %s)", team_name, game.game_id)
                continue

            stats = game.stats[team_name]
            agg["games"] += 1
            for field in _SUMMED_FIELDS:
                agg[field] += _as_number(getattr(stats, field))

            if isinstance(stats.third_down_eff, EfficiencyStat):
                agg["third_down_conversions"] += stats.third_down_eff.made
                agg["third_down_attempts"] += stats.third_down_eff.attempts

            if isinstance(stats.red_zone_eff, EfficiencyStat):
                agg["red_zone_scores"] += stats.red_zone_eff.made
                agg["red_zone_attempts"] += stats.red_zone_eff.attempts

            opponent = next((t for t in names if t != team_name), None)
            if opponent is not None:
                opp_stats = game.stats[opponent]
                agg["passing_yards_allowed"] += _as_number(opp_stats.passing_yards)
                agg["rushing_yards_allowed"] += _as_number(opp_stats.rushing_yards)

            if game.scores:
                team_points = game.scores.get(team_name, 0)
                agg["points_for"] += team_points
                if opponent is not None:
                    opp_points = game.scores.get(opponent, 0)
                    agg["points_against"] += opp_points
                    if team_points > opp_points:
                        agg["wins"] += 1
                    elif team_points < opp_points:
                        agg["losses"] += 1

    return {team: _finalize(team, agg) for team, agg in totals.items()}


def _finalize(team: str, agg: dict) -> TeamSeasonAggregate:
    """Derive per-game averages and percentages for teams that have played."""
    games = agg["games"]
    if games == 0:
        return TeamSeasonAggregate(team=team, **agg)

    derived = {
        "avg_passing_yards": agg["passing_yards"] / games,
        "avg_rushing_yards": agg["rushing_yards"] / games,
        "avg_total_yards": agg["total_yards"] / games,
        "avg_points_for": agg["points_for"] / games,
        "avg_points_against": agg["points_against"] / games,
        "avg_passing_yards_allowed": agg["passing_yards_allowed"] / games,
        "avg_rushing_yards_allowed": agg["rushing_yards_allowed"] / games,
        "third_down_pct": (
            agg["third_down_conversions"] / agg["third_down_attempts"] * 100
            if agg["third_down_attempts"] > 0
            else None
        ),
        "red_zone_pct": (
            agg["red_zone_scores"] / agg["red_zone_attempts"] * 100
            if agg["red_zone_attempts"] > 0
            else None
        ),
    }
    return TeamSeasonAggregate(team=team, **agg, **derived)


def calculate_league_averages(
    aggregates: dict[str, TeamSeasonAggregate],
    logger: logging.Logger | None = None,
) -> LeagueAverage:
    """
    Average each per-game stat across teams that have played.

    Falls back to the fixed LeagueAverage defaults (350 / 23 / 23 / 230 / 120)
    when no team has played yet.
    """
    logger = logger or log
    played = [agg for agg in aggregates.values() if agg.has_games]

    if not played:
        logger.warning("No teams with games played for league averages")
        return LeagueAverage()

    count = len(played)
    return LeagueAverage(
        avg_total_yards=sum(a.avg_total_yards for a in played) / count,
        avg_points_for=sum(a.avg_points_for for a in played) / count,
        avg_points_against=sum(a.avg_points_against for a in played) / count,
        avg_passing_yards=sum(a.avg_passing_yards for a in played) / count,
        avg_rushing_yards=sum(a.avg_rushing_yards for a in played) / count,
    )
