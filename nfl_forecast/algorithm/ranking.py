"""Category rankings used for matchup comparisons."""

from collections.abc import Callable

from nfl_forecast.data.models import Rankings, TeamSeasonAggregate


def rank_by(
    aggregates: dict[str, TeamSeasonAggregate],
    key: Callable[[TeamSeasonAggregate], float],
    descending: bool,
) -> dict[str, int]:
    """
    Assign 1-based ranks to teams that have played, ordered by `key`.

    The sort is stable, so equal values keep their input order. There is
    no tolerance: values are compared exactly.
    """
    played = [team for team, agg in aggregates.items() if agg.has_games]
    ordered = sorted(played, key=lambda team: key(aggregates[team]), reverse=descending)
    return {team: position for position, team in enumerate(ordered, start=1)}


def calculate_rankings(aggregates: dict[str, TeamSeasonAggregate]) -> Rankings:
    """
    Rank teams in four independent categories.

    - offensive: total yards per game, most first
    - defensive: points allowed per game, fewest first
    - rush_offense: rushing yards per game, most first
    - pass_defense: passing yards allowed per game, fewest first

    Teams with no games are left out rather than given a rank.
    """
    return Rankings(
        offensive=rank_by(aggregates, lambda a: a.avg_total_yards, descending=True),
        defensive=rank_by(aggregates, lambda a: a.avg_points_against, descending=False),
        rush_offense=rank_by(aggregates, lambda a: a.avg_rushing_yards, descending=True),
        pass_defense=rank_by(aggregates, lambda a: a.avg_passing_yards_allowed, descending=False),
    )
