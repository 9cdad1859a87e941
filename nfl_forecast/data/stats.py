"""Normalization of raw box-score statistics.

Upstream box scores label the same stat in several ways ("netPassingYards",
"Passing Yards", "thirdDownEff") and encode values as display strings
("5-12", "38%", "31:42"). This module maps both onto the canonical
`TeamGameStats` fields.
"""

import logging
import re
from typing import Any

from nfl_forecast.data.models import EfficiencyStat, TeamGameStats
from nfl_forecast.data.teams import normalize_team_name

log = logging.getLogger(__name__)

# Lower-cased, space/dash-stripped label -> canonical field name
STAT_NAMES: dict[str, str] = {
    # Passing
    "passingyards": "passing_yards",
    "netpassingyards": "passing_yards",
    "completionattempts": "completion_attempts",
    "passcompletions": "completion_attempts",
    # Rushing
    "rushingyards": "rushing_yards",
    "rushingattempts": "rushing_attempts",
    # Other offense
    "totalyards": "total_yards",
    "possessiontime": "possession_time",
    "turnovers": "turnovers",
    # Efficiency
    "thirddowneff": "third_down_eff",
    "fourthdowneff": "fourth_down_eff",
    "redzoneattempts": "red_zone_eff",
    "redzoneeff": "red_zone_eff",
    # Defense
    "sacks": "sacks",
    "sacksyardslost": "sacks",
    "tacklesforloss": "tackles_for_loss",
}

_MADE_ATTEMPTS = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_PERCENT = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*%\s*$")
_CLOCK = re.compile(r"^\s*(\d+):(\d{1,2})\s*$")


def normalize_stat_name(raw_name: str) -> str:
    """
    Map a raw stat label onto its canonical field name.

    Whitespace and dashes are stripped and the label lower-cased before the
    lookup. Labels not in STAT_NAMES pass through under their original name.
    """
    key = re.sub(r"[\s-]+", "", raw_name).lower()
    return STAT_NAMES.get(key, raw_name)


def parse_stat_value(value: Any) -> Any:
    """
    Parse a raw stat value by its shape.

    - numbers are returned unchanged
    - "A-B" -> EfficiencyStat(made=A, attempts=B, percentage=A/B*100)
    - "N%" -> N
    - "MM:SS" -> total seconds
    - anything else is parsed as a float, or returned unchanged
    """
    if isinstance(value, bool) or not isinstance(value, str):
        return value

    match = _MADE_ATTEMPTS.match(value)
    if match:
        made_str, attempts_str = match.groups()
        made, attempts = int(made_str), int(attempts_str)
        # Zero attempts ("0-0", "3-00") reports 0%
        percentage = made / attempts * 100 if attempts else 0.0
        return EfficiencyStat(made=made, attempts=attempts, percentage=percentage)

    match = _PERCENT.match(value)
    if match:
        return float(match.group(1))

    match = _CLOCK.match(value)
    if match:
        minutes, seconds = match.groups()
        return int(minutes) * 60 + int(seconds)

    try:
        return float(value)
    except ValueError:
        return value


def parse_boxscore_stats(summary: dict | None) -> dict[str, dict[str, Any]] | None:
    """
    Parse the per-team statistics block of a game summary.

    Args:
        summary: Game summary with `boxscore.teams[i].team.displayName`
            and `boxscore.teams[i].statistics`

    Returns:
        Dict of canonical team name -> {canonical field: parsed value},
        or None if the summary has no box score
    """
    if not summary:
        return None

    teams = (summary.get("boxscore") or {}).get("teams")
    if not teams:
        return None

    stats: dict[str, dict[str, Any]] = {}
    for entry in teams:
        display_name = (entry.get("team") or {}).get("displayName")
        if not display_name:
            continue

        team_data: dict[str, Any] = {}
        for stat in entry.get("statistics") or []:
            field = normalize_stat_name(stat.get("name") or stat.get("label") or "")
            raw = stat.get("displayValue")
            if raw is None:
                raw = stat.get("value")
            team_data[field] = parse_stat_value(raw)

        stats[normalize_team_name(display_name)] = team_data

    return stats


def extract_team_stats(
    summary: dict | None,
    logger: logging.Logger | None = None,
) -> dict[str, TeamGameStats] | None:
    """
    Extract the canonical box score for both teams of a game summary.

    Returns:
        Dict of team -> TeamGameStats, or None unless exactly two teams parse
    """
    logger = logger or log
    stats = parse_boxscore_stats(summary)
    if not stats:
        return None

    if len(stats) != 2:
        logger.warning("Expected 2 teams in boxscore, found %d", len(stats))
        return None

    fields = TeamGameStats.model_fields
    return {
        team: TeamGameStats(**{k: v for k, v in values.items() if k in fields and v is not None})
        for team, values in stats.items()
    }
