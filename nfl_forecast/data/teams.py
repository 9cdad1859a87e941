"""Static NFL team registry and team-name resolution."""

import logging

from nfl_forecast.data.models import Team

log = logging.getLogger(__name__)


def _team(name: str, abbreviation: str, location: str, nickname: str, conference: str, division: str) -> Team:
    return Team(
        name=name,
        abbreviation=abbreviation,
        location=location,
        nickname=nickname,
        conference=conference,
        division=division,
    )


_TEAMS = [
    _team("Arizona Cardinals", "ARI", "Arizona", "Cardinals", "NFC", "West"),
    _team("Atlanta Falcons", "ATL", "Atlanta", "Falcons", "NFC", "South"),
    _team("Baltimore Ravens", "BAL", "Baltimore", "Ravens", "AFC", "North"),
    _team("Buffalo Bills", "BUF", "Buffalo", "Bills", "AFC", "East"),
    _team("Carolina Panthers", "CAR", "Carolina", "Panthers", "NFC", "South"),
    _team("Chicago Bears", "CHI", "Chicago", "Bears", "NFC", "North"),
    _team("Cincinnati Bengals", "CIN", "Cincinnati", "Bengals", "AFC", "North"),
    _team("Cleveland Browns", "CLE", "Cleveland", "Browns", "AFC", "North"),
    _team("Dallas Cowboys", "DAL", "Dallas", "Cowboys", "NFC", "East"),
    _team("Denver Broncos", "DEN", "Denver", "Broncos", "AFC", "West"),
    _team("Detroit Lions", "DET", "Detroit", "Lions", "NFC", "North"),
    _team("Green Bay Packers", "GB", "Green Bay", "Packers", "NFC", "North"),
    _team("Houston Texans", "HOU", "Houston", "Texans", "AFC", "South"),
    _team("Indianapolis Colts", "IND", "Indianapolis", "Colts", "AFC", "South"),
    _team("Jacksonville Jaguars", "JAX", "Jacksonville", "Jaguars", "AFC", "South"),
    _team("Kansas City Chiefs", "KC", "Kansas City", "Chiefs", "AFC", "West"),
    _team("Las Vegas Raiders", "LV", "Las Vegas", "Raiders", "AFC", "West"),
    _team("Los Angeles Chargers", "LAC", "Los Angeles", "Chargers", "AFC", "West"),
    _team("Los Angeles Rams", "LAR", "Los Angeles", "Rams", "NFC", "West"),
    _team("Miami Dolphins", "MIA", "Miami", "Dolphins", "AFC", "East"),
    _team("Minnesota Vikings", "MIN", "Minnesota", "Vikings", "NFC", "North"),
    _team("New England Patriots", "NE", "New England", "Patriots", "AFC", "East"),
    _team("New Orleans Saints", "NO", "New Orleans", "Saints", "NFC", "South"),
    _team("New York Giants", "NYG", "New York", "Giants", "NFC", "East"),
    _team("New York Jets", "NYJ", "New York", "Jets", "AFC", "East"),
    _team("Philadelphia Eagles", "PHI", "Philadelphia", "Eagles", "NFC", "East"),
    _team("Pittsburgh Steelers", "PIT", "Pittsburgh", "Steelers", "AFC", "North"),
    _team("San Francisco 49ers", "SF", "San Francisco", "49ers", "NFC", "West"),
    _team("Seattle Seahawks", "SEA", "Seattle", "Seahawks", "NFC", "West"),
    _team("Tampa Bay Buccaneers", "TB", "Tampa Bay", "Buccaneers", "NFC", "South"),
    _team("Tennessee Titans", "TEN", "Tennessee", "Titans", "AFC", "South"),
    _team("Washington Commanders", "WAS", "Washington", "Commanders", "NFC", "East"),
]

NFL_TEAMS: dict[str, Team] = {t.name: t for t in _TEAMS}

# Registry order, used wherever every team needs an entry
TEAM_NAMES: tuple[str, ...] = tuple(NFL_TEAMS)

ABBREV_TO_NAME: dict[str, str] = {t.abbreviation: t.name for t in _TEAMS}

# Upstream (ESPN) abbreviation variants
ABBREV_ALTERNATES: dict[str, str] = {
    "WSH": "WAS",
    "LA": "LAR",
}


def get_team(name: str) -> Team | None:
    """Get a team by canonical name."""
    return NFL_TEAMS.get(name)


def is_valid_team(name: str) -> bool:
    return name in NFL_TEAMS


def normalize_team_name(name: str, logger: logging.Logger | None = None) -> str:
    """
    Resolve a team name, abbreviation, or nickname to its canonical name.

    Resolution order: canonical name, abbreviation, alternate abbreviation,
    then a case-insensitive match on full name, abbreviation, or nickname.

    Args:
        name: Raw team identifier from any upstream source
        logger: Optional logger for unresolved names

    Returns:
        Canonical team name, or the input unchanged if it cannot be resolved
    """
    logger = logger or log

    if name in NFL_TEAMS:
        return name

    if name in ABBREV_TO_NAME:
        return ABBREV_TO_NAME[name]

    if name in ABBREV_ALTERNATES:
        return ABBREV_TO_NAME[ABBREV_ALTERNATES[name]]

    lower = name.strip().lower()
    for team in _TEAMS:
        if lower in (team.name.lower(), team.abbreviation.lower(), team.nickname.lower()):
            return team.name

    logger.warning("Unknown team name: %s", name)
    return name


def teams_in_division(conference: str, division: str) -> list[Team]:
    """List the four teams in a conference division (e.g. "AFC", "West")."""
    return [t for t in _TEAMS if t.conference == conference and t.division == division]
