"""Shared pytest fixtures for NFL forecast tests."""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def make_stats():
    """Factory for a single team's box score."""
    from nfl_forecast.data.models import EfficiencyStat, TeamGameStats

    def _make(
        passing_yards: float = 230,
        rushing_yards: float = 120,
        total_yards: float = 350,
        third_down: tuple[int, int] | None = (5, 12),
        red_zone: tuple[int, int] | None = (2, 4),
        **kwargs,
    ) -> TeamGameStats:
        def eff(pair):
            if pair is None:
                return None
            made, attempts = pair
            return EfficiencyStat(
                made=made,
                attempts=attempts,
                percentage=made / attempts * 100 if attempts else 0.0,
            )

        return TeamGameStats(
            passing_yards=passing_yards,
            rushing_yards=rushing_yards,
            total_yards=total_yards,
            third_down_eff=eff(third_down),
            red_zone_eff=eff(red_zone),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_game(make_stats):
    """Factory for a completed game with box scores for both sides."""
    from nfl_forecast.data.models import CompletedGame

    def _make(
        game_id: str,
        home: str,
        away: str,
        home_score: int,
        away_score: int,
        week: int = 1,
        game_date: datetime | None = None,
        home_stats=None,
        away_stats=None,
    ) -> CompletedGame:
        return CompletedGame(
            game_id=game_id,
            game_date=game_date or datetime(2024, 9, 8, 17, 0, tzinfo=timezone.utc),
            week=week,
            home_team=home,
            away_team=away,
            scores={home: home_score, away: away_score},
            stats={
                home: home_stats or make_stats(),
                away: away_stats or make_stats(),
            },
        )

    return _make


@pytest.fixture
def sample_games(make_game, make_stats):
    """
    Two weeks of games between four teams.

    Week 1: Chiefs beat Bills 27-20, Eagles beat Cowboys 34-6
    Week 2: Bills beat Cowboys 24-10, Chiefs beat Eagles 21-17
    """
    return [
        make_game(
            "1", "Kansas City Chiefs", "Buffalo Bills", 27, 20, week=1,
            home_stats=make_stats(passing_yards=280, rushing_yards=110, total_yards=390),
            away_stats=make_stats(passing_yards=240, rushing_yards=90, total_yards=330),
        ),
        make_game(
            "2", "Philadelphia Eagles", "Dallas Cowboys", 34, 6, week=1,
            home_stats=make_stats(passing_yards=220, rushing_yards=180, total_yards=400, third_down=(8, 13)),
            away_stats=make_stats(passing_yards=150, rushing_yards=60, total_yards=210, third_down=(2, 11)),
        ),
        make_game(
            "3", "Buffalo Bills", "Dallas Cowboys", 24, 10, week=2,
            game_date=datetime(2024, 9, 15, 17, 0, tzinfo=timezone.utc),
            home_stats=make_stats(passing_yards=260, rushing_yards=130, total_yards=390),
            away_stats=make_stats(passing_yards=200, rushing_yards=70, total_yards=270),
        ),
        make_game(
            "4", "Kansas City Chiefs", "Philadelphia Eagles", 21, 17, week=2,
            game_date=datetime(2024, 9, 15, 20, 25, tzinfo=timezone.utc),
            home_stats=make_stats(passing_yards=250, rushing_yards=100, total_yards=350),
            away_stats=make_stats(passing_yards=210, rushing_yards=150, total_yards=360),
        ),
    ]


@pytest.fixture
def espn_summary():
    """ESPN game summary for a finished Chiefs-Bills game."""
    return {
        "header": {
            "id": "401671001",
            "week": 3,
            "competitions": [
                {
                    "date": "2024-09-22T17:00Z",
                    "status": {"type": {"state": "post"}},
                    "competitors": [
                        {"homeAway": "home", "score": "27", "team": {"displayName": "Kansas City Chiefs"}},
                        {"homeAway": "away", "score": "20", "team": {"displayName": "Buffalo Bills"}},
                    ],
                }
            ],
        },
        "boxscore": {
            "teams": [
                {
                    "team": {"displayName": "Kansas City Chiefs"},
                    "statistics": [
                        {"name": "netPassingYards", "displayValue": "265"},
                        {"name": "rushingYards", "displayValue": "112"},
                        {"name": "totalYards", "displayValue": "377"},
                        {"name": "turnovers", "displayValue": "1"},
                        {"name": "possessionTime", "displayValue": "32:15"},
                        {"name": "thirdDownEff", "displayValue": "6-13"},
                        {"name": "redZoneAttempts", "displayValue": "3-4"},
                        {"name": "sacksYardsLost", "displayValue": "2-14"},
                    ],
                },
                {
                    "team": {"displayName": "Buffalo Bills"},
                    "statistics": [
                        {"name": "netPassingYards", "displayValue": "231"},
                        {"name": "rushingYards", "displayValue": "98"},
                        {"name": "totalYards", "displayValue": "329"},
                        {"name": "turnovers", "displayValue": "2"},
                        {"name": "possessionTime", "displayValue": "27:45"},
                        {"name": "thirdDownEff", "displayValue": "4-11"},
                        {"name": "redZoneAttempts", "displayValue": "2-3"},
                        {"name": "sacksYardsLost", "displayValue": "3-21"},
                    ],
                },
            ]
        },
    }


@pytest.fixture
def model_config():
    """Default model configuration for testing."""
    from nfl_forecast.data.models import ModelConfig

    return ModelConfig()


@pytest.fixture
def in_memory_db():
    """In-memory SQLite database path for isolated testing."""
    return ":memory:"


@pytest.fixture
async def storage(in_memory_db):
    """Storage instance with clean in-memory database."""
    from nfl_forecast.data.storage import Storage

    storage = Storage(db_path=in_memory_db)
    await storage.initialize()
    yield storage
    await storage.close()
