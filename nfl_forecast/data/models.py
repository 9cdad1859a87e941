"""Pydantic data models for the NFL forecast system."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

Confidence = Literal["high", "medium", "low"]
RankCategory = Literal["offensive", "defensive", "rush_offense", "pass_defense"]

CONFIDENCE_LEVELS: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


class Team(BaseModel):
    """Represents an NFL franchise."""

    name: str  # Canonical display name, e.g. "Kansas City Chiefs"
    abbreviation: str
    location: str
    nickname: str
    conference: Literal["AFC", "NFC"]
    division: Literal["East", "North", "South", "West"]

    model_config = {"frozen": True}


# ==================== Box score inputs ====================


class EfficiencyStat(BaseModel):
    """A made/attempts composite stat such as third-down conversions ("5-12")."""

    made: int = 0
    attempts: int = 0
    percentage: float = 0.0

    model_config = {"frozen": True}


# Normalized box-score values: composite, numeric, or an unparsed string
StatValue = EfficiencyStat | float | str


class TeamGameStats(BaseModel):
    """One team's normalized box score for a single game."""

    passing_yards: StatValue = 0
    rushing_yards: StatValue = 0
    total_yards: StatValue = 0
    turnovers: StatValue = 0
    possession_time: StatValue = 0  # Seconds
    sacks: StatValue = 0
    third_down_eff: StatValue | None = None
    red_zone_eff: StatValue | None = None

    model_config = {"frozen": True}


class CompletedGame(BaseModel):
    """A finished game with final scores and both teams' box scores."""

    game_id: str
    game_date: datetime | None = None
    week: int | None = None
    home_team: str
    away_team: str
    scores: dict[str, int] = Field(default_factory=dict)  # team -> points
    stats: dict[str, TeamGameStats] = Field(default_factory=dict)  # team -> box score

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def teams_must_differ(self) -> "CompletedGame":
        """Ensure home and away teams are different."""
        if self.home_team == self.away_team:
            raise ValueError("Home and away teams must be different")
        return self

    @property
    def home_score(self) -> int:
        return self.scores.get(self.home_team, 0)

    @property
    def away_score(self) -> int:
        return self.scores.get(self.away_team, 0)


class UpcomingGame(BaseModel):
    """A scheduled (or in-progress) game to be predicted."""

    game_id: str
    game_date: datetime | None = None
    week: int | None = None
    home_team: str
    away_team: str
    status: str | None = None

    model_config = {"frozen": True}


class FinalScore(BaseModel):
    """Final result used to check a stored prediction."""

    game_id: str
    home_team: str
    away_team: str
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)

    model_config = {"frozen": True}

    @property
    def winner(self) -> str | None:
        """Team with the higher score, or None for a tie."""
        if self.home_score > self.away_score:
            return self.home_team
        if self.away_score > self.home_score:
            return self.away_team
        return None

    @property
    def loser(self) -> str | None:
        if self.winner is None:
            return None
        return self.away_team if self.winner == self.home_team else self.home_team


class Injury(BaseModel):
    """Coarse injury tag for a single player."""

    player_id: str
    name: str
    team: str | None = None
    position: str | None = None
    depth_chart_position: str | None = None
    status: str
    body_part: str | None = None
    notes: str | None = None

    model_config = {"frozen": True}


# ==================== Aggregates and rankings ====================


class TeamSeasonAggregate(BaseModel):
    """Season totals for one team, rebuilt from the full game history.

    Averages and percentages stay None until the team has played a game.
    """

    team: str
    games: int = 0
    passing_yards: float = 0.0
    rushing_yards: float = 0.0
    total_yards: float = 0.0
    turnovers: float = 0.0
    sacks: float = 0.0
    possession_time: float = 0.0
    third_down_attempts: int = 0
    third_down_conversions: int = 0
    red_zone_attempts: int = 0
    red_zone_scores: int = 0
    points_for: int = 0
    points_against: int = 0
    passing_yards_allowed: float = 0.0
    rushing_yards_allowed: float = 0.0
    wins: int = 0
    losses: int = 0

    # Derived per-game values
    avg_passing_yards: float | None = None
    avg_rushing_yards: float | None = None
    avg_total_yards: float | None = None
    avg_points_for: float | None = None
    avg_points_against: float | None = None
    avg_passing_yards_allowed: float | None = None
    avg_rushing_yards_allowed: float | None = None
    third_down_pct: float | None = None
    red_zone_pct: float | None = None

    model_config = {"frozen": True}

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}"

    @property
    def has_games(self) -> bool:
        return self.games > 0


class LeagueAverage(BaseModel):
    """League-wide mean of each per-game average.

    The defaults are the fallback used before any team has played.
    """

    avg_total_yards: float = 350.0
    avg_points_for: float = 23.0
    avg_points_against: float = 23.0
    avg_passing_yards: float = 230.0
    avg_rushing_yards: float = 120.0

    model_config = {"frozen": True}


class Rankings(BaseModel):
    """Ordinal ranks (1 = best) per category for teams that have played."""

    offensive: dict[str, int] = Field(default_factory=dict)
    defensive: dict[str, int] = Field(default_factory=dict)
    rush_offense: dict[str, int] = Field(default_factory=dict)
    pass_defense: dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def rank(self, category: RankCategory, team: str, default: int = 16) -> int:
        """Look up a team's rank, falling back to `default` for unranked teams."""
        return getattr(self, category).get(team, default)


class EloRatingTable(BaseModel):
    """One Elo rating per team, threaded through every Elo operation."""

    ratings: dict[str, float] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def get(self, team: str) -> float | None:
        return self.ratings.get(team)

    def __contains__(self, team: object) -> bool:
        return team in self.ratings

    def __len__(self) -> int:
        return len(self.ratings)

    def with_ratings(self, updates: dict[str, float]) -> "EloRatingTable":
        """Return a new table with `updates` applied."""
        return EloRatingTable(ratings={**self.ratings, **updates})


# ==================== Predictions ====================


class EloPrediction(BaseModel):
    """Elo engine output for one matchup."""

    home_team: str
    away_team: str
    predicted_winner: str
    home_win_probability: float
    away_win_probability: float
    confidence: Confidence
    elo_difference: float  # |adjusted home rating - away rating|
    predicted_score: tuple[int, int]  # (home, away)
    home_rating: float
    away_rating: float

    model_config = {"frozen": True}


class EfficiencyPrediction(BaseModel):
    """Efficiency engine output for one matchup."""

    home_team: str
    away_team: str
    predicted_winner: str
    predicted_score: tuple[int, int]  # (home, away)
    confidence: Confidence
    score_difference: int
    home_efficiency: float
    away_efficiency: float
    home_matchup: float
    away_matchup: float
    home_situational: float
    away_situational: float

    model_config = {"frozen": True}


class ModelSummary(BaseModel):
    """One sub-model's verdict, kept on the blended prediction."""

    winner: str
    score: tuple[int, int]
    confidence: Confidence
    home_win_probability: float | None = None
    away_win_probability: float | None = None
    home_efficiency: float | None = None
    away_efficiency: float | None = None

    model_config = {"frozen": True}


class ModelBreakdown(BaseModel):
    elo: ModelSummary
    efficiency: ModelSummary

    model_config = {"frozen": True}


class GamePrediction(BaseModel):
    """Blended prediction for one matchup, later reconciled with the result."""

    game_id: str
    game_date: datetime | None = None
    week: int | None = None
    home_team: str
    away_team: str
    predicted_winner: str
    predicted_score: tuple[int, int]  # (home, away)
    spread: int  # home - away
    confidence: Confidence
    timestamp: datetime
    checked: bool = False
    models: ModelBreakdown

    # Set once when the result is checked
    correct: bool | None = None
    actual_winner: str | None = None
    actual_score: tuple[int, int] | None = None
    score_error: int | None = None
    checked_at: datetime | None = None

    model_config = {"frozen": True}

    @property
    def score_line(self) -> str:
        return f"{self.predicted_score[0]}-{self.predicted_score[1]}"


class TierAccuracy(BaseModel):
    total: int = 0
    correct: int = 0
    accuracy: float = 0.0


class AccuracyReport(BaseModel):
    """Accuracy over a set of checked predictions."""

    total: int = 0
    correct: int = 0
    incorrect: int = 0
    accuracy: float = 0.0  # Percentage
    by_confidence: dict[str, TierAccuracy] = Field(default_factory=dict)
    avg_score_error: float = 0.0


# ==================== Stored snapshots ====================


class SeasonSnapshot(BaseModel):
    """Everything the prediction step needs, refreshed by the data update."""

    last_updated: datetime
    season: int
    games: list[CompletedGame] = Field(default_factory=list)
    team_stats: dict[str, TeamSeasonAggregate] = Field(default_factory=dict)
    rankings: Rankings = Field(default_factory=Rankings)
    injuries: dict[str, list[Injury]] = Field(default_factory=dict)
    upcoming_games: list[UpcomingGame] = Field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total_games": len(self.games),
            "upcoming_games": len(self.upcoming_games),
            "injured_players": sum(len(v) for v in self.injuries.values()),
        }


class InjuryOverrides(BaseModel):
    """Manually maintained injuries, merged over the fetched report."""

    injuries: dict[str, list[Injury]] = Field(default_factory=dict)


class EloState(BaseModel):
    """Persisted Elo table and the season it belongs to."""

    season: int
    ratings: EloRatingTable
    last_updated: datetime


class PredictionSet(BaseModel):
    last_updated: datetime
    season: int
    predictions: list[GamePrediction] = Field(default_factory=list)
    summary: dict[str, int] = Field(default_factory=dict)


class ResultsHistory(BaseModel):
    last_updated: datetime | None = None
    results: list[GamePrediction] = Field(default_factory=list)
    accuracy: AccuracyReport = Field(default_factory=AccuracyReport)


class CheckSummary(BaseModel):
    checked: int = 0
    correct: int = 0
    incorrect: int = 0


class BacktestResult(BaseModel):
    start_week: int
    end_week: int
    season: int
    last_updated: datetime
    results: list[GamePrediction] = Field(default_factory=list)
    accuracy: AccuracyReport = Field(default_factory=AccuracyReport)
    final_ratings: EloRatingTable = Field(default_factory=EloRatingTable)


# ==================== Configuration ====================


class ModelConfig(BaseModel):
    """Tunable parameters of the rating and prediction core.

    Grouped into:
    - Home field (3): Point and Elo home advantage, Elo-to-points scale
    - Elo (5): K-factor, regression, base rating, MOV coefficient, league score
    - Confidence (4): Elo-gap and score-gap thresholds
    - Efficiency (12): Rating weights, score adjustments, matchup, situational
    - Blend (2): Elo / efficiency weights
    - Workflow (1): Hours to wait before checking a result
    """

    # ========== HOME FIELD (3) ==========
    home_field_advantage: float = 2.5  # Points, efficiency model
    home_field_elo: float = 25.0  # Elo points added to the home rating
    elo_points_per_point: float = Field(default=25.0, gt=0)

    # ========== ELO (5) ==========
    elo_k_factor: float = Field(default=20.0, gt=0)
    elo_regression: float = Field(default=1 / 3, ge=0, le=1)
    elo_base_rating: float = 1500.0
    elo_mov_multiplier: float = 1.0
    league_average_score: float = 23.0

    # ========== CONFIDENCE (4) ==========
    elo_high_confidence: float = 100.0
    elo_medium_confidence: float = 50.0
    efficiency_high_confidence: float = 10.0
    efficiency_medium_confidence: float = 6.0

    # ========== EFFICIENCY (12) ==========
    offensive_weight: float = 0.35
    defensive_weight: float = 0.35
    scoring_weight: float = 0.30
    efficiency_scale: float = 1000.0
    offense_adjustment: float = 0.5
    defense_adjustment: float = 0.3
    matchup_weight: float = 0.15
    default_rank: int = Field(default=16, gt=0)
    default_third_down_pct: float = 40.0
    default_red_zone_pct: float = 50.0
    third_down_weight: float = 0.05
    red_zone_weight: float = 0.03

    # ========== BLEND (2) ==========
    elo_weight: float = Field(default=0.6, ge=0, le=1)
    efficiency_weight: float = Field(default=0.4, ge=0, le=1)

    # ========== WORKFLOW (1) ==========
    result_check_hours: float = Field(default=4.0, ge=0)

    @model_validator(mode="after")
    def thresholds_and_weights(self) -> "ModelConfig":
        """Blend weights must sum to 1 and high thresholds must exceed medium."""
        if abs(self.elo_weight + self.efficiency_weight - 1.0) > 1e-9:
            raise ValueError("elo_weight and efficiency_weight must sum to 1")
        if self.elo_high_confidence < self.elo_medium_confidence:
            raise ValueError("elo_high_confidence must be >= elo_medium_confidence")
        if self.efficiency_high_confidence < self.efficiency_medium_confidence:
            raise ValueError(
                "efficiency_high_confidence must be >= efficiency_medium_confidence"
            )
        return self
