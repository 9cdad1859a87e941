"""Forecast engine that orchestrates the data, prediction and grading workflows.

The ForecastEngine ties together:
- Data source (completed games, upcoming games, injuries)
- Season aggregation and rankings
- Elo state across checks and seasons
- Blended predictions and their grading against final scores
"""

import logging
from datetime import datetime, timedelta, timezone

from nfl_forecast.algorithm import elo
from nfl_forecast.algorithm.aggregation import aggregate_stats, calculate_league_averages
from nfl_forecast.algorithm.ranking import calculate_rankings
from nfl_forecast.data.client import ESPNClient
from nfl_forecast.data.models import (
    BacktestResult,
    CheckSummary,
    CompletedGame,
    EloState,
    FinalScore,
    GamePrediction,
    Injury,
    InjuryOverrides,
    ModelConfig,
    PredictionSet,
    ResultsHistory,
    SeasonSnapshot,
)
from nfl_forecast.data.storage import Storage
from nfl_forecast.prediction.predictor import (
    CONFIDENCE_TIERS,
    PredictionContext,
    calculate_accuracy,
    check_prediction,
    predict_games,
)

log = logging.getLogger(__name__)

REGULAR_SEASON_WEEKS = 18


class ForecastError(Exception):
    """Raised when a workflow cannot run (missing inputs or a failed write)."""


def _utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _chronological(prediction: GamePrediction) -> tuple[int, float]:
    kickoff = _utc(prediction.game_date).timestamp() if prediction.game_date else 0.0
    return (prediction.week or 0, kickoff)


def _final_score(game: CompletedGame) -> FinalScore:
    return FinalScore(
        game_id=game.game_id,
        home_team=game.home_team,
        away_team=game.away_team,
        home_score=game.home_score,
        away_score=game.away_score,
    )


class ForecastEngine:
    """Orchestrates the update, predict, check and backtest workflows."""

    def __init__(
        self,
        client: ESPNClient,
        storage: Storage,
        config: ModelConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the forecast engine.

        Args:
            client: Data source for games, scores and injuries
            storage: Snapshot store
            config: Model configuration (uses defaults if None)
            logger: Optional logger
        """
        self.client = client
        self.storage = storage
        self.config = config or ModelConfig()
        self.log = logger or log

    async def initialize(self) -> None:
        await self.storage.initialize()

    async def close(self) -> None:
        await self.storage.close()

    # ==================== Update data ====================

    async def _injuries_by_team(self) -> dict[str, list[Injury]]:
        """Fetched injuries grouped by team, with manual overrides appended."""
        injuries = await self.client.list_injuries()

        by_team: dict[str, list[Injury]] = {}
        for injury in injuries:
            # Free agents have no team and cannot affect a game
            if injury.team is None:
                continue
            by_team.setdefault(injury.team, []).append(injury)

        overrides = await self.storage.load(Storage.MANUAL_INJURIES, InjuryOverrides)
        if overrides is None:
            self.log.debug("No manual injury overrides stored")
        else:
            for team, team_injuries in overrides.injuries.items():
                by_team.setdefault(team, []).extend(team_injuries)
            self.log.info("Merged manual injuries for %d teams", len(overrides.injuries))

        return by_team

    async def update_data(
        self,
        start_week: int = 1,
        end_week: int = REGULAR_SEASON_WEEKS,
    ) -> SeasonSnapshot:
        """
        Refresh the season snapshot from the data source.

        Fetches completed games with box scores, rebuilds team aggregates
        and rankings, fetches injuries and the current week's games, and
        saves everything as one snapshot.

        Args:
            start_week: First week to fetch
            end_week: Last week to fetch

        Returns:
            The saved SeasonSnapshot

        Raises:
            APIError: If the data source fails after retries
            ForecastError: If the snapshot cannot be saved
        """
        self.log.info("Fetching completed games for weeks %d-%d...", start_week, end_week)
        games = await self.client.list_completed_games(start_week, end_week)

        self.log.info("Aggregating team statistics...")
        team_stats = aggregate_stats(games, logger=self.log)
        rankings = calculate_rankings(team_stats)

        self.log.info("Fetching injury data...")
        injuries = await self._injuries_by_team()

        self.log.info("Fetching current week games...")
        upcoming = await self.client.list_upcoming_games()

        snapshot = SeasonSnapshot(
            last_updated=datetime.now(timezone.utc),
            season=self.client.season,
            games=games,
            team_stats=team_stats,
            rankings=rankings,
            injuries=injuries,
            upcoming_games=upcoming,
        )

        await self.storage.backup(Storage.SEASON_DATA)
        if not await self.storage.save(Storage.SEASON_DATA, snapshot):
            raise ForecastError("Failed to save season data")

        self.client.clear_cache()
        self.log.info(
            "Data update complete: %d games, %d upcoming, %d injured players",
            *snapshot.summary.values(),
        )
        return snapshot

    # ==================== Elo state ====================

    async def load_elo_state(self, season: int) -> EloState:
        """
        Load the Elo state for `season`, creating or rolling it over as needed.

        Without a stored state every team starts at the base rating. A state
        from an earlier season is regressed toward the mean.
        """
        state = await self.storage.load(Storage.ELO_RATINGS, EloState)
        now = datetime.now(timezone.utc)

        if state is None:
            self.log.warning("No historical Elo found, initializing fresh ratings")
            return EloState(
                season=season,
                ratings=elo.initialize_ratings(config=self.config),
                last_updated=now,
            )

        if state.season < season:
            self.log.info("Regressing %d Elo ratings into season %d", state.season, season)
            return EloState(
                season=season,
                ratings=elo.initialize_ratings(state.ratings, config=self.config),
                last_updated=now,
            )

        return state

    # ==================== Generate predictions ====================

    async def generate_predictions(self) -> PredictionSet:
        """
        Predict the upcoming games in the season snapshot.

        Unchecked predictions from earlier runs are carried over unless the
        same game is predicted again. Checked predictions are dropped, since
        they already live in the results history.

        Returns:
            The saved PredictionSet

        Raises:
            ForecastError: If no season snapshot exists or the save fails
        """
        snapshot = await self.storage.load(Storage.SEASON_DATA, SeasonSnapshot)
        if snapshot is None:
            raise ForecastError("No season data found. Run 'update' first.")

        elo_state = await self.load_elo_state(snapshot.season)
        if not await self.storage.save(Storage.ELO_RATINGS, elo_state):
            raise ForecastError("Failed to save Elo ratings")

        existing = await self.storage.load(Storage.PREDICTIONS, PredictionSet)
        old_predictions = existing.predictions if existing else []

        new_predictions = []
        if snapshot.upcoming_games:
            self.log.info("Generating predictions for %d games", len(snapshot.upcoming_games))
            context = PredictionContext(
                elo_ratings=elo_state.ratings,
                team_stats=snapshot.team_stats,
                league_average=calculate_league_averages(snapshot.team_stats, self.log),
                rankings=snapshot.rankings,
                config=self.config,
                logger=self.log,
            )
            new_predictions = predict_games(snapshot.upcoming_games, context)
        else:
            self.log.info("No upcoming games to predict")

        new_ids = {p.game_id for p in new_predictions}
        carried = [p for p in old_predictions if not p.checked and p.game_id not in new_ids]
        predictions = carried + new_predictions

        summary = {
            "total": len(predictions),
            "new": len(new_predictions),
            "carried": len(carried),
        }
        for tier in CONFIDENCE_TIERS:
            summary[tier] = sum(1 for p in predictions if p.confidence == tier)

        prediction_set = PredictionSet(
            last_updated=datetime.now(timezone.utc),
            season=snapshot.season,
            predictions=predictions,
            summary=summary,
        )

        await self.storage.backup(Storage.PREDICTIONS)
        if not await self.storage.save(Storage.PREDICTIONS, prediction_set):
            raise ForecastError("Failed to save predictions")

        self.log.info(
            "Predictions generated: %d total, %d new (high=%d, medium=%d, low=%d)",
            summary["total"],
            summary["new"],
            summary["high"],
            summary["medium"],
            summary["low"],
        )
        return prediction_set

    # ==================== Check results ====================

    def _ready_to_check(self, prediction: GamePrediction, now: datetime) -> bool:
        if prediction.checked or prediction.game_date is None:
            return False
        return now - _utc(prediction.game_date) >= timedelta(hours=self.config.result_check_hours)

    async def check_results(self, now: datetime | None = None) -> CheckSummary:
        """
        Grade stored predictions whose games have finished.

        A prediction is checked once its kickoff is at least
        `result_check_hours` old and the data source reports the game final.
        A failure on one game is logged and skipped. Checked predictions are
        written back, appended to the results history, and folded into the
        Elo ratings in chronological order.

        Args:
            now: Current time (defaults to the system clock)

        Returns:
            CheckSummary with counts of checked/correct/incorrect
        """
        now = _utc(now or datetime.now(timezone.utc))

        prediction_set = await self.storage.load(Storage.PREDICTIONS, PredictionSet)
        if prediction_set is None or not prediction_set.predictions:
            self.log.warning("No predictions found")
            return CheckSummary()

        to_check = [p for p in prediction_set.predictions if self._ready_to_check(p, now)]
        if not to_check:
            self.log.info("No predictions ready to check")
            return CheckSummary()

        self.log.info("Checking %d predictions...", len(to_check))

        checked: list[GamePrediction] = []
        for prediction in to_check:
            try:
                result = await self.client.fetch_final_score(prediction.game_id)
                if result is None:
                    self.log.debug("Game %s not final yet", prediction.game_id)
                    continue
                graded = check_prediction(prediction, result, checked_at=now)
            except Exception as e:
                self.log.error("Failed to check prediction %s: %s", prediction.game_id, e)
                continue

            checked.append(graded)
            self.log.info(
                "Checked %s vs %s: predicted %s %s, actual %d-%d (%s)",
                result.home_team,
                result.away_team,
                prediction.predicted_winner,
                prediction.score_line,
                result.home_score,
                result.away_score,
                "correct" if graded.correct else "incorrect",
            )

        if not checked:
            self.log.info("No results checked successfully")
            return CheckSummary()

        checked_by_id = {p.game_id: p for p in checked}

        def apply_checks(current: PredictionSet) -> PredictionSet:
            return current.model_copy(
                update={
                    "predictions": [checked_by_id.get(p.game_id, p) for p in current.predictions],
                    "last_updated": now,
                }
            )

        await self.storage.update_atomic(
            Storage.PREDICTIONS, PredictionSet, apply_checks, prediction_set
        )

        def append_results(history: ResultsHistory) -> ResultsHistory:
            seen = {r.game_id for r in history.results}
            results = history.results + [p for p in checked if p.game_id not in seen]
            return ResultsHistory(
                last_updated=now,
                results=results,
                accuracy=calculate_accuracy(results),
            )

        await self.storage.update_atomic(
            Storage.RESULTS, ResultsHistory, append_results, ResultsHistory()
        )

        elo_state = await self.load_elo_state(prediction_set.season)
        ratings = elo_state.ratings
        for prediction in sorted(checked, key=_chronological):
            home_score, away_score = prediction.actual_score
            ratings = elo.apply_result(
                ratings,
                prediction.home_team,
                prediction.away_team,
                home_score,
                away_score,
                self.config,
                self.log,
            )

        updated_state = elo_state.model_copy(update={"ratings": ratings, "last_updated": now})
        if not await self.storage.save(Storage.ELO_RATINGS, updated_state):
            raise ForecastError("Failed to save Elo ratings")

        correct = sum(1 for p in checked if p.correct)
        summary = CheckSummary(checked=len(checked), correct=correct, incorrect=len(checked) - correct)
        self.log.info(
            "Results checked: %d (%d correct, %d incorrect)",
            summary.checked,
            summary.correct,
            summary.incorrect,
        )
        return summary

    # ==================== Backtest ====================

    async def backtest(
        self,
        start_week: int = 1,
        end_week: int | None = None,
    ) -> BacktestResult:
        """
        Replay the season week by week as if predicting live.

        Each week's games are predicted from aggregates of the earlier weeks
        only and from Elo ratings that have seen only earlier results. The
        week's results are then graded and folded into Elo before moving on.

        Args:
            start_week: First week to predict
            end_week: Last week to predict (defaults to the current week)

        Returns:
            The saved BacktestResult
        """
        if end_week is None:
            end_week = await self.client.current_week() or REGULAR_SEASON_WEEKS

        self.log.info("Running backtest for weeks %d-%d", start_week, end_week)
        games = await self.client.list_completed_games(1, end_week)
        dated = [g for g in games if g.week is not None]

        # Results before the first predicted week still move the ratings
        ratings = elo.process_results(
            elo.initialize_ratings(config=self.config),
            [g for g in dated if g.week < start_week],
            self.config,
            self.log,
        )

        results: list[GamePrediction] = []
        now = datetime.now(timezone.utc)

        for week in range(start_week, end_week + 1):
            week_games = [g for g in dated if g.week == week]
            if not week_games:
                self.log.info("No completed games in week %d", week)
                continue

            team_stats = aggregate_stats([g for g in dated if g.week < week], logger=self.log)
            context = PredictionContext(
                elo_ratings=ratings,
                team_stats=team_stats,
                league_average=calculate_league_averages(team_stats, self.log),
                rankings=calculate_rankings(team_stats),
                config=self.config,
                logger=self.log,
            )

            by_id = {g.game_id: g for g in week_games}
            week_results = [
                check_prediction(p, _final_score(by_id[p.game_id]), checked_at=now)
                for p in predict_games(week_games, context)
            ]
            results.extend(week_results)

            ratings = elo.process_results(ratings, week_games, self.config, self.log)

            self.log.info(
                "Week %d complete: %d/%d correct",
                week,
                sum(1 for r in week_results if r.correct),
                len(week_results),
            )

        backtest = BacktestResult(
            start_week=start_week,
            end_week=end_week,
            season=self.client.season,
            last_updated=now,
            results=results,
            accuracy=calculate_accuracy(results),
            final_ratings=ratings,
        )

        if not await self.storage.save(Storage.BACKTEST, backtest):
            raise ForecastError("Failed to save backtest results")

        self.log.info(
            "Backtest complete: %d games, %.1f%% accuracy",
            backtest.accuracy.total,
            backtest.accuracy.accuracy,
        )
        return backtest

    # ==================== Stored state ====================

    async def load_predictions(self) -> PredictionSet | None:
        return await self.storage.load(Storage.PREDICTIONS, PredictionSet)

    async def load_results(self) -> ResultsHistory | None:
        return await self.storage.load(Storage.RESULTS, ResultsHistory)

    async def load_ratings(self) -> EloState | None:
        return await self.storage.load(Storage.ELO_RATINGS, EloState)

    async def restore(self, key: str) -> bool:
        """Roll a snapshot back to the copy taken before its last overwrite."""
        return await self.storage.restore_backup(key)
