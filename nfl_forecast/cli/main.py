"""CLI interface for the NFL forecast system.

Provides commands for refreshing data, generating and checking
predictions, backtesting, and inspecting ratings and accuracy.
"""

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable
from typing import Annotated, TypeVar

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from nfl_forecast.algorithm.elo import power_rankings
from nfl_forecast.data.client import ESPNClient
from nfl_forecast.data.models import AccuracyReport, GamePrediction, ModelConfig
from nfl_forecast.data.profiles import get_profile, get_profile_description, list_profiles
from nfl_forecast.data.storage import Storage
from nfl_forecast.forecast.engine import ForecastEngine

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="nfl-forecast",
    help="NFL game forecasts from a blended Elo and efficiency model.",
)
console = Console()

T = TypeVar("T")

DEFAULT_DB_PATH = "data/nfl_forecast.db"

DbOption = Annotated[
    str | None,
    typer.Option("--db", help="SQLite database path (default: $NFL_FORECAST_DB)"),
]
ProfileOption = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Config profile (default, elo_heavy, efficiency_heavy, conservative)"),
]
ConfigOption = Annotated[
    str | None,
    typer.Option("--config", "-c", help="Path to JSON config file"),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option("--log-level", "-l", help="Logging level (default: $LOG_LEVEL or INFO)"),
]


# =============================================================================
# Helper Functions (can be mocked in tests)
# =============================================================================


def setup_logging(level: str | None = None) -> None:
    """Route logging through rich, at `level` or $LOG_LEVEL."""
    level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def get_engine(db_path: str | None = None, config: ModelConfig | None = None) -> ForecastEngine:
    """
    Build a ForecastEngine over the SQLite store and the ESPN client.

    Args:
        db_path: Database path (falls back to $NFL_FORECAST_DB)
        config: Model configuration

    Returns:
        ForecastEngine instance
    """
    storage = Storage(db_path or os.environ.get("NFL_FORECAST_DB") or DEFAULT_DB_PATH)
    client = ESPNClient.from_env(storage=storage)
    return ForecastEngine(client=client, storage=storage, config=config)


def run(
    action: Callable[[ForecastEngine], Awaitable[T]],
    db_path: str | None = None,
    config: ModelConfig | None = None,
) -> T:
    """
    Run one engine coroutine with an initialized, then closed, engine.

    Args:
        action: Coroutine function taking the engine
        db_path: Database path
        config: Model configuration

    Returns:
        Whatever `action` returns
    """

    async def _run() -> T:
        engine = get_engine(db_path, config)
        await engine.initialize()
        try:
            return await action(engine)
        finally:
            await engine.close()

    return asyncio.run(_run())


def _load_config(
    profile: str | None = None,
    config_file: str | None = None,
) -> ModelConfig:
    """
    Load configuration from profile or file.

    Args:
        profile: Profile name (default, elo_heavy, efficiency_heavy, conservative)
        config_file: Path to JSON config file

    Returns:
        ModelConfig instance
    """
    if config_file:
        try:
            with open(config_file) as f:
                data = json.load(f)
            return ModelConfig(**data)
        except FileNotFoundError:
            console.print(f"[red]Config file not found: {config_file}[/red]")
            raise typer.Exit(1)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON in config file: {e}[/red]")
            raise typer.Exit(1)
        except Exception as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            raise typer.Exit(1)

    if profile:
        try:
            return get_profile(profile)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    return ModelConfig()


def _run_or_exit(
    action: Callable[[ForecastEngine], Awaitable[T]],
    db_path: str | None,
    config: ModelConfig | None,
    failure: str,
) -> T:
    try:
        return run(action, db_path=db_path, config=config)
    except Exception as e:
        console.print(f"[red]{failure}: {e}[/red]")
        raise typer.Exit(1)


def _confidence_style(confidence: str) -> str:
    return {"high": "green", "medium": "yellow", "low": "dim"}.get(confidence, "")


def _predictions_table(predictions: list[GamePrediction], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Game", style="bold")
    table.add_column("Kickoff")
    table.add_column("Pick", style="cyan")
    table.add_column("Score", justify="center")
    table.add_column("Spread", justify="right")
    table.add_column("Confidence", justify="center")
    table.add_column("Elo", justify="center")
    table.add_column("Efficiency", justify="center")

    for p in predictions:
        kickoff = p.game_date.strftime("%a %b %d %H:%M") if p.game_date else "-"
        style = _confidence_style(p.confidence)
        table.add_row(
            f"{p.away_team} @ {p.home_team}",
            kickoff,
            p.predicted_winner,
            p.score_line,
            f"{p.spread:+d}",
            f"[{style}]{p.confidence}[/{style}]" if style else p.confidence,
            f"{p.models.elo.score[0]}-{p.models.elo.score[1]}",
            f"{p.models.efficiency.score[0]}-{p.models.efficiency.score[1]}",
        )

    return table


def _print_accuracy(report: AccuracyReport, title: str) -> None:
    color = "green" if report.accuracy >= 65 else "yellow" if report.accuracy >= 55 else "red"
    console.print()
    console.print(f"[bold cyan]{title}[/bold cyan]")
    console.print(f"  Total Games: {report.total}")
    console.print(f"  Correct: {report.correct}")
    console.print(f"  Wrong: {report.incorrect}")
    console.print(f"  Accuracy: [{color}]{report.accuracy:.1f}%[/{color}]")
    console.print(f"  Avg Score Error: {report.avg_score_error:.1f} points")
    console.print()

    table = Table(title="By Confidence")
    table.add_column("Tier", style="bold")
    table.add_column("Correct", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Accuracy", justify="right", style="green")

    for tier, tier_accuracy in report.by_confidence.items():
        table.add_row(
            tier,
            str(tier_accuracy.correct),
            str(tier_accuracy.total),
            f"{tier_accuracy.accuracy:.1f}%",
        )

    console.print(table)


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def update(
    start_week: Annotated[int, typer.Option("--start-week", "-s", help="First week to fetch")] = 1,
    end_week: Annotated[int, typer.Option("--end-week", "-e", help="Last week to fetch")] = 18,
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Fetch completed games, injuries and upcoming games."""
    setup_logging(log_level)

    snapshot = _run_or_exit(
        lambda engine: engine.update_data(start_week, end_week),
        db,
        None,
        "Data update failed",
    )

    summary = snapshot.summary
    console.print(f"[green]Season {snapshot.season} data updated[/green]")
    console.print(f"  Completed games: {summary['total_games']}")
    console.print(f"  Upcoming games: {summary['upcoming_games']}")
    console.print(f"  Injured players: {summary['injured_players']}")


@app.command()
def predict(
    profile: ProfileOption = None,
    config_file: ConfigOption = None,
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Predict the upcoming games from the stored season data."""
    setup_logging(log_level)
    config = _load_config(profile=profile, config_file=config_file)

    prediction_set = _run_or_exit(
        lambda engine: engine.generate_predictions(),
        db,
        config,
        "Prediction failed",
    )

    if not prediction_set.predictions:
        console.print("[yellow]No upcoming games to predict.[/yellow]")
        return

    console.print(
        _predictions_table(prediction_set.predictions, f"NFL Predictions - {prediction_set.season}")
    )
    summary = prediction_set.summary
    console.print(
        f"{summary.get('total', 0)} predictions "
        f"([green]{summary.get('high', 0)} high[/green], "
        f"[yellow]{summary.get('medium', 0)} medium[/yellow], "
        f"{summary.get('low', 0)} low)"
    )


@app.command()
def check(
    profile: ProfileOption = None,
    config_file: ConfigOption = None,
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Grade stored predictions against final scores and update Elo."""
    setup_logging(log_level)
    config = _load_config(profile=profile, config_file=config_file)

    summary = _run_or_exit(
        lambda engine: engine.check_results(),
        db,
        config,
        "Results check failed",
    )

    if summary.checked == 0:
        console.print("[yellow]No predictions were ready to check.[/yellow]")
        return

    console.print(
        f"Checked {summary.checked} predictions: "
        f"[green]{summary.correct} correct[/green], [red]{summary.incorrect} incorrect[/red]"
    )


@app.command()
def backtest(
    start_week: Annotated[int, typer.Argument(help="First week to predict")] = 1,
    end_week: Annotated[int | None, typer.Argument(help="Last week to predict (default: current week)")] = None,
    profile: ProfileOption = None,
    config_file: ConfigOption = None,
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Replay past weeks and report how the model would have done."""
    setup_logging(log_level)
    config = _load_config(profile=profile, config_file=config_file)

    result = _run_or_exit(
        lambda engine: engine.backtest(start_week, end_week),
        db,
        config,
        "Backtest failed",
    )

    _print_accuracy(
        result.accuracy,
        f"Backtest - {result.season} Weeks {result.start_week}-{result.end_week}",
    )


@app.command()
def ratings(
    top: Annotated[int, typer.Option("--top", "-t", help="Number of teams to display")] = 32,
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show Elo power rankings."""
    setup_logging(log_level)

    state = _run_or_exit(lambda engine: engine.load_ratings(), db, None, "Failed to load ratings")

    if state is None:
        console.print("[yellow]No Elo ratings stored yet. Run 'predict' first.[/yellow]")
        return

    table = Table(title=f"Elo Power Rankings - {state.season}")
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Team", style="bold")
    table.add_column("Elo", justify="right", style="green")

    for rank, team, rating in power_rankings(state.ratings)[:top]:
        table.add_row(str(rank), team, f"{rating:.0f}")

    console.print(table)


@app.command()
def accuracy(
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show accuracy of all checked predictions."""
    setup_logging(log_level)

    history = _run_or_exit(lambda engine: engine.load_results(), db, None, "Failed to load results")

    if history is None or not history.results:
        console.print("[yellow]No checked predictions yet.[/yellow]")
        return

    _print_accuracy(history.accuracy, "Prediction Accuracy")


@app.command()
def restore(
    key: Annotated[str, typer.Argument(help="Snapshot to roll back (season_data, predictions)")],
    db: DbOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Roll a snapshot back to its last backup."""
    setup_logging(log_level)

    restored = _run_or_exit(lambda engine: engine.restore(key), db, None, "Restore failed")

    if not restored:
        console.print(f"[red]No backup found for '{key}'[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Restored '{key}' from backup[/green]")


@app.command()
def profiles() -> None:
    """List available configuration profiles."""
    table = Table(title="Configuration Profiles")
    table.add_column("Profile", style="bold cyan")
    table.add_column("Elo / Efficiency", justify="center")
    table.add_column("Description")

    for name in list_profiles():
        config = get_profile(name)
        table.add_row(
            name,
            f"{config.elo_weight:.0%} / {config.efficiency_weight:.0%}",
            get_profile_description(name),
        )

    console.print(table)


if __name__ == "__main__":
    app()
