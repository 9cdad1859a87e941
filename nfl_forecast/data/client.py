"""ESPN scoreboard and Sleeper injury client with caching and retries."""

import asyncio
import logging
import os
from datetime import date, datetime
from typing import Any

import httpx
from pydantic import ValidationError

from nfl_forecast.data.models import (
    CompletedGame,
    FinalScore,
    Injury,
    UpcomingGame,
)
from nfl_forecast.data.stats import extract_team_stats
from nfl_forecast.data.storage import Storage
from nfl_forecast.data.teams import normalize_team_name

log = logging.getLogger(__name__)

REGULAR_SEASON = 2


class APIError(Exception):
    """Raised when API request fails."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"API Error {status_code}: {message}")


def current_season(today: date | None = None) -> int:
    """
    Season year for a date.

    The NFL season starts in September, so January through August belong
    to the previous year's season.
    """
    today = today or date.today()
    return today.year if today.month >= 9 else today.year - 1


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse an ESPN ISO timestamp such as "2024-09-08T17:00Z"."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        log.warning("Unparseable game date: %s", value)
        return None


def _parse_score(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _home_and_away(competition: dict) -> tuple[dict, dict] | None:
    """Split a competition's competitors into (home, away)."""
    competitors = competition.get("competitors") or []
    if len(competitors) != 2:
        return None
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if home is None or away is None:
        return None
    return home, away


def _team_name(competitor: dict) -> str:
    return normalize_team_name((competitor.get("team") or {}).get("displayName", ""))


def _state(status: dict | None) -> str | None:
    return ((status or {}).get("type") or {}).get("state")


def parse_completed_game(
    summary: dict,
    logger: logging.Logger | None = None,
) -> CompletedGame | None:
    """
    Build a CompletedGame from a game summary.

    Returns:
        CompletedGame, or None if the summary lacks a header, two
        home/away competitors, or a parseable box score, or if both
        sides name the same team
    """
    logger = logger or log

    header = summary.get("header") or {}
    competitions = header.get("competitions") or []
    if not competitions:
        return None

    sides = _home_and_away(competitions[0])
    if sides is None:
        return None
    home, away = sides

    stats = extract_team_stats(summary, logger)
    if stats is None:
        logger.warning("No box score for game %s", header.get("id"))
        return None

    home_team = _team_name(home)
    away_team = _team_name(away)
    week = header.get("week")

    try:
        return CompletedGame(
            game_id=str(header.get("id")),
            game_date=_parse_datetime(competitions[0].get("date")),
            week=week if isinstance(week, int) else None,
            home_team=home_team,
            away_team=away_team,
            scores={
                home_team: _parse_score(home.get("score")),
                away_team: _parse_score(away.get("score")),
            },
            stats=stats,
        )
    except ValidationError as e:
        logger.warning("Skipping malformed game %s: %s", header.get("id"), e)
        return None


def parse_upcoming_game(event: dict) -> UpcomingGame | None:
    """Build an UpcomingGame from a scoreboard event, or None if malformed."""
    competitions = event.get("competitions") or []
    if not competitions:
        return None

    sides = _home_and_away(competitions[0])
    if sides is None:
        return None
    home, away = sides

    week = (event.get("week") or {}).get("number")

    return UpcomingGame(
        game_id=str(event.get("id")),
        game_date=_parse_datetime(competitions[0].get("date")),
        week=week,
        home_team=_team_name(home),
        away_team=_team_name(away),
        status=_state(event.get("status")),
    )


class ESPNClient:
    """Client for the ESPN NFL site API and the Sleeper players feed."""

    ESPN_BASE = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
    SCOREBOARD_PATH = "/scoreboard"
    SUMMARY_PATH = "/summary"
    SLEEPER_PLAYERS_URL = "https://api.sleeper.app/v1/players/nfl"

    MAX_CONCURRENT = 10  # Requests per parallel batch
    RATE_LIMIT_DELAY = 0.1  # Seconds between batches

    def __init__(
        self,
        storage: Storage | None = None,
        season: int | None = None,
        max_retries: int = 4,
        base_delay: float = 2.0,
        timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the API client.

        Args:
            storage: Optional Storage instance for persistent caching
            season: Season year (defaults to the current season)
            max_retries: Maximum number of retry attempts for 5xx/transport errors
            base_delay: Base delay in seconds for exponential backoff
            timeout: Per-request timeout in seconds
            logger: Optional logger
        """
        self.storage = storage
        self.season = season or current_season()
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.timeout = timeout
        self.log = logger or log

        self._cache: dict[str, Any] = {}

    @classmethod
    def from_env(cls, storage: Storage | None = None) -> "ESPNClient":
        """
        Create client from environment variables.

        NFL_FORECAST_SEASON overrides the detected season.

        Raises:
            ValueError: If NFL_FORECAST_SEASON is set but not a year
        """
        season = os.environ.get("NFL_FORECAST_SEASON")
        if season is not None and not season.isdigit():
            raise ValueError(f"NFL_FORECAST_SEASON must be a year, got '{season}'")
        return cls(storage=storage, season=int(season) if season else None)

    @property
    def cache_size(self) -> int:
        """Number of responses held in the in-memory cache."""
        return len(self._cache)

    def clear_cache(self) -> None:
        """Drop the in-memory response cache (call between update cycles)."""
        size = len(self._cache)
        self._cache.clear()
        self.log.debug("Cleared API cache (%d entries)", size)

    async def _make_request(
        self,
        url: str,
        params: dict | None = None,
    ) -> Any:
        """
        Make an API request with retry logic.

        Args:
            url: Full request URL
            params: Optional query parameters

        Returns:
            Decoded JSON response

        Raises:
            APIError: If request fails after retries
        """
        attempt = 0
        last_error = None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt <= self.max_retries:
                try:
                    response = await client.get(url, params=params)

                    # Success
                    if response.status_code == 200:
                        return response.json()

                    # Client error - don't retry
                    if 400 <= response.status_code < 500:
                        raise APIError(response.status_code, response.text)

                    last_error = APIError(response.status_code, response.text)

                except httpx.RequestError as e:
                    last_error = APIError(0, str(e))

                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    self.log.warning(
                        "Request to %s failed (%s), retrying in %.1fs (attempt %d/%d)",
                        url,
                        last_error,
                        delay,
                        attempt + 1,
                        self.max_retries,
                    )
                    await asyncio.sleep(delay)
                attempt += 1

        self.log.error("Request to %s failed after all retries: %s", url, last_error)
        if last_error:
            raise last_error
        raise APIError(0, "Unknown error")

    async def _cached_request(
        self,
        url: str,
        params: dict | None = None,
        ttl_hours: float | None = None,
        use_cache: bool = True,
    ) -> Any:
        """
        Request through the in-memory cache, then the storage cache.

        Args:
            url: Full request URL
            params: Optional query parameters
            ttl_hours: Persist the response in storage for this long
                (None keeps it in memory only)
            use_cache: False always hits the network
        """
        cache_key = url
        if params:
            cache_key += "?" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))

        if use_cache:
            if cache_key in self._cache:
                self.log.debug("Returning cached response for %s", cache_key)
                return self._cache[cache_key]

            if self.storage and ttl_hours is not None:
                cached = await self.storage.get_cached(cache_key)
                if cached is not None:
                    self._cache[cache_key] = cached
                    return cached

        data = await self._make_request(url, params)

        self._cache[cache_key] = data
        if self.storage and ttl_hours is not None:
            await self.storage.set_cached(cache_key, data, ttl_hours=ttl_hours)

        return data

    # ==================== Scoreboard ====================

    async def fetch_scoreboard(
        self,
        week: int | None = None,
        season_type: int = REGULAR_SEASON,
    ) -> list[dict]:
        """
        Fetch scoreboard events for a week of this season.

        Args:
            week: Week number (None for the current week)
            season_type: ESPN season type (2 = regular season)

        Returns:
            List of raw scoreboard events
        """
        params = {"dates": self.season, "seasontype": season_type, "limit": 100}
        if week is not None:
            params["week"] = week

        data = await self._cached_request(f"{self.ESPN_BASE}{self.SCOREBOARD_PATH}", params)
        return data.get("events") or []

    async def fetch_week_range(self, start_week: int, end_week: int) -> list[dict]:
        """Fetch and flatten scoreboard events for weeks start_week..end_week."""
        weeks = range(start_week, end_week + 1)
        results = await asyncio.gather(*(self.fetch_scoreboard(week) for week in weeks))
        events = [event for week_events in results for event in week_events]
        self.log.info("Fetched %d games from weeks %d-%d", len(events), start_week, end_week)
        return events

    async def current_week(self) -> int | None:
        """Week number of the current scoreboard, if ESPN reports one."""
        data = await self._cached_request(
            f"{self.ESPN_BASE}{self.SCOREBOARD_PATH}",
            {"dates": self.season, "seasontype": REGULAR_SEASON, "limit": 100},
        )
        return (data.get("week") or {}).get("number")

    # ==================== Game summaries ====================

    async def fetch_game_summary(self, event_id: str, use_cache: bool = True) -> dict:
        """
        Fetch the detailed summary (header + box score) of one game.

        Raises:
            APIError: If the request fails after retries
        """
        return await self._cached_request(
            f"{self.ESPN_BASE}{self.SUMMARY_PATH}",
            {"event": event_id},
            ttl_hours=1,
            use_cache=use_cache,
        )

    async def _summary_or_none(self, event_id: str) -> dict | None:
        try:
            return await self.fetch_game_summary(event_id)
        except APIError as e:
            self.log.error("Failed to fetch game summary %s: %s", event_id, e)
            return None

    async def fetch_game_summaries(self, event_ids: list[str]) -> list[dict | None]:
        """
        Fetch many summaries in parallel batches of MAX_CONCURRENT.

        Returns:
            One entry per event id, in order; failed requests are None
        """
        self.log.info("Fetching %d game summaries in parallel", len(event_ids))

        results: list[dict | None] = []
        for start in range(0, len(event_ids), self.MAX_CONCURRENT):
            batch = event_ids[start:start + self.MAX_CONCURRENT]
            results.extend(
                await asyncio.gather(*(self._summary_or_none(event_id) for event_id in batch))
            )

            if start + self.MAX_CONCURRENT < len(event_ids):
                await asyncio.sleep(self.RATE_LIMIT_DELAY)

        return results

    # ==================== Domain queries ====================

    async def list_completed_games(
        self,
        start_week: int = 1,
        end_week: int = 18,
    ) -> list[CompletedGame]:
        """
        All finished games in a week range, with box scores.

        Games whose summary cannot be fetched or parsed are skipped.
        """
        events = await self.fetch_week_range(start_week, end_week)
        finished = [e for e in events if _state(e.get("status")) == "post"]
        self.log.info("Found %d completed games", len(finished))

        summaries = await self.fetch_game_summaries([str(e["id"]) for e in finished])

        games = []
        for summary in summaries:
            if summary is None:
                continue
            game = parse_completed_game(summary, self.log)
            if game is not None:
                games.append(game)

        self.log.info("Parsed %d/%d completed games", len(games), len(finished))
        return games

    async def list_upcoming_games(self) -> list[UpcomingGame]:
        """Current-week games that are scheduled or in progress."""
        events = await self.fetch_scoreboard()
        games = []
        for event in events:
            if _state(event.get("status")) not in ("pre", "in"):
                continue
            game = parse_upcoming_game(event)
            if game is not None:
                games.append(game)
        return games

    async def list_injuries(self) -> list[Injury]:
        """
        Players with a non-healthy injury status.

        Returns:
            List of Injury records (team as its canonical name when known)
        """
        self.log.info("Fetching injury data from Sleeper API")
        players = await self._cached_request(self.SLEEPER_PLAYERS_URL, ttl_hours=6)

        injuries = []
        for player_id, player in players.items():
            status = player.get("injury_status")
            if not status or status == "Healthy":
                continue

            team = player.get("team")
            injuries.append(
                Injury(
                    player_id=str(player_id),
                    name=f"{player.get('first_name', '')} {player.get('last_name', '')}".strip(),
                    team=normalize_team_name(team, self.log) if team else None,
                    position=player.get("position"),
                    depth_chart_position=player.get("depth_chart_position"),
                    status=status,
                    body_part=player.get("injury_body_part"),
                    notes=player.get("injury_notes"),
                )
            )

        self.log.info("Found %d injured players", len(injuries))
        return injuries

    async def fetch_final_score(self, event_id: str) -> FinalScore | None:
        """
        Final score of a game, bypassing the caches.

        Returns:
            FinalScore, or None if the game is not final or the summary
            is malformed

        Raises:
            APIError: If the request fails after retries
        """
        summary = await self.fetch_game_summary(event_id, use_cache=False)

        header = summary.get("header") or {}
        competitions = header.get("competitions") or []
        if not competitions:
            return None

        status = competitions[0].get("status") or header.get("status")
        state = _state(status)
        if state != "post":
            self.log.debug("Game %s not final yet (state=%s)", event_id, state)
            return None

        sides = _home_and_away(competitions[0])
        if sides is None:
            return None
        home, away = sides

        return FinalScore(
            game_id=str(event_id),
            home_team=_team_name(home),
            away_team=_team_name(away),
            home_score=_parse_score(home.get("score")),
            away_score=_parse_score(away.get("score")),
        )
