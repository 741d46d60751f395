"""BALLDONTLIE adapter: games and box scores across its league APIs."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

import httpx
from pydantic import ValidationError

from wagerlab.config import get_settings
from wagerlab.data.base import HttpProvider, ProviderUnavailable, parse_timestamp, search_dates, sides_match
from wagerlab.data.pacing import RateLimiter
from wagerlab.data.schemas import BdlGameSchema, BdlPlayerSchema, BoxScore, GameSnapshot, PlayerStatLine
from wagerlab.wagers.types import Sport

logger = logging.getLogger(__name__)

BASE_URL = "https://api.balldontlie.io"

LEAGUE_PATHS: dict[Sport, str] = {
    Sport.NBA: "nba",
    Sport.NCAAB: "ncaab",
    Sport.WNBA: "wnba",
    Sport.NFL: "nfl",
    Sport.NCAAF: "ncaaf",
    Sport.MLB: "mlb",
}
# Basketball leagues publish per-game box scores; the others expose per-player stat rows.
BOX_SCORE_LEAGUES = {Sport.NBA, Sport.NCAAB, Sport.WNBA}

STAT_FIELDS: dict[str, str] = {
    "pts": "points",
    "reb": "rebounds",
    "ast": "assists",
    "stl": "steals",
    "blk": "blocks",
    "turnover": "turnovers",
    "fg3m": "threes",
    "ftm": "free_throws",
    "passing_yards": "passing_yards",
    "passing_touchdowns": "passing_touchdowns",
    "passing_attempts": "passing_attempts",
    "passing_completions": "completions",
    "passing_interceptions": "interceptions",
    "rushing_yards": "rushing_yards",
    "rushing_attempts": "rushing_attempts",
    "rushing_touchdowns": "rushing_touchdowns",
    "receiving_yards": "receiving_yards",
    "receptions": "receptions",
    "receiving_touchdowns": "receiving_touchdowns",
    "hits": "hits",
    "runs": "runs",
    "rbi": "rbis",
    "hr": "home_runs",
    "sb": "stolen_bases",
    "bb": "walks",
    "p_k": "strikeouts",
    "p_hits": "hits_allowed",
    "er": "earned_runs",
}


def _stat_row(raw: Dict[str, Any]) -> dict[str, float]:
    stats: dict[str, float] = {}
    for field, key in STAT_FIELDS.items():
        value = raw.get(field)
        if isinstance(value, (int, float)):
            stats[key] = float(value)
    if "rushing_touchdowns" in stats or "receiving_touchdowns" in stats:
        stats["touchdowns"] = stats.get("rushing_touchdowns", 0.0) + stats.get("receiving_touchdowns", 0.0)
    return stats


def _status_text(game: BdlGameSchema) -> str:
    status = (game.status or "").strip()
    if status.lower().startswith("final"):
        return "Final"
    if game.period_detail:
        return game.period_detail
    if game.period:
        return f"Q{game.period} {game.time or ''}".strip()
    return "Scheduled"


def _periods(game: BdlGameSchema, side: str) -> list[float]:
    values = [getattr(game, f"{side}_q{quarter}") for quarter in range(1, 5)]
    if any(value is None for value in values):
        return []
    return [float(value) for value in values]


def _league_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


class BallDontLieClient(HttpProvider):
    """Convenient wrapper for the BALLDONTLIE API."""

    name = "balldontlie"
    sports = frozenset(LEAGUE_PATHS)
    supports_box_scores = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BASE_URL,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.balldontlie_api_key
        if not self.api_key:
            raise RuntimeError("BALLDONTLIE_API_KEY is not configured.")
        self.base_url = base_url.rstrip("/")
        super().__init__(client=client, rate_limiter=rate_limiter)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key}

    def _rows(self, payload: Any) -> list[Dict[str, Any]]:
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise ProviderUnavailable(self.name, "unexpected payload shape")
        return rows

    async def get_games(self, sport: Sport, target_date: date) -> Iterable[Dict[str, Any]]:
        """Return games for a specific date."""

        league = LEAGUE_PATHS[sport]
        payload = await self._get_json(f"/{league}/v1/games", {"dates[]": target_date.isoformat(), "per_page": 100})
        return self._rows(payload)

    async def find_game(
        self,
        sport: Sport,
        team_a: str | None,
        team_b: str | None,
        approx_date: datetime | None,
    ) -> GameSnapshot | None:
        if not self.supports(sport):
            return None
        for target in search_dates(approx_date):
            for raw in await self.get_games(sport, target):
                try:
                    game = BdlGameSchema.model_validate(raw)
                except ValidationError as exc:
                    raise ProviderUnavailable(self.name, f"unexpected game payload: {exc.error_count()} errors") from exc
                away = [game.visitor_team.display_name, game.visitor_team.abbreviation]
                home = [game.home_team.display_name, game.home_team.abbreviation]
                if sides_match(team_a, team_b, away, home):
                    return self._snapshot(sport, game)
        return None

    def _snapshot(self, sport: Sport, game: BdlGameSchema) -> GameSnapshot:
        is_complete = (game.status or "").lower().startswith("final")
        return GameSnapshot(
            game_id=str(game.id),
            provider=self.name,
            sport=sport.value,
            away_team=game.visitor_team.display_name,
            home_team=game.home_team.display_name,
            away_aliases=[alias for alias in (game.visitor_team.abbreviation,) if alias],
            home_aliases=[alias for alias in (game.home_team.abbreviation,) if alias],
            away_score=game.visitor_points,
            home_score=game.home_points,
            away_periods=_periods(game, "visitor"),
            home_periods=_periods(game, "home"),
            status_text=_status_text(game),
            is_live=not is_complete and bool(game.period),
            is_complete=is_complete,
            start_time=parse_timestamp(game.datetime_ or game.date),
            league_date=_league_date(game.date),
        )

    async def fetch_box_score(self, sport: Sport, game_id: str, game_date: date | None) -> BoxScore | None:
        if not self.supports(sport):
            return None
        league = LEAGUE_PATHS[sport]
        if sport in BOX_SCORE_LEAGUES:
            if game_date is None:
                return None
            payload = await self._get_json(f"/{league}/v1/box_scores", {"date": game_date.isoformat()})
            for entry in self._rows(payload):
                if str((entry.get("game") or {}).get("id", entry.get("id"))) != game_id:
                    continue
                players = []
                for side in ("home_team", "visitor_team"):
                    team = entry.get(side) or {}
                    for row in team.get("players", []):
                        players.append(self._player_line(row, team.get("full_name") or team.get("name")))
                return BoxScore(game_id=game_id, provider=self.name, players=players)
            return None
        payload = await self._get_json(f"/{league}/v1/stats", {"game_ids[]": game_id, "per_page": 100})
        rows = self._rows(payload)
        if not rows:
            return None
        players = [self._player_line(row, (row.get("team") or {}).get("full_name")) for row in rows]
        return BoxScore(game_id=game_id, provider=self.name, players=players)

    def _player_line(self, row: Dict[str, Any], team: str | None) -> PlayerStatLine:
        try:
            player = BdlPlayerSchema.model_validate(row.get("player") or {})
        except ValidationError as exc:
            raise ProviderUnavailable(self.name, "unexpected player payload") from exc
        return PlayerStatLine(name=player.full_name, team=team, player_id=str(player.id), stats=_stat_row(row))
