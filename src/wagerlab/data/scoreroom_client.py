"""Score Room (RapidAPI) adapter: coarse scores only, used as the last fallback."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from wagerlab.config import get_settings
from wagerlab.data.base import HttpProvider, parse_timestamp, sides_match
from wagerlab.data.pacing import RateLimiter
from wagerlab.data.schemas import GameSnapshot
from wagerlab.wagers.types import Sport

logger = logging.getLogger(__name__)

CLIENT_PATH = "/SCOREROOM_CLIENT"

LEAGUES: dict[Sport, str] = {
    Sport.NFL: "nfl",
    Sport.NCAAF: "college-football",
    Sport.NBA: "nba",
    Sport.NCAAB: "mens-college-basketball",
    Sport.WNCAAB: "womens-college-basketball",
    Sport.MLB: "mlb",
    Sport.NHL: "nhl",
    Sport.WNBA: "wnba",
    Sport.MLS: "mls",
}

_LIVE_MESSAGE = re.compile(r"quarter|half|period|inning|\bot\b|\b\d{1,2}:\d{2}\b|\b(?:1st|2nd|3rd|\d+th)\b", re.IGNORECASE)
_FIRST_INT = re.compile(r"-?\d+")


def parse_score(value: Any) -> float | None:
    """First integer in a score field; Score Room sometimes appends records or notes."""

    if isinstance(value, (int, float)):
        return float(value)
    match = _FIRST_INT.search(str(value or ""))
    return float(match.group(0)) if match else None


def _is_final(message: str) -> bool:
    return "final" in message.lower()


class ScoreRoomClient(HttpProvider):
    """Today's games plus a per-game live score lookup."""

    name = "scoreroom"
    sports = frozenset(LEAGUES)

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_host: Optional[str] = None,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.score_room_api_key
        if not self.api_key:
            raise RuntimeError("SCORE_ROOM_API_KEY is not configured.")
        self.api_host = api_host or settings.score_room_api_host
        self.base_url = f"https://{self.api_host}"
        super().__init__(client=client, rate_limiter=rate_limiter)

    def _headers(self) -> Dict[str, str]:
        return {"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": self.api_host}

    async def find_game(
        self,
        sport: Sport,
        team_a: str | None,
        team_b: str | None,
        approx_date: datetime | None,
    ) -> GameSnapshot | None:
        if not self.supports(sport):
            return None
        # The feed only knows about today's slate.
        if approx_date is not None and abs((datetime.now(timezone.utc) - approx_date).days) > 1:
            return None
        league = LEAGUES[sport]
        payload = await self._get_json(CLIENT_PATH, {"fetchTodayGames": "true"})
        games = payload.get("games", payload) if isinstance(payload, dict) else payload
        for game in games or []:
            if not isinstance(game, dict):
                continue
            if str(game.get("league_abbrv", "")).lower() not in (league, ""):
                continue
            away, home = game.get("awayTeam", ""), game.get("homeTeam", "")
            if not sides_match(team_a, team_b, [away], [home]):
                continue
            return await self._snapshot(sport, league, game)
        return None

    async def _snapshot(self, sport: Sport, league: str, game: Dict[str, Any]) -> GameSnapshot:
        game_id = str(game.get("gameId", ""))
        away_score = parse_score(game.get("awayScore"))
        home_score = parse_score(game.get("homeScore"))
        is_complete = bool(game.get("isCompleted"))
        message = "Final" if is_complete else ""
        if not is_complete and game_id:
            live = await self._get_json(CLIENT_PATH, {"L_ABRV": league, "gameId": game_id})
            if isinstance(live, dict):
                away_score = parse_score(live.get("awayScore", away_score))
                home_score = parse_score(live.get("homeScore", home_score))
                message = str(live.get("message") or "")
                is_complete = _is_final(message)
        return GameSnapshot(
            game_id=game_id,
            provider=self.name,
            sport=sport.value,
            away_team=str(game.get("awayTeam", "")),
            home_team=str(game.get("homeTeam", "")),
            away_score=away_score,
            home_score=home_score,
            status_text=message or "Scheduled",
            is_live=not is_complete and bool(_LIVE_MESSAGE.search(message)),
            is_complete=is_complete,
            start_time=parse_timestamp(game.get("time")),
        )
