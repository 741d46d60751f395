"""The Odds API v4 client: current market prices for straight wagers and player props."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from wagerlab.config import get_settings
from wagerlab.data.base import HttpSource, sides_match
from wagerlab.data.pacing import RateLimiter
from wagerlab.data.schemas import MarketQuote
from wagerlab.wagers.normalizer import players_match, teams_match
from wagerlab.wagers.stats import resolve_stat_keys
from wagerlab.wagers.types import BetKind, Direction, Matchup, Selection, Sport, Wager

logger = logging.getLogger(__name__)

BASE_URL = "https://api.the-odds-api.com/v4"

SPORT_KEYS: dict[Sport, str] = {
    Sport.NFL: "americanfootball_nfl",
    Sport.NCAAF: "americanfootball_ncaaf",
    Sport.NBA: "basketball_nba",
    Sport.NCAAB: "basketball_ncaab",
    Sport.WNBA: "basketball_wnba",
    Sport.WNCAAB: "basketball_wncaab",
    Sport.MLB: "baseball_mlb",
    Sport.NHL: "icehockey_nhl",
    Sport.MLS: "soccer_usa_mls",
    Sport.UFC: "mma_mixed_martial_arts",
}

GAME_MARKETS: dict[BetKind, str] = {
    BetKind.MONEYLINE: "h2h",
    BetKind.SPREAD: "spreads",
    BetKind.TOTAL: "totals",
}
PERIOD_SUFFIXES: dict[str, str] = {
    "1Q": "_q1",
    "2Q": "_q2",
    "3Q": "_q3",
    "4Q": "_q4",
    "1H": "_h1",
    "2H": "_h2",
}

PROP_MARKETS: dict[tuple[str, ...], str] = {
    ("points",): "player_points",
    ("rebounds",): "player_rebounds",
    ("assists",): "player_assists",
    ("threes",): "player_threes",
    ("blocks",): "player_blocks",
    ("steals",): "player_steals",
    ("turnovers",): "player_turnovers",
    ("points", "rebounds", "assists"): "player_points_rebounds_assists",
    ("points", "rebounds"): "player_points_rebounds",
    ("points", "assists"): "player_points_assists",
    ("rebounds", "assists"): "player_rebounds_assists",
    ("steals", "blocks"): "player_blocks_steals",
    ("passing_yards",): "player_pass_yds",
    ("passing_touchdowns",): "player_pass_tds",
    ("passing_attempts",): "player_pass_attempts",
    ("completions",): "player_pass_completions",
    ("interceptions",): "player_pass_interceptions",
    ("rushing_yards",): "player_rush_yds",
    ("rushing_attempts",): "player_rush_attempts",
    ("receiving_yards",): "player_reception_yds",
    ("receptions",): "player_receptions",
    ("rushing_yards", "receiving_yards"): "player_rush_reception_yds",
    ("strikeouts",): "pitcher_strikeouts",
    ("hits_allowed",): "pitcher_hits_allowed",
    ("earned_runs",): "pitcher_earned_runs",
    ("hits",): "batter_hits",
    ("total_bases",): "batter_total_bases",
    ("home_runs",): "batter_home_runs",
    ("rbis",): "batter_rbis",
    ("runs",): "batter_runs_scored",
    ("stolen_bases",): "batter_stolen_bases",
    ("shots_on_goal",): "player_shots_on_goal",
    ("goals",): "player_goals",
    ("saves",): "player_total_saves",
}


def market_key(kind: BetKind, selection: Selection) -> str | None:
    """Odds API market for a straight wager, or None when it has no market."""

    if kind is BetKind.PLAYER_PROP:
        keys = resolve_stat_keys(selection.stat)
        return PROP_MARKETS.get(keys) if keys else None
    base = GAME_MARKETS.get(kind)
    if base is None:
        return None
    if selection.period:
        suffix = PERIOD_SUFFIXES.get(selection.period.upper())
        return f"{base}{suffix}" if suffix else None
    return base


def _outcome_matches(kind: BetKind, selection: Selection, outcome: Dict[str, Any]) -> bool:
    name = str(outcome.get("name", ""))
    if kind is BetKind.PLAYER_PROP:
        direction = selection.direction or Direction.OVER
        return name.lower() == direction.value.lower() and players_match(
            selection.player, str(outcome.get("description", ""))
        )
    if kind is BetKind.TOTAL:
        return selection.direction is not None and name.lower() == selection.direction.value.lower()
    return teams_match(selection.team, name)


def pick_quote(
    bookmakers: Iterable[Dict[str, Any]],
    market: str,
    kind: BetKind,
    selection: Selection,
) -> MarketQuote | None:
    """Prefer a book quoting the booked line; otherwise the first matching outcome."""

    fallback: MarketQuote | None = None
    for book in bookmakers:
        for entry in book.get("markets", []):
            if entry.get("key") != market:
                continue
            for outcome in entry.get("outcomes", []):
                if not _outcome_matches(kind, selection, outcome):
                    continue
                price = outcome.get("price")
                if not isinstance(price, (int, float)):
                    continue
                point = outcome.get("point")
                quote = MarketQuote(
                    odds=int(price),
                    line=float(point) if point is not None else None,
                    bookmaker=str(book.get("key", "")),
                    market=market,
                )
                if selection.line is None or quote.line is None or quote.line == selection.line:
                    return quote
                if fallback is None:
                    fallback = quote
    return fallback


class OddsApiClient(HttpSource):
    """Market prices from The Odds API; one events call plus one event-odds call per quote."""

    name = "odds_api"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BASE_URL,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.odds_api_key
        if not self.api_key:
            raise RuntimeError("ODDS_API_KEY is not configured.")
        self.base_url = base_url.rstrip("/")
        super().__init__(client=client, rate_limiter=rate_limiter)

    async def find_event(self, sport: Sport, matchup: Matchup) -> Dict[str, Any] | None:
        sport_key = SPORT_KEYS.get(sport)
        if sport_key is None:
            return None
        events = await self._get_json(f"/sports/{sport_key}/events", {"apiKey": self.api_key})
        for event in events or []:
            if sides_match(matchup.team_a, matchup.team_b, [event.get("away_team")], [event.get("home_team")]):
                return event
        return None

    async def quote_for(self, wager: Wager) -> MarketQuote | None:
        """Current price for a straight wager's selection, or None when nothing is quoted."""

        market = market_key(wager.kind, wager.selection)
        sport_key = SPORT_KEYS.get(wager.sport)
        if market is None or sport_key is None:
            return None
        event = await self.find_event(wager.sport, wager.matchup)
        if event is None:
            return None
        payload = await self._get_json(
            f"/sports/{sport_key}/events/{event['id']}/odds",
            {"apiKey": self.api_key, "regions": "us", "markets": market, "oddsFormat": "american"},
        )
        bookmakers = payload.get("bookmakers", []) if isinstance(payload, dict) else []
        return pick_quote(bookmakers, market, wager.kind, wager.selection)
