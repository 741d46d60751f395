"""ESPN site API adapter: scoreboards for every supported league plus game summaries."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable

from pydantic import ValidationError

from wagerlab.data.base import HttpProvider, ProviderUnavailable, parse_timestamp, search_dates, sides_match
from wagerlab.data.schemas import (
    BoxScore,
    EspnCompetitorSchema,
    EspnEventSchema,
    GameSnapshot,
    PlayerStatLine,
)
from wagerlab.wagers.types import Sport

logger = logging.getLogger(__name__)

BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"

SPORT_PATHS: dict[Sport, str] = {
    Sport.NFL: "football/nfl",
    Sport.NCAAF: "football/college-football",
    Sport.NBA: "basketball/nba",
    Sport.NCAAB: "basketball/mens-college-basketball",
    Sport.WNBA: "basketball/wnba",
    Sport.WNCAAB: "basketball/womens-college-basketball",
    Sport.MLB: "baseball/mlb",
    Sport.NHL: "hockey/nhl",
    Sport.MLS: "soccer/usa.1",
    Sport.UFC: "mma/ufc",
}

# (category, label) -> canonical key; "made-attempted" labels split on the dash.
_LABELS: dict[tuple[str, str], str] = {
    ("passing", "YDS"): "passing_yards",
    ("passing", "TD"): "passing_touchdowns",
    ("passing", "INT"): "interceptions",
    ("rushing", "CAR"): "rushing_attempts",
    ("rushing", "YDS"): "rushing_yards",
    ("rushing", "TD"): "rushing_touchdowns",
    ("receiving", "REC"): "receptions",
    ("receiving", "YDS"): "receiving_yards",
    ("receiving", "TD"): "receiving_touchdowns",
    ("batting", "H"): "hits",
    ("batting", "R"): "runs",
    ("batting", "RBI"): "rbis",
    ("batting", "HR"): "home_runs",
    ("batting", "BB"): "walks",
    ("batting", "SB"): "stolen_bases",
    ("pitching", "K"): "strikeouts",
    ("pitching", "H"): "hits_allowed",
    ("pitching", "ER"): "earned_runs",
    ("skaters", "G"): "goals",
    ("skaters", "A"): "assists",
    ("skaters", "S"): "shots_on_goal",
    ("skaters", "SOG"): "shots_on_goal",
    ("goalies", "SV"): "saves",
}
_BASKETBALL_LABELS: dict[str, str] = {
    "PTS": "points",
    "REB": "rebounds",
    "AST": "assists",
    "STL": "steals",
    "BLK": "blocks",
    "TO": "turnovers",
}
_MADE_ATTEMPTED: dict[tuple[str, str], tuple[str, str]] = {
    ("passing", "C/ATT"): ("completions", "passing_attempts"),
    ("basketball", "3PT"): ("threes", "three_attempts"),
    ("basketball", "FT"): ("free_throws", "free_throw_attempts"),
    ("basketball", "FG"): ("field_goals", "field_goal_attempts"),
}


def _number(text: Any) -> float | None:
    try:
        return float(str(text).strip())
    except (TypeError, ValueError):
        return None


def _merge_stats(target: dict[str, float], category: str, labels: list[str], values: list[Any], family: str) -> None:
    for label, raw in zip(labels, values):
        label = label.upper()
        pair = _MADE_ATTEMPTED.get((family if family == "basketball" else category, label))
        text = str(raw).replace("/", "-")
        if pair and "-" in text:
            made, _, attempted = text.partition("-")
            for key, part in zip(pair, (made, attempted)):
                value = _number(part)
                if value is not None:
                    target[key] = target.get(key, 0.0) + value
            continue
        key = _BASKETBALL_LABELS.get(label) if family == "basketball" else _LABELS.get((category, label))
        value = _number(raw)
        if key and value is not None:
            target[key] = target.get(key, 0.0) + value


def _competitor_name(competitor: EspnCompetitorSchema) -> tuple[str, list[str]]:
    if competitor.athlete is not None:
        athlete = competitor.athlete
        return athlete.displayName, [alias for alias in (athlete.shortName,) if alias]
    team = competitor.team
    if team is None:
        return "", []
    aliases = [alias for alias in (team.shortDisplayName, team.abbreviation, team.name) if alias]
    return team.displayName, aliases


class EspnClient(HttpProvider):
    """Public ESPN scoreboard/summary endpoints; no key required."""

    name = "espn"
    sports = frozenset(SPORT_PATHS)
    supports_box_scores = True

    def __init__(self, base_url: str = BASE_URL, **kwargs: Any) -> None:
        self.base_url = base_url.rstrip("/")
        super().__init__(**kwargs)

    async def scoreboard(self, sport: Sport, target_date: date) -> Iterable[Dict[str, Any]]:
        payload = await self._get_json(f"/{SPORT_PATHS[sport]}/scoreboard", {"dates": target_date.strftime("%Y%m%d")})
        return payload.get("events", []) if isinstance(payload, dict) else []

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
            for raw in await self.scoreboard(sport, target):
                try:
                    event = EspnEventSchema.model_validate(raw)
                except ValidationError as exc:
                    raise ProviderUnavailable(self.name, f"unexpected event payload: {exc.error_count()} errors") from exc
                snapshot = self._match_event(sport, event, team_a, team_b)
                if snapshot is not None:
                    return snapshot
        return None

    def _match_event(
        self,
        sport: Sport,
        event: EspnEventSchema,
        team_a: str | None,
        team_b: str | None,
    ) -> GameSnapshot | None:
        # UFC cards carry one competition per fight; team sports carry exactly one.
        for competition in event.competitions:
            if len(competition.competitors) != 2:
                continue
            away, home = self._sides(competition.competitors)
            away_name, away_aliases = _competitor_name(away)
            home_name, home_aliases = _competitor_name(home)
            if not sides_match(team_a, team_b, [away_name, *away_aliases], [home_name, *home_aliases]):
                continue
            status = competition.status or event.status
            is_complete = status.type.completed or status.type.state == "post"
            is_live = status.type.state == "in"
            if sport is Sport.UFC:
                away_score, home_score = self._fight_score(away, home, is_complete)
            else:
                away_score, home_score = _number(away.score), _number(home.score)
            game_id = event.id if len(event.competitions) == 1 else (competition.id or event.id)
            return GameSnapshot(
                game_id=game_id,
                provider=self.name,
                sport=sport.value,
                away_team=away_name,
                home_team=home_name,
                away_aliases=away_aliases,
                home_aliases=home_aliases,
                away_score=away_score,
                home_score=home_score,
                away_periods=[line.value for line in away.linescores if line.value is not None],
                home_periods=[line.value for line in home.linescores if line.value is not None],
                status_text=status.type.shortDetail or status.type.detail or status.type.description or "",
                is_live=is_live,
                is_complete=is_complete,
                start_time=parse_timestamp(competition.date or event.date),
            )
        return None

    @staticmethod
    def _sides(competitors: list[EspnCompetitorSchema]) -> tuple[EspnCompetitorSchema, EspnCompetitorSchema]:
        by_side = {competitor.homeAway: competitor for competitor in competitors}
        if "away" in by_side and "home" in by_side:
            return by_side["away"], by_side["home"]
        ordered = sorted(competitors, key=lambda competitor: competitor.order or 0)
        return ordered[1], ordered[0]

    @staticmethod
    def _fight_score(
        away: EspnCompetitorSchema, home: EspnCompetitorSchema, is_complete: bool
    ) -> tuple[float | None, float | None]:
        if not is_complete:
            return None, None
        if away.winner:
            return 1.0, 0.0
        if home.winner:
            return 0.0, 1.0
        # Draw or no contest.
        return 0.0, 0.0

    async def fetch_box_score(self, sport: Sport, game_id: str, game_date: date | None) -> BoxScore | None:
        if not self.supports(sport) or sport is Sport.UFC:
            return None
        payload = await self._get_json(f"/{SPORT_PATHS[sport]}/summary", {"event": game_id})
        try:
            teams = payload["boxscore"].get("players") or []
        except (KeyError, TypeError, AttributeError):
            return None
        if not teams:
            return None
        family = sport.family
        rows: dict[str, PlayerStatLine] = {}
        try:
            for team_block in teams:
                team_name = (team_block.get("team") or {}).get("displayName")
                for group in team_block.get("statistics", []):
                    category = (group.get("name") or group.get("type") or "").lower()
                    labels = group.get("labels") or group.get("keys") or []
                    for athlete_row in group.get("athletes", []):
                        athlete = athlete_row.get("athlete") or {}
                        player_id = str(athlete.get("id", "")) or None
                        key = player_id or athlete.get("displayName", "")
                        line = rows.get(key)
                        if line is None:
                            line = PlayerStatLine(
                                name=athlete.get("displayName", ""), team=team_name, player_id=player_id
                            )
                            rows[key] = line
                        _merge_stats(line.stats, category, labels, athlete_row.get("stats") or [], family)
        except (AttributeError, TypeError) as exc:
            raise ProviderUnavailable(self.name, f"unexpected box score payload: {exc}") from exc
        for line in rows.values():
            if "rushing_touchdowns" in line.stats or "receiving_touchdowns" in line.stats:
                line.stats["touchdowns"] = line.stats.get("rushing_touchdowns", 0.0) + line.stats.get(
                    "receiving_touchdowns", 0.0
                )
        return BoxScore(game_id=game_id, provider=self.name, players=list(rows.values()))
