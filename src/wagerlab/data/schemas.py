"""Pydantic schemas for normalized provider data and raw provider payloads."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class PlayerStatLine(BaseModel):
    """One player's row in a box score, keyed by canonical stat names."""

    name: str
    team: str | None = None
    player_id: str | None = None
    stats: dict[str, float] = Field(default_factory=dict)


class BoxScore(BaseModel):
    game_id: str
    provider: str
    players: list[PlayerStatLine] = Field(default_factory=list)


class GameSnapshot(BaseModel):
    """Normalized view of one game, whichever provider produced it."""

    game_id: str
    provider: str
    sport: str
    away_team: str
    home_team: str
    away_aliases: list[str] = Field(default_factory=list)
    home_aliases: list[str] = Field(default_factory=list)
    away_score: float | None = None
    home_score: float | None = None
    away_periods: list[float] = Field(default_factory=list)
    home_periods: list[float] = Field(default_factory=list)
    status_text: str = ""
    is_live: bool = False
    is_complete: bool = False
    start_time: datetime | None = None
    # Calendar date the league files the game under, when the provider reports one.
    league_date: date | None = None
    box_score: BoxScore | None = None

    @property
    def away_names(self) -> list[str]:
        return [self.away_team, *self.away_aliases]

    @property
    def home_names(self) -> list[str]:
        return [self.home_team, *self.home_aliases]

    @property
    def has_scores(self) -> bool:
        return self.away_score is not None and self.home_score is not None


class MarketQuote(BaseModel):
    """Current market price for a selection."""

    odds: int
    line: float | None = None
    bookmaker: str = ""
    market: str = ""


# BALLDONTLIE payloads --------------------------------------------------------


class BdlTeamSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    abbreviation: str | None = None
    full_name: str | None = None
    name: str | None = None
    city: str | None = None
    college: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or " ".join(part for part in (self.college or self.city, self.name) if part) or ""


class BdlGameSchema(BaseModel):
    """Game row from any BALLDONTLIE league; score fields differ per league."""

    model_config = ConfigDict(extra="ignore")

    id: int
    date: str | None = None
    datetime_: str | None = Field(default=None, alias="datetime")
    status: str | None = None
    period: int | None = None
    time: str | None = None
    period_detail: str | None = None
    home_team: BdlTeamSchema
    visitor_team: BdlTeamSchema
    home_team_score: float | None = None
    visitor_team_score: float | None = None
    home_score: float | None = None
    away_score: float | None = None
    home_q1: float | None = None
    home_q2: float | None = None
    home_q3: float | None = None
    home_q4: float | None = None
    visitor_q1: float | None = None
    visitor_q2: float | None = None
    visitor_q3: float | None = None
    visitor_q4: float | None = None

    @property
    def home_points(self) -> float | None:
        return self.home_score if self.home_score is not None else self.home_team_score

    @property
    def visitor_points(self) -> float | None:
        return self.away_score if self.away_score is not None else self.visitor_team_score


class BdlPlayerSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    first_name: str
    last_name: str
    position: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# ESPN payloads ---------------------------------------------------------------


class EspnTeamSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    displayName: str = ""
    shortDisplayName: str | None = None
    abbreviation: str | None = None
    name: str | None = None


class EspnAthleteSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    displayName: str = ""
    shortName: str | None = None


class EspnLinescoreSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: float | None = None


class EspnCompetitorSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    homeAway: str | None = None
    order: int | None = None
    score: str | None = None
    winner: bool | None = None
    team: EspnTeamSchema | None = None
    athlete: EspnAthleteSchema | None = None
    linescores: list[EspnLinescoreSchema] = Field(default_factory=list)


class EspnStatusTypeSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    state: str = "pre"
    completed: bool = False
    description: str | None = None
    detail: str | None = None
    shortDetail: str | None = None


class EspnStatusSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    period: int | None = None
    displayClock: str | None = None
    type: EspnStatusTypeSchema = Field(default_factory=EspnStatusTypeSchema)


class EspnCompetitionSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    date: str | None = None
    competitors: list[EspnCompetitorSchema] = Field(default_factory=list)
    status: EspnStatusSchema | None = None


class EspnEventSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    date: str | None = None
    name: str | None = None
    status: EspnStatusSchema = Field(default_factory=EspnStatusSchema)
    competitions: list[EspnCompetitionSchema] = Field(default_factory=list)
