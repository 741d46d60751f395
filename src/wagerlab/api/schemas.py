"""Pydantic schemas for the WagerLab API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from wagerlab.settlement.progress import LiveProgress
from wagerlab.wagers.types import BetKind, Direction, Sport, Wager


class WagerOut(BaseModel):
    id: str
    sport: str
    kind: str
    matchup: str
    start_time: datetime | None = None
    selection: str
    line: float | None = None
    stake: float
    potential_payout: float
    opening_odds: int | None = None
    status: str
    result: str | None = None
    profit: float | None = None
    closing_odds: int | None = None
    clv: float | None = None
    expected_value: float | None = None
    last_fetch_error: str | None = None
    notes: str = ""

    @classmethod
    def from_wager(cls, wager: Wager) -> "WagerOut":
        return cls(
            id=wager.id,
            sport=wager.sport.value,
            kind=wager.kind.value,
            matchup=wager.matchup.describe(),
            start_time=wager.matchup.start_time,
            selection=wager.selection.description,
            line=wager.selection.line,
            stake=wager.stake,
            potential_payout=wager.potential_payout,
            opening_odds=wager.opening_odds,
            status=wager.status.value,
            result=wager.result.value if wager.result else None,
            profit=wager.profit,
            closing_odds=wager.closing_odds,
            clv=wager.clv,
            expected_value=wager.expected_value,
            last_fetch_error=wager.last_fetch_error,
            notes=wager.notes,
        )


class ImportRequest(BaseModel):
    text: str = Field(min_length=1)
    user_id: str | None = None


class ParseErrorOut(BaseModel):
    block_index: int
    raw_text_prefix: str
    reason: str


class ParseWarningOut(BaseModel):
    wager_id: str
    message: str


class ImportResponse(BaseModel):
    imported: list[WagerOut]
    duplicates: list[str] = Field(default_factory=list)
    errors: list[ParseErrorOut] = Field(default_factory=list)
    warnings: list[ParseWarningOut] = Field(default_factory=list)


class LegProgressOut(BaseModel):
    index: int
    description: str
    status: str


class ProgressOut(BaseModel):
    wager_id: str
    status_text: str
    is_live: bool
    is_complete: bool
    current_value: float | None = None
    target: float | None = None
    percent: float | None = None
    away_team: str | None = None
    home_team: str | None = None
    away_score: float | None = None
    home_score: float | None = None
    legs: list[LegProgressOut] = Field(default_factory=list)

    @classmethod
    def from_progress(cls, progress: LiveProgress) -> "ProgressOut":
        return cls(
            wager_id=progress.wager_id,
            status_text=progress.status_text,
            is_live=progress.is_live,
            is_complete=progress.is_complete,
            current_value=progress.current_value,
            target=progress.target,
            percent=progress.percent,
            away_team=progress.away_team,
            home_team=progress.home_team,
            away_score=progress.away_score,
            home_score=progress.home_score,
            legs=[LegProgressOut(index=leg.index, description=leg.description, status=leg.status.value) for leg in progress.legs],
        )


class JobRequest(BaseModel):
    user_id: str | None = None


class JobResponse(BaseModel):
    status: str = "ok"
    details: dict[str, Any] = Field(default_factory=dict)


class ClvEstimateRequest(BaseModel):
    opening_odds: int
    current_odds: int
    booked_line: float | None = None
    current_line: float | None = None
    sport: Sport = Sport.NBA
    kind: BetKind = BetKind.PLAYER_PROP
    direction: Direction | None = None
    stat: str | None = None
    stake: float | None = Field(default=None, ge=0)


class ClvEstimateResponse(BaseModel):
    clv: float
    adjusted_odds: int
    confidence: str
    explanation: str
    warning: str | None = None
    expected_value: float | None = None
