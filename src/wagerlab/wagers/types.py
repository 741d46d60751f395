"""Dataclasses and enums for recorded wagers and their legs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List


class Sport(str, Enum):
    NFL = "NFL"
    NCAAF = "NCAAF"
    NBA = "NBA"
    NCAAB = "NCAAB"
    WNBA = "WNBA"
    WNCAAB = "WNCAAB"
    MLB = "MLB"
    NHL = "NHL"
    MLS = "MLS"
    UFC = "UFC"
    CS2 = "CS2"
    DOTA2 = "DOTA2"
    LOL = "LOL"
    VALORANT = "VALORANT"
    ESPORTS = "Esports"
    MULTISPORT = "MultiSport"
    UNCLASSIFIED = "Other"

    @property
    def family(self) -> str:
        return _FAMILIES.get(self, "other")


_FAMILIES = {
    Sport.NFL: "football",
    Sport.NCAAF: "football",
    Sport.NBA: "basketball",
    Sport.NCAAB: "basketball",
    Sport.WNBA: "basketball",
    Sport.WNCAAB: "basketball",
    Sport.MLB: "baseball",
    Sport.NHL: "hockey",
    Sport.MLS: "soccer",
    Sport.UFC: "combat",
    Sport.CS2: "esports",
    Sport.DOTA2: "esports",
    Sport.LOL: "esports",
    Sport.VALORANT: "esports",
    Sport.ESPORTS: "esports",
}


class BetKind(str, Enum):
    MONEYLINE = "Moneyline"
    SPREAD = "Spread"
    TOTAL = "Total"
    PLAYER_PROP = "PlayerProp"
    PARLAY = "Parlay"
    TEASER = "Teaser"

    @property
    def is_multi_leg(self) -> bool:
        return self in (BetKind.PARLAY, BetKind.TEASER)


class WagerStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SETTLED = "settled"


class Result(str, Enum):
    WON = "won"
    LOST = "lost"
    PUSH = "push"


class LegStatus(str, Enum):
    PENDING = "Pending"
    LIVE = "Live"
    WON = "Won"
    LOST = "Lost"
    PUSH = "Push"

    @property
    def is_resolved(self) -> bool:
        return self in (LegStatus.WON, LegStatus.LOST, LegStatus.PUSH)


class Direction(str, Enum):
    OVER = "Over"
    UNDER = "Under"


@dataclass
class Matchup:
    """Two sides of a game as written on the slip, plus the start time when known."""

    team_a: str | None = None
    team_b: str | None = None
    start_time: datetime | None = None

    @property
    def teams(self) -> List[str]:
        return [team for team in (self.team_a, self.team_b) if team]

    def describe(self) -> str:
        if self.team_a and self.team_b:
            return f"{self.team_a} vs {self.team_b}"
        return self.team_a or self.team_b or ""


@dataclass
class Selection:
    """What the bettor picked: a side, a line, or a player stat threshold."""

    description: str = ""
    team: str | None = None
    line: float | None = None
    direction: Direction | None = None
    player: str | None = None
    player_team: str | None = None
    stat: str | None = None
    period: str | None = None


@dataclass
class WagerLeg:
    index: int
    sport: Sport
    kind: BetKind
    selection: Selection
    matchup: Matchup
    status: LegStatus = LegStatus.PENDING
    teaser_points: float | None = None
    odds: int | None = None

    @property
    def effective_line(self) -> float | None:
        """Line to grade against, with any teaser points applied in the bettor's favor."""

        line = self.selection.line
        if line is None or not self.teaser_points:
            return line
        if self.kind is BetKind.TOTAL:
            if self.selection.direction is Direction.UNDER:
                return line + self.teaser_points
            return line - self.teaser_points
        # Spread lines are handicaps added to the picked side, so teasing always adds.
        return line + self.teaser_points


@dataclass
class ParseError:
    block_index: int
    raw_text_prefix: str
    reason: str


@dataclass
class Wager:
    id: str
    sport: Sport
    kind: BetKind
    matchup: Matchup
    selection: Selection
    stake: float
    potential_payout: float
    opening_odds: int | None = None
    status: WagerStatus = WagerStatus.ACTIVE
    result: Result | None = None
    profit: float | None = None
    settled_at: datetime | None = None
    notes: str = ""
    closing_odds: int | None = None
    clv: float | None = None
    expected_value: float | None = None
    last_fetch_error: str | None = None
    last_attempt_at: datetime | None = None
    clv_fetch_error: str | None = None
    clv_last_attempt: datetime | None = None
    is_free_play: bool = False
    is_live_bet: bool = False
    user_id: str | None = None
    placed_at: datetime | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def is_settled(self) -> bool:
        return self.status is WagerStatus.SETTLED

    def profit_for(self, result: Result) -> float:
        if result is Result.WON:
            return round(self.potential_payout, 2)
        if result is Result.LOST:
            # Free plays risk house money.
            return 0.0 if self.is_free_play else -round(self.stake, 2)
        return 0.0

    def settle(self, result: Result, settled_at: datetime) -> bool:
        """Move the wager to Settled; returns False when it was already settled."""

        if self.is_settled:
            if self.result is not result:
                raise ValueError(f"Wager {self.id} already settled as {self.result}")
            return False
        self.status = WagerStatus.SETTLED
        self.result = result
        self.profit = self.profit_for(result)
        self.settled_at = settled_at
        return True
