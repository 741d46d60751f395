"""Grade wagers against provider results.

Grading is split in two layers:

* pure functions (``grade_moneyline``, ``grade_spread``, ``grade_total``,
  ``grade_prop``, ``aggregate_legs``) that turn scores and stat values into a
  ``LegStatus``;
* ``SettlementEvaluator``, which gathers the game snapshot (and box score for
  props) through the aggregator and returns an ``Evaluation`` without touching
  the wager itself. Persisting the verdict is the settlement service's job.

Missing data never grades as a loss: an unknown start time, a game no provider
lists, an incomplete game, or a player absent from the box score all leave the
selection unresolved with a diagnostic.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from wagerlab.config import get_settings
from wagerlab.data.aggregator import LiveDataAggregator
from wagerlab.data.schemas import BoxScore, GameSnapshot, PlayerStatLine
from wagerlab.wagers.legs import parse_legs, update_leg_statuses
from wagerlab.wagers.normalizer import normalize_player, players_match, team_matches_any, teams_match
from wagerlab.wagers.stats import resolve_stat_keys, stat_value
from wagerlab.wagers.types import BetKind, Direction, LegStatus, Matchup, Result, Selection, Sport, Wager

logger = logging.getLogger(__name__)

LEG_RESULTS: Dict[LegStatus, Result] = {
    LegStatus.WON: Result.WON,
    LegStatus.LOST: Result.LOST,
    LegStatus.PUSH: Result.PUSH,
}


def _compare(value: float, target: float) -> LegStatus:
    if value > target:
        return LegStatus.WON
    if value < target:
        return LegStatus.LOST
    return LegStatus.PUSH


def grade_moneyline(selected: float, opponent: float) -> LegStatus:
    """Won iff the selected side finished strictly ahead; a tie is a push."""

    return _compare(selected, opponent)


def grade_spread(selected: float, opponent: float, line: float) -> LegStatus:
    return _compare(selected + line, opponent)


def grade_total(combined: float, line: float, direction: Direction) -> LegStatus:
    if direction is Direction.UNDER:
        return _compare(line, combined)
    return _compare(combined, line)


def grade_prop(value: float, line: float, direction: Direction) -> LegStatus:
    """Over wins iff value >= line; Under wins iff value <= line."""

    if direction is Direction.UNDER:
        return LegStatus.WON if value <= line else LegStatus.LOST
    return LegStatus.WON if value >= line else LegStatus.LOST


def aggregate_legs(statuses: Iterable[LegStatus]) -> Result | None:
    """Parlay verdict; None while any leg is unresolved.

    Push legs are neutral: they never lose the ticket, and a ticket whose
    every leg pushed is itself a push.
    """

    statuses = list(statuses)
    if not statuses or not all(status.is_resolved for status in statuses):
        return None
    if LegStatus.LOST in statuses:
        return Result.LOST
    if LegStatus.WON in statuses:
        return Result.WON
    return Result.PUSH


def period_scores(snapshot: GameSnapshot, period: str | None) -> Tuple[float, float] | None:
    """(away, home) for the full game or a quarter/half; None when the provider lacks the split."""

    if not period:
        if not snapshot.has_scores:
            return None
        return float(snapshot.away_score), float(snapshot.home_score)
    away, home = snapshot.away_periods, snapshot.home_periods
    period = period.upper()
    if period.endswith("Q"):
        slots = [int(period[0]) - 1]
    elif period == "1H":
        slots = [0, 1]
    elif period == "2H":
        slots = [2, 3]
    else:
        return None
    if len(away) <= max(slots) or len(home) <= max(slots):
        return None
    return sum(away[slot] for slot in slots), sum(home[slot] for slot in slots)


def selected_side(snapshot: GameSnapshot, team: str | None) -> str | None:
    """'away' or 'home' for the picked team; None when it matches neither or both."""

    on_away = team_matches_any(team, snapshot.away_names)
    on_home = team_matches_any(team, snapshot.home_names)
    if on_away == on_home:
        return None
    return "away" if on_away else "home"


def find_player(box: BoxScore, name: str | None, team: str | None = None) -> PlayerStatLine | None:
    """Resolve a slip player name in a box score; None when absent or ambiguous.

    Exact normalized names win, then unique containment; the slip's team code
    breaks ties between namesakes.
    """

    target = normalize_player(name)
    if not target:
        return None
    candidates = [player for player in box.players if normalize_player(player.name) == target]
    if not candidates:
        candidates = [player for player in box.players if players_match(player.name, name)]
    if len(candidates) > 1 and team:
        candidates = [player for player in candidates if teams_match(team, player.team)]
    return candidates[0] if len(candidates) == 1 else None


@dataclass
class LegCheck:
    """Outcome of checking one selection; unresolved statuses carry a ``detail``."""

    status: LegStatus
    detail: str = ""
    snapshot: GameSnapshot | None = None
    stat_value: float | None = None

    @property
    def resolved(self) -> bool:
        return self.status.is_resolved


@dataclass
class Evaluation:
    wager_id: str
    result: Result | None = None
    checks: Dict[int, LegCheck] = field(default_factory=dict)
    leg_statuses: Dict[int, LegStatus] = field(default_factory=dict)
    notes: str | None = None
    diagnostics: List[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def is_settled(self) -> bool:
        return self.result is not None

    @property
    def record(self) -> Tuple[int, int, int]:
        statuses = list(self.leg_statuses.values())
        return (
            statuses.count(LegStatus.WON),
            statuses.count(LegStatus.LOST),
            statuses.count(LegStatus.PUSH),
        )

    @property
    def error(self) -> str | None:
        return "; ".join(self.diagnostics) if self.diagnostics else None


class SettlementEvaluator:
    """Checks wagers against live data; returns verdicts without mutating anything."""

    def __init__(self, aggregator: LiveDataAggregator, tz: ZoneInfo | None = None) -> None:
        self.aggregator = aggregator
        self.tz = tz or ZoneInfo(get_settings().slip_timezone)

    async def evaluate(self, wager: Wager, now: Optional[datetime] = None) -> Evaluation:
        now = now or datetime.now(timezone.utc)
        if wager.is_settled:
            return Evaluation(wager_id=wager.id, skipped=True)
        if wager.kind.is_multi_leg:
            return await self._evaluate_multi(wager, now)

        check = await self.check_selection(wager.sport, wager.kind, wager.selection, wager.matchup, now)
        evaluation = Evaluation(wager_id=wager.id, checks={0: check})
        if check.resolved:
            evaluation.result = LEG_RESULTS[check.status]
        elif check.detail:
            evaluation.diagnostics.append(check.detail)
        return evaluation

    async def _evaluate_multi(self, wager: Wager, now: datetime) -> Evaluation:
        evaluation = Evaluation(wager_id=wager.id)
        legs = parse_legs(wager.notes, self.tz)
        if not legs:
            evaluation.diagnostics.append("No legs found in notes")
            return evaluation

        pending = [leg for leg in legs if not leg.status.is_resolved]
        checks = await asyncio.gather(
            *(
                self.check_selection(
                    leg.sport,
                    leg.kind,
                    leg.selection,
                    leg.matchup,
                    now,
                    line=leg.effective_line,
                )
                for leg in pending
            )
        )
        statuses = {leg.index: leg.status for leg in legs}
        changed: Dict[int, LegStatus] = {}
        for leg, check in zip(pending, checks):
            evaluation.checks[leg.index] = check
            if check.status is not leg.status:
                changed[leg.index] = check.status
            statuses[leg.index] = check.status
            if not check.resolved and check.detail:
                evaluation.diagnostics.append(f"Leg {leg.index + 1}: {check.detail}")
        evaluation.leg_statuses = statuses
        if changed:
            evaluation.notes = update_leg_statuses(wager.notes, changed)
        evaluation.result = aggregate_legs(statuses.values())
        if evaluation.result is not None:
            evaluation.diagnostics.clear()
        return evaluation

    async def check_selection(
        self,
        sport: Sport,
        kind: BetKind,
        selection: Selection,
        matchup: Matchup,
        now: datetime,
        line: float | None = None,
    ) -> LegCheck:
        """Look up the game for one selection and grade it when the game is final."""

        line = selection.line if line is None else line
        start = matchup.start_time
        if start is None:
            return LegCheck(LegStatus.PENDING, "Missing game start time")
        if now < start:
            return LegCheck(LegStatus.PENDING)
        if not self.aggregator.chain_for(sport):
            return LegCheck(LegStatus.PENDING, f"No data providers configured for {sport.value}")

        team_a, team_b = matchup.team_a, matchup.team_b
        if kind is BetKind.PLAYER_PROP and not (team_a or team_b):
            team_a = selection.player_team
        lookup = await self.aggregator.find_game(sport, team_a, team_b, start)
        snapshot = lookup.snapshot
        if snapshot is None:
            return LegCheck(LegStatus.PENDING, lookup.describe_failure())
        if not snapshot.is_complete:
            status = LegStatus.LIVE if snapshot.is_live else LegStatus.PENDING
            return LegCheck(status, "", snapshot)

        if kind is BetKind.PLAYER_PROP:
            return await self._grade_prop(sport, selection, snapshot, team_a, team_b, line)
        scores = period_scores(snapshot, selection.period)
        if scores is None:
            label = f"{selection.period} " if selection.period else ""
            return LegCheck(LegStatus.PENDING, f"{label}scores unavailable from {snapshot.provider}", snapshot)
        away, home = scores

        if kind is BetKind.TOTAL:
            if line is None or selection.direction is None:
                return LegCheck(LegStatus.PENDING, "Total is missing its line or direction", snapshot)
            return LegCheck(grade_total(away + home, line, selection.direction), snapshot=snapshot)

        side = selected_side(snapshot, selection.team)
        if side is None:
            return LegCheck(
                LegStatus.PENDING, f"Could not match {selection.team!r} to {snapshot.away_team} or {snapshot.home_team}", snapshot
            )
        picked, other = (away, home) if side == "away" else (home, away)
        if kind is BetKind.SPREAD:
            return LegCheck(grade_spread(picked, other, line or 0.0), snapshot=snapshot)
        return LegCheck(grade_moneyline(picked, other), snapshot=snapshot)

    async def _grade_prop(
        self,
        sport: Sport,
        selection: Selection,
        snapshot: GameSnapshot,
        team_a: str | None,
        team_b: str | None,
        line: float | None,
    ) -> LegCheck:
        keys = resolve_stat_keys(selection.stat)
        if keys is None:
            return LegCheck(LegStatus.PENDING, f"Unknown stat {selection.stat!r}", snapshot)
        if line is None:
            return LegCheck(LegStatus.PENDING, "Prop is missing its line", snapshot)
        box = snapshot.box_score
        if box is None:
            box_lookup = await self.aggregator.find_box_score(sport, snapshot, team_a, team_b)
            box = box_lookup.box_score
            if box is None:
                reason = "; ".join(box_lookup.failures) or "no provider returned one"
                return LegCheck(LegStatus.PENDING, f"Box score unavailable: {reason}", snapshot)
        player = find_player(box, selection.player, selection.player_team)
        if player is None:
            return LegCheck(LegStatus.PENDING, f"{selection.player} not found in box score", snapshot)
        value = stat_value(player.stats, keys)
        if value is None:
            return LegCheck(LegStatus.PENDING, f"{selection.stat} missing for {player.name}", snapshot)
        return LegCheck(grade_prop(value, line, selection.direction or Direction.OVER), snapshot=snapshot, stat_value=value)
