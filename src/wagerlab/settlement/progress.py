"""Read-only live progress summaries for display."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from wagerlab.config import get_settings
from wagerlab.data.aggregator import LiveDataAggregator
from wagerlab.data.schemas import GameSnapshot
from wagerlab.settlement.evaluator import find_player, period_scores, selected_side
from wagerlab.wagers.legs import parse_legs
from wagerlab.wagers.normalizer import game_status
from wagerlab.wagers.stats import resolve_stat_keys, stat_value
from wagerlab.wagers.types import BetKind, Direction, LegStatus, Wager

logger = logging.getLogger(__name__)


def progress_percent(value: float, target: float, direction: Direction) -> float:
    """How far a stat has come toward clearing its line, 0-100."""

    if direction is Direction.UNDER:
        return 100.0 if value <= target else 0.0
    if target <= 0:
        return 100.0 if value > target else 0.0
    return min(100.0, value / target * 100.0)


@dataclass
class LegProgress:
    index: int
    description: str
    status: LegStatus


@dataclass
class LiveProgress:
    wager_id: str
    status_text: str
    is_live: bool = False
    is_complete: bool = False
    current_value: float | None = None
    target: float | None = None
    percent: float | None = None
    away_team: str | None = None
    home_team: str | None = None
    away_score: float | None = None
    home_score: float | None = None
    legs: List[LegProgress] = field(default_factory=list)


def _from_snapshot(wager_id: str, snapshot: GameSnapshot) -> LiveProgress:
    return LiveProgress(
        wager_id=wager_id,
        status_text=snapshot.status_text or ("Final" if snapshot.is_complete else "In progress"),
        is_live=snapshot.is_live,
        is_complete=snapshot.is_complete,
        away_team=snapshot.away_team,
        home_team=snapshot.home_team,
        away_score=snapshot.away_score,
        home_score=snapshot.home_score,
    )


async def build_progress(
    wager: Wager,
    aggregator: LiveDataAggregator,
    now: Optional[datetime] = None,
    tz: ZoneInfo | None = None,
) -> LiveProgress:
    """Project current value vs. target for a wager; never writes anything."""

    now = now or datetime.now(timezone.utc)
    if wager.kind.is_multi_leg:
        return _parlay_progress(wager, tz or ZoneInfo(get_settings().slip_timezone))

    start = wager.matchup.start_time
    clock_status = game_status(start, wager.sport, now)
    if start is None or clock_status == "pregame":
        return LiveProgress(wager_id=wager.id, status_text=clock_status)

    team_a, team_b = wager.matchup.team_a, wager.matchup.team_b
    if wager.kind is BetKind.PLAYER_PROP and not (team_a or team_b):
        team_a = wager.selection.player_team
    lookup = await aggregator.find_game(wager.sport, team_a, team_b, start)
    if lookup.snapshot is None:
        return LiveProgress(wager_id=wager.id, status_text=clock_status)
    snapshot = lookup.snapshot
    progress = _from_snapshot(wager.id, snapshot)
    selection = wager.selection
    direction = selection.direction or Direction.OVER

    if wager.kind is BetKind.PLAYER_PROP:
        keys = resolve_stat_keys(selection.stat)
        if keys is None or selection.line is None:
            return progress
        box = snapshot.box_score or (await aggregator.find_box_score(wager.sport, snapshot, team_a, team_b)).box_score
        player = find_player(box, selection.player, selection.player_team) if box else None
        value = stat_value(player.stats, keys) if player else None
        if value is not None:
            progress.current_value = value
            progress.target = selection.line
            progress.percent = round(progress_percent(value, selection.line, direction), 1)
        return progress

    scores = period_scores(snapshot, selection.period)
    if scores is None:
        return progress
    away, home = scores
    if wager.kind is BetKind.TOTAL and selection.line is not None:
        progress.current_value = away + home
        progress.target = selection.line
        progress.percent = round(progress_percent(away + home, selection.line, direction), 1)
    elif wager.kind in (BetKind.SPREAD, BetKind.MONEYLINE):
        side = selected_side(snapshot, selection.team)
        if side is not None:
            picked, other = (away, home) if side == "away" else (home, away)
            # Margin including the handicap; positive means currently covering.
            progress.current_value = picked - other + (selection.line or 0.0)
            progress.target = 0.0
    return progress


def _parlay_progress(wager: Wager, tz: ZoneInfo) -> LiveProgress:
    legs = parse_legs(wager.notes, tz)
    progress = LiveProgress(
        wager_id=wager.id,
        status_text="",
        legs=[LegProgress(leg.index, leg.selection.description, leg.status) for leg in legs],
    )
    if not legs:
        progress.status_text = "No legs found"
        return progress
    won = sum(1 for leg in legs if leg.status in (LegStatus.WON, LegStatus.PUSH))
    lost = sum(1 for leg in legs if leg.status is LegStatus.LOST)
    progress.is_live = any(leg.status is LegStatus.LIVE for leg in legs)
    progress.is_complete = all(leg.status.is_resolved for leg in legs)
    progress.current_value = float(won)
    progress.target = float(len(legs))
    progress.percent = 0.0 if lost else round(won / len(legs) * 100.0, 1)
    progress.status_text = f"{won}/{len(legs)} legs cashed" + (f", {lost} lost" if lost else "")
    return progress
