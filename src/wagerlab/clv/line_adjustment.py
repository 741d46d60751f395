"""Closing-line value and odds estimates for lines the market is not quoting.

When the only current quote is at a different line than the one booked, the
odds at the booked line are estimated by moving the implied probability a
per-unit rate for each unit of line difference. Rates are per market family
and scale with the size of the line: a half point on a 4.5 assists prop matters
far more than a half point on a 24.5 points prop.

These are estimates, not market quotes; ``confidence`` says how far to trust
them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

from wagerlab.wagers.odds import implied_probability, probability_to_american
from wagerlab.wagers.stats import market_family, resolve_stat_keys
from wagerlab.wagers.types import BetKind, Direction, Sport

logger = logging.getLogger(__name__)

MIN_PROBABILITY = 0.05
MAX_PROBABILITY = 0.95
MAX_RATE = 0.5
SCALE_FLOOR = 0.6
SCALE_CEILING = 1.35
EDGE_THRESHOLD_UNITS = 2.5
EDGE_BOOST_CAP = 0.15


@dataclass(frozen=True)
class MarketProfile:
    """Per-unit probability rate and the baseline line it was calibrated at."""

    rate: float
    baseline: float
    unit: float = 1.0


MARKET_PROFILES: Dict[str, MarketProfile] = {
    "points": MarketProfile(0.12, 12.0),
    "rebounds": MarketProfile(0.13, 6.0),
    "assists": MarketProfile(0.12, 5.0),
    "threes": MarketProfile(0.18, 2.5),
    "pra": MarketProfile(0.08, 25.0),
    "combo": MarketProfile(0.10, 15.0),
    "steals": MarketProfile(0.20, 1.5),
    "blocks": MarketProfile(0.20, 1.5),
    "turnovers": MarketProfile(0.15, 2.5),
    "passing_yards": MarketProfile(0.015, 240.0, unit=10.0),
    "rushing_yards": MarketProfile(0.018, 60.0, unit=10.0),
    "receiving_yards": MarketProfile(0.018, 50.0, unit=10.0),
    "receptions": MarketProfile(0.12, 4.5),
    "completions": MarketProfile(0.06, 22.0),
    "passing_attempts": MarketProfile(0.05, 33.0),
    "rushing_attempts": MarketProfile(0.08, 14.0),
    "passing_touchdowns": MarketProfile(0.20, 1.5),
    "interceptions": MarketProfile(0.20, 0.5),
    "strikeouts": MarketProfile(0.10, 5.5),
    "hits": MarketProfile(0.12, 1.0),
    "total_bases": MarketProfile(0.12, 1.5),
    "home_runs": MarketProfile(0.20, 0.5),
    "rbis": MarketProfile(0.15, 0.5),
    "shots_on_goal": MarketProfile(0.12, 2.5),
    "saves": MarketProfile(0.05, 26.0),
    "default": MarketProfile(0.12, 10.0),
}

# Game lines: spreads and totals per sport family, in points/runs/goals.
GAME_LINE_PROFILES: Dict[tuple[str, BetKind], MarketProfile] = {
    ("football", BetKind.SPREAD): MarketProfile(0.03, 7.0),
    ("football", BetKind.TOTAL): MarketProfile(0.025, 45.0),
    ("basketball", BetKind.SPREAD): MarketProfile(0.03, 6.0),
    ("basketball", BetKind.TOTAL): MarketProfile(0.02, 220.0),
    ("baseball", BetKind.SPREAD): MarketProfile(0.15, 1.5),
    ("baseball", BetKind.TOTAL): MarketProfile(0.10, 8.5),
    ("hockey", BetKind.SPREAD): MarketProfile(0.15, 1.5),
    ("hockey", BetKind.TOTAL): MarketProfile(0.12, 6.0),
    ("soccer", BetKind.SPREAD): MarketProfile(0.15, 1.0),
    ("soccer", BetKind.TOTAL): MarketProfile(0.12, 2.5),
}


@dataclass
class ClvEstimate:
    clv: float | None
    adjusted_odds: int
    confidence: str
    explanation: str
    warning: str | None = None


def compute_clv(opening_odds: int, closing_odds: int) -> float:
    """Relative change in implied probability from open to close, in percent."""

    opening_prob = implied_probability(opening_odds)
    closing_prob = implied_probability(closing_odds)
    return (closing_prob - opening_prob) / opening_prob * 100.0


def expected_value(stake: float, clv_percent: float) -> float:
    return stake * clv_percent / 100.0


def profile_for(sport: Sport, kind: BetKind, stat: str | None = None) -> tuple[str, MarketProfile]:
    if kind is BetKind.PLAYER_PROP:
        family = market_family(resolve_stat_keys(stat))
        return family, MARKET_PROFILES.get(family, MARKET_PROFILES["default"])
    profile = GAME_LINE_PROFILES.get((sport.family, kind))
    if profile is None:
        return "default", MARKET_PROFILES["default"]
    return f"{sport.family} {kind.value.lower()}", profile


def scaled_rate(profile: MarketProfile, reference_line: float) -> float:
    """Per-unit rate scaled by sqrt(baseline/line), clamped to [0.6x, 1.35x] of the base rate."""

    reference = max(abs(reference_line), 0.5)
    multiplier = math.sqrt(profile.baseline / reference)
    multiplier = min(SCALE_CEILING, max(SCALE_FLOOR, multiplier))
    return min(MAX_RATE, profile.rate * multiplier)


def edge_boost(units: float) -> float:
    """Extra multiplier for large favorable moves; convex in the distance past the threshold."""

    if units < EDGE_THRESHOLD_UNITS:
        return 1.0
    return 1.0 + min(EDGE_BOOST_CAP, 0.02 * (units - EDGE_THRESHOLD_UNITS + 1.0) ** 2)


def confidence_for(units: float) -> str:
    if units <= 1.0:
        return "high"
    if units <= 3.0:
        return "medium"
    return "low"


def _is_favorable(kind: BetKind, direction: Direction | None, current_line: float, target_line: float) -> bool:
    """True when the target line is easier to clear than the quoted one."""

    if kind is BetKind.SPREAD:
        return target_line > current_line
    if direction is Direction.UNDER:
        return target_line > current_line
    return target_line < current_line


def adjusted_odds_for_line(
    current_odds: int,
    current_line: float,
    target_line: float,
    *,
    sport: Sport,
    kind: BetKind,
    direction: Direction | None = None,
    stat: str | None = None,
) -> ClvEstimate:
    """Estimate the odds at ``target_line`` from a quote at ``current_line``."""

    difference = abs(target_line - current_line)
    if difference < 0.1:
        return ClvEstimate(
            clv=None,
            adjusted_odds=current_odds,
            confidence="high",
            explanation="Quoted line matches the booked line",
        )
    family, profile = profile_for(sport, kind, stat)
    units = difference / profile.unit
    rate = scaled_rate(profile, target_line)
    favorable = _is_favorable(kind, direction, current_line, target_line)
    probability = implied_probability(current_odds)
    if favorable:
        probability *= (1.0 + rate) ** units
        probability *= edge_boost(units)
    else:
        probability *= (1.0 - rate) ** units
    probability = min(MAX_PROBABILITY, max(MIN_PROBABILITY, probability))
    adjusted = probability_to_american(probability)
    confidence = confidence_for(units)
    move = "easier" if favorable else "harder"
    explanation = (
        f"{family}: {current_line:g} -> {target_line:g} is {difference:g} ({units:g} units) {move}; "
        f"{rate * 100:.1f}% per unit moves {current_odds:+d} to {adjusted:+d}"
    )
    warning = None
    if confidence == "low":
        warning = "Large line difference; treat the estimate as advisory"
    return ClvEstimate(clv=None, adjusted_odds=adjusted, confidence=confidence, explanation=explanation, warning=warning)


def clv_with_line_adjustment(
    opening_odds: int,
    booked_line: Optional[float],
    current_odds: int,
    current_line: Optional[float],
    *,
    sport: Sport,
    kind: BetKind,
    direction: Direction | None = None,
    stat: str | None = None,
) -> ClvEstimate:
    """CLV against the current market, re-priced to the booked line when they differ."""

    if booked_line is None or current_line is None:
        return ClvEstimate(
            clv=compute_clv(opening_odds, current_odds),
            adjusted_odds=current_odds,
            confidence="high",
            explanation="No line to adjust; compared odds directly",
        )
    estimate = adjusted_odds_for_line(
        current_odds,
        current_line,
        booked_line,
        sport=sport,
        kind=kind,
        direction=direction,
        stat=stat,
    )
    estimate.clv = compute_clv(opening_odds, estimate.adjusted_odds)
    return estimate
