"""Conversions between American odds, decimal odds and implied probability."""

from __future__ import annotations

import math
from dataclasses import dataclass


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def implied_probability(odds: int) -> float:
    """Convert American odds into implied probability."""

    if odds > 0:
        return 100.0 / (odds + 100.0)
    return -odds / (-odds + 100.0)


def probability_to_american(prob: float) -> int:
    if prob >= 0.5:
        return _round_half_up(-100.0 * prob / (1.0 - prob))
    return _round_half_up(100.0 * (1.0 - prob) / prob)


def american_to_decimal(odds: int) -> float:
    return 1 + (odds / 100) if odds > 0 else 1 + (100 / abs(odds))


def decimal_to_american(decimal_odds: float) -> int:
    if decimal_odds >= 2.0:
        return _round_half_up((decimal_odds - 1.0) * 100.0)
    return _round_half_up(-100.0 / (decimal_odds - 1.0))


def decimal_to_probability(decimal_odds: float) -> float:
    return 1.0 / decimal_odds


def probability_to_decimal(prob: float) -> float:
    return 1.0 / prob


def payout_to_american(stake: float, to_win: float) -> int | None:
    """Back out American odds from a slip's risk/win pair."""

    if stake <= 0 or to_win <= 0:
        return None
    ratio = to_win / stake
    if ratio >= 1:
        return _round_half_up(ratio * 100)
    return _round_half_up(-100 / ratio)


def potential_payout(stake: float, odds: int) -> float:
    """Profit returned by a winning bet at the given odds (stake excluded)."""

    return round(stake * (american_to_decimal(odds) - 1), 2)


def format_american(odds: int) -> str:
    return f"+{odds}" if odds > 0 else str(odds)


@dataclass(frozen=True)
class OddsPoint:
    american: int
    probability: float

    @classmethod
    def from_american(cls, odds: int) -> "OddsPoint":
        return cls(american=odds, probability=implied_probability(odds))

    @classmethod
    def from_probability(cls, prob: float) -> "OddsPoint":
        return cls(american=probability_to_american(prob), probability=prob)

    @property
    def decimal(self) -> float:
        return american_to_decimal(self.american)
