"""Odds math tests."""

from __future__ import annotations

import pytest

from wagerlab.wagers import odds


@pytest.mark.parametrize("american", [-1000, -250, -110, -101, 100, 101, 150, 475, 2500])
def test_probability_round_trip(american: int) -> None:
    prob = odds.implied_probability(american)
    back = odds.probability_to_american(prob)
    # +100 and -100 are the same even-money price
    assert odds.american_to_decimal(back) == pytest.approx(odds.american_to_decimal(american), abs=0.02)


def test_even_money_comes_back_as_minus_100() -> None:
    assert odds.probability_to_american(odds.implied_probability(100)) == -100


def test_implied_probability_signs() -> None:
    assert odds.implied_probability(-110) == pytest.approx(110 / 210)
    assert odds.implied_probability(150) == pytest.approx(0.4)
    assert odds.implied_probability(100) == pytest.approx(0.5)


def test_probability_to_american_rounds_to_nearest() -> None:
    assert odds.probability_to_american(0.5) == -100
    assert odds.probability_to_american(0.6) == -150
    assert odds.probability_to_american(0.25) == 300


def test_decimal_conversions_are_inverse() -> None:
    for american in (-200, -110, 120, 300):
        decimal = odds.american_to_decimal(american)
        assert odds.decimal_to_american(decimal) == american
    assert odds.decimal_to_probability(odds.probability_to_decimal(0.4)) == pytest.approx(0.4)


def test_payout_helpers() -> None:
    assert odds.payout_to_american(100, 90.91) == -110
    assert odds.payout_to_american(50, 75) == 150
    assert odds.payout_to_american(0, 10) is None
    assert odds.potential_payout(110, -110) == pytest.approx(100.0)
    assert odds.potential_payout(20, 250) == pytest.approx(50.0)
    assert odds.format_american(125) == "+125"


def test_odds_point() -> None:
    point = odds.OddsPoint.from_american(-150)
    assert point.probability == pytest.approx(0.6)
    assert odds.OddsPoint.from_probability(0.6).american == -150
    assert point.decimal == pytest.approx(1 + 100 / 150)
