"""Selection line classification."""

from __future__ import annotations

from wagerlab.wagers.selection import classify_selection, extract_odds, split_matchup, strip_annotations
from wagerlab.wagers.types import BetKind, Direction


def test_prop_is_checked_before_total() -> None:
    classified = classify_selection("Jalen Brunson (NYK) Over 24.5 Points")
    assert classified is not None
    assert classified.kind is BetKind.PLAYER_PROP
    assert classified.selection.player == "Jalen Brunson"
    assert classified.selection.player_team == "NYK"
    assert classified.selection.line == 24.5
    assert classified.selection.direction is Direction.OVER
    assert classified.selection.stat == "Points"


def test_combo_prop_keeps_stat_words() -> None:
    classified = classify_selection("Nikola Jokic Under 52.5 Pts + Reb + Ast")
    assert classified is not None
    assert classified.kind is BetKind.PLAYER_PROP
    assert classified.selection.direction is Direction.UNDER
    assert classified.selection.stat == "Pts + Reb + Ast"


def test_spread_with_fraction_and_odds() -> None:
    classified = classify_selection("Boston Celtics -4½-110")
    assert classified is not None
    assert classified.kind is BetKind.SPREAD
    assert classified.selection.team == "Boston Celtics"
    assert classified.selection.line == -4.5
    assert classified.odds == -110


def test_teaser_marker_sets_points() -> None:
    classified = classify_selection("NE PATRIOTS +.5-110 (B+7.5)")
    assert classified is not None
    assert classified.kind is BetKind.SPREAD
    assert classified.selection.line == 0.5
    assert classified.teaser_points == 7.5


def test_short_total_with_matchup_in_parens() -> None:
    classified = classify_selection("TOTAL o221½-110 (Lakers vrs Celtics)")
    assert classified is not None
    assert classified.kind is BetKind.TOTAL
    assert classified.selection.direction is Direction.OVER
    assert classified.selection.line == 221.5
    assert classified.matchup.team_a == "Lakers"
    assert classified.matchup.team_b == "Celtics"


def test_moneyline_odds_are_not_a_spread() -> None:
    classified = classify_selection("Florida Panthers +135")
    assert classified is not None
    assert classified.kind is BetKind.MONEYLINE
    assert classified.selection.team == "Florida Panthers"
    assert classified.odds == 135


def test_period_prefix() -> None:
    classified = classify_selection("1H Lakers -2.5-110")
    assert classified is not None
    assert classified.kind is BetKind.SPREAD
    assert classified.selection.period == "1H"
    assert classified.selection.team == "Lakers"


def test_even_odds() -> None:
    assert extract_odds("Denver Broncos EVEN") == 100
    assert extract_odds("Boston Celtics -4.5-110 [Won]") == -110
    assert extract_odds("Boston Celtics") is None


def test_helpers() -> None:
    assert strip_annotations("[451] NE PATRIOTS -3 [Pending] (Score: 10-7)") == "NE PATRIOTS -3"
    assert split_matchup("Lakers @ Celtics") == ("Lakers", "Celtics")
    assert split_matchup("Lakers") is None
