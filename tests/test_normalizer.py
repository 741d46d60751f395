"""Sport and team normalizer tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from wagerlab.wagers import normalizer
from wagerlab.wagers.types import Sport


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("[NFL]", Sport.NFL),
        ("NBA", Sport.NBA),
        ("[MU] Jon Jones vs Stipe Miocic", Sport.UFC),
        ("UFC 309 Main Card", Sport.UFC),
        ("CS2 - Vitality vs NAVI", Sport.CS2),
        ("Indiana vs Purdue", Sport.NCAAF),
        ("Indiana Pacers vs Boston Celtics", Sport.NBA),
        ("Florida Panthers vs Boston Bruins", Sport.NHL),
        ("Carolina Panthers vs Atlanta Falcons", Sport.NFL),
        ("Kansas City Chiefs @ Denver Broncos", Sport.NFL),
        ("New York Yankees vs Boston Red Sox", Sport.MLB),
        ("Lakers vs Knicks", Sport.NBA),
        ("Ja'Marr Chase (CIN) Over 6.5 Receptions", Sport.NFL),
        ("Jalen Brunson (NYK) Over 24.5 Points", Sport.NBA),
        ("Somebody Over 1.5 Strikeouts", Sport.MLB),
        ("Somebody Over 48.5 Receiving Yards", Sport.NFL),
        ("Somebody Over 2.5 Shots On Goal", Sport.NHL),
        ("Duke vs North Carolina Points", Sport.NCAAB),
        ("Team One vs Team Two", Sport.UNCLASSIFIED),
        ("", Sport.UNCLASSIFIED),
    ],
)
def test_resolve_sport(text: str, expected: Sport) -> None:
    assert normalizer.resolve_sport(text) is expected


def test_pro_city_does_not_read_as_college() -> None:
    assert normalizer.resolve_sport("Oklahoma City Thunder vs Utah Jazz") is Sport.NBA


def test_teams_match_tolerates_abbreviation_and_suffix() -> None:
    assert normalizer.teams_match("NE PATRIOTS", "New England Patriots")
    assert normalizer.teams_match("Celtics", "Boston Celtics")
    assert normalizer.teams_match("KC", "Kansas City Chiefs")
    assert normalizer.teams_match("LA Lakers", "Los Angeles Lakers")
    assert not normalizer.teams_match("NE", "Denver Broncos")
    assert not normalizer.teams_match("Boston Celtics", "Brooklyn Nets")
    assert not normalizer.teams_match(None, "Brooklyn Nets")


def test_players_match_is_bidirectional() -> None:
    assert normalizer.players_match("Quinten Post", "Post")
    assert normalizer.players_match("J. Brunson", "J Brunson")
    assert not normalizer.players_match("Jalen Brunson", "Jalen Green")


def test_game_status_uses_sport_duration() -> None:
    start = datetime(2025, 12, 1, 1, 0, tzinfo=timezone.utc)
    assert normalizer.game_status(None, Sport.NBA, start) == "unknown"
    assert normalizer.game_status(start, Sport.NBA, start - timedelta(minutes=1)) == "pregame"
    assert normalizer.game_status(start, Sport.NBA, start + timedelta(hours=2)) == "live"
    assert normalizer.game_status(start, Sport.NBA, start + timedelta(hours=3)) == "completed"
    assert normalizer.game_status(start, Sport.NFL, start + timedelta(hours=4)) == "live"
