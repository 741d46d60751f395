"""Settlement evaluator: grading rules and scenarios."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from wagerlab.data.aggregator import LiveDataAggregator
from wagerlab.data.base import ProviderAdapter, ProviderUnavailable, sides_match
from wagerlab.data.cache import TTLCache
from wagerlab.data.schemas import BoxScore, GameSnapshot, PlayerStatLine
from wagerlab.settlement.evaluator import (
    SettlementEvaluator,
    aggregate_legs,
    find_player,
    grade_prop,
    grade_spread,
    grade_total,
    period_scores,
)
from wagerlab.wagers.legs import parse_legs
from wagerlab.wagers.types import (
    BetKind,
    Direction,
    LegStatus,
    Matchup,
    Result,
    Selection,
    Sport,
    Wager,
    WagerStatus,
)

TZ = ZoneInfo("America/New_York")
START = datetime(2025, 12, 7, 18, 0, tzinfo=timezone.utc)
LATER = START + timedelta(hours=4)


def snapshot(away: str, home: str, away_score: float | None, home_score: float | None, **overrides) -> GameSnapshot:
    values = dict(
        game_id=f"{away}-{home}",
        provider="fake",
        sport="NBA",
        away_team=away,
        home_team=home,
        away_score=away_score,
        home_score=home_score,
        status_text="Final",
        is_complete=True,
        start_time=START,
    )
    values.update(overrides)
    return GameSnapshot(**values)


class FakeAdapter(ProviderAdapter):
    name = "fake"
    sports = frozenset(Sport)
    supports_box_scores = True

    def __init__(self, games=(), boxes=None, error: Exception | None = None) -> None:
        self.games = list(games)
        self.boxes = boxes or {}
        self.error = error
        self.calls = 0

    async def find_game(self, sport, team_a, team_b, approx_date):
        self.calls += 1
        if self.error is not None:
            raise self.error
        for game in self.games:
            if sides_match(team_a, team_b, game.away_names, game.home_names):
                return game
        return None

    async def fetch_box_score(self, sport, game_id, game_date):
        return self.boxes.get(game_id)


def evaluator_for(adapter: FakeAdapter, sports=("NBA", "NFL")) -> SettlementEvaluator:
    aggregator = LiveDataAggregator({"fake": adapter}, {sport: ["fake"] for sport in sports}, TTLCache())
    return SettlementEvaluator(aggregator, tz=TZ)


def straight(kind: BetKind, selection: Selection, *, sport: Sport = Sport.NBA, teams=("Boston Celtics", "New York Knicks"), start=START) -> Wager:
    return Wager(
        id="w1",
        sport=sport,
        kind=kind,
        matchup=Matchup(teams[0], teams[1], start),
        selection=selection,
        stake=110,
        potential_payout=100,
        opening_odds=-110,
    )


# Pure grading ----------------------------------------------------------------


def test_grade_spread_and_total_edges() -> None:
    assert grade_spread(100, 102, 3.5) is LegStatus.WON
    assert grade_spread(100, 103, 3.0) is LegStatus.PUSH
    assert grade_total(220, 220.5, Direction.OVER) is LegStatus.LOST
    assert grade_total(220, 220.5, Direction.UNDER) is LegStatus.WON
    assert grade_total(220, 220, Direction.OVER) is LegStatus.PUSH


def test_grade_prop_is_inclusive() -> None:
    assert grade_prop(25, 25, Direction.OVER) is LegStatus.WON
    assert grade_prop(25, 25, Direction.UNDER) is LegStatus.WON
    assert grade_prop(0, 0.5, Direction.OVER) is LegStatus.LOST


@pytest.mark.parametrize(
    "statuses",
    list(itertools.product([LegStatus.WON, LegStatus.LOST, LegStatus.PUSH, LegStatus.PENDING, LegStatus.LIVE], repeat=3)),
)
def test_aggregate_legs_for_every_combination(statuses) -> None:
    result = aggregate_legs(statuses)
    if any(not status.is_resolved for status in statuses):
        assert result is None
    elif LegStatus.LOST in statuses:
        assert result is Result.LOST
    elif LegStatus.WON in statuses:
        assert result is Result.WON
    else:
        assert result is Result.PUSH


def test_period_scores() -> None:
    game = snapshot("A", "B", 100, 98, away_periods=[30, 20, 25, 25], home_periods=[20, 20, 28, 30])
    assert period_scores(game, None) == (100, 98)
    assert period_scores(game, "1H") == (50, 40)
    assert period_scores(game, "2h") == (50, 58)
    assert period_scores(game, "3Q") == (25, 28)
    assert period_scores(snapshot("A", "B", 100, 98), "1Q") is None


def test_find_player_exact_then_containment_then_team() -> None:
    box = BoxScore(
        game_id="g",
        provider="fake",
        players=[
            PlayerStatLine(name="Quinten Post", team="Golden State Warriors"),
            PlayerStatLine(name="Jalen Williams", team="Oklahoma City Thunder"),
            PlayerStatLine(name="Jaylin Williams", team="Oklahoma City Thunder"),
            PlayerStatLine(name="Jalen Williams", team="Phoenix Suns"),
        ],
    )
    assert find_player(box, "Quinten Post").name == "Quinten Post"
    assert find_player(box, "Post").name == "Quinten Post"
    assert find_player(box, "Jalen Williams") is None
    assert find_player(box, "Jalen Williams", "PHX Suns").team == "Phoenix Suns"
    assert find_player(box, "Williams") is None
    assert find_player(box, "") is None


# Scenarios -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_moneyline_home_winner() -> None:
    adapter = FakeAdapter([snapshot("Boston Celtics", "New York Knicks", 102, 110)])
    wager = straight(BetKind.MONEYLINE, Selection(description="Knicks", team="New York Knicks"))
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is Result.WON
    assert wager.profit_for(evaluation.result) == 100


@pytest.mark.asyncio
async def test_spread_underdog_covers() -> None:
    adapter = FakeAdapter([snapshot("Boston Celtics", "New York Knicks", 100, 102)])
    wager = straight(BetKind.SPREAD, Selection(description="Celtics +3.5", team="Celtics", line=3.5))
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is Result.WON


@pytest.mark.asyncio
async def test_total_over_loses_below_line() -> None:
    adapter = FakeAdapter([snapshot("Boston Celtics", "New York Knicks", 110, 110)])
    wager = straight(BetKind.TOTAL, Selection(description="Over 220.5", line=220.5, direction=Direction.OVER))
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is Result.LOST
    assert wager.profit_for(evaluation.result) == -110


@pytest.mark.asyncio
async def test_prop_with_absent_player_stays_open() -> None:
    game = snapshot("Cincinnati Bengals", "Pittsburgh Steelers", 24, 20, sport="NFL")
    box = BoxScore(
        game_id=game.game_id,
        provider="fake",
        players=[PlayerStatLine(name="Tee Higgins", team="Cincinnati Bengals", stats={"receiving_yards": 80})],
    )
    adapter = FakeAdapter([game], boxes={game.game_id: box})
    wager = straight(
        BetKind.PLAYER_PROP,
        Selection(
            description="Ja'Marr Chase (CIN) Over 48.5 Receiving Yards",
            player="Ja'Marr Chase",
            player_team="CIN",
            line=48.5,
            direction=Direction.OVER,
            stat="Receiving Yards",
        ),
        sport=Sport.NFL,
        teams=("Cincinnati Bengals", "Pittsburgh Steelers"),
    )
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is None
    assert evaluation.error == "Ja'Marr Chase not found in box score"
    assert wager.status is WagerStatus.ACTIVE
    assert wager.profit is None


@pytest.mark.asyncio
async def test_prop_graded_from_combined_stats() -> None:
    game = snapshot("Boston Celtics", "Denver Nuggets", 100, 120)
    box = BoxScore(
        game_id=game.game_id,
        provider="fake",
        players=[PlayerStatLine(name="Nikola Jokic", stats={"points": 30, "rebounds": 14, "assists": 9})],
    )
    adapter = FakeAdapter([game], boxes={game.game_id: box})
    wager = straight(
        BetKind.PLAYER_PROP,
        Selection(player="Nikola Jokic", line=52.5, direction=Direction.OVER, stat="Pts + Reb + Ast"),
        teams=("Boston Celtics", "Denver Nuggets"),
    )
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is Result.WON
    assert evaluation.checks[0].stat_value == 53


@pytest.mark.asyncio
async def test_unknown_start_time_is_never_evaluated() -> None:
    adapter = FakeAdapter([snapshot("Boston Celtics", "New York Knicks", 102, 110)])
    wager = straight(BetKind.MONEYLINE, Selection(team="New York Knicks"), start=None)
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is None
    assert evaluation.error == "Missing game start time"
    assert adapter.calls == 0


@pytest.mark.asyncio
async def test_game_not_started_or_in_progress() -> None:
    live = snapshot("Boston Celtics", "New York Knicks", 50, 48, is_complete=False, is_live=True)
    adapter = FakeAdapter([live])
    evaluator = evaluator_for(adapter)
    wager = straight(BetKind.MONEYLINE, Selection(team="New York Knicks"))

    before = await evaluator.evaluate(wager, START - timedelta(minutes=5))
    assert before.result is None and before.error is None
    assert adapter.calls == 0

    during = await evaluator.evaluate(wager, START + timedelta(hours=1))
    assert during.result is None
    assert during.checks[0].status is LegStatus.LIVE


@pytest.mark.asyncio
async def test_provider_failure_is_soft() -> None:
    adapter = FakeAdapter(error=ProviderUnavailable("fake", "HTTP 503"))
    wager = straight(BetKind.MONEYLINE, Selection(team="New York Knicks"))
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is None
    assert evaluation.error == "fake: HTTP 503"


@pytest.mark.asyncio
async def test_sport_without_providers() -> None:
    adapter = FakeAdapter([snapshot("Boston Bruins", "New York Rangers", 3, 2)])
    wager = straight(BetKind.MONEYLINE, Selection(team="Boston Bruins"), sport=Sport.NHL, teams=("Boston Bruins", "New York Rangers"))
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.error == "No data providers configured for NHL"


@pytest.mark.asyncio
async def test_settled_wager_is_skipped() -> None:
    adapter = FakeAdapter([snapshot("Boston Celtics", "New York Knicks", 102, 110)])
    wager = straight(BetKind.MONEYLINE, Selection(team="Boston Celtics"))
    wager.settle(Result.WON, LATER)
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.skipped
    assert evaluation.result is None
    assert wager.result is Result.WON
    assert wager.profit == 100
    assert adapter.calls == 0


@pytest.mark.asyncio
async def test_first_half_spread() -> None:
    game = snapshot(
        "Boston Celtics", "New York Knicks", 100, 98, away_periods=[20, 20, 30, 30], home_periods=[30, 25, 20, 23]
    )
    wager = straight(BetKind.SPREAD, Selection(team="Boston Celtics", line=-2.5, period="1H"))
    evaluation = await evaluator_for(FakeAdapter([game])).evaluate(wager, LATER)
    assert evaluation.result is Result.LOST


# Multi-leg ---------------------------------------------------------------


TEASER_NOTES = "\n".join(
    [
        "[Dec-07-2025 01:00 PM] [NFL] NE PATRIOTS +.5-110 (B+7.5) [Won]",
        "[Dec-07-2025 01:00 PM] [NFL] TOTAL o47-110 (Bills vrs Jets) (B+7.5) [Pending]",
        "League: NFL",
        "Category: Teaser",
    ]
)


def teaser(notes: str = TEASER_NOTES) -> Wager:
    return Wager(
        id="t1",
        sport=Sport.NFL,
        kind=BetKind.TEASER,
        matchup=Matchup(start_time=START),
        selection=Selection(description="TEASER 2 TEAMS"),
        stake=120,
        potential_payout=100,
        notes=notes,
    )


@pytest.mark.asyncio
async def test_teaser_total_uses_teased_line() -> None:
    # 40 combined clears the teased 39.5 but not the original 47.
    adapter = FakeAdapter([snapshot("Buffalo Bills", "New York Jets", 24, 16, sport="NFL")])
    evaluation = await evaluator_for(adapter).evaluate(teaser(), LATER)
    assert evaluation.result is Result.WON
    assert evaluation.record == (2, 0, 0)
    assert evaluation.notes is not None
    legs = parse_legs(evaluation.notes, TZ)
    assert [leg.status for leg in legs] == [LegStatus.WON, LegStatus.WON]
    assert evaluation.notes.splitlines()[2:] == ["League: NFL", "Category: Teaser"]


@pytest.mark.asyncio
async def test_parlay_waits_for_every_leg() -> None:
    notes = "\n".join(
        [
            "[Dec-07-2025 01:00 PM] [NFL] Buffalo Bills -3-110 (Bills vrs Jets) [Pending]",
            "[Dec-07-2025 08:20 PM] [NFL] Kansas City Chiefs -7-110 (Chiefs vrs Broncos) [Pending]",
        ]
    )
    wager = teaser(notes)
    wager.kind = BetKind.PARLAY
    adapter = FakeAdapter([snapshot("Buffalo Bills", "New York Jets", 24, 16, sport="NFL")])
    # The second game starts at 01:20 UTC the next day.
    evaluation = await evaluator_for(adapter).evaluate(wager, START + timedelta(hours=4))
    assert evaluation.result is None
    assert evaluation.leg_statuses == {0: LegStatus.WON, 1: LegStatus.PENDING}
    assert "[Won]" in evaluation.notes.splitlines()[0]
    assert evaluation.notes.splitlines()[1].endswith("[Pending]")


@pytest.mark.asyncio
async def test_parlay_loses_on_any_lost_leg() -> None:
    notes = "\n".join(
        [
            "[Dec-07-2025 01:00 PM] [NFL] Buffalo Bills -10-110 (Bills vrs Jets) [Pending]",
            "[Dec-07-2025 01:00 PM] [NFL] TOTAL u47-110 (Dolphins vrs Patriots) [Pending]",
        ]
    )
    wager = teaser(notes)
    wager.kind = BetKind.PARLAY
    adapter = FakeAdapter(
        [
            snapshot("Buffalo Bills", "New York Jets", 24, 16, sport="NFL"),
            snapshot("Miami Dolphins", "New England Patriots", 20, 21, sport="NFL"),
        ]
    )
    evaluation = await evaluator_for(adapter).evaluate(wager, LATER)
    assert evaluation.result is Result.LOST
    assert evaluation.record == (1, 1, 0)


@pytest.mark.asyncio
async def test_multi_leg_without_legs() -> None:
    evaluation = await evaluator_for(FakeAdapter()).evaluate(teaser("League: NFL"), LATER)
    assert evaluation.result is None
    assert evaluation.error == "No legs found in notes"
