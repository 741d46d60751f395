"""Settlement pass and persistence of verdicts."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from wagerlab.data.schemas import GameSnapshot
from wagerlab.settlement.evaluator import Evaluation, LegCheck
from wagerlab.settlement.service import apply_evaluation, run_settlement_pass, settlement_note
from wagerlab.wagers.types import BetKind, LegStatus, Matchup, Result, Selection, Sport, Wager, WagerStatus

NOW = datetime(2025, 12, 8, 3, 0, tzinfo=timezone.utc)
SETTINGS = SimpleNamespace(settlement_batch_size=2, settlement_batch_pause_seconds=1.5)


def make_wager(wager_id: str, **overrides) -> Wager:
    values = dict(
        id=wager_id,
        sport=Sport.NBA,
        kind=BetKind.MONEYLINE,
        matchup=Matchup("Boston Celtics", "New York Knicks", datetime(2025, 12, 7, 18, tzinfo=timezone.utc)),
        selection=Selection(description="Knicks ML", team="New York Knicks"),
        stake=110,
        potential_payout=100,
        opening_odds=-110,
        notes="League: NBA\nCategory: Straight",
    )
    values.update(overrides)
    return Wager(**values)


class FakeStorage:
    def __init__(self, wagers: List[Wager]) -> None:
        self.wagers = {wager.id: wager for wager in wagers}
        self.updates: List[tuple[str, Dict[str, Any]]] = []
        self.settles: List[tuple[str, Dict[str, Any]]] = []

    def get_active_wagers(self, user_id=None) -> List[Wager]:
        return [wager for wager in self.wagers.values() if not wager.is_settled]

    def update_wager(self, wager_id: str, fields: Dict[str, Any]) -> Wager:
        self.updates.append((wager_id, fields))
        wager = replace(self.wagers[wager_id], **fields)
        self.wagers[wager_id] = wager
        return wager

    def settle_wager(self, wager_id: str, fields: Dict[str, Any]) -> bool:
        if self.wagers[wager_id].is_settled:
            return False
        self.settles.append((wager_id, fields))
        self.wagers[wager_id] = replace(self.wagers[wager_id], **fields)
        return True


class FakeEvaluator:
    def __init__(self, outcomes: Dict[str, Any]) -> None:
        self.outcomes = outcomes

    async def evaluate(self, wager: Wager, now: datetime) -> Evaluation:
        outcome = self.outcomes[wager.id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


FINAL = GameSnapshot(
    game_id="g1",
    provider="espn",
    sport="NBA",
    away_team="Boston Celtics",
    home_team="New York Knicks",
    away_score=102,
    home_score=110,
    is_complete=True,
)


def won(wager_id: str) -> Evaluation:
    return Evaluation(wager_id, result=Result.WON, checks={0: LegCheck(LegStatus.WON, snapshot=FINAL)})


@pytest.mark.asyncio
async def test_pass_settles_and_records_unresolved() -> None:
    storage = FakeStorage([make_wager("a"), make_wager("b"), make_wager("c", is_free_play=True)])
    evaluator = FakeEvaluator(
        {
            "a": won("a"),
            "b": Evaluation("b", diagnostics=["Game not found at any provider"]),
            "c": Evaluation("c", result=Result.LOST),
        }
    )
    sleep = FakeSleep()

    report = await run_settlement_pass(storage, evaluator, now=NOW, settings=SETTINGS, sleep=sleep)

    assert report.checked == 3
    assert report.settled == ["a", "c"]
    assert report.unresolved == {"b": "Game not found at any provider"}
    assert sleep.calls == [1.5]

    a = storage.wagers["a"]
    assert a.status is WagerStatus.SETTLED
    assert a.result is Result.WON
    assert a.profit == 100
    assert a.settled_at == NOW
    assert a.notes.endswith("Auto-settled: WON (Boston Celtics 102 - New York Knicks 110, via espn)")
    assert storage.wagers["c"].profit == 0.0

    b = storage.wagers["b"]
    assert b.status is WagerStatus.ACTIVE
    assert b.result is None and b.profit is None
    assert b.last_fetch_error == "Game not found at any provider"
    assert b.last_attempt_at == NOW


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_pass() -> None:
    storage = FakeStorage([make_wager("a"), make_wager("b")])
    evaluator = FakeEvaluator({"a": RuntimeError("boom"), "b": won("b")})

    report = await run_settlement_pass(storage, evaluator, now=NOW, settings=SETTINGS, sleep=FakeSleep())

    assert report.failed == {"a": "RuntimeError: boom"}
    assert report.settled == ["b"]
    assert storage.wagers["a"].last_fetch_error == "RuntimeError: boom"
    assert storage.wagers["a"].status is WagerStatus.ACTIVE


@pytest.mark.asyncio
async def test_cancellation_is_not_swallowed() -> None:
    storage = FakeStorage([make_wager("a")])
    evaluator = FakeEvaluator({"a": asyncio.CancelledError()})
    with pytest.raises(asyncio.CancelledError):
        await run_settlement_pass(storage, evaluator, now=NOW, settings=SETTINGS, sleep=FakeSleep())


def test_verdict_is_written_at_most_once() -> None:
    wager = make_wager("a")
    storage = FakeStorage([wager])
    assert apply_evaluation(storage, wager, won("a"), NOW) is True
    assert apply_evaluation(storage, wager, won("a"), NOW) is False
    assert len(storage.settles) == 1
    assert storage.wagers["a"].profit == 100


def test_skipped_evaluation_writes_nothing() -> None:
    wager = make_wager("a")
    storage = FakeStorage([wager])
    assert apply_evaluation(storage, wager, Evaluation("a", skipped=True), NOW) is False
    assert storage.updates == [] and storage.settles == []


def test_unresolved_parlay_persists_leg_progress() -> None:
    wager = make_wager("p", kind=BetKind.PARLAY, notes="old")
    storage = FakeStorage([wager])
    evaluation = Evaluation("p", notes="new", diagnostics=["Leg 2: Missing game start time"])
    apply_evaluation(storage, wager, evaluation, NOW)
    assert storage.updates == [
        ("p", {"last_fetch_error": "Leg 2: Missing game start time", "last_attempt_at": NOW, "notes": "new"})
    ]


def test_settlement_note_for_parlay_and_missing_scores() -> None:
    parlay = make_wager("p", kind=BetKind.PARLAY)
    evaluation = Evaluation(
        "p",
        result=Result.LOST,
        leg_statuses={0: LegStatus.WON, 1: LegStatus.LOST, 2: LegStatus.PUSH},
    )
    assert settlement_note(parlay, evaluation, Result.LOST) == "Auto-settled: LOST (1W-1L-1P)"
    assert settlement_note(make_wager("s"), Evaluation("s"), Result.PUSH) == "Auto-settled: PUSH"
