"""CLV refresh cadence and persistence."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from wagerlab.clv.service import ClvRefresher, should_refresh_clv
from wagerlab.data.base import ProviderUnavailable
from wagerlab.data.schemas import MarketQuote
from wagerlab.wagers.types import BetKind, Matchup, Result, Selection, Sport, Wager

NOW = datetime(2025, 12, 7, 16, 0, tzinfo=timezone.utc)
SETTINGS = SimpleNamespace(
    clv_force_window_minutes=15,
    clv_force_min_gap_seconds=120,
    clv_interval_seconds=300,
    clv_pause_seconds=2.0,
)


def make_wager(wager_id: str = "w1", start: datetime | None = NOW + timedelta(hours=2), **overrides) -> Wager:
    values = dict(
        id=wager_id,
        sport=Sport.NBA,
        kind=BetKind.SPREAD,
        matchup=Matchup("Boston Celtics", "New York Knicks", start),
        selection=Selection(description="Celtics -3.5", team="Boston Celtics", line=-3.5),
        stake=110,
        potential_payout=100,
        opening_odds=-110,
    )
    values.update(overrides)
    return Wager(**values)


def test_should_refresh_skips_ineligible_wagers() -> None:
    settled = make_wager()
    settled.settle(Result.WON, NOW)
    assert not should_refresh_clv(settled, NOW, SETTINGS)
    assert not should_refresh_clv(make_wager(kind=BetKind.PARLAY), NOW, SETTINGS)
    assert not should_refresh_clv(make_wager(opening_odds=None), NOW, SETTINGS)
    assert not should_refresh_clv(make_wager(start=NOW - timedelta(minutes=1)), NOW, SETTINGS)


def test_should_refresh_follows_the_interval() -> None:
    assert should_refresh_clv(make_wager(), NOW, SETTINGS)
    assert not should_refresh_clv(make_wager(clv_last_attempt=NOW - timedelta(seconds=100)), NOW, SETTINGS)
    assert should_refresh_clv(make_wager(clv_last_attempt=NOW - timedelta(seconds=400)), NOW, SETTINGS)


def test_should_refresh_more_often_near_start() -> None:
    soon = NOW + timedelta(minutes=10)
    assert should_refresh_clv(make_wager(start=soon, clv_last_attempt=NOW - timedelta(seconds=150)), NOW, SETTINGS)
    assert not should_refresh_clv(make_wager(start=soon, clv_last_attempt=NOW - timedelta(seconds=60)), NOW, SETTINGS)


class FakeOddsClient:
    def __init__(self, quotes: Dict[str, Any]) -> None:
        self.quotes = quotes

    async def quote_for(self, wager: Wager):
        quote = self.quotes.get(wager.id)
        if isinstance(quote, BaseException):
            raise quote
        return quote


class FakeStorage:
    def __init__(self, wagers: List[Wager]) -> None:
        self.wagers = wagers
        self.updates: Dict[str, Dict[str, Any]] = {}

    def get_active_wagers(self, user_id=None) -> List[Wager]:
        return list(self.wagers)

    def update_wager(self, wager_id: str, fields: Dict[str, Any]):
        self.updates[wager_id] = fields


class FakeSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.mark.asyncio
async def test_refresh_wager_stores_clv_and_ev() -> None:
    client = FakeOddsClient({"w1": MarketQuote(odds=-125, line=-3.5, bookmaker="fanduel")})
    refresher = ClvRefresher(FakeStorage([]), client, settings=SETTINGS)
    fields = await refresher.refresh_wager(make_wager(), NOW)
    assert fields == {
        "clv_last_attempt": NOW,
        "closing_odds": -125,
        "clv": 6.06,
        "expected_value": 6.67,
        "clv_fetch_error": None,
    }


@pytest.mark.asyncio
async def test_moneyline_compares_odds_directly() -> None:
    wager = make_wager(kind=BetKind.MONEYLINE, selection=Selection(team="Boston Celtics"), opening_odds=150)
    client = FakeOddsClient({"w1": MarketQuote(odds=130)})
    fields = await ClvRefresher(FakeStorage([]), client, settings=SETTINGS).refresh_wager(wager, NOW)
    assert fields["closing_odds"] == 130
    assert fields["clv"] > 0


@pytest.mark.asyncio
async def test_run_pass_records_failures_and_paces() -> None:
    wagers = [
        make_wager("ok"),
        make_wager("down"),
        make_wager("none"),
        make_wager("fresh", clv_last_attempt=NOW - timedelta(seconds=10)),
    ]
    client = FakeOddsClient(
        {
            "ok": MarketQuote(odds=-120, line=-3.5),
            "down": ProviderUnavailable("odds_api", "HTTP 401"),
        }
    )
    storage = FakeStorage(wagers)
    sleep = FakeSleep()

    report = await ClvRefresher(storage, client, settings=SETTINGS, sleep=sleep).run_pass(now=NOW)

    assert report.refreshed == ["ok"]
    assert report.skipped == 1
    assert report.failed == {"down": "odds_api: HTTP 401", "none": "No market quote for this selection"}
    assert sleep.calls == [2.0, 2.0]
    assert storage.updates["down"] == {"clv_last_attempt": NOW, "clv_fetch_error": "odds_api: HTTP 401"}
    assert "fresh" not in storage.updates


@pytest.mark.asyncio
async def test_run_pass_keeps_going_after_unexpected_error() -> None:
    wagers = [make_wager("broken"), make_wager("ok")]
    client = FakeOddsClient({"broken": KeyError("outcomes"), "ok": MarketQuote(odds=-120, line=-3.5)})
    storage = FakeStorage(wagers)

    report = await ClvRefresher(storage, client, settings=SETTINGS, sleep=FakeSleep()).run_pass(now=NOW)

    assert report.refreshed == ["ok"]
    assert report.failed == {"broken": "KeyError: 'outcomes'"}
    assert storage.updates["broken"] == {"clv_last_attempt": NOW, "clv_fetch_error": "KeyError: 'outcomes'"}


@pytest.mark.asyncio
async def test_run_pass_does_not_swallow_cancellation() -> None:
    client = FakeOddsClient({"w1": asyncio.CancelledError()})
    with pytest.raises(asyncio.CancelledError):
        await ClvRefresher(FakeStorage([make_wager()]), client, settings=SETTINGS, sleep=FakeSleep()).run_pass(now=NOW)
