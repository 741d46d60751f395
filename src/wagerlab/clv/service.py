"""CLV refresh pass: price active straight wagers against the current market."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from wagerlab.clv.line_adjustment import clv_with_line_adjustment, expected_value
from wagerlab.config import Settings, get_settings
from wagerlab.data.base import ProviderUnavailable
from wagerlab.data.odds_api_client import OddsApiClient
from wagerlab.settlement.service import WagerStorage
from wagerlab.wagers.types import BetKind, Wager

logger = logging.getLogger(__name__)


def should_refresh_clv(wager: Wager, now: datetime, settings: Settings | None = None) -> bool:
    """Refresh every cadence interval, more often in the window before the start."""

    settings = settings or get_settings()
    if wager.is_settled or wager.kind.is_multi_leg or wager.opening_odds is None:
        return False
    start = wager.matchup.start_time
    if start is not None and now >= start:
        return False
    last = wager.clv_last_attempt
    if start is not None and start - now <= timedelta(minutes=settings.clv_force_window_minutes):
        return last is None or (now - last).total_seconds() >= settings.clv_force_min_gap_seconds
    return last is None or (now - last).total_seconds() >= settings.clv_interval_seconds


@dataclass
class ClvReport:
    refreshed: List[str] = field(default_factory=list)
    skipped: int = 0
    failed: Dict[str, str] = field(default_factory=dict)


class ClvRefresher:
    """Pulls current odds for each due wager and stores closing odds, CLV and EV."""

    def __init__(
        self,
        storage: WagerStorage,
        odds_client: OddsApiClient,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.storage = storage
        self.odds_client = odds_client
        self.settings = settings or get_settings()
        self._sleep = sleep

    async def refresh_wager(self, wager: Wager, now: datetime) -> Dict[str, Any]:
        """Fields to write for one wager; errors end up in ``clv_fetch_error``."""

        fields: Dict[str, Any] = {"clv_last_attempt": now}
        try:
            quote = await self.odds_client.quote_for(wager)
        except ProviderUnavailable as exc:
            fields["clv_fetch_error"] = str(exc)
            return fields
        if quote is None:
            fields["clv_fetch_error"] = "No market quote for this selection"
            return fields
        line = None if wager.kind is BetKind.MONEYLINE else wager.selection.line
        estimate = clv_with_line_adjustment(
            wager.opening_odds,
            line,
            quote.odds,
            quote.line,
            sport=wager.sport,
            kind=wager.kind,
            direction=wager.selection.direction,
            stat=wager.selection.stat,
        )
        fields.update(
            closing_odds=estimate.adjusted_odds,
            clv=round(estimate.clv, 2),
            expected_value=round(expected_value(wager.stake, estimate.clv), 2),
            clv_fetch_error=estimate.warning,
        )
        logger.debug("CLV for %s: %s", wager.id, estimate.explanation)
        return fields

    async def run_pass(self, user_id: str | None = None, now: Optional[datetime] = None) -> ClvReport:
        now = now or datetime.now(timezone.utc)
        report = ClvReport()
        due = []
        for wager in self.storage.get_active_wagers(user_id):
            if should_refresh_clv(wager, now, self.settings):
                due.append(wager)
            else:
                report.skipped += 1
        for position, wager in enumerate(due):
            if position:
                await self._sleep(self.settings.clv_pause_seconds)
            try:
                fields = await self.refresh_wager(wager, now)
            except Exception as exc:
                message = f"{type(exc).__name__}: {exc}"
                logger.warning("CLV refresh raised for wager %s: %s", wager.id, message)
                fields = {"clv_last_attempt": now, "clv_fetch_error": message}
            self.storage.update_wager(wager.id, fields)
            if fields.get("clv") is not None:
                report.refreshed.append(wager.id)
            else:
                report.failed[wager.id] = fields.get("clv_fetch_error") or "unknown"
                logger.info("CLV refresh for %s failed: %s", wager.id, report.failed[wager.id])
        logger.info("CLV pass: %s refreshed, %s skipped, %s failed", len(report.refreshed), report.skipped, len(report.failed))
        return report
