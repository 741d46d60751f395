"""Scheduling entry points."""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from typing import Dict

from wagerlab.clv.service import ClvRefresher
from wagerlab.config import get_settings
from wagerlab.data.aggregator import LiveDataAggregator
from wagerlab.data.odds_api_client import OddsApiClient
from wagerlab.db.database import init_db
from wagerlab.db.repository import WagerRepository
from wagerlab.settlement.evaluator import SettlementEvaluator
from wagerlab.settlement.service import run_settlement_pass

logger = logging.getLogger(__name__)


async def _settle(
    repository: WagerRepository,
    aggregator: LiveDataAggregator | None,
    user_id: str | None,
) -> Dict[str, int]:
    owned = aggregator is None
    aggregator = aggregator or LiveDataAggregator.from_settings()
    try:
        report = await run_settlement_pass(repository, SettlementEvaluator(aggregator), user_id=user_id)
    finally:
        if owned:
            await aggregator.aclose()
    return {
        "checked": report.checked,
        "settled": len(report.settled),
        "unresolved": len(report.unresolved),
        "failed": len(report.failed),
    }


def run_settlement_job(
    repository: WagerRepository | None = None,
    aggregator: LiveDataAggregator | None = None,
    user_id: str | None = None,
) -> Dict[str, int]:
    """Evaluate every active wager once and persist verdicts."""

    return asyncio.run(_settle(repository or WagerRepository(), aggregator, user_id))


async def _refresh_clv(
    repository: WagerRepository,
    odds_client: OddsApiClient | None,
    user_id: str | None,
) -> Dict[str, int]:
    owned = odds_client is None
    odds_client = odds_client or OddsApiClient()
    try:
        report = await ClvRefresher(repository, odds_client).run_pass(user_id=user_id)
    finally:
        if owned:
            await odds_client.aclose()
    return {"refreshed": len(report.refreshed), "skipped": report.skipped, "failed": len(report.failed)}


def run_clv_job(
    repository: WagerRepository | None = None,
    odds_client: OddsApiClient | None = None,
    user_id: str | None = None,
) -> Dict[str, int]:
    """Refresh closing odds, CLV and EV for wagers that are due."""

    return asyncio.run(_refresh_clv(repository or WagerRepository(), odds_client, user_id))


def _loop(job: str, user_id: str | None) -> None:  # pragma: no cover - long-running driver
    settings = get_settings()
    next_settlement = next_clv = 0.0
    while True:
        now = time.monotonic()
        if job in ("settlement", "all") and now >= next_settlement:
            logger.info("Settlement job: %s", run_settlement_job(user_id=user_id))
            next_settlement = now + settings.settlement_interval_seconds
        if job in ("clv", "all") and now >= next_clv:
            try:
                logger.info("CLV job: %s", run_clv_job(user_id=user_id))
            except RuntimeError as exc:
                if job == "clv":
                    raise
                logger.warning("CLV job disabled: %s", exc)
                job = "settlement"
            next_clv = now + settings.clv_interval_seconds
        time.sleep(5)


def main() -> None:  # pragma: no cover - CLI convenience
    parser = argparse.ArgumentParser(description="Run WagerLab settlement and CLV jobs.")
    parser.add_argument("job", choices=["settlement", "clv", "all"], nargs="?", default="all")
    parser.add_argument("--user", dest="user_id", default=None, help="Only process this user's wagers")
    parser.add_argument("--loop", action="store_true", help="Keep running on the configured cadences")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    if args.loop:
        _loop(args.job, args.user_id)
        return
    if args.job in ("settlement", "all"):
        print(run_settlement_job(user_id=args.user_id))
    if args.job in ("clv", "all"):
        print(run_clv_job(user_id=args.user_id))


if __name__ == "__main__":  # pragma: no cover
    main()
