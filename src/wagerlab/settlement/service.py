"""Settlement pass over every active wager."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

from wagerlab.config import Settings, get_settings
from wagerlab.settlement.evaluator import Evaluation, SettlementEvaluator
from wagerlab.wagers.types import Result, Wager, WagerStatus

logger = logging.getLogger(__name__)


class WagerStorage(Protocol):
    def get_active_wagers(self, user_id: str | None = None) -> List[Wager]: ...

    def update_wager(self, wager_id: str, fields: Dict[str, Any]) -> Wager: ...

    def settle_wager(self, wager_id: str, fields: Dict[str, Any]) -> bool: ...


@dataclass
class SettlementReport:
    checked: int = 0
    settled: List[str] = field(default_factory=list)
    unresolved: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)


def settlement_note(wager: Wager, evaluation: Evaluation, result: Result) -> str:
    """``Auto-settled: ...`` line appended to a wager's notes."""

    if wager.kind.is_multi_leg:
        won, lost, push = evaluation.record
        return f"Auto-settled: {result.value.upper()} ({won}W-{lost}L-{push}P)"
    check = evaluation.checks.get(0)
    snapshot = check.snapshot if check else None
    if snapshot is None or not snapshot.has_scores:
        return f"Auto-settled: {result.value.upper()}"
    score = f"{snapshot.away_team} {snapshot.away_score:g} - {snapshot.home_team} {snapshot.home_score:g}"
    if check.stat_value is not None:
        score = f"{wager.selection.player} {check.stat_value:g} {wager.selection.stat}; {score}"
    return f"Auto-settled: {result.value.upper()} ({score}, via {snapshot.provider})"


def _append_note(notes: str, line: str) -> str:
    return f"{notes.rstrip()}\n{line}" if notes and notes.strip() else line


def apply_evaluation(storage: WagerStorage, wager: Wager, evaluation: Evaluation, now: datetime) -> bool:
    """Persist one evaluation; returns True when this call settled the wager."""

    if evaluation.skipped:
        return False
    notes = evaluation.notes if evaluation.notes is not None else wager.notes
    if evaluation.result is None:
        fields: Dict[str, Any] = {"last_fetch_error": evaluation.error, "last_attempt_at": now}
        if evaluation.notes is not None:
            fields["notes"] = notes
        storage.update_wager(wager.id, fields)
        return False

    result = evaluation.result
    fields = {
        "status": WagerStatus.SETTLED,
        "result": result,
        "profit": wager.profit_for(result),
        "settled_at": now,
        "notes": _append_note(notes, settlement_note(wager, evaluation, result)),
        "last_fetch_error": None,
        "last_attempt_at": now,
    }
    applied = storage.settle_wager(wager.id, fields)
    if applied:
        logger.info("Settled wager %s as %s (profit %.2f)", wager.id, result.value, fields["profit"])
    else:
        logger.info("Wager %s was already settled; skipping", wager.id)
    return applied


async def run_settlement_pass(
    storage: WagerStorage,
    evaluator: SettlementEvaluator,
    user_id: str | None = None,
    now: Optional[datetime] = None,
    settings: Settings | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> SettlementReport:
    """Evaluate active wagers in bounded batches, pausing between batches.

    A wager whose evaluation raises is recorded with its error and left for the
    next pass; storage errors propagate.
    """

    settings = settings or get_settings()
    now = now or datetime.now(timezone.utc)
    wagers = storage.get_active_wagers(user_id)
    report = SettlementReport()
    batch_size = max(1, settings.settlement_batch_size)

    for start in range(0, len(wagers), batch_size):
        if start:
            await sleep(settings.settlement_batch_pause_seconds)
        batch: Sequence[Wager] = wagers[start : start + batch_size]
        outcomes = await asyncio.gather(
            *(evaluator.evaluate(wager, now) for wager in batch), return_exceptions=True
        )
        for wager, outcome in zip(batch, outcomes):
            report.checked += 1
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                message = f"{type(outcome).__name__}: {outcome}"
                logger.warning("Evaluation failed for wager %s: %s", wager.id, message)
                storage.update_wager(wager.id, {"last_fetch_error": message, "last_attempt_at": now})
                report.failed[wager.id] = message
                continue
            if apply_evaluation(storage, wager, outcome, now):
                report.settled.append(wager.id)
            elif outcome.error:
                report.unresolved[wager.id] = outcome.error
    logger.info(
        "Settlement pass: %s checked, %s settled, %s unresolved, %s failed",
        report.checked,
        len(report.settled),
        len(report.unresolved),
        len(report.failed),
    )
    return report
