"""Storage for wagers: the reads and bounded writes the engine needs."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from wagerlab.db.database import SessionLocal, session_scope
from wagerlab.db.models import WagerRecord
from wagerlab.wagers.types import (
    BetKind,
    Direction,
    Matchup,
    Result,
    Selection,
    Sport,
    Wager,
    WagerStatus,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "result",
        "profit",
        "settled_at",
        "notes",
        "closing_odds",
        "clv",
        "expected_value",
        "last_fetch_error",
        "last_attempt_at",
        "clv_fetch_error",
        "clv_last_attempt",
    }
)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def record_to_wager(record: WagerRecord) -> Wager:
    return Wager(
        id=record.id,
        sport=Sport(record.sport),
        kind=BetKind(record.kind),
        matchup=Matchup(team_a=record.team_a, team_b=record.team_b, start_time=_aware(record.start_time)),
        selection=Selection(
            description=record.description or "",
            team=record.team,
            line=record.line,
            direction=Direction(record.direction) if record.direction else None,
            player=record.player,
            player_team=record.player_team,
            stat=record.stat,
            period=record.period,
        ),
        stake=record.stake,
        potential_payout=record.potential_payout,
        opening_odds=record.opening_odds,
        status=WagerStatus(record.status),
        result=Result(record.result) if record.result else None,
        profit=record.profit,
        settled_at=_aware(record.settled_at),
        notes=record.notes or "",
        closing_odds=record.closing_odds,
        clv=record.clv,
        expected_value=record.expected_value,
        last_fetch_error=record.last_fetch_error,
        last_attempt_at=_aware(record.last_attempt_at),
        clv_fetch_error=record.clv_fetch_error,
        clv_last_attempt=_aware(record.clv_last_attempt),
        is_free_play=bool(record.is_free_play),
        is_live_bet=bool(record.is_live_bet),
        user_id=record.user_id,
        placed_at=_aware(record.placed_at),
        tags=dict(record.tags or {}),
    )


def wager_to_record(wager: Wager) -> WagerRecord:
    selection = wager.selection
    return WagerRecord(
        id=wager.id,
        user_id=wager.user_id,
        sport=wager.sport.value,
        kind=wager.kind.value,
        team_a=wager.matchup.team_a,
        team_b=wager.matchup.team_b,
        start_time=wager.matchup.start_time,
        description=selection.description,
        team=selection.team,
        line=selection.line,
        direction=_column_value(selection.direction),
        player=selection.player,
        player_team=selection.player_team,
        stat=selection.stat,
        period=selection.period,
        stake=wager.stake,
        potential_payout=wager.potential_payout,
        opening_odds=wager.opening_odds,
        status=wager.status.value,
        result=_column_value(wager.result),
        profit=wager.profit,
        settled_at=wager.settled_at,
        notes=wager.notes,
        closing_odds=wager.closing_odds,
        clv=wager.clv,
        expected_value=wager.expected_value,
        last_fetch_error=wager.last_fetch_error,
        last_attempt_at=wager.last_attempt_at,
        clv_fetch_error=wager.clv_fetch_error,
        clv_last_attempt=wager.clv_last_attempt,
        is_free_play=wager.is_free_play,
        is_live_bet=wager.is_live_bet,
        placed_at=wager.placed_at,
        tags=dict(wager.tags),
    )


class WagerRepository:
    """SQLAlchemy-backed storage; every call runs in its own transaction."""

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def add_wagers(self, wagers: Iterable[Wager]) -> List[str]:
        """Insert new wagers, skipping ids already stored; returns the inserted ids."""

        added: List[str] = []
        with session_scope(self._session_factory) as session:
            for wager in wagers:
                if session.get(WagerRecord, wager.id) is not None:
                    logger.info("Wager %s already recorded; skipping", wager.id)
                    continue
                session.add(wager_to_record(wager))
                added.append(wager.id)
        return added

    def get_wager(self, wager_id: str) -> Wager | None:
        with session_scope(self._session_factory) as session:
            record = session.get(WagerRecord, wager_id)
            return record_to_wager(record) if record else None

    def get_active_wagers(self, user_id: str | None = None) -> List[Wager]:
        stmt = select(WagerRecord).where(WagerRecord.status != WagerStatus.SETTLED.value)
        if user_id is not None:
            stmt = stmt.where(WagerRecord.user_id == user_id)
        stmt = stmt.order_by(WagerRecord.start_time, WagerRecord.id)
        with session_scope(self._session_factory) as session:
            return [record_to_wager(record) for record in session.scalars(stmt)]

    def update_wager(self, wager_id: str, fields: Dict[str, Any]) -> Wager:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not writable: {sorted(unknown)}")
        with session_scope(self._session_factory) as session:
            record = session.get(WagerRecord, wager_id)
            if record is None:
                raise KeyError(wager_id)
            for name, value in fields.items():
                setattr(record, name, _column_value(value))
            session.flush()
            return record_to_wager(record)

    def settle_wager(self, wager_id: str, fields: Dict[str, Any]) -> bool:
        """Write a verdict only if the wager is not settled yet; True when this call won."""

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not writable: {sorted(unknown)}")
        values = {name: _column_value(value) for name, value in fields.items()}
        values["status"] = WagerStatus.SETTLED.value
        stmt = (
            update(WagerRecord)
            .where(WagerRecord.id == wager_id, WagerRecord.status != WagerStatus.SETTLED.value)
            .values(**values)
        )
        with session_scope(self._session_factory) as session:
            outcome = session.execute(stmt)
            return outcome.rowcount == 1
