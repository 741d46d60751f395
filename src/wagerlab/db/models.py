"""ORM models for WagerLab."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base declarative class."""


class WagerRecord(Base):
    """One recorded wager; parlay and teaser legs live as annotated lines in ``notes``."""

    __tablename__ = "wagers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)
    sport: Mapped[str] = mapped_column(String(16), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)

    team_a: Mapped[str | None] = mapped_column(String(128))
    team_b: Mapped[str | None] = mapped_column(String(128))
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    description: Mapped[str] = mapped_column(String(512), default="")
    team: Mapped[str | None] = mapped_column(String(128))
    line: Mapped[float | None] = mapped_column(Float)
    direction: Mapped[str | None] = mapped_column(String(8))
    player: Mapped[str | None] = mapped_column(String(128))
    player_team: Mapped[str | None] = mapped_column(String(16))
    stat: Mapped[str | None] = mapped_column(String(128))
    period: Mapped[str | None] = mapped_column(String(8))

    stake: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    potential_payout: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    opening_odds: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default="active", index=True)
    result: Mapped[str | None] = mapped_column(String(8))
    profit: Mapped[float | None] = mapped_column(Float)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str] = mapped_column(Text, default="")

    closing_odds: Mapped[int | None] = mapped_column(Integer)
    clv: Mapped[float | None] = mapped_column(Float)
    expected_value: Mapped[float | None] = mapped_column(Float)
    last_fetch_error: Mapped[str | None] = mapped_column(String(1024))
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    clv_fetch_error: Mapped[str | None] = mapped_column(String(1024))
    clv_last_attempt: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    is_free_play: Mapped[bool] = mapped_column(Boolean, default=False)
    is_live_bet: Mapped[bool] = mapped_column(Boolean, default=False)
    placed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    tags: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
