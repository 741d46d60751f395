"""Database helpers for WagerLab."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from wagerlab.config import get_settings
from wagerlab.db.models import Base

settings = get_settings()
engine = create_engine(str(settings.database_url), future=True, echo=False)
SessionLocal = sessionmaker(bind=engine, class_=Session, expire_on_commit=False, autoflush=False)

__all__ = ["engine", "SessionLocal", "get_session", "session_scope", "init_db"]


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Iterator[Session]:
    with session_scope(SessionLocal) as session:
        yield session


def init_db() -> None:
    """Create missing tables on the configured engine."""

    Base.metadata.create_all(engine)
