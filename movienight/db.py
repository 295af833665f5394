"""Database session management and the share repository."""

from __future__ import annotations

import os
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session, sessionmaker

from movienight.models import Base, SharedResult

SHARE_ID_ALPHABET = string.ascii_lowercase + string.digits
SHARE_ID_LENGTH = 8
_MAX_ID_ATTEMPTS = 10


def _database_url() -> str:
    """Return the SQLAlchemy URL from env (defaults to local SQLite for dev)."""
    return os.getenv("DATABASE_URL", "sqlite:///./movienight.db")


def _engine_kwargs(url: str) -> dict[str, Any]:
    # Sync dependencies run in FastAPI's threadpool.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


engine = create_engine(_database_url(), future=True, **_engine_kwargs(_database_url()))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_models() -> None:
    """Create tables if they do not exist (handy for local dev)."""
    Base.metadata.create_all(bind=engine)


def get_session() -> Iterator[Session]:
    """FastAPI-friendly dependency that manages commits/rollbacks."""

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def generate_share_id() -> str:
    return "".join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(SHARE_ID_LENGTH))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_epoch_ms(value: datetime) -> int:
    return int(_as_utc(value).timestamp() * 1000)


class ShareRepository:
    """Write-once storage for shared result sets."""

    def __init__(self, *, id_factory: Callable[[], str] = generate_share_id) -> None:
        self._id_factory = id_factory

    def create(
        self,
        session: Session,
        *,
        recommendations: list[dict[str, Any]],
        search_params: Any,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> SharedResult:
        now = now or utcnow()
        self.purge_expired(session, now=now)
        share_id = self._new_id(session)
        record = SharedResult(
            id=share_id,
            recommendations=recommendations,
            search_params=search_params,
            created_at=now,
            expires_at=now + ttl,
        )
        session.add(record)
        session.flush()
        return record

    def get_active(
        self,
        session: Session,
        share_id: str,
        *,
        now: datetime | None = None,
    ) -> SharedResult | None:
        record = session.get(SharedResult, share_id)
        if record is None:
            return None
        if _as_utc(record.expires_at) <= (now or utcnow()):
            session.delete(record)
            session.flush()
            return None
        return record

    def purge_expired(self, session: Session, *, now: datetime | None = None) -> int:
        result = session.execute(
            delete(SharedResult)
            .where(SharedResult.expires_at <= (now or utcnow()))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def _new_id(self, session: Session) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            share_id = self._id_factory()
            if session.get(SharedResult, share_id) is None:
                return share_id
        raise RuntimeError("could not allocate a free share id")
