"""SQLAlchemy ORM models.

The only table holds shared result sets addressed by a short id. Rows are
written once and expire after a fixed retention window.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class SharedResult(Base):
    """A snapshot of four recommendations that someone chose to share."""

    __tablename__ = "shared_results"

    id: Mapped[str] = mapped_column(String(8), primary_key=True)
    recommendations: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    search_params: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"SharedResult(id={self.id}, expires_at={self.expires_at})"
