# src/ingest_enrich/backend/db/base.py

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""  # docstring: 统一 metadata，供 init_db/create_all 使用


class TimestampMixin:
    """created_at column shared by append-only tables."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        comment="创建时间（UTC）",  # docstring: 写入时间，便于排障
    )
