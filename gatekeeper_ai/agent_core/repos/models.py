from __future__ import annotations

"""SQLAlchemy ORM models for pipeline persistence.

These ORM models define the SQL schema used by
``gatekeeper_ai.agent_core.repos.sql``.

- ``gk_audit_log``: append-only audit trail, one row per trace entry.
- ``gk_checkpoints``: workspace snapshots taken before execution.

Both tables carry an autoincrement ``seq`` column that defines write order, so
"newest-last" listings do not depend on timestamp resolution.
JSON columns use JSONB on PostgreSQL and plain JSON elsewhere (e.g. SQLite).
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class AuditLogRow(Base):
    """Row model for ``gk_audit_log``."""

    __tablename__ = "gk_audit_log"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True)
    session_id: Mapped[str] = mapped_column(String(128), index=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    phase: Mapped[str] = mapped_column(String(32))
    action: Mapped[str] = mapped_column(Text)
    result: Mapped[str] = mapped_column(Text)
    approved: Mapped[bool] = mapped_column(Boolean)
    duration_ms: Mapped[float] = mapped_column(Float)


class CheckpointRow(Base):
    """Row model for ``gk_checkpoints``.

    ``state`` holds the captured workspace (file path -> content) plus
    snapshot metadata.
    """

    __tablename__ = "gk_checkpoints"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True)
    session_id: Mapped[str] = mapped_column(String(128), index=True)
    description: Mapped[str] = mapped_column(Text)
    state: Mapped[Dict[str, Any]] = mapped_column(JsonType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
