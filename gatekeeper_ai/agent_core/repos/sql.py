"""Audit log and checkpoint storage on async SQLAlchemy.

Wiring order: ``create_engine`` -> ``create_all`` -> ``create_sessionmaker``
-> ``build_sql_repos``. SQLite (aiosqlite) is the local default; Postgres
URLs are routed to asyncpg.

Every repository call runs in its own short ``AsyncSession`` and commits
before returning: an audit record or checkpoint that was saved survives a
crash of the run that wrote it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..schemas.domain import AgentPhase, AuditLogEntry, Checkpoint
from .interfaces import AuditLogRepository, CheckpointRepository
from .models import AuditLogRow, Base, CheckpointRow


def create_engine(db_url: str) -> AsyncEngine:
    """Engine for ``db_url`` with the async driver filled in.

    Postgres URLs are rewritten to the asyncpg driver and plain ``sqlite://``
    URLs to aiosqlite. For file-backed SQLite the parent directory is created.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    url = re.sub(r"^sqlite://", "sqlite+aiosqlite://", url, count=1)
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(url)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create the audit log and checkpoint tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; values are always written in UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _audit_from_row(row: AuditLogRow) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        session_id=row.session_id,
        timestamp=_as_utc(row.timestamp),
        phase=AgentPhase(row.phase),
        action=row.action,
        result=row.result,
        approved=row.approved,
        duration_ms=row.duration_ms,
    )


async def _newest_first(
    session_factory: async_sessionmaker[AsyncSession], row_type, session_id: Optional[str], limit: Optional[int]
):
    # Newest rows win the limit; callers get them back oldest first
    stmt = select(row_type)
    if session_id is not None:
        stmt = stmt.where(row_type.session_id == session_id)
    stmt = stmt.order_by(row_type.seq.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    async with session_factory() as s:
        rows = (await s.execute(stmt)).scalars().all()
    return list(reversed(rows))


def _checkpoint_from_row(row: CheckpointRow) -> Checkpoint:
    return Checkpoint(
        id=row.id,
        session_id=row.session_id,
        description=row.description,
        state=row.state,
        created_at=_as_utc(row.created_at),
    )


@dataclass(frozen=True)
class SqlAuditLogRepository(AuditLogRepository):
    """Audit records in the ``gk_audit_log`` table, ordered by insert sequence."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, entry: AuditLogEntry) -> None:
        async with self.session_factory() as s:
            s.add(
                AuditLogRow(
                    id=entry.id,
                    session_id=entry.session_id,
                    timestamp=entry.timestamp,
                    phase=entry.phase.value,
                    action=entry.action,
                    result=entry.result,
                    approved=entry.approved,
                    duration_ms=entry.duration_ms,
                )
            )
            await s.commit()

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        rows = await _newest_first(self.session_factory, AuditLogRow, session_id, limit)
        return [_audit_from_row(r) for r in rows]


@dataclass(frozen=True)
class SqlCheckpointRepository(CheckpointRepository):
    """Checkpoints in the ``gk_checkpoints`` table."""

    session_factory: async_sessionmaker[AsyncSession]

    async def save(self, checkpoint: Checkpoint) -> None:
        async with self.session_factory() as s:
            s.add(
                CheckpointRow(
                    id=checkpoint.id,
                    session_id=checkpoint.session_id,
                    description=checkpoint.description,
                    state=checkpoint.state,
                    created_at=checkpoint.created_at,
                )
            )
            await s.commit()

    async def get(self, checkpoint_id: str) -> Optional[Checkpoint]:
        async with self.session_factory() as s:
            res = await s.execute(select(CheckpointRow).where(CheckpointRow.id == checkpoint_id))
            row = res.scalar_one_or_none()
            return _checkpoint_from_row(row) if row is not None else None

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[Checkpoint]:
        rows = await _newest_first(self.session_factory, CheckpointRow, session_id, limit)
        return [_checkpoint_from_row(r) for r in rows]

    async def latest(self, session_id: str) -> Optional[Checkpoint]:
        """Newest checkpoint of ``session_id``, or ``None`` when it has none."""
        rows = await self.list(session_id, limit=1)
        return rows[0] if rows else None


@dataclass(frozen=True)
class SqlRepoBundle:
    """Both repositories sharing one session factory."""

    audit_log: SqlAuditLogRepository
    checkpoints: SqlCheckpointRepository


def build_sql_repos(*, session_factory: async_sessionmaker[AsyncSession]) -> SqlRepoBundle:
    return SqlRepoBundle(
        audit_log=SqlAuditLogRepository(session_factory=session_factory),
        checkpoints=SqlCheckpointRepository(session_factory=session_factory),
    )
