from __future__ import annotations

"""Storage ports for audit records and checkpoints.

The orchestrator and ``CheckpointManager`` only see these Protocols; the
in-memory and SQLAlchemy backends both satisfy them. Calls are async and
keep their sessions to themselves. Audit records are never updated or
deleted, and every listing comes back oldest first.
"""

from typing import List, Optional, Protocol

from ..schemas.domain import AuditLogEntry, Checkpoint


class AuditLogRepository(Protocol):
    """Append-only store of audit records, one per trace entry."""

    async def append(self, entry: AuditLogEntry) -> None:
        """
        Append an audit record.

        Args:
            entry: The record to persist.
        """
        ...

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        """
        List audit records in write order.

        Args:
            session_id: Only records of this session when given.
            limit: Keep only the most recent ``limit`` records.

        Returns:
            Records, oldest first.
        """
        ...


class CheckpointRepository(Protocol):
    """Persist workspace snapshots taken before execution."""

    async def save(self, checkpoint: Checkpoint) -> None:
        """
        Persist a checkpoint.

        Args:
            checkpoint: The checkpoint domain object.
        """
        ...

    async def get(self, checkpoint_id: str) -> Optional[Checkpoint]:
        """
        Fetch a checkpoint by id.

        Returns:
            The Checkpoint or None when unknown.
        """
        ...

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[Checkpoint]:
        """
        List checkpoints in creation order.

        Args:
            session_id: Only checkpoints of this session when given.
            limit: Keep only the most recent ``limit`` checkpoints.

        Returns:
            Checkpoints, oldest first (the tail is the newest).
        """
        ...

    async def latest(self, session_id: str) -> Optional[Checkpoint]:
        """
        Fetch the most recent checkpoint of a session.

        Returns:
            The latest Checkpoint or None.
        """
        ...
