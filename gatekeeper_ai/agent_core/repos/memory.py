from __future__ import annotations

"""In-process repository implementations.

Used when no database is configured and throughout the unit tests. Records
live for the lifetime of the repository object.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..schemas.domain import AuditLogEntry, Checkpoint
from .interfaces import AuditLogRepository, CheckpointRepository


def _tail(items: list, limit: Optional[int]) -> list:
    if limit is None:
        return list(items)
    return list(items[-limit:]) if limit > 0 else []


@dataclass
class InMemoryAuditLogRepository(AuditLogRepository):
    entries: List[AuditLogEntry] = field(default_factory=list)

    async def append(self, entry: AuditLogEntry) -> None:
        self.entries.append(entry.model_copy(deep=True))

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        selected = [e for e in self.entries if session_id is None or e.session_id == session_id]
        return _tail(selected, limit)


@dataclass
class InMemoryCheckpointRepository(CheckpointRepository):
    checkpoints: Dict[str, Checkpoint] = field(default_factory=dict)

    async def save(self, checkpoint: Checkpoint) -> None:
        # dict preserves insertion order, which is creation order
        self.checkpoints[checkpoint.id] = checkpoint.model_copy(deep=True)

    async def get(self, checkpoint_id: str) -> Optional[Checkpoint]:
        cp = self.checkpoints.get(checkpoint_id)
        return cp.model_copy(deep=True) if cp else None

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[Checkpoint]:
        selected = [c for c in self.checkpoints.values() if session_id is None or c.session_id == session_id]
        return _tail(selected, limit)

    async def latest(self, session_id: str) -> Optional[Checkpoint]:
        selected = await self.list(session_id, limit=1)
        return selected[0] if selected else None
