from __future__ import annotations

"""Audit logging of pipeline trace entries.

Every ``AgentStep`` the orchestrator records is mirrored here as an
``AuditLogEntry`` (result truncated to 500 characters). Write failures are
logged and swallowed: the trace in ``AgentResult`` stays authoritative.
"""

import logging
from typing import List, Optional

from .repos.interfaces import AuditLogRepository
from .schemas.domain import AgentStep, AuditLogEntry

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, repository: AuditLogRepository) -> None:
        self._repo = repository

    async def log_step(self, session_id: str, step: AgentStep) -> Optional[AuditLogEntry]:
        entry = AuditLogEntry.from_step(session_id, step)
        try:
            await self._repo.append(entry)
        except Exception:
            logger.exception("Failed to write audit record for session %s (%s)", session_id, step.phase.value)
            return None
        return entry

    async def get_logs(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        return await self._repo.list(session_id, limit)
