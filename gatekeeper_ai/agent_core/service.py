from __future__ import annotations

"""High-level service for agent runs.

``AgentService`` provides an application-friendly API over the wired
components, without callers touching the orchestrator's collaborators.

- ``run``: push a task through the phase pipeline and return its ``AgentResult``.
- ``undo``: roll the workspace back to a session checkpoint.
- ``list_checkpoints`` / ``audit_logs`` / ``approval_status``: read-side helpers.

``AgentService`` is intentionally thin: it delegates execution semantics to
the orchestrator and does not contain policy logic itself.
"""

import logging
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncEngine

from .approvals.engine import ApprovalEngine, ApprovalStatusSummary
from .audit import AuditLogger
from .checkpoints.manager import CheckpointManager
from .errors import CheckpointFailure
from .runtime.engine import PhaseOrchestrator
from .schemas.domain import AgentResult, AuditLogEntry, Checkpoint, Task

logger = logging.getLogger(__name__)


class AgentService:
    """Facade over ``PhaseOrchestrator`` and its stateful collaborators."""

    def __init__(
        self,
        *,
        orchestrator: PhaseOrchestrator,
        checkpoints: Optional[CheckpointManager] = None,
        approvals: Optional[ApprovalEngine] = None,
        audit: Optional[AuditLogger] = None,
        db_engine: Optional[AsyncEngine] = None,
    ) -> None:
        deps = orchestrator.deps
        self._orchestrator = orchestrator
        self._checkpoints = checkpoints or deps.checkpoints
        self._approvals = approvals or deps.approvals
        self._audit = audit or deps.audit
        self._db_engine = db_engine

    @property
    def orchestrator(self) -> PhaseOrchestrator:
        return self._orchestrator

    @property
    def approvals(self) -> ApprovalEngine:
        return self._approvals

    async def run(
        self,
        task: Union[Task, str],
        *,
        session_id: Optional[str] = None,
        dry_run: bool = False,
    ) -> AgentResult:
        """Run a task through the pipeline.

        Returns
        -------
        AgentResult
            The run outcome, including the full phase trace.
        """
        return await self._orchestrator.run(task, session_id=session_id, dry_run=dry_run)

    async def undo(self, session_id: str, checkpoint_id: Optional[str] = None) -> str:
        """Restore a checkpoint of ``session_id`` (the latest one by default).

        Returns:
            The id of the restored checkpoint.

        Raises:
            CheckpointFailure: If there is no such checkpoint or the restore fails.
        """
        if self._checkpoints is None:
            raise CheckpointFailure(checkpoint_id, "checkpoints are not configured")
        if checkpoint_id is None:
            latest = await self._checkpoints.latest(session_id)
            if latest is None:
                raise CheckpointFailure(None, f"no checkpoint for session {session_id}")
            checkpoint_id = latest.id
        if not await self._checkpoints.undo(session_id, checkpoint_id):
            raise CheckpointFailure(checkpoint_id)
        logger.info("Session %s rolled back to checkpoint %s", session_id, checkpoint_id)
        return checkpoint_id

    async def list_checkpoints(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[Checkpoint]:
        if self._checkpoints is None:
            return []
        return await self._checkpoints.list(session_id, limit)

    async def audit_logs(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[AuditLogEntry]:
        if self._audit is None:
            return []
        return await self._audit.get_logs(session_id, limit)

    def approval_status(self) -> ApprovalStatusSummary:
        return self._approvals.get_status()

    async def aclose(self) -> None:
        """Release the sandbox session directory and the database engine."""
        self._orchestrator.deps.sandbox.cleanup()
        if self._db_engine is not None:
            await self._db_engine.dispose()
