from __future__ import annotations

"""Checkpoint & rollback manager.

``CheckpointManager`` snapshots the workspace before execution and restores
it on request ("undo").

Guarantees
----------

- ``create`` and ``restore`` never raise: failures are logged and reported as
  ``None`` / ``False``.
- ``restore`` is idempotent: applying the same snapshot twice leaves the
  workspace exactly as applying it once.
- Checkpoints are never deleted by the manager; retention belongs to the host.
"""

import asyncio
import logging
from typing import List, Optional

from ..schemas.domain import Checkpoint
from ..repos.interfaces import CheckpointRepository
from .snapshot import WorkspaceSnapshotter

logger = logging.getLogger(__name__)


class CheckpointManager:
    def __init__(self, repository: CheckpointRepository, *, snapshotter: WorkspaceSnapshotter) -> None:
        self._repo = repository
        self._snapshotter = snapshotter

    @property
    def snapshotter(self) -> WorkspaceSnapshotter:
        return self._snapshotter

    async def create(self, session_id: str, description: str = "") -> Optional[str]:
        """
        Snapshot the workspace.

        Args:
            session_id: Session the checkpoint belongs to.
            description: Free-text label (e.g. the task).

        Returns:
            The checkpoint id, or None if the snapshot could not be taken or stored.
        """
        try:
            state = await asyncio.to_thread(self._snapshotter.capture)
            cp = Checkpoint(session_id=session_id, description=description, state=state)
            await self._repo.save(cp)
        except Exception:
            logger.exception("Failed to create checkpoint for session %s", session_id)
            return None
        logger.info("Checkpoint %s created (%d files)", cp.id, len(state.get("files", {})))
        return cp.id

    async def restore(self, checkpoint_id: str) -> bool:
        """
        Return the workspace to the state captured in ``checkpoint_id``.

        Returns:
            True on success; False for unknown ids, snapshots from another
            root, or I/O failures.
        """
        try:
            cp = await self._repo.get(checkpoint_id)
        except Exception:
            logger.exception("Failed to load checkpoint %s", checkpoint_id)
            return False
        if cp is None:
            logger.warning("Checkpoint %s not found", checkpoint_id)
            return False
        try:
            changed = await asyncio.to_thread(self._snapshotter.apply, cp.state)
        except (OSError, ValueError) as e:
            logger.error("Failed to restore checkpoint %s: %s", checkpoint_id, e)
            return False
        logger.info("Checkpoint %s restored (%d paths changed)", checkpoint_id, len(changed))
        return True

    async def list(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[Checkpoint]:
        """List checkpoints newest-last."""
        return await self._repo.list(session_id, limit)

    async def latest(self, session_id: str) -> Optional[Checkpoint]:
        return await self._repo.latest(session_id)

    async def undo(self, session_id: str, checkpoint_id: Optional[str] = None) -> bool:
        """Restore ``checkpoint_id``, or the newest checkpoint of ``session_id``.

        An explicit ``checkpoint_id`` taken in another session is refused.
        """
        try:
            if checkpoint_id is None:
                cp = await self._repo.latest(session_id)
            else:
                cp = await self._repo.get(checkpoint_id)
        except Exception:
            logger.exception("Failed to look up checkpoint for session %s", session_id)
            return False
        if cp is None:
            logger.warning("No checkpoint to undo for session %s", session_id)
            return False
        if cp.session_id != session_id:
            logger.warning("Checkpoint %s belongs to session %s, not %s", cp.id, cp.session_id, session_id)
            return False
        return await self.restore(cp.id)
