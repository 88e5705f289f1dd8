from __future__ import annotations

"""Run trace recording.

``TraceRecorder`` owns the append-only list of ``AgentStep`` entries for a run.
Timestamps are strictly increasing within a run: an entry whose clock reading
is not after the previous entry's is bumped by one microsecond. Every entry is
mirrored to the audit log when one is configured.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..audit import AuditLogger
from ..schemas.domain import AgentPhase, AgentStep

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TraceRecorder:
    def __init__(
        self,
        session_id: str,
        *,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session_id = session_id
        self._audit = audit
        self._clock = clock or _utc_now
        self._steps: List[AgentStep] = []

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def steps(self) -> List[AgentStep]:
        return list(self._steps)

    def _next_timestamp(self) -> datetime:
        ts = self._clock()
        if self._steps and ts <= self._steps[-1].timestamp:
            ts = self._steps[-1].timestamp + _TICK
        return ts

    async def record(
        self,
        phase: AgentPhase,
        action: str,
        result: str = "",
        *,
        approved: Optional[bool] = None,
        duration_ms: float = 0.0,
    ) -> AgentStep:
        """Append a trace entry and mirror it to the audit log."""
        step = AgentStep(
            phase=phase,
            action=action,
            result=result,
            approved=approved,
            timestamp=self._next_timestamp(),
            duration_ms=duration_ms,
        )
        self._steps.append(step)
        logger.debug("[%s] %s: %s", phase.value, action, result[:200])
        if self._audit is not None:
            await self._audit.log_step(self._session_id, step)
        return step
