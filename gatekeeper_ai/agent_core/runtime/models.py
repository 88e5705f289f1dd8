from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

The orchestrator is dependency-injected.

- ``OrchestratorDeps`` collects the collaborators the phases need.
- ``_GraphState`` is the mutable state passed between LangGraph nodes.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    NotRequired,
    Optional,
    Required,
    TypedDict,
)

from ..approvals.engine import ApprovalEngine
from ..audit import AuditLogger
from ..checkpoints.manager import CheckpointManager
from ..completion.base import CompletionService
from ..planning.planner import Planner
from ..sandbox.executor import SandboxedExecutor
from ..schemas.domain import ExecutionPlan, FailureReason, Task
from ..tools.base import ToolResult
from ..tools.registry import ToolRegistry
from .trace import TraceRecorder

ProposalSink = Callable[[str], Any]
PlanReviewer = Callable[[ExecutionPlan], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``PhaseOrchestrator``.

    Required collaborators cover the pipeline proper (planner, tools, approval
    engine, sandbox). The rest are optional:

    - ``checkpoints``: when missing, EXECUTE runs without a checkpoint.
    - ``audit``: when missing, trace entries are not persisted.
    - ``completion``: used by EXPLAIN; when missing the canned summary is used.
    - ``proposal_sink``: receives the rendered plan during PROPOSE
      (plain or async callable).
    - ``plan_reviewer``: async callable returning feedback (or ``None``) for a
      proposed plan; feedback sends the run back to PLAN, at most
      ``max_refinements`` times.
    """

    planner: Planner
    tools: ToolRegistry
    approvals: ApprovalEngine
    sandbox: SandboxedExecutor

    checkpoints: Optional[CheckpointManager] = None
    audit: Optional[AuditLogger] = None
    completion: Optional[CompletionService] = None
    proposal_sink: Optional[ProposalSink] = None
    plan_reviewer: Optional[PlanReviewer] = None
    max_refinements: int = 2
    working_dir: Optional[Path] = None


class _GraphState(TypedDict):
    """Mutable LangGraph state for a single run.

    Required keys:

    - ``session_id``, ``task``, ``dry_run``: run inputs.
    - ``trace``: the run's ``TraceRecorder``.

    Optional keys are filled in by the phases as the run progresses. The
    ``_finished`` flag routes straight to the ``finish`` node.
    """

    session_id: Required[str]
    task: Required[Task]
    dry_run: Required[bool]
    trace: Required[TraceRecorder]
    plan: NotRequired[Optional[ExecutionPlan]]
    feedback: NotRequired[Optional[str]]
    refinements: NotRequired[int]
    results: NotRequired[List[ToolResult]]
    artifacts: NotRequired[List[str]]
    checkpoint_ref: NotRequired[Optional[str]]
    verified: NotRequired[Optional[bool]]
    verification: NotRequired[str]
    output: NotRequired[str]
    error: NotRequired[Optional[str]]
    reason: NotRequired[Optional[FailureReason]]
    _finished: NotRequired[bool]
