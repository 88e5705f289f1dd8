"""Risk-gated agent runtime: pipeline, policies, sandbox and persistence.

Design overview
---------------

The agent core separates *deciding* from *doing*:

- Planning (``planning.Planner``) turns a task into an ``ExecutionPlan`` with
  one untrusted completion call. It never executes anything.
- Approval (``approvals.ApprovalEngine``) applies ``ApprovalPolicy`` to the
  plan's aggregate risk and asks the operator when the policy says so.
- Execution runs each step's tool through ``sandbox.SandboxedExecutor``,
  after ``checkpoints.CheckpointManager`` snapshots the workspace.

``runtime.PhaseOrchestrator`` wires these into a LangGraph state machine
(PLAN -> PROPOSE -> APPROVE -> EXECUTE -> VERIFY -> EXPLAIN) and records an
append-only trace, mirrored to the audit log.

Typical usage
-------------

Most applications should use ``agent_core.service.AgentService``:

1. Build it with ``factory.build_service_from_settings()``.
2. ``await service.run(Task(task=...))``.
3. ``await service.undo(session_id)`` to roll the workspace back.
"""

from .errors import (
    ApprovalDenied,
    CheckpointFailure,
    GatekeeperError,
    PlanningFailure,
    SandboxPolicyViolation,
    ToolExecutionFailure,
    VerificationFailure,
)
from .factory import build_default_tool_registry, build_orchestrator, build_service_from_settings
from .runtime import OrchestratorDeps, PhaseOrchestrator
from .schemas.domain import (
    AgentPhase,
    AgentResult,
    AgentStep,
    ApprovalMode,
    ExecutionPlan,
    FailureReason,
    OperationType,
    PlanStep,
    RiskLevel,
    Task,
)
from .service import AgentService

__all__ = [
    "AgentPhase",
    "AgentResult",
    "AgentService",
    "AgentStep",
    "ApprovalDenied",
    "ApprovalMode",
    "CheckpointFailure",
    "ExecutionPlan",
    "FailureReason",
    "GatekeeperError",
    "OperationType",
    "OrchestratorDeps",
    "PhaseOrchestrator",
    "PlanStep",
    "PlanningFailure",
    "RiskLevel",
    "SandboxPolicyViolation",
    "Task",
    "ToolExecutionFailure",
    "VerificationFailure",
    "build_default_tool_registry",
    "build_orchestrator",
    "build_service_from_settings",
]
