from __future__ import annotations

"""Domain models for the risk-gated execution pipeline.

Value objects (``Task``, ``PlanStep``, ``ExecutionPlan``) are frozen: a refined
plan is a new object. Trace entries (``AgentStep``) and approval requests are
records owned by the orchestrator and the approval engine respectively.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field, model_validator

from .base import BaseSchema, FrozenSchema

APPROVAL_REQUEST_TTL = timedelta(minutes=5)
AUDIT_RESULT_MAX_CHARS = 500


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class OperationType(str, Enum):
    read = "read"
    file_write = "file-write"
    shell = "shell"
    delete = "delete"
    git_mutation = "git-mutation"
    network = "network"


class ApprovalMode(str, Enum):
    auto = "auto"
    prompt = "prompt"
    never = "never"


class Preference(str, Enum):
    always = "always"
    never = "never"
    ask = "ask"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


class AgentPhase(str, Enum):
    plan = "plan"
    propose = "propose"
    approve = "approve"
    execute = "execute"
    verify = "verify"
    explain = "explain"


class FailureReason(str, Enum):
    planning_failed = "planning_failed"
    approval_denied = "approval_denied"
    sandbox_denied = "sandbox_denied"
    tool_failed = "tool_failed"
    verification_failed = "verification_failed"
    checkpoint_failed = "checkpoint_failed"


class Task(FrozenSchema):
    """A natural-language request plus the knobs that govern its run."""

    task: str
    context: Dict[str, Any] = Field(default_factory=dict)
    approval_mode: ApprovalMode = ApprovalMode.prompt
    max_steps: Optional[int] = Field(default=None, ge=1)
    checkpoint: bool = True


class PlanStep(FrozenSchema):
    description: str
    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)
    reason: str = ""


class ExecutionPlan(FrozenSchema):
    """Ordered steps plus their aggregate risk.

    ``tools`` is always derived from ``steps`` (distinct names, first-use
    order); any value passed in is ignored.
    """

    steps: List[PlanStep]
    tools: List[str] = Field(default_factory=list)
    estimated_risk: RiskLevel = RiskLevel.medium

    @model_validator(mode="before")
    @classmethod
    def _derive_tools(cls, data: Any) -> Any:
        if isinstance(data, dict) and "steps" in data:
            names: List[str] = []
            for step in data["steps"] or []:
                name = step.tool if isinstance(step, PlanStep) else (step or {}).get("tool")
                if isinstance(name, str) and name not in names:
                    names.append(name)
            data = {**data, "tools": names}
        return data


class AgentStep(BaseSchema):
    """One trace entry: a phase or a single tool invocation."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    phase: AgentPhase
    action: str
    result: str = ""
    approved: Optional[bool] = None
    timestamp: datetime = Field(default_factory=_utc_now)
    duration_ms: float = 0.0


class AgentResult(BaseSchema):
    success: bool
    output: str = ""
    error: Optional[str] = None
    reason: Optional[FailureReason] = None
    steps: List[AgentStep] = Field(default_factory=list)
    artifacts: List[str] = Field(default_factory=list)
    checkpoint_id: Optional[str] = None
    session_id: Optional[str] = None
    plan: Optional[ExecutionPlan] = None

    def raise_for_failure(self) -> None:
        """Raise the error-taxonomy exception matching ``reason`` on a failed run."""
        if self.success:
            return
        from ..errors import error_for_reason

        raise error_for_reason(self.reason or FailureReason.tool_failed, self.error or "Run failed")


class ApprovalRequest(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    operation_type: OperationType
    description: str
    operations: List[str] = Field(default_factory=list)
    risk: RiskLevel
    created_at: datetime = Field(default_factory=_utc_now)
    expires_at: Optional[datetime] = None
    status: ApprovalStatus = ApprovalStatus.pending

    @model_validator(mode="after")
    def _default_expiry(self) -> "ApprovalRequest":
        if self.expires_at is None:
            self.expires_at = self.created_at + APPROVAL_REQUEST_TTL
        return self

    def decide(self, status: ApprovalStatus) -> None:
        """Move a pending request to a terminal status.

        Raises:
            ValueError: if the request is already approved/denied, or ``status``
                is ``pending``.
        """
        if status == ApprovalStatus.pending:
            raise ValueError("Cannot move an approval request back to pending")
        if self.status != ApprovalStatus.pending:
            raise ValueError(f"Approval request {self.id} is already {self.status.value}")
        self.status = status

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utc_now()) > (self.expires_at or self.created_at + APPROVAL_REQUEST_TTL)


class Checkpoint(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    description: str = ""
    state: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utc_now)


class AuditLogEntry(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    timestamp: datetime = Field(default_factory=_utc_now)
    phase: AgentPhase
    action: str
    result: str = ""
    approved: bool = True
    duration_ms: float = 0.0

    @classmethod
    def from_step(cls, session_id: str, step: AgentStep) -> "AuditLogEntry":
        """Build an audit record for a trace entry, truncating the result."""
        return cls(
            session_id=session_id,
            timestamp=step.timestamp,
            phase=step.phase,
            action=step.action,
            result=step.result[:AUDIT_RESULT_MAX_CHARS],
            approved=True if step.approved is None else step.approved,
            duration_ms=step.duration_ms,
        )
