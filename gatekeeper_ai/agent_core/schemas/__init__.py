"""Schemas and DTOs for the agent core."""

from .base import BaseSchema, FrozenSchema
from .domain import (
    AgentPhase,
    AgentResult,
    AgentStep,
    ApprovalMode,
    ApprovalRequest,
    ApprovalStatus,
    AuditLogEntry,
    Checkpoint,
    ExecutionPlan,
    FailureReason,
    OperationType,
    PlanStep,
    Preference,
    RiskLevel,
    Task,
)

__all__ = [
    "BaseSchema",
    "FrozenSchema",
    "AgentPhase",
    "AgentResult",
    "AgentStep",
    "ApprovalMode",
    "ApprovalRequest",
    "ApprovalStatus",
    "AuditLogEntry",
    "Checkpoint",
    "ExecutionPlan",
    "FailureReason",
    "OperationType",
    "PlanStep",
    "Preference",
    "RiskLevel",
    "Task",
]
