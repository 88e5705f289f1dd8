"""Error types for the execution pipeline.

Each error carries a machine-checkable ``reason`` (a ``FailureReason``) and a
human-readable message. The orchestrator normalizes these into
``AgentResult`` objects; ``AgentResult.raise_for_failure`` turns a failed
result back into the matching exception.
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from .schemas.domain import FailureReason


class GatekeeperError(Exception):
    """Base error for all pipeline failures."""

    reason: FailureReason = FailureReason.tool_failed

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PlanningFailure(GatekeeperError):
    """Raised when the completion service cannot produce a plan at all."""

    reason = FailureReason.planning_failed


class ApprovalDenied(GatekeeperError):
    """Raised when the operator or a remembered preference declines a plan."""

    reason = FailureReason.approval_denied

    def __init__(self, message: str = "User declined approval") -> None:
        super().__init__(message)


class SandboxPolicyViolation(GatekeeperError):
    """Raised when a command or path is rejected by sandbox policy or the scanner."""

    reason = FailureReason.sandbox_denied


class ToolExecutionFailure(GatekeeperError):
    """Raised for unsuccessful tool invocations."""

    reason = FailureReason.tool_failed

    def __init__(self, message: str, *, tool: Optional[str] = None) -> None:
        super().__init__(f"Tool '{tool}' failed: {message}" if tool else message)
        self.tool = tool


class VerificationFailure(GatekeeperError):
    """Raised when execution finished but the outcome did not pass verification."""

    reason = FailureReason.verification_failed


class CheckpointFailure(GatekeeperError):
    """Raised when a checkpoint cannot be restored."""

    reason = FailureReason.checkpoint_failed

    def __init__(self, checkpoint_id: Optional[str], message: str = "restore failed") -> None:
        super().__init__(f"Checkpoint '{checkpoint_id}': {message}" if checkpoint_id else f"Checkpoint: {message}")
        self.checkpoint_id = checkpoint_id


_BY_REASON: Dict[FailureReason, Type[GatekeeperError]] = {
    FailureReason.planning_failed: PlanningFailure,
    FailureReason.approval_denied: ApprovalDenied,
    FailureReason.sandbox_denied: SandboxPolicyViolation,
    FailureReason.tool_failed: ToolExecutionFailure,
    FailureReason.verification_failed: VerificationFailure,
}


def error_for_reason(reason: FailureReason, message: str) -> GatekeeperError:
    """Instantiate the error class for ``reason`` with ``message``."""
    if reason == FailureReason.checkpoint_failed:
        return CheckpointFailure(None, message)
    return _BY_REASON[reason](message)
