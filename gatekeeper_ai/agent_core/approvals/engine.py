from __future__ import annotations

"""Approval engine.

``ApprovalEngine`` decides, for a named operation type and a risk level,
whether to proceed silently, to block, or to ask the operator.

Decision order
--------------

``evaluate`` applies these rules and the first match wins:

1. global auto-approve switch;
2. remembered preference for the operation type (``always``/``never``);
3. ``auto_approve_low_risk`` / ``auto_approve_medium_risk``;
4. ``confirm_critical_risk`` / ``confirm_high_risk`` turned off;
5. otherwise ask.

Only rule 5 creates an ``ApprovalRequest``. The interactive prompt has no
timeout; ``expires_at`` on a request only matters to ``cleanup``.

Ownership
---------

The engine owns its requests and its ``ApprovalPolicy`` for the lifetime of the
process. It does no locking: hosts that run several pipelines concurrently
must serialize calls that mutate preferences.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..policy.models import ApprovalDecision, ApprovalOutcome, ApprovalPolicy
from ..schemas.domain import (
    ApprovalRequest,
    ApprovalStatus,
    OperationType,
    Preference,
    RiskLevel,
)
from .ui import (
    OPTIONS_TEXT,
    ApprovalUI,
    ConsoleApprovalUI,
    FileChange,
    help_text,
    render_banner,
    render_line_diff,
    render_operations,
)

logger = logging.getLogger(__name__)

_APPROVE_ANSWERS = frozenset({"y", "yes"})
_DENY_ANSWERS = frozenset({"n", "no", "c", "cancel", "q", "quit"})
_VIEW_ANSWERS = frozenset({"v", "view"})
_HELP_ANSWERS = frozenset({"?", "h", "help"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ApprovalStatusSummary:
    """Snapshot returned by ``ApprovalEngine.get_status``."""

    pending: int
    approved: int
    denied: int
    auto_approved: int
    auto_approve: bool
    preferences: Dict[OperationType, Preference]


class ApprovalEngine:
    """Policy evaluation plus the interactive approval protocol."""

    def __init__(
        self,
        policy: Optional[ApprovalPolicy] = None,
        *,
        ui: Optional[ApprovalUI] = None,
        clock: Optional[Callable[[], datetime]] = None,
        auto_approve: bool = False,
    ) -> None:
        """
        Initialize the ApprovalEngine.

        Args:
            policy: Approval policy; a default ``ApprovalPolicy`` when omitted.
            ui: Interactive channel; console stdin/stdout when omitted.
            clock: Returns the current UTC time (injectable for expiry tests).
            auto_approve: Initial value of the global auto-approve switch.
        """
        self._policy = policy or ApprovalPolicy()
        self._ui: ApprovalUI = ui or ConsoleApprovalUI()
        self._clock = clock or _utc_now
        self._auto_approve = auto_approve
        self._requests: Dict[str, ApprovalRequest] = {}
        self._auto_approved = 0

    @property
    def policy(self) -> ApprovalPolicy:
        return self._policy

    @property
    def auto_approve(self) -> bool:
        return self._auto_approve

    def set_auto_approve(self, enabled: bool) -> None:
        self._auto_approve = enabled
        logger.info("Global auto-approve %s", "enabled" if enabled else "disabled")

    def configure_policy(self, **updates: Any) -> ApprovalPolicy:
        """Update policy fields in place (validated) and return the policy."""
        for key, value in updates.items():
            if key not in ApprovalPolicy.model_fields:
                raise ValueError(f"Unknown approval policy field: {key}")
            setattr(self._policy, key, value)
        return self._policy

    def set_preference(self, operation_type: OperationType, preference: Preference) -> None:
        prefs = dict(self._policy.preferences)
        prefs[operation_type] = preference
        self._policy.preferences = prefs

    def clear_preferences(self) -> None:
        self._policy.preferences = {}

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def evaluate(self, operation_type: OperationType, risk: RiskLevel) -> ApprovalDecision:
        """Apply the decision order without side effects."""
        if self._auto_approve:
            return ApprovalDecision(ApprovalOutcome.approve, "auto_approve")

        preference = self._policy.preferences.get(operation_type)
        if preference == Preference.always:
            return ApprovalDecision(ApprovalOutcome.approve, "preference_always")
        if preference == Preference.never:
            return ApprovalDecision(ApprovalOutcome.deny, "preference_never")

        if risk == RiskLevel.low and self._policy.auto_approve_low_risk:
            return ApprovalDecision(ApprovalOutcome.approve, "auto_approve_low_risk")
        if risk == RiskLevel.medium and self._policy.auto_approve_medium_risk:
            return ApprovalDecision(ApprovalOutcome.approve, "auto_approve_medium_risk")

        if risk == RiskLevel.critical and not self._policy.confirm_critical_risk:
            return ApprovalDecision(ApprovalOutcome.approve, "confirm_critical_risk_disabled")
        if risk == RiskLevel.high and not self._policy.confirm_high_risk:
            return ApprovalDecision(ApprovalOutcome.approve, "confirm_high_risk_disabled")

        return ApprovalDecision(ApprovalOutcome.ask, "ask")

    def _settle_without_prompt(self, decision: ApprovalDecision, operation_type: OperationType) -> bool:
        if decision.outcome == ApprovalOutcome.approve:
            self._auto_approved += 1
            logger.debug("Approved %s without prompt (%s)", operation_type.value, decision.rule)
            return True
        logger.info("Denied %s without prompt (%s)", operation_type.value, decision.rule)
        return False

    def _new_request(
        self, operation_type: OperationType, description: str, operations: List[str], risk: RiskLevel
    ) -> ApprovalRequest:
        req = ApprovalRequest(
            operation_type=operation_type,
            description=description,
            operations=operations,
            risk=risk,
            created_at=self._clock(),
        )
        self._requests[req.id] = req
        logger.info("Approval requested: id=%s type=%s risk=%s", req.id, operation_type.value, risk.value)
        return req

    def _remember(self, operation_type: OperationType, preference: Preference) -> None:
        if self._policy.remember_preferences:
            self.set_preference(operation_type, preference)
            logger.info("Remembered preference %s for %s", preference.value, operation_type.value)

    def _resolve(self, req: ApprovalRequest, approved: bool) -> bool:
        req.decide(ApprovalStatus.approved if approved else ApprovalStatus.denied)
        logger.info("Approval %s: %s", req.id, req.status.value)
        return approved

    async def request(
        self,
        description: str,
        operations: Iterable[str],
        risk: RiskLevel,
        operation_type: OperationType = OperationType.file_write,
    ) -> bool:
        """
        Decide whether an operation may proceed, asking the operator if needed.

        Args:
            description: One-line summary shown in the prompt.
            operations: Individual operations (e.g. ``"shell_exec: run tests"``).
            risk: Aggregate risk of the operation(s).
            operation_type: Preference key for "always"/"never" answers.

        Returns:
            True to proceed, False to block.
        """
        decision = self.evaluate(operation_type, risk)
        if decision.outcome != ApprovalOutcome.ask:
            return self._settle_without_prompt(decision, operation_type)

        req = self._new_request(operation_type, description, list(operations), risk)
        return await self._prompt(req)

    async def _prompt(self, req: ApprovalRequest) -> bool:
        self._ui.display(render_banner(req.risk))
        self._ui.display(f"  {req.description}\n")
        ops = render_operations(req.operations)
        if ops:
            self._ui.display(ops + "\n")

        while True:
            answer = (await self._ui.ask("  Proceed? ")).strip()
            # "N" and "d" must be checked before case folding
            if answer == "N":
                self._remember(req.operation_type, Preference.never)
                return self._resolve(req, False)
            lowered = answer.lower()
            if lowered == "d":
                self._remember(req.operation_type, Preference.always)
                return self._resolve(req, True)
            if lowered in _APPROVE_ANSWERS:
                return self._resolve(req, True)
            if lowered in _DENY_ANSWERS:
                return self._resolve(req, False)
            if lowered in _VIEW_ANSWERS:
                self._ui.display(OPTIONS_TEXT)
                continue
            if lowered in _HELP_ANSWERS:
                self._ui.display(help_text(req.risk))
                self._ui.display(OPTIONS_TEXT)
                continue
            self._ui.display("  Invalid option. Type ? for help.")

    async def request_with_diff(
        self,
        description: str,
        changes: Iterable[FileChange],
        risk: RiskLevel,
        operation_type: OperationType = OperationType.file_write,
    ) -> bool:
        """Show a per-file diff and ask a single yes/no question.

        The same policy evaluation as ``request`` runs first; only when it
        yields "ask" is the diff rendered. An empty answer declines.
        """
        changes = list(changes)
        decision = self.evaluate(operation_type, risk)
        if decision.outcome != ApprovalOutcome.ask:
            return self._settle_without_prompt(decision, operation_type)

        req = self._new_request(operation_type, description, [f"Modify: {c.path}" for c in changes], risk)
        self._ui.display(render_banner(risk))
        self._ui.display(f"  {description}\n")
        for change in changes:
            self._ui.display(render_line_diff(change.path, change.old_content, change.new_content))

        answer = (await self._ui.ask("  Apply these changes? [y/N] ")).strip().lower()
        return self._resolve(req, answer.startswith("y"))

    async def request_shell(self, command: str, *, cwd: Optional[str] = None) -> bool:
        ops = [f"Run: {command}"] + ([f"In: {cwd}"] if cwd else [])
        return await self.request("Execute shell command", ops, RiskLevel.high, OperationType.shell)

    async def request_git(self, operation: str, details: Optional[List[str]] = None) -> bool:
        return await self.request(
            f"Git {operation}", [f"git {operation}"] + list(details or []), RiskLevel.medium, OperationType.git_mutation
        )

    async def request_delete(self, paths: Iterable[str]) -> bool:
        ops = [f"Delete: {p}" for p in paths]
        return await self.request(f"Delete {len(ops)} file(s)", ops, RiskLevel.high, OperationType.delete)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def get_request(self, request_id: str) -> Optional[ApprovalRequest]:
        return self._requests.get(request_id)

    def list_requests(self) -> List[ApprovalRequest]:
        return list(self._requests.values())

    def list_pending(self) -> List[ApprovalRequest]:
        return [r for r in self._requests.values() if r.status == ApprovalStatus.pending]

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """Forget every request whose ``expires_at`` has passed, whatever its status.

        Returns:
            Number of requests removed.
        """
        now = now or self._clock()
        expired = [rid for rid, r in self._requests.items() if r.is_expired(now)]
        for rid in expired:
            del self._requests[rid]
        if expired:
            logger.debug("Removed %d expired approval request(s)", len(expired))
        return len(expired)

    def get_status(self) -> ApprovalStatusSummary:
        counts = {s: 0 for s in ApprovalStatus}
        for r in self._requests.values():
            counts[r.status] += 1
        return ApprovalStatusSummary(
            pending=counts[ApprovalStatus.pending],
            approved=counts[ApprovalStatus.approved],
            denied=counts[ApprovalStatus.denied],
            auto_approved=self._auto_approved,
            auto_approve=self._auto_approve,
            preferences=dict(self._policy.preferences),
        )

    def format_pending(self) -> str:
        pending = self.list_pending()
        if not pending:
            return "No pending approvals."
        lines = [f"Pending approvals ({len(pending)}):"]
        for r in pending:
            lines.append(f"  [{r.risk.value.upper()}] {r.id[:8]} {r.operation_type.value}: {r.description}")
        return "\n".join(lines)
