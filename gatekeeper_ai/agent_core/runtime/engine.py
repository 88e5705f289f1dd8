from __future__ import annotations

"""LangGraph phase orchestrator.

``PhaseOrchestrator`` drives one task through the risk-gated pipeline::

    PLAN -> PROPOSE -> APPROVE -> EXECUTE -> VERIFY -> EXPLAIN

Execution model
---------------

- The orchestrator runs a LangGraph state machine over a mutable ``_GraphState``.
- Each phase is one node. Any node may set ``_finished``; the conditional edge
  after it then routes straight to ``finish``.
- The only backward edge is PROPOSE -> PLAN, taken when the optional plan
  reviewer returns feedback (bounded by ``max_refinements``).

Failure handling
----------------

- PLAN: ``PlanningFailure`` ends the run (``planning_failed``).
- APPROVE: a denial ends the run (``approval_denied``).
- EXECUTE: the first failed step ends the run with that tool's error
  (``sandbox_denied`` for sandbox rejections, else ``tool_failed``).
- VERIFY: a failed verdict marks the run failed (``verification_failed``) but
  EXPLAIN still runs.
- EXPLAIN: never fails the run; it degrades to a canned summary.

Every phase writes trace entries through ``TraceRecorder``; the finished
``AgentResult.steps`` is that trace in phase-then-step order.
"""

import inspect
import logging
import time
from pathlib import Path
from typing import List, Optional, Union
from uuid import uuid4

from langgraph.graph import END, StateGraph

from ..completion.base import NULL_PROVIDER, ChatMessage
from ..errors import PlanningFailure
from ..planning.parser import FallbackPlan
from ..planning.planner import format_plan
from ..policy.risk import dominant_operation_type, risk_at_least
from ..schemas.domain import (
    AgentPhase,
    AgentResult,
    ApprovalMode,
    ExecutionPlan,
    FailureReason,
    RiskLevel,
    Task,
)
from ..tools.base import ToolContext, ToolResult
from .models import OrchestratorDeps, _GraphState
from .trace import TraceRecorder

logger = logging.getLogger(__name__)

DENIED_ERROR = "User declined approval"
DEFAULT_EXPLANATION = "Execution completed."


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000.0


class PhaseOrchestrator:
    """Run tasks through PLAN, PROPOSE, APPROVE, EXECUTE, VERIFY and EXPLAIN.

    The orchestrator owns no policy of its own: planning is delegated to
    ``Planner``, approval to ``ApprovalEngine``, side effects to tools running
    through ``SandboxedExecutor``, and rollback points to ``CheckpointManager``.
    """

    def __init__(self, *, deps: OrchestratorDeps) -> None:
        """
        Initialize the PhaseOrchestrator.

        Args:
            deps: The runtime dependencies (planner, tools, approvals, sandbox, ...).
        """
        self._deps = deps
        self._graph = self._build_graph()

    @property
    def deps(self) -> OrchestratorDeps:
        return self._deps

    @property
    def working_dir(self) -> Path:
        return self._deps.working_dir or self._deps.sandbox.project_root

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("plan_phase", self._node_plan)
        g.add_node("propose_phase", self._node_propose)
        g.add_node("approve_phase", self._node_approve)
        g.add_node("execute_phase", self._node_execute)
        g.add_node("verify_phase", self._node_verify)
        g.add_node("explain_phase", self._node_explain)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("plan_phase")
        g.add_conditional_edges(
            "plan_phase",
            self._route_unless_finished,
            {"continue": "propose_phase", "finish": "finish"},
        )
        g.add_conditional_edges(
            "propose_phase",
            self._route_after_propose,
            {"refine": "plan_phase", "continue": "approve_phase"},
        )
        g.add_conditional_edges(
            "approve_phase",
            self._route_unless_finished,
            {"continue": "execute_phase", "finish": "finish"},
        )
        g.add_conditional_edges(
            "execute_phase",
            self._route_unless_finished,
            {"continue": "verify_phase", "finish": "finish"},
        )
        g.add_edge("verify_phase", "explain_phase")
        g.add_edge("explain_phase", "finish")
        g.add_edge("finish", END)
        return g.compile()

    async def run(
        self,
        task: Union[Task, str],
        *,
        session_id: Optional[str] = None,
        dry_run: bool = False,
    ) -> AgentResult:
        """Run ``task`` through the pipeline and return its result.

        Pipeline failures are reported in the returned ``AgentResult``
        (``success=False`` plus ``error`` and ``reason``); they are not raised.
        """
        if isinstance(task, str):
            task = Task(task=task)
        sid = session_id or str(uuid4())
        trace = TraceRecorder(sid, audit=self._deps.audit)
        logger.info("Starting run %s (mode=%s, dry_run=%s)", sid, task.approval_mode.value, dry_run)

        state: _GraphState = {
            "session_id": sid,
            "task": task,
            "dry_run": dry_run,
            "trace": trace,
            "plan": None,
            "feedback": None,
            "refinements": 0,
            "results": [],
            "artifacts": [],
            "checkpoint_ref": None,
            "verified": None,
            "verification": "",
            "output": "",
            "error": None,
            "reason": None,
        }
        final = await self._graph.ainvoke(state)

        result = AgentResult(
            success=final.get("error") is None and bool(final.get("verified")),
            output=str(final.get("output") or ""),
            error=final.get("error"),
            reason=final.get("reason"),
            steps=trace.steps,
            artifacts=list(final.get("artifacts") or []),
            checkpoint_id=final.get("checkpoint_ref"),
            session_id=sid,
            plan=final.get("plan"),
        )
        logger.info(
            "Run %s finished: success=%s reason=%s steps=%d",
            sid,
            result.success,
            result.reason.value if result.reason else None,
            len(result.steps),
        )
        return result

    def _fail(self, state: _GraphState, reason: FailureReason, error: str) -> _GraphState:
        state["error"] = error
        state["reason"] = reason
        state["_finished"] = True
        return state

    def _route_unless_finished(self, state: _GraphState) -> str:
        return "finish" if state.get("_finished") else "continue"

    def _route_after_propose(self, state: _GraphState) -> str:
        return "refine" if state.get("feedback") else "continue"

    async def _node_plan(self, state: _GraphState) -> _GraphState:
        """Create the plan, or refine it when the reviewer left feedback."""
        task = state["task"]
        trace = state["trace"]
        planner = self._deps.planner
        feedback = state.get("feedback")
        current = state.get("plan")
        refining = bool(feedback) and current is not None
        action = "Refine execution plan" if refining else "Create execution plan"

        start = time.monotonic()
        try:
            if refining:
                parsed = await planner.refine(current, str(feedback), task)
            else:
                parsed = await planner.plan(task)
        except PlanningFailure as e:
            await trace.record(AgentPhase.plan, action, e.message, duration_ms=_elapsed_ms(start))
            state["feedback"] = None
            return self._fail(state, FailureReason.planning_failed, e.message)

        plan = parsed.plan
        notes: List[str] = []
        if isinstance(parsed, FallbackPlan):
            notes.append(f"fallback plan used ({parsed.error})")
        if task.max_steps is not None and len(plan.steps) > task.max_steps:
            notes.append(f"truncated from {len(plan.steps)} to {task.max_steps} steps")
            plan = ExecutionPlan(steps=plan.steps[: task.max_steps], estimated_risk=plan.estimated_risk)

        summary = f"{len(plan.steps)} step(s), risk {plan.estimated_risk.value}"
        if notes:
            summary = f"{summary}; " + "; ".join(notes)
        await trace.record(AgentPhase.plan, action, summary, duration_ms=_elapsed_ms(start))

        state["plan"] = plan
        state["feedback"] = None
        return state

    async def _node_propose(self, state: _GraphState) -> _GraphState:
        """Render the plan, hand it to the sink, and consult the reviewer."""
        plan = state["plan"]
        trace = state["trace"]
        start = time.monotonic()

        rendered = ""
        try:
            rendered = format_plan(plan)
            sink = self._deps.proposal_sink
            if sink is not None:
                out = sink(rendered)
                if inspect.isawaitable(out):
                    await out
        except Exception:
            logger.exception("Failed to publish plan proposal for session %s", state["session_id"])
        await trace.record(AgentPhase.propose, "Propose execution plan", rendered, duration_ms=_elapsed_ms(start))

        reviewer = self._deps.plan_reviewer
        used = int(state.get("refinements") or 0)
        if reviewer is not None and used < self._deps.max_refinements:
            try:
                feedback = await reviewer(plan)
            except Exception:
                logger.exception("Plan reviewer failed; continuing with the current plan")
                feedback = None
            if feedback:
                state["feedback"] = feedback
                state["refinements"] = used + 1
                logger.info("Plan refinement %d requested: %s", used + 1, feedback)
        return state

    async def _node_approve(self, state: _GraphState) -> _GraphState:
        """Gate the whole plan through the approval engine."""
        task = state["task"]
        plan = state["plan"]
        trace = state["trace"]
        risk = plan.estimated_risk
        action = f"Request approval for {len(plan.steps)} step(s) (risk: {risk.value})"
        start = time.monotonic()

        if task.approval_mode == ApprovalMode.auto:
            await trace.record(
                AgentPhase.approve, action, "Approved (approval mode auto)", approved=True, duration_ms=_elapsed_ms(start)
            )
            return state
        if not risk_at_least(risk, RiskLevel.medium):
            await trace.record(
                AgentPhase.approve, action, "Approved (low risk)", approved=True, duration_ms=_elapsed_ms(start)
            )
            return state
        if task.approval_mode == ApprovalMode.never:
            message = f"Approval mode 'never' does not allow {risk.value} risk plans"
            await trace.record(AgentPhase.approve, action, message, approved=False, duration_ms=_elapsed_ms(start))
            state["output"] = "Operation cancelled"
            return self._fail(state, FailureReason.approval_denied, message)

        tools = self._deps.tools
        operation_type = dominant_operation_type(
            tools.get(name).operation_type for name in plan.tools if tools.has(name)
        )
        try:
            approved = await self._deps.approvals.request(
                f"Execute plan with {len(plan.steps)} steps",
                [f"{s.tool}: {s.description}" for s in plan.steps],
                risk,
                operation_type,
            )
        except Exception:
            logger.exception("Approval prompt failed; treating as denied")
            approved = False

        if not approved:
            await trace.record(
                AgentPhase.approve, action, "Operation cancelled by user", approved=False, duration_ms=_elapsed_ms(start)
            )
            state["output"] = "Operation cancelled"
            return self._fail(state, FailureReason.approval_denied, DENIED_ERROR)

        await trace.record(AgentPhase.approve, action, "Approved", approved=True, duration_ms=_elapsed_ms(start))
        return state

    async def _invoke(self, name: str, args: dict, ctx: ToolContext) -> ToolResult:
        tools = self._deps.tools
        if not tools.has(name):
            return ToolResult.failure(f"Tool not found: {name}")
        try:
            return await tools.get(name).handler(dict(args), ctx)
        except Exception as e:
            logger.exception("Tool %s raised", name)
            return ToolResult.failure(f"{type(e).__name__}: {e}")

    async def _node_execute(self, state: _GraphState) -> _GraphState:
        """Checkpoint, then run every step in order, halting on the first failure."""
        task = state["task"]
        plan = state["plan"]
        trace = state["trace"]
        sid = state["session_id"]

        checkpoints = self._deps.checkpoints
        if task.checkpoint and checkpoints is not None:
            cp_id = await checkpoints.create(sid, f"Before: {task.task[:80]}")
            if cp_id is None:
                logger.warning("Checkpoint creation failed for session %s; continuing without one", sid)
            else:
                logger.info("Checkpoint %s created for session %s", cp_id, sid)
            state["checkpoint_ref"] = cp_id

        ctx = ToolContext(
            working_dir=self.working_dir,
            session_id=sid,
            sandbox=self._deps.sandbox,
            dry_run=state["dry_run"],
        )
        results: List[ToolResult] = list(state.get("results") or [])
        artifacts: List[str] = list(state.get("artifacts") or [])
        for step in plan.steps:
            start = time.monotonic()
            res = await self._invoke(step.tool, step.args, ctx)
            duration = res.duration_ms or _elapsed_ms(start)
            await trace.record(
                AgentPhase.execute,
                f"{step.tool}: {step.description}",
                res.output if res.success else (res.error or "Unknown error"),
                duration_ms=duration,
            )
            results.append(res)
            for path in res.files_changed:
                if path not in artifacts:
                    artifacts.append(path)
            if not res.success:
                state["results"] = results
                state["artifacts"] = artifacts
                state["output"] = res.output
                reason = FailureReason.sandbox_denied if res.denied else FailureReason.tool_failed
                logger.warning("Step '%s' failed (%s): %s", step.tool, reason.value, res.error)
                return self._fail(state, reason, res.error or "Unknown error")

        state["results"] = results
        state["artifacts"] = artifacts
        state["output"] = "\n".join(r.output.rstrip("\n") for r in results if r.output)
        return state

    async def _node_verify(self, state: _GraphState) -> _GraphState:
        """Inspect the last tool result; does not re-run anything."""
        trace = state["trace"]
        results = state.get("results") or []
        last = results[-1] if results else None
        if last is None:
            verified, message = False, "No results to verify"
        elif not last.success:
            verified, message = False, f"Execution failed: {last.error}"
        elif not last.output.strip():
            verified, message = False, "No output produced"
        else:
            verified, message = True, "Execution completed successfully"

        await trace.record(AgentPhase.verify, "Verify results", message)
        state["verified"] = verified
        state["verification"] = message
        if not verified:
            state["error"] = message
            state["reason"] = FailureReason.verification_failed
        return state

    async def _node_explain(self, state: _GraphState) -> _GraphState:
        """Ask the completion service for a short narrative of the run."""
        trace = state["trace"]
        start = time.monotonic()
        explanation = await self._explain(state)
        await trace.record(AgentPhase.explain, "Explain results", explanation, duration_ms=_elapsed_ms(start))
        body = str(state.get("output") or "")
        state["output"] = f"{body}\n\n{explanation}" if body else explanation
        return state

    async def _explain(self, state: _GraphState) -> str:
        completion = self._deps.completion
        if completion is None:
            return DEFAULT_EXPLANATION
        results = state.get("results") or []
        last = results[-1] if results else None
        last_text = (last.output if last.success else last.error or "") if last is not None else ""
        verdict = "passed" if state.get("verified") else "failed"
        prompt = "\n".join(
            [
                f"Task: {state['task'].task}",
                "",
                "Last result:",
                last_text[:2000],
                "",
                f"Verification {verdict}: {state.get('verification') or ''}",
                "",
                "Explain briefly what was done and the outcome.",
            ]
        )
        try:
            response = await completion.chat([ChatMessage(role="user", content=prompt)])
        except Exception as e:
            logger.warning("Explanation failed, using default summary: %s", e)
            return DEFAULT_EXPLANATION
        if response.provider == NULL_PROVIDER or not response.content.strip():
            return DEFAULT_EXPLANATION
        return response.content.strip()

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        """Terminal node. Currently a no-op."""
        return state
