from __future__ import annotations

"""Plan generation for agent runs.

This module defines the planner used by the PLAN phase of ``PhaseOrchestrator``.

Responsibilities
----------------

- Turn a ``Task`` into an ``ExecutionPlan`` with exactly one completion call.
- Refine an existing plan from reviewer feedback (one more completion call).
- Classify the plan's aggregate risk from its steps and the tool registry.

The planner is intentionally constrained:

- It does not execute tools.
- It does not decide approvals.
- It treats the model reply as untrusted text (see ``parser``).
"""

import json
import logging
from typing import List, Tuple

from ..completion.base import NULL_PROVIDER, ChatMessage, CompletionService
from ..errors import PlanningFailure
from ..policy.risk import aggregate_risk, classify_operation
from ..schemas.domain import ExecutionPlan, RiskLevel, Task
from ..tools.registry import ToolRegistry
from .parser import FallbackPlan, ParsedPlan, PlanParseResult, parse_plan

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the planner of a cautious software engineering assistant. "
    "Return a minimal, safe sequence of tool calls as JSON."
)


class Planner:
    """Planner backed by a ``CompletionService``.

    Parse failures are not errors: they produce a ``FallbackPlan``. A
    completion call that raises, or a reply from the ``none`` provider (no
    model configured), raises ``PlanningFailure``.
    """

    def __init__(self, completion: CompletionService, tools: ToolRegistry) -> None:
        self._completion = completion
        self._tools = tools

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    def build_prompt(self, task: Task) -> str:
        return "\n".join(
            [
                f"Task: {task.task}",
                "",
                "Context:",
                json.dumps(task.context, indent=2, default=str),
                "",
                "Available Tools:",
                self._tools.catalog(),
                "",
                "Create an execution plan:",
                "1. Break the task down step by step.",
                "2. For each step, name the tool to use and its arguments.",
                "3. Estimate the overall risk level (low/medium/high/critical).",
                "",
                "Respond with a JSON object containing:",
                "- steps: array of {description, tool, args, reason}",
                "- estimatedRisk: risk level",
                "",
                "Only respond with the JSON, no other text.",
            ]
        )

    def build_refine_prompt(self, plan: ExecutionPlan, feedback: str, task: Task) -> str:
        current = json.dumps(
            {"steps": [s.model_dump() for s in plan.steps], "estimatedRisk": plan.estimated_risk.value},
            indent=2,
            default=str,
        )
        return "\n".join(
            [
                f"Task: {task.task}",
                "",
                "Current plan:",
                current,
                "",
                f"Reviewer feedback: {feedback}",
                "",
                "Revise the plan to address the feedback while keeping the overall goal.",
                "Available Tools:",
                self._tools.catalog(),
                "",
                "Respond with the full revised plan in the same JSON format, no other text.",
            ]
        )

    async def _ask(self, prompt: str) -> str:
        messages = [ChatMessage(role="system", content=SYSTEM_PROMPT), ChatMessage(role="user", content=prompt)]
        try:
            response = await self._completion.chat(messages)
        except Exception as e:
            logger.error("Planning completion call failed: %s", e)
            raise PlanningFailure(f"Planning failed: {e}") from e
        if response.provider == NULL_PROVIDER:
            raise PlanningFailure("Planning failed: no completion provider configured")
        logger.debug("Planning reply from %s (%s chars)", response.provider, len(response.content))
        return response.content

    async def plan(self, task: Task) -> PlanParseResult:
        """Generate a plan for ``task``.

        Returns:
            ``ParsedPlan`` with a classified plan, or ``FallbackPlan``.

        Raises:
            PlanningFailure: If the completion service fails or is not configured.
        """
        content = await self._ask(self.build_prompt(task))
        result = parse_plan(content, task.task)
        if isinstance(result, ParsedPlan):
            return ParsedPlan(plan=self.classify(result.plan))
        return result

    async def refine(self, plan: ExecutionPlan, feedback: str, task: Task) -> PlanParseResult:
        """Ask the model to revise ``plan`` according to ``feedback``.

        An unparseable reply keeps the current plan, returned as a
        ``FallbackPlan`` carrying the parse error.
        """
        content = await self._ask(self.build_refine_prompt(plan, feedback, task))
        result = parse_plan(content, task.task)
        if isinstance(result, ParsedPlan):
            return ParsedPlan(plan=self.classify(result.plan))
        return FallbackPlan(plan=plan, error=result.error)

    def classify(self, plan: ExecutionPlan) -> ExecutionPlan:
        """Return ``plan`` with its risk raised to the highest per-step classification.

        Steps naming unknown tools count as ``high``.
        """
        levels: List[RiskLevel] = [plan.estimated_risk]
        for step in plan.steps:
            if not self._tools.has(step.tool):
                levels.append(RiskLevel.high)
                continue
            tool = self._tools.get(step.tool)
            text = f"{step.description} {json.dumps(step.args, default=str)}"
            levels.append(classify_operation(tool.operation_type, text=text, declared=tool.risk_level))
        risk = aggregate_risk(levels)
        if risk == plan.estimated_risk:
            return plan
        return plan.model_copy(update={"estimated_risk": risk})

    def validate_plan(self, plan: ExecutionPlan) -> Tuple[bool, List[str]]:
        issues: List[str] = []
        if not plan.steps:
            issues.append("Plan has no steps")
        for i, step in enumerate(plan.steps, start=1):
            if not self._tools.has(step.tool):
                issues.append(f"Step {i}: unknown tool '{step.tool}'")
            if not step.description.strip():
                issues.append(f"Step {i}: missing description")
        return not issues, issues


def format_plan(plan: ExecutionPlan) -> str:
    """Render a plan for the PROPOSE phase."""
    lines = [
        f"Execution Plan (Risk: {plan.estimated_risk.value.upper()})",
        "",
        f"Tools: {', '.join(plan.tools)}",
        "",
        "Steps:",
    ]
    for i, step in enumerate(plan.steps, start=1):
        lines.append(f"{i}. {step.description}")
        lines.append(f"   Tool: {step.tool}")
        if step.reason:
            lines.append(f"   Reason: {step.reason}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"
