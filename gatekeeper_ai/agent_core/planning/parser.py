from __future__ import annotations

"""Plan reply parsing.

Model replies are untrusted text. ``parse_plan`` extracts a JSON object of the
form::

    {"steps": [{"description": ..., "tool": ..., "args": {...}, "reason": ...}],
     "estimatedRisk": "low|medium|high|critical"}

from the reply (bare, or inside a fenced ``json`` block, or embedded in prose)
and validates it into an ``ExecutionPlan``. Anything else yields a
``FallbackPlan``: a single ``shell_exec`` step that echoes the task, tagged
``medium``, so a malformed reply still produces a reviewable plan.
"""

import json
import logging
import re
import shlex
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..schemas.domain import ExecutionPlan, PlanStep, RiskLevel

logger = logging.getLogger(__name__)

FALLBACK_TOOL = "shell_exec"
FALLBACK_REASON = "Fallback execution"

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_BARE_JSON = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ParsedPlan:
    """The reply held a well-formed plan."""

    plan: ExecutionPlan


@dataclass(frozen=True)
class FallbackPlan:
    """The reply could not be parsed; ``plan`` is the single-step fallback."""

    plan: ExecutionPlan
    error: str


PlanParseResult = Union[ParsedPlan, FallbackPlan]


def fallback_plan(task_text: str) -> ExecutionPlan:
    """Single ``shell_exec`` step echoing the (truncated, quoted) task."""
    return ExecutionPlan(
        steps=[
            PlanStep(
                description=f"Execute: {task_text[:100]}",
                tool=FALLBACK_TOOL,
                args={"command": f"echo {shlex.quote(task_text[:200])}"},
                reason=FALLBACK_REASON,
            )
        ],
        estimated_risk=RiskLevel.medium,
    )


def _candidates(content: str) -> List[str]:
    found = [m.group(1) for m in _FENCED_JSON.finditer(content)]
    bare = _BARE_JSON.search(content)
    if bare:
        found.append(bare.group(0))
    return found


def _load_object(content: str) -> Dict[str, Any]:
    errors: List[str] = []
    for candidate in _candidates(content):
        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError as e:
            errors.append(str(e))
            continue
        if isinstance(obj, dict):
            return obj
        errors.append("top-level JSON value is not an object")
    if not errors:
        raise ValueError("no JSON object found in reply")
    raise ValueError(errors[-1])


def _to_plan(obj: Dict[str, Any]) -> ExecutionPlan:
    raw_steps = obj.get("steps")
    if not isinstance(raw_steps, list) or not raw_steps:
        raise ValueError("plan has no steps")

    steps: List[PlanStep] = []
    for i, raw in enumerate(raw_steps, start=1):
        if not isinstance(raw, dict):
            raise ValueError(f"step {i} is not an object")
        tool = raw.get("tool")
        if not isinstance(tool, str) or not tool.strip():
            raise ValueError(f"step {i} has no tool")
        args = raw.get("args") or {}
        if not isinstance(args, dict):
            raise ValueError(f"step {i} args must be an object")
        steps.append(
            PlanStep(
                description=str(raw.get("description") or tool),
                tool=tool.strip(),
                args=args,
                reason=str(raw.get("reason") or ""),
            )
        )

    risk_value: Optional[Any] = obj.get("estimatedRisk", obj.get("estimated_risk"))
    risk = RiskLevel(str(risk_value).lower()) if risk_value else RiskLevel.medium
    return ExecutionPlan(steps=steps, estimated_risk=risk)


def parse_plan(content: str, task_text: str) -> PlanParseResult:
    """
    Parse a planning reply.

    Args:
        content: Raw completion text.
        task_text: The task, used to build the fallback plan.

    Returns:
        ``ParsedPlan`` on success, ``FallbackPlan`` (with the parse error) otherwise.
    """
    try:
        plan = _to_plan(_load_object(content))
    except (ValueError, ValidationError) as e:
        logger.warning("Plan reply could not be parsed, using fallback plan: %s", e)
        return FallbackPlan(plan=fallback_plan(task_text), error=str(e))
    return ParsedPlan(plan=plan)
