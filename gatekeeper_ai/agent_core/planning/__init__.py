"""Planning: turning a task into an ``ExecutionPlan``."""

from .parser import FALLBACK_REASON, FALLBACK_TOOL, FallbackPlan, ParsedPlan, PlanParseResult, fallback_plan, parse_plan
from .planner import Planner, format_plan

__all__ = [
    "FALLBACK_REASON",
    "FALLBACK_TOOL",
    "FallbackPlan",
    "ParsedPlan",
    "PlanParseResult",
    "Planner",
    "fallback_plan",
    "format_plan",
    "parse_plan",
]
