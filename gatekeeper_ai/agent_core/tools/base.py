from __future__ import annotations

"""Tool definitions and execution data models.

A tool is the unit of work a plan step names. The orchestrator resolves
``PlanStep.tool`` through a ``ToolRegistry`` and calls the tool's handler with
the step's args and a ``ToolContext``.

Handlers should:

- reach the shell and the filesystem only through ``ctx.sandbox``,
- report failures in the returned ``ToolResult`` instead of raising,
- leave approval decisions to the orchestrator (the plan was approved as a whole).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

from ..schemas.domain import OperationType, RiskLevel

if TYPE_CHECKING:
    from ..sandbox.executor import SandboxedExecutor
    from ..sandbox.models import SandboxResult


@dataclass(frozen=True)
class ToolContext:
    """Execution context passed to tool handlers.

    Attributes
    ----------
    working_dir:
        Directory relative paths resolve against (the project root).
    session_id:
        Session of the current run.
    sandbox:
        The ``SandboxedExecutor`` every side effect must go through.
    dry_run:
        When True, handlers report what they would do.
    """

    working_dir: Path
    session_id: str
    sandbox: "SandboxedExecutor"
    dry_run: bool = False


@dataclass(frozen=True)
class ToolResult:
    """Structured tool execution result. ``denied`` marks sandbox policy rejections."""

    success: bool
    output: str = ""
    error: Optional[str] = None
    files_changed: List[str] = field(default_factory=list)
    duration_ms: float = 0.0
    denied: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_sandbox(cls, result: "SandboxResult", *, files_changed: Optional[List[str]] = None) -> "ToolResult":
        return cls(
            success=result.success,
            output=result.output,
            error=result.error,
            files_changed=list(files_changed or []) if result.success else [],
            duration_ms=result.duration_ms,
            denied=result.denied,
        )

    @classmethod
    def failure(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)


ToolHandler = Callable[[Dict[str, Any], ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """Static description of a tool plus its handler."""

    name: str
    description: str
    handler: ToolHandler
    risk_level: RiskLevel = RiskLevel.low
    operation_type: OperationType = OperationType.read
    requires_approval: bool = False
    category: str = "general"
    schema: Dict[str, Any] = field(default_factory=dict)
