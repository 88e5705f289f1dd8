from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module contains small helpers to build the default tool registry, an
``PhaseOrchestrator`` from its collaborators, and a fully wired
``AgentService`` from ``Settings``.

The intent is to keep application wiring and tests concise, while still
allowing advanced deployments to provide their own registry, approval UI,
completion service and repositories.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from ..core.config import Settings
from ..core.config import settings as default_settings
from ..core.logging_config import setup_logging
from .approvals.engine import ApprovalEngine
from .approvals.ui import ApprovalUI
from .audit import AuditLogger
from .checkpoints.manager import CheckpointManager
from .checkpoints.snapshot import WorkspaceSnapshotter
from .completion.base import CompletionService, NullCompletionService
from .completion.pydantic_ai import PydanticAICompletionService
from .planning.planner import Planner
from .policy.models import ApprovalPolicy
from .repos.sql import build_sql_repos, create_all, create_engine, create_sessionmaker
from .runtime import OrchestratorDeps
from .runtime.engine import PhaseOrchestrator
from .sandbox.executor import SandboxedExecutor
from .sandbox.models import SandboxConfig
from .service import AgentService
from .tools.builtin import builtin_tools
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_default_tool_registry() -> ToolRegistry:
    """Build the default ``ToolRegistry``.

    The default registry includes the built-in tools shipped with the
    repository (file read/write/search, shell execution, git operations).
    """
    return ToolRegistry(builtin_tools())


def build_orchestrator(
    *,
    completion: CompletionService,
    approvals: ApprovalEngine,
    sandbox: SandboxedExecutor,
    tools: Optional[ToolRegistry] = None,
    checkpoints: Optional[CheckpointManager] = None,
    audit: Optional[AuditLogger] = None,
    **options: Any,
) -> PhaseOrchestrator:
    """Construct a ``PhaseOrchestrator``.

    ``options`` are passed through to ``OrchestratorDeps`` (``proposal_sink``,
    ``plan_reviewer``, ``max_refinements``, ``working_dir``).
    """
    registry = tools or build_default_tool_registry()
    deps = OrchestratorDeps(
        planner=Planner(completion, registry),
        tools=registry,
        approvals=approvals,
        sandbox=sandbox,
        checkpoints=checkpoints,
        audit=audit,
        completion=completion,
        **options,
    )
    return PhaseOrchestrator(deps=deps)


def build_completion_service(model: Optional[str]) -> CompletionService:
    """``PydanticAICompletionService`` for ``model``, or ``NullCompletionService`` when unset."""
    if not model:
        logger.warning("No completion model configured; planning will fail until one is set")
        return NullCompletionService()
    return PydanticAICompletionService(model)


async def build_service_from_settings(
    settings: Optional[Settings] = None,
    *,
    ui: Optional[ApprovalUI] = None,
    completion: Optional[CompletionService] = None,
    tools: Optional[ToolRegistry] = None,
    **options: Any,
) -> AgentService:
    """Wire an ``AgentService`` from ``Settings``.

    Configures logging, opens the database (creating tables), and builds the
    sandbox, approval engine, checkpoint manager and audit logger.
    """
    cfg = settings or default_settings
    setup_logging(cfg.log_level)

    root = Path(cfg.project_root).expanduser().resolve()
    sandbox_cfg = cfg.sandbox
    sandbox = SandboxedExecutor(
        SandboxConfig(
            enabled=sandbox_cfg.enabled,
            max_cpu_time_s=sandbox_cfg.max_cpu_time_s,
            max_file_size_mb=sandbox_cfg.max_file_size_mb,
            allow_network=sandbox_cfg.allow_network,
        ),
        project_root=root,
    )

    approval_cfg = cfg.approval
    approvals = ApprovalEngine(
        ApprovalPolicy(
            auto_approve_low_risk=approval_cfg.auto_approve_low_risk,
            auto_approve_medium_risk=approval_cfg.auto_approve_medium_risk,
            confirm_high_risk=approval_cfg.confirm_high_risk,
        ),
        ui=ui,
    )

    db_engine = create_engine(cfg.database_url)
    await create_all(db_engine)
    repos = build_sql_repos(session_factory=create_sessionmaker(db_engine))
    checkpoints = CheckpointManager(repos.checkpoints, snapshotter=WorkspaceSnapshotter(root))
    audit = AuditLogger(repos.audit_log)

    options.setdefault("max_refinements", cfg.max_refinements)
    orchestrator = build_orchestrator(
        completion=completion or build_completion_service(cfg.model),
        approvals=approvals,
        sandbox=sandbox,
        tools=tools,
        checkpoints=checkpoints,
        audit=audit,
        working_dir=root,
        **options,
    )
    logger.info("Agent service ready (project root %s, sandbox %s)", root, "on" if sandbox_cfg.enabled else "off")
    return AgentService(
        orchestrator=orchestrator,
        checkpoints=checkpoints,
        approvals=approvals,
        audit=audit,
        db_engine=db_engine,
    )
