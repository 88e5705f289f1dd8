from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Sequence

import pytest

from gatekeeper_ai.agent_core import AgentService, ApprovalMode, FailureReason, Task
from gatekeeper_ai.agent_core.approvals import ApprovalEngine
from gatekeeper_ai.agent_core.completion import (
    ChatMessage,
    CompletionResponse,
    NullCompletionService,
    PydanticAICompletionService,
)
from gatekeeper_ai.agent_core.errors import CheckpointFailure
from gatekeeper_ai.agent_core.factory import (
    build_completion_service,
    build_orchestrator,
    build_service_from_settings,
)
from gatekeeper_ai.agent_core.sandbox import SandboxedExecutor
from gatekeeper_ai.core.config import Settings


class _ScriptedCompletion:
    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)

    async def chat(self, messages: Sequence[ChatMessage]) -> CompletionResponse:
        return CompletionResponse(content=self.replies.pop(0) if self.replies else "", provider="fake")


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers: List[logging.Handler] = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / "notes.txt").write_text("original\n")
    return root


@pytest.fixture
def settings(tmp_path: Path, project: Path) -> Settings:
    return Settings(
        project_root=str(project),
        database_url=f"sqlite+aiosqlite:///{tmp_path}/state/gatekeeper.db",
        log_level="WARNING",
    )


def _write_plan(content: str) -> str:
    step = {"description": "rewrite notes", "tool": "file_write", "args": {"path": "notes.txt", "content": content}}
    return json.dumps({"steps": [step], "estimatedRisk": "medium"})


def test_build_completion_service() -> None:
    assert isinstance(build_completion_service(None), NullCompletionService)
    assert isinstance(build_completion_service("test"), PydanticAICompletionService)


@pytest.mark.asyncio
async def test_service_from_settings_runs_audits_and_undoes(settings: Settings, project: Path, scripted_ui) -> None:
    ui = scripted_ui("y")
    service = await build_service_from_settings(
        settings, ui=ui, completion=_ScriptedCompletion(_write_plan("changed\n"), "Rewrote the notes.")
    )
    try:
        result = await service.run(Task(task="rewrite notes"), session_id="s1")

        assert result.success is True
        assert (project / "notes.txt").read_text() == "changed\n"
        assert len(ui.questions) == 1
        assert service.approval_status().approved == 1

        logs = await service.audit_logs("s1")
        assert [e.action for e in logs] == [s.action for s in result.steps]

        (checkpoint,) = await service.list_checkpoints("s1")
        assert checkpoint.id == result.checkpoint_id

        assert await service.undo("s1") == checkpoint.id
        assert (project / "notes.txt").read_text() == "original\n"
    finally:
        await service.aclose()


@pytest.mark.asyncio
async def test_undo_without_checkpoint_raises(settings: Settings, scripted_ui) -> None:
    service = await build_service_from_settings(settings, ui=scripted_ui(), completion=_ScriptedCompletion())
    try:
        with pytest.raises(CheckpointFailure):
            await service.undo("nobody")
        with pytest.raises(CheckpointFailure):
            await service.undo("nobody", "missing-id")
    finally:
        await service.aclose()


@pytest.mark.asyncio
async def test_service_without_persistence(project: Path, scripted_ui) -> None:
    orchestrator = build_orchestrator(
        completion=_ScriptedCompletion(_write_plan("x"), ""),
        approvals=ApprovalEngine(ui=scripted_ui()),
        sandbox=SandboxedExecutor(project_root=project),
    )
    service = AgentService(orchestrator=orchestrator)

    result = await service.run(Task(task="rewrite", approval_mode=ApprovalMode.never))

    assert result.reason == FailureReason.approval_denied
    assert await service.list_checkpoints() == []
    assert await service.audit_logs() == []
    with pytest.raises(CheckpointFailure):
        await service.undo("s1")
    await service.aclose()
