from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gatekeeper_ai.agent_core.approvals import ApprovalEngine, FileChange
from gatekeeper_ai.agent_core.policy import ApprovalOutcome, ApprovalPolicy
from gatekeeper_ai.agent_core.schemas.domain import (
    ApprovalStatus,
    OperationType,
    Preference,
    RiskLevel,
)


def _engine(ui, **policy) -> ApprovalEngine:
    return ApprovalEngine(ApprovalPolicy(**policy), ui=ui)


@pytest.mark.parametrize(
    "risk,expected",
    [
        (RiskLevel.low, ApprovalOutcome.approve),
        (RiskLevel.medium, ApprovalOutcome.ask),
        (RiskLevel.high, ApprovalOutcome.ask),
        (RiskLevel.critical, ApprovalOutcome.ask),
    ],
)
def test_evaluate_default_policy(scripted_ui, risk: RiskLevel, expected: ApprovalOutcome) -> None:
    engine = _engine(scripted_ui())
    assert engine.evaluate(OperationType.shell, risk).outcome == expected


def test_evaluate_order_global_switch_beats_preference(scripted_ui) -> None:
    engine = _engine(scripted_ui())
    engine.set_preference(OperationType.shell, Preference.never)
    engine.set_auto_approve(True)

    decision = engine.evaluate(OperationType.shell, RiskLevel.critical)

    assert decision.outcome == ApprovalOutcome.approve
    assert decision.rule == "auto_approve"


def test_evaluate_preference_beats_risk_flags(scripted_ui) -> None:
    engine = _engine(scripted_ui())
    engine.set_preference(OperationType.read, Preference.never)
    engine.set_preference(OperationType.delete, Preference.always)

    assert engine.evaluate(OperationType.read, RiskLevel.low).rule == "preference_never"
    assert engine.evaluate(OperationType.delete, RiskLevel.critical).rule == "preference_always"


def test_evaluate_ask_preference_falls_through(scripted_ui) -> None:
    engine = _engine(scripted_ui())
    engine.set_preference(OperationType.read, Preference.ask)

    assert engine.evaluate(OperationType.read, RiskLevel.low).rule == "auto_approve_low_risk"


def test_evaluate_confirmation_overrides(scripted_ui) -> None:
    engine = _engine(scripted_ui(), auto_approve_medium_risk=True, confirm_high_risk=False, confirm_critical_risk=False)

    assert engine.evaluate(OperationType.file_write, RiskLevel.medium).rule == "auto_approve_medium_risk"
    assert engine.evaluate(OperationType.shell, RiskLevel.high).rule == "confirm_high_risk_disabled"
    assert engine.evaluate(OperationType.shell, RiskLevel.critical).rule == "confirm_critical_risk_disabled"


@pytest.mark.asyncio
async def test_policy_approval_creates_no_request_and_counts_auto(scripted_ui) -> None:
    ui = scripted_ui()
    engine = _engine(ui)

    assert await engine.request("read file", ["file_read: a.txt"], RiskLevel.low, OperationType.read) is True

    assert engine.list_requests() == []
    assert engine.get_status().auto_approved == 1
    assert ui.questions == []


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["y", "yes", "Y", "YES"])
async def test_prompt_approves(scripted_ui, answer: str) -> None:
    engine = _engine(scripted_ui(answer))

    assert await engine.request("write", ["file_write: a"], RiskLevel.medium) is True

    (req,) = engine.list_requests()
    assert req.status == ApprovalStatus.approved
    assert engine.get_status().approved == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["n", "no", "c", "cancel", "q", "quit"])
async def test_prompt_denies(scripted_ui, answer: str) -> None:
    engine = _engine(scripted_ui(answer))

    assert await engine.request("write", ["file_write: a"], RiskLevel.medium) is False

    (req,) = engine.list_requests()
    assert req.status == ApprovalStatus.denied


@pytest.mark.asyncio
async def test_d_approves_and_remembers_always(scripted_ui) -> None:
    ui = scripted_ui("d")
    engine = _engine(ui)

    assert await engine.request("run", ["shell_exec: ls"], RiskLevel.high, OperationType.shell) is True
    assert engine.policy.preferences[OperationType.shell] == Preference.always

    # Next shell request is approved without asking
    assert await engine.request("run again", ["shell_exec: ls"], RiskLevel.high, OperationType.shell) is True
    assert len(ui.questions) == 1
    assert len(engine.list_requests()) == 1


@pytest.mark.asyncio
async def test_capital_n_denies_and_remembers_never(scripted_ui) -> None:
    ui = scripted_ui("N")
    engine = _engine(ui)

    assert await engine.request("delete", ["file_delete: a"], RiskLevel.high, OperationType.delete) is False
    assert engine.policy.preferences[OperationType.delete] == Preference.never

    assert await engine.request("delete", ["file_delete: b"], RiskLevel.low, OperationType.delete) is False
    assert len(ui.questions) == 1


@pytest.mark.asyncio
async def test_preferences_not_remembered_when_disabled(scripted_ui) -> None:
    engine = _engine(scripted_ui("d"), remember_preferences=False)

    assert await engine.request("run", [], RiskLevel.high, OperationType.shell) is True
    assert engine.policy.preferences == {}


@pytest.mark.asyncio
async def test_view_help_and_invalid_answers_reprompt(scripted_ui) -> None:
    ui = scripted_ui("v", "?", "maybe", "y")
    engine = _engine(ui)

    assert await engine.request("write", ["file_write: a"], RiskLevel.critical) is True

    assert len(ui.questions) == 4
    assert "[d] Yes, always for this type" in ui.transcript
    assert "Risk Assessment for CRITICAL operations" in ui.transcript
    assert "Invalid option. Type ? for help." in ui.transcript
    assert "CRITICAL RISK OPERATION" in ui.transcript


@pytest.mark.asyncio
async def test_request_with_diff_renders_changes(scripted_ui) -> None:
    ui = scripted_ui("y")
    engine = _engine(ui)

    ok = await engine.request_with_diff(
        "Update greeting",
        [FileChange("hello.txt", "hi\nthere", "hello\nthere")],
        RiskLevel.medium,
    )

    assert ok is True
    assert ui.questions == ["  Apply these changes? [y/N] "]
    assert "--- Diff: hello.txt ---" in ui.transcript
    (req,) = engine.list_requests()
    assert req.operations == ["Modify: hello.txt"]


@pytest.mark.asyncio
async def test_request_with_diff_empty_answer_declines(scripted_ui) -> None:
    engine = _engine(scripted_ui(""))

    assert await engine.request_with_diff("x", [FileChange("a", "1", "2")], RiskLevel.high) is False


@pytest.mark.asyncio
async def test_request_with_diff_respects_policy(scripted_ui) -> None:
    ui = scripted_ui()
    engine = _engine(ui)

    assert await engine.request_with_diff("x", [FileChange("a", "1", "2")], RiskLevel.low) is True
    assert ui.displayed == []


@pytest.mark.asyncio
async def test_convenience_wrappers_use_operation_types(scripted_ui) -> None:
    engine = _engine(scripted_ui("y", "y", "y"))

    await engine.request_shell("make test", cwd="/tmp")
    await engine.request_git("commit", ["-m fix"])
    await engine.request_delete(["a.txt", "b.txt"])

    shell, git, delete = engine.list_requests()
    assert (shell.operation_type, shell.risk) == (OperationType.shell, RiskLevel.high)
    assert shell.operations == ["Run: make test", "In: /tmp"]
    assert (git.operation_type, git.risk) == (OperationType.git_mutation, RiskLevel.medium)
    assert (delete.operation_type, delete.description) == (OperationType.delete, "Delete 2 file(s)")


def test_configure_policy_validates_fields(scripted_ui) -> None:
    engine = _engine(scripted_ui())

    engine.configure_policy(auto_approve_medium_risk=True)
    assert engine.policy.auto_approve_medium_risk is True

    with pytest.raises(ValueError):
        engine.configure_policy(no_such_flag=True)


@pytest.mark.asyncio
async def test_cleanup_removes_expired_requests_of_any_status(scripted_ui) -> None:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    engine = ApprovalEngine(ui=scripted_ui("y"), clock=lambda: now)
    await engine.request("write", [], RiskLevel.medium)

    assert engine.cleanup(now + timedelta(minutes=4)) == 0
    assert engine.cleanup(now + timedelta(minutes=6)) == 1
    assert engine.list_requests() == []


def test_format_pending_when_empty(scripted_ui) -> None:
    assert _engine(scripted_ui()).format_pending() == "No pending approvals."
