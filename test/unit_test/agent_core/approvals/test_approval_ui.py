from __future__ import annotations

import builtins

import pytest

from gatekeeper_ai.agent_core.approvals import (
    ConsoleApprovalUI,
    help_text,
    render_banner,
    render_line_diff,
    render_operations,
)
from gatekeeper_ai.agent_core.schemas.domain import RiskLevel


def test_render_banner_names_the_risk() -> None:
    assert "HIGH RISK OPERATION" in render_banner(RiskLevel.high)
    assert "[!!!]" in render_banner(RiskLevel.critical)


def test_render_operations_numbers_items() -> None:
    assert render_operations(["a", "b"]) == "  Operations:\n  1. a\n  2. b"
    assert render_operations([]) == ""


def test_help_text_flags_production_for_critical() -> None:
    assert "production" in help_text(RiskLevel.critical)
    assert "production" not in help_text(RiskLevel.high)
    assert "Auto-approve: Enabled" in help_text(RiskLevel.low)


def test_render_line_diff_is_positional() -> None:
    out = render_line_diff("f.txt", "a\nb\nc", "a\nB")

    assert out.splitlines() == [
        "--- Diff: f.txt ---",
        "      1 | a",
        "   -  2 | b",
        "   +  2 | B",
        "   -  3 | c",
    ]


@pytest.mark.asyncio
async def test_console_ui_reads_input_in_thread(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(builtins, "input", lambda prompt="": "  yes  ")

    assert await ConsoleApprovalUI().ask("Proceed? ") == "yes"


@pytest.mark.asyncio
async def test_console_ui_treats_eof_as_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    def _eof(prompt: str = "") -> str:
        raise EOFError

    monkeypatch.setattr(builtins, "input", _eof)

    assert await ConsoleApprovalUI().ask("Proceed? ") == ""
