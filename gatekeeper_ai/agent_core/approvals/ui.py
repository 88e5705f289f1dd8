from __future__ import annotations

"""Operator-facing side of the approval engine.

``ApprovalUI`` is the narrow interface the engine talks to: show some text,
ask a question, get the answer back. ``ConsoleApprovalUI`` implements it on
stdin/stdout; tests and embedding hosts provide their own.

The rendering helpers are plain functions returning strings so they can be
reused by any UI implementation.
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable, List, Protocol

from ..schemas.domain import RiskLevel

_BANNER_ICONS = {
    RiskLevel.low: "[ok]",
    RiskLevel.medium: "[!]",
    RiskLevel.high: "[!!]",
    RiskLevel.critical: "[!!!]",
}

OPTIONS_TEXT = """
  Options:
    [y] Yes, proceed
    [n] No, cancel
    [d] Yes, always for this type
    [N] No, never for this type
    [v] View options
    [c] Cancel request
    [?] Show help
    [q] Quit
"""


@dataclass(frozen=True)
class FileChange:
    """A pending modification of one file, shown as a diff before approval."""

    path: str
    old_content: str
    new_content: str


class ApprovalUI(Protocol):
    """Protocol for the interactive approval channel."""

    def display(self, text: str) -> None:
        """Show ``text`` to the operator."""
        ...

    async def ask(self, question: str) -> str:
        """Ask ``question`` and return the operator's answer with surrounding whitespace removed.

        May wait indefinitely.
        """
        ...


class ConsoleApprovalUI:
    """``ApprovalUI`` on the process's stdin/stdout.

    ``input`` runs in a worker thread so the event loop stays responsive while
    the operator thinks.
    """

    def display(self, text: str) -> None:
        print(text)

    async def ask(self, question: str) -> str:
        try:
            answer = await asyncio.to_thread(input, question)
        except EOFError:
            # Closed stdin is treated as an empty answer (declines a [y/N] question)
            return ""
        return answer.strip()


def render_banner(risk: RiskLevel) -> str:
    header = f"{_BANNER_ICONS[risk]} {risk.value.upper()} RISK OPERATION"
    return f"\n{header}\n{'-' * 50}"


def render_operations(operations: Iterable[str]) -> str:
    lines = [f"  {i}. {op}" for i, op in enumerate(operations, start=1)]
    if not lines:
        return ""
    return "  Operations:\n" + "\n".join(lines)


def help_text(risk: RiskLevel) -> str:
    if risk == RiskLevel.low:
        kind, auto = "Read-only or safe operations", "Enabled"
    elif risk == RiskLevel.medium:
        kind, auto = "File modifications", "Disabled"
    else:
        kind, auto = "Shell commands, deployments, or deletions", "Never"
    lines = [
        f"  Risk Assessment for {risk.value.upper()} operations:",
        f"  - {kind}",
        f"  - Auto-approve: {auto}",
    ]
    if risk == RiskLevel.critical:
        lines.append("  - This operation could affect production systems!")
    return "\n" + "\n".join(lines) + "\n"


def render_line_diff(path: str, old_content: str, new_content: str) -> str:
    """Render a positional line-by-line diff of one file.

    Lines are compared by index: equal lines are shown as context, differing
    positions show the old line (``-``) followed by the new one (``+``).
    """
    old_lines = old_content.split("\n")
    new_lines = new_content.split("\n")
    out: List[str] = [f"--- Diff: {path} ---"]
    for i in range(max(len(old_lines), len(new_lines))):
        old = old_lines[i] if i < len(old_lines) else None
        new = new_lines[i] if i < len(new_lines) else None
        num = str(i + 1).rjust(3)
        if old == new:
            out.append(f"    {num} | {old}")
            continue
        if old is not None:
            out.append(f"   -{num} | {old}")
        if new is not None:
            out.append(f"   +{num} | {new}")
    return "\n".join(out) + "\n"
