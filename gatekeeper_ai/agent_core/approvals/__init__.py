"""Human-in-the-loop approvals.

- ``ApprovalEngine``: policy evaluation, approval requests and the interactive
  y/n/d/N protocol.
- ``ApprovalUI`` / ``ConsoleApprovalUI``: the channel to the operator.
- ``FileChange`` and the ``render_*`` helpers: prompt rendering.
"""

from .engine import ApprovalEngine, ApprovalStatusSummary
from .ui import (
    OPTIONS_TEXT,
    ApprovalUI,
    ConsoleApprovalUI,
    FileChange,
    help_text,
    render_banner,
    render_line_diff,
    render_operations,
)

__all__ = [
    "ApprovalEngine",
    "ApprovalStatusSummary",
    "ApprovalUI",
    "ConsoleApprovalUI",
    "FileChange",
    "OPTIONS_TEXT",
    "help_text",
    "render_banner",
    "render_line_diff",
    "render_operations",
]
