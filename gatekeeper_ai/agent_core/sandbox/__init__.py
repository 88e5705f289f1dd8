"""Sandboxed execution of shell commands and file access.

- ``SandboxConfig``: path/command policy, network allow list and resource ceilings.
- ``SandboxedExecutor``: enforces the policy and returns uniform ``SandboxResult`` objects.
- ``SecurityScanner`` / ``PatternSecurityScanner``: pattern-based command and
  content scanning consulted before any command runs.
"""

from .executor import SandboxedExecutor
from .models import (
    DEFAULT_ALLOWED_COMMANDS,
    DEFAULT_ALLOWED_DOMAINS,
    DEFAULT_BLOCKED_COMMANDS,
    DEFAULT_BLOCKED_PATHS,
    ResourceUsage,
    SandboxConfig,
    SandboxResult,
)
from .scanner import (
    PatternSecurityScanner,
    SecurityFinding,
    SecurityScanner,
    blocking_findings,
)

__all__ = [
    "SandboxedExecutor",
    "SandboxConfig",
    "SandboxResult",
    "ResourceUsage",
    "DEFAULT_ALLOWED_COMMANDS",
    "DEFAULT_ALLOWED_DOMAINS",
    "DEFAULT_BLOCKED_COMMANDS",
    "DEFAULT_BLOCKED_PATHS",
    "PatternSecurityScanner",
    "SecurityFinding",
    "SecurityScanner",
    "blocking_findings",
]
