"""
Pattern-based security scanning for commands and written content.

The sandbox consults a ``SecurityScanner`` before running anything. Findings
of ``critical`` or ``high`` severity block a command; lower severities are
only reported.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Protocol, Sequence, Tuple

from ..schemas.domain import RiskLevel


@dataclass(frozen=True)
class SecurityFinding:
    """
    One matched pattern.

    Attributes:
        severity: How dangerous the match is.
        message: Human-readable description.
        pattern: Source of the regex that matched.
    """

    severity: RiskLevel
    message: str
    pattern: str


class SecurityScanner(Protocol):
    """Protocol for command/content scanners used by the sandbox."""

    def scan_command(self, command: str) -> List[SecurityFinding]: ...

    def scan_content(self, content: str) -> List[SecurityFinding]: ...


_Rule = Tuple[re.Pattern[str], RiskLevel, str]

COMMAND_PATTERNS: List[_Rule] = [
    # Filesystem destruction
    (re.compile(r"\brm\s+(-[rf]+\s+)*[/~]\*?(\s|$)"), RiskLevel.critical, "Recursive delete of root or home directory"),
    (re.compile(r"\brm\s+-[rf]*\s+-[rf]*\s+/"), RiskLevel.critical, "Recursive delete of root directory"),
    (re.compile(r"\brm\s+-[a-z]*r[a-z]*\b"), RiskLevel.medium, "Recursive delete"),
    # Remote code execution
    (re.compile(r"\b(curl|wget)\b.*\|\s*(ba|z)?sh\b"), RiskLevel.critical, "Remote code execution via download piped to shell"),
    (re.compile(r"\b(curl|wget)\b.*\|\s*python"), RiskLevel.critical, "Remote code execution via download piped to python"),
    # Fork bombs and resource exhaustion
    (re.compile(r":\s*\(\s*\)\s*\{.*\}"), RiskLevel.critical, "Fork bomb pattern"),
    (re.compile(r"\byes\s*\|"), RiskLevel.high, "Infinite output pipe"),
    # Direct disk access
    (re.compile(r">\s*/dev/(sd[a-z]|nvme|hd[a-z])"), RiskLevel.critical, "Direct disk write"),
    (re.compile(r"\bdd\b.*of=/dev/"), RiskLevel.critical, "Direct disk write via dd"),
    (re.compile(r"\bmkfs(\.\w+)?\b"), RiskLevel.critical, "Filesystem creation/destruction"),
    # Privilege escalation
    (re.compile(r"\bsudo\b"), RiskLevel.high, "Privilege escalation via sudo"),
    (re.compile(r"\bsu\s+-"), RiskLevel.high, "Privilege escalation via su"),
    (re.compile(r"\bchmod\s+(-R\s+)?[0-7]*777\s+/"), RiskLevel.high, "Dangerous permission change on root"),
    (re.compile(r"\bchown\s+-R\s+.*\s+/"), RiskLevel.high, "Recursive ownership change on root"),
    # System modification
    (re.compile(r"\bsystemctl\s+(stop|disable|mask)"), RiskLevel.high, "Service disruption"),
    (re.compile(r"\b(shutdown|reboot|halt|poweroff)\b"), RiskLevel.high, "System shutdown"),
    (re.compile(r"\bkillall\b|\bpkill\s+-9"), RiskLevel.medium, "Mass process termination"),
    # Network backdoors
    (re.compile(r"\b(nc|ncat|netcat)\s+.*-[a-z]*[le]"), RiskLevel.high, "Netcat listener or reverse shell"),
    (re.compile(r"/dev/tcp/"), RiskLevel.high, "Reverse shell via /dev/tcp"),
    (re.compile(r"\bssh\s+.*@"), RiskLevel.medium, "SSH connection"),
    # History / credential tampering
    (re.compile(r"\bhistory\s+-c\b"), RiskLevel.medium, "Shell history wipe"),
]

SECRET_PATTERNS: List[_Rule] = [
    (re.compile(r"sk-[A-Za-z0-9]{10,}"), RiskLevel.high, "Possible API secret key"),
    (re.compile(r"ghp_[A-Za-z0-9]{10,}"), RiskLevel.high, "Possible GitHub token"),
    (re.compile(r"xox[bp]-[A-Za-z0-9-]{10,}"), RiskLevel.high, "Possible Slack token"),
    (re.compile(r"AKIA[0-9A-Z]{16}"), RiskLevel.high, "Possible AWS access key id"),
    (re.compile(r"-----BEGIN (RSA |EC |OPENSSH )?PRIVATE KEY-----"), RiskLevel.critical, "Private key material"),
]


class PatternSecurityScanner:
    """Regex-driven ``SecurityScanner``.

    Command rules and content rules are separate lists so callers can extend
    either with ``add_command_pattern`` / ``add_content_pattern``.
    """

    def __init__(
        self,
        command_patterns: Sequence[_Rule] = COMMAND_PATTERNS,
        content_patterns: Sequence[_Rule] = SECRET_PATTERNS,
    ) -> None:
        self._command_patterns = list(command_patterns)
        self._content_patterns = list(content_patterns)

    def add_command_pattern(self, pattern: str, severity: RiskLevel, message: str) -> None:
        self._command_patterns.append((re.compile(pattern), severity, message))

    def add_content_pattern(self, pattern: str, severity: RiskLevel, message: str) -> None:
        self._content_patterns.append((re.compile(pattern), severity, message))

    def scan_command(self, command: str) -> List[SecurityFinding]:
        # Secrets on a command line are as much a problem as in a file
        return _scan(command, self._command_patterns) + _scan(command, self._content_patterns)

    def scan_content(self, content: str) -> List[SecurityFinding]:
        return _scan(content, self._content_patterns)


def _scan(text: str, rules: Sequence[_Rule]) -> List[SecurityFinding]:
    return [SecurityFinding(severity, message, pattern.pattern) for pattern, severity, message in rules if pattern.search(text)]


def blocking_findings(findings: Sequence[SecurityFinding]) -> List[SecurityFinding]:
    """Return the findings that must block execution (``critical`` or ``high``)."""
    return [f for f in findings if f.severity in (RiskLevel.critical, RiskLevel.high)]
