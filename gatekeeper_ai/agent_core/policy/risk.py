from __future__ import annotations

"""Risk classification.

Pure functions mapping an operation (its type plus a free-text description,
command line or arguments) to a ``RiskLevel``. The result depends only on the
inputs: no I/O, no policy state.

Classification
--------------

1. A baseline per ``OperationType`` (reads are low, deletes and shell are high).
2. Escalation when the text mentions critical or high-risk keywords.
3. Never below a level explicitly declared by the caller (e.g. the planner's
   estimate or a tool's static risk).
"""

import re
from typing import Iterable, Optional

from ..schemas.domain import OperationType, RiskLevel

_RISK_ORDER = {RiskLevel.low: 0, RiskLevel.medium: 1, RiskLevel.high: 2, RiskLevel.critical: 3}

_OPERATION_ORDER = {
    OperationType.read: 0,
    OperationType.network: 1,
    OperationType.file_write: 2,
    OperationType.git_mutation: 3,
    OperationType.shell: 4,
    OperationType.delete: 5,
}

_BASELINE = {
    OperationType.read: RiskLevel.low,
    OperationType.network: RiskLevel.medium,
    OperationType.file_write: RiskLevel.medium,
    OperationType.git_mutation: RiskLevel.medium,
    OperationType.shell: RiskLevel.high,
    OperationType.delete: RiskLevel.high,
}

_CRITICAL_PATTERNS = (
    re.compile(r"\brm\s+-[a-z]*r[a-z]*f|\brm\s+-[a-z]*f[a-z]*r", re.IGNORECASE),
    re.compile(r"\bsudo\b", re.IGNORECASE),
    re.compile(r"\bdrop\s+(database|table|schema)\b", re.IGNORECASE),
    re.compile(r"\bmkfs\b|\bdd\s+if=", re.IGNORECASE),
    re.compile(r"\bforce[- ]push\b|push\s+(-f|--force)\b", re.IGNORECASE),
    re.compile(r"\bproduction\b|\bprod\b", re.IGNORECASE),
)

_HIGH_PATTERNS = (
    re.compile(r"\b(delete|remove|destroy|wipe|truncate)\b", re.IGNORECASE),
    re.compile(r"\b(deploy|migrat(e|ion)|release)\b", re.IGNORECASE),
    re.compile(r"\b(secret|password|credential|api[-_ ]?key|token)s?\b", re.IGNORECASE),
    re.compile(r"\bchmod\b|\bchown\b", re.IGNORECASE),
)


def risk_rank(risk: RiskLevel) -> int:
    """Return the position of ``risk`` in the total order low < medium < high < critical."""
    return _RISK_ORDER[risk]


def risk_at_least(a: RiskLevel, b: RiskLevel) -> bool:
    """Check if risk level ``a`` is greater than or equal to ``b``."""
    return _RISK_ORDER[a] >= _RISK_ORDER[b]


def max_risk(a: RiskLevel, b: RiskLevel) -> RiskLevel:
    return a if risk_at_least(a, b) else b


def aggregate_risk(levels: Iterable[RiskLevel]) -> RiskLevel:
    """Aggregate risk of a set of operations: the highest level, ``low`` when empty."""
    result = RiskLevel.low
    for level in levels:
        result = max_risk(result, level)
    return result


def keyword_risk(text: str) -> RiskLevel:
    """Risk implied by keywords in ``text`` alone (``low`` when nothing matches)."""
    if any(p.search(text) for p in _CRITICAL_PATTERNS):
        return RiskLevel.critical
    if any(p.search(text) for p in _HIGH_PATTERNS):
        return RiskLevel.high
    return RiskLevel.low


def classify_operation(
    operation_type: OperationType,
    *,
    text: str = "",
    declared: Optional[RiskLevel] = None,
) -> RiskLevel:
    """
    Classify the risk of a single operation.

    Args:
        operation_type: Kind of side effect the operation has.
        text: Description, command line or serialized arguments to scan for
            risk keywords. Keyword escalation does not apply to reads.
        declared: A risk level asserted elsewhere; the result never falls below it.

    Returns:
        The classified ``RiskLevel``.
    """
    risk = _BASELINE[operation_type]
    if text and operation_type != OperationType.read:
        risk = max_risk(risk, keyword_risk(text))
    if declared is not None:
        risk = max_risk(risk, declared)
    return risk


def dominant_operation_type(types: Iterable[OperationType]) -> OperationType:
    """Return the most dangerous operation type in ``types`` (``read`` when empty)."""
    result = OperationType.read
    for t in types:
        if _OPERATION_ORDER[t] > _OPERATION_ORDER[result]:
            result = t
    return result
