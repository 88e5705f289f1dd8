"""Risk classification and approval policy.

The policy layer answers two questions for the pipeline:

- *How dangerous is this?* ``risk.classify_operation`` and friends are pure
  functions over the operation type and its text.
- *Who has to agree?* ``ApprovalPolicy`` holds the auto-approve flags and the
  remembered per-operation-type preferences consulted by
  ``approvals.ApprovalEngine``.
"""

from .models import ApprovalDecision, ApprovalOutcome, ApprovalPolicy
from .risk import (
    aggregate_risk,
    classify_operation,
    dominant_operation_type,
    keyword_risk,
    max_risk,
    risk_at_least,
    risk_rank,
)

__all__ = [
    "ApprovalDecision",
    "ApprovalOutcome",
    "ApprovalPolicy",
    "aggregate_risk",
    "classify_operation",
    "dominant_operation_type",
    "keyword_risk",
    "max_risk",
    "risk_at_least",
    "risk_rank",
]
