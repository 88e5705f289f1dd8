from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from pydantic import ConfigDict, Field

from ..schemas.base import BaseSchema
from ..schemas.domain import OperationType, Preference


class ApprovalOutcome(str, Enum):
    """
    Result of evaluating the approval policy for one operation.

    Attributes:
        approve: Proceed without asking.
        deny: Block without asking (remembered "never").
        ask: Create an approval request and ask the operator.
    """

    approve = "approve"
    deny = "deny"
    ask = "ask"


class ApprovalPolicy(BaseSchema):
    """
    Configuration for human-in-the-loop approval gates.

    Lives for the whole process and is mutated by ``ApprovalEngine`` when the
    operator answers "always"/"never", or through ``configure_policy``.
    """

    model_config = ConfigDict(validate_assignment=True)

    auto_approve_low_risk: bool = Field(default=True, description="Approve low-risk operations silently.")
    auto_approve_medium_risk: bool = Field(default=False, description="Approve medium-risk operations silently.")
    confirm_high_risk: bool = Field(
        default=True, description="When False, high-risk operations proceed without confirmation."
    )
    confirm_critical_risk: bool = Field(
        default=True, description="When False, critical-risk operations proceed without confirmation."
    )
    remember_preferences: bool = Field(
        default=True, description="Persist 'always'/'never' answers per operation type for the process lifetime."
    )
    preferences: Dict[OperationType, Preference] = Field(
        default_factory=dict,
        description="Remembered per-operation-type preferences (always/never/ask).",
    )


@dataclass(frozen=True)
class ApprovalDecision:
    """
    Result of an approval evaluation.

    Attributes:
        outcome: approve / deny / ask.
        rule: Name of the rule that decided (for logging and status output).
    """

    outcome: ApprovalOutcome
    rule: str
