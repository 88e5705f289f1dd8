"""LangGraph runtime for the risk-gated execution pipeline."""

from .engine import DEFAULT_EXPLANATION, DENIED_ERROR, PhaseOrchestrator
from .models import OrchestratorDeps, PlanReviewer, ProposalSink
from .trace import TraceRecorder

__all__ = [
    "DEFAULT_EXPLANATION",
    "DENIED_ERROR",
    "OrchestratorDeps",
    "PhaseOrchestrator",
    "PlanReviewer",
    "ProposalSink",
    "TraceRecorder",
]
