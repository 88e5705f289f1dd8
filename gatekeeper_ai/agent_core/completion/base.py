from __future__ import annotations

"""Completion service contract.

The pipeline makes exactly two kinds of model calls: one to turn a task into a
plan and one to explain the outcome. Both go through ``CompletionService``.
Replies are untrusted text; parsing and validation happen in the caller.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Sequence

NULL_PROVIDER = "none"


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass(frozen=True)
class CompletionResponse:
    """
    A model reply.

    Attributes:
        content: Raw reply text.
        provider: Provider that produced it; ``"none"`` means no model is configured.
        model: Model name, when known.
        usage: Token counts (``input_tokens``, ``output_tokens``, ``total_tokens``) when reported.
    """

    content: str
    provider: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)


class CompletionService(Protocol):
    """Protocol for chat-style completion backends."""

    async def chat(self, messages: Sequence[ChatMessage]) -> CompletionResponse: ...


class NullCompletionService:
    """Stand-in used when no model is configured.

    Replies with provider ``"none"``, which the planner treats as a planning
    failure and the explain phase replaces with its canned summary.
    """

    async def chat(self, messages: Sequence[ChatMessage]) -> CompletionResponse:
        return CompletionResponse(content="", provider=NULL_PROVIDER)


def transcript(messages: Sequence[ChatMessage]) -> List[ChatMessage]:
    """Return the non-system messages in order."""
    return [m for m in messages if m.role != "system"]
