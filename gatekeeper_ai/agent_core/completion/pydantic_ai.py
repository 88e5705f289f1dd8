from __future__ import annotations

"""Pydantic AI backed completion service."""

import logging
from typing import Any, Dict, Sequence

from pydantic_ai import Agent

from .base import ChatMessage, CompletionResponse, transcript

logger = logging.getLogger(__name__)


def _provider_of(model: Any) -> str:
    if isinstance(model, str):
        return model.split(":", 1)[0] if ":" in model else model
    return str(getattr(model, "system", None) or type(model).__name__)


def _model_name_of(model: Any) -> str:
    if isinstance(model, str):
        return model.split(":", 1)[-1]
    return str(getattr(model, "model_name", "") or "")


def _usage_dict(usage: Any) -> Dict[str, int]:
    if usage is None:
        return {}
    inp = getattr(usage, "input_tokens", None)
    if inp is None:
        inp = getattr(usage, "request_tokens", None)
    out = getattr(usage, "output_tokens", None)
    if out is None:
        out = getattr(usage, "response_tokens", None)
    total = getattr(usage, "total_tokens", None)
    result = {"input_tokens": inp, "output_tokens": out, "total_tokens": total}
    return {k: int(v) for k, v in result.items() if v is not None}


class PydanticAICompletionService:
    """``CompletionService`` backed by a ``pydantic_ai.Agent`` with plain-text output.

    System messages become the agent's system prompt. A single user message is
    sent as-is; longer transcripts are flattened to ``role: content`` lines.
    """

    def __init__(self, model: Any) -> None:
        """
        Args:
            model: A pydantic-ai model instance or model name such as ``"openai:gpt-4o"``.
        """
        self._model = model

    async def chat(self, messages: Sequence[ChatMessage]) -> CompletionResponse:
        system = [m.content for m in messages if m.role == "system"]
        convo = transcript(messages)
        if len(convo) == 1:
            prompt = convo[0].content
        else:
            prompt = "\n\n".join(f"{m.role}: {m.content}" for m in convo)

        agent: Agent = Agent(self._model, system_prompt=system)
        result = await agent.run(prompt)
        # A property on current releases, a method on older ones
        run_usage = result.usage() if callable(result.usage) else result.usage
        usage = _usage_dict(run_usage)
        logger.debug("Completion from %s used %s", _provider_of(self._model), usage)
        return CompletionResponse(
            content=str(result.output),
            provider=_provider_of(self._model),
            model=_model_name_of(self._model),
            usage=usage,
        )
