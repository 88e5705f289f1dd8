"""Completion services used for planning and explanation."""

from .base import NULL_PROVIDER, ChatMessage, CompletionResponse, CompletionService, NullCompletionService
from .pydantic_ai import PydanticAICompletionService

__all__ = [
    "NULL_PROVIDER",
    "ChatMessage",
    "CompletionResponse",
    "CompletionService",
    "NullCompletionService",
    "PydanticAICompletionService",
]
