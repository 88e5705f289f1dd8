"""Tool definitions, registry and built-in tools."""

from .base import ToolContext, ToolDefinition, ToolHandler, ToolResult
from .builtin import builtin_tools
from .registry import ToolRegistry

__all__ = [
    "ToolContext",
    "ToolDefinition",
    "ToolHandler",
    "ToolResult",
    "ToolRegistry",
    "builtin_tools",
]
