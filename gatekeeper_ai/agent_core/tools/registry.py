from __future__ import annotations

"""Tool registry.

Maps tool names to ``ToolDefinition`` objects. The planner reads the catalog
to tell the model which tools exist; the orchestrator resolves plan steps
through it.
"""

from typing import Dict, Iterable, List

from .base import ToolDefinition


class ToolRegistry:
    """
    In-memory mapping of tool names to definitions.

    Notes:
        - ``register`` overwrites any existing definition with the same name.
        - ``get`` raises ``KeyError`` if the tool is missing.
    """

    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition:
        """
        Retrieve a registered tool by name.

        Raises:
            KeyError: If no tool is registered with the given name.
        """
        return self._tools[name]

    def has(self, name: str) -> bool:
        return name in self._tools

    def list(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def catalog(self) -> str:
        """One line per tool, as shown to the planner: ``- name: description (risk: level)``."""
        return "\n".join(f"- {t.name}: {t.description} (risk: {t.risk_level.value})" for t in self._tools.values())
