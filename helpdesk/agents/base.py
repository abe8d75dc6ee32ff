"""Specialist agent bundle: identity, system prompt and an ordered tool set."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..errors import UnknownToolError
from .schemas import AgentCapabilities, AgentType, ToolSummary
from .tools import Tool

logger = logging.getLogger(__name__)


def _preview(payload: Any, limit: int = 200) -> str:
    return json.dumps(payload, default=str)[:limit]


class SpecialistAgent:
    """A statically configured responder for one support domain."""

    def __init__(
        self,
        agent_type: AgentType,
        name: str,
        description: str,
        system_prompt: str,
        tools: Iterable[Tool] = (),
    ) -> None:
        self.type = agent_type
        self.name = name
        self.description = description
        self.system_prompt = system_prompt
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered on {self.type.value}")
        self._tools[tool.name] = tool

    @property
    def tools(self) -> list[Tool]:
        """Tools in registration order."""

        return list(self._tools.values())

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def function_tools(self) -> list[dict[str, Any]]:
        return [tool.as_function_schema() for tool in self._tools.values()]

    def input_schema_tools(self) -> list[dict[str, Any]]:
        return [tool.as_input_schema() for tool in self._tools.values()]

    def execute_tool(
        self, name: str, arguments: Mapping[str, Any] | None, user_id: str
    ) -> Any:
        """Validate ``arguments`` and run the tool on behalf of ``user_id``.

        Raises:
            UnknownToolError: if this agent exposes no tool called ``name``.
            ToolArgumentError: if the arguments do not match the declaration.
        """

        tool = self._tools.get(name)
        if tool is None:
            logger.error("Unknown tool %s requested from %s agent", name, self.type.value)
            raise UnknownToolError(f"Unknown tool: {name}")

        params = tool.coerce_arguments(arguments)
        logger.info(
            "Executing tool %s for %s agent (user=%s input=%s)",
            name,
            self.type.value,
            user_id,
            _preview(params),
        )
        try:
            result = tool.execute(params, user_id)
        except Exception:
            logger.exception("Tool %s failed", name)
            raise
        logger.debug("Tool %s executed successfully", name)
        return result

    def capabilities(self) -> AgentCapabilities:
        return AgentCapabilities(
            type=self.type,
            name=self.name,
            description=self.description,
            tools=[ToolSummary(name=t.name, description=t.description) for t in self._tools.values()],
        )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"SpecialistAgent(type={self.type.value!r}, tools={list(self._tools)!r})"


__all__ = ["SpecialistAgent"]
