"""Pydantic schemas for specialist agents and routing decisions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class AgentType(str, Enum):
    """Closed set of specialists a message can be routed to."""

    GENERAL_SUPPORT = "general-support"
    ORDER = "order"
    BILLING = "billing"

    @classmethod
    def parse(cls, value: object) -> "AgentType":
        """Resolve ``value`` to a member, accepting the short ``support`` alias.

        Raises:
            ValueError: if ``value`` names no agent.
        """

        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", "-")
        if text in {"support", "general"}:
            return cls.GENERAL_SUPPORT
        return cls(text)


class RoutingDecision(BaseModel):
    agent: AgentType
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    entities: list[str] = Field(default_factory=list)


class ToolSummary(BaseModel):
    name: str
    description: str


class AgentCapabilities(BaseModel):
    """Public description of a specialist and its tools."""

    type: AgentType
    name: str
    description: str
    tools: list[ToolSummary] = Field(default_factory=list)


__all__ = ["AgentCapabilities", "AgentType", "RoutingDecision", "ToolSummary"]
