"""Lookup table of the specialist agents."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from ..commerce.store import CommerceStore
from ..errors import UnknownAgentError
from .base import SpecialistAgent
from .billing import build_billing_agent
from .order import build_order_agent
from .schemas import AgentType
from .support import build_support_agent


class AgentRegistry:
    """Map each :class:`AgentType` to its configured specialist."""

    def __init__(self, agents: Iterable[SpecialistAgent]) -> None:
        self._agents: dict[AgentType, SpecialistAgent] = {}
        for agent in agents:
            if agent.type in self._agents:
                raise ValueError(f"Duplicate agent type: {agent.type.value}")
            self._agents[agent.type] = agent

    @classmethod
    def default(cls, store: CommerceStore) -> "AgentRegistry":
        """Build the support, order and billing specialists over ``store``."""

        return cls(
            [
                build_support_agent(store),
                build_order_agent(store),
                build_billing_agent(store),
            ]
        )

    def get(self, agent_type: AgentType | str) -> SpecialistAgent | None:
        try:
            key = AgentType.parse(agent_type)
        except ValueError:
            return None
        return self._agents.get(key)

    def require(self, agent_type: AgentType | str) -> SpecialistAgent:
        agent = self.get(agent_type)
        if agent is None:
            raise UnknownAgentError(f"Unknown agent type: {agent_type}")
        return agent

    def all(self) -> list[SpecialistAgent]:
        return list(self._agents.values())

    def __iter__(self) -> Iterator[SpecialistAgent]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._agents)


__all__ = ["AgentRegistry"]
