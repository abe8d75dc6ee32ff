"""Service layer routing messages to specialists and running their turns."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence

from ..commerce.store import CommerceStore
from ..config import Settings
from ..conversations.models import ChatMessage
from ..conversations.repository import ConversationRepository
from ..llm import GenerationService
from ..streaming.events import StreamEvent
from ..streaming.orchestrator import StreamOrchestrator
from .base import SpecialistAgent
from .prompts import PromptTemplateStore
from .registry import AgentRegistry
from .responses import ResponseParameterStore
from .routing import Router
from .schemas import AgentCapabilities, AgentType, RoutingDecision

logger = logging.getLogger(__name__)


async def _unknown_agent_stream(agent_type: object) -> AsyncIterator[StreamEvent]:
    logger.error("Unknown agent type requested: %s", agent_type)
    yield StreamEvent.error()


class AgentService:
    """High-level orchestration over the specialist agents."""

    def __init__(
        self,
        registry: AgentRegistry,
        router: Router,
        orchestrator: StreamOrchestrator,
    ) -> None:
        self._registry = registry
        self._router = router
        self._orchestrator = orchestrator

    async def route_message(
        self, message: str, recent_context: Sequence[ChatMessage] = ()
    ) -> RoutingDecision:
        return await self._router.route_message(message, recent_context)

    def execute_agent(
        self,
        agent_type: AgentType | str,
        conversation_id: str,
        user_id: str,
        messages: Sequence[ChatMessage],
        reasoning: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Return the event stream for one agent turn.

        An unknown ``agent_type`` yields a single ``error`` event instead of
        raising.
        """

        agent = self._registry.get(agent_type)
        if agent is None:
            return _unknown_agent_stream(agent_type)

        logger.info(
            "Executing %s agent for conversation %s (%d messages)",
            agent.type.value,
            conversation_id,
            len(messages),
        )
        return self._orchestrator.create_stream(
            conversation_id,
            agent.system_prompt,
            list(messages),
            agent,
            user_id,
            routing_reasoning=reasoning,
        )

    # ------------------------------------------------------------------
    # Registry views

    def get_agent(self, agent_type: AgentType | str) -> SpecialistAgent | None:
        return self._registry.get(agent_type)

    def get_all_agents(self) -> list[SpecialistAgent]:
        return self._registry.all()

    def list_capabilities(self) -> list[AgentCapabilities]:
        return [agent.capabilities() for agent in self._registry]

    def get_capabilities(self, agent_type: AgentType | str) -> AgentCapabilities | None:
        agent = self._registry.get(agent_type)
        return agent.capabilities() if agent else None


def create_agent_service(
    generation: GenerationService,
    repository: ConversationRepository,
    store: CommerceStore,
    settings: Settings | None = None,
    *,
    prompt_store: PromptTemplateStore | None = None,
    response_store: ResponseParameterStore | None = None,
) -> AgentService:
    """Wire the registry, router and orchestrator from ``settings``."""

    settings = settings or Settings()
    prompts = prompt_store or PromptTemplateStore()
    responses = response_store or ResponseParameterStore()
    router = Router(
        generation,
        prompts=prompts,
        parameters=responses,
        model=settings.router_model,
        confidence_threshold=settings.routing_confidence_threshold,
    )
    orchestrator = StreamOrchestrator(
        generation,
        repository,
        parameters=responses,
        model=settings.agent_model,
        max_steps=settings.max_tool_steps,
    )
    return AgentService(AgentRegistry.default(store), router, orchestrator)


__all__ = ["AgentService", "create_agent_service"]
