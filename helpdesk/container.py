"""Service wiring shared by the HTTP layer.

The container is built once per application. Without ``DATABASE_URL`` the
service runs in demo mode: conversations and commerce data live in memory and
the commerce store is seeded with the demo dataset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .agents.prompts import PromptTemplateStore
from .agents.responses import ResponseParameterStore
from .agents.service import AgentService, create_agent_service
from .commerce.seed import seed_demo_data
from .commerce.store import CommerceStore, InMemoryCommerceStore, SqlCommerceStore
from .config import Settings
from .conversations.context import ContextManager
from .conversations.repository import (
    ConversationRepository,
    InMemoryConversationRepository,
    SqlConversationRepository,
)
from .conversations.service import ConversationService
from .llm import GenerationService, OpenAIGenerationService
from .models.session import create_schema, get_engine, get_sessionmaker

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    repository: ConversationRepository
    store: CommerceStore
    agents: AgentService
    conversations: ConversationService
    engine: Optional[Engine] = None

    @property
    def demo_mode(self) -> bool:
        return self.engine is None


def build_container(
    settings: Settings,
    *,
    generation: GenerationService | None = None,
    repository: ConversationRepository | None = None,
    store: CommerceStore | None = None,
) -> ServiceContainer:
    """Assemble repositories, agents and the conversation service."""

    engine: Optional[Engine] = None
    if repository is None or store is None:
        if settings.database_url:
            engine = get_engine(settings.database_url)
            create_schema(engine)
            factory = get_sessionmaker(engine)
            repository = repository or SqlConversationRepository(factory)
            store = store or SqlCommerceStore(factory)
            logger.info("Using database-backed storage")
        else:
            repository = repository or InMemoryConversationRepository()
            if store is None:
                store = InMemoryCommerceStore()
                seed_demo_data(store)
            logger.warning("DATABASE_URL not set; running in demo mode with in-memory storage")

    generation = generation or OpenAIGenerationService.from_settings(settings)
    prompts = PromptTemplateStore()
    responses = ResponseParameterStore()
    agents = create_agent_service(
        generation,
        repository,
        store,
        settings,
        prompt_store=prompts,
        response_store=responses,
    )
    context_manager = ContextManager(
        repository,
        generation,
        prompts=prompts,
        parameters=responses,
        model=settings.summary_model,
        max_tokens=settings.context_max_tokens,
        keep_recent=settings.context_keep_recent,
        summary_timeout=settings.summary_timeout,
    )
    return ServiceContainer(
        settings=settings,
        repository=repository,
        store=store,
        agents=agents,
        conversations=ConversationService(repository, context_manager, agents),
        engine=engine,
    )


__all__ = ["ServiceContainer", "build_container"]
