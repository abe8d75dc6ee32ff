"""Agent capability API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..agents import schemas
from ..container import ServiceContainer
from ..errors import NotFoundError
from .deps import get_container

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.get("", response_model=list[schemas.AgentCapabilities])
def list_agents(
    container: ServiceContainer = Depends(get_container),
) -> list[schemas.AgentCapabilities]:
    return container.agents.list_capabilities()


@router.get("/{agent_type}", response_model=schemas.AgentCapabilities)
def get_agent(
    agent_type: str, container: ServiceContainer = Depends(get_container)
) -> schemas.AgentCapabilities:
    capabilities = container.agents.get_capabilities(agent_type)
    if capabilities is None:
        raise NotFoundError("Agent", agent_type)
    return capabilities
