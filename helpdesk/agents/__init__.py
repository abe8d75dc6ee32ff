"""Specialist agents, their tools and the message router."""

from . import schemas
from .base import SpecialistAgent
from .registry import AgentRegistry
from .schemas import AgentType, RoutingDecision

__all__ = [
    "AgentRegistry",
    "AgentType",
    "RoutingDecision",
    "SpecialistAgent",
    "schemas",
]
