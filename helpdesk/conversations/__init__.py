"""Conversation storage, context building and the per-turn pipeline."""

from . import schemas
from .models import ChatMessage, ConversationContext, ExtractedEntities

__all__ = [
    "ChatMessage",
    "ConversationContext",
    "ExtractedEntities",
    "schemas",
]
