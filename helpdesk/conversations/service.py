"""Conversation service: CRUD plus the per-turn message pipeline.

A user turn runs as one sequential chain: persist the user message, build the
bounded context, route, record the routing decision on the conversation, then
stream the chosen agent. Turns on the same conversation are serialised with a
process-local lock held for the whole stream; turns on different
conversations run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import math
import weakref
from collections.abc import AsyncIterator

from ..agents.service import AgentService
from ..errors import ForbiddenError, NotFoundError
from ..streaming.events import StreamEvent
from . import schemas
from .context import ContextManager
from .repository import ConversationRepository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"
TITLE_FROM_MESSAGE_CHARS = 50
DETAIL_MESSAGE_LIMIT = 50


def _pagination(page: int, limit: int, total: int) -> schemas.Pagination:
    return schemas.Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


def _title_from_message(content: str) -> str:
    text = " ".join(content.split())
    if len(text) <= TITLE_FROM_MESSAGE_CHARS:
        return text or DEFAULT_TITLE
    return text[: TITLE_FROM_MESSAGE_CHARS - 3].rstrip() + "..."


class ConversationService:
    """High-level orchestration for conversations and user turns."""

    def __init__(
        self,
        repository: ConversationRepository,
        context_manager: ContextManager,
        agents: AgentService,
    ) -> None:
        self._repository = repository
        self._context = context_manager
        self._agents = agents
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    # ------------------------------------------------------------------
    # CRUD operations

    def create_conversation(
        self, user_id: str, title: str | None = None, initial_message: str | None = None
    ) -> schemas.Conversation:
        if not title:
            title = _title_from_message(initial_message) if initial_message else DEFAULT_TITLE
        conversation = self._repository.create_conversation(user_id, title)
        logger.info("Conversation %s created for user %s", conversation.id, user_id)
        return conversation

    def get_conversation(self, conversation_id: str, user_id: str) -> schemas.ConversationDetail:
        conversation = self._require_owned(conversation_id, user_id)
        messages = self._repository.list_messages(conversation_id, limit=DETAIL_MESSAGE_LIMIT)
        return schemas.ConversationDetail(**conversation.model_dump(), messages=messages)

    def list_conversations(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        status: schemas.ConversationStatus | None = None,
    ) -> schemas.ConversationList:
        items, total = self._repository.list_conversations(
            user_id, offset=(page - 1) * limit, limit=limit, status=status
        )
        return schemas.ConversationList(items=items, pagination=_pagination(page, limit, total))

    def list_messages(
        self, conversation_id: str, user_id: str, *, page: int = 1, limit: int = 50
    ) -> schemas.MessageList:
        self._require_owned(conversation_id, user_id)
        items = self._repository.list_messages(
            conversation_id, offset=(page - 1) * limit, limit=limit
        )
        total = self._repository.count_messages(conversation_id)
        return schemas.MessageList(items=items, pagination=_pagination(page, limit, total))

    def update_conversation(
        self, conversation_id: str, user_id: str, payload: schemas.ConversationUpdate
    ) -> schemas.Conversation:
        self._require_owned(conversation_id, user_id)
        updated = self._repository.update_conversation(
            conversation_id,
            title=payload.title,
            status=payload.status,
            metadata=payload.metadata,
        )
        if updated is None:
            raise NotFoundError("Conversation", conversation_id)
        logger.info(
            "Conversation %s updated: %s",
            conversation_id,
            payload.model_dump(exclude_none=True),
        )
        return updated

    def delete_conversation(self, conversation_id: str, user_id: str) -> None:
        self._require_owned(conversation_id, user_id)
        self._repository.delete_conversation(conversation_id)
        logger.info("Conversation %s deleted by user %s", conversation_id, user_id)

    # ------------------------------------------------------------------
    # Message pipeline

    def send_message(
        self, conversation_id: str, user_id: str, content: str
    ) -> AsyncIterator[StreamEvent]:
        """Start a user turn and return its event stream.

        Ownership is checked eagerly so missing or foreign conversations raise
        before any event is produced.

        Raises:
            NotFoundError: if the conversation does not exist.
            ForbiddenError: if it belongs to another user.
        """

        self._require_owned(conversation_id, user_id)
        return self._run_turn(conversation_id, user_id, content)

    async def _run_turn(
        self, conversation_id: str, user_id: str, content: str
    ) -> AsyncIterator[StreamEvent]:
        lock = self._lock_for(conversation_id)
        async with lock:
            try:
                user_message = self._repository.create_message(
                    schemas.MessageCreate(
                        conversation_id=conversation_id,
                        role=schemas.MessageRole.USER,
                        content=content,
                    )
                )
                logger.info("User message %s saved to %s", user_message.id, conversation_id)

                context = await self._context.build_context(conversation_id)
                # The router sees the turns before this message.
                decision = await self._agents.route_message(content, context.messages[:-1])

                conversation = self._repository.get_conversation(conversation_id)
                metadata = dict(conversation.metadata) if conversation else {}
                metadata.update(
                    {
                        "last_agent": decision.agent.value,
                        "entities": list(decision.entities),
                        "extracted_entities": context.entities.as_dict(),
                    }
                )
                self._repository.update_conversation(conversation_id, metadata=metadata)
            except Exception:
                logger.exception("Failed to prepare turn for conversation %s", conversation_id)
                yield StreamEvent.error()
                return

            async for event in self._agents.execute_agent(
                decision.agent,
                conversation_id,
                user_id,
                context.messages,
                decision.reasoning,
            ):
                yield event

    # ------------------------------------------------------------------
    # Helpers

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def _require_owned(self, conversation_id: str, user_id: str) -> schemas.Conversation:
        conversation = self._repository.get_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        if conversation.user_id != user_id:
            raise ForbiddenError("You do not have access to this conversation")
        return conversation


__all__ = ["ConversationService", "DEFAULT_TITLE"]
