"""Persistence for conversations and their messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from ..models import ConversationRecord, MessageRecord
from ..models.session import session_scope
from . import schemas


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationRepository(Protocol):
    """Abstraction for persisting conversations and messages.

    ``list_messages`` must return messages in creation order.
    """

    def create_conversation(
        self, user_id: str, title: str, metadata: Optional[Dict[str, Any]] = None
    ) -> schemas.Conversation: ...

    def get_conversation(self, conversation_id: str) -> Optional[schemas.Conversation]: ...

    def list_conversations(
        self,
        user_id: str,
        *,
        offset: int = 0,
        limit: int = 20,
        status: Optional[schemas.ConversationStatus] = None,
    ) -> Tuple[List[schemas.Conversation], int]: ...

    def update_conversation(
        self,
        conversation_id: str,
        *,
        title: Optional[str] = None,
        status: Optional[schemas.ConversationStatus] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[schemas.Conversation]: ...

    def delete_conversation(self, conversation_id: str) -> bool: ...

    def create_message(self, payload: schemas.MessageCreate) -> schemas.Message: ...

    def list_messages(
        self, conversation_id: str, *, offset: int = 0, limit: Optional[int] = None
    ) -> List[schemas.Message]: ...

    def count_messages(self, conversation_id: str) -> int: ...


def _dump_tool_calls(
    tool_calls: Optional[List[schemas.ToolCallRecord]],
) -> Optional[List[Dict[str, Any]]]:
    if tool_calls is None:
        return None
    return [call.model_dump(mode="json") for call in tool_calls]


# ---------------------------------------------------------------------------
# SQLAlchemy repository


class SqlConversationRepository:
    """SQLAlchemy implementation of :class:`ConversationRepository`."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # Utility -----------------------------------------------------------------
    @staticmethod
    def _hydrate_conversation(record: ConversationRecord) -> schemas.Conversation:
        return schemas.Conversation(
            id=record.id,
            user_id=record.user_id,
            title=record.title,
            status=schemas.ConversationStatus(record.status),
            metadata=dict(record.metadata_ or {}),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    @staticmethod
    def _hydrate_message(record: MessageRecord) -> schemas.Message:
        return schemas.Message(
            id=record.id,
            conversation_id=record.conversation_id,
            role=schemas.MessageRole(record.role),
            content=record.content,
            agent_type=record.agent_type,
            tool_calls=(
                [schemas.ToolCallRecord(**call) for call in record.tool_calls]
                if record.tool_calls is not None
                else None
            ),
            reasoning=record.reasoning,
            tokens_used=record.tokens_used,
            created_at=record.created_at,
        )

    # Conversation operations --------------------------------------------------
    def create_conversation(
        self, user_id: str, title: str, metadata: Optional[Dict[str, Any]] = None
    ) -> schemas.Conversation:
        now = _utcnow()
        record = ConversationRecord(
            id=str(uuid4()),
            user_id=user_id,
            title=title,
            status=schemas.ConversationStatus.ACTIVE.value,
            metadata_=dict(metadata or {}),
            created_at=now,
            updated_at=now,
        )
        with session_scope(self._session_factory) as session:
            session.add(record)
            session.flush()
            return self._hydrate_conversation(record)

    def get_conversation(self, conversation_id: str) -> Optional[schemas.Conversation]:
        with session_scope(self._session_factory) as session:
            record = session.get(ConversationRecord, conversation_id)
            return self._hydrate_conversation(record) if record else None

    def list_conversations(
        self,
        user_id: str,
        *,
        offset: int = 0,
        limit: int = 20,
        status: Optional[schemas.ConversationStatus] = None,
    ) -> Tuple[List[schemas.Conversation], int]:
        filters = [ConversationRecord.user_id == user_id]
        if status is not None:
            filters.append(ConversationRecord.status == status.value)
        stmt = (
            select(ConversationRecord)
            .where(*filters)
            .order_by(ConversationRecord.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(ConversationRecord).where(*filters)
        with session_scope(self._session_factory) as session:
            items = [self._hydrate_conversation(row) for row in session.scalars(stmt)]
            total = session.execute(count_stmt).scalar_one()
        return items, total

    def update_conversation(
        self,
        conversation_id: str,
        *,
        title: Optional[str] = None,
        status: Optional[schemas.ConversationStatus] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[schemas.Conversation]:
        with session_scope(self._session_factory) as session:
            record = session.get(ConversationRecord, conversation_id)
            if record is None:
                return None
            if title is not None:
                record.title = title
            if status is not None:
                record.status = status.value
            if metadata is not None:
                record.metadata_ = dict(metadata)
            record.updated_at = _utcnow()
            session.flush()
            return self._hydrate_conversation(record)

    def delete_conversation(self, conversation_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            session.execute(delete(MessageRecord).where(MessageRecord.conversation_id == conversation_id))
            result = session.execute(
                delete(ConversationRecord).where(ConversationRecord.id == conversation_id)
            )
            return bool(result.rowcount)

    # Message operations -------------------------------------------------------
    def create_message(self, payload: schemas.MessageCreate) -> schemas.Message:
        with session_scope(self._session_factory) as session:
            last = session.execute(
                select(func.max(MessageRecord.sequence)).where(
                    MessageRecord.conversation_id == payload.conversation_id
                )
            ).scalar_one()
            record = MessageRecord(
                id=str(uuid4()),
                conversation_id=payload.conversation_id,
                sequence=(last or 0) + 1,
                role=payload.role.value,
                content=payload.content,
                agent_type=payload.agent_type,
                tool_calls=_dump_tool_calls(payload.tool_calls),
                reasoning=payload.reasoning,
                tokens_used=payload.tokens_used,
                created_at=_utcnow(),
            )
            session.add(record)
            session.flush()
            return self._hydrate_message(record)

    def list_messages(
        self, conversation_id: str, *, offset: int = 0, limit: Optional[int] = None
    ) -> List[schemas.Message]:
        stmt = (
            select(MessageRecord)
            .where(MessageRecord.conversation_id == conversation_id)
            .order_by(MessageRecord.created_at.asc(), MessageRecord.sequence.asc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with session_scope(self._session_factory) as session:
            return [self._hydrate_message(row) for row in session.scalars(stmt)]

    def count_messages(self, conversation_id: str) -> int:
        with session_scope(self._session_factory) as session:
            return session.execute(
                select(func.count())
                .select_from(MessageRecord)
                .where(MessageRecord.conversation_id == conversation_id)
            ).scalar_one()


# ---------------------------------------------------------------------------
# In-memory repository (useful for testing and sandbox environments)


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self) -> None:
        self._conversations: Dict[str, schemas.Conversation] = {}
        self._messages: Dict[str, List[schemas.Message]] = {}

    def create_conversation(
        self, user_id: str, title: str, metadata: Optional[Dict[str, Any]] = None
    ) -> schemas.Conversation:
        now = _utcnow()
        conversation = schemas.Conversation(
            id=str(uuid4()),
            user_id=user_id,
            title=title,
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
        )
        self._conversations[conversation.id] = conversation
        self._messages[conversation.id] = []
        return conversation.model_copy(deep=True)

    def get_conversation(self, conversation_id: str) -> Optional[schemas.Conversation]:
        conversation = self._conversations.get(conversation_id)
        return conversation.model_copy(deep=True) if conversation else None

    def list_conversations(
        self,
        user_id: str,
        *,
        offset: int = 0,
        limit: int = 20,
        status: Optional[schemas.ConversationStatus] = None,
    ) -> Tuple[List[schemas.Conversation], int]:
        matches = [
            c
            for c in self._conversations.values()
            if c.user_id == user_id and (status is None or c.status == status)
        ]
        matches.sort(key=lambda c: c.updated_at, reverse=True)
        page = [c.model_copy(deep=True) for c in matches[offset : offset + limit]]
        return page, len(matches)

    def update_conversation(
        self,
        conversation_id: str,
        *,
        title: Optional[str] = None,
        status: Optional[schemas.ConversationStatus] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[schemas.Conversation]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return None
        if title is not None:
            conversation.title = title
        if status is not None:
            conversation.status = status
        if metadata is not None:
            conversation.metadata = dict(metadata)
        conversation.updated_at = _utcnow()
        return conversation.model_copy(deep=True)

    def delete_conversation(self, conversation_id: str) -> bool:
        self._messages.pop(conversation_id, None)
        return self._conversations.pop(conversation_id, None) is not None

    def create_message(self, payload: schemas.MessageCreate) -> schemas.Message:
        message = schemas.Message(
            id=str(uuid4()),
            created_at=_utcnow(),
            **payload.model_dump(),
        )
        # Appending keeps creation order even when timestamps collide.
        self._messages.setdefault(payload.conversation_id, []).append(message)
        return message.model_copy(deep=True)

    def list_messages(
        self, conversation_id: str, *, offset: int = 0, limit: Optional[int] = None
    ) -> List[schemas.Message]:
        messages = self._messages.get(conversation_id, [])
        end = None if limit is None else offset + limit
        return [m.model_copy(deep=True) for m in messages[offset:end]]

    def count_messages(self, conversation_id: str) -> int:
        return len(self._messages.get(conversation_id, []))


__all__ = [
    "ConversationRepository",
    "InMemoryConversationRepository",
    "SqlConversationRepository",
]
