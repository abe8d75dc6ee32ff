"""Pydantic schemas for conversations and messages."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ToolCallRecord(BaseModel):
    """One executed tool call as persisted on an assistant message."""

    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)
    output: Any = None


class Message(BaseModel):
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    agent_type: str | None = None
    tool_calls: list[ToolCallRecord] | None = None
    reasoning: str | None = None
    tokens_used: int | None = None
    created_at: datetime


class MessageCreate(BaseModel):
    """Fields accepted by :meth:`ConversationRepository.create_message`."""

    conversation_id: str
    role: MessageRole
    content: str
    agent_type: str | None = None
    tool_calls: list[ToolCallRecord] | None = None
    reasoning: str | None = None
    tokens_used: int | None = None


class Conversation(BaseModel):
    id: str
    user_id: str
    title: str
    status: ConversationStatus = ConversationStatus.ACTIVE
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class ConversationDetail(Conversation):
    messages: list[Message] = Field(default_factory=list)


class ConversationUpdate(BaseModel):
    """Patchable conversation fields."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    status: ConversationStatus | None = None
    metadata: dict[str, Any] | None = None


class ConversationCreateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    initial_message: str | None = Field(default=None, min_length=1, max_length=10000)


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=10000)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ConversationList(BaseModel):
    items: list[Conversation]
    pagination: Pagination


class MessageList(BaseModel):
    items: list[Message]
    pagination: Pagination
