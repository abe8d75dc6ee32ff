"""Conversation management and chat streaming API routes."""

import logging
from collections.abc import AsyncIterator
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import StreamingResponse

from ..container import ServiceContainer
from ..conversations import schemas as convo_schemas
from ..errors import ValidationError
from ..rate_limit import MESSAGE_RATE_LIMIT, limiter
from ..sse_utils import SSE_HEADERS, sse_event_stream
from ..streaming.events import StreamEvent
from .deps import get_container, get_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def _check_length(content: str, container: ServiceContainer) -> None:
    limit = container.settings.chat_max_message_length
    if len(content) > limit:
        raise ValidationError(f"Message too long (max {limit} characters)")


def _stream_response(
    request: Request, events: AsyncIterator[StreamEvent], conversation_id: str
) -> StreamingResponse:
    headers = dict(SSE_HEADERS)
    headers["X-Conversation-Id"] = conversation_id
    return StreamingResponse(
        sse_event_stream(events, request.is_disconnected),
        media_type="text/event-stream; charset=utf-8",
        headers=headers,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=None)
@limiter.limit(MESSAGE_RATE_LIMIT)
async def create_conversation(
    request: Request,
    payload: convo_schemas.ConversationCreateRequest,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> convo_schemas.Conversation | StreamingResponse:
    """Create a conversation.

    When ``initial_message`` is supplied the first turn runs immediately and
    the response is its SSE stream; the new conversation id is returned in the
    ``X-Conversation-Id`` header.
    """
    if payload.initial_message:
        _check_length(payload.initial_message, container)
    service = container.conversations
    conversation = service.create_conversation(
        user_id, title=payload.title, initial_message=payload.initial_message
    )
    if not payload.initial_message:
        return conversation
    events = service.send_message(conversation.id, user_id, payload.initial_message)
    return _stream_response(request, events, conversation.id)


@router.get("", response_model=convo_schemas.ConversationList)
def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[convo_schemas.ConversationStatus] = Query(None, alias="status"),
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> convo_schemas.ConversationList:
    return container.conversations.list_conversations(
        user_id, page=page, limit=limit, status=status_filter
    )


@router.get("/{conversation_id}", response_model=convo_schemas.ConversationDetail)
def get_conversation(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> convo_schemas.ConversationDetail:
    return container.conversations.get_conversation(conversation_id, user_id)


@router.patch("/{conversation_id}", response_model=convo_schemas.Conversation)
def update_conversation(
    conversation_id: str,
    payload: convo_schemas.ConversationUpdate,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> convo_schemas.Conversation:
    return container.conversations.update_conversation(conversation_id, user_id, payload)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    container.conversations.delete_conversation(conversation_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/messages", response_model=convo_schemas.MessageList)
def list_messages(
    conversation_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> convo_schemas.MessageList:
    return container.conversations.list_messages(
        conversation_id, user_id, page=page, limit=limit
    )


@router.post("/{conversation_id}/messages")
@limiter.limit(MESSAGE_RATE_LIMIT)
async def send_message(
    request: Request,
    conversation_id: str,
    payload: convo_schemas.SendMessageRequest,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> StreamingResponse:
    """Run one user turn and stream its events as SSE.

    Rate-limited per user. Ownership is checked before the stream starts, so
    missing or foreign conversations fail with a regular JSON error.
    """
    _check_length(payload.content, container)
    events = container.conversations.send_message(conversation_id, user_id, payload.content)
    logger.info("Streaming turn for conversation %s (user %s)", conversation_id, user_id)
    return _stream_response(request, events, conversation_id)
