"""Bounded conversation history for agent turns.

``ContextManager.build_context`` loads a conversation's messages and returns
them unchanged while their estimated size fits the token budget. Larger
histories are compacted: everything except the most recent messages is
replaced by a short generated summary. Entities are always extracted from the
full history so identifiers survive compaction.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence

from ..agents.prompts import PromptTemplateStore
from ..agents.responses import ResponseParameterStore
from ..llm import GenerationService
from .entities import estimate_tokens, extract_entities
from .models import ChatMessage, ConversationContext
from .repository import ConversationRepository
from .schemas import Message

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8000
DEFAULT_KEEP_RECENT = 10
FALLBACK_SUMMARY_MESSAGES = 3
FALLBACK_SNIPPET_CHARS = 200
SUMMARY_PREFIX = "Previous conversation summary: "


def fallback_summary(messages: Sequence[Message]) -> str:
    """Deterministic summary from the last few messages, used when generation fails."""

    tail = list(messages)[-FALLBACK_SUMMARY_MESSAGES:]
    return " | ".join(f"{m.role.value}: {m.content[:FALLBACK_SNIPPET_CHARS]}" for m in tail)


def _as_chat(messages: Sequence[Message]) -> list[ChatMessage]:
    return [ChatMessage(role=m.role.value, content=m.content) for m in messages]


class ContextManager:
    def __init__(
        self,
        repository: ConversationRepository,
        generation: GenerationService,
        *,
        prompts: PromptTemplateStore | None = None,
        parameters: ResponseParameterStore | None = None,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        keep_recent: int = DEFAULT_KEEP_RECENT,
        summary_timeout: float | None = 15.0,
    ) -> None:
        self._repository = repository
        self._generation = generation
        self._prompts = prompts or PromptTemplateStore()
        self._parameters = parameters or ResponseParameterStore()
        self._model = model
        self._max_tokens = max_tokens
        self._keep_recent = keep_recent
        self._summary_timeout = summary_timeout

    async def build_context(self, conversation_id: str) -> ConversationContext:
        messages = self._repository.list_messages(conversation_id)
        entities = extract_entities(messages)
        token_count = estimate_tokens(messages)

        if token_count <= self._max_tokens:
            return ConversationContext(
                messages=_as_chat(messages),
                entities=entities,
                token_count=token_count,
                compacted=False,
            )

        split = max(len(messages) - self._keep_recent, 0)
        old, recent = messages[:split], messages[split:]
        summary = await self.summarize(old)
        logger.info(
            "Compacted conversation %s: %d messages summarised, %d kept (estimate %d tokens)",
            conversation_id,
            len(old),
            len(recent),
            token_count,
        )
        compacted = [ChatMessage(role="system", content=f"{SUMMARY_PREFIX}{summary}")]
        compacted.extend(_as_chat(recent))
        return ConversationContext(
            messages=compacted,
            entities=entities,
            token_count=estimate_tokens(recent) + math.ceil(len(summary) / 4),
            compacted=True,
        )

    async def summarize(self, messages: Sequence[Message]) -> str:
        """Summarise ``messages`` in 2-3 sentences; never raises."""

        if not messages:
            return ""
        prompt = self._prompts.render_summary(_as_chat(messages))
        params = self._parameters.merge("summary", {"model": self._model} if self._model else None)
        try:
            summary = await asyncio.wait_for(
                self._generation.complete([{"role": "user", "content": prompt}], **params),
                timeout=self._summary_timeout,
            )
        except Exception:
            logger.warning("Summarisation failed; using fallback summary", exc_info=True)
            return fallback_summary(messages)
        summary = (summary or "").strip()
        if not summary:
            logger.warning("Summariser returned no text; using fallback summary")
            return fallback_summary(messages)
        return summary


__all__ = ["ContextManager", "SUMMARY_PREFIX", "fallback_summary"]
