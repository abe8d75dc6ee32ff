"""Multi-step, tool-augmented generation loop for one agent turn.

``StreamOrchestrator.create_stream`` is an async generator. Each generation
round streams text to the caller; when the model asks for tools they are run
in request order and their results are fed into the next round. The loop is
capped at ``max_steps`` rounds. A successful run persists exactly one
assistant message and ends with ``done``; any failure ends the stream with a
single ``error`` event and persists nothing. Closing the generator early
(client disconnect) also persists nothing.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

from ..agents.base import SpecialistAgent
from ..agents.responses import ResponseParameterStore
from ..conversations.models import ChatMessage
from ..conversations.repository import ConversationRepository
from ..conversations.schemas import MessageCreate, MessageRole, ToolCallRecord
from ..errors import AIServiceError
from ..llm import (
    GenerationService,
    RoundResult,
    TextDelta,
    Usage,
    assistant_tool_call_message,
    tool_result_message,
)
from .events import StreamEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 5


class StreamOrchestrator:
    def __init__(
        self,
        generation: GenerationService,
        repository: ConversationRepository,
        *,
        parameters: ResponseParameterStore | None = None,
        model: str | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self._generation = generation
        self._repository = repository
        self._parameters = parameters or ResponseParameterStore()
        self._model = model
        self._max_steps = max_steps

    @property
    def max_steps(self) -> int:
        return self._max_steps

    async def create_stream(
        self,
        conversation_id: str,
        system_prompt: str,
        history: Sequence[ChatMessage],
        agent: SpecialistAgent,
        user_id: str,
        routing_reasoning: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        yield StreamEvent.status("thinking", agent=agent.type.value)
        if routing_reasoning:
            yield StreamEvent.reasoning(routing_reasoning)

        started = time.perf_counter()
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(m.as_dict() for m in history)
        tools = agent.function_tools()
        params = self._parameters.merge("agent", {"model": self._model} if self._model else None)

        streamed: list[str] = []
        round_texts: list[str] = []
        records: list[ToolCallRecord] = []
        usage = Usage()

        try:
            for step in range(1, self._max_steps + 1):
                result: RoundResult | None = None
                async for item in self._generation.stream_round(messages, tools, **params):
                    if isinstance(item, TextDelta):
                        if item.text:
                            streamed.append(item.text)
                            yield StreamEvent.text(item.text)
                    else:
                        result = item
                if result is None:
                    raise AIServiceError("Generation round ended without a result")

                usage = usage + result.usage
                if result.text:
                    round_texts.append(result.text)
                if not result.tool_calls:
                    break

                messages.append(assistant_tool_call_message(result.text, result.tool_calls))
                for call in result.tool_calls:
                    yield StreamEvent.status("tool_calling", tool=call.name)
                    yield StreamEvent.tool_call(call.name, call.arguments)
                    output = agent.execute_tool(call.name, call.arguments, user_id)
                    records.append(
                        ToolCallRecord(tool_name=call.name, input=call.arguments, output=output)
                    )
                    yield StreamEvent.tool_result(call.name, output)
                    messages.append(tool_result_message(call.id, output))
            else:
                logger.info(
                    "Conversation %s reached the %d step limit", conversation_id, self._max_steps
                )

            content = "".join(streamed)
            if not content and round_texts:
                content = "".join(round_texts)
                yield StreamEvent.text(content)

            saved = self._repository.create_message(
                MessageCreate(
                    conversation_id=conversation_id,
                    role=MessageRole.ASSISTANT,
                    content=content,
                    agent_type=agent.type.value,
                    tool_calls=records or None,
                    reasoning=routing_reasoning,
                    tokens_used=usage.total_tokens,
                )
            )
        except Exception:
            logger.exception(
                "Stream failed for conversation %s (agent=%s)", conversation_id, agent.type.value
            )
            yield StreamEvent.error()
            return

        logger.info(
            "Stream completed for conversation %s (message=%s agent=%s steps=%d tools=%d tokens=%d latency_ms=%d)",
            conversation_id,
            saved.id,
            agent.type.value,
            step,
            len(records),
            usage.total_tokens,
            int((time.perf_counter() - started) * 1000),
        )
        yield StreamEvent.done(saved.id, usage.total_tokens)


__all__ = ["DEFAULT_MAX_STEPS", "StreamOrchestrator"]
