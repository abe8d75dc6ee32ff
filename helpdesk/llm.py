"""Generation service client.

The rest of the package talks to the model through :class:`GenerationService`,
which has two capabilities:

- ``complete``: one-shot chat completion returning text (routing and
  summarisation).
- ``stream_round``: one streamed, tool-enabled generation round. It yields
  :class:`TextDelta` items as text arrives and finishes with a single
  :class:`RoundResult` carrying the full text, any tool-call requests and the
  token usage reported for the round.

:class:`OpenAIGenerationService` implements both on ``openai.AsyncOpenAI`` and
works against OpenAI or any OpenAI-compatible endpoint such as Groq.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from openai import AsyncOpenAI

from .config import Settings
from .errors import ToolArgumentError
from .providers import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolCallRequest:
    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: str = "{}"


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            self.prompt_tokens + other.prompt_tokens,
            self.completion_tokens + other.completion_tokens,
        )


@dataclass(frozen=True)
class RoundResult:
    text: str = ""
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    finish_reason: str | None = None


RoundItem = Union[TextDelta, RoundResult]


class GenerationService(Protocol):
    async def complete(self, messages: Sequence[Mapping[str, Any]], **params: Any) -> str: ...

    def stream_round(
        self,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]] = (),
        **params: Any,
    ) -> AsyncIterator[RoundItem]: ...


# ---------------------------------------------------------------------------
# Message helpers for the multi-step tool protocol


def assistant_tool_call_message(text: str, tool_calls: Sequence[ToolCallRequest]) -> dict[str, Any]:
    """Assistant turn that requested ``tool_calls``."""

    return {
        "role": "assistant",
        "content": text or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.raw_arguments},
            }
            for call in tool_calls
        ],
    }


def tool_result_message(call_id: str, result: Any) -> dict[str, Any]:
    return {
        "role": "tool",
        "tool_call_id": call_id,
        "content": json.dumps(result, default=str),
    }


def parse_tool_arguments(name: str, raw: str | None) -> dict[str, Any]:
    """Decode the JSON argument string the model produced for ``name``."""

    if not raw or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ToolArgumentError(f"Malformed arguments for tool '{name}'") from exc
    if not isinstance(value, dict):
        raise ToolArgumentError(f"Arguments for tool '{name}' must be a JSON object")
    return value


# ---------------------------------------------------------------------------
# OpenAI-compatible implementation


class OpenAIGenerationService:
    """Generation service backed by the OpenAI chat completions API."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_settings(
        cls, settings: Settings, providers: ProviderRegistry | None = None
    ) -> "OpenAIGenerationService":
        credentials = (providers or ProviderRegistry()).get_credentials(settings.llm_provider)
        api_key = settings.llm_api_key or credentials.api_key
        if not api_key:
            # The client refuses to start without a key; requests fail with 401 instead.
            logger.warning("No API key configured for %s; generation calls will fail", settings.llm_provider)
        client = AsyncOpenAI(
            api_key=api_key or "",
            base_url=settings.llm_base_url or credentials.base_url,
            default_headers=credentials.headers or None,
        )
        return cls(client, settings.agent_model)

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, messages: Sequence[Mapping[str, Any]], **params: Any) -> str:
        request = {"model": self._model, **params}
        response = await self._client.chat.completions.create(messages=list(messages), **request)
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def stream_round(
        self,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]] = (),
        **params: Any,
    ) -> AsyncIterator[RoundItem]:
        request: dict[str, Any] = {"model": self._model, **params}
        if tools:
            request["tools"] = list(tools)
        stream = await self._client.chat.completions.create(
            messages=list(messages),
            stream=True,
            stream_options={"include_usage": True},
            **request,
        )

        text_parts: list[str] = []
        # Tool-call fragments arrive keyed by index; names and argument
        # strings are split across chunks.
        pending: dict[int, dict[str, str]] = {}
        usage = Usage()
        finish_reason: str | None = None
        async for chunk in stream:
            if chunk.usage is not None:
                usage = Usage(
                    chunk.usage.prompt_tokens or 0,
                    chunk.usage.completion_tokens or 0,
                )
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta
            if delta is not None:
                if delta.content:
                    text_parts.append(delta.content)
                    yield TextDelta(delta.content)
                for fragment in delta.tool_calls or []:
                    slot = pending.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                    if fragment.id:
                        slot["id"] = fragment.id
                    if fragment.function is not None:
                        if fragment.function.name:
                            slot["name"] += fragment.function.name
                        if fragment.function.arguments:
                            slot["arguments"] += fragment.function.arguments
            if choice.finish_reason:
                finish_reason = choice.finish_reason

        tool_calls = [
            ToolCallRequest(
                id=slot["id"] or f"call_{index}",
                name=slot["name"],
                arguments=parse_tool_arguments(slot["name"], slot["arguments"]),
                raw_arguments=slot["arguments"] or "{}",
            )
            for index, slot in sorted(pending.items())
        ]
        logger.debug(
            "Generation round finished (reason=%s tool_calls=%d tokens=%d)",
            finish_reason,
            len(tool_calls),
            usage.total_tokens,
        )
        yield RoundResult(
            text="".join(text_parts),
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=finish_reason,
        )


__all__ = [
    "GenerationService",
    "OpenAIGenerationService",
    "RoundItem",
    "RoundResult",
    "TextDelta",
    "ToolCallRequest",
    "Usage",
    "assistant_tool_call_message",
    "parse_tool_arguments",
    "tool_result_message",
]
