"""Typed events emitted while an agent turn is streamed to the caller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

GENERIC_ERROR_MESSAGE = "An error occurred while generating response"


class StreamEventType(str, Enum):
    STATUS = "status"
    REASONING = "reasoning"
    TEXT = "text"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    type: StreamEventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in (StreamEventType.DONE, StreamEventType.ERROR)

    @classmethod
    def status(cls, status: str, **extra: Any) -> "StreamEvent":
        return cls(StreamEventType.STATUS, {"status": status, **extra})

    @classmethod
    def reasoning(cls, text: str) -> "StreamEvent":
        return cls(StreamEventType.REASONING, {"text": text})

    @classmethod
    def text(cls, chunk: str) -> "StreamEvent":
        return cls(StreamEventType.TEXT, {"text": chunk})

    @classmethod
    def tool_call(cls, name: str, arguments: dict[str, Any]) -> "StreamEvent":
        return cls(StreamEventType.TOOL_CALL, {"name": name, "input": arguments})

    @classmethod
    def tool_result(cls, name: str, result: Any) -> "StreamEvent":
        return cls(StreamEventType.TOOL_RESULT, {"name": name, "result": result})

    @classmethod
    def done(cls, message_id: str, tokens_used: int) -> "StreamEvent":
        return cls(StreamEventType.DONE, {"message_id": message_id, "tokens_used": tokens_used})

    @classmethod
    def error(cls, message: str = GENERIC_ERROR_MESSAGE) -> "StreamEvent":
        return cls(StreamEventType.ERROR, {"message": message})

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "data": dict(self.data)}


__all__ = ["GENERIC_ERROR_MESSAGE", "StreamEvent", "StreamEventType"]
