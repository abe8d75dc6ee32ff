"""Transient domain models used while handling a single user turn."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ChatMessage:
    """Role/content pair handed to the generation service."""

    role: str
    content: str

    def as_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class ExtractedEntities:
    """Structured identifiers recognised in conversation text."""

    order_numbers: list[str] = field(default_factory=list)
    invoice_numbers: list[str] = field(default_factory=list)
    tracking_ids: list[str] = field(default_factory=list)
    amounts: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, list[str]]:
        return {
            "order_numbers": list(self.order_numbers),
            "invoice_numbers": list(self.invoice_numbers),
            "tracking_ids": list(self.tracking_ids),
            "amounts": list(self.amounts),
        }

    def is_empty(self) -> bool:
        return not (
            self.order_numbers or self.invoice_numbers or self.tracking_ids or self.amounts
        )


@dataclass
class ConversationContext:
    """Bounded history plus entities for one agent turn."""

    messages: list[ChatMessage]
    entities: ExtractedEntities
    token_count: int
    compacted: bool
