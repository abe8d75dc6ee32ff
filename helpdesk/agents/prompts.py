"""Prompt builders for the routing classifier and the history summariser."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from ..conversations.models import ChatMessage
from .schemas import AgentType


class PromptTemplateStore:
    """Hold the domain descriptions the router presents to the classifier."""

    _DEFAULT_DOMAINS: Mapping[AgentType, str] = {
        AgentType.GENERAL_SUPPORT: (
            "General help, FAQs, account issues, troubleshooting, password resets, general questions"
        ),
        AgentType.ORDER: (
            "Order status, tracking, shipping, order modifications, cancellations, delivery issues"
        ),
        AgentType.BILLING: (
            "Payments, invoices, refunds, subscription issues, billing disputes, payment methods"
        ),
    }

    def __init__(self, extra_domains: Mapping[AgentType, str] | None = None):
        self._domains: dict[AgentType, str] = dict(self._DEFAULT_DOMAINS)
        if extra_domains:
            self._domains.update(extra_domains)

    def domains(self) -> dict[AgentType, str]:
        return dict(self._domains)

    def render_router(
        self, message: str, recent_context: Sequence[ChatMessage], *, max_turns: int = 3
    ) -> str:
        """Return the classification prompt for ``message``."""

        context_block = ""
        tail = list(recent_context)[-max_turns:] if max_turns > 0 else []
        if tail:
            lines = "\n".join(f"{m.role}: {m.content}" for m in tail)
            context_block = f"Recent conversation context:\n{lines}\n\n"

        agent_lines = "\n".join(
            f"{index}. {agent.value.upper()} - {description}"
            for index, (agent, description) in enumerate(self._domains.items(), start=1)
        )
        choices = " | ".join(f'"{agent.value}"' for agent in self._domains)
        return (
            "You are a customer support routing system. Analyze the customer's message and "
            "determine which specialized agent should handle it.\n\n"
            f'Customer message: "{message}"\n\n'
            f"{context_block}"
            f"Available agents:\n{agent_lines}\n\n"
            "Respond with ONLY valid JSON in this exact format:\n"
            "{\n"
            f'  "agent": {choices},\n'
            '  "confidence": 0.0-1.0,\n'
            '  "reasoning": "Brief explanation of why this agent was chosen",\n'
            '  "entities": ["any order numbers, invoice numbers, or tracking IDs mentioned"]\n'
            "}"
        )

    def render_summary(self, messages: Sequence[ChatMessage]) -> str:
        """Return the instruction used to compact older conversation turns."""

        transcript = "\n".join(f"{m.role}: {m.content}" for m in messages)
        return (
            "Summarize the following customer support conversation in 2-3 sentences. "
            "Preserve every order number (ORD-), invoice number (INV-), tracking number "
            "(TRK-) and monetary amount exactly as written, and note any unresolved "
            "request.\n\n"
            f"{transcript}"
        )


__all__ = ["PromptTemplateStore"]
