"""Message classifier that picks the specialist for each user turn.

Routing never raises: any failure to obtain or parse a classification falls
back to the general support agent, and classifications below the confidence
threshold are redirected there as well.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from ..conversations.models import ChatMessage
from ..llm import GenerationService
from .prompts import PromptTemplateStore
from .responses import ResponseParameterStore
from .schemas import AgentType, RoutingDecision

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.6
FALLBACK_CONFIDENCE = 0.5
FALLBACK_REASONING = "routing failed"

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def fallback_decision() -> RoutingDecision:
    return RoutingDecision(
        agent=AgentType.GENERAL_SUPPORT,
        confidence=FALLBACK_CONFIDENCE,
        reasoning=FALLBACK_REASONING,
        entities=[],
    )


def parse_routing_response(raw: str) -> RoutingDecision:
    """Parse the classifier reply into a :class:`RoutingDecision`.

    Raises:
        ValueError: if the reply is not a JSON object with a known agent and
            a confidence in ``[0, 1]``.
    """

    text = (raw or "").strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    payload: Any = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("Routing response is not a JSON object")
    if "agent" not in payload or "confidence" not in payload:
        raise ValueError("Routing response is missing agent or confidence")
    entities = payload.get("entities") or []
    if not isinstance(entities, list):
        raise ValueError("Routing entities must be a list")
    return RoutingDecision(
        agent=AgentType.parse(payload["agent"]),
        confidence=float(payload["confidence"]),
        reasoning=str(payload.get("reasoning") or ""),
        entities=[str(entity) for entity in entities],
    )


class Router:
    """Classify a message with one non-streaming generation call."""

    def __init__(
        self,
        generation: GenerationService,
        *,
        prompts: PromptTemplateStore | None = None,
        parameters: ResponseParameterStore | None = None,
        model: str | None = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        context_turns: int = 3,
    ) -> None:
        self._generation = generation
        self._prompts = prompts or PromptTemplateStore()
        self._parameters = parameters or ResponseParameterStore()
        self._model = model
        self._threshold = confidence_threshold
        self._context_turns = context_turns

    async def route_message(
        self, message: str, recent_context: Sequence[ChatMessage] = ()
    ) -> RoutingDecision:
        prompt = self._prompts.render_router(
            message, recent_context, max_turns=self._context_turns
        )
        params = self._parameters.merge("router", {"model": self._model} if self._model else None)
        try:
            raw = await self._generation.complete([{"role": "user", "content": prompt}], **params)
            decision = parse_routing_response(raw)
        except Exception:
            logger.warning("Routing failed for message %r", message[:100], exc_info=True)
            return fallback_decision()

        logger.info(
            "Message routed to %s (confidence=%.2f): %s",
            decision.agent.value,
            decision.confidence,
            decision.reasoning,
        )

        if decision.confidence < self._threshold:
            logger.info(
                "Low confidence %.2f for %s agent, defaulting to general support",
                decision.confidence,
                decision.agent.value,
            )
            return decision.model_copy(
                update={
                    "agent": AgentType.GENERAL_SUPPORT,
                    "reasoning": (
                        f"Low confidence ({decision.confidence}) for {decision.agent.value} "
                        f"agent - defaulting to general-support agent. "
                        f"Original reasoning: {decision.reasoning}"
                    ),
                }
            )
        return decision


__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "Router",
    "fallback_decision",
    "parse_routing_response",
]
