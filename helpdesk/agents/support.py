"""General support specialist: FAQs, account details and human escalation."""

from __future__ import annotations

import logging
import time
from typing import Any

from ..commerce.store import CommerceStore
from .base import SpecialistAgent
from .schemas import AgentType
from .tools import Tool, ToolParameter, isoformat, money

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a friendly and helpful customer support agent. Your role is to assist customers with general inquiries, account issues, FAQs, and troubleshooting.

Guidelines:
- Be empathetic and professional in all interactions
- Use the search_knowledge_base tool to find relevant FAQ answers before responding
- Use get_user_info to look up account details when needed
- If an issue cannot be resolved, offer to escalate to a human agent
- Always confirm you understand the customer's issue before providing a solution
- If the query is about orders or billing, politely redirect to the appropriate specialist

Available tools:
- search_knowledge_base: Search FAQs and knowledge base articles
- get_user_info: Get user account information
- escalate_to_human: Flag conversation for human review

Remember: Your goal is to resolve issues efficiently while ensuring customer satisfaction."""

SEARCH_LIMIT = 5
RECENT_ORDER_LIMIT = 5

ESCALATION_WAIT_TIMES = {
    "high": "15-30 minutes",
    "medium": "1-2 hours",
    "low": "4-8 hours",
}


class SupportTools:
    """Tool bodies for the general support specialist."""

    def __init__(self, store: CommerceStore) -> None:
        self._store = store

    def search_knowledge_base(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        articles = self._store.search_articles(
            params["query"], category=params.get("category"), limit=SEARCH_LIMIT
        )
        return {
            "found": len(articles),
            "articles": [
                {"category": a.category, "question": a.question, "answer": a.answer}
                for a in articles
            ],
        }

    def get_user_info(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        customer = self._store.get_customer(user_id)
        if customer is None:
            return {"found": False, "error": "User not found"}

        result: dict[str, Any] = {
            "found": True,
            "id": customer.id,
            "email": customer.email,
            "name": customer.name,
            "member_since": isoformat(customer.created_at),
        }
        if params.get("include_orders"):
            recent = self._store.list_orders(user_id, limit=RECENT_ORDER_LIMIT)
            result["orders"] = {
                "recent_orders": [
                    {
                        "order_number": o.order_number,
                        "status": o.status.value,
                        "total_amount": money(o.total_amount),
                        "created_at": isoformat(o.created_at),
                    }
                    for o in recent
                ],
                "total_orders": self._store.count_orders(user_id),
            }
        return result

    def escalate_to_human(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        reason = params["reason"]
        priority = str(params["priority"]).lower()
        if priority not in ESCALATION_WAIT_TIMES:
            priority = "low"
        ticket_id = f"ESC-{int(time.time() * 1000)}"
        logger.warning(
            "Conversation escalated to a human agent (ticket=%s user=%s priority=%s)",
            ticket_id,
            user_id,
            priority,
        )
        return {
            "escalated": True,
            "ticket_id": ticket_id,
            "message": (
                f"Your request has been escalated to a human agent with {priority} priority. "
                "A support representative will review your case shortly."
            ),
            "estimated_wait_time": ESCALATION_WAIT_TIMES[priority],
            "reason": reason,
        }


def build_support_agent(store: CommerceStore) -> SpecialistAgent:
    tools = SupportTools(store)
    return SpecialistAgent(
        AgentType.GENERAL_SUPPORT,
        name="Support Agent",
        description="Handles general inquiries, FAQs, account issues, and troubleshooting",
        system_prompt=SYSTEM_PROMPT,
        tools=[
            Tool(
                name="search_knowledge_base",
                description="Search the FAQ and knowledge base for answers to common questions",
                execute=tools.search_knowledge_base,
                parameters={
                    "query": ToolParameter(
                        "string", "The search query to find relevant articles", optional=False
                    ),
                    "category": ToolParameter(
                        "string",
                        "Optional category filter (Account, Orders, Returns, Billing, Products)",
                        optional=True,
                    ),
                },
            ),
            Tool(
                name="get_user_info",
                description="Retrieve user account information",
                execute=tools.get_user_info,
                parameters={
                    "include_orders": ToolParameter(
                        "boolean",
                        "Whether to include a recent order summary (optional)",
                        optional=True,
                    ),
                },
            ),
            Tool(
                name="escalate_to_human",
                description=(
                    "Flag the conversation for human agent review when the issue cannot be "
                    "resolved automatically"
                ),
                execute=tools.escalate_to_human,
                parameters={
                    "reason": ToolParameter("string", "The reason for escalation", optional=False),
                    "priority": ToolParameter("string", "Priority level: low, medium, high", optional=False),
                },
            ),
        ],
    )


__all__ = ["SupportTools", "build_support_agent"]
