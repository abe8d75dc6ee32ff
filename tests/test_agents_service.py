"""Regression tests for :mod:`helpdesk.agents.service`."""

import asyncio

import pytest

from conftest import collect, routing_reply, text_round
from helpdesk.agents.registry import AgentRegistry
from helpdesk.agents.schemas import AgentType
from helpdesk.errors import UnknownAgentError
from helpdesk.streaming.events import GENERIC_ERROR_MESSAGE, StreamEventType


def test_default_registry_has_three_specialists(store):
    registry = AgentRegistry.default(store)

    assert len(registry) == 3
    assert {agent.type for agent in registry} == set(AgentType)
    assert registry.get("support") is registry.get(AgentType.GENERAL_SUPPORT)
    assert registry.get("general_support").type is AgentType.GENERAL_SUPPORT
    assert registry.get("shipping") is None
    with pytest.raises(UnknownAgentError):
        registry.require("shipping")


def test_capabilities_view(container):
    capabilities = container.agents.get_capabilities("order")

    assert capabilities.type is AgentType.ORDER
    assert capabilities.name == "Order Agent"
    assert [tool.name for tool in capabilities.tools][0] == "get_order_status"
    assert [c.type for c in container.agents.list_capabilities()] == [
        AgentType.GENERAL_SUPPORT,
        AgentType.ORDER,
        AgentType.BILLING,
    ]
    assert container.agents.get_capabilities("nope") is None


def test_get_agent_and_get_all_agents(container):
    assert container.agents.get_agent("billing").name == "Billing Agent"
    assert container.agents.get_agent("unknown") is None
    assert len(container.agents.get_all_agents()) == 3


def test_route_message_delegates_to_router(container, generation):
    generation.completions.append(routing_reply("billing", 0.9, "Invoice question"))

    decision = asyncio.run(container.agents.route_message("Send me INV-1234"))

    assert decision.agent is AgentType.BILLING


def test_execute_unknown_agent_yields_single_error(container, repository):
    conversation = repository.create_conversation("user-1", "Test")

    events = collect(
        container.agents.execute_agent("shipping", conversation.id, "user-1", [], None)
    )

    assert len(events) == 1
    assert events[0].type is StreamEventType.ERROR
    assert events[0].data == {"message": GENERIC_ERROR_MESSAGE}
    assert repository.count_messages(conversation.id) == 0


def test_execute_agent_streams_with_agent_prompt(container, generation, repository):
    conversation = repository.create_conversation("user-1", "Test")
    generation.rounds.append(text_round("Hello!"))

    events = collect(
        container.agents.execute_agent("billing", conversation.id, "user-1", [], "Billing question")
    )

    assert events[-1].type is StreamEventType.DONE
    system = generation.round_calls[0]["messages"][0]
    assert system["role"] == "system"
    assert system["content"].startswith("You are a specialized billing support agent")
    saved = repository.list_messages(conversation.id)[-1]
    assert saved.agent_type == "billing"
    assert saved.reasoning == "Billing question"
