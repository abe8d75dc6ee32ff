import asyncio

import pytest

from conftest import collect, event_types, routing_reply, text_round, tool_round
from helpdesk.conversations import schemas
from helpdesk.conversations.service import DEFAULT_TITLE
from helpdesk.errors import ForbiddenError, NotFoundError
from helpdesk.streaming.events import GENERIC_ERROR_MESSAGE


@pytest.fixture
def service(container):
    return container.conversations


def test_order_question_is_routed_to_order_agent(service, generation, repository):
    conversation = service.create_conversation("user-1")
    generation.completions.append(
        routing_reply("order", 0.95, "Customer asks about order status", ["ORD-1234"])
    )
    generation.rounds.extend(
        [
            tool_round(("get_order_status", {"order_number": "ORD-1234"})),
            text_round("ORD-1234 shipped via UPS."),
        ]
    )

    events = collect(service.send_message(conversation.id, "user-1", "Where is ORD-1234?"))

    assert event_types(events) == [
        "status",
        "reasoning",
        "status",
        "tool_call",
        "tool_result",
        "text",
        "done",
    ]
    assert events[0].data["agent"] == "order"
    assert events[1].data["text"] == "Customer asks about order status"

    messages = repository.list_messages(conversation.id)
    assert [m.role.value for m in messages] == ["user", "assistant"]
    assert messages[0].content == "Where is ORD-1234?"
    assert messages[1].agent_type == "order"
    assert messages[1].tool_calls[0].tool_name == "get_order_status"

    updated = repository.get_conversation(conversation.id)
    assert updated.metadata["last_agent"] == "order"
    assert updated.metadata["entities"] == ["ORD-1234"]
    assert updated.metadata["extracted_entities"]["order_numbers"] == ["ORD-1234"]


def test_router_sees_previous_turns_but_not_current_message(service, generation):
    conversation = service.create_conversation("user-1")
    generation.completions.extend(
        [routing_reply("order", 0.9), routing_reply("billing", 0.9)]
    )
    generation.rounds.extend([text_round("First answer"), text_round("Second answer")])

    collect(service.send_message(conversation.id, "user-1", "First question"))
    collect(service.send_message(conversation.id, "user-1", "Refund INV-1234 please"))

    second_prompt = generation.complete_calls[1]["messages"][0]["content"]
    assert "user: First question" in second_prompt
    assert "assistant: First answer" in second_prompt
    assert "user: Refund INV-1234 please" not in second_prompt
    history = generation.round_calls[1]["messages"]
    assert history[-1] == {"role": "user", "content": "Refund INV-1234 please"}


def test_routing_failure_falls_back_to_general_support(service, generation):
    conversation = service.create_conversation("user-1")
    generation.completions.append("I think billing?")
    generation.rounds.append(text_round("Happy to help."))

    events = collect(service.send_message(conversation.id, "user-1", "Hello"))

    assert events[0].data["agent"] == "general-support"
    assert events[1].data["text"] == "routing failed"
    assert events[-1].type.value == "done"


def test_metadata_merge_keeps_existing_keys(service, generation, repository):
    conversation = service.create_conversation("user-1")
    repository.update_conversation(conversation.id, metadata={"channel": "web"})
    generation.completions.append(routing_reply("billing", 0.9, "", ["INV-1001"]))
    generation.rounds.append(text_round("Checking."))

    collect(service.send_message(conversation.id, "user-1", "Invoice INV-1001 for $199.97"))

    metadata = repository.get_conversation(conversation.id).metadata
    assert metadata["channel"] == "web"
    assert metadata["last_agent"] == "billing"
    assert metadata["extracted_entities"]["amounts"] == ["$199.97"]


def test_send_message_checks_ownership_before_streaming(service):
    conversation = service.create_conversation("user-1")

    with pytest.raises(NotFoundError):
        service.send_message("missing", "user-1", "Hi")
    with pytest.raises(ForbiddenError):
        service.send_message(conversation.id, "user-2", "Hi")


def test_failure_while_preparing_turn_yields_error(service, repository, monkeypatch):
    conversation = service.create_conversation("user-1")

    def _explode(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(repository, "create_message", _explode)

    events = collect(service.send_message(conversation.id, "user-1", "Hi"))

    assert event_types(events) == ["error"]
    assert events[0].data == {"message": GENERIC_ERROR_MESSAGE}


def test_turns_on_one_conversation_are_serialised(service, generation, repository):
    conversation = service.create_conversation("user-1")
    generation.completions.extend([routing_reply("order", 0.9), routing_reply("order", 0.9)])
    generation.rounds.extend([text_round("Answer one"), text_round("Answer two")])

    async def _drain(content):
        return [event async for event in service.send_message(conversation.id, "user-1", content)]

    async def _both():
        return await asyncio.gather(_drain("Question one"), _drain("Question two"))

    asyncio.run(_both())

    contents = [m.content for m in repository.list_messages(conversation.id)]
    assert contents == ["Question one", "Answer one", "Question two", "Answer two"]


def test_create_conversation_titles(service):
    assert service.create_conversation("user-1").title == DEFAULT_TITLE
    assert service.create_conversation("user-1", title="Billing").title == "Billing"
    assert (
        service.create_conversation("user-1", initial_message="Where is my order?").title
        == "Where is my order?"
    )
    long_title = service.create_conversation("user-1", initial_message="word " * 30).title
    assert len(long_title) <= 50
    assert long_title.endswith("...")


def test_list_conversations_paginates_per_user(service):
    for index in range(3):
        service.create_conversation("user-1", title=f"C{index}")
    service.create_conversation("user-2", title="Other")

    page = service.list_conversations("user-1", page=2, limit=2)

    assert page.pagination.total == 3
    assert page.pagination.total_pages == 2
    assert len(page.items) == 1
    assert all(item.user_id == "user-1" for item in page.items)


def test_get_update_and_delete_conversation(service, repository):
    conversation = service.create_conversation("user-1", title="Old")
    repository.create_message(
        schemas.MessageCreate(
            conversation_id=conversation.id, role=schemas.MessageRole.USER, content="Hi"
        )
    )

    detail = service.get_conversation(conversation.id, "user-1")
    assert [m.content for m in detail.messages] == ["Hi"]

    updated = service.update_conversation(
        conversation.id,
        "user-1",
        schemas.ConversationUpdate(title="New", status=schemas.ConversationStatus.RESOLVED),
    )
    assert updated.title == "New"
    assert updated.status is schemas.ConversationStatus.RESOLVED

    with pytest.raises(ForbiddenError):
        service.delete_conversation(conversation.id, "user-2")
    service.delete_conversation(conversation.id, "user-1")
    with pytest.raises(NotFoundError):
        service.get_conversation(conversation.id, "user-1")


def test_list_messages_paginates(service, repository):
    conversation = service.create_conversation("user-1")
    for index in range(5):
        repository.create_message(
            schemas.MessageCreate(
                conversation_id=conversation.id,
                role=schemas.MessageRole.USER,
                content=f"m{index}",
            )
        )

    page = service.list_messages(conversation.id, "user-1", page=2, limit=2)

    assert [m.content for m in page.items] == ["m2", "m3"]
    assert page.pagination.total == 5
    assert page.pagination.total_pages == 3
