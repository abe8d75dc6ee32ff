from decimal import Decimal

import pytest

from helpdesk.agents.base import SpecialistAgent
from helpdesk.agents.billing import build_billing_agent
from helpdesk.agents.order import build_order_agent
from helpdesk.agents.schemas import AgentType
from helpdesk.agents.support import build_support_agent
from helpdesk.agents.tools import Tool, ToolParameter, money
from helpdesk.commerce.schemas import OrderStatus, PaymentStatus, RefundStatus
from helpdesk.errors import ToolArgumentError, UnknownToolError
from helpdesk.llm import parse_tool_arguments


# ---------------------------------------------------------------------------
# Declarations


def test_optional_flag_wins_over_description():
    assert ToolParameter("string", "optional looking text", optional=False).is_optional is False
    assert ToolParameter("string", "Plain text", optional=True).is_optional is True
    assert ToolParameter("string", "Filter (optional)").is_optional is True
    assert ToolParameter("string", "Required value").is_optional is False


def test_unknown_parameter_kind_is_rejected():
    with pytest.raises(ValueError):
        ToolParameter("object", "nested")


def test_function_and_input_schemas_share_parameters():
    tool = Tool(
        name="lookup",
        description="Look something up",
        execute=lambda params, user_id: params,
        parameters={
            "query": ToolParameter("string", "Search text", optional=False),
            "tags": ToolParameter("array", "Tags", optional=True),
        },
    )

    expected = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Search text"},
            "tags": {"type": "array", "description": "Tags", "items": {}},
        },
        "required": ["query"],
    }
    assert tool.as_function_schema() == {
        "type": "function",
        "function": {"name": "lookup", "description": "Look something up", "parameters": expected},
    }
    assert tool.as_input_schema() == {
        "name": "lookup",
        "description": "Look something up",
        "input_schema": expected,
    }


def test_coerce_arguments_converts_and_validates():
    tool = Tool(
        name="t",
        description="",
        execute=lambda params, user_id: params,
        parameters={
            "limit": ToolParameter("number", "limit", optional=True),
            "flag": ToolParameter("boolean", "flag", optional=True),
            "name": ToolParameter("string", "name", optional=False),
        },
    )

    assert tool.coerce_arguments({"name": 12, "limit": "5", "flag": "true", "extra": 1}) == {
        "name": "12",
        "limit": 5,
        "flag": True,
    }
    assert tool.coerce_arguments({"name": "x", "limit": None}) == {"name": "x"}
    with pytest.raises(ToolArgumentError, match="missing required parameters: name"):
        tool.coerce_arguments({})
    with pytest.raises(ToolArgumentError):
        tool.coerce_arguments({"name": "x", "limit": "many"})


@pytest.mark.parametrize("limit", ["nan", "inf", "-Infinity", "1e400", float("nan"), float("inf")])
def test_coerce_rejects_non_finite_numbers(limit):
    tool = Tool(
        name="t",
        description="",
        execute=lambda params, user_id: params,
        parameters={"limit": ToolParameter("number", "limit", optional=True)},
    )

    with pytest.raises(ToolArgumentError, match="finite number"):
        tool.coerce_arguments({"limit": limit})


def test_duplicate_tool_registration_is_rejected():
    tool = Tool(name="dup", description="", execute=lambda params, user_id: None)
    agent = SpecialistAgent(AgentType.ORDER, "Order", "", "prompt", [tool])

    with pytest.raises(ValueError):
        agent.register_tool(tool)


def test_execute_unknown_tool_raises(store):
    agent = build_order_agent(store)

    with pytest.raises(UnknownToolError):
        agent.execute_tool("get_invoice", {}, "user-1")


def test_every_declared_parameter_sets_optional_flag(store):
    for agent in (build_order_agent(store), build_billing_agent(store), build_support_agent(store)):
        for tool in agent.tools:
            for param in tool.parameters.values():
                assert param.optional is not None, (agent.type, tool.name)


def test_tool_order_follows_registration(store):
    assert [t.name for t in build_order_agent(store).tools] == [
        "get_order_status",
        "get_order_history",
        "track_shipment",
        "cancel_order",
    ]
    assert [t.name for t in build_billing_agent(store).tools] == [
        "get_payment_history",
        "get_invoice",
        "request_refund",
        "update_payment_method",
    ]
    assert [t.name for t in build_support_agent(store).tools] == [
        "search_knowledge_base",
        "get_user_info",
        "escalate_to_human",
    ]


def test_money_formats_two_decimals():
    assert money(Decimal("79.9")) == "79.90"
    assert money(5) == "5.00"
    assert money(None) is None


# ---------------------------------------------------------------------------
# Order tools


def test_get_order_status_is_scoped_to_owner(store):
    agent = build_order_agent(store)

    found = agent.execute_tool("get_order_status", {"order_number": "ORD-1234"}, "user-1")
    hidden = agent.execute_tool("get_order_status", {"order_number": "ORD-1234"}, "user-2")

    assert found["found"] is True
    assert found["status"] == "shipped"
    assert found["total_amount"] == "79.99"
    assert found["tracking_id"] == "TRK-2345678901"
    assert found["can_cancel"] is False
    assert hidden == {
        "found": False,
        "error": "Order ORD-1234 not found or you don't have access to it",
    }


def test_get_order_history_is_newest_first_and_capped(store):
    agent = build_order_agent(store)

    history = agent.execute_tool("get_order_history", {"limit": 100}, "user-1")
    limited = agent.execute_tool("get_order_history", {"limit": "2"}, "user-1")
    shipped = agent.execute_tool("get_order_history", {"status": "shipped"}, "user-1")

    assert [o["order_number"] for o in history["orders"]] == [
        "ORD-1003",
        "ORD-1002",
        "ORD-1234",
        "ORD-1001",
    ]
    assert limited["total_orders"] == 2
    assert [o["order_number"] for o in shipped["orders"]] == ["ORD-1234"]


@pytest.mark.parametrize("raw_limit", ['"1e400"', '"nan"', "NaN", "Infinity"])
def test_history_limit_must_be_finite(store, raw_limit):
    order_agent = build_order_agent(store)
    billing_agent = build_billing_agent(store)
    params = parse_tool_arguments("get_order_history", f'{{"limit": {raw_limit}}}')

    with pytest.raises(ToolArgumentError):
        order_agent.execute_tool("get_order_history", params, "user-1")
    with pytest.raises(ToolArgumentError):
        billing_agent.execute_tool("get_payment_history", params, "user-1")


def test_track_shipment_builds_timeline_most_recent_first(store):
    agent = build_order_agent(store)

    delivered = agent.execute_tool("track_shipment", {"order_number": "ORD-1001"}, "user-1")
    pending = agent.execute_tool("track_shipment", {"order_number": "ORD-1003"}, "user-1")

    statuses = [event["status"] for event in delivered["events"]]
    assert statuses == [
        "Delivered",
        "Out for delivery",
        "Shipped - In transit",
        "Order processed",
        "Order received",
    ]
    assert delivered["events"][0]["location"] == "New York"
    assert delivered["carrier"] == "FedEx"
    assert pending["tracking"] is None
    assert pending["message"] == "Tracking information will be available once the order ships"


def test_cancel_order_only_before_shipping(store):
    agent = build_order_agent(store)

    refused = agent.execute_tool(
        "cancel_order", {"order_number": "ORD-1234", "reason": "Changed mind"}, "user-1"
    )
    cancelled = agent.execute_tool(
        "cancel_order", {"order_number": "ORD-1003", "reason": "Found cheaper"}, "user-1"
    )

    assert refused["success"] is False
    assert refused["can_cancel"] is False
    assert refused["current_status"] == "shipped"
    assert store.find_order("ORD-1234", "user-1").status is OrderStatus.SHIPPED
    assert cancelled["success"] is True
    assert cancelled["previous_status"] == "pending"
    assert cancelled["new_status"] == "cancelled"
    assert store.find_order("ORD-1003", "user-1").status is OrderStatus.CANCELLED


def test_cancel_order_requires_reason(store):
    agent = build_order_agent(store)

    with pytest.raises(ToolArgumentError):
        agent.execute_tool("cancel_order", {"order_number": "ORD-1003"}, "user-1")


# ---------------------------------------------------------------------------
# Billing tools


def test_payment_history_summary(store):
    agent = build_billing_agent(store)

    result = agent.execute_tool("get_payment_history", {}, "user-2")

    assert result["summary"] == {"total_payments": 3, "completed": 1, "pending": 0, "refunded": 1}
    assert [p["invoice_number"] for p in result["payments"]] == ["INV-2002", "INV-2003", "INV-2001"]


def test_get_invoice_includes_order_and_refund_info(store):
    agent = build_billing_agent(store)

    invoice = agent.execute_tool("get_invoice", {"invoice_number": "INV-1234"}, "user-1")
    refunded = agent.execute_tool("get_invoice", {"invoice_number": "INV-2003"}, "user-2")

    assert invoice["order"]["order_number"] == "ORD-1234"
    assert invoice["refund"] is None
    assert invoice["can_refund"] is True
    assert refunded["refund"] == {"status": "completed", "amount": "69.99", "reason": "Customer request"}
    assert refunded["can_refund"] is False


def test_partial_refund_updates_payment(store):
    agent = build_billing_agent(store)

    result = agent.execute_tool(
        "request_refund",
        {"invoice_number": "INV-1234", "reason": "Damaged", "amount": 20},
        "user-1",
    )

    assert result["success"] is True
    assert result["is_partial_refund"] is True
    assert result["refund_amount"] == "20.00"
    assert result["original_amount"] == "79.99"
    payment = store.find_payment("INV-1234", "user-1")
    assert payment.status is PaymentStatus.PARTIALLY_REFUNDED
    assert payment.refund_status is RefundStatus.PROCESSING
    assert payment.refund_amount == Decimal("20")


def test_full_refund_defaults_to_original_amount(store):
    agent = build_billing_agent(store)

    result = agent.execute_tool(
        "request_refund", {"invoice_number": "INV-1001", "reason": "Not needed"}, "user-1"
    )

    assert result["is_partial_refund"] is False
    assert store.find_payment("INV-1001", "user-1").status is PaymentStatus.REFUNDED


@pytest.mark.parametrize(
    "invoice, amount, error",
    [
        ("INV-9999", None, "Invoice INV-9999 not found"),
        ("INV-1002", None, "Cannot refund a payment with status: pending"),
        ("INV-1234", 500, "Refund amount ($500.00) exceeds payment amount ($79.99)"),
        ("INV-1234", -5, "Refund amount must be greater than zero"),
    ],
)
def test_refund_rejections(store, invoice, amount, error):
    agent = build_billing_agent(store)
    params = {"invoice_number": invoice, "reason": "test"}
    if amount is not None:
        params["amount"] = amount
    before = store.find_payment(invoice, "user-1")

    result = agent.execute_tool("request_refund", params, "user-1")

    assert result["success"] is False
    assert result["error"] == error
    assert store.find_payment(invoice, "user-1") == before


@pytest.mark.parametrize("raw_amount", ["NaN", "Infinity", '"nan"', '"-inf"'])
def test_refund_amount_must_be_finite(store, raw_amount):
    agent = build_billing_agent(store)
    params = parse_tool_arguments(
        "request_refund", f'{{"invoice_number": "INV-1234", "reason": "x", "amount": {raw_amount}}}'
    )

    with pytest.raises(ToolArgumentError):
        agent.execute_tool("request_refund", params, "user-1")

    payment = store.find_payment("INV-1234", "user-1")
    assert payment.status is PaymentStatus.COMPLETED
    assert payment.refund_status is None
    assert payment.refund_amount is None


def test_refund_against_stale_status_is_refused(store, monkeypatch):
    agent = build_billing_agent(store)
    stale = store.find_payment("INV-1234", "user-1")
    monkeypatch.setattr(store, "find_payment", lambda invoice_number, user_id: stale)

    first = agent.execute_tool(
        "request_refund", {"invoice_number": "INV-1234", "reason": "Damaged", "amount": 20}, "user-1"
    )
    second = agent.execute_tool(
        "request_refund", {"invoice_number": "INV-1234", "reason": "Again"}, "user-1"
    )

    assert first["success"] is True
    assert second["success"] is False
    assert "updated by another request" in second["error"]
    monkeypatch.undo()
    payment = store.find_payment("INV-1234", "user-1")
    assert payment.status is PaymentStatus.PARTIALLY_REFUNDED
    assert payment.refund_amount == Decimal("20")
    assert payment.refund_reason == "Damaged"


def test_update_payment_method_is_informational(store):
    agent = build_billing_agent(store)

    result = agent.execute_tool(
        "update_payment_method", {"current_method": "paypal", "new_method": "credit_card"}, "user-1"
    )

    assert result["can_update_via_chat"] is False
    assert result["requested_method"] == "credit_card"
    assert store.find_payment("INV-1234", "user-1").method == "paypal"


# ---------------------------------------------------------------------------
# Support tools


def test_search_knowledge_base_ranks_by_priority(store):
    agent = build_support_agent(store)

    result = agent.execute_tool("search_knowledge_base", {"query": "password"}, "user-1")
    billing = agent.execute_tool(
        "search_knowledge_base", {"query": "payment", "category": "billing"}, "user-1"
    )

    assert result["found"] == 1
    assert result["articles"][0]["question"] == "How do I reset my password?"
    assert [a["question"] for a in billing["articles"]] == [
        "What payment methods do you accept?",
        "Why was my payment declined?",
    ]


def test_get_user_info_with_orders(store):
    agent = build_support_agent(store)

    info = agent.execute_tool("get_user_info", {"include_orders": True}, "user-1")
    missing = agent.execute_tool("get_user_info", {}, "nobody")

    assert info["name"] == "John Smith"
    assert info["orders"]["total_orders"] == 4
    assert info["orders"]["recent_orders"][0]["order_number"] == "ORD-1003"
    assert missing == {"found": False, "error": "User not found"}


def test_escalate_to_human_normalises_priority(store):
    agent = build_support_agent(store)

    high = agent.execute_tool("escalate_to_human", {"reason": "Angry", "priority": "HIGH"}, "user-1")
    odd = agent.execute_tool("escalate_to_human", {"reason": "Hm", "priority": "urgent"}, "user-1")

    assert high["escalated"] is True
    assert high["ticket_id"].startswith("ESC-")
    assert high["estimated_wait_time"] == "15-30 minutes"
    assert odd["estimated_wait_time"] == "4-8 hours"
