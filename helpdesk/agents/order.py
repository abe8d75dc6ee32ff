"""Order specialist: status lookups, history, shipment tracking and cancellation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from ..commerce.schemas import CANCELLABLE_ORDER_STATUSES, Order, OrderStatus
from ..commerce.store import CommerceStore
from .base import SpecialistAgent
from .schemas import AgentType
from .tools import Tool, ToolParameter, isoformat, money

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a specialized order support agent. Your role is to help customers with all order-related inquiries including order status, tracking, shipping, modifications, and cancellations.

Guidelines:
- Always use get_order_status to look up order details before responding
- Provide specific tracking information when available
- For cancellation requests, verify the order is eligible (pending/processing status only)
- Be clear about estimated delivery dates and shipping timelines
- If an order cannot be cancelled, explain why and offer alternatives
- For complex issues involving payments, suggest the billing team

Available tools:
- get_order_status: Get detailed order status and tracking info
- get_order_history: View the customer's order history
- track_shipment: Get shipment tracking details
- cancel_order: Process order cancellation requests

Remember: Orders can only be cancelled if they haven't shipped yet. Be transparent about order statuses and delivery expectations."""

MAX_HISTORY_LIMIT = 20

STATUS_MESSAGES = {
    OrderStatus.PENDING: "Order received and awaiting processing",
    OrderStatus.PROCESSING: "Order is being prepared for shipment",
    OrderStatus.SHIPPED: "Order has been shipped and is on its way",
    OrderStatus.OUT_FOR_DELIVERY: "Order is out for delivery today",
    OrderStatus.DELIVERED: "Order has been delivered",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.RETURNED: "Order has been returned",
}

CANCEL_REFUSALS = {
    OrderStatus.SHIPPED: "This order has already shipped. Please contact support for return instructions.",
    OrderStatus.OUT_FOR_DELIVERY: "This order is out for delivery. Please refuse delivery or request a return after receiving.",
    OrderStatus.DELIVERED: "This order has been delivered. Please request a return instead.",
    OrderStatus.CANCELLED: "This order has already been cancelled.",
    OrderStatus.RETURNED: "This order has already been returned.",
}

_PROCESSED = {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}
_IN_TRANSIT = {OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}
_OUT_FOR_DELIVERY = {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}


def tracking_events(order: Order) -> list[dict[str, Any]]:
    """Synthesise a tracking timeline from the order status, most recent first."""

    created: datetime = order.created_at
    events = [{"date": isoformat(created), "location": "Warehouse", "status": "Order received"}]
    if order.status in _PROCESSED:
        events.append(
            {"date": isoformat(created + timedelta(hours=2)), "location": "Warehouse", "status": "Order processed"}
        )
    if order.status in _IN_TRANSIT:
        events.append(
            {
                "date": isoformat(created + timedelta(days=1)),
                "location": "Distribution Center",
                "status": "Shipped - In transit",
            }
        )
    if order.status in _OUT_FOR_DELIVERY:
        events.append(
            {"date": isoformat(created + timedelta(days=3)), "location": "Local Facility", "status": "Out for delivery"}
        )
    if order.status is OrderStatus.DELIVERED:
        delivered = order.delivery_date or created + timedelta(days=3)
        city = (order.shipping_address or {}).get("city") or "Destination"
        events.append({"date": isoformat(delivered), "location": city, "status": "Delivered"})
    events.reverse()
    return events


class OrderTools:
    """Tool bodies for the order specialist."""

    def __init__(self, store: CommerceStore) -> None:
        self._store = store

    def get_order_status(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        order_number = params["order_number"]
        order = self._store.find_order(order_number, user_id)
        if order is None:
            return {
                "found": False,
                "error": f"Order {order_number} not found or you don't have access to it",
            }
        return {
            "found": True,
            "order_number": order.order_number,
            "status": order.status.value,
            "status_message": STATUS_MESSAGES.get(order.status, order.status.value),
            "items": order.items,
            "total_amount": money(order.total_amount),
            "tracking_id": order.tracking_id,
            "carrier": order.carrier,
            "delivery_date": isoformat(order.delivery_date),
            "shipping_address": order.shipping_address,
            "created_at": isoformat(order.created_at),
            "can_cancel": order.status in CANCELLABLE_ORDER_STATUSES,
        }

    def get_order_history(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        limit = max(1, min(int(params.get("limit", 10)), MAX_HISTORY_LIMIT))
        orders = self._store.list_orders(user_id, status=params.get("status"), limit=limit)
        return {
            "total_orders": len(orders),
            "orders": [
                {
                    "order_number": order.order_number,
                    "status": order.status.value,
                    "total_amount": money(order.total_amount),
                    "item_count": len(order.items),
                    "created_at": isoformat(order.created_at),
                    "delivery_date": isoformat(order.delivery_date),
                }
                for order in orders
            ],
        }

    def track_shipment(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        order_number = params["order_number"]
        order = self._store.find_order(order_number, user_id)
        if order is None:
            return {"found": False, "error": f"Order {order_number} not found"}

        if not order.tracking_id:
            if order.status in CANCELLABLE_ORDER_STATUSES:
                message = "Tracking information will be available once the order ships"
            else:
                message = "No tracking information available for this order"
            return {
                "found": True,
                "order_number": order.order_number,
                "status": order.status.value,
                "tracking": None,
                "message": message,
            }

        return {
            "found": True,
            "order_number": order.order_number,
            "tracking_id": order.tracking_id,
            "carrier": order.carrier or "Standard Shipping",
            "status": order.status.value,
            "estimated_delivery": isoformat(order.delivery_date),
            "events": tracking_events(order),
        }

    def cancel_order(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        order_number = params["order_number"]
        reason = params["reason"]
        order = self._store.find_order(order_number, user_id)
        if order is None:
            return {"success": False, "error": f"Order {order_number} not found"}

        if order.status not in CANCELLABLE_ORDER_STATUSES:
            return {
                "success": False,
                "can_cancel": False,
                "current_status": order.status.value,
                "message": CANCEL_REFUSALS.get(order.status, "This order cannot be cancelled."),
            }

        cancelled = self._store.update_order_status(order.id, OrderStatus.CANCELLED)
        logger.info("Order %s cancelled (was %s)", cancelled.order_number, order.status.value)
        return {
            "success": True,
            "order_number": cancelled.order_number,
            "previous_status": order.status.value,
            "new_status": OrderStatus.CANCELLED.value,
            "reason": reason,
            "refund_message": "A full refund will be processed within 5-7 business days.",
        }


def build_order_agent(store: CommerceStore) -> SpecialistAgent:
    tools = OrderTools(store)
    return SpecialistAgent(
        AgentType.ORDER,
        name="Order Agent",
        description="Handles order inquiries, tracking, shipping, modifications, and cancellations",
        system_prompt=SYSTEM_PROMPT,
        tools=[
            Tool(
                name="get_order_status",
                description="Get detailed status and information for a specific order",
                execute=tools.get_order_status,
                parameters={
                    "order_number": ToolParameter(
                        "string", "The order number (e.g., ORD-1234)", optional=False
                    ),
                },
            ),
            Tool(
                name="get_order_history",
                description="Get the customer's recent order history",
                execute=tools.get_order_history,
                parameters={
                    "limit": ToolParameter(
                        "number",
                        "Number of orders to retrieve (optional, default: 10, max: 20)",
                        optional=True,
                    ),
                    "status": ToolParameter(
                        "string",
                        "Filter by status (optional): pending, processing, shipped, delivered, cancelled",
                        optional=True,
                    ),
                },
            ),
            Tool(
                name="track_shipment",
                description="Get tracking information for a shipment",
                execute=tools.track_shipment,
                parameters={
                    "order_number": ToolParameter("string", "The order number to track", optional=False),
                },
            ),
            Tool(
                name="cancel_order",
                description="Process an order cancellation request",
                execute=tools.cancel_order,
                parameters={
                    "order_number": ToolParameter("string", "The order number to cancel", optional=False),
                    "reason": ToolParameter("string", "Reason for cancellation", optional=False),
                },
            ),
        ],
    )


__all__ = ["OrderTools", "build_order_agent", "tracking_events"]
