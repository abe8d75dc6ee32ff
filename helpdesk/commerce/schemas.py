"""Pydantic records for the customer, order, payment and FAQ data tools read."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class RefundStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


# Orders in these states have not left the warehouse yet.
CANCELLABLE_ORDER_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})


class Customer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    created_at: datetime


class Order(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    order_number: str
    status: OrderStatus
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total_amount: Decimal
    tracking_id: Optional[str] = None
    carrier: Optional[str] = None
    delivery_date: Optional[datetime] = None
    shipping_address: Optional[Dict[str, Any]] = None
    created_at: datetime


class Payment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    order_id: Optional[str] = None
    invoice_number: str
    amount: Decimal
    status: PaymentStatus
    method: str
    billing_address: Optional[Dict[str, Any]] = None
    refund_status: Optional[RefundStatus] = None
    refund_amount: Optional[Decimal] = None
    refund_reason: Optional[str] = None
    created_at: datetime


class KnowledgeArticle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    question: str
    answer: str
    keywords: List[str] = Field(default_factory=list)
    priority: int = 0


__all__ = [
    "CANCELLABLE_ORDER_STATUSES",
    "Customer",
    "KnowledgeArticle",
    "Order",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "RefundStatus",
]
