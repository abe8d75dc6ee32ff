"""Customer, order, payment and knowledge-base data used by agent tools."""

from .schemas import (
    Customer,
    KnowledgeArticle,
    Order,
    OrderStatus,
    Payment,
    PaymentStatus,
    RefundStatus,
)
from .seed import seed_demo_data
from .store import CommerceStore, InMemoryCommerceStore, SqlCommerceStore

__all__ = [
    "CommerceStore",
    "Customer",
    "InMemoryCommerceStore",
    "KnowledgeArticle",
    "Order",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "RefundStatus",
    "SqlCommerceStore",
    "seed_demo_data",
]
