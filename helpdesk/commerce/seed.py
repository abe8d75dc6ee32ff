"""Demo dataset for the commerce store.

``seed_demo_data`` is used by the demo server (no ``DATABASE_URL``) and by
the test-suite. Running the module directly creates the schema in
``DATABASE_URL`` and loads the same records::

    python -m helpdesk.commerce.seed
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from dotenv import load_dotenv

from .schemas import (
    Customer,
    KnowledgeArticle,
    Order,
    OrderStatus,
    Payment,
    PaymentStatus,
)
from .store import CommerceStore

logger = logging.getLogger(__name__)

_EPOCH = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

_ADDRESSES = {
    "user-1": {"street": "123 Main St", "city": "New York", "state": "NY", "zip": "10001"},
    "user-2": {"street": "456 Oak Ave", "city": "Los Angeles", "state": "CA", "zip": "90001"},
    "user-3": {"street": "789 Pine Rd", "city": "Chicago", "state": "IL", "zip": "60601"},
}

_CUSTOMERS = [
    ("user-1", "john.smith@example.com", "John Smith"),
    ("user-2", "sarah.johnson@example.com", "Sarah Johnson"),
    ("user-3", "mike.wilson@example.com", "Mike Wilson"),
]

# (order number, owner, status, items, tracking id, carrier, days after epoch, delivered on day)
_ORDERS: list[tuple[Any, ...]] = [
    ("ORD-1001", "user-1", OrderStatus.DELIVERED,
     [{"name": "Wireless Headphones", "quantity": 1, "price": 149.99},
      {"name": "Phone Case", "quantity": 2, "price": 24.99}],
     "TRK-1234567890", "FedEx", 0, 9),
    ("ORD-1234", "user-1", OrderStatus.SHIPPED,
     [{"name": "Laptop Stand", "quantity": 1, "price": 79.99}],
     "TRK-2345678901", "UPS", 14, None),
    ("ORD-1002", "user-1", OrderStatus.PROCESSING,
     [{"name": "Mechanical Keyboard", "quantity": 1, "price": 159.99},
      {"name": "Mouse Pad XL", "quantity": 1, "price": 29.99}],
     None, None, 20, None),
    ("ORD-1003", "user-1", OrderStatus.PENDING,
     [{"name": "Monitor 27 inch", "quantity": 1, "price": 349.99}],
     None, None, 24, None),
    ("ORD-2001", "user-2", OrderStatus.DELIVERED,
     [{"name": "Smart Watch", "quantity": 1, "price": 299.99}],
     "TRK-3456789012", "USPS", 2, 6),
    ("ORD-2002", "user-2", OrderStatus.OUT_FOR_DELIVERY,
     [{"name": "Bluetooth Speaker", "quantity": 1, "price": 89.99},
      {"name": "USB-C Cable", "quantity": 3, "price": 14.99}],
     "TRK-4567890123", "FedEx", 18, None),
    ("ORD-2003", "user-2", OrderStatus.CANCELLED,
     [{"name": "Gaming Mouse", "quantity": 1, "price": 69.99}],
     None, None, 10, None),
    ("ORD-3001", "user-3", OrderStatus.RETURNED,
     [{"name": "Wireless Earbuds", "quantity": 1, "price": 199.99}],
     "TRK-8901234567", "UPS", 5, None),
]

# (invoice number, owner, order number, amount, status, method, refund amount)
_PAYMENTS: list[tuple[Any, ...]] = [
    ("INV-1001", "user-1", "ORD-1001", "199.97", PaymentStatus.COMPLETED, "credit_card", None),
    ("INV-1234", "user-1", "ORD-1234", "79.99", PaymentStatus.COMPLETED, "paypal", None),
    ("INV-1002", "user-1", "ORD-1002", "189.98", PaymentStatus.PENDING, "credit_card", None),
    ("INV-2001", "user-2", "ORD-2001", "299.99", PaymentStatus.COMPLETED, "debit_card", None),
    ("INV-2002", "user-2", "ORD-2002", "134.96", PaymentStatus.FAILED, "credit_card", None),
    ("INV-2003", "user-2", "ORD-2003", "69.99", PaymentStatus.REFUNDED, "credit_card", "69.99"),
    ("INV-3001", "user-3", "ORD-3001", "199.99", PaymentStatus.PARTIALLY_REFUNDED, "apple_pay", "100.00"),
]

_ARTICLES = [
    ("Account", "How do I reset my password?",
     "Go to the login page and click 'Forgot Password'. Enter your email address and we'll "
     "send a reset link that expires in 24 hours.",
     ["password", "reset", "forgot", "login", "account"], 10),
    ("Account", "How do I update my email address?",
     "Open Settings > Account Information, click 'Edit' next to your email and confirm the "
     "new address through the verification email.",
     ["email", "update", "change", "account", "settings"], 5),
    ("Orders", "How do I track my order?",
     "Open 'My Orders' and select the order to see its status and tracking number, or use "
     "the tracking number from your shipping confirmation on the carrier's website.",
     ["track", "tracking", "order", "shipment", "delivery", "status"], 10),
    ("Orders", "Can I modify or cancel my order?",
     "Orders can be changed or cancelled until they ship. Use 'My Orders' or ask our order "
     "team to cancel a pending or processing order.",
     ["modify", "cancel", "change", "order", "edit"], 8),
    ("Orders", "What are your shipping options?",
     "Standard Shipping takes 5-7 business days, Express 2-3 business days and Next Day "
     "Delivery is available for orders placed before 2pm. Orders over $50 ship free.",
     ["shipping", "delivery", "options", "express", "cost"], 6),
    ("Returns", "What is your return policy?",
     "Most items can be returned within 30 days of delivery in original condition. "
     "Electronics have a 15-day window. Refunds are processed within 5-7 business days.",
     ["return", "policy", "refund", "exchange"], 9),
    ("Billing", "What payment methods do you accept?",
     "We accept major credit and debit cards, PayPal, Apple Pay, Google Pay and bank "
     "transfers.",
     ["payment", "methods", "card", "paypal", "billing"], 7),
    ("Billing", "Why was my payment declined?",
     "Payments are usually declined for insufficient funds, incorrect card details or an "
     "expired card. Verify your details or try a different payment method.",
     ["payment", "declined", "failed", "card", "billing"], 6),
    ("Products", "Do you offer warranties?",
     "All electronics include at least a 1-year manufacturer warranty. Extended 2-3 year "
     "warranties are available at checkout.",
     ["warranty", "guarantee", "protection", "repair"], 4),
]


def seed_demo_data(store: CommerceStore) -> None:
    """Populate ``store`` with a small deterministic dataset."""

    for index, (user_id, email, name) in enumerate(_CUSTOMERS):
        store.add_customer(
            Customer(id=user_id, email=email, name=name, created_at=_EPOCH - timedelta(days=90 - index))
        )

    order_ids: dict[str, str] = {}
    for number, user_id, status, items, tracking, carrier, day, delivered in _ORDERS:
        total = sum(Decimal(str(item["price"])) * item["quantity"] for item in items)
        created_at = _EPOCH + timedelta(days=day)
        order = Order(
            id=f"order-{number.lower()}",
            user_id=user_id,
            order_number=number,
            status=status,
            items=items,
            total_amount=total,
            tracking_id=tracking,
            carrier=carrier,
            delivery_date=_EPOCH + timedelta(days=delivered) if delivered is not None else None,
            shipping_address=_ADDRESSES[user_id],
            created_at=created_at,
        )
        store.add_order(order)
        order_ids[number] = order.id

    for invoice, user_id, order_number, amount, status, method, refunded in _PAYMENTS:
        order_id = order_ids.get(order_number)
        store.add_payment(
            Payment(
                id=f"payment-{invoice.lower()}",
                user_id=user_id,
                order_id=order_id,
                invoice_number=invoice,
                amount=Decimal(amount),
                status=status,
                method=method,
                billing_address=_ADDRESSES[user_id],
                refund_status="completed" if refunded else None,
                refund_amount=Decimal(refunded) if refunded else None,
                refund_reason="Customer request" if refunded else None,
                created_at=_EPOCH + timedelta(days=_order_day(order_number), minutes=5),
            )
        )

    for index, (category, question, answer, keywords, priority) in enumerate(_ARTICLES, start=1):
        store.add_article(
            KnowledgeArticle(
                id=f"kb-{index:03d}",
                category=category,
                question=question,
                answer=answer,
                keywords=keywords,
                priority=priority,
            )
        )

    logger.info(
        "Seeded %d customers, %d orders, %d payments, %d articles",
        len(_CUSTOMERS),
        len(_ORDERS),
        len(_PAYMENTS),
        len(_ARTICLES),
    )


def _order_day(order_number: str) -> int:
    for number, *_rest, day, _delivered in _ORDERS:
        if number == order_number:
            return day
    return 0


def main() -> None:
    """Create the schema in ``DATABASE_URL`` and load the demo records."""

    from ..models.session import create_schema, get_engine, get_sessionmaker
    from .store import SqlCommerceStore

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    engine = get_engine()
    create_schema(engine)
    seed_demo_data(SqlCommerceStore(get_sessionmaker(engine)))
    logger.info("Seed process completed.")


if __name__ == "__main__":
    main()
