"""Storage for the commerce records agent tools read and mutate."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from ..models import CustomerRecord, KnowledgeArticleRecord, OrderRecord, PaymentRecord
from ..models.session import session_scope
from . import schemas


class CommerceStore(Protocol):
    """Abstraction over customers, orders, payments and FAQ articles."""

    def get_customer(self, user_id: str) -> Optional[schemas.Customer]: ...

    def find_order(self, order_number: str, user_id: str) -> Optional[schemas.Order]: ...

    def get_order(self, order_id: str) -> Optional[schemas.Order]: ...

    def list_orders(
        self, user_id: str, *, status: Optional[str] = None, limit: int = 10
    ) -> List[schemas.Order]: ...

    def count_orders(self, user_id: str) -> int: ...

    def update_order_status(self, order_id: str, status: schemas.OrderStatus) -> schemas.Order: ...

    def find_payment(self, invoice_number: str, user_id: str) -> Optional[schemas.Payment]: ...

    def list_payments(
        self, user_id: str, *, status: Optional[str] = None, limit: int = 10
    ) -> List[schemas.Payment]: ...

    def apply_refund(
        self,
        payment_id: str,
        *,
        status: schemas.PaymentStatus,
        refund_status: schemas.RefundStatus,
        refund_amount: Decimal,
        refund_reason: str,
        expected_status: Optional[schemas.PaymentStatus] = None,
    ) -> schemas.Payment: ...

    def search_articles(
        self, query: str, *, category: Optional[str] = None, limit: int = 5
    ) -> List[schemas.KnowledgeArticle]: ...

    def add_customer(self, customer: schemas.Customer) -> schemas.Customer: ...

    def add_order(self, order: schemas.Order) -> schemas.Order: ...

    def add_payment(self, payment: schemas.Payment) -> schemas.Payment: ...

    def add_article(self, article: schemas.KnowledgeArticle) -> schemas.KnowledgeArticle: ...


class RecordNotFoundError(LookupError):
    """Raised when an update targets a record that no longer exists."""


class RecordConflictError(RuntimeError):
    """Raised when a conditional update finds the record in another state."""


def _article_matches(article: schemas.KnowledgeArticle, query: str) -> bool:
    needle = query.lower()
    if needle in article.question.lower() or needle in article.answer.lower():
        return True
    words = set(needle.split(" "))
    return any(keyword.lower() in words for keyword in article.keywords)


def _rank_articles(
    articles: Iterable[schemas.KnowledgeArticle],
    query: str,
    category: Optional[str],
    limit: int,
) -> List[schemas.KnowledgeArticle]:
    matches = [
        article
        for article in articles
        if (not category or article.category.lower() == category.lower())
        and _article_matches(article, query)
    ]
    matches.sort(key=lambda article: article.priority, reverse=True)
    return matches[:limit]


# ---------------------------------------------------------------------------
# In-memory store (tests and demo mode)


class InMemoryCommerceStore(CommerceStore):
    def __init__(self) -> None:
        self._customers: Dict[str, schemas.Customer] = {}
        self._orders: Dict[str, schemas.Order] = {}
        self._payments: Dict[str, schemas.Payment] = {}
        self._articles: Dict[str, schemas.KnowledgeArticle] = {}

    def get_customer(self, user_id: str) -> Optional[schemas.Customer]:
        return self._customers.get(user_id)

    def find_order(self, order_number: str, user_id: str) -> Optional[schemas.Order]:
        for order in self._orders.values():
            if order.order_number == order_number and order.user_id == user_id:
                return order.model_copy()
        return None

    def get_order(self, order_id: str) -> Optional[schemas.Order]:
        order = self._orders.get(order_id)
        return order.model_copy() if order else None

    def list_orders(
        self, user_id: str, *, status: Optional[str] = None, limit: int = 10
    ) -> List[schemas.Order]:
        orders = [
            order.model_copy()
            for order in self._orders.values()
            if order.user_id == user_id and (not status or order.status.value == status)
        ]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders[:limit]

    def count_orders(self, user_id: str) -> int:
        return sum(1 for order in self._orders.values() if order.user_id == user_id)

    def update_order_status(self, order_id: str, status: schemas.OrderStatus) -> schemas.Order:
        order = self._orders.get(order_id)
        if order is None:
            raise RecordNotFoundError(order_id)
        order.status = status
        return order.model_copy()

    def find_payment(self, invoice_number: str, user_id: str) -> Optional[schemas.Payment]:
        for payment in self._payments.values():
            if payment.invoice_number == invoice_number and payment.user_id == user_id:
                return payment.model_copy()
        return None

    def list_payments(
        self, user_id: str, *, status: Optional[str] = None, limit: int = 10
    ) -> List[schemas.Payment]:
        payments = [
            payment.model_copy()
            for payment in self._payments.values()
            if payment.user_id == user_id and (not status or payment.status.value == status)
        ]
        payments.sort(key=lambda payment: payment.created_at, reverse=True)
        return payments[:limit]

    def apply_refund(
        self,
        payment_id: str,
        *,
        status: schemas.PaymentStatus,
        refund_status: schemas.RefundStatus,
        refund_amount: Decimal,
        refund_reason: str,
        expected_status: Optional[schemas.PaymentStatus] = None,
    ) -> schemas.Payment:
        payment = self._payments.get(payment_id)
        if payment is None:
            raise RecordNotFoundError(payment_id)
        if expected_status is not None and payment.status is not expected_status:
            raise RecordConflictError(payment_id)
        payment.status = status
        payment.refund_status = refund_status
        payment.refund_amount = refund_amount
        payment.refund_reason = refund_reason
        return payment.model_copy()

    def search_articles(
        self, query: str, *, category: Optional[str] = None, limit: int = 5
    ) -> List[schemas.KnowledgeArticle]:
        return _rank_articles(self._articles.values(), query, category, limit)

    def add_customer(self, customer: schemas.Customer) -> schemas.Customer:
        self._customers[customer.id] = customer
        return customer

    def add_order(self, order: schemas.Order) -> schemas.Order:
        self._orders[order.id] = order
        return order

    def add_payment(self, payment: schemas.Payment) -> schemas.Payment:
        self._payments[payment.id] = payment
        return payment

    def add_article(self, article: schemas.KnowledgeArticle) -> schemas.KnowledgeArticle:
        self._articles[article.id] = article
        return article


# ---------------------------------------------------------------------------
# SQLAlchemy store


class SqlCommerceStore(CommerceStore):
    """SQLAlchemy implementation of :class:`CommerceStore`."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_customer(self, user_id: str) -> Optional[schemas.Customer]:
        with session_scope(self._session_factory) as session:
            record = session.get(CustomerRecord, user_id)
            return schemas.Customer.model_validate(record) if record else None

    def find_order(self, order_number: str, user_id: str) -> Optional[schemas.Order]:
        with session_scope(self._session_factory) as session:
            record = session.execute(
                select(OrderRecord).where(
                    OrderRecord.order_number == order_number,
                    OrderRecord.user_id == user_id,
                )
            ).scalar_one_or_none()
            return schemas.Order.model_validate(record) if record else None

    def get_order(self, order_id: str) -> Optional[schemas.Order]:
        with session_scope(self._session_factory) as session:
            record = session.get(OrderRecord, order_id)
            return schemas.Order.model_validate(record) if record else None

    def list_orders(
        self, user_id: str, *, status: Optional[str] = None, limit: int = 10
    ) -> List[schemas.Order]:
        stmt = select(OrderRecord).where(OrderRecord.user_id == user_id)
        if status:
            stmt = stmt.where(OrderRecord.status == status)
        stmt = stmt.order_by(OrderRecord.created_at.desc()).limit(limit)
        with session_scope(self._session_factory) as session:
            return [schemas.Order.model_validate(row) for row in session.scalars(stmt)]

    def count_orders(self, user_id: str) -> int:
        with session_scope(self._session_factory) as session:
            return session.execute(
                select(func.count()).select_from(OrderRecord).where(OrderRecord.user_id == user_id)
            ).scalar_one()

    def update_order_status(self, order_id: str, status: schemas.OrderStatus) -> schemas.Order:
        with session_scope(self._session_factory) as session:
            record = session.get(OrderRecord, order_id)
            if record is None:
                raise RecordNotFoundError(order_id)
            record.status = status.value
            session.flush()
            return schemas.Order.model_validate(record)

    def find_payment(self, invoice_number: str, user_id: str) -> Optional[schemas.Payment]:
        with session_scope(self._session_factory) as session:
            record = session.execute(
                select(PaymentRecord).where(
                    PaymentRecord.invoice_number == invoice_number,
                    PaymentRecord.user_id == user_id,
                )
            ).scalar_one_or_none()
            return schemas.Payment.model_validate(record) if record else None

    def list_payments(
        self, user_id: str, *, status: Optional[str] = None, limit: int = 10
    ) -> List[schemas.Payment]:
        stmt = select(PaymentRecord).where(PaymentRecord.user_id == user_id)
        if status:
            stmt = stmt.where(PaymentRecord.status == status)
        stmt = stmt.order_by(PaymentRecord.created_at.desc()).limit(limit)
        with session_scope(self._session_factory) as session:
            return [schemas.Payment.model_validate(row) for row in session.scalars(stmt)]

    def apply_refund(
        self,
        payment_id: str,
        *,
        status: schemas.PaymentStatus,
        refund_status: schemas.RefundStatus,
        refund_amount: Decimal,
        refund_reason: str,
        expected_status: Optional[schemas.PaymentStatus] = None,
    ) -> schemas.Payment:
        """Write the refund fields in one UPDATE.

        With ``expected_status`` the row is only updated while it still has that
        status, so two concurrent refunds of one payment cannot both succeed.
        """

        stmt = update(PaymentRecord).where(PaymentRecord.id == payment_id)
        if expected_status is not None:
            stmt = stmt.where(PaymentRecord.status == expected_status.value)
        stmt = stmt.values(
            status=status.value,
            refund_status=refund_status.value,
            refund_amount=refund_amount,
            refund_reason=refund_reason,
        ).execution_options(synchronize_session=False)
        with session_scope(self._session_factory) as session:
            result = session.execute(stmt)
            record = session.get(PaymentRecord, payment_id)
            if record is None:
                raise RecordNotFoundError(payment_id)
            if result.rowcount == 0:
                raise RecordConflictError(payment_id)
            return schemas.Payment.model_validate(record)

    def search_articles(
        self, query: str, *, category: Optional[str] = None, limit: int = 5
    ) -> List[schemas.KnowledgeArticle]:
        # Keyword overlap is evaluated in Python so the same query works on
        # SQLite and PostgreSQL JSON columns alike.
        stmt = select(KnowledgeArticleRecord)
        if category:
            stmt = stmt.where(func.lower(KnowledgeArticleRecord.category) == category.lower())
        with session_scope(self._session_factory) as session:
            articles = [schemas.KnowledgeArticle.model_validate(row) for row in session.scalars(stmt)]
        return _rank_articles(articles, query, None, limit)

    def add_customer(self, customer: schemas.Customer) -> schemas.Customer:
        with session_scope(self._session_factory) as session:
            session.add(CustomerRecord(**customer.model_dump()))
        return customer

    def add_order(self, order: schemas.Order) -> schemas.Order:
        data = order.model_dump()
        data["status"] = order.status.value
        with session_scope(self._session_factory) as session:
            session.add(OrderRecord(**data))
        return order

    def add_payment(self, payment: schemas.Payment) -> schemas.Payment:
        data = payment.model_dump()
        data["status"] = payment.status.value
        data["refund_status"] = payment.refund_status.value if payment.refund_status else None
        with session_scope(self._session_factory) as session:
            session.add(PaymentRecord(**data))
        return payment

    def add_article(self, article: schemas.KnowledgeArticle) -> schemas.KnowledgeArticle:
        with session_scope(self._session_factory) as session:
            session.add(KnowledgeArticleRecord(**article.model_dump()))
        return article


__all__ = [
    "CommerceStore",
    "InMemoryCommerceStore",
    "RecordConflictError",
    "RecordNotFoundError",
    "SqlCommerceStore",
]
