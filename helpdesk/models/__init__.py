"""SQLAlchemy declarative base and persistence models.

This package hosts the SQLAlchemy models used by the helpdesk backend. It
exposes a single declarative ``Base`` class; individual models live in
dedicated modules within this package.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


# Re-export models so callers can import them via ``from helpdesk.models import
# OrderRecord`` instead of touching private modules.
from .commerce import CustomerRecord, KnowledgeArticleRecord, OrderRecord, PaymentRecord
from .support import ConversationRecord, MessageRecord


__all__ = [
    "Base",
    "ConversationRecord",
    "CustomerRecord",
    "KnowledgeArticleRecord",
    "MessageRecord",
    "OrderRecord",
    "PaymentRecord",
]
