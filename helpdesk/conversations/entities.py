"""Pattern-based entity extraction and token estimation over message lists."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Protocol

from .models import ExtractedEntities

_ORDER_PATTERN = re.compile(r"ORD-\w+")
_INVOICE_PATTERN = re.compile(r"INV-\w+")
# Dedicated prefix, UPS-style 1Z codes or long numeric carrier runs.
_TRACKING_PATTERN = re.compile(r"TRK-\w+|1Z[A-Z0-9]{16}|\d{12,22}")
_AMOUNT_PATTERN = re.compile(r"\$[\d,]+\.?\d*")


class HasContent(Protocol):
    content: str


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def extract_entities(messages: Iterable[HasContent]) -> ExtractedEntities:
    """Return the order, invoice, tracking and amount identifiers in ``messages``."""

    orders: list[str] = []
    invoices: list[str] = []
    tracking: list[str] = []
    amounts: list[str] = []
    for message in messages:
        text = message.content or ""
        orders.extend(_ORDER_PATTERN.findall(text))
        invoices.extend(_INVOICE_PATTERN.findall(text))
        tracking.extend(_TRACKING_PATTERN.findall(text))
        amounts.extend(_AMOUNT_PATTERN.findall(text))
    return ExtractedEntities(
        order_numbers=_unique(orders),
        invoice_numbers=_unique(invoices),
        tracking_ids=_unique(tracking),
        amounts=_unique(amounts),
    )


def estimate_tokens(messages: Iterable[HasContent]) -> int:
    """Approximate token cost as one token per four characters, rounded up."""

    total_chars = sum(len(message.content or "") for message in messages)
    return math.ceil(total_chars / 4)
