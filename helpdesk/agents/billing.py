"""Billing specialist: payment history, invoices, refunds and payment methods."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from ..commerce.schemas import PaymentStatus, RefundStatus
from ..commerce.store import CommerceStore, RecordConflictError
from .base import SpecialistAgent
from .schemas import AgentType
from .tools import Tool, ToolParameter, isoformat, money

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a specialized billing support agent. Your role is to help customers with all payment and billing-related inquiries including invoices, refunds, payment methods, and billing disputes.

Guidelines:
- Always use get_payment_history to look up payment records before responding
- For refund requests, verify payment status and eligibility
- Be clear about refund timelines (typically 5-10 business days)
- Explain any billing charges clearly and transparently
- For disputes, gather details and escalate if needed
- Never share full payment card details - only last 4 digits

Available tools:
- get_payment_history: View the customer's payment history
- get_invoice: Get detailed invoice information
- request_refund: Process refund requests
- update_payment_method: Help with payment method updates

Remember: Handle financial information with care. Refunds require verification of original payment. Be empathetic about billing concerns - they can be stressful for customers."""

MAX_HISTORY_LIMIT = 20

STATUS_MESSAGES = {
    PaymentStatus.PENDING: "Payment is pending",
    PaymentStatus.COMPLETED: "Payment completed successfully",
    PaymentStatus.FAILED: "Payment failed - please try again or use a different method",
    PaymentStatus.REFUNDED: "Full refund has been processed",
    PaymentStatus.PARTIALLY_REFUNDED: "Partial refund has been processed",
}

PAYMENT_METHOD_INSTRUCTIONS = [
    "1. Log in to your account at account.example.com",
    "2. Navigate to 'Payment Methods' in your account settings",
    "3. Click 'Add New Payment Method' or 'Update' on an existing method",
    "4. Enter your new payment details securely",
    "5. Save your changes",
]

SUPPORTED_PAYMENT_METHODS = [
    "Credit Card",
    "Debit Card",
    "PayPal",
    "Bank Transfer",
    "Apple Pay",
    "Google Pay",
]


class BillingTools:
    """Tool bodies for the billing specialist."""

    def __init__(self, store: CommerceStore) -> None:
        self._store = store

    def get_payment_history(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        limit = max(1, min(int(params.get("limit", 10)), MAX_HISTORY_LIMIT))
        payments = self._store.list_payments(user_id, status=params.get("status"), limit=limit)
        refunded = {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED}
        return {
            "summary": {
                "total_payments": len(payments),
                "completed": sum(1 for p in payments if p.status is PaymentStatus.COMPLETED),
                "pending": sum(1 for p in payments if p.status is PaymentStatus.PENDING),
                "refunded": sum(1 for p in payments if p.status in refunded),
            },
            "payments": [
                {
                    "invoice_number": p.invoice_number,
                    "amount": money(p.amount),
                    "status": p.status.value,
                    "method": p.method,
                    "refund_status": p.refund_status.value if p.refund_status else None,
                    "refund_amount": money(p.refund_amount),
                    "created_at": isoformat(p.created_at),
                }
                for p in payments
            ],
        }

    def get_invoice(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        invoice_number = params["invoice_number"]
        payment = self._store.find_payment(invoice_number, user_id)
        if payment is None:
            return {
                "found": False,
                "error": f"Invoice {invoice_number} not found or you don't have access to it",
            }

        order_info = None
        if payment.order_id:
            order = self._store.get_order(payment.order_id)
            if order is not None:
                order_info = {
                    "order_number": order.order_number,
                    "items": order.items,
                    "status": order.status.value,
                }

        refund = None
        if payment.refund_status:
            refund = {
                "status": payment.refund_status.value,
                "amount": money(payment.refund_amount),
                "reason": payment.refund_reason,
            }

        return {
            "found": True,
            "invoice_number": payment.invoice_number,
            "amount": money(payment.amount),
            "status": payment.status.value,
            "status_message": STATUS_MESSAGES.get(payment.status, payment.status.value),
            "method": payment.method,
            "billing_address": payment.billing_address,
            "created_at": isoformat(payment.created_at),
            "order": order_info,
            "refund": refund,
            "can_refund": payment.status is PaymentStatus.COMPLETED and not payment.refund_status,
        }

    def request_refund(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        invoice_number = params["invoice_number"]
        reason = params["reason"]
        payment = self._store.find_payment(invoice_number, user_id)
        if payment is None:
            return {"success": False, "error": f"Invoice {invoice_number} not found"}

        if payment.status is not PaymentStatus.COMPLETED:
            return {
                "success": False,
                "error": f"Cannot refund a payment with status: {payment.status.value}",
                "current_status": payment.status.value,
            }

        if payment.refund_status is RefundStatus.COMPLETED:
            return {"success": False, "error": "This payment has already been fully refunded"}

        original = payment.amount
        requested = params.get("amount")
        try:
            refund_amount = Decimal(str(requested)) if requested else original
        except InvalidOperation:
            return {"success": False, "error": f"Invalid refund amount: {requested}"}
        if not refund_amount.is_finite():
            return {"success": False, "error": f"Invalid refund amount: {requested}"}

        if refund_amount <= 0:
            return {"success": False, "error": "Refund amount must be greater than zero"}

        if refund_amount > original:
            return {
                "success": False,
                "error": (
                    f"Refund amount (${money(refund_amount)}) exceeds payment amount "
                    f"(${money(original)})"
                ),
            }

        is_partial = refund_amount < original
        try:
            updated = self._store.apply_refund(
                payment.id,
                status=PaymentStatus.PARTIALLY_REFUNDED if is_partial else PaymentStatus.REFUNDED,
                refund_status=RefundStatus.PROCESSING,
                refund_amount=refund_amount,
                refund_reason=reason,
                expected_status=PaymentStatus.COMPLETED,
            )
        except RecordConflictError:
            logger.warning("Refund for invoice %s lost a concurrent update", invoice_number)
            return {
                "success": False,
                "error": "This payment was updated by another request; please check its status",
            }
        logger.info(
            "Refund of %s initiated for invoice %s (partial=%s)",
            money(refund_amount),
            updated.invoice_number,
            is_partial,
        )
        method = payment.method.replace("_", " ")
        return {
            "success": True,
            "invoice_number": updated.invoice_number,
            "refund_amount": money(refund_amount),
            "original_amount": money(original),
            "is_partial_refund": is_partial,
            "refund_status": RefundStatus.PROCESSING.value,
            "estimated_completion": "5-10 business days",
            "refund_method": f"Original payment method ({payment.method})",
            "message": (
                f"Your refund of ${money(refund_amount)} has been initiated. It will be "
                f"credited to your {method} within 5-10 business days."
            ),
        }

    def update_payment_method(self, params: dict[str, Any], user_id: str) -> dict[str, Any]:
        # Payment details are never changed over chat.
        return {
            "can_update_via_chat": False,
            "current_method": params["current_method"],
            "requested_method": params["new_method"],
            "message": (
                "For your security, payment method changes must be made through our "
                "secure account portal."
            ),
            "instructions": list(PAYMENT_METHOD_INSTRUCTIONS),
            "supported_methods": list(SUPPORTED_PAYMENT_METHODS),
            "note": (
                "If you're having trouble accessing your account or updating payment "
                "methods, I can help troubleshoot or escalate to our technical team."
            ),
        }


def build_billing_agent(store: CommerceStore) -> SpecialistAgent:
    tools = BillingTools(store)
    return SpecialistAgent(
        AgentType.BILLING,
        name="Billing Agent",
        description="Handles payments, invoices, refunds, subscriptions, and billing inquiries",
        system_prompt=SYSTEM_PROMPT,
        tools=[
            Tool(
                name="get_payment_history",
                description="Get the customer's payment and transaction history",
                execute=tools.get_payment_history,
                parameters={
                    "limit": ToolParameter(
                        "number",
                        "Number of payments to retrieve (optional, default: 10, max: 20)",
                        optional=True,
                    ),
                    "status": ToolParameter(
                        "string",
                        "Filter by status (optional): pending, completed, failed, refunded, partially_refunded",
                        optional=True,
                    ),
                },
            ),
            Tool(
                name="get_invoice",
                description="Get detailed information for a specific invoice",
                execute=tools.get_invoice,
                parameters={
                    "invoice_number": ToolParameter(
                        "string", "The invoice number (e.g., INV-1234)", optional=False
                    ),
                },
            ),
            Tool(
                name="request_refund",
                description="Process a refund request for a payment",
                execute=tools.request_refund,
                parameters={
                    "invoice_number": ToolParameter(
                        "string", "The invoice number for the refund", optional=False
                    ),
                    "reason": ToolParameter("string", "Reason for the refund request", optional=False),
                    "amount": ToolParameter(
                        "number",
                        "Amount to refund (optional - defaults to full amount)",
                        optional=True,
                    ),
                },
            ),
            Tool(
                name="update_payment_method",
                description=(
                    "Provide information about updating payment methods "
                    "(cannot actually update - directs to secure portal)"
                ),
                execute=tools.update_payment_method,
                parameters={
                    "current_method": ToolParameter("string", "The current payment method", optional=False),
                    "new_method": ToolParameter("string", "The desired new payment method", optional=False),
                },
            ),
        ],
    )


__all__ = ["BillingTools", "build_billing_agent"]
