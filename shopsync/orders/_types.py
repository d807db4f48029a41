"""
Order types — addresses, orders, transactions and submissions.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, replace
from datetime import datetime

from shopsync._types import (
    ApprovalStatus,
    FailureReason,
    Minor,
    OrderStatus,
    PaymentMethodId,
    PaymentStatus,
    ProductId,
    TransactionStatus,
)
from shopsync.cart import CartLine, CartSnapshot
from shopsync.pricing import PricingBreakdown

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def new_code(prefix: str, length: int = 9) -> str:
    """Opaque reference such as ORD-7K2M9QX4A."""
    return f"{prefix}-{''.join(secrets.choice(_CODE_ALPHABET) for _ in range(length))}"


# ═══════════════════════════════════════════════════════════════════════════════
# Address
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Address:
    """
    Postal address. Blank strings mean "not filled in yet".

    Billing requires every field but line2; shipping also skips email and phone.
    """

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    line1: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    line2: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    """
    A submitted cart.

    lines and totals are frozen copies taken at submission; later cart or
    price changes never reach them.
    """

    id: str
    order_number: str
    lines: tuple[CartLine, ...]
    totals: PricingBreakdown
    payment_method_id: PaymentMethodId
    created_at: datetime
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.PENDING
    approval_status: ApprovalStatus | None = None
    billing_address: Address | None = None
    shipping_address: Address | None = None
    notes: str | None = None

    @property
    def total(self) -> Minor:
        return self.totals.total

    @property
    def is_paid(self) -> bool:
        return self.payment_status is PaymentStatus.PAID

    def with_status(
        self,
        payment_status: PaymentStatus,
        order_status: OrderStatus | None = None,
    ) -> Order:
        return replace(
            self,
            payment_status=payment_status,
            order_status=self.order_status if order_status is None else order_status,
        )

    def with_payment_method(self, method_id: PaymentMethodId) -> Order:
        return replace(self, payment_method_id=method_id)


def lines_match(cart: CartSnapshot, order: Order) -> bool:
    """Cart still holds exactly the products and quantities of the order."""

    def key(lines: tuple[CartLine, ...]) -> dict[ProductId, int]:
        return {ln.product_id: ln.quantity for ln in lines}

    return bool(cart.lines) and key(cart.lines) == key(order.lines)


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Transaction:
    """One payment attempt against an order."""

    id: str
    transaction_id: str
    order_id: str
    amount: Minor
    payment_method_id: PaymentMethodId
    status: TransactionStatus = TransactionStatus.INITIATED
    failure: FailureReason | None = None
    detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not TransactionStatus.INITIATED

    def settled(
        self,
        status: TransactionStatus,
        failure: FailureReason | None = None,
        detail: str | None = None,
    ) -> Transaction:
        return replace(self, status=status, failure=failure, detail=detail)


# ═══════════════════════════════════════════════════════════════════════════════
# Submission
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Submission:
    """Captured order with the transaction that paid it."""

    order: Order
    transaction: Transaction


@dataclass(frozen=True, slots=True)
class OrderSummary:
    """
    Order as listed in history, typically parsed from an API payload.

    Carries just enough for badges, partitioning and search.
    """

    order_number: str
    order_status: OrderStatus
    created_at: datetime
    total: Minor
    payment_status: PaymentStatus = PaymentStatus.PENDING
    approval_status: ApprovalStatus | None = None
    item_names: tuple[str, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "new_code",
    "Address",
    "Order",
    "lines_match",
    "Transaction",
    "Submission",
    "OrderSummary",
)
