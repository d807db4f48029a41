"""
Error values.

Nothing in the core raises across a component boundary: every failure is
one of these frozen records, returned inside ``Error(...)``.

    match cart.update_quantity(line_id, 0):
        case Ok(line):
            ...
        case Error(InvalidQuantity() as e):
            show(e.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from shopsync._types import FailureReason, LineId, PaymentMethodId, ProductId

if TYPE_CHECKING:
    from shopsync.orders import Order, Transaction

# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class InvalidQuantity:
    quantity: int

    @property
    def message(self) -> str:
        return f"Quantity must be at least 1, got {self.quantity}"


@dataclass(frozen=True, slots=True)
class InsufficientStock:
    product_id: ProductId
    requested: int
    available: int
    line_id: LineId | None = None

    @property
    def message(self) -> str:
        return (
            f"Product {self.product_id}: requested {self.requested}, "
            f"only {self.available} in stock"
        )


@dataclass(frozen=True, slots=True)
class LineNotFound:
    line_id: LineId

    @property
    def message(self) -> str:
        return f"Cart line {self.line_id} not found"


@dataclass(frozen=True, slots=True)
class StockConflict:
    """A cart line whose quantity exceeds live stock."""

    line_id: LineId
    product_id: ProductId
    quantity: int
    available: int


@dataclass(frozen=True, slots=True)
class StockChanged:
    """Live stock dropped below one or more line quantities."""

    conflicts: tuple[StockConflict, ...]

    @property
    def line_ids(self) -> tuple[LineId, ...]:
        return tuple(c.line_id for c in self.conflicts)

    @property
    def message(self) -> str:
        parts = ", ".join(
            f"{c.line_id} ({c.quantity} > {c.available})" for c in self.conflicts
        )
        return f"Stock changed for: {parts}"


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CouponNotFound:
    code: str

    @property
    def message(self) -> str:
        return f"Invalid coupon code: {self.code}"


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class EmptyCart:
    @property
    def message(self) -> str:
        return "Cart is empty"


@dataclass(frozen=True, slots=True)
class InvalidAddress:
    """
    Address guard failure.

    which: "billing" or "shipping".
    missing: required fields left blank.
    malformed: fields present but not well-formed (email).
    """

    which: str
    missing: tuple[str, ...] = ()
    malformed: tuple[str, ...] = ()

    @property
    def fields(self) -> tuple[str, ...]:
        return self.missing + self.malformed

    @property
    def message(self) -> str:
        return f"Invalid {self.which} address: {', '.join(self.fields)}"


@dataclass(frozen=True, slots=True)
class NoPaymentMethodSelected:
    payment_method_id: PaymentMethodId | None = None

    @property
    def message(self) -> str:
        if self.payment_method_id is None:
            return "No payment method selected"
        return f"Payment method {self.payment_method_id} is not available"


@dataclass(frozen=True, slots=True)
class InvalidTransition:
    step: str
    action: str

    @property
    def message(self) -> str:
        return f"Cannot {self.action} from {self.step}"


# ═══════════════════════════════════════════════════════════════════════════════
# Orders & Payment
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PaymentFailed:
    """
    Payment attempt ended FAILED.

    The order stays addressable: retry with the same or another method.
    """

    order: Order
    transaction: Transaction
    reason: FailureReason
    detail: str | None = None

    @property
    def is_timeout(self) -> bool:
        return self.reason is FailureReason.TIMEOUT

    @property
    def message(self) -> str:
        base = f"Payment for {self.order.order_number} failed ({self.reason.value})"
        return f"{base}: {self.detail}" if self.detail else base


@dataclass(frozen=True, slots=True)
class AlreadyPaid:
    order_number: str

    @property
    def message(self) -> str:
        return f"Order {self.order_number} is already paid"


@dataclass(frozen=True, slots=True)
class PaymentUnrecorded:
    """
    Payment was captured but writing it back failed.

    The order is paid. The write is retried in the background; further
    attempts on the order are refused with AlreadyPaid.
    """

    order: Order
    transaction: Transaction
    cause: CollaboratorFailed

    @property
    def message(self) -> str:
        return (
            f"Payment for {self.order.order_number} was taken but not recorded "
            f"({self.cause.message}); retrying"
        )


@dataclass(frozen=True, slots=True)
class CollaboratorFailed:
    """An external collaborator raised instead of answering."""

    operation: str
    detail: str

    @property
    def message(self) -> str:
        return f"{self.operation} failed: {self.detail}"


# ═══════════════════════════════════════════════════════════════════════════════
# Unions
# ═══════════════════════════════════════════════════════════════════════════════

type CartError = InvalidQuantity | InsufficientStock | LineNotFound

type AdvanceError = (
    EmptyCart
    | InvalidAddress
    | NoPaymentMethodSelected
    | InvalidTransition
    | StockChanged
    | CollaboratorFailed
)

type SubmissionError = (
    EmptyCart
    | NoPaymentMethodSelected
    | StockChanged
    | PaymentFailed
    | AlreadyPaid
    | PaymentUnrecorded
    | CollaboratorFailed
)

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "InvalidQuantity",
    "InsufficientStock",
    "LineNotFound",
    "StockConflict",
    "StockChanged",
    "CouponNotFound",
    "EmptyCart",
    "InvalidAddress",
    "NoPaymentMethodSelected",
    "InvalidTransition",
    "PaymentFailed",
    "AlreadyPaid",
    "PaymentUnrecorded",
    "CollaboratorFailed",
    "CartError",
    "AdvanceError",
    "SubmissionError",
)
