"""
Core types for shopsync.

Re-exports from kungfu + domain aliases and status enums shared by every
component.
"""

from __future__ import annotations

from enum import Enum

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Identity & Money
# ═══════════════════════════════════════════════════════════════════════════════

type ProductId = int
type PaymentMethodId = int
type LineId = str

type Minor = int
"""Money in integer minor units (cents)."""

# ═══════════════════════════════════════════════════════════════════════════════
# Status Enums
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethodType(Enum):
    CARD = "card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    DIGITAL_WALLET = "digital_wallet"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderStatus(Enum):
    """
    Fulfillment lifecycle of an order.

    Only PENDING and the captured status (PROCESSING or CONFIRMED) are set
    here; the rest belong to order management.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ApprovalStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionStatus(Enum):
    """
    Payment attempt lifecycle.

        INITIATED → CAPTURED
                  → FAILED
    """

    INITIATED = "initiated"
    CAPTURED = "captured"
    FAILED = "failed"


class FailureReason(Enum):
    """Why a payment attempt ended FAILED."""

    DECLINED = "declined"
    TIMEOUT = "timeout"
    GATEWAY_ERROR = "gateway_error"


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Aliases
    "Lazy",
    "ProductId",
    "PaymentMethodId",
    "LineId",
    "Minor",
    # Enums
    "PaymentMethodType",
    "PaymentStatus",
    "OrderStatus",
    "ApprovalStatus",
    "TransactionStatus",
    "FailureReason",
)
