"""
shopsync — cart and checkout reconciliation for storefronts.

    from shopsync import cart as K       # Cart state kept in line with stock
    from shopsync import pricing as P    # Totals and coupons
    from shopsync import checkout as W   # Step-by-step checkout wizard
    from shopsync import orders as O     # Submission, payment, status

External systems plug in through shopsync.ports; shopsync.mock has
in-memory versions of each.
"""

from shopsync import cart
from shopsync import pricing
from shopsync import orders
from shopsync import checkout
from shopsync import errors
from shopsync import ports
from shopsync.config import (
    PricingPolicy,
    CheckoutPolicy,
    DEFAULT_PRICING,
    DEFAULT_CHECKOUT,
)
from shopsync._types import (
    Lazy,
    Minor,
    PaymentMethodType,
    PaymentStatus,
    OrderStatus,
    ApprovalStatus,
    TransactionStatus,
    FailureReason,
)

__version__ = "0.1.0"

__all__ = (
    "cart",
    "pricing",
    "orders",
    "checkout",
    "errors",
    "ports",
    "PricingPolicy",
    "CheckoutPolicy",
    "DEFAULT_PRICING",
    "DEFAULT_CHECKOUT",
    "Lazy",
    "Minor",
    "PaymentMethodType",
    "PaymentStatus",
    "OrderStatus",
    "ApprovalStatus",
    "TransactionStatus",
    "FailureReason",
)
