"""
Orders — submission, payment capture and status projection.

    from shopsync import orders as O

    submitter = O.OrderSubmitter(catalog, directory, gateway, store)
    result = await submitter.submit(cart, payment_method_id=1, billing_address=addr)

    O.project(order)          # DisplayStatus.PROCESSING
    O.badge(order).label      # "Processing"
"""

from __future__ import annotations

from shopsync.orders._types import (
    new_code,
    Address,
    Order,
    lines_match,
    Transaction,
    Submission,
    OrderSummary,
)
from shopsync.orders._capture import CaptureOutcome, LateHandler, capture_with_deadline
from shopsync.orders._submit import select_method, list_methods, OrderSubmitter
from shopsync.orders._status import (
    HasStatus,
    DisplayStatus,
    project,
    StatusBadge,
    badge,
    CURRENT_STATUSES,
    is_current,
    partition_history,
    filter_orders,
)
from shopsync.orders._reorder import Reordered, reorder

__all__ = (
    # Types
    "new_code",
    "Address",
    "Order",
    "lines_match",
    "Transaction",
    "Submission",
    "OrderSummary",
    # Capture
    "CaptureOutcome",
    "LateHandler",
    "capture_with_deadline",
    # Submission
    "select_method",
    "list_methods",
    "OrderSubmitter",
    # Status
    "HasStatus",
    "DisplayStatus",
    "project",
    "StatusBadge",
    "badge",
    "CURRENT_STATUSES",
    "is_current",
    "partition_history",
    "filter_orders",
    # Reorder
    "Reordered",
    "reorder",
)
