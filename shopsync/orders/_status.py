"""
Status projection — what a customer sees for an order.

Approval overlays fulfilment status:

    approval pending  → PENDING_APPROVAL
    approval rejected → REJECTED
    otherwise         → order_status, one to one

Works on anything carrying `order_status` and `approval_status`, so both
Order and OrderSummary project the same way.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from shopsync._types import ApprovalStatus, OrderStatus, ProductId
from shopsync.orders._types import Order, OrderSummary


class HasStatus(Protocol):
    @property
    def order_status(self) -> OrderStatus: ...

    @property
    def approval_status(self) -> ApprovalStatus | None: ...


class DisplayStatus(Enum):
    PENDING_APPROVAL = "pending_approval"
    REJECTED = "rejected"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


def project(order: HasStatus) -> DisplayStatus:
    match order.approval_status:
        case ApprovalStatus.PENDING:
            return DisplayStatus.PENDING_APPROVAL
        case ApprovalStatus.REJECTED:
            return DisplayStatus.REJECTED
        case _:
            return DisplayStatus(order.order_status.value)


# ═══════════════════════════════════════════════════════════════════════════════
# Badges
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StatusBadge:
    """Presentation hints. `tone` is a colour name, `icon` a glyph name."""

    label: str
    icon: str
    tone: str


_BADGES: Mapping[DisplayStatus, StatusBadge] = {
    DisplayStatus.PENDING_APPROVAL: StatusBadge("Pending Approval", "clock", "yellow"),
    DisplayStatus.REJECTED: StatusBadge("Rejected", "rotate-ccw", "red"),
    DisplayStatus.PENDING: StatusBadge("Pending", "clock", "yellow"),
    DisplayStatus.CONFIRMED: StatusBadge("Confirmed", "check-circle", "blue"),
    DisplayStatus.PROCESSING: StatusBadge("Processing", "package", "purple"),
    DisplayStatus.SHIPPED: StatusBadge("Shipped", "truck", "indigo"),
    DisplayStatus.DELIVERED: StatusBadge("Delivered", "check-circle", "green"),
    DisplayStatus.CANCELLED: StatusBadge("Cancelled", "rotate-ccw", "red"),
}


def badge(order: HasStatus) -> StatusBadge:
    return _BADGES[project(order)]


# ═══════════════════════════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════════════════════════

CURRENT_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
})


def is_current(order: HasStatus) -> bool:
    """Still moving: not yet delivered or cancelled."""
    return order.order_status in CURRENT_STATUSES


def partition_history[O: HasStatus](orders: Iterable[O]) -> tuple[list[O], list[O]]:
    """Split into (current, past), keeping order."""
    current: list[O] = []
    past: list[O] = []
    for order in orders:
        (current if is_current(order) else past).append(order)
    return current, past


def _names(
    order: Order | OrderSummary,
    product_names: Mapping[ProductId, str],
) -> Iterable[str]:
    if isinstance(order, OrderSummary):
        return order.item_names
    return (product_names.get(ln.product_id, "") for ln in order.lines)


def filter_orders[O: (Order, OrderSummary)](
    orders: Iterable[O],
    status: OrderStatus | None = None,
    query: str = "",
    product_names: Mapping[ProductId, str] | None = None,
) -> list[O]:
    """
    Orders matching a status and a free-text query.

    The query matches a substring of the order number or, case-insensitively,
    of any product name. Orders carry no names themselves; pass
    `product_names` to search them.
    """
    needle = query.strip().lower()
    names = product_names or {}
    matched: list[O] = []
    for order in orders:
        if status is not None and order.order_status is not status:
            continue
        if needle and not (
            needle in order.order_number.lower()
            or any(needle in name.lower() for name in _names(order, names))
        ):
            continue
        matched.append(order)
    return matched


__all__ = (
    "HasStatus",
    "DisplayStatus",
    "project",
    "StatusBadge",
    "badge",
    "CURRENT_STATUSES",
    "is_current",
    "partition_history",
    "filter_orders",
)
