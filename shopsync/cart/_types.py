"""
Cart types — lines, snapshots, coupons and mutation outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from shopsync._types import LineId, Minor, ProductId

# ═══════════════════════════════════════════════════════════════════════════════
# Coupon
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Coupon:
    """A resolved coupon. At most one is applied to a cart."""

    code: str
    discount_rate: Decimal

    def __post_init__(self) -> None:
        if not Decimal(0) < self.discount_rate < Decimal(1):
            raise ValueError(
                f"Coupon {self.code}: discount rate must be in (0, 1), "
                f"got {self.discount_rate}"
            )


# ═══════════════════════════════════════════════════════════════════════════════
# CartLine & Snapshot
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One product in the cart.

    unit_price is the effective price captured when the line was added.
    available_stock mirrors the product's stock at the last sync.
    """

    id: LineId
    product_id: ProductId
    quantity: int
    unit_price: Minor
    available_stock: int

    @property
    def line_total(self) -> Minor:
        return self.unit_price * self.quantity

    @property
    def over_stock(self) -> bool:
        return self.quantity > self.available_stock


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    """Immutable view of a cart, read by pricing and checkout."""

    lines: tuple[CartLine, ...] = ()
    coupon: Coupon | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def line(self, line_id: LineId) -> CartLine | None:
        return next((ln for ln in self.lines if ln.id == line_id), None)

    def line_for(self, product_id: ProductId) -> CartLine | None:
        return next((ln for ln in self.lines if ln.product_id == product_id), None)


# ═══════════════════════════════════════════════════════════════════════════════
# Mutation Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StockClamped:
    """
    add_item asked for more than stock allows.

    Not an error: the line holds `granted` units and the caller tells the user.
    """

    line_id: LineId
    product_id: ProductId
    requested: int
    granted: int


@dataclass(frozen=True, slots=True)
class Added:
    line: CartLine
    clamped: StockClamped | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Coupon",
    "CartLine",
    "CartSnapshot",
    "StockClamped",
    "Added",
)
