"""
Cart manager — the single owner of a session's cart.

Every mutation keeps two invariants:
- no two lines share a product_id
- no line holds more than its available_stock

Stock can still drop underneath the cart; sync_stock() records the live
levels and reports the lines that no longer fit without touching quantities.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping

from kungfu import Result, Ok, Error

from shopsync._types import LineId, Minor, ProductId
from shopsync.cart._types import Added, CartLine, CartSnapshot, Coupon, StockClamped
from shopsync.errors import (
    InsufficientStock,
    InvalidQuantity,
    LineNotFound,
    StockConflict,
)

logger = logging.getLogger(__name__)


def _new_line_id() -> LineId:
    return f"ln_{uuid.uuid4().hex[:12]}"


class CartManager:
    """
    Owned, injectable cart.

    Example:
        cart = CartManager()
        match cart.add_item(product_id=1, quantity=3, unit_price=24999, available_stock=2):
            case Ok(Added(line=line, clamped=StockClamped() as c)):
                notify(f"Only {c.granted} available")
            case Ok(Added(line=line)):
                ...
            case Error(e):
                notify(e.message)
    """

    __slots__ = ("_lines", "_coupon")

    def __init__(self) -> None:
        self._lines: dict[LineId, CartLine] = {}
        self._coupon: Coupon | None = None

    @classmethod
    def from_snapshot(cls, snapshot: CartSnapshot) -> CartManager:
        """Restore a stored cart. Quantities are re-checked on the next sync."""
        cart = cls()
        for line in snapshot.lines:
            if cart._find(line.product_id) is not None:
                raise ValueError(f"Duplicate product {line.product_id} in stored cart")
            if line.quantity < 1:
                raise ValueError(f"Line {line.id} has quantity {line.quantity}")
            cart._lines[line.id] = line
        cart._coupon = snapshot.coupon
        return cart

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(lines=tuple(self._lines.values()), coupon=self._coupon)

    @property
    def coupon(self) -> Coupon | None:
        return self._coupon

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def _find(self, product_id: ProductId) -> CartLine | None:
        return next(
            (ln for ln in self._lines.values() if ln.product_id == product_id), None
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Mutations
    # ───────────────────────────────────────────────────────────────────────────

    def add_item(
        self,
        product_id: ProductId,
        quantity: int,
        unit_price: Minor,
        available_stock: int,
    ) -> Result[Added, InvalidQuantity | InsufficientStock]:
        """
        Add units of a product, merging into its existing line.

        The resulting quantity is clamped to [1, available_stock]; a clamp is
        reported as StockClamped on the Added outcome. The line's price and
        stock snapshots are refreshed to the values given here.
        """
        if quantity < 1:
            return Error(InvalidQuantity(quantity))

        existing = self._find(product_id)
        if available_stock < 1:
            return Error(InsufficientStock(
                product_id=product_id,
                requested=quantity + (existing.quantity if existing else 0),
                available=max(available_stock, 0),
                line_id=existing.id if existing else None,
            ))

        requested = quantity + (existing.quantity if existing else 0)
        granted = min(requested, available_stock)
        line = CartLine(
            id=existing.id if existing else _new_line_id(),
            product_id=product_id,
            quantity=granted,
            unit_price=unit_price,
            available_stock=available_stock,
        )
        self._lines[line.id] = line

        clamped = None
        if granted < requested:
            clamped = StockClamped(line.id, product_id, requested, granted)
            logger.info(
                "Clamped product %s to %d (requested %d)", product_id, granted, requested
            )
        return Ok(Added(line=line, clamped=clamped))

    def update_quantity(
        self,
        line_id: LineId,
        new_quantity: int,
    ) -> Result[CartLine, InvalidQuantity | InsufficientStock | LineNotFound]:
        """Set a line's quantity exactly. Never clamps; failures change nothing."""
        if new_quantity < 1:
            return Error(InvalidQuantity(new_quantity))

        line = self._lines.get(line_id)
        if line is None:
            return Error(LineNotFound(line_id))
        if new_quantity > line.available_stock:
            return Error(InsufficientStock(
                product_id=line.product_id,
                requested=new_quantity,
                available=line.available_stock,
                line_id=line_id,
            ))

        updated = CartLine(
            id=line.id,
            product_id=line.product_id,
            quantity=new_quantity,
            unit_price=line.unit_price,
            available_stock=line.available_stock,
        )
        self._lines[line_id] = updated
        return Ok(updated)

    def remove_item(self, line_id: LineId) -> CartLine | None:
        """Remove a line. Absent lines are a no-op."""
        return self._lines.pop(line_id, None)

    def clear(self) -> None:
        """Empty the cart and drop the coupon."""
        self._lines.clear()
        self._coupon = None

    def apply_coupon(self, coupon: Coupon) -> Coupon | None:
        """Apply a coupon, returning the one it replaced."""
        previous, self._coupon = self._coupon, coupon
        return previous

    def remove_coupon(self) -> Coupon | None:
        previous, self._coupon = self._coupon, None
        return previous

    # ───────────────────────────────────────────────────────────────────────────
    # Stock
    # ───────────────────────────────────────────────────────────────────────────

    def sync_stock(self, levels: Mapping[ProductId, int]) -> tuple[StockConflict, ...]:
        """
        Record live stock levels and report lines now over stock.

        Quantities are left as the user chose them; remediation is theirs.
        """
        for line in list(self._lines.values()):
            live = levels.get(line.product_id)
            if live is None or live == line.available_stock:
                continue
            self._lines[line.id] = CartLine(
                id=line.id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                available_stock=max(live, 0),
            )

        return tuple(
            StockConflict(ln.id, ln.product_id, ln.quantity, ln.available_stock)
            for ln in self._lines.values()
            if ln.over_stock
        )


__all__ = ("CartManager",)
