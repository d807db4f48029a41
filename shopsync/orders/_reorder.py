"""
Reorder — put a past order's lines back into the cart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kungfu import Result, Ok, Error

from shopsync._types import ProductId
from shopsync.cart import CartManager, StockClamped, fetch_products
from shopsync.errors import CollaboratorFailed, InsufficientStock
from shopsync.orders._types import Order
from shopsync.ports import Catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reordered:
    """
    added: product ids now in the cart.
    clamped: lines granted fewer units than ordered.
    skipped: products currently out of stock.
    """

    added: tuple[ProductId, ...] = ()
    clamped: tuple[StockClamped, ...] = ()
    skipped: tuple[InsufficientStock, ...] = ()


async def reorder(
    order: Order,
    cart: CartManager,
    catalog: Catalog,
) -> Result[Reordered, CollaboratorFailed]:
    """
    Add every line of `order` at today's price and stock.

    Quantities merge with what the cart already holds. Nothing is added when
    the catalog read fails.
    """
    match await fetch_products(catalog, [ln.product_id for ln in order.lines]):
        case Error(e):
            return Error(e)
        case Ok(products):
            live = {p.id: p for p in products}

    added: list[ProductId] = []
    clamped: list[StockClamped] = []
    skipped: list[InsufficientStock] = []
    for line in order.lines:
        product = live[line.product_id]
        match cart.add_item(
            line.product_id, line.quantity, product.effective_price, product.stock
        ):
            case Ok(result):
                added.append(line.product_id)
                if result.clamped is not None:
                    clamped.append(result.clamped)
            case Error(InsufficientStock() as e):
                skipped.append(e)
            case Error(e):
                raise ValueError(f"Order {order.order_number} holds an invalid line: {e}")

    if skipped:
        logger.info(
            "Reorder of %s skipped %d out-of-stock product(s)",
            order.order_number, len(skipped),
        )
    return Ok(Reordered(tuple(added), tuple(clamped), tuple(skipped)))


__all__ = ("Reordered", "reorder")
