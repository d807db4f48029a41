"""
Stock re-validation — live reads against the catalog.

Reads every product in parallel via combinators.traverse_par; a single
failed read fails the whole check (fail-fast).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from kungfu import Result, Ok, Error, LazyCoroResult

import combinators as C
from combinators import lift as L

from shopsync._types import ProductId
from shopsync.cart._manager import CartManager
from shopsync.cart._types import CartLine, CartSnapshot
from shopsync.errors import CollaboratorFailed, StockChanged, StockConflict
from shopsync.ports import Catalog, Product

logger = logging.getLogger(__name__)


def fetch_product(
    catalog: Catalog,
    product_id: ProductId,
) -> LazyCoroResult[Product, CollaboratorFailed]:
    """Lazy catalog read; exceptions become CollaboratorFailed."""
    return L.catching_async(
        lambda: catalog.get_product(product_id),
        on_error=lambda e: CollaboratorFailed("get_product", f"{product_id}: {e}"),
    )


async def fetch_products(
    catalog: Catalog,
    product_ids: Sequence[ProductId],
) -> Result[list[Product], CollaboratorFailed]:
    """Read several products in parallel, preserving order."""
    if not product_ids:
        return Ok([])
    return await C.traverse_par(
        list(product_ids), lambda pid: fetch_product(catalog, pid)
    )()


async def read_stock(
    catalog: Catalog,
    product_ids: Iterable[ProductId],
) -> Result[dict[ProductId, int], CollaboratorFailed]:
    """Live stock level per product."""
    unique = list(dict.fromkeys(product_ids))
    match await fetch_products(catalog, unique):
        case Ok(products):
            return Ok({p.id: p.stock for p in products})
        case Error(e):
            return Error(e)


def conflicts_for(
    lines: Iterable[CartLine],
    levels: dict[ProductId, int],
) -> tuple[StockConflict, ...]:
    """Lines whose quantity exceeds the given levels. Unknown products count as 0."""
    return tuple(
        StockConflict(ln.id, ln.product_id, ln.quantity, levels.get(ln.product_id, 0))
        for ln in lines
        if ln.quantity > levels.get(ln.product_id, 0)
    )


async def revalidate(
    cart: CartManager,
    catalog: Catalog,
) -> Result[CartSnapshot, StockChanged | CollaboratorFailed]:
    """
    Sync the cart with live stock.

    Ok(snapshot) when every line still fits; Error(StockChanged) naming the
    offending lines otherwise. Quantities are never adjusted here.
    """
    snapshot = cart.snapshot()
    match await read_stock(catalog, (ln.product_id for ln in snapshot.lines)):
        case Error(e):
            return Error(e)
        case Ok(levels):
            conflicts = cart.sync_stock(levels)

    if conflicts:
        logger.warning(
            "Stock changed under %d line(s): %s",
            len(conflicts),
            ", ".join(c.line_id for c in conflicts),
        )
        return Error(StockChanged(conflicts))
    return Ok(cart.snapshot())


__all__ = (
    "fetch_product",
    "fetch_products",
    "read_stock",
    "conflicts_for",
    "revalidate",
)
