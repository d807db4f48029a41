"""
Cart — owned cart state kept consistent with live stock.

    from shopsync import cart as K

    cart = K.CartManager()
    cart.add_item(product_id=1, quantity=2, unit_price=24999, available_stock=50)
    result = await K.revalidate(cart, catalog)   # Ok(snapshot) | Error(StockChanged)
"""

from __future__ import annotations

from shopsync.cart._types import (
    Coupon,
    CartLine,
    CartSnapshot,
    StockClamped,
    Added,
)
from shopsync.cart._manager import CartManager
from shopsync.cart._revalidate import (
    fetch_product,
    fetch_products,
    read_stock,
    conflicts_for,
    revalidate,
)

__all__ = (
    "Coupon",
    "CartLine",
    "CartSnapshot",
    "StockClamped",
    "Added",
    "CartManager",
    "fetch_product",
    "fetch_products",
    "read_stock",
    "conflicts_for",
    "revalidate",
)
