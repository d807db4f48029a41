"""
Pricing — totals and coupons.

    from shopsync import pricing as P

    breakdown = P.price(cart.snapshot(), coupon)
    P.CouponResolver().apply(cart, "SAVE10")
    P.Pricing().breakdown(cart)
"""

from __future__ import annotations

from shopsync.pricing._engine import PricingBreakdown, price, Pricing
from shopsync.pricing._coupons import normalize, CouponResolver

__all__ = (
    "PricingBreakdown",
    "price",
    "Pricing",
    "normalize",
    "CouponResolver",
)
