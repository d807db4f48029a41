"""
Coupon resolver — code lookup against the policy's coupon table.
"""

from __future__ import annotations

import logging

from kungfu import Result, Ok, Error

from shopsync.cart import CartManager, Coupon
from shopsync.config import DEFAULT_PRICING, PricingPolicy
from shopsync.errors import CouponNotFound

logger = logging.getLogger(__name__)


def normalize(code: str) -> str:
    return code.strip().upper()


class CouponResolver:
    """
    Example:
        resolver = CouponResolver()
        match resolver.apply(cart, " save10 "):
            case Ok(coupon):
                ...  # cart.coupon is SAVE10, any previous coupon replaced
            case Error(CouponNotFound(code=code)):
                ...  # cart unchanged
    """

    __slots__ = ("_policy",)

    def __init__(self, policy: PricingPolicy = DEFAULT_PRICING) -> None:
        self._policy = policy

    def resolve(self, code: str) -> Result[Coupon, CouponNotFound]:
        normalized = normalize(code)
        rate = self._policy.coupons.get(normalized)
        if rate is None:
            return Error(CouponNotFound(normalized))
        return Ok(Coupon(code=normalized, discount_rate=rate))

    def apply(self, cart: CartManager, code: str) -> Result[Coupon, CouponNotFound]:
        """Resolve and apply, replacing any coupon already on the cart."""
        match self.resolve(code):
            case Ok(coupon):
                replaced = cart.apply_coupon(coupon)
                if replaced is not None and replaced != coupon:
                    logger.info("Coupon %s replaced by %s", replaced.code, coupon.code)
                return Ok(coupon)
            case Error(e):
                return Error(e)


__all__ = ("normalize", "CouponResolver")
