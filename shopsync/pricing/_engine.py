"""
Pricing engine — pure totals from a cart snapshot.

Order of operations:

    subtotal  = Σ unit_price × quantity
    discount  = subtotal × coupon rate        (0 without coupon)
    taxable   = subtotal − discount
    tax       = taxable × tax rate
    shipping  = 0 if subtotal > threshold else flat fee   (0 for an empty cart)
    total     = taxable + tax + shipping

Integer cents throughout; discount and tax round half-up to the cent, so
total == subtotal − discount + tax + shipping holds exactly.
"""

from __future__ import annotations

from dataclasses import dataclass

from shopsync._types import Minor
from shopsync.cart import CartManager, CartSnapshot, Coupon
from shopsync.config import DEFAULT_PRICING, PricingPolicy
from shopsync.money import apply_rate


@dataclass(frozen=True, slots=True)
class PricingBreakdown:
    subtotal: Minor
    discount: Minor
    taxable_amount: Minor
    tax: Minor
    shipping: Minor
    total: Minor


def price(
    cart: CartSnapshot,
    coupon: Coupon | None = None,
    policy: PricingPolicy = DEFAULT_PRICING,
) -> PricingBreakdown:
    """
    Compute the breakdown for a snapshot and an optional coupon.

    The coupon is taken from the argument only; use Pricing.breakdown() to
    price with the coupon applied to the cart.
    """
    subtotal = sum(line.line_total for line in cart.lines)
    discount = apply_rate(subtotal, coupon.discount_rate) if coupon else 0
    taxable = subtotal - discount
    tax = apply_rate(taxable, policy.tax_rate)

    if cart.is_empty or subtotal > policy.free_shipping_threshold:
        shipping = 0
    else:
        shipping = policy.flat_shipping_fee

    return PricingBreakdown(
        subtotal=subtotal,
        discount=discount,
        taxable_amount=taxable,
        tax=tax,
        shipping=shipping,
        total=taxable + tax + shipping,
    )


class Pricing:
    """
    Policy-bound pricing for carts.

    Recomputes on every call; nothing is cached between mutations.
    """

    __slots__ = ("_policy",)

    def __init__(self, policy: PricingPolicy = DEFAULT_PRICING) -> None:
        self._policy = policy

    @property
    def policy(self) -> PricingPolicy:
        return self._policy

    def breakdown(self, cart: CartManager | CartSnapshot) -> PricingBreakdown:
        snapshot = cart.snapshot() if isinstance(cart, CartManager) else cart
        return price(snapshot, snapshot.coupon, self._policy)


__all__ = ("PricingBreakdown", "price", "Pricing")
