"""Tests for the pricing engine and coupon resolver."""

import random
from decimal import Decimal

import pytest

from shopsync.cart import CartManager, CartSnapshot, Coupon
from shopsync.config import PricingPolicy
from shopsync.errors import CouponNotFound
from shopsync.pricing import CouponResolver, Pricing, price
from _support import err, ok


def assert_identity(b):
    assert b.taxable_amount == b.subtotal - b.discount
    assert b.total == b.subtotal - b.discount + b.tax + b.shipping


class TestPrice:
    """Tests for price()."""

    def test_save10_scenario(self, cart):
        b = price(cart.snapshot(), Coupon("SAVE10", Decimal("0.10")))

        assert b.subtotal == 49998
        assert b.discount == 5000
        assert b.taxable_amount == 44998
        assert b.tax == 4500
        assert b.shipping == 0
        assert b.total == 49498

    def test_without_coupon(self, cart):
        b = price(cart.snapshot())

        assert b.discount == 0
        assert b.tax == 5000
        assert b.total == 54998

    def test_empty_cart_is_free(self):
        b = price(CartSnapshot())

        assert (b.subtotal, b.tax, b.shipping, b.total) == (0, 0, 0, 0)

    def test_shipping_threshold_is_strict(self):
        cart = CartManager()
        cart.add_item(1, 1, 5000, 10)
        assert price(cart.snapshot()).shipping == 999

        cart.add_item(2, 1, 1, 10)
        assert price(cart.snapshot()).shipping == 0

    def test_threshold_uses_subtotal_before_discount(self):
        cart = CartManager()
        cart.add_item(1, 1, 5500, 10)
        b = price(cart.snapshot(), Coupon("WELCOME20", Decimal("0.20")))

        assert b.taxable_amount == 4400
        assert b.shipping == 0

    def test_custom_policy(self, cart):
        policy = PricingPolicy().with_tax_rate(Decimal("0.08")).with_shipping(fee=0)
        b = price(cart.snapshot(), policy=policy)

        assert b.tax == 4000
        assert_identity(b)

    def test_identity_over_random_mutations(self):
        rng = random.Random(42)
        cart = CartManager()
        coupons = [None, *(Coupon(c, r) for c, r in PricingPolicy().coupons.items())]

        for _ in range(300):
            action = rng.choice(("add", "update", "remove", "coupon"))
            lines = cart.snapshot().lines
            if action == "add":
                cart.add_item(
                    rng.randint(1, 8), rng.randint(1, 5), rng.randint(1, 30000), rng.randint(0, 20)
                )
            elif action == "update" and lines:
                cart.update_quantity(rng.choice(lines).id, rng.randint(0, 25))
            elif action == "remove" and lines:
                cart.remove_item(rng.choice(lines).id)
            elif action == "coupon":
                coupon = rng.choice(coupons)
                if coupon is None:
                    cart.remove_coupon()
                else:
                    cart.apply_coupon(coupon)

            assert_identity(Pricing().breakdown(cart))


class TestPricing:
    def test_breakdown_uses_cart_coupon(self, cart):
        cart.apply_coupon(Coupon("SAVE10", Decimal("0.10")))

        assert Pricing().breakdown(cart).total == 49498
        assert Pricing().breakdown(cart.snapshot()).total == 49498

    def test_recomputes_after_mutation(self, cart):
        pricing = Pricing()
        before = pricing.breakdown(cart)
        cart.update_quantity(cart.snapshot().lines[0].id, 1)

        assert pricing.breakdown(cart).subtotal == before.subtotal - 24999

    def test_coupon_apply_remove_round_trip(self, cart):
        pricing = Pricing()
        before = pricing.breakdown(cart)

        ok(CouponResolver().apply(cart, "STUDENT15"))
        assert pricing.breakdown(cart) != before
        cart.remove_coupon()

        assert pricing.breakdown(cart) == before


class TestCouponResolver:
    """Tests for CouponResolver."""

    def test_normalizes_code(self):
        coupon = ok(CouponResolver().resolve("  save10 "))

        assert coupon == Coupon("SAVE10", Decimal("0.10"))

    def test_unknown_code(self):
        assert err(CouponResolver().resolve("bogus")) == CouponNotFound("BOGUS")

    def test_apply_replaces_previous(self, cart):
        resolver = CouponResolver()
        ok(resolver.apply(cart, "SAVE10"))
        ok(resolver.apply(cart, "welcome20"))

        assert cart.coupon.code == "WELCOME20"

    def test_failed_apply_keeps_cart(self, cart):
        resolver = CouponResolver()
        ok(resolver.apply(cart, "SAVE10"))
        err(resolver.apply(cart, "NOPE"))

        assert cart.coupon.code == "SAVE10"

    def test_policy_coupons(self):
        policy = PricingPolicy().with_coupon("spring25", Decimal("0.25")).without_coupon("SAVE10")
        resolver = CouponResolver(policy)

        assert ok(resolver.resolve("SPRING25")).discount_rate == Decimal("0.25")
        err(resolver.resolve("SAVE10"))

    def test_policy_rejects_bad_rate(self):
        with pytest.raises(ValueError):
            PricingPolicy().with_coupon("FREE", Decimal("1.0"))
