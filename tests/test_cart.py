"""Tests for CartManager and stock re-validation."""

import random
from decimal import Decimal

import pytest

from shopsync.cart import CartLine, CartManager, CartSnapshot, Coupon, revalidate
from shopsync.errors import (
    CollaboratorFailed,
    InsufficientStock,
    InvalidQuantity,
    LineNotFound,
    StockChanged,
)
from _support import err, ok


class TestAddItem:
    """Tests for add_item."""

    def test_creates_line(self):
        cart = CartManager()
        added = ok(cart.add_item(1, 2, 24999, 50))

        assert added.clamped is None
        assert added.line.quantity == 2
        assert added.line.unit_price == 24999
        assert len(cart) == 1

    def test_merges_into_existing_line(self, cart):
        line_id = cart.snapshot().lines[0].id
        added = ok(cart.add_item(1, 3, 24999, 50))

        assert added.line.id == line_id
        assert added.line.quantity == 5
        assert len(cart) == 1

    def test_clamps_to_stock(self, cart):
        added = ok(cart.add_item(1, 60, 24999, 50))

        assert added.line.quantity == 50
        assert added.clamped is not None
        assert added.clamped.requested == 62
        assert added.clamped.granted == 50

    def test_invalid_quantity(self):
        cart = CartManager()

        assert err(cart.add_item(1, 0, 24999, 50)) == InvalidQuantity(0)
        assert cart.is_empty

    def test_out_of_stock(self):
        cart = CartManager()
        e = err(cart.add_item(4, 1, 1999, 0))

        assert isinstance(e, InsufficientStock)
        assert e.available == 0
        assert cart.is_empty

    def test_readd_refreshes_price_and_stock(self, cart):
        added = ok(cart.add_item(1, 1, 22999, 40))

        assert added.line.unit_price == 22999
        assert added.line.available_stock == 40
        assert added.line.quantity == 3


class TestUpdateQuantity:
    """Tests for update_quantity."""

    def test_sets_quantity(self, cart):
        line = cart.snapshot().lines[0]
        updated = ok(cart.update_quantity(line.id, 7))

        assert updated.quantity == 7
        assert cart.snapshot().line(line.id).quantity == 7

    def test_zero_is_invalid_and_leaves_line(self, cart):
        line = cart.snapshot().lines[0]

        assert err(cart.update_quantity(line.id, 0)) == InvalidQuantity(0)
        assert cart.snapshot().line(line.id) == line

    def test_above_stock_is_rejected_not_clamped(self, cart):
        line = cart.snapshot().lines[0]
        e = err(cart.update_quantity(line.id, 51))

        assert isinstance(e, InsufficientStock)
        assert e.line_id == line.id
        assert cart.snapshot().line(line.id).quantity == 2

    def test_unknown_line(self, cart):
        assert err(cart.update_quantity("ln_missing", 1)) == LineNotFound("ln_missing")

    def test_random_updates_never_exceed_stock(self):
        rng = random.Random(7)
        cart = CartManager()
        line = ok(cart.add_item(1, 1, 1000, 10)).line

        for _ in range(200):
            before = cart.snapshot().line(line.id)
            requested = rng.randint(-3, 15)
            result = cart.update_quantity(line.id, requested)
            after = cart.snapshot().line(line.id)

            assert 1 <= after.quantity <= after.available_stock
            if 1 <= requested <= 10:
                assert ok(result) == after
            else:
                err(result)
                assert after == before


class TestRemoveAndClear:
    def test_remove(self, cart):
        line = cart.snapshot().lines[0]

        assert cart.remove_item(line.id) == line
        assert cart.is_empty

    def test_remove_absent_is_noop(self, cart):
        assert cart.remove_item("ln_missing") is None
        assert len(cart) == 1

    def test_clear_drops_coupon(self, cart):
        cart.apply_coupon(Coupon("SAVE10", Decimal("0.10")))
        cart.clear()

        assert cart.is_empty
        assert cart.coupon is None

    def test_coupon_replace(self, cart):
        first = Coupon("SAVE10", Decimal("0.10"))
        second = Coupon("WELCOME20", Decimal("0.20"))

        assert cart.apply_coupon(first) is None
        assert cart.apply_coupon(second) == first
        assert cart.remove_coupon() == second
        assert cart.remove_coupon() is None


class TestSnapshot:
    def test_from_snapshot_restores_lines_and_coupon(self):
        coupon = Coupon("SAVE10", Decimal("0.10"))
        snap = CartSnapshot(
            lines=(CartLine("ln_a", 1, 2, 24999, 50),),
            coupon=coupon,
        )
        cart = CartManager.from_snapshot(snap)

        assert cart.snapshot() == snap

    def test_from_snapshot_rejects_duplicate_products(self):
        snap = CartSnapshot(lines=(
            CartLine("ln_a", 1, 2, 24999, 50),
            CartLine("ln_b", 1, 1, 24999, 50),
        ))
        with pytest.raises(ValueError):
            CartManager.from_snapshot(snap)

    def test_coupon_rate_bounds(self):
        with pytest.raises(ValueError):
            Coupon("FREE", Decimal("1"))


class TestStockSync:
    """Tests for sync_stock and revalidate."""

    def test_sync_reports_without_changing_quantity(self, cart):
        line = cart.snapshot().lines[0]
        conflicts = cart.sync_stock({1: 1})

        assert [c.line_id for c in conflicts] == [line.id]
        synced = cart.snapshot().line(line.id)
        assert synced.quantity == 2
        assert synced.available_stock == 1

    def test_sync_without_drop(self, cart):
        assert cart.sync_stock({1: 30}) == ()
        assert cart.snapshot().lines[0].available_stock == 30

    async def test_revalidate_ok(self, cart, catalog):
        snap = ok(await revalidate(cart, catalog))

        assert snap.lines[0].available_stock == 50

    async def test_revalidate_stock_changed(self, cart, catalog):
        catalog.set_stock(1, 1)
        e = err(await revalidate(cart, catalog))

        assert isinstance(e, StockChanged)
        assert e.line_ids == (cart.snapshot().lines[0].id,)
        assert cart.snapshot().lines[0].quantity == 2

    async def test_revalidate_reads_in_parallel(self, catalog):
        catalog.latency = 0.05
        cart = CartManager()
        cart.add_item(1, 1, 24999, 50)
        cart.add_item(2, 1, 19999, 75)
        cart.add_item(3, 1, 6999, 120)

        ok(await revalidate(cart, catalog))
        assert catalog.reads == 3

    async def test_revalidate_catalog_failure(self, cart, catalog):
        catalog.fail_with(RuntimeError("catalog down"))
        e = err(await revalidate(cart, catalog))

        assert isinstance(e, CollaboratorFailed)
        assert e.operation == "get_product"
