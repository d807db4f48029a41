"""Tests for OrderSubmitter: order creation, capture and reconciliation."""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import timedelta

import pytest

from shopsync import orders as O
from shopsync._types import (
    FailureReason,
    OrderStatus,
    PaymentStatus,
    TransactionStatus,
)
from shopsync.cart import CartManager
from shopsync.config import CheckoutPolicy
from shopsync.errors import (
    AlreadyPaid,
    CollaboratorFailed,
    EmptyCart,
    NoPaymentMethodSelected,
    PaymentFailed,
    PaymentUnrecorded,
    StockChanged,
)
from shopsync.mock import InMemoryOrderStore
from _support import err, ok


async def submit(submitter, cart, address, method_id=1):
    return await submitter.submit(cart, payment_method_id=method_id, billing_address=address)


class TestSubmitSuccess:
    async def test_paid_and_cart_cleared(self, submitter, cart, address):
        submission = ok(await submit(submitter, cart, address))

        assert submission.order.payment_status is PaymentStatus.PAID
        assert submission.order.order_status is OrderStatus.PROCESSING
        assert submission.transaction.status is TransactionStatus.CAPTURED
        assert submission.transaction.amount == submission.order.total == 54998
        assert cart.is_empty

    async def test_order_persisted_before_transaction(self, submitter, cart, address, store):
        ok(await submit(submitter, cart, address))
        kinds = [(kind, r.status if kind == "transaction" else r.payment_status)
                 for kind, r in store.writes]

        assert kinds == [
            ("order", PaymentStatus.PENDING),
            ("transaction", TransactionStatus.INITIATED),
            ("transaction", TransactionStatus.CAPTURED),
            ("order", PaymentStatus.PAID),
        ]

    async def test_references(self, submitter, cart, address):
        submission = ok(await submit(submitter, cart, address))

        assert re.fullmatch(r"ORD-[A-Z0-9]{9}", submission.order.order_number)
        assert re.fullmatch(r"TXN-[A-Z0-9]{9}", submission.transaction.transaction_id)

    async def test_settled_transactions_are_released(self, submitter, cart, address, gateway):
        gateway.script(TransactionStatus.FAILED)
        failed = err(await submit(submitter, cart, address))
        ok(await submitter.retry_payment(failed.order, 2, cart))

        assert submitter._transactions == {}
        assert submitter.latest(failed.order).is_paid

    async def test_lines_and_totals_are_frozen(self, submitter, cart, address, catalog):
        submission = ok(await submit(submitter, cart, address))
        catalog.set_price(1, 1000)

        assert submission.order.lines[0].unit_price == 24999
        assert submission.order.totals.subtotal == 49998

    async def test_confirmed_status_policy(
        self, catalog, directory, gateway, store, cart, address
    ):
        policy = CheckoutPolicy().with_captured_status(OrderStatus.CONFIRMED)
        submitter = O.OrderSubmitter(catalog, directory, gateway, store, policy=policy)
        submission = ok(await submit(submitter, cart, address))

        assert submission.order.order_status is OrderStatus.CONFIRMED


class TestSubmitRefused:
    """Nothing is created when the preconditions fail."""

    async def test_empty_cart(self, submitter, address, store):
        assert err(await submit(submitter, CartManager(), address)) == EmptyCart()
        assert store.writes == []

    async def test_no_method(self, submitter, cart, address, store):
        assert err(await submit(submitter, cart, address, None)) == NoPaymentMethodSelected()
        assert store.writes == []

    async def test_stock_changed(self, submitter, cart, address, catalog, store, gateway):
        catalog.set_stock(1, 1)
        e = err(await submit(submitter, cart, address))

        assert isinstance(e, StockChanged)
        assert e.line_ids == (cart.snapshot().lines[0].id,)
        assert store.writes == []
        assert gateway.calls == []
        assert not cart.is_empty

    async def test_directory_failure(self, submitter, cart, address, directory):
        async def broken():
            raise ConnectionError("directory unreachable")

        directory.list_methods = broken
        e = err(await submit(submitter, cart, address))

        assert isinstance(e, CollaboratorFailed)
        assert e.operation == "list_methods"


class TestPaymentFailure:
    async def test_declined(self, submitter, cart, address, gateway, store):
        gateway.script(TransactionStatus.FAILED, reason="card declined")
        e = err(await submit(submitter, cart, address))

        assert isinstance(e, PaymentFailed)
        assert e.reason is FailureReason.DECLINED
        assert e.detail == "card declined"
        assert e.order.payment_status is PaymentStatus.FAILED
        assert e.order.order_status is OrderStatus.PENDING
        assert e.transaction.status is TransactionStatus.FAILED
        assert store.orders[e.order.id] == e.order
        assert not cart.is_empty

    async def test_gateway_error(self, submitter, cart, address, gateway):
        gateway.fail_with(ConnectionResetError("reset by peer"))
        e = err(await submit(submitter, cart, address))

        assert e.reason is FailureReason.GATEWAY_ERROR
        assert "reset by peer" in e.detail

    async def test_no_automatic_retry(self, submitter, cart, address, gateway):
        gateway.script(TransactionStatus.FAILED)
        err(await submit(submitter, cart, address))

        assert len(gateway.calls) == 1


class TestRetryPayment:
    """Tests for retry_payment."""

    async def test_retry_after_decline(self, submitter, cart, address, gateway, store):
        gateway.script(TransactionStatus.FAILED)
        failed = err(await submit(submitter, cart, address))
        submission = ok(await submitter.retry_payment(failed.order, 2, cart))

        assert submission.order.id == failed.order.id
        assert submission.order.payment_status is PaymentStatus.PAID
        assert submission.transaction.transaction_id != failed.transaction.transaction_id
        assert [c.method_id for c in gateway.calls] == [1, 2]
        assert len(store.transactions_for(failed.order.id)) == 2
        assert cart.is_empty

    async def test_already_paid(self, submitter, cart, address):
        submission = ok(await submit(submitter, cart, address))

        assert err(await submitter.retry_payment(submission.order, 1)) == AlreadyPaid(
            submission.order.order_number
        )

    async def test_stale_order_object_still_refused(self, submitter, cart, address, gateway):
        gateway.script(TransactionStatus.FAILED)
        failed = err(await submit(submitter, cart, address))
        ok(await submitter.retry_payment(failed.order, 1))

        assert isinstance(err(await submitter.retry_payment(failed.order, 1)), AlreadyPaid)

    async def test_stock_rechecked(self, submitter, cart, address, gateway, catalog, store):
        gateway.script(TransactionStatus.FAILED)
        failed = err(await submit(submitter, cart, address))
        catalog.set_stock(1, 0)
        writes = len(store.writes)

        assert isinstance(err(await submitter.retry_payment(failed.order, 1)), StockChanged)
        assert len(store.writes) == writes

    async def test_retry_keeps_cart_that_moved_on(self, submitter, cart, address, gateway):
        gateway.script(TransactionStatus.FAILED)
        failed = err(await submit(submitter, cart, address))
        cart.add_item(2, 1, 19999, 75)
        ok(await submitter.retry_payment(failed.order, 1, cart))

        assert len(cart) == 2


class TestPersistenceFailure:
    async def test_order_write_fails(self, submitter, cart, address, store, gateway):
        store.order_failure = OSError("disk full")
        e = err(await submit(submitter, cart, address))

        assert isinstance(e, CollaboratorFailed)
        assert e.operation == "persist_order"
        assert gateway.calls == []

    async def test_transaction_write_cancels_order(self, submitter, cart, address, store, gateway):
        store.transaction_failure = OSError("disk full")
        e = err(await submit(submitter, cart, address))

        assert e.operation == "persist_transaction"
        history = [o.order_status for o in store.history(next(iter(store.orders)))]
        assert history == [OrderStatus.PENDING, OrderStatus.CANCELLED]
        assert gateway.calls == []
        assert not cart.is_empty


class TestDeadlineAndCancellation:
    """Capture is bounded by the policy timeout and survives caller cancellation."""

    @pytest.fixture
    def policy(self):
        return CheckoutPolicy().with_capture_timeout(seconds=0.05)

    async def test_timeout_reported_as_failure(self, submitter, cart, address, gateway):
        gateway.hold()
        e = err(await submit(submitter, cart, address))

        assert isinstance(e, PaymentFailed)
        assert e.is_timeout
        assert e.order.payment_status is PaymentStatus.FAILED
        assert not cart.is_empty

        gateway.release()
        await submitter.drain()

    async def test_late_capture_reconciled(self, submitter, cart, address, gateway, store):
        gateway.hold()
        e = err(await submit(submitter, cart, address))

        gateway.release()
        await submitter.drain()

        assert store.orders[e.order.id].payment_status is PaymentStatus.PAID
        assert store.transactions[e.transaction.transaction_id].status is TransactionStatus.CAPTURED
        assert cart.is_empty
        assert submitter.latest(e.order).is_paid
        assert submitter._transactions == {}

    async def test_late_failure_keeps_timeout_record(self, submitter, cart, address, gateway, store):
        gateway.hold()
        gateway.script(TransactionStatus.FAILED)
        e = err(await submit(submitter, cart, address))

        gateway.release()
        await submitter.drain()

        tx = store.transactions[e.transaction.transaction_id]
        assert tx.failure is FailureReason.TIMEOUT
        assert store.orders[e.order.id].payment_status is PaymentStatus.FAILED

    async def test_cancel_before_capture_leaves_nothing(self, submitter, cart, address, catalog, store):
        catalog.latency = 0.5
        task = asyncio.ensure_future(submit(submitter, cart, address))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert store.writes == []
        assert not cart.is_empty

    async def test_cancel_during_capture_reconciles(self, submitter, cart, address, gateway, store):
        gateway.hold()
        task = asyncio.ensure_future(submit(submitter, cart, address))
        await gateway.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        (order,) = store.orders.values()
        assert order.payment_status is PaymentStatus.PENDING
        assert next(iter(store.transactions.values())).status is TransactionStatus.INITIATED

        gateway.release()
        await submitter.drain()

        assert store.orders[order.id].payment_status is PaymentStatus.PAID
        assert next(iter(store.transactions.values())).status is TransactionStatus.CAPTURED
        assert cart.is_empty

    async def test_duplicate_late_capture_logged(
        self, submitter, cart, address, gateway, store, caplog
    ):
        gateway.hold()
        e = err(await submit(submitter, cart, address))
        gateway.stop_holding()
        ok(await submitter.retry_payment(e.order, 2))

        gateway.release()
        await submitter.drain()

        assert store.orders[e.order.id].payment_status is PaymentStatus.PAID
        assert store.transactions[e.transaction.transaction_id].status is TransactionStatus.CAPTURED
        assert "Duplicate capture" in caplog.text

    async def test_retry_refused_once_late_capture_paid(self, submitter, cart, address, gateway):
        gateway.hold()
        e = err(await submit(submitter, cart, address))
        gateway.release()
        await submitter.drain()

        assert err(await submitter.retry_payment(e.order, 2)) == AlreadyPaid(e.order.order_number)

    async def test_failed_attempt_on_order_paid_meanwhile(
        self, submitter, cart, address, gateway, store
    ):
        gateway.hold()
        e = err(await submit(submitter, cart, address))
        gateway.hold()
        gateway.started.clear()
        retry = asyncio.ensure_future(submitter.retry_payment(e.order, 2))
        await gateway.started.wait()
        gateway.release(1)

        assert err(await retry) == AlreadyPaid(e.order.order_number)
        assert submitter.latest(e.order).is_paid

        gateway.release()
        await submitter.drain()

        assert store.orders[e.order.id].payment_status is PaymentStatus.PAID


@dataclass
class SlowSettleStore(InMemoryOrderStore):
    """Pauses on the write that records a capture outcome."""

    writing: asyncio.Event = field(default_factory=asyncio.Event)

    async def persist_transaction(self, transaction):
        if transaction.is_terminal:
            self.writing.set()
            await asyncio.sleep(0.02)
        await super().persist_transaction(transaction)


class TestWriteBack:
    """A captured payment is recorded even when the caller or the store lets go."""

    @pytest.fixture
    def policy(self):
        return (
            CheckoutPolicy()
            .with_capture_timeout(seconds=1)
            .with_write_back(times=3, delay=timedelta(milliseconds=20))
        )

    async def test_cancel_while_settling_still_records(
        self, catalog, directory, gateway, cart, address, policy
    ):
        store = SlowSettleStore()
        submitter = O.OrderSubmitter(catalog, directory, gateway, store, policy=policy)
        task = asyncio.ensure_future(submit(submitter, cart, address))
        await store.writing.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        await submitter.drain()

        (order,) = store.orders.values()
        assert order.payment_status is PaymentStatus.PAID
        assert next(iter(store.transactions.values())).status is TransactionStatus.CAPTURED
        assert cart.is_empty
        assert len(gateway.calls) == 1

    async def test_unrecorded_capture_refuses_second_charge(
        self, submitter, cart, address, gateway, store
    ):
        gateway.hold()
        task = asyncio.ensure_future(submit(submitter, cart, address))
        await gateway.started.wait()
        store.order_failure = OSError("disk full")
        gateway.release()
        e = err(await task)

        assert isinstance(e, PaymentUnrecorded)
        assert e.cause.operation == "persist_order"
        assert e.order.is_paid
        assert store.orders[e.order.id].payment_status is PaymentStatus.PENDING
        assert not cart.is_empty

        assert err(await submitter.retry_payment(e.order, 2, cart)) == AlreadyPaid(
            e.order.order_number
        )
        assert len(gateway.calls) == 1

        store.order_failure = None
        await submitter.drain()

        assert store.orders[e.order.id].payment_status is PaymentStatus.PAID
        assert cart.is_empty

    async def test_gives_up_after_attempts(
        self, submitter, cart, address, gateway, store, caplog
    ):
        gateway.hold()
        task = asyncio.ensure_future(submit(submitter, cart, address))
        await gateway.started.wait()
        store.transaction_failure = OSError("disk full")
        gateway.release()
        e = err(await task)
        await submitter.drain()

        assert "Gave up recording" in caplog.text
        assert store.transactions[e.transaction.transaction_id].status is TransactionStatus.INITIATED
        assert submitter.latest(e.order).is_paid

    def test_write_back_needs_an_attempt(self):
        with pytest.raises(ValueError):
            CheckoutPolicy().with_write_back(times=0)
