"""
Order submission — cart to order, transaction and captured payment.

    submitter = OrderSubmitter(catalog, directory, gateway, store)

    match await submitter.submit(cart, payment_method_id=1, billing_address=addr):
        case Ok(Submission(order=order)):
            ...                                    # paid; cart cleared
        case Error(PaymentFailed(order=order) as e):
            await submitter.retry_payment(order, 2, cart)
        case Error(StockChanged() as e):
            ...                                    # nothing created

Sequence for one submission:

    re-validate stock ─▶ freeze lines + totals ─▶ persist order
        ─▶ persist transaction ─▶ capture (deadline) ─▶ settle

Cancelling before the order is persisted leaves nothing behind. From the
capture on, the outcome is always written back, late if need be.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Coroutine, Sequence
from datetime import UTC, datetime
from typing import Any

from kungfu import Result, Ok, Error, LazyCoroResult

from combinators import lift as L

from shopsync._types import (
    FailureReason,
    OrderStatus,
    PaymentMethodId,
    PaymentStatus,
)
from shopsync.cart import CartManager, conflicts_for, read_stock, revalidate
from shopsync.config import DEFAULT_CHECKOUT, DEFAULT_PRICING, CheckoutPolicy, PricingPolicy
from shopsync.errors import (
    AlreadyPaid,
    CollaboratorFailed,
    EmptyCart,
    NoPaymentMethodSelected,
    PaymentFailed,
    PaymentUnrecorded,
    StockChanged,
    SubmissionError,
)
from shopsync.orders import _saga as S
from shopsync.orders._capture import CaptureOutcome, capture_with_deadline
from shopsync.orders._types import (
    Address,
    Order,
    Submission,
    Transaction,
    lines_match,
    new_code,
)
from shopsync.ports import (
    Catalog,
    OrderStore,
    PaymentDirectory,
    PaymentGateway,
    PaymentMethodRef,
)
from shopsync.pricing import price

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def select_method(
    methods: Sequence[PaymentMethodRef],
    method_id: PaymentMethodId | None,
) -> Result[PaymentMethodRef, NoPaymentMethodSelected]:
    """The active method with this id, if any."""
    if method_id is None:
        return Error(NoPaymentMethodSelected())
    for method in methods:
        if method.id == method_id and method.is_active:
            return Ok(method)
    return Error(NoPaymentMethodSelected(method_id))


def list_methods(
    directory: PaymentDirectory,
) -> LazyCoroResult[list[PaymentMethodRef], CollaboratorFailed]:
    return L.catching_async(
        lambda: directory.list_methods(),
        on_error=lambda e: CollaboratorFailed("list_methods", str(e)),
    )


class OrderSubmitter:
    """
    Turns a validated cart into a paid order.

    Keeps the latest known version of every order it created so retries and
    late capture outcomes act on current state; a paid order stays known so
    a second charge on it is refused. Transactions are held only while an
    outcome may still land on them. One submitter serves one storefront
    session.

    Once capture has started, settling runs as a background task that the
    caller only waits on. Call drain() before shutdown to let it and any
    reconciliation finish.
    """

    def __init__(
        self,
        catalog: Catalog,
        directory: PaymentDirectory,
        gateway: PaymentGateway,
        store: OrderStore,
        *,
        pricing: PricingPolicy = DEFAULT_PRICING,
        policy: CheckoutPolicy = DEFAULT_CHECKOUT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._catalog = catalog
        self._directory = directory
        self._gateway = gateway
        self._store = store
        self._pricing = pricing
        self._policy = policy
        self._clock = clock
        self._orders: dict[str, Order] = {}
        self._transactions: dict[str, Transaction] = {}
        self._background: set[asyncio.Future[Any]] = set()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def directory(self) -> PaymentDirectory:
        return self._directory

    @property
    def pricing(self) -> PricingPolicy:
        return self._pricing

    @property
    def policy(self) -> CheckoutPolicy:
        return self._policy

    def latest(self, order: Order) -> Order:
        """Most recent version of an order this submitter created."""
        return self._orders.get(order.id, order)

    async def drain(self) -> None:
        """Wait for pending reconciliations."""
        while self._background:
            await asyncio.gather(*self._background)

    # ───────────────────────────────────────────────────────────────────────────
    # Submission
    # ───────────────────────────────────────────────────────────────────────────

    async def submit(
        self,
        cart: CartManager,
        *,
        payment_method_id: PaymentMethodId | None,
        billing_address: Address | None = None,
        shipping_address: Address | None = None,
        notes: str | None = None,
    ) -> Result[Submission, SubmissionError]:
        if cart.is_empty:
            return Error(EmptyCart())

        match await self._method(payment_method_id):
            case Error(e):
                return Error(e)
            case Ok(method):
                pass

        match await revalidate(cart, self._catalog):
            case Error(e):
                return Error(e)
            case Ok(snapshot):
                pass

        totals = price(snapshot, snapshot.coupon, self._pricing)
        order = Order(
            id=uuid.uuid4().hex,
            order_number=self._unique_number(),
            lines=snapshot.lines,
            totals=totals,
            payment_method_id=method.id,
            created_at=self._clock(),
            billing_address=billing_address,
            shipping_address=shipping_address,
            notes=notes,
        )
        cancelled = order.with_status(PaymentStatus.PENDING, OrderStatus.CANCELLED)

        match await self._open(order, rollback_to=cancelled):
            case Error(e):
                return Error(e)
            case Ok(tx):
                logger.info(
                    "Created order %s (%d line(s), total %d) with %s",
                    order.order_number, len(order.lines), order.total, tx.transaction_id,
                )

        return await self._capture(order, tx, method, cart)

    async def retry_payment(
        self,
        order: Order,
        payment_method_id: PaymentMethodId,
        cart: CartManager | None = None,
    ) -> Result[Submission, SubmissionError]:
        """
        New payment attempt against an existing order.

        Stock is re-checked for the order's frozen lines. The cart, when
        given, is cleared on capture only if it still matches the order.
        """
        current = self.latest(order)
        if current.is_paid:
            return Error(AlreadyPaid(current.order_number))

        match await self._method(payment_method_id):
            case Error(e):
                return Error(e)
            case Ok(method):
                pass

        match await read_stock(self._catalog, (ln.product_id for ln in current.lines)):
            case Error(e):
                return Error(e)
            case Ok(levels):
                conflicts = conflicts_for(current.lines, levels)
        if conflicts:
            return Error(StockChanged(conflicts))

        current = self.latest(order)
        if current.is_paid:
            return Error(AlreadyPaid(current.order_number))
        retried = current.with_payment_method(method.id).with_status(PaymentStatus.PENDING)
        match await self._open(retried, rollback_to=current):
            case Error(e):
                return Error(e)
            case Ok(tx):
                logger.info(
                    "Retrying payment for %s with %s", retried.order_number, tx.transaction_id
                )

        return await self._capture(retried, tx, method, cart)

    # ───────────────────────────────────────────────────────────────────────────
    # Steps
    # ───────────────────────────────────────────────────────────────────────────

    async def _method(
        self,
        method_id: PaymentMethodId | None,
    ) -> Result[PaymentMethodRef, NoPaymentMethodSelected | CollaboratorFailed]:
        if method_id is None:
            return Error(NoPaymentMethodSelected())
        match await list_methods(self._directory):
            case Ok(methods):
                return select_method(methods, method_id)
            case Error(e):
                return Error(e)

    def _unique_number(self) -> str:
        taken = {o.order_number for o in self._orders.values()}
        number = new_code("ORD")
        while number in taken:
            number = new_code("ORD")
        return number

    def _persist_order(self, order: Order) -> LazyCoroResult[Order, CollaboratorFailed]:
        return L.catching_async(
            lambda: self._store.persist_order(order),
            on_error=lambda e: CollaboratorFailed("persist_order", str(e)),
        ).map(lambda _: self._remember_order(order))

    def _persist_transaction(
        self,
        tx: Transaction,
    ) -> LazyCoroResult[Transaction, CollaboratorFailed]:
        return L.catching_async(
            lambda: self._store.persist_transaction(tx),
            on_error=lambda e: CollaboratorFailed("persist_transaction", str(e)),
        ).map(lambda _: tx)

    async def _record(self, order: Order, tx: Transaction) -> Result[Order, CollaboratorFailed]:
        """Write a settled transaction, then its order."""
        match await self._persist_transaction(tx):
            case Error(e):
                return Error(e)
            case Ok(_):
                return await self._persist_order(order)

    def _remember_order(self, order: Order) -> Order:
        self._orders[order.id] = order
        return order

    def _remember_transaction(self, tx: Transaction) -> Transaction:
        self._transactions[tx.transaction_id] = tx
        return tx

    def _track(self, work: Coroutine[Any, Any, Any]) -> asyncio.Future[Any]:
        task = asyncio.ensure_future(work)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _open(
        self,
        order: Order,
        *,
        rollback_to: Order,
    ) -> Result[Transaction, CollaboratorFailed]:
        """Persist the order, then a fresh INITIATED transaction for it."""

        async def undo(_: Order) -> None:
            await self._store.persist_order(rollback_to)
            self._remember_order(rollback_to)

        def open_transaction(o: Order) -> S.SagaStep[Transaction, CollaboratorFailed]:
            tx = Transaction(
                id=uuid.uuid4().hex,
                transaction_id=new_code("TXN"),
                order_id=o.id,
                amount=o.total,
                payment_method_id=o.payment_method_id,
            )
            return S.step(
                "persist_transaction",
                self._persist_transaction(tx).map(self._remember_transaction),
            )

        opening = S.step("persist_order", self._persist_order(order), compensate=undo)
        match await S.run_chain(opening.then(open_transaction)):
            case Ok(r):
                return Ok(r.value)
            case Error(e):
                return Error(e.error)

    # ───────────────────────────────────────────────────────────────────────────
    # Capture and write-back
    # ───────────────────────────────────────────────────────────────────────────

    async def _capture(
        self,
        order: Order,
        tx: Transaction,
        method: PaymentMethodRef,
        cart: CartManager | None,
    ) -> Result[Submission, SubmissionError]:
        work = self._track(self._capture_and_settle(order, tx, method, cart))
        try:
            return await asyncio.shield(work)
        except asyncio.CancelledError:
            logger.warning(
                "Caller left while paying %s; settling in the background", order.order_number
            )
            raise

    async def _capture_and_settle(
        self,
        order: Order,
        tx: Transaction,
        method: PaymentMethodRef,
        cart: CartManager | None,
    ) -> Result[Submission, SubmissionError]:
        settled = asyncio.Event()

        async def on_late(outcome: CaptureOutcome) -> None:
            await settled.wait()
            await self._reconcile(order.id, tx.transaction_id, outcome, cart)

        try:
            outcome = await capture_with_deadline(
                self._gateway,
                tx,
                method,
                timeout=self._policy.capture_timeout.total_seconds(),
                on_late=on_late,
                background=self._background,
            )
            return await self._settle(order, tx, outcome, cart)
        finally:
            settled.set()

    async def _settle(
        self,
        order: Order,
        tx: Transaction,
        outcome: CaptureOutcome,
        cart: CartManager | None,
    ) -> Result[Submission, SubmissionError]:
        """Write the outcome back: transaction, then order, then the cart."""
        settled_tx = tx.settled(outcome.status, outcome.failure, outcome.detail)
        latest = self.latest(order)
        if latest.is_paid:
            # another attempt already paid; never downgrade it
            if outcome.captured:
                logger.error(
                    "Duplicate capture %s on paid order %s; refund required",
                    tx.transaction_id, order.order_number,
                )
            settled = latest
        elif outcome.captured:
            settled = order.with_status(
                PaymentStatus.PAID, self._policy.captured_order_status
            )
        else:
            settled = order.with_status(PaymentStatus.FAILED, OrderStatus.PENDING)

        recorded = await self._record(settled, settled_tx)
        if outcome.failure is not FailureReason.TIMEOUT:
            self._transactions.pop(tx.transaction_id, None)
        elif isinstance(recorded, Ok):
            # the late reply is reconciled against the stored version
            self._remember_transaction(settled_tx)

        match recorded:
            case Error(e) if outcome.captured and not latest.is_paid:
                return Error(self._defer(settled, settled_tx, cart, e))
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        if latest.is_paid and not outcome.captured:
            return Error(AlreadyPaid(latest.order_number))

        if not outcome.captured:
            reason = outcome.failure or FailureReason.GATEWAY_ERROR
            logger.info("Payment for %s failed: %s", settled.order_number, reason.value)
            return Error(PaymentFailed(
                order=settled,
                transaction=settled_tx,
                reason=reason,
                detail=outcome.detail,
            ))

        if cart is not None and lines_match(cart.snapshot(), settled):
            cart.clear()
        logger.info("Order %s paid via %s", settled.order_number, settled_tx.transaction_id)
        return Ok(Submission(order=settled, transaction=settled_tx))

    def _defer(
        self,
        paid: Order,
        tx: Transaction,
        cart: CartManager | None,
        cause: CollaboratorFailed,
    ) -> PaymentUnrecorded:
        """Hold a captured payment in memory and keep writing it back."""
        self._remember_order(paid)
        logger.error(
            "Payment %s for %s captured but not recorded: %s",
            tx.transaction_id, paid.order_number, cause.message,
        )
        self._track(self._write_back(paid.id, tx, cart))
        return PaymentUnrecorded(order=paid, transaction=tx, cause=cause)

    async def _write_back(
        self,
        order_id: str,
        tx: Transaction,
        cart: CartManager | None,
    ) -> None:
        attempts = self._policy.write_back_attempts
        delay = self._policy.write_back_delay.total_seconds()
        for attempt in range(1, attempts + 1):
            await asyncio.sleep(delay)
            match await self._record(self._orders[order_id], tx):
                case Ok(order):
                    if cart is not None and lines_match(cart.snapshot(), order):
                        cart.clear()
                    logger.warning(
                        "Recorded payment %s for %s on retry %d",
                        tx.transaction_id, order.order_number, attempt,
                    )
                    return
                case Error(e):
                    logger.warning(
                        "Recording %s failed (%d/%d): %s",
                        tx.transaction_id, attempt, attempts, e.message,
                    )
        logger.error(
            "Gave up recording payment %s for order %s; reconcile by hand",
            tx.transaction_id, self._orders[order_id].order_number,
        )

    async def _reconcile(
        self,
        order_id: str,
        transaction_id: str,
        outcome: CaptureOutcome,
        cart: CartManager | None,
    ) -> None:
        """Apply a capture outcome that arrived after the caller stopped waiting."""
        tx = self._transactions.pop(transaction_id)
        order = self._orders[order_id]

        if tx.is_terminal and not outcome.captured:
            logger.info("Late failure for %s already recorded", transaction_id)
            return

        settled_tx = tx.settled(outcome.status, outcome.failure, outcome.detail)
        if not outcome.captured:
            target = order if order.is_paid else order.with_status(
                PaymentStatus.FAILED, OrderStatus.PENDING
            )
        elif order.is_paid:
            logger.error(
                "Duplicate capture %s on paid order %s; refund required",
                transaction_id, order.order_number,
            )
            target = order
        else:
            target = order.with_status(PaymentStatus.PAID, self._policy.captured_order_status)

        match await self._record(target, settled_tx):
            case Error(e) if outcome.captured and not order.is_paid:
                self._defer(target, settled_tx, cart, e)
                return
            case Error(e):
                logger.error("Reconciling %s failed: %s", transaction_id, e.message)
                return
            case Ok(_):
                pass

        if outcome.captured and not order.is_paid:
            if cart is not None and lines_match(cart.snapshot(), target):
                cart.clear()
            logger.warning("Order %s paid by late capture %s", target.order_number, transaction_id)


__all__ = ("select_method", "list_methods", "OrderSubmitter")
