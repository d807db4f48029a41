"""
In-memory implementations of the ports.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field

from shopsync._types import Minor, PaymentMethodType, ProductId, TransactionStatus
from shopsync.orders import Order, Transaction
from shopsync.ports import CaptureReply, PaymentMethodRef, Product

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Seed Data
# ═══════════════════════════════════════════════════════════════════════════════

DEMO_PRODUCTS: tuple[Product, ...] = (
    Product(1, 24999, 50, name="Premium Wireless Headphones"),
    Product(2, 19999, 75, name="Smart Fitness Watch"),
    Product(3, 8999, 120, sale_price=6999, name="Portable Bluetooth Speaker"),
    Product(4, 1999, 0, name="USB-C Charging Cable"),
)

DEMO_METHODS: tuple[PaymentMethodRef, ...] = (
    PaymentMethodRef(1, PaymentMethodType.CARD, name="Credit Card"),
    PaymentMethodRef(2, PaymentMethodType.PAYPAL, name="PayPal"),
    PaymentMethodRef(3, PaymentMethodType.BANK_TRANSFER, name="Bank Transfer"),
    PaymentMethodRef(4, PaymentMethodType.DIGITAL_WALLET, name="Digital Wallet"),
)


class LookupFailed(Exception):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class InMemoryCatalog:
    """Product lookup with adjustable stock. `reads` counts get_product calls."""

    products: dict[ProductId, Product] = field(default_factory=dict)
    latency: float = 0.0
    reads: int = 0
    failure: Exception | None = None

    @classmethod
    def seeded(cls, latency: float = 0.0) -> InMemoryCatalog:
        return cls({p.id: p for p in DEMO_PRODUCTS}, latency=latency)

    def add(self, product: Product) -> None:
        self.products[product.id] = product

    def set_stock(self, product_id: ProductId, stock: int) -> None:
        p = self.products[product_id]
        self.products[product_id] = Product(p.id, p.price, stock, p.sale_price, p.name)

    def set_price(
        self,
        product_id: ProductId,
        price: Minor,
        sale_price: Minor | None = None,
    ) -> None:
        p = self.products[product_id]
        self.products[product_id] = Product(p.id, price, p.stock, sale_price, p.name)

    def fail_with(self, error: Exception | None) -> None:
        """Make every read raise `error`; None restores normal reads."""
        self.failure = error

    def names(self) -> dict[ProductId, str]:
        return {p.id: p.name for p in self.products.values()}

    async def get_product(self, product_id: ProductId) -> Product:
        if self.latency:
            await asyncio.sleep(self.latency)
        self.reads += 1
        if self.failure is not None:
            raise self.failure
        product = self.products.get(product_id)
        if product is None:
            raise LookupFailed(f"Product {product_id} not found")
        return product


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Directory
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class InMemoryPaymentDirectory:
    methods: list[PaymentMethodRef] = field(default_factory=lambda: list(DEMO_METHODS))
    latency: float = 0.0

    def deactivate(self, method_id: int) -> None:
        self.methods = [
            PaymentMethodRef(m.id, m.type, False, m.name) if m.id == method_id else m
            for m in self.methods
        ]

    async def list_methods(self) -> list[PaymentMethodRef]:
        if self.latency:
            await asyncio.sleep(self.latency)
        return list(self.methods)


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Gateway
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CaptureCall:
    transaction_id: str
    amount: Minor
    method_id: int


@dataclass
class ScriptedGateway:
    """
    Payment capture that answers from a script.

    Scripted replies are consumed in order; once exhausted every capture
    answers `default`.

    hold() parks captures started from then on; each call opens a new hold.
    stop_holding() lets new captures through while parked ones keep waiting;
    release() frees them, optionally only the oldest `count` holds.
    """

    latency: float = 0.0
    default: CaptureReply = field(
        default_factory=lambda: CaptureReply(TransactionStatus.CAPTURED)
    )
    failure: Exception | None = None
    calls: list[CaptureCall] = field(default_factory=list)
    started: asyncio.Event = field(default_factory=asyncio.Event)
    _replies: deque[CaptureReply] = field(default_factory=deque)
    _gate: asyncio.Event | None = None
    _parked: list[asyncio.Event] = field(default_factory=list)

    def script(self, status: TransactionStatus, reason: str | None = None) -> None:
        self._replies.append(CaptureReply(status, reason))

    def fail_with(self, error: Exception | None) -> None:
        self.failure = error

    def hold(self) -> None:
        self._gate = asyncio.Event()
        self._parked.append(self._gate)

    def stop_holding(self) -> None:
        self._gate = None

    def release(self, count: int | None = None) -> None:
        """Free parked captures, oldest hold first; all of them by default."""
        if count is None:
            count = len(self._parked)
        freed, self._parked = self._parked[:count], self._parked[count:]
        for gate in freed:
            gate.set()
        if self._gate in freed:
            self._gate = None

    async def capture(
        self,
        transaction_id: str,
        amount: Minor,
        method: PaymentMethodRef,
    ) -> CaptureReply:
        self.calls.append(CaptureCall(transaction_id, amount, method.id))
        self.started.set()
        gate = self._gate
        if gate is not None:
            await gate.wait()
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.failure is not None:
            raise self.failure
        reply = self._replies.popleft() if self._replies else self.default
        logger.debug("Capture %s → %s", transaction_id, reply.status.value)
        return reply


# ═══════════════════════════════════════════════════════════════════════════════
# Order Store
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class InMemoryOrderStore:
    """
    Keeps the latest version of each record plus every write, in order.

    `writes` entries are ("order" | "transaction", record).
    """

    orders: dict[str, Order] = field(default_factory=dict)
    transactions: dict[str, Transaction] = field(default_factory=dict)
    writes: list[tuple[str, Order | Transaction]] = field(default_factory=list)
    order_failure: Exception | None = None
    transaction_failure: Exception | None = None

    async def persist_order(self, order: Order) -> None:
        if self.order_failure is not None:
            raise self.order_failure
        self.orders[order.id] = order
        self.writes.append(("order", order))

    async def persist_transaction(self, transaction: Transaction) -> None:
        if self.transaction_failure is not None:
            raise self.transaction_failure
        self.transactions[transaction.transaction_id] = transaction
        self.writes.append(("transaction", transaction))

    def history(self, order_id: str) -> list[Order]:
        return [r for kind, r in self.writes if kind == "order" and r.id == order_id]

    def transactions_for(self, order_id: str) -> list[Transaction]:
        return [t for t in self.transactions.values() if t.order_id == order_id]


__all__ = (
    "DEMO_PRODUCTS",
    "DEMO_METHODS",
    "LookupFailed",
    "InMemoryCatalog",
    "InMemoryPaymentDirectory",
    "CaptureCall",
    "ScriptedGateway",
    "InMemoryOrderStore",
)
