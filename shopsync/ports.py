"""
Ports — collaborator protocols consumed by the core.

Implement these over HTTP, a database, or in memory (see shopsync.mock).
The core only reads stock; decrementing it after capture is fulfillment's
job and has no port here.

Example — HTTP catalog:

    class HttpCatalog:
        def __init__(self, client: httpx.AsyncClient) -> None:
            self.client = client

        async def get_product(self, product_id: int) -> Product:
            resp = await self.client.get(f"/products/{product_id}")
            resp.raise_for_status()
            return ProductPayload.model_validate(resp.json()["data"]).to_domain()

Collaborators may raise; the core turns exceptions into CollaboratorFailed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from shopsync._types import (
    Minor,
    PaymentMethodId,
    PaymentMethodType,
    ProductId,
    TransactionStatus,
)

if TYPE_CHECKING:
    from shopsync.orders import Order, Transaction

# ═══════════════════════════════════════════════════════════════════════════════
# Collaborator Records
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    """Live catalog entry. Prices in cents."""

    id: ProductId
    price: Minor
    stock: int
    sale_price: Minor | None = None
    name: str = ""

    @property
    def effective_price(self) -> Minor:
        return self.sale_price if self.sale_price is not None else self.price


@dataclass(frozen=True, slots=True)
class PaymentMethodRef:
    id: PaymentMethodId
    type: PaymentMethodType
    is_active: bool = True
    name: str = ""


@dataclass(frozen=True, slots=True)
class CaptureReply:
    """Terminal answer from the payment collaborator."""

    status: TransactionStatus
    reason: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Protocols
# ═══════════════════════════════════════════════════════════════════════════════


class Catalog(Protocol):
    """Read-only product and stock lookup."""

    async def get_product(self, product_id: ProductId) -> Product:
        ...


class PaymentDirectory(Protocol):
    async def list_methods(self) -> list[PaymentMethodRef]:
        ...


class PaymentGateway(Protocol):
    """
    Payment capture.

    May take long. Must answer CAPTURED or FAILED; the core bounds the wait
    with a timeout but never cancels a capture once started.
    """

    async def capture(
        self,
        transaction_id: str,
        amount: Minor,
        method: PaymentMethodRef,
    ) -> CaptureReply:
        ...


class OrderStore(Protocol):
    """Durable writes, atomic per call."""

    async def persist_order(self, order: Order) -> None:
        ...

    async def persist_transaction(self, transaction: Transaction) -> None:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Product",
    "PaymentMethodRef",
    "CaptureReply",
    "Catalog",
    "PaymentDirectory",
    "PaymentGateway",
    "OrderStore",
)
