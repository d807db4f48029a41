"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field

from shopsync import orders as O
from shopsync.config import CheckoutPolicy
from shopsync.mock import (
    InMemoryCatalog,
    InMemoryOrderStore,
    InMemoryPaymentDirectory,
    ScriptedGateway,
)
from shopsync.money import format_minor
from shopsync.pricing import PricingBreakdown


# Addresses
ADA = O.Address(
    first_name="Ada",
    last_name="Lovelace",
    email="ada@example.com",
    phone="+44 20 7946 0000",
    line1="12 St James's Square",
    city="London",
    state="Greater London",
    postal_code="SW1Y 4JH",
    country="GB",
)


# Collaborators
@dataclass(slots=True)
class Stack:
    catalog: InMemoryCatalog = field(default_factory=lambda: InMemoryCatalog.seeded(0.02))
    directory: InMemoryPaymentDirectory = field(default_factory=InMemoryPaymentDirectory)
    gateway: ScriptedGateway = field(default_factory=lambda: ScriptedGateway(latency=0.05))
    store: InMemoryOrderStore = field(default_factory=InMemoryOrderStore)
    policy: CheckoutPolicy = field(default_factory=CheckoutPolicy)

    def submitter(self) -> O.OrderSubmitter:
        return O.OrderSubmitter(
            self.catalog, self.directory, self.gateway, self.store, policy=self.policy
        )


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def show_totals(b: PricingBreakdown) -> None:
    rows = (
        ("Subtotal", b.subtotal),
        ("Discount", -b.discount),
        ("Tax", b.tax),
        ("Shipping", b.shipping),
        ("Total", b.total),
    )
    for label, amount in rows:
        print(f"  {label:<10}{format_minor(amount):>12}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    logging.basicConfig(level=logging.INFO, format="  [%(name)s] %(message)s")
    asyncio.run(main())
