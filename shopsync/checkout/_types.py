"""
Checkout types — wizard steps and state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum

from shopsync._types import LineId, PaymentMethodId
from shopsync.orders import Address, Order


class Step(IntEnum):
    """
    Wizard steps, strictly ordered.

        SHIPPING ⇄ PAYMENT ⇄ REVIEW → SUBMITTED
    """

    SHIPPING = 1
    PAYMENT = 2
    REVIEW = 3
    SUBMITTED = 4

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True, slots=True)
class CheckoutState:
    """
    Snapshot of one checkout.

    stock_conflicts: lines over live stock at the last transition.
    order: the order awaiting payment after a failed attempt, reused on
        the next submit while the cart still matches it.
    """

    step: Step = Step.SHIPPING
    billing_address: Address = field(default_factory=Address)
    shipping_address: Address | None = None
    same_as_shipping: bool = True
    selected_payment_method_id: PaymentMethodId | None = None
    notes: str | None = None
    stock_conflicts: tuple[LineId, ...] = ()
    order: Order | None = None

    def evolve(self, **changes: object) -> CheckoutState:
        return replace(self, **changes)

    @property
    def effective_shipping(self) -> Address:
        """Where the parcel goes."""
        if self.same_as_shipping or self.shipping_address is None:
            return self.billing_address
        return self.shipping_address


__all__ = ("Step", "CheckoutState")
