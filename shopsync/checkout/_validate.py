"""
Step guards — pure checks run before the wizard moves forward.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from kungfu import Result, Ok, Error

from shopsync._types import PaymentMethodId
from shopsync.checkout._types import CheckoutState
from shopsync.errors import InvalidAddress, NoPaymentMethodSelected
from shopsync.orders import Address, select_method
from shopsync.ports import PaymentMethodRef

EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

BILLING_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "line1",
    "city",
    "state",
    "postal_code",
    "country",
)
SHIPPING_FIELDS = tuple(f for f in BILLING_FIELDS if f not in ("email", "phone"))


def validate_address(
    address: Address,
    which: str,
    required: Sequence[str],
) -> Result[Address, InvalidAddress]:
    missing = tuple(f for f in required if not getattr(address, f).strip())
    malformed: tuple[str, ...] = ()
    if "email" in required and "email" not in missing:
        if not EMAIL.match(address.email.strip()):
            malformed = ("email",)
    if missing or malformed:
        return Error(InvalidAddress(which, missing, malformed))
    return Ok(address)


def validate_addresses(state: CheckoutState) -> Result[CheckoutState, InvalidAddress]:
    """Billing always; shipping only when it differs from billing."""
    match validate_address(state.billing_address, "billing", BILLING_FIELDS):
        case Error(e):
            return Error(e)
        case Ok(_):
            pass
    if state.same_as_shipping:
        return Ok(state)
    match validate_address(
        state.shipping_address or Address(), "shipping", SHIPPING_FIELDS
    ):
        case Error(e):
            return Error(e)
        case Ok(_):
            return Ok(state)


def validate_payment(
    methods: Sequence[PaymentMethodRef],
    method_id: PaymentMethodId | None,
) -> Result[PaymentMethodRef, NoPaymentMethodSelected]:
    return select_method(methods, method_id)


__all__ = (
    "EMAIL",
    "BILLING_FIELDS",
    "SHIPPING_FIELDS",
    "validate_address",
    "validate_addresses",
    "validate_payment",
)
