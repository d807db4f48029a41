"""
Checkout — the multi-step wizard from cart to submitted order.

    from shopsync import checkout as W

    match W.CheckoutWizard.begin(cart, submitter):
        case Ok(wizard):
            wizard.set_billing(W.Address(first_name="Ada", ...))
            await wizard.advance()      # SHIPPING → PAYMENT
"""

from __future__ import annotations

from shopsync.orders import Address
from shopsync.checkout._types import Step, CheckoutState
from shopsync.checkout._validate import (
    EMAIL,
    BILLING_FIELDS,
    SHIPPING_FIELDS,
    validate_address,
    validate_addresses,
    validate_payment,
)
from shopsync.checkout._wizard import SubmitError, CheckoutWizard

__all__ = (
    "Address",
    "Step",
    "CheckoutState",
    "EMAIL",
    "BILLING_FIELDS",
    "SHIPPING_FIELDS",
    "validate_address",
    "validate_addresses",
    "validate_payment",
    "SubmitError",
    "CheckoutWizard",
)
