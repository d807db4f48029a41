"""
Checkout wizard — linear state machine over one cart.

    SHIPPING ──advance──▶ PAYMENT ──advance──▶ REVIEW ──submit──▶ SUBMITTED
             ◀──back────          ◀──back────

Guards:
- every advance: cart non-empty, live stock re-read
- SHIPPING → PAYMENT: billing (and shipping, if separate) complete
- PAYMENT → REVIEW: an active payment method is selected
- REVIEW → SUBMITTED: order submission succeeds

Stock conflicts found while moving through SHIPPING and PAYMENT are recorded
on the state for the user to fix; submission refuses them.

Example:
    match CheckoutWizard.begin(cart, submitter):
        case Ok(wizard):
            wizard.set_billing(address)
            await wizard.advance()
            wizard.select_payment_method(1)
            await wizard.advance()
            result = await wizard.submit()
        case Error(EmptyCart()):
            ...
"""

from __future__ import annotations

import logging

from kungfu import Result, Ok, Error

from shopsync.cart import CartManager, revalidate
from shopsync.checkout._types import CheckoutState, Step
from shopsync.checkout._validate import validate_addresses, validate_payment
from shopsync.errors import (
    AdvanceError,
    AlreadyPaid,
    CollaboratorFailed,
    EmptyCart,
    InvalidTransition,
    PaymentFailed,
    PaymentUnrecorded,
    StockChanged,
    SubmissionError,
)
from shopsync.orders import (
    Address,
    Order,
    OrderSubmitter,
    Submission,
    lines_match,
    list_methods,
)
from shopsync.ports import PaymentMethodRef
from shopsync.pricing import Pricing, PricingBreakdown

logger = logging.getLogger(__name__)

type SubmitError = AdvanceError | SubmissionError


class CheckoutWizard:
    """One checkout over one cart. Not shared between tasks."""

    def __init__(self, cart: CartManager, submitter: OrderSubmitter) -> None:
        self._cart = cart
        self._submitter = submitter
        self._pricing = Pricing(submitter.pricing)
        self._state = CheckoutState()
        self._last_error: object | None = None
        self._submitting = False
        self._abandoned = False

    @classmethod
    def begin(
        cls,
        cart: CartManager,
        submitter: OrderSubmitter,
    ) -> Result[CheckoutWizard, EmptyCart]:
        if cart.is_empty:
            return Error(EmptyCart())
        return Ok(cls(cart, submitter))

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def last_error(self) -> object | None:
        """Error from the latest failed advance or submit."""
        return self._last_error

    def current_step(self) -> Step:
        return self._state.step

    def totals(self) -> PricingBreakdown:
        if self._state.order is not None and lines_match(
            self._cart.snapshot(), self._state.order
        ):
            return self._state.order.totals
        return self._pricing.breakdown(self._cart)

    async def payment_methods(self) -> Result[list[PaymentMethodRef], CollaboratorFailed]:
        """Methods the user may pick from. Inactive ones are hidden."""
        match await list_methods(self._submitter.directory):
            case Ok(methods):
                return Ok([m for m in methods if m.is_active])
            case Error(e):
                return Error(e)

    # ───────────────────────────────────────────────────────────────────────────
    # Edits
    # ───────────────────────────────────────────────────────────────────────────

    def _edit(
        self,
        action: str,
        *allowed: Step,
        **changes: object,
    ) -> Result[CheckoutState, InvalidTransition]:
        if self._abandoned:
            return Error(InvalidTransition("abandoned", action))
        if self._state.step not in allowed:
            return Error(InvalidTransition(self._state.step.label, action))
        self._state = self._state.evolve(**changes)
        return Ok(self._state)

    def set_billing(self, address: Address) -> Result[CheckoutState, InvalidTransition]:
        return self._edit("set_billing", Step.SHIPPING, billing_address=address)

    def set_shipping(self, address: Address | None) -> Result[CheckoutState, InvalidTransition]:
        """Separate delivery address; None ships to billing."""
        return self._edit(
            "set_shipping",
            Step.SHIPPING,
            shipping_address=address,
            same_as_shipping=address is None,
        )

    def set_same_as_shipping(self, same: bool) -> Result[CheckoutState, InvalidTransition]:
        return self._edit("set_same_as_shipping", Step.SHIPPING, same_as_shipping=same)

    def select_payment_method(self, method_id: int) -> Result[CheckoutState, InvalidTransition]:
        return self._edit(
            "select_payment_method", Step.PAYMENT, selected_payment_method_id=method_id
        )

    def set_notes(self, notes: str | None) -> Result[CheckoutState, InvalidTransition]:
        return self._edit(
            "set_notes", Step.SHIPPING, Step.PAYMENT, Step.REVIEW, notes=notes or None
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Transitions
    # ───────────────────────────────────────────────────────────────────────────

    async def advance(self) -> Result[CheckoutState, SubmitError]:
        """Move one step forward. From REVIEW this submits."""
        if self._abandoned:
            return self._fail(InvalidTransition("abandoned", "advance"))

        step = self._state.step
        if step is Step.SUBMITTED:
            return self._fail(InvalidTransition(step.label, "advance"))
        if step is Step.REVIEW:
            match await self.submit():
                case Ok(_):
                    return Ok(self._state)
                case Error(e):
                    return Error(e)

        if self._cart.is_empty:
            return self._fail(EmptyCart())
        if step is Step.SHIPPING:
            guard = validate_addresses(self._state)
        else:
            guard = await self._check_payment()
        match guard:
            case Error(e):
                return self._fail(e)
            case Ok(_):
                pass

        match await self._read_conflicts():
            case Error(e):
                return self._fail(e)
            case Ok(conflicts):
                pass

        self._state = self._state.evolve(
            step=Step(self._state.step + 1), stock_conflicts=conflicts
        )
        self._last_error = None
        return Ok(self._state)

    def back(self) -> Result[CheckoutState, InvalidTransition]:
        if self._abandoned:
            return Error(InvalidTransition("abandoned", "back"))
        if self._state.step not in (Step.PAYMENT, Step.REVIEW):
            return Error(InvalidTransition(self._state.step.label, "back"))
        self._state = self._state.evolve(step=Step(self._state.step - 1))
        return Ok(self._state)

    async def submit(self) -> Result[Submission, SubmitError]:
        """
        Submit the order from REVIEW.

        Guards are re-run first. A failed or unrecorded payment keeps the
        wizard at REVIEW holding the order; the next submit retries payment on
        it as long as the cart still matches, and an order found paid by then
        ends the checkout at SUBMITTED with AlreadyPaid.
        """
        if self._abandoned:
            return self._fail(InvalidTransition("abandoned", "submit"))
        if self._state.step is not Step.REVIEW:
            return self._fail(InvalidTransition(self._state.step.label, "submit"))
        if self._submitting:
            return self._fail(InvalidTransition(self._state.step.label, "submit again"))
        held = self._state.order
        if held is not None and self._submitter.latest(held).is_paid:
            paid = self._finish_paid(self._submitter.latest(held))
            return self._fail(AlreadyPaid(paid.order_number))
        if self._cart.is_empty:
            return self._fail(EmptyCart())
        match validate_addresses(self._state):
            case Error(e):
                return self._fail(e)
            case Ok(_):
                pass

        self._submitting = True
        try:
            result = await self._submit_or_retry()
        finally:
            self._submitting = False

        match result:
            case Ok(submission):
                self._state = self._state.evolve(
                    step=Step.SUBMITTED, order=submission.order, stock_conflicts=()
                )
                self._last_error = None
                return Ok(submission)
            case Error(PaymentFailed(order=order) as e):
                self._state = self._state.evolve(order=order)
                return self._fail(e)
            case Error(PaymentUnrecorded(order=order) as e):
                self._state = self._state.evolve(order=order)
                return self._fail(e)
            case Error(AlreadyPaid() as e) if self._state.order is not None:
                self._finish_paid(self._submitter.latest(self._state.order))
                return self._fail(e)
            case Error(StockChanged() as e):
                self._state = self._state.evolve(stock_conflicts=e.line_ids)
                return self._fail(e)
            case Error(e):
                return self._fail(e)

    def abandon(self) -> None:
        """Drop the checkout. The cart is left as it is."""
        if not self._abandoned:
            logger.info("Checkout abandoned at %s", self._state.step.label)
        self._abandoned = True

    # ───────────────────────────────────────────────────────────────────────────
    # Internals
    # ───────────────────────────────────────────────────────────────────────────

    def _fail[E](self, error: E) -> Error[E]:
        self._last_error = error
        return Error(error)

    def _finish_paid(self, order: Order) -> Order:
        self._state = self._state.evolve(step=Step.SUBMITTED, order=order, stock_conflicts=())
        return order

    async def _check_payment(self) -> Result[PaymentMethodRef, SubmitError]:
        match await list_methods(self._submitter.directory):
            case Ok(methods):
                return validate_payment(methods, self._state.selected_payment_method_id)
            case Error(e):
                return Error(e)

    async def _read_conflicts(self) -> Result[tuple[str, ...], CollaboratorFailed]:
        match await revalidate(self._cart, self._submitter.catalog):
            case Ok(_):
                return Ok(())
            case Error(StockChanged() as e):
                return Ok(e.line_ids)
            case Error(e):
                return Error(e)

    async def _submit_or_retry(self) -> Result[Submission, SubmissionError]:
        state = self._state
        pending = state.order
        if pending is not None and lines_match(self._cart.snapshot(), pending):
            return await self._submitter.retry_payment(
                pending, state.selected_payment_method_id, self._cart
            )
        return await self._submitter.submit(
            self._cart,
            payment_method_id=state.selected_payment_method_id,
            billing_address=state.billing_address,
            shipping_address=None if state.same_as_shipping else state.shipping_address,
            notes=state.notes,
        )


__all__ = ("SubmitError", "CheckoutWizard")
