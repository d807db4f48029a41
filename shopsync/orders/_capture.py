"""
Payment capture bounded by a deadline.

The capture runs as its own task, shielded from the caller:

    caller waits ──timeout──▶ FAILED(TIMEOUT) returned, capture keeps going
    caller cancelled ───────▶ CancelledError re-raised, capture keeps going

Either way, the capture's eventual outcome is handed to `on_late` so it can
be reconciled onto the stored order and transaction.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from dataclasses import dataclass

from kungfu import Ok, Error

from combinators import lift as L

from shopsync._types import FailureReason, TransactionStatus
from shopsync.orders._types import Transaction
from shopsync.ports import CaptureReply, PaymentGateway, PaymentMethodRef

logger = logging.getLogger(__name__)

type LateHandler = Callable[[CaptureOutcome], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class CaptureOutcome:
    """Terminal result of one capture attempt."""

    status: TransactionStatus
    failure: FailureReason | None = None
    detail: str | None = None

    @property
    def captured(self) -> bool:
        return self.status is TransactionStatus.CAPTURED


def _from_reply(reply: CaptureReply) -> CaptureOutcome:
    match reply.status:
        case TransactionStatus.CAPTURED:
            return CaptureOutcome(TransactionStatus.CAPTURED)
        case TransactionStatus.FAILED:
            return CaptureOutcome(
                TransactionStatus.FAILED, FailureReason.DECLINED, reply.reason
            )
        case _:
            return CaptureOutcome(
                TransactionStatus.FAILED,
                FailureReason.GATEWAY_ERROR,
                f"non-terminal reply: {reply.status.value}",
            )


async def _attempt(
    gateway: PaymentGateway,
    tx: Transaction,
    method: PaymentMethodRef,
) -> CaptureOutcome:
    result = await L.catching_async(
        lambda: gateway.capture(tx.transaction_id, tx.amount, method),
        on_error=lambda e: CaptureOutcome(
            TransactionStatus.FAILED, FailureReason.GATEWAY_ERROR, str(e) or type(e).__name__
        ),
    ).map(_from_reply)

    match result:
        case Ok(outcome) | Error(outcome):
            return outcome


def _follow(
    task: asyncio.Future[CaptureOutcome],
    tx: Transaction,
    on_late: LateHandler,
    background: set[asyncio.Future[Any]],
) -> None:
    async def reconcile() -> None:
        outcome = await task
        logger.warning(
            "Late capture outcome for %s: %s", tx.transaction_id, outcome.status.value
        )
        try:
            await on_late(outcome)
        except Exception:
            logger.exception("Reconciling %s failed", tx.transaction_id)

    follower = asyncio.ensure_future(reconcile())
    background.add(follower)
    follower.add_done_callback(background.discard)


async def capture_with_deadline(
    gateway: PaymentGateway,
    tx: Transaction,
    method: PaymentMethodRef,
    *,
    timeout: float,
    on_late: LateHandler,
    background: set[asyncio.Future[Any]],
) -> CaptureOutcome:
    """
    Capture `tx.amount` and wait at most `timeout` seconds.

    `background` receives the reconciliation task when the wait ends early;
    the owner awaits it on shutdown.
    """
    task = asyncio.ensure_future(_attempt(gateway, tx, method))
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except TimeoutError:
        logger.warning(
            "Capture of %s exceeded %.1fs; reporting timeout", tx.transaction_id, timeout
        )
        _follow(task, tx, on_late, background)
        return CaptureOutcome(
            TransactionStatus.FAILED,
            FailureReason.TIMEOUT,
            f"no answer within {timeout:g}s",
        )
    except asyncio.CancelledError:
        _follow(task, tx, on_late, background)
        raise


__all__ = ("CaptureOutcome", "LateHandler", "capture_with_deadline")
