"""
Compensated steps for order persistence.

Opening an order is two durable writes: the order, then its transaction.
If the second write fails the first is compensated.

    opening = (
        step("persist_order", persist(order), compensate=cancel_order)
        .then(lambda o: step("persist_transaction", persist(tx)))
    )
    match await run_chain(opening):
        case Ok(r):        ...  # r.value is the transaction
        case Error(e):     ...  # e.error is the failing step's error

Compensators run in reverse order of recording. A compensator that raises
is logged and counted; the rest still run.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from kungfu import Result, Ok, Error, LazyCoroResult

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Undo action; receives the value the step produced."""


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """Named action plus optional compensator."""

    name: str
    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None = None

    def then[U, E2](self, f: Callable[[T], SagaStep[U, E2]]) -> Then[T, U, E, E2]:
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    """Run `inner`, feed its value to `f`, run the step it returns."""

    inner: SagaStep[T, E]
    f: Callable[[T], SagaStep[U, E2]]


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """Failure with rollback status."""

    error: E
    step_failed: str
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


type _Recorded = tuple[str, object, Compensator[object]]


def step[T, E](
    name: str,
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
) -> SagaStep[T, E]:
    return SagaStep(name=name, action=action, compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════════════


async def _run_step[T, E](s: SagaStep[T, E], recorded: list[_Recorded]) -> Result[T, E]:
    match await s.action:
        case Ok(value):
            if s.compensate is not None:
                recorded.append((s.name, value, s.compensate))
            return Ok(value)
        case Error(e):
            return Error(e)


async def _compensate(recorded: list[_Recorded]) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    run_count = 0
    failed = 0
    for name, value, comp in reversed(recorded):
        try:
            await comp(value)
            run_count += 1
        except Exception:
            logger.exception("Compensation for %s failed", name)
            failed += 1
    return run_count, failed


async def _rollback[E](
    error: E,
    failed_step: str,
    recorded: list[_Recorded],
) -> Error[SagaError[E]]:
    run_count, failed = await _compensate(recorded)
    logger.warning(
        "Step %s failed; %d compensator(s) run, %d failed",
        failed_step, run_count, failed,
    )
    return Error(SagaError(
        error=error,
        step_failed=failed_step,
        compensators_run=run_count,
        compensators_failed=failed,
    ))


async def run[T, E](saga: SagaStep[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    recorded: list[_Recorded] = []
    match await _run_step(saga, recorded):
        case Ok(value):
            return Ok(SagaResult(value, 1, len(recorded)))
        case Error(e):
            return await _rollback(e, saga.name, recorded)


async def run_chain[T, U, E, E2](
    chain: Then[T, U, E, E2],
) -> Result[SagaResult[U], SagaError[E | E2]]:
    """Run both steps; on failure, undo whatever was recorded."""
    recorded: list[_Recorded] = []

    match await _run_step(chain.inner, recorded):
        case Error(e):
            return await _rollback(e, chain.inner.name, recorded)
        case Ok(value):
            following = chain.f(value)

    match await _run_step(following, recorded):
        case Ok(final):
            return Ok(SagaResult(final, 2, len(recorded)))
        case Error(e):
            return await _rollback(e, following.name, recorded)


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaResult",
    "SagaError",
    "step",
    "run",
    "run_chain",
)
