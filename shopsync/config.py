"""
Policies — pricing and checkout configuration.

Tax, shipping and coupon constants live here and nowhere else; every
component that prices a cart reads them from a PricingPolicy.

Fluent builder pattern, immutable — each method returns a new policy:

    pricing = (
        PricingPolicy()
        .with_tax_rate(Decimal("0.08"))
        .with_shipping(threshold=7500, fee=599)
        .with_coupon("SPRING25", Decimal("0.25"))
    )

    checkout = CheckoutPolicy().with_capture_timeout(seconds=10)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta
from decimal import Decimal
from types import MappingProxyType

from shopsync._types import Minor, OrderStatus

# ═══════════════════════════════════════════════════════════════════════════════
# Defaults
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_COUPONS: Mapping[str, Decimal] = MappingProxyType({
    "SAVE10": Decimal("0.10"),
    "WELCOME20": Decimal("0.20"),
    "STUDENT15": Decimal("0.15"),
})


def _check_rate(code: str, rate: Decimal) -> None:
    if not Decimal(0) < rate < Decimal(1):
        raise ValueError(f"Coupon {code}: discount rate must be in (0, 1), got {rate}")


# ═══════════════════════════════════════════════════════════════════════════════
# PricingPolicy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricingPolicy:
    """
    Pricing constants.

    tax_rate: applied to the discounted subtotal.
    free_shipping_threshold: subtotal (cents) strictly above which shipping is free.
    flat_shipping_fee: shipping (cents) charged otherwise.
    coupons: normalized code → discount rate.
    """

    tax_rate: Decimal = Decimal("0.10")
    free_shipping_threshold: Minor = 5000
    flat_shipping_fee: Minor = 999
    coupons: Mapping[str, Decimal] = field(default_factory=lambda: DEFAULT_COUPONS)

    def with_tax_rate(self, rate: Decimal) -> PricingPolicy:
        if rate < 0:
            raise ValueError(f"Tax rate must be non-negative, got {rate}")
        return PricingPolicy(
            tax_rate=rate,
            free_shipping_threshold=self.free_shipping_threshold,
            flat_shipping_fee=self.flat_shipping_fee,
            coupons=self.coupons,
        )

    def with_shipping(
        self,
        *,
        threshold: Minor | None = None,
        fee: Minor | None = None,
    ) -> PricingPolicy:
        """
        Set free-shipping threshold and/or flat fee (cents).

        Example:
            .with_shipping(threshold=7500)
            .with_shipping(fee=0)  # always free
        """
        return PricingPolicy(
            tax_rate=self.tax_rate,
            free_shipping_threshold=(
                self.free_shipping_threshold if threshold is None else threshold
            ),
            flat_shipping_fee=self.flat_shipping_fee if fee is None else fee,
            coupons=self.coupons,
        )

    def with_coupon(self, code: str, rate: Decimal) -> PricingPolicy:
        """Add or replace a coupon. Codes are stored normalized."""
        normalized = code.strip().upper()
        _check_rate(normalized, rate)
        return PricingPolicy(
            tax_rate=self.tax_rate,
            free_shipping_threshold=self.free_shipping_threshold,
            flat_shipping_fee=self.flat_shipping_fee,
            coupons=MappingProxyType({**self.coupons, normalized: rate}),
        )

    def without_coupon(self, code: str) -> PricingPolicy:
        normalized = code.strip().upper()
        return PricingPolicy(
            tax_rate=self.tax_rate,
            free_shipping_threshold=self.free_shipping_threshold,
            flat_shipping_fee=self.flat_shipping_fee,
            coupons=MappingProxyType(
                {c: r for c, r in self.coupons.items() if c != normalized}
            ),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# CheckoutPolicy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutPolicy:
    """
    Submission behaviour.

    capture_timeout: how long to wait for the payment collaborator before
        the attempt is reported FAILED with reason TIMEOUT.
    captured_order_status: order status set once payment is captured.
    write_back_attempts: retries of a captured payment's write-back that
        failed the first time.
    write_back_delay: pause before each of those retries.
    """

    capture_timeout: timedelta = timedelta(seconds=30)
    captured_order_status: OrderStatus = OrderStatus.PROCESSING
    write_back_attempts: int = 5
    write_back_delay: timedelta = timedelta(seconds=1)

    def with_capture_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> CheckoutPolicy:
        """
        Example:
            .with_capture_timeout(seconds=10)
            .with_capture_timeout(delta=timedelta(minutes=1))
        """
        if delta is not None:
            timeout = delta
        elif seconds is not None:
            timeout = timedelta(seconds=seconds)
        else:
            raise ValueError("Must provide seconds or delta")
        if timeout <= timedelta(0):
            raise ValueError("Capture timeout must be positive")
        return replace(self, capture_timeout=timeout)

    def with_captured_status(self, status: OrderStatus) -> CheckoutPolicy:
        if status not in (OrderStatus.PROCESSING, OrderStatus.CONFIRMED):
            raise ValueError(f"Captured orders are PROCESSING or CONFIRMED, not {status.name}")
        return replace(self, captured_order_status=status)

    def with_write_back(
        self,
        times: int = 5,
        delay: timedelta = timedelta(seconds=1),
    ) -> CheckoutPolicy:
        """
        Example:
            .with_write_back(times=3, delay=timedelta(milliseconds=200))
        """
        if times < 1:
            raise ValueError("Write-back needs at least one attempt")
        if delay < timedelta(0):
            raise ValueError("Write-back delay cannot be negative")
        return replace(self, write_back_attempts=times, write_back_delay=delay)


DEFAULT_PRICING = PricingPolicy()
DEFAULT_CHECKOUT = CheckoutPolicy()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DEFAULT_COUPONS",
    "PricingPolicy",
    "CheckoutPolicy",
    "DEFAULT_PRICING",
    "DEFAULT_CHECKOUT",
)
