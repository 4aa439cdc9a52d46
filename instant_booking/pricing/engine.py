"""
Layered pricing pipeline for a single job.

The pipeline runs in a fixed order because each step rounds before the
next one reads it:

1. A pricing policy turns the base price and context into a raw subtotal,
   rounded to cents as ``subtotal_before_fees``.
2. ``service_fee = round2(subtotal * service_fee_pct)``
3. ``tax = round2((subtotal + service_fee) * tax_rate)``
4. ``total = round2(subtotal + service_fee + tax)``

Step 1 is pluggable. ``StandardPricingPolicy`` applies surge, off-peak,
complexity, seasonal, distance, last-minute, and bulk factors.

Usage:
    ctx = PriceContext(base_price=100, month=1, lead_hours=72)
    breakdown = compute_price(ctx)
    assert breakdown.total == 124.3
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from instant_booking.errors import InvalidInputError
from instant_booking.logging_context import get_request_logger
from instant_booking.schemas.pricing_schema import (
    PriceBreakdown,
    PriceContext,
    RecurringFrequency,
)
from instant_booking.utils import ensure_finite, round2

logger = get_request_logger(__name__)

SURGE_PER_DEMAND_POINT = 0.7
OFF_PEAK_UTILIZATION = 0.55
OFF_PEAK_MULTIPLIER = 0.9
COMPLEXITY_STEP = 0.05
MAX_COMPLEXITY_MULTIPLIER = 1.8
MIN_LEAD_HOURS = 0.01

# January through December
SEASONAL_MULTIPLIERS: tuple[float, ...] = (
    1.0, 1.0, 1.05, 1.1, 1.1, 1.05, 1.02, 1.07, 1.07, 1.02, 1.0, 1.12,
)

# (lead hours below, surcharge rate on the adjusted base)
LAST_MINUTE_RATES: tuple[tuple[float, float], ...] = (
    (6, 0.20),
    (24, 0.10),
    (48, 0.05),
)

RECURRING_DISCOUNTS: dict[RecurringFrequency, float] = {
    RecurringFrequency.WEEKLY: 0.12,
    RecurringFrequency.BIWEEKLY: 0.08,
    RecurringFrequency.MONTHLY: 0.04,
}

# (minimum jobs in cart, discount rate), largest first
CART_DISCOUNTS: tuple[tuple[int, float], ...] = (
    (10, 0.15),
    (5, 0.10),
    (3, 0.05),
)


@dataclass(frozen=True)
class PolicyFactors:
    """Factors a pricing policy applied, and the raw subtotal they produce."""

    raw_subtotal: float
    surge_multiplier: float = 1.0
    off_peak_multiplier: float = 1.0
    complexity_multiplier: float = 1.0
    seasonal_multiplier: float = 1.0
    distance_fee: float = 0.0
    last_minute_fee: float = 0.0
    bulk_discount: float = 0.0


class PricingPolicy(Protocol):
    """Turns a price context into a raw (unrounded) subtotal.

    Implementations must be deterministic: identical contexts give
    identical factors.
    """

    def apply(self, ctx: PriceContext) -> PolicyFactors: ...


def surge_multiplier(demand_index: float) -> float:
    return 1 + demand_index * SURGE_PER_DEMAND_POINT


def off_peak_multiplier(utilization: float) -> float:
    return OFF_PEAK_MULTIPLIER if utilization < OFF_PEAK_UTILIZATION else 1.0


def complexity_multiplier(ctx: PriceContext) -> float:
    score = (
        ctx.size_band * 1
        + ctx.bedrooms * 0.2
        + ctx.bathrooms * 0.4
        + (0.3 if ctx.pet else 0)
        + ctx.clutter * 0.5
        + (0.4 if ctx.first_time else 0)
    )
    return min(MAX_COMPLEXITY_MULTIPLIER, 1 + COMPLEXITY_STEP * score)


def seasonal_multiplier(month: int) -> float:
    if 1 <= month <= len(SEASONAL_MULTIPLIERS):
        return SEASONAL_MULTIPLIERS[month - 1]
    return 1.0


def distance_fee(distance_km: float, free_radius_km: float, per_km: float) -> float:
    km = max(0.0, distance_km)
    return max(0.0, km - free_radius_km) * per_km


def last_minute_rate(lead_hours: float) -> float:
    lead = max(MIN_LEAD_HOURS, lead_hours)
    for threshold, rate in LAST_MINUTE_RATES:
        if lead < threshold:
            return rate
    return 0.0


def bulk_discount(recurring: Optional[RecurringFrequency], jobs_in_cart: int) -> float:
    """Recurring plans take precedence over cart-size discounts."""
    if recurring is not None:
        return RECURRING_DISCOUNTS[RecurringFrequency(recurring)]
    for minimum, rate in CART_DISCOUNTS:
        if jobs_in_cart >= minimum:
            return rate
    return 0.0


class StandardPricingPolicy:
    """Multiplicative demand/season/complexity factors plus additive fees.

    The adjusted base picks up the last-minute surcharge, then add-ons and
    the distance fee are added and the bulk discount comes off the lot.
    """

    def apply(self, ctx: PriceContext) -> PolicyFactors:
        surge = surge_multiplier(ctx.demand_index)
        off_peak = off_peak_multiplier(ctx.utilization)
        complexity = complexity_multiplier(ctx)
        seasonal = seasonal_multiplier(ctx.month)
        travel = distance_fee(ctx.distance_km, ctx.free_radius_km, ctx.per_km_after_free)
        last_minute = last_minute_rate(ctx.lead_hours)
        bulk = bulk_discount(ctx.recurring, ctx.jobs_in_cart)

        adjusted_base = ctx.base_price * surge * off_peak * complexity * seasonal
        before_bulk = adjusted_base + ctx.addons_total + travel + adjusted_base * last_minute
        after_bulk = before_bulk * (1 - bulk)

        return PolicyFactors(
            raw_subtotal=after_bulk,
            surge_multiplier=surge,
            off_peak_multiplier=off_peak,
            complexity_multiplier=complexity,
            seasonal_multiplier=seasonal,
            distance_fee=round2(travel),
            last_minute_fee=round2(adjusted_base * last_minute),
            bulk_discount=bulk,
        )


DEFAULT_POLICY = StandardPricingPolicy()


def _validate_context(ctx: PriceContext) -> None:
    """Re-check the invariants pydantic enforces, for contexts built without validation."""
    for name in (
        "base_price",
        "addons_total",
        "demand_index",
        "utilization",
        "distance_km",
        "lead_hours",
        "service_fee_pct",
        "tax_rate",
        "free_radius_km",
        "per_km_after_free",
        "size_band",
        "clutter",
    ):
        ensure_finite(name, getattr(ctx, name))

    if ctx.base_price < 0:
        raise InvalidInputError(f"base_price must be >= 0, got {ctx.base_price}")
    if ctx.addons_total < 0:
        raise InvalidInputError(f"addons_total must be >= 0, got {ctx.addons_total}")
    if not 0.0 <= ctx.service_fee_pct <= 1.0:
        raise InvalidInputError(
            f"service_fee_pct must be between 0 and 1, got {ctx.service_fee_pct}"
        )
    if not 0.0 <= ctx.tax_rate <= 1.0:
        raise InvalidInputError(f"tax_rate must be between 0 and 1, got {ctx.tax_rate}")


def fees_and_total(subtotal: float, service_fee_pct: float, tax_rate: float) -> tuple[float, float, float]:
    """Steps 2-4 of the pipeline: service fee, tax on subtotal plus fee, and total."""
    service_fee = round2(subtotal * service_fee_pct)
    tax = round2((subtotal + service_fee) * tax_rate)
    total = round2(subtotal + service_fee + tax)
    return service_fee, tax, total


def compute_price(
    ctx: PriceContext, policy: Optional[PricingPolicy] = None
) -> PriceBreakdown:
    """Run the full pricing pipeline for ``ctx``.

    Raises:
        InvalidInputError: negative price, fee or tax rate outside [0, 1],
            or a non-finite input.
    """
    _validate_context(ctx)
    factors = (policy or DEFAULT_POLICY).apply(ctx)
    ensure_finite("raw_subtotal", factors.raw_subtotal)

    subtotal = max(0.0, round2(factors.raw_subtotal))
    service_fee, tax, total = fees_and_total(subtotal, ctx.service_fee_pct, ctx.tax_rate)

    logger.debug(
        "Priced base %.2f -> subtotal %.2f fee %.2f tax %.2f total %.2f",
        ctx.base_price,
        subtotal,
        service_fee,
        tax,
        total,
    )
    return PriceBreakdown(
        base=ctx.base_price,
        surge_multiplier=factors.surge_multiplier,
        off_peak_multiplier=factors.off_peak_multiplier,
        complexity_multiplier=factors.complexity_multiplier,
        seasonal_multiplier=factors.seasonal_multiplier,
        distance_fee=factors.distance_fee,
        last_minute_fee=factors.last_minute_fee,
        bulk_discount=factors.bulk_discount,
        subtotal_before_fees=subtotal,
        service_fee=service_fee,
        tax=tax,
        total=total,
    )
