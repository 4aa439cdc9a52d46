"""
Membership discount adjustment.

The discount comes off the subtotal only; service fee and tax are then
re-derived from the discounted subtotal. Discounting the finished total
instead would leave fee and tax computed on the undiscounted amount.

Re-derivation uses the fixed membership rates from config (10% fee, 13%
tax by default), not the rates of the original price context. Callers
that want the context's rates must pass them explicitly.
"""

from typing import Optional

from instant_booking.config import settings
from instant_booking.errors import InvalidInputError
from instant_booking.logging_context import get_request_logger
from instant_booking.pricing.engine import fees_and_total
from instant_booking.schemas.pricing_schema import DiscountResult, PriceBreakdown
from instant_booking.utils import ensure_finite, round2

logger = get_request_logger(__name__)


def apply_membership_discount(
    breakdown: PriceBreakdown,
    percentage: float,
    service_fee_pct: Optional[float] = None,
    tax_rate: Optional[float] = None,
) -> DiscountResult:
    """Apply a percentage membership discount and recompute fee, tax, and total.

    Raises:
        InvalidInputError: ``percentage`` outside [0, 100] or not finite.
    """
    ensure_finite("percentage", percentage)
    if not 0 <= percentage <= 100:
        raise InvalidInputError(f"percentage must be between 0 and 100, got {percentage}")

    fee_pct = (
        settings.pricing.membership_service_fee_pct if service_fee_pct is None else service_fee_pct
    )
    rate = settings.pricing.membership_tax_rate if tax_rate is None else tax_rate
    for name, value in (("service_fee_pct", fee_pct), ("tax_rate", rate)):
        ensure_finite(name, value)
        if not 0.0 <= value <= 1.0:
            raise InvalidInputError(f"{name} must be between 0 and 1, got {value}")

    discount_amount = round2(breakdown.subtotal_before_fees * percentage / 100)
    subtotal = max(0.0, round2(breakdown.subtotal_before_fees - discount_amount))
    service_fee, tax, total = fees_and_total(subtotal, fee_pct, rate)

    logger.info(
        "Membership discount %.1f%%: -%.2f, total %.2f -> %.2f",
        percentage,
        discount_amount,
        breakdown.total,
        total,
    )
    adjusted = breakdown.model_copy(
        update={
            "subtotal_before_fees": subtotal,
            "service_fee": service_fee,
            "tax": tax,
            "total": total,
        }
    )
    return DiscountResult(
        breakdown=adjusted,
        percentage=percentage,
        discount_amount=discount_amount,
        original_total=breakdown.total,
    )
