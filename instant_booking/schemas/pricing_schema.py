"""Pricing inputs and price breakdown models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from instant_booking.config import settings


class RecurringFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class PriceContext(BaseModel):
    """Everything the pricing engine needs to quote one job.

    Neutral defaults (no surge, full utilization, no distance) leave the
    base price untouched apart from the seasonal and lead-time factors.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    base_price: float = Field(ge=0)
    addons_total: float = Field(default=0.0, ge=0)
    demand_index: float = 0.0
    utilization: float = 1.0
    distance_km: float = Field(default=0.0, ge=0)
    month: int = Field(ge=1, le=12)
    lead_hours: float = Field(ge=0)
    jobs_in_cart: int = Field(default=1, ge=1)
    recurring: Optional[RecurringFrequency] = None
    service_fee_pct: float = Field(
        default=settings.pricing.default_service_fee_pct, ge=0, le=1
    )
    tax_rate: float = Field(default=settings.pricing.default_tax_rate, ge=0, le=1)

    # Distance fee
    free_radius_km: float = Field(default=settings.pricing.free_radius_km, ge=0)
    per_km_after_free: float = Field(default=settings.pricing.per_km_after_free, ge=0)

    # Home complexity
    size_band: float = Field(default=0.0, ge=0)
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    pet: bool = False
    clutter: float = Field(default=0.0, ge=0)
    first_time: bool = False


class PriceBreakdown(BaseModel):
    """Layered price with the factors that produced it.

    Monetary fields are rounded to cents and satisfy
    ``total == round2(subtotal_before_fees + service_fee + tax)``.
    """

    model_config = ConfigDict(frozen=True)

    base: float = 0.0
    surge_multiplier: float = 1.0
    off_peak_multiplier: float = 1.0
    complexity_multiplier: float = 1.0
    seasonal_multiplier: float = 1.0
    distance_fee: float = 0.0
    last_minute_fee: float = 0.0
    bulk_discount: float = 0.0
    subtotal_before_fees: float = Field(ge=0)
    service_fee: float = Field(ge=0)
    tax: float = Field(ge=0)
    total: float = Field(ge=0)


class DiscountResult(BaseModel):
    """Breakdown after a membership discount plus the figures used for usage stats."""

    model_config = ConfigDict(frozen=True)

    breakdown: PriceBreakdown
    percentage: float
    discount_amount: float
    original_total: float
