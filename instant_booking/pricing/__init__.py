from instant_booking.pricing.discounts import apply_membership_discount
from instant_booking.pricing.engine import (
    PolicyFactors,
    PricingPolicy,
    StandardPricingPolicy,
    compute_price,
)
from instant_booking.pricing.tax import calculate_sales_tax, sales_tax_rate

__all__ = [
    "compute_price",
    "apply_membership_discount",
    "PricingPolicy",
    "PolicyFactors",
    "StandardPricingPolicy",
    "sales_tax_rate",
    "calculate_sales_tax",
]
