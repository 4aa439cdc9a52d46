"""Simplified US sales-tax lookup by state and city."""

from typing import Optional

from instant_booking.utils import round2

STATE_TAX_RATES: dict[str, float] = {
    "NY": 0.08875,  # NYC combined rate
    "CA": 0.0725,
    "TX": 0.0625,
    "FL": 0.06,
    "NJ": 0.06625,
    "PA": 0.06,
    "IL": 0.0625,
    "OH": 0.0575,
    "GA": 0.04,
    "NC": 0.0475,
}

# (state, city name fragment, extra rate)
CITY_TAX_SURCHARGES: tuple[tuple[str, str, float], ...] = (
    ("NY", "NEW YORK", 0.01),
    ("CA", "LOS ANGELES", 0.015),
)


def sales_tax_rate(state: str, city: Optional[str] = None) -> float:
    """Combined state and city rate. Unknown states are untaxed."""
    state_code = (state or "").strip().upper()
    rate = STATE_TAX_RATES.get(state_code, 0.0)
    if city:
        city_name = city.strip().upper()
        for surcharge_state, fragment, extra in CITY_TAX_SURCHARGES:
            if state_code == surcharge_state and fragment in city_name:
                rate += extra
                break
    return rate


def calculate_sales_tax(amount: float, state: str, city: Optional[str] = None) -> float:
    return round2(amount * sales_tax_rate(state, city))
