"""Add-on catalog and the platform commission taken on add-ons."""

from collections.abc import Iterable, Mapping
from typing import Optional, TypedDict

from instant_booking.config import settings
from instant_booking.errors import InvalidInputError
from instant_booking.logging_context import get_request_logger
from instant_booking.utils import round2

logger = get_request_logger(__name__)


class AddOnItem(TypedDict):
    """A purchasable extra on top of the base cleaning service."""

    id: str
    name: str
    base_price: float
    category: str


ADD_ON_CATALOG: dict[str, AddOnItem] = {
    item["id"]: item
    for item in (
        {"id": "laundry_ironing", "name": "Laundry & Ironing", "base_price": 25.0, "category": "home_care"},
        {"id": "interior_design", "name": "Interior Design Consultation", "base_price": 120.0, "category": "consulting"},
        {"id": "organization", "name": "Organization Services", "base_price": 60.0, "category": "home_care"},
        {"id": "handyman", "name": "Handyman Repairs", "base_price": 85.0, "category": "repairs"},
        {"id": "gardening", "name": "Gardening / Outdoor Cleaning", "base_price": 70.0, "category": "outdoor"},
        {"id": "pest_control", "name": "Pest Control", "base_price": 150.0, "category": "pest_control"},
        {"id": "hvac_cleaning", "name": "HVAC Cleaning", "base_price": 140.0, "category": "hvac"},
        {"id": "smart_home_setup", "name": "Smart Home Setup", "base_price": 110.0, "category": "tech"},
    )
}

# Commission percentage overrides by add-on category, e.g. {"pest_control": 20}
CATEGORY_COMMISSION_OVERRIDES: dict[str, float] = {}


def get_addon(addon_id: str) -> AddOnItem:
    try:
        return ADD_ON_CATALOG[addon_id]
    except KeyError:
        raise InvalidInputError(f"Unknown add-on: {addon_id!r}") from None


def addons_subtotal(addon_ids: Iterable[str]) -> float:
    """Sum catalog prices for the selected add-ons (ids may repeat)."""
    return round2(sum(get_addon(addon_id)["base_price"] for addon_id in addon_ids))


def addons_by_category(addon_ids: Iterable[str]) -> dict[str, float]:
    breakdown: dict[str, float] = {}
    for addon_id in addon_ids:
        item = get_addon(addon_id)
        breakdown[item["category"]] = breakdown.get(item["category"], 0.0) + item["base_price"]
    return breakdown


def commission_percent(category: Optional[str] = None) -> float:
    if category and category in CATEGORY_COMMISSION_OVERRIDES:
        return CATEGORY_COMMISSION_OVERRIDES[category]
    return settings.pricing.addons_commission_pct


def addons_commission(
    subtotal: float, category_breakdown: Optional[Mapping[str, float]] = None
) -> float:
    """Platform commission on the add-ons portion of a booking.

    With a per-category breakdown each category uses its own rate;
    otherwise the default rate applies to ``subtotal``.
    """
    if category_breakdown:
        total = sum(
            amount * commission_percent(category) / 100
            for category, amount in category_breakdown.items()
        )
        return round2(total)
    return round2(subtotal * commission_percent() / 100)
