"""Cleaning service catalog with base prices, the pricing rule source."""

from typing import Optional, Protocol, TypedDict

from instant_booking.errors import InvalidInputError
from instant_booking.logging_context import get_request_logger

logger = get_request_logger(__name__)


class ServiceInfo(TypedDict):
    name: str
    base_price: float
    typical_duration_hours: int


class PricingRuleSource(Protocol):
    """Supplies the base price for a service."""

    def base_price(self, service_id: str) -> float: ...


SERVICE_CATALOG: dict[str, ServiceInfo] = {
    "standard-cleaning": {
        "name": "Standard Home Cleaning",
        "base_price": 100.0,
        "typical_duration_hours": 2,
    },
    "deep-cleaning": {
        "name": "Deep Cleaning",
        "base_price": 180.0,
        "typical_duration_hours": 4,
    },
    "move-out-cleaning": {
        "name": "Move-In / Move-Out Cleaning",
        "base_price": 240.0,
        "typical_duration_hours": 5,
    },
    "office-cleaning": {
        "name": "Office Cleaning",
        "base_price": 150.0,
        "typical_duration_hours": 3,
    },
    "carpet-cleaning": {
        "name": "Carpet Cleaning",
        "base_price": 90.0,
        "typical_duration_hours": 2,
    },
    "window-cleaning": {
        "name": "Window Cleaning",
        "base_price": 75.0,
        "typical_duration_hours": 1,
    },
}


class ServiceCatalog:
    """In-memory pricing rule source; pass ``services`` to override the default catalog."""

    def __init__(self, services: Optional[dict[str, ServiceInfo]] = None) -> None:
        self._services = dict(SERVICE_CATALOG if services is None else services)

    def base_price(self, service_id: str) -> float:
        info = self._services.get(service_id)
        if info is None:
            raise InvalidInputError(f"Unknown service: {service_id!r}")
        return float(info["base_price"])

    def get_service_details(self, service_id: str) -> Optional[dict]:
        info = self._services.get(service_id)
        if info is None:
            return None
        return {"id": service_id, **info}
