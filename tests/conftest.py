"""Shared test fixtures and helpers."""

from datetime import datetime
from typing import Optional

import pytest

from instant_booking.booking_service import InstantBookingService
from instant_booking.schemas.booking_schema import (
    BookingRecord,
    BookingStatus,
    ProviderRecord,
    ProviderStatus,
)
from instant_booking.schemas.membership_schema import MembershipCard
from instant_booking.schemas.pricing_schema import PriceContext
from instant_booking.tools.availability import InMemoryAvailabilityRepository
from instant_booking.tools.booking import InMemoryBookingStore
from instant_booking.tools.membership import InMemoryMembershipStore
from instant_booking.tools.services import ServiceCatalog

BOOKING_DATE = "2025-01-20"
# Ten days before BOOKING_DATE, so the same-day past-time check never fires.
NOW = datetime(2025, 1, 10, 8, 0)


@pytest.fixture
def booking_store():
    return InMemoryBookingStore()


@pytest.fixture
def membership_store():
    return InMemoryMembershipStore()


@pytest.fixture
def providers():
    return [
        ProviderRecord(id="prov-a"),
        ProviderRecord(id="prov-b"),
        ProviderRecord(id="prov-c", availability_status=ProviderStatus.OFFLINE),
    ]


@pytest.fixture
def service(booking_store, membership_store, providers):
    return make_service(booking_store, membership_store, providers)


def make_service(
    store: InMemoryBookingStore,
    memberships: Optional[InMemoryMembershipStore],
    providers: list[ProviderRecord],
    now: datetime = NOW,
) -> InstantBookingService:
    return InstantBookingService(
        availability=InMemoryAvailabilityRepository(providers, store),
        pricing_rules=ServiceCatalog(),
        bookings=store,
        memberships=memberships,
        clock=lambda: now,
    )


def make_payload(**overrides) -> dict:
    """Instant booking payload with sensible defaults."""
    payload = {
        "customer_id": "cust-1",
        "service_id": "standard-cleaning",
        "address_id": "addr-1",
        "date": BOOKING_DATE,
        "time": "10:00",
        "duration_hours": 2,
    }
    payload.update(overrides)
    return payload


def make_booking(
    provider_id: str,
    time: str,
    duration_hours: float = 2,
    booking_date: str = BOOKING_DATE,
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> BookingRecord:
    """Helper to create an existing booking row for seeding the store."""
    return BookingRecord(
        customer_id="cust-existing",
        provider_id=provider_id,
        service_id="standard-cleaning",
        address_id="addr-existing",
        booking_date=booking_date,
        booking_time=time,
        duration_hours=duration_hours,
        status=status,
    )


def make_card(
    card_id: str = "card-1",
    customer_id: str = "cust-1",
    percentage: float = 20.0,
    created_at: datetime = datetime(2024, 6, 1),
    expiration_date: datetime = datetime(2026, 1, 1),
    **kwargs,
) -> MembershipCard:
    return MembershipCard(
        id=card_id,
        customer_id=customer_id,
        discount_percentage=percentage,
        created_at=created_at,
        expiration_date=expiration_date,
        **kwargs,
    )


def neutral_context(**overrides) -> PriceContext:
    """January job booked well ahead with no surge: only fee and tax apply."""
    fields = {"base_price": 100.0, "month": 1, "lead_hours": 72.0}
    fields.update(overrides)
    return PriceContext(**fields)
