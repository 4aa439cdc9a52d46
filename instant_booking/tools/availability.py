"""
Provider directory and per-date busy bookings.

In production this reads provider profiles and booking rows from the
database. The in-memory repository here backs tests and the CLI.
"""

from collections.abc import Sequence
from typing import Protocol

from instant_booking.logging_context import get_request_logger
from instant_booking.matching.availability import BusyBooking
from instant_booking.schemas.booking_schema import ProviderRecord, ProviderStatus
from instant_booking.tools.booking import InMemoryBookingStore

logger = get_request_logger(__name__)


class AvailabilityRepository(Protocol):
    """Source of candidate providers and their existing bookings."""

    def available_provider_ids(self) -> list[str]:
        """Ids of providers marked available, in directory order."""
        ...

    def bookings_on(self, booking_date: str, provider_ids: Sequence[str]) -> list[BusyBooking]:
        """Non-cancelled bookings on ``booking_date`` for the given providers."""
        ...


class InMemoryAvailabilityRepository:
    """Provider directory backed by a list, bookings backed by the booking store."""

    def __init__(self, providers: Sequence[ProviderRecord], store: InMemoryBookingStore) -> None:
        self._providers = list(providers)
        self._store = store

    def available_provider_ids(self) -> list[str]:
        return [
            p.id
            for p in self._providers
            if p.id and p.availability_status == ProviderStatus.AVAILABLE
        ]

    def bookings_on(self, booking_date: str, provider_ids: Sequence[str]) -> list[BusyBooking]:
        wanted = set(provider_ids)
        rows = [
            record
            for record in self._store.list_for_date(booking_date)
            if record.provider_id in wanted
        ]
        logger.debug("Loaded %d booking(s) on %s", len(rows), booking_date)
        return rows
