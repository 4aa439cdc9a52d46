"""
In-memory booking store.

In production this is the bookings table, with a constraint or
transactional check as the final guard against double booking. The
store here re-checks the provider's schedule under a lock before every
insert, so a provider matched against a stale snapshot is rejected at
write time.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from instant_booking.errors import InvalidInputError, NoAvailableSlotError
from instant_booking.logging_context import get_request_logger
from instant_booking.matching.intervals import overlaps
from instant_booking.schemas.booking_schema import BookingRecord, BookingStatus

logger = get_request_logger(__name__)


class BookingSink(Protocol):
    """Persistence for confirmed bookings. The write is authoritative."""

    def create(self, draft: BookingRecord) -> BookingRecord:
        """Persist ``draft`` or raise NoAvailableSlotError if the provider is taken."""
        ...


class InMemoryBookingStore:
    """Thread-safe dict-backed booking store with a write-time overlap check."""

    def __init__(self) -> None:
        self._bookings: dict[str, BookingRecord] = {}
        self._lock = threading.Lock()

    def create(self, draft: BookingRecord) -> BookingRecord:
        requested = draft.interval
        with self._lock:
            for existing in self._bookings.values():
                if (
                    draft.status != BookingStatus.CANCELLED
                    and existing.provider_id == draft.provider_id
                    and existing.booking_date == draft.booking_date
                    and existing.status != BookingStatus.CANCELLED
                    and overlaps(requested, existing.interval)
                ):
                    logger.warning(
                        "Write-time conflict: provider %s already booked (%s) on %s",
                        draft.provider_id,
                        existing.booking_ref,
                        draft.booking_date,
                    )
                    raise NoAvailableSlotError()

            now = datetime.now(timezone.utc)
            ref = f"BK-{uuid.uuid4().hex[:6].upper()}"
            record = draft.model_copy(
                update={
                    "booking_ref": ref,
                    "created_at": now,
                    "confirmed_at": now if draft.status == BookingStatus.CONFIRMED else None,
                }
            )
            self._bookings[ref] = record

        logger.info(
            "Booking created: %s provider %s on %s at %s",
            ref,
            record.provider_id,
            record.booking_date,
            record.booking_time,
        )
        return record

    def cancel(self, booking_ref: str) -> BookingRecord:
        with self._lock:
            record = self._bookings.get(booking_ref)
            if record is None:
                raise InvalidInputError(f"Booking {booking_ref} not found.")
            cancelled = record.model_copy(update={"status": BookingStatus.CANCELLED})
            self._bookings[booking_ref] = cancelled
        logger.info("Booking cancelled: %s", booking_ref)
        return cancelled

    def get(self, booking_ref: str) -> Optional[BookingRecord]:
        return self._bookings.get(booking_ref)

    def list_for_date(self, booking_date: str) -> list[BookingRecord]:
        """Non-cancelled bookings on ``booking_date``, oldest first."""
        with self._lock:
            return [
                record
                for record in self._bookings.values()
                if record.booking_date == booking_date
                and record.status != BookingStatus.CANCELLED
            ]

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        with self._lock:
            self._bookings.clear()
