"""
Provider availability matching for instant bookings.

Candidates are checked in the order the caller supplies them and the
first provider with no overlapping busy interval wins. Order is the only
tie-break: providers are not ranked by load, rating, or distance.

The result is a recommendation against a snapshot of busy intervals.
The booking store re-checks the schedule when the booking is written.

``available_slots`` uses the same overlap test to list the hourly start
times on a date that at least one candidate can take.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Protocol

from instant_booking.errors import NoAvailableSlotError, NoCandidatesError
from instant_booking.logging_context import get_request_logger
from instant_booking.matching.intervals import Interval, overlaps
from instant_booking.utils import (
    MINUTES_PER_HOUR,
    format_minutes,
    minutes_since_midnight,
    parse_time_to_minutes,
)

logger = get_request_logger(__name__)

CANCELLED_STATUS = "cancelled"

WORKDAY_START_HOUR = 9
# Latest start is WORKDAY_END_HOUR minus the job duration.
WORKDAY_END_HOUR = 17


class BusyBooking(Protocol):
    """Minimal shape of a persisted booking row used to derive busy time."""

    provider_id: str
    booking_time: str
    duration_hours: float
    status: str


@dataclass(frozen=True)
class ProviderCandidate:
    """A provider and the intervals already booked on the target date."""

    provider_id: str
    busy: tuple[Interval, ...] = ()


def is_provider_free(candidate: ProviderCandidate, requested: Interval) -> bool:
    return not any(overlaps(requested, busy) for busy in candidate.busy)


def find_available_provider(
    candidates: Sequence[ProviderCandidate], requested: Interval
) -> str:
    """Return the id of the first candidate free for ``requested``.

    Raises:
        NoCandidatesError: ``candidates`` is empty.
        NoAvailableSlotError: every candidate has an overlapping booking.
    """
    if not candidates:
        raise NoCandidatesError()

    for candidate in candidates:
        if is_provider_free(candidate, requested):
            logger.debug(
                "Provider %s free for %d-%d", candidate.provider_id, requested.start, requested.end
            )
            return candidate.provider_id

    logger.info(
        "No free provider among %d candidate(s) for %d-%d",
        len(candidates),
        requested.start,
        requested.end,
    )
    raise NoAvailableSlotError()


def _status_value(status: object) -> str:
    return str(getattr(status, "value", status))


def build_candidates(
    provider_ids: Sequence[str], bookings: Iterable[BusyBooking]
) -> list[ProviderCandidate]:
    """Build candidates for one date from that date's booking rows.

    Cancelled bookings never block a provider. Rows for providers outside
    ``provider_ids`` are ignored, and candidate order follows ``provider_ids``.
    """
    busy_map: dict[str, list[Interval]] = {pid: [] for pid in provider_ids if pid}
    for booking in bookings:
        if _status_value(booking.status) == CANCELLED_STATUS:
            continue
        if booking.provider_id not in busy_map:
            continue
        start = parse_time_to_minutes(booking.booking_time)
        end = start + round(float(booking.duration_hours or 0) * MINUTES_PER_HOUR)
        busy_map[booking.provider_id].append(Interval(start, end))

    return [ProviderCandidate(pid, tuple(busy_map[pid])) for pid in busy_map]


@dataclass(frozen=True)
class SlotAvailability:
    """An hourly start time and how many candidates are free for it."""

    time: str
    available_providers: int


def slot_starts(duration_hours: float) -> list[int]:
    """Hourly start minutes from 09:00 up to 17:00 minus ``duration_hours``."""
    last_hour = math.floor(WORKDAY_END_HOUR - duration_hours)
    return [hour * MINUTES_PER_HOUR for hour in range(WORKDAY_START_HOUR, last_hour + 1)]


def available_slots(
    candidates: Sequence[ProviderCandidate],
    duration_hours: float,
    booking_date: date,
    now: datetime,
    provider_id: Optional[str] = None,
) -> list[SlotAvailability]:
    """List the start times on ``booking_date`` with at least one free candidate.

    When ``booking_date`` is today, start times earlier than ``now`` are
    dropped. ``provider_id`` restricts the count to that one provider.
    No candidates gives an empty list rather than an error.
    """
    if provider_id:
        candidates = [c for c in candidates if c.provider_id == provider_id]
    if not candidates:
        return []

    length = round(duration_hours * MINUTES_PER_HOUR)
    cutoff = minutes_since_midnight(now) if booking_date == now.date() else None

    slots = []
    for start in slot_starts(duration_hours):
        if cutoff is not None and start < cutoff:
            continue
        requested = Interval(start, start + length)
        free = sum(1 for candidate in candidates if is_provider_free(candidate, requested))
        if free:
            slots.append(SlotAvailability(format_minutes(start), free))

    logger.debug("%d open slot(s) on %s for %d candidate(s)", len(slots), booking_date, len(candidates))
    return slots
