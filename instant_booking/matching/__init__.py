from instant_booking.matching.availability import (
    ProviderCandidate,
    SlotAvailability,
    available_slots,
    build_candidates,
    find_available_provider,
    is_provider_free,
)
from instant_booking.matching.intervals import Interval, overlaps

__all__ = [
    "Interval",
    "overlaps",
    "ProviderCandidate",
    "SlotAvailability",
    "available_slots",
    "build_candidates",
    "find_available_provider",
    "is_provider_free",
]
