"""
Half-open time intervals in minutes since midnight.

An interval ``[start, end)`` excludes its end point, so a booking ending
at 10:00 and another starting at 10:00 do not overlap.

Usage:
    morning = Interval(540, 660)      # 09:00-11:00
    late = Interval(600, 720)         # 10:00-12:00
    assert morning.overlaps(late)
"""

from dataclasses import dataclass

from instant_booking.errors import InvalidInputError
from instant_booking.utils import MINUTES_PER_HOUR, parse_time_to_minutes


@dataclass(frozen=True, order=True)
class Interval:
    """Immutable half-open range of minutes. ``end`` may run past 1440."""

    start: int
    end: int

    def __post_init__(self) -> None:
        for name, value in (("start", self.start), ("end", self.end)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(f"Interval {name} must be an integer, got {value!r}")
        if self.start < 0:
            raise InvalidInputError(f"Interval start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise InvalidInputError(
                f"Interval end ({self.end}) must not precede start ({self.start})"
            )

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    @classmethod
    def from_time(cls, time_str: str, duration_hours: float) -> "Interval":
        """Build an interval starting at ``HH:MM`` and lasting ``duration_hours``."""
        start = parse_time_to_minutes(time_str)
        return cls(start, start + round(duration_hours * MINUTES_PER_HOUR))


def overlaps(a: Interval, b: Interval) -> bool:
    """True when the two half-open intervals intersect; touching ends do not count."""
    return a.start < b.end and b.start < a.end
