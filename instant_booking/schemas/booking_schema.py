"""Booking request, persisted booking, and confirmation data models."""

import math
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from instant_booking.config import settings
from instant_booking.errors import RequestedTimeInPastError
from instant_booking.matching.intervals import Interval
from instant_booking.utils import (
    minutes_since_midnight,
    parse_booking_date,
    parse_time_to_minutes,
)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProviderStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


def clamp_duration(hours: Optional[float]) -> float:
    """Clamp a requested duration into the configured [min, max] hour range.

    A missing or zero duration falls back to the configured default.
    """
    limits = settings.booking
    if not hours:
        return float(limits.default_duration_hours)
    return float(max(limits.min_duration_hours, min(limits.max_duration_hours, hours)))


class BookingRequest(BaseModel):
    """Validated instant booking request."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    customer_id: str = Field(min_length=1)
    service_id: str = Field(min_length=1)
    address_id: str = Field(min_length=1)
    date: str
    time: str
    duration_hours: float = Field(default=float(settings.booking.default_duration_hours))
    notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_booking_date(value)
        return value

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        parse_time_to_minutes(value)
        return value

    @field_validator("duration_hours", mode="before")
    @classmethod
    def _clamp_duration(cls, value: object) -> float:
        if value is None or value == "":
            return clamp_duration(None)
        try:
            hours = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValueError(f"duration_hours must be a number, got {value!r}") from None
        if not math.isfinite(hours):
            raise ValueError("duration_hours must be finite")
        return clamp_duration(hours)

    @property
    def booking_date(self) -> date:
        return parse_booking_date(self.date)

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.time)

    @property
    def requested_interval(self) -> Interval:
        return Interval.from_time(self.time, self.duration_hours)


class ProviderRecord(BaseModel):
    """Provider profile row as returned by the provider directory."""

    id: str
    availability_status: ProviderStatus = ProviderStatus.AVAILABLE


class BookingRecord(BaseModel):
    """Full booking record stored in the system."""

    booking_ref: str = ""
    customer_id: str
    provider_id: str
    service_id: str
    address_id: str
    booking_date: str
    booking_time: str
    duration_hours: float
    subtotal: float = 0.0
    service_fee: float = 0.0
    tax: float = 0.0
    total_amount: float = 0.0
    discount_amount: float = 0.0
    status: BookingStatus = BookingStatus.CONFIRMED
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None

    @property
    def interval(self) -> Interval:
        return Interval.from_time(self.booking_time, self.duration_hours)


class BookingConfirmation(BaseModel):
    """Instant booking result handed back to the request handler."""

    booking: BookingRecord
    membership_discount_pct: float = 0.0
    message: str = "Instant booking confirmed"


def ensure_not_in_past(request: BookingRequest, now: datetime) -> None:
    """Reject a same-day request whose start time has already passed.

    Only requests dated today are compared against the wall clock.
    """
    if request.booking_date != now.date():
        return
    if request.start_minutes < minutes_since_midnight(now):
        raise RequestedTimeInPastError()
