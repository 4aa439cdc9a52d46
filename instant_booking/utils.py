"""Shared utilities used across the instant booking core."""

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from instant_booking.errors import InvalidInputError

ModelT = TypeVar("ModelT", bound=BaseModel)

_CENT = Decimal("0.01")
_TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MINUTES_PER_HOUR = 60


def round2(value: float) -> float:
    """Round a monetary amount to cents using round-half-up.

    The value goes through its shortest decimal repr first, so binary
    float noise such as ``14.300000000000001`` rounds as ``14.30``.

    Examples:
        >>> round2(2.675)
        2.68
        >>> round2(110 * 0.13)
        14.3
    """
    try:
        quantized = Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError(f"Cannot round non-numeric amount: {value!r}") from None
    return float(quantized)


def ensure_finite(name: str, value: float) -> float:
    """Reject NaN and infinities with an InvalidInputError naming the field."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return value


def parse_time_to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` 24h string to minutes since midnight.

    Examples:
        >>> parse_time_to_minutes("09:30")
        570
    """
    raw = str(value).strip()
    if not _TIME_PATTERN.match(raw):
        raise InvalidInputError(f"Invalid time format (expected HH:MM): {value!r}")
    try:
        parsed = datetime.strptime(raw, "%H:%M")
    except ValueError:
        raise InvalidInputError(f"Invalid time of day: {value!r}") from None
    return parsed.hour * MINUTES_PER_HOUR + parsed.minute


def parse_booking_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date."""
    raw = str(value).strip()
    if not _DATE_PATTERN.match(raw):
        raise InvalidInputError(f"Invalid date format (expected YYYY-MM-DD): {value!r}")
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInputError(f"Invalid calendar date: {value!r}") from None


def minutes_since_midnight(moment: datetime) -> int:
    return moment.hour * MINUTES_PER_HOUR + moment.minute


def format_minutes(minutes: int) -> str:
    """Inverse of ``parse_time_to_minutes`` for times within one day."""
    hours, mins = divmod(minutes, MINUTES_PER_HOUR)
    return f"{hours:02d}:{mins:02d}"


def ensure_aware(moment: datetime) -> datetime:
    """Return ``moment`` as a timezone-aware datetime.

    Naive values are taken to be local time, which is what ``datetime.now()``
    returns.
    """
    if moment.tzinfo is not None and moment.utcoffset() is not None:
        return moment
    return moment.astimezone()


def validate_payload(model: type[ModelT], payload: Mapping[str, Any]) -> ModelT:
    """Build a pydantic model from raw caller data.

    pydantic's ValidationError is re-raised as InvalidInputError so every
    bad input surfaces through the same error type.
    """
    try:
        return model.model_validate(dict(payload))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidInputError(problems) from exc
