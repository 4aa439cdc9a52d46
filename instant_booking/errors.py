"""
Error taxonomy for matching and pricing.

Every error carries a stable ``code`` and the HTTP status the calling
request handler maps it to, so callers can translate a failure without
inspecting the message text.
"""


class BookingCoreError(Exception):
    """Base class for all instant booking errors."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class InvalidInputError(BookingCoreError, ValueError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class NoCandidatesError(BookingCoreError):
    """No provider is marked available at all."""

    status_code = 409
    code = "no_providers"
    default_message = "No providers available"


class NoAvailableSlotError(BookingCoreError):
    """Providers exist but every one conflicts with the requested interval."""

    status_code = 409
    code = "slot_unavailable"
    default_message = "Requested time not available"


class RequestedTimeInPastError(BookingCoreError):
    status_code = 409
    code = "time_in_past"
    default_message = "Requested time is in the past"


class MembershipNotFoundError(BookingCoreError):
    status_code = 404
    code = "membership_not_found"
    default_message = "No active membership found"
