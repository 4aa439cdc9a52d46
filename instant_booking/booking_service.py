"""
Instant booking orchestration: match a provider, price the job, persist it.

Flow for one request:
    parse -> reject past same-day time -> list available providers
    -> build candidates from that date's bookings -> match
    -> compute price -> apply membership discount -> persist
    -> record membership usage

Instant bookings are priced as last-minute jobs: the lead time fed to the
pricing engine is the configured ``INSTANT_LEAD_HOURS``, not the distance
to the requested start.

The match is optimistic. The booking sink re-validates the provider's
schedule when writing and raises NoAvailableSlotError if another booking
got there first. Nothing is retried here.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from instant_booking.config import settings
from instant_booking.errors import NoCandidatesError
from instant_booking.logging_context import get_request_logger, request_scope
from instant_booking.matching.availability import (
    SlotAvailability,
    available_slots,
    build_candidates,
    find_available_provider,
)
from instant_booking.pricing.discounts import apply_membership_discount
from instant_booking.pricing.engine import PricingPolicy, compute_price
from instant_booking.schemas.booking_schema import (
    BookingConfirmation,
    BookingRecord,
    BookingRequest,
    BookingStatus,
    clamp_duration,
    ensure_not_in_past,
)
from instant_booking.schemas.membership_schema import MembershipCard
from instant_booking.schemas.pricing_schema import DiscountResult, PriceBreakdown, PriceContext
from instant_booking.tools.availability import AvailabilityRepository
from instant_booking.tools.booking import BookingSink
from instant_booking.tools.membership import MembershipLookup
from instant_booking.tools.services import PricingRuleSource
from instant_booking.utils import parse_booking_date, validate_payload

logger = get_request_logger(__name__)


@dataclass(frozen=True)
class Quote:
    """Price for a request, before and after any membership discount."""

    breakdown: PriceBreakdown
    discount: Optional[DiscountResult] = None
    membership: Optional[MembershipCard] = None

    @property
    def final(self) -> PriceBreakdown:
        return self.discount.breakdown if self.discount else self.breakdown


class InstantBookingService:
    """Books the first free provider for a requested slot at a computed price.

    ``instant_lead_hours`` is the lead time every instant booking is priced
    with; it defaults to the ``INSTANT_LEAD_HOURS`` setting.
    """

    def __init__(
        self,
        availability: AvailabilityRepository,
        pricing_rules: PricingRuleSource,
        bookings: BookingSink,
        memberships: Optional[MembershipLookup] = None,
        clock: Callable[[], datetime] = datetime.now,
        policy: Optional[PricingPolicy] = None,
        instant_lead_hours: Optional[float] = None,
    ) -> None:
        self._availability = availability
        self._pricing_rules = pricing_rules
        self._bookings = bookings
        self._memberships = memberships
        self._clock = clock
        self._policy = policy
        self._lead_hours = (
            settings.pricing.instant_lead_hours
            if instant_lead_hours is None
            else instant_lead_hours
        )

    def parse_request(self, payload: Mapping[str, Any]) -> BookingRequest:
        return validate_payload(BookingRequest, payload)

    def match_provider(self, request: BookingRequest) -> str:
        """Pick the first available provider free for the requested interval.

        Raises:
            NoCandidatesError: no provider is marked available.
            NoAvailableSlotError: all available providers are booked.
        """
        provider_ids = self._availability.available_provider_ids()
        if not provider_ids:
            logger.info("No providers available for %s", request.date)
            raise NoCandidatesError()

        rows = self._availability.bookings_on(request.date, provider_ids)
        candidates = build_candidates(provider_ids, rows)
        return find_available_provider(candidates, request.requested_interval)

    def list_slots(
        self,
        booking_date: str,
        duration_hours: Optional[float] = None,
        provider_id: Optional[str] = None,
    ) -> list[SlotAvailability]:
        """Hourly start times on ``booking_date`` that some available provider can take.

        ``provider_id`` narrows the listing to one provider. No available
        provider gives an empty list.
        """
        day = parse_booking_date(booking_date)
        hours = clamp_duration(duration_hours)
        provider_ids = self._availability.available_provider_ids()
        if provider_id:
            provider_ids = [pid for pid in provider_ids if pid == provider_id]
        if not provider_ids:
            return []

        rows = self._availability.bookings_on(booking_date, provider_ids)
        return available_slots(build_candidates(provider_ids, rows), hours, day, self._clock())

    def price_context(self, request: BookingRequest) -> PriceContext:
        return PriceContext(
            base_price=self._pricing_rules.base_price(request.service_id),
            month=request.booking_date.month,
            lead_hours=self._lead_hours,
        )

    def quote(self, request: BookingRequest, now: Optional[datetime] = None) -> Quote:
        now = now or self._clock()
        breakdown = compute_price(self.price_context(request), self._policy)

        card = None
        if self._memberships is not None:
            card = self._memberships.find_active(request.customer_id, now)
        if card is None or card.discount_percentage <= 0:
            return Quote(breakdown=breakdown)

        discount = apply_membership_discount(breakdown, card.discount_percentage)
        return Quote(breakdown=breakdown, discount=discount, membership=card)

    def book(self, payload: Mapping[str, Any]) -> BookingConfirmation:
        """Validate, match, price, and persist one instant booking."""
        with request_scope():
            return self._book(payload)

    def _book(self, payload: Mapping[str, Any]) -> BookingConfirmation:
        request = self.parse_request(payload)
        now = self._clock()
        ensure_not_in_past(request, now)

        provider_id = self.match_provider(request)
        quote = self.quote(request, now)
        final = quote.final

        draft = BookingRecord(
            customer_id=request.customer_id,
            provider_id=provider_id,
            service_id=request.service_id,
            address_id=request.address_id,
            booking_date=request.date,
            booking_time=request.time,
            duration_hours=request.duration_hours,
            subtotal=final.subtotal_before_fees,
            service_fee=final.service_fee,
            tax=final.tax,
            total_amount=final.total,
            discount_amount=quote.discount.discount_amount if quote.discount else 0.0,
            status=BookingStatus.CONFIRMED,
            special_instructions=request.notes,
        )
        record = self._bookings.create(draft)
        logger.info(
            "Instant booking %s: provider %s, total %.2f", record.booking_ref, provider_id, final.total
        )

        if quote.discount and quote.membership and self._memberships is not None:
            self._memberships.record_usage(
                quote.membership.id,
                quote.discount.discount_amount,
                quote.discount.original_total,
                now,
            )

        return BookingConfirmation(
            booking=record,
            membership_discount_pct=quote.discount.percentage if quote.discount else 0.0,
        )
