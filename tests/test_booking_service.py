"""Integration tests: request parsing + matching + pricing + persistence together."""

from datetime import datetime

import pytest

from instant_booking.booking_service import InstantBookingService
from instant_booking.errors import (
    InvalidInputError,
    NoAvailableSlotError,
    NoCandidatesError,
    RequestedTimeInPastError,
)
from instant_booking.schemas.booking_schema import (
    BookingRequest,
    BookingStatus,
    ProviderRecord,
    ProviderStatus,
)
from instant_booking.tools.availability import InMemoryAvailabilityRepository
from instant_booking.tools.services import ServiceCatalog
from tests.conftest import (
    BOOKING_DATE,
    NOW,
    make_booking,
    make_card,
    make_payload,
    make_service,
)


class TestInstantBooking:
    def test_happy_path(self, service, booking_store):
        confirmation = service.book(make_payload(notes="Ring twice"))
        booking = confirmation.booking

        assert booking.booking_ref.startswith("BK-")
        assert booking.provider_id == "prov-a"
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.confirmed_at is not None
        assert booking.special_instructions == "Ring twice"
        assert booking.subtotal == 120.0
        assert booking.service_fee == 12.0
        assert booking.tax == 17.16
        assert booking.total_amount == 149.16
        assert booking.discount_amount == 0.0
        assert confirmation.message == "Instant booking confirmed"
        assert booking_store.get(booking.booking_ref) == booking

    def test_busy_provider_skipped(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "09:00", 2))
        confirmation = service.book(make_payload(time="10:00"))
        assert confirmation.booking.provider_id == "prov-b"

    def test_back_to_back_uses_first_provider(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "08:00", 2))
        confirmation = service.book(make_payload(time="10:00"))
        assert confirmation.booking.provider_id == "prov-a"

    def test_cancelled_booking_does_not_block(self, service, booking_store):
        existing = booking_store.create(make_booking("prov-a", "10:00", 2))
        booking_store.cancel(existing.booking_ref)
        confirmation = service.book(make_payload(time="10:00"))
        assert confirmation.booking.provider_id == "prov-a"

    def test_other_dates_do_not_block(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "10:00", 2, booking_date="2025-01-21"))
        confirmation = service.book(make_payload(time="10:00"))
        assert confirmation.booking.provider_id == "prov-a"

    def test_offline_provider_never_chosen(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "10:00", 2))
        booking_store.create(make_booking("prov-b", "10:00", 2))
        with pytest.raises(NoAvailableSlotError):
            service.book(make_payload(time="10:00"))

    def test_consecutive_requests_fill_providers(self, service):
        first = service.book(make_payload(customer_id="cust-1"))
        second = service.book(make_payload(customer_id="cust-2"))
        assert first.booking.provider_id == "prov-a"
        assert second.booking.provider_id == "prov-b"
        with pytest.raises(NoAvailableSlotError):
            service.book(make_payload(customer_id="cust-3"))

    def test_duration_clamped_before_matching(self, service, booking_store):
        # 10 hours from 08:00 clamps to 08:00-16:00 and collides with 15:00
        booking_store.create(make_booking("prov-a", "15:00", 1))
        confirmation = service.book(make_payload(time="08:00", duration_hours=10))
        assert confirmation.booking.duration_hours == 8
        assert confirmation.booking.provider_id == "prov-b"


class TestFailureModes:
    def test_no_providers_available(self, booking_store, membership_store):
        offline = [ProviderRecord(id="prov-a", availability_status=ProviderStatus.BUSY)]
        service = make_service(booking_store, membership_store, offline)
        with pytest.raises(NoCandidatesError) as exc_info:
            service.book(make_payload())
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "No providers available"

    def test_no_free_slot(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "09:00", 4))
        booking_store.create(make_booking("prov-b", "11:00", 1))
        with pytest.raises(NoAvailableSlotError) as exc_info:
            service.book(make_payload(time="10:00"))
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Requested time not available"

    def test_missing_fields(self, service):
        payload = make_payload()
        del payload["address_id"]
        with pytest.raises(InvalidInputError) as exc_info:
            service.book(payload)
        assert exc_info.value.status_code == 400

    def test_malformed_time(self, service):
        with pytest.raises(InvalidInputError, match="time"):
            service.book(make_payload(time="9am"))

    def test_past_time_today(self, booking_store, membership_store, providers):
        service = make_service(
            booking_store, membership_store, providers, now=datetime(2025, 1, 20, 11, 0)
        )
        with pytest.raises(RequestedTimeInPastError):
            service.book(make_payload(time="10:00"))
        assert booking_store.list_for_date(BOOKING_DATE) == []

    def test_unknown_service(self, service):
        with pytest.raises(InvalidInputError, match="Unknown service"):
            service.book(make_payload(service_id="space-station-cleaning"))

    def test_stale_snapshot_rejected_at_write(self, booking_store, membership_store):
        class StaleAvailability:
            def available_provider_ids(self):
                return ["prov-a"]

            def bookings_on(self, booking_date, provider_ids):
                return []

        booking_store.create(make_booking("prov-a", "10:00", 2))
        membership_store.add(make_card())
        service = InstantBookingService(
            availability=StaleAvailability(),
            pricing_rules=ServiceCatalog(),
            bookings=booking_store,
            memberships=membership_store,
            clock=lambda: NOW,
        )
        with pytest.raises(NoAvailableSlotError):
            service.book(make_payload(time="11:00"))
        assert len(booking_store.list_for_date(BOOKING_DATE)) == 1
        assert membership_store.get("card-1").orders_count == 0


class TestMembershipPricing:
    def test_discount_applied_and_usage_recorded(self, service, membership_store):
        membership_store.add(make_card(percentage=20))
        confirmation = service.book(make_payload())

        booking = confirmation.booking
        assert booking.subtotal == 96.0
        assert booking.service_fee == 9.6
        assert booking.tax == 13.73
        assert booking.total_amount == 119.33
        assert booking.discount_amount == 24.0
        assert confirmation.membership_discount_pct == 20

        card = membership_store.get("card-1")
        assert card.total_savings == 24.0
        assert card.orders_count == 1
        assert card.last_used_at == NOW

    def test_usage_accumulates(self, service, membership_store):
        membership_store.add(make_card(percentage=10))
        service.book(make_payload(time="09:00"))
        service.book(make_payload(time="13:00"))
        card = membership_store.get("card-1")
        assert card.total_savings == 24.0
        assert card.orders_count == 2

    def test_expired_card_ignored(self, service, membership_store):
        membership_store.add(make_card(expiration_date=datetime(2025, 1, 1)))
        assert service.book(make_payload()).booking.total_amount == 149.16

    def test_unactivated_card_ignored(self, service, membership_store):
        membership_store.add(make_card(is_activated=False))
        assert service.book(make_payload()).booking.total_amount == 149.16

    def test_inactive_status_ignored(self, service, membership_store):
        membership_store.add(make_card(status="suspended"))
        assert service.book(make_payload()).booking.total_amount == 149.16

    def test_other_customers_card_ignored(self, service, membership_store):
        membership_store.add(make_card(customer_id="cust-9"))
        assert service.book(make_payload()).booking.total_amount == 149.16

    def test_most_recent_card_wins(self, service, membership_store):
        membership_store.add(make_card("card-old", percentage=10, created_at=datetime(2024, 1, 1)))
        membership_store.add(make_card("card-new", percentage=25, created_at=datetime(2024, 9, 1)))
        confirmation = service.book(make_payload())
        assert confirmation.membership_discount_pct == 25
        assert membership_store.get("card-new").orders_count == 1
        assert membership_store.get("card-old").orders_count == 0

    def test_zero_percent_card_skips_adjustment(self, service, membership_store):
        membership_store.add(make_card(percentage=0))
        confirmation = service.book(make_payload())
        assert confirmation.membership_discount_pct == 0.0
        assert membership_store.get("card-1").orders_count == 0

    def test_no_membership_lookup_configured(self, booking_store, providers):
        service = make_service(booking_store, None, providers)
        assert service.book(make_payload()).booking.total_amount == 149.16


class TestQuote:
    def test_quote_does_not_persist(self, service, booking_store):
        request = BookingRequest(**make_payload())
        quote = service.quote(request)
        assert quote.final.total == 149.16
        assert quote.discount is None
        assert booking_store.list_for_date(BOOKING_DATE) == []

    def test_quote_with_membership(self, service, membership_store):
        membership_store.add(make_card(percentage=20))
        quote = service.quote(BookingRequest(**make_payload()))
        assert quote.breakdown.total == 149.16
        assert quote.final.total == 119.33
        assert quote.membership.id == "card-1"

    def test_march_booking_uses_seasonal_rate(self, service):
        quote = service.quote(BookingRequest(**make_payload(date="2025-03-18")))
        assert quote.breakdown.seasonal_multiplier == 1.05
        assert quote.breakdown.subtotal_before_fees == 126.0

    def test_instant_booking_priced_as_last_minute(self, service):
        # Ten days ahead, still priced with the one-hour instant lead time
        quote = service.quote(BookingRequest(**make_payload()))
        assert quote.breakdown.last_minute_fee == 20.0
        assert quote.breakdown.subtotal_before_fees == 120.0

    def test_instant_lead_hours_override(self, booking_store, providers):
        service = InstantBookingService(
            availability=InMemoryAvailabilityRepository(providers, booking_store),
            pricing_rules=ServiceCatalog(),
            bookings=booking_store,
            clock=lambda: NOW,
            instant_lead_hours=72,
        )
        confirmation = service.book(make_payload())
        assert confirmation.booking.subtotal == 100.0
        assert confirmation.booking.total_amount == 124.3


class TestListSlots:
    def test_open_day(self, service):
        slots = service.list_slots(BOOKING_DATE, duration_hours=2)
        assert [s.time for s in slots] == [
            "09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00",
        ]
        assert all(s.available_providers == 2 for s in slots)

    def test_counts_drop_where_providers_are_booked(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "10:00", 2))
        slots = {s.time: s.available_providers for s in service.list_slots(BOOKING_DATE, 2)}
        assert slots["09:00"] == 1
        assert slots["11:00"] == 1
        assert slots["12:00"] == 2

    def test_fully_booked_start_omitted(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "09:00", 3))
        booking_store.create(make_booking("prov-b", "09:00", 3))
        times = [s.time for s in service.list_slots(BOOKING_DATE, 2)]
        assert "09:00" not in times
        assert "11:00" not in times
        assert times[0] == "12:00"

    def test_single_provider(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "09:00", 8))
        assert service.list_slots(BOOKING_DATE, 2, provider_id="prov-a") == []
        slots = service.list_slots(BOOKING_DATE, 2, provider_id="prov-b")
        assert all(s.available_providers == 1 for s in slots)

    def test_offline_provider_gives_no_slots(self, service):
        assert service.list_slots(BOOKING_DATE, provider_id="prov-c") == []

    def test_past_starts_dropped_today(self, booking_store, membership_store, providers):
        service = make_service(
            booking_store, membership_store, providers, now=datetime(2025, 1, 20, 11, 30)
        )
        times = [s.time for s in service.list_slots(BOOKING_DATE, 2)]
        assert times == ["12:00", "13:00", "14:00", "15:00"]

    def test_duration_defaults_and_clamps(self, service):
        assert len(service.list_slots(BOOKING_DATE)) == 7
        assert [s.time for s in service.list_slots(BOOKING_DATE, 12)] == ["09:00"]

    def test_bad_date(self, service):
        with pytest.raises(InvalidInputError):
            service.list_slots("20-01-2025")
