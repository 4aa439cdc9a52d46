"""Tests for request-id log correlation."""

import contextvars
import logging

import pytest

from instant_booking.errors import NoAvailableSlotError
from instant_booking.logging_context import (
    NO_REQUEST_ID,
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    request_id_handler,
    request_scope,
    set_request_id,
)
from tests.conftest import make_booking, make_card, make_payload


class TestRequestId:
    def test_default_outside_a_request(self):
        ctx = contextvars.Context()
        assert ctx.run(get_request_id) == NO_REQUEST_ID

    def test_set_and_get(self):
        def run():
            set_request_id("REQ-test")
            return get_request_id()

        assert contextvars.Context().run(run) == "REQ-test"

    def test_scope_restores_previous_id(self):
        with request_scope("REQ-outer"):
            with request_scope() as inner:
                assert inner.startswith("REQ-")
                assert inner != "REQ-outer"
            assert get_request_id() == "REQ-outer"
        assert get_request_id() == NO_REQUEST_ID

    def test_scope_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with request_scope("REQ-fail"):
                raise RuntimeError("boom")
        assert get_request_id() == NO_REQUEST_ID

    def test_filter_attached_once(self):
        logger = get_request_logger("instant_booking.test_filter_once")
        get_request_logger("instant_booking.test_filter_once")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1

    def test_filter_keeps_existing_id(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.request_id = "REQ-keep"
        with request_scope("REQ-other"):
            RequestIdFilter().filter(record)
        assert record.request_id == "REQ-keep"

    def test_handler_formats_foreign_records(self):
        handler = request_id_handler()
        handler.setFormatter(logging.Formatter("[%(request_id)s] %(message)s"))
        record = logging.LogRecord("thirdparty", logging.INFO, __file__, 1, "hello", None, None)
        with request_scope("REQ-fmt"):
            assert handler.filter(record)
        assert handler.format(record) == "[REQ-fmt] hello"


class TestBookingCorrelation:
    def test_every_module_tags_records(self, service, membership_store, caplog):
        membership_store.add(make_card(percentage=10))
        with caplog.at_level(logging.DEBUG):
            service.book(make_payload())

        ours = [r for r in caplog.records if r.name.startswith("instant_booking.")]
        names = {r.name for r in ours}
        assert {
            "instant_booking.booking_service",
            "instant_booking.tools.booking",
            "instant_booking.tools.membership",
            "instant_booking.pricing.discounts",
        } <= names
        ids = {r.request_id for r in ours if r.name != "instant_booking.config"}
        assert len(ids) == 1
        assert ids.pop().startswith("REQ-")

    def test_id_reset_after_booking(self, service):
        service.book(make_payload())
        assert get_request_id() == NO_REQUEST_ID

    def test_id_reset_after_failed_booking(self, service, booking_store):
        booking_store.create(make_booking("prov-a", "10:00"))
        booking_store.create(make_booking("prov-b", "10:00"))
        with pytest.raises(NoAvailableSlotError):
            service.book(make_payload())
        assert get_request_id() == NO_REQUEST_ID
