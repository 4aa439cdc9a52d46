"""
Command-line entry point for the instant booking core.

Prices a job, matches a provider, or lists open slots from the shell and
prints JSON.

Usage:
    Quote:  python main.py quote --base-price 100 --month 1 --lead-hours 72
            python main.py quote --base-price 100 --month 1 --lead-hours 72 --membership-pct 20
    Match:  python main.py match --time 09:00 --duration 2 \\
                --provider alice=10:00-12:00 --provider bob
    Slots:  python main.py slots --date 2025-01-20 --provider alice=10:00-12:00 --provider bob
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from instant_booking.errors import BookingCoreError, InvalidInputError
from instant_booking.matching import (
    Interval,
    ProviderCandidate,
    available_slots,
    find_available_provider,
)
from instant_booking.pricing import apply_membership_discount, compute_price, sales_tax_rate
from instant_booking.pricing.addons import addons_subtotal
from instant_booking.schemas.booking_schema import clamp_duration
from instant_booking.schemas.pricing_schema import PriceContext
from instant_booking.utils import parse_booking_date, parse_time_to_minutes, validate_payload

logger = logging.getLogger(__name__)


def _parse_provider(spec: str) -> ProviderCandidate:
    """Parse ``id`` or ``id=HH:MM-HH:MM,HH:MM-HH:MM`` into a candidate."""
    provider_id, _, ranges = spec.partition("=")
    if not provider_id.strip():
        raise InvalidInputError(f"Provider spec has no id: {spec!r}")
    busy = []
    for chunk in filter(None, (part.strip() for part in ranges.split(","))):
        start, sep, end = chunk.partition("-")
        if not sep:
            raise InvalidInputError(f"Busy range must look like HH:MM-HH:MM: {chunk!r}")
        busy.append(Interval(parse_time_to_minutes(start), parse_time_to_minutes(end)))
    return ProviderCandidate(provider_id.strip(), tuple(busy))


def _run_quote(args: argparse.Namespace) -> dict:
    payload = {
        "base_price": args.base_price,
        "addons_total": addons_subtotal(args.addon) if args.addon else 0.0,
        "demand_index": args.demand_index,
        "utilization": args.utilization,
        "distance_km": args.distance_km,
        "month": args.month,
        "lead_hours": args.lead_hours,
        "jobs_in_cart": args.jobs,
        "recurring": args.recurring,
    }
    if args.service_fee_pct is not None:
        payload["service_fee_pct"] = args.service_fee_pct
    if args.city and not args.state:
        raise InvalidInputError("--city needs --state")
    if args.state:
        payload["tax_rate"] = sales_tax_rate(args.state, args.city)
    elif args.tax_rate is not None:
        payload["tax_rate"] = args.tax_rate

    breakdown = compute_price(validate_payload(PriceContext, payload))
    result = {"breakdown": breakdown.model_dump(mode="json")}
    if args.membership_pct:
        discounted = apply_membership_discount(breakdown, args.membership_pct)
        result["discounted"] = discounted.model_dump(mode="json")
    return result


def _run_match(args: argparse.Namespace) -> dict:
    start = parse_time_to_minutes(args.time)
    requested = Interval(start, start + round(clamp_duration(args.duration) * 60))
    candidates = [_parse_provider(spec) for spec in args.provider]
    provider_id = find_available_provider(candidates, requested)
    return {"provider_id": provider_id, "start": requested.start, "end": requested.end}


def _run_slots(args: argparse.Namespace) -> dict:
    day = parse_booking_date(args.date)
    hours = clamp_duration(args.duration)
    candidates = [_parse_provider(spec) for spec in args.provider]
    slots = available_slots(candidates, hours, day, datetime.now(), provider_id=args.provider_id)
    return {
        "date": args.date,
        "duration_hours": hours,
        "slots": [asdict(slot) for slot in slots],
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Match providers and price instant cleaning bookings."
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Compute a price breakdown.")
    quote.add_argument("--base-price", type=float, required=True)
    quote.add_argument("--month", type=int, required=True, help="Month of the job (1-12).")
    quote.add_argument("--lead-hours", type=float, required=True)
    quote.add_argument("--demand-index", type=float, default=0.0)
    quote.add_argument("--utilization", type=float, default=1.0)
    quote.add_argument("--distance-km", type=float, default=0.0)
    quote.add_argument("--jobs", type=int, default=1, help="Jobs in cart.")
    quote.add_argument("--recurring", choices=["weekly", "biweekly", "monthly"], default=None)
    quote.add_argument("--addon", action="append", default=[], help="Add-on id (repeatable).")
    quote.add_argument("--service-fee-pct", type=float, default=None)
    tax = quote.add_mutually_exclusive_group()
    tax.add_argument("--tax-rate", type=float, default=None)
    tax.add_argument("--state", default=None, help="US state code for sales-tax lookup.")
    quote.add_argument("--city", default=None, help="City for the surcharge, with --state.")
    quote.add_argument("--membership-pct", type=float, default=0.0)
    quote.set_defaults(handler=_run_quote)

    match = sub.add_parser("match", help="Find the first free provider.")
    match.add_argument("--time", required=True, help="Requested start, HH:MM.")
    match.add_argument("--duration", type=float, default=None, help="Hours, clamped to 1-8.")
    match.add_argument(
        "--provider",
        action="append",
        default=[],
        help="Candidate as id or id=HH:MM-HH:MM[,HH:MM-HH:MM] (repeatable, order matters).",
    )
    match.set_defaults(handler=_run_match)

    slots = sub.add_parser("slots", help="List open hourly start times on a date.")
    slots.add_argument("--date", required=True, help="YYYY-MM-DD.")
    slots.add_argument("--duration", type=float, default=None, help="Hours, clamped to 1-8.")
    slots.add_argument(
        "--provider",
        action="append",
        default=[],
        help="Candidate as id or id=HH:MM-HH:MM[,HH:MM-HH:MM] (repeatable).",
    )
    slots.add_argument("--provider-id", default=None, help="Only count this provider.")
    slots.set_defaults(handler=_run_slots)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = args.handler(args)
    except BookingCoreError as exc:
        logger.error("%s failed: %s", args.command, exc.message)
        sys.stdout.write(json.dumps({**exc.to_dict(), "status": exc.status_code}) + "\n")
        return 1

    sys.stdout.write(json.dumps(result, indent=2, default=str) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
