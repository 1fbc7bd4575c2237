"""
Room availability over half-open stay ranges.

A stay occupies ``[check_in, check_out)``: a guest checking out on a date does
not conflict with another guest checking in on that date. Bookings whose status
is in ``Booking.HELD_STATUSES`` claim their room; room blocks claim it for every
date from ``start_date`` to ``end_date`` inclusive.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from availability.models import Room, RoomBlock
from bookings.models import Booking
from core.exceptions import InvalidRangeError


@dataclass
class AvailabilityResult:
    rooms: list[Room]
    nights: int
    booked_room_ids: list[int] = field(default_factory=list)
    blocked_room_ids: list[int] = field(default_factory=list)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start < b_end and b_start < a_end


def parse_stay_date(value, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()
        try:
            if "T" in value:
                # full timestamps are accepted; only their date part is used
                return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise InvalidRangeError({field_name: "Use an ISO date (YYYY-MM-DD)."})


def validate_stay_range(check_in, check_out) -> tuple[date, date]:
    check_in = parse_stay_date(check_in, "check_in")
    check_out = parse_stay_date(check_out, "check_out")
    if check_out <= check_in:
        raise InvalidRangeError()
    return check_in, check_out


def overlapping_bookings(check_in: date, check_out: date):
    return Booking.objects.filter(
        status__in=Booking.HELD_STATUSES,
        check_in__lt=check_out,
        check_out__gt=check_in,
    )


def overlapping_blocks(check_in: date, check_out: date):
    # block end is inclusive, so it covers the night of end_date
    return RoomBlock.objects.filter(start_date__lt=check_out, end_date__gte=check_in)


def room_is_free(room_id: int, check_in: date, check_out: date, *, exclude_booking_id: int | None = None) -> bool:
    bookings = overlapping_bookings(check_in, check_out).filter(room_id=room_id)
    if exclude_booking_id is not None:
        bookings = bookings.exclude(pk=exclude_booking_id)
    if bookings.exists():
        return False
    return not overlapping_blocks(check_in, check_out).filter(room_id=room_id).exists()


def find_available_rooms(check_in, check_out, room_type: str | None = None) -> AvailabilityResult:
    """Return active rooms free for the whole stay, cheapest first."""

    check_in, check_out = validate_stay_range(check_in, check_out)

    booked_room_ids = sorted(
        set(overlapping_bookings(check_in, check_out).values_list("room_id", flat=True))
    )
    blocked_room_ids = sorted(
        set(overlapping_blocks(check_in, check_out).values_list("room_id", flat=True))
    )

    rooms = Room.objects.filter(is_active=True, is_available=True)
    if room_type:
        rooms = rooms.filter(room_type=room_type)
    rooms = rooms.exclude(pk__in=set(booked_room_ids) | set(blocked_room_ids))

    return AvailabilityResult(
        rooms=list(rooms.order_by("base_price_cents", "id")),
        nights=(check_out - check_in).days,
        booked_room_ids=booked_room_ids,
        blocked_room_ids=blocked_room_ids,
    )
