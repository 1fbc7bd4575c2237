from datetime import date, datetime, timedelta

import pytest
from django.utils import timezone

from availability.models import Room, RoomBlock
from availability.services.engine import find_available_rooms, parse_stay_date, ranges_overlap, room_is_free
from bookings.models import Booking
from core.exceptions import InvalidRangeError


@pytest.fixture
def suite(db):
    return Room.objects.create(
        room_number="301",
        name="Lighthouse Suite",
        room_type="suite",
        base_price_cents=780000,
        max_guests=4,
    )


def test_ranges_overlap_is_half_open():
    def dec(day):
        return date(2025, 12, day)

    assert ranges_overlap(dec(2), dec(6), dec(5), dec(8))
    assert ranges_overlap(dec(2), dec(6), dec(1), dec(3))
    assert ranges_overlap(dec(2), dec(6), dec(3), dec(4))
    assert not ranges_overlap(dec(2), dec(6), dec(6), dec(8))
    assert not ranges_overlap(dec(2), dec(6), dec(1), dec(2))


@pytest.mark.django_db
def test_checkout_day_can_be_next_checkin(room, make_booking):
    make_booking(check_in=date(2025, 12, 2), check_out=date(2025, 12, 6))

    adjacent = find_available_rooms("2025-12-06", "2025-12-08")
    overlapping = find_available_rooms("2025-12-05", "2025-12-08")

    assert [r.pk for r in adjacent.rooms] == [room.pk]
    assert overlapping.rooms == []
    assert overlapping.booked_room_ids == [room.pk]


@pytest.mark.django_db
@pytest.mark.parametrize(
    "status,payment_status,blocks",
    [
        (Booking.PENDING, Booking.PAYMENT_PENDING, True),
        (Booking.PENDING, Booking.PAYMENT_VERIFICATION_PENDING, True),
        (Booking.CONFIRMED, Booking.PAYMENT_PAID, True),
        (Booking.CHECKED_IN, Booking.PAYMENT_PAID, True),
        (Booking.CANCELLED, Booking.PAYMENT_PAID, False),
        (Booking.FAILED, Booking.PAYMENT_PENDING, False),
        (Booking.FAILED, Booking.PAYMENT_FAILED, False),
    ],
)
def test_only_held_statuses_block_the_room(room, make_booking, status, payment_status, blocks):
    make_booking(status=status, payment_status=payment_status)

    result = find_available_rooms(date(2030, 12, 3), date(2030, 12, 4))

    assert (room not in result.rooms) is blocks


@pytest.mark.django_db
def test_room_block_end_date_is_inclusive(room, staff_user):
    RoomBlock.objects.create(
        room=room,
        start_date=date(2030, 12, 5),
        end_date=date(2030, 12, 5),
        reason="maintenance",
        created_by=staff_user,
    )

    blocked = find_available_rooms(date(2030, 12, 5), date(2030, 12, 6))
    after = find_available_rooms(date(2030, 12, 6), date(2030, 12, 7))
    before = find_available_rooms(date(2030, 12, 3), date(2030, 12, 5))

    assert blocked.rooms == []
    assert blocked.blocked_room_ids == [room.pk]
    assert after.rooms == [room]
    assert before.rooms == [room]


@pytest.mark.django_db
def test_results_sorted_by_price_then_id(room, suite):
    twin = Room.objects.create(
        room_number="102", room_type="standard", base_price_cents=room.base_price_cents
    )

    result = find_available_rooms(date(2030, 1, 1), date(2030, 1, 2))

    assert [r.pk for r in result.rooms] == [room.pk, twin.pk, suite.pk]
    assert result.nights == 1


@pytest.mark.django_db
def test_inactive_rooms_and_type_filter(room, suite):
    Room.objects.create(room_number="999", room_type="suite", base_price_cents=100, is_active=False)
    Room.objects.create(room_number="998", room_type="suite", base_price_cents=100, is_available=False)

    result = find_available_rooms(date(2030, 1, 1), date(2030, 1, 3), room_type="suite")

    assert result.rooms == [suite]


@pytest.mark.django_db
@pytest.mark.parametrize(
    "check_in,check_out",
    [
        ("2030-01-05", "2030-01-05"),
        ("2030-01-05", "2030-01-04"),
        ("not-a-date", "2030-01-04"),
        ("2030-01-02garbage", "2030-01-05"),
        ("2030-01-02T99:00", "2030-01-05"),
        (None, "2030-01-04"),
    ],
)
def test_invalid_ranges_are_rejected(check_in, check_out):
    with pytest.raises(InvalidRangeError):
        find_available_rooms(check_in, check_out)


@pytest.mark.django_db
def test_room_is_free_can_ignore_one_booking(room, make_booking):
    booking = make_booking()

    assert not room_is_free(room.pk, booking.check_in, booking.check_out)
    assert room_is_free(room.pk, booking.check_in, booking.check_out, exclude_booking_id=booking.pk)


@pytest.mark.django_db
def test_availability_endpoint_payload(api_client, room, suite, make_booking):
    make_booking(room=suite)

    response = api_client.post(
        "/api/rooms/availability/",
        {"check_in": "2030-12-03", "check_out": "2030-12-05"},
        format="json",
    )

    assert response.status_code == 200
    body = response.json()
    assert [r["id"] for r in body["available_rooms"]] == [room.pk]
    assert body["available_rooms"][0]["base_price"] == "2500.00"
    assert body["total_available"] == 1
    assert body["booked_room_ids"] == [suite.pk]
    assert body["total_booked"] == 1
    assert body["blocked_room_ids"] == []
    assert body["nights"] == 2
    assert "available" in body["message"]


@pytest.mark.django_db
def test_availability_endpoint_filters_by_guest_count(api_client, room, suite):
    response = api_client.post(
        "/api/rooms/availability/",
        {"check_in": "2030-12-03", "check_out": "2030-12-05", "num_guests": 3},
        format="json",
    )

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["available_rooms"]] == [suite.pk]


@pytest.mark.django_db
def test_availability_endpoint_rejects_bad_range(api_client, room):
    response = api_client.post(
        "/api/rooms/availability/",
        {"check_in": "2030-12-05", "check_out": "2030-12-03"},
        format="json",
    )

    assert response.status_code == 400
    assert "check_out" in response.json()


@pytest.mark.django_db
def test_availability_search_releases_expired_holds(settings, api_client, room, make_booking):
    settings.BOOKING_PASSIVE_SWEEP = True
    stale = make_booking(hold_started_at=timezone.now() - timedelta(minutes=31))

    response = api_client.post(
        "/api/rooms/availability/",
        {"check_in": "2030-12-03", "check_out": "2030-12-05"},
        format="json",
    )

    assert [r["id"] for r in response.json()["available_rooms"]] == [room.pk]
    stale.refresh_from_db()
    assert (stale.status, stale.payment_status) == (Booking.FAILED, Booking.PAYMENT_PENDING)


@pytest.mark.django_db
def test_passive_sweep_can_be_disabled(settings, api_client, room, make_booking):
    settings.BOOKING_PASSIVE_SWEEP = False
    make_booking(hold_started_at=timezone.now() - timedelta(minutes=31))

    response = api_client.post(
        "/api/rooms/availability/",
        {"check_in": "2030-12-03", "check_out": "2030-12-05"},
        format="json",
    )

    assert response.json()["available_rooms"] == []


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2030-01-02", date(2030, 1, 2)),
        (" 2030-01-02 ", date(2030, 1, 2)),
        ("2030-01-02T10:30:00", date(2030, 1, 2)),
        ("2030-01-02T10:30:00Z", date(2030, 1, 2)),
        (datetime(2030, 1, 2, 23, 59), date(2030, 1, 2)),
    ],
)
def test_parse_stay_date_accepts_dates_and_timestamps(value, expected):
    assert parse_stay_date(value, "check_in") == expected
