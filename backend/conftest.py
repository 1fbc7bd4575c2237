import itertools
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from availability.models import Room
from bookings.models import Booking
from payments.models import Payment

User = get_user_model()

_booking_numbers = itertools.count(1000)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def guest(db):
    return User.objects.create_user(
        username="guest@example.com",
        email="guest@example.com",
        password="examplepass",
        first_name="Gia",
        last_name="Guest",
        phone="9800000001",
    )


@pytest.fixture
def other_guest(db):
    return User.objects.create_user(
        username="other@example.com",
        email="other@example.com",
        password="examplepass",
        first_name="Oscar",
        last_name="Other",
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username="desk@example.com",
        email="desk@example.com",
        password="examplepass",
        first_name="Front",
        last_name="Desk",
        is_staff=True,
    )


@pytest.fixture
def room(db):
    return Room.objects.create(
        room_number="101",
        name="Garden Standard",
        room_type="standard",
        base_price_cents=250000,
        max_guests=2,
    )


@pytest.fixture
def make_booking(db, room, guest):
    """Insert a booking row directly, bypassing the reservation writer."""

    def factory(**overrides):
        booking_room = overrides.pop("room", room)
        check_in = overrides.pop("check_in", date(2030, 12, 2))
        check_out = overrides.pop("check_out", date(2030, 12, 6))
        nights = (check_out - check_in).days
        total = booking_room.base_price_cents * nights
        fields = {
            "booking_number": f"BK{next(_booking_numbers)}",
            "user": guest,
            "room": booking_room,
            "guest_name": "Gia Guest",
            "guest_email": "guest@example.com",
            "guest_phone": "9800000001",
            "check_in": check_in,
            "check_out": check_out,
            "total_nights": nights,
            "room_charges_cents": total,
            "total_amount_cents": total,
            "balance_cents": total,
            "status": Booking.PENDING,
            "payment_status": Booking.PAYMENT_PENDING,
        }
        fields.update(overrides)
        return Booking.objects.create(**fields)

    return factory


@pytest.fixture
def make_payment(db):
    def factory(booking, **overrides):
        fields = {
            "booking": booking,
            "user": booking.user,
            "amount_cents": booking.total_amount_cents,
            "transaction_id": f"TXN{next(_booking_numbers)}",
            "status": Payment.PROCESSING,
        }
        fields.update(overrides)
        return Payment.objects.create(**fields)

    return factory
