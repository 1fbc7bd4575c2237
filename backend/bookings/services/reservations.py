from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from availability.models import Room
from availability.services.engine import room_is_free, validate_stay_range
from bookings.models import Booking
from core.audit import record_audit
from core.auth import AuthContext
from core.exceptions import PersistenceError, RoomUnavailableError
from core.models import AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuestInfo:
    name: str
    email: str
    phone: str = ""


def generate_booking_number() -> str:
    return f"BK{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


def create_booking(
    *,
    room_id: int,
    check_in,
    check_out,
    guest: GuestInfo,
    auth: AuthContext,
    num_guests: int = 1,
    special_requests: str = "",
) -> Booking:
    """
    Hold ``room_id`` for ``[check_in, check_out)`` as a new pending booking.

    The room row is locked for the duration of the write so concurrent writers
    for the same room serialize, and the overlap check is repeated under that
    lock. Raises ``RoomUnavailableError`` when the room is inactive or taken.
    """

    check_in, check_out = validate_stay_range(check_in, check_out)
    nights = (check_out - check_in).days

    try:
        with transaction.atomic():
            room = Room.objects.select_for_update().filter(pk=room_id).first()
            if room is None or not (room.is_active and room.is_available):
                raise RoomUnavailableError()
            if num_guests > room.max_guests:
                raise ValidationError(
                    {"num_guests": f"Room {room.room_number} sleeps at most {room.max_guests} guests."}
                )
            if not room_is_free(room.pk, check_in, check_out):
                logger.warning(
                    "Room %s already held for %s..%s; rejecting booking", room.pk, check_in, check_out
                )
                raise RoomUnavailableError()

            room_charges = room.base_price_cents * nights
            booking = Booking.objects.create(
                booking_number=generate_booking_number(),
                user_id=auth.user_id,
                room=room,
                guest_name=guest.name,
                guest_email=guest.email,
                guest_phone=guest.phone,
                num_guests=num_guests,
                special_requests=special_requests,
                check_in=check_in,
                check_out=check_out,
                total_nights=nights,
                room_charges_cents=room_charges,
                discount_cents=0,
                total_amount_cents=room_charges,
                advance_paid_cents=0,
                balance_cents=room_charges,
                status=Booking.PENDING,
                payment_status=Booking.PAYMENT_PENDING,
                hold_started_at=timezone.now(),
            )
            record_audit(
                auth=auth,
                action=AuditLog.CREATE,
                table_name="bookings",
                record_id=booking.pk,
                new_data={
                    "booking_number": booking.booking_number,
                    "room_id": room.pk,
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                    **booking.snapshot(),
                },
            )
    except DatabaseError as exc:
        logger.exception("Could not create booking for room %s", room_id)
        raise PersistenceError() from exc

    logger.info(
        "Booking %s (%s) holds room %s for %s..%s",
        booking.pk,
        booking.booking_number,
        room.pk,
        check_in,
        check_out,
    )
    return booking
