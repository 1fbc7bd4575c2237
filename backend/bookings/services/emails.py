from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking

logger = logging.getLogger(__name__)

PROPERTY_NAME = "Harbourview Stays"


def _format_from_email() -> str:
    default_from = settings.DEFAULT_FROM_EMAIL
    email_addr = default_from
    if "<" in default_from and default_from.endswith(">"):
        email_addr = default_from.split("<", 1)[1].rstrip(">")
    return f"{PROPERTY_NAME} <{email_addr}>"


def _money(cents: int) -> str:
    return f"₹{cents / 100:.2f}"


def _stay_lines(booking: Booking) -> list[str]:
    return [
        f"Booking number: {booking.booking_number}",
        f"Room: {booking.room.name or booking.room.room_number} ({booking.room.room_type})",
        f"Check-in: {booking.check_in:%B %d, %Y}",
        f"Check-out: {booking.check_out:%B %d, %Y}",
        f"Nights: {booking.total_nights}",
        f"Guests: {booking.num_guests}",
    ]


def send_payment_confirmed_email(booking: Booking):
    subject = f"Booking {booking.booking_number} confirmed"
    body_lines = [
        f"Hi {booking.guest_name},",
        "",
        f"Your payment was received and your stay at {PROPERTY_NAME} is confirmed.",
        "",
        *_stay_lines(booking),
        f"Amount paid: {_money(booking.advance_paid_cents)}",
        f"Balance due: {_money(booking.balance_cents)}",
        "",
        f"View your booking: {settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.pk}",
        "",
        f"— The {PROPERTY_NAME} Team",
    ]
    send_mail(
        subject,
        "\n".join(body_lines),
        _format_from_email(),
        [booking.guest_email],
        fail_silently=False,
    )


def send_admin_new_booking_notification(booking: Booking):
    recipient = getattr(settings, "ADMIN_NOTIFICATION_EMAIL", "")
    if not recipient:
        logger.info("ADMIN_NOTIFICATION_EMAIL not set; skipping notice for booking %s", booking.pk)
        return
    subject = f"New paid booking {booking.booking_number}"
    body_lines = [
        f"{booking.guest_name} <{booking.guest_email}> {booking.guest_phone}".rstrip(),
        "",
        *_stay_lines(booking),
        f"Total: {_money(booking.total_amount_cents)}",
        f"Paid: {_money(booking.advance_paid_cents)}",
    ]
    if booking.special_requests:
        body_lines += ["", f"Special requests: {booking.special_requests}"]
    send_mail(
        subject,
        "\n".join(body_lines),
        _format_from_email(),
        [recipient],
        fail_silently=False,
    )


def send_payment_failed_email(booking: Booking):
    subject = f"Payment for booking {booking.booking_number} did not go through"
    body_lines = [
        f"Hi {booking.guest_name},",
        "",
        "We could not confirm your payment for the booking below.",
        "",
        *_stay_lines(booking),
        "",
        f"You can retry payment here: {settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.pk}",
        "",
        f"— The {PROPERTY_NAME} Team",
    ]
    send_mail(
        subject,
        "\n".join(body_lines),
        _format_from_email(),
        [booking.guest_email],
        fail_silently=False,
    )
