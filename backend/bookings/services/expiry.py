from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings import state
from bookings.models import Booking
from core.auth import AuthContext

logger = logging.getLogger(__name__)

SWEEPER = AuthContext.system("system:sweeper")


def default_hold_window() -> timedelta:
    return timedelta(minutes=settings.BOOKING_HOLD_MINUTES)


def release_expired(hold_window: Optional[timedelta] = None, *, now: Optional[datetime] = None) -> list[int]:
    """
    Expire held bookings whose hold started before ``now - hold_window``.

    Held bookings whose payment is pending or failed are released (to
    failed/pending and failed/failed). Bookings awaiting manual verification
    or already paid keep their room. Returns the ids released.
    """

    window = hold_window if hold_window is not None else default_hold_window()
    cutoff = (now or timezone.now()) - window
    candidate_ids = list(
        Booking.objects.filter(
            status=Booking.PENDING,
            payment_status__in=[Booking.PAYMENT_PENDING, Booking.PAYMENT_FAILED],
            hold_started_at__lt=cutoff,
        ).values_list("pk", flat=True)
    )

    released: list[int] = []
    for booking_id in candidate_ids:
        with transaction.atomic():
            booking = Booking.objects.select_for_update().get(pk=booking_id)
            # a retry may have restarted the hold since the scan
            if booking.hold_started_at >= cutoff:
                continue
            if state.transition(booking, state.EXPIRE, auth=SWEEPER, strict=False):
                released.append(booking.pk)

    if released:
        logger.info("Released %d expired booking hold(s): %s", len(released), released)
    return released
