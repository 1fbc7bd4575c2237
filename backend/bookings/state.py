"""
Booking lifecycle transitions.

A booking's ``(status, payment_status)`` pair is one state; the valid pairs are
listed on ``Booking.VALID_STATES`` and enforced by a database constraint. All
changes to either field go through :func:`transition`, which saves the booking
and writes an audit row. Callers own the surrounding ``transaction.atomic``
block and the row lock.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.utils import timezone

from bookings.models import Booking
from core.audit import record_audit
from core.auth import AuthContext
from core.models import AuditLog

logger = logging.getLogger(__name__)

HELD = (Booking.PENDING, Booking.PAYMENT_PENDING)
AWAITING_VERIFICATION = (Booking.PENDING, Booking.PAYMENT_VERIFICATION_PENDING)
PAYMENT_FAILED_STATE = (Booking.PENDING, Booking.PAYMENT_FAILED)
CONFIRMED = (Booking.CONFIRMED, Booking.PAYMENT_PAID)
CHECKED_IN = (Booking.CHECKED_IN, Booking.PAYMENT_PAID)
EXPIRED = (Booking.FAILED, Booking.PAYMENT_PENDING)
FAILED = (Booking.FAILED, Booking.PAYMENT_FAILED)

SUBMIT_PROOF = "SUBMIT_PROOF"
PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
PAYMENT_FAILED = "PAYMENT_FAILED"
PAYMENT_RETRY = "PAYMENT_RETRY"
MANUAL_APPROVED = "MANUAL_APPROVED"
MANUAL_REJECTED = "MANUAL_REJECTED"
EXPIRE = "EXPIRE"
CANCEL = "CANCEL"
CHECK_IN = "CHECK_IN"

TRANSITIONS: dict[tuple[str, tuple[str, str]], tuple[str, str]] = {
    (SUBMIT_PROOF, HELD): AWAITING_VERIFICATION,
    (SUBMIT_PROOF, PAYMENT_FAILED_STATE): AWAITING_VERIFICATION,
    (PAYMENT_SUCCEEDED, HELD): CONFIRMED,
    (PAYMENT_SUCCEEDED, AWAITING_VERIFICATION): CONFIRMED,
    (PAYMENT_SUCCEEDED, PAYMENT_FAILED_STATE): CONFIRMED,
    (PAYMENT_SUCCEEDED, EXPIRED): CONFIRMED,
    (PAYMENT_SUCCEEDED, FAILED): CONFIRMED,
    (PAYMENT_FAILED, HELD): PAYMENT_FAILED_STATE,
    (PAYMENT_RETRY, PAYMENT_FAILED_STATE): HELD,
    (MANUAL_APPROVED, AWAITING_VERIFICATION): CONFIRMED,
    (MANUAL_REJECTED, AWAITING_VERIFICATION): PAYMENT_FAILED_STATE,
    (EXPIRE, HELD): EXPIRED,
    (EXPIRE, PAYMENT_FAILED_STATE): FAILED,
    (CHECK_IN, CONFIRMED): CHECKED_IN,
}

# states a late successful payment can only leave if the room is still free
REVIVABLE = (EXPIRED, FAILED)


class InvalidTransition(Exception):
    def __init__(self, event: str, state: tuple[str, str]):
        self.event = event
        self.state = state
        super().__init__(f"{event} is not allowed from {state[0]}/{state[1]}")


def next_state(state: tuple[str, str], event: str) -> Optional[tuple[str, str]]:
    """Return the state ``event`` leads to from ``state``, or None if it does not apply."""

    if event == CANCEL:
        status, payment_status = state
        if status == Booking.CANCELLED:
            return None
        return (Booking.CANCELLED, payment_status)
    return TRANSITIONS.get((event, tuple(state)))


def can_apply(booking: Booking, event: str) -> bool:
    return next_state(booking.state, event) is not None


def transition(
    booking: Booking,
    event: str,
    *,
    auth: AuthContext,
    changes: dict | None = None,
    strict: bool = True,
) -> bool:
    """
    Move ``booking`` along ``event`` and persist it with an audit row.

    ``changes`` carries extra field updates that belong to the same step
    (amounts, proof of payment). Returns False, or raises ``InvalidTransition``
    when ``strict``, if the event does not apply to the current state.
    """

    current = booking.state
    target = next_state(current, event)
    if target is None:
        if strict:
            raise InvalidTransition(event, current)
        logger.info(
            "Booking %s ignored %s in state %s/%s", booking.pk, event, current[0], current[1]
        )
        return False

    old_data = booking.snapshot()
    booking.status, booking.payment_status = target
    update_fields = ["status", "payment_status", "updated_at"]

    if event == PAYMENT_RETRY:
        booking.hold_started_at = timezone.now()
        update_fields.append("hold_started_at")

    for field_name, value in (changes or {}).items():
        setattr(booking, field_name, value)
        if field_name not in update_fields:
            update_fields.append(field_name)

    booking.save(update_fields=update_fields)
    record_audit(
        auth=auth,
        action=AuditLog.EXPIRE if event == EXPIRE else AuditLog.UPDATE,
        table_name="bookings",
        record_id=booking.pk,
        old_data=old_data,
        new_data={**booking.snapshot(), "event": event},
    )
    logger.info(
        "Booking %s %s: %s/%s -> %s/%s by %s",
        booking.pk,
        event,
        current[0],
        current[1],
        target[0],
        target[1],
        auth.actor_label,
    )
    return True
