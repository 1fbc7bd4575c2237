from datetime import timedelta

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from bookings import state
from bookings.models import Booking
from core.auth import AuthContext
from core.models import AuditLog


@pytest.fixture
def desk(staff_user):
    return AuthContext(user_id=staff_user.pk, is_staff=True)


@pytest.mark.parametrize(
    "event,start,end",
    [
        (state.SUBMIT_PROOF, state.HELD, state.AWAITING_VERIFICATION),
        (state.SUBMIT_PROOF, state.PAYMENT_FAILED_STATE, state.AWAITING_VERIFICATION),
        (state.PAYMENT_SUCCEEDED, state.HELD, state.CONFIRMED),
        (state.PAYMENT_SUCCEEDED, state.EXPIRED, state.CONFIRMED),
        (state.PAYMENT_FAILED, state.HELD, state.PAYMENT_FAILED_STATE),
        (state.PAYMENT_RETRY, state.PAYMENT_FAILED_STATE, state.HELD),
        (state.MANUAL_APPROVED, state.AWAITING_VERIFICATION, state.CONFIRMED),
        (state.MANUAL_REJECTED, state.AWAITING_VERIFICATION, state.PAYMENT_FAILED_STATE),
        (state.EXPIRE, state.HELD, state.EXPIRED),
        (state.EXPIRE, state.PAYMENT_FAILED_STATE, state.FAILED),
        (state.CHECK_IN, state.CONFIRMED, state.CHECKED_IN),
        (state.CANCEL, state.CONFIRMED, (Booking.CANCELLED, Booking.PAYMENT_PAID)),
        (state.CANCEL, state.AWAITING_VERIFICATION, (Booking.CANCELLED, Booking.PAYMENT_VERIFICATION_PENDING)),
    ],
)
def test_next_state_table(event, start, end):
    assert state.next_state(start, event) == end


@pytest.mark.parametrize(
    "event,start",
    [
        (state.PAYMENT_FAILED, state.AWAITING_VERIFICATION),
        (state.PAYMENT_SUCCEEDED, state.CONFIRMED),
        (state.MANUAL_APPROVED, state.HELD),
        (state.EXPIRE, state.AWAITING_VERIFICATION),
        (state.EXPIRE, state.CONFIRMED),
        (state.CHECK_IN, state.HELD),
        (state.CANCEL, (Booking.CANCELLED, Booking.PAYMENT_PAID)),
        (state.SUBMIT_PROOF, state.CONFIRMED),
    ],
)
def test_events_that_do_not_apply(event, start):
    assert state.next_state(start, event) is None


def test_every_target_state_is_a_valid_pair():
    for target in state.TRANSITIONS.values():
        assert target in Booking.VALID_STATES


@pytest.mark.django_db
def test_transition_saves_and_audits(make_booking, desk, staff_user):
    booking = make_booking(status=Booking.CONFIRMED, payment_status=Booking.PAYMENT_PAID)

    assert state.transition(booking, state.CHECK_IN, auth=desk) is True

    booking.refresh_from_db()
    assert booking.state == state.CHECKED_IN
    entry = AuditLog.objects.get(table_name="bookings", record_id=str(booking.pk))
    assert entry.action == AuditLog.UPDATE
    assert entry.actor == staff_user
    assert entry.actor_label == f"admin:{staff_user.pk}"
    assert entry.old_data["status"] == Booking.CONFIRMED
    assert entry.new_data["status"] == Booking.CHECKED_IN
    assert entry.new_data["event"] == state.CHECK_IN


@pytest.mark.django_db
def test_invalid_transition_raises_and_leaves_booking(make_booking, desk):
    booking = make_booking()

    with pytest.raises(state.InvalidTransition):
        state.transition(booking, state.CHECK_IN, auth=desk)

    booking.refresh_from_db()
    assert booking.state == state.HELD
    assert not AuditLog.objects.exists()


@pytest.mark.django_db
def test_non_strict_transition_returns_false(make_booking, desk):
    booking = make_booking(payment_status=Booking.PAYMENT_VERIFICATION_PENDING)

    assert state.transition(booking, state.PAYMENT_FAILED, auth=desk, strict=False) is False
    booking.refresh_from_db()
    assert booking.state == state.AWAITING_VERIFICATION


@pytest.mark.django_db
def test_expire_is_audited_as_expire(make_booking):
    booking = make_booking()

    state.transition(booking, state.EXPIRE, auth=AuthContext.system("system:sweeper"))

    entry = AuditLog.objects.get(record_id=str(booking.pk))
    assert entry.action == AuditLog.EXPIRE
    assert entry.actor is None
    assert entry.actor_label == "system:sweeper"


@pytest.mark.django_db
def test_retry_restarts_the_hold(make_booking, guest):
    old_hold = timezone.now() - timedelta(hours=2)
    booking = make_booking(payment_status=Booking.PAYMENT_FAILED, hold_started_at=old_hold)

    state.transition(booking, state.PAYMENT_RETRY, auth=AuthContext(user_id=guest.pk))

    booking.refresh_from_db()
    assert booking.state == state.HELD
    assert booking.hold_started_at > old_hold


@pytest.mark.django_db
def test_changes_are_saved_with_the_transition(make_booking, desk):
    booking = make_booking(payment_status=Booking.PAYMENT_VERIFICATION_PENDING)

    state.transition(
        booking,
        state.MANUAL_APPROVED,
        auth=desk,
        changes={"advance_paid_cents": booking.total_amount_cents, "balance_cents": 0},
    )

    booking.refresh_from_db()
    assert booking.advance_paid_cents == booking.total_amount_cents
    assert booking.balance_cents == 0


@pytest.mark.django_db
def test_database_rejects_impossible_state_pairs(make_booking):
    with pytest.raises(IntegrityError), transaction.atomic():
        make_booking(status=Booking.CONFIRMED, payment_status=Booking.PAYMENT_PENDING)


@pytest.mark.django_db
def test_database_rejects_empty_stay(make_booking):
    booking_day = timezone.localdate()
    with pytest.raises(IntegrityError), transaction.atomic():
        make_booking(check_in=booking_day, check_out=booking_day, total_nights=1)
