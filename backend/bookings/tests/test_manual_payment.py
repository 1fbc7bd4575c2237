import pytest

from availability.services.engine import find_available_rooms
from bookings.models import Booking
from core.models import AuditLog


def _validate(client, booking, action):
    return client.post(
        f"/api/admin/bookings/{booking.pk}/validate/",
        {"action": action},
        format="json",
    )


@pytest.mark.django_db
def test_mark_paid_waits_for_verification(api_client, guest, room, make_booking):
    booking = make_booking()
    api_client.force_authenticate(user=guest)

    response = api_client.post(
        f"/api/bookings/{booking.pk}/payment/",
        {
            "action": "mark_paid",
            "transaction_id": "UTR123456789",
            "payment_screenshot_url": "https://files.stay.test/proof/123.png",
        },
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    booking.refresh_from_db()
    assert booking.status == Booking.PENDING
    assert booking.payment_status == Booking.PAYMENT_VERIFICATION_PENDING
    assert booking.payment_reference == "UTR123456789"
    assert booking.payment_screenshot_url == "https://files.stay.test/proof/123.png"
    assert room not in find_available_rooms(booking.check_in, booking.check_out).rooms
    assert AuditLog.objects.filter(record_id=str(booking.pk), actor=guest).exists()


@pytest.mark.django_db
def test_mark_paid_after_failed_gateway_payment(api_client, guest, make_booking):
    booking = make_booking(payment_status=Booking.PAYMENT_FAILED)
    api_client.force_authenticate(user=guest)

    response = api_client.post(f"/api/bookings/{booking.pk}/payment/", {"action": "mark_paid"}, format="json")

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_VERIFICATION_PENDING


@pytest.mark.django_db
def test_mark_paid_hides_other_guests_bookings(api_client, other_guest, make_booking):
    booking = make_booking()
    api_client.force_authenticate(user=other_guest)

    response = api_client.post(f"/api/bookings/{booking.pk}/payment/", {"action": "mark_paid"}, format="json")
    missing = api_client.post(f"/api/bookings/{booking.pk + 1000}/payment/", {"action": "mark_paid"}, format="json")

    assert response.status_code == 404
    assert missing.status_code == 404
    assert response.json() == missing.json()
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_PENDING


@pytest.mark.django_db
def test_mark_paid_on_confirmed_booking_fails(api_client, guest, make_booking):
    booking = make_booking(status=Booking.CONFIRMED, payment_status=Booking.PAYMENT_PAID)
    api_client.force_authenticate(user=guest)

    response = api_client.post(f"/api/bookings/{booking.pk}/payment/", {"action": "mark_paid"}, format="json")

    assert response.status_code == 400
    assert response.json()["success"] is False
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_PAID


@pytest.mark.django_db
def test_mark_paid_requires_known_action(api_client, guest, make_booking):
    booking = make_booking()
    api_client.force_authenticate(user=guest)

    response = api_client.post(f"/api/bookings/{booking.pk}/payment/", {"action": "confirm"}, format="json")

    assert response.status_code == 400


@pytest.mark.django_db
def test_staff_approval_confirms_and_emails(
    api_client, staff_user, make_booking, mailoutbox, django_capture_on_commit_callbacks
):
    booking = make_booking(payment_status=Booking.PAYMENT_VERIFICATION_PENDING)
    api_client.force_authenticate(user=staff_user)

    with django_capture_on_commit_callbacks(execute=True):
        response = _validate(api_client, booking, "approve")

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.state == (Booking.CONFIRMED, Booking.PAYMENT_PAID)
    assert booking.advance_paid_cents == booking.total_amount_cents
    assert booking.balance_cents == 0
    assert sorted(m.to[0] for m in mailoutbox) == ["desk@stay.test", "guest@example.com"]
    entry = AuditLog.objects.filter(record_id=str(booking.pk)).latest("id")
    assert entry.actor_label == f"admin:{staff_user.pk}"


@pytest.mark.django_db
def test_staff_rejection_marks_payment_failed(
    api_client, staff_user, make_booking, mailoutbox, django_capture_on_commit_callbacks
):
    booking = make_booking(payment_status=Booking.PAYMENT_VERIFICATION_PENDING)
    api_client.force_authenticate(user=staff_user)

    with django_capture_on_commit_callbacks(execute=True):
        response = _validate(api_client, booking, "reject")

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.state == (Booking.PENDING, Booking.PAYMENT_FAILED)
    assert len(mailoutbox) == 1
    assert "did not go through" in mailoutbox[0].subject


@pytest.mark.django_db
def test_approve_requires_submitted_proof(api_client, staff_user, make_booking):
    booking = make_booking()
    api_client.force_authenticate(user=staff_user)

    response = _validate(api_client, booking, "approve")

    assert response.status_code == 409
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_PENDING


@pytest.mark.django_db
def test_cancel_keeps_payment_status_and_frees_room(api_client, staff_user, room, make_booking):
    booking = make_booking(status=Booking.CONFIRMED, payment_status=Booking.PAYMENT_PAID)
    api_client.force_authenticate(user=staff_user)

    response = _validate(api_client, booking, "cancel")

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.state == (Booking.CANCELLED, Booking.PAYMENT_PAID)
    assert room in find_available_rooms(booking.check_in, booking.check_out).rooms
    assert _validate(api_client, booking, "cancel").status_code == 409


@pytest.mark.django_db
def test_check_in_only_after_payment(api_client, staff_user, make_booking):
    held = make_booking()
    api_client.force_authenticate(user=staff_user)

    assert _validate(api_client, held, "check_in").status_code == 409

    held.status, held.payment_status = Booking.CONFIRMED, Booking.PAYMENT_PAID
    held.save()
    response = _validate(api_client, held, "check_in")

    assert response.status_code == 200
    assert response.json()["booking"]["status"] == Booking.CHECKED_IN


@pytest.mark.django_db
def test_validate_is_staff_only(api_client, guest, make_booking):
    booking = make_booking(payment_status=Booking.PAYMENT_VERIFICATION_PENDING)
    api_client.force_authenticate(user=guest)

    response = _validate(api_client, booking, "approve")

    assert response.status_code == 403
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAYMENT_VERIFICATION_PENDING
