import pytest
from django.contrib.auth.models import AnonymousUser
from rest_framework.test import APIRequestFactory

from core.audit import record_audit
from core.auth import AuthContext
from core.models import AuditLog


def test_actor_labels():
    assert AuthContext(user_id=4).actor_label == "user:4"
    assert AuthContext(user_id=4, is_staff=True).actor_label == "admin:4"
    assert AuthContext().actor_label == "anonymous"
    assert AuthContext.system("system:sweeper").actor_label == "system:sweeper"


def test_owns():
    assert AuthContext(user_id=4).owns(4)
    assert not AuthContext(user_id=4).owns(5)
    assert not AuthContext().owns(None)


@pytest.mark.django_db
def test_from_request_prefers_forwarded_address(staff_user):
    request = APIRequestFactory().get(
        "/", HTTP_X_FORWARDED_FOR="198.51.100.7, 10.0.0.1", HTTP_USER_AGENT="pytest-agent"
    )
    request.user = staff_user

    auth = AuthContext.from_request(request)

    assert auth.user_id == staff_user.pk
    assert auth.is_staff is True
    assert auth.ip_address == "198.51.100.7"
    assert auth.user_agent == "pytest-agent"


def test_from_request_anonymous():
    request = APIRequestFactory().get("/", REMOTE_ADDR="192.0.2.1")
    request.user = AnonymousUser()

    auth = AuthContext.from_request(request)

    assert auth.user_id is None
    assert auth.is_staff is False
    assert auth.ip_address == "192.0.2.1"


@pytest.mark.django_db
def test_record_audit_stores_actor_and_snapshots(guest):
    auth = AuthContext(user_id=guest.pk, ip_address="203.0.113.9", user_agent="ua")

    entry = record_audit(
        auth=auth,
        action=AuditLog.UPDATE,
        table_name="bookings",
        record_id=12,
        old_data={"status": "pending"},
        new_data={"status": "confirmed"},
    )

    entry.refresh_from_db()
    assert entry.actor == guest
    assert entry.actor_label == f"user:{guest.pk}"
    assert entry.record_id == "12"
    assert entry.old_data == {"status": "pending"}
    assert entry.new_data == {"status": "confirmed"}
    assert entry.ip_address == "203.0.113.9"
    assert str(entry) == f"user:{guest.pk} UPDATE bookings#12"
