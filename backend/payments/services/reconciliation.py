"""
Payment reconciliation.

Gateway callbacks, status polls, guest proof-of-payment submissions and staff
reviews all end up here. Every payment status change goes through
:func:`apply_payment_outcome`, which locks the payment and booking rows and
only ever moves a payment forward::

    pending < processing < failed < completed        (completed, refunded terminal)

Late events that would not move a payment forward are discarded and repeating
the current status is a no-op, so duplicate or reordered gateway traffic cannot
confirm a booking twice or undo a confirmation. Emails go out after the
transaction commits and only when a booking actually changed state.
"""
from __future__ import annotations

import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied

from availability.models import Room
from availability.services.engine import room_is_free
from bookings import state
from bookings.models import Booking
from bookings.services import emails
from core.audit import record_audit
from core.auth import AuthContext
from core.exceptions import (
    GatewaySignatureError,
    GatewayUnreachableError,
    PaymentGatewayUnavailable,
    PersistenceError,
)
from core.models import AuditLog
from payments.models import Payment, PaymentLog
from payments.services.gateway import PaymentRequest, format_amount, get_gateway, new_transaction_id

logger = logging.getLogger(__name__)

WEBHOOK_ACTOR = AuthContext.system("gateway:webhook")
STATUS_LABEL = "gateway:status"
UNKNOWN = "unknown"
PRODUCT_INFO = "Room Booking"


@dataclass
class ApplyResult:
    applied: bool
    status: str
    booking_event: Optional[str] = None
    reason: str = ""


@dataclass
class WebhookOutcome:
    success: bool
    booking_id: Optional[int] = None
    reference: str = ""

    def redirect_url(self, frontend_url: str) -> str:
        base = frontend_url.rstrip("/")
        path = "/booking/success" if self.success else "/booking/failure"
        if self.booking_id is None:
            return f"{base}{path}"
        return f"{base}{path}?{urlencode({'bookingId': self.booking_id, 'ref': self.reference})}"


@dataclass
class StatusResult:
    status: str
    raw: Any = None
    transaction_id: str = ""


@dataclass
class InitiateResult:
    txnid: str
    payment_url: str
    status: str


def map_gateway_status(raw: Any) -> str:
    value = str(raw or "").strip().lower()
    if value == "success":
        return Payment.COMPLETED
    if value in ("pending", "initiated"):
        return Payment.PROCESSING
    return Payment.FAILED


@contextmanager
def _atomic_write(stage: str):
    try:
        with transaction.atomic():
            yield
    except DatabaseError as exc:
        logger.exception("Database write failed during %s", stage)
        raise PersistenceError() from exc


def _lock_booking(booking_id: int) -> Booking:
    return Booking.objects.select_for_update().get(pk=booking_id)


def _notify_after_commit(booking_id: int, *senders):
    def send():
        booking = Booking.objects.select_related("room").get(pk=booking_id)
        for sender in senders:
            try:
                sender(booking)
            except OSError:
                logger.exception("Could not send %s for booking %s", sender.__name__, booking_id)

    transaction.on_commit(send)


def _payment_snapshot(payment: Payment) -> dict:
    return {
        "status": payment.status,
        "transaction_id": payment.transaction_id,
        "gateway_transaction_id": payment.gateway_transaction_id,
        "amount_cents": payment.amount_cents,
        "remarks": payment.remarks,
    }


def _confirm_booking(booking: Booking, payment: Payment, source: AuthContext) -> Optional[str]:
    if not state.can_apply(booking, state.PAYMENT_SUCCEEDED):
        logger.warning(
            "Payment %s completed but booking %s is %s/%s; refund required",
            payment.transaction_id,
            booking.pk,
            booking.status,
            booking.payment_status,
        )
        return None

    if booking.state in state.REVIVABLE:
        # serialize with reservation writers for this room
        Room.objects.select_for_update().filter(pk=booking.room_id).first()
        if not room_is_free(booking.room_id, booking.check_in, booking.check_out, exclude_booking_id=booking.pk):
            logger.error(
                "Payment %s completed for released booking %s but room %s was re-booked; refund required",
                payment.transaction_id,
                booking.pk,
                booking.room_id,
            )
            payment.remarks = "Room re-booked after hold expired; refund required."
            payment.save(update_fields=["remarks", "updated_at"])
            return None

    state.transition(
        booking,
        state.PAYMENT_SUCCEEDED,
        auth=source,
        changes={"advance_paid_cents": payment.amount_cents, "balance_cents": 0},
    )
    return state.PAYMENT_SUCCEEDED


def apply_payment_outcome(
    payment: Payment,
    target: str,
    *,
    event_at: datetime,
    source: AuthContext,
    raw: Any = None,
    gateway_transaction_id: str = "",
    remarks: str = "",
    notify: bool = True,
) -> ApplyResult:
    """
    Move ``payment`` to ``target`` and carry the booking along with it.

    Stale events (``event_at`` before the last applied event) that would not
    move the payment forward, repeats of the current status, and moves
    backwards are logged and left alone. A late but forward event still
    applies; ``last_event_at`` never moves back.
    """

    with _atomic_write(f"payment outcome {payment.transaction_id} -> {target}"):
        payment = Payment.objects.select_for_update().get(pk=payment.pk)
        booking = _lock_booking(payment.booking_id)
        current = payment.status

        forward = current in Payment.RANK and Payment.RANK.get(target, -1) > Payment.RANK[current]
        if payment.last_event_at and event_at < payment.last_event_at and not forward:
            logger.warning(
                "Stale %s event for %s from %s ignored (event %s, last applied %s)",
                target,
                payment.transaction_id,
                source.actor_label,
                event_at.isoformat(),
                payment.last_event_at.isoformat(),
            )
            return ApplyResult(False, current, reason="stale")
        if current == target:
            logger.info("Payment %s already %s; %s event is a no-op", payment.transaction_id, target, source.actor_label)
            return ApplyResult(False, current, reason="duplicate")
        if payment.is_terminal or Payment.RANK[target] < Payment.RANK[current]:
            logger.warning(
                "Refusing to move payment %s from %s to %s (%s)",
                payment.transaction_id,
                current,
                target,
                source.actor_label,
            )
            return ApplyResult(False, current, reason="backwards")
        if target == Payment.COMPLETED and (
            Payment.objects.filter(booking_id=booking.pk, status=Payment.COMPLETED).exclude(pk=payment.pk).exists()
        ):
            logger.error(
                "Booking %s already has a completed payment; %s needs a refund",
                booking.pk,
                payment.transaction_id,
            )
            payment.remarks = "Duplicate payment for an already paid booking; refund required."
            payment.save(update_fields=["remarks", "updated_at"])
            return ApplyResult(False, current, reason="duplicate_capture")

        old_data = _payment_snapshot(payment)
        payment.status = target
        payment.last_event_at = max(event_at, payment.last_event_at or event_at)
        if raw is not None:
            payment.gateway_response = raw
        if gateway_transaction_id:
            payment.gateway_transaction_id = gateway_transaction_id
        if remarks:
            payment.remarks = remarks
        if target in (Payment.COMPLETED, Payment.FAILED):
            payment.processed_at = timezone.now()
        payment.save()
        record_audit(
            auth=source,
            action=AuditLog.UPDATE,
            table_name="payments",
            record_id=payment.pk,
            old_data=old_data,
            new_data=_payment_snapshot(payment),
        )
        logger.info("Payment %s %s -> %s by %s", payment.transaction_id, current, target, source.actor_label)

        booking_event = None
        if target == Payment.COMPLETED:
            booking_event = _confirm_booking(booking, payment, source)
        elif target == Payment.FAILED:
            if state.transition(booking, state.PAYMENT_FAILED, auth=source, strict=False):
                booking_event = state.PAYMENT_FAILED

        if notify and booking_event == state.PAYMENT_SUCCEEDED:
            _notify_after_commit(
                booking.pk,
                emails.send_payment_confirmed_email,
                emails.send_admin_new_booking_notification,
            )
        elif notify and booking_event == state.PAYMENT_FAILED:
            _notify_after_commit(booking.pk, emails.send_payment_failed_email)

    return ApplyResult(True, target, booking_event=booking_event)


def _reject_forged(payment: Payment):
    with _atomic_write(f"forged callback {payment.transaction_id}"):
        payment = Payment.objects.select_for_update().get(pk=payment.pk)
        if payment.is_terminal or payment.status == Payment.FAILED:
            return
        old_data = _payment_snapshot(payment)
        payment.status = Payment.FAILED
        payment.remarks = "Security: callback hash mismatch."
        payment.processed_at = timezone.now()
        payment.save(update_fields=["status", "remarks", "processed_at", "updated_at"])
        record_audit(
            auth=WEBHOOK_ACTOR,
            action=AuditLog.UPDATE,
            table_name="payments",
            record_id=payment.pk,
            old_data=old_data,
            new_data=_payment_snapshot(payment),
        )


def handle_webhook(payload: Mapping[str, Any]) -> WebhookOutcome:
    """
    Apply one gateway callback.

    The raw payload is logged before anything else. Raises ``PersistenceError``
    only when that log row cannot be written; every later failure is turned
    into a failure outcome so the gateway always gets a redirect.
    """

    received_at = timezone.now()
    payload = {key: "" if value is None else str(value) for key, value in payload.items()}
    txnid = payload.get("txnid", "").strip()

    try:
        log = PaymentLog.objects.create(
            transaction_id=txnid[:100],
            event_type=PaymentLog.WEBHOOK_RECEIVED,
            status=payload.get("status", "")[:40],
            request_payload=payload,
        )
    except DatabaseError as exc:
        logger.exception("Could not record webhook for %s", txnid or "<no txnid>")
        raise PersistenceError() from exc

    payment = (
        Payment.objects.select_related("booking").filter(transaction_id=txnid).first() if txnid else None
    )
    if payment is None:
        logger.warning("Webhook for unknown transaction %r ignored", txnid)
        return WebhookOutcome(success=False)

    try:
        log.link(payment=payment, booking=payment.booking)
    except DatabaseError:
        logger.exception("Could not link webhook log %s to payment %s", log.pk, payment.pk)

    try:
        get_gateway().ensure_callback(payload)
    except GatewaySignatureError:
        logger.warning("Webhook hash mismatch for %s; payload rejected", txnid)
        try:
            _reject_forged(payment)
        except PersistenceError:
            logger.error("Could not flag payment %s after hash mismatch", payment.pk)
        return WebhookOutcome(success=False)

    target = map_gateway_status(payload.get("status"))
    try:
        result = apply_payment_outcome(
            payment,
            target,
            event_at=received_at,
            source=WEBHOOK_ACTOR,
            raw=payload,
            gateway_transaction_id=payload.get("easepayid", ""),
        )
    except PersistenceError:
        return WebhookOutcome(success=False, booking_id=payment.booking_id, reference=txnid)

    # a capture that could not confirm the booking (room re-booked) is not a success for the guest
    try:
        paid = Booking.objects.filter(pk=payment.booking_id, payment_status=Booking.PAYMENT_PAID).exists()
    except DatabaseError:
        logger.exception("Could not read booking %s after webhook %s", payment.booking_id, txnid)
        return WebhookOutcome(success=False, booking_id=payment.booking_id, reference=txnid)
    return WebhookOutcome(
        success=result.status == Payment.COMPLETED and paid,
        booking_id=payment.booking_id,
        reference=txnid,
    )


def _log_poll(payment: Payment, event_type: str, status: str, response: Any):
    with _atomic_write(f"{event_type} log for {payment.transaction_id}"):
        PaymentLog.objects.create(
            payment=payment,
            booking_id=payment.booking_id,
            transaction_id=payment.transaction_id,
            event_type=event_type,
            status=status,
            response_payload=response,
        )


def _poll_gateway(payment: Payment, auth: AuthContext, event_type: str) -> StatusResult:
    gateway = get_gateway()
    try:
        result = gateway.check_status(payment.transaction_id)
    except GatewayUnreachableError as exc:
        _log_poll(payment, event_type, UNKNOWN, {"error": str(exc)})
        return StatusResult(status=UNKNOWN, raw=None, transaction_id=payment.transaction_id)
    received_at = timezone.now()

    _log_poll(payment, event_type, (result.status if result.found else "not_found")[:40], result.raw)

    if not result.found:
        payment.refresh_from_db(fields=["status"])
        return StatusResult(status=payment.status, raw=result.raw, transaction_id=payment.transaction_id)

    applied = apply_payment_outcome(
        payment,
        map_gateway_status(result.status),
        event_at=received_at,
        source=dataclasses.replace(auth, label=STATUS_LABEL),
        raw=result.raw,
        gateway_transaction_id=result.gateway_transaction_id,
    )
    return StatusResult(status=applied.status, raw=result.raw, transaction_id=payment.transaction_id)


def refresh_payment_status(booking: Booking, auth: AuthContext) -> StatusResult:
    """Poll the gateway for the booking's latest payment; owner only."""

    if not auth.owns(booking.user_id):
        raise NotFound("Booking not found.")
    payment = booking.payments.order_by("-created_at", "-id").first()
    if payment is None:
        raise NotFound("No payment found for this booking.")
    return _poll_gateway(payment, auth, PaymentLog.STATUS_CHECK)


def admin_check_transaction(transaction_id: str, auth: AuthContext) -> StatusResult:
    if not auth.is_staff:
        raise PermissionDenied()
    payment = Payment.objects.filter(transaction_id=transaction_id).first()
    if payment is None:
        raise NotFound("Payment not found.")
    return _poll_gateway(payment, auth, PaymentLog.STATUS_CHECK_MANUAL)


def initiate_payment(booking: Booking, auth: AuthContext) -> InitiateResult:
    """
    Start a gateway checkout for a held booking.

    A booking whose last payment failed goes back to held (its hold restarts).
    If the gateway cannot be reached the new payment stays pending so a later
    status check can settle it.
    """

    if not (auth.owns(booking.user_id) or auth.is_staff):
        raise NotFound("Booking not found.")

    with _atomic_write(f"initiate payment for booking {booking.pk}"):
        booking = _lock_booking(booking.pk)
        if booking.state == state.PAYMENT_FAILED_STATE:
            state.transition(booking, state.PAYMENT_RETRY, auth=auth)
        elif booking.state != state.HELD:
            raise state.InvalidTransition("INITIATE", booking.state)
        payment = Payment.objects.create(
            booking=booking,
            user_id=booking.user_id,
            amount_cents=booking.total_amount_cents,
            transaction_id=new_transaction_id(),
            status=Payment.PENDING,
        )
        record_audit(
            auth=auth,
            action=AuditLog.CREATE,
            table_name="payments",
            record_id=payment.pk,
            new_data=_payment_snapshot(payment),
        )

    callback_url = f"{settings.BACKEND_URL.rstrip('/')}/api/payments/callback/"
    req = PaymentRequest(
        txnid=payment.transaction_id,
        amount=format_amount(payment.amount_cents),
        productinfo=PRODUCT_INFO,
        firstname=booking.guest_name,
        email=booking.guest_email,
        phone=booking.guest_phone,
        surl=callback_url,
        furl=callback_url,
        udf=[str(booking.pk), booking.booking_number],
    )
    request_payload = dataclasses.asdict(req)

    try:
        result = get_gateway().initiate(req)
    except GatewayUnreachableError as exc:
        PaymentLog.objects.create(
            payment=payment,
            booking=booking,
            transaction_id=payment.transaction_id,
            event_type=PaymentLog.INITIATE,
            status=UNKNOWN,
            request_payload=request_payload,
            response_payload={"error": str(exc)},
        )
        logger.error("Gateway unreachable initiating %s for booking %s", payment.transaction_id, booking.pk)
        raise PaymentGatewayUnavailable() from exc

    PaymentLog.objects.create(
        payment=payment,
        booking=booking,
        transaction_id=payment.transaction_id,
        event_type=PaymentLog.INITIATE,
        status="INITIATED" if result.ok else "REJECTED",
        request_payload=request_payload,
        response_payload=result.raw,
    )

    if not result.ok:
        apply_payment_outcome(
            payment,
            Payment.FAILED,
            event_at=timezone.now(),
            source=auth,
            raw=result.raw,
            remarks="Gateway rejected the payment request.",
            notify=False,
        )
        raise PaymentGatewayUnavailable("Payment gateway rejected the request.")

    Payment.objects.filter(pk=payment.pk).update(gateway_access_key=result.access_key)
    applied = apply_payment_outcome(
        payment,
        Payment.PROCESSING,
        event_at=timezone.now(),
        source=auth,
        raw=result.raw,
    )
    return InitiateResult(txnid=payment.transaction_id, payment_url=result.payment_url, status=applied.status)


def mark_paid(booking: Booking, proof: Mapping[str, str], auth: AuthContext) -> Booking:
    """Record an out-of-band payment for staff review. Never confirms the booking."""

    if not auth.owns(booking.user_id):
        raise NotFound("Booking not found.")

    changes = {}
    if proof.get("transaction_id"):
        changes["payment_reference"] = proof["transaction_id"]
    if proof.get("payment_screenshot_url"):
        changes["payment_screenshot_url"] = proof["payment_screenshot_url"]

    with _atomic_write(f"mark paid for booking {booking.pk}"):
        booking = _lock_booking(booking.pk)
        state.transition(booking, state.SUBMIT_PROOF, auth=auth, changes=changes)
    return booking


def review_manual_payment(booking: Booking, approve: bool, auth: AuthContext) -> Booking:
    if not auth.is_staff:
        raise PermissionDenied()

    with _atomic_write(f"manual review for booking {booking.pk}"):
        booking = _lock_booking(booking.pk)
        if approve:
            state.transition(
                booking,
                state.MANUAL_APPROVED,
                auth=auth,
                changes={"advance_paid_cents": booking.total_amount_cents, "balance_cents": 0},
            )
            _notify_after_commit(
                booking.pk,
                emails.send_payment_confirmed_email,
                emails.send_admin_new_booking_notification,
            )
        else:
            state.transition(booking, state.MANUAL_REJECTED, auth=auth)
            _notify_after_commit(booking.pk, emails.send_payment_failed_email)
    return booking


def cancel_booking(booking: Booking, auth: AuthContext) -> Booking:
    if not auth.is_staff:
        raise PermissionDenied()
    with _atomic_write(f"cancel booking {booking.pk}"):
        booking = _lock_booking(booking.pk)
        state.transition(booking, state.CANCEL, auth=auth)
    return booking


def check_in_booking(booking: Booking, auth: AuthContext) -> Booking:
    if not auth.is_staff:
        raise PermissionDenied()
    with _atomic_write(f"check in booking {booking.pk}"):
        booking = _lock_booking(booking.pk)
        state.transition(booking, state.CHECK_IN, auth=auth)
    return booking
