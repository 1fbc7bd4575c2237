from django.conf import settings
from django.db import models


class Payment(models.Model):
    """One attempt to pay for a booking through the gateway."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    STATUSES = [
        (PENDING, "Pending"),
        (PROCESSING, "Processing"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (REFUNDED, "Refunded"),
    ]

    # forward-only ordering; refunded sits outside it
    RANK = {PENDING: 0, PROCESSING: 1, FAILED: 2, COMPLETED: 3}
    TERMINAL_STATUSES = (COMPLETED, REFUNDED)

    booking = models.ForeignKey("bookings.Booking", on_delete=models.PROTECT, related_name="payments")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    amount_cents = models.PositiveIntegerField()
    transaction_id = models.CharField(max_length=40, unique=True)
    gateway_transaction_id = models.CharField(max_length=100, blank=True)
    gateway_access_key = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=20, choices=STATUSES, default=PENDING)
    gateway_response = models.JSONField(null=True, blank=True)
    remarks = models.TextField(blank=True)
    last_event_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=models.Q(status="completed"),
                name="payments_one_completed_per_booking",
            ),
        ]

    def __str__(self):
        return f"{self.transaction_id} {self.status} {self.amount_cents / 100:.2f}"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def amount_display(self) -> str:
        return f"{self.amount_cents / 100:.2f}"


class PaymentLog(models.Model):
    """Append-only record of gateway traffic. Only the link fields may be filled in later."""

    INITIATE = "INITIATE"
    WEBHOOK_RECEIVED = "WEBHOOK_RECEIVED"
    STATUS_CHECK = "STATUS_CHECK"
    STATUS_CHECK_MANUAL = "STATUS_CHECK_MANUAL"
    EVENT_TYPES = [
        (INITIATE, "Initiate"),
        (WEBHOOK_RECEIVED, "Webhook received"),
        (STATUS_CHECK, "Status check"),
        (STATUS_CHECK_MANUAL, "Manual status check"),
    ]

    payment = models.ForeignKey(
        Payment, on_delete=models.SET_NULL, null=True, blank=True, related_name="logs"
    )
    booking = models.ForeignKey(
        "bookings.Booking", on_delete=models.SET_NULL, null=True, blank=True, related_name="payment_logs"
    )
    transaction_id = models.CharField(max_length=100, blank=True)
    event_type = models.CharField(max_length=30, choices=EVENT_TYPES)
    status = models.CharField(max_length=40, blank=True)
    request_payload = models.JSONField(null=True, blank=True)
    response_payload = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["transaction_id"], name="payments_log_txn_idx")]

    def __str__(self):
        return f"{self.event_type} {self.transaction_id or '-'} {self.status}"

    def link(self, *, payment: Payment | None = None, booking=None):
        """Back-fill the payment/booking reference once it is known."""

        update_fields = []
        if payment is not None and self.payment_id is None:
            self.payment = payment
            update_fields.append("payment")
        if booking is not None and self.booking_id is None:
            self.booking = booking
            update_fields.append("booking")
        if update_fields:
            self.save(update_fields=update_fields)
