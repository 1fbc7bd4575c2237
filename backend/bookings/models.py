from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

# every (status, payment_status) pair a booking may be in
VALID_STATES = (
    ("pending", "pending"),
    ("pending", "verification_pending"),
    ("pending", "failed"),
    ("confirmed", "paid"),
    ("checked-in", "paid"),
    ("failed", "pending"),
    ("failed", "failed"),
    ("cancelled", "pending"),
    ("cancelled", "verification_pending"),
    ("cancelled", "paid"),
    ("cancelled", "failed"),
)


class Booking(models.Model):
    """A guest's claim on one room for a half-open date range."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CANCELLED = "cancelled"
    FAILED = "failed"
    STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (CHECKED_IN, "Checked in"),
        (CANCELLED, "Cancelled"),
        (FAILED, "Failed"),
    ]

    PAYMENT_PENDING = "pending"
    PAYMENT_VERIFICATION_PENDING = "verification_pending"
    PAYMENT_PAID = "paid"
    PAYMENT_FAILED = "failed"
    PAYMENT_STATUSES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_VERIFICATION_PENDING, "Verification pending"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_FAILED, "Failed"),
    ]

    # statuses that keep the room off the market
    HELD_STATUSES = (PENDING, CONFIRMED, CHECKED_IN)

    VALID_STATES = VALID_STATES

    booking_number = models.CharField(max_length=32, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    room = models.ForeignKey("availability.Room", on_delete=models.PROTECT, related_name="bookings")
    guest_name = models.CharField(max_length=200)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=30, blank=True)
    num_guests = models.PositiveIntegerField(default=1)
    special_requests = models.TextField(blank=True)
    check_in = models.DateField()
    check_out = models.DateField()
    total_nights = models.PositiveIntegerField()
    room_charges_cents = models.PositiveIntegerField()
    discount_cents = models.PositiveIntegerField(default=0)
    total_amount_cents = models.PositiveIntegerField()
    advance_paid_cents = models.PositiveIntegerField(default=0)
    balance_cents = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUSES, default=PENDING)
    payment_status = models.CharField(max_length=24, choices=PAYMENT_STATUSES, default=PAYMENT_PENDING)
    payment_screenshot_url = models.URLField(max_length=500, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True)
    hold_started_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["room", "check_in", "check_out"], name="bookings_room_range_idx"),
            models.Index(fields=["status", "payment_status"], name="bookings_state_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(check_out__gt=models.F("check_in")),
                name="bookings_checkout_after_checkin",
            ),
            models.CheckConstraint(
                condition=Q(
                    *[Q(status=status, payment_status=payment_status) for status, payment_status in VALID_STATES],
                    _connector=Q.OR,
                ),
                name="bookings_valid_state_pair",
            ),
        ]

    def __str__(self):
        return f"{self.booking_number} {self.room} {self.check_in}..{self.check_out}"

    @property
    def state(self) -> tuple[str, str]:
        return (self.status, self.payment_status)

    @property
    def holds_room(self) -> bool:
        return self.status in self.HELD_STATUSES

    def snapshot(self) -> dict:
        return {
            "status": self.status,
            "payment_status": self.payment_status,
            "advance_paid_cents": self.advance_paid_cents,
            "balance_cents": self.balance_cents,
        }
