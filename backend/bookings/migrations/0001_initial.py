from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("availability", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_number", models.CharField(max_length=32, unique=True)),
                ("guest_name", models.CharField(max_length=200)),
                ("guest_email", models.EmailField(max_length=254)),
                ("guest_phone", models.CharField(blank=True, max_length=30)),
                ("num_guests", models.PositiveIntegerField(default=1)),
                ("special_requests", models.TextField(blank=True)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("total_nights", models.PositiveIntegerField()),
                ("room_charges_cents", models.PositiveIntegerField()),
                ("discount_cents", models.PositiveIntegerField(default=0)),
                ("total_amount_cents", models.PositiveIntegerField()),
                ("advance_paid_cents", models.PositiveIntegerField(default=0)),
                ("balance_cents", models.PositiveIntegerField()),
                ("status", models.CharField(choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("checked-in", "Checked in"), ("cancelled", "Cancelled"), ("failed", "Failed")], default="pending", max_length=20)),
                ("payment_status", models.CharField(choices=[("pending", "Pending"), ("verification_pending", "Verification pending"), ("paid", "Paid"), ("failed", "Failed")], default="pending", max_length=24)),
                ("payment_screenshot_url", models.URLField(blank=True, max_length=500)),
                ("payment_reference", models.CharField(blank=True, max_length=100)),
                ("hold_started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("room", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="availability.room")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="bookings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["room", "check_in", "check_out"], name="bookings_room_range_idx"),
                    models.Index(fields=["status", "payment_status"], name="bookings_state_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("check_out__gt", models.F("check_in"))), name="bookings_checkout_after_checkin"),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("payment_status", "pending"), ("status", "pending")),
                            models.Q(("payment_status", "verification_pending"), ("status", "pending")),
                            models.Q(("payment_status", "failed"), ("status", "pending")),
                            models.Q(("payment_status", "paid"), ("status", "confirmed")),
                            models.Q(("payment_status", "paid"), ("status", "checked-in")),
                            models.Q(("payment_status", "pending"), ("status", "failed")),
                            models.Q(("payment_status", "failed"), ("status", "failed")),
                            models.Q(("payment_status", "pending"), ("status", "cancelled")),
                            models.Q(("payment_status", "verification_pending"), ("status", "cancelled")),
                            models.Q(("payment_status", "paid"), ("status", "cancelled")),
                            models.Q(("payment_status", "failed"), ("status", "cancelled")),
                            _connector="OR",
                        ),
                        name="bookings_valid_state_pair",
                    ),
                ],
            },
        ),
    ]
