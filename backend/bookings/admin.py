from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("booking_number", "room", "guest_name", "check_in", "check_out", "status", "payment_status")
    list_filter = ("status", "payment_status")
    search_fields = ("booking_number", "guest_name", "guest_email")
    date_hierarchy = "check_in"
    # lifecycle fields only change through the booking state transitions
    readonly_fields = (
        "booking_number",
        "status",
        "payment_status",
        "advance_paid_cents",
        "balance_cents",
        "hold_started_at",
        "created_at",
        "updated_at",
    )
