from rest_framework import serializers

from availability.serializers import RoomSerializer
from bookings.models import Booking
from payments.serializers import PaymentSerializer


class BookingSerializer(serializers.ModelSerializer):
    room = RoomSerializer(read_only=True)
    total_amount = serializers.SerializerMethodField()
    balance = serializers.SerializerMethodField()
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "room",
            "guest_name",
            "guest_email",
            "guest_phone",
            "num_guests",
            "special_requests",
            "check_in",
            "check_out",
            "total_nights",
            "room_charges_cents",
            "discount_cents",
            "total_amount_cents",
            "total_amount",
            "advance_paid_cents",
            "balance_cents",
            "balance",
            "status",
            "payment_status",
            "payment_reference",
            "payment_screenshot_url",
            "payments",
            "hold_started_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_total_amount(self, obj):
        return f"{obj.total_amount_cents / 100:.2f}"

    def get_balance(self, obj):
        return f"{obj.balance_cents / 100:.2f}"


class BookingCreateSerializer(serializers.Serializer):
    room_id = serializers.IntegerField()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    num_guests = serializers.IntegerField(required=False, min_value=1, default=1)
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")
    guest_name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    guest_email = serializers.EmailField(required=False, allow_blank=True)
    guest_phone = serializers.CharField(required=False, allow_blank=True, max_length=30)

    def validate(self, attrs):
        if attrs["check_out"] <= attrs["check_in"]:
            raise serializers.ValidationError({"check_out": "Check-out date must be after check-in date."})
        return attrs


class MarkPaidSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["mark_paid"])
    transaction_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    payment_screenshot_url = serializers.URLField(required=False, allow_blank=True, max_length=500)


class AdminBookingActionSerializer(serializers.Serializer):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    CHECK_IN = "check_in"

    action = serializers.ChoiceField(choices=[APPROVE, REJECT, CANCEL, CHECK_IN])
