from rest_framework import serializers

from payments.models import Payment


class InitiatePaymentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()


class PaymentStatusQuerySerializer(serializers.Serializer):
    bookingId = serializers.IntegerField()


class AdminCheckStatusSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(max_length=40)


class PaymentSerializer(serializers.ModelSerializer):
    amount = serializers.CharField(source="amount_display", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "transaction_id",
            "gateway_transaction_id",
            "amount_cents",
            "amount",
            "status",
            "remarks",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields
