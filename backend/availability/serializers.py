from rest_framework import serializers

from .models import Room, RoomBlock


class RoomSerializer(serializers.ModelSerializer):
    base_price = serializers.SerializerMethodField()

    class Meta:
        model = Room
        fields = [
            "id",
            "room_number",
            "name",
            "room_type",
            "description",
            "base_price_cents",
            "base_price",
            "max_guests",
        ]
        read_only_fields = fields

    def get_base_price(self, obj):
        return f"{obj.base_price_cents / 100:.2f}"


class RoomBlockSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoomBlock
        fields = ["id", "room", "start_date", "end_date", "reason", "notes", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate(self, attrs):
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError({"end_date": "End date must be on or after the start date."})
        return attrs


class AvailabilityQuerySerializer(serializers.Serializer):
    """Search input; dates are ISO strings (YYYY-MM-DD)."""

    check_in = serializers.DateField()
    check_out = serializers.DateField()
    room_type = serializers.CharField(required=False, allow_blank=True)
    num_guests = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        if attrs["check_out"] <= attrs["check_in"]:
            raise serializers.ValidationError({"check_out": "Check-out date must be after check-in date."})
        return attrs
