from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class Room(models.Model):
    """A bookable room in the property catalog."""

    room_number = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=120, blank=True)
    room_type = models.CharField(max_length=50)
    description = models.TextField(blank=True)
    base_price_cents = models.PositiveIntegerField()
    max_guests = models.PositiveIntegerField(default=2)
    is_active = models.BooleanField(default=True)
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["base_price_cents", "id"]

    def __str__(self):
        return f"Room {self.room_number} ({self.room_type})"


class RoomBlock(models.Model):
    """Operator hold on a room (maintenance, owner use). Both dates are inclusive."""

    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name="blocks")
    start_date = models.DateField()
    end_date = models.DateField()
    reason = models.CharField(max_length=120)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="room_blocks",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]

    def __str__(self):
        return f"{self.room} blocked {self.start_date}..{self.end_date}"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "End date must be on or after the start date."})
