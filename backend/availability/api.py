import logging

from django.conf import settings
from rest_framework import viewsets
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from availability.models import RoomBlock
from availability.serializers import AvailabilityQuerySerializer, RoomBlockSerializer, RoomSerializer
from availability.services.engine import find_available_rooms
from bookings.services.expiry import release_expired

logger = logging.getLogger(__name__)


class RoomAvailabilityView(APIView):
    """Public search: which rooms are free for the whole stay."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = AvailabilityQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if settings.BOOKING_PASSIVE_SWEEP:
            release_expired()

        result = find_available_rooms(data["check_in"], data["check_out"], room_type=data.get("room_type") or None)
        rooms = result.rooms
        num_guests = data.get("num_guests")
        if num_guests:
            rooms = [room for room in rooms if room.max_guests >= num_guests]

        if rooms:
            message = f"{len(rooms)} room(s) available for {result.nights} night(s)."
        else:
            message = "No rooms available for the selected dates."

        return Response(
            {
                "available_rooms": RoomSerializer(rooms, many=True).data,
                "total_available": len(rooms),
                "booked_room_ids": result.booked_room_ids,
                "total_booked": len(result.booked_room_ids),
                "blocked_room_ids": result.blocked_room_ids,
                "nights": result.nights,
                "message": message,
            }
        )


class RoomBlockViewSet(viewsets.ModelViewSet):
    """Staff management of maintenance and owner-use blocks."""

    serializer_class = RoomBlockSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ["room"]

    def get_queryset(self):
        return RoomBlock.objects.select_related("room").order_by("-start_date")

    def perform_create(self, serializer):
        block = serializer.save(created_by=self.request.user)
        logger.info(
            "Room %s blocked %s..%s by user %s", block.room_id, block.start_date, block.end_date, self.request.user.pk
        )
