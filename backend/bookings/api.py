from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.models import Booking
from bookings.serializers import (
    AdminBookingActionSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    MarkPaidSerializer,
)
from bookings.services.expiry import release_expired
from bookings.services.reservations import GuestInfo, create_booking
from bookings.state import InvalidTransition
from core.auth import AuthContext
from payments.services import reconciliation


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "payment_status"]
    ordering_fields = ["created_at", "check_in"]

    def get_queryset(self):
        queryset = Booking.objects.select_related("room").prefetch_related("payments").order_by("-created_at", "-id")
        if self.request.user.is_staff:
            return queryset
        return queryset.filter(user=self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user

        guest = GuestInfo(
            name=data.get("guest_name") or user.full_name or user.email,
            email=data.get("guest_email") or user.email,
            phone=data.get("guest_phone") or user.phone,
        )
        booking = create_booking(
            room_id=data["room_id"],
            check_in=data["check_in"],
            check_out=data["check_out"],
            guest=guest,
            auth=AuthContext.from_request(request),
            num_guests=data["num_guests"],
            special_requests=data["special_requests"],
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="payment")
    def payment(self, request, pk=None):
        """Guest reports an out-of-band payment; the booking waits for staff review."""

        auth = AuthContext.from_request(request)
        booking = Booking.objects.filter(pk=pk).first()
        if booking is None or not auth.owns(booking.user_id):
            raise NotFound("Booking not found.")

        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            reconciliation.mark_paid(booking, serializer.validated_data, auth)
        except InvalidTransition:
            return Response(
                {"success": False, "message": "This booking is not awaiting payment."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            {"success": True, "message": "Payment submitted for verification."},
        )


class AdminBookingValidateView(APIView):
    """Staff decisions on a booking: approve or reject a manual payment, cancel, check in."""

    permission_classes = [permissions.IsAdminUser]

    handlers = {
        AdminBookingActionSerializer.APPROVE: lambda booking, auth: reconciliation.review_manual_payment(booking, True, auth),
        AdminBookingActionSerializer.REJECT: lambda booking, auth: reconciliation.review_manual_payment(booking, False, auth),
        AdminBookingActionSerializer.CANCEL: reconciliation.cancel_booking,
        AdminBookingActionSerializer.CHECK_IN: reconciliation.check_in_booking,
    }

    def post(self, request, pk):
        booking = get_object_or_404(Booking, pk=pk)
        serializer = AdminBookingActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = self.handlers[serializer.validated_data["action"]]
        try:
            booking = handler(booking, AuthContext.from_request(request))
        except InvalidTransition as exc:
            return Response(
                {"success": False, "message": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )
        return Response({"success": True, "booking": BookingSerializer(booking).data})


class ClearExpiredBookingsView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, *args, **kwargs):
        released = release_expired()
        return Response({"released": released, "count": len(released)})
