import logging

from django.conf import settings
from django.http import HttpResponseRedirect, JsonResponse
from rest_framework import permissions, status
from rest_framework.exceptions import NotFound
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.models import Booking
from bookings.state import InvalidTransition
from core.auth import AuthContext
from core.exceptions import PersistenceError
from payments.serializers import (
    AdminCheckStatusSerializer,
    InitiatePaymentSerializer,
    PaymentStatusQuerySerializer,
)
from payments.services import reconciliation

logger = logging.getLogger(__name__)


def _owned_booking(request, booking_id) -> Booking:
    booking = Booking.objects.filter(pk=booking_id).first()
    if booking is None or not (booking.user_id == request.user.pk or request.user.is_staff):
        raise NotFound("Booking not found.")
    return booking


class InitiatePaymentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = _owned_booking(request, serializer.validated_data["booking_id"])

        try:
            result = reconciliation.initiate_payment(booking, AuthContext.from_request(request))
        except InvalidTransition:
            return Response(
                {"detail": "This booking cannot be paid for in its current state."},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(
            {"txnid": result.txnid, "payment_url": result.payment_url, "status": result.status},
            status=status.HTTP_201_CREATED,
        )


class PaymentWebhookView(APIView):
    """
    Easebuzz callback (surl/furl) and server-to-server webhook.

    Always answers with a redirect to the frontend so the gateway's own retry
    logic keeps working. Only a failure to record the callback itself yields 500.
    """

    permission_classes: list = []
    authentication_classes: list = []
    parser_classes = [FormParser, MultiPartParser, JSONParser]

    def post(self, request, *args, **kwargs):
        payload = {key: request.data.get(key) for key in request.data.keys()}
        try:
            outcome = reconciliation.handle_webhook(payload)
        except PersistenceError:
            return JsonResponse({"error": "Internal Server Error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return HttpResponseRedirect(outcome.redirect_url(settings.FRONTEND_URL))


class PaymentStatusView(APIView):
    """Owner-triggered re-check of the latest payment against the gateway."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PaymentStatusQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = Booking.objects.filter(pk=serializer.validated_data["bookingId"]).first()
        if booking is None:
            raise NotFound("Booking not found.")

        result = reconciliation.refresh_payment_status(booking, AuthContext.from_request(request))
        return Response({"status": result.status, "raw": result.raw})


class AdminCheckStatusView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, *args, **kwargs):
        serializer = AdminCheckStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = reconciliation.admin_check_transaction(
            serializer.validated_data["transaction_id"], AuthContext.from_request(request)
        )
        return Response(
            {"transaction_id": result.transaction_id, "status": result.status, "raw": result.raw}
        )
