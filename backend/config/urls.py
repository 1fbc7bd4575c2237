from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView, RegisterView
from availability.api import RoomAvailabilityView, RoomBlockViewSet
from bookings.api import AdminBookingValidateView, BookingViewSet, ClearExpiredBookingsView
from payments.api import (
    AdminCheckStatusView,
    InitiatePaymentView,
    PaymentStatusView,
    PaymentWebhookView,
)

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"admin/room-blocks", RoomBlockViewSet, basename="room-block")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path("api/rooms/availability/", RoomAvailabilityView.as_view(), name="room-availability"),
    path("api/payments/initiate/", InitiatePaymentView.as_view(), name="payment-initiate"),
    path("api/payments/webhook/", PaymentWebhookView.as_view(), name="payment-webhook"),
    path("api/payments/callback/", PaymentWebhookView.as_view(), name="payment-callback"),
    path("api/payments/status/", PaymentStatusView.as_view(), name="payment-status"),
    path(
        "api/admin/bookings/clear-expired/",
        ClearExpiredBookingsView.as_view(),
        name="admin-bookings-clear-expired",
    ),
    path(
        "api/admin/bookings/<int:pk>/validate/",
        AdminBookingValidateView.as_view(),
        name="admin-booking-validate",
    ),
    path(
        "api/admin/payments/check-status/",
        AdminCheckStatusView.as_view(),
        name="admin-payment-check-status",
    ),
    path("api/", include(router.urls)),
]
