from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError


class InvalidRangeError(ValidationError):
    """Check-out is not after check-in, or a date could not be parsed."""

    default_detail = "Check-out date must be after check-in date."
    default_code = "invalid_range"


class RoomUnavailableError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Room is no longer available for the selected dates."
    default_code = "room_unavailable"


class PersistenceError(APIException):
    """A data-store write failed; the caller may retry."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Could not save changes. Please retry."
    default_code = "persistence_error"


class GatewayError(Exception):
    pass


class GatewayUnreachableError(GatewayError):
    """Network failure, timeout, or a response shape we do not recognise."""


class GatewaySignatureError(GatewayError):
    """Callback hash did not match; the payload must not be trusted."""


class PaymentGatewayUnavailable(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway is unavailable. Please retry shortly."
    default_code = "gateway_unavailable"
