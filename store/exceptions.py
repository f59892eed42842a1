# store/exceptions.py - domain errors + DRF handler that always answers {"detail": "<one message>"}
import logging

from django.db import IntegrityError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A record with these unique values already exists."
    default_code = "conflict"


class CheckoutError(exceptions.APIException):
    """Checkout rejected as a whole (empty cart, unknown product, short stock)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Checkout failed."
    default_code = "checkout_error"


class OrderStateError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not allowed in the current state."
    default_code = "invalid_state"


_AUTH_ERRORS = (
    exceptions.NotAuthenticated,
    exceptions.AuthenticationFailed,
    exceptions.PermissionDenied,
)


def first_message(detail) -> str:
    """
    Reduces DRF error payloads to a single human readable line.
    {"shipping_email": ["Enter a valid email address."]} -> "shipping_email: Enter a valid email address."
    """
    if isinstance(detail, dict):
        if not detail:
            return ""
        if "detail" in detail:
            return first_message(detail["detail"])
        field, value = next(iter(detail.items()))
        msg = first_message(value)
        if field in ("non_field_errors",) or not msg:
            return msg
        return f"{field}: {msg}"
    if isinstance(detail, (list, tuple)):
        for item in detail:
            msg = first_message(item)
            if msg:
                return msg
        return ""
    return str(detail) if detail is not None else ""


def api_exception_handler(exc, context):
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error turned into 409: {exc}")
        exc = Conflict()

    if isinstance(exc, _AUTH_ERRORS):
        set_rollback()
        return Response({"detail": first_message(exc.detail) or "Unauthorized"}, status=status.HTTP_401_UNAUTHORIZED)

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        set_rollback()
        return Response({"detail": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    response.data = {"detail": first_message(response.data) or "Request failed"}
    return response
