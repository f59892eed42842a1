# store/account_views.py - register/verify/login/logout/me, password reset, profile + in-app notifications
from __future__ import annotations

import logging
import secrets

from django.conf import settings
from django.contrib.auth import login, logout, update_session_auth_hash
from django.contrib.auth.tokens import default_token_generator
from django.http import HttpResponse
from django.utils import timezone
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, NotFound, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import notifications
from .exceptions import Conflict
from .models import Notification, User
from .pagination import StorePagination
from .permissions import IsCustomer
from .serializers import (
    ForgotPasswordSerializer,
    LoginSerializer,
    NotificationSerializer,
    PasswordChangeSerializer,
    ProfileSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


# ---------------------------
# Helpers
# ---------------------------
def _gen_email_token() -> str:
    return secrets.token_urlsafe(24)


RESET_SENT = "If an account with that email exists, we've sent a password reset link."


def _user_from_uid(uid):
    try:
        return User.objects.get(pk=int(force_str(urlsafe_base64_decode(uid))))
    except (User.DoesNotExist, TypeError, ValueError, OverflowError):
        return None


# ---------------------------
# Views
# ---------------------------
@api_view(["POST"])
@permission_classes([AllowAny])
def register(request):
    """
    Creates a USER account and mails the verification link.
    Payload: { "name", "email", "password", "confirm_password", "phone"? }
    In DEBUG the token is echoed back to make local testing easier.
    """
    ser = RegisterSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data

    if User.objects.filter(email__iexact=data["email"]).exists():
        raise Conflict("An account with this email already exists")

    user = User.objects.create_user(
        email=data["email"],
        password=data["password"],
        name=data["name"].strip(),
        phone=(data.get("phone") or "").strip(),
        email_verification_token=_gen_email_token(),
    )
    notifications.notify(
        user,
        Notification.Type.WELCOME,
        "Welcome!",
        f"Welcome to {getattr(settings, 'STORE_NAME', 'PakAutoSe')}, {user.name}. Please verify your e-mail to get started.",
        link="/account",
    )
    email_sent = notifications.send_verification_email(user)
    if not email_sent:
        logger.warning(f"Verification e-mail for user {user.pk} was not sent")

    resp = {"ok": True, "user": UserSerializer(user).data, "email_sent": email_sent}
    if settings.DEBUG:
        resp["debug"] = {"email_token": user.email_verification_token}
    return Response(resp, status=status.HTTP_201_CREATED)


@api_view(["GET", "POST"])
@permission_classes([AllowAny])
def verify_email(request):
    """
    GET  ?user_id=..&token=..   (link in the e-mail)
    POST { "user_id": 1, "token": "..." }
    """
    if request.method == "GET":
        user_id = request.query_params.get("user_id")
        token = request.query_params.get("token")
    else:
        user_id = (request.data or {}).get("user_id")
        token = (request.data or {}).get("token")

    try:
        user = User.objects.get(pk=int(user_id))
    except (User.DoesNotExist, TypeError, ValueError):
        raise NotFound("User not found")

    if not token or not user.email_token_is_valid(str(token)):
        raise ValidationError({"detail": "Invalid or expired verification link"})

    user.email_verified_at = timezone.now()
    user.email_verification_token = ""
    user.save(update_fields=["email_verified_at", "email_verification_token", "updated_at"])
    logger.info(f"User {user.pk} verified their e-mail")

    if request.method == "GET":
        return HttpResponse("<h1>E-mail verified successfully.</h1>", content_type="text/html")
    return Response({"ok": True, "user": UserSerializer(user).data})


@api_view(["POST"])
@permission_classes([AllowAny])
def login_view(request):
    ser = LoginSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    email = ser.validated_data["email"].strip().lower()

    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.check_password(ser.validated_data["password"]):
        raise AuthenticationFailed("Invalid email or password")
    if not user.is_active:
        raise AuthenticationFailed("Your account has been blocked. Please contact support.")
    if user.email_verified_at is None:
        raise AuthenticationFailed("Please verify your email before logging in")

    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    return Response({"ok": True, "user": UserSerializer(user).data})


@api_view(["POST"])
@permission_classes([AllowAny])
def logout_view(request):
    logout(request)
    return Response({"ok": True})


@api_view(["GET"])
@permission_classes([IsCustomer])
def me(request):
    return Response(UserSerializer(request.user).data)


# ---------------------------
# Password reset
# ---------------------------
@api_view(["POST"])
@permission_classes([AllowAny])
def forgot_password(request):
    """Same answer whether or not the address is registered."""
    ser = ForgotPasswordSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    user = User.objects.filter(email__iexact=ser.validated_data["email"].strip(), is_active=True).first()
    if user is not None:
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        if not notifications.send_password_reset_email(user, uid, token):
            logger.warning(f"Password reset e-mail for user {user.pk} was not sent")
    return Response({"success": True, "message": RESET_SENT})


@api_view(["GET", "POST"])
@permission_classes([AllowAny])
def reset_password(request):
    """
    GET  ?uid=..&token=..                          -> {"valid": bool}
    POST { "uid", "token", "password" }            -> sets the new password

    Tokens come from Django's default_token_generator, so they expire after
    PASSWORD_RESET_TIMEOUT and stop working once the password changes.
    """
    if request.method == "GET":
        user = _user_from_uid(request.query_params.get("uid") or "")
        token = request.query_params.get("token") or ""
        valid = user is not None and default_token_generator.check_token(user, token)
        return Response({"valid": valid})

    ser = ResetPasswordSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    user = _user_from_uid(ser.validated_data["uid"])
    if user is None or not default_token_generator.check_token(user, ser.validated_data["token"]):
        raise ValidationError({"detail": "Invalid or expired reset token"})

    user.set_password(ser.validated_data["password"])
    user.save(update_fields=["password", "updated_at"])
    logger.info(f"User {user.pk} reset their password")
    return Response({
        "success": True,
        "message": "Password reset successfully. You can now log in with your new password.",
    })


# ---------------------------
# Profile
# ---------------------------
@api_view(["GET", "PUT", "PATCH"])
@permission_classes([IsCustomer])
def profile(request):
    if request.method == "GET":
        return Response(ProfileSerializer(request.user).data)

    ser = ProfileSerializer(request.user, data=request.data, partial=request.method == "PATCH")
    ser.is_valid(raise_exception=True)
    ser.save()
    return Response(ser.data)


@api_view(["PUT"])
@permission_classes([IsCustomer])
def change_password(request):
    ser = PasswordChangeSerializer(data=request.data, context={"request": request})
    ser.is_valid(raise_exception=True)
    request.user.set_password(ser.validated_data["new_password"])
    request.user.save(update_fields=["password", "updated_at"])
    # keep the current session signed in
    update_session_auth_hash(request, request.user)
    return Response({"message": "Password changed successfully"})


# ---------------------------
# Notifications
# ---------------------------
@api_view(["GET"])
@permission_classes([IsCustomer])
def notification_list(request):
    qs = Notification.objects.filter(user=request.user)
    if request.query_params.get("unread") in ("1", "true"):
        qs = qs.filter(is_read=False)
    unread = Notification.objects.filter(user=request.user, is_read=False).count()

    paginator = StorePagination()
    page = paginator.paginate_queryset(qs, request)
    data = NotificationSerializer(page, many=True).data
    return paginator.get_paginated_response(data, extra={"unread_count": unread})


@api_view(["POST"])
@permission_classes([IsCustomer])
def notification_read(request, pk: int):
    updated = Notification.objects.filter(pk=pk, user=request.user, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )
    if not updated and not Notification.objects.filter(pk=pk, user=request.user).exists():
        raise NotFound("Notification not found")
    return Response({"ok": True})


@api_view(["POST"])
@permission_classes([IsCustomer])
def notification_read_all(request):
    count = Notification.objects.filter(user=request.user, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )
    return Response({"ok": True, "updated": count})
