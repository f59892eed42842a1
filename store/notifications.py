# store/notifications.py - in-app notifications + transactional e-mail (best effort, never raises)
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

from .models import Notification, Order, ServiceRequest, User
from .utils import format_pkr

logger = logging.getLogger(__name__)


# ---------------------------
# Helpers
# ---------------------------
def _front(path: str = "") -> str:
    base = (getattr(settings, "PUBLIC_FRONT_BASE", "") or "http://localhost:3000").rstrip("/")
    return f"{base}{path}"


def _api(path: str = "") -> str:
    base = (getattr(settings, "PUBLIC_API_BASE", "") or "http://127.0.0.1:8000/api").rstrip("/")
    return f"{base}{path}"


def _store_name() -> str:
    return getattr(settings, "STORE_NAME", "PakAutoSe Generators")


def emails_for_role(role: str) -> List[str]:
    return list(
        User.objects.filter(role=role, is_active=True).exclude(email="").values_list("email", flat=True)
    )


def users_with_roles(roles: Iterable[str]):
    return User.objects.filter(role__in=list(roles), is_active=True)


def notify(user, type_: str, title: str, message: str, link: str = "",
           order: Optional[Order] = None, service_request: Optional[ServiceRequest] = None) -> Notification:
    return Notification.objects.create(
        user=user,
        type=type_,
        title=title,
        message=message,
        link=link,
        order=order,
        service_request=service_request,
    )


def send_templated(subject: str, to: List[str], template: str, ctx: dict, fallback_text: str) -> bool:
    """
    Renders emails/<template>.html/.txt and sends them. Missing templates fall back to
    `fallback_text`; any transport error is logged and reported as False.
    """
    to = [addr for addr in (to or []) if addr]
    if not to:
        return False

    ctx = {"store_name": _store_name(), **ctx}
    try:
        txt = render_to_string(f"emails/{template}.txt", ctx)
    except TemplateDoesNotExist:
        txt = fallback_text
    try:
        html = render_to_string(f"emails/{template}.html", ctx)
    except TemplateDoesNotExist:
        html = "<p>" + fallback_text.replace("\n\n", "</p><p>").replace("\n", "<br>") + "</p>"

    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@pakautose.com")
    try:
        with get_connection() as conn:
            msg = EmailMultiAlternatives(subject, txt, from_email, to, connection=conn)
            msg.attach_alternative(html, "text/html")
            msg.send(fail_silently=False)
        return True
    except Exception as e:
        logger.error(f"Failed to send '{subject}' to {to}: {e}")
        return False


# ---------------------------
# Accounts
# ---------------------------
def send_verification_email(user: User) -> bool:
    token = user.email_verification_token
    front_link = _front(f"/auth/verify?uid={user.id}&token={token}")
    api_link = _api(f"/auth/verify-email/?user_id={user.id}&token={token}")
    return send_templated(
        f"Verify Your Email - {_store_name()}",
        [user.email],
        "verify_email",
        {"user": user, "front_verify_url": front_link, "api_verify_url": api_link},
        f"Hello {user.name or user.email},\n\nPlease confirm your e-mail:\n{front_link}\n(backend: {api_link})\n",
    )


def send_password_reset_email(user: User, uid: str, token: str) -> bool:
    link = _front(f"/auth/reset-password?uid={uid}&token={token}")
    return send_templated(
        f"Reset Your Password - {_store_name()}",
        [user.email],
        "password_reset",
        {"user": user, "reset_url": link},
        f"Hello {user.name or user.email},\n\nReset your password here (valid for one hour):\n{link}\n",
    )


# ---------------------------
# Orders
# ---------------------------
def _order_ctx(order: Order) -> dict:
    return {
        "order": order,
        "items": list(order.items.all()),
        "total_display": format_pkr(order.total),
        "order_url": _front(f"/account/orders/{order.id}"),
        "admin_url": _front(f"/admin/orders/{order.id}"),
    }


def send_order_confirmation(order: Order) -> bool:
    ctx = _order_ctx(order)
    lines = "\n".join(f"- {it.quantity} x {it.name}: {format_pkr(it.total)}" for it in ctx["items"])
    return send_templated(
        f"Order Confirmed - {order.order_number}",
        [order.shipping_email],
        "order_confirmation",
        ctx,
        f"Hi {order.shipping_name},\n\nThanks for your order {order.order_number}.\n\n{lines}\n\n"
        f"Total: {ctx['total_display']}\n\nTrack it here: {ctx['order_url']}\n",
    )


def send_admin_new_order(order: Order) -> int:
    recipients = emails_for_role(User.Role.ADMIN)
    ctx = _order_ctx(order)
    sent = 0
    for email in recipients:
        ok = send_templated(
            f"New Order Received - {order.order_number}",
            [email],
            "admin_new_order",
            ctx,
            f"New order {order.order_number} from {order.shipping_name} ({order.shipping_phone}).\n"
            f"Total: {ctx['total_display']} - {order.get_payment_method_display()}\n\n{ctx['admin_url']}\n",
        )
        sent += int(ok)
    return sent


# subject + message for statuses that have their own e-mail
_ORDER_STATUS_EMAILS = {
    Order.Status.SHIPPED: (
        "Your Order Has Been Shipped - #{number}",
        "Good news! Your order is on its way.",
    ),
    Order.Status.OUT_FOR_DELIVERY: (
        "Out for Delivery - Order #{number}",
        "Your order is out for delivery and should reach you today.",
    ),
    Order.Status.DELIVERED: (
        "Order Delivered - #{number}",
        "Your order has been delivered. Thank you for shopping with us!",
    ),
    Order.Status.CANCELLED: (
        "Order Cancelled - #{number}",
        "Your order has been cancelled. If you have any questions, please contact us.",
    ),
}


def send_order_status_email(order: Order, status: str, note: str = "") -> bool:
    subject_tpl, message = _ORDER_STATUS_EMAILS.get(
        status, ("Order Update - {number}", f"Your order status is now {Order.Status(status).label}.")
    )
    subject = subject_tpl.format(number=order.order_number)
    ctx = {**_order_ctx(order), "headline": subject, "message": message, "note": note}
    extra = []
    if status == Order.Status.SHIPPED and order.tracking_number:
        extra.append(f"Tracking number: {order.tracking_number} ({order.carrier or 'carrier n/a'})")
    if note:
        extra.append(note)
    ctx["extra_lines"] = extra
    body = "\n".join([f"Hi {order.shipping_name},", "", message, *extra, "", ctx["order_url"]])
    return send_templated(subject, [order.shipping_email or order.user.email], "order_status", ctx, body)


def send_payment_received(order: Order) -> bool:
    subject = f"Payment Received - Order #{order.order_number}"
    message = f"We have received your payment of {format_pkr(order.total)}. Thank you!"
    ctx = {**_order_ctx(order), "headline": subject, "message": message, "extra_lines": []}
    return send_templated(subject, [order.shipping_email or order.user.email], "order_status", ctx,
                          f"Hi {order.shipping_name},\n\n{message}\n")


def send_refund_email(order: Order) -> bool:
    subject = f"Refund Processed - Order #{order.order_number}"
    message = f"A refund of {format_pkr(order.total)} has been processed for your cancelled order."
    ctx = {**_order_ctx(order), "headline": subject, "message": message, "extra_lines": []}
    return send_templated(subject, [order.shipping_email or order.user.email], "order_status", ctx,
                          f"Hi {order.shipping_name},\n\n{message}\n")


def send_internal_notes_email(label: str, sender_name: str, notes: str, recipients: List[str], link: str) -> bool:
    if not recipients:
        return False
    return send_templated(
        f"New Internal Note - {label}",
        recipients,
        "internal_note",
        {"label": label, "sender_name": sender_name, "notes": notes, "link": link},
        f"{sender_name} updated the internal notes on {label}:\n\n{notes}\n\n{link}\n",
    )


# ---------------------------
# Service requests
# ---------------------------
def send_service_request_received(sr: ServiceRequest) -> bool:
    return send_templated(
        f"Service Request Received - {sr.request_number}",
        [sr.contact_email],
        "service_request",
        {"sr": sr, "url": _front(f"/account/services/{sr.id}")},
        f"Hi {sr.contact_name},\n\nWe received your {sr.get_service_type_display().lower()} request "
        f"{sr.request_number} ({sr.problem_title}). Our team will review it shortly.\n",
    )


def send_new_service_request_to_team(sr: ServiceRequest) -> int:
    """Admins get one e-mail each; staff get a single batch e-mail."""
    body = (
        f"New {sr.service_type} request {sr.request_number} from {sr.contact_name} "
        f"({sr.contact_phone}), priority {sr.priority}.\n\n{sr.problem_title}\n{sr.problem_description}\n"
    )
    sent = 0
    for email in emails_for_role(User.Role.ADMIN):
        sent += int(send_templated(
            f"New Service Request - {sr.request_number}", [email], "service_request_team",
            {"sr": sr, "url": _front(f"/admin/services/{sr.id}")}, body,
        ))
    staff = emails_for_role(User.Role.STAFF)
    if staff:
        sent += int(send_templated(
            f"New Service Request - {sr.request_number} ({sr.priority})", staff, "service_request_team",
            {"sr": sr, "url": _front(f"/staff/services/{sr.id}")}, body,
        ))
    return sent


SERVICE_STATUS_MESSAGES = {
    ServiceRequest.Status.REVIEWING: "We are currently reviewing your service request.",
    ServiceRequest.Status.QUOTED: "We have prepared a quote for your service.",
    ServiceRequest.Status.APPROVED: "Your service request has been approved and scheduled.",
    ServiceRequest.Status.IN_PROGRESS: "Our technician is currently working on your generator.",
    ServiceRequest.Status.COMPLETED: "Your service has been completed. Thank you for choosing us!",
    ServiceRequest.Status.CANCELLED: "Your service request has been cancelled. If you have any questions, please contact us.",
}


def send_service_status_email(sr: ServiceRequest, status: str) -> bool:
    message = SERVICE_STATUS_MESSAGES.get(status)
    if not message:
        return False
    if status == ServiceRequest.Status.QUOTED and sr.estimated_cost:
        message = f"{message} Estimated cost: {format_pkr(sr.estimated_cost)}"
    subject = f"Service Request Update - {sr.request_number}"
    return send_templated(
        subject,
        [sr.contact_email or sr.user.email],
        "service_status",
        {"sr": sr, "message": message, "url": _front(f"/account/services/{sr.id}")},
        f"Hi {sr.contact_name},\n\n{message}\n",
    )
