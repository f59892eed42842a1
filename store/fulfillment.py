# store/fulfillment.py - order/service status transitions, cancellations and their side effects
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from . import notifications
from .checkout import restore_stock
from .exceptions import OrderStateError
from .models import AuditLog, Notification, Order, ServiceRequest, User
from .utils import generate_service_request_number

logger = logging.getLogger(__name__)


# ---------------------------
# Helpers
# ---------------------------
def _jsonable(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    out = {}
    for k, v in values.items():
        if isinstance(v, (Decimal, datetime, date)):
            v = str(v)
        out[k] = v
    return out


def audit(actor, action: str, entity: str, entity_id, old=None, new=None, ip_address=None) -> AuditLog:
    return AuditLog.objects.create(
        actor=actor if getattr(actor, "pk", None) else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id),
        old_values=_jsonable(old),
        new_values=_jsonable(new),
        ip_address=ip_address,
    )


def _after_commit(tasks: List[Callable[[], Any]]) -> None:
    """E-mails only leave once the DB work is committed; one failure doesn't stop the rest."""
    def run():
        for task in tasks:
            try:
                task()
            except Exception as e:
                logger.error(f"Post-commit notification failed: {e}")
    if tasks:
        transaction.on_commit(run)


def _opposite_role(actor) -> str:
    # STAFF writes -> ADMINs read, ADMIN writes -> STAFF read
    return User.Role.STAFF if actor.role == User.Role.ADMIN else User.Role.ADMIN


def _sender_name(actor) -> str:
    return actor.name or ("Admin" if actor.role == User.Role.ADMIN else "Staff")


# ---------------------------
# Orders
# ---------------------------
@transaction.atomic
def update_order(order_id, actor, data: Dict[str, Any], ip_address=None) -> Order:
    """
    Admin/staff update. `data` is OrderUpdateSerializer.validated_data.

    Cancelling an order whose payment was PAID restores every line's stock
    and flips payment_status to REFUNDED.
    """
    order = Order.objects.select_for_update().select_related("user").filter(pk=order_id).first()
    if order is None:
        raise NotFound("Order not found")

    old_status = order.status
    old_payment = order.payment_status
    old_internal = order.internal_notes or ""

    new_status = data.get("status") or None
    new_payment = data.get("payment_status") or None
    now = timezone.now()

    if new_status:
        order.status = new_status
    if new_payment:
        order.payment_status = new_payment
    if data.get("tracking_number"):
        order.tracking_number = data["tracking_number"]
    if data.get("carrier"):
        order.carrier = data["carrier"]
    if data.get("estimated_delivery"):
        order.estimated_delivery = data["estimated_delivery"]
    if "admin_notes" in data and data["admin_notes"] is not None:
        order.admin_notes = data["admin_notes"]
    if "internal_notes" in data and data["internal_notes"] is not None:
        order.internal_notes = data["internal_notes"]
    if new_status == Order.Status.DELIVERED and old_status != Order.Status.DELIVERED:
        order.delivered_at = now
    if new_payment == Order.PaymentStatus.PAID and old_payment != Order.PaymentStatus.PAID:
        order.paid_at = now
    order.save()

    status_changed = bool(new_status and new_status != old_status)
    refunded = (
        new_status == Order.Status.CANCELLED
        and old_status != Order.Status.CANCELLED
        and old_payment == Order.PaymentStatus.PAID
    )
    if refunded:
        restocked = restore_stock(order)
        order.payment_status = Order.PaymentStatus.REFUNDED
        order.save(update_fields=["payment_status", "updated_at"])
        logger.info(f"Order {order.order_number} cancelled after payment: marked REFUNDED (restocked={restocked})")

    audit(
        actor, "UPDATE", "ORDER", order.pk,
        old={"status": old_status, "payment_status": old_payment},
        new={
            "status": order.status,
            "payment_status": order.payment_status,
            "tracking_number": data.get("tracking_number"),
            "admin_notes": data.get("admin_notes"),
        },
        ip_address=ip_address,
    )

    tasks: List[Callable[[], Any]] = []
    if status_changed:
        notifications.notify(
            order.user,
            Notification.Type.ORDER_UPDATE,
            "Order Status Updated",
            f"Your order #{order.order_number} status has been updated to {new_status}",
            link=f"/account/orders/{order.id}",
            order=order,
        )
        note = data.get("admin_notes") or ""
        tasks.append(lambda: notifications.send_order_status_email(order, new_status, note))

    payment_now_paid = (
        new_payment == Order.PaymentStatus.PAID and old_payment != Order.PaymentStatus.PAID and not refunded
    )
    if payment_now_paid:
        notifications.notify(
            order.user,
            Notification.Type.PAYMENT_RECEIVED,
            "Payment Received",
            f"Payment received for your order #{order.order_number}. Thank you!",
            link=f"/account/orders/{order.id}",
            order=order,
        )
        tasks.append(lambda: notifications.send_payment_received(order))

    if refunded:
        tasks.append(lambda: notifications.send_refund_email(order))

    new_internal = data.get("internal_notes")
    if new_internal is not None and new_internal != old_internal:
        recipients = notifications.emails_for_role(_opposite_role(actor))
        sender = _sender_name(actor)
        tasks.append(lambda: notifications.send_internal_notes_email(
            f"Order #{order.order_number}", sender, new_internal, recipients,
            notifications._front(f"/admin/orders/{order.id}"),
        ))

    _after_commit(tasks)
    return order


@transaction.atomic
def cancel_order_by_owner(order_id, user) -> Order:
    order = Order.objects.select_for_update().filter(pk=order_id, user=user).first()
    if order is None:
        raise NotFound("Order not found")
    if order.status != Order.Status.PENDING:
        raise OrderStateError("Only pending orders can be cancelled")

    old = {"status": order.status, "payment_status": order.payment_status}
    restore_stock(order)
    order.status = Order.Status.CANCELLED
    if order.payment_status == Order.PaymentStatus.PAID:
        order.payment_status = Order.PaymentStatus.REFUNDED
    order.save(update_fields=["status", "payment_status", "updated_at"])
    audit(user, "CANCEL", "ORDER", order.pk, old=old,
          new={"status": order.status, "payment_status": order.payment_status})
    return order


@transaction.atomic
def delete_order(order_id, actor, ip_address=None) -> None:
    order = Order.objects.select_for_update().filter(pk=order_id).first()
    if order is None:
        raise NotFound("Order not found")
    if order.status != Order.Status.CANCELLED:
        raise OrderStateError("Only cancelled orders can be deleted")
    snapshot = {
        "order_number": order.order_number,
        "user_id": order.user_id,
        "total": order.total,
        "status": order.status,
        "payment_status": order.payment_status,
    }
    order.delete()
    audit(actor, "DELETE", "ORDER", order_id, old=snapshot, ip_address=ip_address)


# ---------------------------
# Service requests
# ---------------------------
@transaction.atomic
def create_service_request(user, data: Dict[str, Any]) -> ServiceRequest:
    sr = ServiceRequest.objects.create(
        request_number=generate_service_request_number(),
        user=user,
        priority=data.get("priority") or ServiceRequest.Priority.NORMAL,
        **{k: v for k, v in data.items() if k != "priority" and v is not None},
    )

    notifications.notify(
        user,
        Notification.Type.SERVICE_REQUEST_SUBMITTED,
        "Service Request Submitted",
        f"Your service request {sr.request_number} has been submitted. We'll review it shortly.",
        link=f"/account/services/{sr.id}",
        service_request=sr,
    )
    priority_note = f" ({sr.priority} priority)" if sr.priority != ServiceRequest.Priority.NORMAL else ""
    for member in notifications.users_with_roles([User.Role.ADMIN, User.Role.STAFF]):
        prefix = "/admin" if member.role == User.Role.ADMIN else "/staff"
        notifications.notify(
            member,
            Notification.Type.SERVICE_REQUEST_SUBMITTED,
            "New Service Request",
            f"New {sr.service_type} request from {sr.contact_name}{priority_note}",
            link=f"{prefix}/services/{sr.id}",
            service_request=sr,
        )

    _after_commit([
        lambda: notifications.send_service_request_received(sr),
        lambda: notifications.send_new_service_request_to_team(sr),
    ])
    return sr


@transaction.atomic
def update_service_request(sr_id, actor, data: Dict[str, Any], ip_address=None) -> ServiceRequest:
    sr = ServiceRequest.objects.select_for_update().select_related("user").filter(pk=sr_id).first()
    if sr is None:
        raise NotFound("Service request not found")

    old_status = sr.status
    old_estimate = sr.estimated_cost
    old_internal = sr.internal_notes or ""
    now = timezone.now()

    new_status = data.get("status") or None
    if new_status:
        sr.status = new_status
    if data.get("priority"):
        sr.priority = data["priority"]
    for field in ("estimated_cost", "final_cost", "internal_notes", "diagnosis", "admin_notes"):
        if field in data and data[field] is not None:
            setattr(sr, field, data[field])
    if data.get("quoted_price") is not None:
        sr.quoted_price = data["quoted_price"]
        sr.quoted_at = now
    if data.get("assigned_to"):
        sr.assigned_to = data["assigned_to"]
    if data.get("scheduled_date"):
        sr.scheduled_date = data["scheduled_date"]
    if data.get("completed_at"):
        sr.completed_at = data["completed_at"]
    elif new_status == ServiceRequest.Status.COMPLETED and not sr.completed_at:
        sr.completed_at = now
    sr.save()

    audit(actor, "UPDATE", "SERVICE_REQUEST", sr.pk,
          old={"status": old_status, "estimated_cost": old_estimate},
          new=dict(data), ip_address=ip_address)

    tasks: List[Callable[[], Any]] = []
    if new_status and new_status != old_status:
        notifications.notify(
            sr.user,
            Notification.Type.SERVICE_UPDATE,
            "Service Request Updated",
            f"Your service request #{sr.request_number} status has been updated to {new_status}",
            link=f"/account/services/{sr.id}",
            service_request=sr,
        )
        tasks.append(lambda: notifications.send_service_status_email(sr, new_status))

    new_internal = data.get("internal_notes")
    if new_internal is not None and new_internal != old_internal:
        recipients = notifications.emails_for_role(_opposite_role(actor))
        sender = _sender_name(actor)
        tasks.append(lambda: notifications.send_internal_notes_email(
            f"Service #{sr.request_number}", sender, new_internal, recipients,
            notifications._front(f"/admin/services/{sr.id}"),
        ))

    _after_commit(tasks)
    return sr


@transaction.atomic
def cancel_service_request_by_owner(sr_id, user) -> ServiceRequest:
    sr = ServiceRequest.objects.select_for_update().filter(pk=sr_id, user=user).first()
    if sr is None:
        raise NotFound("Service request not found")
    if sr.status != ServiceRequest.Status.PENDING:
        raise OrderStateError("Only pending requests can be cancelled")
    sr.status = ServiceRequest.Status.CANCELLED
    sr.save(update_fields=["status", "updated_at"])
    audit(user, "CANCEL", "SERVICE_REQUEST", sr.pk,
          old={"status": ServiceRequest.Status.PENDING}, new={"status": sr.status})
    return sr
