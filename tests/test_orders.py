from decimal import Decimal

import pytest
from django.core import mail

from store.models import AuditLog, Notification, Order

pytestmark = pytest.mark.django_db


@pytest.fixture
def placed_order(customer_client, generator, part, shipping_payload):
    body = {
        **shipping_payload,
        "items": [
            {"item_type": "GENERATOR", "product_id": generator.pk, "quantity": 2},
            {"item_type": "PART", "product_id": part.pk, "quantity": 3},
        ],
    }
    resp = customer_client.post("/api/orders/", body, format="json")
    assert resp.status_code == 201
    return Order.objects.get(pk=resp.data["order"]["id"])


def _admin_url(order):
    return f"/api/admin/orders/{order.pk}/"


class TestBuyerOrders:
    def test_list_only_own_orders(self, customer_client, other_client, placed_order):
        resp = customer_client.get("/api/orders/")
        assert resp.status_code == 200
        assert resp.data["pagination"]["total"] == 1
        assert resp.data["results"][0]["order_number"] == placed_order.order_number

        assert other_client.get("/api/orders/").data["pagination"]["total"] == 0
        assert other_client.get(f"/api/orders/{placed_order.pk}/").status_code == 404

    def test_status_filter(self, customer_client, placed_order):
        assert customer_client.get("/api/orders/?status=SHIPPED").data["results"] == []
        assert len(customer_client.get("/api/orders/?status=PENDING").data["results"]) == 1

    def test_detail_has_items(self, customer_client, placed_order):
        resp = customer_client.get(f"/api/orders/{placed_order.pk}/")
        assert resp.status_code == 200
        assert len(resp.data["items"]) == 2
        assert resp.data["total_formatted"] == "Rs. 28,000"
        assert "internal_notes" not in resp.data

    def test_invoice(self, customer_client, placed_order):
        resp = customer_client.get(f"/api/orders/{placed_order.pk}/invoice/")
        assert resp.status_code == 200
        assert resp.data["invoice_number"] == placed_order.invoice_number
        assert resp.data["bill_to"]["name"] == "Ali Buyer"
        assert resp.data["totals"]["total"] == "28000.00"
        assert resp.data["store"]["currency"] == "PKR"

    def test_owner_cancel_restores_stock(self, customer_client, placed_order, generator, part):
        resp = customer_client.put(f"/api/orders/{placed_order.pk}/", {"action": "cancel"}, format="json")

        assert resp.status_code == 200
        assert resp.data["status"] == Order.Status.CANCELLED
        generator.refresh_from_db()
        part.refresh_from_db()
        assert generator.stock == 5
        assert part.stock == 20
        assert AuditLog.objects.filter(action="CANCEL", entity="ORDER", entity_id=str(placed_order.pk)).exists()

    def test_owner_cancel_of_paid_order_marks_refunded(self, customer_client, placed_order):
        Order.objects.filter(pk=placed_order.pk).update(payment_status=Order.PaymentStatus.PAID)
        resp = customer_client.put(f"/api/orders/{placed_order.pk}/", {"action": "cancel"}, format="json")
        assert resp.data["payment_status"] == Order.PaymentStatus.REFUNDED

    def test_owner_cannot_cancel_after_confirmation(self, customer_client, placed_order):
        Order.objects.filter(pk=placed_order.pk).update(status=Order.Status.CONFIRMED)
        resp = customer_client.put(f"/api/orders/{placed_order.pk}/", {"action": "cancel"}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "Only pending orders can be cancelled"}

    def test_unknown_action(self, customer_client, placed_order):
        resp = customer_client.put(f"/api/orders/{placed_order.pk}/", {"action": "ship"}, format="json")
        assert resp.status_code == 400
        assert resp.data["detail"] == "action: Invalid action"


class TestAdminOrderUpdate:
    def test_cancel_paid_order_restores_stock_and_refunds(
        self, admin_client_api, placed_order, generator, part, django_capture_on_commit_callbacks,
    ):
        Order.objects.filter(pk=placed_order.pk).update(payment_status=Order.PaymentStatus.PAID)
        mail.outbox.clear()

        with django_capture_on_commit_callbacks(execute=True):
            resp = admin_client_api.put(_admin_url(placed_order), {"status": "CANCELLED"}, format="json")

        assert resp.status_code == 200, resp.data
        assert resp.data["success"] is True
        assert resp.data["order"]["status"] == "CANCELLED"
        assert resp.data["order"]["payment_status"] == "REFUNDED"

        generator.refresh_from_db()
        part.refresh_from_db()
        assert generator.stock == 5
        assert part.stock == 20

        subjects = [m.subject for m in mail.outbox]
        assert f"Order Cancelled - #{placed_order.order_number}" in subjects
        assert f"Refund Processed - Order #{placed_order.order_number}" in subjects

    def test_cancel_unpaid_order_keeps_stock(self, admin_client_api, placed_order, generator):
        resp = admin_client_api.put(_admin_url(placed_order), {"status": "CANCELLED"}, format="json")
        assert resp.data["order"]["payment_status"] == "PENDING"
        generator.refresh_from_db()
        assert generator.stock == 3

    def test_cancelling_twice_restores_once(self, admin_client_api, placed_order, generator):
        Order.objects.filter(pk=placed_order.pk).update(payment_status=Order.PaymentStatus.PAID)
        admin_client_api.put(_admin_url(placed_order), {"status": "CANCELLED"}, format="json")
        admin_client_api.put(_admin_url(placed_order), {"status": "CANCELLED"}, format="json")
        generator.refresh_from_db()
        assert generator.stock == 5

    def test_reopened_order_is_not_restocked_again(
        self, admin_client_api, customer_client, placed_order, generator, part,
    ):
        url = _admin_url(placed_order)
        admin_client_api.patch(url, {"payment_status": "PAID"}, format="json")
        admin_client_api.patch(url, {"status": "CANCELLED"}, format="json")
        admin_client_api.patch(url, {"status": "PENDING"}, format="json")

        resp = customer_client.put(f"/api/orders/{placed_order.pk}/", {"action": "cancel"}, format="json")
        assert resp.status_code == 200
        assert resp.data["status"] == "CANCELLED"

        # paid again and cancelled again by the admin
        admin_client_api.patch(url, {"status": "PENDING", "payment_status": "PAID"}, format="json")
        admin_client_api.patch(url, {"status": "CANCELLED"}, format="json")

        generator.refresh_from_db()
        part.refresh_from_db()
        assert generator.stock == 5
        assert part.stock == 20
        placed_order.refresh_from_db()
        assert placed_order.stock_restored is True
        assert placed_order.payment_status == Order.PaymentStatus.REFUNDED

    def test_shipping_sends_tracking_email(
        self, staff_client, placed_order, customer, django_capture_on_commit_callbacks,
    ):
        mail.outbox.clear()
        body = {"status": "SHIPPED", "tracking_number": "TCS-998877", "carrier": "TCS"}
        with django_capture_on_commit_callbacks(execute=True):
            resp = staff_client.patch(_admin_url(placed_order), body, format="json")

        assert resp.status_code == 200
        placed_order.refresh_from_db()
        assert placed_order.tracking_number == "TCS-998877"
        assert placed_order.carrier == "TCS"

        note = Notification.objects.get(user=customer, type=Notification.Type.ORDER_UPDATE)
        assert "SHIPPED" in note.message
        [msg] = mail.outbox
        assert msg.subject == f"Your Order Has Been Shipped - #{placed_order.order_number}"
        assert "TCS-998877" in msg.body

    def test_delivered_sets_timestamp(self, admin_client_api, placed_order):
        admin_client_api.put(_admin_url(placed_order), {"status": "DELIVERED"}, format="json")
        placed_order.refresh_from_db()
        assert placed_order.delivered_at is not None

    def test_payment_received(self, admin_client_api, placed_order, customer, django_capture_on_commit_callbacks):
        mail.outbox.clear()
        with django_capture_on_commit_callbacks(execute=True):
            admin_client_api.put(_admin_url(placed_order), {"payment_status": "PAID"}, format="json")

        placed_order.refresh_from_db()
        assert placed_order.paid_at is not None
        assert Notification.objects.filter(user=customer, type=Notification.Type.PAYMENT_RECEIVED).exists()
        assert [m.subject for m in mail.outbox] == [f"Payment Received - Order #{placed_order.order_number}"]

    def test_internal_notes_mail_the_other_role(
        self, staff_client, admin_user, placed_order, django_capture_on_commit_callbacks,
    ):
        mail.outbox.clear()
        with django_capture_on_commit_callbacks(execute=True):
            staff_client.put(_admin_url(placed_order), {"internal_notes": "Customer asked for evening delivery"},
                             format="json")

        [msg] = mail.outbox
        assert msg.to == [admin_user.email]
        assert msg.subject == f"New Internal Note - Order #{placed_order.order_number}"

    def test_update_is_audited(self, admin_client_api, placed_order):
        admin_client_api.put(_admin_url(placed_order), {"status": "CONFIRMED"}, format="json")
        log = AuditLog.objects.get(action="UPDATE", entity="ORDER")
        assert log.old_values == {"status": "PENDING", "payment_status": "PENDING"}
        assert log.new_values["status"] == "CONFIRMED"

        resp = admin_client_api.get(_admin_url(placed_order))
        assert resp.status_code == 200
        assert len(resp.data["audit_logs"]) == 1
        assert resp.data["internal_notes"] == ""

    def test_invalid_status(self, admin_client_api, placed_order):
        resp = admin_client_api.put(_admin_url(placed_order), {"status": "LOST"}, format="json")
        assert resp.status_code == 400
        assert resp.data["detail"].startswith("status:")

    def test_unknown_order(self, admin_client_api, db):
        resp = admin_client_api.put("/api/admin/orders/999/", {"status": "CONFIRMED"}, format="json")
        assert resp.status_code == 404
        assert resp.data == {"detail": "Order not found"}

    def test_customer_is_rejected(self, customer_client, placed_order):
        resp = customer_client.put(_admin_url(placed_order), {"status": "CONFIRMED"}, format="json")
        assert resp.status_code == 401


class TestAdminOrderListAndDelete:
    def test_list_with_stats(self, staff_client, placed_order):
        Order.objects.filter(pk=placed_order.pk).update(payment_status=Order.PaymentStatus.PAID)
        resp = staff_client.get("/api/admin/orders/")
        assert resp.status_code == 200
        stats = resp.data["stats"]
        assert stats["total_orders"] == 1
        assert stats["by_status"] == {"PENDING": 1}
        assert stats["by_payment_status"] == {"PAID": 1}
        assert Decimal(stats["revenue"]) == placed_order.total
        assert resp.data["results"][0]["user"]["email"] == "buyer@example.com"

    def test_search_and_filters(self, staff_client, placed_order):
        assert len(staff_client.get("/api/admin/orders/?search=ali").data["results"]) == 1
        assert len(staff_client.get(f"/api/admin/orders/?search={placed_order.order_number}").data["results"]) == 1
        assert staff_client.get("/api/admin/orders/?search=nobody").data["results"] == []
        assert staff_client.get("/api/admin/orders/?status=DELIVERED").data["results"] == []

    def test_delete_requires_cancelled(self, admin_client_api, placed_order):
        resp = admin_client_api.delete(_admin_url(placed_order))
        assert resp.status_code == 400
        assert resp.data == {"detail": "Only cancelled orders can be deleted"}

        Order.objects.filter(pk=placed_order.pk).update(status=Order.Status.CANCELLED)
        resp = admin_client_api.delete(_admin_url(placed_order))
        assert resp.status_code == 204
        assert not Order.objects.filter(pk=placed_order.pk).exists()
        assert AuditLog.objects.filter(action="DELETE", entity="ORDER").exists()

    def test_staff_cannot_delete(self, staff_client, placed_order):
        Order.objects.filter(pk=placed_order.pk).update(status=Order.Status.CANCELLED)
        assert staff_client.delete(_admin_url(placed_order)).status_code == 401
