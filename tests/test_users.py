from decimal import Decimal

import pytest

from store.models import AuditLog, Order, SiteSetting, User

pytestmark = pytest.mark.django_db

USERS_URL = "/api/admin/users/"


def _paid_order(user, total):
    return Order.objects.create(
        order_number=f"ORD-U{user.pk}-{total}", user=user, shipping_name="A", shipping_phone="03001234567",
        shipping_email=user.email, shipping_address_line="Somewhere 1", shipping_city="Lahore",
        shipping_state="Punjab", shipping_postal_code="54000", subtotal=Decimal(total), total=Decimal(total),
        payment_method="CASH_ON_DELIVERY", payment_status="PAID",
    )


class TestAdminUserList:
    def test_list_with_totals_and_stats(self, staff_client, customer, admin_user, staff_user):
        _paid_order(customer, "1500")
        _paid_order(customer, "2500")

        resp = staff_client.get(USERS_URL, {"role": "USER"})
        assert resp.status_code == 200
        [row] = resp.data["results"]
        assert row["email"] == customer.email
        assert row["order_count"] == 2
        assert row["total_spent"] == "4000.00"
        assert resp.data["stats"]["by_role"] == {"USER": 1, "STAFF": 1, "ADMIN": 1}

    def test_search(self, staff_client, customer, other_customer):
        resp = staff_client.get(USERS_URL, {"search": "sara"})
        assert [u["email"] for u in resp.data["results"]] == [other_customer.email]

    def test_detail_has_recent_orders(self, staff_client, customer):
        _paid_order(customer, "1500")
        resp = staff_client.get(f"{USERS_URL}{customer.pk}/")
        assert resp.status_code == 200
        assert [o["total"] for o in resp.data["recent_orders"]] == ["1500.00"]
        assert resp.data["recent_service_requests"] == []

    def test_customer_is_rejected(self, customer_client):
        assert customer_client.get(USERS_URL).status_code == 401


class TestAdminUserUpdate:
    def test_promote_and_audit(self, admin_client_api, customer):
        resp = admin_client_api.patch(f"{USERS_URL}{customer.pk}/", {"role": "STAFF"}, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["role"] == "STAFF"
        customer.refresh_from_db()
        assert customer.is_staff_member
        log = AuditLog.objects.get(entity="USER", action="UPDATE")
        assert log.old_values == {"role": "USER"}
        assert log.new_values == {"role": "STAFF"}

    def test_blocked_user_loses_access(self, admin_client_api, customer, customer_client):
        resp = admin_client_api.patch(f"{USERS_URL}{customer.pk}/", {"is_active": False}, format="json")
        assert resp.data["is_active"] is False
        assert customer_client.get("/api/auth/me/").status_code == 401

    def test_cannot_change_own_role(self, admin_client_api, admin_user):
        resp = admin_client_api.patch(f"{USERS_URL}{admin_user.pk}/", {"role": "USER"}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "You cannot change your own role"}

    def test_cannot_block_self(self, admin_client_api, admin_user):
        resp = admin_client_api.patch(f"{USERS_URL}{admin_user.pk}/", {"is_active": False}, format="json")
        assert resp.status_code == 400
        assert User.objects.get(pk=admin_user.pk).is_active

    def test_email_taken(self, admin_client_api, customer, other_customer):
        resp = admin_client_api.patch(f"{USERS_URL}{customer.pk}/", {"email": "OTHER@example.com"}, format="json")
        assert resp.status_code == 409
        assert resp.data == {"detail": "A user with this email already exists"}

    def test_unknown_user(self, admin_client_api):
        assert admin_client_api.patch(f"{USERS_URL}9999/", {"name": "Nobody"}, format="json").status_code == 404

    def test_staff_cannot_update(self, staff_client, customer):
        resp = staff_client.patch(f"{USERS_URL}{customer.pk}/", {"role": "ADMIN"}, format="json")
        assert resp.status_code == 401
        assert User.objects.get(pk=customer.pk).role == User.Role.USER


class TestPublicSettings:
    def test_defaults_without_login(self, api_client):
        resp = api_client.get("/api/settings/")
        assert resp.status_code == 200
        assert resp.data["checkout"] == {
            "shipping_cost_default": "500.00",
            "free_shipping_threshold": "50000.00",
            "tax_rate": "0.00",
        }
        assert resp.data["store"]["currency"] == "PKR"

    def test_only_public_groups(self, api_client):
        SiteSetting.objects.create(key="free_shipping_threshold", value="75000", group="checkout")
        SiteSetting.objects.create(key="store_phone", value="+92 300 0000000", group="general")
        SiteSetting.objects.create(key="bank_account", value="PK00XXXX", group="payment")

        resp = api_client.get("/api/settings/")
        assert resp.data["checkout"]["free_shipping_threshold"] == "75000.00"
        assert resp.data["settings"]["general"] == {"store_phone": "+92 300 0000000"}
        assert "payment" not in resp.data["settings"]
