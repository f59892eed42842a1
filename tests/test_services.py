from decimal import Decimal

import pytest
from django.core import mail

from store.models import AuditLog, Notification, ServiceRequest

pytestmark = pytest.mark.django_db

SERVICES_URL = "/api/services/"


@pytest.fixture
def service_payload():
    return {
        "contact_name": "Ali Buyer",
        "contact_phone": "03001234567",
        "contact_email": "buyer@example.com",
        "service_address": "Plot 7, I-10 Industrial Area",
        "service_city": "Islamabad",
        "service_state": "ICT",
        "service_type": "REPAIR",
        "generator_brand": "Perkins",
        "problem_title": "Will not start",
        "problem_description": "The generator cranks but does not start after the last rain.",
    }


@pytest.fixture
def service_request(customer_client, service_payload):
    resp = customer_client.post(SERVICES_URL, service_payload, format="json")
    assert resp.status_code == 201
    return ServiceRequest.objects.get(pk=resp.data["service_request"]["id"])


class TestCreateServiceRequest:
    def test_create_notifies_everyone(
        self, customer_client, customer, admin_user, staff_user, service_payload,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            resp = customer_client.post(SERVICES_URL, service_payload, format="json")

        assert resp.status_code == 201, resp.data
        sr = ServiceRequest.objects.get()
        assert sr.request_number.startswith("SRV-")
        assert sr.priority == ServiceRequest.Priority.NORMAL
        assert sr.status == ServiceRequest.Status.PENDING

        kind = Notification.Type.SERVICE_REQUEST_SUBMITTED
        assert Notification.objects.get(user=customer, type=kind).title == "Service Request Submitted"
        assert Notification.objects.get(user=admin_user, type=kind).link == f"/admin/services/{sr.pk}"
        assert Notification.objects.get(user=staff_user, type=kind).link == f"/staff/services/{sr.pk}"

        recipients = sorted(addr for m in mail.outbox for addr in m.to)
        assert recipients == ["admin@pakautose.com", "buyer@example.com", "staff@pakautose.com"]

    def test_short_description(self, customer_client, service_payload):
        resp = customer_client.post(SERVICES_URL, {**service_payload, "problem_description": "Broken"}, format="json")
        assert resp.status_code == 400
        assert resp.data["detail"] == "problem_description: Please describe the problem in detail"

    def test_list_only_own(self, customer_client, other_client, service_request):
        assert customer_client.get(SERVICES_URL).data["pagination"]["total"] == 1
        assert other_client.get(SERVICES_URL).data["pagination"]["total"] == 0
        assert other_client.get(f"{SERVICES_URL}{service_request.pk}/").status_code == 404


class TestOwnerCancel:
    def test_cancel_pending(self, customer_client, service_request):
        resp = customer_client.put(f"{SERVICES_URL}{service_request.pk}/", {"action": "cancel"}, format="json")
        assert resp.status_code == 200
        assert resp.data["status"] == "CANCELLED"

    def test_cannot_cancel_once_reviewed(self, customer_client, service_request):
        ServiceRequest.objects.filter(pk=service_request.pk).update(status=ServiceRequest.Status.REVIEWING)
        resp = customer_client.put(f"{SERVICES_URL}{service_request.pk}/", {"action": "cancel"}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "Only pending requests can be cancelled"}


class TestAdminServiceUpdate:
    def _url(self, sr):
        return f"/api/admin/services/{sr.pk}/"

    def test_quote_sets_quoted_at_and_notifies(
        self, staff_client, customer, service_request, django_capture_on_commit_callbacks,
    ):
        mail.outbox.clear()
        body = {"status": "QUOTED", "estimated_cost": "15000", "quoted_price": "15000"}
        with django_capture_on_commit_callbacks(execute=True):
            resp = staff_client.put(self._url(service_request), body, format="json")

        assert resp.status_code == 200, resp.data
        service_request.refresh_from_db()
        assert service_request.quoted_price == Decimal("15000.00")
        assert service_request.quoted_at is not None
        assert Notification.objects.filter(user=customer, type=Notification.Type.SERVICE_UPDATE).exists()

        [msg] = mail.outbox
        assert msg.subject == f"Service Request Update - {service_request.request_number}"
        assert "Estimated cost: Rs. 15,000" in msg.body

    def test_completed_sets_completed_at(self, admin_client_api, service_request):
        admin_client_api.put(self._url(service_request), {"status": "COMPLETED"}, format="json")
        service_request.refresh_from_db()
        assert service_request.completed_at is not None

    def test_internal_notes_from_admin_reach_staff(
        self, admin_client_api, staff_user, service_request, django_capture_on_commit_callbacks,
    ):
        mail.outbox.clear()
        with django_capture_on_commit_callbacks(execute=True):
            admin_client_api.patch(self._url(service_request), {"internal_notes": "Send Bilal"}, format="json")
        [msg] = mail.outbox
        assert msg.to == [staff_user.email]

    def test_detail_includes_audit_trail(self, staff_client, service_request):
        staff_client.put(self._url(service_request), {"priority": "URGENT"}, format="json")
        assert AuditLog.objects.filter(entity="SERVICE_REQUEST", action="UPDATE").count() == 1

        resp = staff_client.get(self._url(service_request))
        assert resp.data["priority"] == "URGENT"
        assert len(resp.data["audit_logs"]) == 1

    def test_list_filters_and_stats(self, staff_client, service_request):
        resp = staff_client.get("/api/admin/services/", {"status": "PENDING"})
        assert resp.data["pagination"]["total"] == 1
        assert resp.data["stats"]["by_status"] == {"PENDING": 1}
        assert staff_client.get("/api/admin/services/", {"search": "will not"}).data["pagination"]["total"] == 1
        assert staff_client.get("/api/admin/services/", {"status": "COMPLETED"}).data["results"] == []

    def test_customer_is_rejected(self, customer_client, service_request):
        assert customer_client.get("/api/admin/services/").status_code == 401
