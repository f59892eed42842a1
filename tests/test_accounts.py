import re

import pytest
from django.core import mail

from store.models import Notification, User

pytestmark = pytest.mark.django_db


@pytest.fixture
def register_payload():
    return {
        "name": "Hamza Khan",
        "email": "Hamza@Example.com",
        "password": "Generator1",
        "confirm_password": "Generator1",
        "phone": "03331234567",
    }


class TestRegister:
    def test_register_sends_verification(self, api_client, register_payload):
        resp = api_client.post("/api/auth/register/", register_payload, format="json")

        assert resp.status_code == 201, resp.data
        assert resp.data["ok"] is True
        assert resp.data["email_sent"] is True
        assert resp.data["user"]["email"] == "hamza@example.com"
        assert resp.data["user"]["email_verified"] is False

        user = User.objects.get(email="hamza@example.com")
        assert user.role == User.Role.USER
        assert user.email_verification_token
        assert Notification.objects.filter(user=user, type=Notification.Type.WELCOME).exists()

        [msg] = mail.outbox
        assert msg.to == ["hamza@example.com"]
        assert user.email_verification_token in msg.body

    def test_duplicate_email(self, api_client, customer, register_payload):
        resp = api_client.post("/api/auth/register/", {**register_payload, "email": "BUYER@example.com"}, format="json")
        assert resp.status_code == 409
        assert resp.data == {"detail": "An account with this email already exists"}

    @pytest.mark.parametrize("password, message", [
        ("Short1", "password: Password must be at least 8 characters"),
        ("alllowercase1", "password: Password must contain at least one uppercase letter, "
                          "one lowercase letter, and one number"),
    ])
    def test_password_policy(self, api_client, register_payload, password, message):
        body = {**register_payload, "password": password, "confirm_password": password}
        resp = api_client.post("/api/auth/register/", body, format="json")
        assert resp.status_code == 400
        assert resp.data["detail"] == message

    def test_passwords_must_match(self, api_client, register_payload):
        resp = api_client.post("/api/auth/register/", {**register_payload, "confirm_password": "Other1234"},
                               format="json")
        assert resp.status_code == 400
        assert resp.data["detail"] == "confirm_password: Passwords don't match"


class TestVerifyAndLogin:
    def _register(self, api_client, payload):
        api_client.post("/api/auth/register/", payload, format="json")
        return User.objects.get(email="hamza@example.com")

    def test_unverified_user_cannot_login(self, api_client, register_payload):
        self._register(api_client, register_payload)
        resp = api_client.post("/api/auth/login/", {"email": "hamza@example.com", "password": "Generator1"},
                               format="json")
        assert resp.status_code == 401
        assert resp.data == {"detail": "Please verify your email before logging in"}

    def test_verify_then_login(self, api_client, register_payload):
        user = self._register(api_client, register_payload)
        resp = api_client.post("/api/auth/verify-email/",
                               {"user_id": user.pk, "token": user.email_verification_token}, format="json")
        assert resp.status_code == 200
        assert resp.data["user"]["email_verified"] is True

        resp = api_client.post("/api/auth/login/", {"email": "HAMZA@example.com", "password": "Generator1"},
                               format="json")
        assert resp.status_code == 200
        assert api_client.get("/api/auth/me/").data["email"] == "hamza@example.com"

        api_client.post("/api/auth/logout/")
        assert api_client.get("/api/auth/me/").status_code == 401

    def test_verify_link_renders_page(self, api_client, register_payload):
        user = self._register(api_client, register_payload)
        resp = api_client.get("/api/auth/verify-email/",
                              {"user_id": user.pk, "token": user.email_verification_token})
        assert resp.status_code == 200
        assert b"verified" in resp.content
        user.refresh_from_db()
        assert user.email_verified_at is not None
        assert user.email_verification_token == ""

    def test_bad_token(self, api_client, register_payload):
        user = self._register(api_client, register_payload)
        resp = api_client.post("/api/auth/verify-email/", {"user_id": user.pk, "token": "nope"}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "Invalid or expired verification link"}

    def test_unknown_user(self, api_client):
        resp = api_client.post("/api/auth/verify-email/", {"user_id": 999, "token": "x"}, format="json")
        assert resp.status_code == 404

    def test_wrong_password(self, api_client, customer):
        resp = api_client.post("/api/auth/login/", {"email": customer.email, "password": "Wrong1234"}, format="json")
        assert resp.status_code == 401
        assert resp.data == {"detail": "Invalid email or password"}

    def test_blocked_user(self, api_client, customer):
        customer.is_active = False
        customer.save()
        resp = api_client.post("/api/auth/login/", {"email": customer.email, "password": "Secret123"}, format="json")
        assert resp.status_code == 401
        assert resp.data["detail"] == "Your account has been blocked. Please contact support."


class TestNotifications:
    def _notify(self, user, n):
        for i in range(n):
            Notification.objects.create(user=user, type=Notification.Type.SYSTEM, title=f"Note {i}", message="Hi")

    def test_list_with_unread_count(self, customer_client, customer, other_customer):
        self._notify(customer, 3)
        self._notify(other_customer, 2)
        resp = customer_client.get("/api/notifications/")
        assert resp.status_code == 200
        assert resp.data["unread_count"] == 3
        assert resp.data["pagination"]["total"] == 3

    def test_mark_one_and_all_read(self, customer_client, customer):
        self._notify(customer, 3)
        first = Notification.objects.filter(user=customer).first()

        assert customer_client.post(f"/api/notifications/{first.pk}/read/").status_code == 200
        assert customer_client.get("/api/notifications/", {"unread": "1"}).data["pagination"]["total"] == 2

        resp = customer_client.post("/api/notifications/read-all/")
        assert resp.data == {"ok": True, "updated": 2}
        assert customer_client.get("/api/notifications/").data["unread_count"] == 0

    def test_cannot_read_someone_elses(self, customer_client, other_customer):
        self._notify(other_customer, 1)
        note = Notification.objects.get()
        resp = customer_client.post(f"/api/notifications/{note.pk}/read/")
        assert resp.status_code == 404
        assert resp.data == {"detail": "Notification not found"}


class TestPasswordReset:
    URL = "/api/auth/reset-password/"

    def _request_link(self, api_client, email):
        resp = api_client.post("/api/auth/forgot-password/", {"email": email}, format="json")
        assert resp.status_code == 200
        return resp

    def _uid_and_token(self):
        [msg] = mail.outbox
        match = re.search(r"reset-password\?uid=([\w-]+)&token=([\w-]+)", msg.body)
        return match.group(1), match.group(2)

    def test_unknown_email_gets_same_answer(self, api_client, customer):
        resp = self._request_link(api_client, "nobody@example.com")
        assert resp.data["success"] is True
        assert mail.outbox == []

    def test_reset_then_login(self, api_client, customer):
        resp = self._request_link(api_client, "BUYER@example.com")
        assert resp.data["message"].startswith("If an account with that email exists")
        uid, token = self._uid_and_token()

        assert api_client.get(self.URL, {"uid": uid, "token": token}).data == {"valid": True}

        resp = api_client.post(self.URL, {"uid": uid, "token": token, "password": "NewSecret9"}, format="json")
        assert resp.status_code == 200, resp.data

        login = api_client.post("/api/auth/login/", {"email": customer.email, "password": "NewSecret9"},
                                format="json")
        assert login.status_code == 200

    def test_link_works_once(self, api_client, customer):
        self._request_link(api_client, customer.email)
        uid, token = self._uid_and_token()
        api_client.post(self.URL, {"uid": uid, "token": token, "password": "NewSecret9"}, format="json")

        resp = api_client.post(self.URL, {"uid": uid, "token": token, "password": "Another99"}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "Invalid or expired reset token"}
        assert api_client.get(self.URL, {"uid": uid, "token": token}).data == {"valid": False}

    def test_weak_password(self, api_client, customer):
        self._request_link(api_client, customer.email)
        uid, token = self._uid_and_token()
        resp = api_client.post(self.URL, {"uid": uid, "token": token, "password": "weakpass"}, format="json")
        assert resp.status_code == 400
        assert resp.data["detail"].startswith("password: Password must contain")

    def test_garbage_uid(self, api_client):
        resp = api_client.post(self.URL, {"uid": "!!", "token": "x", "password": "NewSecret9"}, format="json")
        assert resp.status_code == 400


class TestProfile:
    URL = "/api/user/profile/"

    def test_read_and_update(self, customer_client, customer):
        assert customer_client.get(self.URL).data["email"] == customer.email

        resp = customer_client.put(self.URL, {"name": "  Ali Khan ", "phone": "03009998887", "email": "x@x.com"},
                                   format="json")
        assert resp.status_code == 200, resp.data
        customer.refresh_from_db()
        assert customer.name == "Ali Khan"
        assert customer.phone == "03009998887"
        assert customer.email == "buyer@example.com"

    def test_short_name(self, customer_client):
        resp = customer_client.patch(self.URL, {"name": "A"}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "name: Name must be at least 2 characters"}

    def test_requires_login(self, api_client):
        assert api_client.get(self.URL).status_code == 401


class TestChangePassword:
    URL = "/api/user/password/"

    def test_change_keeps_session(self, customer_client, customer):
        resp = customer_client.put(self.URL, {"current_password": "Secret123", "new_password": "Fresh1234"},
                                   format="json")
        assert resp.status_code == 200, resp.data
        customer.refresh_from_db()
        assert customer.check_password("Fresh1234")
        assert customer_client.get("/api/auth/me/").status_code == 200

    @pytest.mark.parametrize("body, message", [
        ({"current_password": "Wrong1234", "new_password": "Fresh1234"},
         "current_password: Current password is incorrect"),
        ({"current_password": "Secret123", "new_password": "Secret123"},
         "new_password: New password must be different from current password"),
        ({"current_password": "Secret123", "new_password": "short"},
         "new_password: Password must be at least 8 characters"),
        ({"new_password": "Fresh1234"},
         "current_password: Current password and new password are required"),
    ])
    def test_rejected(self, customer_client, customer, body, message):
        resp = customer_client.put(self.URL, body, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": message}
        customer.refresh_from_db()
        assert customer.check_password("Secret123")
