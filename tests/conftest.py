from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from store.models import Category, Coupon, Generator, Part, User


@pytest.fixture(autouse=True)
def _locmem_email(settings):
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.STORE_DEFAULT_SHIPPING_COST = "500"
    settings.STORE_FREE_SHIPPING_THRESHOLD = "50000"
    settings.STORE_TAX_RATE = "0"


def _make_user(email, role, name, **extra):
    extra.setdefault("email_verified_at", timezone.now())
    return User.objects.create_user(email=email, password="Secret123", name=name, role=role, **extra)


@pytest.fixture
def customer(db):
    return _make_user("buyer@example.com", User.Role.USER, "Ali Buyer", phone="03001234567")


@pytest.fixture
def other_customer(db):
    return _make_user("other@example.com", User.Role.USER, "Sara Other")


@pytest.fixture
def staff_user(db):
    return _make_user("staff@pakautose.com", User.Role.STAFF, "Staff Member")


@pytest.fixture
def admin_user(db):
    return _make_user("admin@pakautose.com", User.Role.ADMIN, "Store Admin")


@pytest.fixture
def api_client():
    return APIClient()


def _client_for(user):
    client = APIClient()
    client.force_login(user)
    return client


@pytest.fixture
def customer_client(customer):
    return _client_for(customer)


@pytest.fixture
def other_client(other_customer):
    return _client_for(other_customer)


@pytest.fixture
def staff_client(staff_user):
    return _client_for(staff_user)


@pytest.fixture
def admin_client_api(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def category(db):
    return Category.objects.create(name="Diesel Generators", slug="diesel-generators")


@pytest.fixture
def generator(category):
    return Generator.objects.create(
        name="Perkins 20 kVA",
        slug="perkins-20-kva",
        sku="GEN-PK-20",
        price=Decimal("10000.00"),
        stock=5,
        power_kva=Decimal("20"),
        power_kw=Decimal("16"),
        fuel_type=Generator.FuelType.DIESEL,
        brand="Perkins",
        category=category,
    )


@pytest.fixture
def part(db):
    return Part.objects.create(
        name="Air Filter AF-100",
        slug="air-filter-af-100",
        sku="PRT-AF-100",
        price=Decimal("2500.00"),
        stock=20,
        part_number="AF-100",
        brand="Fleetguard",
    )


@pytest.fixture
def coupon(db):
    return Coupon.objects.create(
        code="SAVE20",
        type=Coupon.Type.PERCENTAGE,
        value=Decimal("20"),
        max_discount=Decimal("3000"),
        starts_at=timezone.now() - timedelta(days=1),
    )


@pytest.fixture
def shipping_payload():
    return {
        "shipping_name": "Ali Buyer",
        "shipping_phone": "03001234567",
        "shipping_email": "buyer@example.com",
        "shipping_address_line": "House 12, Street 4, G-9/2",
        "shipping_city": "Islamabad",
        "shipping_state": "ICT",
        "shipping_postal_code": "44000",
        "payment_method": "CASH_ON_DELIVERY",
    }
