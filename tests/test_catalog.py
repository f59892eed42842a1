from decimal import Decimal

import pytest

from store.models import AuditLog, Category, Generator, Order, Part, SiteSetting

pytestmark = pytest.mark.django_db


class TestPublicCatalog:
    def test_categories_with_counts(self, api_client, generator):
        Category.objects.create(name="Hidden", slug="hidden", is_active=False)
        resp = api_client.get("/api/categories/")
        assert resp.status_code == 200
        assert [c["slug"] for c in resp.data] == ["diesel-generators"]
        assert resp.data[0]["generator_count"] == 1
        assert resp.data[0]["part_count"] == 0

    def test_generators_list_hides_inactive(self, api_client, generator):
        Generator.objects.create(
            name="Old Unit", slug="old-unit", price=Decimal("5000"), power_kva=Decimal("5"),
            power_kw=Decimal("4"), fuel_type="PETROL", brand="Honda", is_active=False,
        )
        resp = api_client.get("/api/generators/")
        assert resp.data["pagination"]["total"] == 1
        assert resp.data["results"][0]["price_formatted"] == "Rs. 10,000"

    def test_generator_filters(self, api_client, generator):
        assert api_client.get("/api/generators/", {"category": "diesel-generators"}).data["pagination"]["total"] == 1
        assert api_client.get("/api/generators/", {"fuel_type": "PETROL"}).data["pagination"]["total"] == 0
        assert api_client.get("/api/generators/", {"brand": "perkins"}).data["pagination"]["total"] == 1
        assert api_client.get("/api/generators/", {"min_price": "20000"}).data["pagination"]["total"] == 0
        assert api_client.get("/api/generators/", {"search": "GEN-PK"}).data["pagination"]["total"] == 1

    def test_lookup_by_slug(self, api_client, part):
        resp = api_client.get(f"/api/parts/{part.slug}/")
        assert resp.status_code == 200
        assert resp.data["part_number"] == "AF-100"
        assert api_client.get("/api/parts/does-not-exist/").status_code == 404

    def test_public_catalog_is_read_only(self, api_client, customer_client):
        assert customer_client.post("/api/parts/", {"name": "x"}, format="json").status_code == 405


class TestAdminCatalog:
    def _generator_body(self, **extra):
        body = {
            "name": "Cummins 100 kVA",
            "slug": "cummins-100-kva",
            "sku": "GEN-CU-100",
            "price": "2500000",
            "stock": 2,
            "power_kva": "100",
            "power_kw": "80",
            "fuel_type": "DIESEL",
            "brand": "Cummins",
        }
        body.update(extra)
        return body

    def test_admin_creates_generator(self, admin_client_api, category):
        resp = admin_client_api.post("/api/admin/generators/", self._generator_body(category_id=category.pk),
                                     format="json")
        assert resp.status_code == 201, resp.data
        assert resp.data["category"]["slug"] == "diesel-generators"
        assert AuditLog.objects.filter(action="CREATE", entity="GENERATOR").exists()

    def test_duplicate_slug_conflicts(self, admin_client_api, generator):
        resp = admin_client_api.post("/api/admin/generators/", self._generator_body(slug=generator.slug),
                                     format="json")
        assert resp.status_code == 409
        assert resp.data == {"detail": "Generator with this slug already exists"}

    def test_duplicate_sku_conflicts(self, admin_client_api, part):
        body = {"name": "Fuel Filter", "slug": "fuel-filter", "sku": part.sku, "price": "900", "stock": 10}
        resp = admin_client_api.post("/api/admin/parts/", body, format="json")
        assert resp.status_code == 409
        assert resp.data == {"detail": "Part with this sku already exists"}

    def test_invalid_slug(self, admin_client_api):
        resp = admin_client_api.post("/api/admin/generators/", self._generator_body(slug="Bad Slug"), format="json")
        assert resp.status_code == 400
        assert resp.data["detail"].startswith("slug:")

    def test_staff_reads_but_cannot_write(self, staff_client, generator):
        assert staff_client.get("/api/admin/generators/").status_code == 200
        resp = staff_client.patch(f"/api/admin/generators/{generator.pk}/", {"stock": 1}, format="json")
        assert resp.status_code == 401

    def test_admin_updates_stock(self, admin_client_api, generator):
        resp = admin_client_api.patch(f"/api/admin/generators/{generator.pk}/", {"stock": 1}, format="json")
        assert resp.status_code == 200
        assert resp.data["is_low_stock"] is True

    def test_duplicate_category_name(self, admin_client_api, category):
        resp = admin_client_api.post("/api/admin/categories/", {"name": category.name, "slug": "other"},
                                     format="json")
        assert resp.status_code == 409


class TestStatsAndSettings:
    def test_stats(self, admin_client_api, customer, generator, part):
        Order.objects.create(
            order_number="ORD-TEST-1", user=customer, shipping_name="A", shipping_phone="03001234567",
            shipping_email="a@example.com", shipping_address_line="Somewhere 1", shipping_city="Lahore",
            shipping_state="Punjab", shipping_postal_code="54000", subtotal=Decimal("1000"),
            total=Decimal("1500"), payment_method="CASH_ON_DELIVERY", payment_status="PAID",
        )
        Part.objects.filter(pk=part.pk).update(stock=3)

        resp = admin_client_api.get("/api/admin/stats/")
        assert resp.status_code == 200
        assert resp.data["orders"]["total"] == 1
        assert resp.data["revenue"]["total"] == "1500.00"
        assert resp.data["users"]["total"] == 1
        assert resp.data["inventory"]["low_stock_parts"] == 1
        assert resp.data["inventory"]["low_stock_generators"] == 1

    def test_stats_admin_only(self, staff_client):
        assert staff_client.get("/api/admin/stats/").status_code == 401

    def test_settings_round_trip(self, admin_client_api):
        resp = admin_client_api.put("/api/admin/settings/", {"settings": [
            {"key": "shipping_cost_default", "value": "800", "group": "checkout"},
            {"key": "store_phone", "value": "+92 300 0000000"},
        ]}, format="json")
        assert resp.status_code == 200, resp.data
        assert resp.data["checkout"]["shipping_cost_default"] == "800.00"
        assert resp.data["settings"]["general"]["store_phone"] == "+92 300 0000000"
        assert AuditLog.objects.filter(entity="SETTINGS").exists()

    def test_bad_checkout_value_writes_nothing(self, admin_client_api):
        resp = admin_client_api.put("/api/admin/settings/", {"settings": [
            {"key": "store_phone", "value": "123"},
            {"key": "tax_rate", "value": "-1"},
        ]}, format="json")
        assert resp.status_code == 400
        assert resp.data == {"detail": "tax_rate must be a non-negative number"}
        assert not SiteSetting.objects.exists()
