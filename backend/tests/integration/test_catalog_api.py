import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def category(client, admin_headers):
    response = client.post("/categories", json={"name": "Running Shoes"}, headers=admin_headers)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def product(client, admin_headers, category):
    response = client.post(
        "/products",
        json={
            "name": "Trail Runner",
            "sku": "TR-100",
            "price_regular": 120.0,
            "price_sale": 99.0,
            "category_id": category["id"],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuth:
    def test_invalid_token(self, client):
        response = client.post("/categories", json={"name": "Hats"}, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_customer_cannot_mutate_catalog(self, client, customer_headers):
        response = client.post("/categories", json={"name": "Hats"}, headers=customer_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_inactive_listing_needs_staff(self, client, customer_headers):
        assert client.get("/products?include_inactive=true").status_code == 403
        assert client.get("/products?include_inactive=true", headers=customer_headers).status_code == 403


class TestProducts:
    def test_create_and_read(self, client, product):
        assert product["slug"] == "trail-runner"
        assert product["sku"] == "TR-100"
        assert product["is_active"] is True

        by_slug = client.get("/products/slug/trail-runner")
        assert by_slug.status_code == 200
        assert by_slug.json()["id"] == product["id"]

        page = client.get("/products").json()
        assert page["total"] == 1
        assert page["items"][0]["id"] == product["id"]

    def test_duplicate_sku(self, client, admin_headers, product):
        response = client.post(
            "/products",
            json={"name": "Trail Runner 2", "sku": "TR-100", "price_regular": 10},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_key"

    def test_sku_differing_only_in_case(self, client, admin_headers, product):
        response = client.post(
            "/products",
            json={"name": "Trail Runner Lite", "sku": "tr-100", "price_regular": 90},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["sku"] == "tr-100"

    def test_unknown_update_field(self, client, admin_headers, product):
        response = client.patch(f"/products/{product['id']}", json={"colour": "red"}, headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_missing_product(self, client):
        response = client.get("/products/9999")
        assert response.status_code == 404
        assert response.json() == {"detail": "Product 9999 not found", "error": "not_found"}

    def test_cover_image(self, client, admin_headers, product):
        pid = product["id"]
        first = client.post(f"/products/{pid}/images", json={"url": "https://cdn.example.com/a.jpg"}, headers=admin_headers)
        second = client.post(f"/products/{pid}/images", json={"url": "https://cdn.example.com/b.jpg"}, headers=admin_headers)
        assert first.status_code == second.status_code == 201

        assert client.get(f"/products/{pid}").json()["cover_image_url"] == "https://cdn.example.com/a.jpg"

        reordered = client.patch(f"/images/{second.json()['id']}", json={"sort_order": 0}, headers=admin_headers)
        assert reordered.status_code == 200
        client.patch(f"/images/{first.json()['id']}", json={"sort_order": 5}, headers=admin_headers)
        assert client.get(f"/products/{pid}").json()["cover_image_url"] == "https://cdn.example.com/b.jpg"

        images = client.get(f"/products/{pid}/images").json()
        assert [i["url"] for i in images] == ["https://cdn.example.com/b.jpg", "https://cdn.example.com/a.jpg"]


class TestDeactivation:
    def test_category_in_use(self, client, admin_headers, category, product):
        response = client.delete(f"/categories/{category['id']}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "referential_conflict"
        assert client.get(f"/categories/{category['id']}").json()["is_active"] is True

    def test_product_then_category(self, client, admin_headers, category, product):
        variant = client.post(f"/products/{product['id']}/variants", json={"stock_quantity": 3}, headers=admin_headers)
        assert variant.status_code == 201
        assert variant.json()["sku"] == "TR-100"

        assert client.delete(f"/products/{product['id']}", headers=admin_headers).json()["is_active"] is False
        vid = variant.json()["id"]
        assert client.get(f"/variants/{vid}", headers=admin_headers).json()["is_active"] is False
        assert client.get(f"/variants/{vid}").status_code == 404
        assert client.get("/products/slug/trail-runner").status_code == 404

        response = client.delete(f"/categories/{category['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        listing = client.get("/products?include_inactive=true", headers=admin_headers).json()
        assert listing["total"] == 1

    def test_inactive_records_hidden_from_storefront(self, client, admin_headers, customer_headers, category, product):
        pid, cid = product["id"], category["id"]
        client.delete(f"/products/{pid}", headers=admin_headers)
        client.delete(f"/categories/{cid}", headers=admin_headers)

        for path in (f"/products/{pid}", f"/products/{pid}/images", f"/products/{pid}/variants", f"/categories/{cid}"):
            assert client.get(path).status_code == 404
            assert client.get(path, headers=customer_headers).status_code == 404
            assert client.get(path, headers=admin_headers).status_code == 200

        missing = client.get(f"/products/{pid}")
        assert missing.json() == {"detail": f"Product {pid} not found", "error": "not_found"}

    def test_inactive_brand_hidden_from_storefront(self, client, admin_headers):
        brand = client.post("/brands", json={"name": "Acme"}, headers=admin_headers).json()
        assert client.get(f"/brands/{brand['id']}").status_code == 200
        client.delete(f"/brands/{brand['id']}", headers=admin_headers)
        assert client.get(f"/brands/{brand['id']}").status_code == 404
        assert client.get(f"/brands/{brand['id']}", headers=admin_headers).json()["is_active"] is False


class TestStock:
    @pytest.fixture
    def variant(self, client, admin_headers, product):
        sizes = client.post("/sizes", json={"name": "42"}, headers=admin_headers).json()
        colors = client.post("/colors", json={"name": "Blue", "hex": "#0000ff"}, headers=admin_headers).json()
        response = client.post(
            f"/products/{product['id']}/variants",
            json={"size_id": sizes["id"], "color_id": colors["id"], "stock_quantity": 5},
            headers=admin_headers,
        )
        assert response.status_code == 201
        return response.json()

    def test_generated_variant_sku(self, variant):
        assert variant["sku"] == "TR-100-42-BLU"

    def test_adjust_and_history(self, client, admin_headers, variant):
        vid = variant["id"]
        response = client.post(f"/stock/variants/{vid}/adjust", json={"mode": "add", "quantity": 4}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["new_quantity"] == 9

        too_many = client.post(
            f"/stock/variants/{vid}/adjust", json={"mode": "subtract", "quantity": 10}, headers=admin_headers
        )
        assert too_many.status_code == 409
        assert too_many.json()["error"] == "insufficient_stock"
        assert client.get(f"/variants/{vid}").json()["stock_quantity"] == 9

        history = client.get(f"/stock/variants/{vid}/movements", headers=admin_headers).json()
        assert history["total"] == 1
        assert history["items"][0]["type"] == "ADD"

    def test_negative_quantity_rejected(self, client, admin_headers, variant):
        response = client.post(
            f"/stock/variants/{variant['id']}/adjust", json={"mode": "add", "quantity": -2}, headers=admin_headers
        )
        assert response.status_code == 422

    def test_customer_cannot_adjust(self, client, customer_headers, variant):
        response = client.post(
            f"/stock/variants/{variant['id']}/adjust", json={"mode": "set", "quantity": 0}, headers=customer_headers
        )
        assert response.status_code == 403

    def test_low_stock_and_stats(self, client, admin_headers, variant):
        low = client.get("/stock/low?threshold=10", headers=admin_headers).json()
        assert [item["variant_id"] for item in low] == [variant["id"]]
        assert low[0]["product_name"] == "Trail Runner"

        stats = client.get("/stock/stats?threshold=3", headers=admin_headers).json()
        assert stats == {"total_variants": 1, "low_stock": 0, "out_of_stock": 0, "threshold": 3}

    def test_default_threshold_follows_app_settings(self, client, engine, admin_headers, variant):
        assert client.get("/stock/stats", headers=admin_headers).json()["threshold"] == 10
        assert len(client.get("/stock/low", headers=admin_headers).json()) == 1

        app = create_app(app_settings=Settings(LOW_STOCK_THRESHOLD=3), engine=engine)
        with TestClient(app) as strict:
            stats = strict.get("/stock/stats", headers=admin_headers).json()
            low = strict.get("/stock/low", headers=admin_headers).json()
        assert (stats["threshold"], stats["low_stock"]) == (3, 0)
        assert low == []


class TestAuditLog:
    def test_mutations_are_logged(self, client, admin_headers, customer_headers, product):
        logs = client.get("/logs?resource=products", headers=admin_headers)
        assert logs.status_code == 200
        entries = logs.json()["items"]
        assert entries[0]["action"] == "PRODUCT_CREATE"
        assert entries[0]["user_id"] == "admin-1"

        assert client.get("/logs", headers=customer_headers).status_code == 403
