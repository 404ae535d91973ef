import pytest


@pytest.fixture
def variants(client, admin_headers):
    shirt = client.post(
        "/products", json={"name": "Club Shirt", "sku": "SH-1", "price_regular": 50.0}, headers=admin_headers
    ).json()
    cap = client.post(
        "/products", json={"name": "Club Cap", "sku": "CP-1", "price_regular": 20.0}, headers=admin_headers
    ).json()
    shirt_variant = client.post(
        f"/products/{shirt['id']}/variants", json={"stock_quantity": 5}, headers=admin_headers
    ).json()
    cap_variant = client.post(
        f"/products/{cap['id']}/variants", json={"stock_quantity": 1}, headers=admin_headers
    ).json()
    return shirt_variant, cap_variant


@pytest.fixture
def coupon(client, admin_headers):
    response = client.post(
        "/coupons",
        json={"code": "save10", "discount_type": "percentage", "discount_value": 10, "minimum_amount": 50, "usage_limit": 2},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


class TestCoupons:
    def test_created_upper_case(self, coupon):
        assert coupon["code"] == "SAVE10"
        assert coupon["discount_type"] == "percentage"
        assert coupon["used_count"] == 0

    def test_duplicate_code(self, client, admin_headers, coupon):
        response = client.post(
            "/coupons", json={"code": "SAVE10", "discount_type": "fixed_amount", "discount_value": 5}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_key"

    def test_validate_below_and_above_minimum(self, client, customer_headers, coupon):
        below = client.post("/coupons/validate", json={"code": "save10", "cart_total": 40}, headers=customer_headers)
        assert below.status_code == 200
        assert below.json() == {
            "valid": False, "reason": "coupon_minimum_not_met", "coupon": None, "discount_amount": 0,
        }

        above = client.post("/coupons/validate", json={"code": "save10", "cart_total": 60}, headers=customer_headers).json()
        assert above["valid"] is True
        assert above["discount_amount"] == 6.0
        assert above["coupon"]["code"] == "SAVE10"

    def test_customer_cannot_list_or_redeem(self, client, customer_headers, coupon):
        assert client.get("/coupons", headers=customer_headers).status_code == 403
        assert client.post(f"/coupons/{coupon['id']}/redeem", headers=customer_headers).status_code == 403

    def test_redeem_until_limit(self, client, admin_headers, coupon):
        cid = coupon["id"]
        assert client.post(f"/coupons/{cid}/redeem", headers=admin_headers).json()["used_count"] == 1
        assert client.post(f"/coupons/{cid}/redeem", headers=admin_headers).json()["used_count"] == 2

        response = client.post(f"/coupons/{cid}/redeem", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "coupon_limit_reached"

    def test_unknown_coupon(self, client, admin_headers):
        response = client.get("/coupons/404", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "coupon_not_found"

    def test_validate_with_cart_products(self, client, admin_headers, customer_headers, coupon):
        client.patch(f"/coupons/{coupon['id']}", json={"excluded_products": [7]}, headers=admin_headers)
        blocked = client.post(
            "/coupons/validate", json={"code": "SAVE10", "cart_total": 60, "product_ids": [3, 7]}, headers=customer_headers
        )
        assert blocked.json()["reason"] == "coupon_not_applicable"

        allowed = client.post(
            "/coupons/validate", json={"code": "SAVE10", "cart_total": 60, "product_ids": [3]}, headers=customer_headers
        )
        assert allowed.json()["valid"] is True

    def test_validate_per_user_limit(self, client, admin_headers, customer_headers, other_customer_headers, variants):
        created = client.post(
            "/coupons",
            json={"code": "ONCE", "discount_type": "fixed_amount", "discount_value": 5, "usage_limit_per_user": 1},
            headers=admin_headers,
        )
        assert created.json()["usage_limit_per_user"] == 1
        shirt, _ = variants
        placed = client.post(
            "/orders", json={"lines": [{"variant_id": shirt["id"], "quantity": 1}], "coupon_code": "ONCE"},
            headers=customer_headers,
        )
        assert placed.status_code == 201

        again = client.post("/coupons/validate", json={"code": "ONCE", "cart_total": 50}, headers=customer_headers)
        assert again.json()["reason"] == "coupon_user_limit_reached"
        other = client.post("/coupons/validate", json={"code": "ONCE", "cart_total": 50}, headers=other_customer_headers)
        assert other.json()["valid"] is True

    def test_update_rejects_code_change(self, client, admin_headers, coupon):
        response = client.patch(f"/coupons/{coupon['id']}", json={"code": "OTHER"}, headers=admin_headers)
        assert response.status_code == 422


class TestOrders:
    def test_place_order_with_coupon(self, client, admin_headers, customer_headers, variants, coupon):
        shirt, _ = variants
        response = client.post(
            "/orders",
            json={"lines": [{"variant_id": shirt["id"], "quantity": 2}], "coupon_code": "SAVE10"},
            headers=customer_headers,
        )
        assert response.status_code == 201
        order = response.json()
        assert (order["subtotal"], order["discount_amount"], order["total_amount"]) == (100.0, 10.0, 90.0)
        assert order["coupon_code"] == "SAVE10"
        assert order["items"][0]["line_total"] == 100.0

        assert client.get(f"/variants/{shirt['id']}").json()["stock_quantity"] == 3
        usages = client.get(f"/coupons/{coupon['id']}/usages", headers=admin_headers).json()
        assert [u["order_id"] for u in usages] == [order["id"]]

        analytics = client.get(f"/coupons/{coupon['id']}/analytics", headers=admin_headers)
        assert analytics.status_code == 200
        assert analytics.json() == {
            "coupon_id": coupon["id"], "coupon_code": "SAVE10", "usage_count": 1,
            "discount_amount": 10.0, "revenue_generated": 100.0, "average_order_value": 100.0,
        }
        assert client.get(f"/coupons/{coupon['id']}/analytics", headers=customer_headers).status_code == 403

    def test_failed_intent_changes_nothing(self, client, admin_headers, customer_headers, variants, coupon):
        shirt, cap = variants
        response = client.post(
            "/orders",
            json={
                "lines": [{"variant_id": shirt["id"], "quantity": 2}, {"variant_id": cap["id"], "quantity": 2}],
                "coupon_code": "SAVE10",
            },
            headers=customer_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "insufficient_stock"

        assert client.get(f"/variants/{shirt['id']}").json()["stock_quantity"] == 5
        assert client.get(f"/variants/{cap['id']}").json()["stock_quantity"] == 1
        assert client.get(f"/coupons/{coupon['id']}", headers=admin_headers).json()["used_count"] == 0
        assert client.get("/orders", headers=customer_headers).json()["total"] == 0

        failures = client.get("/logs?action=ORDER_PLACE&status=FAIL", headers=admin_headers).json()
        assert failures["total"] == 1
        assert failures["items"][0]["meta"]["error"] == "insufficient_stock"

    def test_coupon_minimum_blocks_order(self, client, customer_headers, variants, coupon):
        _, cap = variants
        response = client.post(
            "/orders",
            json={"lines": [{"variant_id": cap["id"], "quantity": 1}], "coupon_code": "SAVE10"},
            headers=customer_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "coupon_minimum_not_met"
        assert client.get(f"/variants/{cap['id']}").json()["stock_quantity"] == 1

    def test_empty_and_invalid_lines(self, client, customer_headers, variants):
        shirt, _ = variants
        empty = client.post("/orders", json={"lines": []}, headers=customer_headers)
        assert empty.status_code == 422
        assert empty.json()["error"] == "validation_error"

        zero = client.post("/orders", json={"lines": [{"variant_id": shirt["id"], "quantity": 0}]}, headers=customer_headers)
        assert zero.status_code == 422

    def test_orders_are_private(self, client, admin_headers, customer_headers, other_customer_headers, variants):
        shirt, _ = variants
        order = client.post(
            "/orders", json={"lines": [{"variant_id": shirt["id"], "quantity": 1}]}, headers=customer_headers
        ).json()

        assert client.get(f"/orders/{order['id']}", headers=customer_headers).status_code == 200
        assert client.get(f"/orders/{order['id']}", headers=other_customer_headers).status_code == 404
        assert client.get(f"/orders/{order['id']}", headers=admin_headers).status_code == 200
        assert client.get("/orders", headers=other_customer_headers).json()["total"] == 0
