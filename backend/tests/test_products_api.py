"""
Product API tests.

Verifies:
- Unauthenticated requests return 401, bad tokens 403
- Catalog writes are admin-only
- Validation reasons surface as 400 with the rule's message
- Status mapping: unknown -> 404, duplicate SKU / size-tracked delta -> 409
"""

import pytest


class TestAuthentication:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("GET", "/api/products/abc"),
            ("GET", "/api/products/barcode/123"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/abc"),
            ("DELETE", "/api/products/abc"),
            ("PATCH", "/api/products/abc/stock"),
            ("PATCH", "/api/products/abc/stock/size"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_token_signed_with_other_secret(self, client, admin_user, headers_for):
        headers = headers_for(admin_user, secret="not-the-configured-secret-value-0000")
        resp = client.get("/api/products", headers=headers)
        assert resp.status_code == 403

    def test_malformed_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 403


class TestCatalogWrites:

    def test_cashier_cannot_create(self, client, cashier_headers, apparel_payload):
        resp = client.post("/api/products", json=apparel_payload, headers=cashier_headers)
        assert resp.status_code == 403

    def test_create_and_fetch(self, client, admin_headers, apparel_payload):
        resp = client.post("/api/products", json=apparel_payload, headers=admin_headers)
        assert resp.status_code == 201
        product_id = resp.get_json()["id"]

        resp = client.get(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["stock"] == 8
        assert body["price"] == 29.9
        assert body["sizes"] == [{"size": "M", "quantity": 5}, {"size": "S", "quantity": 3}]

    def test_simple_product_has_no_sizes_key_value(self, client, admin_headers, simple_payload):
        product_id = client.post("/api/products", json=simple_payload, headers=admin_headers).get_json()["id"]

        body = client.get(f"/api/products/{product_id}", headers=admin_headers).get_json()
        assert body["sizes"] is None
        assert body["stock"] == 10

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"name": ""}, "missing required fields"),
            ({"product_type": "shoes"}, "invalid product type"),
            ({"price": 0}, "invalid price"),
            ({"cost": -1}, "invalid cost"),
            ({"size_type": "metric"}, "invalid size type"),
        ],
    )
    def test_validation_errors(self, client, admin_headers, apparel_payload, overrides, error):
        apparel_payload.update(overrides)
        resp = client.post("/api/products", json=apparel_payload, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == error

    def test_duplicate_sku(self, client, admin_headers, apparel_payload):
        client.post("/api/products", json=apparel_payload, headers=admin_headers)
        apparel_payload["barcode"] = None

        resp = client.post("/api/products", json=apparel_payload, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "SKU or barcode already exists"

    def test_update_replaces_sizes(self, client, admin_headers, apparel_payload):
        product_id = client.post("/api/products", json=apparel_payload, headers=admin_headers).get_json()["id"]

        apparel_payload["sizes"] = [{"size": "S", "quantity": 0}, {"size": "L", "quantity": 2}]
        resp = client.put(f"/api/products/{product_id}", json=apparel_payload, headers=admin_headers)
        assert resp.status_code == 200

        body = client.get(f"/api/products/{product_id}", headers=admin_headers).get_json()
        assert body["stock"] == 2
        assert {s["size"] for s in body["sizes"]} == {"S", "L"}

    def test_update_unknown(self, client, admin_headers, simple_payload):
        resp = client.put("/api/products/missing", json=simple_payload, headers=admin_headers)
        assert resp.status_code == 404

    def test_delete(self, client, admin_headers, simple_payload):
        product_id = client.post("/api/products", json=simple_payload, headers=admin_headers).get_json()["id"]

        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 404


class TestReads:

    def test_list(self, client, admin_headers, cashier_headers, apparel_payload, simple_payload):
        client.post("/api/products", json=apparel_payload, headers=admin_headers)
        client.post("/api/products", json=simple_payload, headers=admin_headers)

        resp = client.get("/api/products", headers=cashier_headers)
        assert resp.status_code == 200
        assert {p["sku"] for p in resp.get_json()} == {"SH-001", "BL-001"}

    def test_barcode_lookup(self, client, admin_headers, cashier_headers, apparel_payload):
        client.post("/api/products", json=apparel_payload, headers=admin_headers)

        resp = client.get("/api/products/barcode/7501234567890", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sku"] == "SH-001"

        resp = client.get("/api/products/barcode/000", headers=cashier_headers)
        assert resp.status_code == 404

    def test_unknown_product(self, client, cashier_headers):
        assert client.get("/api/products/missing", headers=cashier_headers).status_code == 404


class TestStockAdjustments:

    def test_simple_delta(self, client, admin_headers, cashier_headers, simple_payload):
        product_id = client.post("/api/products", json=simple_payload, headers=admin_headers).get_json()["id"]

        resp = client.patch(f"/api/products/{product_id}/stock", json={"quantity": -4}, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 6

    def test_simple_delta_on_size_tracked(self, client, admin_headers, cashier_headers, apparel_payload):
        product_id = client.post("/api/products", json=apparel_payload, headers=admin_headers).get_json()["id"]

        resp = client.patch(f"/api/products/{product_id}/stock", json={"quantity": 1}, headers=cashier_headers)
        assert resp.status_code == 409

    def test_simple_delta_bad_quantity(self, client, admin_headers, cashier_headers, simple_payload):
        product_id = client.post("/api/products", json=simple_payload, headers=admin_headers).get_json()["id"]

        resp = client.patch(f"/api/products/{product_id}/stock", json={"quantity": "x"}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_simple_delta_unknown(self, client, cashier_headers):
        resp = client.patch("/api/products/missing/stock", json={"quantity": 1}, headers=cashier_headers)
        assert resp.status_code == 404

    def test_size_delta(self, client, admin_headers, cashier_headers, apparel_payload):
        product_id = client.post("/api/products", json=apparel_payload, headers=admin_headers).get_json()["id"]

        resp = client.patch(
            f"/api/products/{product_id}/stock/size",
            json={"size": "S", "quantity": -1},
            headers=cashier_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 7

    def test_size_delta_unknown_size(self, client, admin_headers, cashier_headers, apparel_payload):
        product_id = client.post("/api/products", json=apparel_payload, headers=admin_headers).get_json()["id"]

        resp = client.patch(
            f"/api/products/{product_id}/stock/size",
            json={"size": "XXL", "quantity": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 404
