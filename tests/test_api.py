"""
API tests through FastAPI's TestClient with the fixture registry and an
in-memory database.
"""

from schemas.registry import TransferRequest


class TestAuthRoutes:

    def test_login_sets_cookie(self, client):
        response = client.post("/api/auth/login", json={"email": "buyer@buyerco.local", "password": "Buyer@123"})
        assert response.status_code == 200
        assert response.json()["user"]["orgId"] == "org_001"
        assert "buyer_sess" in response.cookies

    def test_bad_credentials(self, client):
        response = client.post("/api/auth/login", json={"email": "buyer@buyerco.local", "password": "x"})
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHENTICATED"

    def test_me_with_cookie(self, auth_client):
        assert auth_client.get("/api/auth/me").json()["id"] == "user_001"

    def test_me_with_bearer_token(self, client):
        token = client.post(
            "/api/auth/login", json={"email": "buyer@buyerco.local", "password": "Buyer@123"}
        ).json()["token"]
        client.cookies.clear()
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["email"] == "buyer@buyerco.local"

    def test_me_without_identity(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHENTICATED"

    def test_logout_clears_session_and_cart(self, auth_client):
        auth_client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 5})
        assert auth_client.post("/api/auth/logout").status_code == 200
        assert auth_client.get("/api/auth/me").status_code == 401
        assert auth_client.get("/api/cart").json()["lines"] == []


class TestCatalogRoutes:

    def test_list_available_classes(self, client):
        ids = [c["id"] for c in client.get("/api/classes", params={"available": "true"}).json()]
        assert "C5" not in ids
        assert "C1" in ids

    def test_project_detail(self, client):
        body = client.get("/api/projects/P1").json()
        assert body["project"]["id"] == "P1"
        assert [c["id"] for c in body["classes"]] == ["C1", "C2"]
        assert body["summary"]["remaining"] == 1350

    def test_unknown_class(self, client):
        response = client.get("/api/classes/C404")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Route not found"}

    def test_request_id_echoed(self, client):
        response = client.get("/api/projects", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"


class TestCartRoutes:

    def test_add_update_remove(self, client):
        body = client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 5}).json()
        assert body["line_count"] == 1
        body = client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 5}).json()
        assert body["line_count"] == 1
        assert body["total_quantity"] == 5

        body = client.put("/api/cart/lines/C1", json={"quantity": 12}).json()
        assert body["total_quantity"] == 12

        body = client.put("/api/cart/lines/C1", json={"quantity": 0}).json()
        assert body["lines"] == []

    def test_invalid_quantity(self, client):
        response = client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 0})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_QUANTITY"

    def test_display_quantity_is_clamped(self, client):
        line = client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 900}).json()["lines"][0]
        assert line["quantity"] == 900
        assert line["display_quantity"] == 850

    def test_unknown_class_not_added(self, client):
        assert client.post("/api/cart/lines", json={"class_id": "C404", "quantity": 1}).status_code == 404
        assert client.get("/api/cart").json()["lines"] == []

    def test_clear(self, client):
        client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 5})
        assert client.delete("/api/cart").json()["line_count"] == 0


class TestCheckoutFlow:

    def test_checkout_requires_login(self, client):
        client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 5})
        response = client.post("/api/checkout")
        assert response.status_code == 401

    def test_buy_then_retire(self, auth_client):
        auth_client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 50})

        order = auth_client.post("/api/checkout").json()
        assert order["settled_quantity"] == 50
        assert len(order["transfer_receipt_ids"]) == 1
        assert auth_client.get("/api/cart").json()["lines"] == []

        holdings = auth_client.get("/api/holdings").json()
        assert [(h["classId"], h["quantity"]) for h in holdings] == [("C1", 50)]

        response = auth_client.post("/api/retirements", json={
            "class_id": "C1", "quantity": 10, "purpose": "Corporate offset",
        })
        assert response.status_code == 201
        certificate = response.json()
        assert certificate["purpose_hash"].startswith("0x")

        holdings = auth_client.get("/api/holdings").json()
        assert holdings[0]["quantity"] == 40

        response = auth_client.post("/api/retirements", json={
            "class_id": "C1", "quantity": 41, "purpose": "Corporate offset",
        })
        assert response.status_code == 409
        assert response.json()["error"] == "INSUFFICIENT_BALANCE"

        certificates = auth_client.get("/api/certificates").json()
        assert certificates["total"] == 1
        verify = auth_client.get(f"/api/certificates/{certificate['certificate_id']}/verify").json()
        assert verify["valid"] is True

    def test_orders_listed_and_fetched(self, auth_client):
        auth_client.post("/api/cart/lines", json={"class_id": "C2", "quantity": 3})
        order_id = auth_client.post("/api/checkout").json()["id"]

        listing = auth_client.get("/api/orders").json()
        assert listing["total"] == 1
        assert auth_client.get(f"/api/orders/{order_id}").json()["id"] == order_id
        assert auth_client.get("/api/orders/order_missing").status_code == 404

    def test_partial_success_over_http(self, auth_client):
        auth_client.post("/api/cart/lines", json={"class_id": "C1", "quantity": 900})
        auth_client.post("/api/cart/lines", json={"class_id": "C2", "quantity": 10})

        order = auth_client.post("/api/checkout").json()

        assert [l["outcome"] for l in order["lines"]] == ["REJECTED", "SETTLED"]
        assert order["settled_quantity"] == 10

    def test_zero_success_returns_outcomes_and_keeps_cart(self, auth_client):
        auth_client.post("/api/cart/lines", json={"class_id": "C5", "quantity": 1})

        response = auth_client.post("/api/checkout")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "CHECKOUT_FAILED"
        assert body["outcomes"][0]["error_code"] == "INSUFFICIENT_SUPPLY"
        cart = auth_client.get("/api/cart").json()
        assert cart["line_count"] == 1
        assert cart["checkout_attempts"] == 1

    def test_empty_cart_checkout(self, auth_client):
        response = auth_client.post("/api/checkout")
        assert response.status_code == 409
        assert response.json()["reason"] == "empty_cart"

    def test_attestation_too_long(self, auth_client, registry):
        registry.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=5))
        response = auth_client.post("/api/retirements", json={
            "class_id": "C1", "quantity": 1, "purpose": "x" * 281,
        })
        assert response.status_code == 422


class TestPurchaseRoute:

    def test_purchase(self, auth_client):
        auth_client.post("/api/cart/lines", json={"class_id": "C2", "quantity": 2})

        response = auth_client.post("/api/purchase", json={"classId": "C1", "quantity": 30})

        assert response.status_code == 201
        order = response.json()
        assert order["settled_quantity"] == 30
        assert [l["outcome"] for l in order["lines"]] == ["SETTLED"]
        holdings = auth_client.get("/api/holdings").json()
        assert [(h["classId"], h["quantity"]) for h in holdings] == [("C1", 30)]
        assert auth_client.get("/api/cart").json()["line_count"] == 1
        assert auth_client.get("/api/orders").json()["total"] == 1

    def test_purchase_over_supply(self, auth_client, registry):
        response = auth_client.post("/api/purchase", json={"classId": "C1", "quantity": 851})

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "CHECKOUT_FAILED"
        assert body["outcomes"][0]["error_code"] == "INSUFFICIENT_SUPPLY"
        assert registry.transfer_calls == []

    def test_purchase_invalid_quantity(self, auth_client):
        response = auth_client.post("/api/purchase", json={"classId": "C1", "quantity": 0})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_QUANTITY"

    def test_purchase_requires_login(self, client, registry):
        response = client.post("/api/purchase", json={"classId": "C1", "quantity": 5})
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHENTICATED"
        assert registry.transfer_calls == []


class TestHealth:

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body == {"ok": True, "database": "ok", "registry": "ok", "adapter": "not_configured"}
