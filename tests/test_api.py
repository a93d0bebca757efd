"""
HTTP surface: routing, error format and the full cart -> checkout ->
webhook -> order flow.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import checkout_completed_event, sign_payload
from storefront.api.deps import get_lock_service, get_notification_service, get_payment_gateway
from storefront.data.database import get_db
from storefront.domain.enums import Role
from storefront.main import create_app
from storefront.repos.cart_repo import CartRepo


@pytest.fixture
def client(session_factory, lock_service, gateway, notifier):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_service] = lambda: notifier

    # not entered as a context manager: startup is exercised in TestStartup
    return TestClient(app)


@pytest.fixture
def admin(make_user):
    return make_user(90, role=Role.ADMIN)


def add_item(client, user_id, product_id, quantity):
    return client.post(f"/cart/items?user_id={user_id}", json={"product_id": product_id, "quantity": quantity})


class TestErrors:

    def test_unauthenticated_request(self, client):
        response = client.get("/cart")

        assert response.status_code == 401
        assert response.json() == {"error": "Please sign in"}

    def test_unknown_user_is_unauthenticated(self, client):
        assert client.get("/cart?user_id=404").status_code == 401

    def test_unavailable_product(self, client, customer, products):
        response = add_item(client, customer.id, 2, 10)

        assert response.status_code == 400
        assert response.json() == {"error": "Product not available"}

    def test_invalid_body_is_rejected_by_validation(self, client, customer, products):
        assert add_item(client, customer.id, 1, 0).status_code == 422

    def test_checkout_of_empty_cart(self, client, customer):
        response = client.post(f"/checkout/session?user_id={customer.id}")

        assert response.status_code == 400
        assert response.json() == {"error": "Cart is empty"}

    def test_busy_cart(self, client, lock_service, cart_service, customer, products):
        cart = cart_service.get_or_create(customer.id)
        lock_service.acquire_cart_lock(cart.id, "someone-else", 30)

        response = add_item(client, customer.id, 1, 1)

        assert response.status_code == 409


class TestCartEndpoints:

    def test_add_update_remove_and_clear(self, client, customer, products):
        assert add_item(client, customer.id, 1, 2).json() == {"success": True}
        add_item(client, customer.id, 1, 1)
        add_item(client, customer.id, 2, 1)

        cart = client.get(f"/cart?user_id={customer.id}").json()
        assert [(i["product_id"], i["quantity"]) for i in cart["items"]] == [(1, 3), (2, 1)]
        assert Decimal(cart["total"]) == Decimal("55")

        line_id = cart["items"][0]["id"]
        client.patch(f"/cart/items/{line_id}?user_id={customer.id}", json={"quantity": 1})
        client.delete(f"/cart/items/{cart['items'][1]['id']}?user_id={customer.id}")

        cart = client.get(f"/cart?user_id={customer.id}").json()
        assert [(i["product_id"], i["quantity"]) for i in cart["items"]] == [(1, 1)]

        assert client.delete(f"/cart?user_id={customer.id}").json() == {"success": True}
        assert client.get(f"/cart?user_id={customer.id}").json()["items"] == []

    def test_missing_line(self, client, customer):
        response = client.delete(f"/cart/items/999?user_id={customer.id}")

        assert response.status_code == 404

    def test_reading_cart_does_not_create_one(self, client, db, customer):
        response = client.get(f"/cart?user_id={customer.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["cart_id"] is None
        assert body["items"] == []
        assert Decimal(body["total"]) == 0
        assert CartRepo(db).get_cart_by_user(customer.id) is None

    def test_clear_and_update_without_cart_create_nothing(self, client, db, customer):
        assert client.delete(f"/cart?user_id={customer.id}").json() == {"success": True}
        assert client.patch(f"/cart/items/1?user_id={customer.id}", json={"quantity": 2}).status_code == 404

        assert CartRepo(db).get_cart_by_user(customer.id) is None

    def test_first_add_creates_cart(self, client, db, customer, products):
        add_item(client, customer.id, 1, 1)

        cart = CartRepo(db).get_cart_by_user(customer.id)
        assert cart is not None
        assert client.get(f"/cart?user_id={customer.id}").json()["cart_id"] == cart.id


class TestPurchaseFlow:

    def test_cart_to_order(self, client, customer, admin, products, gateway, notifier):
        add_item(client, customer.id, 1, 2)
        add_item(client, customer.id, 2, 1)
        cart = client.get(f"/cart?user_id={customer.id}").json()

        checkout = client.post(f"/checkout/session?user_id={customer.id}")
        assert checkout.status_code == 200
        assert checkout.json()["url"].startswith("https://checkout.stripe.test/")
        assert gateway.calls[0]["metadata"]["cartId"] == cart["cart_id"]

        payload = checkout_completed_event(customer.id, cart["cart_id"], cart_version=cart["version"])
        response = client.post(
            "/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload), "Content-Type": "application/json"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETE"
        order_id = response.json()["order_id"]

        redelivered = client.post(
            "/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )
        assert redelivered.json()["status"] == "ALREADY_FULFILLED"

        orders = client.get(f"/orders?user_id={customer.id}").json()
        assert [o["id"] for o in orders] == [order_id]
        assert Decimal(orders[0]["total"]) == Decimal("45")
        assert orders[0]["status"] == "PROCESSING"
        assert orders[0]["user"] == {"id": customer.id, "name": customer.name}
        assert sorted(i["product"]["name"] for i in orders[0]["items"]) == ["Product A", "Product B"]
        assert client.get(f"/cart?user_id={customer.id}").json()["items"] == []
        assert notifier.sent == [(customer.id, order_id)]

        forbidden = client.patch(f"/orders/{order_id}/status?user_id={customer.id}", json={"status": "SHIPPED"})
        assert forbidden.status_code == 403

        shipped = client.patch(f"/orders/{order_id}/status?user_id={admin.id}", json={"status": "SHIPPED"})
        assert shipped.status_code == 200
        assert shipped.json()["status"] == "SHIPPED"

        backwards = client.patch(f"/orders/{order_id}/status?user_id={admin.id}", json={"status": "PENDING"})
        assert backwards.status_code == 409

    def test_unsigned_webhook(self, client, customer):
        payload = checkout_completed_event(customer.id, "cart")

        response = client.post("/webhooks/stripe", content=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}

    def test_other_customers_order_is_not_found(self, client, fulfillment, filled_cart, customer, make_user):
        result = fulfillment.fulfill(customer.id, filled_cart.id, "pi_1")
        stranger = make_user(2)

        response = client.get(f"/orders/{result.order_id}?user_id={stranger.id}")

        assert response.status_code == 404
        assert client.get(f"/orders/{result.order_id}?user_id={customer.id}").status_code == 200


class TestUsersAndHealth:

    def test_register_and_fetch_user(self, client):
        created = client.post("/users", json={"id": 7, "name": "Ada", "role": "STORE_MANAGER"})

        assert created.status_code == 200
        assert created.json() == {"id": 7, "name": "Ada", "role": "STORE_MANAGER"}
        assert client.get("/users/7").json()["role"] == "STORE_MANAGER"

    def test_unknown_user(self, client):
        response = client.get("/users/404")

        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestStartup:

    def test_startup_configures_logging_and_creates_tables(self, monkeypatch):
        calls = []
        monkeypatch.setattr("storefront.main.setup_logging", lambda: calls.append("logging"))
        monkeypatch.setattr("storefront.main.init_db", lambda: calls.append("tables"))

        with TestClient(create_app()):
            assert calls == ["logging", "tables"]
