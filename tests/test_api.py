import pytest
from fastapi.testclient import TestClient

from marketplace.api.deps import get_lock_service
from marketplace.data.database import get_db
from marketplace.main import create_app

SELLER = {"X-User-Id": "100", "X-User-Role": "seller"}
CUSTOMER = {"X-User-Id": "1", "X-User-Role": "customer"}


@pytest.fixture
def client(session_factory, lock_service):
    app = create_app(with_lifespan=False)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    return TestClient(app)


@pytest.fixture
def product_id(client):
    store = client.post("/stores/", json={"name": "Bufo Grill"}, headers=SELLER).json()
    resp = client.post(
        "/products/",
        json={
            "store_id": store["id"],
            "name": "Chicken Adobo",
            "category": "Meals",
            "price": "50.00",
            "stock": 5,
        },
        headers=SELLER,
    )
    assert resp.status_code == 201
    return resp.json()["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_identity_headers(client):
    assert client.get("/carts/me").status_code == 401


def test_customer_cannot_create_store(client):
    resp = client.post("/stores/", json={"name": "Nope"}, headers=CUSTOMER)

    assert resp.status_code == 403
    assert resp.json()["error"] == "Unauthorized"


def test_cart_to_delivered_over_http(client, product_id):
    resp = client.post("/carts/me/items", json={"product_id": product_id, "quantity": 2}, headers=CUSTOMER)
    assert resp.status_code == 200
    assert float(resp.json()["total"]) == 100.0

    order = client.post("/checkout", headers=CUSTOMER).json()
    assert order["status"] == "Pending"
    assert float(order["total_amount"]) == 100.0

    placed = client.post(
        f"/orders/{order['id']}/place",
        json={
            "customer_name": "Juan dela Cruz",
            "contact_number": "09123456789",
            "delivery_location": "Building 5, Room 301",
            "payment_method": "Cash on Delivery",
        },
        headers=CUSTOMER,
    )
    assert placed.json()["status"] == "Placed"
    assert client.get("/carts/me", headers=CUSTOMER).json()["items"] == []

    assert client.post(f"/orders/{order['id']}/ship", headers=SELLER).json()["status"] == "Shipped"
    assert client.post(f"/orders/{order['id']}/deliver", headers=SELLER).json()["status"] == "Delivered"

    queue = client.get("/orders/seller", params={"status": "Delivered"}, headers=SELLER).json()
    assert [o["id"] for o in queue] == [order["id"]]


def test_buy_now_over_http(client, product_id):
    resp = client.post("/checkout/product", json={"product_id": product_id, "quantity": 2}, headers=CUSTOMER)

    assert resp.status_code == 201
    assert resp.json()["status"] == "Pending"
    assert float(resp.json()["total_amount"]) == 100.0
    assert client.get("/carts/me", headers=CUSTOMER).json()["items"] == []
    assert client.get(f"/products/{product_id}", headers=CUSTOMER).json()["stock"] == 3


def test_buy_now_unknown_product(client):
    resp = client.post("/checkout/product", json={"product_id": 999}, headers=CUSTOMER)

    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


def test_place_order_validation_error_body(client, product_id):
    client.post("/carts/me/items", json={"product_id": product_id}, headers=CUSTOMER)
    order = client.post("/checkout", headers=CUSTOMER).json()

    resp = client.post(
        f"/orders/{order['id']}/place",
        json={"customer_name": "Juan", "contact_number": "0912", "payment_method": "GCash"},
        headers=CUSTOMER,
    )

    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"
    assert resp.json()["fields"] == ["delivery_location"]


def test_ship_pending_is_conflict(client, product_id):
    client.post("/carts/me/items", json={"product_id": product_id}, headers=CUSTOMER)
    order = client.post("/checkout", headers=CUSTOMER).json()

    resp = client.post(f"/orders/{order['id']}/ship", headers=SELLER)

    assert resp.status_code == 409
    assert resp.json()["error"] == "InvalidTransition"


def test_empty_cart_checkout(client):
    resp = client.post("/checkout", headers=CUSTOMER)

    assert resp.status_code == 400
    assert resp.json()["error"] == "EmptyCartError"


def test_remove_item_with_body(client, product_id):
    client.post("/carts/me/items", json={"product_id": product_id}, headers=CUSTOMER)

    resp = client.request("DELETE", "/carts/me/items", json={"product_id": product_id}, headers=CUSTOMER)

    assert resp.status_code == 200
    assert resp.json()["items"] == []


def test_delete_product_in_use(client, product_id):
    client.post("/carts/me/items", json={"product_id": product_id}, headers=CUSTOMER)
    client.post("/checkout", headers=CUSTOMER)

    resp = client.delete(f"/products/{product_id}", headers=SELLER)

    assert resp.status_code == 409
    assert resp.json()["error"] == "ProductInUse"
