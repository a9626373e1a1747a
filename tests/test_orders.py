import pytest

from conftest import BLACK_VARIANT, RED_VARIANT
from orders import next_order_number
from schemas import Address, Order

ADDRESS = Address(
    full_name="Sam Lifter",
    email="sam@example.com",
    phone="555-0100",
    address="1 Iron Way",
    city="Austin",
    state="TX",
    zip_code="73301",
)


@pytest.fixture
def order_id(db, user_id, product):
    order = Order(
        user_id=user_id,
        order_number="ORD-000001-0001",
        items=[
            {"product_id": str(product["_id"]), "variant_id": RED_VARIANT, "quantity": 1, "price": 30, "color": "Red"},
            {"product_id": str(product["_id"]), "variant_id": BLACK_VARIANT, "quantity": 2, "price": 32},
        ],
        shipping_address=ADDRESS,
        billing_address=ADDRESS,
        payment_status="completed",
        order_status="processing",
        subtotal=94,
        total=94,
    )
    return db.create_document("order", order)


def test_user_orders_project_each_line(client, user_headers, order_id):
    data = client.get("/api/payment/orders", headers=user_headers).json()["data"]
    assert data["pagination"] == {
        "current_page": 1,
        "total_pages": 1,
        "total_items": 1,
        "items_per_page": 10,
        "has_next_page": False,
        "has_prev_page": False,
    }
    red, black = data["orders"][0]["items"]

    assert [v["variant_id"] for v in red["product"]["variants"]] == [RED_VARIANT]
    assert red["product"]["primary_image_url"] == "/uploads/red.png"
    assert [v["variant_id"] for v in black["product"]["variants"]] == [BLACK_VARIANT]
    assert black["product"]["primary_image_url"] == "/uploads/black.png"


def test_single_order_is_scoped_to_owner(client, user_headers, admin_headers, order_id):
    res = client.get(f"/api/payment/orders/{order_id}", headers=user_headers)
    assert res.json()["data"]["order_number"] == "ORD-000001-0001"
    assert client.get(f"/api/payment/orders/{order_id}", headers=admin_headers).status_code == 404


def test_deleted_product_leaves_empty_line(client, db, user_headers, order_id, product):
    db["product"].delete_one({"_id": product["_id"]})
    items = client.get(f"/api/payment/orders/{order_id}", headers=user_headers).json()["data"]["items"]
    assert [i["product"] for i in items] == [None, None]


def test_admin_search_attaches_customer(client, admin_headers, order_id):
    data = client.get("/api/payment/getAllOrders", params={"search": "lifter"}, headers=admin_headers).json()["data"]
    assert len(data["orders"]) == 1
    assert data["orders"][0]["user"]["email"] == "member@example.com"
    assert data["pagination"]["total_items"] == 1
    assert data["pagination"]["items_per_page"] == 50

    data = client.get("/api/payment/getAllOrders", params={"search": "nobody"}, headers=admin_headers).json()["data"]
    assert data["orders"] == []


def test_status_update_stamps_time(client, admin_headers, order_id):
    res = client.put(f"/api/payment/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["order_status"] == "shipped"
    assert data["shipped_at"] is not None


def test_status_update_validation(client, admin_headers, user_headers, order_id):
    url = f"/api/payment/orders/{order_id}/status"
    res = client.put(url, json={}, headers=admin_headers)
    assert res.json()["error"] == "Status is required"
    res = client.put(url, json={"status": "lost"}, headers=admin_headers)
    assert res.json()["error"] == "Invalid order status"
    assert client.put(url, json={"status": "shipped"}, headers=user_headers).status_code == 403
    res = client.put("/api/payment/orders/64b7f0c2a1b2c3d4e5f60718/status", json={"status": "shipped"}, headers=admin_headers)
    assert res.status_code == 404


def test_order_numbers_are_sequential(db):
    first, second = next_order_number(db), next_order_number(db)
    assert first.startswith("ORD-") and first.endswith("-0001")
    assert second.endswith("-0002")
