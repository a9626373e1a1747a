from datetime import timedelta

import pytest

from dashboard import percentage_change, previous_period_filter
from database import now_utc
from schemas import Order


def seed_order(db, product, total, status="processing", quantity=1, state="TX"):
    address = {
        "full_name": "Sam Lifter",
        "email": "sam@example.com",
        "phone": "555-0100",
        "address": "1 Iron Way",
        "city": "Austin",
        "state": state,
        "zip_code": "73301",
    }
    order = Order(
        order_number=f"ORD-{total}",
        items=[{"product_id": str(product["_id"]), "quantity": quantity, "price": total / quantity}],
        shipping_address=address,
        billing_address=address,
        order_status=status,
        subtotal=total,
        total=total,
    )
    return db.create_document("order", order)


@pytest.fixture
def orders(db, product, simple_product):
    seed_order(db, product, 60, quantity=2)
    seed_order(db, simple_product, 12)
    seed_order(db, simple_product, 24, status="refunded", quantity=2, state="CA")


def test_dashboard_is_admin_only(client, user_headers):
    res = client.get("/dashboard/stats", headers=user_headers)
    assert res.status_code == 403
    assert client.get("/dashboard/stats").status_code == 401


def test_stats(client, admin_headers, orders, user_id):
    data = client.get("/dashboard/stats", headers=admin_headers).json()["data"]
    assert data["total_sales"] == 3
    assert data["total_revenue"] == 96
    assert data["avg_order_value"] == 32
    assert data["total_products"] == 2
    assert data["orders_today"] == 3
    assert data["total_users"] == 2
    assert data["refund_rate"] == pytest.approx(100 / 3)


def test_stats_with_no_orders(client, admin_headers):
    data = client.get("/dashboard/stats", headers=admin_headers).json()["data"]
    assert data["total_revenue"] == 0
    assert data["refund_rate"] == 0


def test_top_products_rank_by_revenue(client, admin_headers, orders):
    data = client.get("/dashboard/top-products", headers=admin_headers).json()["data"]
    assert [(p["name"], p["sales"], p["revenue"]) for p in data] == [("Flex Tee", 2, 60), ("Chalk Bag", 3, 36)]


def test_inventory_and_quick_stats(client, db, admin_headers, orders, product):
    db["product"].update_one({"_id": product["_id"]}, {"$set": {"stock": 0}})
    data = client.get("/dashboard/inventory-status", headers=admin_headers).json()["data"]
    assert data == {"total_products": 2, "out_of_stock": 1, "low_stock": 1, "in_stock": 0}

    quick = client.get("/dashboard/quick-stats", headers=admin_headers).json()["data"]
    assert quick["returned_items"] == 1
    assert quick["pending_orders"] == 0
    assert quick["low_stock_items"] == 2


def test_recent_orders_name_guests(client, admin_headers, orders):
    data = client.get("/dashboard/recent-orders", params={"limit": 2}, headers=admin_headers).json()["data"]
    assert len(data) == 2
    assert {o["customer_name"] for o in data} == {"Guest"}


def test_csv_export(client, admin_headers, orders):
    res = client.get("/dashboard/export", params={"format": "csv"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=dashboard-export-" in res.headers["content-disposition"]
    lines = res.text.splitlines()
    assert lines[0] == "Metric,Value"
    assert lines[4].startswith("Total Revenue,96")


def test_unknown_export_format(client, admin_headers):
    assert client.get("/dashboard/export", params={"format": "xml"}, headers=admin_headers).status_code == 400


def test_unknown_metric(client, admin_headers):
    res = client.get("/dashboard/metrics/visits", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Unknown metric type: visits"


def test_refresh(client, admin_headers):
    res = client.post("/dashboard/refresh", headers=admin_headers)
    assert res.json() == {"success": True, "message": "Dashboard refreshed successfully"}


def test_percentage_change():
    assert percentage_change(150, 100) == 50
    assert percentage_change(5, 0) == 100
    assert percentage_change(0, 0) == 0


def test_previous_week_window_ends_where_current_starts():
    now = now_utc()
    window = previous_period_filter("week", now)["created_at"]
    assert window["$lt"] == now - timedelta(days=7)
    assert window["$gte"] == now - timedelta(days=14)
