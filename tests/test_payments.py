import json

import pytest
import stripe

import payments
from conftest import RED_VARIANT, signed_event

ADDRESS = {
    "full_name": "Sam Lifter",
    "email": "sam@example.com",
    "phone": "555-0100",
    "address": "1 Iron Way",
    "city": "Austin",
    "state": "TX",
    "zip_code": "73301",
}


def completed_session(product, user_id, session_id="cs_test_1", quantity=2):
    lines = [{"product_id": str(product["_id"]), "variant_id": RED_VARIANT, "quantity": quantity, "price": 30}]
    return {
        "id": "evt_completed_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "payment_intent": "pi_test_1",
                "amount_total": 7500,
                "shipping_cost": {"amount_total": 1500},
                "metadata": {
                    "user_id": user_id,
                    "order_number": "ORD-123456-0001",
                    "shipping_address": json.dumps(ADDRESS),
                    "billing_address": json.dumps(ADDRESS),
                    "cart_items": json.dumps(lines),
                },
            }
        },
    }


def post_event(client, event, secret=None):
    payload, headers = signed_event(event, secret) if secret else signed_event(event)
    return client.post("/api/payment/webhook", content=payload, headers=headers)


def test_completed_checkout_creates_order_and_clears_cart(client, db, user_id, user_headers, product):
    client.post(
        "/api/cart", json={"product_id": str(product["_id"]), "variant": {"variant_id": RED_VARIANT}}, headers=user_headers
    )

    res = post_event(client, completed_session(product, user_id))
    assert res.status_code == 200
    assert res.json() == {"received": True}

    order = db["order"].find_one({"stripe_session_id": "cs_test_1"})
    assert order["order_number"] == "ORD-123456-0001"
    assert order["payment_status"] == "completed"
    assert order["order_status"] == "processing"
    assert order["total"] == 75
    assert order["shipping_cost"] == 15
    assert order["subtotal"] == 60

    stored = db["product"].find_one({"_id": product["_id"]})
    red = next(v for v in stored["variants"] if v["variant_id"] == RED_VARIANT)
    assert red["stock"] == 3
    assert stored["stock"] == 6

    assert db["cart"].find_one({"user_id": user_id})["items"] == []


def test_redelivered_event_is_processed_once(client, db, user_id, product):
    event = completed_session(product, user_id)
    assert post_event(client, event).json() == {"received": True}
    assert post_event(client, event).json() == {"received": True, "duplicate": True}

    assert db["order"].count_documents({}) == 1
    red = next(v for v in db["product"].find_one({"_id": product["_id"]})["variants"] if v["variant_id"] == RED_VARIANT)
    assert red["stock"] == 3


def test_same_session_under_new_event_id_does_not_duplicate_order(client, db, user_id, product):
    post_event(client, completed_session(product, user_id))
    event = completed_session(product, user_id)
    event["id"] = "evt_completed_2"
    assert post_event(client, event).status_code == 200
    assert db["order"].count_documents({"stripe_session_id": "cs_test_1"}) == 1


def test_stock_shortfall_is_noted_on_order(client, db, user_id, product):
    post_event(client, completed_session(product, user_id, quantity=9))
    order = db["order"].find_one({"stripe_session_id": "cs_test_1"})
    assert "Insufficient stock" in order["notes"]
    red = next(v for v in db["product"].find_one({"_id": product["_id"]})["variants"] if v["variant_id"] == RED_VARIANT)
    assert red["stock"] == 5


def test_refund_and_failure_events_update_order(client, db, user_id, product):
    post_event(client, completed_session(product, user_id))

    refund = {"id": "evt_refund_1", "type": "charge.refunded", "data": {"object": {"payment_intent": "pi_test_1"}}}
    assert post_event(client, refund).status_code == 200
    order = db["order"].find_one({"stripe_payment_intent_id": "pi_test_1"})
    assert order["payment_status"] == "refunded"
    assert order["order_status"] == "refunded"
    assert order["refunded_at"] is not None

    failed = {"id": "evt_failed_1", "type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_test_1"}}}
    post_event(client, failed)
    order = db["order"].find_one({"stripe_payment_intent_id": "pi_test_1"})
    assert order["payment_status"] == "failed"
    assert order["order_status"] == "cancelled"
    assert order["cancelled_at"] is not None


def test_bad_signature_is_rejected(client, db, user_id, product):
    res = post_event(client, completed_session(product, user_id), secret="whsec_wrong")
    assert res.status_code == 400
    assert res.json()["error"].startswith("Webhook Error")
    assert db["order"].count_documents({}) == 0


def test_missing_signature_is_rejected(client):
    res = client.post("/api/payment/webhook", content=b"{}")
    assert res.status_code == 400
    assert res.json()["error"] == "Missing stripe signature"


def test_unhandled_event_type_is_acknowledged(client, db):
    event = {"id": "evt_other", "type": "customer.created", "data": {"object": {}}}
    assert post_event(client, event).json() == {"received": True}
    assert db["webhookevent"].count_documents({}) == 0


class FakeSession(dict):
    pass


def test_checkout_session_prices_from_catalogue(client, monkeypatch, user_headers, product):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return FakeSession(id="cs_test_new", url="https://checkout.example/cs_test_new")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    body = {
        "cart_items": [
            {"product_id": str(product["_id"]), "variant_id": RED_VARIANT, "quantity": 2, "price": 0.01, "color": "Red", "size": "M"}
        ],
        "shipping_address": ADDRESS,
    }
    res = client.post("/api/payment/create-checkout-session", json=body, headers=user_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["session_id"] == "cs_test_new"
    assert data["order_number"].startswith("ORD-")

    line = captured["line_items"][0]
    assert line["price_data"]["unit_amount"] == 3000
    assert line["quantity"] == 2
    assert json.loads(captured["metadata"]["cart_items"])[0]["price"] == 30
    assert len(captured["shipping_options"]) == 2


def test_checkout_session_rejects_overselling(client, monkeypatch, user_headers, product):
    monkeypatch.setattr(stripe.checkout.Session, "create", lambda **kwargs: pytest.fail("should not reach Stripe"))
    body = {
        "cart_items": [{"product_id": str(product["_id"]), "variant_id": RED_VARIANT, "quantity": 6, "price": 30}],
        "shipping_address": ADDRESS,
    }
    res = client.post("/api/payment/create-checkout-session", json=body, headers=user_headers)
    assert res.status_code == 400
    assert res.json()["error"].startswith("Insufficient stock")


def test_checkout_session_requires_items(client, user_headers):
    res = client.post(
        "/api/payment/create-checkout-session", json={"cart_items": [], "shipping_address": ADDRESS}, headers=user_headers
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Cart is empty"


def test_stripe_public_key(client):
    assert client.get("/api/payment/stripe-public-key").json()["data"] == {"public_key": "pk_test_123"}


def test_admin_refund(client, db, monkeypatch, admin_headers, user_id, product):
    post_event(client, completed_session(product, user_id))
    order = db["order"].find_one({"stripe_session_id": "cs_test_1"})

    monkeypatch.setattr(
        stripe.Refund, "create", lambda **kwargs: {"id": "re_1", "amount": kwargs["amount"], "status": "succeeded"}
    )
    res = client.post(f"/api/payment/orders/{order['_id']}/refund", json={"reason": "damaged"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"] == {"refund_id": "re_1", "amount": 75, "status": "succeeded"}

    order = db["order"].find_one({"_id": order["_id"]})
    assert order["payment_status"] == "refunded"
    assert order["notes"] == "Refund reason: damaged"

    again = client.post(f"/api/payment/orders/{order['_id']}/refund", headers=admin_headers)
    assert again.status_code == 400


def test_payment_intent(client, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return {"id": "pi_new", "client_secret": "pi_new_secret"}

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    res = client.post("/api/payment/create-payment-intent", json={"amount": 19.99})
    assert res.json()["data"] == {"client_secret": "pi_new_secret", "payment_intent_id": "pi_new"}
    assert captured["amount"] == 1999

    assert client.post("/api/payment/create-payment-intent", json={"amount": 0}).status_code == 400


def test_verify_paid_session_returns_order(client, db, monkeypatch, user_id, user_headers, product):
    post_event(client, completed_session(product, user_id))
    session = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "customer_email": "sam@example.com",
        "amount_total": 7500,
    }
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda session_id, **kwargs: session)

    data = client.get("/api/payment/verify/cs_test_1", headers=user_headers).json()["data"]
    assert data["paid"] is True
    assert data["order"]["order_number"] == "ORD-123456-0001"
    assert data["session"]["amount_total"] == 75


def test_stripe_failure_is_reported(client, monkeypatch, user_headers, product):
    def boom(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    body = {
        "cart_items": [{"product_id": str(product["_id"]), "variant_id": RED_VARIANT, "quantity": 1, "price": 30}],
        "shipping_address": ADDRESS,
    }
    res = client.post("/api/payment/create-checkout-session", json=body, headers=user_headers)
    assert res.status_code == 500
    assert res.json()["error"].startswith("Failed to create checkout session")


def test_interrupted_delivery_runs_again_on_retry(client, db, settings, monkeypatch, user_id, product):
    event = completed_session(product, user_id)
    payload, headers = signed_event(event)

    def crash(db, session):
        raise RuntimeError("worker stopped")

    monkeypatch.setitem(payments.WEBHOOK_HANDLERS, "checkout.session.completed", crash)
    with pytest.raises(RuntimeError):
        payments.handle_webhook(db, settings, payload.encode(), headers["stripe-signature"])
    assert db["webhookevent"].count_documents({}) == 0
    assert db["order"].count_documents({}) == 0

    monkeypatch.undo()
    res = client.post("/api/payment/webhook", content=payload, headers=headers)
    assert res.json() == {"received": True}
    assert db["order"].count_documents({"stripe_session_id": "cs_test_1"}) == 1
    assert db["webhookevent"].count_documents({"event_id": "evt_completed_1"}) == 1


def test_non_utf8_webhook_body_is_rejected(client, db):
    res = client.post(
        "/api/payment/webhook", content=b"\xff\xfe{}", headers={"stripe-signature": "t=1,v1=abc"}
    )
    assert res.status_code == 400
    assert res.json()["error"].startswith("Webhook Error")
    assert db["webhookevent"].count_documents({}) == 0


def test_payment_intent_succeeded_completes_order_and_clears_cart(client, db, user_id, user_headers, product):
    post_event(client, completed_session(product, user_id))
    db["order"].update_one(
        {"stripe_payment_intent_id": "pi_test_1"}, {"$set": {"payment_status": "pending", "order_status": "pending"}}
    )
    client.post(
        "/api/cart", json={"product_id": str(product["_id"]), "variant": {"variant_id": RED_VARIANT}}, headers=user_headers
    )
    assert len(db["cart"].find_one({"user_id": user_id})["items"]) == 1

    event = {"id": "evt_pi_ok", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_test_1"}}}
    assert post_event(client, event).json() == {"received": True}

    order = db["order"].find_one({"stripe_payment_intent_id": "pi_test_1"})
    assert order["payment_status"] == "completed"
    assert order["order_status"] == "processing"
    assert db["cart"].find_one({"user_id": user_id})["items"] == []
    assert client.get("/api/cart", headers=user_headers).json()["data"]["items"] == []
