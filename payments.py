"""
Stripe checkout, payment intents, refunds and the webhook receiver.

Webhook deliveries are verified against the ``Stripe-Signature`` header and
recorded by event id once their handler has finished, so a redelivered
event is acknowledged without running its handler a second time. An
interrupted delivery leaves no record and runs again on retry.
"""
import json
import logging
from typing import List

import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pymongo.errors import DuplicateKeyError

from auth import get_current_user, require_admin
from cart import available_stock, clear_cart
from config import Settings
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import ApiError, NotFoundError, ValidationError
from orders import create_order_from_session, next_order_number, set_payment_state
from schemas import CheckoutLine, CheckoutSessionBody, PaymentIntentBody, RefundBody
from variants import find_variant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payment", tags=["payments"])

SIGNATURE_TOLERANCE = 300
SHIPPING_OPTIONS = [
    {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": 0, "currency": "usd"},
            "display_name": "Free shipping",
            "delivery_estimate": {
                "minimum": {"unit": "business_day", "value": 5},
                "maximum": {"unit": "business_day", "value": 7},
            },
        }
    },
    {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": 1500, "currency": "usd"},
            "display_name": "Express shipping",
            "delivery_estimate": {
                "minimum": {"unit": "business_day", "value": 1},
                "maximum": {"unit": "business_day", "value": 3},
            },
        }
    },
]


def _secret_key(settings: Settings) -> str:
    if not settings.stripe_secret_key:
        raise ApiError("Payment provider is not configured", 503)
    return settings.stripe_secret_key


def _settings(request: Request) -> Settings:
    return request.app.state.settings


# ----------------------- Service -----------------------

def unit_price(product: dict, variant_id) -> float:
    source = find_variant(product, variant_id) or product
    discounted = source.get("discounted_price")
    return float(discounted if discounted is not None else source.get("price") or 0)


def prepare_line_items(db: Database, cart_items: List[CheckoutLine]):
    """Validate stock and price each line from the catalogue.

    Returns (line_items for Stripe, normalized lines for session metadata).
    """
    line_items, lines = [], []
    for item in cart_items:
        product = db["product"].find_one({"_id": oid(item.product_id)})
        if not product or product.get("status") != "published":
            raise NotFoundError(f"Product not found: {item.product_id}")
        if available_stock(product, item.variant_id) < item.quantity:
            raise ValidationError(f"Insufficient stock available for {product['name']}")
        price = unit_price(product, item.variant_id)
        thumbnail = product.get("thumbnail_url") or ""
        line_items.append(
            {
                "price_data": {
                    "currency": "usd",
                    "product_data": {
                        "name": product["name"],
                        "description": f"Size: {item.size or '-'}, Color: {item.color or '-'}",
                        "images": [thumbnail] if thumbnail.startswith("http") else [],
                        "metadata": {"product_id": str(product["_id"]), "size": item.size or "", "color": item.color or ""},
                    },
                    "unit_amount": round(price * 100),
                },
                "quantity": item.quantity,
            }
        )
        lines.append({**item.model_dump(), "price": price})
    return line_items, lines


def create_checkout_session(db: Database, settings: Settings, user_id: str, body: CheckoutSessionBody) -> dict:
    if not body.cart_items:
        raise ValidationError("Cart is empty")
    if body.shipping_address is None:
        raise ValidationError("Shipping address is required")
    api_key = _secret_key(settings)
    billing = body.billing_address or body.shipping_address
    line_items, lines = prepare_line_items(db, body.cart_items)
    order_number = next_order_number(db)
    try:
        session = stripe.checkout.Session.create(
            api_key=api_key,
            payment_method_types=["card"],
            line_items=line_items,
            mode="payment",
            success_url=f"{settings.frontend_origin}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.frontend_origin}/checkout/cancel",
            customer_email=body.shipping_address.email,
            metadata={
                "user_id": user_id or "guest",
                "order_number": order_number,
                "shipping_address": body.shipping_address.model_dump_json(),
                "billing_address": billing.model_dump_json(),
                "cart_items": json.dumps(lines),
            },
            shipping_options=SHIPPING_OPTIONS,
            allow_promotion_codes=True,
            billing_address_collection="auto",
            phone_number_collection={"enabled": True},
        )
    except stripe.StripeError as e:
        logger.error("Error creating checkout session: %s", e)
        raise ApiError(f"Failed to create checkout session: {e.user_message or e}")
    logger.info("Created checkout session %s for %s (%s)", session["id"], user_id, order_number)
    return {"session_id": session["id"], "url": session["url"], "order_number": order_number}


def create_payment_intent(settings: Settings, body: PaymentIntentBody) -> dict:
    if body.amount <= 0:
        raise ValidationError("Invalid amount")
    try:
        intent = stripe.PaymentIntent.create(
            api_key=_secret_key(settings),
            amount=round(body.amount * 100),
            currency=body.currency,
            automatic_payment_methods={"enabled": True},
            metadata=body.metadata,
        )
    except stripe.StripeError as e:
        logger.error("Error creating payment intent: %s", e)
        raise ApiError(f"Failed to create payment intent: {e.user_message or e}")
    return {"client_secret": intent["client_secret"], "payment_intent_id": intent["id"]}


def construct_event(payload: bytes, signature: str, secret: str) -> dict:
    try:
        text = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(text, signature, secret, SIGNATURE_TOLERANCE)
        return json.loads(text)
    except (stripe.SignatureVerificationError, ValueError) as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise ValidationError(f"Webhook Error: {e}")


def _payment_succeeded(db: Database, intent: dict):
    order = set_payment_state(db, intent["id"], "completed", "processing")
    if order and order.get("user_id"):
        clear_cart(db, order["user_id"])


def _payment_failed(db: Database, intent: dict):
    set_payment_state(db, intent["id"], "failed", "cancelled")


def _charge_refunded(db: Database, charge: dict):
    if charge.get("payment_intent"):
        set_payment_state(db, charge["payment_intent"], "refunded", "refunded")


WEBHOOK_HANDLERS = {
    "checkout.session.completed": create_order_from_session,
    "payment_intent.succeeded": _payment_succeeded,
    "payment_intent.payment_failed": _payment_failed,
    "charge.refunded": _charge_refunded,
}


def handle_webhook(db: Database, settings: Settings, payload: bytes, signature: str) -> dict:
    if not settings.stripe_webhook_secret:
        raise ApiError("Webhook secret is not configured", 503)
    event = construct_event(payload, signature, settings.stripe_webhook_secret)
    event_type = event.get("type")
    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled webhook event type %s", event_type)
        return {"received": True}

    if db["webhookevent"].find_one({"event_id": event["id"]}, {"_id": 1}):
        logger.info("Ignoring redelivered webhook event %s (%s)", event["id"], event_type)
        return {"received": True, "duplicate": True}

    try:
        handler(db, event["data"]["object"])
    except Exception:
        logger.exception("Error handling webhook event %s (%s)", event["id"], event_type)
        raise

    # recorded only once handled; handlers are safe to re-run
    try:
        db["webhookevent"].insert_one({"event_id": event["id"], "type": event_type, "created_at": now_utc()})
    except DuplicateKeyError:
        logger.info("Webhook event %s was handled concurrently", event["id"])
    logger.info("Processed webhook event %s (%s)", event["id"], event_type)
    return {"received": True}


def verify_session(db: Database, settings: Settings, session_id: str) -> dict:
    try:
        session = stripe.checkout.Session.retrieve(session_id, api_key=_secret_key(settings))
    except stripe.StripeError as e:
        logger.error("Error retrieving checkout session %s: %s", session_id, e)
        raise ApiError(f"Failed to retrieve checkout session: {e.user_message or e}")
    if session["payment_status"] != "paid":
        return {"paid": False, "session": {"id": session["id"], "payment_status": session["payment_status"]}}
    order = db["order"].find_one({"stripe_session_id": session_id})
    return {
        "paid": True,
        "order": serialize_doc(order) if order else None,
        "session": {
            "id": session["id"],
            "payment_status": session["payment_status"],
            "customer_email": session["customer_email"],
            "amount_total": (session["amount_total"] or 0) / 100,
        },
    }


def refund_order(db: Database, settings: Settings, order_id: str, body: RefundBody) -> dict:
    order = db["order"].find_one({"_id": oid(order_id)})
    if not order:
        raise NotFoundError("Order not found")
    if not order.get("stripe_payment_intent_id"):
        raise ValidationError("No payment intent found for this order")
    if order.get("payment_status") == "refunded":
        raise ValidationError("Order has already been refunded")
    amount = body.amount or order["total"]
    try:
        refund = stripe.Refund.create(
            api_key=_secret_key(settings),
            payment_intent=order["stripe_payment_intent_id"],
            amount=round(amount * 100),
        )
    except stripe.StripeError as e:
        logger.error("Error creating refund for %s: %s", order["order_number"], e)
        raise ApiError(f"Failed to create refund: {e.user_message or e}")

    update = {
        "payment_status": "refunded",
        "order_status": "refunded",
        "refunded_at": now_utc(),
        "updated_at": now_utc(),
    }
    if body.reason:
        update["notes"] = f"Refund reason: {body.reason}"
    db["order"].update_one({"_id": order["_id"]}, {"$set": update})
    logger.info("Refunded %.2f on order %s", amount, order["order_number"])
    return {"refund_id": refund["id"], "amount": refund["amount"] / 100, "status": refund["status"]}


# ----------------------- Routes -----------------------

@router.post("/create-checkout-session")
def post_checkout_session(
    body: CheckoutSessionBody,
    request: Request,
    user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    data = create_checkout_session(db, _settings(request), user["id"], body)
    return {"success": True, "data": data}


@router.post("/create-payment-intent")
def post_payment_intent(body: PaymentIntentBody, request: Request):
    return {"success": True, "data": create_payment_intent(_settings(request), body)}


@router.post("/webhook")
async def stripe_webhook(request: Request, db: Database = Depends(get_db)):
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise ValidationError("Missing stripe signature")
    payload = await request.body()
    return await run_in_threadpool(handle_webhook, db, _settings(request), payload, signature)


@router.get("/verify/{session_id}")
def get_verify_session(session_id: str, request: Request, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "data": verify_session(db, _settings(request), session_id)}


@router.get("/stripe-public-key")
def get_public_key(request: Request):
    return {"success": True, "data": {"public_key": _settings(request).stripe_publishable_key}}


@router.post("/orders/{order_id}/refund")
def post_refund(
    order_id: str,
    request: Request,
    body: RefundBody = RefundBody(),
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    result = refund_order(db, _settings(request), order_id, body)
    return {"success": True, "message": "Refund processed successfully", "data": result}
