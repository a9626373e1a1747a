"""
Orders: numbering, creation from a completed checkout, status changes and
the per-line variant view used by order listings.
"""
import json
import logging
import re
import time
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

from auth import get_current_user, require_admin
from cart import clear_cart
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import NotFoundError, ValidationError
from helpers import pagination
from schemas import ORDER_STATUSES, Address, Order, OrderItem, OrderStatusBody
from products import decrement_stock
from variants import project_product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payment", tags=["orders"])

STATUS_TIMESTAMPS = {
    "shipped": "shipped_at",
    "delivered": "delivered_at",
    "cancelled": "cancelled_at",
    "refunded": "refunded_at",
}
TAX_RATE = 0.08


# ----------------------- Service -----------------------

def next_order_number(db: Database) -> str:
    counter = db["counter"].find_one_and_update(
        {"_id": "order_number"},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    timestamp = str(int(time.time() * 1000))[-6:]
    return f"ORD-{timestamp}-{counter['seq']:04d}"


def create_order_from_session(db: Database, session: dict) -> Optional[dict]:
    """Turn a completed checkout session into an order.

    Returns the existing order when one was already written for this
    session. Stock that can no longer be taken is noted on the order rather
    than failing it, since payment has already been captured.
    """
    existing = db["order"].find_one({"stripe_session_id": session["id"]})
    if existing:
        logger.info("Order %s already exists for session %s", existing["order_number"], session["id"])
        return existing

    metadata = session.get("metadata") or {}
    shipping = Address(**json.loads(metadata["shipping_address"]))
    billing_raw = metadata.get("billing_address")
    billing = Address(**json.loads(billing_raw)) if billing_raw else shipping
    cart_items = json.loads(metadata.get("cart_items") or "[]")
    user_id = metadata.get("user_id")
    if user_id == "guest":
        user_id = None

    items = []
    for line in cart_items:
        if not ObjectId.is_valid(str(line.get("product_id"))):
            continue
        if not db["product"].find_one({"_id": ObjectId(line["product_id"])}, {"_id": 1}):
            logger.warning("Skipping missing product %s in session %s", line["product_id"], session["id"])
            continue
        items.append(OrderItem(**line))

    shipping_cost = ((session.get("shipping_cost") or {}).get("amount_total") or 0) / 100
    total = (session.get("amount_total") or 0) / 100
    subtotal = total - shipping_cost
    order = Order(
        user_id=user_id,
        order_number=metadata.get("order_number") or next_order_number(db),
        items=items,
        shipping_address=shipping,
        billing_address=billing,
        payment_method="stripe",
        payment_status="completed",
        order_status="processing",
        stripe_session_id=session["id"],
        stripe_payment_intent_id=session.get("payment_intent"),
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=round(subtotal * TAX_RATE, 2),
        total=total,
    )
    order_id = db.create_document("order", order)
    logger.info("Created order %s for session %s", order.order_number, session["id"])

    shortfalls = [
        f"{item.product_id}:{item.variant_id or '-'} x{item.quantity}"
        for item in items
        if not decrement_stock(db, item.product_id, item.quantity, item.variant_id)
    ]
    if shortfalls:
        logger.warning("Insufficient stock while fulfilling %s: %s", order.order_number, ", ".join(shortfalls))
        db["order"].update_one(
            {"_id": oid(order_id)},
            {"$set": {"notes": "Insufficient stock at fulfilment: " + ", ".join(shortfalls)}},
        )

    if user_id:
        clear_cart(db, user_id)
    return db["order"].find_one({"_id": oid(order_id)})


def set_payment_state(db: Database, payment_intent_id: str, payment_status: str, order_status: str) -> Optional[dict]:
    update = {"payment_status": payment_status, "order_status": order_status, "updated_at": now_utc()}
    field = STATUS_TIMESTAMPS.get(order_status)
    if field:
        update[field] = now_utc()
    return db["order"].find_one_and_update(
        {"stripe_payment_intent_id": payment_intent_id},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )


def update_order_status(db: Database, order_id: str, status: Optional[str]) -> dict:
    if not status:
        raise ValidationError("Status is required")
    if status not in ORDER_STATUSES:
        raise ValidationError("Invalid order status")
    update = {"order_status": status, "updated_at": now_utc()}
    if status in STATUS_TIMESTAMPS:
        update[STATUS_TIMESTAMPS[status]] = now_utc()
    order = db["order"].find_one_and_update(
        {"_id": oid(order_id)}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if not order:
        raise NotFoundError("Order not found")
    return order


def project_orders(db: Database, orders: list) -> list:
    """Attach each line's product, narrowed to the ordered variant."""
    ids = {
        ObjectId(item["product_id"])
        for order in orders
        for item in order.get("items", [])
        if ObjectId.is_valid(str(item.get("product_id")))
    }
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": list(ids)}})}
    out = []
    for order in orders:
        data = serialize_doc(order)
        for line, item in zip(data["items"], order.get("items", [])):
            product = products.get(str(item.get("product_id")))
            if not product:
                line["product"] = None
                continue
            projected, image = project_product(product, item.get("variant_id"))
            if image:
                projected["primary_image_url"] = image
            line["product"] = serialize_doc(projected)
        out.append(data)
    return out


def user_orders(db: Database, user_id: str, status: Optional[str], page: int, limit: int) -> dict:
    query = {"user_id": user_id}
    if status:
        query["order_status"] = status
    total = db["order"].count_documents(query)
    orders = list(db["order"].find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit))
    return {"orders": project_orders(db, orders), "pagination": pagination(total, page, limit)}


def user_order(db: Database, order_id: str, user_id: str) -> dict:
    order = db["order"].find_one({"_id": oid(order_id), "user_id": user_id})
    if not order:
        raise NotFoundError("Order not found")
    return project_orders(db, [order])[0]


def all_orders(db: Database, status: Optional[str], search: Optional[str], page: int, limit: int) -> dict:
    query = {}
    if status:
        query["order_status"] = status
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"order_number": pattern},
            {"shipping_address.full_name": pattern},
            {"shipping_address.email": pattern},
        ]
    total = db["order"].count_documents(query)
    orders = list(db["order"].find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit))
    data = project_orders(db, orders)

    user_ids = [ObjectId(o["user_id"]) for o in orders if o.get("user_id") and ObjectId.is_valid(o["user_id"])]
    users = {
        str(u["_id"]): serialize_doc(u)
        for u in db["user"].find({"_id": {"$in": user_ids}}, {"first_name": 1, "last_name": 1, "email": 1})
    }
    for order in data:
        order["user"] = users.get(order.get("user_id"))
    return {"orders": data, "pagination": pagination(total, page, limit)}


# ----------------------- Routes -----------------------

@router.get("/orders")
def get_orders(
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": user_orders(db, user["id"], status, max(page, 1), max(limit, 1))}


@router.get("/orders/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "data": user_order(db, order_id, user["id"])}


@router.get("/getAllOrders")
def get_all_orders(
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": all_orders(db, status, search, max(page, 1), max(limit, 1))}


@router.put("/orders/{order_id}/status")
def put_order_status(
    order_id: str, body: OrderStatusBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    order = update_order_status(db, order_id, body.status)
    return {"success": True, "message": "Order status updated", "data": serialize_doc(order)}
