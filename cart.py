"""
Shopping cart: one document per user holding item lines.

Stock checks and line increments are a single conditional update, so two
concurrent adds can never push a line past the stock that was available
when the request was validated.
"""
import logging
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends

from auth import get_current_user
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import NotFoundError, ValidationError
from schemas import AddToCartBody, UpdateCartItemBody, VariantSelector
from variants import find_variant, project_product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


# ----------------------- Service -----------------------

def available_stock(product: dict, variant_id: Optional[str]) -> int:
    if variant_id and product.get("variants"):
        variant = find_variant(product, variant_id)
        if variant is None:
            raise NotFoundError("Variant not found")
        return int(variant.get("stock") or 0)
    return int(product.get("stock") or 0)


def _selector(variant: Optional[dict]) -> Optional[dict]:
    if not variant:
        return None
    return VariantSelector(**variant).model_dump()


def _variant_id(line_variant: Optional[dict]) -> Optional[str]:
    return (line_variant or {}).get("variant_id")


def find_line(items: list, product_id: str, variant: Optional[dict]) -> Optional[dict]:
    """Match on product and variant id; lines written before variant ids
    existed fall back to comparing the whole variant object."""
    for item in items:
        if str(item.get("product_id")) != product_id:
            continue
        if _variant_id(variant) and _variant_id(item.get("variant")):
            if item["variant"]["variant_id"] == variant["variant_id"]:
                return item
        elif item.get("variant") == variant:
            return item
    return None


def _load_product(db: Database, product_id: str) -> dict:
    product = db["product"].find_one({"_id": oid(product_id)})
    if not product:
        raise NotFoundError("Product not found")
    return product


def add_to_cart(db: Database, user_id: str, product_id: str, quantity: int = 1, variant: Optional[dict] = None):
    product = _load_product(db, product_id)
    selector = _selector(variant)
    available = available_stock(product, _variant_id(selector))
    if available < quantity:
        raise ValidationError("Insufficient stock available")

    cart = db["cart"].find_one({"user_id": user_id}) or {"items": []}
    line = find_line(cart["items"], product_id, selector)
    now = now_utc()
    if line is not None:
        res = db["cart"].update_one(
            {
                "user_id": user_id,
                "items": {"$elemMatch": {"_id": line["_id"], "quantity": {"$lte": available - quantity}}},
            },
            {
                "$inc": {"items.$.quantity": quantity},
                "$set": {"items.$.added_at": now, "updated_at": now},
            },
        )
        if res.modified_count == 0:
            raise ValidationError("Cannot add more items. Insufficient stock available")
        return

    new_line = {
        "_id": ObjectId(),
        "product_id": product_id,
        "quantity": quantity,
        "variant": selector,
        "added_at": now,
    }
    db["cart"].update_one(
        {"user_id": user_id},
        {"$push": {"items": new_line}, "$set": {"updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )
    logger.debug("Added %s x%d to cart of %s", product_id, quantity, user_id)


def _cart_or_404(db: Database, user_id: str) -> dict:
    cart = db["cart"].find_one({"user_id": user_id})
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


def update_cart_item(db: Database, user_id: str, item_id: str, quantity: int):
    cart = _cart_or_404(db, user_id)
    item_oid = oid(item_id)
    line = next((i for i in cart["items"] if i.get("_id") == item_oid), None)
    if line is None:
        raise NotFoundError("Item not found in cart")

    if quantity <= 0:
        db["cart"].update_one(
            {"user_id": user_id}, {"$pull": {"items": {"_id": item_oid}}, "$set": {"updated_at": now_utc()}}
        )
        return

    product = _load_product(db, line["product_id"])
    if available_stock(product, _variant_id(line.get("variant"))) < quantity:
        raise ValidationError("Insufficient stock available")
    now = now_utc()
    db["cart"].update_one(
        {"user_id": user_id, "items._id": item_oid},
        {"$set": {"items.$.quantity": quantity, "items.$.added_at": now, "updated_at": now}},
    )


def remove_from_cart(db: Database, user_id: str, item_id: str):
    _cart_or_404(db, user_id)
    db["cart"].update_one(
        {"user_id": user_id}, {"$pull": {"items": {"_id": oid(item_id)}}, "$set": {"updated_at": now_utc()}}
    )


def clear_cart(db: Database, user_id: str) -> bool:
    res = db["cart"].update_one({"user_id": user_id}, {"$set": {"items": [], "updated_at": now_utc()}})
    return res.matched_count == 1


def project_cart_line(item: dict, product: dict) -> dict:
    projected, image = project_product(product, _variant_id(item.get("variant")))
    line = serialize_doc(item)
    line["product"] = serialize_doc(projected)
    line["variant_thumbnail_url"] = image
    return line


def get_cart_with_products(db: Database, user_id: str) -> dict:
    cart = db["cart"].find_one({"user_id": user_id})
    if not cart:
        return {"user_id": user_id, "items": [], "total_items": 0, "updated_at": now_utc().isoformat()}

    ids = [ObjectId(i["product_id"]) for i in cart["items"] if ObjectId.is_valid(str(i.get("product_id")))]
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": ids}})}

    lines = []
    for item in cart["items"]:
        product = products.get(str(item.get("product_id")))
        if not product or product.get("status") != "published":
            continue
        lines.append(project_cart_line(item, product))

    data = serialize_doc({k: v for k, v in cart.items() if k != "items"})
    data["items"] = lines
    data["total_items"] = sum(line["quantity"] for line in lines)
    return data


# ----------------------- Routes -----------------------

@router.post("")
def post_cart_item(body: AddToCartBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    add_to_cart(db, user["id"], body.product_id, body.quantity, body.variant)
    return {
        "success": True,
        "message": "Item added to cart successfully",
        "data": get_cart_with_products(db, user["id"]),
    }


@router.get("")
def get_cart(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "data": get_cart_with_products(db, user["id"])}


@router.put("/item/{item_id}")
def put_cart_item(item_id: str, body: UpdateCartItemBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    update_cart_item(db, user["id"], item_id, body.quantity)
    return {
        "success": True,
        "message": "Cart item updated successfully",
        "data": get_cart_with_products(db, user["id"]),
    }


@router.delete("/item/{item_id}")
def delete_cart_item(item_id: str, user=Depends(get_current_user), db: Database = Depends(get_db)):
    remove_from_cart(db, user["id"], item_id)
    return {
        "success": True,
        "message": "Item removed from cart successfully",
        "data": get_cart_with_products(db, user["id"]),
    }


@router.delete("")
def delete_cart(user=Depends(get_current_user), db: Database = Depends(get_db)):
    clear_cart(db, user["id"])
    return {"success": True, "message": "Cart cleared successfully", "data": get_cart_with_products(db, user["id"])}
