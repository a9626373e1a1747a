from bson import ObjectId
from fastapi import APIRouter, Depends

from auth import get_current_user
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import ConflictError, NotFoundError
from schemas import AddToWishlistBody

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


# ----------------------- Service -----------------------

def _published_entries(db: Database, wishlist: dict) -> list:
    ids = [ObjectId(e["product_id"]) for e in wishlist.get("products", []) if ObjectId.is_valid(str(e["product_id"]))]
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": ids}, "status": "published"})}
    out = []
    for entry in wishlist.get("products", []):
        product = products.get(str(entry["product_id"]))
        if product:
            item = serialize_doc(entry)
            item["product"] = serialize_doc(product)
            out.append(item)
    return out


def get_wishlist_with_products(db: Database, user_id: str) -> dict:
    wishlist = db["wishlist"].find_one({"user_id": user_id})
    if not wishlist:
        return {"products": []}
    return {"products": _published_entries(db, wishlist)}


def add_to_wishlist(db: Database, user_id: str, product_id: str):
    if not db["product"].find_one({"_id": oid(product_id)}, {"_id": 1}):
        raise NotFoundError("Product not found")
    wishlist = db["wishlist"].find_one({"user_id": user_id})
    if wishlist and any(e["product_id"] == product_id for e in wishlist.get("products", [])):
        raise ConflictError("Product already in wishlist")
    now = now_utc()
    db["wishlist"].update_one(
        {"user_id": user_id, "products.product_id": {"$ne": product_id}},
        {
            "$push": {"products": {"product_id": product_id, "added_at": now}},
            "$set": {"updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )


def remove_from_wishlist(db: Database, user_id: str, product_id: str):
    if not db["wishlist"].find_one({"user_id": user_id}, {"_id": 1}):
        raise NotFoundError("Wishlist not found")
    res = db["wishlist"].update_one(
        {"user_id": user_id, "products.product_id": product_id},
        {"$pull": {"products": {"product_id": product_id}}, "$set": {"updated_at": now_utc()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("Product not found in wishlist")


def clear_wishlist(db: Database, user_id: str):
    db["wishlist"].delete_one({"user_id": user_id})


def is_in_wishlist(db: Database, user_id: str, product_id: str) -> bool:
    return db["wishlist"].count_documents({"user_id": user_id, "products.product_id": product_id}) > 0


def wishlist_count(db: Database, user_id: str) -> int:
    wishlist = db["wishlist"].find_one({"user_id": user_id})
    if not wishlist:
        return 0
    return len(_published_entries(db, wishlist))


# ----------------------- Routes -----------------------

@router.get("")
def get_wishlist(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "data": get_wishlist_with_products(db, user["id"])}


@router.post("")
def post_wishlist(body: AddToWishlistBody, user=Depends(get_current_user), db: Database = Depends(get_db)):
    add_to_wishlist(db, user["id"], body.product_id)
    return {
        "success": True,
        "message": "Product added to wishlist successfully",
        "data": get_wishlist_with_products(db, user["id"]),
    }


@router.get("/count")
def get_wishlist_count(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "data": {"count": wishlist_count(db, user["id"])}}


@router.get("/check/{product_id}")
def check_wishlist(product_id: str, user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "data": {"in_wishlist": is_in_wishlist(db, user["id"], product_id)}}


@router.delete("/{product_id}")
def delete_wishlist_item(product_id: str, user=Depends(get_current_user), db: Database = Depends(get_db)):
    remove_from_wishlist(db, user["id"], product_id)
    return {
        "success": True,
        "message": "Product removed from wishlist successfully",
        "data": get_wishlist_with_products(db, user["id"]),
    }


@router.delete("")
def delete_wishlist(user=Depends(get_current_user), db: Database = Depends(get_db)):
    clear_wishlist(db, user["id"])
    return {"success": True, "message": "Wishlist cleared successfully", "data": {"products": []}}
