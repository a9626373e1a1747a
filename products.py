import logging
import re
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import get_current_user, require_admin
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import ConflictError, NotFoundError, ValidationError
from helpers import as_list, clean_str, pagination, parse_maybe_json, slugify, to_bool, to_number
from schemas import Category, Color, Product, Size
from storage import CATEGORY_UPLOAD_FIELDS, PRODUCT_UPLOAD_FIELDS, BlobStore, get_storage, read_multipart
from variants import generate_variant_id, generate_variant_sku, merge_uploaded_color_media, total_variant_stock

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])
public_router = APIRouter(prefix="/api/public/products", tags=["public products"])

PRODUCT_STATUSES = ("published", "draft", "out_of_stock")
PRODUCT_TEXT_FIELDS = (
    "description",
    "short_description",
    "features",
    "meta_title",
    "meta_description",
    "meta_keywords",
    "meta_schema",
)
SORT_FIELDS = {"created_at", "updated_at", "price", "name", "stock"}
MAX_BANNERS = 5


# ----------------------- Service -----------------------

def prepare_variants(product_name: str, variants) -> List[dict]:
    """Validate raw variant rows and fill in missing ids and SKUs."""
    variants = parse_maybe_json(variants) or []
    if not isinstance(variants, list):
        raise ValidationError("variants must be a list")
    out = []
    for index, v in enumerate(variants):
        if not isinstance(v, dict):
            raise ValidationError("Each variant must be an object")
        color = str(v.get("color") or "").strip()
        size = str(v.get("size") or "").strip()
        if not color or not size:
            raise ValidationError("Each variant must include color and size")
        price = to_number(v.get("price"), "Variant price") or 0
        stock = to_number(v.get("stock"), "Variant stock", integer=True) or 0
        discounted = to_number(v.get("discounted_price"), "Variant discounted_price")
        if price < 0:
            raise ValidationError("Variant price must be a non-negative number")
        if stock < 0:
            raise ValidationError("Variant stock must be a non-negative integer")
        if discounted is not None and discounted > price:
            raise ValidationError("Variant discounted_price must be less than or equal to price")
        out.append(
            {
                "variant_id": v.get("variant_id") or generate_variant_id(product_name, color, size),
                "color": color,
                "size": size,
                "price": price,
                "stock": stock,
                "sku": clean_str(v.get("sku")) or generate_variant_sku(product_name, color, size, index),
                "discounted_price": discounted,
            }
        )
    return out


def _banner_urls(payload: dict, files: dict, store: BlobStore, key: str) -> List[str]:
    uploaded = [store.put(f) for f in files.get("banners") or []]
    kept = [str(u) for u in as_list(payload.get(key))]
    return (uploaded + [u for u in kept if u not in uploaded])[:MAX_BANNERS]


def create_product(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    name = clean_str(payload.get("name"))
    category = clean_str(payload.get("category"))
    if not name or not category:
        raise ValidationError("name, slug and category are required")
    slug = slugify(payload.get("slug") or name)
    status = payload.get("status") if payload.get("status") in PRODUCT_STATUSES else "draft"
    product_type = "variant" if payload.get("product_type") == "variant" else "single"
    price = to_number(payload.get("price"), "price")
    discounted = to_number(payload.get("discounted_price"), "discounted_price")
    stock = to_number(payload.get("stock"), "stock", integer=True)

    variants = []
    if product_type == "variant":
        variants = prepare_variants(name, payload.get("variants"))
        if not variants:
            raise ValidationError("At least one variant is required for variant products")
        stock = total_variant_stock(variants)
        if price is None:
            price = variants[0]["price"]
    else:
        if price is None or price < 0:
            raise ValidationError("price must be a non-negative number")
        if stock is None or stock < 0:
            raise ValidationError("stock must be a non-negative integer")
    if discounted is not None and discounted > price:
        raise ValidationError("discounted_price must be less than or equal to price")

    color_media = parse_maybe_json(payload.get("color_media"))
    if not isinstance(color_media, dict):
        color_media = {}
    color_media = merge_uploaded_color_media(color_media, files, store)

    doc = {
        "name": name,
        "slug": slug,
        "category": category,
        "price": price,
        "discounted_price": discounted,
        "stock": stock,
        "status": status,
        "featured": to_bool(payload.get("featured", False)),
        "thumbnail_url": store.put_first(files, "thumbnail") or clean_str(payload.get("thumbnail_url")),
        "banner_urls": _banner_urls(payload, files, store, "banner_urls"),
        "product_type": product_type,
        "variants": variants,
        "color_media": color_media or None,
    }
    for field in PRODUCT_TEXT_FIELDS:
        doc[field] = clean_str(payload.get(field))

    product = Product(**doc)
    try:
        product_id = db.create_document("product", product)
    except DuplicateKeyError:
        raise ConflictError("Slug already exists")
    logger.info("Created product %s (%s, %d variants)", product_id, slug, len(variants))
    return db["product"].find_one({"_id": oid(product_id)})


def update_product(db: Database, store: BlobStore, product_id: str, payload: dict, files: dict) -> dict:
    existing = db["product"].find_one({"_id": oid(product_id)})
    if not existing:
        raise NotFoundError("Product not found")

    updates = {}
    if "name" in payload:
        updates["name"] = clean_str(payload["name"])
    if "slug" in payload:
        updates["slug"] = slugify(payload["slug"])
    if "category" in payload:
        updates["category"] = clean_str(payload["category"])
    if "price" in payload:
        updates["price"] = to_number(payload["price"], "price")
    if "discounted_price" in payload:
        updates["discounted_price"] = to_number(payload["discounted_price"], "discounted_price")
    if "stock" in payload:
        updates["stock"] = to_number(payload["stock"], "stock", integer=True)
    if "status" in payload:
        updates["status"] = payload["status"]
    if "featured" in payload:
        updates["featured"] = to_bool(payload["featured"])
    if "product_type" in payload:
        updates["product_type"] = "variant" if payload["product_type"] == "variant" else "single"
    for field in PRODUCT_TEXT_FIELDS:
        if field in payload:
            updates[field] = clean_str(payload[field])

    if files.get("thumbnail"):
        updates["thumbnail_url"] = store.put_first(files, "thumbnail")
    elif "existing_thumbnail" in payload:
        updates["thumbnail_url"] = clean_str(payload["existing_thumbnail"])
    elif "thumbnail_url" in payload:
        updates["thumbnail_url"] = clean_str(payload["thumbnail_url"])

    if files.get("banners") or "existing_banners" in payload:
        updates["banner_urls"] = _banner_urls(payload, files, store, "existing_banners")
    elif "banner_urls" in payload:
        updates["banner_urls"] = [str(u) for u in as_list(payload["banner_urls"])][:MAX_BANNERS]

    if "variants" in payload:
        updates["variants"] = prepare_variants(updates.get("name") or existing["name"], payload["variants"])

    if "color_media" in payload or files.get("colorThumbnail") or files.get("colorBanner"):
        base = parse_maybe_json(payload["color_media"]) if "color_media" in payload else existing.get("color_media")
        if not isinstance(base, dict):
            base = {}
        updates["color_media"] = merge_uploaded_color_media(base, files, store) or None

    merged = {**existing, **updates}
    if merged.get("discounted_price") is not None and merged["discounted_price"] > (merged.get("price") or 0):
        raise ValidationError("discounted_price must be less than or equal to price")
    validated = Product.model_validate(merged).model_dump()
    validated["updated_at"] = now_utc()
    try:
        return db["product"].find_one_and_update(
            {"_id": existing["_id"]}, {"$set": validated}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Slug already exists")


def product_media_urls(product: dict) -> List[str]:
    urls = [product.get("thumbnail_url")] + list(product.get("banner_urls") or [])
    for media in (product.get("color_media") or {}).values():
        urls.append(media.get("thumbnail_url"))
        urls.extend(media.get("banner_urls") or [])
    return [u for u in urls if u]


def delete_product(db: Database, store: BlobStore, product_id: str) -> dict:
    product = db["product"].find_one_and_delete({"_id": oid(product_id)})
    if not product:
        raise NotFoundError("Product not found")
    removed = sum(1 for url in product_media_urls(product) if store.delete(url))
    logger.info("Deleted product %s and %d stored files", product_id, removed)
    return product


def decrement_stock(db: Database, product_id: str, quantity: int, variant_id: Optional[str] = None) -> bool:
    """Take ``quantity`` units out of stock only if that many are available.

    For a variant line both the variant's stock and the product total are
    decremented in the same update. Returns False when the guard fails.
    """
    try:
        _id = oid(product_id)
    except ValidationError:
        return False
    if variant_id:
        res = db["product"].update_one(
            {
                "_id": _id,
                "stock": {"$gte": quantity},
                "variants": {"$elemMatch": {"variant_id": variant_id, "stock": {"$gte": quantity}}},
            },
            {"$inc": {"variants.$.stock": -quantity, "stock": -quantity}},
        )
    else:
        res = db["product"].update_one(
            {"_id": _id, "stock": {"$gte": quantity}},
            {"$inc": {"stock": -quantity}},
        )
    return res.modified_count == 1


def list_products(db: Database, status: Optional[str], category: Optional[str], q: Optional[str], page: int, limit: int) -> dict:
    filt = {}
    if status:
        filt["status"] = status
    if category:
        filt["category"] = {"$regex": f"^{re.escape(category)}$", "$options": "i"}
    if q:
        filt["name"] = {"$regex": re.escape(q), "$options": "i"}
    total = db["product"].count_documents(filt)
    items = db["product"].find(filt).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    return {"products": serialize_doc(list(items)), "pagination": pagination(total, page, limit)}


def _sort_args(sort_by: str, sort_order: str):
    field = sort_by if sort_by in SORT_FIELDS else "created_at"
    return field, 1 if sort_order == "asc" else -1


def published_products(db: Database, page: int, limit: int, sort_by: str = "created_at", sort_order: str = "desc") -> dict:
    filt = {"status": "published"}
    total = db["product"].count_documents(filt)
    field, direction = _sort_args(sort_by, sort_order)
    items = db["product"].find(filt).sort(field, direction).skip((page - 1) * limit).limit(limit)
    return {"products": serialize_doc(list(items)), "pagination": pagination(total, page, limit)}


def latest_products(db: Database, limit: int) -> list:
    items = db["product"].find({"status": "published"}).sort("created_at", -1).limit(limit)
    return serialize_doc(list(items))


def random_products(db: Database, limit: int) -> list:
    pipeline = [{"$match": {"status": "published", "stock": {"$gt": 0}}}, {"$sample": {"size": max(limit, 1)}}]
    return serialize_doc(list(db["product"].aggregate(pipeline)))


def featured_products(db: Database, limit: int) -> list:
    items = list(db["product"].find({"status": "published", "featured": True}).sort("created_at", -1).limit(limit))
    if len(items) < limit:
        seen = [p["_id"] for p in items]
        extra = (
            db["product"]
            .find({"status": "published", "_id": {"$nin": seen}, "stock": {"$gt": 0}})
            .sort([("stock", -1), ("created_at", -1)])
            .limit(limit - len(items))
        )
        items.extend(extra)
    return serialize_doc(items)


def search_products(
    db: Database,
    q: Optional[str],
    category: Optional[str],
    min_price: Optional[float],
    max_price: Optional[float],
    page: int,
    limit: int,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict:
    filt = {"status": "published"}
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        filt["$or"] = [{"name": pattern}, {"description": pattern}, {"short_description": pattern}, {"category": pattern}]
    if category:
        filt["category"] = {"$regex": re.escape(category), "$options": "i"}
    price = {}
    if min_price is not None:
        price["$gte"] = min_price
    if max_price is not None:
        price["$lte"] = max_price
    if price:
        filt["price"] = price
    total = db["product"].count_documents(filt)
    field, direction = _sort_args(sort_by, sort_order)
    items = db["product"].find(filt).sort(field, direction).skip((page - 1) * limit).limit(limit)
    return {"products": serialize_doc(list(items)), "pagination": pagination(total, page, limit)}


def products_by_category(db: Database, category: str, page: int, limit: int) -> dict:
    name = category.replace("-", " ")
    filt = {
        "status": "published",
        "$or": [
            {"category": {"$regex": f"^{re.escape(category)}$", "$options": "i"}},
            {"category": {"$regex": f"^{re.escape(name)}$", "$options": "i"}},
        ],
    }
    total = db["product"].count_documents(filt)
    items = db["product"].find(filt).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    return {"products": serialize_doc(list(items)), "pagination": pagination(total, page, limit)}


def published_product(db: Database, id_or_slug: str) -> dict:
    if ObjectId.is_valid(id_or_slug):
        query = {"_id": ObjectId(id_or_slug)}
    else:
        query = {"slug": id_or_slug}
    query["status"] = "published"
    product = db["product"].find_one(query)
    if not product:
        raise NotFoundError("Product not found")
    return product


def related_products(db: Database, product_id: str, limit: int) -> list:
    current = db["product"].find_one({"_id": oid(product_id)})
    if not current:
        raise NotFoundError("Product not found")
    items = db["product"].find(
        {"_id": {"$ne": current["_id"]}, "status": "published", "category": current.get("category")}
    ).limit(limit)
    return serialize_doc(list(items))


def product_categories(db: Database) -> list:
    pipeline = [
        {"$match": {"status": "published"}},
        {"$group": {"_id": "$category", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ]
    return [{"name": row["_id"], "count": row["count"]} for row in db["product"].aggregate(pipeline)]


# ---------- categories ----------

def create_category(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    name = clean_str(payload.get("name"))
    if not name:
        raise ValidationError("name and slug are required")
    category = Category(
        name=name,
        slug=slugify(payload.get("slug") or name),
        description=clean_str(payload.get("description")) or "",
        active=to_bool(payload.get("active", True)),
        featured=to_bool(payload.get("featured", False)),
        thumbnail_url=store.put_first(files, "thumbnail"),
        banner_url=store.put_first(files, "banner"),
    )
    try:
        category_id = db.create_document("category", category)
    except DuplicateKeyError:
        raise ConflictError("Slug already exists")
    return db["category"].find_one({"_id": oid(category_id)})


def update_category(db: Database, store: BlobStore, category_id: str, payload: dict, files: dict) -> dict:
    updates = {}
    if "name" in payload:
        updates["name"] = clean_str(payload["name"])
    if "slug" in payload:
        updates["slug"] = slugify(payload["slug"])
    if "description" in payload:
        updates["description"] = clean_str(payload["description"]) or ""
    for flag in ("active", "featured"):
        if flag in payload:
            updates[flag] = to_bool(payload[flag])
    if files.get("thumbnail"):
        updates["thumbnail_url"] = store.put_first(files, "thumbnail")
    if files.get("banner"):
        updates["banner_url"] = store.put_first(files, "banner")
    updates["updated_at"] = now_utc()
    try:
        category = db["category"].find_one_and_update(
            {"_id": oid(category_id)}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Slug already exists")
    if not category:
        raise NotFoundError("Category not found")
    return category


def featured_categories_with_products(db: Database, limit: int) -> list:
    categories = db["category"].find({"featured": True, "active": True}).sort("created_at", -1).limit(limit)
    out = []
    for category in categories:
        products = db.get_documents(
            "product", {"category": category["name"], "status": "published", "stock": {"$gt": 0}}, limit=6
        )
        out.append({**serialize_doc(category), "products": serialize_doc(products)})
    return out


# ---------- colour and size lookups ----------

OPTION_MODELS = {"color": Color, "size": Size}
OPTION_LABELS = {"color": "Color", "size": "Size"}


def _option_values(collection: str, payload: dict) -> dict:
    values = {}
    if "name" in payload:
        name = clean_str(payload["name"]) or ""
        # colour names are stored as "Navy blue"
        values["name"] = name.capitalize() if collection == "color" else name
    if "slug" in payload:
        values["slug"] = slugify(clean_str(payload["slug"]) or "")
    if collection == "color" and "hex" in payload:
        values["hex"] = clean_str(payload["hex"]) or ""
    if "active" in payload:
        values["active"] = to_bool(payload["active"])
    return values


def list_options(db: Database, collection: str) -> list:
    return serialize_doc(list(db[collection].find({}).sort("created_at", -1)))


def create_option(db: Database, collection: str, payload: dict) -> dict:
    values = _option_values(collection, payload)
    if not values.get("name") or not values.get("slug"):
        raise ValidationError("name and slug are required")
    try:
        option_id = db.create_document(collection, OPTION_MODELS[collection](**values))
    except DuplicateKeyError:
        raise ConflictError("Slug already exists")
    logger.info("Created %s %s", collection, values["slug"])
    return db[collection].find_one({"_id": oid(option_id)})


def update_option(db: Database, collection: str, option_id: str, payload: dict) -> dict:
    updates = _option_values(collection, payload)
    for field in ("name", "slug"):
        if field in updates and not updates[field]:
            raise ValidationError(f"{field} cannot be empty")
    updates["updated_at"] = now_utc()
    try:
        option = db[collection].find_one_and_update(
            {"_id": oid(option_id)}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Slug already exists")
    if not option:
        raise NotFoundError(f"{OPTION_LABELS[collection]} not found")
    return option


def delete_option(db: Database, collection: str, option_id: str):
    res = db[collection].delete_one({"_id": oid(option_id)})
    if res.deleted_count == 0:
        raise NotFoundError(f"{OPTION_LABELS[collection]} not found")


# ----------------------- Routes -----------------------

@router.get("/products")
def get_products(
    status: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    db: Database = Depends(get_db),
):
    data = list_products(db, status, category, q, max(page, 1), max(limit, 1))
    return {"success": True, "message": "Products fetched successfully", "data": data}


@router.get("/products/random")
def get_random_products(limit: int = 10, db: Database = Depends(get_db)):
    return {"success": True, "data": random_products(db, limit)}


@router.get("/products/latest")
def get_latest_products(limit: int = 10, db: Database = Depends(get_db)):
    return {"success": True, "data": latest_products(db, limit)}


@router.get("/products/search")
def get_search_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 12,
    db: Database = Depends(get_db),
):
    data = search_products(db, q, category, min_price, max_price, max(page, 1), max(limit, 1), sort_by, sort_order)
    return {"success": True, "data": data}


@router.get("/products/featured")
def get_featured_products(limit: int = 8, db: Database = Depends(get_db)):
    return {"success": True, "data": featured_products(db, limit)}


@router.get("/products/{product_id}")
def get_product(product_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    product = db["product"].find_one({"_id": oid(product_id)})
    if not product:
        raise NotFoundError("Product not found")
    return {"success": True, "message": "Product fetched successfully", "data": serialize_doc(product)}


@router.post("/products", status_code=201)
async def post_product(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, PRODUCT_UPLOAD_FIELDS)
    product = await run_in_threadpool(create_product, db, store, payload, files)
    return {"success": True, "message": "Product created successfully", "data": serialize_doc(product)}


@router.put("/products/{product_id}")
async def put_product(
    product_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, PRODUCT_UPLOAD_FIELDS)
    product = await run_in_threadpool(update_product, db, store, product_id, payload, files)
    return {"success": True, "message": "Product updated successfully", "data": serialize_doc(product)}


@router.delete("/products/{product_id}")
def remove_product(
    product_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_product(db, store, product_id)
    return {"success": True, "message": "Product deleted successfully", "data": {"id": product_id}}


@router.get("/product-detail/{id_or_slug}")
def get_product_detail(id_or_slug: str, db: Database = Depends(get_db)):
    product = published_product(db, id_or_slug)
    return {"success": True, "message": "Product retrieved successfully", "data": serialize_doc(product)}


@router.get("/product-detail/{product_id}/related")
def get_related_products(product_id: str, limit: int = 4, db: Database = Depends(get_db)):
    items = related_products(db, product_id, limit)
    return {"success": True, "data": {"products": items, "total": len(items)}}


@router.get("/products-by-category/{category}")
def get_products_by_category(category: str, page: int = 1, limit: int = 8, db: Database = Depends(get_db)):
    return {"success": True, "data": products_by_category(db, category, max(page, 1), max(limit, 1))}


@router.get("/product-categories")
def get_product_categories(db: Database = Depends(get_db)):
    return {"success": True, "data": product_categories(db)}


@router.get("/categories/featured-with-products")
def get_featured_categories(limit: int = 6, db: Database = Depends(get_db)):
    return {"success": True, "data": featured_categories_with_products(db, limit)}


@router.get("/categories")
@router.get("/categories/public")
def get_categories(db: Database = Depends(get_db)):
    items = db["category"].find({}).sort("created_at", -1)
    return {"success": True, "message": "Categories fetched successfully", "data": serialize_doc(list(items))}


@router.post("/categories", status_code=201)
async def post_category(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, CATEGORY_UPLOAD_FIELDS)
    category = await run_in_threadpool(create_category, db, store, payload, files)
    return {"success": True, "message": "Category created successfully", "data": serialize_doc(category)}


@router.put("/categories/{category_id}")
async def put_category(
    category_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, CATEGORY_UPLOAD_FIELDS)
    category = await run_in_threadpool(update_category, db, store, category_id, payload, files)
    return {"success": True, "message": "Category updated successfully", "data": serialize_doc(category)}


@router.delete("/categories/{category_id}")
def remove_category(category_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    res = db["category"].delete_one({"_id": oid(category_id)})
    if res.deleted_count == 0:
        raise NotFoundError("Category not found")
    return {"success": True, "message": "Category deleted successfully", "data": {"id": category_id}}


@router.get("/colors")
def get_colors(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "message": "Colors fetched successfully", "data": list_options(db, "color")}


@router.post("/colors", status_code=201)
def post_color(payload: dict = Body(...), admin=Depends(require_admin), db: Database = Depends(get_db)):
    color = create_option(db, "color", payload)
    return {"success": True, "message": "Color created successfully", "data": serialize_doc(color)}


@router.put("/colors/{color_id}")
def put_color(color_id: str, payload: dict = Body(...), admin=Depends(require_admin), db: Database = Depends(get_db)):
    color = update_option(db, "color", color_id, payload)
    return {"success": True, "message": "Color updated successfully", "data": serialize_doc(color)}


@router.delete("/colors/{color_id}")
def remove_color(color_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    delete_option(db, "color", color_id)
    return {"success": True, "message": "Color deleted successfully", "data": {"id": color_id}}


@router.get("/sizes")
def get_sizes(user=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "message": "Sizes fetched successfully", "data": list_options(db, "size")}


@router.post("/sizes", status_code=201)
def post_size(payload: dict = Body(...), admin=Depends(require_admin), db: Database = Depends(get_db)):
    size = create_option(db, "size", payload)
    return {"success": True, "message": "Size created successfully", "data": serialize_doc(size)}


@router.put("/sizes/{size_id}")
def put_size(size_id: str, payload: dict = Body(...), admin=Depends(require_admin), db: Database = Depends(get_db)):
    size = update_option(db, "size", size_id, payload)
    return {"success": True, "message": "Size updated successfully", "data": serialize_doc(size)}


@router.delete("/sizes/{size_id}")
def remove_size(size_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    delete_option(db, "size", size_id)
    return {"success": True, "message": "Size deleted successfully", "data": {"id": size_id}}


# ----------------------- Public storefront -----------------------

@public_router.get("")
def public_products(
    page: int = 1,
    limit: int = 50,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: Database = Depends(get_db),
):
    return {"success": True, "data": published_products(db, max(page, 1), max(limit, 1), sort_by, sort_order)}


@public_router.get("/latest")
def public_latest(limit: int = 10, db: Database = Depends(get_db)):
    return {"success": True, "data": latest_products(db, limit)}


@public_router.get("/random")
def public_random(limit: int = 10, db: Database = Depends(get_db)):
    return {"success": True, "data": random_products(db, limit)}


@public_router.get("/featured")
def public_featured(limit: int = 10, db: Database = Depends(get_db)):
    items = db["product"].find({"status": "published", "featured": True}).sort("created_at", -1).limit(limit)
    return {"success": True, "data": serialize_doc(list(items))}


@public_router.get("/search")
def public_search(q: str = "", page: int = 1, limit: int = 20, db: Database = Depends(get_db)):
    if not q.strip():
        raise ValidationError("Search query is required")
    return {"success": True, "data": search_products(db, q.strip(), None, None, None, max(page, 1), max(limit, 1))}


@public_router.get("/category/{category}")
def public_by_category(category: str, page: int = 1, limit: int = 20, db: Database = Depends(get_db)):
    return {"success": True, "data": products_by_category(db, category, max(page, 1), max(limit, 1))}


@public_router.get("/{product_id}")
def public_product(product_id: str, db: Database = Depends(get_db)):
    product = db["product"].find_one({"_id": oid(product_id), "status": "published"})
    if not product:
        raise NotFoundError("Product not found")
    return {"success": True, "data": serialize_doc(product)}
