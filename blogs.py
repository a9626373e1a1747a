"""
Blog CMS: authors, blog categories, posts and the blog page hero.

Posts reference their category and author by id; the author's
``blog_count`` is kept in step when posts are created or removed.
"""
import logging
import math
import re
import time
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import require_admin
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import ConflictError, NotFoundError, ValidationError
from helpers import as_list, clean_str, pagination, slugify, to_bool, to_number
from schemas import Author, Blog, Blogcategory, Bloghero
from storage import (
    AVATAR_UPLOAD_FIELDS,
    BLOG_HERO_UPLOAD_FIELDS,
    BLOG_UPLOAD_FIELDS,
    CATEGORY_UPLOAD_FIELDS,
    IMAGE_UPLOAD_FIELDS,
    BlobStore,
    get_storage,
    read_multipart,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["blogs"])

EXCERPT_LENGTH = 150
WORDS_PER_MINUTE = 200
BLOG_SORT_FIELDS = {"created_at", "updated_at", "title", "views"}
BLOG_HERO_TEXT_FIELDS = (
    "title",
    "subtitle",
    "background_image",
    "primary_button_text",
    "primary_button_link",
    "secondary_button_text",
    "secondary_button_link",
)


def _author_slug(name: str) -> str:
    return slugify(name)[:50]


def _blog_slug(title: str) -> str:
    # millisecond suffix keeps titles that slugify alike apart
    return f"{slugify(title)}-{str(int(time.time() * 1000))[-6:]}"


def excerpt(content: str) -> str:
    text = re.sub(r"<[^>]*>", "", content or "")
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH] + "..."


def reading_time(content: str) -> int:
    words = len(re.sub(r"<[^>]*>", " ", content or "").split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


# ----------------------- Authors -----------------------

def _find_author(db: Database, author_id: str) -> dict:
    author = db["author"].find_one({"_id": oid(author_id)})
    if not author:
        raise NotFoundError("Author not found")
    return author


def list_authors(db: Database, active: Optional[bool], search: Optional[str], page: int, limit: int) -> dict:
    query = {}
    if active is not None:
        query["active"] = active
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"email": pattern}]
    total = db["author"].count_documents(query)
    authors = db["author"].find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    return {"authors": serialize_doc(list(authors)), "pagination": pagination(total, page, limit)}


def authors_dropdown(db: Database) -> list:
    cursor = db["author"].find({"active": True}, {"name": 1, "email": 1, "avatar": 1}).sort("name", 1)
    return serialize_doc(list(cursor))


def create_author(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    name = clean_str(payload.get("name"))
    email = clean_str(payload.get("email"))
    if not name or not email:
        raise ValidationError("Name and email are required")
    if db["author"].find_one({"email": email.lower()}, {"_id": 1}):
        raise ConflictError("Author with this email already exists")
    author = Author(
        name=name,
        email=email.lower(),
        slug=_author_slug(name),
        bio=clean_str(payload.get("bio")) or "",
        active=to_bool(payload.get("active", True)),
        avatar=store.put_first(files, "avatar") or clean_str(payload.get("avatar")),
    )
    try:
        author_id = db.create_document("author", author)
    except DuplicateKeyError:
        raise ConflictError("Author with this email already exists")
    logger.info("Created author %s", author_id)
    return db["author"].find_one({"_id": oid(author_id)})


def update_author(db: Database, store: BlobStore, author_id: str, payload: dict, files: dict) -> dict:
    author = _find_author(db, author_id)
    updates = {}
    if clean_str(payload.get("name")):
        updates["name"] = clean_str(payload["name"])
        updates["slug"] = _author_slug(updates["name"])
    if clean_str(payload.get("email")):
        email = clean_str(payload["email"]).lower()
        if email != author["email"] and db["author"].find_one({"email": email, "_id": {"$ne": author["_id"]}}):
            raise ConflictError("Author with this email already exists")
        updates["email"] = email
    if "bio" in payload:
        updates["bio"] = clean_str(payload["bio"]) or ""
    if "active" in payload:
        updates["active"] = to_bool(payload["active"])
    if files.get("avatar"):
        updates["avatar"] = store.put_first(files, "avatar")
        store.delete(author.get("avatar"))
    elif "avatar" in payload:
        updates["avatar"] = clean_str(payload["avatar"])
    Author.model_validate({**{k: v for k, v in author.items() if k in Author.model_fields}, **updates})
    updates["updated_at"] = now_utc()
    return db["author"].find_one_and_update(
        {"_id": author["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )


def toggle_author_active(db: Database, author_id: str) -> dict:
    author = _find_author(db, author_id)
    return db["author"].find_one_and_update(
        {"_id": author["_id"]},
        {"$set": {"active": not author.get("active", True), "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )


def delete_author(db: Database, store: BlobStore, author_id: str) -> dict:
    author = _find_author(db, author_id)
    blog_count = db["blog"].count_documents({"author_id": str(author["_id"])})
    if blog_count > 0:
        raise ValidationError(
            f"Cannot delete author. They have {blog_count} blog(s) associated with them. "
            "Please reassign or delete those blogs first."
        )
    db["author"].delete_one({"_id": author["_id"]})
    store.delete(author.get("avatar"))
    return {"id": str(author["_id"]), "name": author["name"], "email": author["email"]}


def _adjust_blog_count(db: Database, author_id: Optional[str], delta: int):
    if not author_id or not ObjectId.is_valid(author_id):
        return
    query = {"_id": ObjectId(author_id)}
    if delta < 0:
        query["blog_count"] = {"$gt": 0}
    db["author"].update_one(query, {"$inc": {"blog_count": delta}})


# ----------------------- Blog categories -----------------------

def _find_blog_category(db: Database, category_id: str) -> dict:
    category = db["blogcategory"].find_one({"_id": oid(category_id)})
    if not category:
        raise NotFoundError("Blog category not found")
    return category


def list_blog_categories(db: Database, active: Optional[bool], platform: Optional[str]) -> list:
    query = {}
    if active is not None:
        query["active"] = active
    if platform:
        query["platform"] = platform
    return serialize_doc(list(db["blogcategory"].find(query).sort("created_at", -1)))


def blog_categories_with_count(db: Database) -> list:
    counts = {
        row["_id"]: row["count"]
        for row in db["blog"].aggregate(
            [{"$match": {"status": "published"}}, {"$group": {"_id": "$category_id", "count": {"$sum": 1}}}]
        )
    }
    out = []
    for category in db["blogcategory"].find({"active": True}).sort("name", 1):
        data = serialize_doc(category)
        data["blog_count"] = counts.get(data["id"], 0)
        out.append(data)
    return out


def create_blog_category(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    name = clean_str(payload.get("name"))
    if not name:
        raise ValidationError("Category name is required")
    category = Blogcategory(
        name=name,
        slug=slugify(payload.get("slug") or name),
        description=clean_str(payload.get("description")) or "",
        active=to_bool(payload.get("active", True)),
        featured=to_bool(payload.get("featured", False)),
        platform=clean_str(payload.get("platform")) or "gymwear",
        thumbnail_url=store.put_first(files, "thumbnail") or clean_str(payload.get("thumbnail_url")),
        banner_url=store.put_first(files, "banner") or clean_str(payload.get("banner_url")),
    )
    try:
        category_id = db.create_document("blogcategory", category)
    except DuplicateKeyError:
        raise ConflictError("Blog category with this slug already exists")
    return db["blogcategory"].find_one({"_id": oid(category_id)})


def update_blog_category(db: Database, store: BlobStore, category_id: str, payload: dict, files: dict) -> dict:
    category = _find_blog_category(db, category_id)
    updates = {}
    if clean_str(payload.get("name")):
        updates["name"] = clean_str(payload["name"])
    if clean_str(payload.get("slug")):
        updates["slug"] = slugify(payload["slug"])
    if "description" in payload:
        updates["description"] = clean_str(payload["description"]) or ""
    for flag in ("active", "featured"):
        if flag in payload:
            updates[flag] = to_bool(payload[flag])
    if clean_str(payload.get("platform")):
        updates["platform"] = clean_str(payload["platform"])
    for field, key in (("thumbnail", "thumbnail_url"), ("banner", "banner_url")):
        if files.get(field):
            updates[key] = store.put_first(files, field)
            store.delete(category.get(key))
    Blogcategory.model_validate({**{k: v for k, v in category.items() if k in Blogcategory.model_fields}, **updates})
    updates["updated_at"] = now_utc()
    try:
        return db["blogcategory"].find_one_and_update(
            {"_id": category["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Blog category with this slug already exists")


def toggle_blog_category(db: Database, category_id: str, flag: str) -> dict:
    category = _find_blog_category(db, category_id)
    return db["blogcategory"].find_one_and_update(
        {"_id": category["_id"]},
        {"$set": {flag: not category.get(flag, False), "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )


def delete_blog_category(db: Database, store: BlobStore, category_id: str):
    category = _find_blog_category(db, category_id)
    used = db["blog"].count_documents({"category_id": str(category["_id"])})
    if used:
        raise ValidationError(f"Cannot delete category: it is used in {used} blog(s)")
    db["blogcategory"].delete_one({"_id": category["_id"]})
    store.delete(category.get("thumbnail_url"))
    store.delete(category.get("banner_url"))


# ----------------------- Blogs -----------------------

def _find_blog(db: Database, blog_id: str) -> dict:
    blog = db["blog"].find_one({"_id": oid(blog_id)})
    if not blog:
        raise NotFoundError("Blog not found")
    return blog


def decorate_blogs(db: Database, blogs: list, with_content: bool = True) -> list:
    """Attach category and author names, excerpt and reading time."""
    category_ids = {ObjectId(b["category_id"]) for b in blogs if ObjectId.is_valid(str(b.get("category_id")))}
    author_ids = {ObjectId(b["author_id"]) for b in blogs if ObjectId.is_valid(str(b.get("author_id")))}
    categories = {
        str(c["_id"]): c for c in db["blogcategory"].find({"_id": {"$in": list(category_ids)}}, {"name": 1, "slug": 1})
    }
    authors = {
        str(a["_id"]): a
        for a in db["author"].find({"_id": {"$in": list(author_ids)}}, {"name": 1, "email": 1, "avatar": 1, "bio": 1})
    }
    out = []
    for blog in blogs:
        data = serialize_doc(blog)
        category = categories.get(str(blog.get("category_id")))
        author = authors.get(str(blog.get("author_id")))
        data["category_name"] = category["name"] if category else None
        data["author_name"] = author["name"] if author else None
        data["author"] = serialize_doc(author) if author else None
        data["excerpt"] = excerpt(blog.get("content"))
        data["reading_time"] = reading_time(blog.get("content"))
        if not with_content:
            data.pop("content", None)
        out.append(data)
    return out


def list_blogs(
    db: Database,
    status: Optional[str] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = {}
    if status:
        query["status"] = status
    if category_id:
        query["category_id"] = category_id
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"content": pattern}, {"tags": pattern}]
    if sort_by not in BLOG_SORT_FIELDS:
        sort_by = "created_at"
    direction = 1 if sort_order == "asc" else -1
    total = db["blog"].count_documents(query)
    blogs = list(db["blog"].find(query).sort(sort_by, direction).skip((page - 1) * limit).limit(limit))
    return {"blogs": decorate_blogs(db, blogs), "pagination": pagination(total, page, limit)}


def featured_blogs(db: Database, limit: int = 3) -> list:
    blogs = db["blog"].find({"status": "published", "featured": True}).sort("created_at", -1).limit(limit)
    return decorate_blogs(db, list(blogs))


def featured_categories_with_blogs(db: Database, per_category: int = 6) -> list:
    out = []
    for category in db["blogcategory"].find({"featured": True, "active": True}).sort("created_at", -1):
        blogs = (
            db["blog"]
            .find({"category_id": str(category["_id"]), "status": "published"})
            .sort("created_at", -1)
            .limit(per_category)
        )
        data = serialize_doc(category)
        data["blogs"] = decorate_blogs(db, list(blogs), with_content=False)
        out.append(data)
    return out


def blog_by_slug(db: Database, slug: str, count_view: bool = False) -> dict:
    if count_view:
        blog = db["blog"].find_one_and_update(
            {"slug": slug, "status": "published"}, {"$inc": {"views": 1}}, return_document=ReturnDocument.AFTER
        )
    else:
        blog = db["blog"].find_one({"slug": slug, "status": "published"})
    if not blog:
        raise NotFoundError("Blog not found")
    data = decorate_blogs(db, [blog])[0]
    if data["author"]:
        data["author"]["blog_count"] = db["blog"].count_documents(
            {"author_id": blog["author_id"], "status": "published"}
        )
    return data


def blogs_by_category(db: Database, category_id: str, page: int, limit: int) -> dict:
    category = _find_blog_category(db, category_id)
    query = {"category_id": str(category["_id"]), "status": "published"}
    total = db["blog"].count_documents(query)
    blogs = db["blog"].find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    return {
        "category": serialize_doc(category),
        "blogs": decorate_blogs(db, list(blogs)),
        "pagination": pagination(total, page, limit),
    }


def _check_refs(db: Database, category_id: Optional[str], author_id: Optional[str]):
    if category_id and not db["blogcategory"].find_one({"_id": oid(category_id)}, {"_id": 1}):
        raise NotFoundError("Blog category not found")
    if author_id and not db["author"].find_one({"_id": oid(author_id)}, {"_id": 1}):
        raise NotFoundError("Author not found")


def create_blog(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    title = clean_str(payload.get("title"))
    content = clean_str(payload.get("content"))
    category_id = clean_str(payload.get("category_id"))
    if not title or not content or not category_id:
        raise ValidationError("Title, content, and category are required")
    author_id = clean_str(payload.get("author_id"))
    _check_refs(db, category_id, author_id)

    image = store.put_first(files, "image") or clean_str(payload.get("image"))
    if not image:
        raise ValidationError("Cover image is required")
    blog = Blog(
        title=title,
        content=content,
        category_id=category_id,
        author_id=author_id,
        status=clean_str(payload.get("status")) or "draft",
        featured=to_bool(payload.get("featured", False)),
        image=image,
        thumbnail=store.put_first(files, "thumbnail") or clean_str(payload.get("thumbnail")),
        tags=[str(t).strip() for t in as_list(payload.get("tags")) if str(t).strip()],
        slug=_blog_slug(title),
        meta_title=clean_str(payload.get("meta_title")),
        meta_description=clean_str(payload.get("meta_description")),
        meta_keywords=clean_str(payload.get("meta_keywords")),
        meta_schema=clean_str(payload.get("meta_schema")),
        platform=clean_str(payload.get("platform")) or "gymwear",
    )
    blog_id = db.create_document("blog", blog)
    _adjust_blog_count(db, author_id, 1)
    logger.info("Created blog %s (%s)", blog_id, blog.slug)
    return decorate_blogs(db, [db["blog"].find_one({"_id": oid(blog_id)})])[0]


def update_blog(db: Database, store: BlobStore, blog_id: str, payload: dict, files: dict) -> dict:
    blog = _find_blog(db, blog_id)
    updates = {}
    if clean_str(payload.get("title")) and payload["title"].strip() != blog["title"]:
        updates["title"] = clean_str(payload["title"])
        updates["slug"] = _blog_slug(updates["title"])
    for field in ("content", "status", "platform", "meta_title", "meta_description", "meta_keywords", "meta_schema"):
        if field in payload:
            updates[field] = clean_str(payload[field])
    if "featured" in payload:
        updates["featured"] = to_bool(payload["featured"])
    if "tags" in payload:
        updates["tags"] = [str(t).strip() for t in as_list(payload["tags"]) if str(t).strip()]
    if clean_str(payload.get("category_id")):
        updates["category_id"] = clean_str(payload["category_id"])
    if "author_id" in payload:
        updates["author_id"] = clean_str(payload["author_id"])
    _check_refs(db, updates.get("category_id"), updates.get("author_id"))
    for field in ("image", "thumbnail"):
        if files.get(field):
            updates[field] = store.put_first(files, field)
            store.delete(blog.get(field))
    Blog.model_validate({**{k: v for k, v in blog.items() if k in Blog.model_fields}, **updates})
    updates["updated_at"] = now_utc()
    updated = db["blog"].find_one_and_update(
        {"_id": blog["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if "author_id" in updates and updates["author_id"] != blog.get("author_id"):
        _adjust_blog_count(db, blog.get("author_id"), -1)
        _adjust_blog_count(db, updates["author_id"], 1)
    return decorate_blogs(db, [updated])[0]


def delete_blog(db: Database, store: BlobStore, blog_id: str):
    blog = _find_blog(db, blog_id)
    db["blog"].delete_one({"_id": blog["_id"]})
    _adjust_blog_count(db, blog.get("author_id"), -1)
    store.delete(blog.get("image"))
    store.delete(blog.get("thumbnail"))
    logger.info("Deleted blog %s", blog_id)


def increment_views(db: Database, blog_id: str) -> int:
    blog = db["blog"].find_one_and_update(
        {"_id": oid(blog_id)}, {"$inc": {"views": 1}}, return_document=ReturnDocument.AFTER
    )
    if not blog:
        raise NotFoundError("Blog not found")
    return blog["views"]


def toggle_blog_featured(db: Database, blog_id: str) -> dict:
    blog = _find_blog(db, blog_id)
    return db["blog"].find_one_and_update(
        {"_id": blog["_id"]},
        {"$set": {"featured": not blog.get("featured", False), "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )


def toggle_blog_status(db: Database, blog_id: str) -> dict:
    blog = _find_blog(db, blog_id)
    status = "draft" if blog.get("status") == "published" else "published"
    return db["blog"].find_one_and_update(
        {"_id": blog["_id"]}, {"$set": {"status": status, "updated_at": now_utc()}}, return_document=ReturnDocument.AFTER
    )


# ----------------------- Blog hero -----------------------

def _find_blog_hero(db: Database, hero_id: str) -> dict:
    hero = db["bloghero"].find_one({"_id": oid(hero_id)})
    if not hero:
        raise NotFoundError("Hero not found")
    return hero


def _deactivate_other_heroes(db: Database, hero_id: ObjectId):
    # at most one hero is live at a time
    db["bloghero"].update_many(
        {"_id": {"$ne": hero_id}, "is_active": True}, {"$set": {"is_active": False, "updated_at": now_utc()}}
    )


def active_blog_hero(db: Database) -> dict:
    hero = db["bloghero"].find_one({"is_active": True})
    if not hero:
        raise NotFoundError("No active hero section found")
    return hero


def list_blog_heroes(db: Database) -> list:
    return serialize_doc(list(db["bloghero"].find({}).sort([("sort_order", 1), ("created_at", -1)])))


def create_blog_hero(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    values = {field: clean_str(payload.get(field)) for field in BLOG_HERO_TEXT_FIELDS}
    uploaded = bool(files.get("backgroundImage"))
    text_missing = any(not v for k, v in values.items() if k != "background_image")
    if text_missing or not (uploaded or values["background_image"]):
        raise ValidationError("All fields are required including background image")
    if uploaded:
        values["background_image"] = store.put_first(files, "backgroundImage")
    values["is_active"] = to_bool(payload.get("is_active", False))
    values["sort_order"] = to_number(payload.get("sort_order"), "sort_order", integer=True) or 0
    hero_id = db.create_document("bloghero", Bloghero(**values))
    hero = db["bloghero"].find_one({"_id": oid(hero_id)})
    if hero["is_active"]:
        _deactivate_other_heroes(db, hero["_id"])
    logger.info("Created blog hero %s", hero_id)
    return hero


def update_blog_hero(db: Database, store: BlobStore, hero_id: str, payload: dict, files: dict) -> dict:
    hero = _find_blog_hero(db, hero_id)
    updates = {field: clean_str(payload[field]) for field in BLOG_HERO_TEXT_FIELDS if field in payload}
    if "is_active" in payload:
        updates["is_active"] = to_bool(payload["is_active"])
    if "sort_order" in payload:
        updates["sort_order"] = to_number(payload["sort_order"], "sort_order", integer=True) or 0
    if files.get("backgroundImage"):
        updates["background_image"] = store.put_first(files, "backgroundImage")
    Bloghero.model_validate({**{k: v for k, v in hero.items() if k in Bloghero.model_fields}, **updates})
    if files.get("backgroundImage"):
        store.delete(hero.get("background_image"))
    updates["updated_at"] = now_utc()
    hero = db["bloghero"].find_one_and_update(
        {"_id": hero["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if updates.get("is_active"):
        _deactivate_other_heroes(db, hero["_id"])
    return hero


def toggle_blog_hero(db: Database, hero_id: str) -> dict:
    hero = _find_blog_hero(db, hero_id)
    active = not hero.get("is_active", False)
    if active:
        _deactivate_other_heroes(db, hero["_id"])
    return db["bloghero"].find_one_and_update(
        {"_id": hero["_id"]}, {"$set": {"is_active": active, "updated_at": now_utc()}}, return_document=ReturnDocument.AFTER
    )


def delete_blog_hero(db: Database, store: BlobStore, hero_id: str):
    hero = _find_blog_hero(db, hero_id)
    db["bloghero"].delete_one({"_id": hero["_id"]})
    store.delete(hero.get("background_image"))


# ----------------------- Routes: authors -----------------------

@router.get("/authors")
def get_authors(
    active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    db: Database = Depends(get_db),
):
    return {"success": True, "data": list_authors(db, active, search, max(page, 1), max(limit, 1))}


@router.get("/authors/dropdown")
def get_authors_dropdown(db: Database = Depends(get_db)):
    return {"success": True, "data": authors_dropdown(db)}


@router.get("/authors/{author_id}")
def get_author(author_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(_find_author(db, author_id))}


@router.post("/authors", status_code=201)
async def post_author(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, AVATAR_UPLOAD_FIELDS)
    author = await run_in_threadpool(create_author, db, store, payload, files)
    return {"success": True, "message": "Author created successfully", "data": serialize_doc(author)}


@router.put("/authors/{author_id}")
async def put_author(
    author_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, AVATAR_UPLOAD_FIELDS)
    author = await run_in_threadpool(update_author, db, store, author_id, payload, files)
    return {"success": True, "message": "Author updated successfully", "data": serialize_doc(author)}


@router.patch("/authors/{author_id}/toggle-active")
def patch_author_active(author_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    author = toggle_author_active(db, author_id)
    state = "activated" if author["active"] else "deactivated"
    return {"success": True, "message": f"Author {state} successfully", "data": serialize_doc(author)}


@router.delete("/authors/{author_id}")
def remove_author(
    author_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    data = delete_author(db, store, author_id)
    return {"success": True, "message": "Author deleted successfully", "data": data}


# ----------------------- Routes: blog categories -----------------------

@router.get("/blog-categories")
def get_blog_categories(active: Optional[bool] = None, platform: Optional[str] = None, db: Database = Depends(get_db)):
    return {"success": True, "data": list_blog_categories(db, active, platform)}


@router.get("/blog-categories/with-count")
def get_blog_categories_with_count(db: Database = Depends(get_db)):
    return {"success": True, "data": blog_categories_with_count(db)}


@router.get("/blog-categories/{category_id}")
def get_blog_category(category_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(_find_blog_category(db, category_id))}


@router.post("/blog-categories", status_code=201)
async def post_blog_category(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, CATEGORY_UPLOAD_FIELDS)
    category = await run_in_threadpool(create_blog_category, db, store, payload, files)
    return {"success": True, "message": "Blog category created successfully", "data": serialize_doc(category)}


@router.put("/blog-categories/{category_id}")
async def put_blog_category(
    category_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, CATEGORY_UPLOAD_FIELDS)
    category = await run_in_threadpool(update_blog_category, db, store, category_id, payload, files)
    return {"success": True, "message": "Blog category updated successfully", "data": serialize_doc(category)}


@router.patch("/blog-categories/{category_id}/toggle-active")
def patch_blog_category_active(category_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_blog_category(db, category_id, "active"))}


@router.patch("/blog-categories/{category_id}/toggle-featured")
def patch_blog_category_featured(category_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_blog_category(db, category_id, "featured"))}


@router.delete("/blog-categories/{category_id}")
def remove_blog_category(
    category_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_blog_category(db, store, category_id)
    return {"success": True, "message": "Blog category deleted successfully"}


# ----------------------- Routes: blogs -----------------------

@router.get("/blogs")
def get_blogs(
    status: Optional[str] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
    db: Database = Depends(get_db),
):
    data = list_blogs(db, status, category_id, search, sort_by, sort_order, max(page, 1), max(limit, 1))
    return {"success": True, "data": data}


@router.get("/blogs/featured")
def get_featured_blogs(limit: int = 3, db: Database = Depends(get_db)):
    return {"success": True, "data": featured_blogs(db, max(limit, 1))}


@router.get("/blogs/featured-categories")
def get_featured_blog_categories(limit: int = 6, db: Database = Depends(get_db)):
    return {"success": True, "data": featured_categories_with_blogs(db, max(limit, 1))}


@router.get("/blogs/slug/{slug}")
def get_blog_by_slug(slug: str, view: bool = False, db: Database = Depends(get_db)):
    return {"success": True, "data": blog_by_slug(db, slug, view)}


@router.get("/blogs/{blog_id}")
def get_blog(blog_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": decorate_blogs(db, [_find_blog(db, blog_id)])[0]}


@router.post("/blogs", status_code=201)
async def post_blog(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, BLOG_UPLOAD_FIELDS)
    blog = await run_in_threadpool(create_blog, db, store, payload, files)
    return {"success": True, "message": "Blog created successfully", "data": blog}


@router.put("/blogs/{blog_id}")
async def put_blog(
    blog_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, BLOG_UPLOAD_FIELDS)
    blog = await run_in_threadpool(update_blog, db, store, blog_id, payload, files)
    return {"success": True, "message": "Blog updated successfully", "data": blog}


@router.delete("/blogs/{blog_id}")
def remove_blog(
    blog_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_blog(db, store, blog_id)
    return {"success": True, "message": "Blog deleted successfully"}


@router.patch("/blogs/{blog_id}/views")
def patch_blog_views(blog_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": {"views": increment_views(db, blog_id)}}


@router.patch("/blogs/{blog_id}/featured")
def patch_blog_featured(blog_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_blog_featured(db, blog_id))}


@router.patch("/blogs/{blog_id}/status")
def patch_blog_status(blog_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_blog_status(db, blog_id))}


@router.get("/categories/{category_id}/blogs")
def get_category_blogs(category_id: str, page: int = 1, limit: int = 10, db: Database = Depends(get_db)):
    return {"success": True, "data": blogs_by_category(db, category_id, max(page, 1), max(limit, 1))}


# ----------------------- Routes: blog hero -----------------------

@router.get("/blog-hero/active")
def get_active_blog_hero(db: Database = Depends(get_db)):
    hero = serialize_doc(active_blog_hero(db))
    return {"success": True, "message": "Active hero retrieved successfully", "data": hero}


@router.get("/blog-hero")
def get_blog_heroes(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "message": "Heroes retrieved successfully", "data": list_blog_heroes(db)}


@router.post("/blog-hero/upload-image")
async def post_blog_hero_image(
    request: Request,
    admin=Depends(require_admin),
    store: BlobStore = Depends(get_storage),
):
    limit_mb = request.app.state.settings.hero_upload_max_file_size_mb
    _, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS, limit_mb)
    if not files.get("image"):
        raise ValidationError("Image file is required")
    url = await run_in_threadpool(store.put_first, files, "image")
    return {"success": True, "message": "Image uploaded successfully", "data": {"image_url": url}}


@router.get("/blog-hero/{hero_id}")
def get_blog_hero(hero_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    hero = serialize_doc(_find_blog_hero(db, hero_id))
    return {"success": True, "message": "Hero retrieved successfully", "data": hero}


@router.post("/blog-hero", status_code=201)
async def post_blog_hero(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    limit_mb = request.app.state.settings.hero_upload_max_file_size_mb
    payload, files = await read_multipart(request, BLOG_HERO_UPLOAD_FIELDS, limit_mb)
    hero = await run_in_threadpool(create_blog_hero, db, store, payload, files)
    return {"success": True, "message": "Hero created successfully", "data": serialize_doc(hero)}


@router.put("/blog-hero/{hero_id}")
async def put_blog_hero(
    hero_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    limit_mb = request.app.state.settings.hero_upload_max_file_size_mb
    payload, files = await read_multipart(request, BLOG_HERO_UPLOAD_FIELDS, limit_mb)
    hero = await run_in_threadpool(update_blog_hero, db, store, hero_id, payload, files)
    return {"success": True, "message": "Hero updated successfully", "data": serialize_doc(hero)}


@router.patch("/blog-hero/{hero_id}/toggle-active")
def patch_blog_hero_active(hero_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    hero = serialize_doc(toggle_blog_hero(db, hero_id))
    return {"success": True, "message": "Hero status updated successfully", "data": hero}


@router.delete("/blog-hero/{hero_id}")
def remove_blog_hero(
    hero_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_blog_hero(db, store, hero_id)
    return {"success": True, "message": "Hero deleted successfully"}
