"""
Site content: trainers, gym classes, themes, hero slides, site settings,
newsletter subscriptions and contact form submissions.
"""
import logging
import re
from datetime import timedelta
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import require_admin
from database import Database, get_db, now_utc, oid, serialize_doc
from errors import ConflictError, NotFoundError, ValidationError
from helpers import as_list, clean_str, pagination, parse_maybe_json, slugify, to_bool, to_number
from schemas import (
    Contact,
    ContactAssignBody,
    ContactBody,
    ContactNoteBody,
    ContactPriorityBody,
    ContactStatusBody,
    DisplayOrderBody,
    Gymclass,
    Heroslide,
    Newsletter,
    Settings as SiteSettings,
    SubscribeBody,
    Theme,
    Trainer,
    UnsubscribeBody,
)
from storage import (
    GYM_CLASS_UPLOAD_FIELDS,
    IMAGE_UPLOAD_FIELDS,
    LOGO_UPLOAD_FIELDS,
    BlobStore,
    get_storage,
    read_multipart,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["content"])

DEFAULT_LOGO_URL = "/images/logo.png"
CONTACT_STATUSES = ["new", "in_progress", "resolved", "closed"]
CONTACT_PRIORITIES = ["low", "medium", "high", "urgent"]

# payload field -> how to read it from a JSON or multipart body
TRAINER_FIELDS = {
    "name": "str",
    "role": "str",
    "bio": "str",
    "image": "str",
    "email": "str",
    "phone": "str",
    "specialties": "list",
    "certifications": "list",
    "experience": "int",
    "social": "json",
    "availability": "json",
    "is_active": "bool",
    "is_featured": "bool",
    "order": "int",
    "rating": "float",
}
GYM_CLASS_FIELDS = {
    "name": "str",
    "description": "str",
    "short_description": "str",
    "thumbnail": "str",
    "video_url": "str",
    "gallery": "list",
    "schedule": "json",
    "duration": "int",
    "difficulty": "str",
    "capacity": "int",
    "features": "list",
    "requirements": "list",
    "category": "str",
    "tags": "list",
    "is_active": "bool",
    "is_featured": "bool",
    "order": "int",
    "price": "float",
    "currency": "str",
}
THEME_FIELDS = {
    "key": "str",
    "title": "str",
    "tagline": "str",
    "description": "str",
    "cover": "str",
    "accent": "str",
    "gallery": "json",
    "is_active": "bool",
    "order": "int",
}
HERO_SLIDE_FIELDS = {
    "title": "str",
    "description": "str",
    "image_url": "str",
    "button_text": "str",
    "button_link": "str",
    "second_button_text": "str",
    "second_button_link": "str",
    "is_active": "bool",
    "order": "int",
    "aria_label": "str",
    "platform": "str",
}


# ----------------------- Shared -----------------------

def parse_fields(payload: dict, fields: dict) -> dict:
    """Pick the known fields out of a request payload, coercing form strings.

    Blank values come back as None so callers can tell "cleared" from
    "absent".
    """
    out = {}
    for name, kind in fields.items():
        if name not in payload:
            continue
        value = payload[name]
        if kind == "str":
            out[name] = clean_str(value)
        elif kind == "int":
            out[name] = to_number(value, name, integer=True)
        elif kind == "float":
            out[name] = to_number(value, name)
        elif kind == "bool":
            out[name] = to_bool(value)
        elif kind == "list":
            out[name] = [str(v).strip() for v in as_list(value) if str(v).strip()]
        else:
            value = parse_maybe_json(value)
            if isinstance(value, str):
                raise ValidationError(f"{name} must be valid JSON")
            out[name] = value
    return out


def _present(values: dict) -> dict:
    return {k: v for k, v in values.items() if v is not None}


def _find(db: Database, collection: str, doc_id: str, label: str) -> dict:
    doc = db[collection].find_one({"_id": oid(doc_id)})
    if not doc:
        raise NotFoundError(f"{label} not found")
    return doc


def next_display_order(db: Database, collection: str, query: Optional[dict] = None) -> int:
    last = db[collection].find_one(query or {}, sort=[("order", -1)])
    return (last.get("order") or 0) + 1 if last else 1


def unique_slug(db: Database, collection: str, name: str, exclude_id: Optional[ObjectId] = None) -> str:
    base = slugify(name) or "item"
    slug, n = base, 2
    while True:
        query = {"slug": slug}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if not db[collection].find_one(query, {"_id": 1}):
            return slug
        slug = f"{base}-{n}"
        n += 1


def _insert(db: Database, collection: str, document, conflict: str) -> dict:
    try:
        doc_id = db.create_document(collection, document)
    except DuplicateKeyError:
        raise ConflictError(conflict)
    return db[collection].find_one({"_id": oid(doc_id)})


def _apply(db: Database, collection: str, model, doc: dict, updates: dict, conflict: str = "Duplicate value") -> dict:
    """Validate the merged document against ``model`` and write ``updates``."""
    model.model_validate({**{k: v for k, v in doc.items() if k in model.model_fields}, **updates})
    updates["updated_at"] = now_utc()
    try:
        return db[collection].find_one_and_update(
            {"_id": doc["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError(conflict)


def toggle_flag(db: Database, collection: str, doc_id: str, field: str, label: str) -> dict:
    doc = _find(db, collection, doc_id, label)
    return db[collection].find_one_and_update(
        {"_id": doc["_id"]},
        {"$set": {field: not doc.get(field, False), "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )


def set_display_order(db: Database, collection: str, doc_id: str, order: Optional[int], label: str) -> dict:
    if order is None or order < 0:
        raise ValidationError("Order must be a non-negative number")
    doc = db[collection].find_one_and_update(
        {"_id": oid(doc_id)},
        {"$set": {"order": order, "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise NotFoundError(f"{label} not found")
    return doc


def _ordered(db: Database, collection: str, query: dict, limit: int = 0) -> list:
    cursor = db[collection].find(query).sort([("order", 1), ("created_at", -1)])
    if limit:
        cursor = cursor.limit(limit)
    return serialize_doc(list(cursor))


# ----------------------- Trainers -----------------------

def create_trainer(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    values = _present(parse_fields(payload, TRAINER_FIELDS))
    if not values.get("name") or not values.get("role"):
        raise ValidationError("Name and role are required")
    values["image"] = store.put_first(files, "image") or values.get("image")
    values["slug"] = unique_slug(db, "trainer", clean_str(payload.get("slug")) or values["name"])
    if not values.get("order"):
        values["order"] = next_display_order(db, "trainer")
    trainer = _insert(db, "trainer", Trainer(**values), "Trainer with this slug already exists")
    logger.info("Created trainer %s", trainer["slug"])
    return trainer


def update_trainer(db: Database, store: BlobStore, trainer_id: str, payload: dict, files: dict) -> dict:
    trainer = _find(db, "trainer", trainer_id, "Trainer")
    updates = parse_fields(payload, TRAINER_FIELDS)
    if clean_str(payload.get("slug")):
        updates["slug"] = unique_slug(db, "trainer", payload["slug"], trainer["_id"])
    if files.get("image"):
        updates["image"] = store.put_first(files, "image")
        store.delete(trainer.get("image"))
    return _apply(db, "trainer", Trainer, trainer, updates, "Trainer with this slug already exists")


def delete_trainer(db: Database, store: BlobStore, trainer_id: str):
    trainer = _find(db, "trainer", trainer_id, "Trainer")
    db["trainer"].delete_one({"_id": trainer["_id"]})
    store.delete(trainer.get("image"))


def list_trainers(db: Database, active: Optional[bool], featured: Optional[bool], search: Optional[str]) -> list:
    query = {}
    if active is not None:
        query["is_active"] = active
    if featured is not None:
        query["is_featured"] = featured
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"role": pattern}, {"specialties": pattern}]
    return _ordered(db, "trainer", query)


def trainer_by_slug(db: Database, slug: str) -> dict:
    trainer = db["trainer"].find_one({"slug": slug, "is_active": True})
    if not trainer:
        raise NotFoundError("Trainer not found")
    return trainer


# ----------------------- Gym classes -----------------------

def _fill_instructors(db: Database, schedule: list) -> list:
    ids = [ObjectId(s["instructor_id"]) for s in schedule if ObjectId.is_valid(str(s.get("instructor_id")))]
    names = {str(t["_id"]): t["name"] for t in db["trainer"].find({"_id": {"$in": ids}}, {"name": 1})}
    for slot in schedule:
        if not slot.get("instructor_name") and str(slot.get("instructor_id")) in names:
            slot["instructor_name"] = names[str(slot["instructor_id"])]
    return schedule


def create_gym_class(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    values = _present(parse_fields(payload, GYM_CLASS_FIELDS))
    if not values.get("name") or not values.get("description"):
        raise ValidationError("Name and description are required")
    values["thumbnail"] = store.put_first(files, "thumbnail") or values.get("thumbnail")
    values["gallery"] = values.get("gallery", []) + [store.put(f) for f in files.get("gallery", [])]
    values["schedule"] = _fill_instructors(db, values.get("schedule") or [])
    values["slug"] = unique_slug(db, "gymclass", clean_str(payload.get("slug")) or values["name"])
    if not values.get("order"):
        values["order"] = next_display_order(db, "gymclass")
    gym_class = _insert(db, "gymclass", Gymclass(**values), "Class with this slug already exists")
    logger.info("Created gym class %s", gym_class["slug"])
    return gym_class


def update_gym_class(db: Database, store: BlobStore, class_id: str, payload: dict, files: dict) -> dict:
    gym_class = _find(db, "gymclass", class_id, "Class")
    updates = parse_fields(payload, GYM_CLASS_FIELDS)
    if clean_str(payload.get("slug")):
        updates["slug"] = unique_slug(db, "gymclass", payload["slug"], gym_class["_id"])
    if files.get("thumbnail"):
        updates["thumbnail"] = store.put_first(files, "thumbnail")
        store.delete(gym_class.get("thumbnail"))
    if files.get("gallery"):
        kept = updates.get("gallery", gym_class.get("gallery", []))
        updates["gallery"] = kept + [store.put(f) for f in files["gallery"]]
    if "gallery" in updates:
        for url in set(gym_class.get("gallery", [])) - set(updates["gallery"]):
            store.delete(url)
    if updates.get("schedule") is not None:
        updates["schedule"] = _fill_instructors(db, updates["schedule"])
    return _apply(db, "gymclass", Gymclass, gym_class, updates, "Class with this slug already exists")


def delete_gym_class(db: Database, store: BlobStore, class_id: str):
    gym_class = _find(db, "gymclass", class_id, "Class")
    db["gymclass"].delete_one({"_id": gym_class["_id"]})
    for url in [gym_class.get("thumbnail")] + gym_class.get("gallery", []):
        store.delete(url)


def list_gym_classes(
    db: Database,
    active: Optional[bool] = None,
    featured: Optional[bool] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 0,
) -> list:
    query = {}
    if active is not None:
        query["is_active"] = active
    if featured is not None:
        query["is_featured"] = featured
    if category:
        query["category"] = category
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"description": pattern}, {"tags": pattern}]
    return _ordered(db, "gymclass", query, limit)


def gym_class_by_slug(db: Database, slug: str) -> dict:
    gym_class = db["gymclass"].find_one({"slug": slug, "is_active": True})
    if not gym_class:
        raise NotFoundError("Class not found")
    return gym_class


# ----------------------- Themes -----------------------

def create_theme(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    values = _present(parse_fields(payload, THEME_FIELDS))
    values["cover"] = store.put_first(files, "image") or values.get("cover")
    if not values.get("key") and values.get("title"):
        values["key"] = slugify(values["title"])
    if not values.get("order"):
        values["order"] = next_display_order(db, "theme")
    return _insert(db, "theme", Theme(**values), "Theme with this key already exists")


def update_theme(db: Database, store: BlobStore, theme_id: str, payload: dict, files: dict) -> dict:
    theme = _find(db, "theme", theme_id, "Theme")
    updates = parse_fields(payload, THEME_FIELDS)
    if files.get("image"):
        updates["cover"] = store.put_first(files, "image")
        store.delete(theme.get("cover"))
    return _apply(db, "theme", Theme, theme, updates, "Theme with this key already exists")


def delete_theme(db: Database, store: BlobStore, theme_id: str):
    theme = _find(db, "theme", theme_id, "Theme")
    db["theme"].delete_one({"_id": theme["_id"]})
    store.delete(theme.get("cover"))


# ----------------------- Hero slides -----------------------

def create_hero_slide(db: Database, store: BlobStore, payload: dict, files: dict) -> dict:
    values = _present(parse_fields(payload, HERO_SLIDE_FIELDS))
    values["image_url"] = store.put_first(files, "image") or values.get("image_url")
    if not values["image_url"]:
        raise ValidationError("Image is required")
    values.setdefault("platform", "gymwear")
    if not values.get("order"):
        values["order"] = next_display_order(db, "heroslide", {"platform": values["platform"]})
    return _insert(db, "heroslide", Heroslide(**values), "Duplicate hero slide")


def update_hero_slide(db: Database, store: BlobStore, slide_id: str, payload: dict, files: dict) -> dict:
    slide = _find(db, "heroslide", slide_id, "Hero slide")
    updates = parse_fields(payload, HERO_SLIDE_FIELDS)
    if files.get("image"):
        updates["image_url"] = store.put_first(files, "image")
        store.delete(slide.get("image_url"))
    return _apply(db, "heroslide", Heroslide, slide, updates)


def delete_hero_slide(db: Database, store: BlobStore, slide_id: str):
    slide = _find(db, "heroslide", slide_id, "Hero slide")
    db["heroslide"].delete_one({"_id": slide["_id"]})
    store.delete(slide.get("image_url"))


# ----------------------- Settings -----------------------

def get_site_settings(db: Database) -> dict:
    """The settings document is a singleton, created with defaults on first read."""
    now = now_utc()
    return db["settings"].find_one_and_update(
        {},
        {"$setOnInsert": {**SiteSettings().model_dump(), "created_at": now, "updated_at": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def update_site_settings(db: Database, payload: dict) -> dict:
    current = get_site_settings(db)
    updates = {k: v for k, v in payload.items() if k in SiteSettings.model_fields}
    if not updates:
        raise ValidationError("No valid settings provided")
    return _apply(db, "settings", SiteSettings, current, updates)


def set_logo(db: Database, store: BlobStore, logo_url: Optional[str]) -> dict:
    current = get_site_settings(db)
    store.delete(current.get("logo_url"))
    return _apply(db, "settings", SiteSettings, current, {"logo_url": logo_url or DEFAULT_LOGO_URL})


def upload_logo(db: Database, store: BlobStore, files: dict) -> dict:
    if not files.get("logo"):
        raise ValidationError("No logo file uploaded")
    return set_logo(db, store, store.put_first(files, "logo"))


def reset_site_settings(db: Database) -> dict:
    current = get_site_settings(db)
    defaults = SiteSettings().model_dump(exclude={"is_active", "version"})
    return _apply(db, "settings", SiteSettings, current, defaults)


# ----------------------- Newsletter -----------------------

def subscribe(db: Database, body: SubscribeBody, ip_address: Optional[str], user_agent: Optional[str]):
    """Returns (subscription, created)."""
    email = body.email.lower()
    existing = db["newsletter"].find_one({"email": email})
    if existing:
        if existing.get("status") == "active":
            raise ConflictError("Email is already subscribed to our newsletter")
        subscription = db["newsletter"].find_one_and_update(
            {"_id": existing["_id"]},
            {
                "$set": {"status": "active", "subscribed_at": now_utc(), "source": body.source, "updated_at": now_utc()},
                "$unset": {"unsubscribed_at": ""},
            },
            return_document=ReturnDocument.AFTER,
        )
        return subscription, False
    subscription = Newsletter(
        email=email, source=body.source, subscribed_at=now_utc(), ip_address=ip_address, user_agent=user_agent
    )
    return _insert(db, "newsletter", subscription, "Email is already subscribed"), True


def unsubscribe(db: Database, email: str) -> dict:
    subscription = db["newsletter"].find_one_and_update(
        {"email": email.lower()},
        {"$set": {"status": "unsubscribed", "unsubscribed_at": now_utc(), "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    if not subscription:
        raise NotFoundError("Email not found in our subscription list")
    return subscription


def newsletter_stats(db: Database) -> dict:
    since = now_utc() - timedelta(days=30)
    by_source = db["newsletter"].aggregate(
        [
            {"$match": {"status": "active"}},
            {"$group": {"_id": "$source", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
    )
    return {
        "total_subscribers": db["newsletter"].count_documents({"status": "active"}),
        "total_subscriptions": db["newsletter"].count_documents({}),
        "unsubscribed": db["newsletter"].count_documents({"status": "unsubscribed"}),
        "recent_subscriptions": db["newsletter"].count_documents({"status": "active", "subscribed_at": {"$gte": since}}),
        "subscriptions_by_source": [{"source": row["_id"], "count": row["count"]} for row in by_source],
    }


def list_subscribers(db: Database, status: str, sort_by: str, sort_order: str, page: int, limit: int) -> dict:
    query = {} if status == "all" else {"status": status}
    total = db["newsletter"].count_documents(query)
    cursor = (
        db["newsletter"]
        .find(query, {"ip_address": 0, "user_agent": 0})
        .sort(sort_by, 1 if sort_order == "asc" else -1)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return {"subscribers": serialize_doc(list(cursor)), "pagination": pagination(total, page, limit)}


# ----------------------- Contact -----------------------

def submit_contact(db: Database, body: ContactBody, ip_address: Optional[str], user_agent: Optional[str]) -> dict:
    full_name = clean_str(body.full_name)
    email = clean_str(body.email_address)
    message = clean_str(body.message)
    if not full_name or not email or not message:
        raise ValidationError("Full name, email address, and message are required")
    contact = Contact(
        full_name=full_name,
        email_address=email.lower(),
        phone_number=clean_str(body.phone_number),
        subject=clean_str(body.subject) or "General Inquiry",
        message=message,
        category=body.category,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    contact_id = db.create_document("contact", contact)
    logger.info("Contact submission %s from %s", contact_id, contact.email_address)
    return db["contact"].find_one({"_id": oid(contact_id)})


def _with_assignees(db: Database, contacts: list) -> list:
    ids = {ObjectId(c["assigned_to"]) for c in contacts if ObjectId.is_valid(str(c.get("assigned_to")))}
    users = {
        str(u["_id"]): serialize_doc(u)
        for u in db["user"].find({"_id": {"$in": list(ids)}}, {"email": 1, "first_name": 1, "last_name": 1})
    }
    out = []
    for contact in contacts:
        data = serialize_doc(contact)
        data["assignee"] = users.get(str(contact.get("assigned_to")))
        out.append(data)
    return out


def list_contacts(
    db: Database, status: str, category: str, sort_by: str, sort_order: str, page: int, limit: int
) -> dict:
    query = {}
    if status != "all":
        query["status"] = status
    if category != "all":
        query["category"] = category
    total = db["contact"].count_documents(query)
    cursor = (
        db["contact"]
        .find(query, {"ip_address": 0, "user_agent": 0, "admin_notes": 0})
        .sort(sort_by, 1 if sort_order == "asc" else -1)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return {"contacts": _with_assignees(db, list(cursor)), "pagination": pagination(total, page, limit)}


def contact_stats(db: Database) -> dict:
    def grouped(field):
        rows = db["contact"].aggregate([{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}])
        return {row["_id"]: row["count"] for row in rows}

    return {
        "total": db["contact"].count_documents({}),
        "by_status": grouped("status"),
        "by_category": grouped("category"),
        "recent_contacts": db["contact"].count_documents({"created_at": {"$gte": now_utc() - timedelta(days=7)}}),
        "unread_contacts": db["contact"].count_documents({"status": "new"}),
    }


def read_contact(db: Database, contact_id: str) -> dict:
    """Fetching a new submission moves it to in_progress."""
    contact = _find(db, "contact", contact_id, "Contact")
    if contact.get("status") == "new":
        contact = db["contact"].find_one_and_update(
            {"_id": contact["_id"]},
            {"$set": {"status": "in_progress", "updated_at": now_utc()}},
            return_document=ReturnDocument.AFTER,
        )
    return _with_assignees(db, [contact])[0]


def _set_contact(db: Database, contact_id: str, update: dict) -> dict:
    update.setdefault("$set", {})["updated_at"] = now_utc()
    contact = db["contact"].find_one_and_update(
        {"_id": oid(contact_id)}, update, return_document=ReturnDocument.AFTER
    )
    if not contact:
        raise NotFoundError("Contact not found")
    return contact


def set_contact_status(db: Database, contact_id: str, status: Optional[str]) -> dict:
    if status not in CONTACT_STATUSES:
        raise ValidationError(f"Invalid status. Valid statuses are: {', '.join(CONTACT_STATUSES)}")
    return _set_contact(db, contact_id, {"$set": {"status": status}})


def set_contact_priority(db: Database, contact_id: str, priority: Optional[str]) -> dict:
    if priority not in CONTACT_PRIORITIES:
        raise ValidationError(f"Invalid priority. Valid priorities are: {', '.join(CONTACT_PRIORITIES)}")
    return _set_contact(db, contact_id, {"$set": {"priority": priority}})


def add_contact_note(db: Database, contact_id: str, note: Optional[str], admin_id: str) -> dict:
    note = clean_str(note)
    if not note:
        raise ValidationError("Note content is required")
    entry = {"note": note, "added_by": admin_id, "added_at": now_utc()}
    return _set_contact(db, contact_id, {"$push": {"admin_notes": entry}})


def assign_contact(db: Database, contact_id: str, assigned_to: Optional[str]) -> dict:
    assigned_to = clean_str(assigned_to)
    if assigned_to and not db["user"].find_one({"_id": oid(assigned_to)}, {"_id": 1}):
        raise NotFoundError("User not found")
    contact = _set_contact(db, contact_id, {"$set": {"assigned_to": assigned_to}})
    return _with_assignees(db, [contact])[0]


def mark_response_sent(db: Database, contact_id: str) -> dict:
    return _set_contact(db, contact_id, {"$set": {"response_email_sent": True, "response_email_sent_at": now_utc()}})


def delete_contact(db: Database, contact_id: str):
    if db["contact"].delete_one({"_id": oid(contact_id)}).deleted_count == 0:
        raise NotFoundError("Contact not found")


def _client(request: Request):
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


# ----------------------- Routes: trainers -----------------------

@router.get("/trainers/active")
def get_active_trainers(db: Database = Depends(get_db)):
    return {"success": True, "data": list_trainers(db, True, None, None)}


@router.get("/trainers/featured")
def get_featured_trainers(limit: int = 4, db: Database = Depends(get_db)):
    return {"success": True, "data": list_trainers(db, True, True, None)[: max(limit, 1)]}


@router.get("/trainers/slug/{slug}")
def get_trainer_by_slug(slug: str, db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(trainer_by_slug(db, slug))}


@router.get("/trainers")
def get_trainers(
    active: Optional[bool] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": list_trainers(db, active, featured, search)}


@router.get("/trainers/{trainer_id}")
def get_trainer(trainer_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(_find(db, "trainer", trainer_id, "Trainer"))}


@router.post("/trainers", status_code=201)
async def post_trainer(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS)
    trainer = await run_in_threadpool(create_trainer, db, store, payload, files)
    return {"success": True, "message": "Trainer created successfully", "data": serialize_doc(trainer)}


@router.put("/trainers/{trainer_id}")
async def put_trainer(
    trainer_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS)
    trainer = await run_in_threadpool(update_trainer, db, store, trainer_id, payload, files)
    return {"success": True, "message": "Trainer updated successfully", "data": serialize_doc(trainer)}


@router.patch("/trainers/{trainer_id}/status")
def patch_trainer_status(trainer_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_flag(db, "trainer", trainer_id, "is_active", "Trainer"))}


@router.patch("/trainers/{trainer_id}/featured")
def patch_trainer_featured(trainer_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_flag(db, "trainer", trainer_id, "is_featured", "Trainer"))}


@router.delete("/trainers/{trainer_id}")
def remove_trainer(
    trainer_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_trainer(db, store, trainer_id)
    return {"success": True, "message": "Trainer deleted successfully"}


# ----------------------- Routes: gym classes -----------------------

@router.get("/gym-classes/active")
def get_active_classes(db: Database = Depends(get_db)):
    return {"success": True, "data": list_gym_classes(db, active=True)}


@router.get("/gym-classes/featured")
def get_featured_classes(limit: int = 6, db: Database = Depends(get_db)):
    return {"success": True, "data": list_gym_classes(db, active=True, featured=True, limit=max(limit, 1))}


@router.get("/gym-classes/category/{category}")
def get_classes_by_category(category: str, db: Database = Depends(get_db)):
    return {"success": True, "data": list_gym_classes(db, active=True, category=category)}


@router.get("/gym-classes/slug/{slug}")
def get_class_by_slug(slug: str, db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(gym_class_by_slug(db, slug))}


@router.get("/gym-classes")
def get_classes(
    active: Optional[bool] = None,
    featured: Optional[bool] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": list_gym_classes(db, active, featured, category, search)}


@router.get("/gym-classes/{class_id}")
def get_class(class_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(_find(db, "gymclass", class_id, "Class"))}


@router.post("/gym-classes", status_code=201)
async def post_class(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, GYM_CLASS_UPLOAD_FIELDS)
    gym_class = await run_in_threadpool(create_gym_class, db, store, payload, files)
    return {"success": True, "message": "Class created successfully", "data": serialize_doc(gym_class)}


@router.put("/gym-classes/{class_id}")
async def put_class(
    class_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, GYM_CLASS_UPLOAD_FIELDS)
    gym_class = await run_in_threadpool(update_gym_class, db, store, class_id, payload, files)
    return {"success": True, "message": "Class updated successfully", "data": serialize_doc(gym_class)}


@router.patch("/gym-classes/{class_id}/status")
def patch_class_status(class_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_flag(db, "gymclass", class_id, "is_active", "Class"))}


@router.patch("/gym-classes/{class_id}/featured")
def patch_class_featured(class_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_flag(db, "gymclass", class_id, "is_featured", "Class"))}


@router.delete("/gym-classes/{class_id}")
def remove_class(
    class_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_gym_class(db, store, class_id)
    return {"success": True, "message": "Class deleted successfully"}


# ----------------------- Routes: themes -----------------------

@router.get("/themes/active")
def get_active_themes(db: Database = Depends(get_db)):
    return {"success": True, "data": _ordered(db, "theme", {"is_active": True})}


@router.get("/themes")
def get_themes(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": _ordered(db, "theme", {})}


@router.get("/themes/{theme_id}")
def get_theme(theme_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(_find(db, "theme", theme_id, "Theme"))}


@router.post("/themes", status_code=201)
async def post_theme(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS)
    theme = await run_in_threadpool(create_theme, db, store, payload, files)
    return {"success": True, "message": "Theme created successfully", "data": serialize_doc(theme)}


@router.put("/themes/{theme_id}")
async def put_theme(
    theme_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    payload, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS)
    theme = await run_in_threadpool(update_theme, db, store, theme_id, payload, files)
    return {"success": True, "message": "Theme updated successfully", "data": serialize_doc(theme)}


@router.patch("/themes/{theme_id}/status")
def patch_theme_status(theme_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(toggle_flag(db, "theme", theme_id, "is_active", "Theme"))}


@router.patch("/themes/{theme_id}/order")
def patch_theme_order(
    theme_id: str, body: DisplayOrderBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    theme = set_display_order(db, "theme", theme_id, body.order, "Theme")
    return {"success": True, "message": "Theme order updated successfully", "data": serialize_doc(theme)}


@router.delete("/themes/{theme_id}")
def remove_theme(
    theme_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_theme(db, store, theme_id)
    return {"success": True, "message": "Theme deleted successfully"}


# ----------------------- Routes: hero slides -----------------------

@router.get("/hero-slides/active")
def get_active_slides(platform: str = "gymwear", db: Database = Depends(get_db)):
    return {"success": True, "data": _ordered(db, "heroslide", {"is_active": True, "platform": platform})}


@router.get("/hero-slides")
def get_slides(platform: Optional[str] = None, admin=Depends(require_admin), db: Database = Depends(get_db)):
    query = {"platform": platform} if platform else {}
    return {"success": True, "data": _ordered(db, "heroslide", query)}


@router.get("/hero-slides/{slide_id}")
def get_slide(slide_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(_find(db, "heroslide", slide_id, "Hero slide"))}


@router.post("/hero-slides", status_code=201)
async def post_slide(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    limit_mb = request.app.state.settings.hero_upload_max_file_size_mb
    payload, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS, limit_mb)
    slide = await run_in_threadpool(create_hero_slide, db, store, payload, files)
    return {"success": True, "message": "Hero slide created successfully", "data": serialize_doc(slide)}


@router.put("/hero-slides/{slide_id}")
async def put_slide(
    slide_id: str,
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    limit_mb = request.app.state.settings.hero_upload_max_file_size_mb
    payload, files = await read_multipart(request, IMAGE_UPLOAD_FIELDS, limit_mb)
    slide = await run_in_threadpool(update_hero_slide, db, store, slide_id, payload, files)
    return {"success": True, "message": "Hero slide updated successfully", "data": serialize_doc(slide)}


@router.patch("/hero-slides/{slide_id}/status")
def patch_slide_status(slide_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    slide = toggle_flag(db, "heroslide", slide_id, "is_active", "Hero slide")
    return {"success": True, "data": serialize_doc(slide)}


@router.patch("/hero-slides/{slide_id}/order")
def patch_slide_order(
    slide_id: str, body: DisplayOrderBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    slide = set_display_order(db, "heroslide", slide_id, body.order, "Hero slide")
    return {"success": True, "message": "Hero slide order updated successfully", "data": serialize_doc(slide)}


@router.delete("/hero-slides/{slide_id}")
def remove_slide(
    slide_id: str,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    delete_hero_slide(db, store, slide_id)
    return {"success": True, "message": "Hero slide deleted successfully"}


# ----------------------- Routes: settings -----------------------

@router.get("/settings")
def get_settings(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": serialize_doc(get_site_settings(db))}


@router.put("/settings")
def put_settings(payload: dict = Body(...), admin=Depends(require_admin), db: Database = Depends(get_db)):
    settings = update_site_settings(db, payload)
    return {"success": True, "message": "Settings updated successfully", "data": serialize_doc(settings)}


@router.post("/settings/logo")
async def post_logo(
    request: Request,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
    store: BlobStore = Depends(get_storage),
):
    _, files = await read_multipart(request, LOGO_UPLOAD_FIELDS)
    settings = await run_in_threadpool(upload_logo, db, store, files)
    return {"success": True, "message": "Logo uploaded successfully", "data": serialize_doc(settings)}


@router.delete("/settings/logo")
def remove_logo(admin=Depends(require_admin), db: Database = Depends(get_db), store: BlobStore = Depends(get_storage)):
    settings = set_logo(db, store, None)
    return {"success": True, "message": "Logo reset to default successfully", "data": serialize_doc(settings)}


@router.post("/settings/reset")
def post_reset_settings(admin=Depends(require_admin), db: Database = Depends(get_db)):
    settings = reset_site_settings(db)
    return {"success": True, "message": "Settings reset to default successfully", "data": serialize_doc(settings)}


# ----------------------- Routes: newsletter -----------------------

@router.post("/api/newsletter/subscribe")
def post_subscribe(body: SubscribeBody, request: Request, response: Response, db: Database = Depends(get_db)):
    ip_address, user_agent = _client(request)
    subscription, created = subscribe(db, body, ip_address, user_agent)
    response.status_code = 201 if created else 200
    message = (
        "Successfully subscribed to newsletter! Welcome to our fitness community."
        if created
        else "Welcome back! Your subscription has been reactivated"
    )
    data = {"email": subscription["email"], "subscribed_at": serialize_doc(subscription["subscribed_at"])}
    return {"success": True, "message": message, "data": data}


@router.post("/api/newsletter/unsubscribe")
def post_unsubscribe(body: UnsubscribeBody, db: Database = Depends(get_db)):
    subscription = unsubscribe(db, body.email)
    data = {"email": subscription["email"], "unsubscribed_at": serialize_doc(subscription["unsubscribed_at"])}
    return {"success": True, "message": "Successfully unsubscribed from newsletter", "data": data}


@router.get("/api/newsletter/stats")
def get_newsletter_stats(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": newsletter_stats(db)}


@router.get("/api/newsletter/subscribers")
def get_subscribers(
    status: str = "active",
    sort_by: str = "subscribed_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": list_subscribers(db, status, sort_by, sort_order, max(page, 1), max(limit, 1))}


# ----------------------- Routes: contact -----------------------

@router.post("/api/contact/submit", status_code=201)
def post_contact(body: ContactBody, request: Request, db: Database = Depends(get_db)):
    ip_address, user_agent = _client(request)
    contact = submit_contact(db, body, ip_address, user_agent)
    return {
        "success": True,
        "message": "Your message has been submitted successfully! We will get back to you within 24-48 hours.",
        "data": {
            "id": str(contact["_id"]),
            "full_name": contact["full_name"],
            "email_address": contact["email_address"],
            "subject": contact["subject"],
            "submitted_at": serialize_doc(contact["created_at"]),
        },
    }


@router.get("/api/contact")
def get_contacts(
    status: str = "all",
    category: str = "all",
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
    admin=Depends(require_admin),
    db: Database = Depends(get_db),
):
    data = list_contacts(db, status, category, sort_by, sort_order, max(page, 1), max(limit, 1))
    return {"success": True, "data": data}


@router.get("/api/contact/stats")
def get_contact_stats(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": contact_stats(db)}


@router.get("/api/contact/{contact_id}")
def get_contact(contact_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "data": read_contact(db, contact_id)}


@router.put("/api/contact/{contact_id}/status")
def put_contact_status(
    contact_id: str, body: ContactStatusBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    contact = set_contact_status(db, contact_id, body.status)
    return {"success": True, "message": "Contact status updated successfully", "data": serialize_doc(contact)}


@router.put("/api/contact/{contact_id}/priority")
def put_contact_priority(
    contact_id: str, body: ContactPriorityBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    contact = set_contact_priority(db, contact_id, body.priority)
    return {"success": True, "message": "Contact priority updated successfully", "data": serialize_doc(contact)}


@router.post("/api/contact/{contact_id}/note")
def post_contact_note(
    contact_id: str, body: ContactNoteBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    contact = add_contact_note(db, contact_id, body.note, admin["id"])
    return {"success": True, "message": "Admin note added successfully", "data": serialize_doc(contact)}


@router.put("/api/contact/{contact_id}/assign")
def put_contact_assign(
    contact_id: str, body: ContactAssignBody, admin=Depends(require_admin), db: Database = Depends(get_db)
):
    contact = assign_contact(db, contact_id, body.assigned_to)
    message = "Contact assigned successfully" if body.assigned_to else "Contact unassigned successfully"
    return {"success": True, "message": message, "data": contact}


@router.put("/api/contact/{contact_id}/response-sent")
def put_contact_response_sent(contact_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    contact = mark_response_sent(db, contact_id)
    return {"success": True, "message": "Response email marked as sent", "data": serialize_doc(contact)}


@router.delete("/api/contact/{contact_id}")
def remove_contact(contact_id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    delete_contact(db, contact_id)
    return {"success": True, "message": "Contact deleted successfully"}
