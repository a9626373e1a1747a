"""
Database connection lifecycle and document helpers.

A single ``Database`` object is created by the application factory and
attached to ``app.state``. Handlers reach it through the ``get_db``
dependency; nothing in this module holds a global connection.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from errors import ValidationError

logger = logging.getLogger(__name__)

# collection -> list of (keys, options)
INDEXES = {
    "product": [([("slug", ASCENDING)], {"unique": True}), ([("status", ASCENDING)], {})],
    "cart": [([("user_id", ASCENDING)], {"unique": True}), ([("items.product_id", ASCENDING)], {})],
    "wishlist": [([("user_id", ASCENDING)], {"unique": True})],
    "order": [([("order_number", ASCENDING)], {"unique": True}), ([("stripe_session_id", ASCENDING)], {})],
    "user": [([("email", ASCENDING)], {"unique": True})],
    "newsletter": [([("email", ASCENDING)], {"unique": True})],
    "category": [([("slug", ASCENDING)], {"unique": True})],
    "color": [([("slug", ASCENDING)], {"unique": True})],
    "size": [([("slug", ASCENDING)], {"unique": True})],
    "blogcategory": [([("slug", ASCENDING)], {"unique": True})],
    "blog": [([("slug", ASCENDING)], {"unique": True})],
    "bloghero": [([("is_active", ASCENDING)], {}), ([("sort_order", ASCENDING)], {})],
    "author": [([("email", ASCENDING)], {"unique": True})],
    "trainer": [([("slug", ASCENDING)], {"unique": True})],
    "gymclass": [([("slug", ASCENDING)], {"unique": True})],
    "theme": [([("key", ASCENDING)], {"unique": True})],
    "webhookevent": [([("event_id", ASCENDING)], {"unique": True})],
}


def now_utc() -> datetime:
    # naive UTC, matching what pymongo hands back on reads
    return datetime.now(timezone.utc).replace(tzinfo=None)


def oid(id_str: str) -> ObjectId:
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid id")


def serialize_doc(doc):
    """Make a stored document JSON friendly: ``_id`` becomes ``id``,
    ObjectIds become strings and datetimes ISO strings, at any depth."""
    if isinstance(doc, list):
        return [serialize_doc(v) for v in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    if not isinstance(doc, dict):
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = serialize_doc(v)
        else:
            out[k] = serialize_doc(v)
    return out


class Database:
    """Owns the MongoClient for the lifetime of the application.

    Pass ``client`` to reuse an already constructed client (tests use an
    in-memory one); otherwise ``connect()`` builds one from ``url``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        name: str = "gymwear",
        client=None,
        max_pool_size: int = 10,
        connect_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.url = url
        self.name = name
        self.client = client
        self.max_pool_size = max_pool_size
        self.connect_retries = connect_retries
        self.retry_delay = retry_delay
        self.db = client[name] if client is not None else None

    def connect(self):
        if self.db is not None:
            self.ensure_indexes()
            return self
        if not self.url:
            raise RuntimeError("DATABASE_URL is not set")
        last_error = None
        for attempt in range(1, self.connect_retries + 1):
            try:
                client = MongoClient(
                    self.url,
                    maxPoolSize=self.max_pool_size,
                    serverSelectionTimeoutMS=30000,
                    socketTimeoutMS=45000,
                )
                client.admin.command("ping")
                self.client = client
                self.db = client[self.name]
                logger.info("Connected to MongoDB database %s", self.name)
                self.ensure_indexes()
                return self
            except PyMongoError as e:
                last_error = e
                logger.warning("MongoDB connection attempt %d/%d failed: %s", attempt, self.connect_retries, e)
                time.sleep(self.retry_delay)
        raise RuntimeError(f"Could not connect to MongoDB: {last_error}")

    def disconnect(self):
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB disconnected")
        self.client = None
        self.db = None

    def health_check(self) -> bool:
        if self.db is None:
            return False
        try:
            self.db.list_collection_names()
            return True
        except PyMongoError as e:
            logger.error("MongoDB health check failed: %s", e)
            return False

    def ensure_indexes(self):
        for collection, indexes in INDEXES.items():
            for keys, options in indexes:
                self.db[collection].create_index(keys, **options)

    def __getitem__(self, collection: str):
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[collection]

    def list_collection_names(self) -> List[str]:
        return self.db.list_collection_names()

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        if isinstance(data, BaseModel):
            data_dict = data.model_dump()
        else:
            data_dict = dict(data)
        data_dict["created_at"] = now_utc()
        data_dict["updated_at"] = now_utc()
        result = self[collection_name].insert_one(data_dict)
        return str(result.inserted_id)

    def get_documents(self, collection_name: str, filter_dict: Dict[str, Any] = None, limit: int = None) -> List[dict]:
        cursor = self[collection_name].find(filter_dict or {})
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)


def get_db(request: Request) -> Database:
    return request.app.state.database
