import hashlib
import hmac
import json
import os
import tempfile
import time

# main builds a module-level app on import; keep its uploads out of the repo
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="gymwear-uploads-"))

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_token, hash_password
from config import Settings
from database import Database, oid
from main import create_app
from schemas import Product, User

WEBHOOK_SECRET = "whsec_test_secret"
RED_VARIANT = "FT-RED-M-A1B2C3"
BLACK_VARIANT = "FT-BLA-L-D4E5F6"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        stripe_secret_key="sk_test_123",
        stripe_publishable_key="pk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        uploads_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest.fixture
def db():
    return Database(client=mongomock.MongoClient(), name="gymwear_test")


@pytest.fixture
def client(settings, db):
    app = create_app(settings=settings, database=db)
    with TestClient(app) as c:
        yield c


def make_user(db, email, role="user"):
    user = User(
        first_name="Test",
        last_name=role.title(),
        email=email,
        password_hash=hash_password("secret123"),
        role=role,
    )
    return db.create_document("user", user)


def bearer(settings, user_id, email, role):
    token = create_token({"id": user_id, "email": email, "role": role}, settings.jwt_secret)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_id(db):
    return make_user(db, "member@example.com")


@pytest.fixture
def user_headers(settings, user_id):
    return bearer(settings, user_id, "member@example.com", "user")


@pytest.fixture
def admin_headers(settings, db):
    admin_id = make_user(db, "admin@example.com", role="admin")
    return bearer(settings, admin_id, "admin@example.com", "admin")


@pytest.fixture
def product(db):
    """A published variant product. The red colour media was stored under a
    mixed-case key, as older documents were."""
    doc = Product(
        name="Flex Tee",
        slug="flex-tee",
        category="Tops",
        price=30,
        stock=8,
        status="published",
        thumbnail_url="/uploads/flex-tee.png",
        product_type="variant",
        variants=[
            {"variant_id": RED_VARIANT, "color": "Red", "size": "M", "price": 30, "stock": 5, "sku": "FT-RED-M-01"},
            {"variant_id": BLACK_VARIANT, "color": "Black", "size": "L", "price": 32, "stock": 3, "sku": "FT-BLA-L-02"},
        ],
        color_media={
            "Red": {"thumbnail_url": "/uploads/red.png", "banner_urls": ["/uploads/red-1.png"]},
            "black": {"thumbnail_url": "/uploads/black.png", "banner_urls": []},
        },
    )
    product_id = db.create_document("product", doc)
    return db["product"].find_one({"_id": oid(product_id)})


@pytest.fixture
def simple_product(db):
    doc = Product(name="Chalk Bag", slug="chalk-bag", category="Accessories", price=12, stock=4, status="published")
    product_id = db.create_document("product", doc)
    return db["product"].find_one({"_id": oid(product_id)})


def signed_event(event: dict, secret: str = WEBHOOK_SECRET):
    """Serialize an event and build a matching Stripe-Signature header."""
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return payload, {"stripe-signature": f"t={timestamp},v1={signature}", "content-type": "application/json"}
