import json
import os

from conftest import RED_VARIANT
from products import decrement_stock
from schemas import Product

VARIANTS = [
    {"color": "Red", "size": "M", "price": 40, "stock": 4},
    {"color": "Navy Blue", "size": "L", "price": 42, "stock": 6, "discounted_price": 38},
]


def test_create_variant_product_sums_stock_and_fills_ids(client, admin_headers):
    body = {"name": "Power Hoodie", "category": "Hoodies", "product_type": "variant", "variants": VARIANTS}
    res = client.post("/products", json=body, headers=admin_headers)
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["slug"] == "power-hoodie"
    assert data["stock"] == 10
    assert data["price"] == 40
    assert data["status"] == "draft"
    assert [v["sku"] for v in data["variants"]] == ["PH-RED-M-01", "PH-NAV-L-02"]
    assert all(v["variant_id"].startswith("PH-") for v in data["variants"])


def test_variant_product_needs_variants(client, admin_headers):
    body = {"name": "Empty Hoodie", "category": "Hoodies", "product_type": "variant", "variants": []}
    res = client.post("/products", json=body, headers=admin_headers)
    assert res.status_code == 400


def test_discounted_price_cannot_exceed_price(client, admin_headers):
    body = {"name": "Cap", "category": "Hats", "price": 10, "discounted_price": 12, "stock": 3}
    res = client.post("/products", json=body, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "discounted_price must be less than or equal to price"


def test_duplicate_slug_conflicts(client, admin_headers, product):
    body = {"name": "Flex Tee", "category": "Tops", "price": 10, "stock": 1}
    assert client.post("/products", json=body, headers=admin_headers).status_code == 409


def test_multipart_colour_uploads_are_keyed_by_normalized_colour(client, settings, admin_headers):
    data = {
        "name": "Lift Shorts",
        "category": "Shorts",
        "product_type": "variant",
        "status": "published",
        "variants": json.dumps([{"color": "Red", "size": "S", "price": 25, "stock": 2}]),
    }
    files = [
        ("thumbnail", ("main.png", b"\x89PNG main", "image/png")),
        ("colorThumbnail", ("RED_front.png", b"\x89PNG red", "image/png")),
        ("colorBanner", ("Red_side.png", b"\x89PNG side", "image/png")),
    ]
    res = client.post("/products", data=data, files=files, headers=admin_headers)
    assert res.status_code == 201
    product = res.json()["data"]
    assert list(product["color_media"]) == ["red"]
    media = product["color_media"]["red"]
    assert media["thumbnail_url"].startswith("/uploads/")
    assert len(media["banner_urls"]) == 1
    stored = os.path.basename(product["thumbnail_url"])
    assert os.path.exists(os.path.join(settings.uploads_dir, stored))


def test_non_image_upload_is_rejected(client, admin_headers):
    files = [("thumbnail", ("notes.txt", b"hello", "text/plain"))]
    res = client.post("/products", data={"name": "X", "category": "Y", "price": "1", "stock": "1"}, files=files, headers=admin_headers)
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Upload error", "message": "Only image files are allowed"}


def test_update_product_revalidates(client, admin_headers, simple_product):
    product_id = str(simple_product["_id"])
    res = client.put(f"/products/{product_id}", json={"price": 15, "featured": "true"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["price"] == 15
    assert res.json()["data"]["featured"] is True

    res = client.put(f"/products/{product_id}", json={"discounted_price": 20}, headers=admin_headers)
    assert res.status_code == 400


def test_product_admin_routes_need_admin(client, user_headers, simple_product):
    res = client.delete(f"/products/{simple_product['_id']}", headers=user_headers)
    assert res.status_code == 403


def test_delete_product(client, db, admin_headers, simple_product):
    res = client.delete(f"/products/{simple_product['_id']}", headers=admin_headers)
    assert res.status_code == 200
    assert db["product"].count_documents({}) == 0
    assert client.delete(f"/products/{simple_product['_id']}", headers=admin_headers).status_code == 404


def test_invalid_id_is_a_bad_request(client, admin_headers):
    res = client.get("/products/not-an-id", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid id"


def test_product_detail_by_slug_and_id(client, product):
    by_slug = client.get("/product-detail/flex-tee")
    assert by_slug.status_code == 200
    assert by_slug.json()["data"]["id"] == str(product["_id"])
    assert client.get(f"/product-detail/{product['_id']}").status_code == 200
    assert client.get("/product-detail/nothing-here").status_code == 404


def test_public_listing_hides_drafts(client, db, product, simple_product):
    db["product"].update_one({"_id": simple_product["_id"]}, {"$set": {"status": "draft"}})
    data = client.get("/api/public/products").json()["data"]
    assert [p["slug"] for p in data["products"]] == ["flex-tee"]
    assert data["pagination"]["total_items"] == 1
    assert client.get(f"/api/public/products/{simple_product['_id']}").status_code == 404


def test_search_and_category(client, product, simple_product):
    res = client.get("/products/search", params={"q": "chalk"})
    assert [p["slug"] for p in res.json()["data"]["products"]] == ["chalk-bag"]

    res = client.get("/products-by-category/tops")
    assert [p["slug"] for p in res.json()["data"]["products"]] == ["flex-tee"]

    categories = {c["name"]: c["count"] for c in client.get("/product-categories").json()["data"]}
    assert categories == {"Tops": 1, "Accessories": 1}


def test_public_search_needs_query(client):
    assert client.get("/api/public/products/search").status_code == 400


def test_decrement_stock_is_conditional(db, product):
    assert decrement_stock(db, str(product["_id"]), 5, RED_VARIANT) is True
    assert decrement_stock(db, str(product["_id"]), 1, RED_VARIANT) is False
    stored = db["product"].find_one({"_id": product["_id"]})
    assert stored["stock"] == 3
    assert next(v for v in stored["variants"] if v["variant_id"] == RED_VARIANT)["stock"] == 0


def test_category_crud(client, admin_headers):
    res = client.post("/categories", json={"name": "Sports Bras", "featured": True}, headers=admin_headers)
    assert res.status_code == 201
    category = res.json()["data"]
    assert category["slug"] == "sports-bras"

    res = client.put(f"/categories/{category['id']}", json={"description": "Support first"}, headers=admin_headers)
    assert res.json()["data"]["description"] == "Support first"

    assert len(client.get("/categories/public").json()["data"]) == 1
    assert client.delete(f"/categories/{category['id']}", headers=admin_headers).status_code == 200


def test_featured_categories_carry_in_stock_products(client, admin_headers, product, simple_product):
    client.post("/categories", json={"name": "Tops", "featured": True}, headers=admin_headers)
    client.post("/categories", json={"name": "Accessories"}, headers=admin_headers)
    data = client.get("/categories/featured-with-products").json()["data"]
    assert [c["name"] for c in data] == ["Tops"]
    assert [p["slug"] for p in data[0]["products"]] == ["flex-tee"]


def test_random_products_sample_published_stock_only(client, db, product, simple_product):
    db.create_document("product", Product(name="Sold Out", slug="sold-out", category="Tops", price=5, stock=0, status="published"))
    db.create_document("product", Product(name="Hidden", slug="hidden", category="Tops", price=5, stock=3))

    names = {p["name"] for p in client.get("/api/public/products/random?limit=10").json()["data"]}
    assert names == {"Flex Tee", "Chalk Bag"}
    assert len(client.get("/products/random?limit=1").json()["data"]) == 1


def test_random_products_tolerate_non_positive_limit(client, product, simple_product):
    res = client.get("/api/public/products/random?limit=-1")
    assert res.status_code == 200
    assert len(res.json()["data"]) <= 1


def test_malformed_json_body_is_a_bad_request(client, admin_headers):
    headers = {**admin_headers, "content-type": "application/json"}
    res = client.post("/products", content=b"{not json", headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid JSON body"


def test_colour_lookup_crud(client, admin_headers, user_headers):
    res = client.post("/colors", json={"name": "  navy BLUE ", "slug": "Navy Blue", "hex": "#001f3f "}, headers=admin_headers)
    assert res.status_code == 201
    color = res.json()["data"]
    assert (color["name"], color["slug"], color["hex"], color["active"]) == ("Navy blue", "navy-blue", "#001f3f", True)

    dup = client.post("/colors", json={"name": "Navy", "slug": "navy-blue"}, headers=admin_headers)
    assert dup.status_code == 409
    assert dup.json()["error"] == "Slug already exists"

    res = client.put(f"/colors/{color['id']}", json={"active": False, "name": "MIDNIGHT"}, headers=admin_headers)
    assert res.json()["data"]["name"] == "Midnight"
    assert res.json()["data"]["active"] is False

    listed = client.get("/colors", headers=user_headers).json()
    assert listed["message"] == "Colors fetched successfully"
    assert [c["slug"] for c in listed["data"]] == ["navy-blue"]

    res = client.delete(f"/colors/{color['id']}", headers=admin_headers)
    assert res.json()["data"] == {"id": color["id"]}
    assert client.delete(f"/colors/{color['id']}", headers=admin_headers).status_code == 404


def test_size_lookup_validation_and_access(client, admin_headers, user_headers):
    assert client.post("/sizes", json={"name": "XL"}, headers=admin_headers).status_code == 400
    assert client.post("/sizes", json={"name": "XL", "slug": "xl"}, headers=user_headers).status_code == 403
    assert client.get("/sizes").status_code == 401

    size = client.post("/sizes", json={"name": "XL", "slug": "xl"}, headers=admin_headers).json()["data"]
    assert size["name"] == "XL"
    client.post("/sizes", json={"name": "S", "slug": "s"}, headers=admin_headers)

    res = client.put(f"/sizes/{size['id']}", json={"slug": "s"}, headers=admin_headers)
    assert res.status_code == 409
    res = client.put(f"/sizes/{size['id']}", json={"name": " "}, headers=admin_headers)
    assert res.status_code == 400
    res = client.put("/sizes/64b000000000000000000000", json={"name": "M"}, headers=admin_headers)
    assert res.status_code == 404
    assert res.json()["error"] == "Size not found"
