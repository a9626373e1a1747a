from conftest import BLACK_VARIANT, RED_VARIANT


def add(client, headers, product_id, quantity, variant_id=RED_VARIANT):
    body = {"product_id": product_id, "quantity": quantity}
    if variant_id:
        body["variant"] = {"variant_id": variant_id}
    return client.post("/api/cart", json=body, headers=headers)


def test_add_increments_existing_line_until_stock_runs_out(client, user_headers, product):
    product_id = str(product["_id"])

    res = add(client, user_headers, product_id, 2)
    assert res.status_code == 200
    items = res.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 2

    res = add(client, user_headers, product_id, 1)
    items = res.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 3

    res = add(client, user_headers, product_id, 10)
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Insufficient stock available"}

    # 3 in cart, 5 in stock: 3 more would overshoot
    res = add(client, user_headers, product_id, 3)
    assert res.status_code == 400
    assert res.json()["error"] == "Cannot add more items. Insufficient stock available"
    assert client.get("/api/cart", headers=user_headers).json()["data"]["items"][0]["quantity"] == 3


def test_variants_of_one_product_are_separate_lines(client, user_headers, product):
    product_id = str(product["_id"])
    add(client, user_headers, product_id, 1, RED_VARIANT)
    res = add(client, user_headers, product_id, 1, BLACK_VARIANT)
    data = res.json()["data"]
    assert len(data["items"]) == 2
    assert data["total_items"] == 2


def test_cart_line_is_projected_to_its_variant_and_colour(client, user_headers, product):
    add(client, user_headers, str(product["_id"]), 1, RED_VARIANT)
    line = client.get("/api/cart", headers=user_headers).json()["data"]["items"][0]

    assert [v["variant_id"] for v in line["product"]["variants"]] == [RED_VARIANT]
    # stored under "Red", looked up from the variant colour
    assert list(line["product"]["color_media"]) == ["Red"]
    assert line["variant_thumbnail_url"] == "/uploads/red.png"


def test_unknown_variant_is_rejected(client, user_headers, product):
    res = add(client, user_headers, str(product["_id"]), 1, "NOPE")
    assert res.status_code == 404
    assert res.json()["error"] == "Variant not found"


def test_simple_product_uses_product_stock(client, user_headers, simple_product):
    res = add(client, user_headers, str(simple_product["_id"]), 4, variant_id=None)
    assert res.status_code == 200
    line = res.json()["data"]["items"][0]
    assert line["variant"] is None
    assert line["variant_thumbnail_url"] is None
    assert add(client, user_headers, str(simple_product["_id"]), 1, variant_id=None).status_code == 400


def test_update_to_zero_removes_line(client, user_headers, product):
    res = add(client, user_headers, str(product["_id"]), 2)
    item_id = res.json()["data"]["items"][0]["id"]

    res = client.put(f"/api/cart/item/{item_id}", json={"quantity": 0}, headers=user_headers)
    assert res.status_code == 200
    assert res.json()["data"]["items"] == []


def test_update_checks_stock(client, user_headers, product):
    res = add(client, user_headers, str(product["_id"]), 1)
    item_id = res.json()["data"]["items"][0]["id"]

    assert client.put(f"/api/cart/item/{item_id}", json={"quantity": 6}, headers=user_headers).status_code == 400
    res = client.put(f"/api/cart/item/{item_id}", json={"quantity": 5}, headers=user_headers)
    assert res.json()["data"]["items"][0]["quantity"] == 5


def test_unpublished_products_are_hidden_from_cart(client, db, user_headers, product):
    add(client, user_headers, str(product["_id"]), 1)
    db["product"].update_one({"_id": product["_id"]}, {"$set": {"status": "draft"}})
    data = client.get("/api/cart", headers=user_headers).json()["data"]
    assert data["items"] == []
    assert data["total_items"] == 0


def test_remove_and_clear(client, user_headers, product, simple_product):
    res = add(client, user_headers, str(product["_id"]), 1)
    add(client, user_headers, str(simple_product["_id"]), 1, variant_id=None)
    item_id = res.json()["data"]["items"][0]["id"]

    res = client.delete(f"/api/cart/item/{item_id}", headers=user_headers)
    assert len(res.json()["data"]["items"]) == 1

    res = client.delete("/api/cart", headers=user_headers)
    assert res.json()["data"]["items"] == []


def test_cart_requires_token(client):
    res = client.get("/api/cart")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_stored_line_keeps_selector_and_timestamps(client, db, user_id, user_headers, product):
    add(client, user_headers, str(product["_id"]), 2)
    cart = db["cart"].find_one({"user_id": user_id})
    (line,) = cart["items"]
    assert set(line) == {"_id", "product_id", "quantity", "variant", "added_at"}
    assert line["variant"]["variant_id"] == RED_VARIANT
    assert cart["created_at"] is not None
