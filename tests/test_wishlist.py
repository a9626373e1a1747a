def test_add_check_count_and_remove(client, user_headers, product):
    product_id = str(product["_id"])

    res = client.post("/api/wishlist", json={"product_id": product_id}, headers=user_headers)
    assert res.status_code == 200
    assert [e["product"]["id"] for e in res.json()["data"]["products"]] == [product_id]

    assert client.get(f"/api/wishlist/check/{product_id}", headers=user_headers).json()["data"] == {"in_wishlist": True}
    assert client.get("/api/wishlist/count", headers=user_headers).json()["data"] == {"count": 1}

    res = client.delete(f"/api/wishlist/{product_id}", headers=user_headers)
    assert res.json()["data"]["products"] == []
    assert client.get(f"/api/wishlist/check/{product_id}", headers=user_headers).json()["data"] == {"in_wishlist": False}


def test_duplicate_add_conflicts(client, user_headers, product):
    body = {"product_id": str(product["_id"])}
    client.post("/api/wishlist", json=body, headers=user_headers)
    res = client.post("/api/wishlist", json=body, headers=user_headers)
    assert res.status_code == 409
    assert res.json()["error"] == "Product already in wishlist"


def test_unknown_product_is_not_found(client, user_headers):
    res = client.post("/api/wishlist", json={"product_id": "64b7f0c2a1b2c3d4e5f60718"}, headers=user_headers)
    assert res.status_code == 404


def test_unpublished_products_are_pruned(client, db, user_headers, product, simple_product):
    client.post("/api/wishlist", json={"product_id": str(product["_id"])}, headers=user_headers)
    client.post("/api/wishlist", json={"product_id": str(simple_product["_id"])}, headers=user_headers)
    db["product"].update_one({"_id": simple_product["_id"]}, {"$set": {"status": "draft"}})

    data = client.get("/api/wishlist", headers=user_headers).json()["data"]
    assert [e["product"]["slug"] for e in data["products"]] == ["flex-tee"]
    assert client.get("/api/wishlist/count", headers=user_headers).json()["data"]["count"] == 1


def test_remove_missing_entry(client, user_headers, product):
    assert client.delete(f"/api/wishlist/{product['_id']}", headers=user_headers).status_code == 404
    client.post("/api/wishlist", json={"product_id": str(product["_id"])}, headers=user_headers)
    res = client.delete("/api/wishlist/64b7f0c2a1b2c3d4e5f60718", headers=user_headers)
    assert res.status_code == 404
    assert res.json()["error"] == "Product not found in wishlist"


def test_clear(client, user_headers, product):
    client.post("/api/wishlist", json={"product_id": str(product["_id"])}, headers=user_headers)
    assert client.delete("/api/wishlist", headers=user_headers).json()["data"] == {"products": []}
    assert client.get("/api/wishlist", headers=user_headers).json()["data"] == {"products": []}
