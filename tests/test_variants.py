from variants import (
    color_from_filename,
    color_key,
    find_color_media,
    generate_variant_id,
    generate_variant_sku,
    normalize_color_media,
    project_product,
)

PRODUCT = {
    "name": "Flex Tee",
    "variants": [
        {"variant_id": "V1", "color": "Navy Blue", "size": "M", "stock": 2},
        {"variant_id": "V2", "color": "Olive", "size": "L", "stock": 1},
    ],
    "color_media": {
        " Navy Blue ": {"thumbnail_url": None, "banner_urls": ["/uploads/navy-1.png"]},
        "sand": {"thumbnail_url": "/uploads/sand.png", "banner_urls": []},
    },
}


def test_color_key():
    assert color_key("  Navy Blue ") == "navy blue"
    assert color_key(None) == ""


def test_normalize_merges_keys():
    media = normalize_color_media(
        {
            "Red": {"thumbnail_url": "/a.png", "banner_urls": ["/b1.png"]},
            "red ": {"thumbnail_url": "/c.png", "banner_urls": ["/b1.png", "/b2.png"]},
            "": {"thumbnail_url": "/ignored.png"},
        }
    )
    assert media == {"red": {"thumbnail_url": "/a.png", "banner_urls": ["/b1.png", "/b2.png"]}}


def test_find_color_media_matches_legacy_keys():
    key, media = find_color_media(PRODUCT["color_media"], "NAVY BLUE")
    assert key == " Navy Blue "
    assert media["banner_urls"] == ["/uploads/navy-1.png"]
    assert find_color_media(PRODUCT["color_media"], "pink") == (None, None)


def test_projection_uses_banner_when_no_thumbnail():
    projected, image = project_product(PRODUCT, "V1")
    assert projected["variants"] == [PRODUCT["variants"][0]]
    assert list(projected["color_media"]) == [" Navy Blue "]
    assert image == "/uploads/navy-1.png"
    # source document untouched
    assert len(PRODUCT["variants"]) == 2


def test_projection_of_colour_without_media():
    projected, image = project_product(PRODUCT, "V2")
    assert projected["variants"][0]["variant_id"] == "V2"
    assert projected["color_media"] == {}
    assert image is None


def test_projection_of_missing_variant():
    projected, image = project_product(PRODUCT, "GONE")
    assert projected["variants"] == []
    assert image is None


def test_projection_without_variant_returns_product():
    projected, image = project_product(PRODUCT, None)
    assert projected == PRODUCT
    assert image is None


def test_color_from_filename():
    assert color_from_filename("Navy_front.jpg") == "navy"
    assert color_from_filename("front.jpg") is None
    assert color_from_filename("") is None


def test_generated_ids():
    assert generate_variant_sku("Power Hoodie", "Navy", "XL", 2) == "PH-NAV-X-03"
    variant_id = generate_variant_id("Power Hoodie", "Navy", "XL")
    assert variant_id.startswith("PH-NAV-X-")
    assert len(variant_id.rsplit("-", 1)[1]) == 6
