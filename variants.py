"""
Variant helpers shared by products, cart, wishlist and orders.

Colour media is keyed by a normalized colour name (stripped, lower-case).
Keys are normalized when media is written; lookups normalize the variant
colour the same way, and still match legacy documents whose keys were
stored with arbitrary casing.
"""
import copy
import re
import secrets
from typing import Dict, List, Optional, Tuple

COLOR_FILE_PATTERN = re.compile(r"^([^_]+)_")


def color_key(color: Optional[str]) -> str:
    return (color or "").strip().lower()


def normalize_color_media(color_media: Optional[dict]) -> Dict[str, dict]:
    """Re-key colour media by normalized colour. Later duplicates merge
    their banners into the first entry seen for the same key."""
    out: Dict[str, dict] = {}
    for color, media in (color_media or {}).items():
        key = color_key(color)
        if not key or not isinstance(media, dict):
            continue
        entry = out.setdefault(key, {"thumbnail_url": None, "banner_urls": []})
        if not entry.get("thumbnail_url") and media.get("thumbnail_url"):
            entry["thumbnail_url"] = media["thumbnail_url"]
        for url in media.get("banner_urls") or []:
            if url and url not in entry["banner_urls"]:
                entry["banner_urls"].append(url)
    return out


def find_color_media(color_media: Optional[dict], color: Optional[str]) -> Tuple[Optional[str], Optional[dict]]:
    """Return (stored_key, media) for a colour, or (None, None)."""
    if not color_media or not color:
        return None, None
    wanted = color_key(color)
    if wanted in color_media:
        return wanted, color_media[wanted]
    for key, media in color_media.items():
        if color_key(key) == wanted:
            return key, media
    return None, None


def find_variant(product: dict, variant_id: Optional[str]) -> Optional[dict]:
    if not variant_id:
        return None
    for v in product.get("variants") or []:
        if v.get("variant_id") == variant_id:
            return v
    return None


def media_image(media: Optional[dict]) -> Optional[str]:
    if not media:
        return None
    if media.get("thumbnail_url"):
        return media["thumbnail_url"]
    banners = media.get("banner_urls") or []
    return banners[0] if banners else None


def project_product(product: dict, variant_id: Optional[str]) -> Tuple[dict, Optional[str]]:
    """Narrow a product document to one variant and that variant's colour media.

    Returns the narrowed copy and the image URL for the matched colour.
    Products without a selected variant are returned unchanged. A missing
    variant yields ``variants == []``; a missing colour yields
    ``color_media == {}``.
    """
    projected = copy.deepcopy(product)
    if not variant_id or not product.get("variants"):
        return projected, None
    variant = find_variant(product, variant_id)
    if variant is None:
        projected["variants"] = []
        return projected, None
    projected["variants"] = [variant]
    image = None
    if product.get("color_media") and variant.get("color"):
        key, media = find_color_media(product["color_media"], variant["color"])
        if media is not None:
            projected["color_media"] = {key: media}
            image = media_image(media)
        else:
            projected["color_media"] = {}
    return projected, image


# ---------- ids ----------

def _initials(name: str) -> str:
    return "".join(word[0] for word in name.split() if word).upper()


def generate_variant_id(product_name: str, color: str, size: str) -> str:
    suffix = secrets.token_hex(3).upper()
    return f"{_initials(product_name)}-{color[:3].upper()}-{size[:1].upper()}-{suffix}"


def generate_variant_sku(product_name: str, color: str, size: str, index: int) -> str:
    return f"{_initials(product_name)}-{color[:3].upper()}-{size[:1].upper()}-{index + 1:02d}"


# ---------- uploads ----------

def color_from_filename(filename: str) -> Optional[str]:
    """Colour files are uploaded as ``<color>_<original name>``."""
    match = COLOR_FILE_PATTERN.match(filename or "")
    return color_key(match.group(1)) if match else None


def merge_uploaded_color_media(color_media: Dict[str, dict], files: dict, store) -> Dict[str, dict]:
    """Store colour thumbnails/banners and fold their URLs into ``color_media``.
    Newly uploaded thumbnails replace existing ones; banners are appended."""
    result = normalize_color_media(color_media)
    for upload in files.get("colorThumbnail") or []:
        color = color_from_filename(upload.filename)
        if not color:
            continue
        entry = result.setdefault(color, {"thumbnail_url": None, "banner_urls": []})
        entry["thumbnail_url"] = store.put(upload)
    for upload in files.get("colorBanner") or []:
        color = color_from_filename(upload.filename)
        if not color:
            continue
        entry = result.setdefault(color, {"thumbnail_url": None, "banner_urls": []})
        entry["banner_urls"].append(store.put(upload))
    for entry in result.values():
        entry["banner_urls"] = [u for u in entry["banner_urls"] if not str(u).startswith("blob:")][:10]
        if entry.get("thumbnail_url") and str(entry["thumbnail_url"]).startswith("blob:"):
            entry["thumbnail_url"] = None
    return result


def total_variant_stock(variants: List[dict]) -> int:
    return sum(int(v.get("stock") or 0) for v in variants)
