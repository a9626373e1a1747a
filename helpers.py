import json
import math
import re
from typing import Any, Optional

from errors import ValidationError


def slugify(text: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", (text or "").lower())
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def parse_maybe_json(value: Any) -> Any:
    """Multipart forms carry lists and objects as JSON strings."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def to_number(value: Any, field: str, integer: bool = False) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = int(value) if integer else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a {'whole ' if integer else ''}number")
    return number


def as_list(value: Any) -> list:
    value = parse_maybe_json(value)
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


def clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def pagination(total: int, page: int, limit: int) -> dict:
    return {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_items": total,
        "items_per_page": limit,
        "has_next_page": page * limit < total,
        "has_prev_page": page > 1,
    }
