"""
Upload handling: multipart parsing with per-field limits, and a blob store
that writes files under the uploads directory and hands back public URLs.
"""
import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile

from errors import UploadError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/svg+xml",
}

PRODUCT_UPLOAD_FIELDS = {"thumbnail": 1, "banners": 10, "colorThumbnail": 10, "colorBanner": 20}
CATEGORY_UPLOAD_FIELDS = {"thumbnail": 1, "banner": 1}
BLOG_UPLOAD_FIELDS = {"image": 1, "thumbnail": 1}
BLOG_HERO_UPLOAD_FIELDS = {"backgroundImage": 1}
AVATAR_UPLOAD_FIELDS = {"avatar": 1}
IMAGE_UPLOAD_FIELDS = {"image": 1}
GYM_CLASS_UPLOAD_FIELDS = {"thumbnail": 1, "gallery": 10}
LOGO_UPLOAD_FIELDS = {"logo": 1}


@dataclass
class UploadedFile:
    field: str
    filename: str
    content_type: str
    data: bytes


def _safe_name(filename: str) -> Tuple[str, str]:
    base, ext = os.path.splitext(os.path.basename(filename or "file"))
    base = re.sub(r"[^A-Za-z0-9._-]+", "-", base.strip()).strip("-") or "file"
    return base, ext.lower()


class BlobStore:
    def __init__(self, root: str, public_base_url: str = "", url_prefix: str = "/uploads"):
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")
        self.url_prefix = url_prefix
        os.makedirs(self.root, exist_ok=True)

    def put(self, upload: UploadedFile) -> str:
        base, ext = _safe_name(upload.filename)
        name = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}-{base}{ext}"
        with open(os.path.join(self.root, name), "wb") as fh:
            fh.write(upload.data)
        logger.debug("Stored upload %s (%d bytes)", name, len(upload.data))
        return f"{self.public_base_url}{self.url_prefix}/{name}"

    def delete(self, url: Optional[str]) -> bool:
        """Remove a blob previously returned by put(). Foreign URLs are ignored."""
        if not url or f"{self.url_prefix}/" not in url:
            return False
        name = os.path.basename(url.split(f"{self.url_prefix}/", 1)[1])
        path = os.path.join(self.root, name)
        if not os.path.isfile(path):
            return False
        os.remove(path)
        return True

    def put_first(self, files: Dict[str, List[UploadedFile]], field: str) -> Optional[str]:
        uploads = files.get(field) or []
        return self.put(uploads[0]) if uploads else None


async def read_multipart(
    request: Request, fields: Dict[str, int], max_file_mb: Optional[int] = None
) -> Tuple[dict, Dict[str, List[UploadedFile]]]:
    """Split a request into (payload, files).

    JSON bodies are accepted as well, in which case no files are returned.
    Repeated text fields become lists.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Invalid JSON body")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
        return body, {}

    limit_mb = max_file_mb or request.app.state.settings.upload_max_file_size_mb
    limit_bytes = max(1, limit_mb) * 1024 * 1024
    form = await request.form()
    payload: dict = {}
    files: Dict[str, List[UploadedFile]] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key not in fields:
                raise UploadError("Too many files", f"Unexpected file field: {key}")
            if len(files.get(key, [])) >= fields[key]:
                raise UploadError(
                    "Too many files",
                    f"Number of files for {key} exceeds the maximum of {fields[key]}",
                )
            if value.content_type not in ALLOWED_IMAGE_MIME_TYPES:
                raise UploadError("Upload error", "Only image files are allowed")
            data = await value.read()
            if len(data) > limit_bytes:
                raise UploadError("File too large", f"File size exceeds the maximum limit of {limit_mb}MB")
            files.setdefault(key, []).append(
                UploadedFile(field=key, filename=value.filename or "file", content_type=value.content_type, data=data)
            )
        elif key in payload:
            existing = payload[key]
            payload[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            payload[key] = value
    return payload, files


def get_storage(request: Request) -> BlobStore:
    return request.app.state.storage
