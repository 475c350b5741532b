from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime

from app.bitsa.constants import IMAGE_DATA_URL_PREFIX, MAX_IMAGE_BYTES
from app.bitsa.errors import InvalidFormat, PayloadTooLarge

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+)(?P<params>(;[\w-]+=[\w.-]+)*)(?P<b64>;base64)?,(?P<data>.*)$", re.S)
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def validate_image_data(data_url: str) -> str:
    """
    Check an inline image reference (``data:image/<type>;base64,...``).

    Only the declared MIME prefix and the decoded size are checked; the bytes
    themselves are not sniffed.
    """
    if not isinstance(data_url, str) or not data_url.startswith(IMAGE_DATA_URL_PREFIX):
        raise InvalidFormat("Invalid image format. Please upload an image file.")
    m = _DATA_URL_RE.match(data_url)
    if not m:
        raise InvalidFormat("Invalid image format. Please upload an image file.")
    payload = m.group("data")
    if m.group("b64"):
        # Cheap upper bound before decoding anything.
        if len(payload) * 3 // 4 > MAX_IMAGE_BYTES + 3:
            raise PayloadTooLarge()
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidFormat("Invalid image data.")
        size = len(raw)
    else:
        size = len(payload.encode("utf-8"))
    if size > MAX_IMAGE_BYTES:
        raise PayloadTooLarge()
    return data_url


def slugify(text: str) -> str:
    slug = _SLUG_STRIP_RE.sub("-", (text or "").strip().lower()).strip("-")
    return slug[:200]
