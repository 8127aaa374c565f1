"""Base64 image payloads sent by the browser (diagram PNGs, avatars)."""

import base64
import binascii
import re
from typing import Optional

from ..exceptions import ValidationError

AVATAR_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif")

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,")


def decode_image_data(image_data: str, field: str = "image_data") -> tuple[bytes, Optional[str]]:
    """Decode raw base64 or a ``data:image/...;base64,`` URL.

    Returns the bytes and the data URL's MIME type (None for raw base64).
    """
    image_data = image_data.strip()
    match = _DATA_URL_RE.match(image_data)
    content_type = match.group(1).lower() if match else None
    payload = image_data[match.end():] if match else image_data
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Image data is not valid base64", field=field) from e
    if not data:
        raise ValidationError("Image data is required", field=field)
    return data, content_type


def check_avatar(data: bytes, content_type: Optional[str], max_bytes: int) -> str:
    """Validate an avatar upload and return its normalized MIME type."""
    if content_type not in AVATAR_CONTENT_TYPES:
        raise ValidationError(
            "Invalid file type. Please upload a JPEG, PNG, WebP, or GIF image.",
            field="content_type",
        )
    if len(data) > max_bytes:
        raise ValidationError(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            field="image_data",
        )
    return "image/jpeg" if content_type == "image/jpg" else content_type
