"""Validation helpers for uploaded and generated image payloads."""

import base64
import binascii
import re
from typing import Tuple

from fastapi import HTTPException

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)

# Leading bytes of each supported format.
_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF8", "image/gif"),
    (b"RIFF", "image/webp"),
)


def sniff_mime_type(image_bytes: bytes, default: str = "image/jpeg") -> str:
    """Guess the MIME type from the image's magic bytes."""
    for signature, mime in _SIGNATURES:
        if image_bytes.startswith(signature):
            return mime
    return default


def split_base64_image(data: str) -> Tuple[str, bytes, str]:
    """Strip an optional data-URL prefix and decode the payload.

    Returns:
        A tuple of `(base64_text, raw_bytes, mime_type)`.

    Raises:
        HTTPException(400) when the payload is not valid base64 or is empty.
        HTTPException(415) when the declared type is not a supported image.
    """
    text = (data or "").strip()
    declared = None
    match = _DATA_URL.match(text)
    if match:
        declared = match.group("mime").lower()
        text = text[match.end():]
        if declared not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {declared}")
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Image payload must be base64-encoded.") from exc
    if not raw:
        raise HTTPException(status_code=400, detail="Image payload is empty.")
    return text, raw, declared or sniff_mime_type(raw)


def to_image_data_url(image_base64: str) -> str:
    """Convert base64 image text (or an existing data URL) into a data URL for vision input."""
    if _DATA_URL.match(image_base64):
        return image_base64
    try:
        head = base64.b64decode(image_base64[:32] + "=" * (-len(image_base64[:32]) % 4))
    except (binascii.Error, ValueError):
        head = b""
    return f"data:{sniff_mime_type(head)};base64,{image_base64}"
