"""Thumbnail generator service.

Small wrapper around Pillow that shrinks an image to fit a bounding box
and returns PNG bytes, used for the session history previews.

Example:
    tg = ThumbnailGenerator(max_size=(256, 256))
    png_bytes = tg.create_thumbnail(raw_image_bytes)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError


class ThumbnailGenerator:
    """Generate PNG thumbnails from raw image bytes.

    Args:
        max_size: Bounding box for the thumbnail; aspect ratio is preserved.
        background: RGB colour used to flatten transparent images.
    """

    def __init__(self, max_size: Tuple[int, int] = (256, 256), background: Tuple[int, int, int] = (255, 255, 255)):
        self.max_size = max_size
        self.background = background

    def create_thumbnail(self, image_bytes: bytes) -> bytes:
        """Return PNG thumbnail bytes for `image_bytes`.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        try:
            src = Image.open(io.BytesIO(image_bytes))
            src.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        flattened = Image.new("RGB", src.size, self.background)
        flattened.paste(src, mask=src.split()[3])

        out = io.BytesIO()
        flattened.save(out, format="PNG", optimize=True)
        return out.getvalue()
