"""Persist uploaded and generated images and hand back their URLs.

Images are stored in the IMAGE table together with a PNG thumbnail so
sessions only carry a short `/images/{id}` reference instead of inline
base64 payloads.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Optional

from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.thumbnail_generator import ThumbnailGenerator
from utils.media_validation import sniff_mime_type

LOGGER = logging.getLogger(__name__)


class ImageStore:
    """Save image bytes with a thumbnail and return the served URL."""

    def __init__(self, image_dal: ImageDAL, thumbnails: Optional[ThumbnailGenerator] = None) -> None:
        self._dal = image_dal
        self._thumbnails = thumbnails or ThumbnailGenerator()

    async def save(
        self,
        image_bytes: bytes,
        *,
        kind: str,
        session_id: Optional[str] = None,
        mime_type: Optional[str] = None,
        prompt: Optional[str] = None,
    ) -> str:
        """Store the image and return its URL.

        Args:
            image_bytes: Raw image bytes.
            kind: `upload` or `generated`.
            session_id: Owning session, if any.
            mime_type: MIME type; sniffed from the bytes when omitted.
            prompt: Generation prompt for model output.

        Raises:
            ValueError: If image bytes are missing.
        """
        if not image_bytes:
            raise ValueError("Image bytes are required for saving.")

        # thumbnail generation is blocking -> run in thread
        try:
            thumbnail = await asyncio.to_thread(self._thumbnails.create_thumbnail, image_bytes)
        except ValueError as exc:
            LOGGER.warning("Skipping thumbnail for %s image: %s", kind, exc)
            thumbnail = None

        record = ImageRecord(
            id=None,
            session_id=session_id,
            kind=kind,
            mime_type=mime_type or sniff_mime_type(image_bytes, default="image/png"),
            image_data=image_bytes,
            image_thumbnail=thumbnail,
            prompt=prompt,
        )
        record.id = await self._dal.create_image(record)
        return record.url

    async def save_generated(self, session_id: str, image_base64: str, prompt: str) -> str:
        """Decode a base64 model image and store it for the session."""
        return await self.save(
            base64.b64decode(image_base64),
            kind="generated",
            session_id=session_id,
            prompt=prompt,
        )

    async def discard_session(self, session_id: str) -> int:
        """Remove every stored image of a deleted session."""
        removed = await self._dal.delete_session_images(session_id)
        LOGGER.info("Removed %d images for session %s", removed, session_id)
        return removed
