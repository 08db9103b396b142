from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ImageRecord:
    """In-memory representation of a row in the IMAGE table.

    Attributes:
        id: Primary key (None for new records).
        session_id: Session the image belongs to, if any.
        kind: `upload` for user photos, `generated` for model output.
        mime_type: MIME type of `image_data`.
        image_data: Raw image bytes.
        image_thumbnail: Optional PNG thumbnail bytes.
        prompt: Prompt used to generate the image, if generated.
        created_at: Unix timestamp (seconds) when the row was inserted.
    """

    id: Optional[int]
    kind: str
    mime_type: str
    image_data: bytes
    session_id: Optional[str] = None
    image_thumbnail: Optional[bytes] = None
    prompt: Optional[str] = None
    created_at: Optional[int] = None

    @property
    def url(self) -> str:
        return f"/images/{self.id}"
