"""Async Data Access Layer for the IMAGE table.

Stores uploaded photos and generated images (with their thumbnails) through
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
from typing import Optional, Sequence

from models.image_record import ImageRecord
from utils.database_init import AsyncDatabaseInitializer


class ImageDAL:
    """Data access layer for IMAGE records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "session_id",
        "kind",
        "mime_type",
        "image_data",
        "image_thumbnail",
        "prompt",
        "created_at",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_image(self, record: ImageRecord) -> int:
        """Insert a new IMAGE row and return the new id.

        Args:
            record: ImageRecord with `id=None` and fields to insert.

        Returns:
            The integer primary key of the created row.
        """
        created_at = record.created_at or int(time.time())

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO IMAGE ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    record.session_id,
                    record.kind,
                    record.mime_type,
                    record.image_data,
                    record.image_thumbnail,
                    record.prompt,
                    created_at,
                ),
            )
            await conn.commit()
            return cur.lastrowid

    async def get_image_by_id(self, image_id: int) -> Optional[ImageRecord]:
        """Return ImageRecord for `image_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def delete_session_images(self, session_id: str) -> int:
        """Delete every image of a session and return how many were removed."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM IMAGE WHERE session_id = ?", (session_id,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return int(changed[0]) if changed and changed[0] is not None else 0

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ImageRecord:
        """Convert a DB row tuple into an ImageRecord."""
        return ImageRecord(
            id=row[0],
            session_id=row[1],
            kind=row[2],
            mime_type=row[3],
            image_data=row[4],
            image_thumbnail=row[5],
            prompt=row[6],
            created_at=row[7],
        )
