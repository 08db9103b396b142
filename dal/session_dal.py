"""Async Data Access Layer for the SESSION table.

`SessionRepository` is the capability interface the workflow depends on;
`SessionDAL` is its SQLite implementation on top of
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional, Protocol, Sequence

import aiosqlite

from models.session_models import Session, WorkMode
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence capability for chat sessions."""

    async def list(self, user_id: str, mode: Optional[WorkMode] = None) -> List[Session]:
        ...

    async def get(self, session_id: str) -> Optional[Session]:
        ...

    async def upsert(self, session: Session) -> None:
        ...

    async def delete(self, session_id: str) -> bool:
        ...


class SessionDAL:
    """Data access layer for SESSION records.

    Products and messages are stored as JSON text columns. Reads log and
    degrade to an empty result on database errors; writes propagate them.
    """

    _COLUMNS = (
        "id",
        "user_id",
        "title",
        "mode",
        "theme",
        "products",
        "messages",
        "is_completed",
        "created_at",
        "updated_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def list(self, user_id: str, mode: Optional[WorkMode] = None) -> List[Session]:
        """Return the user's sessions, most recently updated first.

        Args:
            user_id: Owner of the sessions.
            mode: Optional work mode filter.
        """
        sql = f"SELECT {self._COLUMN_LIST} FROM SESSION WHERE user_id = ?"
        params: list = [user_id]
        if mode is not None:
            sql += " AND mode = ?"
            params.append(WorkMode(mode).value)
        sql += " ORDER BY updated_at DESC"
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(sql, tuple(params))
                rows = await cur.fetchall()
        except aiosqlite.Error:
            LOGGER.exception("Error fetching sessions for user %s", user_id)
            return []
        return [self._row_to_session(row) for row in rows]

    async def get(self, session_id: str) -> Optional[Session]:
        """Return the session for `session_id`, or None if not found."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    f"SELECT {self._COLUMN_LIST} FROM SESSION WHERE id = ?",
                    (session_id,),
                )
                row = await cur.fetchone()
        except aiosqlite.Error:
            LOGGER.exception("Error fetching session %s", session_id)
            return None
        return self._row_to_session(row) if row else None

    async def upsert(self, session: Session) -> None:
        """Insert the session or overwrite the stored copy (last writer wins)."""
        record = session.to_record()
        values = (
            record["id"],
            record["user_id"],
            record["title"],
            record["mode"],
            record["theme"],
            json.dumps(record["products"], ensure_ascii=False),
            json.dumps(record["messages"], ensure_ascii=False),
            int(record["is_completed"]),
            record["created_at"],
            record["updated_at"],
        )
        try:
            async with self._db.connection() as conn:
                await conn.execute(
                    f"INSERT OR REPLACE INTO SESSION ({self._COLUMN_LIST}) VALUES ({self._PLACEHOLDERS})",
                    values,
                )
                await conn.commit()
        except aiosqlite.Error:
            LOGGER.exception("Error saving session %s", session.id)
            raise

    async def delete(self, session_id: str) -> bool:
        """Delete a session by id. Returns True if a row was deleted."""
        try:
            async with self._db.connection() as conn:
                await conn.execute("DELETE FROM SESSION WHERE id = ?", (session_id,))
                await conn.commit()
                cur = await conn.execute("SELECT changes()")
                changed = await cur.fetchone()
        except aiosqlite.Error:
            LOGGER.exception("Error deleting session %s", session_id)
            raise
        return bool(changed and changed[0] > 0)

    @classmethod
    def _row_to_session(cls, row: Sequence[object]) -> Session:
        """Convert a DB row tuple into a Session."""
        record = dict(zip(cls._COLUMNS, row))
        record["products"] = json.loads(record["products"] or "[]")
        record["messages"] = json.loads(record["messages"] or "[]")
        record["is_completed"] = bool(record["is_completed"])
        return Session.from_record(record)
