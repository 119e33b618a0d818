"""Async Data Access Layer for the chat_sessions table.

Provides ChatSessionDAL with user-scoped operations compatible with
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from models.chat_record import TITLE_MAX_LENGTH, ChatSession
from utils.database_init import AsyncDatabaseInitializer


class ChatSessionDAL:
    """Data access layer for chat session rows.

    Every query filters on `user_id`; a session owned by someone else is
    indistinguishable from a missing one.
    """

    _COLUMNS = ("session_id", "user_id", "title", "created_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert_session(self, session: ChatSession) -> ChatSession:
        """Insert a new session row and return it unchanged.

        Raises:
            aiosqlite.IntegrityError: If the session id already exists.
        """
        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO chat_sessions ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?)",
                (session.session_id, session.user_id, session.title[:TITLE_MAX_LENGTH], session.created_at),
            )
            await conn.commit()
        return session

    async def list_sessions(self, user_id: str) -> List[ChatSession]:
        """Return the user's sessions, newest first.

        Sessions created within the same clock tick keep insertion order,
        most recent first.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM chat_sessions "
                "WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            )
            rows = await cur.fetchall()
            return [self._row_to_session(r) for r in rows]

    async def get_session(self, user_id: str, session_id: str) -> Optional[ChatSession]:
        """Return the session if it exists and belongs to `user_id`."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM chat_sessions WHERE session_id = ? AND user_id = ?",
                (session_id, user_id),
            )
            row = await cur.fetchone()
            return self._row_to_session(row) if row else None

    async def update_session_title(
        self,
        session_id: str,
        user_id: str,
        expected_old_title: str,
        new_title: str,
    ) -> bool:
        """Set the title only if the stored title still equals `expected_old_title`.

        Returns True if a row was changed. The comparison and the write are
        one statement, so two racing callers cannot both succeed.
        """
        async with self._db.connection() as conn:
            await conn.execute(
                "UPDATE chat_sessions SET title = ? WHERE session_id = ? AND user_id = ? AND title = ?",
                (new_title[:TITLE_MAX_LENGTH], session_id, user_id, expected_old_title),
            )
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    @staticmethod
    def _row_to_session(row: Sequence[object]) -> ChatSession:
        return ChatSession(
            session_id=row[0],
            user_id=row[1],
            title=row[2],
            created_at=float(row[3]),
        )
