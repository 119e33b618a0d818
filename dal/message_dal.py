"""Async Data Access Layer for the messages table."""

from __future__ import annotations

from typing import List, Sequence

from models.chat_record import ChatMessage, MessageRole
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import SessionAccessError


class MessageDAL:
    """Append-only access to chat messages, scoped by user and session."""

    _COLUMNS = ("id", "session_id", "user_id", "role", "content", "image", "created_at", "client_key")
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert_message(self, message: ChatMessage) -> int:
        """Insert a message row and return its new id.

        The row is only written when the parent session exists and is owned
        by `message.user_id`.

        Raises:
            SessionAccessError: If the parent session is missing or foreign.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO messages ({self._INSERT_COLUMNS}) "
                "SELECT ?, ?, ?, ?, ?, ?, ? WHERE EXISTS ("
                "SELECT 1 FROM chat_sessions WHERE session_id = ? AND user_id = ?)",
                (
                    message.session_id,
                    message.user_id,
                    MessageRole(message.role).value,
                    message.content,
                    message.image,
                    message.created_at,
                    message.client_key,
                    message.session_id,
                    message.user_id,
                ),
            )
            if cur.rowcount < 1:
                await conn.rollback()
                raise SessionAccessError(message.session_id, message.user_id)
            await conn.commit()
            return cur.lastrowid

    async def list_messages(self, user_id: str, session_id: str) -> List[ChatMessage]:
        """Return the session's messages oldest first, ties in storage order.

        Raises:
            SessionAccessError: If the session is missing or foreign.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT 1 FROM chat_sessions WHERE session_id = ? AND user_id = ?",
                (session_id, user_id),
            )
            if await cur.fetchone() is None:
                raise SessionAccessError(session_id, user_id)

            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM messages "
                "WHERE user_id = ? AND session_id = ? ORDER BY created_at ASC, id ASC",
                (user_id, session_id),
            )
            rows = await cur.fetchall()
            return [self._row_to_message(r) for r in rows]

    @staticmethod
    def _row_to_message(row: Sequence[object]) -> ChatMessage:
        return ChatMessage(
            id=row[0],
            session_id=row[1],
            user_id=row[2],
            role=MessageRole(row[3]),
            content=row[4] or "",
            image=row[5],
            created_at=float(row[6]),
            client_key=row[7],
        )
