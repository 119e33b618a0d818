"""Persistence gateway used by the chat core.

Bundles the session and message DALs behind the five user-scoped operations
the state manager and directory depend on, and turns storage driver errors
into `PersistenceError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

import aiosqlite

from dal.message_dal import MessageDAL
from dal.session_dal import ChatSessionDAL
from models.chat_record import ChatMessage, ChatSession
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import PersistenceError

LOGGER = logging.getLogger(__name__)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PersistenceError:
        raise
    except aiosqlite.Error as exc:
        LOGGER.warning("Chat store %s failed: %s", operation, exc)
        raise PersistenceError(f"{operation} failed: {exc}") from exc


class PersistenceGateway:
    """Typed CRUD over chat sessions and messages, keyed by user identity."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._sessions = ChatSessionDAL(db_initializer)
        self._messages = MessageDAL(db_initializer)

    async def list_sessions(self, user_id: str) -> List[ChatSession]:
        with _storage_errors("list_sessions"):
            return await self._sessions.list_sessions(user_id)

    async def get_session(self, user_id: str, session_id: str) -> Optional[ChatSession]:
        with _storage_errors("get_session"):
            return await self._sessions.get_session(user_id, session_id)

    async def insert_session(self, session: ChatSession) -> ChatSession:
        with _storage_errors("insert_session"):
            return await self._sessions.insert_session(session)

    async def update_session_title(
        self,
        session_id: str,
        user_id: str,
        expected_old_title: str,
        new_title: str,
    ) -> bool:
        with _storage_errors("update_session_title"):
            return await self._sessions.update_session_title(
                session_id, user_id, expected_old_title, new_title
            )

    async def list_messages(self, user_id: str, session_id: str) -> List[ChatMessage]:
        with _storage_errors("list_messages"):
            return await self._messages.list_messages(user_id, session_id)

    async def insert_message(self, message: ChatMessage) -> int:
        """Persist a message and return its id. Synthetic messages are refused."""
        if message.synthetic:
            raise ValueError("Synthetic messages are local-only and cannot be stored.")
        with _storage_errors("insert_message"):
            return await self._messages.insert_message(message)
