"""Session directory: list and create a user's chat sessions."""

from __future__ import annotations

import logging
import math
import time
from datetime import date
from typing import Awaitable, Callable, List, Optional
from uuid import uuid4

from models.chat_record import DEFAULT_SESSION_TITLE, ChatSession
from utils.errors import PersistenceError

LOGGER = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24

OnSessionCreated = Callable[[str], Awaitable[object]]


def relative_date_label(created_at: float, now: Optional[float] = None) -> str:
	"""Sidebar label for a session's age: Today, Yesterday, N days ago, or the date."""
	now = time.time() if now is None else now
	diff_days = math.ceil(abs(now - created_at) / SECONDS_PER_DAY)
	if diff_days <= 1:
		return "Today"
	if diff_days == 2:
		return "Yesterday"
	if diff_days <= 7:
		return f"{diff_days} days ago"
	return date.fromtimestamp(created_at).isoformat()


def display_title(session: ChatSession) -> str:
	return session.title.strip() or DEFAULT_SESSION_TITLE


class SessionDirectory:
	"""Lists sessions newest first and creates new ones, best effort.

	`sessions` holds the last listing produced, which is what a sidebar shows.
	"""

	def __init__(self, gateway) -> None:
		self.gateway = gateway
		self.sessions: List[ChatSession] = []

	async def list_sessions(self, user_id: str) -> List[ChatSession]:
		"""Return the user's sessions, newest first.

		A failed read keeps and returns the previous listing.
		"""
		try:
			sessions = await self.gateway.list_sessions(user_id)
		except PersistenceError as exc:
			LOGGER.warning("Listing sessions for user %s failed: %s", user_id, exc)
			return list(self.sessions)
		self.sessions = list(sessions)
		return list(self.sessions)

	async def create_session(
		self,
		user_id: str,
		on_created: Optional[OnSessionCreated] = None,
	) -> Optional[ChatSession]:
		"""Create a "New Chat" session, refresh the listing, then hand the id to `on_created`.

		The listing is refreshed before the selection callback runs so the
		selected session is always part of it. A failed insert returns None
		and leaves the listing untouched; it is not retried.
		"""
		session = ChatSession(session_id=str(uuid4()), user_id=user_id, title=DEFAULT_SESSION_TITLE)
		try:
			await self.gateway.insert_session(session)
		except PersistenceError as exc:
			LOGGER.warning("Creating a session for user %s failed: %s", user_id, exc)
			return None

		await self.list_sessions(user_id)
		if not any(s.session_id == session.session_id for s in self.sessions):
			self.sessions.insert(0, session)

		if on_created is not None:
			await on_created(session.session_id)
		LOGGER.info("Created session %s for user %s", session.session_id, user_id)
		return session
