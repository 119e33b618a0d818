"""In-memory store of chat views, one per (user, client) pair."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Tuple

from models.session_models import SessionView
from services.chat.selection_cache import SelectionCache
from services.chat.session_directory import SessionDirectory
from services.chat.session_state import SessionStateManager

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_VIEWS = 1024


@dataclass
class ChatViewHandle:
	"""The state manager and session directory serving one user agent."""

	manager: SessionStateManager
	directory: SessionDirectory

	@property
	def view(self) -> SessionView:
		return self.manager.view


class ChatViewStore:
	"""Manage chat views so each user agent keeps its own selection and pending flags.

	At most `max_views` views are kept, least recently opened first out.
	Views with a generation pending are never evicted. An evicted view is
	rebuilt on its next open and re-selects its session from the selection
	cache.
	"""

	def __init__(
		self,
		gateway,
		dispatcher,
		selection_cache: Optional[SelectionCache] = None,
		*,
		discard_stale_results: bool = True,
		max_views: int = DEFAULT_MAX_VIEWS,
	) -> None:
		if max_views < 1:
			raise ValueError("max_views must be at least 1")
		self.gateway = gateway
		self.dispatcher = dispatcher
		self.selection_cache = selection_cache
		self.discard_stale_results = discard_stale_results
		self.max_views = max_views
		self._views: "OrderedDict[Tuple[str, str], ChatViewHandle]" = OrderedDict()

	def __len__(self) -> int:
		return len(self._views)

	async def open(self, user_id: str, client_id: str = "default") -> ChatViewHandle:
		"""Return the view for this user agent, creating and restoring it on first use."""
		key = (user_id, client_id)
		handle = self._views.get(key)
		if handle is not None:
			self._views.move_to_end(key)
			return handle

		manager = SessionStateManager(
			SessionView(user_id=user_id, client_id=client_id),
			self.gateway,
			self.dispatcher,
			self.selection_cache,
			discard_stale_results=self.discard_stale_results,
		)
		handle = ChatViewHandle(manager=manager, directory=SessionDirectory(self.gateway))
		# Register before awaiting so concurrent openers share one view.
		self._views[key] = handle
		self._evict_idle(keep=key)
		await manager.restore_selection()
		return handle

	def _evict_idle(self, keep: Tuple[str, str]) -> None:
		excess = len(self._views) - self.max_views
		if excess <= 0:
			return
		for key in list(self._views):
			if excess <= 0:
				break
			if key == keep or self._views[key].view.busy:
				continue
			del self._views[key]
			excess -= 1
			LOGGER.debug("Evicted idle chat view %s/%s", *key)
		if excess > 0:
			LOGGER.warning("Chat view store holds %d views over its limit; all are busy", excess)
