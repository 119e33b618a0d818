"""Session state manager: the ordered message view of one user agent.

The manager owns a `SessionView` (active session id, ordered messages,
pending flags, draft) and mediates between user intents and the two
collaborators, the persistence gateway and the generation dispatcher.

Submission flow, in order:
    1. guard: non-empty prompt, nothing pending, a session selected
    2. optimistic local append of the user message, draft cleared
    3. durable write of the user message
    4. conditional title rename ("New Chat" -> first 50 chars of the prompt)
    5. generation call
    6. local append of the reply (or of a local-only error message)
    7. durable write of the reply

Steps 2/3 and 6/7 are two ordered effects with a consistency window between
them: the view shows a message before storage has confirmed it. A failed
write leaves the message in `view.unsynced` until `flush_unsynced()`.

Every generation is bound to the session id it was issued for. The reply is
always stored under that session, but it only reaches the local list if the
session is still the active one.
"""

from __future__ import annotations

import logging
from typing import Optional

from models.chat_record import DEFAULT_SESSION_TITLE, TITLE_MAX_LENGTH, ChatMessage, MessageRole
from models.generation import (
	GenerationRequest,
	GenerationResult,
	ImageGenerationRequest,
	ImageGenerationResult,
	TextGenerationRequest,
	TextGenerationResult,
)
from models.session_models import SessionView, ViewPhase
from services.chat.selection_cache import SelectionCache
from utils.errors import PersistenceError, SessionAccessError

LOGGER = logging.getLogger(__name__)

EMPTY_REPLY_PLACEHOLDER = "(No response)"
TEXT_ERROR_MESSAGE = "Sorry, there was an error with the AI response."
IMAGE_ERROR_MESSAGE = "Sorry, there was an error with image generation."


class SessionStateManager:
	"""State machine Idle -> AwaitingText | AwaitingImage -> Idle over one view."""

	def __init__(
		self,
		view: SessionView,
		gateway,
		dispatcher,
		selection_cache: Optional[SelectionCache] = None,
		*,
		discard_stale_results: bool = True,
	) -> None:
		"""
		Args:
			view: The view context this manager exclusively mutates.
			gateway: Persistence gateway (see `dal.chat_gateway.PersistenceGateway`).
			dispatcher: Generation dispatcher (see `services.generation.dispatcher`).
			selection_cache: Optional durable store for the active session id.
			discard_stale_results: Drop replies whose session is no longer active.
				False appends them to whatever list is active at completion time.
		"""
		self.view = view
		self.gateway = gateway
		self.dispatcher = dispatcher
		self.selection_cache = selection_cache
		self.discard_stale_results = discard_stale_results

	@property
	def phase(self) -> ViewPhase:
		return self.view.phase

	def set_draft(self, text: str) -> None:
		self.view.draft = text

	# Selection ---------------------------------------------------------

	async def restore_selection(self) -> Optional[str]:
		"""Re-select the session remembered by the selection cache, if any."""
		if self.selection_cache is None:
			return None
		cached = await self.selection_cache.load(self.view.user_id, self.view.client_id)
		if not cached:
			return None
		try:
			await self.select_session(cached)
		except SessionAccessError:
			return None
		return self.view.active_session_id

	async def select_session(self, session_id: str) -> bool:
		"""Make `session_id` active and load its messages.

		Legal in any phase; an in-flight generation keeps running. Returns
		False when the session was already active.

		Raises:
			SessionAccessError: If the gateway rejects the session for this user.
				The selection is cleared before raising.
		"""
		if session_id == self.view.active_session_id:
			return False

		# Clear first so the previous session's content is never shown under the new id.
		self.view.messages = []
		self.view.active_session_id = session_id
		await self._save_selection()
		LOGGER.debug("View %s/%s selected session %s", self.view.user_id, self.view.client_id, session_id)

		try:
			await self._load(session_id)
		except SessionAccessError:
			if self.view.active_session_id == session_id:
				self.view.active_session_id = None
				await self._save_selection()
			raise
		return True

	async def reload(self) -> None:
		"""Re-read the active session's messages from storage."""
		session_id = self.view.active_session_id
		if session_id:
			await self._load(session_id)

	async def _save_selection(self) -> None:
		if self.selection_cache is not None:
			await self.selection_cache.save(self.view.user_id, self.view.client_id, self.view.active_session_id)

	async def _load(self, session_id: str) -> None:
		try:
			stored = await self.gateway.list_messages(self.view.user_id, session_id)
		except SessionAccessError:
			LOGGER.warning("Session %s is not accessible for user %s", session_id, self.view.user_id)
			raise
		except PersistenceError as exc:
			LOGGER.warning("Loading messages for session %s failed: %s", session_id, exc)
			return

		if self.view.active_session_id != session_id:
			LOGGER.info("Discarding message load for inactive session %s", session_id)
			return

		# Keep local messages storage has not returned (optimistic, unsynced or synthetic).
		# Match on client_key: a committed write may not have handed back its id yet.
		stored_keys = {m.client_key for m in stored}
		local_only = [
			m for m in self.view.messages
			if m.session_id == session_id and m.client_key not in stored_keys
		]
		merged = list(stored) + local_only
		merged.sort(key=lambda m: m.created_at)
		self.view.messages = merged

	# Submission --------------------------------------------------------

	async def submit_text(self, prompt: Optional[str] = None) -> bool:
		"""Submit a text prompt (or the draft). Returns False when the guard rejects it."""
		text = self.view.draft if prompt is None else prompt
		return await self._submit(TextGenerationRequest(prompt=text))

	async def submit_image(self, prompt: Optional[str] = None, model: Optional[str] = None) -> bool:
		"""Submit an image prompt (or the draft). Returns False when the guard rejects it."""
		text = self.view.draft if prompt is None else prompt
		return await self._submit(ImageGenerationRequest(prompt=text, model=model))

	async def _submit(self, request: GenerationRequest) -> bool:
		view = self.view
		if not request.prompt.strip() or view.busy or not view.active_session_id:
			return False

		# Everything up to the first await runs atomically on the event loop,
		# so a concurrent second submission sees the pending flag.
		session_id = view.active_session_id
		is_image = isinstance(request, ImageGenerationRequest)
		if is_image:
			view.image_pending = True
		else:
			view.text_pending = True

		user_message = ChatMessage(
			session_id=session_id,
			user_id=view.user_id,
			role=MessageRole.USER,
			content=request.prompt,
		)
		view.messages.append(user_message)
		view.draft = ""

		try:
			await self._persist(user_message)
			await self._assign_title(session_id, request.prompt)

			try:
				result = await self.dispatcher.generate(request)
			except Exception as exc:
				LOGGER.error("%s generation for session %s failed: %s", request.capability, session_id, exc)
				self._deliver(session_id, self._error_message(session_id, is_image))
				return True

			reply = self._reply_message(session_id, result)
			self._deliver(session_id, reply)
			await self._persist(reply)
		finally:
			if is_image:
				view.image_pending = False
			else:
				view.text_pending = False
		return True

	def _reply_message(self, session_id: str, result: GenerationResult) -> ChatMessage:
		if isinstance(result, TextGenerationResult):
			return ChatMessage(
				session_id=session_id,
				user_id=self.view.user_id,
				role=MessageRole.ASSISTANT,
				content=result.text or EMPTY_REPLY_PLACEHOLDER,
			)
		if isinstance(result, ImageGenerationResult):
			return ChatMessage(
				session_id=session_id,
				user_id=self.view.user_id,
				role=MessageRole.ASSISTANT,
				content="",
				image=result.image,
			)
		raise TypeError(f"Unsupported generation result: {type(result).__name__}")

	def _error_message(self, session_id: str, is_image: bool) -> ChatMessage:
		return ChatMessage(
			session_id=session_id,
			user_id=self.view.user_id,
			role=MessageRole.ASSISTANT,
			content=IMAGE_ERROR_MESSAGE if is_image else TEXT_ERROR_MESSAGE,
			synthetic=True,
		)

	def _deliver(self, issued_for: str, message: ChatMessage) -> bool:
		"""Append a completion to the local list unless its session went inactive."""
		if self.discard_stale_results and self.view.active_session_id != issued_for:
			LOGGER.info(
				"Discarding reply for session %s; active session is now %s",
				issued_for,
				self.view.active_session_id,
			)
			return False
		self.view.messages.append(message)
		return True

	async def _assign_title(self, session_id: str, prompt: str) -> bool:
		try:
			changed = await self.gateway.update_session_title(
				session_id,
				self.view.user_id,
				DEFAULT_SESSION_TITLE,
				prompt[:TITLE_MAX_LENGTH],
			)
		except PersistenceError as exc:
			LOGGER.warning("Title update for session %s failed: %s", session_id, exc)
			return False
		if changed:
			LOGGER.debug("Session %s titled from first prompt", session_id)
		return changed

	# Persistence -------------------------------------------------------

	async def _persist(self, message: ChatMessage) -> bool:
		try:
			message.id = await self.gateway.insert_message(message)
		except SessionAccessError as exc:
			# Retrying cannot fix an ownership rejection.
			LOGGER.warning("Message rejected by store: %s", exc)
			return False
		except PersistenceError as exc:
			LOGGER.warning("Message write for session %s failed, kept unsynced: %s", message.session_id, exc)
			if not any(m is message for m in self.view.unsynced):
				self.view.unsynced.append(message)
			return False
		return True

	async def flush_unsynced(self) -> int:
		"""Retry writes that failed earlier. Returns the number now stored."""
		pending = list(self.view.unsynced)
		self.view.unsynced.clear()
		flushed = 0
		for message in pending:
			if await self._persist(message):
				flushed += 1
		return flushed
