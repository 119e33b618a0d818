"""Session view models for the chat state manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.chat_record import ChatMessage


class ViewPhase(str, Enum):
	IDLE = "idle"
	AWAITING_TEXT = "awaiting_text"
	AWAITING_IMAGE = "awaiting_image"


@dataclass
class SessionView:
	"""Process-local state of one user agent's chat view.

	Only the session state manager mutates this object.
	"""

	user_id: str
	client_id: str = "default"
	active_session_id: Optional[str] = None
	messages: List[ChatMessage] = field(default_factory=list)
	draft: str = ""
	text_pending: bool = False
	image_pending: bool = False
	unsynced: List[ChatMessage] = field(default_factory=list)

	@property
	def busy(self) -> bool:
		return self.text_pending or self.image_pending

	@property
	def phase(self) -> ViewPhase:
		if self.text_pending:
			return ViewPhase.AWAITING_TEXT
		if self.image_pending:
			return ViewPhase.AWAITING_IMAGE
		return ViewPhase.IDLE
