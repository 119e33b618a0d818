from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import uuid4

DEFAULT_SESSION_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatSession:
    """In-memory representation of a row in the chat_sessions table.

    Attributes:
        session_id: Opaque UUID string identifying the session.
        user_id: Owner of the session.
        title: Display title; starts as the "New Chat" sentinel.
        created_at: Unix timestamp (seconds, fractional) of creation.
    """

    session_id: str
    user_id: str
    title: str = DEFAULT_SESSION_TITLE
    created_at: float = field(default_factory=time.time)


@dataclass
class ChatMessage:
    """In-memory representation of a row in the messages table.

    Attributes:
        id: Storage key (None until the row is written).
        session_id: Parent session.
        user_id: Owner; always equal to the parent session's owner.
        role: Who authored the turn.
        content: Text of the turn; empty for generated images.
        image: Optional data URI or URL of an image payload.
        created_at: Unix timestamp used for ordering within the session.
        synthetic: Local-only message that is never written to storage.
        client_key: Opaque key minted when the message is created; identifies
            the same message locally and in storage before `id` is known.
    """

    session_id: str
    user_id: str
    role: MessageRole
    content: str
    image: Optional[str] = None
    id: Optional[int] = None
    created_at: float = field(default_factory=time.time)
    synthetic: bool = False
    client_key: str = field(default_factory=lambda: uuid4().hex)
