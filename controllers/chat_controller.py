from fastapi import Request, HTTPException
from typing import Dict, Any, Optional

from models.chat_record import ChatMessage
from models.session_models import SessionView
from services.chat.view_store import ChatViewHandle, ChatViewStore

SUBMIT_KINDS = ("text", "image")


def serialize_message(message: ChatMessage) -> Dict[str, Any]:
    """Render a message for the client; local-only messages are flagged."""
    return {
        "id": message.id,
        "session_id": message.session_id,
        "role": message.role.value,
        "content": message.content,
        "image": message.image,
        "created_at": message.created_at,
        "synthetic": message.synthetic,
        "client_key": message.client_key,
    }


def serialize_view(view: SessionView) -> Dict[str, Any]:
    return {
        "active_session_id": view.active_session_id,
        "phase": view.phase.value,
        "draft": view.draft,
        "messages": [serialize_message(m) for m in view.messages],
        "unsynced_count": len(view.unsynced),
    }


async def open_view(request: Request, user_id: str, client_id: str) -> ChatViewHandle:
    """Return the caller's chat view from `app.state.chat_views`."""
    store: ChatViewStore = request.app.state.chat_views
    return await store.open(user_id, client_id)


async def get_view(request: Request, user_id: str, client_id: str) -> Dict[str, Any]:
    handle = await open_view(request, user_id, client_id)
    return serialize_view(handle.view)


async def submit_message(
    request: Request,
    user_id: str,
    client_id: str,
    prompt: Optional[str],
    kind: str = "text",
    model: Optional[str] = None,
) -> Dict[str, Any]:
    """Run one submission through the caller's state manager.

    Args:
        request: FastAPI Request (used to access the shared view store).
        user_id: Verified user identity.
        client_id: User agent identity; each one has its own view.
        prompt: Prompt text, or None to submit the view's draft.
        kind: "text" or "image".
        model: Optional image model override (image submissions only).

    Returns:
        The view snapshot plus `accepted`, which is False when the
        submission was a no-op (blank prompt, generation pending, or no
        active session).

    Raises:
        HTTPException(400) for an unknown kind.
    """
    if kind not in SUBMIT_KINDS:
        raise HTTPException(status_code=400, detail=f"Unsupported message kind: {kind}")

    handle = await open_view(request, user_id, client_id)
    if kind == "image":
        accepted = await handle.manager.submit_image(prompt, model=model)
    else:
        accepted = await handle.manager.submit_text(prompt)

    return {"accepted": accepted, **serialize_view(handle.view)}


async def set_draft(request: Request, user_id: str, client_id: str, text: str) -> Dict[str, Any]:
    handle = await open_view(request, user_id, client_id)
    handle.manager.set_draft(text)
    return serialize_view(handle.view)


async def reload_view(request: Request, user_id: str, client_id: str) -> Dict[str, Any]:
    handle = await open_view(request, user_id, client_id)
    await handle.manager.reload()
    return serialize_view(handle.view)


async def sync_view(request: Request, user_id: str, client_id: str) -> Dict[str, Any]:
    """Retry failed message writes and report how many were stored."""
    handle = await open_view(request, user_id, client_id)
    flushed = await handle.manager.flush_unsynced()
    return {"flushed": flushed, **serialize_view(handle.view)}
