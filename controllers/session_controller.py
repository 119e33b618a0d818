"""Session directory and selection helpers for chat views."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import HTTPException, Request

from controllers.chat_controller import open_view, serialize_view
from models.chat_record import ChatSession
from services.chat.session_directory import display_title, relative_date_label
from utils.errors import SessionAccessError


def serialize_sessions(sessions: List[ChatSession]) -> List[Dict[str, Any]]:
	return [
		{
			"session_id": s.session_id,
			"title": display_title(s),
			"created_at": s.created_at,
			"age_label": relative_date_label(s.created_at),
		}
		for s in sessions
	]


async def list_sessions(request: Request, user_id: str, client_id: str) -> Dict[str, Any]:
	"""List the user's sessions, newest first, with the caller's active id."""
	handle = await open_view(request, user_id, client_id)
	sessions = await handle.directory.list_sessions(user_id)
	return {
		"sessions": serialize_sessions(sessions),
		"active_session_id": handle.view.active_session_id,
	}


async def create_session(request: Request, user_id: str, client_id: str) -> Dict[str, Any]:
	"""Create a session and select it in the caller's view.

	A storage failure is not an HTTP error: `session` is null and the
	listing is returned unchanged.
	"""
	handle = await open_view(request, user_id, client_id)
	session = await handle.directory.create_session(user_id, on_created=handle.manager.select_session)
	return {
		"session": serialize_sessions([session])[0] if session else None,
		"sessions": serialize_sessions(handle.directory.sessions),
		**serialize_view(handle.view),
	}


async def select_session(request: Request, user_id: str, client_id: str, session_id: str) -> Dict[str, Any]:
	"""Make a session active in the caller's view and return the loaded view."""
	handle = await open_view(request, user_id, client_id)
	try:
		await handle.manager.select_session(session_id)
	except SessionAccessError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return serialize_view(handle.view)
