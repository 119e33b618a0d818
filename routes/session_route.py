"""FastAPI routes for the session directory and session selection."""

from typing import Tuple

from fastapi import APIRouter, Depends, HTTPException, Request

from controllers.session_controller import create_session, list_sessions, select_session
from routes.identity import require_identity

router = APIRouter(prefix="/sessions")


@router.get("")
async def list_sessions_route(request: Request, identity: Tuple[str, str] = Depends(require_identity)):
	try:
		return await list_sessions(request, *identity)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("")
async def create_session_route(request: Request, identity: Tuple[str, str] = Depends(require_identity)):
	try:
		return await create_session(request, *identity)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/select")
async def select_session_route(
	request: Request,
	session_id: str,
	identity: Tuple[str, str] = Depends(require_identity),
):
	try:
		return await select_session(request, *identity, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
