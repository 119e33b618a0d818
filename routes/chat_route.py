from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from typing import Optional, Tuple

from controllers.chat_controller import get_view, reload_view, set_draft, submit_message, sync_view
from routes.identity import require_identity

router = APIRouter(prefix="/chat")


class MessagePayload(BaseModel):
    prompt: Optional[str] = None
    kind: str = "text"
    model: Optional[str] = None


class DraftPayload(BaseModel):
    text: str = ""


@router.get("")
async def get_view_route(request: Request, identity: Tuple[str, str] = Depends(require_identity)):
    """Return the caller's active session id, phase, and ordered messages."""
    try:
        return await get_view(request, *identity)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/messages")
async def post_message_route(
    request: Request,
    payload: MessagePayload,
    identity: Tuple[str, str] = Depends(require_identity),
):
    """Submit a text or image prompt; the response carries the settled view."""
    try:
        return await submit_message(request, *identity, payload.prompt, payload.kind, payload.model)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.put("/draft")
async def put_draft_route(
    request: Request,
    payload: DraftPayload,
    identity: Tuple[str, str] = Depends(require_identity),
):
    try:
        return await set_draft(request, *identity, payload.text)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/reload")
async def reload_route(request: Request, identity: Tuple[str, str] = Depends(require_identity)):
    try:
        return await reload_view(request, *identity)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/sync")
async def sync_route(request: Request, identity: Tuple[str, str] = Depends(require_identity)):
    """Retry message writes that failed earlier."""
    try:
        return await sync_view(request, *identity)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
