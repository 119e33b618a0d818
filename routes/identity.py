"""Identity headers supplied by the upstream authentication layer."""

from typing import Optional, Tuple

from fastapi import Header, HTTPException

DEFAULT_CLIENT_ID = "default"


def require_identity(
	x_user_id: Optional[str] = Header(default=None),
	x_client_id: Optional[str] = Header(default=None),
) -> Tuple[str, str]:
	"""Return (user_id, client_id); the user id is trusted as already verified."""
	user_id = (x_user_id or "").strip()
	if not user_id:
		raise HTTPException(status_code=401, detail="Missing X-User-Id header")
	client_id = (x_client_id or "").strip() or DEFAULT_CLIENT_ID
	return user_id, client_id
