"""Durable per-user-agent cache of the active session id."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

LOGGER = logging.getLogger(__name__)

ACTIVE_SESSION_KEY = "activeSessionId"


class SelectionCache:
    """Key/value JSON file per (user, client) pair, read at view start and written on every change."""

    def __init__(self, cache_dir: Path | str) -> None:
        self.cache_dir = Path(cache_dir)

    def _path(self, user_id: str, client_id: str) -> Path:
        # Hash the identity pair so arbitrary header values never reach the filesystem.
        digest = hashlib.sha256(f"{user_id}\x00{client_id}".encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    async def _read(self, path: Path) -> Dict[str, Any]:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable selection cache %s: %s", path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    async def load(self, user_id: str, client_id: str) -> Optional[str]:
        """Return the cached active session id, or None."""
        value = (await self._read(self._path(user_id, client_id))).get(ACTIVE_SESSION_KEY)
        return value if isinstance(value, str) and value else None

    async def save(self, user_id: str, client_id: str, session_id: Optional[str]) -> None:
        """Write the active session id. Failures are logged; the in-memory selection stays authoritative."""
        path = self._path(user_id, client_id)
        data = await self._read(path)
        data[ACTIVE_SESSION_KEY] = session_id
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data))
        except OSError as exc:
            LOGGER.warning("Failed to write selection cache %s: %s", path, exc)
