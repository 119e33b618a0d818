"""Environment-driven settings for the chat service."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_OPENROUTER_MODEL = "google/gemma-3n-e2b-it:free"
DEFAULT_STABILITY_BASE_URL = "https://api.stability.ai"
DEFAULT_STABILITY_MODEL = "stable-diffusion-xl-1024-v1-0"
DEFAULT_GENERATION_TIMEOUT = 60.0
DEFAULT_MAX_CHAT_VIEWS = 1024


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a number") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not an integer") from exc


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass
class Settings:
    database_dir: Optional[str]
    selection_cache_dir: Optional[str]
    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    openrouter_model: str
    stability_api_key: Optional[str]
    stability_base_url: str
    stability_model: str
    generation_timeout: float
    max_chat_views: int
    log_level: str

    def resolve_selection_cache_dir(self) -> Path:
        """Return the selection cache directory, defaulting under DATABASE_DIR."""
        if self.selection_cache_dir:
            return Path(self.selection_cache_dir).expanduser()
        if not self.database_dir:
            raise RuntimeError("DATABASE_DIR or SELECTION_CACHE_DIR must be set.")
        return Path(self.database_dir).expanduser() / "selection"


def get_settings() -> Settings:
    # Provider keys are optional here; a missing key fails each call instead of startup.
    return Settings(
        database_dir=_optional_env("DATABASE_DIR"),
        selection_cache_dir=_optional_env("SELECTION_CACHE_DIR"),
        openrouter_api_key=_optional_env("OPENROUTER_API_KEY"),
        openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", DEFAULT_OPENROUTER_BASE_URL),
        openrouter_model=os.getenv("OPENROUTER_MODEL", DEFAULT_OPENROUTER_MODEL),
        stability_api_key=_optional_env("STABILITY_API_KEY"),
        stability_base_url=os.getenv("STABILITY_BASE_URL", DEFAULT_STABILITY_BASE_URL),
        stability_model=os.getenv("STABILITY_MODEL", DEFAULT_STABILITY_MODEL),
        generation_timeout=_float_env("GENERATION_TIMEOUT_SECONDS", DEFAULT_GENERATION_TIMEOUT),
        max_chat_views=_int_env("MAX_CHAT_VIEWS", DEFAULT_MAX_CHAT_VIEWS),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
