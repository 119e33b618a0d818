"""Helpers to pull the useful field out of provider responses."""

from __future__ import annotations

from typing import Any, Optional


def _field(obj: Any, name: str) -> Any:
	if obj is None:
		return None
	if isinstance(obj, dict):
		return obj.get(name)
	return getattr(obj, name, None)


def extract_reply_text(response: Any) -> str:
	"""Return `choices[0].message.content`, or an empty string when absent."""
	choices = _field(response, "choices") or []
	if not choices:
		return ""
	content = _field(_field(choices[0], "message"), "content")
	return content if isinstance(content, str) else ""


def extract_artifact_base64(payload: Any) -> Optional[str]:
	"""Return the base64 body of the first image artifact, if present."""
	artifacts = _field(payload, "artifacts") or []
	if not artifacts:
		return None
	encoded = _field(artifacts[0], "base64")
	return encoded if isinstance(encoded, str) and encoded else None
