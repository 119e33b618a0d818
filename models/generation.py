"""Request and result shapes for the two generation capabilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class TextGenerationRequest:
    capability: ClassVar[str] = "text"

    prompt: str


@dataclass(frozen=True)
class ImageGenerationRequest:
    capability: ClassVar[str] = "image"

    prompt: str
    model: Optional[str] = None


@dataclass(frozen=True)
class TextGenerationResult:
    capability: ClassVar[str] = "text"

    text: str


@dataclass(frozen=True)
class ImageGenerationResult:
    capability: ClassVar[str] = "image"

    image: str  # ready-to-render data URI


GenerationRequest = Union[TextGenerationRequest, ImageGenerationRequest]
GenerationResult = Union[TextGenerationResult, ImageGenerationResult]
