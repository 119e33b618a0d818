"""Uniform entry point over the text and image generation providers."""

from __future__ import annotations

import logging
import time

from models.generation import (
    GenerationRequest,
    GenerationResult,
    ImageGenerationRequest,
    ImageGenerationResult,
    TextGenerationRequest,
    TextGenerationResult,
)
from services.generation.image_synthesis import ImageSynthesisService
from services.generation.text_completion import TextCompletionService
from utils.settings import Settings

LOGGER = logging.getLogger(__name__)


class GenerationDispatcher:
    """Route a generation request to the provider for its capability.

    Each call is one best-effort attempt: no retry, no backoff. Failures
    propagate as `GenerationError` subclasses and the caller decides what
    the user sees.
    """

    def __init__(self, text_service: TextCompletionService, image_service: ImageSynthesisService) -> None:
        if text_service is None or image_service is None:
            raise ValueError("Both text and image services are required.")
        self.text_service = text_service
        self.image_service = image_service

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationDispatcher":
        return cls(
            TextCompletionService(
                settings.openrouter_api_key,
                base_url=settings.openrouter_base_url,
                model=settings.openrouter_model,
                timeout=settings.generation_timeout,
            ),
            ImageSynthesisService(
                settings.stability_api_key,
                base_url=settings.stability_base_url,
                model=settings.stability_model,
                timeout=settings.generation_timeout,
            ),
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        start_time = time.time()
        if isinstance(request, TextGenerationRequest):
            text = await self.text_service.complete(request.prompt)
            result = TextGenerationResult(text=text)
        elif isinstance(request, ImageGenerationRequest):
            image = await self.image_service.synthesize(request.prompt, model=request.model)
            result = ImageGenerationResult(image=image)
        else:
            raise TypeError(f"Unsupported generation request: {type(request).__name__}")

        LOGGER.info("%s generation finished in %.2fs", request.capability, time.time() - start_time)
        return result

    async def aclose(self) -> None:
        await self.text_service.aclose()
        await self.image_service.aclose()
