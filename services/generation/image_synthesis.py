"""Text-to-image synthesis through the Stability AI REST API."""

import logging
import re
from typing import Any, Dict, Optional

import httpx

from services.generation.response_parser import extract_artifact_base64
from utils.errors import GenerationConfigError, GenerationProviderError
from utils.media_validation import to_image_data_uri
from utils.settings import DEFAULT_GENERATION_TIMEOUT, DEFAULT_STABILITY_BASE_URL, DEFAULT_STABILITY_MODEL

LOGGER = logging.getLogger(__name__)

CFG_SCALE = 7
IMAGE_SIZE = 1024
SAMPLES = 1
STEPS = 30
_MODEL_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class ImageSynthesisService:
    """Generate one square image per prompt with fixed sampling parameters."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = DEFAULT_STABILITY_BASE_URL,
        model: str = DEFAULT_STABILITY_MODEL,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    @staticmethod
    def _build_payload(prompt: str) -> Dict[str, Any]:
        return {
            "text_prompts": [{"text": prompt}],
            "cfg_scale": CFG_SCALE,
            "height": IMAGE_SIZE,
            "width": IMAGE_SIZE,
            "samples": SAMPLES,
            "steps": STEPS,
        }

    def _endpoint(self, model: Optional[str]) -> str:
        engine = model or self.model
        if not _MODEL_PATTERN.match(engine):
            raise GenerationConfigError(f"Unsupported image model {engine!r}", capability="image")
        return f"{self.base_url}/v1/generation/{engine}/text-to-image"

    async def synthesize(self, prompt: str, model: Optional[str] = None) -> str:
        """Return the generated image as a data URI.

        Raises:
            GenerationConfigError: If no credential is configured or the model name is invalid.
            GenerationProviderError: On transport failure, error status, or a body without an image.
        """
        if not self.api_key:
            raise GenerationConfigError("Missing Stability API key", capability="image")
        endpoint = self._endpoint(model)

        try:
            response = await self._client.post(
                endpoint,
                json=self._build_payload(prompt),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Stability AI request failed: %s", exc)
            raise GenerationProviderError("Stability AI is unreachable", capability="image") from exc

        if response.status_code >= 400:
            LOGGER.error("Stability AI error (HTTP %s): %s", response.status_code, response.text[:200])
            raise GenerationProviderError(
                "Failed to fetch from Stability AI", capability="image", status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationProviderError("Stability AI returned a non-JSON body", capability="image") from exc

        image_b64 = extract_artifact_base64(payload)
        if not image_b64:
            raise GenerationProviderError("No image received from Stability AI", capability="image")

        try:
            return to_image_data_uri(image_b64)
        except ValueError as exc:
            raise GenerationProviderError(
                "Stability AI returned an unreadable image", capability="image"
            ) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
