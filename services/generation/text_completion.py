"""Text completion through an OpenAI-compatible chat endpoint (OpenRouter)."""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from services.generation.response_parser import extract_reply_text
from utils.errors import GenerationConfigError, GenerationProviderError
from utils.settings import DEFAULT_GENERATION_TIMEOUT, DEFAULT_OPENROUTER_BASE_URL, DEFAULT_OPENROUTER_MODEL

LOGGER = logging.getLogger(__name__)


class TextCompletionService:
    """Send a single-turn prompt to the configured text provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = DEFAULT_OPENROUTER_BASE_URL,
        model: str = DEFAULT_OPENROUTER_MODEL,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Args:
            api_key: OpenRouter credential. Without it every call fails as a configuration error.
            base_url: OpenAI-compatible API root.
            model: Model identifier sent with each request.
            timeout: Upper bound in seconds for one request.
            client: Optional preconfigured async client for dependency injection.
        """
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.client = client
        self._owns_client = client is None

    def _resolve_client(self) -> AsyncOpenAI:
        """Return a usable client, creating it on first use, or raise if unconfigured."""
        if self.client is not None:
            return self.client
        if not self.api_key:
            raise GenerationConfigError("Missing OpenRouter API key", capability="text")
        # Single attempt per call; retries are the caller's decision.
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )
        return self.client

    async def complete(self, prompt: str) -> str:
        """Return the provider's reply text, or an empty string if it sent none.

        Raises:
            GenerationConfigError: If no credential is configured.
            GenerationProviderError: If the provider is unreachable or answers with an error status.
        """
        client = self._resolve_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIError as exc:
            status_code = getattr(exc, "status_code", None)
            LOGGER.error("OpenRouter request failed (status=%s): %s", status_code, exc)
            raise GenerationProviderError(
                "Failed to fetch from OpenRouter", capability="text", status_code=status_code
            ) from exc

        return extract_reply_text(response)

    async def aclose(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.close()
            self.client = None
