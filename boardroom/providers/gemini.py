"""Gemini provider using google-genai SDK with native async."""

import os

from google import genai
from google.genai import types as genai_types

from boardroom.errors import ProviderError
from boardroom.providers.base import AIProvider
from config.config_loader import ModelConfig


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    async def _complete(self, prompt: str) -> tuple[str, int | None]:
        response = await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                max_output_tokens=self._config.max_tokens,
            ),
        )
        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count
        return response.text or "", token_count
