"""OpenAI provider using openai SDK. Also serves OpenAI-compatible endpoints via base_url."""

import os

from openai import AsyncOpenAI

from boardroom.errors import ProviderError
from boardroom.providers.base import AIProvider
from config.config_loader import ModelConfig


class OpenAIProvider(AIProvider):
    """OpenAI (or compatible) chat completions provider."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    async def _complete(self, prompt: str) -> tuple[str, int | None]:
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self._config.max_tokens,
        )
        choice = response.choices[0] if response.choices else None
        token_count = response.usage.total_tokens if response.usage else None
        return (choice.message.content or "") if choice else "", token_count
