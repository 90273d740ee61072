"""Tests for the shared AIProvider.generate wrapper and provider construction."""

import asyncio

import pytest

from boardroom.errors import ProviderError
from boardroom.providers import PROVIDER_CLASSES, AnthropicProvider, OpenAIProvider
from boardroom.providers.base import AIProvider
from config.config_loader import ModelConfig


class CannedProvider(AIProvider):
    """Provider whose SDK call is replaced by a coroutine function."""

    def __init__(self, config: ModelConfig, complete) -> None:
        super().__init__(config)
        self._complete_fn = complete

    async def _complete(self, prompt: str) -> tuple[str, int | None]:
        return await self._complete_fn(prompt)


async def test_generate_wraps_text_in_model_response(sample_model_config):
    async def complete(prompt):
        return f"echo: {prompt}", 12

    response = await CannedProvider(sample_model_config, complete).generate("hi", round_number=2)
    assert response.content == "echo: hi"
    assert response.provider == "test_model"
    assert response.model == "test-model-1"
    assert response.round_number == 2
    assert response.token_count == 12
    assert response.latency_sec >= 0


async def test_generate_rejects_empty_text(sample_model_config):
    async def complete(prompt):
        return "   ", None

    with pytest.raises(ProviderError, match="Empty response"):
        await CannedProvider(sample_model_config, complete).generate("hi", 0)


async def test_generate_wraps_sdk_errors(sample_model_config):
    async def complete(prompt):
        raise ConnectionError("reset by peer")

    with pytest.raises(ProviderError, match="reset by peer"):
        await CannedProvider(sample_model_config, complete).generate("hi", 0)


async def test_generate_times_out(sample_model_config):
    sample_model_config.timeout_sec = 0.05

    async def complete(prompt):
        await asyncio.sleep(10)
        return "late", None

    with pytest.raises(ProviderError, match="timed out"):
        await CannedProvider(sample_model_config, complete).generate("hi", 0)


def test_provider_classes_registry():
    assert set(PROVIDER_CLASSES) == {"anthropic", "google-genai", "openai"}


@pytest.mark.parametrize("provider_cls", [AnthropicProvider, OpenAIProvider])
def test_missing_api_key_raises(provider_cls, sample_model_config, monkeypatch):
    monkeypatch.delenv(sample_model_config.api_key_env, raising=False)
    with pytest.raises(ProviderError, match="Missing API key"):
        provider_cls(sample_model_config)


def test_openai_provider_accepts_base_url(sample_model_config, monkeypatch):
    monkeypatch.setenv(sample_model_config.api_key_env, "sk-test")
    sample_model_config.base_url = "https://api.x.ai/v1"
    provider = OpenAIProvider(sample_model_config)
    assert provider.name() == "test_model"
    assert provider.model_string() == "test-model-1"
