"""LLM providers keyed by the ``sdk`` field of a model config."""

from boardroom.providers.anthropic import AnthropicProvider
from boardroom.providers.base import AIProvider
from boardroom.providers.gemini import GeminiProvider
from boardroom.providers.openai_provider import OpenAIProvider

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "google-genai": GeminiProvider,
    "openai": OpenAIProvider,
}

__all__ = ["AIProvider", "AnthropicProvider", "GeminiProvider", "OpenAIProvider", "PROVIDER_CLASSES"]
