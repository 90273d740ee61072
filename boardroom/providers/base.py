"""Abstract base for the LLM providers that back executive agents."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod

from boardroom.errors import ProviderError
from boardroom.models import ModelResponse
from config.config_loader import ModelConfig

logger = logging.getLogger(__name__)


class AIProvider(ABC):
    """One configured model. Subclasses only implement the SDK call."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config

    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        return self._config.name

    def model_string(self) -> str:
        """Return the actual model identifier string."""
        return self._config.model

    @abstractmethod
    async def _complete(self, prompt: str) -> tuple[str, int | None]:
        """Send ``prompt`` and return (text, token_count). Empty text is allowed here."""
        ...

    async def generate(self, prompt: str, round_number: int) -> ModelResponse:
        """Generate a response for the given prompt.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        start = time.monotonic()
        try:
            text, token_count = await asyncio.wait_for(
                self._complete(prompt),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        if not text or not text.strip():
            raise ProviderError(self._config.name, "Empty response content")

        logger.info(
            "%s round %d: %.2fs, %s tokens",
            self._config.name,
            round_number,
            latency,
            token_count,
        )
        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            round_number=round_number,
            content=text,
            latency_sec=latency,
            token_count=token_count,
        )
