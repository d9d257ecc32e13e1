"""OpenAI (or OpenAI-compatible) chat provider with a JSON-array system prompt."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from sensemaker.models import ModelResponse
from sensemaker.providers.base import JSON_ARRAY_INSTRUCTION, AIProvider, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """Chat completions provider; ``base_url`` points it at a compatible endpoint.

    JSON mode is not used because it only guarantees a JSON object, and every
    reply here must be an array. The system prompt asks for the array instead.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": JSON_ARRAY_INSTRUCTION},
            {"role": "user", "content": prompt},
        ]

    async def generate(self, prompt: str) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=self._messages(prompt),
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if choice is not None and choice.finish_reason == "length":
            raise ProviderError(
                self._config.name,
                f"Response truncated at max_tokens={self._config.max_tokens}; raise it or lower batch_size",
            )
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count = response.usage.total_tokens if response.usage else None
        logger.info("OpenAI call: %.2fs, %s tokens", latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
