"""Anthropic Claude provider, steered to answer with a bare JSON array."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from sensemaker.models import ModelResponse
from sensemaker.providers.base import JSON_ARRAY_INSTRUCTION, AIProvider, ProviderError

logger = logging.getLogger(__name__)

# Prefilled assistant turn: Claude continues the array instead of opening with prose.
_PREFILL = "["


class AnthropicProvider(AIProvider):
    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                    system=JSON_ARRAY_INSTRUCTION,
                    messages=[
                        {"role": "user", "content": prompt},
                        {"role": "assistant", "content": _PREFILL},
                    ],
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if response.stop_reason == "max_tokens":
            raise ProviderError(
                self._config.name,
                f"Response truncated at max_tokens={self._config.max_tokens}; raise it or lower batch_size",
            )

        continuation = "".join(b.text for b in response.content or [] if b.type == "text")
        if not continuation.strip():
            raise ProviderError(self._config.name, "No text in response")
        content = continuation if continuation.lstrip().startswith(_PREFILL) else _PREFILL + continuation

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic call: %.2fs, %s tokens", latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
