"""Gemini provider using google-genai SDK, on Vertex AI or the Gemini API."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from sensemaker.models import ModelResponse
from sensemaker.providers.base import JSON_ARRAY_INSTRUCTION, AIProvider, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini via google-genai.

    Uses Vertex AI with application default credentials when a project is
    configured, otherwise the API key from ``api_key_env``.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        if config.vertex_project:
            self._client = genai.Client(
                vertexai=True,
                project=config.vertex_project,
                location=config.vertex_location,
            )
            return
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(
                config.name, f"Missing API key: {config.api_key_env} (or pass a Vertex project)"
            )
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=prompt,
                    config=genai_types.GenerateContentConfig(
                        max_output_tokens=self._config.max_tokens,
                        temperature=self._config.temperature,
                        system_instruction=JSON_ARRAY_INSTRUCTION,
                        response_mime_type="application/json",
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        candidate = response.candidates[0] if response.candidates else None
        if candidate is not None and candidate.finish_reason == genai_types.FinishReason.MAX_TOKENS:
            raise ProviderError(
                self._config.name,
                f"Response truncated at max_tokens={self._config.max_tokens}; raise it or lower batch_size",
            )
        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini call: %.2fs, %s tokens", latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=response.text,
            latency_sec=latency,
            token_count=token_count,
        )
