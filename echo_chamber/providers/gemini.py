"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from echo_chamber.models import CompletionRequest, CompletionResponse, Role
from echo_chamber.providers.base import CompletionFailure, CompletionService

logger = logging.getLogger(__name__)


def _to_contents(request: CompletionRequest) -> list[genai_types.Content]:
    return [
        genai_types.Content(
            role="model" if f.role is Role.ASSISTANT else "user",
            parts=[genai_types.Part(text=f.text)],
        )
        for f in request.messages
    ]


class GeminiProvider(CompletionService):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise CompletionFailure(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=_to_contents(request),
                    config=genai_types.GenerateContentConfig(
                        system_instruction=request.system_prompt,
                        max_output_tokens=request.max_output_tokens,
                        temperature=request.temperature,
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise CompletionFailure(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise CompletionFailure(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise CompletionFailure(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini call: %.2fs, %s tokens", latency, token_count)

        return CompletionResponse(
            text=response.text,
            provider=self._config.name,
            model=self._config.model,
            latency_sec=latency,
            token_count=token_count,
        )
