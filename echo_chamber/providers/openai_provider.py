"""OpenAI provider using openai SDK with native async.

Also serves any OpenAI-compatible endpoint (xAI, DeepSeek, local servers)
when the model config carries a base_url.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from echo_chamber.models import CompletionRequest, CompletionResponse
from echo_chamber.providers.base import CompletionFailure, CompletionService, to_chat_messages

logger = logging.getLogger(__name__)


class OpenAIProvider(CompletionService):
    """OpenAI chat completions via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise CompletionFailure(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        messages = [{"role": "system", "content": request.system_prompt}, *to_chat_messages(request)]
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=messages,
                    max_tokens=request.max_output_tokens,
                    temperature=request.temperature,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise CompletionFailure(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise CompletionFailure(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise CompletionFailure(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("OpenAI call: %.2fs, %s tokens", latency, token_count)

        return CompletionResponse(
            text=choice.message.content,
            provider=self._config.name,
            model=self._config.model,
            latency_sec=latency,
            token_count=token_count,
        )
