"""LLM Provider implementation using Anthropic Claude API."""

import os
from typing import Protocol

import anthropic

from ..config import llm_model, llm_timeout


class ILLMProvider(Protocol):
    """Abstraction for LLM access."""

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> str:
        """Generate completion."""
        ...


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model or llm_model()
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=timeout if timeout is not None else llm_timeout(),
            max_retries=0,  # failed calls are not retried by the pipeline either
        )

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> str:
        """Generate completion using Claude API."""
        params: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system is not None:
            params["system"] = system
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = await self._client.messages.create(**params)
        except Exception as e:
            raise RuntimeError(f"LLM API error: {e}") from e

        if not response.content:
            return ""
        return response.content[0].text
