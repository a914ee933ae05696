"""
Chat-completion client interface and the OpenAI adapter.

The insight service depends only on the LLMClient protocol:

    async def complete(prompt: ChatPrompt, model: str) -> str

so tests can inject a fake and the vendor SDK stays isolated here.
OpenAIChatClient is the production adapter built on openai.AsyncOpenAI; every
SDK failure (transport, non-2xx, auth) is re-raised as LLMClientError.
"""

import logging
from typing import Optional, Protocol

import openai

from insight_backend.services.prompt_builder import ChatPrompt

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class LLMClientError(Exception):
    """The model call failed: transport error, non-2xx response or missing credentials."""


class InsightTimeout(LLMClientError):
    """The model call did not finish within the configured bound."""


# =============================================================================
# Interface
# =============================================================================


class LLMClient(Protocol):
    """Anything that can turn a chat prompt into completion text."""

    async def complete(self, prompt: ChatPrompt, model: str) -> str:
        ...


# =============================================================================
# OpenAI Adapter
# =============================================================================


class OpenAIChatClient:
    """
    LLMClient backed by the OpenAI chat completions API.

    The SDK client is created on first use so the application can start
    without credentials; requests then fail with LLMClientError and the
    service falls back to local content.

    Args:
        api_key: OpenAI API key, or None.
        base_url: Optional base URL for OpenAI-compatible providers.
        temperature: Sampling temperature.
        max_tokens: Completion token budget.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client: Optional[openai.AsyncOpenAI] = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if not self._api_key:
            raise LLMClientError("OpenAI API key is not configured")
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                # Retries are left to the caller; the rate limiter owns pacing
                max_retries=0,
            )
        return self._client

    async def complete(self, prompt: ChatPrompt, model: str) -> str:
        """
        Send one chat completion request.

        Returns:
            The completion text, or an empty string when the model returned
            no content.

        Raises:
            LLMClientError: On any SDK or transport failure.
        """
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": prompt.system},
                    {"role": "user", "content": prompt.user},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            raise LLMClientError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        if self._client is not None:
            await self._client.close()
            self._client = None
