"""
OpenAI client wrapper for the DealsList import pipeline.

Handles:
- Chat completions returning the raw assistant text
- Translation of SDK errors into dealslist.errors (rate limits keep the
  retry-after hint)

Retries are NOT done here: the SDK's own retry loop is disabled and the
retry/backoff policy lives in DealExtractionClient, so a rate-limited call
is retried exactly once per policy decision.
"""

import os

import openai
from openai import AsyncOpenAI

from ..errors import OpenAIError, wrap_openai_error


class OpenAIClient:
    """
    Async OpenAI chat client.

    Configuration via environment variables:
    - OPENAI_API_KEY: Required API key
    - OPENAI_CHAT_MODEL: Chat model (default: gpt-3.5-turbo)
    - OPENAI_TIMEOUT_SECONDS: Per-request timeout (default: 30)
    """

    def __init__(
        self,
        api_key: str | None = None,
        chat_model: str | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            chat_model: Model for chat completions (defaults to OPENAI_CHAT_MODEL or gpt-3.5-turbo)
            timeout: Default request timeout in seconds (defaults to OPENAI_TIMEOUT_SECONDS or 30)
        """
        self.api_key = api_key or os.getenv('OPENAI_API_KEY')
        if not self.api_key:
            raise ValueError('OPENAI_API_KEY environment variable is required')

        self.chat_model = chat_model or os.getenv('OPENAI_CHAT_MODEL', 'gpt-3.5-turbo')
        self.timeout = timeout or float(os.getenv('OPENAI_TIMEOUT_SECONDS', '30'))

        self._client = AsyncOpenAI(
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=0,
        )

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> str:
        """
        Get a chat completion response.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Override the default chat model
            temperature: Sampling temperature (0.0 for deterministic)
            max_tokens: Maximum tokens in response
            timeout: Override the request timeout in seconds

        Returns:
            The assistant's response text

        Raises:
            OpenAIRateLimitError: HTTP 429, with retry_after when the server sent it
            OpenAIError: Any other API, network or timeout failure
        """
        try:
            response = await self._client.chat.completions.create(
                model=model or self.chat_model,
                messages=messages,  # type: ignore
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout or self.timeout,
            )
        except openai.OpenAIError as e:
            raise wrap_openai_error(e, context={'model': model or self.chat_model}) from e

        if not response.choices:
            raise OpenAIError('OpenAI returned no choices', context={'model': response.model})
        return response.choices[0].message.content or ''

    async def health_check(self) -> dict[str, bool | str]:
        """
        Verify API connectivity with a minimal request.

        Returns:
            Dict with 'healthy' bool and optional 'error' message
        """
        try:
            await self._client.models.retrieve(self.chat_model)
            return {'healthy': True, 'chat_model': self.chat_model}
        except Exception as e:
            return {'healthy': False, 'error': str(e)}

    async def close(self):
        """Close the client connection."""
        await self._client.close()
