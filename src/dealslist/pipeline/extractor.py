"""
Deal extraction client: sanitized email text → raw model output.

Sends one email's text to the chat model with the deal extraction prompt
and returns the assistant text untouched (parsing is the parser's job).

Retry policy (decide_retry), attempt numbers 0-based, at most max_retries
attempts in total:

- rate limited: wait retry_after seconds when the server sent it,
  otherwise min(2**attempt, 60) seconds
- any other failure, timeouts included: wait min(2**attempt, 30) seconds
- the last attempt never waits; its error is raised

tenacity drives the loop; stop and wait both defer to decide_retry so the
policy stays a pure function of (error, attempt).
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type

from ..clients.openai_client import OpenAIClient
from ..errors import OpenAIRateLimitError
from ..prompts.extract_deals import build_extraction_prompt

logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_MAX_RETRIES = 3
DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_TOKENS = 500
DEFAULT_TIMEOUT_SECONDS = 30.0

RATE_LIMIT_MAX_DELAY_SECONDS = 60.0
ERROR_MAX_DELAY_SECONDS = 30.0


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of the retry policy for one failed attempt."""

    retry: bool
    delay_seconds: float = 0.0


def decide_retry(error: BaseException, attempt: int, max_retries: int) -> RetryDecision:
    """
    Decide whether a failed model call is retried, and after how long.

    Args:
        error: Exception raised by the failed attempt
        attempt: 0-based index of the failed attempt
        max_retries: Total attempts allowed

    Returns:
        RetryDecision(retry=False) on the final attempt, else the delay to wait
    """
    if attempt >= max_retries - 1:
        return RetryDecision(retry=False)

    backoff = float(2**attempt)
    if isinstance(error, OpenAIRateLimitError):
        if error.retry_after is not None:
            return RetryDecision(retry=True, delay_seconds=float(error.retry_after))
        return RetryDecision(retry=True, delay_seconds=min(backoff, RATE_LIMIT_MAX_DELAY_SECONDS))
    return RetryDecision(retry=True, delay_seconds=min(backoff, ERROR_MAX_DELAY_SECONDS))


class DealExtractionClient:
    """
    Calls the chat model to extract deals from one email's text.

    Usage:
        client = DealExtractionClient(openai_client=OpenAIClient())
        raw = await client.extract(email_text)
    """

    def __init__(
        self,
        openai_client: OpenAIClient,
        max_retries: int = DEFAULT_MAX_RETRIES,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ):
        """
        Initialize the extraction client.

        Args:
            openai_client: Chat completion client
            max_retries: Total attempts per email (>= 1)
            temperature: Sampling temperature
            max_tokens: Completion token cap
            timeout_seconds: Per-request timeout
            sleep: Async sleep used between attempts
        """
        if max_retries < 1:
            raise ValueError('max_retries must be >= 1')
        self.openai = openai_client
        self.max_retries = max_retries
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep

    async def extract(self, email_content: str) -> str:
        """
        Get the model's raw deal JSON for one email.

        Args:
            email_content: Sanitized email text

        Returns:
            Assistant text from the first successful attempt

        Raises:
            OpenAIError: The final attempt failed (rate limit or otherwise)
        """
        messages = build_extraction_prompt(email_content)
        output = ''

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            stop=self._should_stop,
            wait=self._wait_seconds,
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        ):
            with attempt:
                output = await self.openai.chat_completion(
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    timeout=self.timeout_seconds,
                )

        return output

    # =========================================================================
    # tenacity hooks
    # =========================================================================

    def _decision(self, retry_state: RetryCallState) -> RetryDecision:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if error is None:
            return RetryDecision(retry=False)
        return decide_retry(error, retry_state.attempt_number - 1, self.max_retries)

    def _should_stop(self, retry_state: RetryCallState) -> bool:
        stop = not self._decision(retry_state).retry
        if stop and retry_state.outcome is not None:
            error = retry_state.outcome.exception()
            logger.error(
                'deal_extraction.attempts_exhausted',
                attempts=retry_state.attempt_number,
                error=str(error),
                error_type=type(error).__name__,
            )
        return stop

    def _wait_seconds(self, retry_state: RetryCallState) -> float:
        return self._decision(retry_state).delay_seconds

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        event = (
            'deal_extraction.rate_limited'
            if isinstance(error, OpenAIRateLimitError)
            else 'deal_extraction.retrying'
        )
        logger.warning(
            event,
            attempt=retry_state.attempt_number,
            max_retries=self.max_retries,
            wait_ms=int(delay * 1000),
            error=str(error),
        )
