"""
Custom exceptions and error handling for the DealsList import pipeline.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging
- Wrappers that translate SDK exceptions into the hierarchy
"""

from typing import Any


class DealsListError(Exception):
    """Base exception for all dealslist errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Client Errors
# =============================================================================


class ClientError(DealsListError):
    """Base class for client-related errors."""

    pass


class OpenAIError(ClientError):
    """Error from OpenAI API calls."""

    pass


class OpenAIRateLimitError(OpenAIError):
    """Rate limit exceeded on OpenAI API."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.retry_after = retry_after


class OpenAIModelError(OpenAIError):
    """Model refused request or returned invalid response."""

    pass


class GmailError(ClientError):
    """Error from Gmail API calls."""

    pass


class StorageError(ClientError):
    """Error from the deals table."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(DealsListError):
    """Base class for pipeline-related errors."""

    pass


class ValidationError(PipelineError):
    """Input validation failed."""

    pass


# =============================================================================
# Error Handling Utilities
# =============================================================================


def _parse_retry_after(value: Any) -> float | None:
    """Parse a retry-after header value in seconds, or None if unusable."""
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def wrap_openai_error(exc: Exception, context: dict[str, Any] | None = None) -> OpenAIError:
    """
    Wrap an OpenAI exception in our typed error hierarchy.

    Rate-limit responses (HTTP 429) carry the retry-after header value,
    when the server sent one, on the returned OpenAIRateLimitError.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed OpenAIError subclass
    """
    error_str = str(exc).lower()
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    response = getattr(exc, 'response', None)
    status_code = getattr(exc, 'status_code', None) or getattr(response, 'status_code', None)
    if status_code is not None:
        ctx['status_code'] = status_code

    if status_code == 429 or 'rate limit' in error_str or 'rate_limit' in error_str:
        headers = getattr(response, 'headers', None) or {}
        return OpenAIRateLimitError(
            f"OpenAI rate limit exceeded: {exc}",
            retry_after=_parse_retry_after(headers.get('retry-after')),
            context=ctx,
        )
    elif 'content policy' in error_str or 'refused' in error_str:
        return OpenAIModelError(
            f"OpenAI model refused request: {exc}",
            context=ctx,
        )
    else:
        return OpenAIError(
            f"OpenAI API error: {exc}",
            context=ctx,
        )


def wrap_gmail_error(exc: Exception, context: dict[str, Any] | None = None) -> GmailError:
    """Wrap a Gmail API exception in our typed error hierarchy."""
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    resp = getattr(exc, 'resp', None)
    status = getattr(resp, 'status', None)
    if status is not None:
        ctx['status_code'] = status

    return GmailError(f"Gmail API error: {exc}", context=ctx)


def wrap_storage_error(exc: Exception, context: dict[str, Any] | None = None) -> StorageError:
    """Wrap a database exception in our typed error hierarchy."""
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__
    return StorageError(f"Deals table error: {exc}", context=ctx)
