"""Retry wrapper for LLM provider calls.

Provides:
- RetryableError: raised by providers for responses worth retrying
- call_with_retries(): exponential backoff around an async provider call
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from docpilot.config.defaults import RETRY_BASE_DELAY, RETRY_MAX_DELAY, RETRY_MAX_RETRIES

T = TypeVar('T')
logger = logging.getLogger(__name__)


class RetryableError(RuntimeError):
    """A provider response that may succeed when repeated (429, 5xx)."""

    def __init__(self, message: str, status_code: int = 0, retry_after: Optional[float] = None):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


RETRY_EXCEPTIONS = (
    TimeoutError,
    ConnectionError,
    RetryableError,
    httpx.TransportError,
)


async def call_with_retries(
    provider_call: Callable[..., Awaitable[T]],
    *args,
    max_retries: int = RETRY_MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    retry_on: Optional[tuple] = None,
    operation: str = "llm_call",
    **kwargs
) -> T:
    """Call provider_call, retrying transient failures with exponential backoff.

    Args:
        provider_call: Async function to call
        *args: Positional args for provider_call
        max_retries: Max attempts
        base_delay: Base delay for exponential backoff
        max_delay: Max delay cap
        retry_on: Tuple of exceptions to retry on
        operation: Label for log messages
        **kwargs: Additional kwargs for provider_call

    Raises:
        The last error once attempts are exhausted, or any error not in
        retry_on immediately.
    """
    retry_exceptions = retry_on or RETRY_EXCEPTIONS
    last_error: Optional[BaseException] = None

    for attempt in range(max_retries):
        try:
            return await provider_call(*args, **kwargs)
        except retry_exceptions as e:
            last_error = e
            if attempt >= max_retries - 1:
                break
            delay = min(base_delay * (2 ** attempt), max_delay)
            retry_after = getattr(e, "retry_after", None)
            if retry_after:
                delay = min(max(delay, retry_after), max_delay)
            logger.warning(
                "%s: retry %d/%d after %.1fs: %s", operation, attempt + 1, max_retries, delay, e
            )
            await asyncio.sleep(delay)

    if last_error:
        raise last_error

    raise RuntimeError("Retry loop exited without result or error")
