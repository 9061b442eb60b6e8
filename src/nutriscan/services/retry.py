"""Bounded retry with linear backoff for outbound provider calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import openai

from nutriscan.domain.errors import (
    ProviderConfigurationError,
    ProviderError,
    ProviderPermissionError,
    ProviderUnavailableError,
    RetryableProviderError,
)

RETRYABLE_STATUS_CODES = frozenset(
    {httpx.codes.TOO_MANY_REQUESTS, httpx.codes.SERVICE_UNAVAILABLE}
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay_seconds: float,
    *,
    action: str = "provider call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or a non-retryable error occurs.

    Retryable failures sleep ``base_delay_seconds * attempt`` before the next
    attempt. The last error is re-raised unchanged once attempts run out;
    fatal errors are re-raised on the spot.
    """
    attempts = max(1, max_attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            retryable = is_retryable(exc)
            _logger.warning(
                "%s failed (attempt %s/%s, status=%s, retryable=%s): %s",
                action,
                attempt,
                attempts,
                status_code_label(exc),
                retryable,
                exc,
            )
            if not retryable or attempt >= attempts:
                raise
            await sleep(base_delay_seconds * attempt)


def is_retryable(exc: BaseException) -> bool:
    """Return True for rate limits, unavailability and timeouts."""
    if isinstance(exc, RetryableProviderError):
        return True
    if isinstance(
        exc, httpx.TimeoutException | openai.APITimeoutError | TimeoutError
    ):
        return True
    return status_code_from_exception(exc) in RETRYABLE_STATUS_CODES


def classify_provider_failure(exc: Exception) -> ProviderError | None:
    """Map a transport or SDK failure onto the provider error taxonomy.

    Returns None for exceptions that are not provider failures, so callers
    can let programming errors propagate untouched.
    """
    if isinstance(exc, ProviderError):
        return exc
    status_code = status_code_from_exception(exc)
    if status_code in {httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN}:
        return ProviderPermissionError(str(exc), status_code=status_code)
    if status_code == httpx.codes.NOT_FOUND:
        return ProviderConfigurationError(str(exc), status_code=status_code)
    if status_code == httpx.codes.TOO_MANY_REQUESTS:
        return RetryableProviderError(str(exc), status_code=status_code)
    if is_retryable(exc):
        return ProviderUnavailableError(str(exc), status_code=status_code)
    if isinstance(exc, httpx.HTTPError | openai.OpenAIError):
        return ProviderError(str(exc), status_code=status_code)
    return None


def status_code_from_exception(exc: BaseException) -> int | None:
    """Extract an HTTP status code from an exception, if available."""
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def status_code_label(exc: BaseException) -> str:
    status_code = status_code_from_exception(exc)
    return str(status_code) if status_code is not None else "n/a"
