"""Tests for the retry policy and failure classification."""

import asyncio

import httpx
import pytest

from nutriscan.domain.errors import (
    MalformedResponseError,
    ProviderConfigurationError,
    ProviderError,
    ProviderPermissionError,
    ProviderUnavailableError,
    RetryableProviderError,
)
from nutriscan.services.retry import classify_provider_failure, is_retryable, with_retry


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://provider.test/resource")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


class _Operation:
    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _recording_sleep(delays: list[float]):  # type: ignore[no-untyped-def]
    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    return sleep


def test_retry_backs_off_linearly_until_success() -> None:
    delays: list[float] = []
    operation = _Operation(_status_error(503), _status_error(429), "ok")

    result = asyncio.run(
        with_retry(operation, 3, 1.0, sleep=_recording_sleep(delays))
    )

    assert result == "ok"
    assert operation.calls == 3
    assert delays == [1.0, 2.0]


def test_retry_stops_on_fatal_error() -> None:
    delays: list[float] = []
    operation = _Operation(MalformedResponseError("bad json"), "never")

    with pytest.raises(MalformedResponseError):
        asyncio.run(with_retry(operation, 3, 1.0, sleep=_recording_sleep(delays)))

    assert operation.calls == 1
    assert delays == []


def test_retry_reraises_last_error_when_exhausted() -> None:
    delays: list[float] = []
    last = httpx.ReadTimeout("slow")
    operation = _Operation(_status_error(503), last)

    with pytest.raises(httpx.ReadTimeout) as excinfo:
        asyncio.run(with_retry(operation, 2, 0.5, sleep=_recording_sleep(delays)))

    assert excinfo.value is last
    assert operation.calls == 2
    assert delays == [0.5]


def test_is_retryable_covers_rate_limit_unavailable_and_timeouts() -> None:
    assert is_retryable(_status_error(429))
    assert is_retryable(_status_error(503))
    assert is_retryable(httpx.ConnectTimeout("timeout"))
    assert is_retryable(RetryableProviderError("busy"))
    assert not is_retryable(_status_error(500))
    assert not is_retryable(_status_error(401))
    assert not is_retryable(ValueError("bug"))


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [
        (401, ProviderPermissionError),
        (403, ProviderPermissionError),
        (404, ProviderConfigurationError),
        (429, RetryableProviderError),
        (503, ProviderUnavailableError),
        (500, ProviderError),
    ],
)
def test_classify_provider_failure_by_status(status_code: int, expected: type) -> None:
    classified = classify_provider_failure(_status_error(status_code))

    assert type(classified) is expected
    assert classified.status_code == status_code


def test_classify_provider_failure_keeps_taxonomy_and_ignores_bugs() -> None:
    malformed = MalformedResponseError("bad")

    assert classify_provider_failure(malformed) is malformed
    assert isinstance(
        classify_provider_failure(httpx.ReadTimeout("slow")), ProviderUnavailableError
    )
    assert classify_provider_failure(KeyError("oops")) is None
