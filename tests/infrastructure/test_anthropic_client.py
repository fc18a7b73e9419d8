"""Resilient Anthropic Client — retry policy and error mapping over a fake SDK client.

Tests:
    - Success returns the SDK message unchanged
    - Rate limits and 5xx/529/connection errors retry, then succeed
    - Timeouts and 4xx fail immediately with the right api_error_type
    - Exhausted retries map to rate_limit / connection_error
"""

import httpx
import pytest
from anthropic import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)

from esg_agent.core.errors import ClassifierUnavailableError, ErrorContext
from esg_agent.infrastructure.anthropic_client import ResilientAnthropicClient

from tests.fakes import FakeAnthropicClient, FakeMessage

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _response(status: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(status, headers=headers or {}, request=_REQUEST)


def _rate_limit(retry_after: str | None = None) -> RateLimitError:
    headers = {"retry-after": retry_after} if retry_after else None
    return RateLimitError("rate limited", response=_response(429, headers), body=None)


def _client(*replies, max_retries=2):
    fake = FakeAnthropicClient(*replies)
    client = ResilientAnthropicClient(
        api_key="test", max_retries=max_retries, base_delay_ms=1, max_delay_ms=5,
        client=fake,
    )
    return fake, client


async def _create(client, context=None):
    return await client.create_message(
        model="claude-haiku-4-5", max_tokens=64, system="sys",
        messages=[{"role": "user", "content": "hi"}], context=context,
    )


async def test_success_passes_through():
    reply = FakeMessage('{"score": 1}')
    fake, client = _client(reply)

    assert await _create(client) is reply
    assert len(fake.messages.calls) == 1


@pytest.mark.parametrize("error", [
    _rate_limit(),
    APIConnectionError(request=_REQUEST),
    InternalServerError("boom", response=_response(500), body=None),
    APIStatusError("overloaded", response=_response(529), body=None),
])
async def test_transient_errors_are_retried(error):
    reply = FakeMessage("ok")
    fake, client = _client(error, reply)

    assert await _create(client) is reply
    assert len(fake.messages.calls) == 2


async def test_timeout_is_not_retried():
    fake, client = _client(APITimeoutError(request=_REQUEST), FakeMessage("ok"))

    with pytest.raises(ClassifierUnavailableError) as exc_info:
        await _create(client)

    assert exc_info.value.api_error_type == "timeout"
    assert len(fake.messages.calls) == 1


async def test_client_error_is_not_retried():
    error = BadRequestError("bad model", response=_response(400), body=None)
    fake, client = _client(error, FakeMessage("ok"))
    context = ErrorContext(branch="social")

    with pytest.raises(ClassifierUnavailableError) as exc_info:
        await _create(client, context)

    assert exc_info.value.api_error_type == "client_error"
    assert exc_info.value.context.branch == "social"
    assert len(fake.messages.calls) == 1


async def test_rate_limit_exhaustion_reports_retry_after():
    fake, client = _client(_rate_limit("0.002"), _rate_limit("2"), max_retries=1)

    with pytest.raises(ClassifierUnavailableError) as exc_info:
        await _create(client)

    assert exc_info.value.api_error_type == "rate_limit"
    assert exc_info.value.context.retry_after_ms == 2000
    assert len(fake.messages.calls) == 2


async def test_connection_exhaustion():
    errors = [APIConnectionError(request=_REQUEST) for _ in range(3)]
    fake, client = _client(*errors, max_retries=2)

    with pytest.raises(ClassifierUnavailableError) as exc_info:
        await _create(client)

    assert exc_info.value.api_error_type == "connection_error"
    assert len(fake.messages.calls) == 3


def test_backoff_is_capped_with_jitter():
    _, client = _client()
    for attempt in range(10):
        assert 0 <= client._backoff(attempt) <= 5 * 1.25
