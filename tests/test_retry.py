import httpx
import pytest

from core.errors import ProviderError, RateLimitError, rate_limit_from_response
from services.retry import backoff_delay, retry
from fakes import SleepRecorder


class Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


async def test_exhausted_attempts_reraise_last_error_after_exponential_backoff():
    sleep = SleepRecorder()
    op = Flaky([ConnectionError("a"), ConnectionError("b"), ConnectionError("c")])

    with pytest.raises(ConnectionError, match="c"):
        await retry(op, max_attempts=3, initial_delay=1.0, sleep=sleep)

    assert op.calls == 3
    assert sleep.delays == [1.0, 2.0]


async def test_returns_first_successful_result():
    sleep = SleepRecorder()
    op = Flaky([TimeoutError("slow")], result="summary")

    assert await retry(op, max_attempts=3, initial_delay=0.5, sleep=sleep) == "summary"
    assert op.calls == 2
    assert sleep.delays == [0.5]


async def test_rate_limit_with_retry_after_waits_that_long():
    sleep = SleepRecorder()
    op = Flaky([RateLimitError("slow down", retry_after=5.0)])

    await retry(op, max_attempts=3, initial_delay=1.0, sleep=sleep)

    assert sleep.delays == [5.0]


async def test_rate_limit_without_retry_after_doubles_backoff():
    sleep = SleepRecorder()
    op = Flaky([ConnectionError("x"), RateLimitError("slow down")])

    await retry(op, max_attempts=3, initial_delay=1.0, sleep=sleep)

    assert sleep.delays == [1.0, 4.0]


async def test_non_retryable_errors_are_raised_immediately():
    sleep = SleepRecorder()
    op = Flaky([ProviderError("bad key", provider="openai", retryable=False)])

    with pytest.raises(ProviderError):
        await retry(op, max_attempts=5, initial_delay=1.0, sleep=sleep)

    assert op.calls == 1
    assert sleep.delays == []


async def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        await retry(Flaky([]), max_attempts=0)


def test_backoff_delay_schedule():
    assert [backoff_delay(i, 1.0) for i in range(4)] == [1.0, 2.0, 4.0, 8.0]


def test_rate_limit_from_http_429():
    request = httpx.Request("POST", "https://discord.test/webhook")
    limited = rate_limit_from_response(httpx.Response(429, headers={"Retry-After": "5"}, request=request))
    ok = rate_limit_from_response(httpx.Response(200, request=request))

    assert isinstance(limited, RateLimitError)
    assert limited.retry_after == 5.0
    assert ok is None
