"""Tests for retry with exponential backoff."""

import asyncio

import aiohttp
import pytest

from cnft_cli.api import (
    BackoffPolicy,
    BadRequestError,
    HttpError,
    InvalidParameterError,
    NotFoundError,
    RateLimitedError,
    RetryExhaustedError,
    RpcError,
    ServerError,
    UnauthorizedError,
    retry_with_backoff,
)
from cnft_cli.api.retry import Jitter, calculate_delay, is_retryable


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FlakyOperation:
    """Fails `failures` times, then returns `value`."""

    def __init__(self, failures, value="ok", error_factory=None):
        self.failures = failures
        self.value = value
        self.calls = 0
        self.errors = []
        self.error_factory = error_factory or (lambda n: ServerError(f"boom {n}"))

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            error = self.error_factory(self.calls)
            self.errors.append(error)
            raise error
        return self.value


class TestBackoffPolicy:
    def test_defaults(self):
        policy = BackoffPolicy.default()
        assert policy.starting_delay == 1.0
        assert policy.max_delay == 10.0
        assert policy.multiplier == 2.0
        assert policy.max_attempts == 5
        assert policy.jitter is Jitter.FULL

    def test_no_delay(self):
        policy = BackoffPolicy.no_delay(max_attempts=3)
        assert policy.starting_delay == 0.0
        assert policy.max_delay == 0.0
        assert policy.max_attempts == 3

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            BackoffPolicy(max_attempts=0)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError):
            BackoffPolicy(starting_delay=-1.0)


class TestCalculateDelay:
    def test_exponential_without_jitter(self):
        policy = BackoffPolicy(jitter=Jitter.NONE)
        delays = [calculate_delay(attempt, policy) for attempt in range(6)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    def test_full_jitter_stays_within_cap(self):
        policy = BackoffPolicy()
        for attempt in range(8):
            cap = min(policy.max_delay, policy.starting_delay * policy.multiplier**attempt)
            for _ in range(20):
                delay = calculate_delay(attempt, policy)
                assert 0 <= delay <= cap

    def test_never_exceeds_max_delay(self):
        policy = BackoffPolicy(starting_delay=3.0, max_delay=5.0, jitter=Jitter.NONE)
        assert calculate_delay(10, policy) == 5.0


class TestIsRetryable:
    def test_transient_errors(self):
        assert is_retryable(ServerError("x"))
        assert is_retryable(RateLimitedError("x"))
        assert is_retryable(HttpError("reset"))
        assert is_retryable(ConnectionError("x"))
        assert is_retryable(aiohttp.ServerDisconnectedError())
        assert is_retryable(asyncio.TimeoutError())

    def test_permanent_errors(self):
        assert not is_retryable(NotFoundError("x"))
        assert not is_retryable(BadRequestError("x"))
        assert not is_retryable(UnauthorizedError("x"))
        assert not is_retryable(InvalidParameterError("x"))
        assert not is_retryable(RpcError(-32000, "x"))
        assert not is_retryable(ValueError("x"))



class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        operation = FlakyOperation(failures=0)
        sleep = RecordingSleep()

        result = await retry_with_backoff(operation, BackoffPolicy(), sleep=sleep)

        assert result == "ok"
        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        operation = FlakyOperation(failures=2, value=[1, 2, 3])
        sleep = RecordingSleep()

        result = await retry_with_backoff(operation, BackoffPolicy(), sleep=sleep)

        assert result == [1, 2, 3]
        assert operation.calls == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_exhausts_after_five_attempts(self):
        operation = FlakyOperation(failures=100)
        sleep = RecordingSleep()

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_with_backoff(operation, BackoffPolicy(), sleep=sleep)

        assert operation.calls == 5
        # no sleep after the final attempt
        assert len(sleep.delays) == 4
        assert exc_info.value.attempts == 5
        assert exc_info.value.last_error is operation.errors[-1]
        assert exc_info.value.__cause__ is operation.errors[-1]

    @pytest.mark.asyncio
    async def test_delays_follow_full_jitter_bounds(self):
        operation = FlakyOperation(failures=100)
        sleep = RecordingSleep()

        with pytest.raises(RetryExhaustedError):
            await retry_with_backoff(operation, BackoffPolicy(), sleep=sleep)

        caps = [1.0, 2.0, 4.0, 8.0]
        for delay, cap in zip(sleep.delays, caps):
            assert 0 <= delay <= cap

    @pytest.mark.asyncio
    async def test_delays_without_jitter(self):
        operation = FlakyOperation(failures=100)
        sleep = RecordingSleep()

        with pytest.raises(RetryExhaustedError):
            await retry_with_backoff(operation, BackoffPolicy(jitter=Jitter.NONE), sleep=sleep)

        assert sleep.delays == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_custom_attempt_count(self):
        operation = FlakyOperation(failures=100)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_with_backoff(
                operation, BackoffPolicy(max_attempts=2), sleep=RecordingSleep()
            )

        assert operation.calls == 2
        assert exc_info.value.attempts == 2

    @pytest.mark.asyncio
    async def test_should_retry_rejects_immediately(self):
        operation = FlakyOperation(failures=100, error_factory=lambda n: NotFoundError("gone"))
        sleep = RecordingSleep()

        with pytest.raises(NotFoundError):
            await retry_with_backoff(
                operation, BackoffPolicy(), should_retry=is_retryable, sleep=sleep
            )

        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_should_retry_accepts_transient(self):
        operation = FlakyOperation(failures=1)

        result = await retry_with_backoff(
            operation, BackoffPolicy(), should_retry=is_retryable, sleep=RecordingSleep()
        )

        assert result == "ok"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_exhausted_message(self):
        operation = FlakyOperation(failures=100)

        with pytest.raises(RetryExhaustedError, match="Failed after 5 attempts"):
            await retry_with_backoff(operation, BackoffPolicy(), sleep=RecordingSleep())
