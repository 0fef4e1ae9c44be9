import math
import random

import pytest

from tznft.retry import RetryExhaustedError, RetryPolicy, retry_async


class Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls}")
        return "ok"


async def no_sleep(_delay: float) -> None:
    return None


def test_default_policy() -> None:
    policy = RetryPolicy()
    assert policy.retries == 10
    assert policy.factor == 2
    assert policy.min_timeout == 1
    assert policy.max_timeout == math.inf


def test_delay_grows_exponentially_without_jitter() -> None:
    policy = RetryPolicy(randomize=False)
    assert [policy.delay(n) for n in (1, 2, 3, 4)] == [1, 2, 4, 8]


def test_delay_is_capped_and_jittered() -> None:
    policy = RetryPolicy(max_timeout=3)
    assert policy.delay(5) == 3
    delay = RetryPolicy().delay(2, random.Random(7))
    assert 2 <= delay < 4


@pytest.mark.asyncio
async def test_retry_succeeds_within_budget() -> None:
    fn = Flaky(failures=8)
    delays = []

    async def record(delay: float) -> None:
        delays.append(delay)

    result = await retry_async(fn, RetryPolicy(retries=8, randomize=False), sleep=record)

    assert result == "ok"
    assert fn.calls == 9
    assert delays[:3] == [1, 2, 4]


@pytest.mark.asyncio
async def test_retry_exhaustion_keeps_last_failure() -> None:
    fn = Flaky(failures=100)

    with pytest.raises(RetryExhaustedError) as excinfo:
        await retry_async(fn, RetryPolicy(retries=3), sleep=no_sleep)

    assert excinfo.value.attempts == 4
    assert str(excinfo.value.__cause__) == "attempt 4"


@pytest.mark.asyncio
async def test_unlisted_errors_are_not_retried() -> None:
    fn = Flaky(failures=1)

    with pytest.raises(ConnectionError):
        await retry_async(fn, RetryPolicy(), retry_on=(TimeoutError,), sleep=no_sleep)

    assert fn.calls == 1
