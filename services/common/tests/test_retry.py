import asyncio
from typing import List

import pytest

from school_common.errors import NotFoundFailure, UpstreamFailure, ValidationFailure
from school_common.retry import backoff_delay, with_retry
from school_common.validation import Issue


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_always_failing_operation_is_attempted_max_retries_plus_one_times() -> None:
    sleep = RecordingSleep()
    errors = [UpstreamFailure("webhook", f"attempt {i}") for i in range(4)]
    attempts = 0

    async def op():
        nonlocal attempts
        error = errors[attempts]
        attempts += 1
        raise error

    async def scenario() -> None:
        with pytest.raises(UpstreamFailure) as exc_info:
            await with_retry(op, max_retries=3, base_delay=1.0, sleep=sleep)
        assert exc_info.value is errors[-1]
        assert exc_info.value.detail == "attempt 3"

    asyncio.run(scenario())
    assert attempts == 4
    assert sleep.delays == [1.0, 2.0, 4.0]


def test_returns_first_success() -> None:
    sleep = RecordingSleep()
    calls = 0

    async def op() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise ConnectionError("refused")
        return "delivered"

    assert asyncio.run(with_retry(op, max_retries=5, base_delay=0.5, sleep=sleep)) == "delivered"
    assert calls == 3
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.parametrize(
    "error",
    [
        ValidationFailure([Issue(path=("body",), message="Malformed JSON body")]),
        NotFoundFailure("School not found or inactive"),
        UpstreamFailure("school-service", "HTTP 400", retryable=False),
    ],
)
def test_non_retryable_failures_are_raised_immediately(error) -> None:
    sleep = RecordingSleep()

    async def op():
        raise error

    with pytest.raises(type(error)) as exc_info:
        asyncio.run(with_retry(op, max_retries=3, base_delay=1.0, sleep=sleep))
    assert exc_info.value is error
    assert sleep.delays == []


def test_cancellation_stops_further_attempts() -> None:
    attempts = 0

    async def op():
        nonlocal attempts
        attempts += 1
        raise ConnectionError("down")

    async def scenario() -> None:
        task = asyncio.create_task(with_retry(op, max_retries=5, base_delay=10.0))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert attempts == 1


def test_backoff_delay_doubles() -> None:
    assert [backoff_delay(k, 1.0) for k in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]


def test_zero_retries_means_one_attempt() -> None:
    async def op():
        raise TimeoutError("slow")

    with pytest.raises(TimeoutError):
        asyncio.run(with_retry(op, max_retries=0, sleep=RecordingSleep()))


def test_final_failure_is_not_chained_to_earlier_attempts() -> None:
    errors = [ConnectionError(f"refused {i}") for i in range(3)]
    attempts = 0

    async def op():
        nonlocal attempts
        error = errors[attempts]
        attempts += 1
        raise error

    with pytest.raises(ConnectionError) as exc_info:
        asyncio.run(with_retry(op, max_retries=2, base_delay=0.0, sleep=RecordingSleep()))
    assert exc_info.value is errors[-1]
    assert exc_info.value.__context__ is None
    assert attempts == 3
