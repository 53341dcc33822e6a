import asyncio

import pytest

from school_common.errors import RateLimitFailure

from api_gateway.core.rate_limit import SlidingWindowLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_blocks_after_limit_and_reports_retry_after() -> None:
    clock = FakeClock()
    limiter = SlidingWindowLimiter(limit=2, clock=clock)

    async def scenario() -> None:
        assert await limiter.hit("10.0.0.1:acme") == 1
        clock.now += 15
        assert await limiter.hit("10.0.0.1:acme") == 0
        with pytest.raises(RateLimitFailure) as exc_info:
            await limiter.hit("10.0.0.1:acme")
        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 45

    asyncio.run(scenario())


def test_old_hits_leave_the_window() -> None:
    clock = FakeClock()
    limiter = SlidingWindowLimiter(limit=1, window=60.0, clock=clock)

    async def scenario() -> None:
        await limiter.hit("k")
        clock.now += 60
        assert await limiter.hit("k") == 0

    asyncio.run(scenario())


def test_keys_are_isolated() -> None:
    limiter = SlidingWindowLimiter(limit=1)

    async def scenario() -> None:
        await limiter.hit("10.0.0.1")
        await limiter.hit("10.0.0.2")

    asyncio.run(scenario())


def test_idle_keys_are_dropped() -> None:
    clock = FakeClock()
    limiter = SlidingWindowLimiter(limit=5, window=60.0, clock=clock)

    async def scenario() -> None:
        for n in range(100):
            await limiter.hit(f"10.0.{n}.1")
        assert len(limiter._hits) == 100
        clock.now += 61
        await limiter.hit("10.0.0.250")
        assert list(limiter._hits) == ["10.0.0.250"]

    asyncio.run(scenario())


def test_limit_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SlidingWindowLimiter(limit=0)
