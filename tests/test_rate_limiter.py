import asyncio
import time

import pytest

from defi_risk.data.rate_limiter import MIN_WAIT_SECONDS, TokenBucket
from tests.helpers import FakeTime


def make_bucket(capacity: int, refill: float, clock: FakeTime) -> TokenBucket:
    return TokenBucket(capacity, refill, monotonic=clock.monotonic, sleep=clock.sleep)


class TestTokenBucket:
    def test_starts_full(self):
        bucket = make_bucket(10, 0.33, FakeTime())
        status = bucket.status()
        assert status.available_tokens == 10
        assert status.capacity == 10

    def test_defaults(self):
        bucket = TokenBucket()
        assert bucket.capacity == 10
        assert bucket.refill_per_second == 0.33

    def test_rejects_bad_arguments(self):
        with pytest.raises(ValueError):
            TokenBucket(capacity=0)
        with pytest.raises(ValueError):
            TokenBucket(refill_per_second=0)

    @pytest.mark.asyncio
    async def test_burst_up_to_capacity_without_waiting(self):
        clock = FakeTime()
        bucket = make_bucket(5, 1.0, clock)
        for _ in range(5):
            await bucket.acquire()
        assert clock.sleeps == []
        assert bucket.status().available_tokens == 0

    @pytest.mark.asyncio
    async def test_waits_for_refill_when_empty(self):
        clock = FakeTime()
        bucket = make_bucket(2, 2.0, clock)
        await bucket.acquire()
        await bucket.acquire()
        await bucket.acquire()
        assert clock.sleeps == [pytest.approx(0.5)]
        assert bucket.status().available_tokens == 0

    @pytest.mark.asyncio
    async def test_wait_has_a_floor(self):
        clock = FakeTime()
        bucket = make_bucket(1, 100.0, clock)
        await bucket.acquire()
        await bucket.acquire()
        assert clock.sleeps == [MIN_WAIT_SECONDS]

    @pytest.mark.asyncio
    async def test_refill_capped_at_capacity(self):
        clock = FakeTime()
        bucket = make_bucket(3, 1.0, clock)
        await bucket.acquire()
        clock.now += 1000.0
        assert bucket.status().available_tokens == 3

    @pytest.mark.asyncio
    async def test_status_does_not_consume(self):
        clock = FakeTime()
        bucket = make_bucket(2, 1.0, clock)
        await bucket.acquire()
        clock.now += 0.5
        assert bucket.status().available_tokens == 1
        assert bucket.status().available_tokens == 1
        await bucket.acquire()
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_concurrent_acquires_never_overdraw(self):
        clock = FakeTime()
        bucket = make_bucket(2, 1.0, clock)
        await asyncio.gather(*[bucket.acquire() for _ in range(5)])
        # two from the burst, three paid for with roughly a second each
        assert clock.now >= 3.0 - 1e-9
        assert bucket.status().available_tokens >= 0

    @pytest.mark.asyncio
    async def test_real_clock_throttles(self):
        bucket = TokenBucket(capacity=2, refill_per_second=10.0)
        start = time.monotonic()
        for _ in range(3):
            await bucket.acquire()
        assert time.monotonic() - start >= 0.08
