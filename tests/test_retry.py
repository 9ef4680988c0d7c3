import logging

import pytest

from defi_risk.data.retry import RetryPolicy
from defi_risk.errors import PriceFeedError
from tests.helpers import SleepRecorder


class Flaky:
    """Fails the first ``failures`` calls, then returns ``value``."""

    def __init__(
        self, failures: int, value: str = "ok", error: Exception | None = None
    ) -> None:
        self.failures = failures
        self.value = value
        self.error = error or PriceFeedError("upstream hiccup")
        self.calls: list[tuple] = []

    async def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if len(self.calls) <= self.failures:
            raise self.error
        return self.value


class TestRetryPolicy:
    def test_delays_double_from_base(self):
        assert RetryPolicy(3, 1.0).delays() == [1.0, 2.0, 4.0]
        assert RetryPolicy(2, 0.5).delays() == [0.5, 1.0]
        assert RetryPolicy(0).delays() == []

    def test_max_attempts(self):
        assert RetryPolicy(3).max_attempts == 4
        assert RetryPolicy(0).max_attempts == 1

    def test_rejects_negative_retries(self):
        with pytest.raises(ValueError):
            RetryPolicy(-1)

    @pytest.mark.asyncio
    async def test_success_passes_through(self):
        sleep = SleepRecorder()
        op = Flaky(0, value="quotes")
        result = await RetryPolicy(3, sleep=sleep).call(op, "bitcoin", days=30)
        assert result == "quotes"
        assert op.calls == [(("bitcoin",), {"days": 30})]
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        sleep = SleepRecorder()
        op = Flaky(2)
        assert await RetryPolicy(3, 1.0, sleep=sleep).call(op) == "ok"
        assert len(op.calls) == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error(self):
        sleep = SleepRecorder()
        error = PriceFeedError("still down")
        op = Flaky(10, error=error)
        with pytest.raises(PriceFeedError) as exc_info:
            await RetryPolicy(3, 1.0, sleep=sleep).call(op)
        assert exc_info.value is error
        assert len(op.calls) == 4
        assert sleep.delays == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_zero_retries_is_single_attempt(self):
        sleep = SleepRecorder()
        op = Flaky(1)
        with pytest.raises(PriceFeedError):
            await RetryPolicy(0, sleep=sleep).call(op)
        assert len(op.calls) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_non_retryable_error_is_not_retried(self):
        sleep = SleepRecorder()
        op = Flaky(5, error=ValueError("bad input"))
        policy = RetryPolicy(3, retry_on=(PriceFeedError,), sleep=sleep)
        with pytest.raises(ValueError):
            await policy.call(op)
        assert len(op.calls) == 1

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, caplog):
        caplog.set_level(logging.WARNING, logger="defi_risk.data.retry")
        op = Flaky(2)
        await RetryPolicy(3, 0.25, sleep=SleepRecorder()).call(op)
        retries = [r for r in caplog.records if "retrying in" in r.getMessage()]
        assert len(retries) == 2
        assert "Attempt 1/4" in retries[0].getMessage()
