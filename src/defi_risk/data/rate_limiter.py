import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable

from defi_risk.models.market import BucketStatus

logger = logging.getLogger(__name__)

MIN_WAIT_SECONDS = 0.1


class TokenBucket:
    """
    Token bucket limiting outbound price requests.

    CoinGecko's free tier allows roughly 10-30 requests per minute; the
    defaults (10 tokens, 0.33 tokens/s) keep bursts short and the sustained
    rate near 20 per minute. One instance is shared by every requester.
    """

    def __init__(
        self,
        capacity: int = 10,
        refill_per_second: float = 0.33,
        *,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if refill_per_second <= 0:
            raise ValueError("refill_per_second must be positive")
        self._capacity = capacity
        self._refill_rate = refill_per_second
        self._monotonic = monotonic
        self._sleep = sleep
        self._tokens = float(capacity)
        self._last_refill = monotonic()
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_per_second(self) -> float:
        return self._refill_rate

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                wait = self._wait_seconds(self._tokens)

            logger.debug("Rate limit reached, waiting %.2fs for a token", wait)
            await self._sleep(wait)

    def status(self) -> BucketStatus:
        """Snapshot of available tokens without consuming or refilling state."""
        return BucketStatus(
            available_tokens=math.floor(self._projected_tokens(self._monotonic())),
            capacity=self._capacity,
        )

    def _projected_tokens(self, now: float) -> float:
        elapsed = max(0.0, now - self._last_refill)
        return min(self._capacity, self._tokens + elapsed * self._refill_rate)

    def _refill(self) -> None:
        """Refill tokens based on elapsed time (must hold lock)."""
        now = self._monotonic()
        self._tokens = self._projected_tokens(now)
        self._last_refill = now

    def _wait_seconds(self, tokens: float) -> float:
        wait_ms = math.ceil((1.0 - tokens) / self._refill_rate * 1000)
        return max(wait_ms / 1000, MIN_WAIT_SECONDS)
