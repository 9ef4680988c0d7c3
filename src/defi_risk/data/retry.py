import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Exponential backoff without jitter: base, 2*base, 4*base, ...

    ``max_retries`` counts additional attempts, so the operation runs at most
    ``max_retries + 1`` times. The last error is re-raised unchanged.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        *,
        retry_on: tuple[type[Exception], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.retry_on = retry_on
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delays(self) -> list[float]:
        """Backoff delays slept between attempts, in order."""
        return [self.base_delay * 2**i for i in range(self.max_retries)]

    async def call(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2, min=0),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self._sleep,
            reraise=True,
            before_sleep=self._log_retry,
        )
        return await retrying(operation, *args, **kwargs)

    def _log_retry(self, state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.warning(
            "Attempt %d/%d of %s failed (%s), retrying in %.1fs",
            state.attempt_number,
            self.max_attempts,
            getattr(state.fn, "__name__", "operation"),
            error,
            delay,
        )
