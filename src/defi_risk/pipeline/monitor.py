import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from defi_risk.analysis.delta import compare_results
from defi_risk.models.analysis import AnalysisResult, ResultDelta

logger = logging.getLogger(__name__)

ResultCallback = Callable[[AnalysisResult, AnalysisResult | None], None]


class MonitorLoop:
    """
    Runs one cycle immediately, then one per interval until stopped.

    Ticks sit on a fixed schedule anchored at start; a cycle that overruns
    its slot makes the loop skip the missed ticks rather than overlap. A
    failing cycle is logged and dropped. Each success is paired with the
    previous *successful* result.
    """

    def __init__(
        self,
        run_cycle: Callable[[], Awaitable[AnalysisResult]],
        interval_seconds: float,
        on_result: ResultCallback | None = None,
        *,
        max_cycles: int | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._run_cycle = run_cycle
        self.interval = interval_seconds
        self._on_result = on_result
        self.max_cycles = max_cycles
        self._monotonic = monotonic
        self._stop = asyncio.Event()

        self.previous: AnalysisResult | None = None
        self.last_delta: ResultDelta | None = None
        self.cycles = 0
        self.failures = 0

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Request shutdown; wakes the loop and abandons any in-flight cycle."""
        if not self._stop.is_set():
            logger.info("Monitor shutdown requested")
        self._stop.set()

    async def run(self) -> None:
        start = self._monotonic()
        tick = 0
        logger.info("Monitoring every %ss", self.interval)

        while not self._stop.is_set():
            await self._cycle()
            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                break

            tick += 1
            next_at = start + tick * self.interval
            now = self._monotonic()
            if now > next_at:
                skipped = int((now - next_at) // self.interval) + 1
                logger.warning(
                    "Cycle overran its interval, skipping %d tick(s)", skipped
                )
                tick += skipped
                next_at = start + tick * self.interval
            await self._sleep(next_at - now)

        logger.info(
            "Monitor stopped after %d cycle(s), %d failed", self.cycles, self.failures
        )

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=max(0.0, seconds))
        except TimeoutError:
            pass

    async def _cycle(self) -> None:
        cycle = asyncio.create_task(self._run_cycle())
        stop_wait = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({cycle, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_wait.cancel()
            if not cycle.done():
                cycle.cancel()

        if not cycle.done():
            # Abandoned at its next suspension point; persistence is synchronous,
            # so the history file is either fully written or untouched.
            await asyncio.wait({cycle})
            logger.info("In-flight analysis cycle cancelled")
            return

        self.cycles += 1
        if cycle.cancelled():
            return
        error = cycle.exception()
        if error is not None:
            self.failures += 1
            logger.error("Analysis cycle failed: %s", error)
            logger.debug("Cycle failure traceback", exc_info=error)
            return

        result = cycle.result()
        previous = self.previous
        if previous is not None:
            self.last_delta = compare_results(previous, result)
            logger.info(
                "Value change since last cycle: %+.2f USD",
                self.last_delta.value_change_usd,
            )
        self.previous = result

        if self._on_result is not None:
            try:
                self._on_result(result, previous)
            except Exception:
                logger.exception("Result handler failed")
