import asyncio
import logging

from defi_risk.data.price_source import PriceSource
from defi_risk.data.retry import RetryPolicy
from defi_risk.errors import PriceFeedError
from defi_risk.models.market import HistoricalBatch, HistoricalSeries

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 30


class HistoricalFetcher:
    """
    Fetches daily history for many ids with a hard cap on requests in flight.

    The semaphore belongs to the fetcher, so the cap holds across overlapping
    batches too. A batch is all-or-nothing: one id failing after retries and
    failover fails the whole batch.
    """

    def __init__(
        self,
        source: PriceSource,
        retry_policy: RetryPolicy,
        concurrency: int = 3,
        days: int = DEFAULT_HISTORY_DAYS,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.source = source
        self.retry_policy = retry_policy
        self.concurrency = concurrency
        self.days = days
        self._semaphore = asyncio.Semaphore(concurrency)

    async def fetch_all(self, ids: list[str]) -> HistoricalBatch:
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return HistoricalBatch(ok=True, series=[])

        logger.debug(
            "Fetching %d-day history for %d ids (concurrency %d)",
            self.days,
            len(unique_ids),
            self.concurrency,
        )
        results = await asyncio.gather(
            *[self._fetch_one(i) for i in unique_ids],
            return_exceptions=True,
        )

        series: list[HistoricalSeries] = []
        errors: list[str] = []
        for coin_id, r in zip(unique_ids, results, strict=True):
            if isinstance(r, PriceFeedError):
                errors.append(f"{coin_id}: {r.reason}")
            elif isinstance(r, BaseException):
                raise r
            else:
                series.append(r)

        if errors:
            logger.warning(
                "Historical batch failed for %d of %d ids", len(errors), len(unique_ids)
            )
            return HistoricalBatch.failed("; ".join(errors))
        return HistoricalBatch(ok=True, series=series)

    async def _fetch_one(self, coin_id: str) -> HistoricalSeries:
        async with self._semaphore:
            return await self.retry_policy.call(
                self.source.historical_prices, coin_id, self.days
            )
