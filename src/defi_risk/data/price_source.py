import logging

from defi_risk.data.provider_base import PriceProvider
from defi_risk.data.rate_limiter import TokenBucket
from defi_risk.errors import PriceFeedError
from defi_risk.models.market import HistoricalSeries, PriceQuote

logger = logging.getLogger(__name__)

# CoinGecko id -> CoinCap id, for assets whose ids differ between the two.
FALLBACK_ID_MAP: dict[str, str] = {
    "avalanche-2": "avalanche",
    "binancecoin": "binance-coin",
    "matic-network": "polygon",
    "polygon-ecosystem-token": "polygon",
    "ripple": "xrp",
    "crypto-com-chain": "crypto-com-coin",
    "the-open-network": "toncoin",
    "near": "near-protocol",
    "leo-token": "unus-sed-leo",
    "elrond-erd-2": "multiversx-egld",
}


class PriceSource:
    """
    One logical price feed over a primary and an optional fallback provider.

    Every call takes one token from the shared bucket, then tries the primary.
    Any PriceFeedError from the primary sends the same call to the fallback
    immediately; if that fails too the fallback's error is raised.
    """

    def __init__(
        self,
        primary: PriceProvider,
        fallback: PriceProvider | None,
        rate_limiter: TokenBucket,
        id_map: dict[str, str] | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.rate_limiter = rate_limiter
        self._id_map = FALLBACK_ID_MAP if id_map is None else id_map

    def fallback_id(self, canonical_id: str) -> str:
        return self._id_map.get(canonical_id, canonical_id)

    async def current_prices(self, ids: list[str]) -> list[PriceQuote]:
        await self.rate_limiter.acquire()
        try:
            return await self.primary.current_prices(ids)
        except PriceFeedError as e:
            self._on_primary_failure("current prices", e)

        assert self.fallback is not None
        fallback_ids = [self.fallback_id(i) for i in ids]
        try:
            quotes = await self.fallback.current_prices(fallback_ids)
        except PriceFeedError as e:
            raise self._fallback_error("current prices", e) from e

        by_id = {q.provider_id: q for q in quotes}
        result: list[PriceQuote] = []
        for canonical in ids:
            quote = by_id.get(self.fallback_id(canonical))
            if quote is None:
                result.append(PriceQuote(provider_id=canonical))
            else:
                result.append(quote.model_copy(update={"provider_id": canonical}))
        return result

    async def historical_prices(self, provider_id: str, days: int) -> HistoricalSeries:
        await self.rate_limiter.acquire()
        try:
            return await self.primary.historical_prices(provider_id, days)
        except PriceFeedError as e:
            self._on_primary_failure(f"history for {provider_id}", e)

        assert self.fallback is not None
        try:
            series = await self.fallback.historical_prices(
                self.fallback_id(provider_id), days
            )
        except PriceFeedError as e:
            raise self._fallback_error(f"history for {provider_id}", e) from e
        return series.model_copy(update={"provider_id": provider_id})

    def _on_primary_failure(self, what: str, error: PriceFeedError) -> None:
        if self.fallback is None:
            raise PriceFeedError(
                f"{self.primary.name} failed to fetch {what}: {error.reason}",
                cause=error,
            ) from error
        logger.warning(
            "%s failed to fetch %s (%s), failing over to %s",
            self.primary.name,
            what,
            error,
            self.fallback.name,
        )

    def _fallback_error(self, what: str, error: PriceFeedError) -> PriceFeedError:
        assert self.fallback is not None
        return PriceFeedError(
            f"Fallback {self.fallback.name} failed to fetch {what} "
            f"after {self.primary.name} failed: {error.reason}",
            cause=error,
        )
