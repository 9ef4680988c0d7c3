import logging

import httpx
from pydantic import BaseModel, Field, RootModel

from defi_risk.config import COINGECKO_BASE_URL
from defi_risk.data.provider_base import fetch_json, parse_payload
from defi_risk.models.market import HistoricalSeries, PriceQuote

logger = logging.getLogger(__name__)


class SimplePrice(BaseModel):
    usd: float | None = Field(default=None, ge=0)
    usd_24h_change: float | None = None


class SimplePriceResponse(RootModel[dict[str, SimplePrice]]):
    pass


class MarketChartResponse(BaseModel):
    prices: list[tuple[float, float]]


class CoinGeckoProvider:
    """Primary price source: the public CoinGecko v3 API."""

    name: str = "CoinGecko"

    def __init__(
        self, client: httpx.AsyncClient, base_url: str = COINGECKO_BASE_URL
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")

    async def current_prices(self, ids: list[str]) -> list[PriceQuote]:
        if not ids:
            return []
        payload = await fetch_json(
            self._client,
            f"{self.base_url}/simple/price",
            source=self.name,
            params={
                "ids": ",".join(ids),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            },
        )
        data = parse_payload(SimplePriceResponse, payload, source=self.name).root

        quotes: list[PriceQuote] = []
        for coin_id in ids:
            entry = data.get(coin_id)
            if entry is None:
                logger.debug("%s returned no price for %s", self.name, coin_id)
            quotes.append(
                PriceQuote(
                    provider_id=coin_id,
                    price_usd=(entry.usd if entry else None) or 0.0,
                    change_24h_pct=(entry.usd_24h_change if entry else None) or 0.0,
                )
            )
        return quotes

    async def historical_prices(self, provider_id: str, days: int) -> HistoricalSeries:
        payload = await fetch_json(
            self._client,
            f"{self.base_url}/coins/{provider_id}/market_chart",
            source=self.name,
            params={"vs_currency": "usd", "days": days, "interval": "daily"},
        )
        chart = parse_payload(MarketChartResponse, payload, source=self.name)
        return HistoricalSeries(
            provider_id=provider_id,
            prices=[price for _, price in chart.prices],
        )
