import logging
from datetime import UTC, datetime, timedelta

import httpx
from pydantic import BaseModel, Field

from defi_risk.config import COINCAP_BASE_URL
from defi_risk.data.provider_base import fetch_json, parse_payload
from defi_risk.models.market import HistoricalSeries, PriceQuote

logger = logging.getLogger(__name__)


class CoinCapAsset(BaseModel):
    id: str
    # CoinCap encodes numbers as strings; pydantic's lax mode coerces them.
    priceUsd: float | None = Field(default=None, ge=0)
    changePercent24Hr: float | None = None


class AssetsResponse(BaseModel):
    data: list[CoinCapAsset]


class HistoryPoint(BaseModel):
    priceUsd: float = Field(ge=0)
    time: int


class HistoryResponse(BaseModel):
    data: list[HistoryPoint]


class CoinCapProvider:
    """Fallback price source: the CoinCap REST API (daily history via ``d1``)."""

    name: str = "CoinCap"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = COINCAP_BASE_URL,
        api_key: str | None = None,
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else None

    async def current_prices(self, ids: list[str]) -> list[PriceQuote]:
        if not ids:
            return []
        payload = await fetch_json(
            self._client,
            f"{self.base_url}/assets",
            source=self.name,
            params={"ids": ",".join(ids)},
            headers=self._headers,
        )
        assets = parse_payload(AssetsResponse, payload, source=self.name).data
        by_id = {a.id: a for a in assets}

        quotes: list[PriceQuote] = []
        for asset_id in ids:
            asset = by_id.get(asset_id)
            if asset is None:
                logger.debug("%s returned no price for %s", self.name, asset_id)
            quotes.append(
                PriceQuote(
                    provider_id=asset_id,
                    price_usd=(asset.priceUsd if asset else None) or 0.0,
                    change_24h_pct=(asset.changePercent24Hr if asset else None)
                    or 0.0,
                )
            )
        return quotes

    async def historical_prices(self, provider_id: str, days: int) -> HistoricalSeries:
        end = datetime.now(UTC)
        start = end - timedelta(days=days + 1)
        payload = await fetch_json(
            self._client,
            f"{self.base_url}/assets/{provider_id}/history",
            source=self.name,
            params={
                "interval": "d1",
                "start": int(start.timestamp() * 1000),
                "end": int(end.timestamp() * 1000),
            },
            headers=self._headers,
        )
        points = parse_payload(HistoryResponse, payload, source=self.name).data
        points = sorted(points, key=lambda p: p.time)[-(days + 1) :]
        return HistoricalSeries(
            provider_id=provider_id,
            prices=[p.priceUsd for p in points],
        )
