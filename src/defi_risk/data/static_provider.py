"""Deterministic offline provider used by ``--demo``."""

import math

from defi_risk.models.market import HistoricalSeries, PriceQuote

DEMO_PRICES = [42000.0, 2200.0, 145.0, 28.0, 15.0]
DEMO_CHANGES = [-2.5, 1.3, -0.8, 3.1, -1.2]
DEMO_BASES = {"bitcoin": 40000.0, "ethereum": 2000.0}


class StaticPriceProvider:
    name: str = "Static"

    async def current_prices(self, ids: list[str]) -> list[PriceQuote]:
        return [
            PriceQuote(
                provider_id=coin_id,
                price_usd=DEMO_PRICES[i] if i < len(DEMO_PRICES) else 100.0,
                change_24h_pct=DEMO_CHANGES[i] if i < len(DEMO_CHANGES) else 0.0,
            )
            for i, coin_id in enumerate(ids)
        ]

    async def historical_prices(self, provider_id: str, days: int) -> HistoricalSeries:
        base = DEMO_BASES.get(provider_id, 100.0)
        return HistoricalSeries(
            provider_id=provider_id,
            prices=[base + math.sin(i * 0.5) * base * 0.05 for i in range(days + 1)],
        )
