"""Shared fakes for the test suite."""

import asyncio
import math
from datetime import UTC, datetime

from defi_risk.errors import PriceFeedError
from defi_risk.models.analysis import (
    Alert,
    AnalysisResult,
    PortfolioValuation,
    RiskMetrics,
)
from defi_risk.models.market import HistoricalSeries, PriceQuote
from defi_risk.models.portfolio import Holding, Portfolio

FIXED_INSTANT = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class FakeProvider:
    """In-memory PriceProvider with switchable failures and call recording."""

    def __init__(
        self,
        name: str = "Fake",
        prices: dict[str, float] | None = None,
        history: dict[str, list[float]] | None = None,
        *,
        changes: dict[str, float] | None = None,
        fail_current: bool = False,
        fail_history: bool | set[str] = False,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.prices = prices or {}
        self.history = history or {}
        self.changes = changes or {}
        self.fail_current = fail_current
        self.fail_history = fail_history
        self.delay = delay
        self.current_calls: list[list[str]] = []
        self.history_calls: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def current_prices(self, ids: list[str]) -> list[PriceQuote]:
        self.current_calls.append(list(ids))
        if self.fail_current:
            raise PriceFeedError(f"{self.name} is down")
        return [
            PriceQuote(
                provider_id=i,
                price_usd=self.prices.get(i, 0.0),
                change_24h_pct=self.changes.get(i, 0.0),
            )
            for i in ids
        ]

    async def historical_prices(self, provider_id: str, days: int) -> HistoricalSeries:
        self.history_calls.append((provider_id, days))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self._history_fails(provider_id):
                raise PriceFeedError(f"{self.name} has no history for {provider_id}")
            return HistoricalSeries(
                provider_id=provider_id, prices=self.history.get(provider_id, [])
            )
        finally:
            self.in_flight -= 1

    def history_attempts(self, provider_id: str) -> int:
        return sum(1 for pid, _ in self.history_calls if pid == provider_id)

    def _history_fails(self, provider_id: str) -> bool:
        if isinstance(self.fail_history, set):
            return provider_id in self.fail_history
        return self.fail_history


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[list[Alert]] = []

    def notify(self, alerts: list[Alert]) -> None:
        self.calls.append(list(alerts))
        if self.fail:
            raise RuntimeError("notification channel closed")


class FakeTime:
    """Manual monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def btc_eth_portfolio() -> Portfolio:
    return Portfolio(
        name="Test",
        holdings=[
            Holding(symbol="BTC", provider_id="bitcoin", amount=1.0),
            Holding(symbol="ETH", provider_id="ethereum", amount=10.0),
        ],
    )


def wavy_history(base: float, days: int = 30, amplitude: float = 0.05) -> list[float]:
    return [base + math.sin(i * 0.5) * base * amplitude for i in range(days + 1)]


def make_result(
    total: float = 100_000.0,
    timestamp: str = "2024-03-01T12:00:00+00:00",
    **risk: float,
) -> AnalysisResult:
    return AnalysisResult(
        timestamp=timestamp,
        valuation=PortfolioValuation(total_value_usd=total, holdings=[]),
        risk=RiskMetrics(**risk),
    )
